import asyncio

import pytest
from PIL import Image

from meter_reader.models import STATUS_MESSAGES, NoReading, Reading, ReadingStatus, get_profile
from meter_reader.ocr import OCRProcessor, RecognitionSession

from conftest import FakeEngine, GatedEngine, gradient_raster, png_bytes, solid_raster


def test_preprocess_output_size(fake_engine):
    processor = OCRProcessor(fake_engine, upscale_factor=2.0)
    processed = processor.preprocess(solid_raster(400, 200), get_profile("lcd"))
    # 75% x 25% crop (300x50) doubled
    assert (processed.width, processed.height) == (600, 100)


def test_preprocess_is_deterministic(fake_engine):
    processor = OCRProcessor(fake_engine)
    image = gradient_raster(120, 80)
    profile = get_profile("generic")
    assert processor.preprocess(image, profile) == processor.preprocess(image, profile)


def test_read_meter_ok(fake_engine):
    processor = OCRProcessor(fake_engine)
    outcome = asyncio.run(processor.read_meter(gradient_raster(200, 100), get_profile("lcd")))

    assert outcome.status is ReadingStatus.OK
    assert outcome.ok
    assert outcome.reading == Reading("1234567", "8")
    assert outcome.recognition.confidence == 91.5
    assert len(fake_engine.calls) == 1


def test_read_meter_sends_profile_whitelist():
    engine = FakeEngine(text="12.345")
    processor = OCRProcessor(engine, recognition_timeout=5)
    asyncio.run(processor.read_meter(gradient_raster(200, 100), get_profile("generic")))

    _, config = engine.calls[0]
    assert config.whitelist == "0123456789."
    assert config.page_segmentation_mode == 7
    assert config.engine_mode == 1
    assert config.timeout == 5


def test_read_meter_uses_profile_extraction_mode():
    engine = FakeEngine(text="meter 0123.456 m3")
    processor = OCRProcessor(engine)
    image = gradient_raster(200, 100)

    lenient = asyncio.run(processor.read_meter(image, get_profile("generic")))
    strict = asyncio.run(processor.read_meter(image, get_profile("lcd")))

    assert lenient.reading == Reading("0123", "456")
    assert strict.status is ReadingStatus.NO_READING


def test_read_meter_no_reading():
    processor = OCRProcessor(FakeEngine(text="12,3"))
    outcome = asyncio.run(processor.read_meter(gradient_raster(200, 100), get_profile("lcd")))

    assert outcome.status is ReadingStatus.NO_READING
    assert isinstance(outcome.reading, NoReading)
    assert not outcome.ok
    assert outcome.recognition.raw_text == "12,3"


def test_read_meter_recognition_failure_is_not_retried():
    engine = FakeEngine(error="engine crashed")
    processor = OCRProcessor(engine)
    outcome = asyncio.run(processor.read_meter(gradient_raster(200, 100), get_profile("lcd")))

    assert outcome.status is ReadingStatus.RECOGNITION_FAILED
    assert "engine crashed" in outcome.detail
    assert len(engine.calls) == 1


def test_read_meter_invalid_geometry_skips_engine(fake_engine):
    processor = OCRProcessor(fake_engine)
    outcome = asyncio.run(processor.read_meter(solid_raster(2, 2), get_profile("lcd")))

    assert outcome.status is ReadingStatus.INVALID_GEOMETRY
    assert fake_engine.calls == []


@pytest.mark.parametrize("factor", [0, -1.5, float("nan")])
def test_read_meter_bad_scale_factor_is_a_configuration_error(fake_engine, factor):
    processor = OCRProcessor(fake_engine, upscale_factor=factor)
    outcome = asyncio.run(processor.read_meter(gradient_raster(200, 100), get_profile("lcd")))

    assert outcome.status is ReadingStatus.CONFIGURATION_ERROR
    assert "retake" not in outcome.message
    assert fake_engine.calls == []


def test_read_meter_bytes(fake_engine):
    processor = OCRProcessor(fake_engine)
    outcome = asyncio.run(processor.read_meter_bytes(png_bytes(200, 100), get_profile("lcd")))
    assert outcome.status is ReadingStatus.OK


def test_read_meter_bytes_invalid_image(fake_engine):
    processor = OCRProcessor(fake_engine)
    outcome = asyncio.run(processor.read_meter_bytes(b"not an image", get_profile("lcd")))
    assert outcome.status is ReadingStatus.INVALID_IMAGE
    assert fake_engine.calls == []


def test_read_meter_bytes_oversized_image(fake_engine, monkeypatch):
    data = png_bytes(100, 100)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    outcome = asyncio.run(OCRProcessor(fake_engine).read_meter_bytes(data, get_profile("lcd")))

    assert outcome.status is ReadingStatus.INVALID_IMAGE
    assert fake_engine.calls == []


def test_every_status_has_distinct_message():
    assert set(STATUS_MESSAGES) == set(ReadingStatus)
    assert len(set(STATUS_MESSAGES.values())) == len(ReadingStatus)


# --- last-submitted-wins ---

async def _wait_for_calls(engine: GatedEngine, count: int) -> None:
    while len(engine.gates) < count:
        await asyncio.sleep(0)


def test_session_later_submission_wins_when_earlier_resolves_last():
    async def scenario():
        engine = GatedEngine()
        engine.queue("1111111,1")
        engine.queue("2222222,2")
        session = RecognitionSession(OCRProcessor(engine))
        profile = get_profile("lcd")

        first = asyncio.ensure_future(session.submit(gradient_raster(200, 100), profile))
        await _wait_for_calls(engine, 1)
        second = asyncio.ensure_future(session.submit(gradient_raster(200, 100), profile))
        await _wait_for_calls(engine, 2)

        # #2 resolves first, then the stale #1
        engine.gates[1].set()
        second_outcome = await second
        engine.gates[0].set()
        first_outcome = await first
        return session, first_outcome, second_outcome

    session, first_outcome, second_outcome = asyncio.run(scenario())

    assert first_outcome.status is ReadingStatus.SUPERSEDED
    assert first_outcome.sequence == 1
    assert second_outcome.reading == Reading("2222222", "2")
    assert session.latest.reading == Reading("2222222", "2")
    assert session.latest.sequence == 2


def test_session_stale_result_resolving_first_is_discarded():
    async def scenario():
        engine = GatedEngine()
        engine.queue("1111111,1")
        engine.queue("2222222,2")
        session = RecognitionSession(OCRProcessor(engine))
        profile = get_profile("lcd")

        first = asyncio.ensure_future(session.submit(gradient_raster(200, 100), profile))
        await _wait_for_calls(engine, 1)
        second = asyncio.ensure_future(session.submit(gradient_raster(200, 100), profile))
        await _wait_for_calls(engine, 2)

        engine.gates[0].set()
        first_outcome = await first
        latest_after_first = session.latest
        engine.gates[1].set()
        await second
        return session, first_outcome, latest_after_first

    session, first_outcome, latest_after_first = asyncio.run(scenario())

    assert first_outcome.status is ReadingStatus.SUPERSEDED
    assert latest_after_first is None
    assert session.latest.reading == Reading("2222222", "2")


def test_session_cancel_discards_in_flight_result():
    async def scenario():
        engine = GatedEngine()
        engine.queue("1111111,1")
        session = RecognitionSession(OCRProcessor(engine))

        pending = asyncio.ensure_future(session.submit(gradient_raster(200, 100), get_profile("lcd")))
        await _wait_for_calls(engine, 1)
        assert session.pending == 1
        session.cancel()
        outcome = await pending
        return session, outcome

    session, outcome = asyncio.run(scenario())

    assert outcome.status is ReadingStatus.SUPERSEDED
    assert session.latest is None
    assert session.pending == 0


def test_session_single_submission_commits(fake_engine):
    session = RecognitionSession(OCRProcessor(fake_engine))
    outcome = asyncio.run(session.submit(gradient_raster(200, 100), get_profile("lcd")))

    assert outcome.status is ReadingStatus.OK
    assert outcome.sequence == 1
    assert session.latest is outcome


def test_session_invalid_upload_replaces_latest(fake_engine):
    session = RecognitionSession(OCRProcessor(fake_engine))
    asyncio.run(session.submit(gradient_raster(200, 100), get_profile("lcd")))
    outcome = asyncio.run(session.submit_bytes(b"", get_profile("lcd")))

    assert outcome.status is ReadingStatus.INVALID_IMAGE
    assert session.latest is outcome
    assert session.sequence == 2


@pytest.mark.parametrize("name", ["LCD", " generic "])
def test_get_profile_is_case_insensitive(name):
    assert get_profile(name).name == name.strip().lower()


def test_get_profile_unknown_name():
    with pytest.raises(ValueError):
        get_profile("water")
