"""
API routes for the meter reader backend.
"""
import logging
from collections import OrderedDict
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, UploadFile, File, Form, HTTPException, status
from fastapi.responses import JSONResponse, Response

from meter_reader.config import Settings
from meter_reader.errors import InvalidGeometry, InvalidImage, InvalidScaleFactor
from meter_reader.models import DEFAULT_PROFILES, CaptureProfile, Reading, get_profile
from meter_reader.models.outcome import ReadingOutcome, ReadingStatus
from meter_reader.models.raster import RasterImage
from meter_reader.ocr import RecognitionSession, create_processor

logger = logging.getLogger(__name__)

settings = Settings.from_env()

# Initialize OCR processor
ocr_processor = create_processor(settings)

# Sessions keyed by client-supplied session_id, oldest evicted first
MAX_SESSIONS = 256
sessions: "OrderedDict[str, RecognitionSession]" = OrderedDict()

VALID_EXTENSIONS = [".jpg", ".jpeg", ".png", ".heic", ".heif", ".gif", ".webp", ".bmp"]

router = APIRouter(prefix="/api", tags=["api"])


def _resolve_profile(name: Optional[str]) -> CaptureProfile:
    try:
        return get_profile(name or settings.default_profile)
    except ValueError as e:
        logger.error(f"Invalid profile: '{name}'")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _validate_image_upload(file: UploadFile) -> None:
    # Check content-type first, then fall back to the file extension
    if file.content_type and file.content_type.startswith("image/"):
        return
    if file.filename and Path(file.filename).suffix.lower() in VALID_EXTENSIONS:
        logger.info(f"File validated by extension: {Path(file.filename).suffix.lower()}")
        return
    logger.error(f"Invalid file. content_type: {file.content_type}, filename: {file.filename}")
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"File must be an image. Received content_type: {file.content_type}, filename: {file.filename}",
    )


def _get_session(session_id: str) -> RecognitionSession:
    session = sessions.get(session_id)
    if session is None:
        session = RecognitionSession(ocr_processor)
        sessions[session_id] = session
        while len(sessions) > MAX_SESSIONS:
            sessions.popitem(last=False)
    else:
        sessions.move_to_end(session_id)
    return session


def _build_response(outcome: ReadingOutcome, profile: CaptureProfile) -> dict:
    response_data = {
        "status": outcome.status.value,
        "message": outcome.message,
        "profile": profile.name,
        "reading_value": None,
        "integer_part": None,
        "fractional_part": None,
        "confidence_score": None,
        "raw_text": None,
    }

    if outcome.recognition is not None:
        response_data["confidence_score"] = outcome.recognition.confidence
        response_data["raw_text"] = outcome.recognition.raw_text
        response_data["engine"] = outcome.recognition.engine

    if isinstance(outcome.reading, Reading):
        response_data["reading_value"] = outcome.reading.value
        response_data["integer_part"] = outcome.reading.integer_part
        response_data["fractional_part"] = outcome.reading.fractional_part
        confidence = outcome.recognition.confidence if outcome.recognition else 0.0
        response_data["low_confidence"] = confidence < settings.min_confidence

    if outcome.detail:
        response_data["detail"] = outcome.detail
    if outcome.sequence:
        response_data["sequence"] = outcome.sequence

    return response_data


@router.get("/profiles")
async def list_profiles():
    """List capture profiles and the default one."""
    return {
        "default": settings.default_profile,
        "profiles": [profile.to_dict() for profile in DEFAULT_PROFILES.values()],
    }


@router.post("/read-meter")
async def read_meter(
    file: UploadFile = File(...),
    profile: Optional[str] = Form(None),
    session_id: Optional[str] = Form(None),
):
    """
    Read a meter from an uploaded photo.

    Args:
        file: Photo of the meter
        profile: Capture profile (lcd, generic); defaults to DEFAULT_PROFILE
        session_id: Requests with the same id share one result slot, so an
            older photo finishing late is reported as superseded

    Returns:
        JSON response with reading and status
    """
    logger.info("=" * 50)
    logger.info(f"Received read request: file={file.filename}, content_type={file.content_type}, profile={profile}")

    capture_profile = _resolve_profile(profile)
    _validate_image_upload(file)

    content = await file.read()
    logger.info(f"Upload size: {len(content)} bytes")

    if session_id:
        outcome = await _get_session(session_id).submit_bytes(content, capture_profile)
    else:
        outcome = await ocr_processor.read_meter_bytes(content, capture_profile)

    if outcome.status is ReadingStatus.OK:
        logger.info(f"Read request finished: reading_value={outcome.reading.value}")
    else:
        logger.warning(f"Read request finished without reading: status={outcome.status.value}")
    logger.info("=" * 50)

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=_build_response(outcome, capture_profile),
    )


@router.post("/preprocess")
async def preprocess_image(
    file: UploadFile = File(...),
    profile: Optional[str] = Form(None),
):
    """
    Return the processed image the OCR engine would receive, as PNG.
    """
    capture_profile = _resolve_profile(profile)
    _validate_image_upload(file)

    content = await file.read()
    try:
        image = RasterImage.from_encoded(content)
        processed = ocr_processor.preprocess(image, capture_profile)
    except InvalidImage as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except InvalidScaleFactor as e:
        logger.error(f"Upscaling is misconfigured: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except InvalidGeometry as e:
        raise HTTPException(status_code=422, detail=str(e))

    return Response(content=processed.to_png_bytes(), media_type="image/png")
