"""
Meter reader HTTP service.

Run with ``python main.py`` or ``uvicorn main:app``.
"""
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from meter_reader import __version__
from meter_reader.api import routes
from meter_reader.errors import MeterReaderError

logging.basicConfig(
    level=routes.settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id and logs its size, status and duration."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        started = time.perf_counter()

        size = request.headers.get("content-length", "0")
        logger.info(f"[{request_id}] {request.method} {request.url.path} ({size} bytes)")

        response = await call_next(request)

        elapsed = time.perf_counter() - started
        logger.info(
            f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s"
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Meter Reader API {__version__} starting "
        f"(engine: {routes.ocr_processor.engine.name}, "
        f"default profile: {routes.settings.default_profile}, "
        f"upscale: {routes.ocr_processor.upscale_factor}x)"
    )
    yield
    pending = sum(session.pending for session in routes.sessions.values())
    if pending:
        logger.info(f"Cancelling {pending} in-flight recognition(s)")
    for session in routes.sessions.values():
        session.cancel()
    routes.sessions.clear()
    logger.info("Meter Reader API stopped")


app = FastAPI(
    title="Meter Reader API",
    version=__version__,
    description="Utility meter reading recognition from photos",
    lifespan=lifespan,
)

app.add_middleware(RequestLogMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)

app.include_router(routes.router)


@app.exception_handler(MeterReaderError)
async def meter_reader_error_handler(request: Request, exc: MeterReaderError):
    # Pipeline errors a route did not map to a status
    logger.error(f"Unhandled {type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"status": "error", "error": type(exc).__name__, "detail": str(exc)},
    )


@app.get("/health")
async def health_check():
    """Service status with the active recognition setup."""
    return {
        "status": "ok",
        "version": __version__,
        "engine": routes.ocr_processor.engine.name,
        "default_profile": routes.settings.default_profile,
        "sessions": len(routes.sessions),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=routes.settings.log_level.lower(),
    )
