import asyncio
import logging
import time
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from icao_verify import config
from icao_verify.core.errors import FetchError, InputError
from icao_verify.core.faces import build_detector
from icao_verify.core.verify import VerificationPipeline
from icao_verify.logging_config import setup_logging

# ─────────────── Setup ────────────────
setup_logging()
app = FastAPI(title="ICAO Photo Verification API")
log = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}
# nginx convention for "client closed request"
CLIENT_CLOSED_REQUEST = 499


class VerifyRequest(BaseModel):
    imageUrl: Optional[str] = None


# ───────────── Init on startup ─────────────
@app.on_event("startup")
def _startup_init_pipeline():
    # Missing credentials or model files must stop the process here
    app.state.pipeline = VerificationPipeline(build_detector())
    log.info("pipeline_ready", extra={"face_backend": config.FACE_BACKEND,
                                      "threshold": config.COMPLIANCE_THRESHOLD})


def get_pipeline(request: Request) -> VerificationPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise RuntimeError("Verification pipeline is not initialized")
    return pipeline


# ───────────── Middleware ─────────────
@app.middleware("http")
async def cors_and_logging(request: Request, call_next):
    start = time.perf_counter()
    path = request.url.path
    method = request.method
    client = request.client.host if request.client else "unknown"

    if method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    try:
        response = await call_next(request)
    except Exception as e:
        dt = int((time.perf_counter() - start) * 1000)
        logging.getLogger("icao_verify.http").exception(
            "http_error",
            extra={"method": method, "path": path, "client": client, "ms": dt, "error": str(e)},
        )
        raise

    response.headers.update(CORS_HEADERS)
    dt = int((time.perf_counter() - start) * 1000)
    logging.getLogger("icao_verify.http").info(
        "http",
        extra={"method": method, "path": path, "status": response.status_code,
               "client": client, "ms": dt},
    )
    return response


# ───────────── Errors ─────────────
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": str(exc.errors())},
    )


@app.exception_handler(InputError)
async def input_error_handler(request: Request, exc: InputError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logging.getLogger("icao_verify.api.server").exception("unhandled_exception")
    return JSONResponse(status_code=500, content={"error": "Failed to verify photo",
                                                  "details": str(exc)})


async def _cancel_on_disconnect(request: Request, coro):
    """Run ``coro``; cancel it if the client goes away. Returns None on disconnect."""
    task = asyncio.ensure_future(coro)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=config.DISCONNECT_POLL_S)
            if done:
                return task.result()
            if await request.is_disconnected():
                log.info("client_disconnected", extra={"path": request.url.path})
                return None
    finally:
        if not task.done():
            task.cancel()


# ───────────── Health ─────────────
@app.get("/healthz")
def healthz(request: Request):
    return {
        "status": "ok",
        "face_backend": config.FACE_BACKEND,
        "detector_ready": getattr(request.app.state, "pipeline", None) is not None,
        "compliance_threshold": config.COMPLIANCE_THRESHOLD,
    }


# ───────────── Verify Endpoint ─────────────
@app.post("/verify-icao-photo")
async def verify_icao_photo(
    request: Request,
    body: VerifyRequest,
    pipeline: VerificationPipeline = Depends(get_pipeline),
):
    image_url = (body.imageUrl or "").strip()
    if not image_url:
        raise InputError("Image URL is required")

    log.info("verify_in", extra={"image_url": image_url})
    try:
        report = await _cancel_on_disconnect(request, pipeline.verify_url(image_url))
    except FetchError as e:
        log.warning("fetch_failed", extra={"image_url": image_url, "error": str(e)})
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to verify photo", "details": str(e)},
        )
    except Exception as e:
        log.exception("verify_failed", extra={"image_url": image_url, "error": str(e)})
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to verify photo", "details": str(e)},
        )

    if report is None:
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    out = report.to_dict()
    log.info("verify_out", extra={"score": report.score, "compliant": report.is_compliant,
                                  "faces": report.face_count})
    return out


# ───────────── Root ─────────────
@app.get("/")
def root():
    return {
        "message": "ICAO Photo Verification API",
        "try": ["/healthz", "POST /verify-icao-photo"],
    }
