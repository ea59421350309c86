# icao_verify/core/verify.py
import logging
import time

from icao_verify.clients import http
from icao_verify.core.engine import evaluate
from icao_verify.core.faces import FaceDetectionAdapter
from icao_verify.core.metadata import detect_format, extract_metadata
from icao_verify.core.types import ComplianceReport

log = logging.getLogger(__name__)


class VerificationPipeline:
    """bytes -> metadata + faces -> report. Holds no per-request state."""

    def __init__(self, detector: FaceDetectionAdapter):
        self.detector = detector

    async def verify_bytes(self, raw: bytes) -> ComplianceReport:
        start = time.perf_counter()
        meta = extract_metadata(raw)
        detection = await self.detector.detect(raw, meta)
        report = evaluate(meta, detection)
        log.info(
            "verify_done",
            extra={
                "format": detect_format(raw),
                "width": meta.width,
                "height": meta.height,
                "provenance": detection.provenance.value,
                "faces": report.face_count,
                "score": report.score,
                "compliant": report.is_compliant,
                "ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return report

    async def verify_url(self, url: str) -> ComplianceReport:
        raw = await http.fetch_bytes(url)
        return await self.verify_bytes(raw)
