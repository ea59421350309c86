# icao_verify/core/faces.py
"""Face detection adapter.

Backends return whatever payload their service produces. This module turns
that payload into canonical ``FaceBox`` values once, and tags the result with
its provenance so the rule engine can pick the right fallback.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Optional, Protocol

from icao_verify import config
from icao_verify.core.errors import ConfigError, DetectionUnavailable
from icao_verify.core.types import (
    Detected,
    FaceBox,
    FaceDetectionResult,
    HeadPose,
    ImageMetadata,
    Inconclusive,
    Unavailable,
)

log = logging.getLogger(__name__)


class FaceBackend(Protocol):
    async def detect(self, image: bytes) -> Any:
        """Return the raw detector payload, or raise DetectionUnavailable."""
        ...


# ── Normalization ────────────────────────────────────────────────────────────
def _num(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _first_num(raw: Mapping, *keys: str) -> Optional[float]:
    for k in keys:
        v = _num(raw.get(k))
        if v is not None:
            return v
    return None


def _first_bool(raw: Mapping, *keys: str) -> Optional[bool]:
    for k in keys:
        v = raw.get(k)
        if isinstance(v, bool):
            return v
    return None


def _span(raw: Mapping, size_keys: tuple[str, ...], lo: str, hi: str) -> float:
    size = _first_num(raw, *size_keys)
    if size is not None:
        return size
    a, b = _num(raw.get(lo)), _num(raw.get(hi))
    if a is not None and b is not None:
        return b - a
    return 0.0


def _head_pose(raw: Mapping) -> Optional[HeadPose]:
    pose = raw.get("head_pose", raw.get("headPose", raw))
    if not isinstance(pose, Mapping):
        return None
    angles = [_num(pose.get(k)) for k in ("yaw", "pitch", "roll")]
    if any(a is None for a in angles):
        return None
    yaw, pitch, roll = angles
    return HeadPose(yaw=yaw, pitch=pitch, roll=roll)


def _eyes_open(raw: Mapping) -> Optional[bool]:
    flag = _first_bool(raw, "eyes_open", "eyesOpen")
    if flag is not None:
        return flag
    left = _first_num(raw, "left_eye_open_probability", "leftEyeOpenProbability")
    right = _first_num(raw, "right_eye_open_probability", "rightEyeOpenProbability")
    if left is None or right is None:
        return None
    return left > config.EYES_OPEN_MIN_PROB and right > config.EYES_OPEN_MIN_PROB


def _mouth_closed(raw: Mapping) -> Optional[bool]:
    flag = _first_bool(raw, "mouth_closed", "mouthClosed")
    if flag is not None:
        return flag
    closed = _first_num(raw, "mouth_closed_probability", "mouthClosedProbability")
    if closed is not None:
        return closed > config.MOUTH_CLOSED_MIN_PROB
    opened = _first_num(raw, "mouth_open_probability", "mouthOpenProbability")
    if opened is not None:
        return (1.0 - opened) > config.MOUTH_CLOSED_MIN_PROB
    return None


def normalize_face(raw: Any) -> FaceBox:
    """Convert one detector entry into a FaceBox.

    Accepts ``{x,y,width,height}``, ``{x1,y1,x2,y2}`` and ``{x,y,w,h}``,
    optionally nested under ``bounding_box``. Missing coordinates become 0,
    so a malformed entry yields a degenerate box instead of an exception.
    """
    if not isinstance(raw, Mapping):
        raw = {}
    box = raw.get("bounding_box")
    if not isinstance(box, Mapping):
        box = raw

    return FaceBox(
        x=_first_num(box, "x", "x1") or 0.0,
        y=_first_num(box, "y", "y1") or 0.0,
        width=_span(box, ("width", "w"), "x1", "x2"),
        height=_span(box, ("height", "h"), "y1", "y2"),
        head_pose=_head_pose(raw),
        eyes_open=_eyes_open(raw),
        mouth_closed=_mouth_closed(raw),
        has_glasses=_first_bool(raw, "has_glasses", "hasGlasses", "glasses"),
        quality_score=_first_num(raw, "quality_score", "qualityScore", "quality"),
        confidence=_first_num(raw, "confidence", "score", "prob"),
    )


def normalize_faces(payload: Any) -> tuple[FaceBox, ...]:
    if not isinstance(payload, list):
        raise DetectionUnavailable(
            f"unparseable face detection response ({type(payload).__name__})"
        )
    return tuple(normalize_face(item) for item in payload)


# ── Portrait heuristic ───────────────────────────────────────────────────────
def looks_like_portrait(meta: ImageMetadata) -> bool:
    """True when the metadata alone is consistent with a single-portrait photo.

    Never locates a face; it only licenses the engine's lenient fallback.
    """
    if not meta.has_dimensions:
        return False
    lo, hi = config.PORTRAIT_ASPECT_RANGE
    return (
        lo <= meta.height / meta.width <= hi
        and meta.width >= config.PORTRAIT_MIN_WIDTH_PX
        and meta.height >= config.PORTRAIT_MIN_HEIGHT_PX
        and meta.byte_size > config.PORTRAIT_MIN_BYTES
    )


# ── Adapter ──────────────────────────────────────────────────────────────────
class FaceDetectionAdapter:
    """Single best-effort call to a face backend, tagged with provenance."""

    def __init__(self, backend: FaceBackend, timeout: Optional[float] = None):
        self.backend = backend
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else config.DETECTION_TIMEOUT_S

    @property
    def name(self) -> str:
        return type(self.backend).__name__

    async def detect(self, image: bytes, meta: ImageMetadata) -> FaceDetectionResult:
        try:
            payload = await asyncio.wait_for(self.backend.detect(image), timeout=self.timeout)
            faces = normalize_faces(payload)
        except asyncio.TimeoutError:
            return self._fallback(meta, f"face detection timed out after {self.timeout:g}s")
        except DetectionUnavailable as e:
            return self._fallback(meta, str(e))
        except Exception as e:
            # CancelledError is not an Exception and still propagates
            return self._fallback(meta, f"{type(e).__name__}: {e}")

        log.info("faces_detected", extra={"backend": self.name, "count": len(faces)})
        return Detected(faces=faces)

    def _fallback(self, meta: ImageMetadata, reason: str) -> FaceDetectionResult:
        portrait = looks_like_portrait(meta)
        log.warning(
            "detection_unavailable",
            extra={"backend": self.name, "reason": reason, "portrait_like": portrait},
        )
        if portrait:
            return Inconclusive(reason=reason)
        return Unavailable(reason=reason)


def build_detector(backend: Optional[str] = None) -> FaceDetectionAdapter:
    """Build the adapter for the configured backend. Raises ConfigError."""
    name = (backend or config.FACE_BACKEND).lower()
    if name == "api_ninjas":
        from icao_verify.clients.ninjas import ApiNinjasFaceDetector
        impl: FaceBackend = ApiNinjasFaceDetector(api_key=config.require_api_key())
    elif name == "scrfd":
        from icao_verify.core.detector import ScrfdFaceDetector
        impl = ScrfdFaceDetector()
    else:
        raise ConfigError(
            f"Unknown FACE_BACKEND={name!r}; expected one of {', '.join(config.FACE_BACKENDS)}"
        )
    return FaceDetectionAdapter(impl)
