# icao_verify/core/types.py
"""Request-scoped value types shared by the extractor, adapter and engine.

Everything here is a frozen dataclass: a report is built once per request and
never mutated afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


@dataclass(frozen=True)
class ImageMetadata:
    width: int
    height: int
    byte_size: int

    @property
    def has_dimensions(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def aspect_ratio(self) -> float:
        """width / height, 0.0 when the dimensions are unknown."""
        return self.width / self.height if self.has_dimensions else 0.0


@dataclass(frozen=True)
class HeadPose:
    yaw: float
    pitch: float
    roll: float


@dataclass(frozen=True)
class FaceBox:
    """Face bounding box in source-image pixels.

    The optional attributes are only set when the detection backend reported
    them; ``None`` means "not reported", never "assumed fine".
    """
    x: float
    y: float
    width: float
    height: float
    head_pose: Optional[HeadPose] = None
    eyes_open: Optional[bool] = None
    mouth_closed: Optional[bool] = None
    has_glasses: Optional[bool] = None
    quality_score: Optional[float] = None
    confidence: Optional[float] = None

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


# ── Face detection provenance ────────────────────────────────────────────────
class Provenance(str, Enum):
    DETECTED = "detected"
    UNAVAILABLE = "unavailable"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class Detected:
    faces: tuple[FaceBox, ...] = ()
    provenance: Provenance = field(default=Provenance.DETECTED, init=False)


@dataclass(frozen=True)
class Unavailable:
    reason: str
    provenance: Provenance = field(default=Provenance.UNAVAILABLE, init=False)


@dataclass(frozen=True)
class Inconclusive:
    """Backend unavailable, but the image looks like a single portrait."""
    reason: str
    provenance: Provenance = field(default=Provenance.INCONCLUSIVE, init=False)


FaceDetectionResult = Union[Detected, Unavailable, Inconclusive]


# ── Verdicts ─────────────────────────────────────────────────────────────────
class CriterionName(str, Enum):
    HAS_SINGLE_FACE = "hasSingleFace"
    DIMENSIONS = "dimensions"
    RESOLUTION = "resolution"
    FACE_POSITION = "facePosition"
    FACE_COVERAGE = "faceCoverage"
    BACKGROUND = "background"
    HEAD_POSE = "headPose"
    EYES_OPEN = "eyesOpen"
    EXPRESSION = "expression"
    LIGHTING = "lighting"
    ACCESSORIES = "accessories"
    SHARPNESS = "sharpness"


# Evaluation and reporting order
CRITERIA: tuple[CriterionName, ...] = tuple(CriterionName)


class Basis(str, Enum):
    MEASURED = "measured"
    ASSUMED = "assumed"            # default pass, nothing was measured
    UNVERIFIABLE = "unverifiable"  # could not be checked, always failed


@dataclass(frozen=True)
class CriterionVerdict:
    name: CriterionName
    passed: bool
    message: str
    basis: Basis = Basis.MEASURED
    remedy: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"passed": self.passed, "message": self.message, "basis": self.basis.value}


@dataclass(frozen=True)
class ImageInfo:
    width: int
    height: int
    aspect_ratio: float
    approx_size_mm: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "aspectRatio": self.aspect_ratio,
            "approxSizeMM": self.approx_size_mm,
        }


@dataclass(frozen=True)
class ComplianceReport:
    is_compliant: bool
    has_face: bool
    face_count: int
    provenance: Provenance
    verdicts: tuple[CriterionVerdict, ...]
    score: int
    suggestions: tuple[str, ...]
    image_info: ImageInfo

    @property
    def checks(self) -> dict[CriterionName, CriterionVerdict]:
        return {v.name: v for v in self.verdicts}

    def to_dict(self) -> dict[str, Any]:
        return {
            "isCompliant": self.is_compliant,
            "hasFace": self.has_face,
            "faceCount": self.face_count,
            "provenance": self.provenance.value,
            "checks": {v.name.value: v.to_dict() for v in self.verdicts},
            "score": self.score,
            "suggestions": list(self.suggestions),
            "imageInfo": self.image_info.to_dict(),
        }
