# icao_verify/core/scoring.py
from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

from icao_verify import config
from icao_verify.core.types import Basis, CriterionVerdict, ImageInfo, ImageMetadata

COMPLIANT = (
    "Photo meets ICAO photo requirements. Double-check what could not be measured: "
    "plain white background, neutral expression and no shadows."
)
NEEDS_IMPROVEMENT = "Photo is close but needs improvement. Address the issues below."
NOT_COMPLIANT = "Photo does not meet ICAO photo requirements. Address all issues below."
ASPECT_RATIO_HINT = "Use portrait orientation with a width:height ratio close to 35-40 : 40-45"


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def score(verdicts: Sequence[CriterionVerdict], total: int = config.TOTAL_CRITERIA) -> int:
    if len(verdicts) != total:
        raise ValueError(f"expected {total} verdicts, got {len(verdicts)}")
    passed = sum(1 for v in verdicts if v.passed)
    return _round_half_up(passed / total * 100)


def is_compliant(score_: int, has_face: bool, face_count: int) -> bool:
    return score_ >= config.COMPLIANCE_THRESHOLD and has_face and face_count == 1


def leading_suggestion(score_: int, compliant: bool) -> str:
    if compliant:
        return COMPLIANT
    if score_ >= config.COMPLIANCE_THRESHOLD - config.NEAR_MISS_MARGIN:
        return NEEDS_IMPROVEMENT
    return NOT_COMPLIANT


def aspect_ratio_off(meta: ImageMetadata) -> bool:
    if not meta.has_dimensions:
        return False
    return abs(meta.aspect_ratio - config.IDEAL_ASPECT_RATIO) >= config.ASPECT_RATIO_TOLERANCE


def compose_suggestions(
    verdicts: Iterable[CriterionVerdict],
    meta: ImageMetadata,
    lead: str,
) -> tuple[str, ...]:
    """Leading summary, then one remedy per failed criterion in criterion order.

    Verdicts that failed only because they could not be checked add nothing;
    the leading message already explains why.
    """
    out = [lead]
    for v in verdicts:
        if not v.passed and v.basis is not Basis.UNVERIFIABLE and v.remedy:
            out.append(v.remedy)
    if aspect_ratio_off(meta):
        out.append(ASPECT_RATIO_HINT)
    return tuple(out)


def image_info(meta: ImageMetadata, dpi: Optional[int] = None) -> ImageInfo:
    dpi = dpi or config.PRINT_DPI
    size_mm = ""
    if meta.has_dimensions:
        w_mm = _round_half_up(meta.width / dpi * 25.4)
        h_mm = _round_half_up(meta.height / dpi * 25.4)
        size_mm = f"{w_mm}mm × {h_mm}mm"
    return ImageInfo(
        width=meta.width,
        height=meta.height,
        aspect_ratio=meta.aspect_ratio,
        approx_size_mm=size_mm,
    )
