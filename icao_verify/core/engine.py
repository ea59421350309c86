# icao_verify/core/engine.py
"""Compliance rule engine.

``evaluate`` is a pure function of (ImageMetadata, FaceDetectionResult): the
same inputs always give the same report.
"""
from __future__ import annotations

import logging

from icao_verify.core import rules, scoring
from icao_verify.core.types import (
    CRITERIA,
    ComplianceReport,
    CriterionName as C,
    CriterionVerdict,
    Detected,
    FaceBox,
    FaceDetectionResult,
    ImageMetadata,
    Inconclusive,
    Unavailable,
)

log = logging.getLogger(__name__)

# Stand-in when a face is assumed but not located: no attributes, so every
# advisory rule falls back to its assumed pass.
_UNLOCATED_FACE = FaceBox(x=0.0, y=0.0, width=0.0, height=0.0)

NO_FACE_LEAD = "No face detected: this image cannot be used for an ID photo"
DETECTION_DOWN_LEAD = (
    "Face detection is temporarily unavailable and no face could be confirmed: "
    "try again later or upload a clear frontal portrait"
)
MULTIPLE_FACES_LEAD = "{n} faces detected: this image cannot be used for an ID photo"
UNLOCATED = "Face detection was unavailable; {what} could not be precisely verified"


def _resolve_faces(detection: FaceDetectionResult) -> tuple[tuple[FaceBox, ...], int, bool]:
    """Return (located faces, face count, face assumed without a box)."""
    if isinstance(detection, Detected):
        return detection.faces, len(detection.faces), False
    if isinstance(detection, Inconclusive):
        return (), 1, True
    if isinstance(detection, Unavailable):
        return (), 0, False
    raise TypeError(f"unsupported face detection result: {detection!r}")


def _advisory(face: FaceBox) -> list[CriterionVerdict]:
    return [rules.background()] + [rule(face) for _, rule in rules.ADVISORY_RULES]


def evaluate(meta: ImageMetadata, detection: FaceDetectionResult) -> ComplianceReport:
    faces, face_count, face_assumed = _resolve_faces(detection)
    unavailable = isinstance(detection, Unavailable)

    verdicts: list[CriterionVerdict] = [
        rules.has_single_face(face_count, detection_unavailable=unavailable),
        rules.dimensions(meta),
        rules.resolution(meta),
    ]
    lead = None

    if face_count == 0:
        verdicts += [rules.unverifiable(name, rules.NO_FACE) for name in CRITERIA[3:]]
        lead = DETECTION_DOWN_LEAD if unavailable else NO_FACE_LEAD
    elif face_count > 1:
        verdicts += [
            rules.unverifiable(C.FACE_POSITION, rules.MULTIPLE_FACES),
            rules.unverifiable(C.FACE_COVERAGE, rules.MULTIPLE_FACES),
            *_advisory(_UNLOCATED_FACE),
            rules.sharpness(meta),
        ]
        lead = MULTIPLE_FACES_LEAD.format(n=face_count)
    elif face_assumed:
        verdicts[0] = rules.assumed(
            C.HAS_SINGLE_FACE, "Face detection was unavailable; the image looks like a single portrait"
        )
        verdicts += [
            rules.assumed(C.FACE_POSITION, UNLOCATED.format(what="face position")),
            rules.assumed(C.FACE_COVERAGE, UNLOCATED.format(what="face size")),
            *_advisory(_UNLOCATED_FACE),
            rules.sharpness(meta),
        ]
    else:
        face = faces[0]
        verdicts += [
            rules.face_position(face, meta),
            rules.face_coverage(face, meta),
            *_advisory(face),
            rules.sharpness(meta),
        ]

    ordered = tuple(verdicts)
    if tuple(v.name for v in ordered) != CRITERIA:
        raise RuntimeError(f"criteria out of order: {[v.name.value for v in ordered]}")

    has_face = face_count > 0
    score = scoring.score(ordered)
    compliant = scoring.is_compliant(score, has_face, face_count)
    if lead is None:
        lead = scoring.leading_suggestion(score, compliant)

    report = ComplianceReport(
        is_compliant=compliant,
        has_face=has_face,
        face_count=face_count,
        provenance=detection.provenance,
        verdicts=ordered,
        score=score,
        suggestions=scoring.compose_suggestions(ordered, meta, lead),
        image_info=scoring.image_info(meta),
    )
    log.debug("compliance_evaluated", extra={"score": score, "compliant": compliant,
                                             "faces": face_count,
                                             "provenance": detection.provenance.value})
    return report
