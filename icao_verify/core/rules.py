# icao_verify/core/rules.py
"""One function per compliance criterion.

Each rule returns a CriterionVerdict. Rules read their thresholds from
``icao_verify.config`` at call time.

The advisory criteria (background, head pose, eyes, expression, lighting,
accessories) only measure something when the detector reported the matching
attribute. Otherwise they pass with ``Basis.ASSUMED``: the pass means
"not checked", and the report says so.
"""
from __future__ import annotations

from icao_verify import config
from icao_verify.core.types import (
    Basis,
    CriterionName as C,
    CriterionVerdict,
    FaceBox,
    ImageMetadata,
)

REMEDIES: dict[C, str] = {
    C.HAS_SINGLE_FACE: "Upload a photo showing a clear frontal view of exactly one person",
    C.DIMENSIONS: (
        "Resize the image to at least {min_w}×{min_h} pixels; "
        "{tw0}-{tw1} × {th0}-{th1} pixels (35-40mm × 40-45mm at 300 DPI) is recommended"
    ),
    C.RESOLUTION: "Use a higher resolution image (at least {min_px:,} pixels in total)",
    C.FACE_POSITION: "Center your face in the frame; avoid positioning too far left, right, up or down",
    C.BACKGROUND: "Use a plain white background with no shadows or patterns",
    C.HEAD_POSE: "Keep your head straight and face the camera directly, without tilting or turning",
    C.EYES_OPEN: "Keep both eyes fully open and looking at the camera",
    C.EXPRESSION: "Keep a neutral expression with your mouth closed",
    C.LIGHTING: "Use even lighting with no shadows on the face or background",
    C.ACCESSORIES: "Remove glasses, hats and anything else covering the face",
    C.SHARPNESS: "Use a stable camera and proper focus so the photo is sharp, not blurred",
}

COVERAGE_TOO_SMALL = "Move closer to the camera or crop tighter so the face fills more of the frame"
COVERAGE_TOO_LARGE = "Move back from the camera or crop wider so the head and top of the shoulders are visible"

NO_FACE = "Cannot verify - no face detected"
MULTIPLE_FACES = "Cannot verify with multiple faces"


def unverifiable(name: C, reason: str) -> CriterionVerdict:
    return CriterionVerdict(name, False, reason, Basis.UNVERIFIABLE)


def assumed(name: C, message: str) -> CriterionVerdict:
    return CriterionVerdict(name, True, message, Basis.ASSUMED)


def _measured(name: C, passed: bool, ok: str, bad: str, remedy: str | None = None) -> CriterionVerdict:
    return CriterionVerdict(
        name, passed, ok if passed else bad, Basis.MEASURED,
        None if passed else (remedy or REMEDIES[name]),
    )


# ── Face presence ────────────────────────────────────────────────────────────
def has_single_face(face_count: int, detection_unavailable: bool = False) -> CriterionVerdict:
    if face_count == 1:
        return _measured(C.HAS_SINGLE_FACE, True, "Single face detected", "")
    if face_count == 0:
        bad = ("No face could be verified: face detection was unavailable"
               if detection_unavailable else "No human face detected in the image")
        return _measured(C.HAS_SINGLE_FACE, False, "", bad)
    return _measured(
        C.HAS_SINGLE_FACE, False, "",
        f"Multiple faces detected ({face_count}). Only one person is allowed",
        "Make sure only one person is in the photo; remove other people from the frame",
    )


# ── Metadata-only criteria ───────────────────────────────────────────────────
def dimensions(meta: ImageMetadata) -> CriterionVerdict:
    w, h = meta.width, meta.height
    (tw0, tw1), (th0, th1) = config.TARGET_WIDTH_PX, config.TARGET_HEIGHT_PX
    passed = w >= config.MIN_WIDTH_PX and h >= config.MIN_HEIGHT_PX
    in_target = tw0 <= w <= tw1 and th0 <= h <= th1

    if not meta.has_dimensions:
        bad = "Image dimensions could not be read (unsupported or damaged PNG/JPEG header)"
    else:
        bad = (f"Image {w}×{h}px is below the {config.MIN_WIDTH_PX}×{config.MIN_HEIGHT_PX}px minimum")
    ok = f"Image dimensions {w}×{h}px meet the minimum size"
    if passed and in_target:
        ok = f"Image dimensions {w}×{h}px are within the recommended range"
    elif passed:
        ok += (f"; {tw0}-{tw1} × {th0}-{th1}px (35-40mm × 40-45mm at "
               f"{config.PRINT_DPI} DPI) is recommended")

    remedy = REMEDIES[C.DIMENSIONS].format(
        min_w=config.MIN_WIDTH_PX, min_h=config.MIN_HEIGHT_PX, tw0=tw0, tw1=tw1, th0=th0, th1=th1
    )
    return _measured(C.DIMENSIONS, passed, ok, bad, remedy)


def resolution(meta: ImageMetadata) -> CriterionVerdict:
    pixels = meta.width * meta.height
    passed = pixels >= config.MIN_PIXELS
    return _measured(
        C.RESOLUTION, passed,
        f"Image resolution ({pixels:,} pixels) is sufficient for printing",
        f"Image resolution too low ({pixels:,} pixels, need at least {config.MIN_PIXELS:,})",
        REMEDIES[C.RESOLUTION].format(min_px=config.MIN_PIXELS),
    )


def sharpness(meta: ImageMetadata) -> CriterionVerdict:
    # File size stands in for focus; there is no blur measurement.
    passed = meta.byte_size > config.SHARPNESS_MIN_BYTES
    return _measured(
        C.SHARPNESS, passed,
        "Image file carries enough detail to be sharp",
        f"Image file is only {meta.byte_size:,} bytes and is likely blurred or over-compressed",
    )


# ── Face geometry ────────────────────────────────────────────────────────────
def face_position(face: FaceBox, meta: ImageMetadata) -> CriterionVerdict:
    if not meta.has_dimensions:
        return _measured(C.FACE_POSITION, False, "",
                         "Face position cannot be checked without image dimensions")
    dx = abs(face.center_x - meta.width / 2) / meta.width
    dy = abs(face.center_y - meta.height / 2) / meta.height
    tol = config.POSITION_TOLERANCE
    return _measured(
        C.FACE_POSITION, dx <= tol and dy <= tol,
        "Face is centered in the frame",
        f"Face is off-center ({dx:.0%} horizontally, {dy:.0%} vertically; max {tol:.0%})",
    )


def face_coverage(face: FaceBox, meta: ImageMetadata) -> CriterionVerdict:
    lo, hi = config.COVERAGE_RANGE
    if meta.height <= 0:
        return _measured(C.FACE_COVERAGE, False, "",
                         "Face size cannot be checked without image dimensions", COVERAGE_TOO_SMALL)
    ratio = face.height / meta.height
    target = f"{lo:.0%}-{hi:.0%}"
    return _measured(
        C.FACE_COVERAGE, lo <= ratio <= hi,
        f"Face occupies {ratio:.0%} of the image height (target {target})",
        f"Face occupies {ratio:.0%} of the image height; should be {target}",
        COVERAGE_TOO_SMALL if ratio < lo else COVERAGE_TOO_LARGE,
    )


# ── Advisory criteria ────────────────────────────────────────────────────────
def background() -> CriterionVerdict:
    return assumed(C.BACKGROUND, "Not measured: make sure the background is plain white")


def head_pose(face: FaceBox) -> CriterionVerdict:
    pose = face.head_pose
    if pose is None:
        return assumed(C.HEAD_POSE, "Not measured: keep the head straight and facing the camera")
    limit = config.MAX_HEAD_ANGLE_DEG
    worst = max(abs(pose.yaw), abs(pose.pitch), abs(pose.roll))
    return _measured(
        C.HEAD_POSE, worst < limit,
        "Head is straight and facing the camera",
        f"Head is turned or tilted (yaw {pose.yaw:.0f}°, pitch {pose.pitch:.0f}°, "
        f"roll {pose.roll:.0f}°; max {limit:.0f}°)",
    )


def eyes_open(face: FaceBox) -> CriterionVerdict:
    if face.eyes_open is None:
        return assumed(C.EYES_OPEN, "Not measured: both eyes should be open and visible")
    return _measured(C.EYES_OPEN, face.eyes_open,
                     "Both eyes are open", "Eyes appear closed or obscured")


def expression(face: FaceBox) -> CriterionVerdict:
    if face.mouth_closed is None:
        return assumed(C.EXPRESSION, "Not measured: keep a neutral expression, mouth closed")
    return _measured(C.EXPRESSION, face.mouth_closed,
                     "Neutral expression with mouth closed", "Mouth appears open")


def lighting(face: FaceBox) -> CriterionVerdict:
    if face.quality_score is None:
        return assumed(C.LIGHTING, "Not measured: lighting should be even with no shadows")
    return _measured(
        C.LIGHTING, face.quality_score >= config.LIGHTING_MIN_QUALITY,
        "Face is evenly lit",
        f"Face quality score {face.quality_score:.2f} suggests poor or uneven lighting",
    )


def accessories(face: FaceBox) -> CriterionVerdict:
    if face.has_glasses is None:
        return assumed(C.ACCESSORIES, "Not measured: remove hats, sunglasses and face coverings")
    return _measured(C.ACCESSORIES, not face.has_glasses,
                     "No glasses detected", "Glasses detected")


ADVISORY_RULES = (
    (C.HEAD_POSE, head_pose),
    (C.EYES_OPEN, eyes_open),
    (C.EXPRESSION, expression),
    (C.LIGHTING, lighting),
    (C.ACCESSORIES, accessories),
)
