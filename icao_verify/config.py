# icao_verify/config.py
from __future__ import annotations
from pathlib import Path
import os

from icao_verify.core.errors import ConfigError

# ── Paths ─────────────────────────────────────────────────────────────────────
BASE_DIR: Path = Path(__file__).resolve().parent
# Local models live in project_root/models
MODELS_DIR: Path = BASE_DIR.parent / "models"

# ── Face detection backend ───────────────────────────────────────────────────
# "api_ninjas" calls the hosted detector, "scrfd" runs the local ONNX model.
FACE_BACKEND: str = os.getenv("FACE_BACKEND", "api_ninjas").strip().lower()
FACE_BACKENDS: tuple[str, ...] = ("api_ninjas", "scrfd")

API_NINJAS_URL: str = os.getenv("API_NINJAS_URL", "https://api.api-ninjas.com/v1/facedetect")
# No default: a missing key fails startup (see require_api_key)
API_NINJAS_KEY: str | None = os.getenv("API_NINJAS_KEY") or None

# If you want to point to an absolute file, set:
#   export SCRFD_MODEL=/abs/path/to/scrfd_2.5g_bnkps.onnx
SCRFD_MODEL: Path = Path(
    os.getenv("SCRFD_MODEL", str(MODELS_DIR / "scrfd_2.5g_bnkps.onnx"))
)
# ONNXRuntime providers (put "CUDAExecutionProvider" first if you add CUDA)
ORT_PROVIDERS: list[str] = ["CPUExecutionProvider"]
DET_SCORE_THRESH: float = 0.45
DET_NMS_THRESH: float = 0.45
MAX_FACES: int = 10

# ── I/O limits ───────────────────────────────────────────────────────────────
IMAGE_FETCH_TIMEOUT_S: float = float(os.getenv("IMAGE_FETCH_TIMEOUT_S", "8"))
DETECTION_TIMEOUT_S: float = float(os.getenv("DETECTION_TIMEOUT_S", "8"))
MAX_IMAGE_BYTES: int = 15 * 1024 * 1024
DISCONNECT_POLL_S: float = 0.5

# ── Rules ────────────────────────────────────────────────────────────────────
MIN_WIDTH_PX: int = 200
MIN_HEIGHT_PX: int = 250
# Advisory only: 35-40mm × 40-45mm at 300 DPI
TARGET_WIDTH_PX: tuple[int, int] = (400, 500)
TARGET_HEIGHT_PX: tuple[int, int] = (450, 550)
MIN_PIXELS: int = 50_000

POSITION_TOLERANCE: float = 0.30          # fraction of width/height from center
COVERAGE_RANGE: tuple[float, float] = (0.30, 0.95)

MAX_HEAD_ANGLE_DEG: float = 10.0
EYES_OPEN_MIN_PROB: float = 0.5
MOUTH_CLOSED_MIN_PROB: float = 0.5
LIGHTING_MIN_QUALITY: float = 0.5
SHARPNESS_MIN_BYTES: int = 30_000         # byte size proxy, not blur detection

# ── Portrait heuristic (used only when detection is unavailable) ─────────────
PORTRAIT_ASPECT_RANGE: tuple[float, float] = (1.0, 2.5)   # height / width
PORTRAIT_MIN_WIDTH_PX: int = 200
PORTRAIT_MIN_HEIGHT_PX: int = 300
PORTRAIT_MIN_BYTES: int = 20_000

# ── Scoring ──────────────────────────────────────────────────────────────────
TOTAL_CRITERIA: int = 12
COMPLIANCE_THRESHOLD: int = int(os.getenv("ICAO_COMPLIANCE_THRESHOLD", "75"))
NEAR_MISS_MARGIN: int = 15

# ── Print geometry ───────────────────────────────────────────────────────────
PRINT_DPI: int = 300
IDEAL_ASPECT_RATIO: float = 37.5 / 42.5   # width / height
ASPECT_RATIO_TOLERANCE: float = 0.15


def require_api_key() -> str:
    """Return the detector API key, failing loudly when it is not configured."""
    if not API_NINJAS_KEY:
        raise ConfigError(
            "API_NINJAS_KEY is not set. Export it or switch FACE_BACKEND=scrfd."
        )
    return API_NINJAS_KEY
