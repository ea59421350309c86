# icao_verify/core/detector.py
import asyncio
import inspect
import logging
from pathlib import Path

import cv2
import numpy as np

from icao_verify import config
from icao_verify.core.errors import ConfigError, DetectionUnavailable

log = logging.getLogger(__name__)


class ScrfdFaceDetector:
    """Local SCRFD detector (handles different insightface signatures).

    Produces the same kind of raw payload as the hosted backend: a list of
    ``{x1, y1, x2, y2, score}`` dicts.
    """

    def __init__(self, model=None, model_path: Path | None = None):
        if model is None:
            model = self._load(Path(model_path or config.SCRFD_MODEL))
        self.detector = model

        # Some versions expose .det_thresh / .nms_thresh attributes.
        if hasattr(self.detector, "det_thresh"):
            self.detector.det_thresh = config.DET_SCORE_THRESH
        if hasattr(self.detector, "nms_thresh"):
            self.detector.nms_thresh = config.DET_NMS_THRESH

        # Cache detect() signature to decide which kwargs are allowed
        self._detect_sig = inspect.signature(self.detector.detect)

    @staticmethod
    def _load(model_path: Path):
        if not model_path.exists():
            raise ConfigError(
                f"SCRFD model not found at {model_path.resolve()}. "
                "Place 'scrfd_2.5g_bnkps.onnx' in models/ or set SCRFD_MODEL env."
            )
        # Optional dependency: pip install icao-verify[local]
        from insightface.model_zoo.scrfd import SCRFD

        detector = SCRFD(str(model_path))
        detector.prepare(ctx_id=-1, input_size=(640, 640))
        log.info("SCRFD initialized", extra={"model": str(model_path.resolve())})
        return detector

    def _detect_kwargs(self):
        """Return a dict of kwargs compatible with this SCRFD.detect()."""
        params = self._detect_sig.parameters
        kw = {}
        if "max_num" in params:
            kw["max_num"] = config.MAX_FACES
        # Newer insightface accepts 'thresh' and sometimes 'metric'
        if "thresh" in params:
            kw["thresh"] = config.DET_SCORE_THRESH
        if "metric" in params:
            kw["metric"] = "default"
        return kw

    def detect_image(self, img_bgr: np.ndarray) -> list[dict]:
        try:
            bboxes, _ = self.detector.detect(img_bgr, **self._detect_kwargs())
        except TypeError:
            # Fallback: call with no kwargs
            bboxes, _ = self.detector.detect(img_bgr)

        if bboxes is None or len(bboxes) == 0:
            return []
        bboxes = np.asarray(bboxes, dtype=np.float32)
        return [
            {"x1": float(b[0]), "y1": float(b[1]), "x2": float(b[2]), "y2": float(b[3]),
             "score": float(b[4]) if b.shape[0] > 4 else None}
            for b in bboxes
        ]

    def _decode_and_detect(self, image: bytes) -> list[dict]:
        arr = np.frombuffer(image, np.uint8)
        img = cv2.imdecode(arr, cv2.IMREAD_COLOR)
        if img is None:
            raise DetectionUnavailable("image could not be decoded for local face detection")
        return self.detect_image(img)

    async def detect(self, image: bytes) -> list[dict]:
        # SCRFD inference is blocking; keep it off the event loop
        return await asyncio.to_thread(self._decode_and_detect, image)
