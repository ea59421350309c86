"""Tests for the local SCRFD backend with an injected model."""

import asyncio

import cv2
import numpy as np
import pytest

from icao_verify import config
from icao_verify.core.detector import ScrfdFaceDetector
from icao_verify.core.errors import ConfigError, DetectionUnavailable
from icao_verify.core.faces import normalize_faces


class MockScrfd:
    """Mimics insightface SCRFD.detect() returning (bboxes, kps)."""

    def __init__(self, bboxes):
        self.bboxes = bboxes
        self.det_thresh = 0.5
        self.nms_thresh = 0.4
        self.kwargs = None

    def detect(self, img, thresh=0.5, max_num=0, metric="default"):
        self.kwargs = {"thresh": thresh, "max_num": max_num, "metric": metric}
        if self.bboxes is None:
            return None, None
        return np.asarray(self.bboxes, dtype=np.float32), np.zeros((len(self.bboxes), 5, 2))


class LegacyScrfd:
    def detect(self, img):
        return np.array([[0, 0, 10, 20, 0.7]], dtype=np.float32), np.zeros((1, 5, 2))


def _png(w=64, h=80):
    ok, buf = cv2.imencode(".png", np.zeros((h, w, 3), dtype=np.uint8))
    assert ok
    return buf.tobytes()


class TestScrfdFaceDetector:
    def test_applies_thresholds(self):
        model = MockScrfd([[10, 20, 110, 170, 0.9]])
        ScrfdFaceDetector(model=model)
        assert model.det_thresh == config.DET_SCORE_THRESH
        assert model.nms_thresh == config.DET_NMS_THRESH

    def test_detect_image(self):
        model = MockScrfd([[10, 20, 110, 170, 0.9]])
        det = ScrfdFaceDetector(model=model)
        boxes = det.detect_image(np.zeros((200, 200, 3), dtype=np.uint8))

        assert model.kwargs["max_num"] == config.MAX_FACES
        assert model.kwargs["thresh"] == config.DET_SCORE_THRESH
        assert len(boxes) == 1
        assert boxes[0]["x2"] == pytest.approx(110)
        assert boxes[0]["score"] == pytest.approx(0.9)

        face = normalize_faces(boxes)[0]
        assert (face.x, face.y, face.width, face.height) == (10, 20, 100, 150)
        assert face.confidence == pytest.approx(0.9)

    @pytest.mark.parametrize("bboxes", [None, []])
    def test_no_faces(self, bboxes):
        det = ScrfdFaceDetector(model=MockScrfd(bboxes))
        assert det.detect_image(np.zeros((50, 50, 3), dtype=np.uint8)) == []

    def test_legacy_signature(self):
        det = ScrfdFaceDetector(model=LegacyScrfd())
        assert len(det.detect_image(np.zeros((50, 50, 3), dtype=np.uint8))) == 1

    def test_async_detect_decodes_bytes(self):
        det = ScrfdFaceDetector(model=MockScrfd([[1, 2, 3, 4, 0.8], [5, 6, 7, 8, 0.6]]))
        boxes = asyncio.run(det.detect(_png()))
        assert len(boxes) == 2

    def test_undecodable_bytes(self):
        det = ScrfdFaceDetector(model=MockScrfd([]))
        with pytest.raises(DetectionUnavailable):
            asyncio.run(det.detect(b"definitely not an image"))

    def test_missing_model_file(self, tmp_path):
        with pytest.raises(ConfigError):
            ScrfdFaceDetector(model_path=tmp_path / "nope.onnx")
