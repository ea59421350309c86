"""Tests for score aggregation and suggestion composition."""

import pytest

from icao_verify import config
from icao_verify.core import scoring
from icao_verify.core.types import (
    CRITERIA,
    Basis,
    CriterionName as C,
    CriterionVerdict,
    ImageMetadata,
)


def verdicts(failed=(), basis=Basis.MEASURED):
    return [
        CriterionVerdict(name, name not in failed, "", basis if name in failed else Basis.MEASURED,
                         f"fix {name.value}" if name in failed else None)
        for name in CRITERIA
    ]


class TestScore:
    @pytest.mark.parametrize("n_failed", range(13))
    def test_formula(self, n_failed):
        vs = verdicts(failed=CRITERIA[:n_failed])
        s = scoring.score(vs)
        assert s == round(100 * (12 - n_failed) / 12)
        assert 0 <= s <= 100

    def test_wrong_number_of_verdicts(self):
        with pytest.raises(ValueError):
            scoring.score(verdicts()[:8])


class TestCompliance:
    def test_requires_exactly_one_face(self):
        assert scoring.is_compliant(100, True, 1)
        assert not scoring.is_compliant(100, True, 2)
        assert not scoring.is_compliant(100, False, 0)

    def test_threshold_is_configurable(self, monkeypatch):
        assert scoring.is_compliant(75, True, 1)
        monkeypatch.setattr(config, "COMPLIANCE_THRESHOLD", 85)
        assert not scoring.is_compliant(83, True, 1)
        assert scoring.is_compliant(92, True, 1)

    @pytest.mark.parametrize("score,compliant,expected", [
        (100, True, scoring.COMPLIANT),
        (67, False, scoring.NEEDS_IMPROVEMENT),
        (60, False, scoring.NEEDS_IMPROVEMENT),
        (58, False, scoring.NOT_COMPLIANT),
        (0, False, scoring.NOT_COMPLIANT),
    ])
    def test_leading_banding(self, score, compliant, expected):
        assert scoring.leading_suggestion(score, compliant) == expected


class TestSuggestions:
    META = ImageMetadata(width=450, height=500, byte_size=60_000)

    def test_failed_criteria_in_order(self):
        vs = verdicts(failed=(C.SHARPNESS, C.FACE_POSITION, C.DIMENSIONS))
        out = scoring.compose_suggestions(vs, self.META, "lead")
        assert out == ("lead", "fix dimensions", "fix facePosition", "fix sharpness")

    def test_unverifiable_adds_nothing(self):
        vs = verdicts(failed=(C.LIGHTING,), basis=Basis.UNVERIFIABLE)
        assert scoring.compose_suggestions(vs, self.META, "lead") == ("lead",)

    def test_aspect_ratio_hint(self):
        wide = ImageMetadata(width=800, height=500, byte_size=60_000)
        out = scoring.compose_suggestions(verdicts(), wide, "lead")
        assert out == ("lead", scoring.ASPECT_RATIO_HINT)

    def test_no_aspect_hint_without_dimensions(self):
        meta = ImageMetadata(width=0, height=0, byte_size=1)
        assert scoring.compose_suggestions(verdicts(), meta, "lead") == ("lead",)


class TestImageInfo:
    def test_print_size(self):
        info = scoring.image_info(ImageMetadata(width=413, height=531, byte_size=1))
        assert info.approx_size_mm == "35mm × 45mm"
        assert info.aspect_ratio == pytest.approx(413 / 531)
        assert info.to_dict() == {
            "width": 413,
            "height": 531,
            "aspectRatio": pytest.approx(413 / 531),
            "approxSizeMM": "35mm × 45mm",
        }

    def test_unknown_size(self):
        info = scoring.image_info(ImageMetadata(width=0, height=0, byte_size=1))
        assert info.approx_size_mm == ""
        assert info.aspect_ratio == 0.0
