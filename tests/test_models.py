"""Tests for result records."""
import dataclasses

import pytest

from nsfw_sieve.core.models import (
    BatchItem,
    BatchResult,
    ClassificationResult,
    FramesResult,
    UnitFailure,
)
from nsfw_sieve.core.errors import InferenceError


def scores(**overrides):
    base = {"Hentai": 0.0, "Neutral": 0.0, "Pornography": 0.0, "Sexy": 0.0}
    base.update(overrides)
    return base


class TestClassificationResult:

    def test_predicts_highest_score(self):
        result = ClassificationResult.from_scores(scores(Neutral=0.7, Sexy=0.3))
        assert result.predicted_label == "Neutral"
        assert result.is_nsfw is False

    @pytest.mark.parametrize("label", ["Hentai", "Pornography", "Sexy"])
    def test_explicit_labels_are_nsfw(self, label):
        result = ClassificationResult.from_scores(scores(**{label: 0.8, "Neutral": 0.2}))
        assert result.predicted_label == label
        assert result.is_nsfw is True

    def test_tie_prefers_priority_order(self):
        result = ClassificationResult.from_scores(scores(Neutral=0.5, Pornography=0.5))
        assert result.predicted_label == "Pornography"

    def test_tie_between_sexy_and_hentai(self):
        result = ClassificationResult.from_scores(scores(Sexy=0.5, Hentai=0.5))
        assert result.predicted_label == "Hentai"

    def test_tie_ignores_mapping_order(self):
        a = ClassificationResult.from_scores({"Sexy": 0.5, "Neutral": 0.5, "Hentai": 0.0, "Pornography": 0.0})
        b = ClassificationResult.from_scores({"Neutral": 0.5, "Sexy": 0.5, "Pornography": 0.0, "Hentai": 0.0})
        assert a.predicted_label == b.predicted_label == "Sexy"

    def test_custom_nsfw_subset(self):
        result = ClassificationResult.from_scores(
            scores(Sexy=0.9, Neutral=0.1), nsfw_categories=["Pornography", "Hentai"]
        )
        assert result.predicted_label == "Sexy"
        assert result.is_nsfw is False

    def test_missing_label_rejected(self):
        with pytest.raises(ValueError, match="missing"):
            ClassificationResult.from_scores({"Neutral": 1.0})

    def test_unknown_label_rejected(self):
        with pytest.raises(ValueError, match="unknown"):
            ClassificationResult.from_scores(scores(Neutral=1.0, Gore=0.0))

    def test_out_of_range_score_rejected(self):
        with pytest.raises(ValueError):
            ClassificationResult.from_scores(scores(Neutral=1.5))

    def test_immutable(self):
        result = ClassificationResult.from_scores(scores(Neutral=1.0))
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.is_nsfw = True
        with pytest.raises(TypeError):
            result.scores["Neutral"] = 0.0

    def test_equal_for_equal_scores(self):
        a = ClassificationResult.from_scores(scores(Neutral=0.6, Sexy=0.4))
        b = ClassificationResult.from_scores(scores(Neutral=0.6, Sexy=0.4))
        assert a == b

    def test_to_dict(self):
        d = ClassificationResult.from_scores(scores(Hentai=1.0)).to_dict()
        assert d["predicted_label"] == "Hentai"
        assert d["is_nsfw"] is True
        assert set(d["scores"]) == {"Hentai", "Neutral", "Pornography", "Sexy"}


class TestFramesResult:

    @pytest.fixture
    def neutral(self):
        return ClassificationResult.from_scores(scores(Neutral=1.0))

    @pytest.fixture
    def explicit(self):
        return ClassificationResult.from_scores(scores(Pornography=1.0))

    def test_empty(self):
        result = FramesResult()
        assert result.frame_count == 0
        assert result.is_nsfw is False
        assert dict(result.frames) == {}

    def test_frames_sorted_by_index(self, neutral):
        result = FramesResult(frames={9: neutral, 0: neutral, 3: neutral})
        assert list(result.frames) == [0, 3, 9]
        assert result.frame_count == 3

    def test_is_nsfw_any_frame(self, neutral, explicit):
        assert FramesResult(frames={0: neutral, 4: explicit}).is_nsfw is True
        assert FramesResult(frames={0: neutral, 4: neutral}).is_nsfw is False

    def test_failures_do_not_count_as_frames(self, neutral):
        failure = UnitFailure(key=2, error_type="InferenceError", message="boom")
        result = FramesResult(frames={0: neutral}, failures={2: failure})
        assert result.frame_count == 1
        assert list(result.failures) == [2]

    def test_to_dict(self, explicit):
        d = FramesResult(frames={1: explicit}).to_dict()
        assert d["frame_count"] == 1
        assert d["is_nsfw"] is True
        assert d["failures"] == []


class TestBatchResult:

    def test_iterates_items(self):
        item = BatchItem(id="a.jpg", result=ClassificationResult.from_scores(scores(Neutral=1.0)))
        batch = BatchResult(items=[item])
        assert list(batch) == [item]
        assert len(batch) == 1
        assert batch.get("a.jpg") is item
        assert batch.get("b.jpg") is None

    def test_failed_ids(self):
        failure = UnitFailure.from_exception("b.jpg", InferenceError("bad"))
        batch = BatchResult(failures=[failure])
        assert batch.failed_ids == ["b.jpg"]
        assert failure.error_type == "InferenceError"
        assert failure.message == "bad"
