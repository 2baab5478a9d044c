"""
Tests for the valuation and summarization collaborator contracts.
"""
import random

import pytest
from pydantic import ValidationError

from smartdecay.integration.summarization import TruncatingSummarizer, compress_words
from smartdecay.integration.valuation import HeuristicValuationService, ValuationResult
from smartdecay.models.archive_item import Stage


class TestValuationResult:

    def test_scores_are_bounded(self):
        with pytest.raises(ValidationError):
            ValuationResult(relevance=101, uniqueness=50, reconstructability=50)
        with pytest.raises(ValidationError):
            ValuationResult(relevance=50, uniqueness=-1, reconstructability=50)

    def test_optional_fields(self):
        result = ValuationResult(relevance=1, uniqueness=2, reconstructability=3)
        assert result.reasoning == ""
        assert result.summary is None


class TestHeuristicValuationService:

    def test_same_seed_same_scores(self):
        a = HeuristicValuationService(random.Random(4)).analyze("T", None, "note")
        b = HeuristicValuationService(random.Random(4)).analyze("T", None, "note")
        assert a == b

    def test_item_type_is_case_insensitive(self):
        result = HeuristicValuationService(random.Random(0)).analyze("T", None, "ARTICLE")
        assert result.reconstructability >= 60


class TestCompressWords:

    @pytest.mark.parametrize("text,limit,expected", [
        ("one two three", 5, "one two three"),
        ("one two three", 2, "one two..."),
        ("one two three", 0, ""),
        ("", 3, ""),
    ])
    def test_compress(self, text, limit, expected):
        assert compress_words(text, limit) == expected


class TestTruncatingSummarizer:

    def test_summary(self):
        degraded = TruncatingSummarizer(summary_words=3).degrade("Title", "a b c d e", Stage.SUMMARIZED)

        assert degraded.summary == "a b c..."
        assert degraded.minimal_json is None

    def test_minimal_shape(self):
        degraded = TruncatingSummarizer(essence_chars=5, fact_chars=7).degrade(
            "Tidal energy in the North Sea basin", "Turbines produce power.", Stage.MINIMAL
        )

        assert degraded.minimal_json == {
            "topics": [],
            "key_facts": ["Turbine"],
            "keywords": ["Tidal", "energy", "in", "the", "North"],
            "one_sentence_essence": "Turbi",
        }

    def test_falls_back_to_title(self):
        degraded = TruncatingSummarizer().degrade("Only a title", None, Stage.SUMMARIZED)
        assert degraded.summary == "Only a title"

    @pytest.mark.parametrize("stage", [Stage.FULL, Stage.COMPRESSED, Stage.DELETED])
    def test_other_stages_rejected(self, stage):
        with pytest.raises(ValueError):
            TruncatingSummarizer().degrade("T", "c", stage)
