"""
Summarization service contract.

Invoked by the caller after the engine decided that an item moves to
SUMMARIZED or MINIMAL; the engine itself only changes stage and size.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from smartdecay.models.archive_item import Stage

DEGRADABLE_STAGES = (Stage.SUMMARIZED, Stage.MINIMAL)


@dataclass(frozen=True)
class DegradedContent:
    summary: Optional[str] = None
    minimal_json: Optional[Dict[str, Any]] = None


def compress_words(text: str, max_words: int) -> str:
    """First ``max_words`` words of ``text``, with an ellipsis when cut."""
    if max_words <= 0:
        return ""

    words = text.split()
    if len(words) <= max_words:
        return text

    return " ".join(words[:max_words]) + "..."


class SummarizationService(ABC):

    @abstractmethod
    def degrade(self, title: str, content: Optional[str], target_stage: Stage) -> DegradedContent:
        """Produce the reduced representation for ``target_stage`` (SUMMARIZED or MINIMAL)."""
        raise NotImplementedError


class TruncatingSummarizer(SummarizationService):
    """Extractive fallback: leading words for summaries, title keywords for metadata."""

    def __init__(self, summary_words: int = 60, essence_chars: int = 150, fact_chars: int = 200,
                 max_keywords: int = 5):
        self.summary_words = summary_words
        self.essence_chars = essence_chars
        self.fact_chars = fact_chars
        self.max_keywords = max_keywords

    def degrade(self, title: str, content: Optional[str], target_stage: Stage) -> DegradedContent:
        if target_stage not in DEGRADABLE_STAGES:
            raise ValueError(f"Content is only degraded for SUMMARIZED or MINIMAL, not {target_stage.value}")
        text = content or title or ""
        if target_stage is Stage.SUMMARIZED:
            return DegradedContent(summary=compress_words(text, self.summary_words))
        return DegradedContent(minimal_json={
            "topics": [],
            "key_facts": [text[:self.fact_chars]] if text else [],
            "keywords": (title or "").split()[:self.max_keywords],
            "one_sentence_essence": text[:self.essence_chars],
        })
