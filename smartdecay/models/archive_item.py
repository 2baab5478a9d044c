from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from smartdecay.models.base import DecayBaseModel, coerce_enum, new_id
from smartdecay.utils import now

NEUTRAL_SCORE = 50.0


class Stage(str, Enum):
    """Degradation levels, in the only order an item may pass through them."""
    FULL = "FULL"
    COMPRESSED = "COMPRESSED"
    SUMMARIZED = "SUMMARIZED"
    MINIMAL = "MINIMAL"
    DELETED = "DELETED"

    @property
    def rank(self) -> int:
        return STAGE_ORDER.index(self)

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def __lt__(self, other):
        if not isinstance(other, Stage):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Stage):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Stage):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Stage):
            return NotImplemented
        return self.rank >= other.rank


STAGE_ORDER: List[Stage] = [Stage.FULL, Stage.COMPRESSED, Stage.SUMMARIZED, Stage.MINIMAL, Stage.DELETED]


@dataclass
class ArchiveItem(DecayBaseModel):
    """
    An archived unit of content.

    ``size_kb`` is the size at ingestion and never changes; ``current_size_kb``
    shrinks with every stage transition and is 0 once the item is DELETED.
    The ``val_*`` scores come from an external valuation service and
    ``semantic_score`` is derived from them with the owner's weights.
    """
    __collection__: ClassVar[str] = "archive_items"
    __primary_key__: ClassVar[str] = "item_id"

    item_id: str = field(default_factory=new_id)
    title: str = ""
    content: Optional[str] = None
    item_type: str = "document"
    tags: List[str] = field(default_factory=list)
    source_url: Optional[str] = None

    stage: Stage = Stage.FULL
    size_kb: int = 0
    current_size_kb: Optional[int] = None

    val_relevance: float = NEUTRAL_SCORE
    val_uniqueness: float = NEUTRAL_SCORE
    val_reconstructability: float = NEUTRAL_SCORE
    semantic_score: float = NEUTRAL_SCORE

    # Derived content, filled by the summarization collaborator
    compressed_content: Optional[str] = None
    summary: Optional[str] = None
    minimal_json: Optional[Dict[str, Any]] = None

    ingested_at: datetime = field(default_factory=now)
    updated_at: datetime = field(default_factory=now)

    def __post_init__(self):
        self.stage = coerce_enum(Stage, self.stage)
        if self.current_size_kb is None:
            self.current_size_kb = self.size_kb

    @property
    def is_deleted(self) -> bool:
        return self.stage is Stage.DELETED

    @property
    def is_unscored(self) -> bool:
        return self.semantic_score == NEUTRAL_SCORE

    @property
    def display_content(self) -> Optional[str]:
        """What a reader can still see of the item at its current stage."""
        if self.stage is Stage.SUMMARIZED and self.summary:
            return self.summary
        if self.stage is Stage.MINIMAL and self.minimal_json:
            return self.minimal_json.get("one_sentence_essence")
        if self.stage is Stage.DELETED:
            return None
        return self.content
