"""
Stage transition policy.

FULL -> COMPRESSED -> SUMMARIZED -> MINIMAL -> DELETED, one step at a time.
Each edge keeps a fixed fraction of the item's *current* size; DELETED keeps
nothing and has no outgoing edge.
"""

import math
from typing import Dict, Optional, Tuple

from smartdecay.decay.errors import InvalidTransition
from smartdecay.models.archive_item import Stage

TRANSITIONS: Dict[Stage, Tuple[Stage, float]] = {
    Stage.FULL: (Stage.COMPRESSED, 0.7),
    Stage.COMPRESSED: (Stage.SUMMARIZED, 0.3),
    Stage.SUMMARIZED: (Stage.MINIMAL, 0.1),
    Stage.MINIMAL: (Stage.DELETED, 0.0),
}


def is_terminal(stage: Stage) -> bool:
    return stage not in TRANSITIONS


def next_stage(stage: Stage, item_id: Optional[str] = None) -> Tuple[Stage, float]:
    """Next stage and the size multiplier of the edge leading to it.

    Raises:
        InvalidTransition: If ``stage`` is DELETED
    """
    try:
        return TRANSITIONS[stage]
    except KeyError:
        raise InvalidTransition(stage, item_id) from None


def transition_size(current_size_kb: int, multiplier: float) -> int:
    """New size in whole KB; never larger than the current size."""
    if multiplier <= 0:
        return 0
    # Absorb binary rounding (e.g. 100 * 0.7 == 69.99999999999999)
    return min(current_size_kb, int(math.floor(current_size_kb * multiplier + 1e-9)))


def advance(stage: Stage, current_size_kb: int, item_id: Optional[str] = None) -> Tuple[Stage, int]:
    """Apply one transition: ``(next_stage, new_size_kb)``."""
    target, multiplier = next_stage(stage, item_id)
    return target, transition_size(current_size_kb, multiplier)
