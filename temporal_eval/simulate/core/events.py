from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


# -------------------------
# Rating
# -------------------------
@dataclass(frozen=True)
class Rating:
    """
    One historical user-item interaction.

    timestamp: epoch seconds, or None when unknown / unordered.
    Untimed ratings are scored but never move the window.
    """
    user: int
    item: int
    value: float
    timestamp: Optional[int] = None

    @property
    def has_timestamp(self) -> bool:
        return self.timestamp is not None
