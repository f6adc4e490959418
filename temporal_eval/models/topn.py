from __future__ import annotations

import heapq
import math
from typing import Callable, Dict, List, Optional


def top_n(
    scores: Dict[int, float],
    n: int,
    threshold: Optional[Callable[[float], bool]] = None,
) -> List[int]:
    """
    Keep the n highest-scoring items, best first.

    - entries failing `threshold` (when given) are dropped
    - NaN scores are dropped
    - ties are broken by ascending item id
    """
    if n <= 0:
        return []

    kept = [
        (score, item)
        for item, score in scores.items()
        if not math.isnan(score) and (threshold is None or threshold(score))
    ]
    best = heapq.nsmallest(n, kept, key=lambda e: (-e[0], e[1]))
    return [item for _, item in best]
