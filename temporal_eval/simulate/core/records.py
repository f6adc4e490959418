from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


# -------------------------
# Tabular row
# -------------------------
@dataclass(frozen=True)
class OutputRecord:
    user: int
    item: int
    rating: float
    timestamp: Optional[int]
    prediction: Optional[float]
    running_rmse: float
    model_age: Optional[int]
    rank: Optional[int]
    rebuilds: int


# -------------------------
# Diagnostic (extended) record
# -------------------------
@dataclass(frozen=True)
class ExtendedRecord:
    """
    Serialized shape:
        {"userId", "itemId", "timestamp", "rating", "prediction", ["recommendations"]}

    recommendations is omitted when ranking did not run.
    """
    user_id: int
    item_id: int
    timestamp: Optional[int]
    rating: float
    prediction: Optional[float]
    recommendations: Optional[List[int]] = None

    def to_json(self) -> Dict[str, Any]:
        obj: Dict[str, Any] = {
            "userId": self.user_id,
            "itemId": self.item_id,
            "timestamp": self.timestamp,
            "rating": self.rating,
            "prediction": self.prediction,
        }
        if self.recommendations is not None:
            obj["recommendations"] = list(self.recommendations)
        return obj
