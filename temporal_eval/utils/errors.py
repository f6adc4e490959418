# temporal_eval/utils/errors.py
from __future__ import annotations

from typing import Optional


class UserInputError(RuntimeError):
    """
    Raised for invalid user-provided config (paths, algorithms, sizes).
    Should NOT print traceback.
    """


class ConfigurationError(UserInputError):
    """
    Simulation cannot start: missing data source, algorithm, or columns.
    Raised before any output is produced.
    """


class ModelBuildError(RuntimeError):
    """
    The model builder failed while (re)building at `build_time`.
    Rows written before the failing rebuild stay valid.
    """

    def __init__(self, msg: str, *, build_time: Optional[int] = None):
        super().__init__(msg)
        self.build_time = build_time


class ScoringError(RuntimeError):
    """
    The live model raised while predicting or ranking one event.
    Fatal for the run so the running RMSE is never built from partial data.
    """

    def __init__(self, msg: str, *, user: int, item: int, timestamp: Optional[int]):
        super().__init__(f"{msg} (user={user} item={item} ts={timestamp})")
        self.user = user
        self.item = item
        self.timestamp = timestamp
