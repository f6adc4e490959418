from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional


@dataclass
class RunningRMSE:
    """
    Time-averaged RMSE over the whole run (never windowed, never reset).

    observe() with a missing / non-finite prediction leaves the state alone
    and returns the previous value; before any observation the RMSE is 0.0.
    """

    sse: float = 0.0
    n: int = 0

    @property
    def value(self) -> float:
        if self.n == 0:
            return 0.0
        return math.sqrt(self.sse / self.n)

    def observe(self, prediction: Optional[float], actual: float) -> float:
        if prediction is None or not math.isfinite(prediction):
            return self.value

        err = prediction - actual
        self.sse += err * err
        self.n += 1
        return self.value
