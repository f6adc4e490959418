#!filepath: temporal_eval/observability/timer.py
import time
from typing import Dict


class Timer:
    """
    累计计时器（同名 timer 可重复运行）

    - start(name) / end(name) → 本次耗时秒数（未 start 的 name 返回 0.0）
    - totals[name]：累计耗时；counts[name]：完成次数
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._open: Dict[str, float] = {}
        self.totals: Dict[str, float] = {}
        self.counts: Dict[str, int] = {}

    def start(self, name: str) -> None:
        if not self.enabled:
            return
        self._open[name] = time.perf_counter()

    def end(self, name: str) -> float:
        if not self.enabled or name not in self._open:
            return 0.0

        elapsed = time.perf_counter() - self._open.pop(name)
        self.totals[name] = self.totals.get(name, 0.0) + elapsed
        self.counts[name] = self.counts.get(name, 0) + 1
        return elapsed
