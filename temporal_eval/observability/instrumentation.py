#!filepath: temporal_eval/observability/instrumentation.py
from __future__ import annotations

from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict

from temporal_eval.observability.metrics import MetricRecorder
from temporal_eval.observability.progress import ProgressReporter
from temporal_eval.observability.timeline_reporter import TimelineReporter
from temporal_eval.observability.timer import Timer


@dataclass
class Instrumentation:
    """
    Instrumentation（Leaf-only accounting + Parent scope）。

    设计铁律：
    1. Timeline 只记录【叶子节点】（record=True）
    2. Step / 父级 timer 仅作为时间语义边界（record=False）
    3. Instrumentation 本身不在热路径打日志
    """

    enabled: bool = True

    def __post_init__(self):
        self.progress = ProgressReporter(enabled=self.enabled)
        self._timer = Timer(enabled=self.enabled)
        self.metrics = MetricRecorder(enabled=self.enabled)

        # timeline: OrderedDict[leaf_name, accumulated_seconds]
        # 同名 leaf 重复运行时累加，不新增条目
        self.timeline: Dict[str, float] = OrderedDict()

    def timer(self, name: str, *, record: bool = True):
        """
        Context-manager timer.

        record=True  : leaf, written to the timeline
        record=False : parent scope only, no side effects
        """
        inst = self

        @contextmanager
        def _ctx():
            if not inst.enabled:
                yield
                return

            inst._timer.start(name)
            try:
                yield
            finally:
                inst._timer.end(name)
                if record:
                    inst.timeline[name] = inst._timer.totals.get(name, 0.0)

        return _ctx()

    def calls(self, name: str) -> int:
        """Completed runs of timer `name`."""
        return self._timer.counts.get(name, 0)

    def generate_timeline_report(self, label: str) -> None:
        counts = {name: self.calls(name) for name in self.timeline}
        TimelineReporter(self.timeline, label, counts).print()


class NoOpInstrumentation:
    """Instrumentation disabled 时使用。"""

    def __init__(self):
        self.progress = ProgressReporter(enabled=False)
        self.metrics = MetricRecorder(enabled=False)
        self.timeline: Dict[str, float] = OrderedDict()

    def timer(self, name: str, *, record: bool = True):
        return _NoOpTimer()

    def calls(self, name: str) -> int:
        return 0

    def generate_timeline_report(self, label: str) -> None:
        pass


class _NoOpTimer:
    def __enter__(self):
        pass

    def __exit__(self, exc_type, exc, tb):
        pass
