#!filepath: temporal_eval/observability/timeline_reporter.py
from typing import Dict, Optional

from temporal_eval import logs


class TimelineReporter:
    """
    Run Timeline 报告：每个 leaf 一行

        <leaf>  <total>s  <share>%  [xN avg <mean>s]

    重复运行的 leaf（例如每次 rebuild 的 `build`）合并成一行。
    """

    def __init__(self, timeline: Dict[str, float], label: str, counts: Optional[Dict[str, int]] = None):
        self.timeline = timeline
        self.label = label
        self.counts = counts or {}

    def lines(self) -> list[str]:
        total = sum(self.timeline.values())
        out = []
        for name, sec in self.timeline.items():
            share = 100.0 * sec / total if total > 0 else 0.0
            line = f"{name:<24} {sec:>9.3f}s {share:>5.1f}%"
            n = self.counts.get(name, 1)
            if n > 1:
                line += f"  x{n} avg {sec / n:.4f}s"
            out.append(line)
        out.append(f"{'total':<24} {total:>9.3f}s")
        return out

    def print(self) -> None:
        logs.info(f"[Timeline] ===== Run timeline for {self.label} =====")
        for line in self.lines():
            logs.info(f"[Timeline] {line}")
