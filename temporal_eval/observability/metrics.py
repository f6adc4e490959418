#!filepath: temporal_eval/observability/metrics.py
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from temporal_eval import logs


def _fmt(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.6g}"
    return str(value)


@dataclass
class MetricRecorder:
    """
    Run-level metrics（只在 run 结束时写入，不在热路径调用）
    """

    enabled: bool = True
    metrics: Dict[str, Any] = field(default_factory=dict)

    def record(self, name: str, value: Any) -> None:
        if not self.enabled:
            return
        self.metrics[name] = value
        logs.info(f"[Metric] {name} = {_fmt(value)}")

    def record_many(self, values: Mapping[str, Any]) -> None:
        """
        Records every entry, logged as one line.
        """
        if not self.enabled or not values:
            return
        self.metrics.update(values)
        logs.info("[Metric] " + " ".join(f"{k}={_fmt(v)}" for k, v in values.items()))
