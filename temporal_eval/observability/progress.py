#!filepath: temporal_eval/observability/progress.py
from temporal_eval import logs


class ProgressReporter:
    """
    最轻量进度系统：只打 info 日志，不依赖 Rich/TQDM。

    每次 update() 都会输出一行；节流由调用方负责
    （TemporalEvaluator 按 cfg.progress_every 调用）。
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def start(self, task: str, total: int, unit: str = "") -> None:
        if not self.enabled:
            return
        logs.info(f"[Progress] {task} started total={total} {unit}")

    def update(self, task: str, current: int, total: int, unit: str = "") -> None:
        if not self.enabled:
            return
        pct = 100.0 * current / total if total else 100.0
        logs.info(f"[Progress] {task}: {current}/{total} {unit} ({pct:.1f}%)")

    def done(self, task: str) -> None:
        if not self.enabled:
            return
        logs.info(f"[Progress] {task} done")
