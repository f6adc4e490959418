# temporal_eval/simulate/steps/result_step.py
import json
from pathlib import Path

from temporal_eval import logs
from temporal_eval.pipeline.step import PipelineStep
from temporal_eval.utils.filesystem import FileSystem


class ResultStep(PipelineStep):
    """
    ResultStep（FINAL）

    职责：
      - SimulationResult → <result_dir>/result.json
      - 未配置 result_dir 时只记录日志
    """

    stage = "simulate_result"
    output_slot = "result"

    def run(self, ctx):
        result = ctx.result
        if result is None:
            raise RuntimeError(f"[{self.step_name}] no result on context")

        logs.info(
            f"[{self.step_name}] events={result.n_events} builds={result.builds} "
            f"rmse={result.rmse:.4f} mrr={result.mean_reciprocal_rank:.4f}"
        )

        if not ctx.cfg.result_dir:
            return ctx

        out_dir = FileSystem.ensure_dir(Path(ctx.cfg.result_dir))
        (out_dir / "result.json").write_text(
            json.dumps(result.to_dict(), indent=2),
            encoding="utf-8",
        )
        return ctx
