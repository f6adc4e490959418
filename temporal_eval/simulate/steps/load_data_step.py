# temporal_eval/simulate/steps/load_data_step.py
from temporal_eval import logs
from temporal_eval.pipeline.step import PipelineStep
from temporal_eval.simulate.source import RatingSource


class LoadDataStep(PipelineStep):
    """
    LoadDataStep（FINAL）

    职责：
      - input_file → RatingDataset
      - 已注入 dataset 时跳过
    """

    stage = "simulate_load"
    output_slot = "dataset"

    def run(self, ctx):
        if ctx.dataset is not None:
            logs.info(f"[{self.step_name}] dataset injected -> skip")
            return ctx

        path = ctx.cfg.require_input_file()

        with self.inst.timer("load_ratings"):
            ctx.dataset = RatingSource(path, ctx.cfg.input_schema).load()

        return ctx
