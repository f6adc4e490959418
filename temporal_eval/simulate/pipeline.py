# temporal_eval/simulate/pipeline.py
from __future__ import annotations

from typing import Optional

from temporal_eval import logs
from temporal_eval.config.simulate_config import SimulateConfig
from temporal_eval.models.factory import ModelBuilder
from temporal_eval.observability.instrumentation import Instrumentation
from temporal_eval.pipeline.step import PipelineStep
from temporal_eval.simulate.context import SimulateContext
from temporal_eval.simulate.core.data import RatingDataset
from temporal_eval.simulate.steps.load_data_step import LoadDataStep
from temporal_eval.simulate.steps.replay_step import ReplayStep
from temporal_eval.simulate.steps.result_step import ResultStep


class SimulatePipeline:
    """
    SimulatePipeline（FINAL / FROZEN）

    语义：
      - temporal replay 的 orchestration 层
      - Pipeline 负责顺序 / 上下文
      - Pipeline 不负责任何 Step 级计时
    """

    def __init__(self, steps: list[PipelineStep], inst: Instrumentation):
        self.steps = steps
        self.inst = inst

    @classmethod
    def default(
        cls,
        *,
        builder: Optional[ModelBuilder] = None,
        inst: Optional[Instrumentation] = None,
    ) -> "SimulatePipeline":
        inst = inst if inst is not None else Instrumentation()
        return cls(
            steps=[
                LoadDataStep(inst=inst),
                ReplayStep(builder=builder, inst=inst),
                ResultStep(inst=inst),
            ],
            inst=inst,
        )

    def run(self, cfg: SimulateConfig, dataset: Optional[RatingDataset] = None) -> SimulateContext:
        logs.info(f"[Pipeline] ====== START {cfg.name} ======")

        ctx = SimulateContext(cfg=cfg, dataset=dataset)
        for step in self.steps:
            ctx = step.run(ctx)

        self.inst.generate_timeline_report(cfg.name)
        logs.info(f"[Pipeline] ====== DONE {cfg.name} ======")
        return ctx
