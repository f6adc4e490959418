# temporal_eval/simulate/steps/replay_step.py
from __future__ import annotations

from typing import Optional

from temporal_eval.models.factory import ModelBuilder
from temporal_eval.pipeline.step import PipelineStep
from temporal_eval.simulate.evaluator import TemporalEvaluator


class ReplayStep(PipelineStep):
    """
    ReplayStep（FINAL）

    dataset + cfg → TemporalEvaluator → SimulationResult
    """

    stage = "simulate_replay"
    output_slot = "result"

    def __init__(self, *, builder: Optional[ModelBuilder] = None, inst=None):
        super().__init__(inst=inst)
        self._builder = builder

    def run(self, ctx):
        with self.timed():
            evaluator = TemporalEvaluator(
                ctx.cfg,
                dataset=ctx.dataset,
                builder=self._builder,
                inst=self.inst,
            )
            ctx.result = evaluator.run()
        return ctx
