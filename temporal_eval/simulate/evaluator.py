from __future__ import annotations

import math
from contextlib import ExitStack
from typing import Optional

import numpy as np

from temporal_eval import logs
from temporal_eval.config.simulate_config import AlgorithmConfig, SimulateConfig
from temporal_eval.models.base import RankingRecommender, Recommender
from temporal_eval.models.factory import ModelBuilder
from temporal_eval.observability.instrumentation import Instrumentation, NoOpInstrumentation
from temporal_eval.simulate.core.data import RatingDataset, WindowedView
from temporal_eval.simulate.core.events import Rating
from temporal_eval.simulate.core.metrics import RunningRMSE
from temporal_eval.simulate.core.records import ExtendedRecord, OutputRecord
from temporal_eval.simulate.core.schedule import ModelSlot, RebuildScheduler
from temporal_eval.simulate.ranking import CandidateSampler, RankResult
from temporal_eval.simulate.result import SimulationResult
from temporal_eval.simulate.sinks import ExtendedSink, TableSink
from temporal_eval.simulate.source import RatingSource
from temporal_eval.utils.errors import ConfigurationError, ModelBuildError, ScoringError
"""
{#!filepath: temporal_eval/simulate/evaluator.py}

TemporalEvaluator (FINAL / FROZEN)

Replays the rating history in time order, as if a recommender had been
deployed online:

    for each rating r (time-sorted):
        advance window to "everything strictly before r.timestamp"
        rebuild the model if it is stale
        predict r, update the running RMSE
        rank r.item against random decoys (if the model can rank)
        write one row (+ one diagnostic record)

Invariants:
- A model built for / ranking performed at time t never sees a rating at or after t.
- Exactly one row per rating, in replay order.
- At most one live model; it is closed before replacement and at run end.
- Sinks are closed on every exit path; rows already written are kept.
"""


class TemporalEvaluator:
    """
    Contract:
    - cfg is READ-ONLY
    - dataset may be injected; otherwise loaded from cfg.input_file
    - builder turns (AlgorithmConfig, WindowedView) into a Recommender
    - rng is run-scoped; defaults to np.random.default_rng(cfg.seed)
    """

    def __init__(
        self,
        cfg: SimulateConfig,
        *,
        dataset: Optional[RatingDataset] = None,
        builder: Optional[ModelBuilder] = None,
        inst: Optional[Instrumentation] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.cfg = cfg
        self.dataset = dataset
        self.builder = builder if builder is not None else ModelBuilder()
        self.inst: Instrumentation | NoOpInstrumentation = (
            inst if inst is not None else NoOpInstrumentation()
        )
        self.rng = rng if rng is not None else np.random.default_rng(cfg.seed)

    def set_data_source(self, dataset: RatingDataset) -> "TemporalEvaluator":
        self.dataset = dataset
        return self

    # --------------------------------------------------
    # Preconditions
    # --------------------------------------------------
    def _load_inputs(self) -> tuple[RatingDataset, AlgorithmConfig]:
        algorithm = self.cfg.require_single_algorithm()

        if self.dataset is None:
            if not self.cfg.input_file:
                raise ConfigurationError("[TemporalEvaluator] no data source specified")
            self.dataset = RatingSource(self.cfg.input_file, self.cfg.input_schema).load()

        return self.dataset, algorithm

    # --------------------------------------------------
    # Replay
    # --------------------------------------------------
    @logs.catch("temporal replay aborted", log_time=True)
    def run(self) -> SimulationResult:
        dataset, algorithm = self._load_inputs()

        cfg = self.cfg
        schedule = RebuildScheduler(period=cfg.rebuild_period)
        rmse = RunningRMSE()
        sampler = CandidateSampler(self.rng)

        view: WindowedView = dataset.empty_view()
        window_ts: Optional[int] = None

        n_events = n_ranked = n_hits = 0
        rr_sum = 0.0

        logs.info(
            f"[TemporalEvaluator] start name={cfg.name} algorithm={algorithm.name} "
            f"ratings={len(dataset)} rebuild_period={cfg.rebuild_period}s list_size={cfg.list_size}"
        )
        self.inst.progress.start("replay", len(dataset), "ratings")

        with ExitStack() as stack:
            table = stack.enter_context(TableSink(cfg.output_file))
            ext: Optional[ExtendedSink] = None
            if cfg.extended_output_file:
                ext = stack.enter_context(ExtendedSink(cfg.extended_output_file))
            slot = stack.enter_context(ModelSlot())

            for r in dataset.iter_ratings():
                ts = r.timestamp

                # ① window: strictly-prior history only
                if ts is not None and (window_ts is None or ts > window_ts):
                    view = dataset.view_before(ts)
                    window_ts = ts

                # ② rebuild if stale
                if schedule.is_stale(ts):
                    self._rebuild(slot, schedule, algorithm, view, ts)

                model = slot.model

                # ③ predict + running RMSE
                prediction = self._predict(model, r)
                current_rmse = rmse.observe(prediction, r.value)

                # ④ rank against decoys from the pre-event window
                ranked: Optional[RankResult] = None
                if isinstance(model, RankingRecommender):
                    ranked = self._rank(sampler, model, r, view)
                    n_ranked += 1
                    if ranked.rank is not None:
                        n_hits += 1
                        rr_sum += 1.0 / ranked.rank

                # ⑤ output
                table.write(
                    OutputRecord(
                        user=r.user,
                        item=r.item,
                        rating=r.value,
                        timestamp=ts,
                        prediction=prediction,
                        running_rmse=current_rmse,
                        model_age=schedule.model_age(ts),
                        rank=ranked.rank if ranked is not None else None,
                        rebuilds=schedule.builds,
                    )
                )
                if ext is not None:
                    ext.write(
                        ExtendedRecord(
                            user_id=r.user,
                            item_id=r.item,
                            timestamp=ts,
                            rating=r.value,
                            prediction=prediction,
                            recommendations=ranked.recommendations if ranked is not None else None,
                        )
                    )

                n_events += 1
                # 热路径：按 cfg.progress_every 节流，0 关闭
                if cfg.progress_every and n_events % cfg.progress_every == 0:
                    self.inst.progress.update("replay", n_events, len(dataset), "ratings")

        self.inst.progress.done("replay")

        start_ts, end_ts = dataset.time_bounds()
        result = SimulationResult(
            name=cfg.name,
            algorithm=algorithm.name,
            rebuild_period=cfg.rebuild_period,
            list_size=cfg.list_size,
            n_events=n_events,
            n_predictions=rmse.n,
            n_ranked=n_ranked,
            n_hits=n_hits,
            builds=schedule.builds,
            rmse=rmse.value,
            mean_reciprocal_rank=rr_sum / n_ranked if n_ranked else 0.0,
            start_ts=start_ts,
            end_ts=end_ts,
        )

        self.inst.metrics.record_many(
            {
                key: getattr(result, key)
                for key in ("n_events", "n_predictions", "n_ranked", "builds", "rmse", "mean_reciprocal_rank")
            }
        )

        return result

    # --------------------------------------------------
    # Internals
    # --------------------------------------------------
    def _rebuild(
        self,
        slot: ModelSlot,
        schedule: RebuildScheduler,
        algorithm: AlgorithmConfig,
        view: WindowedView,
        ts: int,
    ) -> None:
        logs.info(
            f"[Rebuild] #{schedule.builds + 1} at ts={ts} "
            f"window_limit={view.limit} ratings={view.num_ratings}"
        )
        # one accumulated leaf for all rebuilds
        with self.inst.timer("build"):
            try:
                model = self.builder.build(algorithm, view)
            except Exception as e:
                raise ModelBuildError(
                    f"[Rebuild] building {algorithm.type} failed at ts={ts}: {e}",
                    build_time=ts,
                ) from e

        slot.replace(model)
        schedule.mark_built(ts)

    @staticmethod
    def _predict(model: Optional[Recommender], r: Rating) -> Optional[float]:
        if model is None:
            return None
        try:
            score = model.predict(r.user, r.item)
        except Exception as e:
            raise ScoringError(
                f"prediction failed: {e}", user=r.user, item=r.item, timestamp=r.timestamp
            ) from e

        if score is None:
            return None
        score = float(score)
        # NaN / inf are "no prediction", not numbers
        return score if math.isfinite(score) else None

    def _rank(
        self,
        sampler: CandidateSampler,
        model: RankingRecommender,
        r: Rating,
        view: WindowedView,
    ) -> RankResult:
        try:
            return sampler.rank_of(model, r.user, r.item, self.cfg.list_size, view)
        except Exception as e:
            raise ScoringError(
                f"ranking failed: {e}", user=r.user, item=r.item, timestamp=r.timestamp
            ) from e
