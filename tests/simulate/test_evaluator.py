#!filepath: tests/simulate/test_evaluator.py
from __future__ import annotations

import json
import math
from pathlib import Path

import pandas as pd
import pytest
from loguru import logger

from temporal_eval.models.base import Recommender
from temporal_eval.observability.instrumentation import Instrumentation
from temporal_eval.simulate.evaluator import TemporalEvaluator
from temporal_eval.utils.errors import ConfigurationError, ModelBuildError, ScoringError


def _read_output(cfg) -> pd.DataFrame:
    return pd.read_csv(cfg.output_file)


def _read_extended(cfg):
    with open(cfg.extended_output_file, encoding="utf-8") as fh:
        return [json.loads(line) for line in fh]


# =============================================================================
# Periodic rebuild
# =============================================================================

def test_rebuild_cadence_and_output_rows(make_dataset, constant_builder, make_cfg):
    ds = make_dataset(
        [
            (1, 1, 3.0, 0),
            (2, 2, 3.0, 5),
            (1, 3, 3.0, 11),
            (2, 1, 3.0, 12),
        ]
    )
    builder = constant_builder(3.0)
    cfg = make_cfg(rebuild_period=10)

    res = TemporalEvaluator(cfg, dataset=ds, builder=builder).run()

    assert res.builds == 2
    assert res.n_events == 4
    assert res.n_predictions == 4
    assert res.rmse == 0.0

    # first window has nothing; the second sees ts 0 and 5 only
    assert [v.limit for v in builder.views] == [-1, 10]
    assert [v.num_ratings for v in builder.views] == [0, 2]

    out = _read_output(cfg)
    assert list(out.columns) == [
        "User", "Item", "Rating", "Timestamp", "Prediction",
        "RunningRMSE", "ModelAge", "Rank", "Rebuilds",
    ]
    assert len(out) == 4
    assert out["Timestamp"].tolist() == [0, 5, 11, 12]
    assert out["Rebuilds"].tolist() == [1, 1, 2, 2]
    assert out["ModelAge"].tolist() == [0, 5, 0, 1]
    assert out["Prediction"].tolist() == [3.0] * 4
    assert out["RunningRMSE"].tolist() == [0.0] * 4


def test_previous_model_closed_on_rebuild_and_at_end(make_dataset, constant_builder, make_cfg):
    ds = make_dataset([(1, 1, 3.0, 0), (1, 2, 3.0, 20), (1, 3, 3.0, 40)])
    builder = constant_builder()

    TemporalEvaluator(make_cfg(), dataset=ds, builder=builder).run()

    assert len(builder.models) == 3
    assert all(m.closed for m in builder.models)


def test_same_timestamp_events_share_one_window(make_dataset, constant_builder, make_cfg):
    ds = make_dataset([(1, 1, 3.0, 0), (2, 2, 3.0, 50), (3, 3, 3.0, 50)])
    builder = constant_builder()

    res = TemporalEvaluator(make_cfg(), dataset=ds, builder=builder).run()

    assert res.builds == 2
    assert builder.views[-1].limit == 49
    assert builder.views[-1].num_ratings == 1


# =============================================================================
# Temporal causality
# =============================================================================

def test_models_and_rankings_never_see_the_future(make_dataset, constant_builder, make_cfg, tmp_path):
    rows = [
        (1, 1, 4.0, 1),
        (2, 2, 3.0, 2),
        (1, 3, 5.0, 3),
        (3, 4, 2.0, 4),
        (2, 5, 1.0, 5),
        (3, 6, 4.0, 6),
        (1, 7, 3.0, 7),
    ]
    first_seen = {item: ts for _, item, _, ts in rows}
    ds = make_dataset(rows)
    builder = constant_builder()
    cfg = make_cfg(
        rebuild_period=2,
        list_size=10,
        extended_output_file=str(tmp_path / "out" / "extended.jsonl"),
    )

    TemporalEvaluator(cfg, dataset=ds, builder=builder).run()

    for view in builder.views:
        assert all(r.timestamp <= view.limit for r in view.iter_ratings())

    records = _read_extended(cfg)
    assert len(records) == len(rows)
    for rec in records:
        decoys = [i for i in rec["recommendations"] if i != rec["itemId"]]
        assert all(first_seen[i] < rec["timestamp"] for i in decoys)


def test_candidates_exclude_user_history(make_dataset, constant_builder, make_cfg):
    ds = make_dataset(
        [
            (7, 2, 4.0, 1),
            (8, 1, 3.0, 2),
            (8, 3, 3.0, 3),
            (8, 5, 3.0, 4),
            (7, 4, 5.0, 100),
        ]
    )
    builder = constant_builder()

    res = TemporalEvaluator(make_cfg(list_size=3, rebuild_period=50), dataset=ds, builder=builder).run()

    model = builder.models[-1]
    user, n, cands = model.rank_calls[-1]
    assert (user, n) == (7, 3)
    assert len(cands) == 3
    assert 4 in cands
    assert 2 not in cands
    assert res.n_ranked == 5


# =============================================================================
# Degenerate inputs
# =============================================================================

def test_empty_dataset(make_dataset, constant_builder, make_cfg):
    builder = constant_builder()
    cfg = make_cfg()

    res = TemporalEvaluator(cfg, dataset=make_dataset([]), builder=builder).run()

    assert res.n_events == 0
    assert res.builds == 0
    assert res.rmse == 0.0
    assert res.mean_reciprocal_rank == 0.0
    assert res.start_ts is None and res.end_ts is None
    assert builder.views == []


def test_untimed_history_never_builds(make_dataset, constant_builder, make_cfg):
    ds = make_dataset([(1, 1, 4.0, None), (2, 2, 3.0, None), (1, 2, 2.0, -3)])
    builder = constant_builder()
    cfg = make_cfg()

    res = TemporalEvaluator(cfg, dataset=ds, builder=builder).run()

    assert res.builds == 0
    assert res.n_predictions == 0
    assert res.rmse == 0.0

    out = _read_output(cfg)
    assert len(out) == 3
    assert out["Prediction"].isna().all()
    assert out["ModelAge"].isna().all()
    assert out["Rank"].isna().all()
    assert out["Timestamp"].isna().all()
    assert out["Rebuilds"].tolist() == [0, 0, 0]


def test_untimed_events_replay_before_timed(make_dataset, constant_builder, make_cfg):
    ds = make_dataset([(1, 1, 4.0, 10), (2, 2, 3.0, None)])
    builder = constant_builder()
    cfg = make_cfg()

    TemporalEvaluator(cfg, dataset=ds, builder=builder).run()

    out = _read_output(cfg)
    assert out["User"].tolist() == [2, 1]
    assert math.isnan(out["Prediction"][0])
    assert out["Prediction"][1] == 3.0


# =============================================================================
# Accuracy
# =============================================================================

def test_oracle_predictions_give_zero_rmse(make_dataset, predict_only_builder, make_cfg):
    rows = [(1, 1, 4.0, 1), (1, 2, 2.0, 2), (2, 1, 5.0, 30), (3, 3, 1.5, 31)]
    oracle = {(u, i): v for u, i, v, _ in rows}

    res = TemporalEvaluator(
        make_cfg(), dataset=make_dataset(rows), builder=predict_only_builder(oracle)
    ).run()

    assert res.n_predictions == 4
    assert res.rmse == 0.0


def test_running_rmse_is_cumulative(make_dataset, constant_builder, make_cfg):
    ds = make_dataset([(1, 1, 1.0, 0), (1, 2, 5.0, 1)])
    cfg = make_cfg()

    res = TemporalEvaluator(cfg, dataset=ds, builder=constant_builder(3.0)).run()

    out = _read_output(cfg)
    assert out["RunningRMSE"].tolist() == pytest.approx([2.0, 2.0])
    assert res.rmse == pytest.approx(2.0)


def test_non_finite_prediction_is_absent(make_dataset, constant_builder, make_cfg):
    ds = make_dataset([(1, 1, 1.0, 0), (1, 2, 5.0, 1)])
    cfg = make_cfg()

    res = TemporalEvaluator(cfg, dataset=ds, builder=constant_builder(float("nan"))).run()

    assert res.n_predictions == 0
    assert res.rmse == 0.0
    assert _read_output(cfg)["Prediction"].isna().all()


def test_predict_only_model_skips_ranking(make_dataset, predict_only_builder, make_cfg, tmp_path):
    ds = make_dataset([(1, 1, 4.0, 1), (2, 1, 3.0, 2)])
    cfg = make_cfg(extended_output_file=str(tmp_path / "ext.jsonl"))

    res = TemporalEvaluator(cfg, dataset=ds, builder=predict_only_builder({(2, 1): 3.5})).run()

    assert res.n_ranked == 0
    assert res.n_predictions == 1
    assert _read_output(cfg)["Rank"].isna().all()

    records = _read_extended(cfg)
    assert [r["prediction"] for r in records] == [None, 3.5]
    assert all("recommendations" not in r for r in records)


def test_rank_and_mrr(make_dataset, constant_builder, make_cfg):
    # ConstantRecommender orders by ascending id; universe before ts=10 is {1, 2}
    ds = make_dataset([(5, 2, 3.0, 1), (6, 1, 3.0, 2), (7, 1, 3.0, 10)])
    cfg = make_cfg(list_size=2, rebuild_period=5)

    res = TemporalEvaluator(cfg, dataset=ds, builder=constant_builder()).run()

    out = _read_output(cfg)
    assert out["Rank"].tolist()[2] == 1
    assert res.n_hits == res.n_ranked == 3
    assert res.mean_reciprocal_rank == pytest.approx(1.0)


def test_seed_makes_decoys_reproducible(make_dataset, constant_builder, make_cfg):
    rows = [(u, i, 3.0, u * 10 + i) for u in range(1, 6) for i in range(1, 9)]
    cfg = make_cfg(list_size=4, rebuild_period=1000)

    def _decoys(seed):
        b = constant_builder()
        TemporalEvaluator(cfg.model_copy(update={"seed": seed}), dataset=make_dataset(rows), builder=b).run()
        return [c for m in b.models for _, _, c in m.rank_calls]

    assert _decoys(11) == _decoys(11)


# =============================================================================
# Failures
# =============================================================================

class _FailingModel(Recommender):
    def __init__(self, bad_item):
        self.bad_item = bad_item
        self.closed = False

    def predict(self, user, item):
        if item == self.bad_item:
            raise RuntimeError("boom")
        return 3.0

    def close(self):
        self.closed = True


def test_build_failure_keeps_written_rows(make_dataset, recording_builder, make_cfg, constant_builder):
    def make(view):
        if len(builder.views) == 2:
            raise RuntimeError("engine down")
        return constant_builder().make(view)

    builder = recording_builder(make)
    ds = make_dataset([(1, 1, 3.0, 0), (1, 2, 3.0, 5), (1, 3, 3.0, 20), (1, 4, 3.0, 21)])
    cfg = make_cfg(rebuild_period=10)

    with pytest.raises(ModelBuildError) as ei:
        TemporalEvaluator(cfg, dataset=ds, builder=builder).run()

    assert ei.value.build_time == 20
    assert isinstance(ei.value.__cause__, RuntimeError)
    assert builder.models[0].closed
    assert _read_output(cfg)["Timestamp"].tolist() == [0, 5]


def test_scoring_failure_closes_everything(make_dataset, recording_builder, make_cfg, tmp_path):
    model = _FailingModel(bad_item=2)
    builder = recording_builder(lambda view: model)
    ds = make_dataset([(1, 1, 3.0, 0), (1, 2, 3.0, 1)])
    cfg = make_cfg(extended_output_file=str(tmp_path / "ext.jsonl"))

    with pytest.raises(ScoringError) as ei:
        TemporalEvaluator(cfg, dataset=ds, builder=builder).run()

    assert (ei.value.user, ei.value.item, ei.value.timestamp) == (1, 2, 1)
    assert model.closed
    assert len(_read_output(cfg)) == 1
    assert len(_read_extended(cfg)) == 1


def test_missing_algorithm_is_rejected_before_output(make_dataset, constant_builder, make_cfg):
    cfg = make_cfg(algorithm=None)

    with pytest.raises(ConfigurationError, match="exactly one algorithm"):
        TemporalEvaluator(cfg, dataset=make_dataset([(1, 1, 3.0, 0)]), builder=constant_builder()).run()

    assert not Path(cfg.output_file).exists()


def test_two_algorithms_are_rejected(make_dataset, constant_builder, make_cfg):
    cfg = make_cfg(algorithms=[{"type": "bias"}, {"type": "popular"}], algorithm=None)

    with pytest.raises(ConfigurationError):
        TemporalEvaluator(cfg, dataset=make_dataset([]), builder=constant_builder()).run()


def test_missing_data_source_is_rejected(constant_builder, make_cfg):
    cfg = make_cfg()

    with pytest.raises(ConfigurationError, match="no data source"):
        TemporalEvaluator(cfg, builder=constant_builder()).run()


def test_set_data_source_injects_dataset(make_dataset, constant_builder, make_cfg):
    ev = TemporalEvaluator(make_cfg(), builder=constant_builder())

    res = ev.set_data_source(make_dataset([(1, 1, 3.0, 0)])).run()

    assert res.n_events == 1


# =============================================================================
# Built-in algorithms end-to-end
# =============================================================================

def test_popular_algorithm_ranks_without_predicting(make_dataset, make_cfg):
    ds = make_dataset(
        [
            (1, 1, 3.0, 1),
            (2, 1, 3.0, 2),
            (3, 2, 3.0, 3),
            (4, 1, 5.0, 100),
        ]
    )
    cfg = make_cfg(algorithm={"name": "pop", "type": "popular"}, list_size=2, rebuild_period=50)

    res = TemporalEvaluator(cfg, dataset=ds).run()

    assert res.algorithm == "pop"
    assert res.n_predictions == 0
    assert res.n_ranked == 4

    out = _read_output(cfg)
    assert out["Prediction"].isna().all()
    # item 1 is the most popular item before ts=100
    assert out["Rank"].tolist()[3] == 1


def test_bias_algorithm_end_to_end(make_dataset, make_cfg):
    ds = make_dataset([(1, 1, 5.0, 1), (1, 2, 3.0, 2), (2, 1, 4.0, 3), (1, 1, 5.0, 100)])
    cfg = make_cfg(algorithm={"type": "bias", "params": {"damping": 0.0}}, rebuild_period=50)

    res = TemporalEvaluator(cfg, dataset=ds).run()

    out = _read_output(cfg)
    assert res.builds == 2
    assert out["Prediction"].tolist()[3] == pytest.approx(4.75)


def test_input_schema_applies_when_loading_from_file(tmp_path, constant_builder, make_cfg):
    path = tmp_path / "ratings.tsv"
    path.write_text("7\t70\t4.0\t5\n8\t80\t2.0\t1\n")
    cfg = make_cfg(input_file=str(path), input_schema={"header": False})

    ev = TemporalEvaluator(cfg, builder=constant_builder())
    res = ev.run()

    assert res.n_events == 2
    assert [r.user for r in ev.dataset.iter_ratings()] == [8, 7]


def test_one_timeline_leaf_for_all_rebuilds(make_dataset, constant_builder, make_cfg):
    ds = make_dataset([(1, i, 3.0, i * 10) for i in range(200)])
    inst = Instrumentation()

    res = TemporalEvaluator(make_cfg(rebuild_period=10), dataset=ds, builder=constant_builder(), inst=inst).run()

    assert res.builds == 200
    assert list(inst.timeline) == ["build"]
    assert inst.calls("build") == 200
    assert inst.metrics.metrics["builds"] == 200


def test_configuration_error_logs_no_traceback(constant_builder, make_cfg):
    captured = []
    sink_id = logger.add(lambda msg: captured.append(str(msg)))
    try:
        with pytest.raises(ConfigurationError):
            TemporalEvaluator(make_cfg(), builder=constant_builder()).run()
    finally:
        logger.remove(sink_id)

    assert not any("Traceback" in line or "[ERROR]" in line for line in captured)
