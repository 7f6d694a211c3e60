from __future__ import annotations

import pickle

import numpy as np
import pandas as pd
import pytest
from imblearn.under_sampling import RandomUnderSampler
from sklearn.tree import DecisionTreeClassifier

import attrition_lab.modeling.resampling as resampling
import attrition_lab.modeling.train as train
from attrition_lab.modeling.strategies import StrategyConfig, build_strategies, instance_weight_vector
from attrition_lab.modeling.train import (
    CVSpec,
    TrainingFailedError,
    build_pipeline,
    check_trainable,
    train_model,
)


def _by_name(y_train, name):
    return {c.name: c for c in build_strategies(y_train)}[name]


def test_train_selects_candidate_and_refits(split, small_cv):
    model = train_model(split.x_train, split.y_train, _by_name(split.y_train, "Original"), small_cv)

    assert model.name == "Original"
    assert model.ccp_alpha in small_cv.candidates
    assert set(model.tree.classes_) == {"Yes", "No"}
    assert len(model.cv_results) == len(small_cv.candidates)
    assert model.cv_score == pytest.approx(model.cv_results["mean_score"].max())
    assert set(model.predict(split.x_test)) <= {"Yes", "No"}


def test_training_is_deterministic(split, small_cv):
    strategy = _by_name(split.y_train, "SMOTE")
    first = train_model(split.x_train, split.y_train, strategy, small_cv)
    second = train_model(split.x_train, split.y_train, strategy, small_cv)

    assert first.ccp_alpha == second.ccp_alpha
    assert first.cv_score == second.cv_score
    assert first.describe_tree() == second.describe_tree()
    np.testing.assert_array_equal(first.predict(split.x_test), second.predict(split.x_test))


def test_cv_folds_are_identical_across_calls(split, small_cv):
    y = split.y_train
    folds_a = [tuple(test) for _, test in small_cv.make_cv().split(split.x_train, y)]
    folds_b = [tuple(test) for _, test in small_cv.make_cv().split(split.x_train, y)]
    assert folds_a == folds_b
    assert len(folds_a) == small_cv.n_splits * small_cv.n_repeats


def test_pipeline_steps_follow_strategy(split):
    configs = {c.name: c for c in build_strategies(split.y_train)}

    original = build_pipeline(split.x_train, configs["Original"], seed=1)
    down = build_pipeline(split.x_train, configs["Down"], seed=1)
    cost_fn = build_pipeline(split.x_train, configs["Cost FN"], seed=1)

    assert list(original.named_steps) == ["preprocess", "model"]
    assert list(down.named_steps) == ["sampler", "preprocess", "model"]
    assert isinstance(down.named_steps["sampler"], RandomUnderSampler)
    assert original.named_steps["model"].class_weight is None
    assert cost_fn.named_steps["model"].class_weight == {"Yes": 4.0, "No": 1.0}


def _recording_tree(calls):
    class RecordingTree(DecisionTreeClassifier):
        def fit(self, X, y, sample_weight=None, check_input=True):
            calls.append((len(y), None if sample_weight is None else np.asarray(sample_weight)))
            return super().fit(X, y, sample_weight=sample_weight, check_input=check_input)

    return RecordingTree


def test_weighted_strategy_passes_weights_to_every_fit(split, small_cv, monkeypatch):
    calls = []
    monkeypatch.setattr(train, "DecisionTreeClassifier", _recording_tree(calls))
    strategy = _by_name(split.y_train, "Weighted")

    model = train_model(split.x_train, split.y_train, strategy, small_cv)

    assert model.ccp_alpha in small_cv.candidates
    assert len(calls) == len(small_cv.candidates) * small_cv.n_splits * small_cv.n_repeats + 1
    assert all(weights is not None and len(weights) == n for n, weights in calls)

    refit_n, refit_weights = calls[-1]
    assert refit_n == len(split.y_train)
    np.testing.assert_allclose(refit_weights, instance_weight_vector(split.y_train, strategy.instance_weights))
    assert refit_weights.max() == pytest.approx(strategy.instance_weights["Yes"])


def test_unweighted_strategy_fits_without_weights(split, small_cv, monkeypatch):
    calls = []
    monkeypatch.setattr(train, "DecisionTreeClassifier", _recording_tree(calls))

    train_model(split.x_train, split.y_train, _by_name(split.y_train, "Original"), small_cv)

    assert calls
    assert all(weights is None for _, weights in calls)


def test_resampler_only_sees_training_folds(split, small_cv, monkeypatch):
    seen = []

    def recording_sampler(x, y, **kwargs):
        seen.append(len(y))
        return x, y

    monkeypatch.setattr(resampling, "smote_then_down", recording_sampler)
    train_model(split.x_train, split.y_train, StrategyConfig(name="SMOTE", resampling="smote"), small_cv)

    fold_train_sizes = [len(train_idx) for train_idx, _ in small_cv.make_cv().split(split.x_train, split.y_train)]
    assert sorted(seen[:-1]) == sorted(fold_train_sizes * len(small_cv.candidates))
    assert seen[-1] == len(split.x_train)

    n_train = len(split.x_train)
    validation_sizes = {n_train - size for size in fold_train_sizes}
    assert not validation_sizes & set(seen)
    assert len(split.x_test) not in seen


def test_kappa_selection(split, small_cv):
    model = train_model(split.x_train, split.y_train, _by_name(split.y_train, "All"), small_cv)
    assert model.strategy.selection_metric == "kappa"
    assert -1.0 <= model.cv_score <= 1.0


def test_single_class_training_fails(split, small_cv):
    y_no = pd.Series("No", index=split.y_train.index)
    with pytest.raises(TrainingFailedError) as info:
        train_model(split.x_train, y_no, StrategyConfig(name="Original"), small_cv)

    assert info.value.strategy == "Original"
    assert "single class" in info.value.reason


def test_too_few_minority_records_fail(split):
    y = split.y_train.copy()
    yes_index = y[y == "Yes"].index
    y.loc[yes_index[2:]] = "No"

    with pytest.raises(TrainingFailedError, match="fewer than 3 CV folds"):
        check_trainable(y, StrategyConfig(name="Down", resampling="down"), CVSpec(n_splits=3, n_repeats=1))


def test_classifier_errors_are_wrapped(split, small_cv, monkeypatch):
    def broken_sampler(x, y, **kwargs):
        raise ValueError("sampler exploded")

    monkeypatch.setattr(resampling, "smote_then_down", broken_sampler)

    with pytest.raises(TrainingFailedError) as info:
        train_model(split.x_train, split.y_train, StrategyConfig(name="SMOTE", resampling="smote"), small_cv)

    assert info.value.strategy == "SMOTE"
    assert "sampler exploded" in info.value.reason
    assert isinstance(info.value.__cause__, ValueError)


def test_training_failed_error_survives_pickling():
    error = TrainingFailedError("SMOTE", "degenerate fold")
    restored = pickle.loads(pickle.dumps(error))

    assert isinstance(restored, TrainingFailedError)
    assert restored.strategy == "SMOTE"
    assert restored.reason == "degenerate fold"
    assert str(restored) == str(error)


@pytest.mark.parametrize("kwargs", [{"n_splits": 1}, {"n_repeats": 0}, {"candidates": ()}])
def test_invalid_cv_spec(kwargs):
    with pytest.raises(ValueError):
        CVSpec(**kwargs)


def test_training_does_not_modify_inputs(split, small_cv):
    x_before, y_before = split.x_train.copy(), split.y_train.copy()
    train_model(split.x_train, split.y_train, _by_name(split.y_train, "Down"), small_cv)
    pd.testing.assert_frame_equal(split.x_train, x_before)
    pd.testing.assert_series_equal(split.y_train, y_before)
