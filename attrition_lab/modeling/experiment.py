"""
Runs every strategy on one train/test split.

Strategies are independent: each gets the same split, its own frozen config
and the same CV spec (hence the same seed and folds). They can run in
parallel worker processes; results are always returned in the order the
strategies were given, and a failure in one strategy is kept as that
strategy's outcome instead of stopping the others.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from joblib import Parallel, delayed

import attrition_lab.prepare.constants as const
from attrition_lab.modeling.data_split import SplitData
from attrition_lab.modeling.evaluation import (
    ConfusionMatrix,
    MetricsRow,
    log_metrics,
    metrics_from_confusion,
    predict_confusion,
)
from attrition_lab.modeling.strategies import StrategyConfig
from attrition_lab.modeling.train import CVSpec, FittedModel, TrainingFailedError, train_model

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyOutcome:
    """Result of one strategy: either a model with its metrics or the failure."""

    name: str
    model: Optional[FittedModel] = None
    metrics: Optional[MetricsRow] = None
    confusion: Optional[ConfusionMatrix] = None
    error: Optional[TrainingFailedError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_strategy(
    split: SplitData,
    strategy: StrategyConfig,
    cv_spec: CVSpec,
    positive_label: str = const.LABEL_YES,
    negative_label: str = const.LABEL_NO,
) -> StrategyOutcome:
    """
    Train and evaluate one strategy.

    Parameters
    ----------
    split
        Train/test partition shared by all strategies.
    strategy
        Strategy to run.
    cv_spec
        CV setup shared by all strategies.
    positive_label
        Label counted as positive.
    negative_label
        Label counted as negative.

    Returns
    -------
    StrategyOutcome
        Model, metrics and confusion matrix, or the training failure.
    """
    try:
        model = train_model(
            split.x_train,
            split.y_train,
            strategy,
            cv_spec=cv_spec,
            positive_label=positive_label,
        )
    except TrainingFailedError as exc:
        # logged by the caller
        return StrategyOutcome(name=strategy.name, error=exc)

    confusion = predict_confusion(model, split.x_test, split.y_test, positive_label, negative_label)
    metrics = metrics_from_confusion(model.name, confusion)
    log_metrics(metrics)
    return StrategyOutcome(name=strategy.name, model=model, metrics=metrics, confusion=confusion)


def run_strategies(
    split: SplitData,
    strategies: Sequence[StrategyConfig],
    cv_spec: CVSpec,
    n_jobs: int = 1,
    positive_label: str = const.LABEL_YES,
    negative_label: str = const.LABEL_NO,
) -> list[StrategyOutcome]:
    """
    Run all strategies, sequentially or in ``n_jobs`` worker processes.

    Parameters
    ----------
    split
        Train/test partition shared by all strategies.
    strategies
        Strategies in comparison order.
    cv_spec
        CV setup shared by all strategies.
    n_jobs
        Number of parallel workers; 1 runs in the current process.
    positive_label
        Label counted as positive.
    negative_label
        Label counted as negative.

    Returns
    -------
    list[StrategyOutcome]
        One outcome per strategy, in the order of ``strategies``.
    """
    names = [s.name for s in strategies]
    if len(set(names)) != len(names):
        raise ValueError(f"Strategy names must be unique, got: {', '.join(names)}")

    if n_jobs == 1:
        return [run_strategy(split, s, cv_spec, positive_label, negative_label) for s in strategies]

    logger.info("Running %d strategies with n_jobs=%d", len(strategies), n_jobs)
    return Parallel(n_jobs=n_jobs)(
        delayed(run_strategy)(split, s, cv_spec, positive_label, negative_label) for s in strategies
    )
