"""
Imbalance-handling strategies compared in one experiment run.

Every strategy is a frozen configuration value built once from the training
labels and passed explicitly to training, so nothing set for one strategy
can leak into the next.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal, Mapping, Optional

import numpy as np
import pandas as pd

import attrition_lab.modeling.constants as mconst
import attrition_lab.prepare.constants as const

SelectionMetric = Literal["accuracy", "kappa"]
Resampling = Literal["none", "down", "smote"]

SELECTION_METRICS = ("accuracy", "kappa")
RESAMPLING_METHODS = ("none", "down", "smote")


@dataclass(frozen=True)
class CostMatrix:
    """
    Misclassification costs over (predicted, actual) pairs.

    Correct predictions cost 0. A false negative is a positive record
    predicted as negative; a false positive is the reverse.
    """
    false_positive: float
    false_negative: float
    positive_label: str = const.LABEL_YES
    negative_label: str = const.LABEL_NO

    def __post_init__(self) -> None:
        if self.false_positive < 0 or self.false_negative < 0:
            raise ValueError("Misclassification costs must be non-negative.")

    def cell(self, predicted: str, actual: str) -> float:
        """Return the loss of predicting ``predicted`` for a record labelled ``actual``."""
        labels = (self.positive_label, self.negative_label)
        if predicted not in labels or actual not in labels:
            raise ValueError(f"Unknown label pair: ({predicted!r}, {actual!r})")
        if predicted == actual:
            return 0.0
        if predicted == self.negative_label:
            return float(self.false_negative)
        return float(self.false_positive)

    def as_array(self) -> np.ndarray:
        """Return the costs in the ``[[TN, FP], [FN, TP]]`` layout."""
        return np.array(
            [
                [0.0, float(self.false_positive)],
                [float(self.false_negative), 0.0],
            ]
        )

    def class_weight(self) -> dict[str, float]:
        """
        Per-class weights equivalent to this matrix for a two-class tree.

        Errors on a positive record cost ``false_negative``, errors on a
        negative record cost ``false_positive``; weighting each class by the
        cost of misclassifying it rescales the class priors the tree splits
        and prunes on.
        """
        return {
            self.positive_label: float(self.false_negative),
            self.negative_label: float(self.false_positive),
        }


@dataclass(frozen=True)
class StrategyConfig:
    """
    One imbalance-handling strategy.

    Parameters
    ----------
    name : str
        Row name in the comparison table.
    selection_metric : {"accuracy", "kappa"}
        CV metric used to pick the hyperparameter.
    instance_weights : Mapping[str, float] or None
        Weight per label, expanded to one weight per training record.
    cost_matrix : CostMatrix or None
        Asymmetric misclassification costs for the tree.
    resampling : {"none", "down", "smote"}
        Resampling applied to the training part of every CV fold.
    """
    name: str
    selection_metric: SelectionMetric = "accuracy"
    instance_weights: Optional[Mapping[str, float]] = None
    cost_matrix: Optional[CostMatrix] = None
    resampling: Resampling = "none"

    def __post_init__(self) -> None:
        if self.selection_metric not in SELECTION_METRICS:
            raise ValueError(f"selection_metric must be one of: {', '.join(SELECTION_METRICS)}")
        if self.resampling not in RESAMPLING_METHODS:
            raise ValueError(f"resampling must be one of: {', '.join(RESAMPLING_METHODS)}")
        if self.instance_weights is not None and self.cost_matrix is not None:
            raise ValueError(
                f"Strategy {self.name!r}: instance_weights and cost_matrix are mutually exclusive."
            )
        # Per-record weights cannot follow records through a resampler
        if self.instance_weights is not None and self.resampling != "none":
            raise ValueError(
                f"Strategy {self.name!r}: instance_weights cannot be combined with resampling."
            )
        if self.instance_weights is not None:
            bad = {k: v for k, v in self.instance_weights.items() if v <= 0}
            if bad:
                raise ValueError(f"Strategy {self.name!r}: weights must be positive, got {bad}")
            object.__setattr__(self, "instance_weights", MappingProxyType(dict(self.instance_weights)))

    def __reduce__(self):
        # mappingproxy does not pickle; rebuild from a plain dict
        weights = dict(self.instance_weights) if self.instance_weights is not None else None
        return type(self), (self.name, self.selection_metric, weights, self.cost_matrix, self.resampling)


def minority_weight(
    y: pd.Series,
    positive_label: str = const.LABEL_YES,
    negative_label: str = const.LABEL_NO,
) -> float:
    """
    Weight for positive records: count of negatives over count of positives.

    Parameters
    ----------
    y : pd.Series
        Training labels.
    positive_label : str
        Minority label.
    negative_label : str
        Majority label.

    Returns
    -------
    float
        The weight, e.g. 1233 / 237 = 5.2025 for the full attrition data.

    Raises
    ------
    ValueError
        If there are no positive records.
    """
    counts = pd.Series(y).value_counts()
    n_pos = int(counts.get(positive_label, 0))
    n_neg = int(counts.get(negative_label, 0))
    if n_pos == 0:
        raise ValueError(f"Cannot compute minority weight: no {positive_label!r} records.")
    return n_neg / n_pos


def instance_weight_vector(y: pd.Series, weights: Mapping[str, float]) -> np.ndarray:
    """Expand a label -> weight mapping to one weight per record."""
    labels = pd.Series(y)
    missing = set(labels.unique()) - set(weights)
    if missing:
        raise ValueError(f"No weight given for labels: {', '.join(sorted(map(str, missing)))}")
    return labels.map(dict(weights)).to_numpy(dtype=np.float64)


def build_strategies(
    y_train: pd.Series,
    positive_label: str = const.LABEL_YES,
    negative_label: str = const.LABEL_NO,
) -> tuple[StrategyConfig, ...]:
    """
    Build the eight strategies in comparison order.

    Parameters
    ----------
    y_train : pd.Series
        Training labels; only used for the weight of the ``Weighted`` strategy.
    positive_label : str
        Minority label.
    negative_label : str
        Majority label.

    Returns
    -------
    tuple[StrategyConfig, ...]
        Original, Kappa, Weighted, Cost FN, Cost FP, Down, SMOTE, All.
    """
    weight = minority_weight(y_train, positive_label, negative_label)

    return (
        StrategyConfig(name=mconst.STRATEGY_ORIGINAL, selection_metric="accuracy"),
        StrategyConfig(name=mconst.STRATEGY_KAPPA, selection_metric="kappa"),
        StrategyConfig(
            name=mconst.STRATEGY_WEIGHTED,
            selection_metric="accuracy",
            instance_weights={positive_label: weight, negative_label: 1.0},
        ),
        StrategyConfig(
            name=mconst.STRATEGY_COST_FN,
            selection_metric="accuracy",
            cost_matrix=CostMatrix(
                false_positive=mconst.COST_LIGHT,
                false_negative=mconst.COST_HEAVY,
                positive_label=positive_label,
                negative_label=negative_label,
            ),
        ),
        StrategyConfig(
            name=mconst.STRATEGY_COST_FP,
            selection_metric="accuracy",
            cost_matrix=CostMatrix(
                false_positive=mconst.COST_HEAVY,
                false_negative=mconst.COST_LIGHT,
                positive_label=positive_label,
                negative_label=negative_label,
            ),
        ),
        StrategyConfig(name=mconst.STRATEGY_DOWN, selection_metric="accuracy", resampling="down"),
        StrategyConfig(name=mconst.STRATEGY_SMOTE, selection_metric="accuracy", resampling="smote"),
        StrategyConfig(name=mconst.STRATEGY_ALL, selection_metric="kappa", resampling="down"),
    )
