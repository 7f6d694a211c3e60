from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd
from sklearn.model_selection import train_test_split

import attrition_lab.modeling.constants as mconst

logger = logging.getLogger(__name__)


class InvalidFractionError(ValueError):
    """Raised when the train fraction is not strictly between 0 and 1."""


class EmptyDatasetError(ValueError):
    """Raised when there is nothing to split."""


@dataclass(frozen=True)
class SplitData:
    """Train/test partition of the dataset."""

    x_train: pd.DataFrame
    x_test: pd.DataFrame
    y_train: pd.Series
    y_test: pd.Series


def split_train_test(
    x: pd.DataFrame,
    y: pd.Series,
    train_fraction: float = mconst.TRAIN_FRACTION,
    seed: int = mconst.RANDOM_STATE,
) -> SplitData:
    """Split data into train and test sets, stratified by label.

    Records are drawn independently within each label, so both parts keep
    the label proportions of the full dataset. The same inputs and seed
    always give the same partition in the same order.

    Parameters
    ----------
    x
        Features.
    y
        Labels aligned with ``x``.
    train_fraction
        Share of records that go to the train set, in (0, 1).
    seed
        Random seed of the draw.

    Returns
    -------
    SplitData
        Train/test partition.

    Raises
    ------
    InvalidFractionError
        If ``train_fraction`` is outside (0, 1).
    EmptyDatasetError
        If the dataset has no records.
    """
    if not 0.0 < train_fraction < 1.0:
        raise InvalidFractionError(f"train_fraction must be in (0, 1), got {train_fraction}")
    if len(x) == 0:
        raise EmptyDatasetError("Cannot split an empty dataset.")
    if len(x) != len(y):
        raise ValueError(f"x and y length mismatch: {len(x)} != {len(y)}")

    x_train, x_test, y_train, y_test = train_test_split(
        x,
        y,
        train_size=train_fraction,
        random_state=seed,
        stratify=y,
    )
    logger.info(
        "Split: train=%d (minority share %.3f), test=%d (minority share %.3f)",
        len(x_train),
        _minority_share(y_train),
        len(x_test),
        _minority_share(y_test),
    )
    return SplitData(x_train=x_train, x_test=x_test, y_train=y_train, y_test=y_test)


def _minority_share(y: pd.Series) -> float:
    counts = y.value_counts(normalize=True)
    return float(counts.min()) if len(counts) > 1 else 0.0
