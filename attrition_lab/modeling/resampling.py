"""
Resamplers applied inside the training pipeline.

Samplers are the first step of an imbalanced-learn ``Pipeline``, so they only
ever see the training part of a CV fold (and the full train set at refit).
Validation folds and the test set are never resampled. They work on the raw
feature table, before one-hot encoding, so every resampled record keeps one
valid value per categorical column.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from imblearn import FunctionSampler
from imblearn.over_sampling import SMOTE, SMOTEN, SMOTENC
from imblearn.under_sampling import RandomUnderSampler
from sklearn.preprocessing import StandardScaler

import attrition_lab.modeling.constants as mconst
import attrition_lab.prepare.constants as const
from attrition_lab.modeling.strategies import Resampling
from attrition_lab.prepare.dataset import categorical_columns


def build_oversampler(
    x: pd.DataFrame,
    target: dict[str, int],
    k_neighbors: int,
    random_state: int,
):
    """
    Pick the SMOTE variant matching the column types of ``x``.

    SMOTE-NC interpolates numeric columns and takes the most frequent
    neighbour value for categorical ones; SMOTE-N covers tables with only
    categorical columns and plain SMOTE tables with only numeric ones.
    """
    categorical = categorical_columns(x)
    if not categorical:
        return SMOTE(sampling_strategy=target, k_neighbors=k_neighbors, random_state=random_state)
    if len(categorical) == x.shape[1]:
        return SMOTEN(sampling_strategy=target, k_neighbors=k_neighbors, random_state=random_state)
    return SMOTENC(
        categorical_features=[x.columns.get_loc(col) for col in categorical],
        sampling_strategy=target,
        k_neighbors=k_neighbors,
        random_state=random_state,
    )


def smote_then_down(
    x: pd.DataFrame,
    y: pd.Series,
    positive_label: str = const.LABEL_YES,
    perc_over: int = mconst.SMOTE_PERC_OVER,
    perc_under: int = mconst.SMOTE_PERC_UNDER,
    k_neighbors: int = mconst.SMOTE_K_NEIGHBORS,
    random_state: int = mconst.RANDOM_STATE,
) -> tuple[pd.DataFrame, pd.Series]:
    """
    SMOTE the minority class, then down-sample the majority class.

    For ``n`` minority records, ``n * perc_over / 100`` synthetic minority
    records are built from nearest minority neighbours; the majority class is
    then randomly reduced to ``perc_under`` percent of the synthetic count.
    With the defaults (200/200) a fold with ``n`` minority records ends with
    ``3n`` minority and ``4n`` majority records.

    Numeric columns are standardised for the neighbour search and mapped
    back afterwards, so the result has the columns and value ranges of ``x``.

    Parameters
    ----------
    x : pd.DataFrame
        Raw training features (numeric and categorical columns).
    y : pd.Series
        Training labels.
    positive_label : str
        Minority label.
    perc_over : int
        Synthetic minority records, in percent of the minority count.
    perc_under : int
        Kept majority records, in percent of the synthetic count.
    k_neighbors : int
        Neighbours used for interpolation.
    random_state : int
        Seed of both samplers.

    Returns
    -------
    tuple[pd.DataFrame, pd.Series]
        Resampled features and labels.
    """
    frame = pd.DataFrame(x).reset_index(drop=True)
    labels = pd.Series(np.asarray(y), name=getattr(y, "name", None))

    n_pos = int((labels == positive_label).sum())
    if n_pos == 0:
        raise ValueError(f"SMOTE needs {positive_label!r} records, found none.")

    n_synthetic = n_pos * perc_over // 100
    # SMOTE needs k neighbours besides the record itself
    k = min(k_neighbors, n_pos - 1)
    if k < 1:
        raise ValueError(f"SMOTE needs at least 2 {positive_label!r} records, found {n_pos}.")

    categorical = categorical_columns(frame)
    numeric = [col for col in frame.columns if col not in categorical]
    work = frame.astype({col: "float64" for col in numeric})
    scaler = None
    if numeric:
        scaler = StandardScaler().fit(work[numeric])
        work[numeric] = scaler.transform(work[numeric])

    oversampler = build_oversampler(work, {positive_label: n_pos + n_synthetic}, k, random_state)
    x_over, y_over = oversampler.fit_resample(work, labels)

    y_over = pd.Series(np.asarray(y_over), name=labels.name)
    majority = y_over[y_over != positive_label].value_counts()
    target = n_synthetic * perc_under // 100
    under = RandomUnderSampler(
        sampling_strategy={label: min(int(count), target) for label, count in majority.items()},
        random_state=random_state,
    )
    x_res, y_res = under.fit_resample(x_over, y_over)

    x_res = pd.DataFrame(x_res, columns=frame.columns).reset_index(drop=True)
    if scaler is not None:
        x_res[numeric] = scaler.inverse_transform(x_res[numeric])
    return x_res, pd.Series(np.asarray(y_res), name=labels.name)


def build_sampler(
    resampling: Resampling,
    seed: int,
    positive_label: str = const.LABEL_YES,
):
    """
    Create the sampler step for a resampling method.

    Parameters
    ----------
    resampling : {"none", "down", "smote"}
        Resampling method of the strategy.
    seed : int
        Random seed of the sampler.
    positive_label : str
        Minority label.

    Returns
    -------
    imblearn sampler or None
        ``None`` when no resampling is requested.
    """
    if resampling == "none":
        return None
    if resampling == "down":
        return RandomUnderSampler(sampling_strategy="auto", random_state=seed)
    if resampling == "smote":
        # validate=False hands the mixed-type table to the function unchanged
        return FunctionSampler(
            func=smote_then_down,
            kw_args={"positive_label": positive_label, "random_state": seed},
            validate=False,
        )
    raise ValueError(f"Unknown resampling method: {resampling}")
