from __future__ import annotations

import logging

import pandas as pd

import attrition_lab.io_utils as io_utils
import attrition_lab.prepare.constants as const

logger = logging.getLogger(__name__)


def normalize_labels(labels: pd.Series) -> pd.Series:
    """Map label spellings (``yes``, ``1``, ``True`` ...) to ``Yes`` / ``No``.

    Parameters
    ----------
    labels
        Raw label column.

    Returns
    -------
    pd.Series
        Labels with values in ``{"Yes", "No"}``.

    Raises
    ------
    io_utils.DatasetFormatError
        If a value cannot be mapped or is missing.
    """
    mapped = labels.astype(str).str.strip().str.lower().map(const.LABEL_ALIASES)
    unknown = labels[mapped.isna()]
    if not unknown.empty:
        examples = ", ".join(sorted({str(v) for v in unknown.head(5)}))
        raise io_utils.DatasetFormatError(
            f"Column {labels.name!r} has values outside {const.LABELS}: {examples}"
        )
    return mapped.rename(labels.name)


def drop_uninformative_columns(x: pd.DataFrame) -> pd.DataFrame:
    """Remove identifier columns and columns holding a single value."""
    constant = [col for col in x.columns if x[col].nunique(dropna=False) <= 1]
    drop_cols = set(constant) | set(const.ID_COLUMNS) | set(const.CONSTANT_COLUMNS)
    existing = [col for col in x.columns if col in drop_cols]
    if existing:
        logger.info("Dropping uninformative columns: %s", ", ".join(existing))
    return x.drop(columns=existing).copy()


def categorical_columns(x: pd.DataFrame) -> list[str]:
    """Names of the columns treated as categories (text, category and bool dtypes)."""
    return x.select_dtypes(include=["object", "string", "category", "bool"]).columns.tolist()


def build_xy(df: pd.DataFrame, label_col: str = const.LABEL_COL) -> tuple[pd.DataFrame, pd.Series]:
    """Split a raw table into features and the Yes/No label.

    Parameters
    ----------
    df
        Raw dataset with a label column.
    label_col
        Name of the label column.

    Returns
    -------
    tuple[pd.DataFrame, pd.Series]
        Features and labels, both copies of the input.
    """
    io_utils.validate_columns(df, [label_col])

    y = normalize_labels(df[label_col])
    x = drop_uninformative_columns(df.drop(columns=[label_col]))

    counts = y.value_counts()
    logger.info(
        "Dataset: %d records, %d features, %s=%d, %s=%d",
        len(x),
        x.shape[1],
        const.LABEL_YES,
        int(counts.get(const.LABEL_YES, 0)),
        const.LABEL_NO,
        int(counts.get(const.LABEL_NO, 0)),
    )
    return x, y


def load_dataset(path, label_col: str = const.LABEL_COL) -> tuple[pd.DataFrame, pd.Series]:
    """Read the CSV at ``path`` and return features and labels."""
    df = io_utils.read_csv(path)
    return build_xy(df, label_col=label_col)
