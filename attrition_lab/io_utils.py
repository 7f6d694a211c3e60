from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

import attrition_lab.prepare.constants as const


class DatasetFormatError(ValueError):
    """Raised when the input table is missing columns or has invalid labels."""


def read_csv(path: Path) -> pd.DataFrame:
    """Read a CSV file into a dataframe.

    Parameters
    ----------
    path
        Path to the CSV file.

    Returns
    -------
    pd.DataFrame
        Loaded data.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return pd.read_csv(path, encoding=const.ENCODING_UTF8_SIG)


def validate_columns(df: pd.DataFrame, required: Iterable[str]) -> None:
    """Check that all required columns are present.

    Parameters
    ----------
    df
        Dataframe to check.
    required
        Required column names.

    Raises
    ------
    DatasetFormatError
        If any column is missing.
    """
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise DatasetFormatError(f"Missing required columns: {', '.join(missing)}")


def save_csv(df: pd.DataFrame, path: Path, index: bool = False) -> None:
    """Save a dataframe to CSV, creating parent folders."""
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=index, encoding=const.ENCODING_UTF8_SIG)


def save_text(text: str, path: Path) -> None:
    """Save a text artifact, creating parent folders."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
