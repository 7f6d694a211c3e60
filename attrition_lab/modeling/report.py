from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import pandas as pd

import attrition_lab.io_utils as io_utils
import attrition_lab.modeling.constants as mconst
from attrition_lab.modeling.evaluation import MetricsRow
from attrition_lab.modeling.train import FittedModel

METRIC_COLUMNS = ("accuracy", "precision", "recall", "specificity", "kappa", "f1", "balanced_accuracy")


def aggregate(rows: Iterable[tuple[str, MetricsRow]]) -> pd.DataFrame:
    """Collect per-strategy metrics into one table, keeping the given order.

    Parameters
    ----------
    rows
        ``(strategy name, metrics row)`` pairs in registry order.

    Returns
    -------
    pd.DataFrame
        One row per strategy: ``strategy`` plus the metric columns.
    """
    records = []
    for name, row in rows:
        record = {"strategy": name}
        record.update({col: getattr(row, col) for col in METRIC_COLUMNS})
        records.append(record)
    return pd.DataFrame(records, columns=["strategy", *METRIC_COLUMNS])


def cv_summary(models: Sequence[FittedModel]) -> pd.DataFrame:
    """Selected hyperparameter and mean CV score per strategy."""
    return pd.DataFrame(
        [
            {
                "strategy": m.name,
                "selection_metric": m.strategy.selection_metric,
                "resampling": m.strategy.resampling,
                "ccp_alpha": m.ccp_alpha,
                "cv_score": m.cv_score,
                "tree_leaves": int(m.tree.get_n_leaves()),
            }
            for m in models
        ],
        columns=["strategy", "selection_metric", "resampling", "ccp_alpha", "cv_score", "tree_leaves"],
    )


def save_comparison_table(table: pd.DataFrame, out_dir: Path) -> Path:
    """Save the comparison table as CSV and return its path."""
    path = out_dir / mconst.METRICS_CSV
    io_utils.save_csv(table, path)
    return path


def save_cv_summary(summary: pd.DataFrame, out_dir: Path) -> Path:
    """Save the CV summary as CSV and return its path."""
    path = out_dir / mconst.CV_SUMMARY_CSV
    io_utils.save_csv(summary, path)
    return path
