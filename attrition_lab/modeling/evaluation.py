from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass, fields
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.metrics import classification_report, confusion_matrix

import attrition_lab.io_utils as io_utils
import attrition_lab.modeling.constants as mconst
import attrition_lab.prepare.constants as const
from attrition_lab.modeling.train import FittedModel

logger = logging.getLogger(__name__)


class UndefinedMetricWarning(UserWarning):
    """Issued when a metric has a zero denominator and is reported as NaN."""


@dataclass(frozen=True)
class ConfusionMatrix:
    """Counts of (predicted, actual) pairs for a two-class problem."""

    tp: int
    fp: int
    fn: int
    tn: int
    positive_label: str = const.LABEL_YES
    negative_label: str = const.LABEL_NO

    @property
    def total(self) -> int:
        return self.tp + self.fp + self.fn + self.tn

    def as_frame(self) -> pd.DataFrame:
        """Predicted labels as rows, actual labels as columns, positive first."""
        labels = [self.positive_label, self.negative_label]
        return pd.DataFrame(
            [[self.tp, self.fp], [self.fn, self.tn]],
            index=pd.Index(labels, name="Predicted"),
            columns=pd.Index(labels, name="Actual"),
        )


@dataclass(frozen=True)
class MetricsRow:
    """Test-set metrics of one strategy."""

    name: str
    accuracy: float
    precision: float
    recall: float
    specificity: float
    kappa: float
    f1: float
    balanced_accuracy: float

    def as_dict(self) -> dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def build_confusion_matrix(
    y_true,
    y_pred,
    positive_label: str = const.LABEL_YES,
    negative_label: str = const.LABEL_NO,
) -> ConfusionMatrix:
    """
    Count predictions against actual labels.

    Parameters
    ----------
    y_true
        Actual labels.
    y_pred
        Predicted labels.
    positive_label
        Label counted as positive.
    negative_label
        Label counted as negative.

    Returns
    -------
    ConfusionMatrix
        TP, FP, FN and TN counts.
    """
    # sklearn: rows are actual, columns are predicted
    cm = confusion_matrix(y_true, y_pred, labels=[positive_label, negative_label])
    return ConfusionMatrix(
        tp=int(cm[0, 0]),
        fn=int(cm[0, 1]),
        fp=int(cm[1, 0]),
        tn=int(cm[1, 1]),
        positive_label=positive_label,
        negative_label=negative_label,
    )


def _ratio(numerator: float, denominator: float, metric: str, name: str) -> float:
    if denominator == 0:
        warnings.warn(
            f"{name}: {metric} is undefined (zero denominator), reported as NaN",
            UndefinedMetricWarning,
            stacklevel=3,
        )
        return float("nan")
    return float(numerator) / float(denominator)


def cohen_kappa(cm: ConfusionMatrix, name: str = "") -> float:
    """
    Cohen's kappa from the counts.

    Expected agreement is computed from the predicted and actual marginals:
    ``p_e = (pred_pos * act_pos + pred_neg * act_neg) / n**2``.
    """
    n = cm.total
    if n == 0:
        return _ratio(0.0, 0.0, "kappa", name)

    observed = (cm.tp + cm.tn) / n
    pred_pos, pred_neg = cm.tp + cm.fp, cm.fn + cm.tn
    act_pos, act_neg = cm.tp + cm.fn, cm.fp + cm.tn
    expected = (pred_pos * act_pos + pred_neg * act_neg) / (n * n)
    return _ratio(observed - expected, 1.0 - expected, "kappa", name)


def metrics_from_confusion(name: str, cm: ConfusionMatrix) -> MetricsRow:
    """
    Derive all metrics from a confusion matrix.

    A metric whose denominator is zero (e.g. precision with no positive
    predictions) is NaN and an ``UndefinedMetricWarning`` is issued; the row
    is still complete.

    Parameters
    ----------
    name
        Strategy name.
    cm
        Confusion matrix on the test set.

    Returns
    -------
    MetricsRow
        Accuracy, precision, recall, specificity, kappa, F1 and balanced accuracy.
    """
    accuracy = _ratio(cm.tp + cm.tn, cm.total, "accuracy", name)
    precision = _ratio(cm.tp, cm.tp + cm.fp, "precision", name)
    recall = _ratio(cm.tp, cm.tp + cm.fn, "recall", name)
    specificity = _ratio(cm.tn, cm.tn + cm.fp, "specificity", name)
    kappa = cohen_kappa(cm, name)

    if math.isnan(precision) or math.isnan(recall):
        f1 = float("nan")
    else:
        f1 = _ratio(2 * precision * recall, precision + recall, "f1", name)
    balanced_accuracy = (recall + specificity) / 2

    return MetricsRow(
        name=name,
        accuracy=accuracy,
        precision=precision,
        recall=recall,
        specificity=specificity,
        kappa=kappa,
        f1=f1,
        balanced_accuracy=balanced_accuracy,
    )


def log_metrics(row: MetricsRow) -> None:
    logger.info(
        "%s: accuracy=%.4f, precision=%.4f, recall=%.4f, specificity=%.4f, kappa=%.4f",
        row.name,
        row.accuracy,
        row.precision,
        row.recall,
        row.specificity,
        row.kappa,
    )


def predict_confusion(
    model: FittedModel,
    x_test: pd.DataFrame,
    y_test: pd.Series,
    positive_label: str = const.LABEL_YES,
    negative_label: str = const.LABEL_NO,
) -> ConfusionMatrix:
    """Predict the test set and count the outcomes."""
    y_pred = model.predict(x_test)
    return build_confusion_matrix(y_test, y_pred, positive_label, negative_label)


def evaluate_model(
    model: FittedModel,
    x_test: pd.DataFrame,
    y_test: pd.Series,
    positive_label: str = const.LABEL_YES,
    negative_label: str = const.LABEL_NO,
) -> MetricsRow:
    """
    Score a fitted model on the test set.

    Neither the model nor the test data is modified, so repeated calls give
    identical rows.

    Parameters
    ----------
    model
        Fitted strategy model.
    x_test
        Test features.
    y_test
        Test labels.
    positive_label
        Label counted as positive.
    negative_label
        Label counted as negative.

    Returns
    -------
    MetricsRow
        Metrics of the strategy on the test set.
    """
    cm = predict_confusion(model, x_test, y_test, positive_label, negative_label)
    row = metrics_from_confusion(model.name, cm)
    log_metrics(row)
    return row


def save_evaluation_artifacts(
    model: FittedModel,
    x_test: pd.DataFrame,
    y_test: pd.Series,
    out_dir: Path,
    positive_label: str = const.LABEL_YES,
    negative_label: str = const.LABEL_NO,
) -> None:
    """
    Write the classification report, confusion matrix and tree of one strategy.

    Parameters
    ----------
    model
        Fitted strategy model.
    x_test
        Test features.
    y_test
        Test labels.
    out_dir
        Strategy folder for the artifacts.
    positive_label
        Label counted as positive.
    negative_label
        Label counted as negative.
    """
    out_dir.mkdir(parents=True, exist_ok=True)

    y_pred = model.predict(x_test)
    cm = build_confusion_matrix(y_test, y_pred, positive_label, negative_label)
    report = classification_report(
        y_test,
        y_pred,
        labels=[positive_label, negative_label],
        digits=4,
        zero_division=np.nan,
    )
    io_utils.save_text(report, out_dir / mconst.REPORT_TXT)
    io_utils.save_csv(cm.as_frame(), out_dir / mconst.CONFUSION_MATRIX_CSV, index=True)
    io_utils.save_text(model.describe_tree(), out_dir / mconst.TREE_TXT)
