"""
Compare imbalance-handling strategies for a decision tree on attrition data.

Usage:
    python -m attrition_lab.modeling.run_experiments path/to/attrition.csv --out-dir artifacts_model

Writes one folder per strategy (classification report, confusion matrix,
tree rendering, optionally the fitted model) plus metrics_summary.csv and
cv_summary.csv in the output folder.
"""

from __future__ import annotations

import argparse
from pathlib import Path

import joblib
import pandas as pd

import attrition_lab.io_utils as io_utils
import attrition_lab.logging_utils as logging_utils
import attrition_lab.modeling.constants as mconst
import attrition_lab.modeling.data_split as data_split
import attrition_lab.modeling.evaluation as evaluation
import attrition_lab.modeling.experiment as experiment
import attrition_lab.modeling.report as report
import attrition_lab.modeling.strategies as strategies
import attrition_lab.modeling.train as train
import attrition_lab.prepare.constants as const
import attrition_lab.prepare.dataset as dataset


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Train a decision tree under eight class-imbalance strategies and compare them."
    )
    parser.add_argument("data_csv", type=Path, help="Path to the attrition CSV")
    parser.add_argument("--out-dir", type=Path, default=Path("artifacts_model"))
    parser.add_argument("--label-col", type=str, default=const.LABEL_COL)
    parser.add_argument("--seed", type=int, default=mconst.RANDOM_STATE, help="Random seed (default: 42)")
    parser.add_argument(
        "--train-fraction",
        type=float,
        default=mconst.TRAIN_FRACTION,
        help="Share of records used for training (default: 0.8)",
    )
    parser.add_argument("--folds", type=int, default=mconst.CV_FOLDS, help="CV folds (default: 10)")
    parser.add_argument("--repeats", type=int, default=mconst.CV_REPEATS, help="CV repeats (default: 5)")
    parser.add_argument(
        "--n-jobs",
        type=int,
        default=1,
        help="Strategies trained in parallel (default: 1, -1 uses all cores)",
    )
    parser.add_argument(
        "--save-models",
        action="store_true",
        help="Also save each fitted pipeline as model.joblib",
    )
    return parser.parse_args(argv)


def strategy_dir(out_dir: Path, name: str) -> Path:
    """Folder for the artifacts of one strategy."""
    return out_dir / name.lower().replace(" ", "_")


def save_strategy_artifacts(
    outcome: experiment.StrategyOutcome,
    split: data_split.SplitData,
    out_dir: Path,
    save_model: bool,
) -> None:
    """Write the evaluation artifacts (and optionally the model) of a successful strategy."""
    exp_dir = strategy_dir(out_dir, outcome.name)
    evaluation.save_evaluation_artifacts(outcome.model, split.x_test, split.y_test, exp_dir)
    if save_model:
        joblib.dump(outcome.model.pipeline, exp_dir / mconst.MODEL_JOBLIB)


def main(argv: list[str] | None = None) -> int:
    """
    Run the full comparison.

    Returns
    -------
    int
        Exit code:
        - 0 when every strategy produced a row
        - 1 when at least one strategy failed to train
        - 2 on input errors
    """
    args = parse_args(argv)
    logger = logging_utils.setup_logger()

    try:
        x, y = dataset.load_dataset(args.data_csv, label_col=args.label_col)
        split = data_split.split_train_test(x, y, train_fraction=args.train_fraction, seed=args.seed)
        cv_spec = train.CVSpec(n_splits=args.folds, n_repeats=args.repeats, seed=args.seed)
        configs = strategies.build_strategies(split.y_train)
    except (FileNotFoundError, io_utils.DatasetFormatError, ValueError) as exc:
        logger.error("%s", exc)
        return 2

    outcomes = experiment.run_strategies(split, configs, cv_spec, n_jobs=args.n_jobs)

    succeeded = [o for o in outcomes if o.ok]
    failed = [o for o in outcomes if not o.ok]

    for outcome in succeeded:
        save_strategy_artifacts(outcome, split, args.out_dir, args.save_models)

    table = report.aggregate((o.name, o.metrics) for o in succeeded)
    metrics_path = report.save_comparison_table(table, args.out_dir)
    report.save_cv_summary(report.cv_summary([o.model for o in succeeded]), args.out_dir)

    with pd.option_context("display.width", 120, "display.float_format", "{:.4f}".format):
        logger.info("Comparison table:\n%s", table.to_string(index=False))
    logger.info("Comparison table saved: %s", metrics_path)

    if failed:
        for outcome in failed:
            logger.error("Strategy %s has no row: %s", outcome.name, outcome.error.reason)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
