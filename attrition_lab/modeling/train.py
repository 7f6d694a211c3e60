from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from imblearn.pipeline import Pipeline
from sklearn.compose import ColumnTransformer
from sklearn.metrics import cohen_kappa_score, make_scorer
from sklearn.model_selection import GridSearchCV, RepeatedStratifiedKFold
from sklearn.preprocessing import OneHotEncoder, StandardScaler
from sklearn.tree import DecisionTreeClassifier, export_text

import attrition_lab.modeling.constants as mconst
import attrition_lab.prepare.constants as const
from attrition_lab.modeling.resampling import build_sampler
from attrition_lab.modeling.strategies import StrategyConfig, instance_weight_vector
from attrition_lab.prepare.dataset import categorical_columns

logger = logging.getLogger(__name__)


class TrainingFailedError(RuntimeError):
    """Raised when a strategy cannot produce a fitted model."""

    def __init__(self, strategy: str, reason: str) -> None:
        super().__init__(f"Training failed for strategy {strategy!r}: {reason}")
        self.strategy = strategy
        self.reason = reason

    def __reduce__(self):
        # rebuilt from both fields when sent back from a worker process
        return type(self), (self.strategy, self.reason)


@dataclass(frozen=True)
class CVSpec:
    """Repeated stratified k-fold setup shared by all strategies."""

    n_splits: int = mconst.CV_FOLDS
    n_repeats: int = mconst.CV_REPEATS
    seed: int = mconst.RANDOM_STATE
    candidates: tuple[float, ...] = mconst.CCP_ALPHAS

    def __post_init__(self) -> None:
        if self.n_splits < 2:
            raise ValueError(f"n_splits must be at least 2, got {self.n_splits}")
        if self.n_repeats < 1:
            raise ValueError(f"n_repeats must be at least 1, got {self.n_repeats}")
        if not self.candidates:
            raise ValueError("Hyperparameter candidate list is empty.")

    def make_cv(self) -> RepeatedStratifiedKFold:
        """Create a fresh splitter; the same seed gives the same folds every time."""
        return RepeatedStratifiedKFold(
            n_splits=self.n_splits,
            n_repeats=self.n_repeats,
            random_state=self.seed,
        )


@dataclass(frozen=True, eq=False)
class FittedModel:
    """Pipeline refit on the full train set with the CV-selected ``ccp_alpha``."""

    name: str
    strategy: StrategyConfig
    pipeline: Pipeline
    ccp_alpha: float
    cv_score: float
    cv_results: pd.DataFrame

    @property
    def tree(self) -> DecisionTreeClassifier:
        return self.pipeline.named_steps["model"]

    def predict(self, x: pd.DataFrame) -> np.ndarray:
        """Predict labels for ``x``."""
        return self.pipeline.predict(x)

    def describe_tree(self) -> str:
        """Text rendering of the induced tree over the encoded feature names."""
        feature_names = self.pipeline.named_steps["preprocess"].get_feature_names_out()
        return export_text(self.tree, feature_names=[str(f) for f in feature_names])


def build_preprocessor(x: pd.DataFrame) -> ColumnTransformer:
    """
    One-hot encode categorical columns and scale numeric ones.

    Parameters
    ----------
    x
        Training features.

    Returns
    -------
    ColumnTransformer
        Unfitted preprocessing step.
    """
    categorical = categorical_columns(x)
    numeric = [col for col in x.columns if col not in categorical]

    return ColumnTransformer(
        transformers=[
            ("num", StandardScaler(), numeric),
            (
                "cat",
                OneHotEncoder(handle_unknown="ignore", sparse_output=False),
                categorical,
            ),
        ],
        verbose_feature_names_out=False,
    )


def build_pipeline(
    x: pd.DataFrame,
    strategy: StrategyConfig,
    seed: int,
    positive_label: str = const.LABEL_YES,
) -> Pipeline:
    """
    Create the training pipeline for a strategy.

    Parameters
    ----------
    x
        Training features, used to pick categorical and numeric columns.
    strategy
        Strategy to configure the pipeline for.
    seed
        Seed of the sampler and the tree.
    positive_label
        Minority label.

    Returns
    -------
    Pipeline
        [sampler] -> preprocess -> model. The sampler works on the raw table
        so categorical columns are resampled as categories.
    """
    class_weight = strategy.cost_matrix.class_weight() if strategy.cost_matrix is not None else None
    model = DecisionTreeClassifier(
        criterion=mconst.CRITERION,
        class_weight=class_weight,
        random_state=seed,
    )

    steps = []
    sampler = build_sampler(strategy.resampling, seed=seed, positive_label=positive_label)
    if sampler is not None:
        steps.append(("sampler", sampler))
    steps.append(("preprocess", build_preprocessor(x)))
    steps.append(("model", model))
    return Pipeline(steps=steps)


def build_scorer(selection_metric: str):
    """Return the ``GridSearchCV`` scoring for a selection metric."""
    if selection_metric == "accuracy":
        return "accuracy"
    if selection_metric == "kappa":
        return make_scorer(cohen_kappa_score)
    raise ValueError(f"Unknown selection metric: {selection_metric}")


def check_trainable(y_train: pd.Series, strategy: StrategyConfig, cv_spec: CVSpec) -> None:
    """
    Reject training data that cannot give two-class folds.

    Raises
    ------
    TrainingFailedError
        If the labels are single-class or a class has fewer records than folds.
    """
    counts = pd.Series(y_train).value_counts()
    if len(counts) < 2:
        raise TrainingFailedError(
            strategy.name,
            f"training labels have a single class ({', '.join(map(str, counts.index))})",
        )
    if int(counts.min()) < cv_spec.n_splits:
        raise TrainingFailedError(
            strategy.name,
            f"class {counts.idxmin()!r} has {int(counts.min())} records, "
            f"fewer than {cv_spec.n_splits} CV folds",
        )


def train_model(
    x_train: pd.DataFrame,
    y_train: pd.Series,
    strategy: StrategyConfig,
    cv_spec: CVSpec | None = None,
    positive_label: str = const.LABEL_YES,
) -> FittedModel:
    """
    Select ``ccp_alpha`` by repeated CV and refit the tree for one strategy.

    Every candidate is scored with the strategy's selection metric averaged
    over all folds and repeats; the best candidate is refit on the whole
    train set. Samplers run inside the pipeline, so only the training part
    of each fold is resampled.

    Parameters
    ----------
    x_train
        Training features.
    y_train
        Training labels.
    strategy
        Imbalance-handling strategy.
    cv_spec
        Folds, repeats, seed and candidate grid. Defaults to 10 x 5 CV.
    positive_label
        Minority label.

    Returns
    -------
    FittedModel
        Refit pipeline with the selected hyperparameter.

    Raises
    ------
    TrainingFailedError
        If the data is degenerate or the classifier cannot be fitted.
    """
    cv_spec = cv_spec or CVSpec()
    check_trainable(y_train, strategy, cv_spec)

    pipeline = build_pipeline(x_train, strategy, seed=cv_spec.seed, positive_label=positive_label)
    search = GridSearchCV(
        pipeline,
        param_grid={"model__ccp_alpha": [float(a) for a in cv_spec.candidates]},
        scoring=build_scorer(strategy.selection_metric),
        cv=cv_spec.make_cv(),
        refit=True,
        error_score="raise",
    )

    fit_params = {}
    if strategy.instance_weights is not None:
        fit_params["model__sample_weight"] = instance_weight_vector(y_train, strategy.instance_weights)

    logger.info(
        "Training %s: metric=%s, resampling=%s, %d candidates x %d folds x %d repeats",
        strategy.name,
        strategy.selection_metric,
        strategy.resampling,
        len(cv_spec.candidates),
        cv_spec.n_splits,
        cv_spec.n_repeats,
    )
    try:
        search.fit(x_train, y_train, **fit_params)
    except (ValueError, RuntimeError) as exc:
        raise TrainingFailedError(strategy.name, str(exc)) from exc

    best = search.best_estimator_
    if len(best.named_steps["model"].classes_) < 2:
        raise TrainingFailedError(strategy.name, "refit saw a single class after resampling")

    cv_score = float(search.best_score_)
    if np.isnan(cv_score):
        raise TrainingFailedError(strategy.name, "every candidate has an undefined CV score")

    ccp_alpha = float(search.best_params_["model__ccp_alpha"])
    logger.info("%s: ccp_alpha=%g, mean CV %s=%.4f", strategy.name, ccp_alpha, strategy.selection_metric, cv_score)

    cv_results = pd.DataFrame(
        {
            "ccp_alpha": [float(a) for a in search.cv_results_["param_model__ccp_alpha"]],
            "mean_score": search.cv_results_["mean_test_score"],
            "std_score": search.cv_results_["std_test_score"],
            "rank": search.cv_results_["rank_test_score"],
        }
    )
    return FittedModel(
        name=strategy.name,
        strategy=strategy,
        pipeline=best,
        ccp_alpha=ccp_alpha,
        cv_score=cv_score,
        cv_results=cv_results,
    )
