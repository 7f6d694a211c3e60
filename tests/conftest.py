from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from attrition_lab.modeling.data_split import split_train_test
from attrition_lab.modeling.train import CVSpec


def make_attrition_frame(n: int = 400, seed: int = 0) -> pd.DataFrame:
    """Synthetic HR table with a skewed Yes/No Attrition column."""
    rng = np.random.default_rng(seed)

    age = rng.integers(18, 61, size=n)
    income = rng.normal(6500, 2500, size=n).clip(1000, None).round()
    years = rng.integers(0, 25, size=n)
    distance = rng.integers(1, 30, size=n)
    overtime = rng.choice(["Yes", "No"], size=n, p=[0.3, 0.7])
    role = rng.choice(["Sales Executive", "Research Scientist", "Laboratory Technician"], size=n)

    logit = (
        -2.4
        + 1.6 * (overtime == "Yes")
        - 0.05 * (age - 35)
        - 0.0002 * (income - 6500)
        + 0.6 * (role == "Laboratory Technician")
    )
    prob = 1.0 / (1.0 + np.exp(-logit))
    attrition = np.where(rng.random(n) < prob, "Yes", "No")

    return pd.DataFrame(
        {
            "Age": age,
            "Attrition": attrition,
            "DistanceFromHome": distance,
            "EmployeeCount": 1,
            "EmployeeNumber": np.arange(1, n + 1),
            "JobRole": role,
            "MonthlyIncome": income,
            "OverTime": overtime,
            "YearsAtCompany": years,
        }
    )


@pytest.fixture
def attrition_df() -> pd.DataFrame:
    return make_attrition_frame()


@pytest.fixture
def xy(attrition_df):
    y = attrition_df["Attrition"]
    x = attrition_df.drop(columns=["Attrition", "EmployeeCount", "EmployeeNumber"])
    return x, y


@pytest.fixture
def split(xy):
    x, y = xy
    return split_train_test(x, y, train_fraction=0.8, seed=42)


@pytest.fixture
def small_cv() -> CVSpec:
    return CVSpec(n_splits=3, n_repeats=2, seed=7, candidates=(0.02, 0.005, 0.0))
