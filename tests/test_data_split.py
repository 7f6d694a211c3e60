from __future__ import annotations

import pandas as pd
import pytest

from attrition_lab.modeling.data_split import (
    EmptyDatasetError,
    InvalidFractionError,
    split_train_test,
)


def _yes_share(y: pd.Series) -> float:
    return float((y == "Yes").mean())


def test_split_is_deterministic(xy):
    x, y = xy
    first = split_train_test(x, y, train_fraction=0.7, seed=3)
    second = split_train_test(x, y, train_fraction=0.7, seed=3)

    pd.testing.assert_frame_equal(first.x_train, second.x_train)
    pd.testing.assert_frame_equal(first.x_test, second.x_test)
    pd.testing.assert_series_equal(first.y_train, second.y_train)
    pd.testing.assert_series_equal(first.y_test, second.y_test)


def test_different_seed_gives_different_partition(xy):
    x, y = xy
    first = split_train_test(x, y, train_fraction=0.7, seed=3)
    second = split_train_test(x, y, train_fraction=0.7, seed=4)
    assert list(first.x_test.index) != list(second.x_test.index)


def test_split_is_a_partition(xy):
    x, y = xy
    split = split_train_test(x, y, train_fraction=0.8, seed=42)

    assert len(split.x_train) + len(split.x_test) == len(x)
    assert set(split.x_train.index).isdisjoint(split.x_test.index)
    assert set(split.x_train.index) | set(split.x_test.index) == set(x.index)
    assert list(split.x_train.index) == list(split.y_train.index)
    assert list(split.x_test.index) == list(split.y_test.index)


def test_split_preserves_label_ratio(xy):
    x, y = xy
    split = split_train_test(x, y, train_fraction=0.8, seed=42)

    overall = _yes_share(y)
    assert abs(_yes_share(split.y_train) - overall) < 0.05
    assert abs(_yes_share(split.y_test) - overall) < 0.05


def test_split_leaves_input_untouched(xy):
    x, y = xy
    x_before, y_before = x.copy(), y.copy()
    split_train_test(x, y, train_fraction=0.8, seed=42)
    pd.testing.assert_frame_equal(x, x_before)
    pd.testing.assert_series_equal(y, y_before)


@pytest.mark.parametrize("fraction", [0.0, 1.0, -0.2, 1.5])
def test_invalid_fraction(xy, fraction):
    x, y = xy
    with pytest.raises(InvalidFractionError):
        split_train_test(x, y, train_fraction=fraction, seed=42)


def test_empty_dataset():
    x = pd.DataFrame({"Age": pd.Series([], dtype=int)})
    y = pd.Series([], dtype=object, name="Attrition")
    with pytest.raises(EmptyDatasetError):
        split_train_test(x, y, train_fraction=0.8, seed=42)


def test_errors_are_value_errors():
    assert issubclass(InvalidFractionError, ValueError)
    assert issubclass(EmptyDatasetError, ValueError)
