import numpy as np
import pandas as pd
import pytest

from census_income.config import DROP_COLS, TRAIN_LABELS, TEST_LABELS, LABEL_COL
from census_income.errors import SchemaError
from census_income.preprocessing.data_processor import (
    clean_dataset, load_data, load_train, load_test, strip_categories
)
from conftest import write_census_file


def test_clean_removes_missing_and_degenerate_rows(raw_train):
    raw = raw_train.copy()
    raw.loc[0, "workclass"] = "?"
    raw.loc[1, "occupation"] = " ? "
    raw.loc[2, "native_country"] = "Holand-Netherlands"

    df = clean_dataset(raw, TRAIN_LABELS)

    assert len(df) == len(raw) - 3
    assert not df.isna().any().any()
    assert not (df.astype(str) == "?").any().any()
    assert "Holand-Netherlands" not in set(df["native_country"])
    assert list(df.index) == list(range(len(df)))


def test_clean_drops_redundant_columns_and_binarizes_label(raw_train):
    df = clean_dataset(raw_train, TRAIN_LABELS)

    for col in DROP_COLS:
        assert col not in df.columns
    assert set(df[LABEL_COL].unique()) == {0, 1}
    expected = (raw_train["income"] == ">50K").astype(int).values
    np.testing.assert_array_equal(df[LABEL_COL].values, expected)


def test_clean_is_idempotent(raw_train):
    raw = raw_train.copy()
    raw.loc[3, "workclass"] = "?"
    once = clean_dataset(raw, TRAIN_LABELS)
    twice = clean_dataset(once, TRAIN_LABELS)
    pd.testing.assert_frame_equal(once, twice)


def test_evaluation_labels_need_trailing_period_map(raw_test):
    df = clean_dataset(raw_test, TEST_LABELS)
    assert set(df[LABEL_COL].unique()) == {0, 1}

    with pytest.raises(SchemaError):
        clean_dataset(raw_test, TRAIN_LABELS)


def test_unknown_label_raises_schema_error(raw_train):
    raw = raw_train.copy()
    raw.loc[5, "income"] = "50K-ish"
    with pytest.raises(SchemaError, match="50K-ish"):
        clean_dataset(raw, TRAIN_LABELS)


def test_missing_column_raises_schema_error(raw_train):
    with pytest.raises(SchemaError):
        clean_dataset(raw_train.drop(columns=["occupation"]), TRAIN_LABELS)


def test_strip_categories():
    df = pd.DataFrame({"a": ["  x  y ", None], "b": [1, 2]})
    out = strip_categories(df)
    assert out.loc[0, "a"] == "x y"
    assert pd.isna(out.loc[1, "a"])
    assert df.loc[0, "a"] == "  x  y "


def test_load_files_with_census_layout(tmp_path, raw_train, raw_test):
    train_file = write_census_file(raw_train, tmp_path / "adult.data")
    test_file = write_census_file(raw_test, tmp_path / "adult.test", banner="|1x3 Cross validator")

    raw = load_data(train_file)
    assert len(raw) == len(raw_train)
    assert raw.loc[0, "workclass"] == raw_train.loc[0, "workclass"]

    train = load_train(train_file)
    test = load_test(test_file)
    assert list(train.columns) == list(test.columns)
    assert len(test) == len(raw_test)
    assert set(test[LABEL_COL].unique()) == {0, 1}
