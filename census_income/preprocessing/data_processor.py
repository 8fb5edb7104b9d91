import re
import numpy as np
import pandas as pd

from census_income.config import (
    RAW_COLUMNS, LABEL_COL, DROP_COLS, MISSING_SENTINEL,
    DEGENERATE_CATEGORIES, TRAIN_LABELS, TEST_LABELS, TEST_SKIPROWS,
    TRAIN_DATA_FILE, TEST_DATA_FILE
)
from census_income.errors import SchemaError
from census_income.utils.logger import get_logger

logger = get_logger(__name__)


def load_data(data_file, skiprows=0):
    """Load a headerless census file with the fixed raw column order."""
    df = pd.read_csv(
        data_file,
        header=None,
        names=RAW_COLUMNS,
        skiprows=skiprows,
        skipinitialspace=True,
        skip_blank_lines=True,
    )
    logger.info("Loaded %d rows from %s", len(df), data_file)
    return df


def strip_categories(df):
    """Clean categorical values by stripping whitespace."""
    def strip_cat(val):
        if pd.isna(val): return val
        return re.sub(r"\s+", " ", str(val)).strip()

    df = df.copy()
    for c in df.select_dtypes(include=["object", "string"]).columns:
        df[c] = df[c].map(strip_cat)
    return df


def mark_missing(df, sentinel=MISSING_SENTINEL):
    """Replace the missing-value sentinel with NaN in every field."""
    return df.replace(sentinel, np.nan)


def drop_degenerate(df, degenerate=DEGENERATE_CATEGORIES):
    """Drop rows holding category values known to exist only in the training population."""
    keep = pd.Series(True, index=df.index)
    for col, values in degenerate.items():
        if col in df.columns:
            keep &= ~df[col].isin(values)
    n_dropped = int((~keep).sum())
    if n_dropped:
        logger.info("Dropped %d rows with degenerate categories", n_dropped)
    return df[keep]


def process_target(df, label_map, label_col=LABEL_COL):
    """Map the label column to int {0, 1}; an already binary label passes through."""
    labels = df[label_col]
    if pd.api.types.is_integer_dtype(labels) and labels.isin([0, 1]).all():
        return df

    mapped = labels.map(lambda x: label_map.get(_norm_key(x)))
    unknown = labels[mapped.isna()]
    if len(unknown):
        raise SchemaError(
            f"Unrecognized values in '{label_col}': {sorted(set(map(str, unknown)))}; "
            f"expected one of {sorted(label_map)}"
        )
    df = df.copy()
    df[label_col] = mapped.astype("int64")
    return df


def clean_dataset(df, label_map=TRAIN_LABELS):
    """
    Clean a raw (or already clean) census frame.

    Steps: sentinel -> NaN, drop degenerate categories, drop incomplete rows,
    drop redundant columns, binarize the label. Cleaning a clean frame
    returns an identical frame.
    """
    expected = [c for c in RAW_COLUMNS if c not in DROP_COLS]
    missing_cols = [c for c in expected if c not in df.columns]
    if missing_cols:
        raise SchemaError(f"Missing columns: {missing_cols}")

    df = strip_categories(df)
    df = mark_missing(df)
    df = drop_degenerate(df)

    n_before = len(df)
    df = df.dropna(how="any")
    if n_before - len(df):
        logger.info("Dropped %d rows with missing values", n_before - len(df))

    df = df.drop(columns=DROP_COLS, errors="ignore")
    df = process_target(df, label_map)
    return df.reset_index(drop=True)


def load_train(data_file=TRAIN_DATA_FILE):
    """Load and clean the training file."""
    return clean_dataset(load_data(data_file), TRAIN_LABELS)


def load_test(data_file=TEST_DATA_FILE):
    """Load and clean the evaluation file (labels carry a trailing period)."""
    return clean_dataset(load_data(data_file, skiprows=TEST_SKIPROWS), TEST_LABELS)


def _norm_key(s):
    """Normalize string keys for consistent mapping."""
    s = "" if pd.isna(s) else str(s)
    s = re.sub(r"\s+", " ", s).strip()
    return s
