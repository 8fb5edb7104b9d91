import numpy as np
import pandas as pd

from census_income.config import LABEL_COL, NUMERIC_COLS


def label_balance(df, label_col=LABEL_COL):
    """Count and share of each label value."""
    counts = df[label_col].value_counts().sort_index()
    return pd.DataFrame({"rows": counts, "share": counts / counts.sum()})


def positive_rate_by_category(df, field, label_col=LABEL_COL):
    """Calculate positive rate and lift per category of a field."""
    overall_pos = df[label_col].mean()

    prof = (df
            .groupby(field)[label_col]
            .agg(rows="size", positives="sum", pos_rate="mean")
            .reset_index())
    lift_tbl = (prof
                .assign(
                    lift=lambda d: d["pos_rate"] / overall_pos if overall_pos else np.nan,
                    row_share=lambda d: d["rows"] / d["rows"].sum()
                )
                .sort_values("lift", ascending=False)
                .reset_index(drop=True))

    return lift_tbl[[field, "rows", "row_share", "positives", "pos_rate", "lift"]]


def numeric_summary_by_label(df, numeric_cols=NUMERIC_COLS, label_col=LABEL_COL):
    """Mean and median of the numeric fields for each label value."""
    return df.groupby(label_col)[list(numeric_cols)].agg(["mean", "median"])
