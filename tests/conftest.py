import numpy as np
import pandas as pd
import pytest

from census_income.config import RAW_COLUMNS
from census_income.models.classification import (
    LogisticRegressionTrainer, LassoTrainer, RidgeTrainer,
    DecisionTreeTrainer, RandomForestTrainer, GradientBoostedTreesTrainer
)

POOLS = {
    "workclass": ["Private", "Self-emp-not-inc", "State-gov"],
    "education": ["Bachelors", "HS-grad", "Masters"],
    "marital_status": ["Married-civ-spouse", "Never-married"],
    "occupation": ["Adm-clerical", "Exec-managerial", "Sales"],
    "relationship": ["Husband", "Not-in-family", "Own-child"],
    "race": ["Black", "White"],
    "sex": ["Female", "Male"],
    "native_country": ["Mexico", "United-States"],
}


def make_raw_frame(n=120, seed=0, labels=("<=50K", ">50K")):
    """Raw census-like records; income is >50K exactly when age > 45."""
    rng = np.random.default_rng(seed)
    rows = []
    for i in range(n):
        age = 25 + (i * 7) % 45
        row = {
            "age": age,
            "fnlwgt": int(rng.integers(20000, 400000)),
            "education_num": 9 + i % 5,
            "capital_gain": int(rng.choice([0, 0, 0, 5000])),
            "capital_loss": 0,
            "hours_per_week": 30 + (i * 3) % 30,
            "income": labels[1] if age > 45 else labels[0],
        }
        for j, (field, pool) in enumerate(POOLS.items()):
            row[field] = pool[(i + j) % len(pool)]
        rows.append(row)
    return pd.DataFrame(rows)[RAW_COLUMNS]


def write_census_file(df, path, banner=None):
    """Write records the way the census files are laid out: no header, ', ' separators."""
    lines = [banner] if banner else []
    for rec in df.itertuples(index=False):
        lines.append(", ".join(str(v) for v in rec))
    path.write_text("\n".join(lines) + "\n\n")
    return path


@pytest.fixture
def raw_train():
    return make_raw_frame(120, seed=0)


@pytest.fixture
def raw_test():
    return make_raw_frame(60, seed=1, labels=("<=50K.", ">50K."))


@pytest.fixture
def separable_data():
    """Balanced data where 'signal' alone separates the classes with a wide margin."""
    n = 60
    rng = np.random.default_rng(7)
    signal = np.concatenate([-np.linspace(1, 3, n), np.linspace(1, 3, n)])
    X = pd.DataFrame({
        "signal": signal,
        "noise_a": rng.normal(size=2 * n),
        "noise_b": rng.normal(size=2 * n),
    })
    y = np.array([0] * n + [1] * n)
    return X, y


@pytest.fixture
def fast_trainers():
    return [
        LogisticRegressionTrainer(),
        LassoTrainer(Cs=np.logspace(-2, 2, 5), cv_folds=3),
        RidgeTrainer(Cs=np.logspace(-2, 2, 5), cv_folds=3),
        DecisionTreeTrainer(cv_folds=3, max_alphas=10),
        RandomForestTrainer(n_estimators=30, min_samples_leaf=1,
                            max_features_candidates=[1, 2, 3], n_jobs=1),
        GradientBoostedTreesTrainer(
            params={"learning_rate": 0.3, "max_depth": 3, "subsample": 1.0, "colsample_bytree": 1.0},
            max_rounds=30, early_stopping_rounds=5, cv_folds=3,
        ),
    ]
