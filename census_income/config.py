from pathlib import Path

import numpy as np

# Random seed for reproducibility
RANDOM_STATE = 42

# Data paths
DATA_PATH = Path("data")
TRAIN_DATA_FILE = DATA_PATH/"adult.data"
TEST_DATA_FILE = DATA_PATH/"adult.test"
TEST_SKIPROWS = 1  # adult.test opens with a "|1x3 Cross validator" line
OUTPUT_DIR = Path("outputs")

# Raw schema (file order)
RAW_COLUMNS = [
    "age", "workclass", "fnlwgt", "education", "education_num",
    "marital_status", "occupation", "relationship", "race", "sex",
    "capital_gain", "capital_loss", "hours_per_week", "native_country",
    "income",
]
LABEL_COL = "income"
CATEGORICAL_COLS = [
    "workclass", "education", "marital_status", "occupation",
    "relationship", "race", "sex", "native_country",
]
NUMERIC_COLS = ["age", "capital_gain", "capital_loss", "hours_per_week"]
DROP_COLS = ["fnlwgt", "education_num"]
INTERACTION = ("age", "hours_per_week")

# Cleaning
MISSING_SENTINEL = "?"
DEGENERATE_CATEGORIES = {"native_country": ["Holand-Netherlands"]}
TRAIN_LABELS = {"<=50K": 0, ">50K": 1}
TEST_LABELS = {"<=50K.": 0, ">50K.": 1}

# Model parameters
CV_FOLDS = 10
PENALTY_GRID = np.logspace(-4, 4, 30)  # inverse regularization strengths (C)
DT_MAX_ALPHAS = 40
RF_N_ESTIMATORS = 500
RF_MIN_SAMPLES_LEAF = 5
RF_MAX_FEATURES_CANDIDATES = [2, 4, 6, 8, 10, 12]
XGB_PARAMS = {
    "learning_rate": 0.1,
    "max_depth": 6,
    "subsample": 0.8,
    "colsample_bytree": 0.8,
}
XGB_MAX_ROUNDS = 1000
XGB_EARLY_STOPPING_ROUNDS = 20
XGB_CV_FOLDS = 5
DECISION_THRESHOLD = 0.5

# Runtime
LOG_LEVEL = "INFO"
N_JOBS = 1  # >1 trains the six models in parallel
