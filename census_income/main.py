from pathlib import Path

import numpy as np

from census_income.config import (
    RANDOM_STATE, TRAIN_DATA_FILE, TEST_DATA_FILE, OUTPUT_DIR,
    CATEGORICAL_COLS, N_JOBS
)
from census_income.preprocessing.data_processor import load_train, load_test
from census_income.preprocessing.exploration import (
    label_balance, positive_rate_by_category, numeric_summary_by_label
)
from census_income.preprocessing.encoder import build_design_matrices
from census_income.models.classification import create_trainers, train_models
from census_income.utils.metrics import evaluate_models, metrics_table
from census_income.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def explore(train_df):
    """Log descriptive summaries of the cleaned training data."""
    logger.info("Label balance:\n%s", label_balance(train_df))
    logger.info("Numeric fields by label:\n%s", numeric_summary_by_label(train_df))
    for field in CATEGORICAL_COLS:
        logger.info("Positive rate by %s:\n%s", field, positive_rate_by_category(train_df, field).head(10))


def run_pipeline(train_path=TRAIN_DATA_FILE, test_path=TEST_DATA_FILE, trainers=None, n_jobs=N_JOBS):
    """Clean, encode, fit the six models and return their metric table on the test set."""
    np.random.seed(RANDOM_STATE)

    # 1. Ingestion & cleaning
    train_df = load_train(train_path)
    test_df = load_test(test_path)
    logger.info("Clean rows: train=%d, test=%d", len(train_df), len(test_df))

    # 2. Exploration
    explore(train_df)

    # 3. Design matrices (vocabulary captured from training data only)
    X_train, y_train, X_test, y_test, encoder = build_design_matrices(train_df, test_df)

    # 4. Model fitting
    trainers = create_trainers() if trainers is None else trainers
    report = train_models(trainers, X_train, y_train, n_jobs=n_jobs)
    for name, exc in report.failures.items():
        logger.error("%s excluded from the comparison: %s", name, exc)

    # 5. Evaluation
    confusions = evaluate_models(report.models, X_test, y_test)
    for name, cm in confusions.items():
        logger.info("[%s] TP=%d FN=%d FP=%d TN=%d", name, cm.tp, cm.fn, cm.fp, cm.tn)
    return metrics_table(confusions)


def main():
    setup_logging()

    table = run_pipeline()

    results_dir = Path(OUTPUT_DIR) / "results"
    results_dir.mkdir(parents=True, exist_ok=True)
    table.to_csv(results_dir / "model_comparison.csv")

    print("\nModel comparison (evaluation set):")
    print(table.to_string())
    print(f"\nSaved to: {results_dir / 'model_comparison.csv'}")


if __name__ == "__main__":
    main()
