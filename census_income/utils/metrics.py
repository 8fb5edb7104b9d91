from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from census_income.config import DECISION_THRESHOLD

METRIC_COLUMNS = ["Accuracy", "Misclassification Rate", "Sensitivity", "Specificity"]


def _ratio(num, den):
    return num / den if den else float("nan")


@dataclass(frozen=True)
class ConfusionMatrix:
    """2x2 counts of predicted vs actual labels (positive class = 1)."""
    tp: int
    fn: int
    fp: int
    tn: int

    @classmethod
    def from_predictions(cls, y_true, y_pred):
        tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
        return cls(tp=int(tp), fn=int(fn), fp=int(fp), tn=int(tn))

    @property
    def total(self):
        return self.tp + self.fn + self.fp + self.tn

    @property
    def accuracy(self):
        return _ratio(self.tp + self.tn, self.total)

    @property
    def misclassification_rate(self):
        return 1.0 - self.accuracy

    @property
    def sensitivity(self):
        return _ratio(self.tp, self.tp + self.fn)

    @property
    def specificity(self):
        return _ratio(self.tn, self.tn + self.fp)

    def as_dict(self):
        return dict(zip(METRIC_COLUMNS, [
            self.accuracy, self.misclassification_rate, self.sensitivity, self.specificity
        ]))


def evaluate_model(fitted, X, y_true, threshold=DECISION_THRESHOLD):
    """Threshold the model's P(label == 1) and count outcomes against y_true."""
    y_prob = fitted.predict_proba(X)
    y_pred = (y_prob >= threshold).astype(int)
    return ConfusionMatrix.from_predictions(np.asarray(y_true).astype(int), y_pred)


def evaluate_models(models, X, y_true, threshold=DECISION_THRESHOLD):
    """Evaluate every fitted model on the same dataset, keeping the input order."""
    return {name: evaluate_model(fitted, X, y_true, threshold) for name, fitted in models.items()}


def format_percent(value):
    if pd.isna(value):
        return "N/A"
    return f"{value * 100:.2f}%"


def metrics_table(confusions):
    """One row per model with percentage strings for each metric."""
    rows = {name: cm.as_dict() for name, cm in confusions.items()}
    table = pd.DataFrame.from_dict(rows, orient="index", columns=METRIC_COLUMNS)
    table.index.name = "Model"
    return table.apply(lambda col: col.map(format_percent))
