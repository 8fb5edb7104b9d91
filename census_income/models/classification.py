from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping

import numpy as np
import pandas as pd
import xgboost as xgb
from joblib import Parallel, delayed
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.linear_model import LogisticRegression, LogisticRegressionCV
from sklearn.tree import DecisionTreeClassifier
from sklearn.ensemble import RandomForestClassifier
from sklearn.model_selection import StratifiedKFold, cross_val_score

from census_income.config import (
    RANDOM_STATE, CV_FOLDS, PENALTY_GRID, DT_MAX_ALPHAS,
    RF_N_ESTIMATORS, RF_MIN_SAMPLES_LEAF, RF_MAX_FEATURES_CANDIDATES,
    XGB_PARAMS, XGB_MAX_ROUNDS, XGB_EARLY_STOPPING_ROUNDS, XGB_CV_FOLDS
)
from census_income.errors import FitError, SchemaError
from census_income.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FittedModel:
    """A trained estimator together with the design-matrix layout it was trained on."""
    name: str
    estimator: Any
    feature_names: tuple
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "feature_names", tuple(self.feature_names))
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    def __reduce__(self):
        # mappingproxy cannot be pickled; rebuild from a plain dict
        return (self.__class__, (self.name, self.estimator, self.feature_names, dict(self.details)))

    def predict_proba(self, X):
        """Return P(label == 1) for every row of a compatible design matrix."""
        if list(X.columns) != list(self.feature_names):
            raise SchemaError(
                f"Design matrix columns do not match the ones '{self.name}' was trained on"
            )
        return self.estimator.predict_proba(X.values)[:, 1]


def validate_design(X, y):
    """Raise FitError when (X, y) cannot be used for fitting."""
    if not isinstance(X, pd.DataFrame):
        raise FitError("Design matrix must be a DataFrame with named columns")
    values = X.to_numpy(dtype=np.float64)
    y = np.asarray(y)
    if not np.isfinite(values).all():
        raise FitError("Design matrix contains non-finite values")
    n_rows, n_cols = values.shape
    if n_rows < n_cols:
        raise FitError(f"Design matrix has fewer rows ({n_rows}) than features ({n_cols})")
    if len(y) != n_rows:
        raise FitError(f"Got {len(y)} labels for {n_rows} rows")
    if not np.isin(y, [0, 1]).all() or len(np.unique(y)) != 2:
        raise FitError("Labels must be binary and contain both classes")
    return values, y.astype(int)


class Trainer:
    """Common fit/predict capability shared by the six model variants."""
    name = None

    def fit(self, X, y):
        values, y = validate_design(X, y)
        estimator, details = self._fit(values, y)
        logger.info("[%s] fitted %s", self.name, _format_details(details))
        return FittedModel(self.name, estimator, tuple(X.columns), details)

    def predict(self, fitted, X):
        return fitted.predict_proba(X)

    def _fit(self, X, y):
        raise NotImplementedError

    def _cv(self, n_splits=CV_FOLDS, y=None):
        if y is not None:
            n_splits = min(n_splits, int(np.bincount(y).min()))
        if n_splits < 2:
            raise FitError(f"Cannot build stratified folds: minority class has {n_splits} row(s)")
        return StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=RANDOM_STATE)


class LogisticRegressionTrainer(Trainer):
    """Plain maximum-likelihood logistic regression, no hyperparameter search."""
    name = "Logistic Regression"

    def __init__(self, max_iter=5000):
        self.max_iter = max_iter

    def _fit(self, X, y):
        pipe = Pipeline(steps=[
            ("scale", StandardScaler()),
            ("clf", LogisticRegression(penalty=None, solver="lbfgs", max_iter=self.max_iter))
        ])
        pipe.fit(X, y)
        return pipe, {"n_coefficients": int(pipe.named_steps["clf"].coef_.size)}


def mean_cv_accuracy(clf):
    """Mean accuracy over folds for each C of a fitted LogisticRegressionCV.

    ``scores_`` is either a dict keyed by the positive class with shape
    (folds, Cs) or an array of shape (folds, 1, Cs), depending on the
    scikit-learn release.
    """
    scores = clf.scores_
    if isinstance(scores, dict):
        scores = scores[clf.classes_[1]]
    scores = np.asarray(scores)
    return scores.reshape(scores.shape[0], -1).mean(axis=0)


class _PenalizedLogisticTrainer(Trainer):
    """Logistic regression over a penalty path; the penalty is picked by k-fold CV error."""
    penalty = None
    solver = None

    def __init__(self, Cs=PENALTY_GRID, cv_folds=CV_FOLDS, max_iter=5000):
        self.Cs = list(Cs)
        self.cv_folds = cv_folds
        self.max_iter = max_iter

    def _fit(self, X, y):
        clf = LogisticRegressionCV(
            Cs=self.Cs,
            cv=self._cv(self.cv_folds, y),
            penalty=self.penalty,
            solver=self.solver,
            scoring="accuracy",
            max_iter=self.max_iter,
            random_state=RANDOM_STATE,
        )
        pipe = Pipeline(steps=[("scale", StandardScaler()), ("clf", clf)])
        pipe.fit(X, y)

        clf = pipe.named_steps["clf"]
        selected_C = float(np.ravel(clf.C_)[0])
        mean_acc = mean_cv_accuracy(clf)
        details = {
            "selected_C": selected_C,
            "cv_error": float(1.0 - mean_acc[int(np.argmin(np.abs(clf.Cs_ - selected_C)))]),
            "n_nonzero": int(np.count_nonzero(clf.coef_)),
        }
        return pipe, details


class LassoTrainer(_PenalizedLogisticTrainer):
    name = "LASSO"
    penalty = "l1"
    solver = "liblinear"


class RidgeTrainer(_PenalizedLogisticTrainer):
    name = "Ridge"
    penalty = "l2"
    solver = "lbfgs"


class DecisionTreeTrainer(Trainer):
    """
    Single CART tree pruned by cost complexity.

    Candidate alphas come from the full tree's pruning path. Unless
    ``ccp_alpha`` is given, the largest alpha whose mean CV error lies within
    one standard error of the minimum is used (the smallest such tree).
    """
    name = "Decision Tree"

    def __init__(self, ccp_alpha=None, cv_folds=CV_FOLDS, max_alphas=DT_MAX_ALPHAS):
        self.ccp_alpha = ccp_alpha
        self.cv_folds = cv_folds
        self.max_alphas = max_alphas

    def candidate_alphas(self, X, y):
        path = DecisionTreeClassifier(random_state=RANDOM_STATE).cost_complexity_pruning_path(X, y)
        alphas = np.unique(np.clip(path.ccp_alphas, 0.0, None))
        if len(alphas) > self.max_alphas:
            idx = np.unique(np.linspace(0, len(alphas) - 1, self.max_alphas).round().astype(int))
            alphas = alphas[idx]
        return alphas

    def cv_table(self, X, y, alphas):
        cv = self._cv(self.cv_folds, y)
        rows = []
        for alpha in alphas:
            clf = DecisionTreeClassifier(ccp_alpha=float(alpha), random_state=RANDOM_STATE)
            errors = 1.0 - cross_val_score(clf, X, y, cv=cv, scoring="accuracy")
            rows.append({
                "ccp_alpha": float(alpha),
                "cv_error": float(errors.mean()),
                "cv_std_error": float(errors.std(ddof=1) / np.sqrt(len(errors))),
            })
        return pd.DataFrame(rows)

    @staticmethod
    def select_alpha(table):
        """One-standard-error rule over a CV table."""
        best = table["cv_error"].idxmin()
        limit = table.loc[best, "cv_error"] + table.loc[best, "cv_std_error"]
        return float(table.loc[table["cv_error"] <= limit, "ccp_alpha"].max())

    def _fit(self, X, y):
        details = {}
        if self.ccp_alpha is None:
            table = self.cv_table(X, y, self.candidate_alphas(X, y))
            alpha = self.select_alpha(table)
            details["cv_table"] = table
        else:
            alpha = float(self.ccp_alpha)
        clf = DecisionTreeClassifier(ccp_alpha=alpha, random_state=RANDOM_STATE)
        clf.fit(X, y)
        details.update({"ccp_alpha": alpha, "n_leaves": int(clf.get_n_leaves())})
        return clf, details


class RandomForestTrainer(Trainer):
    """Random forest whose per-split feature count is chosen by out-of-bag error."""
    name = "Random Forest"

    def __init__(self, n_estimators=RF_N_ESTIMATORS, min_samples_leaf=RF_MIN_SAMPLES_LEAF,
                 max_features_candidates=RF_MAX_FEATURES_CANDIDATES, n_jobs=-1):
        self.n_estimators = n_estimators
        self.min_samples_leaf = min_samples_leaf
        self.max_features_candidates = max_features_candidates
        self.n_jobs = n_jobs

    def _create(self, max_features):
        return RandomForestClassifier(
            n_estimators=self.n_estimators,
            max_features=max_features,
            min_samples_leaf=self.min_samples_leaf,
            oob_score=True,
            n_jobs=self.n_jobs,
            random_state=RANDOM_STATE,
        )

    def _fit(self, X, y):
        n_features = X.shape[1]
        candidates = sorted({min(int(m), n_features) for m in self.max_features_candidates if m >= 1})
        if not candidates:
            raise FitError("No usable max_features candidates")

        best, oob_errors = None, {}
        for m in candidates:
            rf = self._create(m).fit(X, y)
            oob_errors[m] = float(1.0 - rf.oob_score_)
            # strict comparison keeps the smaller value on ties
            if best is None or oob_errors[m] < oob_errors[best[0]]:
                best = (m, rf)

        max_features, rf = best
        return rf, {"max_features": max_features, "oob_errors": oob_errors,
                    "oob_error": oob_errors[max_features]}


class GradientBoostedTreesTrainer(Trainer):
    """XGBoost trees; the number of rounds comes from k-fold CV with early stopping."""
    name = "Gradient Boosted Trees"

    def __init__(self, params=None, max_rounds=XGB_MAX_ROUNDS,
                 early_stopping_rounds=XGB_EARLY_STOPPING_ROUNDS, cv_folds=XGB_CV_FOLDS):
        self.params = dict(XGB_PARAMS if params is None else params)
        self.max_rounds = max_rounds
        self.early_stopping_rounds = early_stopping_rounds
        self.cv_folds = cv_folds

    def select_rounds(self, X, y):
        params = {
            **self.params,
            "objective": "binary:logistic",
            "eval_metric": "error",
            "seed": RANDOM_STATE,
            "tree_method": "hist",
        }
        cv_results = xgb.cv(
            params,
            xgb.DMatrix(X, label=y),
            num_boost_round=self.max_rounds,
            folds=self._cv(self.cv_folds, y),
            early_stopping_rounds=self.early_stopping_rounds,
            as_pandas=True,
        )
        # history is truncated at the best iteration when early stopping fires
        n_rounds = len(cv_results)
        return n_rounds, float(cv_results["test-error-mean"].iloc[-1])

    def _fit(self, X, y):
        n_rounds, cv_error = self.select_rounds(X, y)
        clf = xgb.XGBClassifier(
            n_estimators=n_rounds,
            objective="binary:logistic",
            eval_metric="error",
            tree_method="hist",
            random_state=RANDOM_STATE,
            n_jobs=-1,
            **self.params,
        )
        clf.fit(X, y)
        return clf, {"n_rounds": n_rounds, "cv_error": cv_error}


TRAINERS = (
    LogisticRegressionTrainer,
    LassoTrainer,
    RidgeTrainer,
    DecisionTreeTrainer,
    RandomForestTrainer,
    GradientBoostedTreesTrainer,
)


def create_trainers():
    """Create the six trainers with their configured defaults."""
    return [cls() for cls in TRAINERS]


@dataclass
class TrainingReport:
    models: Dict[str, FittedModel] = field(default_factory=dict)
    failures: Dict[str, BaseException] = field(default_factory=dict)


def _fit_one(trainer, X, y):
    try:
        return trainer.name, trainer.fit(X, y), None
    except Exception as exc:
        logger.exception("[%s] training failed", trainer.name)
        return trainer.name, None, exc


def train_models(trainers, X_train, y_train, n_jobs=1) -> TrainingReport:
    """
    Fit every trainer on the same design matrix.

    A failing trainer is recorded in ``failures`` and does not stop the
    others. Models are independent, so ``n_jobs`` > 1 fits them in parallel.
    """
    if n_jobs == 1:
        outcomes = [_fit_one(t, X_train, y_train) for t in trainers]
    else:
        outcomes = Parallel(n_jobs=n_jobs)(delayed(_fit_one)(t, X_train, y_train) for t in trainers)

    report = TrainingReport()
    for name, fitted, exc in outcomes:
        if exc is None:
            report.models[name] = fitted
        else:
            report.failures[name] = exc
    return report


def _format_details(details):
    shown = {k: v for k, v in details.items() if not isinstance(v, (pd.DataFrame, dict))}
    return ", ".join(f"{k}={v}" for k, v in shown.items()) or "(no diagnostics)"
