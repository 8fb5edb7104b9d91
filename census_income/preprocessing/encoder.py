from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import OneHotEncoder

from census_income.config import CATEGORICAL_COLS, NUMERIC_COLS, INTERACTION, LABEL_COL
from census_income.errors import SchemaError, UnknownCategoryError
from census_income.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Vocabulary:
    """Sorted category levels per categorical field, captured from training data.

    The first level of each field is its reference level and gets no
    indicator column.
    """
    categories: Mapping[str, Tuple[str, ...]]

    def __post_init__(self):
        frozen = {f: tuple(levels) for f, levels in self.categories.items()}
        object.__setattr__(self, "categories", MappingProxyType(frozen))

    def __reduce__(self):
        return (self.__class__, (dict(self.categories),))

    @classmethod
    def from_frame(cls, df, fields=CATEGORICAL_COLS):
        missing = [f for f in fields if f not in df.columns]
        if missing:
            raise SchemaError(f"Missing categorical columns: {missing}")
        return cls({f: tuple(sorted(df[f].astype(str).unique())) for f in fields})

    @property
    def fields(self):
        return list(self.categories)

    def reference(self, field):
        return self.categories[field][0]

    def check(self, df):
        """Raise UnknownCategoryError for the first field holding unseen values."""
        for field, levels in self.categories.items():
            if field not in df.columns:
                raise SchemaError(f"Missing categorical column: '{field}'")
            unseen = set(df[field].astype(str).unique()) - set(levels)
            if unseen:
                raise UnknownCategoryError(field, unseen)


def interaction_name(interaction=INTERACTION):
    return ":".join(interaction)


class FeatureEncoder:
    """
    Encode a cleaned census frame into a numeric design matrix.

    Numeric fields pass through, each categorical field becomes one indicator
    column per non-reference level of the training vocabulary, and the
    age x hours-worked interaction is appended last.
    """

    def __init__(self, vocabulary, numeric_cols=NUMERIC_COLS, interaction=INTERACTION):
        self.vocabulary = vocabulary
        self.numeric_cols = list(numeric_cols)
        self.interaction = tuple(interaction)
        self._transformer = None

    def _create_transformer(self):
        fields = self.vocabulary.fields
        ohe = OneHotEncoder(
            categories=[list(self.vocabulary.categories[f]) for f in fields],
            drop="first",
            handle_unknown="error",
            sparse_output=False,
            dtype=np.float64,
        )
        return ColumnTransformer(
            transformers=[
                ("num", "passthrough", self.numeric_cols),
                ("cat", ohe, fields),
            ],
            remainder="drop",
            verbose_feature_names_out=False,
        )

    def _prepare(self, df):
        missing = [c for c in self.numeric_cols if c not in df.columns]
        if missing:
            raise SchemaError(f"Missing numeric columns: {missing}")
        self.vocabulary.check(df)
        X = df[self.numeric_cols + self.vocabulary.fields].copy()
        X[self.numeric_cols] = X[self.numeric_cols].astype(np.float64)
        for f in self.vocabulary.fields:
            X[f] = X[f].astype(str)
        return X

    def fit(self, df):
        X = self._prepare(df)
        self._transformer = self._create_transformer().fit(X)
        logger.info("Encoder fitted: %d design-matrix columns", len(self.feature_names))
        return self

    def transform(self, df):
        if self._transformer is None:
            raise RuntimeError("FeatureEncoder must be fitted before transform")
        X = self._prepare(df)
        values = self._transformer.transform(X)
        dm = pd.DataFrame(values, columns=self._base_names(), index=df.index)
        a, b = self.interaction
        dm[interaction_name(self.interaction)] = dm[a] * dm[b]
        return dm

    def fit_transform(self, df):
        return self.fit(df).transform(df)

    def _base_names(self):
        return [str(n) for n in self._transformer.get_feature_names_out()]

    @property
    def feature_names(self):
        if self._transformer is None:
            raise RuntimeError("FeatureEncoder is not fitted")
        return self._base_names() + [interaction_name(self.interaction)]


def build_design_matrices(train_df, test_df, label_col=LABEL_COL):
    """Capture the vocabulary from training data and encode both datasets with it."""
    vocabulary = Vocabulary.from_frame(train_df)
    encoder = FeatureEncoder(vocabulary)
    X_train = encoder.fit_transform(train_df)
    X_test = encoder.transform(test_df)
    y_train = train_df[label_col].astype(int).values
    y_test = test_df[label_col].astype(int).values
    return X_train, y_train, X_test, y_test, encoder
