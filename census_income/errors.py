class CensusIncomeError(Exception):
    """Base class for pipeline errors."""


class SchemaError(CensusIncomeError, ValueError):
    """Unexpected label values, columns or design-matrix layout."""


class UnknownCategoryError(CensusIncomeError, ValueError):
    """A dataset holds a category that was not seen in the training data."""

    def __init__(self, field, values):
        self.field = field
        self.values = sorted(values)
        super().__init__(
            f"Unknown categories for '{field}' (absent at training time): {self.values}"
        )


class FitError(CensusIncomeError, ValueError):
    """The design matrix or labels cannot be used to fit a model."""
