"""Series splitting adapter."""
from typing import Tuple

import pandas as pd

from domain.errors import ConfigurationError
from domain.ports import SeriesSplitter


class HoldoutSplitter(SeriesSplitter):
    """Splits a series into train/validation/test by holding out trailing periods."""

    def __init__(self, validation_periods: int, test_periods: int, min_train_periods: int = 1):
        """Initialize with the number of trailing periods for validation and test."""
        if validation_periods <= 0:
            raise ConfigurationError(f"validation_periods must be positive, got {validation_periods}")
        if test_periods < 0:
            raise ConfigurationError(f"test_periods must be >= 0, got {test_periods}")
        self.validation_periods = validation_periods
        self.test_periods = test_periods
        self.min_train_periods = min_train_periods

    def split(self, series: pd.Series) -> Tuple[pd.Series, pd.Series, pd.Series]:
        """Split series into (train, validation, test)."""
        n = len(series)
        train_end = n - self.validation_periods - self.test_periods
        if train_end < self.min_train_periods:
            raise ConfigurationError(
                f"Series of {n} observations is too short for {self.validation_periods} validation "
                f"and {self.test_periods} test periods (need at least {self.min_train_periods} for training)"
            )
        val_end = train_end + self.validation_periods

        train = series.iloc[:train_end]
        validation = series.iloc[train_end:val_end]
        test = series.iloc[val_end:]

        return train, validation, test
