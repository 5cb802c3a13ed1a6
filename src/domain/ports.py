"""Domain ports - abstract interfaces for external adapters."""
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Tuple

import pandas as pd

from domain.models import Candidate, Forecast, HyperparameterVector


class DataSource(ABC):
    """Port for loading time series data."""

    @abstractmethod
    def load(self) -> pd.DataFrame:
        """Load raw data from source."""
        pass


class SeriesSplitter(ABC):
    """Port for splitting time series into train/val/test."""

    @abstractmethod
    def split(self, series: pd.Series) -> Tuple[pd.Series, pd.Series, pd.Series]:
        """Split series into (train, validation, test)."""
        pass


class ModelFitter(ABC):
    """Port for fitting a SARIMA model to a series."""

    @abstractmethod
    def fit(
        self,
        series: pd.Series,
        order: Tuple[int, int, int],
        seasonal_order: Tuple[int, int, int, int],
        method: str = 'ML',
    ) -> Any:
        """Fit and return an opaque fitted model. Raises ModelFitError on failure."""
        pass


class Forecaster(ABC):
    """Port for forecasting from a fitted model."""

    @abstractmethod
    def forecast(self, model: Any, horizon: int) -> Forecast:
        """Forecast `horizon` steps ahead with 80% and 95% intervals."""
        pass


class CostFunction(ABC):
    """Port mapping a hyperparameter vector to a scalar cost (lower is better)."""

    @abstractmethod
    def evaluate(self, vector: HyperparameterVector) -> float:
        """Return the cost, or SENTINEL_COST when no model can be scored."""
        pass


class PopulationEvaluator(ABC):
    """Port for scoring a batch of vectors, one cost per vector, in input order."""

    @abstractmethod
    def evaluate(self, vectors: Sequence[HyperparameterVector]) -> List[float]:
        """Evaluate all vectors; blocks until every cost is known."""
        pass

    def close(self) -> None:
        """Release any worker resources."""
        pass

    def __enter__(self) -> 'PopulationEvaluator':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ResultsRepository(ABC):
    """Port for persisting evaluated candidates."""

    @abstractmethod
    def append_header_if_needed(self) -> None:
        """Ensure results file has header."""
        pass

    @abstractmethod
    def append_candidates(self, candidates: Sequence[Candidate]) -> None:
        """Append evaluated candidates."""
        pass


class BestParamsRepository(ABC):
    """Port for persisting best orders found."""

    @abstractmethod
    def save(self, candidate: Candidate) -> None:
        """Save best candidate."""
        pass

    @abstractmethod
    def load(self) -> Optional[Candidate]:
        """Load best candidate. Returns None when nothing was saved."""
        pass


class ForecastRepository(ABC):
    """Port for persisting the final forecast table."""

    @abstractmethod
    def save(self, table: pd.DataFrame) -> None:
        """Save forecast table."""
        pass
