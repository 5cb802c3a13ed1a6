"""Application DTOs - data transfer objects for use cases."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import pandas as pd

from domain.models import HyperparameterVector, SearchSummary


class SearchStatus(str, Enum):
    """Outcome of a search request."""
    SUCCESS = 'success'
    EXHAUSTED = 'exhausted'
    CONFIGURATION_ERROR = 'configuration_error'
    FAILED = 'failed'


@dataclass
class GeneticSearchRequest:
    """Request to run the genetic search."""
    verbose: bool = True


@dataclass
class GeneticSearchResponse:
    """Response from the genetic search."""
    status: SearchStatus
    summary: Optional[SearchSummary] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is SearchStatus.SUCCESS


@dataclass
class ForecastResult:
    """Final refit forecast scored against the test window."""
    vector: HyperparameterVector
    table: pd.DataFrame
    mse: float
    rmse: float
    mae: float
    aic: float
    bic: float
