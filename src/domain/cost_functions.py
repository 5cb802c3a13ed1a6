"""Cost functions - score SARIMA orders against a validation window."""
import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from domain.errors import ConfigurationError, ModelFitError
from domain.models import SENTINEL_COST, CostFunctionSpec, CostKind, HyperparameterVector
from domain.ports import CostFunction, Forecaster, ModelFitter

logger = logging.getLogger(__name__)


def forecast_error(point_forecast: np.ndarray, validation: np.ndarray) -> float:
    """Square root of the squared mean forecast error.

    This is sqrt(mean(diff) ** 2), not sqrt(mean(diff ** 2)): positive and
    negative errors cancel before squaring. Only the overlapping prefix of the
    two sequences is compared.
    """
    n = min(len(point_forecast), len(validation))
    diff = np.asarray(point_forecast[:n], dtype=float) - np.asarray(validation[:n], dtype=float)
    return float(np.sqrt(np.mean(diff) ** 2))


class _FittingCostFunction(CostFunction):
    """Shared fitting preamble for all variants."""

    def __init__(
        self,
        fitter: ModelFitter,
        train_series: pd.Series,
        period: int,
        method: str = 'ML',
    ):
        self.fitter = fitter
        self.train_series = train_series
        self.period = period
        self.method = method

    def evaluate(self, vector: HyperparameterVector) -> float:
        try:
            model = self.fitter.fit(
                self.train_series,
                order=vector.order,
                seasonal_order=vector.seasonal_order(self.period),
                method=self.method,
            )
            cost = self._score(model)
        except ModelFitError as exc:
            logger.debug(f"{vector} did not fit: {exc}")
            return SENTINEL_COST
        except Exception as exc:
            logger.debug(f"{vector} could not be scored: {exc!r}")
            return SENTINEL_COST

        if not math.isfinite(cost):
            logger.debug(f"{vector} produced a non-finite cost")
            return SENTINEL_COST
        return float(cost)

    def _score(self, model) -> float:
        raise NotImplementedError


class RMSECost(_FittingCostFunction):
    """Forecast the validation window and score the mean error."""

    def __init__(
        self,
        fitter: ModelFitter,
        forecaster: Forecaster,
        train_series: pd.Series,
        validation_series: pd.Series,
        horizon: int,
        period: int,
        method: str = 'ML',
    ):
        super().__init__(fitter, train_series, period, method)
        self.forecaster = forecaster
        self.validation = np.asarray(validation_series, dtype=float)
        self.horizon = horizon

    def _score(self, model) -> float:
        forecast = self.forecaster.forecast(model, self.horizon)
        return forecast_error(forecast.point, self.validation)


class BICCost(_FittingCostFunction):
    """Score the fitted model by its Bayesian Information Criterion."""

    def _score(self, model) -> float:
        return float(model.bic)


class PenalizedRMSECost(RMSECost):
    """RMSE that rejects overly complex orders without fitting them."""

    def __init__(self, *args, max_order: int, **kwargs):
        super().__init__(*args, **kwargs)
        self.max_order = max_order

    def evaluate(self, vector: HyperparameterVector) -> float:
        if vector.penalty_order > self.max_order:
            return SENTINEL_COST
        return super().evaluate(vector)


@dataclass(frozen=True)
class EvaluationContext:
    """Read-only inputs every evaluation worker needs.

    Built once per run and handed to each worker when the pool starts.
    """
    train_series: pd.Series
    validation_series: pd.Series
    cost: CostFunctionSpec
    fitter: ModelFitter
    forecaster: Forecaster
    period: int = 12
    horizon: Optional[int] = None
    method: str = 'ML'

    def __post_init__(self):
        if len(self.train_series) == 0:
            raise ConfigurationError("Training series is empty; cannot evaluate SARIMA orders.")
        if len(self.validation_series) == 0:
            raise ConfigurationError("Validation series is empty; cannot evaluate SARIMA orders.")
        if self.horizon is None:
            object.__setattr__(self, 'horizon', len(self.validation_series))
        if self.horizon <= 0:
            raise ConfigurationError(f"Forecast horizon must be positive, got {self.horizon}")
        if self.period < 2:
            raise ConfigurationError(f"Seasonal period must be >= 2, got {self.period}")

    def build_cost_function(self) -> CostFunction:
        return build_cost_function(self)


def build_cost_function(context: EvaluationContext) -> CostFunction:
    """Instantiate the cost function selected by the context's cost settings."""
    kind = context.cost.kind
    if kind is CostKind.BIC:
        return BICCost(context.fitter, context.train_series, context.period, context.method)

    rmse_args = (
        context.fitter,
        context.forecaster,
        context.train_series,
        context.validation_series,
        context.horizon,
        context.period,
        context.method,
    )
    if kind is CostKind.RMSE:
        return RMSECost(*rmse_args)
    if kind is CostKind.PENALIZED_RMSE:
        return PenalizedRMSECost(*rmse_args, max_order=context.cost.max_order)
    raise ConfigurationError(f"Unsupported cost function: {kind}")
