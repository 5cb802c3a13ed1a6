"""Statsmodels SARIMA adapters - model fitting and forecasting."""
import logging
import math
import warnings
from typing import Any, Tuple

import numpy as np
import pandas as pd
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.arima.model import ARIMA

from domain.errors import ModelFitError
from domain.models import Forecast
from domain.ports import Forecaster, ModelFitter

logger = logging.getLogger(__name__)

# Estimation method names accepted in config -> statsmodels ARIMA fit methods.
ESTIMATION_METHODS = {
    'ML': 'statespace',
    'innovations_mle': 'innovations_mle',
}

INTERVAL_LEVELS = (80, 95)


class StatsmodelsSARIMAFitter(ModelFitter):
    """Fits seasonal ARIMA models by maximum likelihood.

    A fit counts as failed when statsmodels raises, warns about convergence,
    reports a non-converged optimizer, or yields a non-finite log-likelihood.
    """

    def __init__(self, maxiter: int = 50):
        self.maxiter = maxiter

    def fit(
        self,
        series: pd.Series,
        order: Tuple[int, int, int],
        seasonal_order: Tuple[int, int, int, int],
        method: str = 'ML',
    ) -> Any:
        if method not in ESTIMATION_METHODS:
            raise ModelFitError(
                f"Unknown estimation method {method!r}; expected one of {sorted(ESTIMATION_METHODS)}"
            )

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            try:
                model = ARIMA(series, order=order, seasonal_order=seasonal_order)
                fit_kwargs = {'method': ESTIMATION_METHODS[method]}
                if fit_kwargs['method'] == 'statespace':
                    fit_kwargs['method_kwargs'] = {'maxiter': self.maxiter}
                fitted = model.fit(**fit_kwargs)
            except Exception as exc:
                raise ModelFitError(f"ARIMA{order}x{seasonal_order} failed to fit: {exc}") from exc

        if any(issubclass(w.category, ConvergenceWarning) for w in caught):
            raise ModelFitError(f"ARIMA{order}x{seasonal_order} did not converge")
        retvals = getattr(fitted, 'mle_retvals', None) or {}
        if retvals.get('converged', True) is False:
            raise ModelFitError(f"ARIMA{order}x{seasonal_order} optimizer did not converge")
        if not math.isfinite(float(fitted.llf)):
            raise ModelFitError(f"ARIMA{order}x{seasonal_order} has non-finite log-likelihood")
        return fitted


class StatsmodelsForecaster(Forecaster):
    """Point forecasts with 80% and 95% prediction intervals."""

    def forecast(self, model: Any, horizon: int) -> Forecast:
        prediction = model.get_forecast(steps=horizon)
        lower, upper = {}, {}
        for level in INTERVAL_LEVELS:
            conf_int = np.asarray(prediction.conf_int(alpha=1.0 - level / 100.0), dtype=float)
            lower[level] = conf_int[:, 0]
            upper[level] = conf_int[:, 1]
        return Forecast(
            point=np.asarray(prediction.predicted_mean, dtype=float),
            lower=lower,
            upper=upper,
        )
