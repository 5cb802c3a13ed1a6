"""Final refit - fit the winning orders and forecast the test window."""
import logging

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error

from domain.models import HyperparameterVector
from domain.ports import Forecaster, ModelFitter
from application.dto import ForecastResult

logger = logging.getLogger(__name__)


class FinalForecastUseCase:
    """Refits a vector on train+validation and forecasts the hold-out test split."""

    def __init__(self, fitter: ModelFitter, forecaster: Forecaster, period: int = 12, method: str = 'ML'):
        self.fitter = fitter
        self.forecaster = forecaster
        self.period = period
        self.method = method

    def execute(
        self,
        vector: HyperparameterVector,
        train_series: pd.Series,
        validation_series: pd.Series,
        test_series: pd.Series,
    ) -> ForecastResult:
        """
        Fit on train+validation and forecast len(test_series) steps.

        Raises:
            ValueError: If the test split is empty
            ModelFitError: If the winning orders cannot be refitted
        """
        if len(test_series) == 0:
            raise ValueError("Test series is empty; nothing to forecast.")

        history = pd.concat([train_series, validation_series]) if len(validation_series) > 0 else train_series
        logger.info(f"Refitting {vector} on {len(history)} observations (train+validation)...")
        model = self.fitter.fit(
            history,
            order=vector.order,
            seasonal_order=vector.seasonal_order(self.period),
            method=self.method,
        )
        forecast = self.forecaster.forecast(model, len(test_series))

        table = pd.DataFrame(
            {
                'point': forecast.point,
                'lower_80': forecast.lower[80],
                'upper_80': forecast.upper[80],
                'lower_95': forecast.lower[95],
                'upper_95': forecast.upper[95],
                'actual': np.asarray(test_series, dtype=float),
            },
            index=test_series.index,
        )

        mse = float(mean_squared_error(table['actual'], table['point']))
        result = ForecastResult(
            vector=vector,
            table=table,
            mse=mse,
            rmse=float(np.sqrt(mse)),
            mae=float(mean_absolute_error(table['actual'], table['point'])),
            aic=float(model.aic),
            bic=float(model.bic),
        )
        logger.info(
            f"Test forecast {vector}: RMSE={result.rmse:.4f} MAE={result.mae:.4f} "
            f"AIC={result.aic:.2f} BIC={result.bic:.2f}"
        )
        return result
