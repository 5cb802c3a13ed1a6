import numpy as np
import pandas as pd
import pytest

from application.final_forecast import FinalForecastUseCase
from domain.errors import ModelFitError
from domain.models import Forecast, HyperparameterVector
from domain.ports import Forecaster, ModelFitter


class RecordingFitter(ModelFitter):
    def __init__(self):
        self.fitted_on = None
        self.orders = None

    def fit(self, series, order, seasonal_order, method='ML'):
        self.fitted_on = series
        self.orders = (order, seasonal_order)
        model = type('Model', (), {})()
        model.aic, model.bic = 10.0, 12.0
        return model


class FailingFitter(ModelFitter):
    def fit(self, series, order, seasonal_order, method='ML'):
        raise ModelFitError("no luck")


class ConstantForecaster(Forecaster):
    def forecast(self, model, horizon):
        point = np.full(horizon, 10.0)
        return Forecast(point=point, lower={80: point - 1, 95: point - 2}, upper={80: point + 1, 95: point + 2})


def _splits():
    index = pd.date_range('2020-01-01', periods=9, freq='MS')
    series = pd.Series(np.arange(9, dtype=float), index=index)
    test = pd.Series([12.0, 12.0, 12.0], index=index[6:])
    return series.iloc[:4], series.iloc[4:6], test


def test_refits_on_train_and_validation_and_scores_test():
    train, validation, test = _splits()
    fitter = RecordingFitter()
    vector = HyperparameterVector(1, 0, 2, 2, 1, 0)
    result = FinalForecastUseCase(fitter, ConstantForecaster(), period=12).execute(vector, train, validation, test)

    assert len(fitter.fitted_on) == 6
    assert fitter.orders == ((1, 0, 2), (2, 1, 0, 12))
    assert list(result.table.columns) == ['point', 'lower_80', 'upper_80', 'lower_95', 'upper_95', 'actual']
    assert result.table.index.equals(test.index)
    assert result.rmse == pytest.approx(2.0)
    assert result.mae == pytest.approx(2.0)
    assert result.mse == pytest.approx(4.0)
    assert (result.aic, result.bic) == (10.0, 12.0)


def test_empty_test_split_is_rejected():
    train, validation, _ = _splits()
    with pytest.raises(ValueError):
        FinalForecastUseCase(RecordingFitter(), ConstantForecaster()).execute(
            HyperparameterVector(0, 0, 0, 0, 0, 0), train, validation, pd.Series([], dtype=float)
        )


def test_refit_failure_propagates():
    train, validation, test = _splits()
    with pytest.raises(ModelFitError):
        FinalForecastUseCase(FailingFitter(), ConstantForecaster()).execute(
            HyperparameterVector(0, 0, 0, 0, 0, 0), train, validation, test
        )
