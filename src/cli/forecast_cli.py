"""CLI for refitting saved best orders and forecasting the test split."""
import argparse
import os
import sys
import logging

# Add src to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.config_loader import ConfigLoader
from domain.errors import ConfigurationError, ModelFitError
from infrastructure.persistence.best_params_repository import JSONBestParamsRepository
from infrastructure.persistence.results_repository import CSVForecastRepository
from infrastructure.statsmodels.sarima_fitter import StatsmodelsForecaster, StatsmodelsSARIMAFitter
from application.final_forecast import FinalForecastUseCase
from cli.optimize_cli import EXIT_CONFIGURATION, EXIT_FAILED, load_splits

logger = logging.getLogger(__name__)


def main():
    """Main entry point for forecast CLI."""
    parser = argparse.ArgumentParser(description='Forecast the test split with saved SARIMA orders')
    parser.add_argument('--best-params', type=str, default=None, help='Path to best params JSON')
    parser.add_argument('--output', type=str, default=None, help='Path to forecast CSV')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s - %(message)s',
    )

    try:
        settings = ConfigLoader.load_search_config(ConfigLoader.get_config_path('search_config.yaml'))
        data_config = ConfigLoader.load_data_config(ConfigLoader.get_config_path('data_config.yaml'))
        cfg = settings.search
        train_series, val_series, test_series = load_splits(data_config, cfg.seasonal_period)
    except (ConfigurationError, KeyError, ValueError, OSError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(EXIT_CONFIGURATION)

    best_path = args.best_params or settings.persistence.best_params_file
    best = JSONBestParamsRepository(best_path).load()
    if best is None:
        logger.error(f"No best parameters found at {best_path}. Run the optimizer first.")
        sys.exit(EXIT_FAILED)
    logger.info(f"Using {best.vector} (cost={best.cost:.6f}) from {best_path}")

    try:
        result = FinalForecastUseCase(
            StatsmodelsSARIMAFitter(),
            StatsmodelsForecaster(),
            period=cfg.seasonal_period,
            method=cfg.estimation_method,
        ).execute(best.vector, train_series, val_series, test_series)
    except (ModelFitError, ValueError) as e:
        logger.error(f"Forecast failed: {e}")
        sys.exit(EXIT_FAILED)

    output = args.output or settings.persistence.forecast_file
    CSVForecastRepository(output).save(result.table)
    logger.info(f"Forecast written to {output}")


if __name__ == '__main__':
    main()
