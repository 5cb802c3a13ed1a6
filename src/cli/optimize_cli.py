"""CLI for genetic SARIMA order search - wires all components together."""
import argparse
import os
import sys
import logging
from typing import Tuple

import pandas as pd

# Add src to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.config_loader import ConfigLoader, DataConfig
from domain.cost_functions import EvaluationContext
from domain.errors import ConfigurationError, ModelFitError
from domain.models import CostKind
from domain.services import GeneticSearchService
from infrastructure.data.csv_data_source import CSVDataSource
from infrastructure.data.series_splitter import HoldoutSplitter
from infrastructure.parallel.population_evaluator import create_population_evaluator
from infrastructure.persistence.best_params_repository import JSONBestParamsRepository
from infrastructure.persistence.results_repository import CSVForecastRepository, CSVResultsRepository
from infrastructure.statsmodels.sarima_fitter import StatsmodelsForecaster, StatsmodelsSARIMAFitter
from application.dto import GeneticSearchRequest, SearchStatus
from application.final_forecast import FinalForecastUseCase
from application.genetic_search_orchestrator import GeneticSearchOrchestrator

logger = logging.getLogger(__name__)

EXIT_FAILED = 1
EXIT_CONFIGURATION = 2


def load_splits(data_config: DataConfig, period: int) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """Load the configured series and split it into train/validation/test."""
    data_source = CSVDataSource(
        filepath=data_config.data_source.path,
        target_column=data_config.data_source.target_column,
        frequency=data_config.data_source.frequency,
    )
    df = data_source.load()
    series = df[data_config.data_source.target_column]
    logger.info(f"Loaded {len(series)} observations from {data_config.data_source.path}")

    splitter = HoldoutSplitter(
        validation_periods=data_config.splitting.validation_periods,
        test_periods=data_config.splitting.test_periods,
        min_train_periods=2 * period,
    )
    return splitter.split(series)


def main():
    """Main entry point for genetic search CLI."""
    parser = argparse.ArgumentParser(description='Genetic SARIMA order search')
    parser.add_argument('--max-generations', type=int, default=None, help='Hard generation limit')
    parser.add_argument('--population-size', type=int, default=None, help='Individuals per generation')
    parser.add_argument('--workers', type=int, default=None, help='Evaluation worker processes')
    parser.add_argument('--seed', type=int, default=None, help='Random seed')
    parser.add_argument('--cost', choices=[k.value for k in CostKind], default=None, help='Cost function')
    parser.add_argument('--max-order', type=int, default=None, help='p+q+P+Q limit for penalized_rmse')
    parser.add_argument('--quiet', action='store_true', help='Only log warnings and errors')
    args = parser.parse_args()

    logging.basicConfig(
        level=(logging.WARNING if args.quiet else logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s - %(message)s',
    )

    logger.info("Loading configurations...")
    try:
        settings = ConfigLoader.load_search_config(
            ConfigLoader.get_config_path('search_config.yaml'),
            max_generations=args.max_generations,
            population_size=args.population_size,
            workers=args.workers,
            seed=args.seed,
            cost_kind=args.cost,
            max_order=args.max_order,
        )
        data_config = ConfigLoader.load_data_config(ConfigLoader.get_config_path('data_config.yaml'))
        cfg = settings.search

        logger.info("Initializing data pipeline...")
        train_series, val_series, test_series = load_splits(data_config, cfg.seasonal_period)
        logger.info(
            f"Train samples: {len(train_series)}, Val samples: {len(val_series)}, "
            f"Test samples: {len(test_series)}"
        )

        fitter = StatsmodelsSARIMAFitter()
        forecaster = StatsmodelsForecaster()
        context = EvaluationContext(
            train_series=train_series,
            validation_series=val_series,
            cost=cfg.cost,
            fitter=fitter,
            forecaster=forecaster,
            period=cfg.seasonal_period,
            horizon=cfg.forecast_horizon,
            method=cfg.estimation_method,
        )
    except (ConfigurationError, KeyError, ValueError, OSError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(EXIT_CONFIGURATION)

    logger.info("Initializing persistence layer...")
    results_repo = CSVResultsRepository(settings.persistence.results_file)
    best_params_repo = JSONBestParamsRepository(settings.persistence.best_params_file)

    logger.info(f"Starting evaluation pool ({cfg.workers} workers)...")
    with create_population_evaluator(context, cfg.workers) as evaluator:
        service = GeneticSearchService(
            config=cfg,
            evaluator=evaluator,
            results_repo=results_repo,
            best_params_repo=best_params_repo,
        )
        orchestrator = GeneticSearchOrchestrator(service)
        response = orchestrator.execute(GeneticSearchRequest(verbose=settings.logging.verbose and not args.quiet))

    if response.status is SearchStatus.EXHAUSTED:
        logger.error(f"Search exhausted: {response.error_message}")
        sys.exit(EXIT_FAILED)
    if response.status is SearchStatus.CONFIGURATION_ERROR:
        logger.error(f"Invalid configuration: {response.error_message}")
        sys.exit(EXIT_CONFIGURATION)
    if not response.success:
        logger.error(f"Genetic search failed: {response.error_message}")
        sys.exit(EXIT_FAILED)

    summary = response.summary
    logger.info("\n" + "="*80)
    logger.info("GENETIC SEARCH COMPLETE")
    logger.info("="*80)
    logger.info(f"Generations: {summary.generations} (converged early: {summary.converged})")
    logger.info(f"Evaluations: {summary.evaluations}")
    logger.info(f"Duration: {summary.duration_seconds:.1f}s")
    logger.info(f"Throughput: {summary.evaluations_per_second:.2f} evaluations/sec")
    logger.info(f"\nBest orders found: {summary.best.vector} (generation {summary.best.generation})")
    logger.info(f"Best {cfg.cost.kind.value} cost: {summary.best.cost:.6f}")
    logger.info("="*80)

    if len(test_series) == 0:
        logger.info("No test split configured; skipping final forecast.")
        return

    try:
        result = FinalForecastUseCase(
            fitter, forecaster, period=cfg.seasonal_period, method=cfg.estimation_method,
        ).execute(summary.best.vector, train_series, val_series, test_series)
    except ModelFitError as e:
        logger.error(f"Final refit failed: {e}")
        sys.exit(EXIT_FAILED)

    CSVForecastRepository(settings.persistence.forecast_file).save(result.table)
    logger.info(f"Forecast written to {settings.persistence.forecast_file}")


if __name__ == '__main__':
    main()
