"""Configuration loader - parses YAML config files into typed objects."""
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml

from domain.errors import ConfigurationError
from domain.models import CostFunctionSpec, HyperparameterVector, SearchConfig, SearchDomain


@dataclass(frozen=True)
class PersistenceConfig:
    """Persistence layer configuration."""
    results_file: str
    best_params_file: str
    forecast_file: str


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""
    verbose: bool


@dataclass(frozen=True)
class SearchSettings:
    """Complete search configuration."""
    search: SearchConfig
    persistence: PersistenceConfig
    logging: LoggingConfig


@dataclass(frozen=True)
class DataSourceConfig:
    """Data source configuration."""
    type: str  # only 'csv' is supported
    path: str
    target_column: str
    frequency: Optional[str]  # pandas offset alias to resample to, e.g. 'MS'


@dataclass(frozen=True)
class SplittingConfig:
    """Hold-out splitting configuration, in periods."""
    validation_periods: int
    test_periods: int


@dataclass(frozen=True)
class DataConfig:
    """Complete data configuration."""
    data_source: DataSourceConfig
    splitting: SplittingConfig


def _optional_int(value: Any) -> Optional[int]:
    return None if value in (None, 'null') else int(value)


def _strict_bool(name: str, value: Any) -> bool:
    # yaml.safe_load already maps true/false/yes/no to bool; quoted strings stay str
    if not isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a boolean, got {value!r}")
    return value


class ConfigLoader:
    """Loads and parses YAML configuration files."""

    @staticmethod
    def _read(config_path: str) -> Dict[str, Any]:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_path} does not contain a mapping")
        return data

    @staticmethod
    def load_search_config(config_path: str, **overrides: Any) -> SearchSettings:
        """Load search configuration from YAML file.

        Keyword overrides replace SearchConfig fields (None values are ignored),
        so CLI flags go through the same validation as the file.
        """
        data = ConfigLoader._read(config_path)

        # Fail fast if required sections are missing
        s = data['search']
        g = data['genetic']
        c = data['cost_function']

        starting_raw = s.get('starting_vector')
        try:
            fields: Dict[str, Any] = dict(
                domain=SearchDomain.from_dict(s['domain']),
                starting_vector=(
                    None if starting_raw in (None, 'null')
                    else HyperparameterVector.from_sequence(starting_raw)
                ),
                seasonal_period=int(s.get('seasonal_period', 12)),
                forecast_horizon=_optional_int(s.get('forecast_horizon')),
                estimation_method=str(s.get('estimation_method', 'ML')),
                integer_only=_strict_bool('integer_only', s.get('integer_only', True)),
                seed=_optional_int(s.get('seed')),
                population_size=int(g['population_size']),
                max_generations=int(g['max_generations']),
                max_stale_generations=_optional_int(g.get('max_stale_generations')),
                elitism=_optional_int(g.get('elitism')),
                crossover_rate=float(g.get('crossover_rate', 0.8)),
                mutation_rate=float(g.get('mutation_rate', 0.1)),
                tournament_size=_optional_int(g.get('tournament_size')),
                workers=int(data.get('parallel', {}).get('workers', 1)),
                cost=CostFunctionSpec(
                    kind=str(c['kind']),
                    max_order=_optional_int(c.get('max_order')),
                ),
            )
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid value in {config_path}: {e}") from e

        cost_override = {k: overrides.pop(k) for k in ('cost_kind', 'max_order') if k in overrides}
        if any(v is not None for v in cost_override.values()):
            fields['cost'] = CostFunctionSpec(
                kind=cost_override.get('cost_kind') or fields['cost'].kind,
                max_order=(
                    cost_override['max_order'] if cost_override.get('max_order') is not None
                    else fields['cost'].max_order
                ),
            )
        fields.update({k: v for k, v in overrides.items() if v is not None})
        search = SearchConfig(**fields)

        persistence = PersistenceConfig(**data['persistence'])

        lg = data.get('logging', {})
        logging = LoggingConfig(verbose=_strict_bool('verbose', lg.get('verbose', True)))

        return SearchSettings(search=search, persistence=persistence, logging=logging)

    @staticmethod
    def load_data_config(config_path: str) -> DataConfig:
        """Load data configuration from YAML file."""
        data = ConfigLoader._read(config_path)

        ds = data['data_source']
        source_type = str(ds.get('type', 'csv'))
        if source_type != 'csv':
            raise ConfigurationError(f"Unsupported data source type {source_type!r}; only 'csv' is available")
        frequency = ds.get('frequency')
        data_source = DataSourceConfig(
            type=source_type,
            path=str(ds['path']),
            target_column=str(ds['target_column']),
            frequency=None if frequency in (None, 'null') else str(frequency),
        )

        sp = data['splitting']
        splitting = SplittingConfig(
            validation_periods=int(sp['validation_periods']),
            test_periods=int(sp['test_periods']),
        )

        return DataConfig(data_source=data_source, splitting=splitting)

    @staticmethod
    def get_config_path(filename: str) -> str:
        """Get absolute path to config file."""
        base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        return os.path.join(base_dir, '..', 'config', filename)
