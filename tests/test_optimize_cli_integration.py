import json
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from config.config_loader import ConfigLoader
from cli import forecast_cli, optimize_cli


def _make_monthly_csv(path: Path, n: int = 72):
    rng = np.random.default_rng(0)
    t = np.arange(n)
    values = 300 + 2.0 * t + 25 * np.sin(2 * np.pi * t / 12) + rng.normal(0, 3.0, n)
    df = pd.DataFrame({
        'month': pd.date_range('2012-01-01', periods=n, freq='MS'),
        'passengers': values,
    })
    df.to_csv(path, index=False)


def _write_yaml(p: Path, content: str):
    p.write_text(content)


@pytest.fixture
def workspace(monkeypatch, tmp_path: Path):
    # Prepare tiny dataset
    data_dir = tmp_path / 'data'
    data_dir.mkdir(parents=True, exist_ok=True)
    csv_path = data_dir / 'passengers.csv'
    _make_monthly_csv(csv_path)

    # Prepare temp config files
    cfg_dir = tmp_path / 'config'
    cfg_dir.mkdir(parents=True, exist_ok=True)
    search_cfg = cfg_dir / 'search_config.yaml'
    data_cfg = cfg_dir / 'data_config.yaml'

    out_dir = tmp_path / 'results'
    _write_yaml(search_cfg, f"""
search:
  domain:
    p: [0, 1]
    d: [0, 1]
    q: [0, 0]
    P: [0, 0]
    D: [0, 1]
    Q: [0, 0]
  starting_vector: [0, 1, 0, 0, 1, 0]
  seasonal_period: 12
  forecast_horizon: null
  estimation_method: ML
  integer_only: true
  seed: 3

genetic:
  population_size: 4
  max_generations: 2
  max_stale_generations: null
  elitism: 1
  crossover_rate: 0.8
  mutation_rate: 0.2
  tournament_size: 2

cost_function:
  kind: rmse
  max_order: null

parallel:
  workers: 1

persistence:
  results_file: {out_dir / 'results.csv'}
  best_params_file: {out_dir / 'best.json'}
  forecast_file: {out_dir / 'forecast.csv'}

logging:
  verbose: true
""")

    _write_yaml(data_cfg, f"""
data_source:
  type: csv
  path: {csv_path}
  target_column: passengers
  frequency: MS

splitting:
  validation_periods: 12
  test_periods: 12
""")

    # Monkeypatch config path resolver to use our temp configs
    def _fake_get_config_path(filename: str) -> str:
        mapping = {
            'search_config.yaml': str(search_cfg),
            'data_config.yaml': str(data_cfg),
        }
        return mapping[filename]

    monkeypatch.setattr(ConfigLoader, 'get_config_path', staticmethod(_fake_get_config_path))
    monkeypatch.setenv('PYTHONWARNINGS', 'ignore')
    return out_dir


@pytest.mark.timeout(120)
def test_optimize_cli_runs_search_and_final_forecast(monkeypatch, workspace: Path):
    monkeypatch.setattr(sys, 'argv', ['optimize_cli.py', '--max-generations', '2'])

    # Run CLI main; should not raise and should produce outputs
    optimize_cli.main()

    results = pd.read_csv(workspace / 'results.csv')
    assert len(results) >= 4
    assert results['p'].between(0, 1).all()
    assert (results['q'] == 0).all()

    best = json.loads((workspace / 'best.json').read_text())
    assert best['best_cost'] < 9999999

    forecast = pd.read_csv(workspace / 'forecast.csv', index_col='date')
    assert len(forecast) == 12
    assert {'point', 'lower_95', 'upper_95', 'actual'} <= set(forecast.columns)


@pytest.mark.timeout(120)
def test_forecast_cli_uses_saved_best_params(monkeypatch, workspace: Path):
    monkeypatch.setattr(sys, 'argv', ['optimize_cli.py', '--max-generations', '1', '--quiet'])
    optimize_cli.main()
    (workspace / 'forecast.csv').unlink()

    monkeypatch.setattr(sys, 'argv', ['forecast_cli.py'])
    forecast_cli.main()
    assert (workspace / 'forecast.csv').exists()


def test_optimize_cli_exits_on_configuration_error(monkeypatch, workspace: Path):
    monkeypatch.setattr(sys, 'argv', ['optimize_cli.py', '--population-size', '0'])
    with pytest.raises(SystemExit) as exc_info:
        optimize_cli.main()
    assert exc_info.value.code == optimize_cli.EXIT_CONFIGURATION


def test_optimize_cli_exits_on_missing_data_file(monkeypatch, workspace: Path):
    (workspace.parent / 'data' / 'passengers.csv').unlink()
    monkeypatch.setattr(sys, 'argv', ['optimize_cli.py'])
    with pytest.raises(SystemExit) as exc_info:
        optimize_cli.main()
    assert exc_info.value.code == optimize_cli.EXIT_CONFIGURATION


def test_forecast_cli_exits_on_non_numeric_setting(monkeypatch, workspace: Path):
    search_cfg = workspace.parent / 'config' / 'search_config.yaml'
    search_cfg.write_text(search_cfg.read_text().replace('population_size: 4', 'population_size: four'))
    monkeypatch.setattr(sys, 'argv', ['forecast_cli.py'])
    with pytest.raises(SystemExit) as exc_info:
        forecast_cli.main()
    assert exc_info.value.code == optimize_cli.EXIT_CONFIGURATION
