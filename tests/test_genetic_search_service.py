from pathlib import Path
from typing import List, Sequence

import numpy as np
import pytest

from application.dto import GeneticSearchRequest, SearchStatus
from application.genetic_search_orchestrator import GeneticSearchOrchestrator
from domain.errors import SearchExhaustedError
from domain.models import SENTINEL_COST, HyperparameterVector, SearchConfig, SearchDomain
from domain.ports import PopulationEvaluator
from domain.services import GeneticSearchService
from infrastructure.persistence.best_params_repository import JSONBestParamsRepository
from infrastructure.persistence.results_repository import CSVResultsRepository

FULL_DOMAIN = SearchDomain.from_dict({'p': [0, 3], 'd': [0, 2], 'q': [0, 3], 'P': [0, 3], 'D': [0, 2], 'Q': [0, 3]})
TARGET = np.array([2, 1, 1, 0, 1, 1])


def quadratic_cost(vector: HyperparameterVector) -> float:
    """Bowl around TARGET; vectors with p == q == 3 'fail to fit'."""
    if vector.p == 3 and vector.q == 3:
        return SENTINEL_COST
    return float(np.sum((np.array(vector.to_list()) - TARGET) ** 2)) + 0.5


class FakeEvaluator(PopulationEvaluator):
    def __init__(self, cost_fn=quadratic_cost):
        self.cost_fn = cost_fn
        self.batches: List[List[HyperparameterVector]] = []

    def evaluate(self, vectors: Sequence[HyperparameterVector]) -> List[float]:
        self.batches.append(list(vectors))
        return [self.cost_fn(v) for v in vectors]


class ExplodingEvaluator(PopulationEvaluator):
    def evaluate(self, vectors):
        raise RuntimeError("pool exploded")


def _config(**kwargs) -> SearchConfig:
    params = dict(domain=FULL_DOMAIN, population_size=12, max_generations=15, seed=123)
    params.update(kwargs)
    return SearchConfig(**params)


def _random_domain(rng: np.random.Generator) -> SearchDomain:
    bounds = []
    for _ in range(6):
        low = int(rng.integers(0, 3))
        bounds.append((low, low + int(rng.integers(0, 4))))
    return SearchDomain(bounds=tuple(bounds))


@pytest.mark.parametrize('seed', range(8))
@pytest.mark.parametrize('integer_only', [True, False])
def test_every_evaluated_vector_lies_in_domain(seed, integer_only):
    rng = np.random.default_rng(seed)
    domain = _random_domain(rng)
    evaluator = FakeEvaluator()
    service = GeneticSearchService(
        _config(domain=domain, seed=seed, integer_only=integer_only, mutation_rate=0.5),
        evaluator,
    )
    list(service.run())

    assert evaluator.batches
    for batch in evaluator.batches:
        for vector in batch:
            assert domain.contains(vector)
            assert all(isinstance(x, int) for x in vector.to_list())


@pytest.mark.parametrize('seed', range(5))
def test_best_cost_never_increases(seed):
    service = GeneticSearchService(_config(seed=seed, elitism=1), FakeEvaluator())
    best_costs = [r.best_so_far.cost for r in service.run()]
    assert all(later <= earlier for earlier, later in zip(best_costs, best_costs[1:]))
    assert service.result().cost == best_costs[-1]


def test_elites_keep_their_cost_and_are_not_reevaluated():
    evaluator = FakeEvaluator()
    service = GeneticSearchService(_config(population_size=10, max_generations=4, elitism=2), evaluator)
    list(service.run())
    assert [len(b) for b in evaluator.batches] == [10, 8, 8, 8]
    assert service.evaluations == 34
    # elitism also keeps the generation best from regressing
    gen_best = [r.generation_best.cost for r in service.history]
    assert all(later <= earlier for earlier, later in zip(gen_best, gen_best[1:]))


def test_same_seed_gives_identical_runs():
    runs = []
    for _ in range(2):
        evaluator = FakeEvaluator()
        service = GeneticSearchService(_config(seed=99), evaluator)
        history = [(r.generation_best.vector, r.generation_best.cost) for r in service.run()]
        runs.append((service.result(), history, evaluator.batches))
    assert runs[0] == runs[1]


def test_starting_vector_is_evaluated_first():
    start = HyperparameterVector(1, 0, 2, 2, 1, 0)
    evaluator = FakeEvaluator()
    service = GeneticSearchService(_config(starting_vector=start, max_generations=1), evaluator)
    list(service.run())
    assert evaluator.batches[0][0] == start


def test_hard_generation_limit_is_respected():
    evaluator = FakeEvaluator()
    service = GeneticSearchService(_config(max_generations=7, max_stale_generations=None), evaluator)
    results = list(service.run())
    assert [r.generation for r in results] == list(range(1, 8))
    assert len(evaluator.batches) == 7
    assert not service.converged


@pytest.mark.parametrize('population_size', [1, 2])
def test_tiny_populations_run_with_default_settings(population_size):
    start = HyperparameterVector(2, 1, 1, 0, 1, 1)
    evaluator = FakeEvaluator()
    service = GeneticSearchService(
        _config(population_size=population_size, max_generations=3, starting_vector=start),
        evaluator,
    )
    results = list(service.run())
    assert len(results) == 3
    assert all(len(batch) == population_size - service.config.elitism for batch in evaluator.batches[1:])
    assert service.result().vector == start


def test_stops_early_when_no_improvement():
    evaluator = FakeEvaluator(cost_fn=lambda v: 1.0)
    service = GeneticSearchService(_config(max_generations=50, max_stale_generations=3), evaluator)
    results = list(service.run())
    # generation 1 sets the best, generations 2-4 are stale
    assert len(results) == 4
    assert service.converged


def test_all_failed_fits_exhaust_the_search():
    service = GeneticSearchService(_config(max_generations=3), FakeEvaluator(cost_fn=lambda v: SENTINEL_COST))
    results = list(service.run())
    assert len(results) == 3
    assert results[-1].invalid == results[-1].evaluated
    with pytest.raises(SearchExhaustedError):
        service.result()


def test_result_before_run_raises():
    with pytest.raises(SearchExhaustedError):
        GeneticSearchService(_config(), FakeEvaluator()).result()


def test_end_to_end_scenario_terminates_in_bounds():
    start = HyperparameterVector.from_sequence([1, 0, 2, 2, 1, 0])
    config = SearchConfig(
        domain=FULL_DOMAIN,
        population_size=20,
        max_generations=100,
        starting_vector=start,
        integer_only=True,
        seed=2024,
    )
    service = GeneticSearchService(config, FakeEvaluator())
    history = list(service.run())

    assert len(history) <= 100
    best = service.result()
    assert FULL_DOMAIN.contains(best.vector)
    assert np.isfinite(best.cost)
    # the seed vector scores 8.5; the search should close in on TARGET
    assert best.cost <= 2.5


def test_run_persists_candidates_and_best(tmp_path: Path):
    results_repo = CSVResultsRepository(str(tmp_path / 'out' / 'results.csv'))
    best_repo = JSONBestParamsRepository(str(tmp_path / 'out' / 'best.json'))
    service = GeneticSearchService(_config(max_generations=3), FakeEvaluator(), results_repo, best_repo)
    list(service.run())

    lines = (tmp_path / 'out' / 'results.csv').read_text().strip().splitlines()
    assert len(lines) == 1 + service.evaluations
    saved = best_repo.load()
    assert saved is not None
    assert saved.vector == service.result().vector
    assert saved.cost == pytest.approx(service.result().cost)


def test_orchestrator_reports_success():
    service = GeneticSearchService(_config(max_generations=5), FakeEvaluator())
    response = GeneticSearchOrchestrator(service).execute(GeneticSearchRequest(verbose=True))
    assert response.success
    assert response.status is SearchStatus.SUCCESS
    assert response.summary.generations == 5
    assert response.summary.evaluations == service.evaluations
    assert response.summary.best == service.result()


def test_orchestrator_tags_exhaustion_distinctly():
    service = GeneticSearchService(_config(max_generations=2), FakeEvaluator(cost_fn=lambda v: SENTINEL_COST))
    response = GeneticSearchOrchestrator(service).execute(GeneticSearchRequest(verbose=False))
    assert not response.success
    assert response.status is SearchStatus.EXHAUSTED
    assert response.summary is None
    assert 'No viable SARIMA model' in response.error_message


def test_orchestrator_reports_unexpected_failure():
    service = GeneticSearchService(_config(), ExplodingEvaluator())
    response = GeneticSearchOrchestrator(service).execute(GeneticSearchRequest(verbose=False))
    assert response.status is SearchStatus.FAILED
    assert 'pool exploded' in response.error_message
