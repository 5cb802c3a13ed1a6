"""Domain services - core business logic using ports."""
import time
from typing import Iterator, List, Optional

import numpy as np

from domain.errors import SearchExhaustedError
from domain.models import (
    SENTINEL_COST,
    Candidate,
    GenerationResult,
    SearchConfig,
)
from domain.operators import (
    blend_crossover,
    decode,
    gaussian_mutation,
    integer_mutation,
    random_genes,
    tournament_selection,
    uniform_crossover,
)
from domain.ports import BestParamsRepository, PopulationEvaluator, ResultsRepository


class GeneticSearchService:
    """Evolves a population of SARIMA orders using injected dependencies."""

    def __init__(
        self,
        config: SearchConfig,
        evaluator: PopulationEvaluator,
        results_repo: Optional[ResultsRepository] = None,
        best_params_repo: Optional[BestParamsRepository] = None,
    ):
        """Initialize with config, evaluator and optional persistence."""
        self.config = config
        self.evaluator = evaluator
        self.results_repo = results_repo
        self.best_params_repo = best_params_repo

        self.best: Optional[Candidate] = None
        self.history: List[GenerationResult] = []
        self.evaluations = 0
        self.converged = False

    def run(self) -> Iterator[GenerationResult]:
        """
        Run the search, yielding a report after every generation.

        Stops at `max_generations` no matter what, or earlier once
        `max_stale_generations` generations in a row fail to improve the best
        cost. All randomness comes from one generator seeded by `config.seed`.
        """
        cfg = self.config
        rng = np.random.default_rng(cfg.seed)

        self.best = None
        self.history = []
        self.evaluations = 0
        self.converged = False

        if self.results_repo is not None:
            self.results_repo.append_header_if_needed()

        population = self._initial_population(rng)
        costs: List[Optional[float]] = [None] * len(population)
        stale = 0

        for generation in range(1, cfg.max_generations + 1):
            start = time.time()
            evaluated = self._evaluate_pending(population, costs, generation)

            gen_best_idx = int(np.argmin(costs))
            generation_best = Candidate(
                vector=decode(population[gen_best_idx], cfg.domain),
                cost=float(costs[gen_best_idx]),
                generation=generation,
            )

            improved = self.best is None or generation_best.cost < self.best.cost
            if improved:
                self.best = generation_best
                stale = 0
                if self.best_params_repo is not None and generation_best.is_valid:
                    self.best_params_repo.save(generation_best)
            else:
                stale += 1

            valid_costs = [c for c in costs if c < SENTINEL_COST]
            result = GenerationResult(
                generation=generation,
                evaluated=len(evaluated),
                invalid=sum(1 for c in evaluated if not c.is_valid),
                generation_best=generation_best,
                best_so_far=self.best,
                mean_valid_cost=float(np.mean(valid_costs)) if valid_costs else float('nan'),
                improved=improved,
                duration_seconds=time.time() - start,
            )
            self.history.append(result)
            yield result

            if cfg.max_stale_generations is not None and stale >= cfg.max_stale_generations:
                self.converged = generation < cfg.max_generations
                break
            if generation == cfg.max_generations:
                break

            population, costs = self._next_generation(population, costs, rng)

    def result(self) -> Candidate:
        """Best candidate of the last run. Raises SearchExhaustedError if none is viable."""
        if self.best is None:
            raise SearchExhaustedError("Search has not been run.")
        if not self.best.is_valid:
            raise SearchExhaustedError(
                f"No viable SARIMA model found after {len(self.history)} generations "
                f"({self.evaluations} evaluations)."
            )
        return self.best

    def _initial_population(self, rng: np.random.Generator) -> List[np.ndarray]:
        cfg = self.config
        population = []
        if cfg.starting_vector is not None:
            population.append(np.array(cfg.starting_vector.to_list(), dtype=float))
        while len(population) < cfg.population_size:
            population.append(random_genes(cfg.domain, rng, cfg.integer_only))
        return population

    def _evaluate_pending(
        self,
        population: List[np.ndarray],
        costs: List[Optional[float]],
        generation: int,
    ) -> List[Candidate]:
        """Evaluate individuals without a cost; fills `costs` in place."""
        pending = [i for i, cost in enumerate(costs) if cost is None]
        vectors = [decode(population[i], self.config.domain) for i in pending]
        new_costs = self.evaluator.evaluate(vectors) if vectors else []
        if len(new_costs) != len(vectors):
            raise RuntimeError(
                f"Evaluator returned {len(new_costs)} costs for {len(vectors)} vectors"
            )

        evaluated = []
        for i, vector, cost in zip(pending, vectors, new_costs):
            costs[i] = float(cost)
            evaluated.append(Candidate(vector=vector, cost=float(cost), generation=generation))
        self.evaluations += len(evaluated)

        if self.results_repo is not None and evaluated:
            self.results_repo.append_candidates(evaluated)
        return evaluated

    def _next_generation(
        self,
        population: List[np.ndarray],
        costs: List[float],
        rng: np.random.Generator,
    ):
        cfg = self.config
        if cfg.integer_only:
            crossover, mutate = uniform_crossover, integer_mutation
        else:
            crossover, mutate = blend_crossover, gaussian_mutation

        ranked = np.argsort(costs, kind='stable')
        next_population = [population[i].copy() for i in ranked[:cfg.elitism]]
        next_costs: List[Optional[float]] = [costs[i] for i in ranked[:cfg.elitism]]

        while len(next_population) < cfg.population_size:
            parent1 = population[tournament_selection(costs, cfg.tournament_size, rng)]
            parent2 = population[tournament_selection(costs, cfg.tournament_size, rng)]
            if rng.random() < cfg.crossover_rate:
                children = crossover(parent1, parent2, rng)
            else:
                children = (parent1.copy(), parent2.copy())

            for child in children:
                if len(next_population) >= cfg.population_size:
                    break
                next_population.append(mutate(child, cfg.domain, cfg.mutation_rate, rng))
                next_costs.append(None)

        return next_population, next_costs
