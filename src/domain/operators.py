"""Genetic operators: selection, crossover, mutation.

Genes are float arrays with one entry per SARIMA order. In integer mode they
only ever hold integral values; in real-valued mode they are rounded when
decoded. Every operator clamps its output to the search domain.
"""
from typing import Sequence, Tuple

import numpy as np

from domain.models import HyperparameterVector, SearchDomain


def random_genes(domain: SearchDomain, rng: np.random.Generator, integer_only: bool = True) -> np.ndarray:
    """Sample one individual uniformly within the domain."""
    if integer_only:
        return rng.integers(domain.lower.astype(int), domain.upper.astype(int) + 1).astype(float)
    # Widen by half a step so every integer gets an equal-width rounding interval
    return domain.clip(rng.uniform(domain.lower - 0.5, domain.upper + 0.5))


def decode(genes: np.ndarray, domain: SearchDomain) -> HyperparameterVector:
    """Round genes to integers inside the domain."""
    values = domain.clip(np.rint(genes)).astype(int)
    return HyperparameterVector(*(int(v) for v in values))


def tournament_selection(
    costs: Sequence[float],
    tournament_size: int,
    rng: np.random.Generator,
) -> int:
    """Return the index of the lowest-cost individual among a random sample.

    Ties go to the earlier sampled contender.
    """
    contenders = rng.choice(len(costs), size=tournament_size, replace=False)
    return int(min(contenders, key=lambda i: costs[i]))


def uniform_crossover(
    parent1: np.ndarray,
    parent2: np.ndarray,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, np.ndarray]:
    """Swap each gene between the parents with probability 0.5."""
    mask = rng.random(len(parent1)) < 0.5
    child1 = np.where(mask, parent2, parent1)
    child2 = np.where(mask, parent1, parent2)
    return child1, child2


def blend_crossover(
    parent1: np.ndarray,
    parent2: np.ndarray,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, np.ndarray]:
    """Arithmetic crossover with a per-gene random weight."""
    weights = rng.random(len(parent1))
    child1 = weights * parent1 + (1.0 - weights) * parent2
    child2 = (1.0 - weights) * parent1 + weights * parent2
    return child1, child2


def integer_mutation(
    genes: np.ndarray,
    domain: SearchDomain,
    rate: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Move each gene by a non-zero integer step with probability `rate`.

    Steps go up to half the dimension's span (at least 1). Single-value
    dimensions never move.
    """
    mutated = genes.copy()
    span = domain.upper - domain.lower
    for i in range(len(mutated)):
        if span[i] == 0 or rng.random() >= rate:
            continue
        max_step = max(1, int(span[i]) // 2)
        step = int(rng.integers(1, max_step + 1))
        if rng.random() < 0.5:
            step = -step
        mutated[i] = mutated[i] + step
    return domain.clip(mutated)


def gaussian_mutation(
    genes: np.ndarray,
    domain: SearchDomain,
    rate: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Add Gaussian noise (sigma = span / 10) to each gene with probability `rate`."""
    mutated = genes.copy()
    span = domain.upper - domain.lower
    for i in range(len(mutated)):
        if span[i] == 0 or rng.random() >= rate:
            continue
        mutated[i] = mutated[i] + rng.normal(0.0, span[i] / 10.0)
    return domain.clip(mutated)
