"""Domain models - value objects representing core concepts."""
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from domain.errors import ConfigurationError

# Cost assigned to any candidate whose model could not be fitted or scored.
# It is a finite number on purpose: failed candidates stay comparable and are
# dominated by every valid one, so the selection loop needs no invalid state.
SENTINEL_COST = 9999999.0

DIMENSIONS = ('p', 'd', 'q', 'P', 'D', 'Q')


@dataclass(frozen=True)
class HyperparameterVector:
    """Immutable SARIMA orders (p, d, q)(P, D, Q) for a single candidate."""
    p: int
    d: int
    q: int
    P: int
    D: int
    Q: int

    @property
    def order(self) -> Tuple[int, int, int]:
        return (self.p, self.d, self.q)

    def seasonal_order(self, period: int) -> Tuple[int, int, int, int]:
        return (self.P, self.D, self.Q, int(period))

    @property
    def penalty_order(self) -> int:
        """Sum of the AR and MA orders; differencing orders are excluded."""
        return self.p + self.q + self.P + self.Q

    def to_list(self) -> List[int]:
        return [self.p, self.d, self.q, self.P, self.D, self.Q]

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return dict(zip(DIMENSIONS, self.to_list()))

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> 'HyperparameterVector':
        """Create from dictionary."""
        return HyperparameterVector.from_sequence([data[name] for name in DIMENSIONS])

    @staticmethod
    def from_sequence(values: Sequence[Any]) -> 'HyperparameterVector':
        """Create from six integral values ordered as p, d, q, P, D, Q."""
        values = list(values)
        if len(values) != len(DIMENSIONS):
            raise ConfigurationError(
                f"Expected {len(DIMENSIONS)} orders (p, d, q, P, D, Q), got {len(values)}"
            )
        ints = []
        for name, value in zip(DIMENSIONS, values):
            try:
                as_float = float(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Order {name}={value!r} is not a number")
            if not as_float.is_integer():
                raise ConfigurationError(f"Order {name}={value!r} is not an integer")
            ints.append(int(as_float))
        return HyperparameterVector(*ints)

    def __str__(self) -> str:
        return f"SARIMA({self.p},{self.d},{self.q})({self.P},{self.D},{self.Q})"


@dataclass(frozen=True)
class SearchDomain:
    """Inclusive integer bounds for each of the six orders."""
    bounds: Tuple[Tuple[int, int], ...]

    def __post_init__(self):
        if len(self.bounds) != len(DIMENSIONS):
            raise ConfigurationError(
                f"Search domain needs bounds for {len(DIMENSIONS)} dimensions, got {len(self.bounds)}"
            )
        normalized = []
        for name, bound in zip(DIMENSIONS, self.bounds):
            try:
                low, high = bound
            except (TypeError, ValueError):
                raise ConfigurationError(f"Bounds for {name} must be a (low, high) pair, got {bound!r}")
            for value in (low, high):
                try:
                    integral = not isinstance(value, bool) and float(value).is_integer()
                except (TypeError, ValueError):
                    integral = False
                if not integral:
                    raise ConfigurationError(f"Bounds for {name} must be integers, got {bound!r}")
            low, high = int(low), int(high)
            if low < 0:
                raise ConfigurationError(f"Lower bound for {name} must be >= 0, got {low}")
            if low > high:
                raise ConfigurationError(f"Lower bound for {name} exceeds upper bound: {low} > {high}")
            normalized.append((low, high))
        object.__setattr__(self, 'bounds', tuple(normalized))

    @staticmethod
    def from_dict(data: Mapping[str, Sequence[int]]) -> 'SearchDomain':
        """Create from a mapping such as {'p': [0, 3], 'd': [0, 2], ...}."""
        missing = [name for name in DIMENSIONS if name not in data]
        if missing:
            raise ConfigurationError(f"Search domain is missing bounds for: {', '.join(missing)}")
        return SearchDomain(bounds=tuple(tuple(data[name]) for name in DIMENSIONS))

    def to_dict(self) -> Dict[str, List[int]]:
        return {name: [low, high] for name, (low, high) in zip(DIMENSIONS, self.bounds)}

    @property
    def lower(self) -> np.ndarray:
        return np.array([low for low, _ in self.bounds], dtype=float)

    @property
    def upper(self) -> np.ndarray:
        return np.array([high for _, high in self.bounds], dtype=float)

    @property
    def size(self) -> int:
        """Number of distinct vectors in the domain."""
        return math.prod(high - low + 1 for low, high in self.bounds)

    def contains(self, vector: HyperparameterVector) -> bool:
        return all(low <= value <= high for value, (low, high) in zip(vector.to_list(), self.bounds))

    def clip(self, genes: np.ndarray) -> np.ndarray:
        return np.clip(genes, self.lower, self.upper)


class CostKind(str, Enum):
    """The closed set of available cost functions."""
    RMSE = 'rmse'
    BIC = 'bic'
    PENALIZED_RMSE = 'penalized_rmse'


@dataclass(frozen=True)
class CostFunctionSpec:
    """Selects a cost function and carries its own parameters."""
    kind: CostKind = CostKind.RMSE
    max_order: Optional[int] = None

    def __post_init__(self):
        try:
            kind = CostKind(self.kind)
        except ValueError:
            choices = ', '.join(k.value for k in CostKind)
            raise ConfigurationError(f"Unknown cost function {self.kind!r}; expected one of: {choices}")
        object.__setattr__(self, 'kind', kind)
        if kind is CostKind.PENALIZED_RMSE:
            if self.max_order is None:
                raise ConfigurationError("penalized_rmse requires max_order")
            if int(self.max_order) < 0:
                raise ConfigurationError(f"max_order must be >= 0, got {self.max_order}")
            object.__setattr__(self, 'max_order', int(self.max_order))


@dataclass(frozen=True)
class Candidate:
    """A hyperparameter vector with its evaluated cost."""
    vector: HyperparameterVector
    cost: float
    generation: int

    @property
    def is_valid(self) -> bool:
        return self.cost < SENTINEL_COST


@dataclass(frozen=True)
class SearchConfig:
    """Immutable configuration for a genetic search run.

    Validation happens on construction so that a malformed configuration
    fails before a single model is fitted.
    """
    domain: SearchDomain
    cost: CostFunctionSpec = field(default_factory=CostFunctionSpec)
    population_size: int = 50
    max_generations: int = 100
    starting_vector: Optional[HyperparameterVector] = None
    integer_only: bool = True
    seed: Optional[int] = None
    seasonal_period: int = 12
    forecast_horizon: Optional[int] = None
    max_stale_generations: Optional[int] = None
    elitism: Optional[int] = None
    crossover_rate: float = 0.8
    mutation_rate: float = 0.1
    tournament_size: Optional[int] = None
    workers: int = 1
    estimation_method: str = 'ML'

    def __post_init__(self):
        if self.population_size <= 0:
            raise ConfigurationError(f"population_size must be positive, got {self.population_size}")
        if self.max_generations <= 0:
            raise ConfigurationError(f"max_generations must be positive, got {self.max_generations}")
        if self.starting_vector is not None and not self.domain.contains(self.starting_vector):
            raise ConfigurationError(
                f"Starting vector {self.starting_vector} lies outside the search domain {self.domain.to_dict()}"
            )
        if self.seasonal_period < 2:
            raise ConfigurationError(f"seasonal_period must be >= 2, got {self.seasonal_period}")
        if self.forecast_horizon is not None and self.forecast_horizon <= 0:
            raise ConfigurationError(f"forecast_horizon must be positive, got {self.forecast_horizon}")
        if self.max_stale_generations is not None and self.max_stale_generations <= 0:
            raise ConfigurationError(
                f"max_stale_generations must be positive, got {self.max_stale_generations}"
            )
        if self.elitism is None:
            default_elitism = max(1, int(round(0.05 * self.population_size)))
            object.__setattr__(self, 'elitism', min(default_elitism, self.population_size - 1))
        if not 0 <= self.elitism < self.population_size:
            raise ConfigurationError(
                f"elitism must be in [0, population_size), got {self.elitism} for population {self.population_size}"
            )
        for name in ('crossover_rate', 'mutation_rate'):
            rate = getattr(self, name)
            if not 0.0 <= rate <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {rate}")
        if self.tournament_size is None:
            object.__setattr__(self, 'tournament_size', min(3, self.population_size))
        if not 1 <= self.tournament_size <= self.population_size:
            raise ConfigurationError(
                f"tournament_size must be within [1, population_size], got {self.tournament_size}"
            )
        if self.workers <= 0:
            raise ConfigurationError(f"workers must be positive, got {self.workers}")


@dataclass(frozen=True)
class Forecast:
    """Point forecast with prediction intervals keyed by level (80, 95)."""
    point: np.ndarray
    lower: Mapping[int, np.ndarray]
    upper: Mapping[int, np.ndarray]

    @property
    def horizon(self) -> int:
        return len(self.point)


@dataclass(frozen=True)
class GenerationResult:
    """Immutable report of one completed generation."""
    generation: int
    evaluated: int
    invalid: int
    generation_best: Candidate
    best_so_far: Candidate
    mean_valid_cost: float
    improved: bool
    duration_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class SearchSummary:
    """Immutable summary of a genetic search run."""
    generations: int
    evaluations: int
    best: Candidate
    converged: bool
    start_time: float
    end_time: float

    @property
    def duration_seconds(self) -> float:
        """Total search duration."""
        return self.end_time - self.start_time

    @property
    def evaluations_per_second(self) -> float:
        """Throughput metric."""
        if self.duration_seconds == 0:
            return 0.0
        return self.evaluations / self.duration_seconds
