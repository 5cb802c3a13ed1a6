"""Population evaluators - sequential and process-pool adapters."""
import logging
import multiprocessing
from concurrent.futures import Future, ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from typing import List, Optional, Sequence

from domain.cost_functions import EvaluationContext
from domain.models import SENTINEL_COST, HyperparameterVector
from domain.ports import CostFunction, PopulationEvaluator

logger = logging.getLogger(__name__)

# Set once per worker process by the pool initializer; never touched by the parent.
_worker_cost_function: Optional[CostFunction] = None


def _init_worker(context: EvaluationContext) -> None:
    global _worker_cost_function
    _worker_cost_function = context.build_cost_function()


def _evaluate_in_worker(vector: HyperparameterVector) -> float:
    return _worker_cost_function.evaluate(vector)


class SequentialPopulationEvaluator(PopulationEvaluator):
    """Evaluates vectors one after another in the current process."""

    def __init__(self, cost_function: CostFunction):
        self.cost_function = cost_function

    @classmethod
    def from_context(cls, context: EvaluationContext) -> 'SequentialPopulationEvaluator':
        return cls(context.build_cost_function())

    def evaluate(self, vectors: Sequence[HyperparameterVector]) -> List[float]:
        costs = []
        for vector in vectors:
            try:
                costs.append(float(self.cost_function.evaluate(vector)))
            except Exception:
                logger.exception(f"Evaluation of {vector} failed; assigning sentinel cost")
                costs.append(SENTINEL_COST)
        return costs


class ProcessPoolPopulationEvaluator(PopulationEvaluator):
    """Evaluates vectors on a fixed pool of worker processes.

    The pool is created once and reused for every generation. Each worker
    receives the evaluation context through the pool initializer and builds
    its own cost function from it.
    """

    def __init__(self, context: EvaluationContext, workers: int, mp_context: Optional[str] = None):
        if workers <= 0:
            raise ValueError(f"workers must be positive, got {workers}")
        self.context = context
        self.workers = workers
        self._mp_context = multiprocessing.get_context(mp_context) if mp_context else None
        self._executor: Optional[ProcessPoolExecutor] = None
        self._start()

    def _start(self) -> None:
        self._executor = ProcessPoolExecutor(
            max_workers=self.workers,
            mp_context=self._mp_context,
            initializer=_init_worker,
            initargs=(self.context,),
        )
        logger.debug(f"Started evaluation pool with {self.workers} workers")

    def _restart(self) -> None:
        logger.warning("Evaluation pool is broken; restarting workers")
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
        self._start()

    def evaluate(self, vectors: Sequence[HyperparameterVector]) -> List[float]:
        if self._executor is None:
            raise RuntimeError("Evaluator has been closed")

        costs: List[Optional[float]] = [None] * len(vectors)
        try:
            futures: List[Future] = [self._executor.submit(_evaluate_in_worker, v) for v in vectors]
        except BrokenProcessPool:
            futures = []
            self._restart()

        broken = not futures and len(vectors) > 0
        for i, future in enumerate(futures):
            try:
                costs[i] = float(future.result())
            except BrokenProcessPool:
                broken = True
            except Exception as exc:
                logger.error(f"Worker failed evaluating {vectors[i]}: {exc!r}; assigning sentinel cost")
                costs[i] = SENTINEL_COST

        if broken:
            if futures:
                self._restart()
            self._retry_isolated(vectors, costs)
        return costs

    def _retry_isolated(self, vectors: Sequence[HyperparameterVector], costs: List[Optional[float]]) -> None:
        """Re-run unfinished vectors one at a time so a crash only costs its own vector."""
        for i, cost in enumerate(costs):
            if cost is not None:
                continue
            try:
                costs[i] = float(self._executor.submit(_evaluate_in_worker, vectors[i]).result())
            except BrokenProcessPool:
                logger.error(f"Worker process died evaluating {vectors[i]}; assigning sentinel cost")
                costs[i] = SENTINEL_COST
                self._restart()
            except Exception as exc:
                logger.error(f"Worker failed evaluating {vectors[i]}: {exc!r}; assigning sentinel cost")
                costs[i] = SENTINEL_COST

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None


def create_population_evaluator(context: EvaluationContext, workers: int = 1) -> PopulationEvaluator:
    """Sequential evaluation for a single worker, a process pool otherwise."""
    if workers <= 1:
        return SequentialPopulationEvaluator.from_context(context)
    return ProcessPoolPopulationEvaluator(context, workers)
