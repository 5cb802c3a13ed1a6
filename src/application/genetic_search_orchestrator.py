"""Genetic search orchestrator - application use case."""
import time
import logging

from domain.errors import ConfigurationError, SearchExhaustedError
from domain.models import SearchSummary
from domain.services import GeneticSearchService
from application.dto import GeneticSearchRequest, GeneticSearchResponse, SearchStatus

logger = logging.getLogger(__name__)


class GeneticSearchOrchestrator:
    """Orchestrates the genetic search use case."""

    def __init__(self, service: GeneticSearchService):
        """Initialize with genetic search service."""
        self.service = service

    def execute(self, request: GeneticSearchRequest) -> GeneticSearchResponse:
        """Execute genetic search."""
        try:
            start_time = time.time()
            cfg = self.service.config

            if request.verbose:
                logger.info(
                    "Genetic search: "
                    f"domain={cfg.domain.to_dict()} "
                    f"space={cfg.domain.size} "
                    f"population={cfg.population_size} "
                    f"max_generations={cfg.max_generations} "
                    f"cost={cfg.cost.kind.value} "
                    f"workers={cfg.workers} "
                    f"seed={cfg.seed}"
                )

            for result in self.service.run():
                if request.verbose:
                    progress_pct = (result.generation / cfg.max_generations) * 100.0
                    logger.info(
                        f"[gen {result.generation}/{cfg.max_generations} ({progress_pct:.1f}%)] "
                        f"evaluated={result.evaluated} invalid={result.invalid} "
                        f"gen_best={result.generation_best.vector} "
                        f"→ cost={result.generation_best.cost:.6f} "
                        f"mean={result.mean_valid_cost:.6f} "
                        f"({result.duration_seconds:.1f}s)"
                    )
                    if result.improved and result.best_so_far.is_valid:
                        logger.info(
                            f"  ✓ New best: {result.best_so_far.vector} "
                            f"cost={result.best_so_far.cost:.6f}"
                        )

            best = self.service.result()
            end_time = time.time()

            summary = SearchSummary(
                generations=len(self.service.history),
                evaluations=self.service.evaluations,
                best=best,
                converged=self.service.converged,
                start_time=start_time,
                end_time=end_time,
            )
            return GeneticSearchResponse(status=SearchStatus.SUCCESS, summary=summary)

        except SearchExhaustedError as e:
            return GeneticSearchResponse(status=SearchStatus.EXHAUSTED, error_message=str(e))
        except ConfigurationError as e:
            return GeneticSearchResponse(status=SearchStatus.CONFIGURATION_ERROR, error_message=str(e))
        except Exception as e:
            logger.exception("Genetic search failed")
            return GeneticSearchResponse(status=SearchStatus.FAILED, error_message=str(e))
