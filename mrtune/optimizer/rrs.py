"""
Recursive random search

Samples a region of the parameter space uniformly, keeps the best point
seen so far and shrinks the region around each stage's best point. The
total budget is exactly num_stages * samples_per_stage cost evaluations.
"""

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from ..core.errors import InvalidSearchBudget
from ..monitoring import MetricsCollector
from .cost_engine import CostEngine
from .space import ParameterRegion, ParameterSpace, ParameterSpacePoint

logger = logging.getLogger(__name__)


@dataclass
class StageSummary:
    stage: int
    region: ParameterRegion
    stage_best_point: ParameterSpacePoint
    stage_best_cost: float
    best_cost: float


@dataclass
class SearchResult:
    best_point: ParameterSpacePoint
    best_cost: Optional[float]  # None when nothing was evaluated
    evaluations: int
    execution_time: float
    stages: List[StageSummary] = field(default_factory=list)


class RecursiveRandomSearch:
    """
    Recursive random search over a parameter space

    Stage random generators are spawned from one seed sequence, so a fixed
    seed fixes every sampled point. Evaluations of a stage may run on a
    thread pool; results are consumed in draw order, so the incumbent does
    not depend on thread timing. Only a strictly lower cost replaces the
    incumbent, which means the earliest point wins a tie.
    """

    def __init__(self, num_stages: int, samples_per_stage: int, shrink_factor: float = 0.5,
                 seed: Optional[int] = None, workers: int = 1,
                 metrics: Optional[MetricsCollector] = None):
        if num_stages <= 0:
            raise InvalidSearchBudget(f"Number of stages must be positive, got {num_stages}")
        if samples_per_stage <= 0:
            raise InvalidSearchBudget(f"Samples per stage must be positive, got {samples_per_stage}")
        if not 0 < shrink_factor < 1:
            raise InvalidSearchBudget(f"Shrink factor must be in (0, 1), got {shrink_factor}")
        self.num_stages = num_stages
        self.samples_per_stage = samples_per_stage
        self.shrink_factor = shrink_factor
        self.seed = seed
        self.workers = max(1, workers)
        self.metrics = metrics

    @classmethod
    def from_config(cls, config, metrics: Optional[MetricsCollector] = None) -> "RecursiveRandomSearch":
        return cls(config.num_stages, config.samples_per_stage, config.shrink_factor,
                   seed=config.seed, workers=config.workers, metrics=metrics)

    def run(self, space: ParameterSpace, cost_engine: CostEngine) -> ParameterSpacePoint:
        return self.search(space, cost_engine).best_point

    def search(self, space: ParameterSpace, cost_engine: CostEngine) -> SearchResult:
        start_time = time.time()
        if len(space) == 0:
            logger.info("Parameter space has no dimensions, nothing to search")
            return SearchResult(ParameterSpacePoint(), None, 0, time.time() - start_time)

        generators = [np.random.default_rng(s) for s in np.random.SeedSequence(self.seed).spawn(self.num_stages)]
        region = space.full_region()
        best_point: Optional[ParameterSpacePoint] = None
        best_cost = math.inf
        evaluations = 0
        stages = []

        executor = ThreadPoolExecutor(max_workers=self.workers) if self.workers > 1 else None
        try:
            for stage, rng in enumerate(generators):
                points = space.sample_points(region, self.samples_per_stage, rng)
                if executor is not None:
                    costs = list(executor.map(cost_engine.cost_space_point, points))
                else:
                    costs = [cost_engine.cost_space_point(p) for p in points]
                evaluations += len(points)

                stage_best_point, stage_best_cost = points[0], math.inf
                for point, cost in zip(points, costs):
                    if cost < stage_best_cost:
                        stage_best_point, stage_best_cost = point, cost

                if best_point is None or stage_best_cost < best_cost:
                    best_point, best_cost = stage_best_point, stage_best_cost

                stages.append(StageSummary(stage, region, stage_best_point, stage_best_cost, best_cost))
                if self.metrics:
                    self.metrics.record_stage(stage, len(points), stage_best_cost, best_cost)
                logger.info(f"RRS stage {stage + 1}/{self.num_stages}: stage best {stage_best_cost:.3f}, "
                            f"incumbent {best_cost:.3f}")

                region = space.shrink(region, stage_best_point, self.shrink_factor)
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        execution_time = time.time() - start_time
        logger.info(f"RRS finished after {evaluations} evaluations in {execution_time:.2f}s, "
                    f"best cost {best_cost:.3f}")
        return SearchResult(best_point, best_cost, evaluations, execution_time, stages)
