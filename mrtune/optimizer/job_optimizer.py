"""
Job optimizers

A job optimizer searches the full parameter space of one job for the
configuration with the lowest predicted cost. It acts as its own cost
engine on top of a what-if engine.
"""

import logging
from abc import abstractmethod
from typing import Optional

from ..config import SearchConfig
from ..core.cluster import ClusterConfiguration
from ..core.conf import JobConf
from ..core.dataset import DataSetModel
from ..monitoring import MetricsCollector
from ..whatif.engine import WhatIfEngine
from ..whatif.oracle import JobProfileOracle
from ..whatif.record import PredictedJobRecord
from ..whatif.scheduler import Scheduler
from .cost_engine import CostEngine, resolve_objective
from .rrs import RecursiveRandomSearch, SearchResult
from .space import ParameterSpace, ParameterSpacePoint, full_parameter_space

logger = logging.getLogger(__name__)


class JobOptimizer(CostEngine):
    """Base class for job configuration optimizers"""

    def __init__(self, oracle: JobProfileOracle, data_model: DataSetModel, scheduler: Scheduler,
                 cluster: ClusterConfiguration, conf: JobConf,
                 search_config: Optional[SearchConfig] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.oracle = oracle
        self.data_model = data_model
        self.cluster = cluster.copy()
        self.conf = conf.copy()
        self.search_config = search_config or SearchConfig()
        self.metrics = metrics
        self.engine = WhatIfEngine(oracle, data_model, scheduler, metrics)
        self.objective = resolve_objective(self.search_config.objective)

        self._best_point: Optional[ParameterSpacePoint] = None
        self._best_conf: Optional[JobConf] = None
        self._best_job: Optional[PredictedJobRecord] = None

    def build_space(self) -> ParameterSpace:
        return full_parameter_space(self.conf, self.oracle.source_profile, self.cluster, self.data_model)

    def cost_space_point(self, point: ParameterSpacePoint) -> float:
        conf = self.conf.copy()
        point.populate_configuration(conf)
        return float(self.objective(self.engine.evaluate(conf)))

    @abstractmethod
    def _optimize_internal(self, space: ParameterSpace) -> ParameterSpacePoint:
        pass

    def optimize(self) -> ParameterSpacePoint:
        """Search for the best configuration and remember its prediction"""
        space = self.build_space()
        point = self._optimize_internal(space)

        self._best_point = point
        self._best_conf = space.materialize(point, self.conf)
        self._best_job = self.engine.evaluate(self._best_conf)
        logger.info(f"Best configuration for job {self.oracle.source_profile.job_id}: "
                    f"{point.to_dict()} (predicted elapsed {self._best_job.elapsed_ms:.1f} ms)")
        return point

    def best_point(self) -> Optional[ParameterSpacePoint]:
        return self._best_point

    def best_configuration(self) -> Optional[JobConf]:
        return self._best_conf.copy() if self._best_conf is not None else None

    def best_job(self) -> Optional[PredictedJobRecord]:
        return self._best_job


class RRSJobOptimizer(JobOptimizer):
    """Job optimizer driven by recursive random search"""

    last_result: Optional[SearchResult] = None

    def _optimize_internal(self, space: ParameterSpace) -> ParameterSpacePoint:
        search = RecursiveRandomSearch.from_config(self.search_config, self.metrics)
        self.last_result = search.search(space, self)
        return self.last_result.best_point
