"""
What-if engine: configuration in, predicted job record out
"""

import logging
import time
from typing import Optional

from ..core import conf as keys
from ..core.conf import JobConf
from ..core.dataset import DataSetModel
from ..core.errors import MRTuneError
from ..monitoring import MetricsCollector
from .oracle import JobProfileOracle, VirtualJobProfile
from .record import PredictedJobRecord, virtual_job_id
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class WhatIfEngine:
    """
    Composes profile extrapolation and scheduling simulation

    The engine keeps no state between calls apart from the read-only
    oracle, data model and scheduler it was built with.
    """

    def __init__(self, oracle: JobProfileOracle, data_model: DataSetModel, scheduler: Scheduler,
                 metrics: Optional[MetricsCollector] = None):
        self.oracle = oracle
        self.data_model = data_model
        self.scheduler = scheduler
        self.metrics = metrics

    def _prepare(self, conf: JobConf) -> JobConf:
        conf = conf.copy()
        conf.set(keys.MAP_SPECULATIVE, False)
        conf.set(keys.REDUCE_SPECULATIVE, False)
        return conf

    def predict_profile(self, conf: JobConf) -> VirtualJobProfile:
        """Predicted task profiles for a configuration"""
        conf = self._prepare(conf)
        specs = self.data_model.generate_map_input_specs(conf)
        return self.oracle.predict(conf, specs)

    def evaluate(self, conf: JobConf) -> PredictedJobRecord:
        """Predict the execution of the job under a configuration"""
        start = time.perf_counter()
        conf = self._prepare(conf)
        source = self.oracle.source_profile
        try:
            specs = self.data_model.generate_map_input_specs(conf)
            virtual_profile = self.oracle.predict(conf, specs)
            record = self.scheduler.simulate(virtual_profile, conf, virtual_job_id(source.job_id),
                                             source.job_id, source.job_name)
        except MRTuneError:
            if self.metrics:
                self.metrics.record_simulation(time.perf_counter() - start, outcome="invalid")
            raise

        duration = time.perf_counter() - start
        if self.metrics:
            self.metrics.record_simulation(duration, record.elapsed_ms)
        logger.debug(f"What-if for job {source.job_id}: elapsed {record.elapsed_ms:.1f} ms "
                     f"({duration * 1000:.2f} ms to simulate)")
        return record
