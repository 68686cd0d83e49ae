"""
Virtual job manager

Presents the predicted state of one job as a cache. Inputs are copied on
the way in and answers on the way out. The what-if engine runs again only
after an input changed.
"""

import logging
import threading
from typing import Iterable, List, Optional, Union

from ..core.cluster import ClusterConfiguration
from ..core.conf import JobConf
from ..core.dataset import (DataSetModel, FixedInputSpecsDataSetModel,
                            MapInputSpecs, specs_from_profile)
from ..core.profile import JobProfile
from ..monitoring import MetricsCollector
from .engine import WhatIfEngine
from .oracle import JobProfileOracle
from .record import PredictedJobRecord
from .scheduler import create_scheduler
from .transfers import generate_data_transfers

logger = logging.getLogger(__name__)


class VirtualJobManager:
    """
    Cached what-if answers for a single job

    The job is addressable by two identifiers: the source job id and the
    virtual job id of the current prediction. Both resolve to the same
    cached record. Getters hand out copies, so callers cannot change the
    cache. Updates only mark the cache dirty; the next load recomputes it.
    """

    def __init__(self, source_profile: JobProfile, conf: JobConf, cluster: ClusterConfiguration,
                 data_model: Optional[DataSetModel] = None, scheduler_name: str = "fifo",
                 metrics: Optional[MetricsCollector] = None):
        self._lock = threading.RLock()
        self._source_profile = source_profile.copy()
        self._conf = conf.copy()
        self._cluster = cluster.copy()
        if data_model is None:
            data_model = FixedInputSpecsDataSetModel(specs_from_profile(self._source_profile))
        self._data_model = data_model.copy()
        self._scheduler_name = scheduler_name
        self.metrics = metrics

        self._job = self._process_what_if_request()
        self._details_dirty = False
        self._transfers_dirty = True
        self.source_job_id = self._source_profile.job_id
        self.virtual_job_id = self._job.job_id

    @property
    def details_dirty(self) -> bool:
        with self._lock:
            return self._details_dirty

    @property
    def transfers_dirty(self) -> bool:
        with self._lock:
            return self._transfers_dirty

    def _process_what_if_request(self) -> PredictedJobRecord:
        engine = WhatIfEngine(
            JobProfileOracle(self._source_profile),
            self._data_model,
            create_scheduler(self._scheduler_name, self._cluster),
            metrics=self.metrics,
        )
        return engine.evaluate(self._conf)

    def _knows(self, job_id: str) -> bool:
        return job_id in (self.source_job_id, self.virtual_job_id)

    def _invalidate(self):
        self._details_dirty = True
        self._transfers_dirty = True

    def update_configuration(self, conf: JobConf):
        with self._lock:
            self._conf = conf.copy()
            self._invalidate()

    def update_cluster(self, cluster: ClusterConfiguration):
        with self._lock:
            self._cluster = cluster.copy()
            self._invalidate()

    def update_input_specs(self, specs: Union[DataSetModel, Iterable[MapInputSpecs]]):
        with self._lock:
            if isinstance(specs, DataSetModel):
                self._data_model = specs.copy()
            else:
                self._data_model = FixedInputSpecsDataSetModel(specs)
            self._invalidate()

    def load_details(self, job_id: str) -> bool:
        """Make sure the cached record reflects the current inputs"""
        with self._lock:
            if not self._knows(job_id):
                logger.warning(f"Manager for job {self.source_job_id} cannot load details for job {job_id}")
                return False

            if self._details_dirty:
                self._job = self._process_what_if_request()
                self.virtual_job_id = self._job.job_id
                self._details_dirty = False
                if self.metrics:
                    self.metrics.record_cache(hit=False)
            elif self.metrics:
                self.metrics.record_cache(hit=True)
            return True

    def load_transfers(self, job_id: str) -> bool:
        """Load the details, then regenerate the data transfers if needed"""
        with self._lock:
            if not self.load_details(job_id):
                return False

            success = True
            if self._transfers_dirty:
                success = generate_data_transfers(self._job)
                self._transfers_dirty = False
            return success

    def get_job(self, job_id: str) -> Optional[PredictedJobRecord]:
        with self._lock:
            return self._job.copy() if self._knows(job_id) else None

    def get_configuration(self, job_id: str) -> Optional[JobConf]:
        with self._lock:
            return self._conf.copy() if self._knows(job_id) else None

    def get_cluster(self, job_id: str) -> Optional[ClusterConfiguration]:
        with self._lock:
            return self._cluster.copy() if self._knows(job_id) else None

    def get_profile(self, job_id: str) -> Optional[JobProfile]:
        with self._lock:
            return self._source_profile.copy() if self._knows(job_id) else None

    def get_all_jobs(self, start: Optional[float] = None, end: Optional[float] = None) -> List[PredictedJobRecord]:
        """The single job, if it ran within [start, end]"""
        with self._lock:
            job = self._job
            if start is not None and job.start_time < start:
                return []
            if end is not None and job.end_time > end:
                return []
            return [job.copy()]
