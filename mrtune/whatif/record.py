"""
Predicted job execution records
"""

import copy
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from ..core.conf import JobConf
from ..core.profile import MRCounter, TaskType
from .oracle import PredictedTaskProfile

VIRTUAL_JOB_PREFIX = "virtual_"


def virtual_job_id(source_job_id: str) -> str:
    return f"{VIRTUAL_JOB_PREFIX}{source_job_id}"


@dataclass
class TaskAttempt:
    """One simulated (always successful) task attempt"""
    task_id: str
    task_type: TaskType
    host: str
    start_time: float
    end_time: float
    profile: PredictedTaskProfile
    shuffle_end: Optional[float] = None

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass
class DataTransfer:
    """Predicted intermediate data moved from one map to one reduce"""
    source_task_id: str
    destination_task_id: str
    source_host: str
    destination_host: str
    compressed_bytes: float
    uncompressed_bytes: float


@dataclass
class PredictedJobRecord:
    """
    Outcome of one simulated execution

    Times are milliseconds since job submission.
    """
    job_id: str
    source_job_id: str
    job_name: str
    configuration: JobConf
    start_time: float = 0.0
    end_time: float = 0.0
    setup_ms: float = 0.0
    cleanup_ms: float = 0.0
    total_map_slots: int = 0
    map_attempts: List[TaskAttempt] = field(default_factory=list)
    reduce_attempts: List[TaskAttempt] = field(default_factory=list)
    data_transfers: List[DataTransfer] = field(default_factory=list)

    @property
    def elapsed_ms(self) -> float:
        return self.end_time - self.start_time

    @property
    def map_slot_ms(self) -> float:
        return sum(a.duration for a in self.map_attempts)

    @property
    def reduce_slot_ms(self) -> float:
        return sum(a.duration for a in self.reduce_attempts)

    @property
    def resource_time_ms(self) -> float:
        return self.map_slot_ms + self.reduce_slot_ms

    @property
    def peak_task_memory(self) -> float:
        return max((a.profile.memory for a in self.attempts()), default=0.0)

    @property
    def num_map_waves(self) -> int:
        if not self.map_attempts or self.total_map_slots <= 0:
            return 0
        return math.ceil(len(self.map_attempts) / self.total_map_slots)

    def attempts(self) -> List[TaskAttempt]:
        return self.map_attempts + self.reduce_attempts

    def counters(self) -> Dict[MRCounter, float]:
        """Job level counters summed over all task attempts"""
        totals: Dict[MRCounter, float] = defaultdict(float)
        for attempt in self.attempts():
            for name, value in attempt.profile.counters.items():
                totals[name] += value
        return dict(totals)

    def task_frame(self) -> pd.DataFrame:
        """One row per task attempt, ordered by start time"""
        rows = [{
            'task_id': a.task_id,
            'task_type': a.task_type.value,
            'host': a.host,
            'start_time': a.start_time,
            'end_time': a.end_time,
            'duration': a.duration,
            'shuffle_end': a.shuffle_end,
            'memory': a.profile.memory,
        } for a in self.attempts()]
        columns = ['task_id', 'task_type', 'host', 'start_time', 'end_time', 'duration', 'shuffle_end', 'memory']
        frame = pd.DataFrame(rows, columns=columns)
        return frame.sort_values(['start_time', 'task_id'], kind='stable').reset_index(drop=True)

    def copy(self) -> "PredictedJobRecord":
        return copy.deepcopy(self)
