"""
Job profiles

A job profile is the statistical summary of one real execution of a
map/reduce job: per task type counters, derived statistics, per-unit cost
factors and fixed per-task timings. Profiles are produced outside this
package (history and trace collection) and are read-only to the what-if
components.

Units:
- counters: bytes and records
- cost factors: nanoseconds per byte or per record
- timings: milliseconds per task
- memory statistics: bytes (per task or per record)
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TaskType(Enum):
    MAP = "map"
    REDUCE = "reduce"


class MRCounter(Enum):
    """Per task counters (averages per task in a profile)"""
    MAP_INPUT_RECORDS = "map_input_records"
    MAP_INPUT_BYTES = "map_input_bytes"
    MAP_OUTPUT_RECORDS = "map_output_records"
    MAP_OUTPUT_BYTES = "map_output_bytes"
    MAP_OUTPUT_MATERIALIZED_BYTES = "map_output_materialized_bytes"
    COMBINE_INPUT_RECORDS = "combine_input_records"
    COMBINE_OUTPUT_RECORDS = "combine_output_records"
    SPILLED_RECORDS = "spilled_records"
    REDUCE_SHUFFLE_BYTES = "reduce_shuffle_bytes"
    REDUCE_INPUT_RECORDS = "reduce_input_records"
    REDUCE_INPUT_BYTES = "reduce_input_bytes"
    REDUCE_OUTPUT_RECORDS = "reduce_output_records"
    REDUCE_OUTPUT_BYTES = "reduce_output_bytes"
    HDFS_BYTES_READ = "hdfs_bytes_read"
    HDFS_BYTES_WRITTEN = "hdfs_bytes_written"
    FILE_BYTES_READ = "file_bytes_read"
    FILE_BYTES_WRITTEN = "file_bytes_written"


class MRStatistic(Enum):
    """Derived statistics (ratios, selectivities, memory)"""
    INPUT_PAIR_WIDTH = "input_pair_width"
    MAP_SIZE_SEL = "map_size_sel"
    MAP_PAIRS_SEL = "map_pairs_sel"
    COMBINE_SIZE_SEL = "combine_size_sel"
    COMBINE_PAIRS_SEL = "combine_pairs_sel"
    REDUCE_SIZE_SEL = "reduce_size_sel"
    REDUCE_PAIRS_SEL = "reduce_pairs_sel"
    INPUT_COMPRESS_RATIO = "input_compress_ratio"
    INTERM_COMPRESS_RATIO = "interm_compress_ratio"
    OUT_COMPRESS_RATIO = "out_compress_ratio"
    STARTUP_MEM = "startup_mem"
    SETUP_MEM = "setup_mem"
    CLEANUP_MEM = "cleanup_mem"
    MAP_MEM_PER_RECORD = "map_mem_per_record"
    REDUCE_MEM_PER_RECORD = "reduce_mem_per_record"


class MRCostFactor(Enum):
    """Per-unit costs in nanoseconds per byte or record"""
    READ_HDFS_IO_COST = "read_hdfs_io_cost"
    WRITE_HDFS_IO_COST = "write_hdfs_io_cost"
    READ_LOCAL_IO_COST = "read_local_io_cost"
    WRITE_LOCAL_IO_COST = "write_local_io_cost"
    NETWORK_COST = "network_cost"
    MAP_CPU_COST = "map_cpu_cost"
    REDUCE_CPU_COST = "reduce_cpu_cost"
    COMBINE_CPU_COST = "combine_cpu_cost"
    PARTITION_CPU_COST = "partition_cpu_cost"
    SERDE_CPU_COST = "serde_cpu_cost"
    SORT_CPU_COST = "sort_cpu_cost"
    MERGE_CPU_COST = "merge_cpu_cost"
    INPUT_UNCOMP_CPU_COST = "input_uncomp_cpu_cost"
    INTERM_UNCOMP_CPU_COST = "interm_uncomp_cpu_cost"
    INTERM_COMP_CPU_COST = "interm_comp_cpu_cost"
    OUTPUT_COMP_CPU_COST = "output_comp_cpu_cost"


class TaskPhase(Enum):
    """Task execution phases, timed in milliseconds"""
    STARTUP = "startup"
    SETUP = "setup"
    READ = "read"
    MAP = "map"
    COLLECT = "collect"
    SPILL = "spill"
    MERGE = "merge"
    SHUFFLE = "shuffle"
    SORT = "sort"
    REDUCE = "reduce"
    WRITE = "write"
    CLEANUP = "cleanup"


# Fixed per task overheads, never scaled by the amount of work
OVERHEAD_PHASES = (TaskPhase.STARTUP, TaskPhase.SETUP, TaskPhase.CLEANUP)


def _parse_enum(enum_cls, key):
    if isinstance(key, enum_cls):
        return key
    try:
        return enum_cls(str(key).lower())
    except ValueError:
        return enum_cls[str(key).upper()]


def _parse_table(enum_cls, data: Optional[Dict[Any, Any]]) -> Dict[Any, float]:
    return {_parse_enum(enum_cls, k): float(v) for k, v in (data or {}).items()}


def _dump_table(table: Dict[Enum, float]) -> Dict[str, float]:
    return {k.value: v for k, v in table.items()}


@dataclass
class TaskProfile:
    """Average behavior of the tasks of one type (and one input for maps)"""
    task_type: TaskType
    num_tasks: int = 0
    input_index: int = 0
    counters: Dict[MRCounter, float] = field(default_factory=dict)
    statistics: Dict[MRStatistic, float] = field(default_factory=dict)
    cost_factors: Dict[MRCostFactor, float] = field(default_factory=dict)
    timings: Dict[TaskPhase, float] = field(default_factory=dict)

    def counter(self, name: MRCounter, default: float = 0.0) -> float:
        return self.counters.get(name, default)

    def statistic(self, name: MRStatistic, default: Optional[float] = None) -> Optional[float]:
        return self.statistics.get(name, default)

    def cost_factor(self, name: MRCostFactor, default: float = 0.0) -> float:
        return self.cost_factors.get(name, default)

    def timing(self, phase: TaskPhase, default: float = 0.0) -> float:
        return self.timings.get(phase, default)

    def is_empty(self) -> bool:
        return self.num_tasks <= 0

    @property
    def has_combiner(self) -> bool:
        return self.counter(MRCounter.COMBINE_INPUT_RECORDS) > 0

    def copy(self) -> "TaskProfile":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'task_type': self.task_type.value,
            'num_tasks': self.num_tasks,
            'input_index': self.input_index,
            'counters': _dump_table(self.counters),
            'statistics': _dump_table(self.statistics),
            'cost_factors': _dump_table(self.cost_factors),
            'timings': _dump_table(self.timings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskProfile":
        return cls(
            task_type=_parse_enum(TaskType, data.get('task_type', 'map')),
            num_tasks=int(data.get('num_tasks', 0)),
            input_index=int(data.get('input_index', 0)),
            counters=_parse_table(MRCounter, data.get('counters')),
            statistics=_parse_table(MRStatistic, data.get('statistics')),
            cost_factors=_parse_table(MRCostFactor, data.get('cost_factors')),
            timings=_parse_table(TaskPhase, data.get('timings')),
        )


@dataclass(frozen=True)
class SplitObservation:
    """Input split actually processed by one successful map attempt"""
    input_index: int
    size: int
    compressed: bool = False


@dataclass
class JobProfile:
    """Profile of one source job execution"""
    job_id: str
    job_name: str = ""
    map_profiles: List[TaskProfile] = field(default_factory=list)
    reduce_profile: Optional[TaskProfile] = None
    setup_ms: float = 0.0
    cleanup_ms: float = 0.0
    split_observations: List[SplitObservation] = field(default_factory=list)

    def map_profile_for(self, input_index: int) -> Optional[TaskProfile]:
        for profile in self.map_profiles:
            if profile.input_index == input_index:
                return profile
        return None

    @property
    def has_reduces(self) -> bool:
        return self.reduce_profile is not None and not self.reduce_profile.is_empty()

    @property
    def num_map_tasks(self) -> int:
        return sum(p.num_tasks for p in self.map_profiles)

    @property
    def num_reduce_tasks(self) -> int:
        return self.reduce_profile.num_tasks if self.reduce_profile else 0

    def copy(self) -> "JobProfile":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'job_id': self.job_id,
            'job_name': self.job_name,
            'map_profiles': [p.to_dict() for p in self.map_profiles],
            'reduce_profile': self.reduce_profile.to_dict() if self.reduce_profile else None,
            'setup_ms': self.setup_ms,
            'cleanup_ms': self.cleanup_ms,
            'split_observations': [
                {'input_index': s.input_index, 'size': s.size, 'compressed': s.compressed}
                for s in self.split_observations
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobProfile":
        map_profiles = []
        for entry in data.get('map_profiles', []):
            entry = dict(entry, task_type='map')
            map_profiles.append(TaskProfile.from_dict(entry))

        reduce_data = data.get('reduce_profile')
        reduce_profile = None
        if reduce_data:
            reduce_profile = TaskProfile.from_dict(dict(reduce_data, task_type='reduce'))

        observations = [
            SplitObservation(int(s['input_index']), int(s['size']), bool(s.get('compressed', False)))
            for s in data.get('split_observations', [])
        ]

        return cls(
            job_id=str(data['job_id']),
            job_name=data.get('job_name', ''),
            map_profiles=map_profiles,
            reduce_profile=reduce_profile,
            setup_ms=float(data.get('setup_ms', 0.0)),
            cleanup_ms=float(data.get('cleanup_ms', 0.0)),
            split_observations=observations,
        )
