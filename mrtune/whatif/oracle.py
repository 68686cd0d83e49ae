"""
Job profile extrapolation

Predicts per-task profiles for a hypothetical configuration and input from
the profile of one prior execution of the same job. Per-unit costs and
selectivities are taken from the source profile and assumed stable; unit
counts come from the map input specifications and the configuration.
Startup, setup and cleanup timings are added unscaled.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..core import conf as keys
from ..core.conf import DEFAULTS, JobConf
from ..core.dataset import DataLocality, MapInputSpecs
from ..core.errors import InvalidConfiguration
from ..core.profile import (OVERHEAD_PHASES, JobProfile, MRCostFactor,
                            MRCounter, MRStatistic, TaskPhase, TaskProfile,
                            TaskType)

logger = logging.getLogger(__name__)

NS_PER_MS = 1e6
MB = 1024 * 1024

# Bytes of accounting metadata per buffered map output record
RECORD_META_BYTES = 16


def safe_div(numerator: float, denominator: float) -> float:
    """Division that yields 0 for a zero denominator"""
    if denominator == 0:
        return 0.0
    return numerator / denominator


@dataclass
class PredictedTaskProfile:
    """Predicted behavior of one simulated task"""
    task_type: TaskType
    input_index: int = 0
    counters: Dict[MRCounter, float] = field(default_factory=dict)
    timings: Dict[TaskPhase, float] = field(default_factory=dict)
    memory: float = 0.0
    locality: DataLocality = DataLocality.DATA_LOCAL
    # Intermediate output before compression (maps only)
    uncompressed_output_bytes: float = 0.0

    def counter(self, name: MRCounter) -> float:
        return self.counters.get(name, 0.0)

    def timing(self, phase: TaskPhase) -> float:
        return self.timings.get(phase, 0.0)

    @property
    def duration(self) -> float:
        return sum(self.timings.values())

    @property
    def overhead(self) -> float:
        return sum(self.timing(p) for p in OVERHEAD_PHASES)


@dataclass
class VirtualJobProfile:
    """Predicted task profiles for one hypothetical execution"""
    source_job_id: str
    job_name: str = ""
    map_tasks: List[PredictedTaskProfile] = field(default_factory=list)
    reduce_tasks: List[PredictedTaskProfile] = field(default_factory=list)
    reduce_empty: bool = True
    setup_ms: float = 0.0
    cleanup_ms: float = 0.0

    @property
    def num_maps(self) -> int:
        return len(self.map_tasks)

    @property
    def num_reduces(self) -> int:
        return len(self.reduce_tasks)


class JobProfileOracle:
    """Extrapolates a source job profile to new settings"""

    def __init__(self, source_profile: JobProfile):
        self.source_profile = source_profile.copy()

    def predict(self, conf: JobConf, specs: List[MapInputSpecs]) -> VirtualJobProfile:
        settings = self._validate(conf)
        source = self.source_profile
        num_reduces = settings['reduce_tasks']

        virtual = VirtualJobProfile(
            source_job_id=source.job_id,
            job_name=source.job_name,
            setup_ms=source.setup_ms,
            cleanup_ms=source.cleanup_ms,
        )

        map_only = num_reduces == 0
        for spec in specs:
            profile = source.map_profile_for(spec.input_index)
            if profile is None:
                logger.warning(f"No map profile for input {spec.input_index} of job {source.job_id}, "
                               f"predicting zero-cost map tasks")
            for _ in range(spec.num_splits):
                virtual.map_tasks.append(self._predict_map(profile, spec, settings, map_only))

        if num_reduces > 0:
            virtual.reduce_empty = False
            reduce_task = self._predict_reduce(source.reduce_profile, virtual.map_tasks, num_reduces, settings)
            virtual.reduce_tasks = [reduce_task] + [
                PredictedTaskProfile(TaskType.REDUCE, 0, dict(reduce_task.counters), dict(reduce_task.timings),
                                     reduce_task.memory)
                for _ in range(num_reduces - 1)
            ]

        logger.debug(f"Predicted {virtual.num_maps} map and {virtual.num_reduces} reduce tasks "
                     f"for job {source.job_id}")
        return virtual

    def _validate(self, conf: JobConf) -> Dict[str, float]:
        source = self.source_profile
        settings = {}

        if source.has_reduces:
            reduce_tasks = conf.get_int(keys.REDUCE_TASKS)
            if reduce_tasks is None:
                raise InvalidConfiguration(f"'{keys.REDUCE_TASKS}' is required for job {source.job_id}, "
                                           f"which has reduce tasks")
            if reduce_tasks < 0:
                raise InvalidConfiguration(f"'{keys.REDUCE_TASKS}' cannot be negative, got {reduce_tasks}")
        else:
            reduce_tasks = 0
        settings['reduce_tasks'] = reduce_tasks

        settings['sort_mb'] = conf.get_float(keys.SORT_MB, DEFAULTS[keys.SORT_MB])
        if settings['sort_mb'] <= 0:
            raise InvalidConfiguration(f"'{keys.SORT_MB}' must be positive, got {settings['sort_mb']}")

        settings['sort_factor'] = conf.get_int(keys.SORT_FACTOR, DEFAULTS[keys.SORT_FACTOR])
        if settings['sort_factor'] <= 0:
            raise InvalidConfiguration(f"'{keys.SORT_FACTOR}' must be positive, got {settings['sort_factor']}")

        for name, key in (('record_percent', keys.SORT_RECORD_PERCENT),
                          ('spill_percent', keys.SORT_SPILL_PERCENT),
                          ('shuffle_buffer_percent', keys.SHUFFLE_INPUT_BUFFER_PERCENT),
                          ('shuffle_merge_percent', keys.SHUFFLE_MERGE_PERCENT)):
            value = conf.get_float(key, DEFAULTS[key])
            if not 0 < value <= 1:
                raise InvalidConfiguration(f"'{key}' must be in (0, 1], got {value}")
            settings[name] = value

        settings['compress_map_output'] = conf.get_bool(keys.COMPRESS_MAP_OUTPUT, DEFAULTS[keys.COMPRESS_MAP_OUTPUT])
        settings['compress_output'] = conf.get_bool(keys.COMPRESS_OUTPUT, DEFAULTS[keys.COMPRESS_OUTPUT])
        settings['use_combiner'] = conf.get_bool(keys.USE_COMBINER, DEFAULTS[keys.USE_COMBINER])
        settings['heap_bytes'] = conf.task_heap_bytes()
        return settings

    def _predict_map(self, profile: Optional[TaskProfile], spec: MapInputSpecs,
                     settings: Dict[str, float], map_only: bool) -> PredictedTaskProfile:
        task = PredictedTaskProfile(TaskType.MAP, spec.input_index, locality=spec.locality)
        if profile is None or profile.is_empty():
            return task

        for phase in OVERHEAD_PHASES:
            task.timings[phase] = profile.timing(phase)

        # Input
        input_bytes = float(spec.size)
        uncompressed_bytes = input_bytes
        read_ns = input_bytes * profile.cost_factor(MRCostFactor.READ_HDFS_IO_COST)
        if spec.compressed:
            ratio = profile.statistic(MRStatistic.INPUT_COMPRESS_RATIO) or 1.0
            uncompressed_bytes = safe_div(input_bytes, ratio)
            read_ns += uncompressed_bytes * profile.cost_factor(MRCostFactor.INPUT_UNCOMP_CPU_COST)
        if spec.locality != DataLocality.DATA_LOCAL:
            read_ns += input_bytes * profile.cost_factor(MRCostFactor.NETWORK_COST)
        task.timings[TaskPhase.READ] = read_ns / NS_PER_MS

        pair_width = profile.statistic(MRStatistic.INPUT_PAIR_WIDTH)
        if pair_width is None:
            pair_width = safe_div(profile.counter(MRCounter.MAP_INPUT_BYTES),
                                  profile.counter(MRCounter.MAP_INPUT_RECORDS))
        input_records = safe_div(uncompressed_bytes, pair_width)
        task.timings[TaskPhase.MAP] = input_records * profile.cost_factor(MRCostFactor.MAP_CPU_COST) / NS_PER_MS

        size_sel = _selectivity(profile, MRStatistic.MAP_SIZE_SEL,
                                MRCounter.MAP_OUTPUT_BYTES, MRCounter.MAP_INPUT_BYTES)
        pairs_sel = _selectivity(profile, MRStatistic.MAP_PAIRS_SEL,
                                 MRCounter.MAP_OUTPUT_RECORDS, MRCounter.MAP_INPUT_RECORDS)
        output_bytes = uncompressed_bytes * size_sel
        output_records = input_records * pairs_sel

        task.counters.update({
            MRCounter.MAP_INPUT_BYTES: uncompressed_bytes,
            MRCounter.MAP_INPUT_RECORDS: input_records,
            MRCounter.HDFS_BYTES_READ: input_bytes,
            MRCounter.MAP_OUTPUT_BYTES: output_bytes,
            MRCounter.MAP_OUTPUT_RECORDS: output_records,
        })
        task.memory = _task_memory(profile, MRStatistic.MAP_MEM_PER_RECORD, input_records)

        if map_only:
            written, write_ns = _output_write(profile, output_bytes, settings['compress_output'])
            task.timings[TaskPhase.WRITE] = write_ns / NS_PER_MS
            task.counters[MRCounter.HDFS_BYTES_WRITTEN] = written
            return task

        self._predict_map_spills(task, profile, output_bytes, output_records, settings)
        return task

    def _predict_map_spills(self, task: PredictedTaskProfile, profile: TaskProfile,
                            output_bytes: float, output_records: float, settings: Dict[str, float]):
        """Collect, sort, spill and merge of the map output"""
        task.timings[TaskPhase.COLLECT] = output_records * (
            profile.cost_factor(MRCostFactor.PARTITION_CPU_COST) +
            profile.cost_factor(MRCostFactor.SERDE_CPU_COST)) / NS_PER_MS

        # Spill threshold from the accounting and serialization buffers
        buffer_bytes = settings['sort_mb'] * MB
        record_capacity = buffer_bytes * settings['record_percent'] / RECORD_META_BYTES
        data_capacity = buffer_bytes * (1 - settings['record_percent'])
        pair_width = safe_div(output_bytes, output_records)
        records_per_spill = record_capacity * settings['spill_percent']
        if pair_width > 0:
            records_per_spill = min(records_per_spill, data_capacity * settings['spill_percent'] / pair_width)

        if output_records <= 0:
            num_spills = 0
        else:
            num_spills = max(1, math.ceil(output_records / max(records_per_spill, 1.0)))
        spill_records = safe_div(output_records, num_spills)

        # Combiner runs on every spill
        spill_ns = 0.0
        spilled_records = output_records
        spilled_bytes = output_bytes
        if profile.has_combiner and settings['use_combiner']:
            combine_pairs_sel = _selectivity(profile, MRStatistic.COMBINE_PAIRS_SEL,
                                             MRCounter.COMBINE_OUTPUT_RECORDS, MRCounter.COMBINE_INPUT_RECORDS)
            combine_size_sel = profile.statistic(MRStatistic.COMBINE_SIZE_SEL, combine_pairs_sel)
            spill_ns += output_records * profile.cost_factor(MRCostFactor.COMBINE_CPU_COST)
            spilled_records = output_records * combine_pairs_sel
            spilled_bytes = output_bytes * combine_size_sel
            task.counters[MRCounter.COMBINE_INPUT_RECORDS] = output_records
            task.counters[MRCounter.COMBINE_OUTPUT_RECORDS] = spilled_records

        materialized = spilled_bytes
        if settings['compress_map_output']:
            ratio = profile.statistic(MRStatistic.INTERM_COMPRESS_RATIO)
            if ratio is None:
                ratio = safe_div(profile.counter(MRCounter.MAP_OUTPUT_MATERIALIZED_BYTES),
                                 profile.counter(MRCounter.MAP_OUTPUT_BYTES)) or 1.0
            materialized = spilled_bytes * ratio
            spill_ns += spilled_bytes * profile.cost_factor(MRCostFactor.INTERM_COMP_CPU_COST)
        spill_ns += materialized * profile.cost_factor(MRCostFactor.WRITE_LOCAL_IO_COST)
        task.timings[TaskPhase.SPILL] = spill_ns / NS_PER_MS

        num_reduces = settings['reduce_tasks']
        sort_depth = math.log2(max(2.0, safe_div(spill_records, num_reduces)))
        task.timings[TaskPhase.SORT] = (output_records * profile.cost_factor(MRCostFactor.SORT_CPU_COST) *
                                        sort_depth / NS_PER_MS)

        passes = 0
        if num_spills > 1:
            passes = _merge_passes(num_spills, settings['sort_factor'])
            pass_ns = (materialized * (profile.cost_factor(MRCostFactor.READ_LOCAL_IO_COST) +
                                       profile.cost_factor(MRCostFactor.WRITE_LOCAL_IO_COST)) +
                       spilled_records * profile.cost_factor(MRCostFactor.MERGE_CPU_COST))
            if settings['compress_map_output']:
                pass_ns += spilled_bytes * (profile.cost_factor(MRCostFactor.INTERM_UNCOMP_CPU_COST) +
                                            profile.cost_factor(MRCostFactor.INTERM_COMP_CPU_COST))
            task.timings[TaskPhase.MERGE] = passes * pass_ns / NS_PER_MS

        task.uncompressed_output_bytes = spilled_bytes
        task.counters.update({
            MRCounter.MAP_OUTPUT_MATERIALIZED_BYTES: materialized,
            MRCounter.SPILLED_RECORDS: spilled_records * (1 + passes),
            MRCounter.FILE_BYTES_WRITTEN: materialized * (1 + passes),
            MRCounter.FILE_BYTES_READ: materialized * passes,
        })

    def _predict_reduce(self, profile: Optional[TaskProfile], map_tasks: List[PredictedTaskProfile],
                        num_reduces: int, settings: Dict[str, float]) -> PredictedTaskProfile:
        task = PredictedTaskProfile(TaskType.REDUCE)
        if profile is None or profile.is_empty():
            return task

        for phase in OVERHEAD_PHASES:
            task.timings[phase] = profile.timing(phase)

        shuffle_bytes = sum(m.counter(MRCounter.MAP_OUTPUT_MATERIALIZED_BYTES) for m in map_tasks) / num_reduces
        input_bytes = sum(m.uncompressed_output_bytes for m in map_tasks) / num_reduces
        input_records = sum(_shuffled_records(m) for m in map_tasks) / num_reduces

        # Shuffled segments that do not fit the in-memory buffer go to disk
        shuffle_buffer = settings['heap_bytes'] * settings['shuffle_buffer_percent']
        merge_threshold = shuffle_buffer * settings['shuffle_merge_percent']
        on_disk = shuffle_bytes > merge_threshold

        shuffle_ns = 0.0
        if settings['compress_map_output']:
            shuffle_ns += input_bytes * profile.cost_factor(MRCostFactor.INTERM_UNCOMP_CPU_COST)
        if on_disk:
            shuffle_ns += shuffle_bytes * profile.cost_factor(MRCostFactor.WRITE_LOCAL_IO_COST)
        task.timings[TaskPhase.SHUFFLE] = shuffle_ns / NS_PER_MS

        sort_ns = input_records * profile.cost_factor(MRCostFactor.MERGE_CPU_COST)
        if on_disk:
            segments = math.ceil(safe_div(shuffle_bytes, merge_threshold))
            passes = _merge_passes(segments, settings['sort_factor']) if segments > 1 else 1
            sort_ns += passes * shuffle_bytes * profile.cost_factor(MRCostFactor.READ_LOCAL_IO_COST)
        task.timings[TaskPhase.SORT] = sort_ns / NS_PER_MS

        task.timings[TaskPhase.REDUCE] = input_records * profile.cost_factor(MRCostFactor.REDUCE_CPU_COST) / NS_PER_MS

        size_sel = _selectivity(profile, MRStatistic.REDUCE_SIZE_SEL,
                                MRCounter.REDUCE_OUTPUT_BYTES, MRCounter.REDUCE_INPUT_BYTES)
        pairs_sel = _selectivity(profile, MRStatistic.REDUCE_PAIRS_SEL,
                                 MRCounter.REDUCE_OUTPUT_RECORDS, MRCounter.REDUCE_INPUT_RECORDS)
        output_bytes = input_bytes * size_sel
        written, write_ns = _output_write(profile, output_bytes, settings['compress_output'])
        task.timings[TaskPhase.WRITE] = write_ns / NS_PER_MS

        task.counters.update({
            MRCounter.REDUCE_SHUFFLE_BYTES: shuffle_bytes,
            MRCounter.REDUCE_INPUT_BYTES: input_bytes,
            MRCounter.REDUCE_INPUT_RECORDS: input_records,
            MRCounter.REDUCE_OUTPUT_BYTES: output_bytes,
            MRCounter.REDUCE_OUTPUT_RECORDS: input_records * pairs_sel,
            MRCounter.HDFS_BYTES_WRITTEN: written,
            MRCounter.FILE_BYTES_WRITTEN: shuffle_bytes if on_disk else 0.0,
        })
        task.memory = _task_memory(profile, MRStatistic.REDUCE_MEM_PER_RECORD, input_records)
        return task


def _selectivity(profile: TaskProfile, statistic: MRStatistic,
                 output_counter: MRCounter, input_counter: MRCounter) -> float:
    value = profile.statistic(statistic)
    if value is not None:
        return value
    return safe_div(profile.counter(output_counter), profile.counter(input_counter))


def _shuffled_records(map_task: PredictedTaskProfile) -> float:
    if MRCounter.COMBINE_OUTPUT_RECORDS in map_task.counters:
        return map_task.counter(MRCounter.COMBINE_OUTPUT_RECORDS)
    return map_task.counter(MRCounter.MAP_OUTPUT_RECORDS)


def _merge_passes(num_segments: int, factor: int) -> int:
    return max(1, math.ceil(math.log(num_segments) / math.log(max(2, factor))))


def _output_write(profile: TaskProfile, output_bytes: float, compress: bool):
    """Bytes written to HDFS and the write cost in nanoseconds"""
    written = output_bytes
    write_ns = 0.0
    if compress:
        ratio = profile.statistic(MRStatistic.OUT_COMPRESS_RATIO) or 1.0
        written = output_bytes * ratio
        write_ns += output_bytes * profile.cost_factor(MRCostFactor.OUTPUT_COMP_CPU_COST)
    write_ns += written * profile.cost_factor(MRCostFactor.WRITE_HDFS_IO_COST)
    return written, write_ns


def _task_memory(profile: TaskProfile, per_record: MRStatistic, records: float) -> float:
    fixed = sum(profile.statistic(s) or 0.0
                for s in (MRStatistic.STARTUP_MEM, MRStatistic.SETUP_MEM, MRStatistic.CLEANUP_MEM))
    return fixed + (profile.statistic(per_record) or 0.0) * records
