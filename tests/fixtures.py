"""
Shared builders for profiles, clusters and configurations used by the tests
"""

from mrtune.core import (ClusterConfiguration, JobConf, JobProfile, MRCostFactor,
                         MRCounter, MRStatistic, SplitObservation, TaskPhase,
                         TaskProfile, TaskType)

MB = 1024 * 1024

# Map-only job: 10 splits of 100MB, 10,000 records each, 1ms per 1000 records
SPLIT_BYTES = 100 * MB
SPLIT_RECORDS = 10000
MAP_STARTUP_MS = 100.0
MAP_SETUP_MS = 20.0
MAP_CLEANUP_MS = 10.0
JOB_SETUP_MS = 500.0
JOB_CLEANUP_MS = 200.0
# 10,000 records at 1000ns each plus the fixed task overheads
MAP_TASK_MS = MAP_STARTUP_MS + MAP_SETUP_MS + MAP_CLEANUP_MS + 10.0


def map_only_profile(num_splits: int = 10) -> JobProfile:
    """Profile of a map-only job whose tasks cost only CPU"""
    map_profile = TaskProfile(
        task_type=TaskType.MAP,
        num_tasks=num_splits,
        counters={
            MRCounter.MAP_INPUT_BYTES: SPLIT_BYTES,
            MRCounter.MAP_INPUT_RECORDS: SPLIT_RECORDS,
        },
        cost_factors={MRCostFactor.MAP_CPU_COST: 1000.0},
        timings={
            TaskPhase.STARTUP: MAP_STARTUP_MS,
            TaskPhase.SETUP: MAP_SETUP_MS,
            TaskPhase.CLEANUP: MAP_CLEANUP_MS,
        },
    )
    return JobProfile(
        job_id="job_map_only",
        job_name="grep",
        map_profiles=[map_profile],
        setup_ms=JOB_SETUP_MS,
        cleanup_ms=JOB_CLEANUP_MS,
        split_observations=[SplitObservation(0, SPLIT_BYTES) for _ in range(num_splits)],
    )


def wordcount_profile(num_maps: int = 4, num_reduces: int = 2) -> JobProfile:
    """Profile of a job with a combiner and reduce tasks"""
    map_profile = TaskProfile(
        task_type=TaskType.MAP,
        num_tasks=num_maps,
        counters={
            MRCounter.MAP_INPUT_BYTES: 64 * MB,
            MRCounter.MAP_INPUT_RECORDS: 1000000,
            MRCounter.MAP_OUTPUT_BYTES: 100000000,
            MRCounter.MAP_OUTPUT_RECORDS: 10000000,
            MRCounter.MAP_OUTPUT_MATERIALIZED_BYTES: 10000000,
            MRCounter.COMBINE_INPUT_RECORDS: 10000000,
            MRCounter.COMBINE_OUTPUT_RECORDS: 1000000,
        },
        statistics={
            MRStatistic.COMBINE_SIZE_SEL: 0.1,
            MRStatistic.INTERM_COMPRESS_RATIO: 0.4,
            MRStatistic.STARTUP_MEM: 20000000,
            MRStatistic.MAP_MEM_PER_RECORD: 50,
        },
        cost_factors={
            MRCostFactor.READ_HDFS_IO_COST: 10.0,
            MRCostFactor.READ_LOCAL_IO_COST: 8.0,
            MRCostFactor.WRITE_LOCAL_IO_COST: 12.0,
            MRCostFactor.NETWORK_COST: 20.0,
            MRCostFactor.MAP_CPU_COST: 2000.0,
            MRCostFactor.PARTITION_CPU_COST: 50.0,
            MRCostFactor.SERDE_CPU_COST: 200.0,
            MRCostFactor.COMBINE_CPU_COST: 300.0,
            MRCostFactor.SORT_CPU_COST: 100.0,
            MRCostFactor.MERGE_CPU_COST: 150.0,
            MRCostFactor.INTERM_COMP_CPU_COST: 20.0,
            MRCostFactor.INTERM_UNCOMP_CPU_COST: 8.0,
        },
        timings={TaskPhase.STARTUP: 600.0, TaskPhase.SETUP: 50.0, TaskPhase.CLEANUP: 20.0},
    )
    reduce_profile = TaskProfile(
        task_type=TaskType.REDUCE,
        num_tasks=num_reduces,
        counters={
            MRCounter.REDUCE_SHUFFLE_BYTES: 5000000,
            MRCounter.REDUCE_INPUT_BYTES: 5000000,
            MRCounter.REDUCE_INPUT_RECORDS: 2000000,
            MRCounter.REDUCE_OUTPUT_BYTES: 4000000,
            MRCounter.REDUCE_OUTPUT_RECORDS: 500000,
        },
        statistics={
            MRStatistic.STARTUP_MEM: 20000000,
            MRStatistic.REDUCE_MEM_PER_RECORD: 30,
        },
        cost_factors={
            MRCostFactor.READ_LOCAL_IO_COST: 8.0,
            MRCostFactor.WRITE_LOCAL_IO_COST: 12.0,
            MRCostFactor.WRITE_HDFS_IO_COST: 25.0,
            MRCostFactor.MERGE_CPU_COST: 150.0,
            MRCostFactor.REDUCE_CPU_COST: 500.0,
            MRCostFactor.INTERM_UNCOMP_CPU_COST: 8.0,
        },
        timings={TaskPhase.STARTUP: 600.0, TaskPhase.SETUP: 50.0, TaskPhase.CLEANUP: 20.0},
    )
    return JobProfile(
        job_id="job_wordcount",
        job_name="wordcount",
        map_profiles=[map_profile],
        reduce_profile=reduce_profile,
        setup_ms=1000.0,
        cleanup_ms=500.0,
        split_observations=[SplitObservation(0, 64 * MB) for _ in range(num_maps)],
    )


def small_cluster(num_nodes: int = 5, map_slots: int = 1, reduce_slots: int = 1, **kwargs) -> ClusterConfiguration:
    return ClusterConfiguration(name="test", num_nodes=num_nodes, map_slots_per_node=map_slots,
                                reduce_slots_per_node=reduce_slots, **kwargs)


def wordcount_conf(reduce_tasks: int = 2) -> JobConf:
    return JobConf({
        "mapred.reduce.tasks": reduce_tasks,
        "mapred.child.java.opts": "-Xmx512m",
        "user.setting": "kept",
    })
