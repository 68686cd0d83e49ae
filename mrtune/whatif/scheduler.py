"""
Cluster scheduling simulation

Turns predicted task profiles into a predicted timeline on a described
cluster. The simulation advances by task completion events; no failures or
speculative attempts are modeled, so a given input always produces the same
timeline.
"""

import heapq
import logging
import math
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple

from ..core import conf as keys
from ..core.cluster import ClusterConfiguration
from ..core.conf import DEFAULTS, JobConf
from ..core.errors import InvalidConfiguration
from ..core.profile import MRCounter, TaskPhase, TaskType
from .oracle import PredictedTaskProfile, VirtualJobProfile
from .record import PredictedJobRecord, TaskAttempt

logger = logging.getLogger(__name__)


class SchedulerType(Enum):
    """Available scheduling policies"""
    FIFO = "fifo"
    MEMORY_AWARE = "memory_aware"


@dataclass
class SchedulingPolicy:
    """Configuration derived scheduling settings"""
    parallel_copies: int = DEFAULTS[keys.PARALLEL_COPIES]
    slowstart: float = DEFAULTS[keys.REDUCE_SLOWSTART]
    # Simulated attempts always succeed
    map_speculative: bool = False
    reduce_speculative: bool = False

    @classmethod
    def from_conf(cls, conf: JobConf) -> "SchedulingPolicy":
        parallel_copies = conf.get_int(keys.PARALLEL_COPIES, DEFAULTS[keys.PARALLEL_COPIES])
        if parallel_copies <= 0:
            raise InvalidConfiguration(f"'{keys.PARALLEL_COPIES}' must be positive, got {parallel_copies}")
        slowstart = conf.get_float(keys.REDUCE_SLOWSTART, DEFAULTS[keys.REDUCE_SLOWSTART])
        if not 0 <= slowstart <= 1:
            raise InvalidConfiguration(f"'{keys.REDUCE_SLOWSTART}' must be in [0, 1], got {slowstart}")
        return cls(parallel_copies=parallel_copies, slowstart=slowstart)


@dataclass
class NodeState:
    """Free capacity of one simulated node"""
    host: str
    free_map_slots: int
    free_reduce_slots: int
    free_memory: float
    running: int = 0

    def free_slots(self, task_type: TaskType) -> int:
        return self.free_map_slots if task_type == TaskType.MAP else self.free_reduce_slots

    def allocate(self, task_type: TaskType, memory: float):
        if task_type == TaskType.MAP:
            self.free_map_slots -= 1
        else:
            self.free_reduce_slots -= 1
        self.free_memory -= memory
        self.running += 1

    def release(self, task_type: TaskType, memory: float):
        if task_type == TaskType.MAP:
            self.free_map_slots += 1
        else:
            self.free_reduce_slots += 1
        self.free_memory += memory
        self.running -= 1


@dataclass
class _PendingTask:
    task_id: str
    index: int
    profile: PredictedTaskProfile


@dataclass
class _SimulationState:
    nodes: List[NodeState]
    pending_maps: Deque[_PendingTask]
    pending_reduces: Deque[_PendingTask] = field(default_factory=deque)
    events: List[Tuple[float, int, TaskAttempt, int]] = field(default_factory=list)
    waiting_reduces: List[Tuple[TaskAttempt, int]] = field(default_factory=list)
    completed_maps: int = 0
    reduces_released: bool = False
    last_map_end: Optional[float] = None
    sequence: int = 0


class Scheduler(ABC):
    """Simulates the execution of a virtual job on a cluster"""

    name = "base"

    def __init__(self, cluster: ClusterConfiguration):
        self.cluster = cluster.copy()

    @abstractmethod
    def simulate(self, virtual_profile: VirtualJobProfile, conf: JobConf, job_id: str,
                 source_job_id: str, job_name: Optional[str] = None) -> PredictedJobRecord:
        pass


class BasicFIFOScheduler(Scheduler):
    """
    First in first out slot scheduler

    Map tasks are admitted in input order onto free map slots, lowest node
    index first. Reduce tasks are released once the slowstart fraction of
    maps has completed and are admitted the same way onto reduce slots. A
    reduce cannot finish shuffling before the last map has finished and its
    share of that map's output has crossed the network.
    """

    name = SchedulerType.FIFO.value

    def can_place(self, node: NodeState, task_type: TaskType, memory: float) -> bool:
        return node.free_slots(task_type) > 0

    def simulate(self, virtual_profile: VirtualJobProfile, conf: JobConf, job_id: str,
                 source_job_id: str, job_name: Optional[str] = None) -> PredictedJobRecord:
        policy = SchedulingPolicy.from_conf(conf)
        num_maps = virtual_profile.num_maps
        num_reduces = virtual_profile.num_reduces
        if num_maps > 0 and self.cluster.total_map_slots == 0:
            raise InvalidConfiguration(f"Cluster {self.cluster.name} has no map slots")
        if num_reduces > 0 and self.cluster.total_reduce_slots == 0:
            raise InvalidConfiguration(f"Cluster {self.cluster.name} has no reduce slots")

        record = PredictedJobRecord(
            job_id=job_id,
            source_job_id=source_job_id,
            job_name=job_name if job_name is not None else virtual_profile.job_name,
            configuration=conf.copy(),
            start_time=0.0,
            setup_ms=virtual_profile.setup_ms,
            cleanup_ms=virtual_profile.cleanup_ms,
            total_map_slots=self.cluster.total_map_slots,
        )

        memory_limit = self.cluster.memory_per_node_bytes or math.inf
        state = _SimulationState(
            nodes=[NodeState(host, self.cluster.map_slots_per_node, self.cluster.reduce_slots_per_node, memory_limit)
                   for host in self.cluster.host_names()],
            pending_maps=deque(_PendingTask(f"task_{job_id}_m_{i:06d}", i, p)
                               for i, p in enumerate(virtual_profile.map_tasks)),
        )
        reduces = [_PendingTask(f"task_{job_id}_r_{i:06d}", i, p)
                   for i, p in enumerate(virtual_profile.reduce_tasks)]

        now = virtual_profile.setup_ms
        threshold = math.ceil(policy.slowstart * num_maps)
        if num_maps == 0:
            state.last_map_end = now
        self._release_reduces(state, reduces, threshold)

        shuffle_rate = self.cluster.bytes_per_ms * min(policy.parallel_copies, max(num_maps, 1))
        last_end = now

        while True:
            self._admit(state, record, now, num_maps, shuffle_rate)
            if not state.events and state.pending_maps:
                # Reduces waiting for the shuffle hold the memory the next map needs
                logger.warning(f"Map tasks of job {job_id} stalled behind waiting reduces, "
                               f"placing {state.pending_maps[0].task_id} regardless of memory")
                self._place_map(state, record, now, BasicFIFOScheduler.can_place)
            if not state.events:
                break

            now, _, attempt, node_index = heapq.heappop(state.events)
            node = state.nodes[node_index]
            node.release(attempt.task_type, attempt.profile.memory)
            last_end = max(last_end, attempt.end_time)

            if attempt.task_type == TaskType.MAP:
                state.completed_maps += 1
                if state.completed_maps == num_maps:
                    state.last_map_end = now
                    self._finish_waiting_reduces(state, num_maps, shuffle_rate)
                self._release_reduces(state, reduces, threshold)

        if state.pending_maps or state.pending_reduces or state.waiting_reduces:
            raise InvalidConfiguration(f"Tasks of job {job_id} cannot be placed on cluster {self.cluster.name}")

        record.end_time = last_end + virtual_profile.cleanup_ms
        record.map_attempts.sort(key=lambda a: a.task_id)
        record.reduce_attempts.sort(key=lambda a: a.task_id)
        logger.debug(f"Simulated job {job_id} with {self.name} scheduler: {num_maps} maps, "
                     f"{num_reduces} reduces, elapsed {record.elapsed_ms:.1f} ms")
        return record

    def _release_reduces(self, state: _SimulationState, reduces: List[_PendingTask], threshold: int):
        if not state.reduces_released and state.completed_maps >= threshold:
            state.pending_reduces.extend(reduces)
            state.reduces_released = True

    def _admit(self, state: _SimulationState, record: PredictedJobRecord, now: float,
               num_maps: int, shuffle_rate: float):
        while state.pending_maps and self._place_map(state, record, now, type(self).can_place):
            pass

        while state.pending_reduces:
            task = state.pending_reduces[0]
            node_index = self._select_node(state.nodes, TaskType.REDUCE, task.profile.memory, type(self).can_place)
            if node_index is None:
                break
            state.pending_reduces.popleft()
            node = state.nodes[node_index]
            node.allocate(TaskType.REDUCE, task.profile.memory)
            attempt = TaskAttempt(task.task_id, TaskType.REDUCE, node.host, now, now, task.profile)
            record.reduce_attempts.append(attempt)
            if state.last_map_end is None:
                # Shuffle completion depends on the last map
                state.waiting_reduces.append((attempt, node_index))
            else:
                self._finish_reduce(attempt, state.last_map_end, num_maps, shuffle_rate)
                self._push(state, attempt, node_index)

    def _place_map(self, state: _SimulationState, record: PredictedJobRecord, now: float, placement) -> bool:
        """Admit the next pending map if a node accepts it"""
        task = state.pending_maps[0]
        node_index = self._select_node(state.nodes, TaskType.MAP, task.profile.memory, placement)
        if node_index is None:
            return False
        state.pending_maps.popleft()
        node = state.nodes[node_index]
        node.allocate(TaskType.MAP, task.profile.memory)
        attempt = TaskAttempt(task.task_id, TaskType.MAP, node.host, now,
                              now + task.profile.duration, task.profile)
        record.map_attempts.append(attempt)
        self._push(state, attempt, node_index)
        return True

    def _finish_waiting_reduces(self, state: _SimulationState, num_maps: int, shuffle_rate: float):
        for attempt, node_index in state.waiting_reduces:
            self._finish_reduce(attempt, state.last_map_end, num_maps, shuffle_rate)
            self._push(state, attempt, node_index)
        state.waiting_reduces = []

    @staticmethod
    def _finish_reduce(attempt: TaskAttempt, last_map_end: float, num_maps: int, shuffle_rate: float):
        profile = attempt.profile
        delay = profile.counter(MRCounter.REDUCE_SHUFFLE_BYTES) / shuffle_rate if shuffle_rate > 0 else 0.0
        startup = profile.timing(TaskPhase.STARTUP) + profile.timing(TaskPhase.SETUP)
        shuffle_end = attempt.start_time + startup + profile.timing(TaskPhase.SHUFFLE) + delay
        if num_maps > 0:
            shuffle_end = max(shuffle_end, last_map_end + delay / num_maps)
        attempt.shuffle_end = shuffle_end
        attempt.end_time = shuffle_end + sum(profile.timing(p) for p in (TaskPhase.SORT, TaskPhase.REDUCE,
                                                                           TaskPhase.WRITE, TaskPhase.CLEANUP))

    def _select_node(self, nodes: List[NodeState], task_type: TaskType, memory: float,
                     placement) -> Optional[int]:
        for index, node in enumerate(nodes):
            if placement(self, node, task_type, memory):
                return index
        return None

    @staticmethod
    def _push(state: _SimulationState, attempt: TaskAttempt, node_index: int):
        heapq.heappush(state.events, (attempt.end_time, state.sequence, attempt, node_index))
        state.sequence += 1


class MemoryAwareScheduler(BasicFIFOScheduler):
    """
    FIFO scheduler that also respects node memory

    A task is placed only where the node has a free slot and enough free
    memory for the task's predicted memory. A task that needs more memory
    than a whole node runs alone on an idle node.
    """

    name = SchedulerType.MEMORY_AWARE.value

    def can_place(self, node: NodeState, task_type: TaskType, memory: float) -> bool:
        if node.free_slots(task_type) <= 0:
            return False
        if memory <= node.free_memory:
            return True
        return memory > self.cluster.memory_per_node_bytes and node.running == 0


SCHEDULERS: Dict[str, type] = {
    SchedulerType.FIFO.value: BasicFIFOScheduler,
    SchedulerType.MEMORY_AWARE.value: MemoryAwareScheduler,
}


def create_scheduler(name: str, cluster: ClusterConfiguration) -> Scheduler:
    try:
        scheduler_cls = SCHEDULERS[SchedulerType(name).value]
    except ValueError:
        raise ValueError(f"Unknown scheduler '{name}', expected one of {sorted(SCHEDULERS)}")
    return scheduler_cls(cluster)
