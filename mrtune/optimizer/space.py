"""
Parameter space model

A parameter space maps configuration keys to domains. Search works on
regions of the space (one interval per dimension) and draws points from
them; a point materializes into a job configuration.

Intervals of numeric domains hold value bounds, intervals of discrete
domains hold index bounds into the domain's values.
"""

import itertools
import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ..core import conf as keys
from ..core.cluster import ClusterConfiguration
from ..core.conf import JobConf
from ..core.dataset import DataSetModel
from ..core.errors import UnknownDimension
from ..core.profile import JobProfile

logger = logging.getLogger(__name__)

MB = 1024 * 1024

# Grid snapping tolerance for stepped ranges
EPSILON = 1e-9


@dataclass(frozen=True)
class Interval:
    low: float
    high: float

    @property
    def width(self) -> float:
        return self.high - self.low

    def contains(self, other: "Interval") -> bool:
        return self.low - EPSILON <= other.low and other.high <= self.high + EPSILON


class Domain(ABC):
    """Legal values of one dimension"""

    @abstractmethod
    def full_interval(self) -> Interval:
        pass

    @abstractmethod
    def draw(self, interval: Interval, rng: np.random.Generator) -> Any:
        pass

    @abstractmethod
    def values_in(self, interval: Interval) -> Optional[List[Any]]:
        """All values inside the interval, or None if there are infinitely many"""
        pass

    @abstractmethod
    def count_in(self, interval: Interval) -> Optional[int]:
        """Number of values inside the interval, or None if there are infinitely many"""
        pass

    @abstractmethod
    def shrink(self, interval: Interval, center: Any, fraction: float) -> Interval:
        pass


def _shrink_indices(low: int, high: int, center: int, fraction: float) -> Tuple[int, int]:
    """Shrink an index range around a center index, keeping at least one index"""
    count = high - low + 1
    new_count = max(1, int(count * fraction))
    new_low = center - (new_count - 1) // 2
    new_low = max(low, min(new_low, high - new_count + 1))
    return new_low, new_low + new_count - 1


class DiscreteDomain(Domain):
    """Ordered finite set of values"""

    def __init__(self, values: Iterable[Any]):
        self.values: Tuple[Any, ...] = tuple(values)
        if not self.values:
            raise ValueError("A discrete domain needs at least one value")

    def full_interval(self) -> Interval:
        return Interval(0, len(self.values) - 1)

    def index_of(self, value: Any) -> int:
        try:
            return self.values.index(value)
        except ValueError:
            raise ValueError(f"{value!r} is not a value of {self!r}")

    def draw(self, interval: Interval, rng: np.random.Generator) -> Any:
        index = int(rng.integers(int(interval.low), int(interval.high) + 1))
        return self.values[index]

    def values_in(self, interval: Interval) -> Optional[List[Any]]:
        return list(self.values[int(interval.low):int(interval.high) + 1])

    def count_in(self, interval: Interval) -> Optional[int]:
        return max(0, int(interval.high) - int(interval.low) + 1)

    def shrink(self, interval: Interval, center: Any, fraction: float) -> Interval:
        low, high = _shrink_indices(int(interval.low), int(interval.high), self.index_of(center), fraction)
        return Interval(low, high)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.values)!r})"


class BooleanDomain(DiscreteDomain):
    def __init__(self):
        super().__init__((False, True))

    def __repr__(self) -> str:
        return "BooleanDomain()"


class NumericRange(Domain):
    """
    Numeric range, continuous or stepped

    Integer ranges step by 1 unless given a larger step. Stepped values are
    low + k * step for every k that stays within [low, high].
    """

    def __init__(self, low: float, high: float, step: Optional[float] = None, integer: bool = False):
        if integer:
            if step is None:
                step = 1
            if any(float(v) != int(v) for v in (low, high, step)):
                raise ValueError(f"Integer range needs integral bounds and step, got [{low}, {high}] step {step}")
            low, high, step = int(low), int(high), int(step)
        if low > high:
            raise ValueError(f"Empty numeric range [{low}, {high}]")
        if step is not None and step <= 0:
            raise ValueError(f"Range step must be positive, got {step}")
        self.low = low
        self.high = high
        self.step = step
        self.integer = integer

    @property
    def stepped(self) -> bool:
        return self.step is not None

    def full_interval(self) -> Interval:
        if self.stepped:
            return Interval(self._value(0), self._value(self._index_bounds(Interval(self.low, self.high))[1]))
        return Interval(self.low, self.high)

    def _value(self, index: int) -> Any:
        value = self.low + index * self.step
        return int(round(value)) if self.integer else round(float(value), 10)

    def _index_bounds(self, interval: Interval) -> Tuple[int, int]:
        low = math.ceil((interval.low - self.low) / self.step - EPSILON)
        high = math.floor((interval.high - self.low) / self.step + EPSILON)
        return low, high

    def _snap(self, value: float, interval: Interval) -> Any:
        low, high = self._index_bounds(interval)
        index = int(round((value - self.low) / self.step))
        return self._value(max(low, min(index, high)))

    def draw(self, interval: Interval, rng: np.random.Generator) -> Any:
        value = float(rng.uniform(interval.low, interval.high)) if interval.width > 0 else float(interval.low)
        if self.stepped:
            return self._snap(value, interval)
        return value

    def values_in(self, interval: Interval) -> Optional[List[Any]]:
        if not self.stepped:
            return None
        low, high = self._index_bounds(interval)
        return [self._value(i) for i in range(low, high + 1)]

    def count_in(self, interval: Interval) -> Optional[int]:
        if not self.stepped:
            return None
        low, high = self._index_bounds(interval)
        return max(0, high - low + 1)

    def shrink(self, interval: Interval, center: Any, fraction: float) -> Interval:
        if self.stepped:
            low, high = self._index_bounds(interval)
            center_index = int(round((float(center) - self.low) / self.step))
            new_low, new_high = _shrink_indices(low, high, center_index, fraction)
            return Interval(self._value(new_low), self._value(new_high))

        width = interval.width * fraction
        new_low = max(interval.low, min(float(center) - width / 2, interval.high - width))
        return Interval(new_low, new_low + width)

    def __repr__(self) -> str:
        return f"NumericRange({self.low}, {self.high}, step={self.step}, integer={self.integer})"


class ParameterRegion(Mapping):
    """One interval per dimension"""

    def __init__(self, intervals: Dict[str, Interval]):
        self._intervals = dict(intervals)

    def __getitem__(self, name: str) -> Interval:
        return self._intervals[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._intervals)

    def __len__(self) -> int:
        return len(self._intervals)

    def contains(self, other: "ParameterRegion") -> bool:
        return all(name in self and self[name].contains(interval) for name, interval in other.items())

    def __repr__(self) -> str:
        return f"ParameterRegion({self._intervals!r})"


class ParameterSpacePoint(Mapping):
    """Immutable assignment of one value per dimension"""

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._values = dict(values or {})
        self._key = tuple(self._values.items())

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __hash__(self) -> int:
        return hash(self._key)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ParameterSpacePoint):
            return NotImplemented
        return self._values == other._values

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def populate_configuration(self, conf: JobConf):
        """Write the point's values into conf in place"""
        for name, value in self._values.items():
            conf.set(name, value)

    def apply_to(self, conf: JobConf) -> JobConf:
        result = conf.copy()
        self.populate_configuration(result)
        return result

    def __repr__(self) -> str:
        return f"ParameterSpacePoint({self._values!r})"


class ParameterSpace:
    """Tunable dimensions in insertion order"""

    def __init__(self):
        self._domains: Dict[str, Domain] = {}

    def add(self, name: str, domain: Domain) -> "ParameterSpace":
        self._domains[name] = domain
        return self

    @property
    def dimensions(self) -> List[str]:
        return list(self._domains)

    def __len__(self) -> int:
        return len(self._domains)

    def __contains__(self, name: str) -> bool:
        return name in self._domains

    def __iter__(self) -> Iterator[str]:
        return iter(self._domains)

    def domain_for(self, name: str) -> Domain:
        try:
            return self._domains[name]
        except KeyError:
            raise UnknownDimension(name)

    def full_region(self) -> ParameterRegion:
        return ParameterRegion({name: domain.full_interval() for name, domain in self._domains.items()})

    def random_point(self, region: ParameterRegion, rng: np.random.Generator) -> ParameterSpacePoint:
        return ParameterSpacePoint({name: domain.draw(region[name], rng) for name, domain in self._domains.items()})

    def cardinality(self, region: ParameterRegion) -> Optional[int]:
        """Number of points in a region, or None if it is infinite"""
        total = 1
        for name, domain in self._domains.items():
            count = domain.count_in(region[name])
            if count is None:
                return None
            total *= count
        return total

    def sample_points(self, region: ParameterRegion, n: int,
                      rng: np.random.Generator) -> List[ParameterSpacePoint]:
        """
        Draw n points from a region

        A finite region with at most n points is covered completely, in
        random order, and the remaining draws are random.
        """
        size = self.cardinality(region)
        if size is None or size > n:
            return [self.random_point(region, rng) for _ in range(n)]

        names = self.dimensions
        grid = list(itertools.product(*(self._domains[name].values_in(region[name]) for name in names)))
        points = [ParameterSpacePoint(dict(zip(names, grid[int(i)]))) for i in rng.permutation(len(grid))]
        points.extend(self.random_point(region, rng) for _ in range(n - len(points)))
        return points

    def shrink(self, region: ParameterRegion, center: ParameterSpacePoint, fraction: float) -> ParameterRegion:
        """Region spanning a fraction of each dimension, centered on a point, inside the given region"""
        return ParameterRegion({
            name: domain.shrink(region[name], center[name], fraction)
            for name, domain in self._domains.items()
        })

    def materialize(self, point: ParameterSpacePoint, base_conf: JobConf) -> JobConf:
        for name in point:
            if name not in self._domains:
                raise UnknownDimension(name)
        return point.apply_to(base_conf)

    def __repr__(self) -> str:
        return f"ParameterSpace({self._domains!r})"


def full_parameter_space(conf: JobConf, profile: JobProfile, cluster: ClusterConfiguration,
                         data_model: Optional[DataSetModel] = None) -> ParameterSpace:
    """The tunable dimensions that matter for a job"""
    space = ParameterSpace()

    max_sort_mb = max(1, int(conf.task_heap_bytes() * 0.75 / MB))
    space.add(keys.SORT_MB, NumericRange(min(50, max_sort_mb), max_sort_mb, integer=True))
    space.add(keys.SORT_RECORD_PERCENT, NumericRange(0.01, 0.5))
    space.add(keys.SORT_SPILL_PERCENT, NumericRange(0.2, 0.9))
    space.add(keys.SORT_FACTOR, NumericRange(2, 100, integer=True))
    space.add(keys.COMPRESS_MAP_OUTPUT, BooleanDomain())
    if any(p.has_combiner for p in profile.map_profiles):
        space.add(keys.USE_COMBINER, BooleanDomain())

    if profile.has_reduces:
        space.add(keys.REDUCE_TASKS, NumericRange(1, max(1, 2 * cluster.total_reduce_slots), integer=True))
        space.add(keys.PARALLEL_COPIES, NumericRange(2, 20, integer=True))
        space.add(keys.SHUFFLE_INPUT_BUFFER_PERCENT, NumericRange(0.1, 0.9))
        space.add(keys.SHUFFLE_MERGE_PERCENT, NumericRange(0.2, 0.9))
        space.add(keys.REDUCE_SLOWSTART, NumericRange(0.05, 1.0))

    if data_model is not None and data_model.split_size_sensitive:
        block_size = conf.get_int(keys.BLOCK_SIZE, keys.DEFAULTS[keys.BLOCK_SIZE])
        step = max(MB, block_size // 4)
        space.add(keys.MAX_SPLIT_SIZE, NumericRange(step, max(step, block_size * 8), step=step, integer=True))

    logger.debug(f"Parameter space for job {profile.job_id}: {space.dimensions}")
    return space
