"""
Job configuration

An ordered mapping from Hadoop-style string keys to primitive values. This is
the only format in which hypothetical settings travel into and out of the
what-if engine and the optimizer.
"""

import re
from typing import Any, Dict, Iterator, Optional, Tuple

from .errors import InvalidConfiguration

PRIMITIVE_TYPES = (str, int, float, bool)

# Well-known keys
REDUCE_TASKS = "mapred.reduce.tasks"
SORT_MB = "io.sort.mb"
SORT_RECORD_PERCENT = "io.sort.record.percent"
SORT_SPILL_PERCENT = "io.sort.spill.percent"
SORT_FACTOR = "io.sort.factor"
MIN_SPILLS_FOR_COMBINE = "min.num.spills.for.combine"
COMPRESS_MAP_OUTPUT = "mapred.compress.map.output"
COMPRESS_OUTPUT = "mapred.output.compress"
PARALLEL_COPIES = "mapred.reduce.parallel.copies"
SHUFFLE_INPUT_BUFFER_PERCENT = "mapred.job.shuffle.input.buffer.percent"
SHUFFLE_MERGE_PERCENT = "mapred.job.shuffle.merge.percent"
REDUCE_SLOWSTART = "mapred.reduce.slowstart.completed.maps"
CHILD_JAVA_OPTS = "mapred.child.java.opts"
USE_COMBINER = "mrtune.use.combiner"
MIN_SPLIT_SIZE = "mapred.min.split.size"
MAX_SPLIT_SIZE = "mapred.max.split.size"
BLOCK_SIZE = "dfs.block.size"
MAP_SPECULATIVE = "mapred.map.tasks.speculative.execution"
REDUCE_SPECULATIVE = "mapred.reduce.tasks.speculative.execution"

# Hadoop 0.20 defaults for every key except the reduce task count
DEFAULTS: Dict[str, Any] = {
    SORT_MB: 100,
    SORT_RECORD_PERCENT: 0.05,
    SORT_SPILL_PERCENT: 0.8,
    SORT_FACTOR: 10,
    MIN_SPILLS_FOR_COMBINE: 3,
    COMPRESS_MAP_OUTPUT: False,
    COMPRESS_OUTPUT: False,
    PARALLEL_COPIES: 5,
    SHUFFLE_INPUT_BUFFER_PERCENT: 0.7,
    SHUFFLE_MERGE_PERCENT: 0.66,
    REDUCE_SLOWSTART: 0.05,
    CHILD_JAVA_OPTS: "-Xmx200m",
    USE_COMBINER: True,
    MIN_SPLIT_SIZE: 1,
    BLOCK_SIZE: 64 * 1024 * 1024,
    MAP_SPECULATIVE: True,
    REDUCE_SPECULATIVE: True,
}

_XMX_PATTERN = re.compile(r"-Xmx(\d+)([kKmMgG]?)")
_XMX_UNITS = {"": 1, "k": 1024, "m": 1024 ** 2, "g": 1024 ** 3}


class JobConf:
    """
    Ordered key/value job configuration

    Values are restricted to str, int, float and bool. Copies are independent:
    mutating a copy never affects the original.
    """

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = {}
        for key, value in (values or {}).items():
            self.set(key, value)

    def set(self, key: str, value: Any):
        if not isinstance(key, str):
            raise TypeError(f"Configuration keys must be strings, got {type(key).__name__}")
        if not isinstance(value, PRIMITIVE_TYPES):
            raise TypeError(f"Configuration value for '{key}' must be a primitive, "
                            f"got {type(value).__name__}")
        self._values[key] = value

    def unset(self, key: str):
        self._values.pop(key, None)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        value = self._values.get(key, default)
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"'{key}' must be an integer, got {value!r}")

    def get_float(self, key: str, default: Optional[float] = None) -> Optional[float]:
        value = self._values.get(key, default)
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"'{key}' must be a number, got {value!r}")

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        value = self._values.get(key, default)
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        if isinstance(value, int):
            return value != 0
        raise InvalidConfiguration(f"'{key}' must be a boolean, got {value!r}")

    def task_heap_bytes(self) -> int:
        """Task heap size parsed from the -Xmx option of the child JVM options"""
        opts = str(self._values.get(CHILD_JAVA_OPTS, DEFAULTS[CHILD_JAVA_OPTS]))
        match = _XMX_PATTERN.search(opts)
        if not match:
            match = _XMX_PATTERN.search(DEFAULTS[CHILD_JAVA_OPTS])
        return int(match.group(1)) * _XMX_UNITS[match.group(2).lower()]

    def copy(self) -> "JobConf":
        return JobConf(self._values)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def keys(self):
        return self._values.keys()

    def items(self) -> Iterator[Tuple[str, Any]]:
        return iter(self._values.items())

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __iter__(self):
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other) -> bool:
        if not isinstance(other, JobConf):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"JobConf({self._values!r})"
