"""
Data set models

A data set model describes the hypothetical input of a job as a list of map
input specifications, independently of any particular profile. The
extrapolation model turns each specification into predicted map tasks.
"""

import copy
import logging
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

from .conf import BLOCK_SIZE, DEFAULTS, MAX_SPLIT_SIZE, MIN_SPLIT_SIZE, JobConf
from .profile import JobProfile, SplitObservation

logger = logging.getLogger(__name__)

# Splits within this factor of the split size are not broken up further
SPLIT_SLOP = 1.1

# Observations join a group while within 20% of the group's first size
GROUP_SIZE_TOLERANCE = 0.2


class DataLocality(Enum):
    DATA_LOCAL = "data_local"
    RACK_LOCAL = "rack_local"
    NON_LOCAL = "non_local"


@dataclass(frozen=True)
class MapInputSpecs:
    """
    A group of identical map input splits

    Attributes:
        input_index: Which job input the splits belong to
        num_splits: Number of splits (one map task each)
        size: Average split size in bytes
        compressed: Whether the split data is compressed
        locality: Where the map task reads the split from
    """
    input_index: int
    num_splits: int
    size: int
    compressed: bool = False
    locality: DataLocality = DataLocality.DATA_LOCAL

    def __post_init__(self):
        if self.num_splits < 0 or self.size < 0:
            raise ValueError(f"Split count and size cannot be negative: {self}")


def group_map_input_specs(observations: Iterable[SplitObservation]) -> List[MapInputSpecs]:
    """
    Summarize observed splits into map input specifications

    Observations are sorted by input index and then by decreasing size. A
    split joins the current group when it reads the same input and its size
    is within 20% of the size of the group's first split; otherwise it
    starts a new group. The comparison anchor is the first split of the
    group, so the grouping depends on the order of the sizes.
    """
    specs = sorted(observations, key=lambda s: (s.input_index, -s.size))
    if not specs:
        return []

    result = []
    first = specs[0]
    group_index = first.input_index
    group_count = 1
    group_sum = first.size
    group_anchor = first.size
    group_compressed = first.compressed

    for spec in specs[1:]:
        if spec.input_index == group_index and _within_tolerance(group_anchor, spec.size):
            group_count += 1
            group_sum += spec.size
        else:
            result.append(MapInputSpecs(group_index, group_count, int(group_sum / group_count),
                                        group_compressed, DataLocality.DATA_LOCAL))
            group_index = spec.input_index
            group_count = 1
            group_sum = spec.size
            group_anchor = spec.size
            group_compressed = spec.compressed

    result.append(MapInputSpecs(group_index, group_count, int(group_sum / group_count),
                                group_compressed, DataLocality.DATA_LOCAL))
    return result


def _within_tolerance(anchor: float, size: float) -> bool:
    if anchor == 0:
        return size == 0
    return (anchor - size) / anchor < GROUP_SIZE_TOLERANCE


def specs_from_profile(profile: JobProfile) -> List[MapInputSpecs]:
    """Map input specifications reproducing the source job's own input"""
    return group_map_input_specs(profile.split_observations)


class DataSetModel(ABC):
    """Describes the input data of a simulated job"""

    # Whether the generated splits depend on the split size settings
    split_size_sensitive = False

    @abstractmethod
    def generate_map_input_specs(self, conf: JobConf) -> List[MapInputSpecs]:
        pass

    def copy(self) -> "DataSetModel":
        return copy.deepcopy(self)


class FixedInputSpecsDataSetModel(DataSetModel):
    """Data set model with a fixed list of input specifications"""

    def __init__(self, specs: Iterable[MapInputSpecs]):
        self.specs = list(specs)

    def generate_map_input_specs(self, conf: JobConf) -> List[MapInputSpecs]:
        return list(self.specs)

    def __repr__(self) -> str:
        return f"FixedInputSpecsDataSetModel({self.specs!r})"


@dataclass(frozen=True)
class InputFile:
    """An input file of a job"""
    input_index: int
    size: int
    compressed: bool = False


class FileSplitDataSetModel(DataSetModel):
    """
    Data set model that derives splits from input file sizes

    Uncompressed files are cut into splits of
    max(min split size, min(max split size, block size)) bytes, keeping a
    trailing remainder of up to 10% in the last split. Compressed files are
    not splittable and become one split each.
    """

    split_size_sensitive = True

    def __init__(self, files: Iterable[InputFile]):
        self.files = list(files)

    def split_size(self, conf: JobConf) -> int:
        min_size = conf.get_int(MIN_SPLIT_SIZE, DEFAULTS[MIN_SPLIT_SIZE])
        max_size = conf.get_int(MAX_SPLIT_SIZE, sys.maxsize)
        block_size = conf.get_int(BLOCK_SIZE, DEFAULTS[BLOCK_SIZE])
        return max(1, max(min_size, min(max_size, block_size)))

    def generate_splits(self, conf: JobConf) -> List[SplitObservation]:
        split_size = self.split_size(conf)
        splits = []
        for f in self.files:
            if f.size <= 0:
                continue
            if f.compressed:
                splits.append(SplitObservation(f.input_index, f.size, True))
                continue

            remaining = f.size
            while remaining / split_size > SPLIT_SLOP:
                splits.append(SplitObservation(f.input_index, split_size, False))
                remaining -= split_size
            if remaining > 0:
                splits.append(SplitObservation(f.input_index, remaining, False))

        logger.debug(f"Generated {len(splits)} splits of up to {split_size} bytes from {len(self.files)} files")
        return splits

    def generate_map_input_specs(self, conf: JobConf) -> List[MapInputSpecs]:
        return group_map_input_specs(self.generate_splits(conf))

    def __repr__(self) -> str:
        return f"FileSplitDataSetModel({self.files!r})"
