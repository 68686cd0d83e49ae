"""
Core data model shared by the what-if engine and the optimizer

Components:
- JobConf: Hadoop-style job configuration
- JobProfile / TaskProfile: statistical summary of a source execution
- ClusterConfiguration: simulated cluster resources
- DataSetModel variants: hypothetical job input
"""

from .cluster import ClusterConfiguration
from .conf import DEFAULTS, JobConf
from .dataset import (DataLocality, DataSetModel, FileSplitDataSetModel,
                      FixedInputSpecsDataSetModel, InputFile, MapInputSpecs,
                      group_map_input_specs, specs_from_profile)
from .errors import (InvalidConfiguration, InvalidSearchBudget, MRTuneError,
                     UnknownDimension)
from .profile import (JobProfile, MRCostFactor, MRCounter, MRStatistic,
                      SplitObservation, TaskPhase, TaskProfile, TaskType)

__all__ = [
    'ClusterConfiguration',
    'DEFAULTS',
    'JobConf',
    'DataLocality',
    'DataSetModel',
    'FileSplitDataSetModel',
    'FixedInputSpecsDataSetModel',
    'InputFile',
    'MapInputSpecs',
    'group_map_input_specs',
    'specs_from_profile',
    'MRTuneError',
    'InvalidConfiguration',
    'InvalidSearchBudget',
    'UnknownDimension',
    'JobProfile',
    'TaskProfile',
    'TaskType',
    'SplitObservation',
    'MRCounter',
    'MRStatistic',
    'MRCostFactor',
    'TaskPhase',
]
