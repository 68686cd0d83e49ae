"""
mrtune - what-if simulation and configuration search for map/reduce jobs

Predicts how a job would run under a hypothetical configuration, cluster
and input from the profile of one prior execution, and searches the
configuration space for settings with a low predicted cost.
"""

from .config import SearchConfig, SimulationConfig, SystemConfig, get_config, load_config
from .core import (ClusterConfiguration, DataSetModel, FileSplitDataSetModel,
                   FixedInputSpecsDataSetModel, InputFile, InvalidConfiguration,
                   InvalidSearchBudget, JobConf, JobProfile, MapInputSpecs,
                   MRTuneError, TaskProfile, UnknownDimension)
from .monitoring import MetricsCollector, PrometheusMetrics
from .optimizer import (ParameterSpace, ParameterSpacePoint, RecursiveRandomSearch,
                        RRSJobOptimizer, WhatIfCostEngine)
from .whatif import (JobProfileOracle, PredictedJobRecord, VirtualJobManager,
                     WhatIfEngine, create_scheduler)

__version__ = "0.1.0"

__all__ = [
    'SearchConfig',
    'SimulationConfig',
    'SystemConfig',
    'get_config',
    'load_config',
    'ClusterConfiguration',
    'DataSetModel',
    'FileSplitDataSetModel',
    'FixedInputSpecsDataSetModel',
    'InputFile',
    'JobConf',
    'JobProfile',
    'MapInputSpecs',
    'TaskProfile',
    'MRTuneError',
    'InvalidConfiguration',
    'InvalidSearchBudget',
    'UnknownDimension',
    'MetricsCollector',
    'PrometheusMetrics',
    'ParameterSpace',
    'ParameterSpacePoint',
    'RecursiveRandomSearch',
    'RRSJobOptimizer',
    'WhatIfCostEngine',
    'JobProfileOracle',
    'PredictedJobRecord',
    'VirtualJobManager',
    'WhatIfEngine',
    'create_scheduler',
]
