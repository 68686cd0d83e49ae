"""
Configuration search

Components:
- ParameterSpace: tunable dimensions, regions and points
- Cost engines: point -> scalar cost
- RecursiveRandomSearch: bounded-budget search
- Job optimizers: full-space search for one job
"""

from .cost_engine import (CostEngine, WhatIfCostEngine, elapsed_time,
                          peak_memory, resolve_objective, resource_time,
                          weighted_objective)
from .job_optimizer import JobOptimizer, RRSJobOptimizer
from .rrs import RecursiveRandomSearch, SearchResult, StageSummary
from .space import (BooleanDomain, DiscreteDomain, Domain, Interval,
                    NumericRange, ParameterRegion, ParameterSpace,
                    ParameterSpacePoint, full_parameter_space)

__all__ = [
    'CostEngine',
    'WhatIfCostEngine',
    'elapsed_time',
    'resource_time',
    'peak_memory',
    'weighted_objective',
    'resolve_objective',
    'JobOptimizer',
    'RRSJobOptimizer',
    'RecursiveRandomSearch',
    'SearchResult',
    'StageSummary',
    'Domain',
    'DiscreteDomain',
    'BooleanDomain',
    'NumericRange',
    'Interval',
    'ParameterRegion',
    'ParameterSpace',
    'ParameterSpacePoint',
    'full_parameter_space',
]
