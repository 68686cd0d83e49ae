"""
Cost evaluation

A cost engine reduces a parameter space point to one number. Objectives
decide which number: search never looks at the predicted record itself.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Union

from ..core.conf import JobConf
from ..whatif.engine import WhatIfEngine
from ..whatif.record import PredictedJobRecord
from .space import ParameterSpacePoint

logger = logging.getLogger(__name__)

Objective = Callable[[PredictedJobRecord], float]


def elapsed_time(record: PredictedJobRecord) -> float:
    return record.elapsed_ms


def resource_time(record: PredictedJobRecord) -> float:
    return record.resource_time_ms


def peak_memory(record: PredictedJobRecord) -> float:
    return record.peak_task_memory


def weighted_objective(time_weight: float = 1.0, resource_weight: float = 0.0) -> Objective:
    """Weighted sum of elapsed time and slot time"""
    def objective(record: PredictedJobRecord) -> float:
        return time_weight * record.elapsed_ms + resource_weight * record.resource_time_ms
    return objective


OBJECTIVES: Dict[str, Objective] = {
    'elapsed_time': elapsed_time,
    'resource_time': resource_time,
    'peak_memory': peak_memory,
}


def resolve_objective(objective: Union[str, Objective]) -> Objective:
    if callable(objective):
        return objective
    try:
        return OBJECTIVES[objective]
    except KeyError:
        raise ValueError(f"Unknown objective '{objective}', expected one of {sorted(OBJECTIVES)}")


class CostEngine(ABC):
    """Scores parameter space points; lower is better"""

    @abstractmethod
    def cost_space_point(self, point: ParameterSpacePoint) -> float:
        pass


class WhatIfCostEngine(CostEngine):
    """Scores a point by the predicted execution under that point's settings"""

    def __init__(self, engine: WhatIfEngine, base_conf: JobConf,
                 objective: Union[str, Objective] = 'elapsed_time'):
        self.engine = engine
        self.base_conf = base_conf.copy()
        self.objective = resolve_objective(objective)

    def cost_space_point(self, point: ParameterSpacePoint) -> float:
        conf = self.base_conf.copy()
        point.populate_configuration(conf)
        cost = float(self.objective(self.engine.evaluate(conf)))
        logger.debug(f"Cost {cost:.3f} for {point.to_dict()}")
        return cost
