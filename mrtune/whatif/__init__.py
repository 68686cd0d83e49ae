"""
What-if simulation

Components:
- JobProfileOracle: extrapolates a source profile to new settings
- Schedulers: simulate task placement and timing on a cluster
- WhatIfEngine: configuration -> predicted job record
- VirtualJobManager: cached predictions for one job
"""

from .engine import WhatIfEngine
from .manager import VirtualJobManager
from .oracle import JobProfileOracle, PredictedTaskProfile, VirtualJobProfile
from .record import (DataTransfer, PredictedJobRecord, TaskAttempt,
                     virtual_job_id)
from .scheduler import (BasicFIFOScheduler, MemoryAwareScheduler, Scheduler,
                        SchedulerType, SchedulingPolicy, create_scheduler)
from .transfers import generate_data_transfers

__all__ = [
    'WhatIfEngine',
    'VirtualJobManager',
    'JobProfileOracle',
    'PredictedTaskProfile',
    'VirtualJobProfile',
    'DataTransfer',
    'PredictedJobRecord',
    'TaskAttempt',
    'virtual_job_id',
    'Scheduler',
    'SchedulerType',
    'SchedulingPolicy',
    'BasicFIFOScheduler',
    'MemoryAwareScheduler',
    'create_scheduler',
    'generate_data_transfers',
]
