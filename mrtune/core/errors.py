"""
Exceptions raised by the what-if and search components.

All of them signal caller programming errors: they are raised immediately
and never retried.
"""


class MRTuneError(Exception):
    """Base class for all mrtune errors"""


class UnknownDimension(MRTuneError, KeyError):
    """A parameter name that is not registered in the parameter space"""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self):
        return f"Unknown parameter space dimension: '{self.name}'"


class InvalidConfiguration(MRTuneError, ValueError):
    """A job configuration the extrapolation model cannot work with"""


class InvalidSearchBudget(MRTuneError, ValueError):
    """Search stages, samples per stage or shrink factor out of range"""
