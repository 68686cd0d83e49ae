"""
Configuration for mrtune
Selects the simulation policy and the search budget, loaded once at startup
and passed explicitly to the components that need it
"""

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional

import yaml

# Algorithm types for each component
SchedulerAlgorithm = Literal["fifo", "memory_aware"]
ObjectiveName = Literal["elapsed_time", "resource_time", "peak_memory"]


@dataclass
class SimulationConfig:
    """Configuration for the what-if simulation"""
    scheduler: SchedulerAlgorithm = "fifo"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationConfig":
        return cls(**{k: v for k, v in data.items() if hasattr(cls, k)})


@dataclass
class SearchConfig:
    """Configuration for the recursive random search"""
    num_stages: int = 5
    samples_per_stage: int = 20
    shrink_factor: float = 0.5
    seed: Optional[int] = None
    workers: int = 1
    objective: ObjectiveName = "elapsed_time"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchConfig":
        return cls(**{k: v for k, v in data.items() if hasattr(cls, k)})


@dataclass
class SystemConfig:
    """Overall system configuration"""
    simulation: SimulationConfig = None
    search: SearchConfig = None
    log_level: str = "INFO"
    enable_metrics: bool = True

    def __post_init__(self):
        if self.simulation is None:
            self.simulation = SimulationConfig()
        if self.search is None:
            self.search = SearchConfig()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemConfig":
        return cls(
            simulation=SimulationConfig.from_dict(data.get("simulation", {})),
            search=SearchConfig.from_dict(data.get("search", {})),
            log_level=data.get("log_level", "INFO"),
            enable_metrics=data.get("enable_metrics", True)
        )


# Mapping of presets to their filenames
PRESET_FILES = {
    "development": "development.json",
    "production": "production.json",
    "testing": "testing.json"
}

# Presets are installed as package data
CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "configs")


def load_config_from_file(preset: str) -> Optional[Dict]:
    filename = PRESET_FILES.get(preset)
    if not filename:
        return None

    filepath = os.path.join(CONFIG_DIR, filename)
    if not os.path.exists(filepath):
        return None

    with open(filepath, 'r') as f:
        return json.load(f)


# The process-wide config object, populated by `load_config`
_config: Optional[SystemConfig] = None


def get_config() -> Optional[SystemConfig]:
    return _config


def load_config(preset: str = "development") -> SystemConfig:
    global _config
    if preset not in PRESET_FILES:
        raise ValueError(f"Unknown config preset: {preset}")

    data = load_config_from_file(preset)
    if data is None:
        raise FileNotFoundError(f"Could not load config file for preset: {preset}")

    _config = SystemConfig.from_dict(data)
    return _config


def load_config_file(path: str) -> SystemConfig:
    """Load the process-wide config from a JSON or YAML file"""
    global _config
    with open(path, 'r') as f:
        if path.endswith((".yaml", ".yml")):
            data = yaml.safe_load(f) or {}
        else:
            data = json.load(f)

    _config = SystemConfig.from_dict(data)
    return _config
