"""
Cluster description used by the scheduling simulator
"""

import copy
from dataclasses import asdict, dataclass
from typing import Any, Dict, List


@dataclass
class ClusterConfiguration:
    """
    Static description of the simulated cluster

    Attributes:
        name: Cluster name, used as host name prefix
        num_nodes: Number of worker nodes
        map_slots_per_node: Concurrent map tasks per node
        reduce_slots_per_node: Concurrent reduce tasks per node
        network_bandwidth_mbps: Bandwidth of a single link between two nodes
        memory_per_node_mb: Task memory per node (0 = unbounded)
        num_racks: Racks the nodes are spread over
    """
    name: str = "cluster"
    num_nodes: int = 1
    map_slots_per_node: int = 2
    reduce_slots_per_node: int = 2
    network_bandwidth_mbps: float = 1000.0
    memory_per_node_mb: float = 0.0
    num_racks: int = 1

    def __post_init__(self):
        if self.num_nodes <= 0:
            raise ValueError(f"Cluster needs at least one node, got {self.num_nodes}")
        if self.map_slots_per_node < 0 or self.reduce_slots_per_node < 0:
            raise ValueError("Slot counts cannot be negative")
        if self.network_bandwidth_mbps <= 0:
            raise ValueError(f"Network bandwidth must be positive, got {self.network_bandwidth_mbps}")
        if self.memory_per_node_mb < 0:
            raise ValueError("Node memory cannot be negative")
        if self.num_racks <= 0:
            raise ValueError(f"Cluster needs at least one rack, got {self.num_racks}")

    @property
    def total_map_slots(self) -> int:
        return self.num_nodes * self.map_slots_per_node

    @property
    def total_reduce_slots(self) -> int:
        return self.num_nodes * self.reduce_slots_per_node

    @property
    def memory_per_node_bytes(self) -> float:
        return self.memory_per_node_mb * 1024 * 1024

    @property
    def bytes_per_ms(self) -> float:
        """Link bandwidth in bytes per millisecond"""
        return self.network_bandwidth_mbps * 1024 * 1024 / 8 / 1000.0

    def host_names(self) -> List[str]:
        return [f"{self.name}-node-{i + 1:03d}" for i in range(self.num_nodes)]

    def rack_of(self, host: str) -> str:
        index = self.host_names().index(host)
        return f"/rack-{index % self.num_racks + 1}"

    def copy(self) -> "ClusterConfiguration":
        return copy.copy(self)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClusterConfiguration":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
