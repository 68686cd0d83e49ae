"""
Monitoring and metrics collection for mrtune
Tracks simulations, search progress and manager cache behavior
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, Optional

import numpy as np
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


@dataclass
class MetricPoint:
    """Single metric data point"""
    timestamp: datetime
    value: float
    labels: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'value': self.value,
            'labels': self.labels
        }


class PrometheusMetrics:
    """Prometheus metrics for mrtune, registered in their own registry"""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        # Simulation metrics
        self.simulations_total = Counter(
            'mrtune_simulations_total',
            'Total number of what-if simulations',
            ['outcome'],
            registry=self.registry
        )

        self.simulation_duration = Histogram(
            'mrtune_simulation_duration_seconds',
            'Wall clock time of one what-if simulation',
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1, 5],
            registry=self.registry
        )

        # Search metrics
        self.search_evaluations = Counter(
            'mrtune_search_evaluations_total',
            'Total number of cost engine evaluations made by the search',
            registry=self.registry
        )

        self.search_stages = Counter(
            'mrtune_search_stages_total',
            'Total number of completed search stages',
            registry=self.registry
        )

        self.best_cost = Gauge(
            'mrtune_search_best_cost',
            'Lowest cost found by the most recent search',
            registry=self.registry
        )

        # Manager metrics
        self.cache_requests = Counter(
            'mrtune_manager_cache_requests_total',
            'Virtual job manager detail requests',
            ['result'],
            registry=self.registry
        )

    def record_simulation(self, duration: float, outcome: str):
        """Record one simulation"""
        self.simulations_total.labels(outcome=outcome).inc()
        self.simulation_duration.observe(duration)

    def record_stage(self, evaluations: int, best_cost: float):
        """Record a completed search stage"""
        self.search_stages.inc()
        self.search_evaluations.inc(evaluations)
        self.best_cost.set(best_cost)

    def record_cache(self, hit: bool):
        self.cache_requests.labels(result='hit' if hit else 'miss').inc()

    def sample(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Current value of a sample in this registry"""
        return self.registry.get_sample_value(name, labels or {})


class MetricsCollector:
    """Collects and aggregates metrics"""

    def __init__(self, window_size: int = 1000):
        self.window_size = window_size
        self.metrics: Dict[str, Deque[MetricPoint]] = defaultdict(
            lambda: deque(maxlen=window_size)
        )
        self.prometheus_metrics = PrometheusMetrics()
        self.cache_hits = 0
        self.cache_misses = 0

    def record_metric(self, name: str, value: float, labels: Optional[Dict[str, str]] = None):
        """Record a metric value"""
        point = MetricPoint(
            timestamp=datetime.now(),
            value=value,
            labels=labels or {}
        )
        self.metrics[name].append(point)

    def record_simulation(self, duration: float, elapsed_ms: Optional[float] = None, outcome: str = "success"):
        """Record a what-if simulation and its predicted elapsed time"""
        self.prometheus_metrics.record_simulation(duration, outcome)
        self.record_metric('simulation_duration', duration, {'outcome': outcome})
        if elapsed_ms is not None:
            self.record_metric('predicted_elapsed_ms', elapsed_ms)

    def record_stage(self, stage: int, evaluations: int, stage_best: float, best_cost: float):
        """Record a completed search stage"""
        self.prometheus_metrics.record_stage(evaluations, best_cost)
        self.record_metric('stage_best_cost', stage_best, {'stage': str(stage)})
        self.record_metric('best_cost', best_cost)

    def record_cache(self, hit: bool):
        """Record a manager cache hit or miss"""
        if hit:
            self.cache_hits += 1
        else:
            self.cache_misses += 1
        self.prometheus_metrics.record_cache(hit)

    def get_metric_stats(self, name: str) -> Dict[str, float]:
        """Get statistics for a metric"""
        if name not in self.metrics or not self.metrics[name]:
            return {}

        values = [point.value for point in self.metrics[name]]
        return {
            'count': len(values),
            'mean': float(np.mean(values)),
            'std': float(np.std(values)),
            'min': float(np.min(values)),
            'max': float(np.max(values)),
            'p50': float(np.percentile(values, 50)),
            'p95': float(np.percentile(values, 95)),
        }

    def get_summary(self) -> Dict[str, Any]:
        """Summary of everything collected so far"""
        total_requests = self.cache_hits + self.cache_misses
        return {
            'metrics': {name: self.get_metric_stats(name) for name in self.metrics},
            'cache': {
                'hits': self.cache_hits,
                'misses': self.cache_misses,
                'hit_rate': self.cache_hits / total_requests if total_requests else 0.0,
            },
        }
