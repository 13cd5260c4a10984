"""
Metrics Collection for the Recurrence Engine.

Counts materialized and skipped occurrences, lost claims and failures.
"""

import time
from typing import Dict, Any, Callable
from collections import defaultdict
import functools
import threading

from recurrence_engine.utils.clock import utcnow

COUNTERS = (
    "occurrences_materialized_total",
    "occurrences_skipped_total",
    "claims_lost_total",
    "invalid_rules_total",
    "storage_failures_total",
    "ticks_total",
)


class MetricsCollector:
    """Collects and manages metrics for the scheduling engine."""

    def __init__(self):
        """Initialize metrics collector."""
        self.metrics = defaultdict(int)
        self.timers = defaultdict(float)
        self.lock = threading.Lock()
        for name in COUNTERS:
            self.metrics[name] = 0

    def increment_counter(self, metric_name: str, value: int = 1):
        """Increment a counter metric."""
        with self.lock:
            self.metrics[metric_name] += value

    def record_timer(self, metric_name: str, duration: float):
        """Record a timing metric."""
        with self.lock:
            self.timers[metric_name] += duration

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics values."""
        with self.lock:
            return {
                "counters": dict(self.metrics),
                "timers": dict(self.timers),
                "timestamp": utcnow().isoformat()
            }

    def reset(self):
        with self.lock:
            self.metrics.clear()
            self.timers.clear()
            for name in COUNTERS:
                self.metrics[name] = 0

    def occurrence_materialized(self):
        self.increment_counter("occurrences_materialized_total")

    def occurrence_skipped(self):
        self.increment_counter("occurrences_skipped_total")

    def claim_lost(self):
        self.increment_counter("claims_lost_total")

    def invalid_rule(self):
        self.increment_counter("invalid_rules_total")

    def storage_failure(self):
        self.increment_counter("storage_failures_total")

    def time_operation(self, metric_name: str) -> Callable:
        """Decorator recording the wall time of each call under metric_name."""
        def decorator(func):
            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    self.record_timer(metric_name, time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics_collector = MetricsCollector()
