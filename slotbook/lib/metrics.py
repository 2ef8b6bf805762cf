"""
Prometheus-compatible metrics for observability.

Tracks booking engine activity:
- Availability queries (by kind: day, month, check)
- Reservations created (by initial state) and rescheduled
- Booking conflicts and rejections (by reason)
- Reservation state transitions (by from/to state)
- Block mutations (by action)

Usage:
    from slotbook.lib.metrics import get_metrics_collector

    metrics = get_metrics_collector()
    metrics.increment_reservations_created(state="confirmed")
    metrics.increment_rejections(reason="reserved", error="conflict")

    # Export for Prometheus
    prometheus_output = metrics.export_prometheus()
"""

from typing import Dict, Tuple
from threading import Lock


class MetricsCollector:
    """
    Prometheus-style metrics collector for the booking engine.

    Counters:
    - availability_queries_total: Slot computations (labels: kind)
    - reservations_created_total: Committed reservations (labels: state)
    - reservations_rescheduled_total: Reservations moved to a new slot (labels: same_day)
    - booking_rejections_total: Requests refused at commit (labels: reason, error)
    - reservation_transitions_total: Lifecycle changes (labels: from_state, to_state)
    - block_mutations_total: Administrative block changes (labels: action)

    Thread-safe for concurrent increments.
    """

    def __init__(self):
        self._lock = Lock()

        # Counters: key = (metric_name, labels_tuple), value = count
        self._counters: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], int] = {}

    def _get_counter_key(self, metric_name: str, labels: Dict[str, str]) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
        """Generate unique key for counter with sorted labels."""
        sorted_labels = tuple(sorted(labels.items()))
        return (metric_name, sorted_labels)

    def _increment(self, metric_name: str, labels: Dict[str, str], amount: int = 1):
        """Thread-safe increment of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def _get_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        """Get current value of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            return self._counters.get(key, 0)

    # ===== Availability =====

    def increment_availability_queries(self, kind: str = "day", amount: int = 1):
        """Increment availability computations (day, month, check)."""
        self._increment("availability_queries_total", {"kind": kind.lower()}, amount)

    # ===== Reservations =====

    def increment_reservations_created(self, state: str, amount: int = 1):
        """Increment committed reservations by their initial state."""
        self._increment("reservations_created_total", {"state": state.lower()}, amount)

    def increment_reschedules(self, same_day: bool, amount: int = 1):
        """Increment reservations moved to another slot."""
        self._increment("reservations_rescheduled_total", {"same_day": str(same_day).lower()}, amount)

    def increment_rejections(self, reason: str, error: str = "conflict", amount: int = 1):
        """
        Increment reservation requests refused at commit time.

        Args:
            reason: Why the slot was refused (reserved, blocked, advance_notice, ...)
            error: Error class surfaced to the caller (conflict, validation)
            amount: Increment amount
        """
        labels = {
            "reason": reason.lower(),
            "error": error.lower(),
        }
        self._increment("booking_rejections_total", labels, amount)

    def increment_transitions(self, from_state: str, to_state: str, amount: int = 1):
        """Increment reservation lifecycle transitions."""
        labels = {
            "from_state": from_state.lower(),
            "to_state": to_state.lower(),
        }
        self._increment("reservation_transitions_total", labels, amount)

    # ===== Blocks =====

    def increment_block_mutations(self, action: str, amount: int = 1):
        """Increment block creations/deletions."""
        self._increment("block_mutations_total", {"action": action.lower()}, amount)

    # ===== Export =====

    def export_prometheus(self) -> str:
        """
        Export all metrics in Prometheus text format.

        Returns:
            Prometheus-compatible text output
        """
        output_lines = []

        # Group counters by metric name
        metrics_by_name: Dict[str, list] = {}
        with self._lock:
            for (metric_name, labels_tuple), value in self._counters.items():
                metrics_by_name.setdefault(metric_name, []).append((dict(labels_tuple), value))

        for metric_name in sorted(metrics_by_name.keys()):
            help_text = self._get_help_text(metric_name)
            output_lines.append(f"# HELP {metric_name} {help_text}")
            output_lines.append(f"# TYPE {metric_name} counter")

            for labels_dict, value in sorted(metrics_by_name[metric_name], key=lambda x: str(x[0])):
                labels_str = ",".join([f'{k}="{v}"' for k, v in sorted(labels_dict.items())])
                output_lines.append(f"{metric_name}{{{labels_str}}} {value}")

            output_lines.append("")  # Blank line between metrics

        return "\n".join(output_lines)

    def _get_help_text(self, metric_name: str) -> str:
        """Get help text for metric."""
        help_texts = {
            "availability_queries_total": "Total number of availability computations",
            "reservations_created_total": "Total number of committed reservations",
            "reservations_rescheduled_total": "Total number of reservations moved to a new slot",
            "booking_rejections_total": "Total number of reservation requests refused at commit",
            "reservation_transitions_total": "Total number of reservation state transitions",
            "block_mutations_total": "Total number of block creations and deletions",
        }
        return help_texts.get(metric_name, "Counter metric")

    def get_counter_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        """
        Get current value of a specific counter.

        Args:
            metric_name: Name of the metric
            labels: Label filters

        Returns:
            Current counter value
        """
        return self._get_value(metric_name, labels)

    def reset_all(self):
        """Reset all counters (for testing)."""
        with self._lock:
            self._counters.clear()


# Global singleton instance
_metrics_collector: MetricsCollector | None = None
_metrics_lock = Lock()


def get_metrics_collector() -> MetricsCollector:
    """
    Get global metrics collector singleton.

    Returns:
        MetricsCollector instance
    """
    global _metrics_collector
    if _metrics_collector is None:
        with _metrics_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def reset_metrics():
    """Reset global metrics collector (for testing)."""
    global _metrics_collector
    with _metrics_lock:
        if _metrics_collector is not None:
            _metrics_collector.reset_all()
