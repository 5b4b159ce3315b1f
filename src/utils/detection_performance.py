"""
Performance monitoring utilities for subscription detection.

Tracks total and per-stage wall time of a detection run together with the
number of transactions, merchant groups and subscriptions involved.
"""

import time
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

SLOW_OPERATION_MS = 10000


@dataclass
class DetectionMetrics:
    """Container for detection run metrics."""
    operation_name: str
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    elapsed_ms: Optional[float] = None
    transaction_count: int = 0
    groups_identified: int = 0
    subscriptions_detected: int = 0
    stage_ms: Dict[str, float] = field(default_factory=dict)

    def finish(self):
        """Mark the operation as finished and calculate elapsed time."""
        self.end_time = time.time()
        self.elapsed_ms = (self.end_time - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary for logging."""
        return {
            'operation_name': self.operation_name,
            'elapsed_ms': self.elapsed_ms,
            'transaction_count': self.transaction_count,
            'groups_identified': self.groups_identified,
            'subscriptions_detected': self.subscriptions_detected,
            'stage_ms': dict(self.stage_ms),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

    def log_metrics(self):
        """Log the collected metrics."""
        metrics = self.to_dict()
        elapsed = self.elapsed_ms or 0.0

        if elapsed > SLOW_OPERATION_MS:
            logger.warning(
                f"Slow detection operation: {self.operation_name} took {elapsed:.2f}ms",
                extra={'detection_metrics': metrics}
            )
        else:
            logger.info(
                f"Detection operation completed: {self.operation_name} in {elapsed:.2f}ms - "
                f"{self.transaction_count} transactions, {self.groups_identified} groups, "
                f"{self.subscriptions_detected} subscriptions",
                extra={'detection_metrics': metrics}
            )

        if self.stage_ms:
            breakdown = ', '.join(f"{name}: {ms:.2f}ms" for name, ms in self.stage_ms.items())
            logger.debug(
                f"Detection breakdown for {self.operation_name}: {breakdown}",
                extra={'detection_metrics': metrics}
            )


class _StageTimer:
    def __init__(self, metrics: DetectionMetrics, stage: str):
        self.metrics = metrics
        self.stage = stage
        self.start_time: float = 0.0

    def __enter__(self):
        self.start_time = time.time()
        logger.debug(f"Starting stage: {self.stage}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed_ms = (time.time() - self.start_time) * 1000
        self.metrics.stage_ms[self.stage] = elapsed_ms
        logger.debug(f"Completed stage {self.stage} in {elapsed_ms:.2f}ms")


class DetectionPerformanceTracker:
    """
    Context manager for detection performance tracking.

    Usage:
        with DetectionPerformanceTracker("subscription_detection") as tracker:
            tracker.set_transaction_count(len(transactions))

            with tracker.stage('grouping'):
                groups = grouper.group(transactions)
            tracker.set_groups_identified(len(groups))

            with tracker.stage('analysis'):
                subscriptions = analyze(groups)
            tracker.set_subscriptions_detected(len(subscriptions))
    """

    def __init__(self, operation_name: str):
        self.metrics = DetectionMetrics(operation_name=operation_name)

    def __enter__(self):
        logger.debug(f"Starting detection operation: {self.metrics.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.metrics.finish()
        if exc_type is not None:
            logger.error(
                f"Detection operation {self.metrics.operation_name} failed after "
                f"{self.metrics.elapsed_ms:.2f}ms: {exc_val}"
            )
            return False
        self.metrics.log_metrics()
        return False

    def stage(self, stage_name: str) -> _StageTimer:
        """Create a context manager for timing a stage."""
        return _StageTimer(self.metrics, stage_name)

    def set_transaction_count(self, count: int):
        self.metrics.transaction_count = count

    def set_groups_identified(self, count: int):
        self.metrics.groups_identified = count

    def set_subscriptions_detected(self, count: int):
        self.metrics.subscriptions_detected = count
