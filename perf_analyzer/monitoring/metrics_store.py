"""
Bounded, retention-pruned history of metric samples.
"""

import logging
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Deque, List, Mapping, Optional

from .models import MetricSample

logger = logging.getLogger(__name__)

DEFAULT_RECENT_WINDOW = 3600.0


class MetricsStore:
    """Ring buffer of samples with time-based retention.

    The analyzer is the only writer. Readers always receive copies, so a caller
    never observes a half-applied append or prune.
    """

    def __init__(
        self,
        retention_period: float,
        capacity: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the store.

        Args:
            retention_period: Seconds a sample is kept before pruning
            capacity: Maximum number of samples held (ring buffer size)
            clock: Time source, injectable for tests
        """
        self.retention_period = retention_period
        self.capacity = capacity
        self._clock = clock
        self._samples: Deque[MetricSample] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._samples)

    def add_metrics(self, sample: MetricSample) -> None:
        """Append a sample and drop anything older than the retention period."""
        self._samples.append(sample)
        self.prune()

    def prune(self) -> int:
        """Remove samples strictly older than the retention window."""
        cutoff = self._clock() - timedelta(seconds=self.retention_period)
        before = len(self._samples)
        kept = [s for s in self._samples if not self._is_older(s, cutoff)]
        if len(kept) != before:
            self._samples = deque(kept, maxlen=self.capacity)
            logger.debug(f"Pruned {before - len(kept)} samples older than {cutoff.isoformat()}")
        return before - len(kept)

    def get_recent(self, window: float = DEFAULT_RECENT_WINDOW) -> List[MetricSample]:
        """Samples within the last ``window`` seconds, oldest first."""
        cutoff = self._clock() - timedelta(seconds=window)
        return [s for s in self._samples if not self._is_older(s, cutoff)]

    def get_latest(self) -> Optional[MetricSample]:
        return self._samples[-1] if self._samples else None

    def snapshot(self) -> List[MetricSample]:
        """Copy of every retained sample."""
        return list(self._samples)

    def clear(self) -> None:
        self._samples.clear()

    @staticmethod
    def _is_older(sample: MetricSample, cutoff: datetime) -> bool:
        # Malformed samples are accepted as-is; without a usable timestamp
        # they are retained until the ring buffer evicts them.
        if isinstance(sample, Mapping):
            timestamp = sample.get("timestamp")
        else:
            timestamp = getattr(sample, "timestamp", None)
        if isinstance(timestamp, str):
            try:
                timestamp = datetime.fromisoformat(timestamp)
            except ValueError:
                return False
        if not isinstance(timestamp, datetime):
            return False
        try:
            return timestamp < cutoff
        except TypeError:
            # naive vs aware timestamps
            return False
