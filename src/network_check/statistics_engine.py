"""
Statistics Engine for series baselines.

Computes the running median of a series straight from its primary file,
the advisory confidence tier of that median, and the per-cycle aggregate
(median, jitter, loss) of a host's probe results.
"""

from datetime import datetime
from typing import Optional, Sequence

import numpy as np

from .enums import ConfidenceTier, HostClass, MetricKind
from .models import (
    BaselineStats,
    CycleAggregate,
    HostStatistics,
    ProbeResult,
)
from .series_store import SeriesStore

PRELIMINARY_MIN_SAMPLES = 10
RELIABLE_MIN_SAMPLES = 20
HIGH_CONFIDENCE_MIN_SAMPLES = 50


def median(values: Sequence[float]) -> Optional[float]:
    """
    Order-statistic median.

    Odd count: middle element after sorting. Even count: mean of the two
    central elements. Returns None for an empty sequence.
    """
    if len(values) == 0:
        return None
    return float(np.median(np.asarray(values, dtype=float)))


def population_std(values: Sequence[float]) -> float:
    """Standard deviation over the whole sample (divides by n)."""
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def sample_std(values: Sequence[float]) -> float:
    """Sample standard deviation (divides by n - 1); 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=1))


def confidence_tier(sample_count: int) -> ConfidenceTier:
    """Map a sample count to its confidence tier."""
    if sample_count < PRELIMINARY_MIN_SAMPLES:
        return ConfidenceTier.INSUFFICIENT
    if sample_count < RELIABLE_MIN_SAMPLES:
        return ConfidenceTier.PRELIMINARY
    if sample_count < HIGH_CONFIDENCE_MIN_SAMPLES:
        return ConfidenceTier.RELIABLE
    return ConfidenceTier.HIGH_CONFIDENCE


def aggregate_cycle(
    host: str,
    probes: Sequence[ProbeResult],
    timestamp: Optional[datetime] = None,
) -> CycleAggregate:
    """
    Aggregate one cycle of probe results for a host.

    Failed probes count towards packet loss but are excluded from the
    statistics. Jitter is the population standard deviation of the
    successful round trip times.

    Args:
        host: Probed host
        probes: All probe attempts of the cycle
        timestamp: Cycle timestamp (defaults to now)

    Returns:
        CycleAggregate; its statistics are None when no probe succeeded
    """
    timestamp = timestamp or datetime.now()
    attempts = len(probes)
    rtts = [
        float(probe.round_trip_ms)
        for probe in probes
        if probe.success and probe.round_trip_ms is not None
    ]

    aggregate = CycleAggregate(
        host=host,
        timestamp=timestamp,
        attempts=attempts,
        successes=len(rtts),
    )
    if attempts:
        aggregate.packet_loss_percent = round((attempts - len(rtts)) / attempts * 100, 2)

    if not rtts:
        return aggregate

    arr = np.asarray(rtts, dtype=float)
    aggregate.median_ms = median(rtts)
    aggregate.jitter_ms = population_std(rtts)
    aggregate.average_ms = float(np.mean(arr))
    aggregate.min_ms = float(np.min(arr))
    aggregate.max_ms = float(np.max(arr))
    return aggregate


class StatisticsEngine:
    """
    Read-through statistics over a SeriesStore.

    Every call rereads the primary series file so results always reflect
    what is on disk, including the effect of rotation.
    """

    def __init__(self, store: SeriesStore) -> None:
        self._store = store

    def median(
        self, category: str, host_class: HostClass, metric: MetricKind
    ) -> Optional[BaselineStats]:
        """
        Baseline median of a series.

        Returns:
            BaselineStats, or None when the series has no parseable sample

        Raises:
            PersistenceError: If the series file cannot be read
        """
        values = self._store.read_values(category, host_class, metric)
        value = median(values)
        if value is None:
            return None
        return BaselineStats(
            median=value,
            sample_count=len(values),
            tier=confidence_tier(len(values)),
        )

    def host_statistics(
        self,
        category: str,
        host_class: HostClass,
        metric: MetricKind,
        host: str,
        include_rotated: bool = True,
    ) -> Optional[HostStatistics]:
        """
        Summarize one host's successful values in a series.

        Host names are compared case-insensitively.

        Returns:
            HostStatistics, or None if the host has no successful value
        """
        wanted = host.lower()
        values = [
            record.value
            for record in self._store.read_all(
                category, host_class, metric, include_rotated=include_rotated
            )
            if record.success and record.value is not None and record.host.lower() == wanted
        ]
        if not values:
            return None

        arr = np.asarray(values, dtype=float)
        return HostStatistics(
            host=host,
            metric=metric,
            category=category,
            average=float(np.mean(arr)),
            minimum=float(np.min(arr)),
            maximum=float(np.max(arr)),
            sample_count=len(values),
            standard_deviation=sample_std(values),
        )
