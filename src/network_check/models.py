"""
Data models for the network check system.

This module defines the scan and probe inputs consumed from collaborators,
the series records persisted by the store, and the results produced by the
statistics and alert engines.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .enums import ConfidenceTier, HostClass, MetricKind, Severity


@dataclass(frozen=True)
class ScanSnapshot:
    """Findings of one network interface scan."""

    primary_ip: str
    wifi_ssid: Optional[str] = None
    ethernet_dns_suffix: Optional[str] = None
    vpn_detected: bool = False
    vpn_ip: Optional[str] = None
    is_home: Optional[bool] = None  # upstream "working from home" decision

    @property
    def considered_home(self) -> bool:
        """Home decision, falling back to VPN detection when not supplied."""
        if self.is_home is not None:
            return self.is_home
        return self.vpn_detected


@dataclass(frozen=True)
class ProbeResult:
    """Result of a single probe attempt."""

    host: str
    round_trip_ms: Optional[float]  # None on timeout/failure
    success: bool


@dataclass
class SeriesRecord:
    """A single row of a metric series."""

    timestamp: datetime
    host: str
    value: Optional[float]  # None is the FAIL sentinel
    success: bool
    category: str


@dataclass
class CycleAggregate:
    """Per-host aggregate of one measurement cycle."""

    host: str
    timestamp: datetime
    attempts: int
    successes: int
    median_ms: Optional[float] = None
    jitter_ms: Optional[float] = None
    average_ms: Optional[float] = None
    min_ms: Optional[float] = None
    max_ms: Optional[float] = None
    packet_loss_percent: float = 100.0

    @property
    def success(self) -> bool:
        return self.successes > 0

    def value_for(self, metric: MetricKind) -> Optional[float]:
        """Value appended to the series of the given metric."""
        if metric == MetricKind.PING:
            return self.median_ms
        return self.jitter_ms


@dataclass
class BaselineStats:
    """Median of a series together with its sample count."""

    median: float
    sample_count: int
    tier: ConfidenceTier


@dataclass
class HostStatistics:
    """Summary of one host's successful values within a series."""

    host: str
    metric: MetricKind
    category: str
    average: float
    minimum: float
    maximum: float
    sample_count: int
    standard_deviation: float


@dataclass
class AlertDecision:
    """Outcome of comparing a sample against its baseline."""

    severity: Severity
    reason: str
    ratio: Optional[float] = None
    warning_threshold: Optional[float] = None
    critical_threshold: Optional[float] = None


@dataclass
class AlertEvent:
    """Alert/status event emitted for display and logging."""

    severity: Severity
    metric: MetricKind
    host_class: HostClass
    category: str
    host: str
    current_value: Optional[float]
    baseline_median: Optional[float]
    reason: str
    baseline_after: Optional[BaselineStats] = None
    direction: Optional[str] = None  # 'above', 'below', 'equal to'


@dataclass
class CycleReport:
    """Everything a single cycle produced."""

    category: str
    started_at: datetime
    snapshot: ScanSnapshot
    aggregates: list[CycleAggregate] = field(default_factory=list)
    events: list[AlertEvent] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success_count(self) -> int:
        return sum(1 for aggregate in self.aggregates if aggregate.success)

    @property
    def failure_count(self) -> int:
        return len(self.aggregates) - self.success_count
