"""
Enumeration types for the network check system.

These enums provide type-safe constants for metric kinds, host classes,
alert severities and confidence tiers throughout the system.
"""

from enum import Enum


class MetricKind(Enum):
    """Kind of metric stored in a series."""

    PING = "ping"
    JITTER = "jitter"


class HostClass(Enum):
    """Trust/criticality bucket of a monitored host."""

    EXTERNAL = "external"
    INTERNAL = "internal"
    INTERNAL_CRITICAL = "internal-critical"

    @property
    def file_token(self) -> str:
        """Token used for this host class in series file names."""
        if self is HostClass.INTERNAL_CRITICAL:
            # Existing result directories name these series "internalaes"
            return "internalaes"
        return self.value


class Severity(Enum):
    """Alert severity of a sample compared to its baseline."""

    NONE = "none"
    WARNING = "warning"
    CRITICAL = "critical"


class ConfidenceTier(Enum):
    """Advisory confidence of a baseline derived from its sample count."""

    INSUFFICIENT = "Insufficient"
    PRELIMINARY = "Preliminary"
    RELIABLE = "Reliable"
    HIGH_CONFIDENCE = "High Confidence"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class OrchestratorState(Enum):
    """Phases of one sampling cycle."""

    IDLE = "idle"
    SAMPLING = "sampling"
    AGGREGATING = "aggregating"
    PERSISTING = "persisting"
    REPORTING = "reporting"
    STOPPED = "stopped"
