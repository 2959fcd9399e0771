"""
Network Check - latency and jitter baselines per network environment.

This package classifies the endpoint's network environment, keeps size-rotated
ping and jitter series per (environment, host class) pair, and flags samples
that deviate from the running median of their series.
"""

__version__ = "0.1.0"
__author__ = "Network Check Team"

from network_check.exceptions import (
    NetworkCheckError,
    ConfigError,
    PersistenceError,
    ProbeError,
)
from network_check.enums import (
    MetricKind,
    HostClass,
    Severity,
    ConfidenceTier,
    LogLevel,
    OrchestratorState,
)
from network_check.config import (
    ProbeConfig,
    ServerConfig,
    StorageConfig,
    ScanConfig,
    LoggingConfig,
    SystemConfig,
)
from network_check.models import (
    ScanSnapshot,
    ProbeResult,
    SeriesRecord,
    CycleAggregate,
    BaselineStats,
    HostStatistics,
    AlertDecision,
    AlertEvent,
    CycleReport,
)
from network_check.environment_classifier import (
    EnvironmentClassifier,
    classify,
    sanitize,
    is_vpn_address,
)
from network_check.host_classifier import (
    HostClassifier,
    normalize_host,
)
from network_check.series_store import (
    SeriesStore,
)
from network_check.statistics_engine import (
    StatisticsEngine,
    aggregate_cycle,
    confidence_tier,
    median,
)
from network_check.alert_engine import (
    AlertEngine,
    ThresholdPolicy,
)
from network_check.audit_logger import (
    AuditLogger,
    LogEntry,
)
from network_check.probe import (
    Probe,
    Scanner,
    SimulatedProbe,
    StaticScanner,
)
from network_check.orchestrator import (
    SamplingOrchestrator,
)
from network_check.reporting import (
    Reporter,
)
from network_check.scheduler import (
    CycleRunner,
)
from network_check.cli import (
    main as cli_main,
    create_parser,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)

__all__ = [
    # Exceptions
    "NetworkCheckError",
    "ConfigError",
    "PersistenceError",
    "ProbeError",
    # Enums
    "MetricKind",
    "HostClass",
    "Severity",
    "ConfidenceTier",
    "LogLevel",
    "OrchestratorState",
    # Configuration
    "ProbeConfig",
    "ServerConfig",
    "StorageConfig",
    "ScanConfig",
    "LoggingConfig",
    "SystemConfig",
    # Models
    "ScanSnapshot",
    "ProbeResult",
    "SeriesRecord",
    "CycleAggregate",
    "BaselineStats",
    "HostStatistics",
    "AlertDecision",
    "AlertEvent",
    "CycleReport",
    # Classifiers
    "EnvironmentClassifier",
    "classify",
    "sanitize",
    "is_vpn_address",
    "HostClassifier",
    "normalize_host",
    # Series Store
    "SeriesStore",
    # Statistics Engine
    "StatisticsEngine",
    "aggregate_cycle",
    "confidence_tier",
    "median",
    # Alert Engine
    "AlertEngine",
    "ThresholdPolicy",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Collaborators
    "Probe",
    "Scanner",
    "SimulatedProbe",
    "StaticScanner",
    # Orchestration
    "SamplingOrchestrator",
    "Reporter",
    "CycleRunner",
    # CLI
    "cli_main",
    "create_parser",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
]
