"""
Sampling Orchestrator for the network check system.

This module coordinates one measurement cycle:
- Scan snapshot classification into a network category
- Concurrent probing of every configured host
- Per-cycle aggregation (median, jitter, packet loss)
- Serialized persistence into the series store
- Baseline lookup and alert evaluation against the pre-append baseline

Probing fans out across hosts; all appends happen afterwards in a single
writer stage, so two writers never race on the same series key.
"""

import asyncio
import time
from datetime import datetime
from typing import Awaitable, Callable, Optional

from .alert_engine import AlertEngine, compare_direction
from .audit_logger import AuditLogger
from .config import SystemConfig
from .enums import LogLevel, MetricKind, OrchestratorState, Severity
from .environment_classifier import HOME_VPN_CATEGORY, EnvironmentClassifier
from .exceptions import PersistenceError
from .host_classifier import HostClassifier
from .models import (
    AlertDecision,
    AlertEvent,
    CycleAggregate,
    CycleReport,
    ProbeResult,
    ScanSnapshot,
    SeriesRecord,
)
from .probe import Probe, Scanner
from .series_store import SeriesStore
from .statistics_engine import StatisticsEngine, aggregate_cycle


class SamplingOrchestrator:
    """
    Drives measurement cycles.

    State machine per cycle:
    IDLE -> SAMPLING -> AGGREGATING -> PERSISTING -> REPORTING -> IDLE
    """

    def __init__(
        self,
        config: SystemConfig,
        probe: Probe,
        scanner: Scanner,
        store: Optional[SeriesStore] = None,
        environment_classifier: Optional[EnvironmentClassifier] = None,
        host_classifier: Optional[HostClassifier] = None,
        reporter=None,
        logger: Optional[AuditLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the sampling orchestrator.

        Args:
            config: System configuration
            probe: Probe collaborator used for every attempt
            scanner: Scanner collaborator producing the network snapshot
            store: Optional series store (built from config when omitted)
            environment_classifier: Optional environment classifier
            host_classifier: Optional host classifier
            reporter: Optional Reporter consuming each CycleReport
            logger: Optional audit logger
            sleep: Coroutine used for the inter-probe delay
        """
        self._config = config
        self._probe = probe
        self._scanner = scanner
        self._logger = logger
        self._reporter = reporter
        self._sleep = sleep

        self._store = store or SeriesStore(
            results_dir=config.storage.results_dir,
            max_file_size_bytes=config.storage.max_file_size_bytes,
            logger=logger,
        )
        self._statistics = StatisticsEngine(self._store)
        self._alert_engine = AlertEngine()
        self._environment_classifier = environment_classifier or EnvironmentClassifier()
        self._host_classifier = host_classifier or HostClassifier(
            critical_hosts=config.servers.critical,
        )
        self._state = OrchestratorState.IDLE

    async def run_cycle(self, stop_event: Optional[asyncio.Event] = None) -> CycleReport:
        """
        Run one complete measurement cycle.

        Returns an empty report without scanning once stop() has been called.

        Args:
            stop_event: Optional shutdown signal; when it is set by the time
                probing finishes, the cycle is abandoned without appending

        Returns:
            CycleReport with aggregates, alert events and errors
        """
        if self._state == OrchestratorState.STOPPED:
            self._log_info("SamplingOrchestrator", "Orchestrator stopped, cycle skipped", {})
            return CycleReport(
                category="",
                started_at=datetime.now(),
                snapshot=ScanSnapshot(primary_ip=""),
                errors=["Orchestrator stopped"],
            )

        start_time = time.perf_counter()
        snapshot, errors = self._scan()
        is_home = snapshot.considered_home
        category = self._environment_classifier.classify(snapshot, is_home)

        report = CycleReport(
            category=category,
            started_at=datetime.now(),
            snapshot=snapshot,
            errors=errors,
        )

        self._log_info(
            "SamplingOrchestrator",
            f"Starting cycle on network category: {category}",
            {
                "category": category,
                "primary_ip": snapshot.primary_ip,
                "is_home": is_home,
                "vpn_detected": snapshot.vpn_detected,
            },
        )

        try:
            self._store.append_scan(snapshot, category, is_home)
        except PersistenceError as e:
            report.errors.append(f"Scan log error: {e.message}")
            self._log_error("SeriesStore", "Failed to log scan snapshot", e)

        hosts = self._config.servers.all_hosts()

        self._set_state(OrchestratorState.SAMPLING)
        probe_runs = await asyncio.gather(*(self.sample_host(host) for host in hosts))

        if stop_event is not None and stop_event.is_set():
            report.errors.append("Cycle abandoned on shutdown before persisting")
            self._log_info(
                "SamplingOrchestrator",
                "Shutdown requested, cycle results discarded",
                {"category": category},
            )
            self._set_state(OrchestratorState.IDLE)
            report.duration_seconds = time.perf_counter() - start_time
            return report

        self._set_state(OrchestratorState.AGGREGATING)
        timestamp = datetime.now()
        report.aggregates = [
            aggregate_cycle(host, probes, timestamp)
            for host, probes in zip(hosts, probe_runs)
        ]

        self._set_state(OrchestratorState.PERSISTING)
        is_vpn_or_home = category == HOME_VPN_CATEGORY or is_home
        for aggregate in report.aggregates:
            events, event_errors = self.persist_and_evaluate(
                category, is_vpn_or_home, aggregate
            )
            report.events.extend(events)
            report.errors.extend(event_errors)

        report.duration_seconds = time.perf_counter() - start_time

        self._set_state(OrchestratorState.REPORTING)
        if self._reporter is not None:
            self._reporter.report(report)

        self._log_info(
            "SamplingOrchestrator",
            f"Cycle completed on {category}: "
            f"{report.success_count} success, {report.failure_count} failed",
            {
                "category": category,
                "duration_seconds": round(report.duration_seconds, 3),
                "alerts": sum(1 for e in report.events if e.severity != Severity.NONE),
                "errors": len(report.errors),
            },
        )
        self._set_state(OrchestratorState.IDLE)
        return report

    async def sample_host(self, host: str) -> list[ProbeResult]:
        """
        Probe a host the configured number of times.

        Timeouts and probe errors are recorded as unsuccessful attempts.
        """
        probe_config = self._config.probe
        timeout_seconds = probe_config.timeout_ms / 1000
        results: list[ProbeResult] = []

        for attempt in range(probe_config.count):
            try:
                result = await asyncio.wait_for(
                    self._probe.probe(host, probe_config.timeout_ms),
                    timeout=timeout_seconds,
                )
            except asyncio.TimeoutError:
                result = ProbeResult(host=host, round_trip_ms=None, success=False)
                self._log_debug(
                    "SamplingOrchestrator",
                    f"Ping {attempt + 1}: Request timed out to {host}",
                    {"host": host},
                )
            except Exception as e:
                result = ProbeResult(host=host, round_trip_ms=None, success=False)
                self._log(
                    LogLevel.WARN,
                    "SamplingOrchestrator",
                    f"Ping error for {host}: {e}",
                    {"host": host, "error_type": type(e).__name__},
                )
            else:
                self._log_debug(
                    "SamplingOrchestrator",
                    f"Ping {attempt + 1}: {result.round_trip_ms} ms to {host}"
                    if result.success
                    else f"Ping {attempt + 1}: Request failed to {host}",
                    {"host": host},
                )
            results.append(result)

            if attempt < probe_config.count - 1 and probe_config.delay_ms > 0:
                await self._sleep(probe_config.delay_ms / 1000)

        return results

    def persist_and_evaluate(
        self,
        category: str,
        is_vpn_or_home: bool,
        aggregate: CycleAggregate,
    ) -> tuple[list[AlertEvent], list[str]]:
        """
        Append a host's cycle aggregate to its series and evaluate alerts.

        The series is rotated first when it is over its size bound, then the
        baseline used for alerting is read, then the record is appended. A
        failure on one series key is logged and does not affect the other
        keys.

        Returns:
            Tuple of (alert events, error messages)
        """
        host_class = self._host_classifier.classify(aggregate.host)
        events: list[AlertEvent] = []
        errors: list[str] = []

        for metric in MetricKind:
            context = {
                "category": category,
                "host_class": host_class.value,
                "metric": metric.value,
                "host": aggregate.host,
            }

            # Rotation happens before the baseline read, so the first append
            # into a fresh primary file is never compared
            try:
                self._store.rotate(category, host_class, metric)
            except PersistenceError as e:
                errors.append(f"Rotation error for {metric.value}/{host_class.value}: {e.message}")
                self._log_error("SeriesStore", "Failed to rotate series", e, context)
                continue

            try:
                baseline_before = self._statistics.median(category, host_class, metric)
            except PersistenceError as e:
                errors.append(f"Baseline read error for {metric.value}/{host_class.value}: {e.message}")
                self._log_error("StatisticsEngine", "Failed to read baseline", e, context)
                continue

            value = aggregate.value_for(metric)
            record = SeriesRecord(
                timestamp=aggregate.timestamp,
                host=aggregate.host,
                value=value,
                success=aggregate.success,
                category=category,
            )
            try:
                self._store.append(category, host_class, metric, record)
            except PersistenceError as e:
                errors.append(f"Append error for {metric.value}/{host_class.value}: {e.message}")
                self._log_error("SeriesStore", "Failed to append series record", e, context)
                continue

            try:
                baseline_after = self._statistics.median(category, host_class, metric)
            except PersistenceError as e:
                baseline_after = None
                errors.append(f"Baseline read error for {metric.value}/{host_class.value}: {e.message}")
                self._log_error("StatisticsEngine", "Failed to read baseline", e, context)

            baseline_median = baseline_before.median if baseline_before else None
            direction = None
            if value is None:
                decision = AlertDecision(
                    severity=Severity.NONE,
                    reason=f"no successful probes to {aggregate.host}",
                )
            else:
                decision = self._alert_engine.evaluate(
                    metric, host_class, is_vpn_or_home, value, baseline_median
                )
                if baseline_median is not None:
                    direction = compare_direction(value, baseline_median)

            events.append(AlertEvent(
                severity=decision.severity,
                metric=metric,
                host_class=host_class,
                category=category,
                host=aggregate.host,
                current_value=value,
                baseline_median=baseline_median,
                reason=decision.reason,
                baseline_after=baseline_after,
                direction=direction,
            ))

        return events, errors

    def _scan(self) -> tuple[ScanSnapshot, list[str]]:
        try:
            return self._scanner.scan(), []
        except Exception as e:
            self._log_error("Scanner", "Network scan failed, using empty snapshot", e)
            return ScanSnapshot(primary_ip=""), [f"Scan error: {e}"]

    def _set_state(self, state: OrchestratorState) -> None:
        self._state = state
        self._log_debug("SamplingOrchestrator", f"State: {state.value}", {})

    def stop(self) -> None:
        self._state = OrchestratorState.STOPPED

    def _log(self, level: LogLevel, component: str, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, component, message, data)

    def _log_info(self, component: str, message: str, data: dict) -> None:
        self._log(LogLevel.INFO, component, message, data)

    def _log_debug(self, component: str, message: str, data: dict) -> None:
        self._log(LogLevel.DEBUG, component, message, data)

    def _log_error(
        self,
        component: str,
        message: str,
        error: Exception,
        data: Optional[dict] = None,
    ) -> None:
        if self._logger:
            self._logger.log_error(component, message, error, data)

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def store(self) -> SeriesStore:
        return self._store

    @property
    def statistics(self) -> StatisticsEngine:
        return self._statistics

    @property
    def alert_engine(self) -> AlertEngine:
        return self._alert_engine

    @property
    def config(self) -> SystemConfig:
        return self._config
