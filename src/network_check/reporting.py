"""
Reporting stage for cycle outcomes.

Turns a CycleReport into operator-facing text lines and routes alerts to
the audit logger. Statistics and alerting stay free of output concerns;
this is the only place that writes to the console.
"""

import sys
from typing import Optional, TextIO

from .audit_logger import AuditLogger
from .enums import LogLevel, Severity
from .models import AlertEvent, CycleAggregate, CycleReport

_SEVERITY_LOG_LEVELS = {
    Severity.WARNING: LogLevel.WARN,
    Severity.CRITICAL: LogLevel.ERROR,
}


def format_aggregate(aggregate: CycleAggregate) -> str:
    if not aggregate.success:
        return f"  ✗ {aggregate.host}: FAILED"
    return (
        f"  ✓ {aggregate.host}: {aggregate.median_ms:.1f}ms "
        f"(jitter: {aggregate.jitter_ms:.1f}ms, loss: {aggregate.packet_loss_percent:.1f}%)"
    )


def format_event(event: AlertEvent) -> list[str]:
    """Lines describing one series after the cycle's append."""
    lines = []
    label = f"{event.metric.value} for {event.host_class.value} on {event.category}"

    if event.direction is not None and event.current_value is not None:
        lines.append(
            f"Last {label} ({event.current_value:.2f} ms) is {event.direction} "
            f"current median ({event.baseline_median:.2f} ms)"
        )

    if event.severity != Severity.NONE:
        lines.append(f"[{event.severity.value.upper()}] {event.host}: {event.reason}")

    if event.baseline_after is not None:
        baseline = event.baseline_after
        lines.append(
            f"Current median {label}: {baseline.median:.2f} ms "
            f"(n={baseline.sample_count}, {baseline.tier.value})"
        )
    else:
        lines.append(f"Current median {label}: no data")

    return lines


class Reporter:
    """Writes cycle reports to a stream and logs alert events."""

    def __init__(
        self,
        output_stream: Optional[TextIO] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._output_stream = output_stream or sys.stdout
        self._logger = logger

    def format_report(self, report: CycleReport) -> list[str]:
        snapshot = report.snapshot
        lines = [
            f"[{report.started_at:%Y-%m-%d %H:%M:%S}] Network category: {report.category}",
            f"Primary IP Address: {snapshot.primary_ip or 'N/A'}",
            f"Working from Home: {snapshot.considered_home}",
            f"VPN Detected: {snapshot.vpn_detected}",
        ]
        if snapshot.vpn_detected and snapshot.vpn_ip:
            lines.append(f"VPN IP: {snapshot.vpn_ip}")

        lines.extend(format_aggregate(aggregate) for aggregate in report.aggregates)
        lines.append(
            f"Test Summary: {report.success_count} Success | {report.failure_count} Failed"
        )

        for event in report.events:
            lines.extend(format_event(event))

        for error in report.errors:
            lines.append(f"Error: {error}")

        lines.append(f"Test completed in {report.duration_seconds:.2f} seconds")
        return lines

    def report(self, report: CycleReport) -> list[str]:
        """Write a report and log its alert events. Returns the lines written."""
        lines = self.format_report(report)
        for line in lines:
            self._output_stream.write(line + "\n")
        self._output_stream.flush()

        if self._logger:
            for event in report.events:
                level = _SEVERITY_LOG_LEVELS.get(event.severity)
                if level is None:
                    continue
                self._logger.log(
                    level,
                    "AlertEngine",
                    event.reason,
                    {
                        "severity": event.severity.value,
                        "metric": event.metric.value,
                        "host_class": event.host_class.value,
                        "category": event.category,
                        "host": event.host,
                        "current_value": event.current_value,
                        "baseline_median": event.baseline_median,
                    },
                )
        return lines
