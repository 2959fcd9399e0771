"""
Alert Engine for latency and jitter samples.

Compares a fresh cycle value against the baseline median of its series
using per-host-class threshold policies. Each threshold is the larger of a
relative form (baseline times a multiplier) and an absolute form (baseline
plus an offset), so small baselines are not flagged for tiny deviations.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional

from .enums import HostClass, MetricKind, Severity
from .models import AlertDecision


@dataclass(frozen=True)
class ThresholdPolicy:
    """Multipliers and offsets (ms) for one metric/host class."""

    warning_multiplier: float
    critical_multiplier: float
    warning_offset_ms: float
    critical_offset_ms: float


PING_POLICIES = MappingProxyType({
    HostClass.INTERNAL_CRITICAL: ThresholdPolicy(1.2, 1.5, 2.0, 5.0),
    HostClass.EXTERNAL: ThresholdPolicy(1.5, 2.5, 15.0, 30.0),
    HostClass.INTERNAL: ThresholdPolicy(1.3, 2.0, 5.0, 10.0),
})

JITTER_POLICY = ThresholdPolicy(2.0, 3.0, 5.0, 10.0)

# Extra offset tolerance for ping samples taken over VPN or from home
VPN_WARNING_TOLERANCE_MS = 10.0
VPN_CRITICAL_TOLERANCE_MS = 20.0


def threshold(baseline: float, multiplier: float, offset_ms: float) -> float:
    """Larger of the relative and absolute threshold forms."""
    return max(baseline * multiplier, baseline + offset_ms)


def ratio_to_baseline(current: float, baseline: Optional[float]) -> Optional[float]:
    """Ratio of a value to its baseline; None when the baseline is missing or zero."""
    if baseline is None or baseline == 0:
        return None
    return current / baseline


def compare_direction(current: float, baseline: float) -> str:
    """Describe a value relative to its baseline: 'above', 'below' or 'equal to'."""
    if current > baseline:
        return "above"
    if current < baseline:
        return "below"
    return "equal to"


class AlertEngine:
    """
    Tiered threshold evaluation.

    Severity is CRITICAL when the value reaches the critical threshold,
    WARNING when it reaches the warning threshold, NONE otherwise. Both
    comparisons are inclusive. Evaluation never raises.
    """

    def policy_for(self, metric: MetricKind, host_class: HostClass) -> ThresholdPolicy:
        if metric == MetricKind.JITTER:
            return JITTER_POLICY
        return PING_POLICIES[host_class]

    def thresholds(
        self,
        metric: MetricKind,
        host_class: HostClass,
        is_vpn_or_home: bool,
        baseline: float,
    ) -> tuple[float, float]:
        """
        Compute the warning and critical thresholds for a baseline.

        Returns:
            Tuple of (warning_threshold, critical_threshold)
        """
        policy = self.policy_for(metric, host_class)
        warning_offset = policy.warning_offset_ms
        critical_offset = policy.critical_offset_ms

        # VPN tolerance widens the offsets only, never the multipliers
        if metric == MetricKind.PING and is_vpn_or_home:
            warning_offset += VPN_WARNING_TOLERANCE_MS
            critical_offset += VPN_CRITICAL_TOLERANCE_MS

        return (
            threshold(baseline, policy.warning_multiplier, warning_offset),
            threshold(baseline, policy.critical_multiplier, critical_offset),
        )

    def evaluate(
        self,
        metric: MetricKind,
        host_class: HostClass,
        is_vpn_or_home: bool,
        current: float,
        baseline: Optional[float],
    ) -> AlertDecision:
        """
        Evaluate a sample against its baseline median.

        Args:
            metric: Metric kind of the sample
            host_class: Host class of the sampled host
            is_vpn_or_home: Whether the sample was taken over VPN or from home
            current: Value of the fresh sample
            baseline: Baseline median before the sample was appended, or None

        Returns:
            AlertDecision with severity, reason text, ratio and thresholds
        """
        if baseline is None:
            return AlertDecision(
                severity=Severity.NONE,
                reason="no baseline available, comparison skipped",
            )

        warning_threshold, critical_threshold = self.thresholds(
            metric, host_class, is_vpn_or_home, baseline
        )
        ratio = ratio_to_baseline(current, baseline)
        ratio_text = f"{ratio:.2f}x baseline" if ratio is not None else "no ratio"

        if current >= critical_threshold:
            severity = Severity.CRITICAL
            reason = (
                f"{metric.value} {current:.2f} ms reached critical threshold "
                f"{critical_threshold:.2f} ms ({ratio_text}, median {baseline:.2f} ms)"
            )
        elif current >= warning_threshold:
            severity = Severity.WARNING
            reason = (
                f"{metric.value} {current:.2f} ms reached warning threshold "
                f"{warning_threshold:.2f} ms ({ratio_text}, median {baseline:.2f} ms)"
            )
        else:
            severity = Severity.NONE
            reason = (
                f"{metric.value} {current:.2f} ms within thresholds "
                f"({ratio_text}, median {baseline:.2f} ms)"
            )

        return AlertDecision(
            severity=severity,
            reason=reason,
            ratio=ratio,
            warning_threshold=warning_threshold,
            critical_threshold=critical_threshold,
        )
