"""
Probe and scanner collaborators.

The core never sends packets or inspects interfaces itself. It talks to a
``Probe`` for round trip times and a ``Scanner`` for the network snapshot.
This module defines both interfaces together with the implementations used
in simulation mode and tests.
"""

import random
import zlib
from typing import Optional, Protocol, runtime_checkable

from .config import ScanConfig
from .exceptions import ProbeError
from .models import ProbeResult, ScanSnapshot


@runtime_checkable
class Probe(Protocol):
    """Performs a single reachability probe against a host."""

    async def probe(self, host: str, timeout_ms: int) -> ProbeResult:
        """Probe a host once, reporting a timeout as an unsuccessful result."""
        ...


@runtime_checkable
class Scanner(Protocol):
    """Produces the current network scan snapshot."""

    def scan(self) -> ScanSnapshot:
        ...


class SimulatedProbe:
    """
    Probe that fabricates round trip times without network access.

    Each host gets a stable base latency derived from its name; every probe
    adds bounded noise and fails with the configured loss rate.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        loss_rate: float = 0.0,
        min_base_ms: float = 5.0,
        max_base_ms: float = 60.0,
        noise_ms: float = 3.0,
    ) -> None:
        if not 0.0 <= loss_rate <= 1.0:
            raise ValueError(f"loss_rate must be within [0, 1]: {loss_rate}")
        self._random = random.Random(seed)
        self._loss_rate = loss_rate
        self._min_base_ms = min_base_ms
        self._max_base_ms = max_base_ms
        self._noise_ms = noise_ms

    def base_latency(self, host: str) -> float:
        span = self._max_base_ms - self._min_base_ms
        fraction = (zlib.crc32(host.lower().encode("utf-8")) % 1000) / 1000
        return self._min_base_ms + span * fraction

    async def probe(self, host: str, timeout_ms: int) -> ProbeResult:
        if not host or not host.strip():
            raise ProbeError(
                code="invalid_host",
                message="Cannot probe an empty host name",
                details={"host": host},
            )
        if self._random.random() < self._loss_rate:
            return ProbeResult(host=host, round_trip_ms=None, success=False)

        rtt = self.base_latency(host) + self._random.uniform(0.0, self._noise_ms)
        rtt = float(round(rtt))
        if rtt > timeout_ms:
            return ProbeResult(host=host, round_trip_ms=None, success=False)
        return ProbeResult(host=host, round_trip_ms=rtt, success=True)


class StaticScanner:
    """Scanner returning the snapshot described in configuration."""

    def __init__(self, config: ScanConfig) -> None:
        self._config = config

    def scan(self) -> ScanSnapshot:
        return ScanSnapshot(
            primary_ip=self._config.primary_ip,
            wifi_ssid=self._config.wifi_ssid,
            ethernet_dns_suffix=self._config.ethernet_dns_suffix,
            vpn_detected=self._config.vpn_detected,
            vpn_ip=self._config.vpn_ip,
            is_home=self._config.is_home,
        )
