"""
Configuration dataclasses for the network check system.

This module defines all configuration structures used throughout the system,
including probe settings, monitored servers, series storage, the static scan
snapshot, and logging configuration.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# 5 MiB
DEFAULT_MAX_FILE_SIZE_BYTES = 5 * 1024 * 1024


@dataclass
class ProbeConfig:
    """Probe behavior for one host within a cycle."""

    count: int = 10
    timeout_ms: int = 5000
    delay_ms: int = 1000


@dataclass
class ServerConfig:
    """Hosts probed every cycle, grouped the way operators list them."""

    external: list[str] = field(default_factory=lambda: ["google.com"])
    critical: list[str] = field(
        default_factory=lambda: [
            "RCD2AES601.mi.corp.rockfin.com",
            "RCD1AES601.mi.corp.rockfin.com",
        ]
    )
    internal: list[str] = field(default_factory=lambda: ["git.rockfin.com"])

    def all_hosts(self) -> list[str]:
        """Return every configured host once, preserving list order."""
        seen: set[str] = set()
        hosts = []
        for host in [*self.external, *self.critical, *self.internal]:
            if host not in seen:
                seen.add(host)
                hosts.append(host)
        return hosts


@dataclass
class StorageConfig:
    """Series storage location and rotation bound."""

    results_dir: Path
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES


@dataclass
class ScanConfig:
    """Static scan snapshot used when no platform scanner is wired in."""

    primary_ip: str = ""
    wifi_ssid: Optional[str] = None
    ethernet_dns_suffix: Optional[str] = None
    vpn_detected: bool = False
    vpn_ip: Optional[str] = None
    is_home: Optional[bool] = None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'
    log_file: Optional[Path] = None


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    servers: ServerConfig
    probe: ProbeConfig
    storage: StorageConfig
    scan: ScanConfig
    logging: LoggingConfig
    interval_seconds: float = 180.0
    simulation_mode: bool = False
