"""
Command-line interface for the network check system.

This module provides the main CLI entry point with commands for:
- run: Measure continuously on a fixed period
- once: Run a single measurement cycle
- classify: Show the category key for given scan findings
- stats: Show baselines of every stored series
- config: Configuration management
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    DEFAULT_MAX_FILE_SIZE_BYTES,
    LoggingConfig,
    ProbeConfig,
    ScanConfig,
    ServerConfig,
    StorageConfig,
    SystemConfig,
)
from .environment_classifier import EnvironmentClassifier
from .exceptions import ConfigError, PersistenceError
from .models import ScanSnapshot
from .orchestrator import SamplingOrchestrator
from .probe import SimulatedProbe, StaticScanner
from .reporting import Reporter
from .scheduler import CycleRunner
from .series_store import SeriesStore
from .statistics_engine import StatisticsEngine

CONFIG_ENV_VAR = "NETWORK_CHECK_CONFIG"
RESULTS_DIR_ENV_VAR = "NETWORK_CHECK_RESULTS_DIR"


def default_config_path() -> Path:
    return Path.home() / ".network_check" / "config.json"


def create_default_config(
    results_dir: Optional[Path] = None,
    simulation_mode: bool = False,
) -> SystemConfig:
    """
    Create a default system configuration.

    Args:
        results_dir: Directory for series files
        simulation_mode: Use the simulated probe instead of a real one

    Returns:
        SystemConfig with default settings
    """
    if results_dir is None:
        results_dir = Path("NetworkTestResults")

    return SystemConfig(
        servers=ServerConfig(),
        probe=ProbeConfig(),
        storage=StorageConfig(results_dir=results_dir),
        scan=ScanConfig(),
        logging=LoggingConfig(),
        simulation_mode=simulation_mode,
    )


def _server_list(servers_data: dict, group: str, default: list[str], config_path: Path) -> list[str]:
    """Read one server group, which must be a list of host name strings."""
    hosts = servers_data.get(group, default)
    if not isinstance(hosts, list) or not all(isinstance(host, str) for host in hosts):
        raise ConfigError(
            code="invalid_config",
            message=f"servers.{group} must be a list of host names",
            details={"config_path": str(config_path), "field": f"servers.{group}"},
        )
    return list(hosts)


def load_config_from_file(config_path: Path) -> SystemConfig:
    """
    Load configuration from a JSON file.

    Missing sections fall back to their defaults.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig

    Raises:
        ConfigError: If the file cannot be read or has invalid content
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(
            code="not_found",
            message=f"Config file not found: {config_path}",
            details={"config_path": str(config_path)},
        )
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(
            code="parse_error",
            message=f"Failed to load config: {e}",
            details={"config_path": str(config_path)},
        )

    try:
        defaults = ServerConfig()
        servers_data = data.get("servers", {})
        if not isinstance(servers_data, dict):
            raise TypeError("servers must be an object")
        servers = ServerConfig(
            external=_server_list(servers_data, "external", defaults.external, config_path),
            critical=_server_list(servers_data, "critical", defaults.critical, config_path),
            internal=_server_list(servers_data, "internal", defaults.internal, config_path),
        )

        probe_data = data.get("probe", {})
        probe = ProbeConfig(
            count=int(probe_data.get("count", 10)),
            timeout_ms=int(probe_data.get("timeout_ms", 5000)),
            delay_ms=int(probe_data.get("delay_ms", 1000)),
        )

        storage_data = data.get("storage", {})
        storage = StorageConfig(
            results_dir=Path(storage_data.get("results_dir", "NetworkTestResults")),
            max_file_size_bytes=int(
                storage_data.get("max_file_size_bytes", DEFAULT_MAX_FILE_SIZE_BYTES)
            ),
        )

        scan_data = data.get("scan", {})
        scan = ScanConfig(
            primary_ip=scan_data.get("primary_ip", ""),
            wifi_ssid=scan_data.get("wifi_ssid"),
            ethernet_dns_suffix=scan_data.get("ethernet_dns_suffix"),
            vpn_detected=bool(scan_data.get("vpn_detected", False)),
            vpn_ip=scan_data.get("vpn_ip"),
            is_home=scan_data.get("is_home"),
        )

        logging_data = data.get("logging", {})
        log_file = logging_data.get("log_file")
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
            log_file=Path(log_file) if log_file else None,
        )

        config = SystemConfig(
            servers=servers,
            probe=probe,
            storage=storage,
            scan=scan,
            logging=logging_config,
            interval_seconds=float(data.get("interval_seconds", 180.0)),
            simulation_mode=bool(data.get("simulation_mode", False)),
        )
    except (AttributeError, TypeError, ValueError) as e:
        raise ConfigError(
            code="invalid_config",
            message=f"Invalid config content: {e}",
            details={"config_path": str(config_path)},
        )

    validate_config(config)
    return config


def validate_config(config: SystemConfig) -> None:
    """
    Check value ranges of a configuration.

    Raises:
        ConfigError: If any value is out of range
    """
    problems = []
    if config.probe.count < 1:
        problems.append("probe.count must be at least 1")
    if config.probe.timeout_ms <= 0:
        problems.append("probe.timeout_ms must be positive")
    if config.probe.delay_ms < 0:
        problems.append("probe.delay_ms must not be negative")
    if config.storage.max_file_size_bytes <= 0:
        problems.append("storage.max_file_size_bytes must be positive")
    if config.interval_seconds < 0:
        problems.append("interval_seconds must not be negative")
    if config.logging.output_format not in ("json", "text", "both"):
        problems.append("logging.output_format must be 'json', 'text' or 'both'")
    if not config.servers.all_hosts():
        problems.append("at least one server must be configured")

    if problems:
        raise ConfigError(
            code="invalid_config",
            message="; ".join(problems),
            details={"problems": problems},
        )


def config_to_dict(config: SystemConfig) -> dict:
    return {
        "servers": {
            "external": config.servers.external,
            "critical": config.servers.critical,
            "internal": config.servers.internal,
        },
        "probe": {
            "count": config.probe.count,
            "timeout_ms": config.probe.timeout_ms,
            "delay_ms": config.probe.delay_ms,
        },
        "storage": {
            "results_dir": str(config.storage.results_dir),
            "max_file_size_bytes": config.storage.max_file_size_bytes,
        },
        "scan": {
            "primary_ip": config.scan.primary_ip,
            "wifi_ssid": config.scan.wifi_ssid,
            "ethernet_dns_suffix": config.scan.ethernet_dns_suffix,
            "vpn_detected": config.scan.vpn_detected,
            "vpn_ip": config.scan.vpn_ip,
            "is_home": config.scan.is_home,
        },
        "logging": {
            "level": config.logging.level,
            "output_format": config.logging.output_format,
            "log_file": str(config.logging.log_file) if config.logging.log_file else None,
        },
        "interval_seconds": config.interval_seconds,
        "simulation_mode": config.simulation_mode,
    }


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config_to_dict(config), f, indent=2, ensure_ascii=False)
        return True
    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def resolve_config(args: argparse.Namespace) -> SystemConfig:
    """
    Build the effective configuration for a command.

    Order: --config, then $NETWORK_CHECK_CONFIG, then the default config
    file if it exists, then built-in defaults. $NETWORK_CHECK_RESULTS_DIR
    and command-line flags override the loaded values.
    """
    config_path = getattr(args, "config", None) or os.getenv(CONFIG_ENV_VAR)
    if config_path:
        config = load_config_from_file(Path(config_path))
    elif default_config_path().exists():
        config = load_config_from_file(default_config_path())
    else:
        config = create_default_config()

    results_dir = getattr(args, "results_dir", None) or os.getenv(RESULTS_DIR_ENV_VAR)
    if results_dir:
        config.storage.results_dir = Path(results_dir)
    if getattr(args, "dry_run", False):
        config.simulation_mode = True
    if getattr(args, "verbose", False):
        config.logging.level = "debug"
    if getattr(args, "interval", None) is not None:
        config.interval_seconds = args.interval
    return config


def create_logger(config: SystemConfig) -> AuditLogger:
    return AuditLogger.from_level_name(
        config.logging.level,
        output_format=config.logging.output_format,
        log_file=config.logging.log_file,
    )


def create_orchestrator(
    config: SystemConfig,
    logger: Optional[AuditLogger] = None,
) -> SamplingOrchestrator:
    """Wire an orchestrator with the collaborators the configuration selects."""
    if not config.simulation_mode:
        raise ConfigError(
            code="no_probe",
            message="No platform probe is available; enable simulation_mode or use --dry-run",
            details={},
        )
    return SamplingOrchestrator(
        config=config,
        probe=SimulatedProbe(),
        scanner=StaticScanner(config.scan),
        reporter=Reporter(logger=logger),
        logger=logger,
    )


def cmd_run(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    logger = create_logger(config)
    orchestrator = create_orchestrator(config, logger)
    runner = CycleRunner(orchestrator, config.interval_seconds, logger=logger)

    print("Starting network monitoring. Press Ctrl+C to stop.")
    try:
        asyncio.run(runner.run(max_cycles=args.cycles))
    except KeyboardInterrupt:
        print("\nShutting down...")
    return 0


def cmd_once(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    logger = create_logger(config)
    orchestrator = create_orchestrator(config, logger)
    report = asyncio.run(orchestrator.run_cycle())
    return 0 if not report.errors else 1


def cmd_classify(args: argparse.Namespace) -> int:
    snapshot = ScanSnapshot(
        primary_ip=args.ip,
        wifi_ssid=args.ssid,
        ethernet_dns_suffix=args.dns_suffix,
        vpn_detected=args.vpn,
        is_home=args.home,
    )
    print(EnvironmentClassifier().classify(snapshot))
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    store = SeriesStore(config.storage.results_dir, config.storage.max_file_size_bytes)
    statistics = StatisticsEngine(store)

    keys = store.list_series()
    if not keys:
        print(f"No series found in {config.storage.results_dir}")
        return 0

    exit_code = 0
    for category, host_class, metric in keys:
        label = f"{metric.value:<6} {host_class.value:<17} {category}"
        try:
            baseline = statistics.median(category, host_class, metric)
        except PersistenceError as e:
            print(f"{label}: error ({e.message})", file=sys.stderr)
            exit_code = 1
            continue
        if baseline is None:
            print(f"{label}: no data")
        else:
            print(
                f"{label}: median {baseline.median:.2f} ms, "
                f"n={baseline.sample_count} ({baseline.tier.value})"
            )
    return exit_code


def cmd_config(args: argparse.Namespace) -> int:
    config_path = Path(args.path) if args.path else default_config_path()

    if args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Config already exists: {config_path} (use --force to overwrite)", file=sys.stderr)
            return 1
        if not save_config_to_file(create_default_config(), config_path):
            return 1
        print(f"Config written to {config_path}")
        return 0

    # show
    config = load_config_from_file(config_path) if config_path.exists() else create_default_config()
    print(json.dumps(config_to_dict(config), indent=2, ensure_ascii=False))
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="network-check",
        description="Network latency and jitter baseline monitor",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command")

    def add_common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--config", help="Path to a JSON config file")
        sub.add_argument("--results-dir", dest="results_dir", help="Directory for series files")
        sub.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    run_parser = subparsers.add_parser("run", help="Measure continuously")
    add_common(run_parser)
    run_parser.add_argument("--dry-run", action="store_true", help="Use simulated probes")
    run_parser.add_argument("--interval", type=float, help="Seconds between cycles")
    run_parser.add_argument("--cycles", type=int, help="Stop after this many cycles")
    run_parser.set_defaults(func=cmd_run)

    once_parser = subparsers.add_parser("once", help="Run a single cycle")
    add_common(once_parser)
    once_parser.add_argument("--dry-run", action="store_true", help="Use simulated probes")
    once_parser.set_defaults(func=cmd_once)

    classify_parser = subparsers.add_parser("classify", help="Show the category for scan findings")
    classify_parser.add_argument("--ip", default="", help="Primary IP address")
    classify_parser.add_argument("--ssid", help="WiFi SSID")
    classify_parser.add_argument("--dns-suffix", dest="dns_suffix", help="Ethernet DNS suffix")
    classify_parser.add_argument("--vpn", action="store_true", help="VPN detected")
    classify_parser.add_argument(
        "--home",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Working from home (defaults to --vpn)",
    )
    classify_parser.set_defaults(func=cmd_classify)

    stats_parser = subparsers.add_parser("stats", help="Show stored baselines")
    add_common(stats_parser)
    stats_parser.set_defaults(func=cmd_stats)

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument("action", choices=["init", "show"])
    config_parser.add_argument("--path", help="Config file path")
    config_parser.add_argument("--force", action="store_true", help="Overwrite existing config")
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    load_dotenv()
    parser = create_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except ConfigError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
