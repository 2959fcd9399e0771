"""
Series Store module for append-only metric series.

Each (metric, host class, category) key owns one CSV file in the results
directory. Files are rotated once they grow past a size bound, keeping at
most two generations: the primary file and a ``_2`` secondary file.
"""

import csv
import math
import threading
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Optional

from .config import DEFAULT_MAX_FILE_SIZE_BYTES
from .enums import HostClass, MetricKind
from .exceptions import PersistenceError
from .models import ScanSnapshot, SeriesRecord

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
FAIL_VALUE = "FAIL"
NOT_AVAILABLE = "N/A"
SECONDARY_SUFFIX = "_2"
FILE_EXTENSION = ".csv"

VALUE_COLUMNS = MappingProxyType({
    MetricKind.PING: "MedianPing(ms)",
    MetricKind.JITTER: "Jitter(ms)",
})

SCAN_LOG_HEADER = (
    "Timestamp",
    "PrimaryIP",
    "WorkingFromHome",
    "WiFiSSID",
    "EthernetDnsSuffix",
    "VpnDetected",
    "VpnIP",
    "NetworkCategory",
)


def series_header(metric: MetricKind) -> tuple[str, ...]:
    """Header row of a series file for the given metric."""
    return ("Timestamp", "Host", VALUE_COLUMNS[metric], "Success", "NetworkCategory")


def format_value(value: Optional[float]) -> str:
    """Format a series value, writing the FAIL sentinel for missing values."""
    if value is None:
        return FAIL_VALUE
    return f"{value:.2f}"


def parse_value(raw: str) -> Optional[float]:
    """Parse a series value; FAIL and anything non-numeric yield None."""
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


class SeriesStore:
    """
    Size-rotated CSV store for metric series.

    Appends for one key are serialized by a per-key lock so that the
    rotate-then-append sequence is never interleaved with another writer
    of the same key.
    """

    def __init__(
        self,
        results_dir: Path,
        max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES,
        logger=None,
    ) -> None:
        """
        Initialize the series store.

        Args:
            results_dir: Directory holding the series files
            max_file_size_bytes: Size above which a file is rotated
            logger: Optional AuditLogger for rotation and append records
        """
        self._results_dir = Path(results_dir)
        self._max_file_size_bytes = max_file_size_bytes
        self._logger = logger
        self._locks: dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def results_dir(self) -> Path:
        return self._results_dir

    @property
    def max_file_size_bytes(self) -> int:
        return self._max_file_size_bytes

    def series_path(
        self, category: str, host_class: HostClass, metric: MetricKind
    ) -> Path:
        """Path of the primary file for a series key."""
        name = f"{metric.value}_{host_class.file_token}_{category}{FILE_EXTENSION}"
        return self._results_dir / name

    def secondary_path(
        self, category: str, host_class: HostClass, metric: MetricKind
    ) -> Path:
        """Path of the rotated (second generation) file for a series key."""
        return self.rotated_path(self.series_path(category, host_class, metric))

    def scan_log_path(self, category: str) -> Path:
        return self._results_dir / f"ip_log_{category}{FILE_EXTENSION}"

    @staticmethod
    def rotated_path(path: Path) -> Path:
        return path.with_name(f"{path.stem}{SECONDARY_SUFFIX}{path.suffix}")

    def append(
        self,
        category: str,
        host_class: HostClass,
        metric: MetricKind,
        record: SeriesRecord,
    ) -> Path:
        """
        Append a record to a series, rotating the file first if needed.

        Args:
            category: Network category key
            host_class: Host class of the record's host
            metric: Metric kind of the series
            record: Record to append

        Returns:
            Path of the primary file written to

        Raises:
            PersistenceError: If the file cannot be rotated or written
        """
        path = self.series_path(category, host_class, metric)
        row = (
            record.timestamp.strftime(TIMESTAMP_FORMAT),
            record.host,
            format_value(record.value),
            str(record.success),
            record.category,
        )
        context = {
            "category": category,
            "host_class": host_class.value,
            "metric": metric.value,
        }
        self._append_row(path, series_header(metric), row, context)
        self._log_debug(
            f"{metric.value} result for {host_class.value} on {category} appended",
            {"file_path": str(path), "host": record.host},
        )
        return path

    def rotate(
        self, category: str, host_class: HostClass, metric: MetricKind
    ) -> bool:
        """
        Rotate a series now if its primary file is over the size bound.

        Returns:
            True when the primary file was moved to the secondary slot

        Raises:
            PersistenceError: If the file cannot be rotated
        """
        path = self.series_path(category, host_class, metric)
        context = {
            "category": category,
            "host_class": host_class.value,
            "metric": metric.value,
        }
        with self._lock_for(path):
            return self._rotate_if_needed(path, context)

    def append_scan(
        self,
        snapshot: ScanSnapshot,
        category: str,
        is_home: bool,
        timestamp: Optional[datetime] = None,
    ) -> Path:
        """
        Append a scan snapshot to the scan log of its category.

        Raises:
            PersistenceError: If the file cannot be rotated or written
        """
        path = self.scan_log_path(category)
        timestamp = timestamp or datetime.now()
        row = (
            timestamp.strftime(TIMESTAMP_FORMAT),
            snapshot.primary_ip or NOT_AVAILABLE,
            str(is_home),
            snapshot.wifi_ssid or NOT_AVAILABLE,
            snapshot.ethernet_dns_suffix or NOT_AVAILABLE,
            str(snapshot.vpn_detected),
            snapshot.vpn_ip or NOT_AVAILABLE,
            category,
        )
        self._append_row(path, SCAN_LOG_HEADER, row, {"category": category})
        return path

    def read_all(
        self,
        category: str,
        host_class: HostClass,
        metric: MetricKind,
        include_rotated: bool = False,
    ) -> list[SeriesRecord]:
        """
        Read the records of a series in insertion order.

        Rows whose value column is FAIL or not numeric are returned with a
        value of None. Rows that are structurally broken are skipped.

        Args:
            category: Network category key
            host_class: Host class of the series
            metric: Metric kind of the series
            include_rotated: Prepend the records of the secondary file

        Returns:
            Records in chronological (insertion) order

        Raises:
            PersistenceError: If a file exists but cannot be read
        """
        primary = self.series_path(category, host_class, metric)
        paths = [primary]
        if include_rotated:
            paths.insert(0, self.rotated_path(primary))

        records: list[SeriesRecord] = []
        for path in paths:
            with self._lock_for(primary):
                records.extend(self._read_file(path, metric))
        return records

    def read_values(
        self, category: str, host_class: HostClass, metric: MetricKind
    ) -> list[float]:
        """Parseable numeric values of the primary file, in insertion order."""
        return [
            record.value
            for record in self.read_all(category, host_class, metric)
            if record.value is not None
        ]

    def list_series(self) -> list[tuple[str, HostClass, MetricKind]]:
        """
        List the series keys that have a primary file on disk.

        Returns:
            Sorted list of (category, host_class, metric) tuples
        """
        if not self._results_dir.exists():
            return []

        # Longest tokens first so no token is read as a shorter one
        host_classes = sorted(HostClass, key=lambda hc: len(hc.file_token), reverse=True)
        keys = []
        for path in sorted(self._results_dir.glob(f"*{FILE_EXTENSION}")):
            stem = path.stem
            if stem.endswith(SECONDARY_SUFFIX):
                primary_stem = stem[: -len(SECONDARY_SUFFIX)]
                if path.with_name(primary_stem + FILE_EXTENSION).exists():
                    continue
            for metric in MetricKind:
                prefix = f"{metric.value}_"
                if not stem.startswith(prefix):
                    continue
                rest = stem[len(prefix):]
                for host_class in host_classes:
                    token = f"{host_class.file_token}_"
                    if rest.startswith(token) and len(rest) > len(token):
                        keys.append((rest[len(token):], host_class, metric))
                        break
                break
        return keys

    def _append_row(
        self, path: Path, header: tuple[str, ...], row: tuple, context: dict
    ) -> None:
        with self._lock_for(path):
            try:
                self._results_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise PersistenceError(
                    code="io_error",
                    message=f"Failed to create results directory: {e}",
                    details={"file_path": str(self._results_dir), "operation": "mkdir", **context},
                )

            self._rotate_if_needed(path, context)

            file_exists = path.exists()
            try:
                with open(path, "a", encoding="utf-8", newline="") as f:
                    writer = csv.writer(f)
                    if not file_exists:
                        writer.writerow(header)
                    writer.writerow(row)
            except OSError as e:
                raise PersistenceError(
                    code="io_error",
                    message=f"Failed to append to series file: {e}",
                    details={"file_path": str(path), "operation": "append", **context},
                )

    def _rotate_if_needed(self, path: Path, context: dict) -> bool:
        """Rotate the primary file into the secondary slot once it is too big."""
        try:
            if not path.exists() or path.stat().st_size <= self._max_file_size_bytes:
                return False

            secondary = self.rotated_path(path)
            if secondary.exists():
                secondary.unlink()
                path.replace(secondary)
                self._log_info(
                    f"Rotated series files: deleted {secondary.name}, "
                    f"moved {path.name} to {secondary.name}",
                    {"file_path": str(path), **context},
                )
            else:
                path.replace(secondary)
                self._log_info(
                    f"Created second series file: moved {path.name} to {secondary.name}",
                    {"file_path": str(path), **context},
                )
            return True
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to rotate series file: {e}",
                details={"file_path": str(path), "operation": "rotate", **context},
            )

    def _read_file(self, path: Path, metric: MetricKind) -> list[SeriesRecord]:
        if not path.exists():
            return []

        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                rows = list(csv.reader(f))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read series file: {e}",
                details={"file_path": str(path), "operation": "read"},
            )

        if len(rows) < 2:
            return []

        header = rows[0]
        try:
            timestamp_index = header.index("Timestamp")
            host_index = header.index("Host")
            value_index = header.index(VALUE_COLUMNS[metric])
            success_index = header.index("Success")
        except ValueError:
            return []
        category_index = header.index("NetworkCategory") if "NetworkCategory" in header else None

        records = []
        width = max(timestamp_index, host_index, value_index, success_index) + 1
        for row in rows[1:]:
            if len(row) < width:
                continue
            try:
                timestamp = datetime.strptime(row[timestamp_index], TIMESTAMP_FORMAT)
            except ValueError:
                continue
            category = ""
            if category_index is not None and len(row) > category_index:
                category = row[category_index]
            records.append(SeriesRecord(
                timestamp=timestamp,
                host=row[host_index],
                value=parse_value(row[value_index]),
                success=row[success_index] == "True",
                category=category,
            ))
        return records

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(path)
            if lock is None:
                lock = threading.Lock()
                self._locks[path] = lock
            return lock

    def _log_info(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.info("SeriesStore", message, data)

    def _log_debug(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.debug("SeriesStore", message, data)
