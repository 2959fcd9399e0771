"""
Property-based tests for the Series Store module.

Uses Hypothesis to verify append ordering, the FAIL sentinel, header
handling and two-generation size rotation.
"""

import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from network_check.enums import HostClass, MetricKind
from network_check.exceptions import PersistenceError
from network_check.models import ScanSnapshot, SeriesRecord
from network_check.statistics_engine import StatisticsEngine
from network_check.series_store import (
    SCAN_LOG_HEADER,
    SeriesStore,
    format_value,
    parse_value,
    series_header,
)


START = datetime(2024, 5, 1, 8, 0, 0)


def make_record(index: int, value, host: str = "git.rockfin.com", category: str = "office_x") -> SeriesRecord:
    return SeriesRecord(
        timestamp=START + timedelta(seconds=index),
        host=host,
        value=value,
        success=value is not None,
        category=category,
    )


value_strategy = st.one_of(
    st.none(),
    st.floats(min_value=0, max_value=10000, allow_nan=False, allow_infinity=False),
)


class TestAppendOrderProperty:
    """
    Property 5: Records are read back in insertion order.
    """

    @given(values=st.lists(value_strategy, min_size=1, max_size=30))
    @settings(max_examples=50, deadline=None)
    def test_read_all_preserves_order(self, values) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir))
            for index, value in enumerate(values):
                store.append("office_x", HostClass.INTERNAL, MetricKind.PING, make_record(index, value))

            records = store.read_all("office_x", HostClass.INTERNAL, MetricKind.PING)

            assert len(records) == len(values)
            for index, (record, value) in enumerate(zip(records, values)):
                assert record.timestamp == START + timedelta(seconds=index)
                if value is None:
                    assert record.value is None
                    assert record.success is False
                else:
                    assert record.value == pytest.approx(round(value, 2), abs=0.005)
                    assert record.success is True

    @given(values=st.lists(value_strategy, min_size=1, max_size=30))
    @settings(max_examples=50, deadline=None)
    def test_read_values_skips_failures(self, values) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir))
            for index, value in enumerate(values):
                store.append("office_x", HostClass.EXTERNAL, MetricKind.JITTER, make_record(index, value))

            parsed = store.read_values("office_x", HostClass.EXTERNAL, MetricKind.JITTER)
            assert len(parsed) == sum(1 for v in values if v is not None)

    def test_missing_series_reads_empty(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir) / "absent")
            assert store.read_all("office_x", HostClass.INTERNAL, MetricKind.PING) == []
            assert store.read_values("office_x", HostClass.INTERNAL, MetricKind.PING) == []
            assert store.list_series() == []


class TestFileFormat:
    """On-disk layout of series files."""

    def test_header_written_once(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir))
            for index in range(3):
                path = store.append(
                    "home_vpn", HostClass.INTERNAL_CRITICAL, MetricKind.PING,
                    make_record(index, 10.0, category="home_vpn"),
                )

            lines = path.read_text(encoding="utf-8").splitlines()
            assert path.name == "ping_internalaes_home_vpn.csv"
            assert lines[0] == ",".join(series_header(MetricKind.PING))
            assert lines[0] == "Timestamp,Host,MedianPing(ms),Success,NetworkCategory"
            assert len(lines) == 4
            assert lines[1] == "2024-05-01 08:00:00,git.rockfin.com,10.00,True,home_vpn"

    def test_jitter_header(self) -> None:
        assert series_header(MetricKind.JITTER) == (
            "Timestamp", "Host", "Jitter(ms)", "Success", "NetworkCategory"
        )

    def test_fail_sentinel(self) -> None:
        assert format_value(None) == "FAIL"
        assert format_value(12.345) == "12.35"
        assert parse_value("FAIL") is None
        assert parse_value("nan") is None
        assert parse_value("inf") is None
        assert parse_value("  ") is None
        assert parse_value("7.50") == 7.5

    def test_broken_rows_are_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir))
            path = store.series_path("office_x", HostClass.INTERNAL, MetricKind.PING)
            path.write_text(
                "Timestamp,Host,MedianPing(ms),Success,NetworkCategory\n"
                "2024-05-01 08:00:00,h,10.00,True,office_x\n"
                "garbage\n"
                "yesterday,h,11.00,True,office_x\n"
                "2024-05-01 08:00:02,h,FAIL,False,office_x\n"
                "2024-05-01 08:00:03,h,12.00,True,office_x\n",
                encoding="utf-8",
            )

            assert store.read_values("office_x", HostClass.INTERNAL, MetricKind.PING) == [10.0, 12.0]
            assert len(store.read_all("office_x", HostClass.INTERNAL, MetricKind.PING)) == 3

    def test_scan_log(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir))
            snapshot = ScanSnapshot(primary_ip="10.93.4.2", vpn_detected=True, vpn_ip="10.93.4.2")
            path = store.append_scan(snapshot, "home_vpn", True, timestamp=START)

            lines = path.read_text(encoding="utf-8").splitlines()
            assert path.name == "ip_log_home_vpn.csv"
            assert lines[0] == ",".join(SCAN_LOG_HEADER)
            assert lines[1] == "2024-05-01 08:00:00,10.93.4.2,True,N/A,N/A,True,10.93.4.2,home_vpn"


class TestRotationProperty:
    """
    Property 6: At most two generations exist and the primary restarts small.
    """

    def test_rotation_creates_secondary(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir), max_file_size_bytes=1)
            key = ("office_x", HostClass.INTERNAL, MetricKind.PING)

            store.append(*key, make_record(0, 1.0))
            store.append(*key, make_record(1, 2.0))

            assert store.secondary_path(*key).exists()
            assert store.read_values(*key) == [2.0]
            assert [r.value for r in store.read_all(*key, include_rotated=True)] == [1.0, 2.0]

    def test_rotation_replaces_existing_secondary(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir), max_file_size_bytes=1)
            key = ("office_x", HostClass.INTERNAL, MetricKind.PING)

            for index, value in enumerate([1.0, 2.0, 3.0]):
                store.append(*key, make_record(index, value))

            assert [r.value for r in store.read_all(*key, include_rotated=True)] == [2.0, 3.0]
            secondary_lines = store.secondary_path(*key).read_text(encoding="utf-8").splitlines()
            assert secondary_lines[0].startswith("Timestamp,")
            assert len(secondary_lines) == 2

    @given(count=st.integers(min_value=1, max_value=40))
    @settings(max_examples=20, deadline=None)
    def test_no_rotation_below_bound(self, count: int) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir))
            key = ("office_x", HostClass.EXTERNAL, MetricKind.PING)
            for index in range(count):
                store.append(*key, make_record(index, float(index)))

            assert not store.secondary_path(*key).exists()
            assert len(store.read_values(*key)) == count

    def test_file_over_bound_rotates_on_next_append(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir), max_file_size_bytes=200)
            key = ("office_x", HostClass.EXTERNAL, MetricKind.JITTER)

            path = store.append(*key, make_record(0, 1.0))
            index = 1
            while path.stat().st_size <= 200:
                store.append(*key, make_record(index, 1.0))
                index += 1
            assert not store.secondary_path(*key).exists()

            store.append(*key, make_record(index, 9.0))
            assert store.secondary_path(*key).exists()
            assert store.read_values(*key) == [9.0]


class TestListSeries:
    """Discovery of series keys from file names."""

    def test_lists_keys(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir), max_file_size_bytes=1)
            store.append("office_x", HostClass.INTERNAL_CRITICAL, MetricKind.PING, make_record(0, 1.0))
            store.append("office_x", HostClass.INTERNAL_CRITICAL, MetricKind.PING, make_record(1, 1.0))
            store.append("home_vpn", HostClass.EXTERNAL, MetricKind.JITTER, make_record(0, 1.0))
            store.append("home_vpn", HostClass.INTERNAL, MetricKind.PING, make_record(0, 1.0))
            store.append_scan(ScanSnapshot(primary_ip="1.2.3.4"), "home_vpn", True)

            assert store.list_series() == [
                ("home_vpn", HostClass.EXTERNAL, MetricKind.JITTER),
                ("home_vpn", HostClass.INTERNAL, MetricKind.PING),
                ("office_x", HostClass.INTERNAL_CRITICAL, MetricKind.PING),
            ]


class TestExistingResultFiles:
    """Series files written before this release keep feeding baselines."""

    def test_internalaes_file_is_read(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            results = Path(tmpdir)
            (results / "ping_internalaes_home_vpn.csv").write_text(
                "Timestamp,Host,MedianPing(ms),Success,NetworkCategory\n"
                "2024-04-30 08:00:00,RCD2AES601.mi.corp.rockfin.com,20.00,True,home_vpn\n"
                "2024-04-30 08:03:00,RCD2AES601.mi.corp.rockfin.com,FAIL,False,home_vpn\n"
                "2024-04-30 08:06:00,RCD2AES601.mi.corp.rockfin.com,30.00,True,home_vpn\n",
                encoding="utf-8",
            )
            store = SeriesStore(results)

            baseline = StatisticsEngine(store).median("home_vpn", HostClass.INTERNAL_CRITICAL, MetricKind.PING)

            assert baseline is not None
            assert baseline.median == 25.0
            assert baseline.sample_count == 2
            assert store.list_series() == [("home_vpn", HostClass.INTERNAL_CRITICAL, MetricKind.PING)]

    def test_append_extends_existing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            results = Path(tmpdir)
            existing = results / "ping_internalaes_office_x.csv"
            existing.write_text(
                "Timestamp,Host,MedianPing(ms),Success,NetworkCategory\n"
                "2024-04-30 08:00:00,RCD2AES601.mi.corp.rockfin.com,20.00,True,office_x\n",
                encoding="utf-8",
            )
            store = SeriesStore(results)

            path = store.append("office_x", HostClass.INTERNAL_CRITICAL, MetricKind.PING, make_record(0, 40.0))

            assert path == existing
            assert store.read_values("office_x", HostClass.INTERNAL_CRITICAL, MetricKind.PING) == [20.0, 40.0]


class TestConcurrentWritersProperty:
    """
    Property 21: Concurrent appends to one key keep every row and one header
    per file, with at most two generations on disk.
    """

    def _append_from_threads(self, store, key, writers: int, per_writer: int) -> None:
        barrier = threading.Barrier(writers)
        failures = []

        def write(writer: int) -> None:
            barrier.wait()
            for index in range(per_writer):
                try:
                    store.append(*key, make_record(index, float(index), host=f"host{writer}"))
                except Exception as e:
                    failures.append(e)

        threads = [threading.Thread(target=write, args=(writer,)) for writer in range(writers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert failures == []

    @given(writers=st.integers(min_value=2, max_value=6), per_writer=st.integers(min_value=1, max_value=15))
    @settings(max_examples=15, deadline=None)
    def test_no_lost_rows_without_rotation(self, writers: int, per_writer: int) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir))
            key = ("home_vpn", HostClass.INTERNAL_CRITICAL, MetricKind.PING)

            self._append_from_threads(store, key, writers, per_writer)

            records = store.read_all(*key)
            assert len(records) == writers * per_writer
            for writer in range(writers):
                values = [r.value for r in records if r.host == f"host{writer}"]
                assert values == [float(index) for index in range(per_writer)]
            lines = store.series_path(*key).read_text(encoding="utf-8").splitlines()
            assert lines.count(",".join(series_header(MetricKind.PING))) == 1
            assert lines[0].startswith("Timestamp,")

    @given(writers=st.integers(min_value=2, max_value=6), per_writer=st.integers(min_value=5, max_value=20))
    @settings(max_examples=15, deadline=None)
    def test_rotation_under_concurrency(self, writers: int, per_writer: int) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SeriesStore(Path(tmpdir), max_file_size_bytes=300)
            key = ("home_vpn", HostClass.INTERNAL_CRITICAL, MetricKind.PING)

            self._append_from_threads(store, key, writers, per_writer)

            assert sorted(p.name for p in Path(tmpdir).iterdir()) == [
                "ping_internalaes_home_vpn.csv",
                "ping_internalaes_home_vpn_2.csv",
            ]
            header = ",".join(series_header(MetricKind.PING))
            for path in (store.series_path(*key), store.secondary_path(*key)):
                lines = path.read_text(encoding="utf-8").splitlines()
                assert lines[0] == header
                assert lines.count(header) == 1
                assert len(lines) >= 2

            records = store.read_all(*key, include_rotated=True)
            seen = [(r.host, r.value) for r in records]
            assert len(seen) == len(set(seen))
            for writer in range(writers):
                values = [v for h, v in seen if h == f"host{writer}"]
                assert values == sorted(values)

class TestPersistenceErrors:
    """I/O failures surface as PersistenceError with context."""

    def test_results_dir_is_a_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = Path(tmpdir) / "results"
            blocker.write_text("not a directory", encoding="utf-8")
            store = SeriesStore(blocker)

            with pytest.raises(PersistenceError) as exc_info:
                store.append("office_x", HostClass.INTERNAL, MetricKind.PING, make_record(0, 1.0))

            assert exc_info.value.code == "io_error"
            assert exc_info.value.details["category"] == "office_x"
            assert exc_info.value.details["metric"] == "ping"
