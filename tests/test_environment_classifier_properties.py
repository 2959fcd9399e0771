"""
Property-based tests for the environment classifier.

Uses Hypothesis to verify that classification is total, prioritizes VPN
address ranges, and that sanitization is bounded and idempotent.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from network_check.environment_classifier import (
    EnvironmentClassifier,
    classify,
    is_vpn_address,
    sanitize,
)
from network_check.models import ScanSnapshot


octet = st.integers(min_value=0, max_value=255)


@st.composite
def vpn_ip_strategy(draw) -> str:
    """Generate addresses inside the VPN pools."""
    second = draw(st.sampled_from([93, 94, 95]))
    return f"10.{second}.{draw(octet)}.{draw(octet)}"


@st.composite
def non_vpn_ip_strategy(draw) -> str:
    """Generate private addresses outside the VPN pools."""
    first = draw(st.sampled_from([10, 172, 192]))
    second = draw(octet.filter(lambda o: o not in (93, 94, 95)))
    return f"{first}.{second}.{draw(octet)}.{draw(octet)}"


optional_text = st.one_of(st.none(), st.text(max_size=40))


class TestVpnPriorityProperty:
    """
    Property 1: VPN address ranges always win.
    """

    @given(
        ip=vpn_ip_strategy(),
        ssid=optional_text,
        suffix=optional_text,
        is_home=st.booleans(),
        vpn_detected=st.booleans(),
    )
    @settings(max_examples=100)
    def test_vpn_range_classifies_as_home_vpn(
        self, ip: str, ssid, suffix, is_home: bool, vpn_detected: bool
    ) -> None:
        snapshot = ScanSnapshot(
            primary_ip=ip,
            wifi_ssid=ssid,
            ethernet_dns_suffix=suffix,
            vpn_detected=vpn_detected,
        )
        assert classify(snapshot, is_home) == "home_vpn"

    @given(ip=non_vpn_ip_strategy())
    @settings(max_examples=100)
    def test_other_addresses_are_not_vpn(self, ip: str) -> None:
        assert not is_vpn_address(ip)

    def test_invalid_addresses_are_not_vpn(self) -> None:
        for ip in ["", "   ", "10.93", "10.93.1.256", "not-an-ip", "::1"]:
            assert not is_vpn_address(ip)

    def test_custom_vpn_networks(self) -> None:
        classifier = EnvironmentClassifier(vpn_networks=["192.168.50.0/24"])
        assert classifier.classify(ScanSnapshot(primary_ip="192.168.50.7")) == "home_vpn"
        assert classifier.classify(ScanSnapshot(primary_ip="10.93.1.5")) == "office_unknown"


class TestClassificationOrderProperty:
    """
    Property 2: SSID beats DNS suffix, which beats unknown.
    """

    @given(
        ip=non_vpn_ip_strategy(),
        ssid=st.text(min_size=1, max_size=40).filter(lambda s: s.strip()),
        suffix=optional_text,
        is_home=st.booleans(),
    )
    @settings(max_examples=100)
    def test_ssid_wins_over_dns_suffix(self, ip: str, ssid: str, suffix, is_home: bool) -> None:
        snapshot = ScanSnapshot(primary_ip=ip, wifi_ssid=ssid, ethernet_dns_suffix=suffix)
        location = "home" if is_home else "office"
        assert classify(snapshot, is_home) == f"{location}_{sanitize(ssid)}"

    @given(
        ip=non_vpn_ip_strategy(),
        suffix=st.text(min_size=1, max_size=40).filter(lambda s: s.strip()),
        is_home=st.booleans(),
    )
    @settings(max_examples=100)
    def test_dns_suffix_used_without_ssid(self, ip: str, suffix: str, is_home: bool) -> None:
        snapshot = ScanSnapshot(primary_ip=ip, wifi_ssid="  ", ethernet_dns_suffix=suffix)
        location = "home" if is_home else "office"
        assert classify(snapshot, is_home) == f"{location}_{sanitize(suffix)}"

    def test_unknown_fallback(self) -> None:
        snapshot = ScanSnapshot(primary_ip="192.168.1.20")
        assert classify(snapshot, True) == "home_unknown"
        assert classify(snapshot, False) == "office_unknown"

    def test_examples(self) -> None:
        snapshot = ScanSnapshot(primary_ip="192.168.1.20", wifi_ssid="My SSID (5G)")
        assert classify(snapshot, False) == "office_my_ssid_5g"

        snapshot = ScanSnapshot(primary_ip="10.5.1.1", ethernet_dns_suffix="mi.corp.rockfin.com")
        assert classify(snapshot, False) == "office_mi_corp_rockfin_com"

    def test_home_defaults_to_vpn_detection(self) -> None:
        classifier = EnvironmentClassifier()
        snapshot = ScanSnapshot(primary_ip="192.168.1.20", wifi_ssid="Home", vpn_detected=True)
        assert classifier.classify(snapshot) == "home_home"

        snapshot = ScanSnapshot(
            primary_ip="192.168.1.20", wifi_ssid="Home", vpn_detected=True, is_home=False
        )
        assert classifier.classify(snapshot) == "office_home"


class TestSanitizeProperty:
    """
    Property 3: Sanitization is total, bounded and idempotent.
    """

    @given(value=st.text(max_size=100))
    @settings(max_examples=200)
    def test_sanitize_is_bounded_and_never_empty(self, value: str) -> None:
        result = sanitize(value)
        assert 0 < len(result) <= 20

    @given(value=st.text(max_size=100))
    @settings(max_examples=200)
    def test_sanitize_is_idempotent(self, value: str) -> None:
        once = sanitize(value)
        assert sanitize(once) == once

    @given(value=st.text(max_size=100))
    @settings(max_examples=200)
    def test_sanitize_removes_reserved_characters(self, value: str) -> None:
        result = sanitize(value)
        for char in ' ./\\:*?"<>|()[]{}-':
            assert char not in result

    def test_blank_input_is_unknown(self) -> None:
        assert sanitize(None) == "unknown"
        assert sanitize("") == "unknown"
        assert sanitize(" \t ") == "unknown"
        assert sanitize("()[]{}") == "unknown"

    def test_truncates_to_twenty_characters(self) -> None:
        assert sanitize("A Very Long Network Name Indeed") == "a_very_long_network_"
