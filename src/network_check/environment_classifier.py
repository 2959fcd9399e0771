"""
Network environment classification.

Maps the findings of a network interface scan to a stable category key such
as ``home_vpn`` or ``office_myssid``. The key names the series files, so the
mapping has to be deterministic and total.
"""

import ipaddress
import re
from typing import Iterable, Optional

from .models import ScanSnapshot

HOME_VPN_CATEGORY = "home_vpn"
UNKNOWN_TOKEN = "unknown"
MAX_TOKEN_LENGTH = 20

# Corporate VPN address pools (Detroit, Troy, Palo Alto)
DEFAULT_VPN_NETWORKS = (
    ipaddress.ip_network("10.93.0.0/16"),
    ipaddress.ip_network("10.94.0.0/16"),
    ipaddress.ip_network("10.95.0.0/16"),
)

_REPLACED_CHARS_PATTERN = re.compile(r'[\s./\\:*?"<>|\-]')
_DROPPED_CHARS_PATTERN = re.compile(r"[()\[\]{}]")


def sanitize(value: Optional[str]) -> str:
    """
    Turn an SSID or DNS suffix into a file-name safe token.

    Lowercases, replaces separators and reserved file name characters with
    ``_``, drops brackets and truncates to 20 characters. Never fails and
    never returns an empty string.

    Args:
        value: Raw SSID or DNS suffix

    Returns:
        Sanitized token, ``unknown`` for blank input
    """
    if value is None or not value.strip():
        return UNKNOWN_TOKEN

    token = value.lower()
    token = _DROPPED_CHARS_PATTERN.sub("", token)
    token = _REPLACED_CHARS_PATTERN.sub("_", token)
    token = token[:MAX_TOKEN_LENGTH]

    if not token:
        return UNKNOWN_TOKEN
    return token


def is_vpn_address(
    ip: Optional[str],
    networks: Iterable[ipaddress.IPv4Network] = DEFAULT_VPN_NETWORKS,
) -> bool:
    """Check whether an IP address string lies inside any VPN network."""
    if not ip:
        return False
    try:
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return False
    return any(
        address.version == network.version and address in network
        for network in networks
    )


def classify(
    snapshot: ScanSnapshot,
    is_home: bool,
    networks: Iterable[ipaddress.IPv4Network] = DEFAULT_VPN_NETWORKS,
) -> str:
    """
    Determine the category key for a scan snapshot.

    Priority order: VPN address range, WiFi SSID, Ethernet DNS suffix,
    unknown. When both an SSID and a DNS suffix are present the SSID wins.

    Args:
        snapshot: Scan findings
        is_home: Whether the endpoint is considered to be working from home
        networks: VPN networks to match the primary IP against

    Returns:
        Category key string
    """
    if is_vpn_address(snapshot.primary_ip, networks):
        return HOME_VPN_CATEGORY

    location = "home" if is_home else "office"

    if snapshot.wifi_ssid and snapshot.wifi_ssid.strip():
        return f"{location}_{sanitize(snapshot.wifi_ssid)}"

    if snapshot.ethernet_dns_suffix and snapshot.ethernet_dns_suffix.strip():
        return f"{location}_{sanitize(snapshot.ethernet_dns_suffix)}"

    return f"{location}_{UNKNOWN_TOKEN}"


class EnvironmentClassifier:
    """Classifier bound to a fixed set of VPN networks."""

    def __init__(self, vpn_networks: Optional[Iterable[str]] = None) -> None:
        if vpn_networks is None:
            self._networks = DEFAULT_VPN_NETWORKS
        else:
            self._networks = tuple(
                ipaddress.ip_network(cidr, strict=False) for cidr in vpn_networks
            )

    @property
    def vpn_networks(self) -> tuple:
        return self._networks

    def classify(self, snapshot: ScanSnapshot, is_home: Optional[bool] = None) -> str:
        """Classify a snapshot, using its own home decision when none is given."""
        if is_home is None:
            is_home = snapshot.considered_home
        return classify(snapshot, is_home, self._networks)

    def is_vpn_address(self, ip: Optional[str]) -> bool:
        return is_vpn_address(ip, self._networks)
