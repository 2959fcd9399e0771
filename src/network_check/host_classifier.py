"""
Host classification.

Buckets a monitored target into ``external``, ``internal`` or
``internal-critical`` using substring rules on its normalized hostname.
"""

from typing import Iterable, Optional

import idna

from .enums import HostClass

# Well-known public resolvers and sites, always external
PUBLIC_HOST_MARKERS = (
    "google.com",
    "cloudflare.com",
    "8.8.8.8",
    "8.8.4.4",
    "1.1.1.1",
    "4.2.2.2",
    "208.67.222.222",
)

INTERNAL_DOMAIN_MARKERS = (
    ".corp.",
    ".rockfin.",
    ".mi.",
)

# Any of these alone marks a critical server
CRITICAL_MARKERS = ("aes",)

# All parts of one combination must be present
CRITICAL_MARKER_COMBINATIONS = (("rcd", "601"),)


def normalize_host(host: str) -> str:
    """
    Normalize a hostname for marker matching.

    Strips whitespace and a trailing dot, lowercases, and decodes IDNA
    ``xn--`` labels to Unicode. Hosts that IDNA rejects are kept in their
    lowercased form.
    """
    normalized = host.strip().rstrip(".").lower()
    if "xn--" in normalized:
        try:
            normalized = idna.decode(normalized)
        except UnicodeError:
            pass
    return normalized


class HostClassifier:
    """
    Substring-rule classifier for monitored hosts.

    Rules apply in priority order:
    1. Public host markers => external
    2. Critical markers => internal-critical
    3. Internal domain markers => internal
    4. Anything else => external
    """

    def __init__(
        self,
        public_markers: Iterable[str] = PUBLIC_HOST_MARKERS,
        internal_markers: Iterable[str] = INTERNAL_DOMAIN_MARKERS,
        critical_markers: Iterable[str] = CRITICAL_MARKERS,
        critical_combinations: Iterable[Iterable[str]] = CRITICAL_MARKER_COMBINATIONS,
        critical_hosts: Optional[Iterable[str]] = None,
    ) -> None:
        """
        Initialize the classifier.

        Args:
            public_markers: Substrings identifying public hosts
            internal_markers: Substrings identifying internal domains
            critical_markers: Substrings identifying critical servers
            critical_combinations: Groups of substrings that together identify
                critical servers
            critical_hosts: Hosts explicitly configured as critical
        """
        self._public_markers = tuple(m.lower() for m in public_markers)
        self._internal_markers = tuple(m.lower() for m in internal_markers)
        self._critical_markers = tuple(m.lower() for m in critical_markers)
        self._critical_combinations = tuple(
            tuple(part.lower() for part in combination)
            for combination in critical_combinations
        )
        self._critical_hosts = frozenset(
            normalize_host(host) for host in (critical_hosts or ())
        )

    def classify(self, host: str) -> HostClass:
        """Classify a hostname or IP literal."""
        normalized = normalize_host(host)

        if any(marker in normalized for marker in self._public_markers):
            return HostClass.EXTERNAL

        if self.is_critical(normalized):
            return HostClass.INTERNAL_CRITICAL

        if any(marker in normalized for marker in self._internal_markers):
            return HostClass.INTERNAL

        return HostClass.EXTERNAL

    def is_critical(self, host: str) -> bool:
        normalized = normalize_host(host)
        if normalized in self._critical_hosts:
            return True
        if any(marker in normalized for marker in self._critical_markers):
            return True
        return any(
            all(part in normalized for part in combination)
            for combination in self._critical_combinations
        )
