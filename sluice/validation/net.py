"""IP address, subnet and hostname helpers.

Parsing is delegated to the stdlib ``ipaddress`` module; this module adds
the canonical rendering, the fixed blacklist and the DNS name rules the
chain steps need. Every entry point rejects over-long input before parsing.
"""
from __future__ import annotations

import re
from ipaddress import IPv4Address, IPv6Address, ip_address, ip_network

from sluice.core.config import get_settings

IPV4_BLACKLIST = tuple(ip_network(net) for net in (
    "192.168.0.0/16", "172.16.0.0/12", "10.0.0.0/8", "224.0.0.0/4", "127.0.0.0/8",
))
IPV6_BLACKLIST = tuple(ip_network(net) for net in ("fc00::/7", "ff00::/8", "ff00::/12"))

RESERVED_DOMAINS = ("test", "example", "invalid", "localhost", "example.com", "example.net", "example.org")

_HOSTNAME_MAX = 253
_LABEL_MAX = 63
_LABEL = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?$")
_V4_TAIL = re.compile(r"(?:\d{1,3}\.){3}\d{1,3}$")


class AddressError(ValueError):
    """Raised by normalize_ip with the message a chain step reports."""

    @property
    def message(self) -> str:
        return self.args[0]


def _too_long(value: str) -> bool:
    return len(value) > get_settings().MAX_ADDRESS_LENGTH


def parse_ip(value: object) -> IPv4Address | IPv6Address | None:
    """Parse an IPv4 or IPv6 address string, or return None."""
    if not isinstance(value, str) or _too_long(value) or "%" in value:
        return None
    try:
        return ip_address(value)
    except ValueError:
        return None


def ip_version(value: object) -> int:
    """4 or 6 for a valid address, 0 otherwise."""
    addr = parse_ip(value)
    return addr.version if addr is not None else 0


def normalize_ip(value: str) -> str:
    """IPv4 is returned unchanged; IPv6 becomes eight zero-padded lowercase groups.

    Raises:
        AddressError: the value is not a valid address.
    """
    if _too_long(value):
        raise AddressError("Invalid IP")
    if ":" not in value:
        if parse_ip(value) is None:
            raise AddressError("Invalid IP")
        return value
    addr = parse_ip(value)
    if isinstance(addr, IPv6Address):
        return addr.exploded
    if "::" not in value and _V4_TAIL.search(value) and len(value.split(":")) != 7:
        raise AddressError("Incorrect number of groups found")
    raise AddressError("Invalid IP")


def is_blacklisted(value: str) -> bool:
    addr = parse_ip(value)
    if addr is None:
        return False
    table = IPV4_BLACKLIST if addr.version == 4 else IPV6_BLACKLIST
    return any(addr in net for net in table)


def is_hostname(value: object) -> bool:
    """DNS name grammar: dot-separated labels of letters, digits and inner hyphens."""
    if not isinstance(value, str) or not value or len(value) > _HOSTNAME_MAX:
        return False
    return all(len(label) <= _LABEL_MAX and _LABEL.match(label) for label in value.split("."))


def fqdn_violation(value: str, denylist: tuple[str, ...] = ()) -> str | None:
    """Message explaining why a hostname is not an allowed FQDN, or None."""
    name = value[:-1] if value.endswith(".") else value
    if "." not in name:
        return "Domain name is not fully qualified."
    if any(name == domain or name.endswith("." + domain) for domain in RESERVED_DOMAINS):
        return "Reserved top level domain name"
    if any(name == domain or name.endswith("." + domain) for domain in denylist):
        return "Forbidden domain name"
    return None
