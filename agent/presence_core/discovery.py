"""
Configuration-time helpers: propose office CIDRs from the current
connection and check CIDR syntax.

Not used on the polling path.
"""

import ipaddress

from .config import log
from .constants import LINK_LOCAL_CIDR
from .interfaces import NetworkInfoProvider

_LINK_LOCAL = ipaddress.ip_network(LINK_LOCAL_CIDR)
_NO_METRIC = 2 ** 31 - 1


def is_valid_cidr(candidate) -> bool:
    """Strict IPv4 CIDR syntax: four decimal octets 0-255, '/', prefix 0-32."""
    if not isinstance(candidate, str) or not candidate.strip():
        return False

    parts = candidate.strip().split("/")
    if len(parts) != 2:
        return False
    address, prefix = parts

    octets = address.split(".")
    if len(octets) != 4:
        return False
    for octet in octets:
        if not _is_decimal(octet) or int(octet) > 255:
            return False

    if not _is_decimal(prefix):
        return False
    return 0 <= int(prefix) <= 32


def _is_decimal(text) -> bool:
    return text.isascii() and text.isdigit()


def discover_candidates(provider=None):
    """
    Return CIDR strings for the networks this machine is attached to now.

    Interfaces that route somewhere (have an IPv4 gateway) come first,
    ordered by metric so the primary route leads. If none do, every active
    interface with an IPv4 address is used instead.
    """
    provider = provider or NetworkInfoProvider()
    active = [
        i for i in provider.interfaces()
        if i.is_up and not i.is_loopback and not i.is_tunnel
    ]

    chosen = sorted(
        (i for i in active if _has_ipv4_gateway(i)),
        key=lambda i: i.metric if i.metric is not None else _NO_METRIC,
    )
    if not chosen:
        chosen = [i for i in active if _has_ipv4_address(i)]
        log.debug("No interface advertises a gateway, using %d active interfaces", len(chosen))

    networks = []
    for iface in chosen:
        for address, netmask in iface.ipv4_addresses:
            cidr = _network_of(address, netmask)
            if cidr and cidr not in networks:
                log.debug("Interface %s: %s/%s → %s", iface.name, address, netmask, cidr)
                networks.append(cidr)
    return networks


def _has_ipv4_gateway(iface) -> bool:
    for gateway in iface.gateways:
        try:
            addr = ipaddress.ip_address(gateway)
        except ValueError:
            continue
        if addr.version == 4 and not addr.is_loopback:
            return True
    return False


def _has_ipv4_address(iface) -> bool:
    for address, _ in iface.ipv4_addresses:
        try:
            if not ipaddress.IPv4Address(address).is_loopback:
                return True
        except ValueError:
            continue
    return False


def _network_of(address, netmask):
    """address AND mask, prefix = popcount(mask). None if unusable."""
    if not netmask:
        return None
    try:
        addr = ipaddress.IPv4Address(address)
        mask = ipaddress.IPv4Address(netmask)
    except ValueError:
        return None
    if addr in _LINK_LOCAL or mask.is_loopback:
        return None

    network = ipaddress.IPv4Address(int(addr) & int(mask))
    prefix = bin(int(mask)).count("1")
    return f"{network}/{prefix}"
