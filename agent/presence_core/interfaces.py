"""
Local network facts — hostname resolution and interface enumeration.

NetworkInfoProvider is the only place that touches the OS networking APIs
(socket + psutil). The detector and the discovery helper depend on its
three methods, so tests swap in a plain fake.
"""

import socket
import struct
import sys
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import psutil

from .config import log
from .constants import TUNNEL_NAME_PREFIXES


@dataclass
class InterfaceInfo:
    name: str
    is_up: bool
    is_loopback: bool = False
    is_tunnel: bool = False
    # (address, netmask) pairs; netmask is None where the OS reports none
    addresses: List[Tuple[str, Optional[str]]] = field(default_factory=list)
    gateways: List[str] = field(default_factory=list)
    metric: Optional[int] = None

    @property
    def ipv4_addresses(self):
        return [(a, m) for a, m in self.addresses if _is_ipv4(a)]


class NetworkInfoProvider:
    """Reads hostname, resolved addresses and interfaces from the OS."""

    def host_name(self) -> str:
        return socket.gethostname()

    def host_addresses(self, host_name) -> List[str]:
        try:
            infos = socket.getaddrinfo(host_name, None)
        except socket.gaierror as e:
            log.debug("Hostname %s did not resolve: %s", host_name, e)
            return []
        seen = []
        for family, _, _, _, sockaddr in infos:
            if family in (socket.AF_INET, socket.AF_INET6) and sockaddr[0] not in seen:
                seen.append(sockaddr[0])
        return seen

    def interfaces(self) -> List[InterfaceInfo]:
        addrs = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
        routes = default_routes()

        result = []
        for name, entries in addrs.items():
            stat = stats.get(name)
            flags = set((getattr(stat, "flags", "") or "").split(",")) if stat else set()
            addresses = [
                (e.address.split("%")[0], e.netmask)
                for e in entries
                if e.family in (socket.AF_INET, socket.AF_INET6)
            ]
            gateways = [gw for gw, _ in routes.get(name, [])]
            metrics = [m for _, m in routes.get(name, []) if m is not None]

            result.append(InterfaceInfo(
                name=name,
                is_up=bool(stat and stat.isup),
                is_loopback=_looks_loopback(name, flags, addresses),
                is_tunnel=_looks_tunnel(name, flags),
                addresses=addresses,
                gateways=gateways,
                metric=min(metrics) if metrics else None,
            ))
        return result


# ─── Classification helpers ──────────────────────────────────────

def _is_ipv4(address) -> bool:
    try:
        socket.inet_aton(address)
    except (OSError, TypeError):
        return False
    return address.count(".") == 3


def _looks_loopback(name, flags, addresses) -> bool:
    if "loopback" in flags:
        return True
    lowered = name.lower()
    if lowered == "lo" or lowered.startswith("lo0") or "loopback" in lowered:
        return True
    ips = [a for a, _ in addresses]
    return bool(ips) and all(a.startswith("127.") or a == "::1" for a in ips)


def _looks_tunnel(name, flags) -> bool:
    if "pointopoint" in flags:
        return True
    return name.lower().startswith(TUNNEL_NAME_PREFIXES)


# ─── Default routes (gateway + metric per interface) ─────────────

def default_routes():
    """Map interface name → [(gateway, metric)] for IPv4 default routes.

    Returns {} where the platform is not supported; callers treat that as
    "no interface advertises a gateway".
    """
    try:
        if sys.platform.startswith("linux"):
            return _linux_default_routes()
        if sys.platform == "win32":
            from .platform_win import windows_default_routes
            return windows_default_routes()
    except Exception as e:
        log.warning("Could not read routing table: %s", e)
    return {}


def _linux_default_routes(path="/proc/net/route"):
    routes = {}
    with open(path, "r", encoding="ascii") as f:
        lines = f.read().splitlines()
    for line in lines[1:]:
        parts = line.split()
        if len(parts) < 7:
            continue
        iface, destination, gateway, _flags, _ref, _use, metric = parts[:7]
        if destination != "00000000" or gateway == "00000000":
            continue
        gw = socket.inet_ntoa(struct.pack("<L", int(gateway, 16)))
        routes.setdefault(iface, []).append((gw, int(metric)))
    return routes
