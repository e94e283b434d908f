"""
Office presence detection.

The machine counts as "in the office" when either
  1. its hostname resolves to an address inside a configured range, or
  2. an up, non-loopback interface carries such an address.
"""

import ipaddress

from .config import log
from .discovery import is_valid_cidr
from .exceptions import ConfigurationError
from .interfaces import NetworkInfoProvider

_CIDR_HINT = (
    "Expected format: X.X.X.X/Y (e.g., 192.168.1.0/24). "
    "Fix the networks list in the settings file or delete it to reset."
)


def parse_networks(entries):
    """Parse CIDR strings into IPv4Network objects.

    Blank entries are skipped. Every malformed entry is reported in one
    ConfigurationError.
    """
    networks = []
    invalid = []
    for entry in entries or []:
        if entry is None or not str(entry).strip():
            continue
        text = str(entry).strip()
        if not is_valid_cidr(text):
            invalid.append(text)
            continue
        networks.append(ipaddress.IPv4Network(text, strict=False))

    if invalid:
        raise ConfigurationError(
            [f"Invalid network CIDR: {cidr!r}" for cidr in invalid], hint=_CIDR_HINT,
        )
    return networks


class NetworkPresenceDetector:
    """Decides office presence from a fixed set of address ranges."""

    def __init__(self, networks, provider=None):
        self._networks = tuple(parse_networks(networks))
        self._provider = provider or NetworkInfoProvider()
        if not self._networks:
            log.warning(
                "No office networks configured. Office presence will not be "
                "detected until networks are configured."
            )

    @property
    def networks(self):
        return self._networks

    def is_configured(self) -> bool:
        return bool(self._networks)

    def is_present(self) -> bool:
        if not self._networks:
            log.info("No networks configured for office detection")
            return False
        return self._check_host_name() or self._check_interfaces()

    # ─── Checks ───────────────────────────────────────────────

    def _matches(self, address) -> bool:
        try:
            addr = ipaddress.ip_address(address)
        except ValueError:
            return False
        return any(addr in network for network in self._networks)

    def _check_host_name(self) -> bool:
        host = self._provider.host_name()
        log.debug("Hostname: %s", host)
        for index, address in enumerate(self._provider.host_addresses(host)):
            log.debug("Hostname resolved IP address %d: %s", index, address)
            if self._matches(address):
                return True
        return False

    def _check_interfaces(self) -> bool:
        for iface in self._provider.interfaces():
            if not iface.is_up or iface.is_loopback:
                continue
            log.debug("Interface: %s", iface.name)
            for address, _ in iface.addresses:
                log.debug("Interface: %s IP address: %s", iface.name, address)
                if self._matches(address):
                    return True
        return False
