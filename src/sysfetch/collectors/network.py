"""Primary network interface and address."""

import ipaddress
import socket
from typing import Dict, List, Optional, Tuple

from sysfetch.facts.errors import SourceUnavailable
from sysfetch.facts.models import Fact, FactKind

from .base import AdapterContext

LOOPBACK_PREFIXES = ("lo",)


def _prefix_length(netmask: Optional[str]) -> Optional[int]:
    if not netmask:
        return None
    try:
        return ipaddress.ip_network(f"0.0.0.0/{netmask}").prefixlen
    except ValueError:
        return None


def select_interface(
    addrs: Dict[str, list],
    stats: Dict[str, object],
) -> Optional[Tuple[str, str]]:
    """First non-loopback interface that is up and has an address.

    Interfaces are taken in the platform's listing order. IPv4 wins over
    IPv6 within the same interface; an interface with only a link-local
    IPv6 address is skipped.
    """
    for name, entries in addrs.items():
        if name.startswith(LOOPBACK_PREFIXES):
            continue
        stat = stats.get(name)
        if stat is not None and not getattr(stat, "isup", True):
            continue

        ipv4: List[str] = []
        ipv6: List[str] = []
        for entry in entries:
            if entry.family == socket.AF_INET:
                prefix = _prefix_length(entry.netmask)
                ipv4.append(f"{entry.address}/{prefix}" if prefix is not None else entry.address)
            elif entry.family == socket.AF_INET6:
                address = entry.address.split("%", 1)[0]
                try:
                    if ipaddress.ip_address(address).is_link_local:
                        continue
                except ValueError:
                    continue
                ipv6.append(address)

        if ipv4:
            return name, ipv4[0]
        if ipv6:
            return name, ipv6[0]
    return None


def collect(ctx: AdapterContext) -> Fact:
    try:
        import psutil

        addrs = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except Exception as e:
        raise SourceUnavailable(f"cannot list interfaces: {e}") from e

    selected = select_interface(addrs, stats)
    if selected is None:
        raise SourceUnavailable("no configured interface")
    name, address = selected
    return Fact.ok(
        FactKind.NETWORK,
        f"{name}: {address}",
        details={"interface": name, "address": address},
    )
