"""Tests for network interface selection."""

import socket
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from sysfetch.collectors import network
from sysfetch.collectors.network import select_interface
from sysfetch.facts.errors import SourceUnavailable


def _addr(family, address, netmask=None):
    return SimpleNamespace(family=family, address=address, netmask=netmask)


ADDRS = {
    "lo": [_addr(socket.AF_INET, "127.0.0.1", "255.0.0.0")],
    "docker0": [_addr(socket.AF_INET, "172.17.0.1", "255.255.0.0")],
    "wlan0": [
        _addr(socket.AF_INET6, "fe80::1%wlan0"),
        _addr(socket.AF_INET, "192.168.1.23", "255.255.255.0"),
    ],
    "wg0": [_addr(socket.AF_INET6, "fd00::2")],
}

STATS = {
    "lo": SimpleNamespace(isup=True),
    "docker0": SimpleNamespace(isup=False),
    "wlan0": SimpleNamespace(isup=True),
    "wg0": SimpleNamespace(isup=True),
}


class TestSelectInterface:
    def test_first_up_non_loopback(self):
        assert select_interface(ADDRS, STATS) == ("wlan0", "192.168.1.23/24")

    def test_ipv6_when_no_ipv4(self):
        addrs = {"wg0": ADDRS["wg0"]}
        assert select_interface(addrs, STATS) == ("wg0", "fd00::2")

    def test_link_local_only_is_skipped(self):
        addrs = {"eth0": [_addr(socket.AF_INET6, "fe80::abcd%eth0")]}
        assert select_interface(addrs, {}) is None

    def test_listing_order_breaks_ties(self):
        addrs = {
            "eth1": [_addr(socket.AF_INET, "10.0.0.2", "255.0.0.0")],
            "eth0": [_addr(socket.AF_INET, "10.0.0.1", "255.0.0.0")],
        }
        assert select_interface(addrs, {})[0] == "eth1"


class TestCollect:
    @patch("psutil.net_if_stats", return_value=STATS)
    @patch("psutil.net_if_addrs", return_value=ADDRS)
    def test_value(self, mock_addrs, mock_stats, make_ctx):
        fact = network.collect(make_ctx())
        assert fact.value == "wlan0: 192.168.1.23/24"
        assert fact.details["interface"] == "wlan0"

    @patch("psutil.net_if_stats", return_value={})
    @patch("psutil.net_if_addrs", return_value={"lo": ADDRS["lo"]})
    def test_loopback_only(self, mock_addrs, mock_stats, make_ctx):
        with pytest.raises(SourceUnavailable, match="no configured interface"):
            network.collect(make_ctx())
