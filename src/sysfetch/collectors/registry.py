"""Adapter lookup table keyed by fact kind and platform family."""

import logging
from typing import Dict, FrozenSet, Optional, Tuple

from sysfetch.config.models import FetchConfig
from sysfetch.facts.models import FactKind
from sysfetch.hardware.profile import Family, PlatformProfile

from . import battery, bootloader, cpu, gpu, memory, network, packages, storage, system
from .base import Adapter

logger = logging.getLogger(__name__)

# (kind, family) -> adapter. A ``None`` family is the generic fallback.
ADAPTERS: Dict[Tuple[FactKind, Optional[Family]], Adapter] = {
    (FactKind.HOSTNAME, None): system.collect_hostname,
    (FactKind.OS, None): system.collect_os,
    (FactKind.KERNEL, None): system.collect_kernel,
    (FactKind.UPTIME, Family.LINUX): system.collect_uptime_proc,
    (FactKind.UPTIME, None): system.collect_uptime_generic,
    (FactKind.BOOT_TIME, None): system.collect_boot_time,
    (FactKind.CPU, Family.LINUX): cpu.collect_linux,
    (FactKind.CPU, Family.MACOS): cpu.collect_macos,
    (FactKind.CPU, Family.FREEBSD): cpu.collect_bsd,
    (FactKind.CPU, Family.OPENBSD): cpu.collect_bsd,
    (FactKind.CPU, Family.NETBSD): cpu.collect_bsd,
    (FactKind.CPU, None): cpu.collect_generic,
    (FactKind.MEMORY, Family.LINUX): memory.collect_linux,
    (FactKind.MEMORY, None): memory.collect_generic,
    (FactKind.GPU, Family.MACOS): gpu.collect_macos,
    (FactKind.GPU, None): gpu.collect_pci,
    (FactKind.BOOTLOADER, None): bootloader.collect,
    (FactKind.NETWORK, None): network.collect,
    (FactKind.BATTERY, Family.LINUX): battery.collect_sysfs,
    (FactKind.BATTERY, None): battery.collect_generic,
    (FactKind.DESKTOP_ENV, None): system.collect_desktop_env,
    (FactKind.WINDOW_MANAGER, None): system.collect_window_manager,
    (FactKind.PACKAGES, None): packages.collect,
    (FactKind.SHELL, None): system.collect_shell,
}

# Fact detail keys whose entries are cached one by one.
PARTIAL_DETAILS: Dict[FactKind, str] = {
    FactKind.PACKAGES: "managers",
    FactKind.CPU: "identity",
    FactKind.GPU: "identity",
}

# Kinds that mix static identity with live readings such as temperature.
# Only their identity partials are cached; the adapter runs every time.
LIVE_KINDS: FrozenSet[FactKind] = frozenset({FactKind.CPU, FactKind.GPU})


def resolve(kind: FactKind, family: Family, config: FetchConfig) -> Optional[Adapter]:
    if kind is FactKind.DISK:
        return storage.collect_detailed if config.show_disks_detailed else storage.collect_root
    return ADAPTERS.get((kind, family)) or ADAPTERS.get((kind, None))


def build_adapter_table(profile: PlatformProfile, config: FetchConfig) -> Dict[FactKind, Adapter]:
    """Pick one adapter per enabled kind, in display order.

    Kinds switched off in the configuration are left out entirely, so
    their sources are never touched.
    """
    table: Dict[FactKind, Adapter] = {}
    for kind in config.enabled_kinds():
        adapter = resolve(kind, profile.family, config)
        if adapter is None:
            logger.debug(f"No adapter for {kind.value} on {profile.family.value}")
            continue
        table[kind] = adapter
    return table
