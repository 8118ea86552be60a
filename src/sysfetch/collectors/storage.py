"""Mounted filesystem usage, one fact per relevant partition."""

from dataclasses import dataclass
from typing import List

from sysfetch.facts.errors import SourceUnavailable
from sysfetch.facts.models import Fact, FactKind

from .base import AdapterContext, format_bytes_gib

PSEUDO_FILESYSTEMS = frozenset(
    {
        "autofs", "binfmt_misc", "bpf", "cgroup", "cgroup2", "configfs",
        "debugfs", "devfs", "devpts", "devtmpfs", "efivarfs", "fdescfs",
        "fusectl", "hugetlbfs", "linprocfs", "linsysfs", "mqueue", "nsfs",
        "nullfs", "overlay", "proc", "procfs", "pstore", "ramfs", "rpc_pipefs",
        "securityfs", "squashfs", "sysfs", "tmpfs", "tracefs",
    }
)

# Mount trees that only ever hold read-only images or container layers.
IGNORED_PREFIXES = ("/snap/", "/var/lib/docker/", "/run/", "/proc/", "/sys/", "/dev/")
IGNORED_MOUNTS = frozenset({"/boot/efi", "/efi"})


@dataclass
class Partition:
    device: str
    mountpoint: str
    fstype: str


def relevant_partitions(partitions: List[Partition]) -> List[Partition]:
    """Drop pseudo filesystems and duplicate mounts, root first."""
    seen_devices = set()
    kept: List[Partition] = []
    for part in partitions:
        fstype = part.fstype.lower()
        if fstype in PSEUDO_FILESYSTEMS or fstype.startswith("fuse."):
            continue
        if part.mountpoint in IGNORED_MOUNTS:
            continue
        if part.mountpoint != "/" and part.mountpoint.startswith(IGNORED_PREFIXES):
            continue
        if part.device in seen_devices:
            continue
        seen_devices.add(part.device)
        kept.append(part)
    kept.sort(key=lambda p: (p.mountpoint != "/", p.mountpoint))
    return kept


def _list_partitions() -> List[Partition]:
    try:
        import psutil

        return [
            Partition(device=p.device, mountpoint=p.mountpoint, fstype=p.fstype)
            for p in psutil.disk_partitions(all=False)
        ]
    except Exception as e:
        raise SourceUnavailable(f"cannot list mounts: {e}") from e


def _usage_fact(part: Partition) -> Fact:
    import psutil

    label = f"Disk ({part.mountpoint})"
    try:
        usage = psutil.disk_usage(part.mountpoint)
    except OSError as e:
        return Fact.unavailable(FactKind.DISK, f"{part.mountpoint}: {e}", label=label)
    if usage.total <= 0:
        return Fact.unavailable(FactKind.DISK, f"{part.mountpoint}: empty filesystem", label=label)
    value = format_bytes_gib(usage.used, usage.total)
    if part.fstype:
        value = f"{value} ({part.fstype})"
    return Fact.ok(
        FactKind.DISK,
        value,
        label=label,
        ratio=usage.used / usage.total,
        details={"mountpoint": part.mountpoint, "device": part.device, "fstype": part.fstype},
    )


def collect_root(ctx: AdapterContext) -> List[Fact]:
    """Only the root filesystem."""
    partitions = [p for p in relevant_partitions(_list_partitions()) if p.mountpoint == "/"]
    if not partitions:
        partitions = [Partition(device="", mountpoint="/", fstype="")]
    return [_usage_fact(partitions[0])]


def collect_detailed(ctx: AdapterContext) -> List[Fact]:
    """Every real, mounted partition."""
    facts = []
    for part in relevant_partitions(_list_partitions()):
        ctx.check_deadline()
        facts.append(_usage_fact(part))
    if not facts:
        raise SourceUnavailable("no mounted filesystems")
    return facts
