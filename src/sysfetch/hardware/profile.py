"""Platform profile detection with per-family fallbacks."""

import logging
import platform
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class Family(str, Enum):
    LINUX = "linux"
    FREEBSD = "freebsd"
    OPENBSD = "openbsd"
    NETBSD = "netbsd"
    MACOS = "macos"
    UNKNOWN = "unknown"

    @property
    def is_bsd(self) -> bool:
        return self in (Family.FREEBSD, Family.OPENBSD, Family.NETBSD)


@dataclass(frozen=True)
class PlatformProfile:
    """What kind of host we are on. Built once per run, read by every adapter."""

    family: Family
    distro: Optional[str] = None
    kernel_version: str = ""
    pretty_name: Optional[str] = None
    sources: frozenset = field(default_factory=frozenset)

    def has(self, source: str) -> bool:
        return source in self.sources


_SYSTEM_FAMILIES = {
    "Linux": Family.LINUX,
    "FreeBSD": Family.FREEBSD,
    "OpenBSD": Family.OPENBSD,
    "NetBSD": Family.NETBSD,
    "Darwin": Family.MACOS,
}

OS_RELEASE_PATHS = ("/etc/os-release", "/usr/lib/os-release")
LSB_RELEASE_PATH = "/etc/lsb-release"

# Pseudo filesystems and identity files that adapters may rely on.
_SOURCE_MARKERS = {
    "procfs": "/proc/cpuinfo",
    "sysfs": "/sys/class",
    "os-release": "/etc/os-release",
    "power_supply": "/sys/class/power_supply",
}


def parse_key_value(text: str) -> Dict[str, str]:
    """Parse ``KEY=value`` lines as found in os-release and lsb-release."""
    data: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        data[key.strip()] = value.strip().strip("\"'")
    return data


def _from_os_release(path: str) -> Optional[Tuple[str, str]]:
    data = parse_key_value(Path(path).read_text())
    distro = data.get("ID")
    if not distro:
        return None
    pretty = data.get("PRETTY_NAME") or data.get("NAME") or distro
    return distro.lower(), pretty


def _from_lsb_release() -> Optional[Tuple[str, str]]:
    data = parse_key_value(Path(LSB_RELEASE_PATH).read_text())
    distro = data.get("DISTRIB_ID")
    if not distro:
        return None
    pretty = data.get("DISTRIB_DESCRIPTION") or distro
    return distro.lower(), pretty


def _from_sw_vers() -> Optional[Tuple[str, str]]:
    result = subprocess.run(
        ["sw_vers", "-productVersion"],
        capture_output=True,
        text=True,
        timeout=2,
    )
    if result.returncode != 0 or not result.stdout.strip():
        return None
    return "macos", f"macOS {result.stdout.strip()}"


def _from_uname() -> Optional[Tuple[str, str]]:
    result = subprocess.run(["uname", "-sr"], capture_output=True, text=True, timeout=2)
    if result.returncode != 0 or not result.stdout.strip():
        return None
    pretty = result.stdout.strip()
    return pretty.split()[0].lower(), pretty


def _identity_candidates(family: Family) -> List[Callable[[], Optional[Tuple[str, str]]]]:
    """Priority-ordered identity sources for a family."""
    if family is Family.LINUX:
        return [partial(_from_os_release, p) for p in OS_RELEASE_PATHS] + [_from_lsb_release]
    if family is Family.MACOS:
        return [_from_sw_vers]
    if family.is_bsd:
        return [_from_uname]
    return []


def detect_family() -> Family:
    return _SYSTEM_FAMILIES.get(platform.system(), Family.UNKNOWN)


def detect_kernel_version() -> str:
    """Kernel release string, e.g. ``6.8.0-45-generic``."""
    release = platform.release()
    if release:
        return release
    try:
        result = subprocess.run(["uname", "-r"], capture_output=True, text=True, timeout=2)
        if result.returncode == 0:
            return result.stdout.strip()
    except Exception as e:
        logger.debug(f"uname -r failed: {e}")
    return ""


def detect_sources() -> frozenset:
    found = set()
    for name, marker in _SOURCE_MARKERS.items():
        try:
            if Path(marker).exists():
                found.add(name)
        except OSError:
            continue
    return frozenset(found)


def detect() -> PlatformProfile:
    """Resolve a best-effort profile of this host. Never raises."""
    family = detect_family()
    distro: Optional[str] = None
    pretty: Optional[str] = None

    for candidate in _identity_candidates(family):
        try:
            identity = candidate()
        except Exception as e:
            logger.debug(f"Identity source failed: {e}")
            continue
        if identity:
            distro, pretty = identity
            break

    if family is Family.UNKNOWN:
        logger.debug(f"Unrecognised platform {platform.system()!r}")
        pretty = platform.system() or None

    return PlatformProfile(
        family=family,
        distro=distro,
        kernel_version=detect_kernel_version(),
        pretty_name=pretty,
        sources=detect_sources(),
    )
