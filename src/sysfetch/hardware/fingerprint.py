"""Host fingerprinting for cache validation."""

import hashlib
import logging
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .profile import PlatformProfile

logger = logging.getLogger(__name__)

# psutil derives boot time from the clock, which can wobble by a second.
BOOT_TIME_RESOLUTION_S = 10


@dataclass
class HostIdentity:
    """The inputs a fingerprint is derived from."""

    hostname: str
    kernel: str
    boot_time: int


def detect_hostname() -> str:
    """Hostname from /etc/hostname, falling back to the socket API."""
    try:
        name = Path("/etc/hostname").read_text().strip()
        if name:
            return name
    except OSError:
        pass
    try:
        return socket.gethostname() or "unknown"
    except OSError:
        return "unknown"


def detect_boot_time() -> int:
    """Boot time as a coarse Unix timestamp, or 0 if unknown."""
    try:
        import psutil

        boot = int(psutil.boot_time())
        return boot - boot % BOOT_TIME_RESOLUTION_S
    except Exception as e:
        logger.debug(f"Boot time detection failed: {e}")
        return 0


class HostFingerprint:
    """Generate a stable key for "this host, this boot"."""

    @staticmethod
    def generate(profile: Optional[PlatformProfile] = None) -> str:
        """Generate a compact fingerprint string."""
        return HostFingerprint._format_fingerprint(HostFingerprint.detect_identity(profile))

    @staticmethod
    def detect_identity(profile: Optional[PlatformProfile] = None) -> HostIdentity:
        if profile is not None:
            kernel = profile.kernel_version
        else:
            from .profile import detect_kernel_version

            kernel = detect_kernel_version()
        return HostIdentity(
            hostname=detect_hostname(),
            kernel=kernel,
            boot_time=detect_boot_time(),
        )

    @staticmethod
    def _format_fingerprint(identity: HostIdentity) -> str:
        raw = f"{identity.hostname}|{identity.kernel}|{identity.boot_time}"
        digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]
        return f"{identity.hostname}-{digest}"
