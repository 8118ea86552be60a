"""Bootloader detection by probing known installation paths."""

import glob
from typing import List, Tuple

from sysfetch.facts.errors import SourceUnavailable
from sysfetch.facts.models import Fact, FactKind

from .base import AdapterContext

# (name, path patterns). Checked top to bottom; the first hit wins.
SIGNATURES: List[Tuple[str, Tuple[str, ...]]] = [
    (
        "Limine",
        (
            "/boot/limine.conf",
            "/boot/limine/limine.conf",
            "/boot/limine.cfg",
            "/boot/EFI/limine",
            "/boot/efi/EFI/limine",
            "/efi/EFI/limine",
        ),
    ),
    (
        "GRUB",
        (
            "/boot/grub/grub.cfg",
            "/boot/grub2/grub.cfg",
            "/boot/efi/EFI/*/grub.cfg",
            "/boot/efi/EFI/*/grubx64.efi",
        ),
    ),
    (
        "systemd-boot",
        (
            "/boot/loader/loader.conf",
            "/efi/loader/loader.conf",
            "/boot/efi/loader/loader.conf",
            "/boot/EFI/systemd/systemd-bootx64.efi",
            "/boot/efi/EFI/systemd/systemd-bootx64.efi",
        ),
    ),
    ("rEFInd", ("/boot/efi/EFI/refind", "/boot/EFI/refind", "/efi/EFI/refind")),
    ("Syslinux", ("/boot/syslinux/syslinux.cfg", "/boot/extlinux/extlinux.conf")),
    ("LILO", ("/etc/lilo.conf",)),
    ("FreeBSD loader", ("/boot/loader.conf", "/boot/loader.efi")),
]


def detect_bootloader(signatures: List[Tuple[str, Tuple[str, ...]]] = SIGNATURES) -> str:
    """Return the first bootloader whose installation paths exist."""
    for name, patterns in signatures:
        for pattern in patterns:
            try:
                if glob.glob(pattern):
                    return name
            except OSError:
                continue
    raise SourceUnavailable("no known bootloader found")


def collect(ctx: AdapterContext) -> Fact:
    return Fact.ok(FactKind.BOOTLOADER, detect_bootloader())
