"""Tests for bootloader detection."""

import pytest

from sysfetch.collectors.bootloader import SIGNATURES, detect_bootloader
from sysfetch.facts.errors import SourceUnavailable


def _signatures(root):
    return [(name, tuple(f"{root}{p}" for p in patterns)) for name, patterns in SIGNATURES]


class TestDetectBootloader:
    def test_grub(self, tmp_path):
        (tmp_path / "boot/grub").mkdir(parents=True)
        (tmp_path / "boot/grub/grub.cfg").write_text("")
        assert detect_bootloader(_signatures(tmp_path)) == "GRUB"

    def test_priority_order(self, tmp_path):
        (tmp_path / "boot/grub").mkdir(parents=True)
        (tmp_path / "boot/grub/grub.cfg").write_text("")
        (tmp_path / "boot/limine.conf").write_text("")
        assert detect_bootloader(_signatures(tmp_path)) == "Limine"

    def test_glob_in_efi_path(self, tmp_path):
        (tmp_path / "boot/efi/EFI/fedora").mkdir(parents=True)
        (tmp_path / "boot/efi/EFI/fedora/grubx64.efi").write_text("")
        assert detect_bootloader(_signatures(tmp_path)) == "GRUB"

    def test_systemd_boot(self, tmp_path):
        (tmp_path / "efi/loader").mkdir(parents=True)
        (tmp_path / "efi/loader/loader.conf").write_text("timeout 3\n")
        assert detect_bootloader(_signatures(tmp_path)) == "systemd-boot"

    def test_nothing_found(self, tmp_path):
        with pytest.raises(SourceUnavailable):
            detect_bootloader(_signatures(tmp_path))
