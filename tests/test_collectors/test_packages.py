"""Tests for package counting."""

from unittest.mock import MagicMock, patch

import pytest

from sysfetch.collectors import packages
from sysfetch.collectors.packages import PackageManager, count_lines, format_counts
from sysfetch.facts.errors import SourceTimeout, SourceUnavailable
from sysfetch.facts.models import FactStatus


def _manager(name, count=None, present=True, error=None):
    counter = MagicMock(return_value=count, side_effect=error)
    return PackageManager(name=name, probe=lambda: present, count=counter)


class TestHelpers:
    def test_count_lines_skips_blank_and_header(self):
        output = "Name  Version  Rev\ncore  16  123\n\nsnapd  2.61  456\n"
        assert count_lines(output, skip_header=1) == 2

    def test_format_counts(self):
        assert format_counts({"pacman": 1200, "flatpak": 12}) == "1212 (pacman 1200, flatpak 12)"
        assert format_counts({"pacman": 1200}) == "1200 (pacman)"


class TestCollect:
    def test_sums_present_managers(self, make_ctx):
        managers = [_manager("pacman", 1200), _manager("flatpak", 12), _manager("snap", 5, present=False)]
        fact = packages.collect(make_ctx(), managers)
        assert fact.status is FactStatus.OK
        assert fact.value == "1212 (pacman 1200, flatpak 12)"
        assert fact.details == {"managers": {"pacman": 1200, "flatpak": 12}, "total": 1212}
        managers[2].count.assert_not_called()

    def test_slow_manager_degrades_only_itself(self, make_ctx):
        managers = [_manager("dpkg", 2100), _manager("flatpak", error=SourceTimeout())]
        fact = packages.collect(make_ctx(), managers)
        assert fact.status is FactStatus.DEGRADED
        assert fact.value == "2100 (dpkg)"
        assert "flatpak: timeout" in fact.reason

    def test_cached_counts_skip_queries(self, make_ctx):
        managers = [_manager("pacman", 1), _manager("flatpak", 12)]
        fact = packages.collect(make_ctx(cache_hint={"pacman": 1300}), managers)
        assert fact.details["managers"] == {"pacman": 1300, "flatpak": 12}
        managers[0].count.assert_not_called()

    def test_zero_counts_hidden_when_others_exist(self, make_ctx):
        managers = [_manager("rpm", 900), _manager("flatpak", 0)]
        assert packages.collect(make_ctx(), managers).value == "900 (rpm)"

    def test_no_manager(self, make_ctx):
        with pytest.raises(SourceUnavailable, match="no package manager"):
            packages.collect(make_ctx(), [_manager("pacman", present=False)])

    def test_every_manager_failed(self, make_ctx):
        managers = [_manager("pacman", error=SourceTimeout())]
        with pytest.raises(SourceUnavailable, match="pacman: timeout"):
            packages.collect(make_ctx(), managers)

    @patch("sysfetch.collectors.packages.run_command", return_value="a\nb\nc\n")
    @patch("sysfetch.collectors.packages.which", side_effect=lambda name: "/usr/bin/pacman" if name == "pacman" else None)
    def test_default_manager_table(self, mock_which, mock_run, make_ctx, monkeypatch):
        monkeypatch.setattr(packages.os.path, "isdir", lambda path: False)
        fact = packages.collect(make_ctx())
        assert fact.value == "3 (pacman)"
        assert mock_run.call_args[0][0] == ["pacman", "-Qq"]


class TestPortage:
    def test_counts_package_directories(self, tmp_path, monkeypatch):
        for name in ("app-shells/bash-5.2_p26", "app-shells/zsh-5.9", "sys-apps/coreutils-9.4"):
            package = tmp_path / name
            package.mkdir(parents=True)
            (package / "CONTENTS").write_text("")
            (package / "SLOT").write_text("0\n")
        monkeypatch.setattr(packages, "PORTAGE_DB", str(tmp_path))
        assert packages.count_portage(None) == 3

    def test_bsd_package_database_is_not_portage(self, tmp_path, monkeypatch):
        for name in ("bash-5.2.26", "curl-8.6.0", "git-2.44.0"):
            package = tmp_path / name
            package.mkdir()
            for entry in ("+CONTENTS", "+DESC", "+COMMENT"):
                (package / entry).write_text("")
        monkeypatch.setattr(packages, "PORTAGE_DB", str(tmp_path))
        assert packages.count_portage(None) == 0

    @patch("sysfetch.collectors.packages.run_command", return_value="bash-5.2.26\ncurl-8.6.0\ngit-2.44.0\n")
    @patch("sysfetch.collectors.packages.which", side_effect=lambda name: "/usr/sbin/pkg_info" if name == "pkg_info" else None)
    def test_openbsd_host_reports_pkg_info_only(self, mock_which, mock_run, make_ctx, monkeypatch):
        monkeypatch.setattr(packages.os.path, "isdir", lambda path: path == "/var/db/pkg")
        fact = packages.collect(make_ctx())
        assert fact.value == "3 (pkg_info)"
        assert fact.details["managers"] == {"pkg_info": 3}
