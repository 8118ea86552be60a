"""Tests for concurrent collection under a deadline."""

import os
import subprocess
import sys
import threading
import time
from pathlib import Path
from unittest.mock import patch

import pytest

import sysfetch
from sysfetch.collectors import cpu, system
from sysfetch.collectors.registry import build_adapter_table
from sysfetch.config.models import CacheConfig, FetchConfig
from sysfetch.facts.errors import SourceUnavailable
from sysfetch.facts.models import Fact, FactKind, FactStatus
from sysfetch.hardware.profile import Family, PlatformProfile
from sysfetch.runners.orchestrator import Orchestrator
from sysfetch.storage.cache_store import CacheStore


@pytest.fixture
def profile():
    return PlatformProfile(family=Family.LINUX, distro="arch", kernel_version="6.8.0")


@pytest.fixture
def release():
    """Event that unblocks hanging adapters at teardown."""
    event = threading.Event()
    yield event
    event.set()


class CountingAdapter:
    def __init__(self, kind, value="ok", **fact_kwargs):
        self.kind = kind
        self.value = value
        self.fact_kwargs = fact_kwargs
        self.calls = 0

    def __call__(self, ctx):
        self.calls += 1
        return Fact.ok(self.kind, self.value, **self.fact_kwargs)


class TestRun:
    def test_results_in_table_order(self, profile):
        adapters = {
            FactKind.MEMORY: CountingAdapter(FactKind.MEMORY, "1.0/2.0 GiB", ratio=0.5),
            FactKind.CPU: CountingAdapter(FactKind.CPU, "Intel"),
            FactKind.SHELL: CountingAdapter(FactKind.SHELL, "zsh"),
        }
        snapshot = Orchestrator(FetchConfig()).run(profile, adapters)
        assert [f.kind for f in snapshot] == [FactKind.MEMORY, FactKind.CPU, FactKind.SHELL]
        assert not snapshot.deadline_hit
        assert all(a.calls == 1 for a in adapters.values())

    def test_failing_adapter_does_not_affect_others(self, profile):
        def broken(ctx):
            raise SourceUnavailable("no battery")

        adapters = {
            FactKind.BATTERY: broken,
            FactKind.CPU: CountingAdapter(FactKind.CPU, "Intel"),
        }
        snapshot = Orchestrator(FetchConfig()).run(profile, adapters)
        assert snapshot.get(FactKind.BATTERY).status is FactStatus.UNAVAILABLE
        assert snapshot.get(FactKind.BATTERY).reason == "no battery"
        assert snapshot.get(FactKind.CPU).value == "Intel"

    def test_multi_fact_adapter(self, profile):
        def disks(ctx):
            return [
                Fact.ok(FactKind.DISK, "1.0/2.0 GiB", label="Disk (/)", ratio=0.5),
                Fact.ok(FactKind.DISK, "3.0/4.0 GiB", label="Disk (/home)", ratio=0.75),
            ]

        snapshot = Orchestrator(FetchConfig()).run(profile, {FactKind.DISK: disks})
        assert [f.label for f in snapshot] == ["Disk (/)", "Disk (/home)"]

    def test_on_fact_callback(self, profile):
        seen = []
        adapters = {FactKind.CPU: CountingAdapter(FactKind.CPU, "Intel")}
        Orchestrator(FetchConfig(), on_fact=seen.append).run(profile, adapters)
        assert [f.kind for f in seen] == [FactKind.CPU]


class TestDeadlineContainment:
    def test_hanging_adapter_times_out(self, profile, release):
        def hang(ctx):
            release.wait(30)
            return Fact.ok(FactKind.PACKAGES, "never")

        adapters = {
            FactKind.PACKAGES: hang,
            FactKind.CPU: CountingAdapter(FactKind.CPU, "Intel"),
            FactKind.SHELL: CountingAdapter(FactKind.SHELL, "zsh"),
        }
        config = FetchConfig(deadline_s=2.0, adapter_timeout_s=0.3)

        start = time.monotonic()
        snapshot = Orchestrator(config).run(profile, adapters)
        elapsed = time.monotonic() - start

        assert elapsed < 1.5
        packages = snapshot.get(FactKind.PACKAGES)
        assert packages.status is FactStatus.UNAVAILABLE
        assert packages.reason == "timeout"
        assert snapshot.get(FactKind.CPU).value == "Intel"
        assert snapshot.get(FactKind.SHELL).value == "zsh"

    def test_global_deadline(self, profile, release):
        def hang(ctx):
            release.wait(30)
            return Fact.ok(FactKind.GPU, "never")

        config = FetchConfig(deadline_s=0.3, adapter_timeout_s=10.0)
        start = time.monotonic()
        snapshot = Orchestrator(config).run(
            profile,
            {FactKind.GPU: hang, FactKind.CPU: CountingAdapter(FactKind.CPU, "Intel")},
        )
        assert time.monotonic() - start < 1.5
        assert snapshot.deadline_hit
        assert snapshot.get(FactKind.GPU).reason == "deadline"
        assert snapshot.get(FactKind.CPU).status is FactStatus.OK

    def test_late_result_is_discarded(self, profile, release):
        def slow(ctx):
            release.wait(30)
            return Fact.ok(FactKind.GPU, "late")

        config = FetchConfig(deadline_s=0.2, adapter_timeout_s=10.0)
        snapshot = Orchestrator(config).run(profile, {FactKind.GPU: slow})
        release.set()
        time.sleep(0.05)
        assert snapshot.get(FactKind.GPU).value == ""

    def test_adapter_sees_its_own_deadline(self, profile):
        seen = {}

        def record(ctx):
            seen["remaining"] = ctx.remaining()
            return Fact.ok(FactKind.CPU, "Intel")

        config = FetchConfig(deadline_s=5.0, adapter_timeout_s=0.5)
        Orchestrator(config).run(profile, {FactKind.CPU: record})
        assert 0 < seen["remaining"] <= 0.5


@pytest.fixture
def linux_adapters():
    return {
        kind: CountingAdapter(kind, kind.value)
        for kind in (FactKind.CPU, FactKind.GPU, FactKind.BATTERY, FactKind.MEMORY)
    }


class TestDisabledKinds:
    def test_disabled_adapters_never_run(self, profile, linux_adapters):
        config = FetchConfig(show_gpu=False, show_battery=False, show_bootloader=False)
        table = build_adapter_table(profile, config)
        counted = {kind: linux_adapters[kind] for kind in table if kind in linux_adapters}
        snapshot = Orchestrator(config).run(profile, counted)

        assert linux_adapters[FactKind.GPU].calls == 0
        assert linux_adapters[FactKind.BATTERY].calls == 0
        assert linux_adapters[FactKind.CPU].calls == 1
        assert snapshot.get(FactKind.GPU) is None


class TestCache:
    def test_cached_fact_skips_adapter(self, profile, tmp_path):
        cache = CacheStore(CacheConfig(), path=tmp_path / "host.json")
        bootloader = CountingAdapter(FactKind.BOOTLOADER, "GRUB")
        memory = CountingAdapter(FactKind.MEMORY, "1.0/2.0 GiB", ratio=0.5)
        adapters = {FactKind.BOOTLOADER: bootloader, FactKind.MEMORY: memory}

        Orchestrator(FetchConfig(), cache=cache, fingerprint="fp").run(profile, adapters)
        snapshot = Orchestrator(FetchConfig(), cache=cache, fingerprint="fp").run(profile, adapters)

        assert bootloader.calls == 1
        assert memory.calls == 2
        assert snapshot.get(FactKind.BOOTLOADER).cached
        assert snapshot.get(FactKind.BOOTLOADER).value == "GRUB"
        assert not snapshot.get(FactKind.MEMORY).cached

    def test_other_host_does_not_hit(self, profile, tmp_path):
        cache = CacheStore(CacheConfig(), path=tmp_path / "host.json")
        bootloader = CountingAdapter(FactKind.BOOTLOADER, "GRUB")
        Orchestrator(FetchConfig(), cache=cache, fingerprint="fp-a").run(profile, {FactKind.BOOTLOADER: bootloader})
        Orchestrator(FetchConfig(), cache=cache, fingerprint="fp-b").run(profile, {FactKind.BOOTLOADER: bootloader})
        assert bootloader.calls == 2

    def test_package_partials_reach_adapter(self, profile, tmp_path):
        cache = CacheStore(CacheConfig(), path=tmp_path / "host.json")
        cache.save("fp", [], partials={"packages/pacman": 1200})
        hints = []

        def packages(ctx):
            hints.append(dict(ctx.cache_hint))
            return Fact.ok(FactKind.PACKAGES, "1200 (pacman)", details={"managers": {"pacman": 1200}})

        Orchestrator(FetchConfig(), cache=cache, fingerprint="fp").run(profile, {FactKind.PACKAGES: packages})
        assert hints == [{"pacman": 1200}]

    def test_timeout_is_never_cached(self, profile, tmp_path, release):
        cache = CacheStore(CacheConfig(), path=tmp_path / "host.json")

        def hang(ctx):
            release.wait(30)
            return Fact.ok(FactKind.CPU, "never")

        config = FetchConfig(deadline_s=1.0, adapter_timeout_s=0.2)
        Orchestrator(config, cache=cache, fingerprint="fp").run(profile, {FactKind.CPU: hang})
        assert cache.load("fp") is None


CPUINFO = """\
processor\t: 0
model name\t: Intel(R) Core(TM) i7-8550U CPU @ 1.80GHz
physical id\t: 0
core id\t\t: 0
"""


class TestLiveReadings:
    @pytest.fixture
    def cache(self, tmp_path):
        return CacheStore(CacheConfig(), path=tmp_path / "host.json")

    def _run(self, profile, cache, adapters, **config):
        return Orchestrator(FetchConfig(**config), cache=cache, fingerprint="fp").run(profile, adapters)

    @patch("sysfetch.collectors.cpu.read_cpu_temperature", side_effect=[45.0, 90.0])
    @patch("sysfetch.collectors.cpu.read_text", return_value=CPUINFO)
    def test_cpu_temperature_fresh_each_run(self, mock_read, mock_temp, profile, cache):
        adapters = {FactKind.CPU: cpu.collect_linux}
        first = self._run(profile, cache, adapters, show_cpu_temp=True)
        second = self._run(profile, cache, adapters, show_cpu_temp=True)

        assert first.get(FactKind.CPU).value == "Intel Core i7-8550U (1 cores) 45°C"
        assert second.get(FactKind.CPU).value == "Intel Core i7-8550U (1 cores) 90°C"
        assert not second.get(FactKind.CPU).cached
        assert mock_read.call_count == 1

    @patch("sysfetch.collectors.cpu.read_cpu_temperature", return_value=50.0)
    @patch("sysfetch.collectors.cpu.read_text", return_value=CPUINFO)
    def test_temperature_toggle_applies_with_warm_cache(self, mock_read, mock_temp, profile, cache):
        adapters = {FactKind.CPU: cpu.collect_linux}
        self._run(profile, cache, adapters, show_cpu_temp=False)
        snapshot = self._run(profile, cache, adapters, show_cpu_temp=True)
        assert snapshot.get(FactKind.CPU).value.endswith("50°C")

    def test_shell_change_seen_on_next_run(self, profile, cache, monkeypatch):
        adapters = {FactKind.SHELL: system.collect_shell}
        monkeypatch.setenv("SHELL", "/bin/bash")
        self._run(profile, cache, adapters)
        monkeypatch.setenv("SHELL", "/usr/bin/zsh")
        assert self._run(profile, cache, adapters).get(FactKind.SHELL).value == "zsh"

    def test_os_icon_toggle_applies_with_warm_cache(self, cache):
        arch = PlatformProfile(family=Family.LINUX, distro="arch", pretty_name="Arch Linux")
        adapters = {FactKind.OS: system.collect_os}
        self._run(arch, cache, adapters)
        snapshot = self._run(arch, cache, adapters, show_os_icon=True)
        assert snapshot.get(FactKind.OS).value == "🌀 Arch Linux"


HANGING_RUN = """\
import time

from sysfetch.config.models import FetchConfig
from sysfetch.facts.models import Fact, FactKind
from sysfetch.hardware.profile import Family, PlatformProfile
from sysfetch.runners.orchestrator import Orchestrator


def hang(ctx):
    time.sleep(30)
    return Fact.ok(FactKind.PACKAGES, "never")


config = FetchConfig(deadline_s=0.5, adapter_timeout_s=0.3)
snapshot = Orchestrator(config).run(PlatformProfile(family=Family.LINUX), {FactKind.PACKAGES: hang})
print(snapshot.get(FactKind.PACKAGES).reason)
"""


class TestProcessExit:
    def test_hung_adapter_does_not_hold_process(self):
        src = str(Path(sysfetch.__file__).resolve().parents[1])
        env = dict(os.environ, PYTHONPATH=os.pathsep.join(filter(None, [src, os.environ.get("PYTHONPATH")])))

        start = time.monotonic()
        result = subprocess.run(
            [sys.executable, "-c", HANGING_RUN],
            capture_output=True,
            text=True,
            env=env,
            timeout=20,
        )
        elapsed = time.monotonic() - start

        assert result.returncode == 0, result.stderr
        assert result.stdout.strip() == "timeout"
        assert elapsed < 10
