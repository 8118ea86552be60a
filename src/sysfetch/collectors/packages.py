"""Installed package counts across package managers.

A manager is only queried after its presence is confirmed, so a missing
tool never shows up as a failure. Counts are kept per manager in the fact
details so each one can be cached on its own.
"""

import glob
import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from sysfetch.facts.errors import SourceError, SourceUnavailable
from sysfetch.facts.models import Fact, FactKind

from .base import AdapterContext, run_command, which

logger = logging.getLogger(__name__)


def count_lines(output: str, skip_header: int = 0) -> int:
    lines = [line for line in output.splitlines() if line.strip()]
    return max(0, len(lines) - skip_header)


PORTAGE_DB = "/var/db/pkg"


def count_entries(pattern: str) -> int:
    return len(glob.glob(pattern))


def count_portage(ctx: AdapterContext) -> int:
    # <category>/<package>/ directories only; the BSDs keep a flat /var/db/pkg.
    return count_entries(os.path.join(PORTAGE_DB, "*", "*", ""))


@dataclass
class PackageManager:
    """How to detect a package manager and count what it installed."""

    name: str
    probe: Callable[[], bool]
    count: Callable[[AdapterContext], int]


def _command(args: List[str], skip_header: int = 0) -> Callable[[AdapterContext], int]:
    def count(ctx: AdapterContext) -> int:
        return count_lines(run_command(args, ctx), skip_header=skip_header)

    return count


def _binary(name: str) -> Callable[[], bool]:
    return lambda: which(name) is not None


def _directory(path: str) -> Callable[[], bool]:
    return lambda: os.path.isdir(path)


MANAGERS: List[PackageManager] = [
    PackageManager("dpkg", _binary("dpkg-query"), _command(["dpkg-query", "-f", ".\n", "-W"])),
    PackageManager("pacman", _binary("pacman"), _command(["pacman", "-Qq"])),
    PackageManager("rpm", _binary("rpm"), _command(["rpm", "-qa"])),
    PackageManager("xbps", _binary("xbps-query"), _command(["xbps-query", "-l"])),
    PackageManager("apk", _binary("apk"), _command(["apk", "info"])),
    PackageManager("emerge", _binary("emerge"), count_portage),
    PackageManager(
        "nix",
        _directory("/run/current-system/sw"),
        _command(["nix-store", "-q", "--requisites", "/run/current-system/sw"]),
    ),
    PackageManager("flatpak", _binary("flatpak"), _command(["flatpak", "list"])),
    PackageManager("snap", _binary("snap"), _command(["snap", "list"], skip_header=1)),
    PackageManager("pkg", _binary("pkg"), _command(["pkg", "info", "-a"])),
    PackageManager("pkg_info", _binary("pkg_info"), _command(["pkg_info"])),
    PackageManager("brew", _binary("brew"), _command(["brew", "list", "--formula", "-1"])),
]


def format_counts(counts: Dict[str, int]) -> str:
    """``"1239 (dpkg 1234, flatpak 5)"``, or ``"1200 (pacman)"`` for a single manager."""
    total = sum(counts.values())
    if len(counts) == 1:
        return f"{total} ({next(iter(counts))})"
    return f"{total} (" + ", ".join(f"{name} {n}" for name, n in counts.items()) + ")"


def collect(ctx: AdapterContext, managers: Optional[List[PackageManager]] = None) -> Fact:
    managers = MANAGERS if managers is None else managers
    present = [m for m in managers if m.probe()]
    if not present:
        raise SourceUnavailable("no package manager found")

    counts: Dict[str, int] = {}
    failures: List[str] = []
    for manager in present:
        cached = ctx.cache_hint.get(manager.name)
        if isinstance(cached, int):
            counts[manager.name] = cached
            continue
        try:
            ctx.check_deadline()
            counts[manager.name] = manager.count(ctx)
        except SourceError as e:
            logger.debug(f"{manager.name} count failed: {e}")
            failures.append(f"{manager.name}: {e}")

    if not counts:
        raise SourceUnavailable("; ".join(failures))

    counts = {name: n for name, n in counts.items() if n > 0} or counts
    details = {"managers": counts, "total": sum(counts.values())}
    value = format_counts(counts)
    if failures:
        return Fact.degraded(FactKind.PACKAGES, value, "; ".join(failures), details=details)
    return Fact.ok(FactKind.PACKAGES, value, details=details)
