"""Identity and session facts: host, OS, kernel, uptime, desktop, shell."""

import os
import time
from datetime import datetime
from typing import Dict, Optional

from sysfetch.facts.errors import SourceParseError, SourceUnavailable
from sysfetch.facts.models import Fact, FactKind
from sysfetch.hardware.fingerprint import detect_hostname
from sysfetch.hardware.profile import Family

from .base import AdapterContext, format_duration, read_text, run_command

UPTIME_PATH = "/proc/uptime"

# Checked in order, so more specific names come before generic ones.
OS_ICONS = [
    ("macos", ""),
    ("mac os", ""),
    ("ubuntu", "♕"),
    ("debian", "♦"),
    ("fedora", "🦋"),
    ("arch", "🌀"),
    ("pop", "🚀"),
    ("cachy", "🌰"),
    ("pika", "🐭"),
    ("elementary", "🍎"),
    ("manjaro", "🌄"),
    ("kali", "🔪"),
    ("suse", "🦎"),
    ("centos", "🩸"),
    ("rocky", "🪨"),
    ("alpine", "🏔️"),
    ("mint", "🌿"),
    ("linux", "🐧"),
]

# Process name -> display name.
WINDOW_MANAGERS: Dict[str, str] = {
    "kwin_wayland": "KWin",
    "kwin_x11": "KWin",
    "kwin": "KWin",
    "gnome-shell": "Mutter",
    "mutter": "Mutter",
    "muffin": "Muffin",
    "marco": "Marco",
    "xfwm4": "Xfwm4",
    "openbox": "Openbox",
    "fluxbox": "Fluxbox",
    "i3": "i3",
    "sway": "Sway",
    "hyprland": "Hyprland",
    "Hyprland": "Hyprland",
    "bspwm": "bspwm",
    "awesome": "awesome",
    "dwm": "dwm",
    "herbstluftwm": "herbstluftwm",
    "qtile": "Qtile",
    "river": "river",
    "wayfire": "Wayfire",
    "labwc": "labwc",
    "niri": "niri",
    "xmonad": "xmonad",
    "icewm": "IceWM",
    "enlightenment": "Enlightenment",
}


def os_icon(name: str) -> str:
    lowered = name.lower()
    for needle, icon in OS_ICONS:
        if needle in lowered:
            return icon
    return ""


def collect_hostname(ctx: AdapterContext) -> Fact:
    name = detect_hostname()
    if not name or name == "unknown":
        raise SourceUnavailable("hostname not set")
    return Fact.ok(FactKind.HOSTNAME, name)


def collect_os(ctx: AdapterContext) -> Fact:
    profile = ctx.profile
    name = profile.pretty_name
    if not name:
        raise SourceUnavailable(f"no identity source for {profile.family.value}")
    if ctx.config.show_os_icon:
        icon = os_icon(name)
        if icon:
            name = f"{icon} {name}"
    return Fact.ok(FactKind.OS, name, details={"distro": profile.distro, "family": profile.family.value})


def _boot_time() -> float:
    try:
        import psutil

        return psutil.boot_time()
    except Exception as e:
        raise SourceUnavailable(f"boot time unknown: {e}") from e


def collect_uptime_proc(ctx: AdapterContext) -> Fact:
    text = read_text(UPTIME_PATH).split()
    try:
        seconds = float(text[0])
    except (IndexError, ValueError):
        raise SourceParseError("malformed /proc/uptime") from None
    return Fact.ok(FactKind.UPTIME, format_duration(seconds), details={"seconds": int(seconds)})


def collect_uptime_generic(ctx: AdapterContext) -> Fact:
    seconds = time.time() - _boot_time()
    return Fact.ok(FactKind.UPTIME, format_duration(seconds), details={"seconds": int(seconds)})


def collect_boot_time(ctx: AdapterContext) -> Fact:
    booted = datetime.fromtimestamp(_boot_time())
    return Fact.ok(
        FactKind.BOOT_TIME,
        booted.strftime("%Y-%m-%d %H:%M"),
        details={"timestamp": booted.isoformat()},
    )


def collect_desktop_env(ctx: AdapterContext) -> Fact:
    if ctx.profile.family is Family.MACOS:
        return Fact.ok(FactKind.DESKTOP_ENV, "Aqua")

    desktop = os.environ.get("XDG_CURRENT_DESKTOP") or os.environ.get("DESKTOP_SESSION")
    if not desktop:
        raise SourceUnavailable("no desktop session")
    # XDG_CURRENT_DESKTOP may list several names, e.g. "ubuntu:GNOME".
    names = [part for part in desktop.split(":") if part]
    value = names[-1] if names else desktop
    session = os.environ.get("XDG_SESSION_TYPE")
    if session in ("x11", "wayland"):
        value = f"{value} ({session})"
    return Fact.ok(FactKind.DESKTOP_ENV, value)


def find_window_manager(process_names) -> Optional[str]:
    for name in process_names:
        if name in WINDOW_MANAGERS:
            return WINDOW_MANAGERS[name]
    return None


def collect_window_manager(ctx: AdapterContext) -> Fact:
    if ctx.profile.family is Family.MACOS:
        return Fact.ok(FactKind.WINDOW_MANAGER, "Quartz Compositor")
    try:
        import psutil

        names = [p.info.get("name") or "" for p in psutil.process_iter(["name"])]
    except Exception as e:
        raise SourceUnavailable(f"cannot list processes: {e}") from e

    wm = find_window_manager(names)
    if wm is None:
        raise SourceUnavailable("no known window manager running")
    return Fact.ok(FactKind.WINDOW_MANAGER, wm)


def collect_shell(ctx: AdapterContext) -> Fact:
    path = os.environ.get("SHELL")
    if not path:
        raise SourceUnavailable("SHELL not set")
    name = os.path.basename(path.rstrip("/"))
    return Fact.ok(FactKind.SHELL, name, details={"path": path})


def collect_kernel(ctx: AdapterContext) -> Fact:
    """Kernel release from the profile, else straight from ``uname -r``."""
    if ctx.profile.kernel_version:
        return Fact.ok(FactKind.KERNEL, ctx.profile.kernel_version)
    release = run_command(["uname", "-r"], ctx, timeout=2.0).strip()
    if not release:
        raise SourceParseError("empty uname -r output")
    return Fact.ok(FactKind.KERNEL, release)
