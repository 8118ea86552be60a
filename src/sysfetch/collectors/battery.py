"""Battery charge and charging state."""

import logging
from pathlib import Path

from sysfetch.facts.errors import SourceParseError, SourceUnavailable
from sysfetch.facts.models import Fact, FactKind

from .base import AdapterContext, read_text

logger = logging.getLogger(__name__)

POWER_SUPPLY_DIR = Path("/sys/class/power_supply")


def _battery_fact(percent: float, state: str) -> Fact:
    percent = max(0.0, min(100.0, percent))
    value = f"{percent:.0f}%"
    if state:
        value = f"{value} ({state})"
    return Fact.ok(
        FactKind.BATTERY,
        value,
        ratio=percent / 100.0,
        details={"percent": percent, "state": state},
    )


def collect_sysfs(ctx: AdapterContext) -> Fact:
    """Linux: first ``BAT*`` entry under /sys/class/power_supply."""
    batteries = sorted(POWER_SUPPLY_DIR.glob("BAT*")) if POWER_SUPPLY_DIR.is_dir() else []
    if not batteries:
        return collect_generic(ctx)

    battery = batteries[0]
    try:
        percent = float(read_text(battery / "capacity").strip())
    except ValueError:
        raise SourceParseError(f"unreadable capacity in {battery}") from None
    try:
        state = read_text(battery / "status").strip()
    except SourceUnavailable:
        state = ""
    return _battery_fact(percent, state)


def collect_generic(ctx: AdapterContext) -> Fact:
    try:
        import psutil

        battery = psutil.sensors_battery()
    except (AttributeError, OSError, NotImplementedError) as e:
        logger.debug(f"psutil battery query failed: {e}")
        battery = None

    if battery is None:
        raise SourceUnavailable("no battery")
    if battery.power_plugged is None:
        state = ""
    else:
        state = "Charging" if battery.power_plugged else "Discharging"
    return _battery_fact(float(battery.percent), state)
