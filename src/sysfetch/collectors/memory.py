"""Used/total memory."""

from typing import Dict

from sysfetch.facts.errors import SourceParseError, SourceUnavailable
from sysfetch.facts.models import Fact, FactKind

from .base import AdapterContext, format_bytes_gib, read_text

MEMINFO_PATH = "/proc/meminfo"


def parse_meminfo(text: str) -> Dict[str, int]:
    """Parse /proc/meminfo into a field -> bytes mapping."""
    values: Dict[str, int] = {}
    for line in text.splitlines():
        if ":" not in line:
            continue
        key, rest = line.split(":", 1)
        parts = rest.split()
        if not parts:
            continue
        try:
            amount = int(parts[0])
        except ValueError:
            continue
        if len(parts) > 1 and parts[1].lower() == "kb":
            amount *= 1024
        values[key.strip()] = amount
    return values


def _memory_fact(used: float, total: float, reason: str = "") -> Fact:
    if total <= 0:
        raise SourceParseError("total memory is zero")
    used = min(max(used, 0), total)
    details = {"used_bytes": int(used), "total_bytes": int(total)}
    value = format_bytes_gib(used, total)
    if reason:
        return Fact.degraded(FactKind.MEMORY, value, reason, ratio=used / total, details=details)
    return Fact.ok(FactKind.MEMORY, value, ratio=used / total, details=details)


def collect_linux(ctx: AdapterContext) -> Fact:
    info = parse_meminfo(read_text(MEMINFO_PATH))
    total = info.get("MemTotal")
    if not total:
        raise SourceParseError("MemTotal missing from /proc/meminfo")

    if "MemAvailable" in info:
        return _memory_fact(total - info["MemAvailable"], total)

    free = info.get("MemFree", 0) + info.get("Buffers", 0) + info.get("Cached", 0)
    return _memory_fact(total - free, total, reason="approximated from free memory")


def collect_generic(ctx: AdapterContext) -> Fact:
    try:
        import psutil

        mem = psutil.virtual_memory()
    except Exception as e:
        raise SourceUnavailable(f"memory counters unavailable: {e}") from e

    available = getattr(mem, "available", None)
    if available is not None:
        return _memory_fact(mem.total - available, mem.total)
    return _memory_fact(mem.total - mem.free, mem.total, reason="approximated from free memory")
