"""CPU model, core/thread counts and temperature."""

import logging
from dataclasses import dataclass
from typing import Optional

from sysfetch.facts.errors import SourceParseError, SourceUnavailable
from sysfetch.facts.models import Fact, FactKind

from .base import AdapterContext, read_text, sysctl

logger = logging.getLogger(__name__)

CPUINFO_PATH = "/proc/cpuinfo"

# Sensor chips that report package temperature, in preference order.
CPU_SENSORS = ["coretemp", "k10temp", "zenpower", "cpu_thermal", "acpitz"]


@dataclass
class CPUInfo:
    model: str
    cores: Optional[int]
    threads: Optional[int]
    topology_known: bool = True


def parse_cpuinfo(text: str) -> CPUInfo:
    """Parse /proc/cpuinfo into model, physical cores and logical threads."""
    model = ""
    threads = 0
    pairs = set()
    physical_id = "0"
    saw_core_id = False

    for line in text.splitlines():
        if ":" not in line:
            continue
        key, value = (part.strip() for part in line.split(":", 1))
        if key == "processor":
            threads += 1
        elif key in ("model name", "Model", "Hardware", "cpu model") and not model:
            model = value
        elif key == "physical id":
            physical_id = value
        elif key == "core id":
            saw_core_id = True
            pairs.add((physical_id, value))

    if not model and threads == 0:
        raise SourceParseError("no processors in /proc/cpuinfo")

    cores = len(pairs) if saw_core_id else threads
    return CPUInfo(
        model=model,
        cores=cores or None,
        threads=threads or None,
        topology_known=saw_core_id,
    )


def clean_model(model: str) -> str:
    """Strip trademark noise and repeated spaces from a CPU brand string."""
    for noise in ("(R)", "(TM)", "(tm)", "CPU", "Processor"):
        model = model.replace(noise, "")
    if "@" in model:
        model = model.split("@", 1)[0]
    return " ".join(model.split())


def format_counts(info: CPUInfo) -> str:
    if info.cores and info.threads and info.threads != info.cores:
        return f"{info.cores} cores / {info.threads} threads"
    count = info.cores or info.threads
    return f"{count} cores" if count else ""


def read_cpu_temperature() -> Optional[float]:
    """Package temperature in Celsius, if a known sensor reports one."""
    try:
        import psutil

        if not hasattr(psutil, "sensors_temperatures"):
            return None
        temps = psutil.sensors_temperatures()
    except (AttributeError, OSError) as e:
        logger.debug(f"Could not read CPU temperature: {e}")
        return None

    for sensor_name in CPU_SENSORS:
        entries = temps.get(sensor_name)
        if not entries:
            continue
        for entry in entries:
            if entry.label and ("Package" in entry.label or "Tctl" in entry.label):
                return entry.current
        return entries[0].current
    return None


def cached_info(ctx: AdapterContext) -> Optional[CPUInfo]:
    """CPU identity saved by an earlier run, if the cache handed one over."""
    hint = ctx.cache_hint
    if not hint.get("model"):
        return None
    return CPUInfo(
        model=hint["model"],
        cores=hint.get("cores"),
        threads=hint.get("threads"),
        topology_known=hint.get("topology_known", True),
    )


def _build_fact(ctx: AdapterContext, info: CPUInfo, reason: str = "") -> Fact:
    model = clean_model(info.model) or "Unknown CPU"
    counts = format_counts(info)
    value = f"{model} ({counts})" if counts else model
    details = {"model": model, "cores": info.cores, "threads": info.threads}

    if info.model:
        details["identity"] = {
            "model": info.model,
            "cores": info.cores,
            "threads": info.threads,
            "topology_known": info.topology_known,
        }
    else:
        reason = reason or "model unknown"
    if not info.topology_known and not reason:
        reason = "cores only"

    if ctx.config.show_cpu_temp:
        temp = read_cpu_temperature()
        if temp is not None:
            details["temperature_c"] = temp
            value = f"{value} {temp:.0f}°C"
        else:
            reason = reason or "temperature unavailable"

    if reason:
        return Fact.degraded(FactKind.CPU, value, reason, details=details)
    return Fact.ok(FactKind.CPU, value, details=details)


def collect_linux(ctx: AdapterContext) -> Fact:
    info = cached_info(ctx)
    if info is None:
        info = parse_cpuinfo(read_text(CPUINFO_PATH))
        if not info.model:
            try:
                import cpuinfo

                info.model = cpuinfo.get_cpu_info().get("brand_raw", "")
            except Exception as e:
                logger.debug(f"py-cpuinfo failed: {e}")
    return _build_fact(ctx, info)


def collect_macos(ctx: AdapterContext) -> Fact:
    info = cached_info(ctx)
    if info is None:
        model = sysctl("machdep.cpu.brand_string", ctx)
        try:
            cores = int(sysctl("hw.physicalcpu", ctx))
            threads = int(sysctl("hw.logicalcpu", ctx))
        except ValueError:
            raise SourceParseError("non-numeric hw.physicalcpu/hw.logicalcpu") from None
        info = CPUInfo(model=model, cores=cores, threads=threads)
    return _build_fact(ctx, info)


def collect_bsd(ctx: AdapterContext) -> Fact:
    info = cached_info(ctx)
    if info is None:
        model = sysctl("hw.model", ctx)
        try:
            count = int(sysctl("hw.ncpu", ctx))
        except ValueError:
            count = None
        info = CPUInfo(model=model, cores=count, threads=None, topology_known=False)
    return _build_fact(ctx, info)


def collect_generic(ctx: AdapterContext) -> Fact:
    """Cross-platform fallback via py-cpuinfo and psutil."""
    info = cached_info(ctx)
    if info is None:
        try:
            import cpuinfo
            import psutil

            model = cpuinfo.get_cpu_info().get("brand_raw", "")
            cores = psutil.cpu_count(logical=False)
            threads = psutil.cpu_count(logical=True)
        except Exception as e:
            raise SourceUnavailable(f"cpu detection failed: {e}") from e
        info = CPUInfo(model=model, cores=cores, threads=threads, topology_known=cores is not None)
    return _build_fact(ctx, info)
