"""GPU detection with vendor queries first and bus enumeration as fallback."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from sysfetch.facts.errors import SourceError, SourceUnavailable
from sysfetch.facts.models import Fact, FactKind

from .base import AdapterContext, run_command, which

logger = logging.getLogger(__name__)

# Sensor chips exposed by open-source GPU drivers.
GPU_SENSORS = ["amdgpu", "nouveau", "radeon"]

_INTEGRATED_HINTS = re.compile(
    r"radeon (vega|graphics)|renoir|cezanne|lucienne|picasso|raven|rembrandt|"
    r"phoenix|barcelo|uhd graphics|iris|hd graphics",
    re.IGNORECASE,
)
_REVISION = re.compile(r"\s*\(rev [0-9a-f]+\)\s*$", re.IGNORECASE)


@dataclass
class GPUDevice:
    model: str
    discrete: bool
    temperature_c: Optional[float] = None


def classify_lspci_line(line: str) -> Optional[GPUDevice]:
    """Turn one ``lspci`` line into a device, or None if it is not a GPU."""
    lower = line.lower()
    if not any(tag in lower for tag in ("vga compatible controller", "3d controller", "display controller")):
        return None
    parts = line.split(":", 2)
    if len(parts) < 3:
        return None
    description = _REVISION.sub("", parts[2]).strip()

    brackets = re.findall(r"\[([^\]]+)\]", description)
    vendor = description.split()[0] if description else ""
    if vendor.lower() in ("advanced", "amd/ati"):
        vendor = "AMD"
    model = f"{vendor} {brackets[-1]}" if brackets else description

    if "3d controller" in lower or "nvidia" in lower:
        discrete = True
    elif "intel" in lower:
        discrete = re.search(r"\barc\b", lower) is not None
    else:
        discrete = not _INTEGRATED_HINTS.search(description)
    return GPUDevice(model=model.strip(), discrete=discrete)


def pick_gpu(devices: List[GPUDevice]) -> Optional[GPUDevice]:
    """First discrete GPU in enumeration order, else the first integrated one."""
    for device in devices:
        if device.discrete:
            return device
    return devices[0] if devices else None


def query_nvml() -> List[GPUDevice]:
    import pynvml

    pynvml.nvmlInit()
    try:
        devices = []
        for i in range(pynvml.nvmlDeviceGetCount()):
            handle = pynvml.nvmlDeviceGetHandleByIndex(i)
            name = pynvml.nvmlDeviceGetName(handle)
            if isinstance(name, bytes):
                name = name.decode("utf-8")
            try:
                temp = float(pynvml.nvmlDeviceGetTemperature(handle, pynvml.NVML_TEMPERATURE_GPU))
            except pynvml.NVMLError:
                temp = None
            devices.append(GPUDevice(model=name, discrete=True, temperature_c=temp))
        return devices
    finally:
        pynvml.nvmlShutdown()


def query_nvidia_smi(ctx: AdapterContext) -> List[GPUDevice]:
    if not which("nvidia-smi"):
        raise SourceUnavailable("nvidia-smi not installed")
    output = run_command(
        ["nvidia-smi", "--query-gpu=name,temperature.gpu", "--format=csv,noheader"],
        ctx,
    )
    devices = []
    for line in output.strip().splitlines():
        name, _, temp = line.partition(",")
        try:
            temperature = float(temp.strip())
        except ValueError:
            temperature = None
        devices.append(GPUDevice(model=name.strip(), discrete=True, temperature_c=temperature))
    return devices


def enumerate_lspci(ctx: AdapterContext) -> List[GPUDevice]:
    if not which("lspci"):
        raise SourceUnavailable("lspci not installed")
    output = run_command(["lspci"], ctx)
    return [d for d in (classify_lspci_line(line) for line in output.splitlines()) if d]


def enumerate_system_profiler(ctx: AdapterContext) -> List[GPUDevice]:
    output = run_command(["system_profiler", "SPDisplaysDataType"], ctx, timeout=10.0)
    devices = []
    for line in output.splitlines():
        line = line.strip()
        if line.startswith("Chipset Model:"):
            model = line[len("Chipset Model:"):].strip()
            devices.append(GPUDevice(model=model, discrete="apple" not in model.lower()))
    return devices


def read_sensor_temperature() -> Optional[float]:
    try:
        import psutil

        temps = psutil.sensors_temperatures()
    except (AttributeError, OSError) as e:
        logger.debug(f"Could not read GPU sensors: {e}")
        return None
    for sensor_name in GPU_SENSORS:
        entries = temps.get(sensor_name)
        if entries:
            return entries[0].current
    return None


def _gpu_fact(ctx: AdapterContext, device: GPUDevice, count: int, nvidia: bool = False) -> Fact:
    value = device.model
    details = {
        "model": device.model,
        "discrete": device.discrete,
        "count": count,
        "identity": {"model": device.model, "discrete": device.discrete, "count": count, "nvidia": nvidia},
    }
    if count > 1:
        value = f"{value} (+{count - 1})"

    if not ctx.config.show_gpu_temp:
        return Fact.ok(FactKind.GPU, value, details=details)

    temp = device.temperature_c
    if temp is None:
        temp = read_sensor_temperature()
    if temp is None:
        return Fact.degraded(FactKind.GPU, value, "temperature unavailable", details=details)
    details["temperature_c"] = temp
    return Fact.ok(FactKind.GPU, f"{value} {temp:.0f}°C", details=details)


def _vendor_devices(ctx: AdapterContext) -> List[GPUDevice]:
    try:
        devices = query_nvml()
        if devices:
            return devices
    except Exception as e:
        logger.debug(f"pynvml detection failed: {e}")

    ctx.check_deadline()
    try:
        return query_nvidia_smi(ctx)
    except SourceError as e:
        logger.debug(f"nvidia-smi detection failed: {e}")
    return []


def _from_cache(ctx: AdapterContext) -> Optional[Fact]:
    """Rebuild the fact from a cached identity; only the temperature is read."""
    hint = ctx.cache_hint
    if not hint.get("model"):
        return None
    device = GPUDevice(model=hint["model"], discrete=bool(hint.get("discrete", True)))
    nvidia = bool(hint.get("nvidia"))
    if nvidia and ctx.config.show_gpu_temp:
        for vendor_device in _vendor_devices(ctx):
            device.temperature_c = vendor_device.temperature_c
            break
    return _gpu_fact(ctx, device, int(hint.get("count", 1)), nvidia=nvidia)


def collect_pci(ctx: AdapterContext) -> Fact:
    """Linux and BSD: NVIDIA query interfaces, then PCI bus enumeration."""
    cached = _from_cache(ctx)
    if cached is not None:
        return cached

    vendor = _vendor_devices(ctx)
    if vendor:
        return _gpu_fact(ctx, vendor[0], len(vendor), nvidia=True)

    devices = enumerate_lspci(ctx)
    device = pick_gpu(devices)
    if device is None:
        raise SourceUnavailable("no display controller found")
    return _gpu_fact(ctx, device, len(devices))


def collect_macos(ctx: AdapterContext) -> Fact:
    cached = _from_cache(ctx)
    if cached is not None:
        return cached

    devices = enumerate_system_profiler(ctx)
    device = pick_gpu(devices)
    if device is None:
        raise SourceUnavailable("no display controller found")
    return _gpu_fact(ctx, device, len(devices))
