"""Facts and snapshots produced by a collection run."""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple


class FactKind(str, Enum):
    """Closed set of facts the collectors know how to produce."""

    HOSTNAME = "hostname"
    OS = "os"
    KERNEL = "kernel"
    CPU = "cpu"
    MEMORY = "memory"
    UPTIME = "uptime"
    BOOT_TIME = "boot_time"
    GPU = "gpu"
    BOOTLOADER = "bootloader"
    DISK = "disk"
    NETWORK = "network"
    BATTERY = "battery"
    DESKTOP_ENV = "desktop_env"
    WINDOW_MANAGER = "window_manager"
    PACKAGES = "packages"
    SHELL = "shell"


DEFAULT_LABELS: Dict[FactKind, str] = {
    FactKind.HOSTNAME: "Host",
    FactKind.OS: "OS",
    FactKind.KERNEL: "Kernel",
    FactKind.CPU: "CPU",
    FactKind.MEMORY: "Memory",
    FactKind.UPTIME: "Uptime",
    FactKind.BOOT_TIME: "Boot Time",
    FactKind.GPU: "GPU",
    FactKind.BOOTLOADER: "Bootloader",
    FactKind.DISK: "Disk",
    FactKind.NETWORK: "Network",
    FactKind.BATTERY: "Battery",
    FactKind.DESKTOP_ENV: "DE",
    FactKind.WINDOW_MANAGER: "WM",
    FactKind.PACKAGES: "Packages",
    FactKind.SHELL: "Shell",
}


class FactStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Fact:
    """A single labeled piece of host information.

    ``reason`` explains a DEGRADED or UNAVAILABLE status. ``ratio`` drives
    the progress bar and is only meaningful for facts that have a value.
    ``details`` is copied into a read-only mapping on construction.
    """

    kind: FactKind
    label: str
    value: str = ""
    status: FactStatus = FactStatus.OK
    reason: str = ""
    ratio: Optional[float] = None
    details: Mapping[str, Any] = field(default_factory=dict)
    cached: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))
        if self.status is FactStatus.UNAVAILABLE:
            object.__setattr__(self, "value", "")
            object.__setattr__(self, "ratio", None)
        elif self.ratio is not None:
            object.__setattr__(self, "ratio", min(1.0, max(0.0, float(self.ratio))))

    @classmethod
    def ok(cls, kind: FactKind, value: str, label: Optional[str] = None, **kwargs: Any) -> "Fact":
        return cls(kind=kind, label=label or DEFAULT_LABELS[kind], value=value, **kwargs)

    @classmethod
    def degraded(
        cls, kind: FactKind, value: str, reason: str, label: Optional[str] = None, **kwargs: Any
    ) -> "Fact":
        return cls(
            kind=kind,
            label=label or DEFAULT_LABELS[kind],
            value=value,
            status=FactStatus.DEGRADED,
            reason=reason,
            **kwargs,
        )

    @classmethod
    def unavailable(cls, kind: FactKind, reason: str, label: Optional[str] = None) -> "Fact":
        return cls(
            kind=kind,
            label=label or DEFAULT_LABELS[kind],
            status=FactStatus.UNAVAILABLE,
            reason=reason,
        )

    @property
    def visible(self) -> bool:
        return self.status is not FactStatus.UNAVAILABLE

    def as_cached(self) -> "Fact":
        return replace(self, cached=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "label": self.label,
            "value": self.value,
            "status": self.status.value,
            "reason": self.reason,
            "ratio": self.ratio,
            "details": dict(self.details),
            "cached": self.cached,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Fact":
        return cls(
            kind=FactKind(data["kind"]),
            label=data["label"],
            value=data.get("value", ""),
            status=FactStatus(data.get("status", FactStatus.OK.value)),
            reason=data.get("reason", ""),
            ratio=data.get("ratio"),
            details=dict(data.get("details") or {}),
            cached=bool(data.get("cached", False)),
        )


@dataclass(frozen=True)
class Snapshot:
    """All facts from one run, in display order."""

    facts: Tuple[Fact, ...] = ()
    elapsed_s: float = 0.0
    deadline_hit: bool = False

    def __iter__(self) -> Iterator[Fact]:
        return iter(self.facts)

    def __len__(self) -> int:
        return len(self.facts)

    @property
    def visible_facts(self) -> Tuple[Fact, ...]:
        return tuple(f for f in self.facts if f.visible)

    def get(self, kind: FactKind) -> Optional[Fact]:
        """Return the first fact of the given kind, if any."""
        for fact in self.facts:
            if fact.kind is kind:
                return fact
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "facts": [f.to_dict() for f in self.facts],
            "elapsed_s": round(self.elapsed_s, 3),
            "deadline_hit": self.deadline_hit,
        }
