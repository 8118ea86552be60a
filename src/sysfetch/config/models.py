"""Pydantic models for sysfetch configuration."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from rich.errors import StyleSyntaxError
from rich.style import Style

from sysfetch.facts.models import FactKind

DEFAULT_ORDER: list[FactKind] = [
    FactKind.HOSTNAME,
    FactKind.OS,
    FactKind.KERNEL,
    FactKind.UPTIME,
    FactKind.BOOT_TIME,
    FactKind.PACKAGES,
    FactKind.SHELL,
    FactKind.DESKTOP_ENV,
    FactKind.WINDOW_MANAGER,
    FactKind.CPU,
    FactKind.GPU,
    FactKind.MEMORY,
    FactKind.DISK,
    FactKind.NETWORK,
    FactKind.BATTERY,
    FactKind.BOOTLOADER,
]

# Seconds. Kinds missing from the mapping are never cached. OS and SHELL
# come from the platform profile and the environment, which are read every run.
DEFAULT_TTLS: dict[FactKind, float] = {
    FactKind.CPU: 86400.0,
    FactKind.GPU: 86400.0,
    FactKind.BOOTLOADER: 86400.0,
    FactKind.PACKAGES: 900.0,
}


class ThemeConfig(BaseModel):
    """Rich style strings per semantic color role."""

    model_config = ConfigDict(frozen=True)

    accent: str = "bold blue"
    label: str = "bold green"
    value: str = ""
    bar_filled: str = "green"
    bar_empty: str = "bright_black"
    degraded: str = "yellow"

    @field_validator("*")
    @classmethod
    def _parse_style(cls, v: str) -> str:
        try:
            Style.parse(v or "none")
        except StyleSyntaxError as e:
            raise ValueError(str(e)) from e
        return v


class CacheConfig(BaseModel):
    """Single-run result cache configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    path: Path | None = None  # None = $XDG_CACHE_HOME/sysfetch/<host>.json
    ttl_s: dict[FactKind, float] = Field(default_factory=lambda: dict(DEFAULT_TTLS))

    def is_eligible(self, kind: FactKind) -> bool:
        return self.ttl_s.get(kind, 0.0) > 0


class FetchConfig(BaseModel):
    """Process-wide settings, read once at startup and passed explicitly."""

    model_config = ConfigDict(frozen=True)

    use_color: bool = True
    show_gpu: bool = True
    show_bootloader: bool = True
    show_battery: bool = True
    show_cpu_temp: bool = False
    show_gpu_temp: bool = False
    show_disks_detailed: bool = False
    show_os_icon: bool = False
    show_shell: bool = True
    progressive_display: bool = True

    order: list[FactKind] = Field(default_factory=lambda: list(DEFAULT_ORDER))
    deadline_s: float = Field(default=3.0, gt=0)
    adapter_timeout_s: float = Field(default=2.5, gt=0)
    max_workers: int = Field(default=8, ge=1)

    bar_width: int = Field(default=18, ge=1)
    gutter: int = Field(default=3, ge=0)
    delimiter: str = ": "
    width: int | None = Field(default=None, ge=1)
    valign: Literal["top", "center", "bottom"] = "top"
    logo: str | None = None
    logo_dir: Path | None = None

    theme: ThemeConfig = Field(default_factory=ThemeConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    def enabled_kinds(self) -> list[FactKind]:
        """Display order with toggled-off kinds removed."""
        disabled = set()
        if not self.show_gpu:
            disabled.add(FactKind.GPU)
        if not self.show_bootloader:
            disabled.add(FactKind.BOOTLOADER)
        if not self.show_battery:
            disabled.add(FactKind.BATTERY)
        if not self.show_shell:
            disabled.add(FactKind.SHELL)

        kinds: list[FactKind] = []
        for kind in self.order:
            if kind not in disabled and kind not in kinds:
                kinds.append(kind)
        return kinds
