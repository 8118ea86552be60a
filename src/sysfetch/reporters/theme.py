"""Color roles for the terminal report."""

from dataclasses import dataclass
from typing import Optional

from rich.style import Style

from sysfetch.config.models import ThemeConfig


@dataclass(frozen=True)
class Theme:
    """Rich styles per semantic role. ``enabled=False`` means plain text."""

    accent: Style
    label: Style
    value: Style
    bar_filled: Style
    bar_empty: Style
    degraded: Style
    enabled: bool = True

    @classmethod
    def from_config(cls, config: Optional[ThemeConfig] = None, enabled: bool = True) -> "Theme":
        config = config or ThemeConfig()
        return cls(
            accent=Style.parse(config.accent or "none"),
            label=Style.parse(config.label or "none"),
            value=Style.parse(config.value or "none"),
            bar_filled=Style.parse(config.bar_filled or "none"),
            bar_empty=Style.parse(config.bar_empty or "none"),
            degraded=Style.parse(config.degraded or "none"),
            enabled=enabled,
        )

    @classmethod
    def plain(cls) -> "Theme":
        return cls.from_config(enabled=False)
