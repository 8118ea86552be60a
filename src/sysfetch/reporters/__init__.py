"""Terminal rendering of a snapshot."""

from .logos import ArtBlock, select_art
from .renderer import render
from .theme import Theme

__all__ = ["ArtBlock", "Theme", "render", "select_art"]
