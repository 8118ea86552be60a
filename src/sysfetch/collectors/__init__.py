"""Fact source adapters, one or more per fact kind and platform."""

from .base import Adapter, AdapterContext, guard
from .registry import build_adapter_table

__all__ = ["Adapter", "AdapterContext", "build_adapter_table", "guard"]
