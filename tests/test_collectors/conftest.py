"""Shared fixtures for adapter tests."""

import pytest

from sysfetch.collectors.base import AdapterContext
from sysfetch.config.models import FetchConfig
from sysfetch.hardware.profile import Family, PlatformProfile


@pytest.fixture
def linux_profile():
    return PlatformProfile(
        family=Family.LINUX,
        distro="arch",
        kernel_version="6.8.0-arch1-1",
        pretty_name="Arch Linux",
        sources=frozenset({"procfs", "sysfs"}),
    )


@pytest.fixture
def make_ctx(linux_profile):
    """Build an AdapterContext with optional config overrides."""

    def _make(profile=None, cache_hint=None, deadline=None, **config):
        return AdapterContext(
            profile=profile or linux_profile,
            config=FetchConfig(**config),
            deadline=deadline,
            cache_hint=cache_hint or {},
        )

    return _make
