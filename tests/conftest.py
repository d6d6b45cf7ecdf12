"""Pytest configuration and shared fixtures for klaw-strand tests."""

from __future__ import annotations

import pytest
from klaw_strand import Runtime, VirtualHost


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio-marked tests on asyncio only."""
    return 'asyncio'


@pytest.fixture
def host() -> VirtualHost:
    """Fresh virtual clock starting at t=0."""
    return VirtualHost()


@pytest.fixture
def runtime(host: VirtualHost) -> Runtime:
    """Runtime driven by the `host` fixture."""
    return Runtime(host, name='test-runtime')

