"""Fake service and policy sources for pipeline and CLI tests (no live network)."""

from .sources import (
    FakePolicySource,
    FakeServiceSource,
    make_service,
)

__all__ = [
    "FakePolicySource",
    "FakeServiceSource",
    "make_service",
]
