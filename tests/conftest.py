"""Shared test fixtures for the document service test suite."""

from __future__ import annotations

import pytest


@pytest.fixture
def test_tenant_id() -> int:
    return 7


@pytest.fixture
def other_tenant_id() -> int:
    return 8


@pytest.fixture
def system_user() -> str:
    return "InboxProcessor"
