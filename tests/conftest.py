"""Shared fixtures for the Carrot SDK tests."""

from __future__ import annotations

import pytest

from carrot_core import AccountSecrets
from carrot_core.hashing import random_point


@pytest.fixture
def bob() -> AccountSecrets:
    """Return a fresh recipient account."""
    return AccountSecrets.generate()


@pytest.fixture
def alice() -> AccountSecrets:
    """Return a fresh sender account."""
    return AccountSecrets.generate()


@pytest.fixture
def tx_first_key_image() -> bytes:
    """Return a random first key image."""
    return random_point()
