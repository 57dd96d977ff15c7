"""Shared pytest fixtures for multibody tests."""

import pytest

from multibody.binder import MultiBodyBinder
from multibody.settings import MultiBodySettings


@pytest.fixture()
def binder() -> MultiBodyBinder:
    """Binder with the default pydantic decoder and validator."""
    return MultiBodyBinder()


@pytest.fixture()
def settings() -> MultiBodySettings:
    """Settings with library defaults, ignoring the environment."""
    return MultiBodySettings(
        default_required=True,
        default_parse_all_fields=True,
    )
