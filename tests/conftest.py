"""Pytest configuration and shared fixtures."""

from pathlib import Path

import logfire
import pytest

from campus_planner.core.config import Settings


# Keep spans local during tests
logfire.configure(send_to_logfire=False, console=False)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment and the user's home directory."""
    return Settings(
        _env_file=None,
        data_dir=tmp_path / "planner-data",
        seed_source=None,
        logfire_token=None,
        environment="test",
    )
