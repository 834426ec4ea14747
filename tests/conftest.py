"""Pytest configuration and shared fixtures."""

import pytest

from credvault.secrets.backends import FileBackend, MemoryBackend


@pytest.fixture
def source():
    return MemoryBackend()


@pytest.fixture
def destination():
    return MemoryBackend()


@pytest.fixture
def file_config(tmp_path):
    """Config for a fast file keyring in a temp directory."""
    return {
        "dir": str(tmp_path / "keys"),
        "password": "correct horse battery staple",
        "kdf_iterations": 1000,
    }


@pytest.fixture
def file_backend(file_config):
    return FileBackend(file_config)

