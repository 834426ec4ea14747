"""
Keyring Backends

Available backends for secret storage.
"""

from .file import FileBackend
from .memory import MemoryBackend
from .onepassword import OnePasswordBackend

# Registry of backends selectable from the command line, default first
BACKENDS = {
    "file": FileBackend,
    "onepassword": OnePasswordBackend,
}

__all__ = ["BACKENDS", "FileBackend", "MemoryBackend", "OnePasswordBackend"]
