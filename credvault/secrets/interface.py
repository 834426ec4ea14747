"""
Keyring Backend Interface

Defines the abstract interface every keyring backend implements.
A keyring is a flat mapping of string keys to opaque byte payloads;
namespaces (credentials, OIDC tokens, sessions) are layered on top
in namespaces.py.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List


@dataclass
class KeyringItem:
    """A single item stored in a keyring."""
    key: str
    data: bytes
    label: str = ""
    description: str = ""


class KeyringBackend(ABC):
    """
    Abstract base class for keyring backends.

    Implementations store items in a specific place (an encrypted
    directory, a 1Password vault, process memory, ...).
    """

    backend_type: str = "base"

    # Only backends backed by a hardware keychain can honour --access-control
    supports_access_control: bool = False

    def __init__(self, config: dict):
        """
        Initialize the backend.

        Args:
            config: Backend-specific configuration dict
        """
        self.config = config

    @abstractmethod
    def keys(self) -> List[str]:
        """
        List every key in the keyring.

        The order is backend-defined but must be stable for an
        unchanged keyring.

        Raises:
            KeyringError: If the keyring can't be listed
        """

    @abstractmethod
    def get(self, key: str) -> KeyringItem:
        """
        Get an item.

        Raises:
            SecretNotFoundError: If the key doesn't exist
            KeyringError: If the item can't be read
        """

    @abstractmethod
    def set(self, item: KeyringItem) -> None:
        """
        Create or replace an item.

        Raises:
            KeyringError: If the item can't be written
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        """
        Delete an item.

        Raises:
            SecretNotFoundError: If the key doesn't exist
        """

    def exists(self, key: str) -> bool:
        """Check if a key exists."""
        return key in self.keys()

    def close(self) -> None:
        """Release any connection held by the backend."""
