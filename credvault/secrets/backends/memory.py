"""
In-memory Keyring Backend

Keeps items in a dict for the lifetime of the process. Used when
embedding credvault as a library and as the reference backend in tests.
"""

from typing import Dict, List

from ..interface import KeyringBackend, KeyringItem
from ...errors import SecretNotFoundError


class MemoryBackend(KeyringBackend):
    """
    Dict-backed keyring.

    Keys are listed in insertion order.

    Config:
        items: Optional {key: bytes} to pre-populate the keyring
    """

    backend_type = "memory"

    def __init__(self, config: dict = None):
        super().__init__(config or {})
        self._items: Dict[str, KeyringItem] = {}
        for key, data in self.config.get("items", {}).items():
            self._items[key] = KeyringItem(key=key, data=bytes(data))

    def keys(self) -> List[str]:
        return list(self._items)

    def get(self, key: str) -> KeyringItem:
        try:
            item = self._items[key]
        except KeyError:
            raise SecretNotFoundError(key) from None
        return KeyringItem(key=item.key, data=item.data, label=item.label, description=item.description)

    def set(self, item: KeyringItem) -> None:
        self._items[item.key] = KeyringItem(
            key=item.key, data=bytes(item.data), label=item.label, description=item.description
        )

    def remove(self, key: str) -> None:
        if key not in self._items:
            raise SecretNotFoundError(key)
        del self._items[key]

    def exists(self, key: str) -> bool:
        return key in self._items
