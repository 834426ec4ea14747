"""
Keyring Manager

Resolves backend names to adapter instances. A backend name is either a
built-in adapter ("file", "onepassword") or an entry from the backend
config file pointing at one.

Usage:
    from credvault.secrets import KeyringManager

    manager = KeyringManager()
    keyring = manager.open("file")

    # Named backends from the config file
    manager = KeyringManager(load_backend_config(path)["backends"])
    keyring = manager.open("old-laptop")
"""

import logging
from typing import Dict, List, Optional, Type

from .backends import BACKENDS
from .interface import KeyringBackend
from ..config import DEFAULT_CONFIG

logger = logging.getLogger(__name__)


def available_backends(backends: Optional[Dict[str, Dict]] = None) -> List[str]:
    """
    Backend names selectable from the command line, default first.

    Args:
        backends: Backend config entries (default: the built-in backends)
    """
    if backends is None:
        backends = DEFAULT_CONFIG["backends"]
    return [
        name for name, options in backends.items()
        if options.get("adapter", name) in BACKENDS
    ]


def get_backend_class(adapter: str) -> Type[KeyringBackend]:
    try:
        return BACKENDS[adapter]
    except KeyError:
        raise ValueError(f"Unknown backend adapter type: {adapter}") from None


def adapter_supports_access_control(adapter: str) -> bool:
    backend_class = BACKENDS.get(adapter)
    return backend_class is not None and backend_class.supports_access_control


class KeyringManager:
    """
    Creates and caches keyring backend instances.

    Backends are created lazily on first open() and reused afterwards,
    so a passphrase is asked for at most once per backend.
    """

    def __init__(self, backends: Optional[Dict[str, Dict]] = None):
        self._config: Dict[str, Dict] = dict(DEFAULT_CONFIG["backends"] if backends is None else backends)
        self._backends: Dict[str, KeyringBackend] = {}

    def open(self, name: str, config: Optional[dict] = None) -> KeyringBackend:
        """
        Get or create a backend instance.

        Args:
            name: Backend name
            config: Backend options, overriding the configured entry (first open only)

        Returns:
            The backend instance
        """
        if name in self._backends:
            return self._backends[name]

        backend_config = config if config is not None else self._config.get(name)
        if backend_config is None:
            raise KeyError(f"Unknown keyring backend: {name}")

        backend_class = get_backend_class(backend_config.get("adapter", name))
        backend = backend_class(backend_config)
        self._backends[name] = backend
        logger.debug(f"Opened keyring backend {name} ({backend_class.backend_type})")
        return backend

    def list_backends(self) -> List[str]:
        return available_backends(self._config)

    def close(self) -> None:
        """Close every opened backend and forget it."""
        for name, backend in self._backends.items():
            backend.close()
            logger.debug(f"Closed keyring backend {name}")
        self._backends.clear()
