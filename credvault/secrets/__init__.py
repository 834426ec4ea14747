"""
Keyring Module

Pluggable storage for credentials, OIDC tokens and sessions.

Usage:
    from credvault.secrets import KeyringManager, CredentialKeyring

    keyring = KeyringManager().open("file", {"dir": "~/.credvault/keys/"})
    credentials = CredentialKeyring(keyring)
    credentials.set("work", b'{"AccessKeyId": "..."}')
"""

from .interface import KeyringBackend, KeyringItem
from .manager import KeyringManager, adapter_supports_access_control, available_backends, get_backend_class
from .namespaces import (
    CredentialKeyring,
    NamespacedKeyring,
    OIDCTokenKeyring,
    SecretNamespace,
    SessionKeyring,
    namespaced,
)

__all__ = [
    "KeyringBackend",
    "KeyringItem",
    "KeyringManager",
    "adapter_supports_access_control",
    "available_backends",
    "get_backend_class",
    "SecretNamespace",
    "NamespacedKeyring",
    "CredentialKeyring",
    "OIDCTokenKeyring",
    "SessionKeyring",
    "namespaced",
]
