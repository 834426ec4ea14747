"""
Secret Namespaces

Credentials, OIDC tokens and sessions share one flat keyring and are
told apart by key prefix:

    <name>           credential
    oidc:<name>      OIDC token
    session:<name>   session

Each namespace view exposes keys()/get()/set() over logical names,
adding and stripping the prefix.
"""

from enum import Enum
from typing import List

from .interface import KeyringBackend, KeyringItem

OIDC_TOKEN_PREFIX = "oidc:"
SESSION_PREFIX = "session:"


class SecretNamespace(Enum):
    """The kinds of secret credvault manages, in copy order."""

    CREDENTIAL = "credential"
    OIDC_TOKEN = "oidc_token"
    SESSION = "session"

    @property
    def label(self) -> str:
        return _LABELS[self][0]

    @property
    def plural(self) -> str:
        return _LABELS[self][1]


_LABELS = {
    SecretNamespace.CREDENTIAL: ("credential", "credentials"),
    SecretNamespace.OIDC_TOKEN: ("OIDC token", "OIDC tokens"),
    SecretNamespace.SESSION: ("session", "sessions"),
}


class NamespacedKeyring:
    """A view over the items of one namespace in a keyring."""

    namespace: SecretNamespace
    prefix: str = ""

    def __init__(self, keyring: KeyringBackend):
        self.keyring = keyring

    def owns(self, raw_key: str) -> bool:
        return raw_key.startswith(self.prefix)

    def keys(self) -> List[str]:
        return [
            raw_key[len(self.prefix):]
            for raw_key in self.keyring.keys()
            if self.owns(raw_key)
        ]

    def get(self, name: str) -> bytes:
        return self.keyring.get(self.prefix + name).data

    def set(self, name: str, data: bytes) -> None:
        self.keyring.set(KeyringItem(
            key=self.prefix + name,
            data=data,
            label=f"credvault {self.namespace.label} {name}",
        ))

    def remove(self, name: str) -> None:
        self.keyring.remove(self.prefix + name)


class CredentialKeyring(NamespacedKeyring):
    """Long-lived credentials, stored under their bare name."""

    namespace = SecretNamespace.CREDENTIAL

    def owns(self, raw_key: str) -> bool:
        return not raw_key.startswith((OIDC_TOKEN_PREFIX, SESSION_PREFIX))


class OIDCTokenKeyring(NamespacedKeyring):
    namespace = SecretNamespace.OIDC_TOKEN
    prefix = OIDC_TOKEN_PREFIX


class SessionKeyring(NamespacedKeyring):
    namespace = SecretNamespace.SESSION
    prefix = SESSION_PREFIX


NAMESPACE_KEYRINGS = {
    SecretNamespace.CREDENTIAL: CredentialKeyring,
    SecretNamespace.OIDC_TOKEN: OIDCTokenKeyring,
    SecretNamespace.SESSION: SessionKeyring,
}


def namespaced(keyring: KeyringBackend, namespace: SecretNamespace) -> NamespacedKeyring:
    """Wrap a keyring in the view for one namespace."""
    return NAMESPACE_KEYRINGS[namespace](keyring)
