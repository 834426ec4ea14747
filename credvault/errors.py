"""
credvault errors

Every error the core raises derives from CredVaultError so the CLI can
report it in one place.
"""

from typing import Optional


class CredVaultError(Exception):
    """Base class for credvault errors."""


# =============================================================================
# ACCESS CONTROL
# =============================================================================

class AccessControlError(CredVaultError, ValueError):
    """An access control expression was rejected."""

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


class InvalidSyntaxError(AccessControlError):
    """The expression does not match the access control grammar."""

    def __init__(self, raw: str):
        super().__init__(f"invalid access control setting: '{raw}'", raw)


class DuplicateTermError(AccessControlError):
    """A term appears more than once in the expression."""

    def __init__(self, term: str, raw: str):
        super().__init__(f"repeated access control term: '{term}'", raw)
        self.term = term


class UnsupportedBackendError(CredVaultError, ValueError):
    """Access control settings were given for a backend that can't use them."""

    def __init__(self, backend: str, supported: Optional[list] = None):
        supported_text = ", ".join(f"'{name}'" for name in supported or []) or "none"
        super().__init__(
            f"--access-control is not supported with the backend '{backend}', "
            f"supported backends: {supported_text}"
        )
        self.backend = backend


# =============================================================================
# KEYRING
# =============================================================================

class KeyringError(CredVaultError):
    """A keyring backend failed to read, write or list its items."""


class SecretNotFoundError(KeyringError, KeyError):
    """The requested key does not exist in the keyring."""

    def __init__(self, key: str):
        super().__init__(f"Secret not found: {key}")
        self.key = key

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


# =============================================================================
# COPY
# =============================================================================

class CopyError(CredVaultError):
    """
    A copy between two keyrings stopped early.

    Attributes:
        namespace: Namespace being copied when the failure happened
        key: Key being copied, None if the failure happened while listing
        result: The partial CopyResult, counting what was copied before
    """

    action = "copy"

    def __init__(self, namespace, key: Optional[str] = None, result=None, cause: Optional[BaseException] = None):
        self.namespace = namespace
        self.key = key
        self.result = result
        self.cause = cause

        where = getattr(namespace, "label", str(namespace))
        if key is not None:
            where = f"{where} '{key}'"
        message = f"Failed to {self.action} {where}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class EnumerationFailedError(CopyError):
    """Listing the source keys of a namespace failed."""

    action = "list"


class ReadFailedError(CopyError):
    """Reading a secret from the source keyring failed."""

    action = "read"


class WriteFailedError(CopyError):
    """Writing a secret to the destination keyring failed."""

    action = "write"
