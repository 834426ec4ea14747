"""
Keyring Copy

Copies credentials, OIDC tokens and sessions from one keyring to another.

Namespaces are copied in a fixed order and keys in the order the source
lists them. The first failure stops the copy; whatever was written to the
destination before it stays there.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from .errors import CopyError, EnumerationFailedError, ReadFailedError, WriteFailedError
from .secrets.interface import KeyringBackend
from .secrets.namespaces import SecretNamespace, namespaced

logger = logging.getLogger(__name__)

COPY_ORDER = (
    SecretNamespace.CREDENTIAL,
    SecretNamespace.OIDC_TOKEN,
    SecretNamespace.SESSION,
)


@dataclass
class CopyFailure:
    """Where a copy stopped and why."""
    namespace: SecretNamespace
    key: Optional[str]
    error: BaseException


@dataclass
class CopyResult:
    """Items copied per namespace, and the failure that stopped the copy, if any."""
    copied: Dict[SecretNamespace, int] = field(
        default_factory=lambda: {namespace: 0 for namespace in COPY_ORDER}
    )
    failure: Optional[CopyFailure] = None

    @property
    def total(self) -> int:
        return sum(self.copied.values())

    def summary(self) -> str:
        counts = [f"{self.copied[namespace]} {namespace.plural}" for namespace in COPY_ORDER]
        return f"Copied {counts[0]}, {counts[1]}, and {counts[2]}."


def _fail(error_class, result: CopyResult, namespace: SecretNamespace, key: Optional[str], cause: Exception) -> CopyError:
    result.failure = CopyFailure(namespace=namespace, key=key, error=cause)
    return error_class(namespace, key=key, result=result, cause=cause)


def copy_secrets(
    source: KeyringBackend,
    destination: KeyringBackend,
    log: Optional[logging.Logger] = None,
) -> CopyResult:
    """
    Copy every secret from source to destination.

    The source keyring is only read from.

    Args:
        source: Keyring to copy from
        destination: Keyring to copy to
        log: Logger for progress messages (default: this module's logger)

    Returns:
        CopyResult with the number of items copied per namespace

    Raises:
        EnumerationFailedError: If a source namespace can't be listed
        ReadFailedError: If a source item can't be read
        WriteFailedError: If an item can't be written to the destination

        Each carries the partial CopyResult as .result.
    """
    log = log or logger
    result = CopyResult()

    for namespace in COPY_ORDER:
        src = namespaced(source, namespace)
        dest = namespaced(destination, namespace)

        try:
            names = src.keys()
        except Exception as e:
            raise _fail(EnumerationFailedError, result, namespace, None, e) from e

        log.info(f"Found {len(names)} {namespace.plural} to copy")

        for name in names:
            try:
                data = src.get(name)
            except Exception as e:
                raise _fail(ReadFailedError, result, namespace, name, e) from e

            log.info(f"Copying {namespace.label} {name}")

            try:
                dest.set(name, data)
            except Exception as e:
                raise _fail(WriteFailedError, result, namespace, name, e) from e

            result.copied[namespace] += 1

    return result
