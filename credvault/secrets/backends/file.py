"""
Encrypted File Keyring Backend

Stores one Fernet-encrypted file per item in a directory. The
encryption key is derived from a passphrase with PBKDF2-HMAC-SHA256
and a random salt kept alongside the items.
"""

import base64
import json
import logging
import os
import string
import tempfile
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, unquote

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..interface import KeyringBackend, KeyringItem
from ...config import DEFAULT_FILE_DIR, DEFAULT_KDF_ITERATIONS
from ...errors import KeyringError, SecretNotFoundError

logger = logging.getLogger(__name__)

SALT_FILE = ".salt"
SALT_BYTES = 16


# Dots and upper case letters are escaped too, so no key can become ".", ".."
# or the salt file, and keys differing only in case stay apart on
# case-insensitive filesystems
_ESCAPED = frozenset(string.ascii_uppercase + ".")


def _filename(key: str) -> str:
    return "".join(
        f"%{ord(char):02X}" if char in _ESCAPED else quote(char, safe="")
        for char in key
    )


class FileBackend(KeyringBackend):
    """
    Passphrase-encrypted directory keyring.

    Config:
        dir: Directory holding the items (default: ~/.credvault/keys/)
        password: Passphrase (optional)
        password_func: Callable taking a prompt and returning the passphrase,
                       used when no password is configured
        kdf_iterations: PBKDF2 iterations (default: 390000)
    """

    backend_type = "file"

    def __init__(self, config: dict):
        super().__init__(config)
        self.dir = Path(os.path.expanduser(config.get("dir") or DEFAULT_FILE_DIR))
        self.iterations = int(config.get("kdf_iterations", DEFAULT_KDF_ITERATIONS))
        self._fernet: Optional[Fernet] = None

    def _passphrase(self) -> str:
        password = self.config.get("password")
        if password is not None:
            return password

        password_func = self.config.get("password_func")
        if password_func is None:
            raise KeyringError(f"No passphrase available for file keyring {self.dir}")
        return password_func("Enter passphrase to unlock " + str(self.dir))

    def _salt(self, create: bool) -> Optional[bytes]:
        salt_path = self.dir / SALT_FILE
        if salt_path.exists():
            return salt_path.read_bytes()
        if not create:
            return None

        salt = os.urandom(SALT_BYTES)
        self.dir.mkdir(parents=True, exist_ok=True, mode=0o700)
        salt_path.write_bytes(salt)
        logger.debug(f"Created new salt for file keyring {self.dir}")
        return salt

    def _cipher(self, create: bool = False) -> Fernet:
        """Derive the Fernet cipher, once per backend instance."""
        if self._fernet is not None:
            return self._fernet

        try:
            salt = self._salt(create)
        except OSError as e:
            raise KeyringError(f"Failed to read salt in {self.dir}: {e}") from e
        if salt is None:
            raise KeyringError(f"File keyring {self.dir} has not been initialised")

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=self.iterations,
        )
        key = base64.urlsafe_b64encode(kdf.derive(self._passphrase().encode()))
        self._fernet = Fernet(key)
        return self._fernet

    def keys(self) -> List[str]:
        if not self.dir.exists():
            return []

        try:
            return sorted(
                unquote(entry.name) for entry in self.dir.iterdir()
                if entry.is_file() and not entry.name.startswith(".")
            )
        except OSError as e:
            raise KeyringError(f"Failed to list {self.dir}: {e}") from e

    def get(self, key: str) -> KeyringItem:
        path = self.dir / _filename(key)
        if not path.exists():
            raise SecretNotFoundError(key)

        try:
            token = path.read_bytes()
        except OSError as e:
            raise KeyringError(f"Failed to read {path}: {e}") from e

        try:
            payload = json.loads(self._cipher().decrypt(token))
        except InvalidToken:
            raise KeyringError(f"Failed to decrypt '{key}': wrong passphrase or corrupted file") from None

        return KeyringItem(
            key=payload["key"],
            data=base64.b64decode(payload["data"]),
            label=payload.get("label", ""),
            description=payload.get("description", ""),
        )

    def set(self, item: KeyringItem) -> None:
        cipher = self._cipher(create=True)
        payload = {
            "key": item.key,
            "data": base64.b64encode(item.data).decode("ascii"),
            "label": item.label,
            "description": item.description,
        }
        path = self.dir / _filename(item.key)
        token = cipher.encrypt(json.dumps(payload).encode())

        # Write beside the target and rename over it, so a failed write
        # leaves the previous item in place
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=self.dir)
        except OSError as e:
            raise KeyringError(f"Failed to write {path}: {e}") from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(token)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise KeyringError(f"Failed to write {path}: {e}") from e

    def remove(self, key: str) -> None:
        path = self.dir / _filename(key)
        if not path.exists():
            raise SecretNotFoundError(key)

        try:
            path.unlink()
        except OSError as e:
            raise KeyringError(f"Failed to remove {path}: {e}") from e

    def exists(self, key: str) -> bool:
        return (self.dir / _filename(key)).exists()
