"""
Shared configuration constants for credvault.

Import from here to avoid duplication across the CLI and the backends.
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .access_control import DEFAULT_ACCESS_CONTROL, validate_access_control
from .errors import UnsupportedBackendError

logger = logging.getLogger(__name__)

SERVICE_NAME = "credvault"

# Base paths
CREDVAULT_ROOT = Path("~/.credvault")
DEFAULT_FILE_DIR = str(CREDVAULT_ROOT / "keys") + "/"
DEFAULT_CONFIG_PATH = str(CREDVAULT_ROOT / "backends.json")

# File backend
DEFAULT_KDF_ITERATIONS = 390000

# 1Password backend
DEFAULT_OP_VAULT = "Key Vault"
DEFAULT_OP_TOKEN_ENV = "OP_SERVICE_ACCOUNT_TOKEN"

# Environment variables backing the global flags
ENV_BACKEND = "CREDVAULT_BACKEND"
ENV_CONFIG = "CREDVAULT_CONFIG"
ENV_FILE_DIR = "CREDVAULT_FILE_DIR"
ENV_FILE_PASSPHRASE = "CREDVAULT_FILE_PASSPHRASE"
ENV_OP_VAULT = "CREDVAULT_OP_VAULT"
ENV_OP_TOKEN_ENV = "CREDVAULT_OP_TOKEN_ENV"
ENV_ACCESS_CONTROL = "CREDVAULT_ACCESS_CONTROL"
ENV_ACCESS_CONSTRAINT = "CREDVAULT_ACCESS_CONSTRAINT"

# Default backend configuration if no config file exists
DEFAULT_CONFIG = {
    "backends": {
        "file": {
            "adapter": "file",
            "dir": DEFAULT_FILE_DIR,
        },
        "onepassword": {
            "adapter": "onepassword",
            "vault": DEFAULT_OP_VAULT,
            "service_account_env": DEFAULT_OP_TOKEN_ENV,
        },
    }
}


def load_backend_config(path: Optional[Path] = None) -> Dict:
    """
    Load backend configuration, merged over DEFAULT_CONFIG.

    Each entry names a backend and the adapter implementing it, so the
    same adapter can back several stores:

        {
            "backends": {
                "file": {"dir": "~/secrets/keys"},
                "old-laptop": {"adapter": "file", "dir": "/mnt/backup/keys"},
                "work": {
                    "adapter": "onepassword",
                    "vault": "Work",
                    "service_account_env": "OP_WORK_SERVICE_ACCOUNT_TOKEN"
                }
            }
        }

    Entries without an adapter use their own name as the adapter.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if path is None:
        return config

    path = Path(path).expanduser()
    if not path.exists():
        logger.debug(f"No backend config at {path}, using defaults")
        return config

    try:
        loaded = json.loads(path.read_text())
        for name, options in loaded.get("backends", {}).items():
            backend = config["backends"].setdefault(name, {"adapter": name})
            backend.update(options)
        logger.info(f"Loaded backend config from {path}")
    except (OSError, ValueError, AttributeError) as e:
        logger.error(f"❌ Failed to load backend config {path}: {e}")

    return config


@dataclass
class GlobalConfig:
    """Settings gathered from the global command-line flags."""
    backend: str
    debug: bool = False
    config_path: Optional[str] = None
    file_dir: Optional[str] = None
    op_vault: Optional[str] = None
    op_token_env: Optional[str] = None
    access_control: str = DEFAULT_ACCESS_CONTROL
    access_constraint: str = ""
    password_func: Optional[Callable[[str], str]] = None
    access_control_terms: List[str] = field(default_factory=list)
    backends: Dict[str, Dict] = field(default_factory=dict)

    def __post_init__(self):
        if not self.backends:
            self.backends = load_backend_config(self.config_path)["backends"]

    def adapter(self, name: str) -> str:
        return self.backends.get(name, {}).get("adapter", name)

    def validate(self) -> None:
        """
        Check the access control settings against the selected backend.

        On success the parsed terms are stored in access_control_terms.

        Raises:
            UnsupportedBackendError: If access control is configured for a backend
                that doesn't support it
            AccessControlError: If the access control expression is invalid
        """
        from .secrets.manager import adapter_supports_access_control

        if not adapter_supports_access_control(self.adapter(self.backend)):
            if self.access_constraint or self.access_control != DEFAULT_ACCESS_CONTROL:
                supported = [
                    name for name in self.backends
                    if adapter_supports_access_control(self.adapter(name))
                ]
                raise UnsupportedBackendError(self.backend, supported)

        logger.info(f"Using keyring backend: {self.backend}")
        logger.info(f"Using access control: {self.access_control}")
        if self.access_constraint:
            logger.info(f"Using access constraint: {self.access_constraint}")

        self.access_control_terms = validate_access_control(self.access_control)

    def backend_config(self, name: str) -> Dict:
        """Build the config dict handed to the named backend."""
        options = dict(self.backends.get(name, {}))
        adapter = options.setdefault("adapter", name)

        # Flags override the built-in backends only
        if name == "file" and self.file_dir:
            options["dir"] = self.file_dir
        if name == "onepassword":
            if self.op_vault:
                options["vault"] = self.op_vault
            if self.op_token_env:
                options["service_account_env"] = self.op_token_env

        if adapter == "file" and self.password_func is not None:
            options.setdefault("password_func", self.password_func)

        options["access_control"] = list(self.access_control_terms)
        options["access_constraint"] = self.access_constraint
        return options
