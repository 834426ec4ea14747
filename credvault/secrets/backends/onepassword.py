"""
1Password Keyring Backend

Implements KeyringBackend for a 1Password vault using the official SDK.
Each keyring item is a 1Password item titled with the key; the payload
lives base64-encoded in a concealed "credential" field.
"""

import asyncio
import base64
import binascii
import logging
import os
from typing import Dict, List, Optional

from ..interface import KeyringBackend, KeyringItem
from ...config import DEFAULT_OP_TOKEN_ENV, DEFAULT_OP_VAULT
from ...errors import KeyringError, SecretNotFoundError

logger = logging.getLogger(__name__)

PAYLOAD_FIELD = "credential"


class OnePasswordBackend(KeyringBackend):
    """
    1Password keyring backend.

    The SDK is async; calls are driven on a private event loop so this
    backend stays synchronous like every other keyring. The vault is
    listed once per keys() call and the title to id map is reused by
    get(), set() and remove(), so items added to the vault by someone
    else after that are not seen until the next keys().

    Config:
        vault: Vault name (default: "Key Vault")
        service_account_env: Environment variable name for service account token
                            (default: "OP_SERVICE_ACCOUNT_TOKEN")
    """

    backend_type = "onepassword"

    def __init__(self, config: dict):
        super().__init__(config)
        self.vault = config.get("vault") or DEFAULT_OP_VAULT
        self.service_account_env = config.get("service_account_env") or DEFAULT_OP_TOKEN_ENV
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._client = None
        self._vault_id = None
        self._item_ids: Optional[Dict[str, str]] = None

    def _run(self, coro):
        if self._loop is None:
            self._loop = asyncio.new_event_loop()
        return self._loop.run_until_complete(coro)

    async def _connect(self) -> None:
        token = os.getenv(self.service_account_env)
        if not token:
            raise KeyringError(f"Environment variable {self.service_account_env} not set")

        from onepassword.client import Client

        self._client = await Client.authenticate(
            auth=token,
            integration_name="credvault",
            integration_version="v1.0.0"
        )

        # Cache vault ID
        vaults = await self._client.vaults.list()
        for v in vaults:
            if v.title.lower() == self.vault.lower():
                self._vault_id = v.id
                break

        if not self._vault_id:
            raise KeyringError(f"Vault '{self.vault}' not found")

        logger.info(f"✅ Connected to 1Password vault: {self.vault}")

    def _ensure_connected(self) -> None:
        """Ensure we're connected, auto-connect if not."""
        if self._client is not None:
            return
        try:
            self._run(self._connect())
        except KeyringError:
            raise
        except Exception as e:
            raise KeyringError(f"Failed to connect to 1Password: {e}") from e

    def close(self) -> None:
        """Drop the client and close the event loop."""
        self._client = None
        self._vault_id = None
        self._item_ids = None
        if self._loop is not None:
            self._loop.close()
            self._loop = None

    async def _overviews(self):
        return await self._client.items.list(self._vault_id)

    def _index(self, refresh: bool = False) -> Dict[str, str]:
        """
        Title to item id map for the vault, listed once and then kept
        up to date by set() and remove().
        """
        if self._item_ids is None or refresh:
            item_ids: Dict[str, str] = {}
            for overview in self._run(self._overviews()):
                # Titles aren't unique in 1Password; the first item wins
                item_ids.setdefault(overview.title, overview.id)
            self._item_ids = item_ids
        return self._item_ids

    def _find_item_id(self, key: str) -> Optional[str]:
        return self._index().get(key)

    def keys(self) -> List[str]:
        self._ensure_connected()

        try:
            item_ids = self._index(refresh=True)
        except Exception as e:
            raise KeyringError(f"Failed to list items in {self.vault}: {e}") from e

        return list(item_ids)

    def get(self, key: str) -> KeyringItem:
        self._ensure_connected()

        try:
            item_id = self._find_item_id(key)
            if item_id is None:
                raise SecretNotFoundError(key)
            item = self._run(self._client.items.get(self._vault_id, item_id))
        except KeyringError:
            raise
        except Exception as e:
            raise KeyringError(f"Failed to read {key} from {self.vault}: {e}") from e

        for field in item.fields:
            if field.id == PAYLOAD_FIELD:
                try:
                    data = base64.b64decode(field.value, validate=True)
                except (binascii.Error, TypeError) as e:
                    raise KeyringError(
                        f"Item '{key}' in {self.vault} has a {PAYLOAD_FIELD} field that is not base64: {e}"
                    ) from e
                return KeyringItem(
                    key=key,
                    data=data,
                    label=item.title,
                    description=item.notes or "",
                )

        raise KeyringError(f"Item '{key}' in {self.vault} has no {PAYLOAD_FIELD} field")

    def set(self, item: KeyringItem) -> None:
        self._ensure_connected()

        value = base64.b64encode(item.data).decode("ascii")
        try:
            item_id = self._find_item_id(item.key)
            if item_id is None:
                self._create(item, value)
            else:
                self._update(item_id, item, value)
        except KeyringError:
            raise
        except Exception as e:
            raise KeyringError(f"Failed to write {item.key} to {self.vault}: {e}") from e

    def _create(self, item: KeyringItem, value: str) -> None:
        from onepassword.types import ItemCreateParams, ItemField, ItemFieldType, ItemCategory

        params = ItemCreateParams(
            title=item.key,
            category=ItemCategory.APICREDENTIALS,
            vault_id=self._vault_id,
            fields=[
                ItemField(
                    id=PAYLOAD_FIELD,
                    title=PAYLOAD_FIELD,
                    value=value,
                    field_type=ItemFieldType.CONCEALED
                )
            ],
            notes=item.description or None
        )
        created = self._run(self._client.items.create(params))
        self._index()[item.key] = created.id

    def _update(self, item_id: str, item: KeyringItem, value: str) -> None:
        existing = self._run(self._client.items.get(self._vault_id, item_id))
        for field in existing.fields:
            if field.id == PAYLOAD_FIELD:
                field.value = value
                break
        else:
            raise KeyringError(f"Item '{item.key}' in {self.vault} has no {PAYLOAD_FIELD} field")

        if item.description:
            existing.notes = item.description
        self._run(self._client.items.put(existing))

    def remove(self, key: str) -> None:
        self._ensure_connected()

        try:
            item_id = self._find_item_id(key)
            if item_id is None:
                raise SecretNotFoundError(key)
            self._run(self._client.items.delete(self._vault_id, item_id))
        except KeyringError:
            raise
        except Exception as e:
            raise KeyringError(f"Failed to delete {key} from {self.vault}: {e}") from e

        self._item_ids.pop(key, None)
