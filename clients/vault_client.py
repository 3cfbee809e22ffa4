"""
Connection secrets for the invoicing service, read from HashiCorp Vault.

AppRole login with credentials from the environment. Only two secrets are
needed: the Postgres URL (invoices, counters, audit) and the Valkey URL
(counters, when INVOICING_COUNTER_STORE=valkey). Both live under the
'invoicing/' KV v2 mount path and are cached for the process lifetime.
"""

import logging
import os

import hvac
from hvac.exceptions import Forbidden, InvalidPath, Unauthorized

logger = logging.getLogger(__name__)

_SECRET_PREFIX = "invoicing"

_vault_client_instance: "VaultClient | None" = None
_secret_cache: dict[str, str] = {}


class VaultError(Exception):
    """Vault is misconfigured or refused us. The service cannot start without it."""


def _require_env(*names: str) -> None:
    missing = [name for name in names if not os.getenv(name)]
    if missing:
        raise VaultError(f"{' and '.join(missing)} environment variable(s) required")


class VaultClient:
    """AppRole-authenticated KV v2 reader scoped to invoicing/."""

    def __init__(self, vault_addr: str | None = None, vault_namespace: str | None = None):
        if not vault_addr:
            _require_env("VAULT_ADDR")
        _require_env("VAULT_ROLE_ID", "VAULT_SECRET_ID")

        self.vault_addr = vault_addr or os.environ["VAULT_ADDR"]
        namespace = vault_namespace or os.getenv("VAULT_NAMESPACE")

        kwargs = {"url": self.vault_addr}
        if namespace:
            kwargs["namespace"] = namespace
        self.client = hvac.Client(**kwargs)

        self._login(os.environ["VAULT_ROLE_ID"], os.environ["VAULT_SECRET_ID"])
        logger.info("Vault client ready: %s", self.vault_addr)

    def _login(self, role_id: str, secret_id: str) -> None:
        try:
            response = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
        except Exception as e:
            logger.error("AppRole authentication failed: %s", e)
            raise VaultError(f"AppRole authentication failed: {e}") from e

        self.client.token = response["auth"]["client_token"]
        if not self.client.is_authenticated():
            raise VaultError("Vault authentication failed")

    def get_secret(self, path: str, field: str) -> str:
        """
        One field of invoicing/<path>.

        Raises:
            PermissionError: path missing or not readable with our policy
            KeyError: the secret exists but has no such field
        """
        full_path = f"{_SECRET_PREFIX}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath:
            raise PermissionError(f"Secret path '{full_path}' not found in Vault")
        except (Unauthorized, Forbidden) as e:
            raise PermissionError(f"Access denied to secret '{full_path}': {e}")

        data = response["data"]["data"]
        try:
            return data[field]
        except KeyError:
            raise KeyError(
                f"Field '{field}' not found in secret '{full_path}'. "
                f"Available: {', '.join(sorted(data))}"
            ) from None


def _cached_secret(path: str, field: str) -> str:
    global _vault_client_instance
    key = f"{path}/{field}"
    if key not in _secret_cache:
        if _vault_client_instance is None:
            _vault_client_instance = VaultClient()
        _secret_cache[key] = _vault_client_instance.get_secret(path, field)
    return _secret_cache[key]


def get_database_url() -> str:
    """Postgres DSN for invoices, counters and the audit log."""
    return _cached_secret("database", "url")


def get_valkey_url() -> str:
    """Valkey URL for sequence counters."""
    return _cached_secret("valkey", "url")
