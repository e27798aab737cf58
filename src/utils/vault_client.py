"""
Read MySQL connection settings from HashiCorp Vault's KV v2 engine.

Secrets live at ``<mount>/data/database/mysql_source`` and
``<mount>/data/database/mysql_destination``. Each holds either a ready
``url`` or the discrete fields host, database, username and password
(port optional).
"""

import logging
import os
import re
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DATABASE_ROLES = ("mysql_source", "mysql_destination")
DISCRETE_FIELDS = ("host", "database", "username", "password")
DEFAULT_MYSQL_PORT = 3306

# Status codes /sys/health returns for an unsealed, serving node
HEALTHY_STATUS_CODES = frozenset({200, 429, 472, 473})

_SECRET_PATH = re.compile(r"[A-Za-z0-9_-]+(/[A-Za-z0-9_-]+)*")


def _check_secret_path(secret_path: str) -> None:
    if not isinstance(secret_path, str) or not _SECRET_PATH.fullmatch(secret_path):
        raise ValueError(
            f"Invalid secret_path: {secret_path!r}. Use slash-separated segments of "
            "letters, digits, underscores and hyphens."
        )


class VaultClient:
    """
    Token-authenticated KV v2 reader

    Args:
        vault_addr: Server address (default: VAULT_ADDR)
        vault_token: Token (default: VAULT_TOKEN)
        namespace: Vault Enterprise namespace
        mount_point: KV v2 mount (default: "secret")
        timeout: Seconds to wait for a secret read

    Raises:
        ValueError: If neither argument nor environment supplies the address or token
    """

    def __init__(
        self,
        vault_addr: Optional[str] = None,
        vault_token: Optional[str] = None,
        namespace: Optional[str] = None,
        mount_point: str = "secret",
        timeout: float = 10,
    ):
        vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        vault_token = vault_token or os.getenv("VAULT_TOKEN")
        if not vault_addr:
            raise ValueError("Vault address not provided; set VAULT_ADDR or pass vault_addr")
        if not vault_token:
            raise ValueError("Vault token not provided; set VAULT_TOKEN or pass vault_token")

        self.vault_addr = vault_addr.rstrip("/")
        self.vault_token = vault_token
        self.namespace = namespace
        self.mount_point = mount_point.strip("/")
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers["X-Vault-Token"] = vault_token
        if namespace:
            self.session.headers["X-Vault-Namespace"] = namespace

        logger.debug(f"Vault client ready for {self.vault_addr} (mount '{self.mount_point}')")

    def get_secret(self, secret_path: str) -> Dict[str, Any]:
        """
        Latest version of the secret at secret_path, below the mount point

        Raises:
            ValueError: Malformed path, missing secret or empty secret
            requests.RequestException: Transport failure or another HTTP error
        """
        _check_secret_path(secret_path)

        url = f"{self.vault_addr}/v1/{self.mount_point}/data/{secret_path}"
        response = self.session.get(url, timeout=self.timeout)
        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {secret_path}")
        response.raise_for_status()

        data = (response.json().get("data") or {}).get("data") or {}
        if not data:
            raise ValueError(f"No data found in secret at path: {secret_path}")
        return data

    def get_database_credentials(self, role: str) -> Dict[str, Any]:
        """
        Connection settings for "mysql_source" or "mysql_destination"

        Discrete secrets get ``port`` defaulted to 3306.

        Raises:
            ValueError: Unknown role, or a discrete secret missing fields
        """
        if role not in DATABASE_ROLES:
            raise ValueError(
                f"Unsupported database role: {role!r} (expected one of {', '.join(DATABASE_ROLES)})"
            )

        secret = dict(self.get_secret(f"database/{role}"))
        if "url" not in secret:
            missing = [field for field in DISCRETE_FIELDS if field not in secret]
            if missing:
                raise ValueError(f"Secret for {role} lacks: {', '.join(missing)}")
            secret.setdefault("port", DEFAULT_MYSQL_PORT)

        logger.info(f"Fetched {role} connection settings from Vault")
        return secret

    def health_check(self) -> bool:
        """True when the server answers /sys/health as unsealed and serving."""
        try:
            response = self.session.get(f"{self.vault_addr}/v1/sys/health", timeout=5)
        except requests.RequestException as e:
            logger.error(f"Vault health check failed: {e}")
            return False
        return response.status_code in HEALTHY_STATUS_CODES
