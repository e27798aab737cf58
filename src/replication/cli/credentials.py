"""
Connection settings for the CLI.

Resolves the source and destination connection URLs from the command line,
HashiCorp Vault, or the MYSQL_SOURCE / MYSQL_DESTINATION environment
variables, and builds the validated ReplicationConfig.
"""

import argparse
import logging

from src.utils.vault_client import VaultClient

from ..config import ReplicationConfig, build_connection_url
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


def get_urls_from_vault(vault_client: VaultClient | None = None) -> tuple[str, str]:
    """
    Fetch source and destination connection URLs from Vault

    Returns:
        Tuple of (source_url, destination_url)

    Raises:
        ConfigurationError: If Vault is unreachable or a secret is incomplete
    """
    try:
        vault_client = vault_client or VaultClient()
        urls = []
        for role in ("mysql_source", "mysql_destination"):
            creds = vault_client.get_database_credentials(role)
            urls.append(creds["url"] if "url" in creds else build_connection_url(creds))
    except Exception as e:
        raise ConfigurationError(f"Failed to fetch credentials from Vault: {e}") from e

    logger.info("Successfully fetched connection settings from Vault")
    return urls[0], urls[1]


def build_config(args: argparse.Namespace) -> ReplicationConfig:
    """
    Build and validate the replication config from parsed arguments

    Command-line values win over Vault, which wins over the environment.

    Raises:
        ConfigurationError: If connectivity is missing or a size is invalid
    """
    source_url = args.source
    destination_url = args.destination

    if args.use_vault:
        vault_source, vault_destination = get_urls_from_vault()
        source_url = source_url or vault_source
        destination_url = destination_url or vault_destination

    config = ReplicationConfig.from_env(
        source_url=source_url,
        destination_url=destination_url,
        exclude_tables=args.exclude_tables,
        page_size=args.page_size,
        write_chunk_size=args.write_chunk_size,
        parallel_workers=args.parallel_workers,
        # store_true flags only override when given
        continue_on_error=True if args.continue_on_error else None,
    )
    config.validate()
    return config
