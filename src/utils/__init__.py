"""
Utility modules for the replication tool

Provides:
- db_pool: MySQL connection pools for the source and destination
- logging: structured logging setup
- metrics: Prometheus metrics publishing
- tracing: OpenTelemetry spans
- retry: exponential backoff for transient database errors
- sql_safety: identifier validation and quoting
- vault_client: HashiCorp Vault integration for credentials
"""

__version__ = "1.0.0"
__all__ = ["db_pool", "logging", "metrics", "tracing", "retry", "sql_safety", "vault_client"]
