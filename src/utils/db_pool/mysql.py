"""MySQL / MariaDB connection pool implementation."""

from typing import Any

import pymysql
import pymysql.cursors
from opentelemetry import trace

from src.utils.tracing import trace_operation

from .base import BaseConnectionPool


class MySQLConnectionPool(BaseConnectionPool):
    """Connection pool for MySQL-family databases using PyMySQL."""

    def __init__(
        self,
        host: str,
        user: str,
        password: str | None = None,
        database: str | None = None,
        port: int = 3306,
        connect_options: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        """
        Initialize MySQL connection pool.

        Args:
            host: MySQL host
            user: Username
            password: Password
            database: Default schema
            port: MySQL port
            connect_options: Extra keyword arguments for pymysql.connect
                (charset, connect_timeout, ssl, ...)
            **kwargs: Additional arguments for BaseConnectionPool
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.connect_options = dict(connect_options or {})

        super().__init__(**kwargs)

    def _connect(self) -> pymysql.connections.Connection:
        """Create a new autocommit connection returning rows as dicts."""
        with trace_operation(
            "mysql_connect",
            kind=trace.SpanKind.CLIENT,
            db_host=self.host,
            db_name=self.database,
            pool_name=self.pool_name,
        ):
            options = {"charset": "utf8mb4", "connect_timeout": 10}
            options.update(self.connect_options)
            return pymysql.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password or "",
                database=self.database,
                cursorclass=pymysql.cursors.DictCursor,
                autocommit=True,
                **options,
            )

    def _ping(self, conn: pymysql.connections.Connection) -> bool:
        """Check if MySQL connection is healthy."""
        if conn is None or not conn.open:
            return False

        try:
            conn.ping(reconnect=False)
            return True
        except pymysql.err.Error:
            return False

    def _disconnect(self, conn: pymysql.connections.Connection) -> None:
        """Close MySQL connection."""
        if conn is not None and conn.open:
            conn.close()
