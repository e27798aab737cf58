"""
Exception hierarchy for replication runs.

Configuration errors abort before any table is touched. Schema mutation and
data copy errors abort the run unless ``continue_on_error`` is set, in which
case the failing table is reported and the run moves on. Nothing is rolled
back: schema changes are additive and row writes are idempotent per key.
"""


class ReplicationError(Exception):
    """Base exception for replication failures."""

    pass


class ConfigurationError(ReplicationError):
    """Raised when source/destination connectivity or sizes are invalid."""

    pass


class SchemaMutationError(ReplicationError):
    """Raised when the destination rejects a CREATE TABLE or ALTER TABLE."""

    def __init__(self, table: str, statement: str, cause: Exception):
        self.table = table
        self.statement = statement
        self.cause = cause
        super().__init__(
            f"Schema change failed for table '{table}': {cause} "
            f"(statement: {statement})"
        )


class DataCopyError(ReplicationError):
    """Raised when fetching a page or writing a chunk fails."""

    def __init__(self, table: str, offset: int, cause: Exception):
        self.table = table
        self.offset = offset
        self.cause = cause
        super().__init__(
            f"Data copy failed for table '{table}' at offset {offset}: {cause}"
        )
