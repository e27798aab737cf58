"""
MySQL-to-MySQL replication engine

Mirrors table schemas (missing tables and columns) from a source MySQL or
MariaDB database into a destination and copies rows idempotently, so a run
can be repeated or resumed without duplicating keyed rows.

Components:
- ddl: column extraction from CREATE TABLE statements
- schema: additive ALTER TABLE ... ADD COLUMN planning
- keys: conflict key selection (primary key, first unique index, none)
- replicator: paginated fetch and chunked upsert of one table
- orchestrator: per-table sequencing and progress events
- parallel, scheduler, report, cli: running and reporting replications

Usage:
    from src.replication.config import ReplicationConfig
    from src.replication.database import MySQLDatabase
    from src.replication.orchestrator import ReplicationRunner
"""

__version__ = "1.0.0"
__all__ = [
    "ddl", "schema", "keys", "database", "replicator", "orchestrator",
    "config", "errors", "events", "parallel", "scheduler", "report", "cli",
]
