"""Dialect-specific ``INSERT ... ON CONFLICT`` builders.

Both PostgreSQL and SQLite expose ``on_conflict_do_update`` /
``on_conflict_do_nothing`` on their own ``insert`` construct; the session's
bind decides which one is used.
"""

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

_INSERT_BUILDERS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def conflict_insert(db: AsyncSession, model: Any):
    """Return the dialect ``insert(model)`` that supports ON CONFLICT clauses."""
    dialect = db.get_bind().dialect.name
    builder = _INSERT_BUILDERS.get(dialect)
    if builder is None:
        raise RuntimeError(f"ON CONFLICT inserts are not supported on dialect '{dialect}'")
    return builder(model)
