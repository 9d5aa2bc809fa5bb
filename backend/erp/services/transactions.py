# Overview: Transaction scope and row locking shared by every write operation.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def atomic():
    """
    One logical operation = one database transaction.

    Commits when the block finishes, rolls back and re-raises on any
    exception. Either way the session ends its transaction, which hands the
    pooled connection back; nothing is retried.
    """
    try:
        yield db.session
        db.session.commit()
    except BaseException:
        db.session.rollback()
        raise
