# Overview: Transaction boundaries and row locking for multi-statement writes.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for read-check-write sequences (coupon redemption).

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def atomic():
    """
    Run a block of session work as one unit.

    Commits when the block exits normally; rolls back and re-raises on any
    exception, so partial writes (e.g. half of a recipient reassignment) are
    never persisted.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
