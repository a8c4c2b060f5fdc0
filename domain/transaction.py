"""All-or-nothing helper over ``TransactionPort``."""

from __future__ import annotations

from contextlib import contextmanager

from domain.ports import TransactionPort


@contextmanager
def atomique(tx: TransactionPort):
    """Commit when the block completes, roll back and re-raise otherwise."""
    try:
        yield
        tx.commit()
    except BaseException:
        tx.rollback()
        raise
