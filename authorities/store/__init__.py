"""Authority store - SQLite persistence for authorities, entries and bindings."""

from authorities.store.repository import AuthorityStore
from authorities.store.writers import BatchInsert, BulkWriter, SequentialInsert

__all__ = [
    "AuthorityStore",
    "BulkWriter",
    "BatchInsert",
    "SequentialInsert",
]
