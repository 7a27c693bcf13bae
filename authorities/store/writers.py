"""Entry write strategies.

The store picks one `BulkWriter` when it is constructed; the harvester only
ever calls `write()` and does not know which strategy it got.

- BatchInsert: one executemany per batch, committed as a unit
- SequentialInsert: one INSERT and commit per entry
"""

from abc import ABC, abstractmethod
from typing import Sequence

from authorities.models import AuthorityEntry
from authorities.store.contract import Columns, Tables
from authorities.store.database import AuthorityDatabase

INSERT_ENTRY_SQL = (
    f"INSERT INTO {Tables.ENTRIES} "
    f"({Columns.Entries.LOCAL_AUTHORITY_ID}, {Columns.Entries.URI}, {Columns.Entries.LABEL}) "
    "VALUES (?, ?, ?)"
)


class BulkWriter(ABC):
    """Persists harvested entries."""

    name: str = "bulk_writer"

    def __init__(self, database: AuthorityDatabase):
        self.database = database

    @abstractmethod
    def write(self, entries: Sequence[AuthorityEntry]) -> int:
        """Persist `entries` and return how many rows were written.

        Raises:
            sqlite3.Error: If any row fails store-level validation
        """


class BatchInsert(BulkWriter):
    """Writes a batch with a single executemany inside one transaction."""

    name = "batch_insert"

    def write(self, entries: Sequence[AuthorityEntry]) -> int:
        if not entries:
            return 0
        conn = self.database.connection()
        with conn:
            conn.executemany(
                INSERT_ENTRY_SQL,
                [(e.local_authority_id, e.uri, e.label) for e in entries],
            )
        return len(entries)


class SequentialInsert(BulkWriter):
    """Saves entries one at a time; rows before a failing row stay committed."""

    name = "sequential_insert"

    def write(self, entries: Sequence[AuthorityEntry]) -> int:
        conn = self.database.connection()
        written = 0
        for entry in entries:
            with conn:
                conn.execute(INSERT_ENTRY_SQL, (entry.local_authority_id, entry.uri, entry.label))
            written += 1
        return written


def writer_for(database: AuthorityDatabase, bulk_insert: bool = True) -> BulkWriter:
    """Choose the write strategy for a store."""
    if bulk_insert:
        return BatchInsert(database)
    return SequentialInsert(database)
