"""SQLite-backed repository for local authorities.

Single entry point for every read and write the harvester, binding service
and resolver need:
- Authority registry (find by name, create, delete, list)
- Entry writes through the store's BulkWriter
- Domain term declarations and their authority attachments
- Prefix searches on the generic entry table and the subject fast path
"""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from authorities.models import (
    Authority,
    AuthorityEntry,
    AuthoritySummary,
    DomainTerm,
    Scope,
    SubjectEntry,
)
from authorities.store.contract import LIKE_ESCAPE, Columns, Tables
from authorities.store.database import AuthorityDatabase
from authorities.store.writers import BulkWriter, writer_for
from authorities.utils.logger import LoggerManager

# Sorts after every character a label can realistically contain
_PREFIX_SENTINEL = "\U0010ffff"


def like_prefix(low_query: str) -> str:
    """Build a LIKE pattern matching values that start with `low_query`.

    LIKE wildcards in the query are escaped so they match literally.
    """
    escaped = (
        low_query.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"{escaped}%"


class AuthorityStore:
    """Repository over the authority database.

    Attributes:
        database: Connection manager for the SQLite file
        writer: Entry write strategy, fixed at construction
    """

    def __init__(self, db_path: Path, bulk_insert: bool = True, timeout: float = 5.0):
        """Open the store.

        Args:
            db_path: Path to SQLite database (created if not exists)
            bulk_insert: Use BatchInsert when True, SequentialInsert otherwise
            timeout: Seconds to wait on a locked database
        """
        self.database = AuthorityDatabase(db_path, timeout=timeout)
        self.writer: BulkWriter = writer_for(self.database, bulk_insert=bulk_insert)
        self.logger = LoggerManager.get_logger(__name__)

    @property
    def db_path(self) -> Path:
        return self.database.db_path

    def _conn(self) -> sqlite3.Connection:
        return self.database.connection()

    def close(self) -> None:
        self.database.close()

    # =========================================================================
    # Authorities
    # =========================================================================

    @staticmethod
    def _authority_from_row(row: sqlite3.Row) -> Authority:
        return Authority(
            id=row[Columns.Authorities.ID],
            name=row[Columns.Authorities.NAME],
            created_at=datetime.fromisoformat(row[Columns.Authorities.CREATED_AT]),
        )

    def find_authority_by_name(self, name: str) -> Optional[Authority]:
        """Look up an authority by its unique name.

        Returns:
            Authority if found, None otherwise
        """
        row = self._conn().execute(
            f"SELECT * FROM {Tables.AUTHORITIES} WHERE {Columns.Authorities.NAME} = ?",
            (name,),
        ).fetchone()
        return self._authority_from_row(row) if row else None

    def create_authority(self, name: str) -> Optional[Authority]:
        """Insert a new authority row.

        Returns:
            The new Authority, or None if the name already exists (including
            when a concurrent caller created it first)
        """
        created_at = datetime.now(timezone.utc)
        conn = self._conn()
        try:
            with conn:
                cursor = conn.execute(
                    f"INSERT INTO {Tables.AUTHORITIES} "
                    f"({Columns.Authorities.NAME}, {Columns.Authorities.CREATED_AT}) VALUES (?, ?)",
                    (name, created_at.isoformat()),
                )
        except sqlite3.IntegrityError:
            self.logger.info(
                "authority.create.conflict", extra={"extra_data": {"authority": name}}
            )
            return None
        return Authority(id=cursor.lastrowid, name=name, created_at=created_at)

    def delete_authority(self, name: str) -> bool:
        """Delete an authority with its entries and attachments.

        Returns:
            True if an authority was deleted
        """
        conn = self._conn()
        with conn:
            cursor = conn.execute(
                f"DELETE FROM {Tables.AUTHORITIES} WHERE {Columns.Authorities.NAME} = ?",
                (name,),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            self.logger.info("authority.deleted", extra={"extra_data": {"authority": name}})
        return deleted

    def list_authorities(self) -> List[AuthoritySummary]:
        """List every authority with its entry count, ordered by name."""
        a, e = Columns.Authorities, Columns.Entries
        rows = self._conn().execute(
            f"""
            SELECT a.{a.NAME} AS name, a.{a.CREATED_AT} AS created_at,
                   COUNT(e.{e.ID}) AS entry_count
            FROM {Tables.AUTHORITIES} a
            LEFT JOIN {Tables.ENTRIES} e ON e.{e.LOCAL_AUTHORITY_ID} = a.{a.ID}
            GROUP BY a.{a.ID}
            ORDER BY a.{a.NAME}
            """
        ).fetchall()
        return [
            AuthoritySummary(
                name=row["name"],
                created_at=datetime.fromisoformat(row["created_at"]),
                entry_count=row["entry_count"],
            )
            for row in rows
        ]

    # =========================================================================
    # Entries
    # =========================================================================

    def write_entries(self, entries: Sequence[AuthorityEntry]) -> int:
        """Persist entries with the store's write strategy."""
        return self.writer.write(entries)

    def count_entries(self, authority: Authority) -> int:
        row = self._conn().execute(
            f"SELECT COUNT(*) FROM {Tables.ENTRIES} WHERE {Columns.Entries.LOCAL_AUTHORITY_ID} = ?",
            (authority.id,),
        ).fetchone()
        return row[0]

    def entries_for(self, authority: Authority) -> List[AuthorityEntry]:
        """All entries of an authority in insertion order."""
        e = Columns.Entries
        rows = self._conn().execute(
            f"SELECT {e.LOCAL_AUTHORITY_ID}, {e.URI}, {e.LABEL} FROM {Tables.ENTRIES} "
            f"WHERE {e.LOCAL_AUTHORITY_ID} = ? ORDER BY {e.ID}",
            (authority.id,),
        ).fetchall()
        return [
            AuthorityEntry(local_authority_id=row[0], uri=row[1], label=row[2])
            for row in rows
        ]

    def search_entries(
        self, authority_ids: Sequence[int], low_query: str, limit: int
    ) -> List[sqlite3.Row]:
        """Entries of the given authorities whose lowercased label starts with `low_query`."""
        if not authority_ids:
            return []
        e = Columns.Entries
        placeholders = ", ".join("?" for _ in authority_ids)
        sql = (
            f"SELECT {e.URI}, {e.LABEL} FROM {Tables.ENTRIES} "
            f"WHERE {e.LOCAL_AUTHORITY_ID} IN ({placeholders}) "
            f"AND lower({e.LABEL}) LIKE ? ESCAPE '{LIKE_ESCAPE}' "
            "LIMIT ?"
        )
        params = [*authority_ids, like_prefix(low_query), limit]
        return self._conn().execute(sql, params).fetchall()

    # =========================================================================
    # Subject fast path
    # =========================================================================

    def add_subject_entries(self, entries: Iterable[SubjectEntry]) -> int:
        """Load rows into the subject fast-path table."""
        s = Columns.SubjectEntries
        rows = [(entry.url, entry.label, entry.lower_label) for entry in entries]
        conn = self._conn()
        with conn:
            conn.executemany(
                f"INSERT INTO {Tables.SUBJECT_ENTRIES} ({s.URL}, {s.LABEL}, {s.LOWER_LABEL}) "
                "VALUES (?, ?, ?)",
                rows,
            )
        return len(rows)

    def search_subject_entries(self, low_query: str, limit: int) -> List[sqlite3.Row]:
        """Subject rows whose precomputed lowercase label starts with `low_query`.

        Expressed as a range on lower_label so the index is used; no ORDER BY.
        """
        s = Columns.SubjectEntries
        return self._conn().execute(
            f"SELECT {s.URL}, {s.LABEL} FROM {Tables.SUBJECT_ENTRIES} "
            f"WHERE {s.LOWER_LABEL} >= ? AND {s.LOWER_LABEL} < ? "
            "LIMIT ?",
            (low_query, low_query + _PREFIX_SENTINEL, limit),
        ).fetchall()

    # =========================================================================
    # Domain terms
    # =========================================================================

    @staticmethod
    def _domain_term_from_row(row: sqlite3.Row) -> DomainTerm:
        d = Columns.DomainTerms
        return DomainTerm(id=row[d.ID], scope=Scope.of(row[d.MODEL]), term=row[d.TERM])

    def find_domain_term(self, scope: Scope, term: str) -> Optional[DomainTerm]:
        """Exact lookup of the declaration for (scope, term)."""
        d = Columns.DomainTerms
        if scope.is_any:
            row = self._conn().execute(
                f"SELECT * FROM {Tables.DOMAIN_TERMS} WHERE {d.MODEL} IS NULL AND {d.TERM} = ?",
                (term,),
            ).fetchone()
        else:
            row = self._conn().execute(
                f"SELECT * FROM {Tables.DOMAIN_TERMS} WHERE {d.MODEL} = ? AND {d.TERM} = ?",
                (scope.model, term),
            ).fetchone()
        return self._domain_term_from_row(row) if row else None

    def find_any_domain_term(self, term: str) -> Optional[DomainTerm]:
        """First declaration for `term` under any scope."""
        d = Columns.DomainTerms
        row = self._conn().execute(
            f"SELECT * FROM {Tables.DOMAIN_TERMS} WHERE {d.TERM} = ? ORDER BY {d.ID} LIMIT 1",
            (term,),
        ).fetchone()
        return self._domain_term_from_row(row) if row else None

    def find_or_create_domain_term(self, scope: Scope, term: str) -> DomainTerm:
        """Return the (scope, term) declaration, creating it on first use."""
        existing = self.find_domain_term(scope, term)
        if existing:
            return existing
        d = Columns.DomainTerms
        conn = self._conn()
        try:
            with conn:
                cursor = conn.execute(
                    f"INSERT INTO {Tables.DOMAIN_TERMS} ({d.MODEL}, {d.TERM}) VALUES (?, ?)",
                    (scope.model, term),
                )
        except sqlite3.IntegrityError:
            # Created concurrently between the lookup and the insert
            return self.find_domain_term(scope, term)
        self.logger.info(
            "domain_term.created",
            extra={"extra_data": {"model": scope.model, "term": term}},
        )
        return DomainTerm(id=cursor.lastrowid, scope=scope, term=term)

    def list_domain_terms(self) -> List[DomainTerm]:
        d = Columns.DomainTerms
        rows = self._conn().execute(
            f"SELECT * FROM {Tables.DOMAIN_TERMS} ORDER BY {d.TERM}, {d.MODEL}"
        ).fetchall()
        return [self._domain_term_from_row(row) for row in rows]

    # =========================================================================
    # Attachments
    # =========================================================================

    def authority_ids_for(self, domain_term: DomainTerm) -> List[int]:
        j = Columns.DomainTermsAuthorities
        rows = self._conn().execute(
            f"SELECT {j.LOCAL_AUTHORITY_ID} FROM {Tables.DOMAIN_TERMS_AUTHORITIES} "
            f"WHERE {j.DOMAIN_TERM_ID} = ?",
            (domain_term.id,),
        ).fetchall()
        return [row[0] for row in rows]

    def authority_names_for(self, domain_term: DomainTerm) -> List[str]:
        j, a = Columns.DomainTermsAuthorities, Columns.Authorities
        rows = self._conn().execute(
            f"SELECT a.{a.NAME} FROM {Tables.DOMAIN_TERMS_AUTHORITIES} j "
            f"JOIN {Tables.AUTHORITIES} a ON a.{a.ID} = j.{j.LOCAL_AUTHORITY_ID} "
            f"WHERE j.{j.DOMAIN_TERM_ID} = ? ORDER BY a.{a.NAME}",
            (domain_term.id,),
        ).fetchall()
        return [row[0] for row in rows]

    def is_attached(self, domain_term: DomainTerm, authority: Authority) -> bool:
        j = Columns.DomainTermsAuthorities
        row = self._conn().execute(
            f"SELECT 1 FROM {Tables.DOMAIN_TERMS_AUTHORITIES} "
            f"WHERE {j.DOMAIN_TERM_ID} = ? AND {j.LOCAL_AUTHORITY_ID} = ?",
            (domain_term.id, authority.id),
        ).fetchone()
        return row is not None

    def attach(self, domain_term: DomainTerm, authority: Authority) -> bool:
        """Attach an authority to a declaration with set semantics.

        Returns:
            True if a new attachment was made, False if it already existed
        """
        j = Columns.DomainTermsAuthorities
        conn = self._conn()
        with conn:
            cursor = conn.execute(
                f"INSERT OR IGNORE INTO {Tables.DOMAIN_TERMS_AUTHORITIES} "
                f"({j.DOMAIN_TERM_ID}, {j.LOCAL_AUTHORITY_ID}) VALUES (?, ?)",
                (domain_term.id, authority.id),
            )
        return cursor.rowcount > 0

    def attachment_count(self) -> int:
        row = self._conn().execute(
            f"SELECT COUNT(*) FROM {Tables.DOMAIN_TERMS_AUTHORITIES}"
        ).fetchone()
        return row[0]
