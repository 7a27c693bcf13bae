"""Resolver - prefix lookup of authority entries for a metadata field.

Two query paths:
- The subject term reads the denormalized subject table directly. The
  subject vocabulary is large enough that the generic join is too slow.
- Every other term resolves its (model, term) declaration, collects the
  attached authorities and prefix-matches their entries.

Matching is a case-insensitive prefix match. The query is folded with
Python's str.lower(); the store replaces SQLite's ASCII-only lower() with the
same function, so generic labels fold identically (e.g. "Émile" matches "ém").
Locale-specific folding beyond str.lower() is not attempted.
"""

import sqlite3
from typing import List, Optional

from authorities.exceptions import StoreUnavailableError
from authorities.models import DomainTerm, Scope, TermMatch
from authorities.store import AuthorityStore
from authorities.store.contract import Columns
from authorities.utils.logger import LoggerManager

DEFAULT_LIMIT = 25
SUBJECT_TERM = "subject"


class Resolver:
    """Maps user-typed prefixes to candidate entries.

    Attributes:
        store: Authority store to read from
        limit: Maximum candidates per lookup
        subject_term: Term served by the subject fast path
    """

    def __init__(
        self,
        store: AuthorityStore,
        limit: int = DEFAULT_LIMIT,
        subject_term: str = SUBJECT_TERM,
    ):
        self.store = store
        self.limit = limit
        self.subject_term = subject_term
        self.logger = LoggerManager.get_logger(__name__)

    def entries_by_term(
        self, term: str, query: Optional[str], model: Optional[str] = None
    ) -> List[TermMatch]:
        """Candidates for `term` whose label starts with `query`.

        Args:
            term: Field name (e.g. 'subject', 'creator')
            query: User-typed prefix; empty means no input yet
            model: Optional model name scoping the term declaration

        Returns:
            At most `limit` matches; empty when the query is empty or the
            term has no declaration

        Raises:
            StoreUnavailableError: If the database cannot be read
        """
        if not query:
            return []
        low_query = query.lower()

        try:
            if term == self.subject_term:
                # Separate table: the subject vocabulary is too large for the join
                s = Columns.SubjectEntries
                return [
                    TermMatch(uri=hit[s.URL], label=hit[s.LABEL])
                    for hit in self.store.search_subject_entries(low_query, self.limit)
                ]

            domain_term = self.domain_term(model, term)
            if domain_term is None:
                return []
            authority_ids = self.store.authority_ids_for(domain_term)
            e = Columns.Entries
            return [
                TermMatch(uri=hit[e.URI], label=hit[e.LABEL])
                for hit in self.store.search_entries(authority_ids, low_query, self.limit)
            ]
        except sqlite3.DatabaseError as err:
            self.logger.error(
                "lookup.store_unavailable",
                extra={"extra_data": {"term": term, "model": model, "error": str(err)}},
            )
            raise StoreUnavailableError.from_database_error(err) from err

    def domain_term(self, model: Optional[str], term: str) -> Optional[DomainTerm]:
        """Find the declaration a lookup should use.

        With a model: (model, term), then the any-model declaration.
        Without one: the any-model declaration, then any declaration of the term.
        """
        scope = Scope.of(model)
        found = self.store.find_domain_term(scope, term)
        if found is not None:
            return found
        if not scope.is_any:
            return self.store.find_domain_term(Scope.any(), term)
        return self.store.find_any_domain_term(term)
