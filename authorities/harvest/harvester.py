"""Harvester - one-time ingestion of a vocabulary into a new authority.

Usage:
------
from authorities.harvest.harvester import Harvester
from authorities.store import AuthorityStore

harvester = Harvester(AuthorityStore(Path("data/authorities/authorities.db")))

harvester.harvest_rdf("lcsh", ["https://id.loc.gov/download/lcsh.skos.nt"])
harvester.harvest_tsv("mesh", ["data/mesh.tsv"], prefix="https://id.nlm.nih.gov/mesh/")

A harvest for a name that already exists is a no-op returning None. The
authority row is created before any source is read, so a failure part way
raises PartialHarvestError and leaves the authority in place unless
`cleanup_on_failure` is set.
"""

import threading
from itertools import islice
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Iterator, List, Optional, Sequence, Union

from rdflib import URIRef

from authorities.exceptions import HarvestCancelledError, PartialHarvestError
from authorities.harvest.rdf import DEFAULT_FORMAT, DEFAULT_PREDICATE, extract_rdf_entries, rdflib_format
from authorities.harvest.sources import DEFAULT_TIMEOUT, open_source
from authorities.harvest.tsv import extract_tsv_entries
from authorities.models import Authority, AuthorityEntry, SourceKind
from authorities.store import AuthorityStore
from authorities.utils.logger import LoggerManager

DEFAULT_BATCH_SIZE = 1000

# (location, stream, authority) -> entries
Extractor = Callable[[str, BinaryIO, Authority], Iterable[AuthorityEntry]]


def batched(entries: Iterable[AuthorityEntry], size: int) -> Iterator[List[AuthorityEntry]]:
    iterator = iter(entries)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


class Harvester:
    """Fills new authorities from RDF or TSV sources.

    Attributes:
        store: Authority store receiving the entries
        batch_size: Entries handed to the store's writer per call
        cleanup_on_failure: Delete the half-built authority when a harvest fails
        timeout: HTTP timeout for remote sources, in seconds
    """

    def __init__(
        self,
        store: AuthorityStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        cleanup_on_failure: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.batch_size = batch_size
        self.cleanup_on_failure = cleanup_on_failure
        self.timeout = timeout
        self.logger = LoggerManager.get_logger(__name__)

    def harvest_rdf(
        self,
        name: str,
        sources: Sequence[str],
        format: str = DEFAULT_FORMAT,
        predicate: Union[str, URIRef] = DEFAULT_PREDICATE,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[Authority]:
        """Harvest statements carrying `predicate` from RDF sources.

        Args:
            name: Name of the authority to create
            sources: Ordered source locations (paths or URLs)
            format: RDF serialization tag (default N-Triples)
            predicate: Predicate whose statements become entries (default skos:prefLabel)
            cancel_event: Set to stop the harvest at the next batch boundary

        Returns:
            The new Authority, or None if `name` already existed

        Raises:
            ValueError: If `sources` is empty or a single location, or `format` is unsupported
            PartialHarvestError: If the harvest failed after the authority was created
        """
        rdflib_format(format)

        def extract(location: str, stream: BinaryIO, authority: Authority) -> Iterable[AuthorityEntry]:
            return extract_rdf_entries(location, stream, authority, predicate=predicate, format=format)

        return self._harvest(
            name, sources, SourceKind.RDF, extract, cancel_event,
            options={"format": format, "predicate": str(predicate)},
        )

    def harvest_tsv(
        self,
        name: str,
        sources: Sequence[str],
        prefix: str = "",
        strict: bool = True,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[Authority]:
        """Harvest `identifier<TAB>code<TAB>label` lines from TSV sources.

        Args:
            name: Name of the authority to create
            sources: Ordered source locations (paths or URLs)
            prefix: Prepended to the identifier column to build each URI
            strict: Fail on lines with fewer than three fields (default)
            cancel_event: Set to stop the harvest at the next batch boundary

        Returns:
            The new Authority, or None if `name` already existed

        Raises:
            ValueError: If `sources` is empty or a single location
            PartialHarvestError: If the harvest failed after the authority was
                created; a short TSV line surfaces here with a
                MalformedSourceError as `original_error`
        """
        def extract(location: str, stream: BinaryIO, authority: Authority) -> Iterable[AuthorityEntry]:
            return extract_tsv_entries(
                location, stream, authority, prefix=prefix, strict=strict, logger=self.logger
            )

        return self._harvest(
            name, sources, SourceKind.TSV, extract, cancel_event,
            options={"prefix": prefix, "strict": strict},
        )

    def _harvest(
        self,
        name: str,
        sources: Sequence[str],
        kind: SourceKind,
        extract: Extractor,
        cancel_event: Optional[threading.Event],
        options: dict,
    ) -> Optional[Authority]:
        if isinstance(sources, (str, Path)):
            raise ValueError(
                f"Sources for authority '{name}' must be a list of locations, not a single {type(sources).__name__}"
            )
        sources = [str(s) for s in sources]
        if not sources:
            raise ValueError(f"No sources given for authority '{name}'")

        log_data = {"authority": name, "kind": kind.value, "sources": len(sources), **options}

        if self.store.find_authority_by_name(name) is not None:
            self.logger.info("harvest.skipped.exists", extra={"extra_data": log_data})
            return None

        authority = self.store.create_authority(name)
        if authority is None:
            self.logger.info("harvest.skipped.exists", extra={"extra_data": log_data})
            return None

        self.logger.info("harvest.started", extra={"extra_data": log_data})
        try:
            written = self._fill(authority, sources, extract, cancel_event)
        except Exception as e:
            self._fail(authority, e)

        self.logger.info(
            "harvest.finished", extra={"extra_data": {**log_data, "entries": written}}
        )
        return authority

    def _fill(
        self,
        authority: Authority,
        sources: List[str],
        extract: Extractor,
        cancel_event: Optional[threading.Event],
    ) -> int:
        """Read every source in order and write its entries batch by batch."""
        written = 0
        for location in sources:
            self._check_cancelled(authority, cancel_event, written)
            source_written = 0
            with open_source(location, timeout=self.timeout) as stream:
                for batch in batched(extract(location, stream, authority), self.batch_size):
                    self._check_cancelled(authority, cancel_event, written)
                    count = self.store.write_entries(batch)
                    source_written += count
                    written += count
            self.logger.info(
                "harvest.source.done",
                extra={"extra_data": {
                    "authority": authority.name,
                    "source": location,
                    "entries": source_written,
                    "writer": self.store.writer.name,
                }},
            )
        return written

    @staticmethod
    def _check_cancelled(
        authority: Authority, cancel_event: Optional[threading.Event], written: int
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise HarvestCancelledError(authority.name, written)

    def _fail(self, authority: Authority, error: Exception) -> None:
        """Log a failed harvest and raise the matching PartialHarvestError."""
        cancelled = isinstance(error, HarvestCancelledError)
        entries_written = self.store.count_entries(authority)
        cleaned_up = False
        if self.cleanup_on_failure:
            cleaned_up = self.store.delete_authority(authority.name)

        self.logger.error(
            "harvest.cancelled" if cancelled else "harvest.failed",
            extra={"extra_data": {
                "authority": authority.name,
                "entries_written": entries_written,
                "cleaned_up": cleaned_up,
                "error": str(error),
            }},
            exc_info=not cancelled,
        )
        if cancelled:
            raise HarvestCancelledError(authority.name, entries_written, cleaned_up=cleaned_up) from error
        raise PartialHarvestError(
            authority.name, entries_written, original_error=error, cleaned_up=cleaned_up
        ) from error
