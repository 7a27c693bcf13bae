"""Extract authority entries from RDF sources.

Only statements whose predicate equals the configured predicate become
entries: subject -> uri, object -> label.

N-Triples is fed to rdflib's N-Triples parser in chunks of lines, and each
chunk's entries are yielded before the next chunk is read, so memory stays
bounded and the harvester can stop between batches. Statement order and
repeated statements are kept. Every other serialization is loaded into an
rdflib graph first.
"""

import io
from itertools import islice
from typing import BinaryIO, Iterator, List, Union

from rdflib import Dataset, Graph, URIRef
from rdflib.namespace import SKOS
from rdflib.plugins.parsers.ntriples import W3CNTriplesParser

from authorities.exceptions import SourceUnavailableError
from authorities.models import Authority, AuthorityEntry

DEFAULT_FORMAT = "ntriples"
DEFAULT_PREDICATE = SKOS.prefLabel
NTRIPLES_CHUNK_LINES = 10000

# Accepted format tags -> rdflib parser names
FORMAT_ALIASES = {
    "ntriples": "nt",
    "n-triples": "nt",
    "nt": "nt",
    "turtle": "turtle",
    "ttl": "turtle",
    "n3": "n3",
    "xml": "xml",
    "rdfxml": "xml",
    "rdf/xml": "xml",
    "json-ld": "json-ld",
    "jsonld": "json-ld",
    "trig": "trig",
    "nquads": "nquads",
    "n-quads": "nquads",
}

QUAD_FORMATS = {"trig", "nquads"}


def rdflib_format(format_tag: str) -> str:
    """Map a format tag to the rdflib parser name.

    Raises:
        ValueError: If the tag is not a supported serialization
    """
    key = str(format_tag).strip().lower().lstrip(":")
    if key not in FORMAT_ALIASES:
        supported = ", ".join(sorted(FORMAT_ALIASES))
        raise ValueError(f"Unsupported RDF format '{format_tag}'. Supported: {supported}")
    return FORMAT_ALIASES[key]


def as_predicate(predicate: Union[str, URIRef]) -> URIRef:
    return predicate if isinstance(predicate, URIRef) else URIRef(str(predicate))


class _PredicateSink:
    """ntriples parser sink that keeps entries for one predicate."""

    def __init__(self, authority: Authority, predicate: URIRef):
        self.authority = authority
        self.predicate = predicate
        self.entries: List[AuthorityEntry] = []

    def triple(self, s, p, o) -> None:
        if p != self.predicate:
            return
        self.entries.append(
            AuthorityEntry(local_authority_id=self.authority.id, uri=str(s), label=str(o))
        )


def extract_rdf_entries(
    location: str,
    stream: BinaryIO,
    authority: Authority,
    predicate: Union[str, URIRef] = DEFAULT_PREDICATE,
    format: str = DEFAULT_FORMAT,
    chunk_lines: int = NTRIPLES_CHUNK_LINES,
) -> Iterator[AuthorityEntry]:
    """Yield one entry per statement in `stream` carrying `predicate`.

    Args:
        location: Source location, used in error messages
        stream: Binary stream over the serialized RDF
        authority: Authority the entries belong to
        predicate: Predicate to keep (default skos:prefLabel)
        format: Serialization tag (default N-Triples)
        chunk_lines: N-Triples lines parsed before their entries are yielded

    Raises:
        SourceUnavailableError: If the source does not parse
    """
    fmt = rdflib_format(format)
    predicate = as_predicate(predicate)

    if fmt == "nt":
        yield from _ntriples_entries(location, stream, _PredicateSink(authority, predicate), chunk_lines)
        return

    graph = Dataset(default_union=True) if fmt in QUAD_FORMATS else Graph()
    try:
        graph.parse(source=stream, format=fmt)
    except Exception as e:
        raise SourceUnavailableError(location, e) from e
    for s, _, o in graph.triples((None, predicate, None)):
        yield AuthorityEntry(local_authority_id=authority.id, uri=str(s), label=str(o))


def _ntriples_entries(
    location: str, stream: BinaryIO, sink: _PredicateSink, chunk_lines: int
) -> Iterator[AuthorityEntry]:
    # One parser for the whole source so blank node labels stay consistent
    parser = W3CNTriplesParser(sink=sink)
    lines = iter(stream)
    while True:
        chunk = list(islice(lines, chunk_lines))
        if not chunk:
            return
        try:
            parser.parse(io.StringIO(b"".join(chunk).decode("utf-8")))
        except Exception as e:
            raise SourceUnavailableError(location, e) from e
        entries, sink.entries = sink.entries, []
        yield from entries
