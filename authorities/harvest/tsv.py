"""Extract authority entries from tab-separated sources.

Each line holds at least three columns: a local identifier fragment, an
unused code and the label. The entry URI is `prefix + identifier + "/"`.
"""

import logging
from typing import BinaryIO, Iterator, Optional

from authorities.exceptions import MalformedSourceError
from authorities.models import Authority, AuthorityEntry

MIN_FIELDS = 3


def extract_tsv_entries(
    location: str,
    stream: BinaryIO,
    authority: Authority,
    prefix: str = "",
    strict: bool = True,
    logger: Optional[logging.Logger] = None,
) -> Iterator[AuthorityEntry]:
    """Yield one entry per line of `stream`.

    Blank lines are skipped. A line with fewer than three fields raises
    MalformedSourceError, or is logged and skipped when `strict` is False.

    Args:
        location: Source location, used in error messages
        stream: Binary stream over UTF-8 TSV data
        authority: Authority the entries belong to
        prefix: Prepended to the identifier column to build the URI
        strict: Fail on malformed lines (default) instead of skipping them
        logger: Logger for skipped lines

    Raises:
        MalformedSourceError: On a short line while `strict` is set
    """
    for line_number, raw in enumerate(stream, 1):
        line = raw.decode("utf-8").rstrip("\r\n")
        if not line.strip():
            continue
        fields = line.split("\t")
        if len(fields) < MIN_FIELDS:
            error = MalformedSourceError.too_few_fields(location, line_number, len(fields))
            if strict:
                raise error
            if logger:
                logger.warning(
                    "harvest.tsv.line_skipped",
                    extra={"extra_data": {"source": location, "line": line_number, "reason": error.reason}},
                )
            continue
        yield AuthorityEntry(
            local_authority_id=authority.id,
            uri=f"{prefix}{fields[0]}/",
            label=fields[2],
        )
