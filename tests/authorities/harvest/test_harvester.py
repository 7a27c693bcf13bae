"""Tests for the Harvester.

Covers idempotent harvesting, RDF predicate filtering, TSV URI building,
fail-fast on malformed lines and the partial-harvest failure mode.
"""

import sqlite3
import threading

import pytest

from authorities.exceptions import (
    HarvestCancelledError,
    MalformedSourceError,
    PartialHarvestError,
    SourceUnavailableError,
)
from authorities.harvest.harvester import Harvester, batched
from authorities.store import AuthorityStore

SKOS_PREF = "http://www.w3.org/2004/02/skos/core#prefLabel"
SKOS_ALT = "http://www.w3.org/2004/02/skos/core#altLabel"


@pytest.fixture
def store(tmp_path):
    store = AuthorityStore(tmp_path / "authorities.db")
    yield store
    store.close()


@pytest.fixture
def harvester(store):
    return Harvester(store, batch_size=2)


@pytest.fixture
def nt_file(tmp_path):
    path = tmp_path / "animals.nt"
    path.write_text(
        f'<http://x/1> <{SKOS_PREF}> "Cats" .\n'
        f'<http://x/1> <{SKOS_ALT}> "Felines" .\n'
        f'<http://x/2> <{SKOS_PREF}> "Dogs"@en .\n',
        encoding="utf-8",
    )
    return path


@pytest.fixture
def tsv_file(tmp_path):
    path = tmp_path / "subjects.tsv"
    path.write_text("42\tIGNORED\tAnimals\n43\tX\tPlants\n", encoding="utf-8")
    return path


class TestHarvestRdf:
    """RDF harvesting."""

    def test_keeps_only_matching_predicate(self, harvester, store, nt_file):
        authority = harvester.harvest_rdf("animals", [str(nt_file)])

        entries = store.entries_for(authority)
        assert [(e.uri, e.label) for e in entries] == [
            ("http://x/1", "Cats"),
            ("http://x/2", "Dogs"),
        ]

    def test_single_matching_statement(self, harvester, store, tmp_path):
        path = tmp_path / "one.nt"
        path.write_text(
            f'<http://x/1> <{SKOS_PREF}> "Cats" .\n'
            f'<http://x/1> <http://purl.org/dc/terms/subject> "Pets" .\n',
            encoding="utf-8",
        )
        authority = harvester.harvest_rdf("one", [str(path)])

        entries = store.entries_for(authority)
        assert len(entries) == 1
        assert entries[0].uri == "http://x/1"
        assert entries[0].label == "Cats"

    def test_custom_predicate(self, harvester, store, nt_file):
        authority = harvester.harvest_rdf("alt", [str(nt_file)], predicate=SKOS_ALT)

        assert [e.label for e in store.entries_for(authority)] == ["Felines"]

    def test_sources_read_in_order(self, harvester, store, nt_file, tmp_path):
        second = tmp_path / "more.nt"
        second.write_text(f'<http://x/3> <{SKOS_PREF}> "Birds" .\n', encoding="utf-8")

        authority = harvester.harvest_rdf("ordered", [str(nt_file), str(second)])

        assert [e.label for e in store.entries_for(authority)] == ["Cats", "Dogs", "Birds"]

    def test_turtle_format(self, harvester, store, tmp_path):
        path = tmp_path / "animals.ttl"
        path.write_text(
            "@prefix skos: <http://www.w3.org/2004/02/skos/core#> .\n"
            '<http://x/9> skos:prefLabel "Horses" .\n',
            encoding="utf-8",
        )
        authority = harvester.harvest_rdf("ttl", [str(path)], format="turtle")

        entries = store.entries_for(authority)
        assert [(e.uri, e.label) for e in entries] == [("http://x/9", "Horses")]

    def test_unsupported_format_rejected_before_creating_authority(self, harvester, store, nt_file):
        with pytest.raises(ValueError, match="Unsupported RDF format"):
            harvester.harvest_rdf("bad", [str(nt_file)], format="csv")

        assert store.find_authority_by_name("bad") is None


class TestHarvestTsv:
    """TSV harvesting."""

    def test_builds_uri_from_prefix_and_first_field(self, harvester, store, tsv_file):
        authority = harvester.harvest_tsv("tsv", [str(tsv_file)], prefix="http://auth/")

        entries = store.entries_for(authority)
        assert entries[0].uri == "http://auth/42/"
        assert entries[0].label == "Animals"
        assert entries[1].uri == "http://auth/43/"

    def test_default_prefix_is_empty(self, harvester, store, tsv_file):
        authority = harvester.harvest_tsv("tsv", [str(tsv_file)])

        assert store.entries_for(authority)[0].uri == "42/"

    def test_short_line_fails_the_harvest(self, harvester, store, tmp_path):
        path = tmp_path / "broken.tsv"
        path.write_text("1\tA\tGood\n2\tonly-two\n", encoding="utf-8")

        with pytest.raises(PartialHarvestError) as exc_info:
            harvester.harvest_tsv("broken", [str(path)])

        assert isinstance(exc_info.value.original_error, MalformedSourceError)
        assert exc_info.value.original_error.line_number == 2
        assert exc_info.value.authority_name == "broken"

    def test_lenient_mode_skips_short_lines(self, harvester, store, tmp_path):
        path = tmp_path / "broken.tsv"
        path.write_text("1\tA\tGood\n2\tonly-two\n3\tB\tAlso good\n", encoding="utf-8")

        authority = harvester.harvest_tsv("lenient", [str(path)], strict=False)

        assert [e.label for e in store.entries_for(authority)] == ["Good", "Also good"]


class TestIdempotency:
    """At most one harvest per authority name."""

    def test_first_harvest_creates_authority(self, harvester, store, tsv_file):
        authority = harvester.harvest_tsv("once", [str(tsv_file)])

        assert authority is not None
        assert authority.name == "once"
        assert store.find_authority_by_name("once") == authority
        assert store.count_entries(authority) == 2

    def test_second_harvest_is_noop(self, harvester, store, tsv_file, nt_file):
        first = harvester.harvest_tsv("once", [str(tsv_file)])

        assert harvester.harvest_tsv("once", [str(tsv_file)]) is None
        assert harvester.harvest_rdf("once", [str(nt_file)]) is None
        assert store.count_entries(first) == 2
        assert len(store.list_authorities()) == 1

    def test_empty_sources_rejected(self, harvester, store):
        with pytest.raises(ValueError, match="No sources"):
            harvester.harvest_tsv("empty", [])

        assert store.find_authority_by_name("empty") is None

    @pytest.mark.parametrize("as_path", [False, True])
    def test_single_location_rejected_before_creating_authority(self, harvester, store, tsv_file, as_path):
        location = tsv_file if as_path else str(tsv_file)

        with pytest.raises(ValueError, match="list of locations"):
            harvester.harvest_tsv("single", location)

        assert store.find_authority_by_name("single") is None
        assert harvester.harvest_tsv("single", [str(tsv_file)]) is not None


class TestPartialHarvest:
    """Failures after the authority row exists."""

    def test_missing_source_leaves_empty_authority(self, harvester, store, tsv_file, tmp_path):
        missing = tmp_path / "missing.tsv"

        with pytest.raises(PartialHarvestError) as exc_info:
            harvester.harvest_tsv("half", [str(tsv_file), str(missing)])

        error = exc_info.value
        assert isinstance(error.original_error, SourceUnavailableError)
        assert error.entries_written == 2
        assert error.cleaned_up is False
        # Authority stays, so a retry is a no-op until it is deleted
        assert store.find_authority_by_name("half") is not None
        assert harvester.harvest_tsv("half", [str(tsv_file)]) is None

    def test_cleanup_on_failure_allows_retry(self, store, tsv_file, tmp_path):
        harvester = Harvester(store, cleanup_on_failure=True)
        missing = tmp_path / "missing.tsv"

        with pytest.raises(PartialHarvestError) as exc_info:
            harvester.harvest_tsv("retry", [str(missing)])

        assert exc_info.value.cleaned_up is True
        assert store.find_authority_by_name("retry") is None
        assert harvester.harvest_tsv("retry", [str(tsv_file)]) is not None

    def test_store_failure_surfaces_as_harvest_failure(self, harvester, store, tsv_file, monkeypatch):
        def failing_write(entries):
            raise sqlite3.IntegrityError("NOT NULL constraint failed")

        monkeypatch.setattr(store.writer, "write", failing_write)

        with pytest.raises(PartialHarvestError) as exc_info:
            harvester.harvest_tsv("invalid", [str(tsv_file)])

        assert isinstance(exc_info.value.original_error, sqlite3.IntegrityError)

    def test_cancelled_before_start(self, harvester, store, tsv_file):
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(HarvestCancelledError) as exc_info:
            harvester.harvest_tsv("cancelled", [str(tsv_file)], cancel_event=cancel)

        assert exc_info.value.entries_written == 0


def test_batched_splits_into_fixed_size_chunks():
    assert [len(b) for b in batched(range(5), 2)] == [2, 2, 1]
    assert list(batched([], 3)) == []


def test_batch_size_must_be_positive(store):
    with pytest.raises(ValueError):
        Harvester(store, batch_size=0)
