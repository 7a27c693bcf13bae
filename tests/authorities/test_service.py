"""Tests for LocalAuthorityService, focused on bootstrap."""

import pytest

from authorities.service import LocalAuthorityService
from authorities.settings import AuthoritySettings, VocabularyConfig
from authorities.store import AuthorityStore, SequentialInsert

SKOS_PREF = "http://www.w3.org/2004/02/skos/core#prefLabel"


@pytest.fixture
def sources(tmp_path):
    nt = tmp_path / "lcsh.nt"
    nt.write_text(f'<http://id/1> <{SKOS_PREF}> "Neoplasms" .\n', encoding="utf-8")
    tsv = tmp_path / "mesh.tsv"
    tsv.write_text("D1\tx\tNeurology\n", encoding="utf-8")
    return nt, tsv


@pytest.fixture
def service(tmp_path):
    service = LocalAuthorityService(AuthorityStore(tmp_path / "authorities.db"))
    yield service
    service.close()


def _vocabularies(nt, tsv, missing=None):
    vocabularies = [
        VocabularyConfig(
            name="lcsh", kind="rdf", sources=[str(nt)],
            bindings=[{"model": "generic_works", "term": "keyword"}],
        ),
        VocabularyConfig(
            name="mesh", kind="tsv", sources=[str(tsv)], prefix="https://mesh/",
            bindings=[{"term": "keyword"}],
        ),
    ]
    if missing:
        vocabularies.append(VocabularyConfig(name="gone", kind="tsv", sources=[str(missing)]))
    return vocabularies


def test_bootstrap_harvests_and_binds(service, sources):
    report = service.bootstrap(_vocabularies(*sources))

    assert report.harvested == ["lcsh", "mesh"]
    assert report.bindings == 2
    assert [m.uri for m in service.entries_by_term("keyword", "neu")] == ["https://mesh/D1/"]
    assert [m.label for m in service.entries_by_term("keyword", "neo", model="generic_works")] == ["Neoplasms"]


def test_bootstrap_twice_skips_existing(service, sources):
    service.bootstrap(_vocabularies(*sources))

    report = service.bootstrap(_vocabularies(*sources))

    assert report.harvested == []
    assert report.skipped == ["lcsh", "mesh"]
    assert service.store.attachment_count() == 2


def test_bootstrap_continues_after_failure(service, sources, tmp_path):
    report = service.bootstrap(_vocabularies(*sources, missing=tmp_path / "missing.tsv"))

    assert report.harvested == ["lcsh", "mesh"]
    assert "gone" in report.failed


def test_from_settings_wires_configuration(tmp_path):
    settings = AuthoritySettings.model_validate({
        "database": {"path": str(tmp_path / "a.db"), "bulk_insert": False},
        "harvest": {"batch_size": 7, "cleanup_on_failure": True},
        "lookup": {"limit": 5, "subject_term": "topic"},
        "logging": {"level": "WARNING", "use_json": False, "log_dir": str(tmp_path / "logs")},
    })

    service = LocalAuthorityService.from_settings(settings)
    try:
        assert isinstance(service.store.writer, SequentialInsert)
        assert service.harvester.batch_size == 7
        assert service.harvester.cleanup_on_failure is True
        assert service.resolver.limit == 5
        assert service.resolver.subject_term == "topic"
    finally:
        service.close()


def test_delete_then_reharvest(service, sources):
    _, tsv = sources
    service.harvest_tsv("mesh", [str(tsv)])

    assert service.delete_authority("mesh") is True
    assert service.harvest_tsv("mesh", [str(tsv)]) is not None
    assert [s.name for s in service.list_authorities()] == ["mesh"]
