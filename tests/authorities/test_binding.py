"""Tests for TermBindingService."""

from unittest.mock import MagicMock

import pytest

from authorities.binding import TermBindingService
from authorities.models import Scope
from authorities.store import AuthorityStore


@pytest.fixture
def store(tmp_path):
    store = AuthorityStore(tmp_path / "authorities.db")
    yield store
    store.close()


@pytest.fixture
def binding(store):
    return TermBindingService(store)


def test_binds_authority_to_model_term(binding, store):
    store.create_authority("lcnaf")

    binding.register_vocabulary("generic_works", "creator", "lcnaf")

    assert binding.bindings_for("creator", "generic_works") == ["lcnaf"]
    assert binding.bindings_for("creator") == []


def test_registering_twice_keeps_one_attachment(binding, store):
    store.create_authority("lcnaf")

    binding.register_vocabulary("generic_works", "creator", "lcnaf")
    binding.register_vocabulary("generic_works", "creator", "lcnaf")

    assert store.attachment_count() == 1
    assert len(store.list_domain_terms()) == 1


def test_several_authorities_per_term(binding, store):
    store.create_authority("lcnaf")
    store.create_authority("viaf")

    binding.register_vocabulary(None, "creator", "viaf")
    binding.register_vocabulary(None, "creator", "lcnaf")

    assert binding.bindings_for("creator") == ["lcnaf", "viaf"]


def test_missing_authority_warns_and_changes_nothing(binding, store):
    binding.logger = MagicMock()

    binding.register_vocabulary("generic_works", "creator", "unknown")

    binding.logger.warning.assert_called_once()
    message = binding.logger.warning.call_args[0][0]
    assert "unknown" in message
    assert "harvest_rdf" in message
    assert store.list_domain_terms() == []
    assert store.attachment_count() == 0


def test_empty_model_name_binds_any_model(binding, store):
    store.create_authority("mesh")

    binding.register_vocabulary("", "keyword", "mesh")

    assert store.find_domain_term(Scope.any(), "keyword") is not None
