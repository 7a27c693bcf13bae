"""Local authorities - harvested controlled vocabularies for typeahead lookup.

This package provides:
- Harvester: RDF/TSV vocabularies -> named authorities (idempotent per name)
- TermBindingService: authorities <-> (model, term) declarations
- Resolver: prefix lookup of {uri, label} candidates for a field
- LocalAuthorityService: facade used by the CLI, the lookup API and bootstrap

Usage:
    from authorities import LocalAuthorityService, load_settings

    service = LocalAuthorityService.from_settings(load_settings())
    service.harvest_rdf("lcsh", ["data/vocab/lcsh.nt"])
    service.register_vocabulary("generic_works", "subject", "lcsh")
    service.entries_by_term("creator", "smi", model="generic_works")
"""

from authorities.binding import TermBindingService
from authorities.exceptions import (
    AuthorityError,
    HarvestCancelledError,
    HarvestError,
    MalformedSourceError,
    PartialHarvestError,
    SourceUnavailableError,
    StoreUnavailableError,
)
from authorities.harvest import Harvester, HarvestJob, HarvestRunner
from authorities.models import Authority, AuthorityEntry, Scope, SubjectEntry, TermMatch
from authorities.resolver import Resolver
from authorities.service import LocalAuthorityService
from authorities.settings import AuthoritySettings, load_settings
from authorities.store import AuthorityStore

__all__ = [
    "LocalAuthorityService",
    "AuthorityStore",
    "Harvester",
    "HarvestJob",
    "HarvestRunner",
    "TermBindingService",
    "Resolver",
    "AuthoritySettings",
    "load_settings",
    "Authority",
    "AuthorityEntry",
    "SubjectEntry",
    "Scope",
    "TermMatch",
    "AuthorityError",
    "HarvestError",
    "HarvestCancelledError",
    "MalformedSourceError",
    "PartialHarvestError",
    "SourceUnavailableError",
    "StoreUnavailableError",
]
