"""Local authority service - single entry point for operators and callers.

Bundles the store, harvester, binding service and resolver so the CLI, the
lookup API and bootstrap code share one configuration.

Usage:
    from authorities.service import LocalAuthorityService

    service = LocalAuthorityService.from_settings(load_settings())
    service.harvest_tsv("mesh", ["data/mesh.tsv"], prefix="https://id.nlm.nih.gov/mesh/")
    service.register_vocabulary("generic_works", "keyword", "mesh")
    service.entries_by_term("keyword", "neo", model="generic_works")
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, Field
from rdflib import URIRef

from authorities.binding import TermBindingService
from authorities.exceptions import HarvestError
from authorities.harvest.harvester import Harvester
from authorities.harvest.rdf import DEFAULT_FORMAT, DEFAULT_PREDICATE
from authorities.models import Authority, AuthoritySummary, SourceKind, TermMatch
from authorities.resolver import Resolver
from authorities.settings import AuthoritySettings, VocabularyConfig
from authorities.store import AuthorityStore
from authorities.utils.logger import LoggerManager


class BootstrapReport(BaseModel):
    """Outcome of LocalAuthorityService.bootstrap()."""
    harvested: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)     # Already existed
    failed: Dict[str, str] = Field(default_factory=dict)  # name -> error message
    bindings: int = 0


class LocalAuthorityService:
    """Facade over harvesting, binding and lookup."""

    def __init__(
        self,
        store: AuthorityStore,
        harvester: Optional[Harvester] = None,
        binding: Optional[TermBindingService] = None,
        resolver: Optional[Resolver] = None,
        vocabularies: Sequence[VocabularyConfig] = (),
    ):
        self.store = store
        self.harvester = harvester or Harvester(store)
        self.binding = binding or TermBindingService(store)
        self.resolver = resolver or Resolver(store)
        self.vocabularies = list(vocabularies)
        self.logger = LoggerManager.get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: AuthoritySettings) -> "LocalAuthorityService":
        LoggerManager.configure(
            level=settings.logging.level,
            use_json=settings.logging.use_json,
            log_dir=settings.logging.log_dir,
        )
        store = AuthorityStore(
            Path(settings.database.path),
            bulk_insert=settings.database.bulk_insert,
            timeout=settings.database.timeout,
        )
        return cls(
            store,
            harvester=Harvester(
                store,
                batch_size=settings.harvest.batch_size,
                cleanup_on_failure=settings.harvest.cleanup_on_failure,
                timeout=settings.harvest.timeout,
            ),
            resolver=Resolver(
                store,
                limit=settings.lookup.limit,
                subject_term=settings.lookup.subject_term,
            ),
            vocabularies=settings.vocabularies,
        )

    def close(self) -> None:
        self.store.close()

    # Harvest ------------------------------------------------------------------

    def harvest_rdf(
        self,
        name: str,
        sources: Sequence[str],
        format: str = DEFAULT_FORMAT,
        predicate: Union[str, URIRef] = DEFAULT_PREDICATE,
    ) -> Optional[Authority]:
        return self.harvester.harvest_rdf(name, sources, format=format, predicate=predicate)

    def harvest_tsv(
        self, name: str, sources: Sequence[str], prefix: str = "", strict: bool = True
    ) -> Optional[Authority]:
        return self.harvester.harvest_tsv(name, sources, prefix=prefix, strict=strict)

    # Registry -----------------------------------------------------------------

    def list_authorities(self) -> List[AuthoritySummary]:
        return self.store.list_authorities()

    def delete_authority(self, name: str) -> bool:
        """Delete an authority, its entries and its attachments."""
        return self.store.delete_authority(name)

    # Binding ------------------------------------------------------------------

    def register_vocabulary(self, model_name: Optional[str], term: str, name: str) -> None:
        self.binding.register_vocabulary(model_name, term, name)

    def bindings_for(self, term: str, model_name: Optional[str] = None) -> List[str]:
        return self.binding.bindings_for(term, model_name)

    # Lookup -------------------------------------------------------------------

    def entries_by_term(
        self, term: str, query: Optional[str], model: Optional[str] = None
    ) -> List[TermMatch]:
        return self.resolver.entries_by_term(term, query, model=model)

    # Bootstrap ----------------------------------------------------------------

    def bootstrap(self, vocabularies: Optional[Sequence[VocabularyConfig]] = None) -> BootstrapReport:
        """Harvest and bind every configured vocabulary.

        Existing authorities are skipped but still bound, so running bootstrap
        again is harmless. A failing vocabulary is recorded in the report and
        the remaining ones still run.
        """
        report = BootstrapReport()
        for vocab in (self.vocabularies if vocabularies is None else vocabularies):
            try:
                if vocab.kind is SourceKind.RDF:
                    authority = self.harvester.harvest_rdf(vocab.name, vocab.sources, **vocab.harvest_options())
                else:
                    authority = self.harvester.harvest_tsv(vocab.name, vocab.sources, **vocab.harvest_options())
            except (HarvestError, ValueError) as e:
                report.failed[vocab.name] = str(e)
                self.logger.error(
                    "bootstrap.vocabulary.failed",
                    extra={"extra_data": {"authority": vocab.name, "error": str(e)}},
                )
                continue

            if authority is None:
                report.skipped.append(vocab.name)
            else:
                report.harvested.append(vocab.name)

            for binding in vocab.bindings:
                self.binding.register_vocabulary(binding.model, binding.term, vocab.name)
                report.bindings += 1

        self.logger.info(
            "bootstrap.finished",
            extra={"extra_data": {
                "harvested": len(report.harvested),
                "skipped": len(report.skipped),
                "failed": len(report.failed),
            }},
        )
        return report
