"""Term binding - declares which authorities serve a (model, term) field."""

from typing import List, Optional

from authorities.models import Scope
from authorities.store import AuthorityStore
from authorities.utils.logger import LoggerManager


class TermBindingService:
    """Attaches harvested authorities to (model, term) declarations."""

    def __init__(self, store: AuthorityStore):
        self.store = store
        self.logger = LoggerManager.get_logger(__name__)

    def register_vocabulary(self, model_name: Optional[str], term: str, name: str) -> None:
        """Bind authority `name` to the `term` field of `model_name`.

        A missing authority is logged as a warning and nothing changes.
        Binding the same authority twice leaves a single attachment.

        Args:
            model_name: Plural model name (e.g. 'generic_works'); None binds for any model
            term: The field name
            name: The vocabulary name
        """
        authority = self.store.find_authority_by_name(name)
        if authority is None:
            self.logger.warning(
                f"Unable to find a local authority for {name} in the database. "
                f"You may want to `Harvester.harvest_rdf(\"{name}\", [\"path/to/rdf.nt\"])' "
                f"or `Harvester.harvest_tsv(\"{name}\", [\"path/to/data.tsv\"])'",
                extra={"extra_data": {"authority": name, "model": model_name, "term": term}},
            )
            return

        scope = Scope.of(model_name)
        domain_term = self.store.find_or_create_domain_term(scope, term)
        if self.store.is_attached(domain_term, authority):
            return
        if self.store.attach(domain_term, authority):
            self.logger.info(
                "binding.attached",
                extra={"extra_data": {"authority": name, "model": scope.model, "term": term}},
            )

    def bindings_for(self, term: str, model_name: Optional[str] = None) -> List[str]:
        """Names of the authorities attached to exactly (model_name, term)."""
        domain_term = self.store.find_domain_term(Scope.of(model_name), term)
        if domain_term is None:
            return []
        return self.store.authority_names_for(domain_term)
