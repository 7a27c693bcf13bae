"""Pydantic models for local authorities.

Defines the data structures shared by the store, harvester, binding service
and resolver:
- Authority: a named controlled vocabulary
- AuthorityEntry: one harvested (uri, label) pair owned by an authority
- SubjectEntry: row of the denormalized subject fast-path table
- Scope / DomainTerm: the (model, term) declaration an authority is bound to
- TermMatch: uniform lookup result returned to callers
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Harvest
# =============================================================================


class SourceKind(str, Enum):
    """Source formats the harvester understands."""
    RDF = "rdf"
    TSV = "tsv"


class Authority(BaseModel):
    """A named controlled vocabulary.

    Attributes:
        id: Row id (None until persisted)
        name: Globally unique vocabulary name
        created_at: When the authority row was created
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: str = Field(min_length=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuthorityEntry(BaseModel):
    """One harvested (uri, label) candidate."""
    model_config = ConfigDict(frozen=True)

    local_authority_id: int
    uri: str = Field(min_length=1)
    label: str


class SubjectEntry(BaseModel):
    """Row of the subject fast-path table.

    `lower_label` is computed from `label` when not given, so prefix queries
    never call lower() per row.
    """
    model_config = ConfigDict(frozen=True)

    url: str = Field(min_length=1)
    label: str
    lower_label: str = ""

    def model_post_init(self, __context) -> None:
        if not self.lower_label:
            object.__setattr__(self, "lower_label", self.label.lower())


class AuthoritySummary(BaseModel):
    """Registry listing row: an authority and how many entries it holds."""
    name: str
    created_at: datetime
    entry_count: int = 0


# =============================================================================
# Term binding
# =============================================================================


class Scope(BaseModel):
    """Which model a term declaration applies to.

    `Scope.any()` matches every model; `Scope.of("generic_works")` matches one.
    Lookups prefer a model scope over the any-model scope when both exist.
    """
    model_config = ConfigDict(frozen=True)

    model: Optional[str] = None

    @classmethod
    def any(cls) -> "Scope":
        return cls(model=None)

    @classmethod
    def of(cls, model: Optional[str]) -> "Scope":
        """Scope for `model`; a missing model yields the any-model scope."""
        return cls(model=model or None)

    @property
    def is_any(self) -> bool:
        return self.model is None

    def __str__(self) -> str:
        return "*" if self.is_any else self.model


class DomainTerm(BaseModel):
    """A (model, term) declaration that authorities are bound to."""
    model_config = ConfigDict(frozen=True)

    id: int
    scope: Scope
    term: str

    @property
    def model(self) -> Optional[str]:
        return self.scope.model


# =============================================================================
# Lookup
# =============================================================================


class TermMatch(BaseModel):
    """A lookup candidate, identical in shape for both resolver paths."""
    model_config = ConfigDict(frozen=True)

    uri: str
    label: str
