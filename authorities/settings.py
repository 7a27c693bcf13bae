"""Settings for the authorities package.

Loaded from YAML through ConfigLoader and validated with pydantic. The file
is `config/authorities.yaml` unless AUTHORITIES_CONFIG or an explicit path
says otherwise; a missing default file yields the built-in defaults.

Example:
    database:
      path: data/authorities/authorities.db
      bulk_insert: true
    lookup:
      limit: 25
    vocabularies:
      - name: lcsh
        kind: rdf
        sources: [data/vocab/lcsh.nt]
        bindings:
          - {model: generic_works, term: subject}
"""

import os
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from authorities.models import SourceKind
from authorities.utils.config_loader import ConfigLoader

DEFAULT_CONFIG_PATH = Path("config/authorities.yaml")
CONFIG_ENV_VAR = "AUTHORITIES_CONFIG"


class DatabaseSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    path: Path = Path("data/authorities/authorities.db")
    bulk_insert: bool = True   # BatchInsert when true, SequentialInsert otherwise
    timeout: float = Field(default=5.0, gt=0)


class HarvestSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    batch_size: int = Field(default=1000, ge=1)
    cleanup_on_failure: bool = False
    timeout: float = Field(default=30.0, gt=0)


class LookupSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    limit: int = Field(default=25, ge=1)
    subject_term: str = "subject"


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    use_json: bool = True
    log_dir: str = "logs"


class VocabularyBinding(BaseModel):
    """A (model, term) declaration to attach a bootstrap vocabulary to."""
    model_config = ConfigDict(extra='forbid')

    model: Optional[str] = None
    term: str


class VocabularyConfig(BaseModel):
    """A vocabulary to harvest and bind at bootstrap."""
    model_config = ConfigDict(extra='forbid')

    name: str = Field(min_length=1)
    kind: SourceKind
    sources: List[str] = Field(min_length=1)
    format: Optional[str] = None      # rdf only
    predicate: Optional[str] = None   # rdf only
    prefix: Optional[str] = None      # tsv only
    strict: bool = True               # tsv only
    bindings: List[VocabularyBinding] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_kind_options(self) -> "VocabularyConfig":
        if self.kind is SourceKind.RDF and self.prefix is not None:
            raise ValueError(f"Vocabulary '{self.name}': 'prefix' only applies to tsv sources")
        if self.kind is SourceKind.TSV and (self.format or self.predicate):
            raise ValueError(f"Vocabulary '{self.name}': 'format'/'predicate' only apply to rdf sources")
        return self

    def harvest_options(self) -> dict:
        """Keyword arguments for Harvester.harvest_rdf / harvest_tsv."""
        if self.kind is SourceKind.RDF:
            options = {}
            if self.format:
                options["format"] = self.format
            if self.predicate:
                options["predicate"] = self.predicate
            return options
        return {"prefix": self.prefix or "", "strict": self.strict}


class AuthoritySettings(BaseModel):
    """Top-level settings."""
    model_config = ConfigDict(extra='forbid')

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    harvest: HarvestSettings = Field(default_factory=HarvestSettings)
    lookup: LookupSettings = Field(default_factory=LookupSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    vocabularies: List[VocabularyConfig] = Field(default_factory=list)

    @classmethod
    def from_loader(cls, loader: ConfigLoader) -> "AuthoritySettings":
        return cls.model_validate(loader.as_dict())


def load_settings(path: Optional[Path] = None) -> AuthoritySettings:
    """Load settings from `path`, AUTHORITIES_CONFIG or the default file.

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist
        pydantic.ValidationError: If the file content is invalid
    """
    explicit = path or os.environ.get(CONFIG_ENV_VAR)
    config_path = Path(explicit) if explicit else DEFAULT_CONFIG_PATH
    if not explicit and not config_path.exists():
        return AuthoritySettings()
    return AuthoritySettings.from_loader(ConfigLoader(config_path))
