"""Authority store schema contract.

Table and column names shared by schema.sql and the repository queries.
If you modify schema.sql, update this contract accordingly.
"""


class Tables:
    """Authority store table names."""

    AUTHORITIES = "local_authorities"
    ENTRIES = "local_authority_entries"
    SUBJECT_ENTRIES = "subject_local_authority_entries"
    DOMAIN_TERMS = "domain_terms"
    DOMAIN_TERMS_AUTHORITIES = "domain_terms_local_authorities"


class Columns:
    """Authority store column names organized by table."""

    class Authorities:
        """Columns in local_authorities table."""
        ID = "id"
        NAME = "name"
        CREATED_AT = "created_at"

    class Entries:
        """Columns in local_authority_entries table."""
        ID = "id"
        LOCAL_AUTHORITY_ID = "local_authority_id"
        LABEL = "label"
        URI = "uri"

    class SubjectEntries:
        """Columns in subject_local_authority_entries table."""
        ID = "id"
        LABEL = "label"
        LOWER_LABEL = "lower_label"
        URL = "url"

    class DomainTerms:
        """Columns in domain_terms table."""
        ID = "id"
        MODEL = "model"
        TERM = "term"

    class DomainTermsAuthorities:
        """Columns in the domain_terms <-> local_authorities join table."""
        DOMAIN_TERM_ID = "domain_term_id"
        LOCAL_AUTHORITY_ID = "local_authority_id"


# Escape character used for LIKE prefix patterns
LIKE_ESCAPE = "\\"
