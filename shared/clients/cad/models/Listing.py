"""Document listing options. Backend-independent."""

from enum import Enum

from pydantic import BaseModel, field_validator

MAX_PAGE_SIZE = 20


class DocumentFilter(str, Enum):
    """Which slice of the remote document space a listing covers."""
    MY_DOCUMENTS = "my-documents"
    CREATED = "created"
    SHARED = "shared"
    TRASH = "trash"
    PUBLIC = "public"
    RECENT = "recent"

    @classmethod
    def parse(cls, raw: "str | DocumentFilter | None") -> "DocumentFilter":
        """Parse a user-supplied filter name. Unknown or empty values fall back to CREATED."""
        if isinstance(raw, cls):
            return raw
        if not raw:
            return cls.CREATED
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.CREATED


class SortColumn(str, Enum):
    NAME = "name"
    MODIFIED_AT = "modifiedAt"
    CREATED_AT = "createdAt"
    EMAIL = "email"
    MODIFIED_BY = "modifiedBy"
    PROMOTED_AT = "promotedAt"

    @classmethod
    def parse(cls, raw: "str | SortColumn | None") -> "SortColumn":
        """Parse a sort column name case-insensitively, accepting short aliases like "modified"."""
        if isinstance(raw, cls):
            return raw
        aliases = {
            "name": cls.NAME,
            "modifiedat": cls.MODIFIED_AT,
            "modified": cls.MODIFIED_AT,
            "createdat": cls.CREATED_AT,
            "created": cls.CREATED_AT,
            "email": cls.EMAIL,
            "modifiedby": cls.MODIFIED_BY,
            "promotedat": cls.PROMOTED_AT,
            "promoted": cls.PROMOTED_AT,
        }
        return aliases.get((raw or "").strip().lower(), cls.CREATED_AT)


class DocumentListQuery(BaseModel):
    """
    Parameters of one listing request. label is passed through to the service,
    but callers needing reliable label matching filter client-side.
    """
    filter: DocumentFilter = DocumentFilter.CREATED
    query: str | None = None
    label: str | None = None
    offset: int = 0
    limit: int = MAX_PAGE_SIZE
    sort_column: SortColumn | None = None
    sort_order: str | None = None

    @field_validator("limit")
    @classmethod
    def _clamp_limit(cls, value: int) -> int:
        return min(MAX_PAGE_SIZE, max(1, value))

    @field_validator("sort_order")
    @classmethod
    def _check_order(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.lower()
        return value if value in ("asc", "desc") else "desc"
