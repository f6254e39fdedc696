"""Generic CAD document models. Backend-independent."""

from datetime import datetime
from pydantic import BaseModel


class DocumentLabel(BaseModel):
    """A label attached to a document on the remote service."""
    id: str | None = None
    name: str


class DocumentBase(BaseModel):
    """
    Represents a document as it appears in a listing response.
    """
    engine: str
    id: str
    name: str
    labels: list[DocumentLabel] = []
    modified_at: datetime | None = None

    def get_label_names(self) -> list[str]:
        return [label.name for label in self.labels if label.name]


class DocumentDetails(DocumentBase):
    """
    Represents a single document with the metadata needed to build a record.
    """
    description: str = ""
    created_at: datetime | None = None


class DocumentsListResponse(BaseModel):
    """
    Represents one page of a document listing. next_offset is set while more pages are available.
    """
    engine: str
    documents: list[DocumentBase] = []
    next_offset: int | None = None
    next_limit: int | None = None

    def has_next(self) -> bool:
        return self.next_offset is not None
