"""Generic CAD blob element model. Backend-independent."""

from pydantic import BaseModel


class BlobElementDetails(BaseModel):
    """
    Represents an uploaded file stored inside a document (e.g. a generated PDF tab).
    """
    engine: str
    id: str
    name: str | None = None
    href: str | None = None
