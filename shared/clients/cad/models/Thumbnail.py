"""Generic CAD thumbnail descriptor. Backend-independent."""

from pydantic import BaseModel


class ThumbnailDetails(BaseModel):
    """
    Points to one rendered preview size of a document. The bytes are fetched separately.
    """
    size: str
    url: str
    width: int | None = None
    height: int | None = None
    media_type: str | None = None
