"""Generic CAD version model. Backend-independent."""

from datetime import datetime
from pydantic import BaseModel


class VersionDetails(BaseModel):
    """
    Represents an immutable named snapshot of a document.
    """
    engine: str
    id: str
    name: str
    description: str = ""
    created_at: datetime | None = None
    microversion: str = ""
