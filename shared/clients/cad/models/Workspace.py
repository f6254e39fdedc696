"""Generic CAD workspace model. Backend-independent."""

from pydantic import BaseModel


class WorkspaceDetails(BaseModel):
    """
    Represents a mutable editing branch of a document.
    """
    engine: str
    id: str
    name: str | None = None
    is_main: bool = False
    type: str | None = None
