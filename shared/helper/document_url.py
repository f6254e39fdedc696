"""Parsing of browser URLs pointing at remote CAD documents."""

from urllib.parse import urlparse

from pydantic import BaseModel

_SEGMENT_FIELDS = {"w": "workspace_id", "v": "version_id", "m": "microversion_id", "e": "element_id"}


class ParsedDocumentUrl(BaseModel):
    document_id: str
    workspace_id: str | None = None
    version_id: str | None = None
    microversion_id: str | None = None
    element_id: str | None = None


def parse_document_url(url: str) -> ParsedDocumentUrl:
    """Extract ids from a URL like https://cad.onshape.com/documents/{did}/w/{wid}/e/{eid}.

    Raises:
        ValueError: If the path does not start with /documents/{id}.
    """
    parts = [part for part in urlparse(url).path.split("/") if part]
    if len(parts) < 2 or parts[0] != "documents":
        raise ValueError(f"Not a document URL: '{url}'")
    result = ParsedDocumentUrl(document_id=parts[1])
    for index in range(2, len(parts) - 1, 2):
        field = _SEGMENT_FIELDS.get(parts[index])
        if field:
            setattr(result, field, parts[index + 1])
    return result


def resolve_document_id(value: str) -> str:
    """Accept either a bare document id or a document URL and return the id."""
    value = value.strip()
    if value.startswith("http://") or value.startswith("https://"):
        return parse_document_url(value).document_id
    return value
