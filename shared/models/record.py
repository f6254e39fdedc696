"""Locally persisted document record.

One record per remote document. Field names are persisted in camelCase.
API-owned fields are refreshed on every sync, ``userData`` belongs to the user and
keeps any key it does not know about.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

RECORD_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# top-level keys that are never migrated into userData
RECORD_KEYS = frozenset({
    "documentId", "title", "description", "createdAt", "versions", "thumbnails",
    "labels", "userData", "onshapeUrl", "mainWorkspaceId",
    # legacy top-level keys, folded into the matching userData fields
    "workspaceId", "elementId", "author",
})


def label_name(label: Any) -> str | None:
    """Reduce a stored label (plain string or {"name": ...} object) to its name."""
    if isinstance(label, str):
        return label or None
    if isinstance(label, dict):
        name = label.get("name")
        return name if isinstance(name, str) and name else None
    return None


def label_names(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, (str, dict)):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    names = [label_name(label) for label in value]
    return [name for name in names if name]


class Author(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = "Unknown"
    email: str = ""
    website: str = ""


class VersionEntry(BaseModel):
    model_config = RECORD_MODEL_CONFIG

    id: str
    name: str
    description: str = ""
    created_at: datetime | None = None
    microversion: str = ""


class ThumbnailEntry(BaseModel):
    model_config = RECORD_MODEL_CONFIG

    size: str
    url: str
    width: int | None = None
    height: int | None = None
    media_type: str | None = None


class StoredModel(BaseModel):
    """
    Base for models read from record files.

    Parsing matches camelCase keys only, so a stored key spelled like a Python field name
    (``pdf_element_id``) stays an unknown key. Keyword construction in code may use the
    Python field names.
    """
    model_config = ConfigDict(alias_generator=to_camel, extra="allow")

    def __init__(self, /, **data: Any) -> None:
        fields = type(self).model_fields
        super().__init__(**{
            (fields[key].alias or key) if key in fields else key: value
            for key, value in data.items()
        })

    def get_extra(self) -> dict[str, Any]:
        """Return the passthrough keys in insertion order."""
        return dict(self.model_extra or {})


class UserData(StoredModel):
    """
    User-owned part of a record. Unknown keys are kept in ``model_extra`` under their original names.
    """

    workspace_id: str | None = None
    element_id: str | None = None
    pdf_element_id: str | None = None
    author: Author | None = None
    labels: list[str] = []

    @field_validator("labels", mode="before")
    @classmethod
    def _normalize_labels(cls, value: Any) -> list[str]:
        return label_names(value)

    @field_validator("author", mode="before")
    @classmethod
    def _coerce_author(cls, value: Any) -> Any:
        # hand-edited records sometimes carry just the name
        if isinstance(value, str):
            return {"name": value} if value.strip() else None
        return value

    @field_validator("workspace_id", "element_id", "pdf_element_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class DocumentRecord(StoredModel):
    """
    Unknown top-level keys are kept in ``model_extra`` so a sync can migrate them into userData.
    """

    document_id: str
    title: str
    description: str = ""
    onshape_url: str | None = None
    main_workspace_id: str | None = None
    created_at: datetime | None = None
    versions: list[VersionEntry] = []
    thumbnails: list[ThumbnailEntry] = []
    labels: list[str] = []
    user_data: UserData = Field(default_factory=UserData)

    @field_validator("labels", mode="before")
    @classmethod
    def _normalize_labels(cls, value: Any) -> list[str]:
        return label_names(value)

    def to_storage_dict(self) -> dict[str, Any]:
        """Serialise for the record file.

        Declared optional fields that are None are omitted. Passthrough values are kept
        exactly as stored, including nulls.
        """
        data = self.model_dump(mode="json", by_alias=True)
        _drop_none(data, ("onshapeUrl", "mainWorkspaceId", "createdAt"))
        _drop_none(data["userData"], ("workspaceId", "elementId", "pdfElementId", "author"))
        for version in data["versions"]:
            _drop_none(version, ("createdAt",))
        for thumbnail in data["thumbnails"]:
            _drop_none(thumbnail, ("width", "height", "mediaType"))
        return data


def _drop_none(data: dict, keys: tuple[str, ...]) -> None:
    for key in keys:
        if key in data and data[key] is None:
            del data[key]
