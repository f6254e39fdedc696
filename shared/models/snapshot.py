from pydantic import BaseModel

from shared.clients.cad.models.Document import DocumentDetails
from shared.clients.cad.models.Thumbnail import ThumbnailDetails
from shared.clients.cad.models.Version import VersionDetails

FIELD_MAIN_WORKSPACE = "mainWorkspaceId"
FIELD_VERSIONS = "versions"
FIELD_THUMBNAILS = "thumbnails"


class RemoteSnapshot(BaseModel):
    """
    Everything fetched for one document in the current run.

    Metadata is mandatory. Workspaces, versions and thumbnails are fetched independently;
    a failed fetch leaves its value empty and records the field name in failed_fields.
    """
    document: DocumentDetails
    web_url: str | None = None
    main_workspace_id: str | None = None
    versions: list[VersionDetails] = []
    thumbnails: list[ThumbnailDetails] = []
    failed_fields: set[str] = set()

    def has_failed(self, field: str) -> bool:
        return field in self.failed_fields
