"""Reconciliation of a fresh remote snapshot with the previously stored record.

API-owned fields are taken from the snapshot. Labels are the union of remote labels and the
labels the user added locally. userData is carried over key by key: recognised keys are copied,
unknown keys pass through untouched, and unknown top-level keys of older records move into it.
"""

from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import SyncSettings
from shared.models.record import (
    Author,
    DocumentRecord,
    RECORD_KEYS,
    ThumbnailEntry,
    UserData,
    VersionEntry,
)
from shared.models.snapshot import FIELD_MAIN_WORKSPACE, FIELD_THUMBNAILS, FIELD_VERSIONS, RemoteSnapshot
from shared.clients.cad.models.Thumbnail import ThumbnailDetails
from shared.clients.cad.models.Version import VersionDetails

INITIAL_VERSION_NAME = "Start"


def merge_labels(remote_labels: list[str], user_labels: list[str]) -> list[str]:
    """Union of both lists in first-occurrence order, remote labels first."""
    merged: list[str] = []
    for label in [*remote_labels, *user_labels]:
        if label and label not in merged:
            merged.append(label)
    return merged


def normalize_versions(versions: list[VersionDetails]) -> list[VersionEntry]:
    """Drop the initial "Start" revision and map the rest to record entries."""
    return [
        VersionEntry(
            id=version.id,
            name=version.name,
            description=version.description or "",
            created_at=version.created_at,
            microversion=version.microversion or "",
        )
        for version in versions
        if version.name != INITIAL_VERSION_NAME
    ]


def normalize_thumbnails(thumbnails: list[ThumbnailDetails]) -> list[ThumbnailEntry]:
    return [
        ThumbnailEntry(
            size=thumbnail.size,
            url=thumbnail.url,
            width=thumbnail.width,
            height=thumbnail.height,
            media_type=thumbnail.media_type,
        )
        for thumbnail in thumbnails
    ]


class ReconciliationEngine:
    """Produces the record to persist from a remote snapshot and the prior record."""

    def __init__(self, helper_config: HelperConfig, settings: SyncSettings):
        self.logging = helper_config.get_logger()
        self._settings = settings

    ##########################################
    ################ MERGE ###################
    ##########################################

    def reconcile(self, snapshot: RemoteSnapshot, prior: DocumentRecord | None = None) -> DocumentRecord:
        """Merge a fresh snapshot with the prior record of the same document.

        Args:
            snapshot (RemoteSnapshot): Data fetched in this run. Fields listed in failed_fields are empty.
            prior (DocumentRecord | None): The stored record, or None on first sync.

        Returns:
            DocumentRecord: The complete record to persist.

        Raises:
            ValueError: If prior belongs to a different document.
        """
        document = snapshot.document
        if prior is not None and prior.document_id != document.id:
            raise ValueError(f"Prior record belongs to '{prior.document_id}', not '{document.id}'.")

        user_data = self._merge_user_data(prior)
        labels = merge_labels(document.get_label_names(), user_data.labels)

        return DocumentRecord(
            document_id=document.id,
            title=document.name,
            description=document.description or "",
            onshape_url=snapshot.web_url,
            main_workspace_id=self._pick(snapshot, prior, FIELD_MAIN_WORKSPACE, snapshot.main_workspace_id, "main_workspace_id"),
            created_at=document.created_at,
            versions=self._pick(snapshot, prior, FIELD_VERSIONS, normalize_versions(snapshot.versions), "versions"),
            thumbnails=self._pick(snapshot, prior, FIELD_THUMBNAILS, normalize_thumbnails(snapshot.thumbnails), "thumbnails"),
            labels=labels,
            user_data=user_data,
        )

    def _pick(self, snapshot: RemoteSnapshot, prior: DocumentRecord | None, field: str, fresh: Any, attribute: str) -> Any:
        """Return the fresh value, or for a failed fetch the empty value (or the prior value if so configured)."""
        if not snapshot.has_failed(field):
            return fresh
        if self._settings.keep_prior_on_error and prior is not None:
            self.logging.info("Keeping previously stored '%s' for '%s' after failed fetch", field, snapshot.document.name)
            return getattr(prior, attribute)
        return fresh

    def _merge_user_data(self, prior: DocumentRecord | None) -> UserData:
        if prior is None:
            return UserData(author=Author(**self._settings.author.model_dump()))

        prior_user = prior.user_data
        legacy = prior.get_extra()

        author = prior_user.author
        legacy_author = legacy.get("author")
        if isinstance(legacy_author, str) and legacy_author.strip():
            legacy_author = {"name": legacy_author}
        if author is None and isinstance(legacy_author, dict):
            author = Author.model_validate(legacy_author)
        if author is None:
            author = Author(**self._settings.author.model_dump())

        merged: dict[str, Any] = {
            "workspaceId": prior_user.workspace_id or legacy.get("workspaceId"),
            "elementId": prior_user.element_id or legacy.get("elementId"),
            "pdfElementId": prior_user.pdf_element_id,
            "author": author,
            "labels": list(prior_user.labels),
        }

        # unknown userData keys pass through unchanged
        merged.update(prior_user.get_extra())

        # unknown top-level keys of older records move into userData without overwriting it
        for key, value in legacy.items():
            if key in RECORD_KEYS:
                continue
            if key in merged:
                self.logging.warning("Top-level key '%s' of '%s' is also in userData, keeping the userData value", key, prior.title)
                continue
            self.logging.debug("Moving top-level key '%s' of '%s' into userData", key, prior.title)
            merged[key] = value

        return UserData.model_validate(merged)
