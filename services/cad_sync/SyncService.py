"""Synchronisation service.

Fetches one document from the CAD service, merges it with the stored record through the
ReconciliationEngine, writes the result and pulls the preview thumbnail.
"""

from shared.clients.cad.CADClientInterface import CADClientInterface, select_main_workspace
from shared.errors.sync_errors import PartialDataLoss
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import SyncSettings
from shared.models.results import SyncResult
from shared.models.snapshot import FIELD_MAIN_WORKSPACE, FIELD_THUMBNAILS, FIELD_VERSIONS, RemoteSnapshot
from services.cad_sync.ReconciliationEngine import ReconciliationEngine
from services.cad_sync.ThumbnailMaterializer import ThumbnailMaterializer
from services.record_store.RecordStore import RecordStore


class SyncService:
    """Orchestrates the sync of single documents into the record store."""

    def __init__(
        self,
        helper_config: HelperConfig,
        settings: SyncSettings,
        cad_client: CADClientInterface,
        record_store: RecordStore,
        engine: ReconciliationEngine | None = None,
        materializer: ThumbnailMaterializer | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._cad_client = cad_client
        self._record_store = record_store
        self._engine = engine or ReconciliationEngine(helper_config=helper_config, settings=settings)
        self._materializer = materializer or ThumbnailMaterializer(
            helper_config=helper_config,
            cad_client=cad_client,
            images_dir=settings.images_dir,
            size=settings.thumbnail_size,
        )

    def get_record_store(self) -> RecordStore:
        return self._record_store

    ##########################################
    ############### CORE SYNC ################
    ##########################################

    async def do_sync_document(self, document_id: str) -> SyncResult:
        """Sync a single document.

        Args:
            document_id (str): The remote document id.

        Returns:
            SyncResult: Where the record went and which fields could not be refreshed.

        Raises:
            NotFound, Unauthorized, Forbidden, UpstreamUnavailable: If the document metadata cannot be fetched.
        """
        self.logging.info("Syncing document %s...", document_id)
        snapshot = await self.fetch_snapshot(document_id)

        prior = self._record_store.load(document_id)
        if prior is not None:
            self.logging.debug("Found existing record for '%s', merging changes", prior.title)

        record = self._engine.reconcile(snapshot, prior)
        record_path = self._record_store.save(document_id, record)

        # record and image fail independently: the record is already written at this point
        thumbnail_path = await self._materializer.materialize(document_id, snapshot.thumbnails)

        partial = sorted(snapshot.failed_fields)
        if partial:
            self.logging.warning("Synced '%s' to %s with missing fields: %s", record.title, record_path, ", ".join(partial))
        else:
            self.logging.info("Synced '%s' to %s", record.title, record_path, color="green")

        return SyncResult(
            document_id=document_id,
            title=record.title,
            record_path=record_path,
            partial_failures=partial,
            thumbnail_path=thumbnail_path,
        )

    ##########################################
    ################ FETCHING ################
    ##########################################

    async def fetch_snapshot(self, document_id: str) -> RemoteSnapshot:
        """Fetch everything known about a document.

        The metadata fetch must succeed. Workspaces, versions and thumbnails are each fetched in
        isolation: once the metadata is in, any failure of theirs (a 403 on a sub-resource included)
        is logged and leaves only that field empty.
        """
        document = await self._cad_client.do_fetch_document(document_id)
        self.logging.debug("Found document: %s", document.name)
        failed: set[str] = set()

        main_workspace_id: str | None = None
        try:
            main_workspace = select_main_workspace(await self._cad_client.do_fetch_workspaces(document_id))
            if main_workspace is not None:
                main_workspace_id = main_workspace.id
                self.logging.debug("Found main workspace: %s (%s)", main_workspace.name or "Main", main_workspace_id)
            else:
                self.logging.warning("No main workspace found for '%s'", document.name)
        except Exception as exc:
            self._report_partial(document_id, document.name, FIELD_MAIN_WORKSPACE, exc)
            failed.add(FIELD_MAIN_WORKSPACE)

        versions = []
        try:
            versions = await self._cad_client.do_fetch_versions(document_id)
        except Exception as exc:
            self._report_partial(document_id, document.name, FIELD_VERSIONS, exc)
            failed.add(FIELD_VERSIONS)

        thumbnails = []
        try:
            thumbnails = await self._cad_client.do_fetch_thumbnails(document_id)
        except Exception as exc:
            self._report_partial(document_id, document.name, FIELD_THUMBNAILS, exc)
            failed.add(FIELD_THUMBNAILS)

        return RemoteSnapshot(
            document=document,
            web_url=self._cad_client.get_document_web_url(document_id),
            main_workspace_id=main_workspace_id,
            versions=versions,
            thumbnails=thumbnails,
            failed_fields=failed,
        )

    def _report_partial(self, document_id: str, name: str, field: str, exc: Exception) -> None:
        self.logging.warning("'%s': %s", name, PartialDataLoss(document_id, field, exc))
