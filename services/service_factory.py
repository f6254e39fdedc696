"""Wires the services together for one CAD client."""

from shared.clients.cad.CADClientInterface import CADClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import SyncSettings
from services.cad_sync.BatchService import BatchService
from services.cad_sync.SyncService import SyncService
from services.gallery.GalleryService import GalleryService
from services.pdf.PdfService import PdfService
from services.record_store.RecordStore import RecordStore
from services.upload.UploadService import UploadService


class Services:
    def __init__(self, helper_config: HelperConfig, cad_client: CADClientInterface, settings: SyncSettings | None = None):
        self.settings = settings or helper_config.get_sync_settings()
        self.cad_client = cad_client
        self.record_store = RecordStore(helper_config=helper_config, content_dir=self.settings.content_dir)
        self.sync_service = SyncService(
            helper_config=helper_config,
            settings=self.settings,
            cad_client=cad_client,
            record_store=self.record_store,
        )
        self.pdf_service = PdfService(
            helper_config=helper_config,
            settings=self.settings,
            record_store=self.record_store,
            cad_client=cad_client,
        )
        self.upload_service = UploadService(
            helper_config=helper_config,
            cad_client=cad_client,
            record_store=self.record_store,
            pdf_service=self.pdf_service,
        )
        self.batch_service = BatchService(
            helper_config=helper_config,
            settings=self.settings,
            cad_client=cad_client,
            sync_service=self.sync_service,
            pdf_service=self.pdf_service,
            upload_service=self.upload_service,
        )
        self.gallery_service = GalleryService(
            helper_config=helper_config,
            settings=self.settings,
            record_store=self.record_store,
            pdf_service=self.pdf_service,
        )
