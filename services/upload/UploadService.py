"""Upload of generated PDFs back into their CAD documents."""

from pathlib import Path

from shared.clients.cad.CADClientInterface import CADClientInterface
from shared.clients.cad.models.BlobElement import BlobElementDetails
from shared.helper.HelperConfig import HelperConfig
from services.pdf.PdfService import PdfService
from services.record_store.RecordStore import RecordStore


class UploadService:
    def __init__(self, helper_config: HelperConfig, cad_client: CADClientInterface, record_store: RecordStore, pdf_service: PdfService):
        self.logging = helper_config.get_logger()
        self._cad_client = cad_client
        self._record_store = record_store
        self._pdf_service = pdf_service

    async def do_upload(self, document_id: str, pdf_path: Path | None = None, workspace_id: str | None = None) -> BlobElementDetails:
        """Upload the PDF of a document, updating the previously uploaded element if there is one.

        Args:
            document_id (str): The remote document id.
            pdf_path (Path | None): The file to upload. Defaults to the PDF generated for this document.
            workspace_id (str | None): Target workspace. Defaults to the main workspace stored in the record.

        Returns:
            BlobElementDetails: The created or updated element.

        Raises:
            FileNotFoundError: If there is no PDF to upload.
            ValueError: If no workspace can be determined.
        """
        record = self._record_store.load(document_id)
        if record is None:
            self.logging.warning("No synced record for %s; element id will not be stored", document_id)

        if pdf_path is None:
            pdf_path = self._pdf_service.find_pdf(document_id)
            if pdf_path is None:
                raise FileNotFoundError(f"No generated PDF found for document {document_id}. Run generate first.")
        pdf_path = Path(pdf_path)
        if not pdf_path.is_file():
            raise FileNotFoundError(f"PDF file not found: {pdf_path}")

        if not workspace_id and record is not None and record.main_workspace_id:
            workspace_id = record.main_workspace_id
            self.logging.debug("Using main workspace from synced data: %s", workspace_id)
        if not workspace_id:
            raise ValueError("Workspace ID is required. Pass one explicitly or sync the document first to store its main workspace.")

        pdf_bytes = pdf_path.read_bytes()
        display_name = record.title if record is not None else None
        existing_element_id = record.user_data.pdf_element_id if record is not None else None
        self.logging.info("Uploading %s (%.2f MB) to document %s", pdf_path.name, len(pdf_bytes) / 1024 / 1024, document_id)

        if existing_element_id:
            self.logging.info("Updating existing PDF element %s", existing_element_id)
            element = await self._cad_client.do_update_blob(document_id, workspace_id, existing_element_id, pdf_bytes, pdf_path.name, display_name)
        else:
            element = await self._cad_client.do_upload_blob(document_id, workspace_id, pdf_bytes, pdf_path.name, display_name)
            if record is not None and element.id:
                # re-read so a sync that ran in between is not overwritten with stale data
                current = self._record_store.load(document_id) or record
                current.user_data.pdf_element_id = element.id
                self._record_store.save(document_id, current)
                self.logging.info("Stored PDF element id %s for future updates", element.id)

        self.logging.info("PDF uploaded: element %s (%s)", element.id, element.name or pdf_path.name, color="green")
        return element
