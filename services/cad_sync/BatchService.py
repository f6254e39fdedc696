"""Batch processing of many documents.

Documents are selected through the CAD listing API and processed strictly one after another:
sync, then optionally PDF generation and upload. A failing document is logged and counted,
and the batch moves on. Rejected credentials stop the whole batch, since every further
request would fail the same way.
"""

import asyncio
from typing import Awaitable, Callable

from shared.clients.cad.CADClientInterface import CADClientInterface
from shared.clients.cad.models.Document import DocumentBase
from shared.errors.sync_errors import Unauthorized
from shared.helper.HelperConfig import HelperConfig
from shared.models.batch import BatchCriteria
from shared.models.config import SyncSettings
from shared.models.results import BatchFailure, BatchSummary
from services.cad_sync.SyncService import SyncService
from services.pdf.PdfService import PdfService
from services.upload.UploadService import UploadService


class BatchService:
    def __init__(
        self,
        helper_config: HelperConfig,
        settings: SyncSettings,
        cad_client: CADClientInterface,
        sync_service: SyncService,
        pdf_service: PdfService | None = None,
        upload_service: UploadService | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._settings = settings
        self._cad_client = cad_client
        self._sync_service = sync_service
        self._pdf_service = pdf_service
        self._upload_service = upload_service
        self._sleep = sleep

    ##########################################
    ############### SELECTION ################
    ##########################################

    async def select(self, criteria: BatchCriteria) -> list[DocumentBase]:
        """Enumerate the remote documents matching the criteria.

        Returns:
            list[DocumentBase]: Candidates in listing order.
        """
        query = criteria.to_list_query()
        if criteria.label:
            return await self._cad_client.do_fetch_documents_by_label(criteria.label, query)
        if criteria.all_pages:
            return await self._cad_client.do_fetch_all_documents(query)
        page = await self._cad_client.do_fetch_documents_page(query)
        if page.has_next():
            self.logging.info("More results available, use all pages to fetch them")
        return page.documents

    ##########################################
    ################# SYNC ###################
    ##########################################

    async def run_sync(
        self,
        criteria: BatchCriteria,
        generate_pdf: bool = False,
        upload: bool = False,
        template: str | None = None,
    ) -> BatchSummary:
        """Sync every selected document, optionally generating and uploading its PDF.

        Generation and upload failures are recorded in the summary but do not count the
        document as failed, its record has been written already.

        Raises:
            Unauthorized: As soon as any request is rejected for bad credentials.
        """
        self.logging.info("Starting bulk sync for documents with %s", criteria.describe())
        documents = await self._select_or_abort(criteria)
        summary = BatchSummary()
        if not documents:
            self.logging.warning("No documents found matching the criteria")
            return summary

        uploads_done = 0
        total = len(documents)
        for index, doc in enumerate(documents, start=1):
            self.logging.info("[%d/%d] Processing: %s", index, total, doc.name)
            summary.processed += 1
            try:
                await self._sync_service.do_sync_document(doc.id)
            except Unauthorized as exc:
                self._log_auth_abort(exc)
                raise
            except Exception as exc:
                self.logging.error("Error syncing '%s': %s", doc.name, exc)
                summary.failed += 1
                summary.failures.append(BatchFailure(document_id=doc.id, name=doc.name, step="sync", reason=str(exc)))
                continue
            summary.succeeded += 1

            pdf_ready = False
            if generate_pdf and self._pdf_service is not None:
                pdf_ready = await self._run_step(summary, doc, "generate", self._pdf_service.do_generate(doc.id, template=template))

            if upload and self._upload_service is not None and (pdf_ready or not generate_pdf):
                if uploads_done:
                    await self._sleep(self._settings.upload_delay_seconds)
                if await self._run_step(summary, doc, "upload", self._upload_service.do_upload(doc.id)):
                    uploads_done += 1

        self._log_summary("Bulk sync", summary)
        return summary

    ##########################################
    ############## GENERATE ##################
    ##########################################

    async def run_generate(self, criteria: BatchCriteria, template: str | None = None) -> BatchSummary:
        """Generate PDFs for every selected document."""
        if self._pdf_service is None:
            raise RuntimeError("Bulk generate needs a PDF service.")
        self.logging.info("Generating PDFs for documents with %s", criteria.describe())
        documents = await self._select_or_abort(criteria)
        summary = BatchSummary()
        total = len(documents)
        for index, doc in enumerate(documents, start=1):
            self.logging.info("[%d/%d] Generating PDF for: %s", index, total, doc.name)
            summary.processed += 1
            if await self._run_step(summary, doc, "generate", self._pdf_service.do_generate(doc.id, template=template)):
                summary.succeeded += 1
            else:
                summary.failed += 1
        self._log_summary("Bulk PDF generation", summary)
        return summary

    ##########################################
    ################ UPLOAD ##################
    ##########################################

    async def run_upload(self, criteria: BatchCriteria, workspace_id: str | None = None) -> BatchSummary:
        """Upload the generated PDFs of all stored records matching the label and query.

        Works from the local record store, so no listing request is made. Records with
        ``userData.skipPdfUpload`` set, or without a generated PDF, are skipped.
        """
        if self._upload_service is None or self._pdf_service is None:
            raise RuntimeError("Bulk upload needs PDF and upload services.")
        self.logging.info("Uploading PDFs for documents with %s", criteria.describe())
        summary = BatchSummary()
        records = self._sync_service.get_record_store().list_all()
        if not records:
            self.logging.warning("No document records found. Run sync first.")
            return summary

        uploads_done = 0
        for record in records:
            if criteria.label and criteria.label not in record.labels:
                continue
            if criteria.query and criteria.query.lower() not in record.title.lower():
                continue
            summary.processed += 1
            doc = DocumentBase(engine=self._cad_client.get_engine_name(), id=record.document_id, name=record.title)

            if record.user_data.get_extra().get("skipPdfUpload") is True:
                self.logging.info("Skipping '%s': PDF upload disabled (skipPdfUpload)", record.title)
                summary.skipped += 1
                continue
            pdf_path = self._pdf_service.find_pdf(record.document_id)
            if pdf_path is None:
                self.logging.info("Skipping '%s': no generated PDF", record.title)
                summary.skipped += 1
                continue

            if uploads_done:
                self.logging.debug("Waiting %.1fs before next upload", self._settings.upload_delay_seconds)
                await self._sleep(self._settings.upload_delay_seconds)
            if await self._run_step(summary, doc, "upload", self._upload_service.do_upload(record.document_id, pdf_path=pdf_path, workspace_id=workspace_id)):
                summary.succeeded += 1
                uploads_done += 1
            else:
                summary.failed += 1

        self._log_summary("Bulk upload", summary)
        return summary

    ##########################################
    ################ HELPERS #################
    ##########################################

    async def _select_or_abort(self, criteria: BatchCriteria) -> list[DocumentBase]:
        try:
            return await self.select(criteria)
        except Unauthorized as exc:
            self._log_auth_abort(exc)
            raise

    async def _run_step(self, summary: BatchSummary, doc: DocumentBase, step: str, action: Awaitable) -> bool:
        """Await one chained step; failures other than Unauthorized are logged and recorded."""
        try:
            await action
            return True
        except Unauthorized as exc:
            self._log_auth_abort(exc)
            raise
        except Exception as exc:
            self.logging.error("Error in %s for '%s': %s", step, doc.name, exc)
            summary.failures.append(BatchFailure(document_id=doc.id, name=doc.name, step=step, reason=str(exc)))
            return False

    def _log_auth_abort(self, exc: Exception) -> None:
        self.logging.critical("Credentials were rejected (%s). Aborting batch, check CAD_ONSHAPE_ACCESS_KEY and CAD_ONSHAPE_SECRET_KEY.", exc)

    def _log_summary(self, label: str, summary: BatchSummary) -> None:
        self.logging.info(
            "%s complete: %d processed, %d succeeded, %d failed, %d skipped.",
            label, summary.processed, summary.succeeded, summary.failed, summary.skipped,
            color="green" if summary.is_success() else "yellow",
        )
        for failure in summary.failures:
            self.logging.warning("  %s failed for '%s' (%s): %s", failure.step, failure.name, failure.document_id, failure.reason)
