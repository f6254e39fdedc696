"""PDF generation for document records.

A record is poured into an HTML template (``templates/<name>.html`` plus an optional
``<name>.css``) and typeset with PyMuPDF. Each PDF gets a ``.pdf.json`` sidecar naming the
document it belongs to, which is how uploads find the right file again.
"""

import io
import json
from datetime import datetime, timezone
from html import escape
from pathlib import Path
from string import Template

import fitz

from shared.clients.cad.CADClientInterface import CADClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import SyncSettings
from shared.models.record import Author, DocumentRecord
from services.record_store.RecordStore import RecordStore, slugify, write_atomic

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
SIDECAR_SUFFIX = ".json"
PAGE_MARGIN = 42  # points


def sidecar_path(pdf_path: Path) -> Path:
    return pdf_path.with_name(pdf_path.name + SIDECAR_SUFFIX)


class PdfService:
    def __init__(
        self,
        helper_config: HelperConfig,
        settings: SyncSettings,
        record_store: RecordStore,
        cad_client: CADClientInterface | None = None,
        templates_dir: Path = TEMPLATES_DIR,
    ):
        self.logging = helper_config.get_logger()
        self._settings = settings
        self._record_store = record_store
        self._cad_client = cad_client
        self._templates_dir = Path(templates_dir)

    ##########################################
    ################ LOOKUP ##################
    ##########################################

    def list_templates(self) -> list[str]:
        return sorted(path.stem for path in self._templates_dir.glob("*.html"))

    def find_pdf(self, document_id: str) -> Path | None:
        """Find the generated PDF of a document through the sidecars in the PDF directory."""
        pdf_dir = self._settings.pdf_dir
        if not pdf_dir.is_dir():
            return None
        for meta_path in sorted(pdf_dir.glob(f"*.pdf{SIDECAR_SUFFIX}")):
            try:
                meta = json.loads(meta_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                self.logging.warning("Ignoring unreadable PDF sidecar %s: %s", meta_path, exc)
                continue
            if meta.get("documentId") == document_id:
                pdf_path = meta_path.with_name(meta_path.name[: -len(SIDECAR_SUFFIX)])
                if pdf_path.is_file():
                    return pdf_path
        return None

    def default_output_path(self, document_id: str, record: DocumentRecord) -> Path:
        """Reuse the PDF already generated for this document, else name it after the record file."""
        existing = self.find_pdf(document_id)
        if existing is not None:
            return existing
        record_path = self._record_store.find_path(document_id)
        stem = record_path.stem if record_path is not None else (slugify(record.title) or document_id)
        return self._settings.pdf_dir / f"{stem}.pdf"

    ##########################################
    ############### GENERATION ###############
    ##########################################

    async def do_generate(self, document_id: str, template: str | None = None, output: Path | None = None) -> Path:
        """Generate the PDF for one document.

        The stored record is used when present. Without one, a minimal record is built from a
        fresh metadata fetch.

        Raises:
            FileNotFoundError: If the template does not exist.
            RuntimeError: If there is no stored record and no CAD client to fetch one.
        """
        template = template or self._settings.default_template
        record = self._record_store.load(document_id)
        if record is None:
            self.logging.info("No synced record for %s, fetching metadata from the API", document_id)
            record = await self._fetch_minimal_record(document_id)

        output_path = Path(output) if output else self.default_output_path(document_id, record)
        self.render(record, template, output_path)
        return output_path

    async def _fetch_minimal_record(self, document_id: str) -> DocumentRecord:
        if self._cad_client is None:
            raise RuntimeError(f"No synced record for document {document_id} and no CAD client to fetch it.")
        document = await self._cad_client.do_fetch_document(document_id)
        record = DocumentRecord(
            document_id=document_id,
            title=document.name,
            description=document.description,
            onshape_url=self._cad_client.get_document_web_url(document_id),
            created_at=document.created_at,
        )
        record.user_data.author = Author(**self._settings.author.model_dump())
        return record

    def render(self, record: DocumentRecord, template: str, output_path: Path) -> Path:
        """Typeset a record into output_path and write its sidecar."""
        html_path = self._templates_dir / f"{template}.html"
        if not html_path.is_file():
            raise FileNotFoundError(f"Template not found: {html_path}. Available: {', '.join(self.list_templates()) or 'none'}")
        css_path = self._templates_dir / f"{template}.css"
        css = css_path.read_text(encoding="utf-8") if css_path.is_file() else ""

        thumbnail = self._settings.images_dir / f"{record.document_id}-{self._settings.thumbnail_size}.png"
        html = Template(html_path.read_text(encoding="utf-8")).safe_substitute(
            self._template_values(record, thumbnail if thumbnail.is_file() else None)
        )

        self.logging.info("Rendering PDF for '%s' with template %s", record.title, template)
        payload = self._typeset(html, css, thumbnail.parent)
        write_atomic(output_path, payload)

        meta = {
            "documentId": record.document_id,
            "title": record.title,
            "template": template,
            "generatedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        write_atomic(sidecar_path(output_path), (json.dumps(meta, indent=2) + "\n").encode("utf-8"))
        self.logging.info("PDF generated: %s", output_path, color="green")
        return output_path

    def _typeset(self, html: str, css: str, archive_dir: Path) -> bytes:
        archive = fitz.Archive(str(archive_dir)) if archive_dir.is_dir() else None
        story = fitz.Story(html=html, user_css=css, archive=archive)
        buffer = io.BytesIO()
        writer = fitz.DocumentWriter(buffer)
        mediabox = fitz.paper_rect("a4")
        where = mediabox + (PAGE_MARGIN, PAGE_MARGIN, -PAGE_MARGIN, -PAGE_MARGIN)
        more = True
        while more:
            device = writer.begin_page(mediabox)
            more, _ = story.place(where)
            story.draw(device)
            writer.end_page()
        writer.close()
        return buffer.getvalue()

    def _template_values(self, record: DocumentRecord, thumbnail: Path | None) -> dict[str, str]:
        author = record.user_data.author or Author(**self._settings.author.model_dump())
        if record.versions:
            rows = "".join(
                f"<tr><td>{escape(v.name)}</td><td>{escape(v.created_at.date().isoformat()) if v.created_at else ''}</td><td>{escape(v.description)}</td></tr>"
                for v in record.versions
            )
            versions_html = f"<table><tr><th>Version</th><th>Date</th><th>Notes</th></tr>{rows}</table>"
        else:
            versions_html = "<p>No released versions.</p>"
        return {
            "title": escape(record.title),
            "description": escape(record.description) or "-",
            "document_id": escape(record.document_id),
            "onshape_url": escape(record.onshape_url or ""),
            "created_at": escape(record.created_at.date().isoformat()) if record.created_at else "unknown",
            "labels_html": escape(", ".join(record.labels)) or "None",
            "versions_html": versions_html,
            "thumbnail_html": f'<img src="{escape(thumbnail.name)}" width="400"/>' if thumbnail else "",
            "author_name": escape(author.name),
            "author_email": escape(author.email),
            "author_website": escape(author.website),
            "generated_at": datetime.now(timezone.utc).strftime("%Y-%m-%d"),
        }
