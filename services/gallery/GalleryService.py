"""Static HTML gallery of all stored records."""

import os
from datetime import datetime, timezone
from html import escape
from pathlib import Path
from string import Template

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import SyncSettings
from shared.models.record import DocumentRecord
from services.pdf.PdfService import PdfService
from services.record_store.RecordStore import RecordStore, write_atomic

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
PAGES_DIR_NAME = "documents"


class GalleryService:
    def __init__(
        self,
        helper_config: HelperConfig,
        settings: SyncSettings,
        record_store: RecordStore,
        pdf_service: PdfService | None = None,
        templates_dir: Path = TEMPLATES_DIR,
        site_title: str = "CAD Documents",
    ):
        self.logging = helper_config.get_logger()
        self._settings = settings
        self._record_store = record_store
        self._pdf_service = pdf_service
        self._templates_dir = Path(templates_dir)
        self._site_title = site_title

    def _load_template(self, name: str) -> Template:
        return Template((self._templates_dir / f"{name}.html").read_text(encoding="utf-8"))

    def do_render(self) -> Path:
        """Render the index and one page per record into the gallery directory.

        Returns:
            Path: The written index file.
        """
        out_dir = self._settings.gallery_dir
        pages_dir = out_dir / PAGES_DIR_NAME
        index_tpl = self._load_template("index")
        card_tpl = self._load_template("card")
        page_tpl = self._load_template("document")

        entries = sorted(self._record_store.list_with_paths(), key=lambda item: item[1].title.lower())
        cards = []
        for record_path, record in entries:
            page_path = pages_dir / f"{record_path.stem}.html"
            page_html = page_tpl.safe_substitute(self._page_values(record, page_path.parent))
            write_atomic(page_path, page_html.encode("utf-8"))
            cards.append(card_tpl.safe_substitute(
                self._card_values(record, out_dir),
                page_href=f"{PAGES_DIR_NAME}/{escape(page_path.name)}",
            ))

        index_path = out_dir / "index.html"
        index_html = index_tpl.safe_substitute(
            site_title=escape(self._site_title),
            count=str(len(entries)),
            generated_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
            cards="\n".join(cards),
        )
        write_atomic(index_path, index_html.encode("utf-8"))
        self.logging.info("Gallery with %d documents written to %s", len(entries), index_path, color="green")
        return index_path

    ##########################################
    ################ VALUES ##################
    ##########################################

    def _relative(self, target: Path, from_dir: Path) -> str:
        return Path(os.path.relpath(target, from_dir)).as_posix()

    def _thumbnail_html(self, record: DocumentRecord, from_dir: Path) -> str:
        image = self._settings.images_dir / f"{record.document_id}-{self._settings.thumbnail_size}.png"
        if not image.is_file():
            return ""
        return f'<img src="{escape(self._relative(image, from_dir))}" alt="{escape(record.title)}">'

    def _pdf_link(self, record: DocumentRecord, from_dir: Path) -> str:
        if self._pdf_service is None:
            return ""
        pdf_path = self._pdf_service.find_pdf(record.document_id)
        if pdf_path is None:
            return ""
        return f' | <a href="{escape(self._relative(pdf_path, from_dir))}">PDF</a>'

    def _card_values(self, record: DocumentRecord, from_dir: Path) -> dict[str, str]:
        return {
            "title": escape(record.title),
            "thumbnail_html": self._thumbnail_html(record, from_dir),
            "labels_html": " ".join(f'<span class="label">{escape(label)}</span>' for label in record.labels),
            "labels_attr": escape(",".join(record.labels)),
            "onshape_url": escape(record.onshape_url or ""),
            "pdf_link": self._pdf_link(record, from_dir),
        }

    def _page_values(self, record: DocumentRecord, from_dir: Path) -> dict[str, str]:
        if record.versions:
            items = "".join(f"<li>{escape(v.name)}{': ' + escape(v.description) if v.description else ''}</li>" for v in record.versions)
            versions_html = f"<h2>Versions</h2><ul>{items}</ul>"
        else:
            versions_html = ""
        author = record.user_data.author
        return {
            "title": escape(record.title),
            "thumbnail_html": self._thumbnail_html(record, from_dir),
            "description": escape(record.description),
            "labels_html": escape(", ".join(record.labels)),
            "versions_html": versions_html,
            "author_name": escape(author.name if author else self._settings.author.name),
            "onshape_url": escape(record.onshape_url or ""),
            "pdf_link": self._pdf_link(record, from_dir),
        }
