"""Local record store.

One JSON file per document in the content directory. Files are named after a slug of the
title, but records are always looked up by the ``documentId`` stored inside the file, so a
renamed document keeps its file and two titles that slugify alike never share one.
"""

import json
import os
import re
import tempfile
from pathlib import Path

from pydantic import ValidationError

from shared.errors.sync_errors import LocalStoreCorrupt
from shared.helper.HelperConfig import HelperConfig
from shared.models.record import DocumentRecord

_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^a-z0-9-]")
COLLISION_SUFFIX_LENGTH = 8


def slugify(title: str) -> str:
    """Derive a filesystem-safe name: lowercase, whitespace runs to one hyphen, drop anything outside [a-z0-9-]."""
    slug = _WHITESPACE.sub("-", title.lower())
    return _UNSAFE.sub("", slug)


def write_atomic(path: Path, payload: bytes) -> None:
    """Write bytes through a temporary file in the same directory, then rename over the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class RecordStore:
    """Reads and writes document records in a content directory."""

    def __init__(self, helper_config: HelperConfig, content_dir: Path):
        self.logging = helper_config.get_logger()
        self._content_dir = Path(content_dir)

    def get_content_dir(self) -> Path:
        return self._content_dir

    ##########################################
    ################ LOOKUP ##################
    ##########################################

    def _iter_record_files(self) -> list[Path]:
        if not self._content_dir.is_dir():
            return []
        return sorted(self._content_dir.glob("*.json"))

    def _read_file(self, path: Path) -> DocumentRecord | None:
        """Parse one record file. Unreadable or invalid files are reported and skipped."""
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError("record root is not an object")
            return DocumentRecord.model_validate(raw)
        except (OSError, ValueError, ValidationError) as exc:
            self.logging.warning("%s. Treating it as absent.", LocalStoreCorrupt(str(path), exc))
            return None

    def _peek_document_id(self, path: Path) -> str | None:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            self.logging.warning("%s. Ignoring it.", LocalStoreCorrupt(str(path), exc))
            return None
        return raw.get("documentId") if isinstance(raw, dict) else None

    def find_path(self, document_id: str) -> Path | None:
        """Return the file currently holding the record for document_id, if any."""
        for path in self._iter_record_files():
            if self._peek_document_id(path) == document_id:
                return path
        return None

    def path_for(self, document_id: str, title: str) -> Path:
        """Return the file a record should be written to.

        An existing file for the same document wins. Otherwise the title slug is used, suffixed
        with the start of the document id if that name already belongs to another document.
        """
        existing = self.find_path(document_id)
        if existing is not None:
            return existing
        slug = slugify(title) or document_id
        candidate = self._content_dir / f"{slug}.json"
        owner = self._peek_document_id(candidate) if candidate.exists() else None
        if owner is not None and owner != document_id:
            candidate = self._content_dir / f"{slug}-{document_id[:COLLISION_SUFFIX_LENGTH]}.json"
            self.logging.warning("Title '%s' collides with another record, storing document %s as %s", title, document_id, candidate.name)
        return candidate

    ##########################################
    ############### LOAD / SAVE ##############
    ##########################################

    def load(self, document_id: str) -> DocumentRecord | None:
        """Load the record for a document, or None if there is none or it cannot be parsed."""
        path = self.find_path(document_id)
        if path is None:
            return None
        return self._read_file(path)

    def save(self, document_id: str, record: DocumentRecord) -> Path:
        """Write a record and return the file it was written to.

        Raises:
            ValueError: If record.document_id differs from document_id.
        """
        if record.document_id != document_id:
            raise ValueError(f"Record for '{record.document_id}' cannot be saved under document id '{document_id}'.")
        path = self.path_for(document_id, record.title)
        if path.exists() and self._read_file(path) is None:
            self._set_aside(path)
        payload = json.dumps(record.to_storage_dict(), indent=2, ensure_ascii=False) + "\n"
        write_atomic(path, payload.encode("utf-8"))
        self.logging.debug("Wrote record %s to %s", document_id, path)
        return path

    def _set_aside(self, path: Path) -> None:
        """Keep an unreadable record file next to the new one instead of overwriting it."""
        backup = path.with_name(f"{path.name}.corrupt")
        os.replace(path, backup)
        self.logging.warning("Kept unreadable record %s as %s, merge any hand edits back manually", path.name, backup.name)

    def list_all(self) -> list[DocumentRecord]:
        """Load every parseable record, sorted by file name."""
        records = []
        for path in self._iter_record_files():
            record = self._read_file(path)
            if record is not None:
                records.append(record)
        return records

    def list_with_paths(self) -> list[tuple[Path, DocumentRecord]]:
        result = []
        for path in self._iter_record_files():
            record = self._read_file(path)
            if record is not None:
                result.append((path, record))
        return result
