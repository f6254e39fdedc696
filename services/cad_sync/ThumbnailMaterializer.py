"""Downloads the canonical preview thumbnail of a document to local storage."""

from pathlib import Path

from shared.clients.cad.CADClientInterface import CADClientInterface
from shared.clients.cad.models.Thumbnail import ThumbnailDetails
from shared.helper.HelperConfig import HelperConfig
from services.record_store.RecordStore import write_atomic


class ThumbnailMaterializer:
    def __init__(self, helper_config: HelperConfig, cad_client: CADClientInterface, images_dir: Path, size: str = "600x340"):
        self.logging = helper_config.get_logger()
        self._cad_client = cad_client
        self._images_dir = Path(images_dir)
        self._size = size

    def path_for(self, document_id: str) -> Path:
        """Local file of the canonical thumbnail, keyed by document id."""
        return self._images_dir / f"{document_id}-{self._size}.png"

    def select(self, thumbnails: list[ThumbnailDetails]) -> ThumbnailDetails | None:
        for thumbnail in thumbnails:
            if thumbnail.size == self._size:
                return thumbnail
        return None

    async def materialize(self, document_id: str, thumbnails: list[ThumbnailDetails]) -> Path | None:
        """Download the canonical size if it is among the descriptors.

        Failures are logged and reported as None.

        Returns:
            Path | None: The written file, or None if nothing was written.
        """
        thumbnail = self.select(thumbnails)
        if thumbnail is None:
            self.logging.warning("No %s thumbnail for document %s, PDF and gallery will show no preview", self._size, document_id)
            return None

        target = self.path_for(document_id)
        try:
            payload = await self._cad_client.do_download_thumbnail(thumbnail.url)
            write_atomic(target, payload)
        except Exception as exc:
            self.logging.warning("Failed to download thumbnail for document %s from %s: %s", document_id, thumbnail.url, exc)
            return None

        self.logging.info("Downloaded thumbnail: %s", target)
        return target
