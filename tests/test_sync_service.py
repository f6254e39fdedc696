"""
Tests for syncing single documents into the record store.
"""

import json
import tempfile
import unittest
from pathlib import Path

from fakes import PNG_BYTES, FakeCADClient, make_document, make_helper_config, make_settings
from services.cad_sync.SyncService import SyncService
from services.record_store.RecordStore import RecordStore
from shared.errors.sync_errors import Forbidden, NotFound, Unauthorized, UpstreamUnavailable

DOC_ID = "0123456789abcdef01234567"


class TestSyncService(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.settings = make_settings(Path(self._tmp.name))
        helper_config = make_helper_config()
        self.cad = FakeCADClient([make_document(DOC_ID, "Gear Box", labels=["indexed"], description="A gearbox")])
        self.store = RecordStore(helper_config=helper_config, content_dir=self.settings.content_dir)
        self.service = SyncService(helper_config=helper_config, settings=self.settings, cad_client=self.cad, record_store=self.store)

    def read_record(self) -> dict:
        return json.loads((self.settings.content_dir / "gear-box.json").read_text(encoding="utf-8"))

    async def test_sync_writes_record_and_thumbnail(self):
        result = await self.service.do_sync_document(DOC_ID)

        data = self.read_record()
        self.assertEqual(result.record_path.name, "gear-box.json")
        self.assertEqual(result.partial_failures, [])
        self.assertEqual(data["documentId"], DOC_ID)
        self.assertEqual(data["mainWorkspaceId"], f"{DOC_ID}-main")
        self.assertEqual(data["onshapeUrl"], f"https://cad.onshape.com/documents/{DOC_ID}")
        self.assertEqual(data["labels"], ["indexed"])
        self.assertEqual([v["name"] for v in data["versions"]], ["V1"])
        self.assertEqual(data["userData"]["author"]["name"], "Jane Doe")
        self.assertEqual(result.thumbnail_path, self.settings.images_dir / f"{DOC_ID}-600x340.png")
        self.assertEqual(result.thumbnail_path.read_bytes(), PNG_BYTES)
        self.assertIn(("download", f"https://cad.test/thumbs/{DOC_ID}/600x340"), self.cad.calls)

    async def test_partial_failure_keeps_the_rest(self):
        self.cad.failures[("versions", DOC_ID)] = UpstreamUnavailable("versions down", status_code=503)

        result = await self.service.do_sync_document(DOC_ID)

        data = self.read_record()
        self.assertEqual(result.partial_failures, ["versions"])
        self.assertEqual(data["versions"], [])
        self.assertEqual(data["title"], "Gear Box")
        self.assertEqual(data["labels"], ["indexed"])
        self.assertEqual(len(data["thumbnails"]), 2)

    async def test_forbidden_subfetch_only_empties_its_field(self):
        self.cad.failures[("versions", DOC_ID)] = Forbidden("no access to versions", status_code=403)
        self.cad.failures[("thumbnails", DOC_ID)] = Forbidden("no access to thumbnails", status_code=403)

        result = await self.service.do_sync_document(DOC_ID)

        data = self.read_record()
        self.assertEqual(result.partial_failures, ["thumbnails", "versions"])
        self.assertEqual(data["versions"], [])
        self.assertEqual(data["thumbnails"], [])
        self.assertEqual(data["mainWorkspaceId"], f"{DOC_ID}-main")
        self.assertIsNone(result.thumbnail_path)

    async def test_unauthorized_metadata_fetch_propagates(self):
        self.cad.failures[("document", DOC_ID)] = Unauthorized("rejected", status_code=401)

        with self.assertRaises(Unauthorized):
            await self.service.do_sync_document(DOC_ID)
        self.assertIsNone(self.store.load(DOC_ID))

    async def test_missing_document_writes_nothing(self):
        with self.assertRaises(NotFound):
            await self.service.do_sync_document("ffffffffffffffffffffffff")
        self.assertEqual(self.store.list_all(), [])

    async def test_thumbnail_failure_does_not_fail_sync(self):
        self.cad.failures[("download", f"https://cad.test/thumbs/{DOC_ID}/600x340")] = UpstreamUnavailable("gone")

        result = await self.service.do_sync_document(DOC_ID)

        self.assertIsNone(result.thumbnail_path)
        self.assertIsNotNone(self.store.load(DOC_ID))

    async def test_resync_preserves_user_edits(self):
        await self.service.do_sync_document(DOC_ID)
        data = self.read_record()
        data["userData"]["labels"] = ["favorite"]
        data["userData"]["customNotes"] = {"printed": True}
        (self.settings.content_dir / "gear-box.json").write_text(json.dumps(data), encoding="utf-8")

        self.cad.documents[DOC_ID] = make_document(DOC_ID, "Gear Box", labels=[])
        await self.service.do_sync_document(DOC_ID)

        data = self.read_record()
        self.assertEqual(data["labels"], ["favorite"])
        self.assertEqual(data["userData"]["customNotes"], {"printed": True})

    async def test_resync_is_byte_stable(self):
        await self.service.do_sync_document(DOC_ID)
        first = (self.settings.content_dir / "gear-box.json").read_bytes()

        await self.service.do_sync_document(DOC_ID)

        self.assertEqual((self.settings.content_dir / "gear-box.json").read_bytes(), first)
