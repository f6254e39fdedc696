"""
Batch sync against the Onshape client with a stubbed HTTP transport.
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import httpx

from fakes import make_helper_config, make_settings
from services.cad_sync.BatchService import BatchService
from services.cad_sync.SyncService import SyncService
from services.record_store.RecordStore import RecordStore
from shared.clients.cad.onshape.CADClientOnshape import CADClientOnshape
from shared.models.batch import BatchCriteria

API = "/api/v12"
DOC_A = "a" * 24
DOC_B = "b" * 24
ENV = {
    "CAD_ONSHAPE_ACCESS_KEY": "access",
    "CAD_ONSHAPE_SECRET_KEY": "secret",
    "CAD_RETRIES": "0",
}


def document_json(document_id: str, name: str) -> dict:
    return {"id": document_id, "name": name, "documentLabels": [{"id": "l1", "name": "indexed"}]}


class TestSyncOverHttp(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        env_patch = patch.dict(os.environ, ENV)
        env_patch.start()
        self.addCleanup(env_patch.stop)
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)

        # path -> (status, json body); anything unlisted is a 404
        self.routes: dict[str, tuple[int, object]] = {
            f"{API}/documents": (200, {"items": [document_json(DOC_A, "Alpha"), document_json(DOC_B, "Bravo")], "next": None}),
        }
        for document_id, name in ((DOC_A, "Alpha"), (DOC_B, "Bravo")):
            self.routes[f"{API}/documents/{document_id}"] = (200, document_json(document_id, name))
            self.routes[f"{API}/documents/d/{document_id}/workspaces"] = (200, [{"id": f"w-{document_id[0]}", "name": "Main", "isMain": True, "type": "workspace"}])
            self.routes[f"{API}/documents/d/{document_id}/versions"] = (200, [{"id": "v1", "name": "V1"}])
            self.routes[f"{API}/thumbnails/d/{document_id}"] = (200, {"sizes": []})
        self.requested: list[str] = []

        helper_config = make_helper_config()
        self.settings = make_settings(Path(self._tmp.name))
        self.client = CADClientOnshape(helper_config=helper_config)
        await self.client.boot(transport=httpx.MockTransport(self._handle))
        self.addAsyncCleanup(self.client.close)

        self.store = RecordStore(helper_config=helper_config, content_dir=self.settings.content_dir)
        sync_service = SyncService(helper_config=helper_config, settings=self.settings, cad_client=self.client, record_store=self.store)
        self.batch = BatchService(helper_config=helper_config, settings=self.settings, cad_client=self.client, sync_service=sync_service)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requested.append(request.url.path)
        status, body = self.routes.get(request.url.path, (404, {"message": "not found"}))
        return httpx.Response(status, json=body)

    def read_record(self, name: str) -> dict:
        return json.loads((self.settings.content_dir / name).read_text(encoding="utf-8"))

    async def test_forbidden_versions_do_not_stop_the_batch(self):
        self.routes[f"{API}/documents/d/{DOC_A}/versions"] = (403, {"message": "insufficient permissions"})

        summary = await self.batch.run_sync(BatchCriteria(label="indexed"))

        self.assertEqual((summary.processed, summary.succeeded, summary.failed), (2, 2, 0))
        self.assertIn(f"{API}/documents/{DOC_B}", self.requested)
        alpha = self.read_record("alpha.json")
        self.assertEqual(alpha["versions"], [])
        self.assertEqual(alpha["mainWorkspaceId"], "w-a")
        self.assertEqual(alpha["labels"], ["indexed"])
        self.assertEqual([v["name"] for v in self.read_record("bravo.json")["versions"]], ["V1"])

    async def test_forbidden_document_fails_only_that_document(self):
        self.routes[f"{API}/documents/{DOC_A}"] = (403, {"message": "not shared with you"})

        summary = await self.batch.run_sync(BatchCriteria(label="indexed"))

        self.assertEqual((summary.processed, summary.succeeded, summary.failed), (2, 1, 1))
        self.assertEqual(summary.failures[0].name, "Alpha")
        self.assertIsNone(self.store.load(DOC_A))
        self.assertIsNotNone(self.store.load(DOC_B))
