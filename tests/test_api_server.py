from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from fakes import make_helper_config
from server.api_server import app
from services.record_store.RecordStore import RecordStore
from shared.errors.sync_errors import NotFound, Unauthorized
from shared.models.record import DocumentRecord
from shared.models.results import BatchFailure, BatchSummary, SyncResult

API_KEY = "test-key"
DOC_ID = "0123456789abcdef01234567"


class StubSyncService:
    def __init__(self):
        self.error: Exception | None = None
        self.synced: list[str] = []

    async def do_sync_document(self, document_id: str) -> SyncResult:
        if self.error is not None:
            raise self.error
        self.synced.append(document_id)
        return SyncResult(document_id=document_id, title="Gear Box", record_path=Path("/records/gear-box.json"))


class StubBatchService:
    def __init__(self):
        self.criteria = None

    async def run_sync(self, criteria, generate_pdf=False, upload=False, template=None) -> BatchSummary:
        self.criteria = criteria
        return BatchSummary(processed=2, succeeded=1, failed=1, failures=[BatchFailure(document_id="x", name="Broken", step="sync", reason="down")])


@pytest.fixture()
def client(monkeypatch, settings):
    monkeypatch.setenv("API_SERVER_API_KEY", API_KEY)
    helper_config = make_helper_config()
    app.state.helper_config = helper_config
    app.state.sync_service = StubSyncService()
    app.state.batch_service = StubBatchService()
    app.state.record_store = RecordStore(helper_config=helper_config, content_dir=settings.content_dir)
    # no context manager: the lifespan would boot a real CAD client
    return TestClient(app)


def auth() -> dict:
    return {"X-Api-Key": API_KEY}


def test_health_needs_no_key(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_missing_or_wrong_key_is_rejected(client):
    assert client.post("/sync/document", json={"documentId": DOC_ID}).status_code == 401
    assert client.post("/sync/document", json={"documentId": DOC_ID}, headers={"X-Api-Key": "nope"}).status_code == 401


def test_unconfigured_key_disables_api(client, monkeypatch):
    monkeypatch.delenv("API_SERVER_API_KEY")
    assert client.get("/records", headers=auth()).status_code == 503


def test_sync_document(client):
    response = client.post("/sync/document", json={"documentId": DOC_ID}, headers=auth())

    assert response.status_code == 200
    assert response.json()["document_id"] == DOC_ID
    assert app.state.sync_service.synced == [DOC_ID]


def test_sync_document_accepts_url(client):
    url = f"https://cad.onshape.com/documents/{DOC_ID}/w/ws1/e/el1"
    response = client.post("/sync/document", json={"documentId": url}, headers=auth())

    assert response.status_code == 200
    assert app.state.sync_service.synced == [DOC_ID]


def test_unknown_document_maps_to_404(client):
    app.state.sync_service.error = NotFound("no such document", status_code=404)
    response = client.post("/sync/document", json={"documentId": DOC_ID}, headers=auth())
    assert response.status_code == 404


def test_rejected_credentials_map_to_502(client):
    app.state.sync_service.error = Unauthorized("rejected", status_code=401)
    response = client.post("/sync/document", json={"documentId": DOC_ID}, headers=auth())
    assert response.status_code == 502
    assert "credentials" in response.json()["detail"]


def test_sync_batch(client):
    response = client.post("/sync/batch", json={"label": "indexed", "filter": "bogus", "allPages": True}, headers=auth())

    body = response.json()
    assert response.status_code == 200
    assert body["failed"] == 1
    assert body["failures"][0]["name"] == "Broken"
    criteria = app.state.batch_service.criteria
    assert criteria.label == "indexed"
    assert criteria.filter.value == "created"
    assert criteria.all_pages is True


def test_list_records(client):
    store = app.state.record_store
    store.save(DOC_ID, DocumentRecord(document_id=DOC_ID, title="Gear Box", labels=["indexed"]))
    store.save("f" * 24, DocumentRecord(document_id="f" * 24, title="Other"))

    all_records = client.get("/records", headers=auth()).json()
    labelled = client.get("/records", params={"label": "indexed"}, headers=auth()).json()

    assert all_records["total"] == 2
    assert labelled["total"] == 1
    assert labelled["records"][0]["documentId"] == DOC_ID
    assert labelled["records"][0]["file"] == "gear-box.json"
