"""Tests for merging remote snapshots into stored records."""

import pytest

from fakes import make_document, make_settings, make_thumbnails, make_version
from services.cad_sync.ReconciliationEngine import ReconciliationEngine, merge_labels
from shared.models.record import DocumentRecord
from shared.models.snapshot import FIELD_THUMBNAILS, FIELD_VERSIONS, RemoteSnapshot

DOC_ID = "0123456789abcdef01234567"


def make_snapshot(labels=("indexed",), failed=(), **overrides) -> RemoteSnapshot:
    values = dict(
        document=make_document(DOC_ID, "Gear Box", labels=list(labels), description="A gearbox"),
        web_url=f"https://cad.onshape.com/documents/{DOC_ID}",
        main_workspace_id="ws-main",
        versions=[make_version("v0", "Start"), make_version("v1", "V1", "Initial release")],
        thumbnails=make_thumbnails(DOC_ID),
        failed_fields=set(failed),
    )
    values.update(overrides)
    return RemoteSnapshot(**values)


def prior_from(data: dict) -> DocumentRecord:
    base = {"documentId": DOC_ID, "title": "Gear Box"}
    base.update(data)
    return DocumentRecord.model_validate(base)


@pytest.fixture()
def engine(helper_config, settings):
    return ReconciliationEngine(helper_config=helper_config, settings=settings)


def test_first_sync_builds_complete_record(engine):
    record = engine.reconcile(make_snapshot(), None)

    assert record.document_id == DOC_ID
    assert record.title == "Gear Box"
    assert record.description == "A gearbox"
    assert record.onshape_url == f"https://cad.onshape.com/documents/{DOC_ID}"
    assert record.main_workspace_id == "ws-main"
    assert record.labels == ["indexed"]
    assert [v.name for v in record.versions] == ["V1"]
    assert [t.size for t in record.thumbnails] == ["300x170", "600x340"]
    assert record.user_data.author.name == "Jane Doe"
    assert record.user_data.author.email == "jane@example.com"
    assert record.user_data.labels == []


def test_reconcile_is_idempotent(engine):
    snapshot = make_snapshot()
    first = engine.reconcile(snapshot, None)
    second = engine.reconcile(snapshot, first)

    assert second == first
    assert second.to_storage_dict() == first.to_storage_dict()


def test_user_labels_survive_remote_removal(engine):
    prior = prior_from({"labels": ["indexed", "favorite"], "userData": {"labels": ["favorite"]}})

    record = engine.reconcile(make_snapshot(labels=[]), prior)

    assert record.labels == ["favorite"]
    assert record.user_data.labels == ["favorite"]


def test_remote_only_labels_are_dropped_when_removed(engine):
    prior = prior_from({"labels": ["indexed", "archived"], "userData": {"labels": []}})

    record = engine.reconcile(make_snapshot(labels=["indexed"]), prior)

    assert record.labels == ["indexed"]


def test_labels_union_keeps_first_occurrence_order():
    assert merge_labels(["b", "a"], ["a", "c", "b"]) == ["b", "a", "c"]


def test_unknown_user_data_keys_pass_through_unchanged(engine):
    extras = {"customNotes": {"lines": ["a", "b"], "pinned": True}, "rating": 4, "skipPdfUpload": None}
    prior = prior_from({"userData": {"workspaceId": "ws-1", "pdfElementId": "el-9", **extras}})

    record = engine.reconcile(make_snapshot(), prior)

    assert record.user_data.get_extra() == extras
    assert record.user_data.workspace_id == "ws-1"
    assert record.user_data.pdf_element_id == "el-9"
    stored = record.to_storage_dict()["userData"]
    assert stored["customNotes"] == {"lines": ["a", "b"], "pinned": True}
    assert stored["skipPdfUpload"] is None


def test_prior_author_wins_over_defaults(engine):
    prior = prior_from({"userData": {"author": {"name": "Max", "email": "max@example.com", "website": ""}}})

    record = engine.reconcile(make_snapshot(), prior)

    assert record.user_data.author.name == "Max"


def test_start_version_is_excluded(engine):
    record = engine.reconcile(make_snapshot(versions=[make_version("v0", "Start")]), None)

    assert record.versions == []


def test_failed_subfetch_leaves_field_empty(engine):
    prior = engine.reconcile(make_snapshot(), None)

    record = engine.reconcile(make_snapshot(versions=[], failed=[FIELD_VERSIONS]), prior)

    assert record.versions == []
    assert record.title == "Gear Box"
    assert record.labels == ["indexed"]
    assert len(record.thumbnails) == 2


def test_failed_subfetch_keeps_prior_value_when_configured(helper_config, tmp_path):
    engine = ReconciliationEngine(helper_config=helper_config, settings=make_settings(tmp_path, keep_prior_on_error=True))
    prior = engine.reconcile(make_snapshot(), None)

    record = engine.reconcile(make_snapshot(versions=[], thumbnails=[], failed=[FIELD_VERSIONS, FIELD_THUMBNAILS]), prior)

    assert [v.name for v in record.versions] == ["V1"]
    assert len(record.thumbnails) == 2


def test_legacy_top_level_keys_are_migrated(engine):
    prior = prior_from({
        "author": {"name": "Legacy Author", "email": "old@example.com", "website": ""},
        "changelog": ["initial"],
        "workspaceId": "ws-legacy",
        "projectCode": "P-42",
        "userData": {"description": "old text", "changelog": ["x"], "notes": "keep me"},
    })

    record = engine.reconcile(make_snapshot(), prior)

    assert record.user_data.author.name == "Legacy Author"
    assert record.user_data.workspace_id == "ws-legacy"
    assert record.user_data.get_extra() == {
        "description": "old text",
        "changelog": ["x"],
        "notes": "keep me",
        "projectCode": "P-42",
    }
    stored = record.to_storage_dict()
    for key in ("author", "changelog", "workspaceId", "projectCode"):
        assert key not in stored
    assert stored["userData"]["description"] == "old text"
    assert stored["userData"]["changelog"] == ["x"]


def test_top_level_changelog_moves_into_user_data(engine):
    prior = prior_from({"changelog": ["initial"], "author": "Legacy Author"})

    record = engine.reconcile(make_snapshot(), prior)

    assert record.user_data.get_extra() == {"changelog": ["initial"]}
    assert record.user_data.author.name == "Legacy Author"


def test_prior_of_other_document_is_rejected(engine):
    prior = DocumentRecord(document_id="ffffffffffffffffffffffff", title="Other")

    with pytest.raises(ValueError):
        engine.reconcile(make_snapshot(), prior)


def test_user_label_is_appended_after_remote_labels(engine):
    prior = prior_from({"labels": ["favorite"], "userData": {"labels": ["favorite"]}})

    record = engine.reconcile(make_snapshot(labels=["meshtastic"]), prior)

    assert record.labels == ["meshtastic", "favorite"]
    assert record.user_data.labels == ["favorite"]


def test_snake_case_user_keys_pass_through_verbatim(engine):
    prior = prior_from({"userData": {"pdf_element_id": "mine", "element_id": "also-mine"}})

    record = engine.reconcile(make_snapshot(), prior)

    assert record.user_data.pdf_element_id is None
    assert record.user_data.element_id is None
    stored = record.to_storage_dict()["userData"]
    assert stored["pdf_element_id"] == "mine"
    assert stored["element_id"] == "also-mine"
    assert "pdfElementId" not in stored


def test_reconcile_is_idempotent_with_user_data_and_legacy_keys(engine):
    prior = prior_from({
        "projectCode": "P-42",
        "workspaceId": "ws-legacy",
        "userData": {"labels": ["favorite"], "customNote": "x", "pdf_element_id": "mine", "description": "notes"},
    })
    snapshot = make_snapshot(labels=["meshtastic"])

    first = engine.reconcile(snapshot, prior)
    second = engine.reconcile(snapshot, first)
    reloaded = engine.reconcile(snapshot, DocumentRecord.model_validate(first.to_storage_dict()))

    assert second.to_storage_dict() == first.to_storage_dict()
    assert reloaded.to_storage_dict() == first.to_storage_dict()
    assert first.user_data.get_extra() == {"customNote": "x", "pdf_element_id": "mine", "description": "notes", "projectCode": "P-42"}
