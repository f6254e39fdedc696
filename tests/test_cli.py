import json

import pytest
from typer.testing import CliRunner

from cli import cli_runner
from fakes import FakeCADClient, make_document
from shared.errors.sync_errors import Unauthorized, UpstreamUnavailable

DOC_A = "a" * 24
DOC_B = "b" * 24

runner = CliRunner()


@pytest.fixture()
def cad(monkeypatch, tmp_path):
    for key, sub in (("CONTENT_DIR", "content/documents"), ("IMAGES_DIR", "content/images"), ("PDF_DIR", "public/pdf"), ("GALLERY_DIR", "public")):
        monkeypatch.setenv(key, str(tmp_path / sub))
    monkeypatch.setenv("UPLOAD_DELAY_SECONDS", "0")
    monkeypatch.delenv("LOG_DIR", raising=False)
    client = FakeCADClient([
        make_document(DOC_A, "Alpha", labels=["indexed"]),
        make_document(DOC_B, "Bravo", labels=["indexed"]),
    ])
    monkeypatch.setattr(cli_runner, "_build_client", lambda helper_config: client)
    return client


def test_sync_command_writes_record(cad, tmp_path):
    result = runner.invoke(cli_runner.app, ["sync", "-d", f"https://cad.onshape.com/documents/{DOC_A}/w/ws/e/el"])

    assert result.exit_code == 0, result.output
    record = json.loads((tmp_path / "content" / "documents" / "alpha.json").read_text(encoding="utf-8"))
    assert record["documentId"] == DOC_A
    assert cad.closed


def test_sync_output_dir_override(cad, tmp_path):
    result = runner.invoke(cli_runner.app, ["sync", "-d", DOC_A, "--output-dir", str(tmp_path / "elsewhere")])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "elsewhere" / "alpha.json").is_file()


def test_debug_flag_enables_client_debug(cad):
    result = runner.invoke(cli_runner.app, ["--debug", "sync", "-d", DOC_A])

    assert result.exit_code == 0, result.output
    assert cad.debug is True


def test_unknown_document_exits_with_error(cad):
    result = runner.invoke(cli_runner.app, ["sync", "-d", "f" * 24])
    assert result.exit_code == 1


def test_rejected_credentials_exit_with_error(cad):
    cad.failures[("document", DOC_A)] = Unauthorized("rejected", status_code=401)

    result = runner.invoke(cli_runner.app, ["sync", "-d", DOC_A])

    assert result.exit_code == 1


def test_list_command(cad):
    result = runner.invoke(cli_runner.app, ["list", "-l", "indexed"])

    assert result.exit_code == 0, result.output
    assert "Alpha" in result.output
    assert "Bravo" in result.output


def test_bulk_sync_with_failure_exits_nonzero(cad, tmp_path):
    cad.failures[("document", DOC_A)] = UpstreamUnavailable("down", status_code=503)

    result = runner.invoke(cli_runner.app, ["bulk", "sync", "--no-generate-pdf"])

    assert result.exit_code == 1
    # the batch went on after the failure
    assert (tmp_path / "content" / "documents" / "bravo.json").is_file()


def test_bulk_sync_success(cad, tmp_path):
    result = runner.invoke(cli_runner.app, ["bulk", "sync", "-l", "indexed", "--no-generate-pdf"])

    assert result.exit_code == 0, result.output
    assert len(list((tmp_path / "content" / "documents").glob("*.json"))) == 2


def test_gallery_command(cad, tmp_path):
    assert runner.invoke(cli_runner.app, ["sync", "-d", DOC_A]).exit_code == 0

    result = runner.invoke(cli_runner.app, ["gallery"])

    assert result.exit_code == 0, result.output
    assert "Alpha" in (tmp_path / "public" / "index.html").read_text(encoding="utf-8")
