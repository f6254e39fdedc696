"""Command line entry point.

Usage:
    python -m cli.cli_runner sync -d <document id or url>
    python -m cli.cli_runner bulk sync -l indexed --upload
"""

import asyncio
from pathlib import Path
from typing import Annotated, Awaitable, Callable, Optional

import typer

from shared.clients.cad.CADClientInterface import CADClientInterface
from shared.clients.cad.CADClientManager import CADClientManager
from shared.clients.cad.models.Listing import DocumentFilter, MAX_PAGE_SIZE, SortColumn
from shared.errors.sync_errors import GatewayError, Unauthorized
from shared.helper.HelperConfig import HelperConfig, load_env_file
from shared.helper.document_url import resolve_document_id
from shared.logging.logging_setup import setup_logging
from shared.models.batch import BatchCriteria
from shared.models.results import BatchSummary
from services.gallery.GalleryService import GalleryService
from services.pdf.PdfService import PdfService
from services.record_store.RecordStore import RecordStore
from services.service_factory import Services

_debug = False


def _debug_callback(value: bool):
    global _debug
    _debug = value


app = typer.Typer(
    name="cad-sync",
    help="Sync Onshape documents into local records, render PDFs and upload them back.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
bulk_app = typer.Typer(name="bulk", help="Process many documents selected by label, filter or query.", no_args_is_help=True)
app.add_typer(bulk_app)


@app.callback()
def main_callback(
    debug: Annotated[bool, typer.Option(
        "--debug",
        help="Enable debug logging, including every HTTP request",
        callback=_debug_callback,
        is_eager=True,
    )] = False,
):
    """Sync Onshape documents into local records."""


##########################################
################ RUNNER ##################
##########################################

def _build_client(helper_config: HelperConfig) -> CADClientInterface:
    return CADClientManager(helper_config=helper_config).get_client()


def _setup() -> HelperConfig:
    load_env_file()
    return HelperConfig(logger=setup_logging(debug=_debug))


def _run(action: Callable[[Services], Awaitable[None]], settings_update: dict | None = None) -> None:
    """Boot the CAD client, wire the services, run action and map errors to exit code 1."""
    helper_config = _setup()
    logger = helper_config.get_logger()

    async def main() -> None:
        cad_client = _build_client(helper_config)
        cad_client.set_debug(_debug)
        settings = helper_config.get_sync_settings()
        if settings_update:
            settings = settings.model_copy(update=settings_update)
        async with cad_client:
            await action(Services(helper_config=helper_config, cad_client=cad_client, settings=settings))

    try:
        asyncio.run(main())
    except typer.Exit:
        raise
    except Unauthorized as exc:
        logger.error("Authentication failed: %s", exc)
        typer.echo("Error: credentials were rejected. Check CAD_ONSHAPE_ACCESS_KEY and CAD_ONSHAPE_SECRET_KEY.", err=True)
        raise typer.Exit(1)
    except (GatewayError, FileNotFoundError, ValueError, RuntimeError) as exc:
        logger.error("%s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)


def _exit_on_failures(summary: BatchSummary) -> None:
    if not summary.is_success():
        raise typer.Exit(1)


def _criteria(label, filter_name, query, all_pages=False, limit=MAX_PAGE_SIZE, sort=None, order=None) -> BatchCriteria:
    return BatchCriteria(
        label=label or None,
        filter=DocumentFilter.parse(filter_name),
        query=query or None,
        all_pages=all_pages,
        limit=limit,
        sort=SortColumn.parse(sort) if sort else None,
        order=order,
    )


DocumentOption = Annotated[str, typer.Option("--document", "-d", help="Document id or Onshape URL")]
LabelOption = Annotated[Optional[str], typer.Option("--label", "-l", help="Only documents carrying this label")]
FilterOption = Annotated[str, typer.Option("--filter", "-f", help="my-documents, created, shared, trash, public or recent")]
QueryOption = Annotated[Optional[str], typer.Option("--query", "-q", help="Search text")]
TemplateOption = Annotated[Optional[str], typer.Option("--template", "-t", help="PDF template name")]
WorkspaceOption = Annotated[Optional[str], typer.Option("--workspace", "-w", help="Target workspace id, defaults to the main workspace")]


##########################################
########## SINGLE DOCUMENT ###############
##########################################

@app.command()
def sync(
    document: DocumentOption,
    output_dir: Annotated[Optional[Path], typer.Option("--output-dir", help="Record directory, overrides CONTENT_DIR")] = None,
):
    """Sync one document into its local record."""
    document_id = resolve_document_id(document)

    async def action(services: Services) -> None:
        result = await services.sync_service.do_sync_document(document_id)
        typer.echo(str(result.record_path))
        if result.partial_failures:
            typer.echo(f"Warning: could not refresh {', '.join(result.partial_failures)}", err=True)

    _run(action, {"content_dir": output_dir.expanduser().resolve()} if output_dir else None)


@app.command()
def generate(
    document: DocumentOption,
    template: TemplateOption = None,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="PDF file to write")] = None,
):
    """Generate the PDF of one document."""
    document_id = resolve_document_id(document)

    async def action(services: Services) -> None:
        path = await services.pdf_service.do_generate(document_id, template=template, output=output)
        typer.echo(str(path))

    _run(action)


@app.command()
def upload(
    document: DocumentOption,
    workspace: WorkspaceOption = None,
    file: Annotated[Optional[Path], typer.Option("--file", "-f", help="PDF to upload, defaults to the generated one")] = None,
):
    """Upload the PDF of one document into the document itself."""
    document_id = resolve_document_id(document)

    async def action(services: Services) -> None:
        element = await services.upload_service.do_upload(document_id, pdf_path=file, workspace_id=workspace)
        typer.echo(element.id)

    _run(action)


@app.command("list")
def list_documents(
    label: LabelOption = None,
    filter_name: FilterOption = DocumentFilter.CREATED.value,
    query: QueryOption = None,
    all_pages: Annotated[bool, typer.Option("--all-pages", help="Follow pagination to the end")] = False,
    limit: Annotated[int, typer.Option("--limit", help="Page size, 1 to 20")] = MAX_PAGE_SIZE,
    sort: Annotated[Optional[str], typer.Option("--sort", help="name, modifiedAt, createdAt, email, modifiedBy or promotedAt")] = None,
    order: Annotated[Optional[str], typer.Option("--order", help="asc or desc")] = None,
):
    """List remote documents."""
    criteria = _criteria(label, filter_name, query, all_pages, limit, sort, order)

    async def action(services: Services) -> None:
        documents = await services.batch_service.select(criteria)
        for doc in documents:
            labels = ", ".join(doc.get_label_names())
            modified = doc.modified_at.strftime("%Y-%m-%d") if doc.modified_at else "-"
            typer.echo(f"{doc.id}  {modified}  {doc.name}" + (f"  [{labels}]" if labels else ""))
        typer.echo(f"{len(documents)} documents", err=True)

    _run(action)


@app.command()
def gallery():
    """Render the static HTML gallery from the stored records."""
    helper_config = _setup()
    settings = helper_config.get_sync_settings()
    record_store = RecordStore(helper_config=helper_config, content_dir=settings.content_dir)
    pdf_service = PdfService(helper_config=helper_config, settings=settings, record_store=record_store)
    index_path = GalleryService(
        helper_config=helper_config,
        settings=settings,
        record_store=record_store,
        pdf_service=pdf_service,
    ).do_render()
    typer.echo(str(index_path))


##########################################
################ BULK ####################
##########################################

@bulk_app.command("sync")
def bulk_sync(
    label: Annotated[Optional[str], typer.Option("--label", "-l", help="Only documents carrying this label")] = "indexed",
    filter_name: FilterOption = DocumentFilter.CREATED.value,
    query: QueryOption = None,
    generate_pdf: Annotated[bool, typer.Option("--generate-pdf/--no-generate-pdf", help="Render a PDF after each sync")] = True,
    upload_pdf: Annotated[bool, typer.Option("--upload", help="Upload each generated PDF")] = False,
    template: TemplateOption = None,
):
    """Sync every selected document, optionally generating and uploading PDFs."""
    criteria = _criteria(label, filter_name, query)

    async def action(services: Services) -> None:
        summary = await services.batch_service.run_sync(criteria, generate_pdf=generate_pdf, upload=upload_pdf, template=template)
        _exit_on_failures(summary)

    _run(action)


@bulk_app.command("generate")
def bulk_generate(
    label: LabelOption = None,
    filter_name: FilterOption = DocumentFilter.CREATED.value,
    query: QueryOption = None,
    template: TemplateOption = None,
):
    """Generate PDFs for every selected document."""
    criteria = _criteria(label, filter_name, query)

    async def action(services: Services) -> None:
        summary = await services.batch_service.run_generate(criteria, template=template)
        _exit_on_failures(summary)

    _run(action)


@bulk_app.command("upload")
def bulk_upload(
    label: LabelOption = None,
    query: QueryOption = None,
    workspace: WorkspaceOption = None,
):
    """Upload the generated PDFs of all stored records."""
    criteria = _criteria(label, None, query)

    async def action(services: Services) -> None:
        summary = await services.batch_service.run_upload(criteria, workspace_id=workspace)
        _exit_on_failures(summary)

    _run(action)


if __name__ == "__main__":
    app()
