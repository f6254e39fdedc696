"""FastAPI application exposing on-demand sync triggers."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.clients.cad.CADClientInterface import CADClientInterface
from shared.clients.cad.CADClientManager import CADClientManager
from shared.errors.sync_errors import GatewayError, NotFound, Unauthorized, UpstreamUnavailable
from shared.helper.HelperConfig import HelperConfig, load_env_file
from shared.logging.logging_setup import setup_logging
from server.models.responses import HealthResponse
from server.routers.RecordsRouter import router as records_router
from server.routers.SyncRouter import router as sync_router
from services.service_factory import Services

load_env_file()
logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    cad_client = CADClientManager(helper_config=app.state.helper_config).get_client()
    logging.info("Booting CAD client...")
    await cad_client.boot()
    install_services(app, Services(helper_config=app.state.helper_config, cad_client=cad_client))

    await check_connection(cad_client)

    # while the app is running...
    yield

    # when the app shuts down
    logging.info("Shutting down, closing CAD client...")
    await cad_client.close()


def install_services(app: FastAPI, services: Services) -> None:
    """Expose the wired services on app.state for the routers."""
    app.state.cad_client = services.cad_client
    app.state.record_store = services.record_store
    app.state.sync_service = services.sync_service
    app.state.batch_service = services.batch_service


app = FastAPI(
    title="cad_sync",
    description=(
        "Keeps local records of Onshape documents in sync with the remote service. "
        "Single documents are synced via POST /sync/document, label or filter batches via POST /sync/batch."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sync_router)
app.include_router(records_router)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", version=app_version)


##########################################
############ ERROR MAPPING ###############
##########################################

@app.exception_handler(NotFound)
async def handle_not_found(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(Unauthorized)
async def handle_unauthorized(request: Request, exc: Unauthorized) -> JSONResponse:
    logging.error("Onshape rejected the configured credentials: %s", exc)
    return JSONResponse(
        status_code=502,
        content={"detail": "The remote document service rejected the configured credentials."},
    )


@app.exception_handler(UpstreamUnavailable)
async def handle_unavailable(request: Request, exc: UpstreamUnavailable) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(GatewayError)
async def handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc)})


async def check_connection(cad_client: CADClientInterface) -> None:
    """Check connectivity to the CAD service on startup.

    Failures are non-fatal: the server stays up and requests report the error.
    """
    try:
        await cad_client.do_healthcheck()
        logging.info("CAD client '%s' is reachable.", cad_client.__class__.__name__, color="green")
    except GatewayError as exc:
        logging.warning("CAD client '%s' is not reachable (%s). Syncs may fail.", cad_client.__class__.__name__, exc)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("API_SERVER_PORT", "8000"))
    logging.info("Starting cad_sync API Server v%s on port %d...", app_version, port)
    uvicorn.run(app, host="0.0.0.0", port=port)
