"""FastAPI application entry point for the RASS search API."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.clients.backend.BackendClientManager import BackendClientManager
from shared.models.errors import BackendError
from server.routers.DocumentRouter import router as document_router
from server.routers.SearchRouter import router as search_router
from server.routers.HealthRouter import router as health_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.config = HelperConfig(logger=logging)

    backend = BackendClientManager(helper_config=app.state.config).get_client()

    logging.info("Booting backend '%s'...", backend.get_engine_name())
    await backend.boot()
    await check_connection(backend)
    await backend.do_prepare()
    app.state.backend = backend
    logging.info("RASS API ready.", color="green")

    # while the app is running...
    yield

    # when the app shuts down, close the backend connection
    logging.info("Shutting down, closing backend...")
    await backend.close()
    logging.info("Backend closed.")


app = FastAPI(
    title="RASS",
    description=(
        "Document embedding and semantic search API behind a swappable backend. "
        "Documents are embedded via POST /embed, ranked via POST /search, "
        "fetched via GET /item/{id} and re-indexed via POST /refresh."
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

app.include_router(health_router)
app.include_router(document_router)
app.include_router(search_router)


@app.exception_handler(BackendError)
async def handle_backend_error(request: Request, exc: BackendError) -> JSONResponse:
    logging.error("Backend failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


async def check_connection(backend: BackendClientInterface) -> None:
    """Check connectivity to the configured backend on startup.

    Raises:
        Exception: If the backend is not reachable; requests cannot be served without it.
    """
    result: httpx.Response = await backend.do_healthcheck()
    if not result.is_success:
        raise Exception(
            f"Backend '{backend.get_engine_name()}' is not reachable "
            f"(status {result.status_code}). Cannot serve requests."
        )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting RASS API Server v%s from root dir: %s on port %s...",
        app_version,
        os.environ.get("ROOT_DIR", os.getcwd()),
        os.environ.get("PORT", "8000"),
    )
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
