"""FastAPI application entry point for the chat vectors bridge."""

import asyncio
import os
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from server.api.routers.ContentRouter import content_router
from server.api.routers.EventRouter import event_router
from server.api.routers.RetrievalRouter import retrieval_router
from server.api.routers.SettingsRouter import settings_router
from server.api.routers.TaskRouter import task_router
from server.api.routers.VectorizeRouter import vectorize_router
from server.api.services.RetrievalService import RetrievalService
from services.vector_sync.SyncService import SyncService
from services.vector_sync.VectorizationService import VectorizationService
from shared.clients.host.HostClient import HostClient
from shared.clients.vector.VectorClientManager import VectorClientManager
from shared.content.ContentCollector import ContentCollector
from shared.errors import ConfigurationError, NetworkError, StateError
from shared.helper.HelperConfig import HelperConfig
from shared.injection.PromptInjectionRecorder import PromptInjectionRecorder
from shared.logging.logging_setup import setup_logging
from shared.session.SessionState import SessionState
from shared.settings.SettingsManager import SettingsManager
from shared.settings.SettingsStoreFile import SettingsStoreFile
from shared.sync.SyncGate import SyncGate
from shared.tasks.CollectionCache import CollectionCache
from shared.tasks.TaskRegistry import TaskRegistry

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = setup_logging()
    app.state.config = HelperConfig(logger=app.state.logging)
    config = app.state.config

    # settings
    app.state.settings_manager = SettingsManager(helper_config=config, store=SettingsStoreFile(helper_config=config))
    app.state.settings_manager.load()

    # Initialise clients
    host_client = HostClient(helper_config=config)
    vector_manager = VectorClientManager(helper_config=config, settings_provider=app.state.settings_manager.get_settings)
    await host_client.boot()
    await vector_manager.boot()

    # backends are allowed to come up after the bridge
    for client in (host_client, *vector_manager.get_clients()):
        try:
            await client.do_healthcheck()
        except NetworkError as e:
            app.state.logging.warning(
                "%s backend '%s' not reachable at startup: %s", client.get_client_type(), client.get_engine_name(), e
            )

    # Wire up services
    app.state.session = SessionState(host_client=host_client)
    app.state.cache = CollectionCache(helper_config=config)
    app.state.sync_gate = SyncGate(helper_config=config)
    app.state.injector = PromptInjectionRecorder()
    app.state.collector = ContentCollector(helper_config=config)
    app.state.task_registry = TaskRegistry(
        helper_config=config,
        settings_manager=app.state.settings_manager,
        vector_manager=vector_manager,
        cache=app.state.cache,
    )
    app.state.vectorization_service = VectorizationService(
        helper_config=config,
        settings_manager=app.state.settings_manager,
        collector=app.state.collector,
        vector_manager=vector_manager,
        task_registry=app.state.task_registry,
        cache=app.state.cache,
    )
    app.state.retrieval_service = RetrievalService(
        helper_config=config,
        settings_manager=app.state.settings_manager,
        vector_manager=vector_manager,
        task_registry=app.state.task_registry,
        cache=app.state.cache,
        injector=app.state.injector,
        sync_gate=app.state.sync_gate,
    )
    app.state.sync_service = SyncService(
        helper_config=config,
        settings_manager=app.state.settings_manager,
        vector_manager=vector_manager,
        task_registry=app.state.task_registry,
        cache=app.state.cache,
        sync_gate=app.state.sync_gate,
        session=app.state.session,
    )

    sync_interval = config.get_number_val("SYNC_INTERVAL", default=0)
    periodic = asyncio.create_task(app.state.sync_service.run_periodic(sync_interval)) if sync_interval > 0 else None

    app.state.logging.info("Chat vectors bridge ready (sources: %s).", ", ".join(vector_manager.clients))
    yield

    # Shutdown
    if periodic:
        periodic.cancel()
        with suppress(asyncio.CancelledError):
            await periodic
    await app.state.sync_service.close()
    await app.state.settings_manager.flush()
    await vector_manager.close()
    await host_client.close()
    app.state.logging.info("Chat vectors bridge shut down.")


app = FastAPI(
    title="Chat Vectors Bridge",
    description="Task-scoped vectorization and retrieval of chat, attachment and world-info content.",
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


##########################################
############ ERROR MAPPING ###############
##########################################

@app.exception_handler(StateError)
async def handle_state_error(request: Request, exc: StateError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ConfigurationError)
async def handle_configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(NetworkError)
async def handle_network_error(request: Request, exc: NetworkError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc)})


app.include_router(content_router)
app.include_router(vectorize_router)
app.include_router(task_router)
app.include_router(retrieval_router)
app.include_router(settings_router)
app.include_router(event_router)


# Server Start
if __name__ == "__main__":
    # start server
    import uvicorn
    logging.info(f"Starting chat vectors bridge v{app_version} from root dir: {os.getenv('ROOT_DIR', os.getcwd())} on port 8000...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
