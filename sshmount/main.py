import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request

from .api import hosts, mounts, system, websockets
from .core.exceptions import HostStoreError
from .dependencies import (
    get_host_repository,
    get_mount_orchestrator,
    get_settings,
    get_websocket_manager,
)
from .logging_config import setup_logging
from .services.mount.mount_validator import check_system_requirements

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    setup_logging(settings)

    config_info = settings.config_file_info
    logging.info(f"Configuration loaded from: {config_info['active_config_file']}")
    logging.info(f"Running on hostname: {config_info['hostname']}")

    requirements = check_system_requirements(settings.sshfs_command)
    for issue in requirements.issues:
        logging.warning(f"System requirement missing: {issue} - mounting may not work")

    host_repository = get_host_repository()
    try:
        await host_repository.load()
    except HostStoreError as e:
        logging.error(f"Failed to load hosts, starting with an empty list: {e}")

    # Initialize WebSocketManager (subscription happens in the constructor)
    get_websocket_manager()
    orchestrator = get_mount_orchestrator()
    logging.info("SSH Mounter started")

    yield

    # Shutdown
    logging.info("SSH Mounter shutting down...")
    await orchestrator.shutdown()
    try:
        await host_repository.save()
    except HostStoreError as e:
        logging.error(f"Failed to save hosts on shutdown: {e}")


app = FastAPI(
    title="SSH Mounter",
    description="Mount remote directories over sshfs from saved host profiles",
    version="0.1.0",
    lifespan=lifespan,
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logging.info(
        f"Incoming request: {request.method} {request.url.path}",
        extra={
            "operation": "http_request",
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        },
    )

    response = await call_next(request)

    logging.info(
        f"Response: {response.status_code}",
        extra={
            "operation": "http_response",
            "status_code": response.status_code,
            "path": request.url.path,
        },
    )

    return response


app.include_router(hosts.router)
app.include_router(mounts.router)
app.include_router(system.router)
app.include_router(websockets.router)


@app.get("/health")
async def health():
    """Health check."""
    return {"status": "healthy", "service": "ssh-mounter"}


def run() -> None:
    uvicorn.run(
        "sshmount.main:app", host=settings.api_host, port=settings.api_port, reload=False, log_level="info"
    )


if __name__ == "__main__":
    run()
