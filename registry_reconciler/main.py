from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from registry_reconciler.api import api_router
from registry_reconciler.config import (
    LOG_LEVEL,
    LOG_FORMAT_TYPE,
    LOG_ENABLE_CONSOLE,
    LOG_ENABLE_FILE,
    LOG_FILE_PATH,
    load_settings,
)
from registry_reconciler.failover import FailoverClient
from registry_reconciler.health import HealthProber
from registry_reconciler.logger_config import ReconcilerLogger
from registry_reconciler.reconciler import ReconciliationEngine
from registry_reconciler.scheduler import CycleScheduler
from registry_reconciler.transport import RegistryTransport
from registry_reconciler.types import ReconcilerSettings

# Configure logging
ReconcilerLogger.setup_logging(
    level=LOG_LEVEL,
    format_type=LOG_FORMAT_TYPE,
    enable_console=LOG_ENABLE_CONSOLE,
    enable_file=LOG_ENABLE_FILE,
    log_file_path=LOG_FILE_PATH,
)

logger = ReconcilerLogger.get_logger(__name__)


def build_engine(
    settings: ReconcilerSettings, transport: RegistryTransport
) -> ReconciliationEngine:
    """Wire prober, failover client and engine around one shared transport"""
    instance_auth_header = settings.instance_credentials.to_header()
    prober = HealthProber(transport)
    failover = FailoverClient(
        servers=settings.build_servers(),
        transport=transport,
        prober=prober,
        app_name=settings.app_name,
        instance_health_check_path=settings.instance_health_check_path,
        instance_auth_header=instance_auth_header,
    )
    return ReconciliationEngine(
        instance_urls=settings.instance_urls,
        instance_health_check_path=settings.instance_health_check_path,
        instance_auth_header=instance_auth_header,
        prober=prober,
        failover=failover,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Registry Reconciler...")

    if app.state.settings is None:
        app.state.settings = load_settings()
    settings = app.state.settings

    transport = RegistryTransport.from_settings(settings, transport=app.state.http_transport)
    app.state.engine = build_engine(settings, transport)
    scheduler = CycleScheduler(app.state.engine, settings.heartbeat_cron)
    app.state.scheduler = scheduler

    if app.state.start_scheduler:
        scheduler.start()

    try:
        logger.info(
            f"Registry Reconciler started: {len(settings.instance_urls)} instance(s), "
            f"{len(settings.server_urls)} registry server(s)"
        )
        yield
    finally:
        scheduler.stop()
        await transport.aclose()
        logger.info("Registry Reconciler stopped")


def create_app(
    settings: Optional[ReconcilerSettings] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """Build the FastAPI application; settings are read from the environment when omitted"""
    app = FastAPI(
        title="Registry Reconciler",
        description="Keeps externally-owned instances registered in a Eureka-style registry",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.http_transport = http_transport
    app.state.start_scheduler = start_scheduler

    app.include_router(api_router)

    @app.get("/health")
    def health_check():
        """Health check endpoint for the reconciler itself"""
        return {"status": "UP", "service": "registry-reconciler"}

    return app


app = create_app()


def main():
    """Main entry point for the service"""
    import uvicorn
    from registry_reconciler.config import RECONCILER_HOST, RECONCILER_PORT

    uvicorn.run(
        "registry_reconciler.main:app",
        host=RECONCILER_HOST,
        port=RECONCILER_PORT,
        reload=False,
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
