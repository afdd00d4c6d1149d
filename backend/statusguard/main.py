"""Main FastAPI application: wires the health-check engine and serves its API."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import Settings, settings as default_settings, get_database_url
from .database import create_engine, create_session_factory, init_db, close_db
from .routers import health_checks_router
from .services import (
    IncidentLedger,
    IncidentLifecycleManager,
    NotificationHub,
    WebhookRelay,
    OutcomeEvaluator,
    ProberService,
    ResultStore,
    SchedulerService,
    ServiceDirectory,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_scheduler(
    session_factory: async_sessionmaker[AsyncSession],
    config: Settings,
    notifier: Optional[NotificationHub] = None,
    prober: Optional[ProberService] = None,
) -> SchedulerService:
    """Assemble the engine around one session factory."""
    result_store = ResultStore(session_factory)
    ledger = IncidentLedger(session_factory)
    return SchedulerService(
        directory=ServiceDirectory(session_factory),
        result_store=result_store,
        evaluator=OutcomeEvaluator(result_store),
        incident_manager=IncidentLifecycleManager(ledger, notifier),
        prober=prober or ProberService(),
        notifier=notifier,
        config=config,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    config: Settings = app.state.config
    logger.info("Starting StatusGuard")

    engine = create_engine(get_database_url(config))
    await init_db(engine, config.data_path)
    logger.info("Database initialized")

    session_factory = create_session_factory(engine)
    notifier = NotificationHub()
    if config.webhook_url:
        await notifier.subscribe(WebhookRelay(config.webhook_url))
        logger.info("Webhook notifications enabled")

    scheduler = build_scheduler(session_factory, config, notifier)
    app.state.notifier = notifier
    app.state.scheduler = scheduler
    app.state.result_store = scheduler.result_store

    if config.scheduler_enabled:
        scheduler.start()

    yield

    scheduler.stop()
    await close_db(engine)
    logger.info("Shutdown complete")


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="StatusGuard",
        description="Service health checks, metrics and automatic incidents",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config or default_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_checks_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=default_settings.web_port)
