"""Order sync FastAPI application."""

from typing import Optional

from fastapi import FastAPI
from sentry_sdk.integrations.fastapi import FastApiIntegration

from elitespeed_api.config.settings import settings
from elitespeed_api.core.logger import setup_logger
from elitespeed_api.core.monitoring import init_monitoring
from order_sync.bootstrap import build_reconciliation_service, build_scheduler
from order_sync.db import get_engine, get_session_factory, init_db
from order_sync.server.routes import router
from order_sync.services.reconciliation_service import ReconciliationService
from order_sync.services.webhook_processor import WebhookProcessor

logger = setup_logger(__name__)


def create_app(
    reconciliation_service: Optional[ReconciliationService] = None,
    scheduler_enabled: Optional[bool] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        reconciliation_service: Pre-built service; built from settings on
            startup when omitted
        scheduler_enabled: Override for settings.scheduler_enabled

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Order Status Sync",
        description="Synchronizes order statuses with EliteSpeed and settles delivered orders",
        version="1.0.0",
    )

    app.state.engine = None
    app.state.reconciliation_service = reconciliation_service
    app.state.webhook_processor = (
        WebhookProcessor(reconciliation_service) if reconciliation_service else None
    )
    app.state.reconciliation_scheduler = None

    # Initialize GlitchTip error monitoring
    init_monitoring(
        settings.glitchtip_dsn,
        settings.environment,
        integrations=[FastApiIntegration(transaction_style="endpoint")],
    )

    @app.on_event("startup")
    async def startup():
        """Initialize database, services and the scheduler on startup.

        Steps:
        1. Create tables and the session factory
        2. Initialize EliteSpeed client, settlement ledger and sync service
        3. Initialize webhook processor
        4. Start the recurring sync job (if enabled)
        """
        try:
            logger.info("=" * 60)
            logger.info("Starting Order Status Sync...")
            logger.info("=" * 60)

            if app.state.reconciliation_service is None:
                logger.info("Initializing database...")
                await init_db(settings.database_url)
                app.state.engine = get_engine(settings.database_url)
                session_factory = get_session_factory(app.state.engine)
                logger.info("✓ Database initialized")

                service = build_reconciliation_service(settings, session_factory)
                app.state.reconciliation_service = service
                app.state.webhook_processor = WebhookProcessor(service)
                logger.info("✓ Sync service initialized")

            enabled = settings.scheduler_enabled if scheduler_enabled is None else scheduler_enabled
            if enabled:
                scheduler = build_scheduler(settings, app.state.reconciliation_service)
                await scheduler.start(run_startup_sync=settings.run_startup_sync)
                app.state.reconciliation_scheduler = scheduler
                logger.info(f"✓ Scheduler started (every {settings.sync_interval_minutes} minute(s))")
            else:
                logger.info("Scheduler disabled, syncs run on manual trigger only")

            logger.info("Order Status Sync started successfully!")

        except Exception as e:
            logger.error(f"Failed to start order sync: {e}", exc_info=True)
            raise

    @app.on_event("shutdown")
    async def shutdown():
        """Graceful shutdown: stop the scheduler, close clients and connections."""
        logger.info("Shutting down Order Status Sync...")

        if app.state.reconciliation_scheduler:
            await app.state.reconciliation_scheduler.stop()

        service = app.state.reconciliation_service
        if service is not None and hasattr(service.carrier, "close"):
            await service.carrier.close()

        if app.state.engine is not None:
            await app.state.engine.dispose()
            logger.info("Database connections closed")

        logger.info("Shutdown completed")

    app.include_router(router)

    return app


# Create app instance
app = create_app()
