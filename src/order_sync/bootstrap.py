"""Wiring shared by the HTTP server and the command line."""

from elitespeed_api.api.client import EliteSpeedClient
from elitespeed_api.config.settings import Settings
from order_sync.services.reconciliation_scheduler import ReconciliationScheduler
from order_sync.services.reconciliation_service import ReconciliationService
from order_sync.services.settlement_ledger import SettlementLedger


def build_reconciliation_service(config: Settings, session_factory) -> ReconciliationService:
    """Create the carrier client, ledger and reconciliation service from settings."""
    client = EliteSpeedClient(
        api_token=config.elitespeed_api_token,
        base_url=config.elitespeed_base_url,
        timeout=config.carrier_timeout_seconds,
    )
    ledger = SettlementLedger(session_factory, timeout=config.db_timeout_seconds)
    return ReconciliationService(
        carrier=client,
        session_factory=session_factory,
        ledger=ledger,
        max_concurrency=config.sync_max_concurrency,
        candidate_limit=config.sync_candidate_limit,
        carrier_timeout=config.carrier_timeout_seconds,
        db_timeout=config.db_timeout_seconds,
    )


def build_scheduler(config: Settings, service: ReconciliationService) -> ReconciliationScheduler:
    """Create the recurring sync scheduler from settings."""
    return ReconciliationScheduler(
        service,
        interval_minutes=config.sync_interval_minutes,
        max_instances=config.scheduler_max_instances,
    )
