"""
Orchestrator Module
Purpose: End-to-end report run

  list tenants -> per tenant (plan, users, billing) -> reconcile -> aggregate -> emit
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger

from netbird_msp.api_client import NetBirdClient
from netbird_msp.config import Settings
from netbird_msp.fetchers import list_tenants
from netbird_msp.models import ExecutiveSummary, ReportEntry
from netbird_msp.plan_detector import PlanDetector
from netbird_msp.reconciler import TenantProcessor, aggregate, process_tenants
from netbird_msp.report_generator import ReportGenerator


@dataclass
class ReportResult:
    summary: ExecutiveSummary
    entries: List[ReportEntry]
    paths: List[Path] = field(default_factory=list)

    @property
    def degraded_tenants(self) -> List[str]:
        return [e.record.tenant.name for e in self.entries if e.record.warnings and not e.skipped]


def run_report(
    settings: Settings,
    client: Optional[NetBirdClient] = None,
    generated_at: Optional[datetime] = None,
) -> ReportResult:
    """
    Run one reconciliation and write the reports.

    Raises:
        FetchError: the tenant list could not be fetched (nothing is written)
    """
    logger.info("=" * 80)
    logger.info("🚀 NETBIRD MSP COMPREHENSIVE BILLING REPORT")
    logger.info("=" * 80)
    logger.info(f"API endpoint: {settings.base_url}")

    own_client = client is None
    client = client or NetBirdClient.from_settings(settings)
    try:
        # STEP 1: tenants (fatal on failure)
        logger.info("\n[STEP 1/3] Listing tenants...")
        tenants = list_tenants(client)

        # STEP 2: per-tenant processing
        logger.info("\n[STEP 2/3] Analysing tenants...")
        processor = TenantProcessor(client, PlanDetector.from_config(client, settings.cfg))
        entries = process_tenants(processor, tenants)
    finally:
        if own_client:
            client.close()

    summary = aggregate(entries)

    # STEP 3: reports
    logger.info("\n[STEP 3/3] Writing reports...")
    generator = ReportGenerator(
        output_folder=str(settings.output_dir),
        cfg=settings.cfg,
        api_endpoint=settings.base_url,
        generated_at=generated_at,
        excel=settings.excel,
    )
    paths = generator.write(summary, entries)

    result = ReportResult(summary=summary, entries=entries, paths=paths)
    logger.info("=" * 80)
    logger.info("✅ COMPREHENSIVE NETBIRD BILLING ANALYSIS COMPLETE")
    logger.info(
        f"   Tenants: {summary.tenant_count} | Registered: {summary.total_registered} "
        f"| Billable: {summary.total_billable}"
    )
    if result.degraded_tenants:
        logger.warning(f"   Partial data for: {', '.join(result.degraded_tenants)}")
    logger.info("=" * 80)
    return result
