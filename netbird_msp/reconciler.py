"""
Reconciler Module
Purpose: Per-tenant processing, registered-vs-billable reconciliation, and aggregation

Tenant states:
  Listed -> PlanDetected -> Skipped                        (status != active)
                         -> UsersFetched -> BillingFetched -> Reconciled
User and billing failures degrade to zero values; they never abort the run.
"""

from functools import reduce
from typing import Iterable, List, NamedTuple, Optional

from loguru import logger

from netbird_msp.api_client import NetBirdClient
from netbird_msp.exceptions import FetchError
from netbird_msp.fetchers import fetch_billing_usage, fetch_users
from netbird_msp.models import (
    BillingUsage,
    ExecutiveSummary,
    ReportEntry,
    Tenant,
    TenantRecord,
    TenantState,
)
from netbird_msp.plan_detector import PlanDetector


def percent(part: int, whole: int) -> int:
    """Integer percentage truncated toward zero; 0 when whole is 0"""
    if whole <= 0:
        return 0
    return int(part * 100 / whole)


# ============================================================================
# RECONCILE (pure)
# ============================================================================

def reconcile(record: TenantRecord) -> ReportEntry:
    registered = record.registered_count
    billable = record.billable_count
    difference = registered - billable
    return ReportEntry(
        record=record,
        difference=difference,
        savings_percent=percent(difference, registered),
        efficiency_percent=percent(billable, registered),
    )


# ============================================================================
# AGGREGATE (fold over an immutable accumulator)
# ============================================================================

class RunTotals(NamedTuple):
    tenant_count: int = 0
    total_registered: int = 0
    total_billable: int = 0

    def add(self, entry: ReportEntry) -> "RunTotals":
        if entry.skipped:
            return self._replace(tenant_count=self.tenant_count + 1)
        return RunTotals(
            tenant_count=self.tenant_count + 1,
            total_registered=self.total_registered + entry.registered_count,
            total_billable=self.total_billable + entry.billable_count,
        )

    def summary(self) -> ExecutiveSummary:
        difference = self.total_registered - self.total_billable
        return ExecutiveSummary(
            tenant_count=self.tenant_count,
            total_registered=self.total_registered,
            total_billable=self.total_billable,
            total_difference=difference,
            total_savings_percent=percent(difference, self.total_registered),
            total_efficiency_percent=percent(self.total_billable, self.total_registered),
        )


def accumulate(totals: RunTotals, entry: ReportEntry) -> RunTotals:
    return totals.add(entry)


def aggregate(entries: Iterable[ReportEntry]) -> ExecutiveSummary:
    return reduce(accumulate, entries, RunTotals()).summary()


# ============================================================================
# TENANT PROCESSING
# ============================================================================

class TenantProcessor:
    """Walk one tenant through the processing states"""

    def __init__(self, client: NetBirdClient, plan_detector: Optional[PlanDetector] = None):
        self.client = client
        self.plan_detector = plan_detector or PlanDetector(client)

    def process(self, tenant: Tenant) -> ReportEntry:
        logger.info(f"🏢 Tenant: {tenant.name} ({tenant.id}) - status {tenant.status}")
        logger.info("  → Detecting billing plan...")
        plan = self.plan_detector.detect(tenant.id, tenant.name)
        record = TenantRecord(tenant=tenant, plan=plan, state=TenantState.PLAN_DETECTED)
        if plan.is_unknown:
            record.warnings.append("Plan detection failed; proceeding without plan info")

        if not tenant.is_active:
            record.skipped = True
            record.state = TenantState.SKIPPED
            logger.info(f"  ⚠️ Skipping inactive tenant {tenant.name}")
            return reconcile(record)

        logger.info("  → Fetching registered users...")
        try:
            record.users = fetch_users(self.client, tenant)
        except FetchError as e:
            logger.warning(f"⚠️ Failed to fetch registered users for {tenant.name}: {e}")
            record.warnings.append("Failed to fetch registered users")
        record.state = TenantState.USERS_FETCHED

        logger.info("  → Fetching billing usage...")
        try:
            record.billing = fetch_billing_usage(self.client, tenant)
        except FetchError as e:
            logger.warning(f"⚠️ Failed to fetch billing usage for {tenant.name}: {e}")
            record.warnings.append("Failed to fetch billing usage")
            record.billing = BillingUsage()
        record.state = TenantState.BILLING_FETCHED

        entry = reconcile(record)
        record.state = TenantState.RECONCILED
        logger.info(
            f"  ✅ Reconciled: registered={entry.registered_count} "
            f"billable={entry.billable_count} difference={entry.difference}"
        )
        if entry.is_anomaly:
            logger.warning(f"⚠️ {tenant.name}: more billable than registered users")
        return entry


def process_tenants(processor: TenantProcessor, tenants: Iterable[Tenant]) -> List[ReportEntry]:
    """Process tenants sequentially, in the order given"""
    entries = [processor.process(tenant) for tenant in tenants]
    logger.info(f"Processed {len(entries)} tenant(s)")
    return entries
