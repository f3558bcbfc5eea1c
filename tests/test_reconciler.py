"""Tests for tenant processing, reconciliation and aggregation."""

from unittest.mock import patch

from conftest import fail, ok
from netbird_msp.models import (
    BUSINESS,
    TEAM,
    UNKNOWN,
    BillingUsage,
    Tenant,
    TenantRecord,
    TenantState,
    User,
)
from netbird_msp.reconciler import (
    RunTotals,
    TenantProcessor,
    aggregate,
    percent,
    process_tenants,
    reconcile,
)


def counted_users(n):
    return [User.from_api({"email": f"u{i}@x", "status": "active", "is_blocked": False}) for i in range(n)]


def record(registered=0, billable=0, skipped=False, status="active"):
    return TenantRecord(
        tenant=Tenant(id="t", name="T", domain="t.test", status=status),
        plan=TEAM,
        users=counted_users(registered),
        billing=BillingUsage(active_users=billable),
        skipped=skipped,
    )


# ============================================================================
# reconcile / aggregate
# ============================================================================

def test_reconcile_difference_and_percentages():
    entry = reconcile(record(registered=10, billable=7))
    assert entry.difference == 3
    assert entry.savings_percent == 30
    assert entry.efficiency_percent == 70
    assert not entry.is_anomaly


def test_reconcile_negative_difference_is_anomaly_not_error():
    entry = reconcile(record(registered=2, billable=5))
    assert entry.difference == -3
    assert entry.is_anomaly
    assert entry.savings_percent == -150


def test_reconcile_zero_registered_has_zero_percentages():
    entry = reconcile(record(registered=0, billable=4))
    assert (entry.savings_percent, entry.efficiency_percent) == (0, 0)


def test_percent_truncates_toward_zero():
    assert percent(1, 3) == 33
    assert percent(-1, 3) == -33


def test_aggregate_sums_non_skipped_only():
    entries = [
        reconcile(record(registered=3, billable=2)),
        reconcile(record(registered=4, billable=4)),
        reconcile(record(registered=9, billable=9, skipped=True, status="inactive")),
    ]
    summary = aggregate(entries)
    assert summary.tenant_count == 3
    assert summary.total_registered == 7
    assert summary.total_billable == 6
    assert summary.total_difference == 1


def test_aggregate_empty():
    summary = aggregate([])
    assert (summary.tenant_count, summary.total_registered, summary.total_billable) == (0, 0, 0)


def test_run_totals_is_immutable():
    start = RunTotals()
    after = start.add(reconcile(record(registered=2, billable=1)))
    assert start == RunTotals(0, 0, 0)
    assert after == RunTotals(1, 2, 1)


# ============================================================================
# TenantProcessor
# ============================================================================

def test_two_tenant_scenario(make_client, two_tenant_routes):
    client = make_client(two_tenant_routes)
    tenants = [Tenant.from_api(t) for t in client.get("integrations/msp/tenants", "tenants")]
    entries = process_tenants(TenantProcessor(client), tenants)

    active, inactive = entries
    assert active.registered_count == 2
    assert active.billable_count == 2
    assert active.record.plan == BUSINESS
    assert active.record.state is TenantState.RECONCILED

    assert inactive.skipped
    assert inactive.record.plan == TEAM
    assert inactive.record.state is TenantState.SKIPPED
    assert inactive.registered_count == 0 and inactive.billable_count == 0

    summary = aggregate(entries)
    assert (summary.tenant_count, summary.total_registered, summary.total_billable) == (2, 2, 2)


def test_active_tenant_is_reconciled_after_billing_fetch(make_client, two_tenant_routes):
    seen = []

    def spy(rec):
        seen.append(rec.state)
        return reconcile(rec)

    client = make_client(two_tenant_routes)
    with patch("netbird_msp.reconciler.reconcile", side_effect=spy):
        entry = TenantProcessor(client).process(Tenant("t-1", "Acme", "acme.test", "active"))

    assert seen == [TenantState.BILLING_FETCHED]
    assert entry.record.state is TenantState.RECONCILED


def test_process_tenants_logs_tenant_count(make_client, two_tenant_routes, log_messages):
    client = make_client(two_tenant_routes)
    tenants = [Tenant.from_api(t) for t in client.get("integrations/msp/tenants", "tenants")]
    process_tenants(TenantProcessor(client), tenants)
    assert "Processed 2 tenant(s)" in log_messages


def test_inactive_tenant_gets_plan_lookup_but_no_user_or_billing_calls(make_client, two_tenant_routes):
    client = make_client(two_tenant_routes)
    TenantProcessor(client).process(Tenant("t-2", "Dormant", "dormant.test", "inactive"))
    paths = [(path, params.get("account")) for path, params in client.session.calls]
    assert paths == [("integrations/billing/subscription", "t-2")]


def test_billing_failure_degrades_to_zero(make_client, log_messages):
    users = [{"email": f"u{i}@x", "status": "active", "is_blocked": False} for i in range(5)]
    client = make_client({
        "integrations/billing/subscription?account=t-1": ok({"plan_tier": "team"}),
        "users?account=t-1": ok(users),
        "integrations/billing/usage?account=t-1": fail(500),
    })
    entry = TenantProcessor(client).process(Tenant("t-1", "Acme", "acme.test", "active"))

    assert entry.registered_count == 5
    assert entry.billable_count == 0
    assert entry.difference == 5
    assert entry.record.billing == BillingUsage()
    assert "Failed to fetch billing usage" in entry.record.warnings
    assert any("Failed to fetch billing usage for Acme" in m for m in log_messages)


def test_user_failure_degrades_to_zero_registered(make_client):
    client = make_client({
        "integrations/billing/subscription?account=t-1": ok({"plan_tier": "team"}),
        "users?account=t-1": fail(502),
        "integrations/billing/usage?account=t-1": ok({"active_users": 3}),
    })
    entry = TenantProcessor(client).process(Tenant("t-1", "Acme", "acme.test", "active"))

    assert entry.registered_count == 0
    assert entry.billable_count == 3
    assert entry.is_anomaly
    assert "Failed to fetch registered users" in entry.record.warnings


def test_plan_failure_does_not_stop_processing(make_client, acme_users):
    client = make_client({
        "users?account=t-1": ok(acme_users),
        "integrations/billing/usage?account=t-1": ok({"active_users": 1}),
    })
    entry = TenantProcessor(client).process(Tenant("t-1", "Acme", "acme.test", "active"))
    assert entry.record.plan is UNKNOWN
    assert entry.registered_count == 2


def test_failures_stay_within_their_tenant(make_client, acme_users):
    client = make_client({
        "users?account=t-1": fail(500),
        "integrations/billing/usage?account=t-1": fail(500),
        "users?account=t-3": ok(acme_users),
        "integrations/billing/usage?account=t-3": ok({"active_users": 2}),
    })
    entries = process_tenants(
        TenantProcessor(client),
        [Tenant("t-1", "Broken", "b.test", "active"), Tenant("t-3", "Fine", "f.test", "active")],
    )
    assert [e.registered_count for e in entries] == [0, 2]
    assert [e.billable_count for e in entries] == [0, 2]
    assert entries[1].record.warnings == ["Plan detection failed; proceeding without plan info"]


def test_identical_inputs_give_identical_summaries(make_client, two_tenant_routes):
    def run():
        client = make_client(two_tenant_routes)
        tenants = [Tenant.from_api(t) for t in client.get("integrations/msp/tenants", "tenants")]
        return aggregate(process_tenants(TenantProcessor(client), tenants))

    assert run() == run()
