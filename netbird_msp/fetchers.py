"""
Fetchers Module
Purpose: Adapters turning raw API responses into typed records

- list_tenants: MSP tenant list (failure is fatal for the run)
- fetch_users: non-service users of one tenant
- fetch_billing_usage: billing counters of one tenant
"""

from typing import List

from loguru import logger

from netbird_msp.api_client import NetBirdClient
from netbird_msp.exceptions import FetchError
from netbird_msp.models import BillingUsage, Tenant, User

TENANTS_ENDPOINT = "integrations/msp/tenants"
SUBSCRIPTION_ENDPOINT = "integrations/billing/subscription"
USERS_ENDPOINT = "users"
USAGE_ENDPOINT = "integrations/billing/usage"


def list_tenants(client: NetBirdClient) -> List[Tenant]:
    """
    Fetch every tenant managed by the MSP account, in API order.

    Raises:
        FetchError: non-200, empty body, or a body that is not a list
    """
    logger.info("Fetching MSP tenants...")
    body = client.get(TENANTS_ENDPOINT, "MSP tenants fetch")

    if not isinstance(body, list):
        raise FetchError(
            "MSP tenants fetch returned an unexpected payload (expected a list)",
            endpoint=TENANTS_ENDPOINT,
            description="MSP tenants fetch",
            body=body,
        )

    tenants = [Tenant.from_api(item) for item in body if isinstance(item, dict)]
    logger.info(f"✅ Found {len(tenants)} tenant(s)")
    return tenants


def fetch_users(client: NetBirdClient, tenant: Tenant) -> List[User]:
    """Fetch the tenant's users and keep the active, unblocked ones"""
    body = client.get(
        USERS_ENDPOINT,
        f"Users for {tenant.name}",
        params={"service_user": "false", "account": tenant.id},
    )
    if not isinstance(body, list):
        raise FetchError(
            f"Users for {tenant.name} returned an unexpected payload (expected a list)",
            endpoint=USERS_ENDPOINT,
            description=f"Users for {tenant.name}",
            body=body,
        )

    users = [User.from_api(item) for item in body if isinstance(item, dict)]
    counted = [u for u in users if u.is_counted]
    logger.debug(f"  {tenant.name}: {len(counted)}/{len(users)} users active and unblocked")
    return counted


def fetch_billing_usage(client: NetBirdClient, tenant: Tenant) -> BillingUsage:
    body = client.get(
        USAGE_ENDPOINT,
        f"Billing usage for {tenant.name}",
        params={"account": tenant.id},
    )
    if not isinstance(body, dict):
        raise FetchError(
            f"Billing usage for {tenant.name} returned an unexpected payload (expected an object)",
            endpoint=USAGE_ENDPOINT,
            description=f"Billing usage for {tenant.name}",
            body=body,
        )
    return BillingUsage.from_api(body)
