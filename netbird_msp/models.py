"""
Models Module
Purpose: In-memory records for one report run (tenants, users, billing, plan tiers)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

NEVER_LOGGED_IN = "0001-01-01T00:00:00Z"
DEFAULT_ROLE = "user"


def as_count(value: Any) -> int:
    """Coerce an upstream counter to int; anything unusable becomes 0"""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float) and value.is_integer():
        return max(int(value), 0)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


# ============================================================================
# PLAN TIERS
# ============================================================================

class PlanKind(Enum):
    TEAM = "team"
    BUSINESS = "business"
    ENTERPRISE = "enterprise"
    UNKNOWN = "unknown"
    OTHER = "other"


@dataclass(frozen=True)
class PlanTier:
    """Subscription tier: a known kind, or OTHER carrying the upstream label"""

    kind: PlanKind
    label: str

    @classmethod
    def from_plan_tier(cls, value: str) -> "PlanTier":
        """Map an exact `plan_tier` value; anything else keeps its text, first letter capitalised"""
        raw = value.strip()
        known = KNOWN_TIERS.get(raw)
        if known is not None:
            return known
        if not raw:
            return UNKNOWN
        return cls(PlanKind.OTHER, raw[0].upper() + raw[1:])

    @property
    def is_unknown(self) -> bool:
        return self.kind is PlanKind.UNKNOWN

    def __str__(self) -> str:
        return self.label


TEAM = PlanTier(PlanKind.TEAM, "Team")
BUSINESS = PlanTier(PlanKind.BUSINESS, "Business")
ENTERPRISE = PlanTier(PlanKind.ENTERPRISE, "Enterprise")
UNKNOWN = PlanTier(PlanKind.UNKNOWN, "Unknown")

KNOWN_TIERS = {"team": TEAM, "business": BUSINESS, "enterprise": ENTERPRISE}
LABELED_TIERS = {tier.label: tier for tier in KNOWN_TIERS.values()}


def plan_from_label(label: str) -> PlanTier:
    """Tier for a display label such as "Business" (used by keyword tables)"""
    return LABELED_TIERS.get(label) or PlanTier.from_plan_tier(label)


# ============================================================================
# UPSTREAM ENTITIES
# ============================================================================

@dataclass(frozen=True)
class Tenant:
    id: str
    name: str
    domain: str
    status: str

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @classmethod
    def from_api(cls, data: Dict) -> "Tenant":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            domain=str(data.get("domain", "")),
            status=str(data.get("status", "")),
        )


@dataclass
class User:
    email: str
    status: str
    is_blocked: Optional[bool]
    name: Optional[str] = None
    role: Optional[str] = None
    last_login: Optional[str] = None
    raw: Dict = field(default_factory=dict, repr=False)

    @property
    def is_counted(self) -> bool:
        """Registered = active and explicitly not blocked"""
        return self.status == "active" and self.is_blocked is False

    @property
    def display_name(self) -> str:
        return self.name or "N/A"

    @property
    def display_role(self) -> str:
        return self.role or DEFAULT_ROLE

    @property
    def display_last_login(self) -> str:
        if not self.last_login or self.last_login == NEVER_LOGGED_IN:
            return "Never"
        return self.last_login

    @classmethod
    def from_api(cls, data: Dict) -> "User":
        return cls(
            email=str(data.get("email") or ""),
            status=str(data.get("status") or ""),
            is_blocked=data.get("is_blocked"),
            name=data.get("name"),
            role=data.get("role"),
            last_login=data.get("last_login"),
            raw=data,
        )


@dataclass
class BillingUsage:
    active_users: int = 0
    active_peers: int = 0
    total_users: int = 0
    total_peers: int = 0
    extra: Dict = field(default_factory=dict, repr=False)

    COUNTERS = ("active_users", "active_peers", "total_users", "total_peers")

    @classmethod
    def from_api(cls, data: Dict) -> "BillingUsage":
        return cls(
            active_users=as_count(data.get("active_users")),
            active_peers=as_count(data.get("active_peers")),
            total_users=as_count(data.get("total_users")),
            total_peers=as_count(data.get("total_peers")),
            extra={k: v for k, v in data.items() if k not in cls.COUNTERS},
        )

    def to_dict(self) -> Dict:
        out = dict(self.extra)
        out.update({name: getattr(self, name) for name in self.COUNTERS})
        return out


# ============================================================================
# RECONCILED RECORDS
# ============================================================================

class TenantState(Enum):
    LISTED = "listed"
    PLAN_DETECTED = "plan_detected"
    SKIPPED = "skipped"
    USERS_FETCHED = "users_fetched"
    BILLING_FETCHED = "billing_fetched"
    RECONCILED = "reconciled"


@dataclass
class TenantRecord:
    """Everything fetched for one tenant"""

    tenant: Tenant
    plan: PlanTier
    users: List[User] = field(default_factory=list)
    billing: BillingUsage = field(default_factory=BillingUsage)
    skipped: bool = False
    warnings: List[str] = field(default_factory=list)
    state: TenantState = TenantState.LISTED

    @property
    def registered_count(self) -> int:
        return sum(1 for u in self.users if u.is_counted)

    @property
    def billable_count(self) -> int:
        return self.billing.active_users


@dataclass(frozen=True)
class ReportEntry:
    record: TenantRecord
    difference: int
    savings_percent: int
    efficiency_percent: int

    @property
    def registered_count(self) -> int:
        return self.record.registered_count

    @property
    def billable_count(self) -> int:
        return self.record.billable_count

    @property
    def skipped(self) -> bool:
        return self.record.skipped

    @property
    def is_anomaly(self) -> bool:
        """More billable than registered users"""
        return self.difference < 0


@dataclass(frozen=True)
class ExecutiveSummary:
    tenant_count: int
    total_registered: int
    total_billable: int
    total_difference: int
    total_savings_percent: int
    total_efficiency_percent: int

    @property
    def is_anomaly(self) -> bool:
        return self.total_difference < 0

    def to_dict(self) -> Dict:
        return {
            "total_tenants": self.tenant_count,
            "total_registered_users": self.total_registered,
            "total_billable_users": self.total_billable,
        }
