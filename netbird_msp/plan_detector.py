"""
Plan Detector Module
Purpose: Best-effort subscription tier lookup for a tenant

The subscription endpoint has no stable schema for plan data, so detection
walks an ordered chain and never raises:
  1. `plan_tier` field (team / business / enterprise / verbatim)
  2. first non-empty candidate field (plan, subscription.plan, tier, name, product)
  3. keyword search over the whole serialised body
  4. Unknown
"""

import json
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from netbird_msp.api_client import NetBirdClient
from netbird_msp.exceptions import FetchError
from netbird_msp.fetchers import SUBSCRIPTION_ENDPOINT
from netbird_msp.models import UNKNOWN, PlanTier, plan_from_label

Extractor = Callable[[Any], Optional[str]]

DEFAULT_CANDIDATE_FIELDS = ["plan", "subscription.plan", "tier", "name", "product"]
DEFAULT_KEYWORDS = [("business", "Business"), ("team", "Team")]


def field_extractor(path: str) -> Extractor:
    """Extractor reading a dotted path; returns the value only if it is a non-empty string"""
    keys = path.split(".")

    def extract(body: Any) -> Optional[str]:
        node = body
        for key in keys:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        if isinstance(node, str) and node.strip():
            return node
        return None

    extract.__name__ = f"field[{path}]"
    return extract


def match_keywords(text: str, keywords: Sequence[Tuple[str, str]]) -> Optional[PlanTier]:
    lowered = text.lower()
    for needle, label in keywords:
        if needle.lower() in lowered:
            return plan_from_label(label)
    return None


def tier_from_plan_tier_field(body: Any) -> Optional[PlanTier]:
    if not isinstance(body, dict):
        return None
    value = body.get("plan_tier")
    if not isinstance(value, str) or not value.strip():
        return None
    return PlanTier.from_plan_tier(value)


class PlanDetector:
    """Resolve a tenant's PlanTier via the billing subscription endpoint"""

    def __init__(
        self,
        client: NetBirdClient,
        candidate_fields: Optional[List[str]] = None,
        keywords: Optional[Sequence[Sequence[str]]] = None,
    ):
        self.client = client
        self.extractors: List[Extractor] = [
            field_extractor(path) for path in (candidate_fields or DEFAULT_CANDIDATE_FIELDS)
        ]
        self.keywords: List[Tuple[str, str]] = [
            (str(k), str(v)) for k, v in (keywords or DEFAULT_KEYWORDS)
        ]

    @classmethod
    def from_config(cls, client: NetBirdClient, cfg: Dict) -> "PlanDetector":
        section = cfg.get("plan_detection", {})
        return cls(
            client,
            candidate_fields=section.get("candidate_fields"),
            keywords=section.get("keywords"),
        )

    def detect(self, tenant_id: str, tenant_name: str = "") -> PlanTier:
        """Never raises; total failure yields Unknown"""
        label = tenant_name or tenant_id
        try:
            body = self.client.get(
                SUBSCRIPTION_ENDPOINT,
                f"Billing subscription for {label}",
                params={"account": tenant_id},
            )
        except FetchError as e:
            logger.warning(f"⚠️ Plan detection failed for {label}: {e}")
            return UNKNOWN

        return self.classify(body)

    def classify(self, body: Any) -> PlanTier:
        """Apply the heuristic chain to an already-fetched subscription body"""
        tier = tier_from_plan_tier_field(body)
        if tier is not None:
            return tier

        for extractor in self.extractors:
            value = extractor(body)
            if value is None:
                continue
            # only the first non-empty candidate is considered
            tier = match_keywords(value, self.keywords)
            if tier is not None:
                return tier
            break

        try:
            raw_text = json.dumps(body, sort_keys=True, default=str)
        except (TypeError, ValueError):
            raw_text = str(body)
        tier = match_keywords(raw_text, self.keywords)
        if tier is not None:
            return tier

        return UNKNOWN
