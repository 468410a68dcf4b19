"""
Subscription tier limits.

This is the single place message and agent quotas per tier are defined.
The numbers are still a product decision: earlier dashboards, the checkout
handler and the container limits each carried their own table. Override
individual entries with TIER_LIMIT_OVERRIDES rather than editing callers.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from superclaw.config import settings
from superclaw.db.models import SubscriptionTier, UNLIMITED

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierLimits:
    """Quotas for one subscription tier. -1 means unlimited."""
    messages: int
    agents: int


DEFAULT_TIER_LIMITS: Dict[SubscriptionTier, TierLimits] = {
    SubscriptionTier.FREE: TierLimits(messages=100, agents=1),
    SubscriptionTier.STARTER: TierLimits(messages=500, agents=1),
    SubscriptionTier.PRO: TierLimits(messages=UNLIMITED, agents=3),
    SubscriptionTier.AGENCY: TierLimits(messages=UNLIMITED, agents=10),
}


def parse_tier(tier) -> SubscriptionTier:
    """Coerce a stored tier string to the enum. Unknown values fall back to FREE."""
    if isinstance(tier, SubscriptionTier):
        return tier
    try:
        return SubscriptionTier(str(tier).upper())
    except ValueError:
        logger.warning(f"Unknown subscription tier {tier!r}, treating as FREE")
        return SubscriptionTier.FREE


def get_tier_limits(tier, overrides: Optional[Dict[str, Dict[str, int]]] = None) -> TierLimits:
    tier = parse_tier(tier)
    limits = DEFAULT_TIER_LIMITS[tier]
    override = (overrides if overrides is not None else settings.tier_limit_overrides).get(tier.value)
    if not override:
        return limits
    return TierLimits(
        messages=override.get("messages", limits.messages),
        agents=override.get("agents", limits.agents),
    )


def get_tier_message_limit(tier) -> int:
    return get_tier_limits(tier).messages


def get_tier_agent_limit(tier) -> int:
    return get_tier_limits(tier).agents
