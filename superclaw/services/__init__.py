from superclaw.services.tiers import (
    TierLimits, DEFAULT_TIER_LIMITS, parse_tier, get_tier_limits,
    get_tier_message_limit, get_tier_agent_limit,
)
from superclaw.services.usage_service import (
    UsageService, get_usage_service, QuotaStatus, UsageResult,
    current_billing_period, calculate_overage_charge,
)
from superclaw.services.completion_service import CompletionService, get_completion_service
from superclaw.services.directory import (
    parse_channel, find_user_by_external_id, list_active_agents, list_agents,
    register_user, create_user_with_email, create_agent, set_agent_status,
)

__all__ = [
    "TierLimits",
    "DEFAULT_TIER_LIMITS",
    "parse_tier",
    "get_tier_limits",
    "get_tier_message_limit",
    "get_tier_agent_limit",
    # Usage ledger
    "UsageService",
    "get_usage_service",
    "QuotaStatus",
    "UsageResult",
    "current_billing_period",
    "calculate_overage_charge",
    # Completion
    "CompletionService",
    "get_completion_service",
    # Directory
    "parse_channel",
    "find_user_by_external_id",
    "list_active_agents",
    "list_agents",
    "register_user",
    "create_user_with_email",
    "create_agent",
    "set_agent_status",
]
