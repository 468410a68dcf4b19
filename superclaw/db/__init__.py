from superclaw.db.models import (
    Base, User, Agent, UsageRecord, ApiKey,
    SubscriptionTier, AgentStatus, Channel, UNLIMITED,
)
from superclaw.db.database import (
    get_db, init_db, drop_db, async_session_maker, engine,
    create_engine_for, create_session_maker,
)

__all__ = [
    "Base",
    "User",
    "Agent",
    "UsageRecord",
    "ApiKey",
    "SubscriptionTier",
    "AgentStatus",
    "Channel",
    "UNLIMITED",
    # Database
    "get_db",
    "init_db",
    "drop_db",
    "async_session_maker",
    "engine",
    "create_engine_for",
    "create_session_maker",
]
