"""
User and agent directory.

Lookups the router depends on (user by external identity, active agents in
insertion order) plus the registration and agent lifecycle helpers used by
the channel adapters and the API.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from superclaw.agent.personas import make_persona
from superclaw.db.models import User, Agent, AgentStatus, Channel, SubscriptionTier, UNLIMITED
from superclaw.errors import AgentLimitExceeded, AgentNotFound
from superclaw.services.tiers import get_tier_agent_limit, get_tier_message_limit

logger = logging.getLogger(__name__)

# Which User column holds the identity for each channel
CHANNEL_IDENTITY_FIELDS = {
    Channel.TELEGRAM: "telegram_id",
    Channel.DISCORD: "discord_id",
    Channel.SLACK: "slack_id",
    Channel.API: "id",
}


def parse_channel(channel: Union[str, Channel]) -> Channel:
    """Raises ValueError for unknown channels."""
    if isinstance(channel, Channel):
        return channel
    return Channel(str(channel).lower())


async def find_user_by_external_id(
    db: AsyncSession,
    channel: Union[str, Channel],
    external_id: str,
) -> Optional[User]:
    field_name = CHANNEL_IDENTITY_FIELDS[parse_channel(channel)]
    column = getattr(User, field_name)
    result = await db.execute(select(User).where(column == str(external_id)))
    return result.scalar_one_or_none()


async def list_active_agents(db: AsyncSession, user_id: str) -> List[Agent]:
    """Active agents owned by the user, in stable insertion order."""
    result = await db.execute(
        select(Agent)
        .where(and_(Agent.user_id == user_id, Agent.status == AgentStatus.ACTIVE.value))
        .order_by(Agent.position.asc(), Agent.created_at.asc())
    )
    return list(result.scalars().all())


async def list_agents(db: AsyncSession, user_id: str) -> List[Agent]:
    result = await db.execute(
        select(Agent)
        .where(Agent.user_id == user_id)
        .order_by(Agent.position.asc(), Agent.created_at.asc())
    )
    return list(result.scalars().all())


async def register_user(
    db: AsyncSession,
    channel: Union[str, Channel],
    external_id: str,
    name: Optional[str] = None,
    email: Optional[str] = None,
) -> Tuple[User, bool]:
    """
    Get or create the account for an external identity.

    New accounts start on the FREE tier. Returns (user, created).
    """
    channel = parse_channel(channel)
    if channel == Channel.API:
        raise ValueError("API users are registered by email, not by channel identity")

    existing = await find_user_by_external_id(db, channel, external_id)
    if existing:
        return existing, False

    user = User(
        name=name,
        email=email,
        subscription_tier=SubscriptionTier.FREE.value,
        message_limit=get_tier_message_limit(SubscriptionTier.FREE),
        messages_this_month=0,
    )
    setattr(user, CHANNEL_IDENTITY_FIELDS[channel], str(external_id))
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent /start for the same identity
        await db.rollback()
        existing = await find_user_by_external_id(db, channel, external_id)
        if existing is None:
            raise
        return existing, False

    logger.info(f"Created user {user.id} ({channel.value}:{external_id})")
    return user, True


async def create_user_with_email(db: AsyncSession, email: str, name: Optional[str] = None) -> User:
    """Create a FREE user identified by email. Raises ValueError if the email is taken."""
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise ValueError(f"Email '{email}' is already registered")

    user = User(
        email=email,
        name=name,
        subscription_tier=SubscriptionTier.FREE.value,
        message_limit=get_tier_message_limit(SubscriptionTier.FREE),
        messages_this_month=0,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def _count_live_agents(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count(Agent.id)).where(
            and_(Agent.user_id == user_id, Agent.status != AgentStatus.STOPPED.value)
        )
    )
    return result.scalar() or 0


async def create_agent(
    db: AsyncSession,
    user: User,
    name: str,
    agent_type: str,
    config: Optional[Dict[str, Any]] = None,
) -> Agent:
    """
    Create a pending agent for `user`.

    Stopped agents do not count toward the tier's agent limit.
    """
    limit = get_tier_agent_limit(user.subscription_tier)
    if limit != UNLIMITED and await _count_live_agents(db, user.id) >= limit:
        raise AgentLimitExceeded(user.subscription_tier, limit)

    position_result = await db.execute(
        select(func.coalesce(func.max(Agent.position), 0)).where(Agent.user_id == user.id)
    )
    next_position = (position_result.scalar() or 0) + 1

    persona = make_persona(agent_type, config)
    agent = Agent(
        user_id=user.id,
        name=name or f"{persona.type_name} Agent",
        status=AgentStatus.PENDING.value,
        skills=persona.to_skills(),
        position=next_position,
    )
    db.add(agent)
    await db.commit()
    await db.refresh(agent)
    logger.info(f"Created agent {agent.id} ({persona.type_name}) for user {user.id}")
    return agent


async def set_agent_status(
    db: AsyncSession,
    user_id: str,
    agent_id: str,
    status: Union[str, AgentStatus],
) -> Agent:
    status = AgentStatus(status)
    result = await db.execute(
        select(Agent).where(and_(Agent.id == agent_id, Agent.user_id == user_id))
    )
    agent = result.scalar_one_or_none()
    if agent is None:
        raise AgentNotFound(agent_id)

    # Restarting a stopped agent takes a slot again
    if agent.status == AgentStatus.STOPPED.value and status != AgentStatus.STOPPED:
        user = await db.get(User, user_id)
        limit = get_tier_agent_limit(user.subscription_tier)
        if limit != UNLIMITED and await _count_live_agents(db, user_id) >= limit:
            raise AgentLimitExceeded(user.subscription_tier, limit)

    agent.status = status.value
    await db.commit()
    await db.refresh(agent)
    logger.info(f"Agent {agent_id} status -> {status.value}")
    return agent
