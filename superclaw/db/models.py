"""
Database models for the SuperClaw routing core

- Users with one or more external chat identities and a subscription tier
- Agents (user-owned personas) with a JSON skills blob
- Append-only message usage records for reporting
- API keys for the direct API channel
"""

from datetime import datetime
from typing import Optional, List, Any, Dict
from enum import Enum
import uuid

from sqlalchemy import (
    String, DateTime, Integer, Boolean, ForeignKey, JSON, Index
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class SubscriptionTier(str, Enum):
    """Subscription levels that determine message and agent quotas"""
    FREE = "FREE"
    STARTER = "STARTER"
    PRO = "PRO"
    AGENCY = "AGENCY"


class AgentStatus(str, Enum):
    """Agent lifecycle states"""
    PENDING = "pending"   # Created, not yet spawned
    ACTIVE = "active"     # Receives routed messages
    STOPPED = "stopped"   # Explicitly stopped or torn down
    ERROR = "error"       # Set by the external health checker


class Channel(str, Enum):
    """Chat platforms that can deliver messages to the router"""
    TELEGRAM = "telegram"
    DISCORD = "discord"
    SLACK = "slack"
    API = "api"


UNLIMITED = -1  # message_limit / agent limit sentinel


class User(Base):
    """A tenant. Each external identity maps to at most one account."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    telegram_id: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)
    discord_id: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)
    slack_id: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Billing
    subscription_tier: Mapped[str] = mapped_column(String(20), default=SubscriptionTier.FREE.value, index=True)
    message_limit: Mapped[int] = mapped_column(Integer, default=0)  # -1 = unlimited
    messages_this_month: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    agents: Mapped[List["Agent"]] = relationship("Agent", back_populates="user", order_by="Agent.position")

    @property
    def is_unlimited(self) -> bool:
        return self.message_limit == UNLIMITED


class Agent(Base):
    """
    A configured persona owned by exactly one user.

    `skills` is stored as JSON for compatibility with the dashboard:
        {"type": "Content Writer", "config": {"focusTopics": "AI startups"}}
    Use `persona` to get the typed view.
    """
    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default=AgentStatus.PENDING.value)
    skills: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0)  # Insertion order within the owner
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user: Mapped["User"] = relationship("User", back_populates="agents")

    __table_args__ = (
        Index("ix_agents_user_status", "user_id", "status"),
    )

    @property
    def persona(self):
        from superclaw.agent.personas import persona_from_skills
        return persona_from_skills(self.skills)


class UsageRecord(Base):
    """Immutable message usage entry for one billing period."""
    __tablename__ = "message_usage"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    agent_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    count: Mapped[int] = mapped_column(Integer, default=1)
    period_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    period_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_message_usage_user_period", "user_id", "period_start"),
    )


class ApiKey(Base):
    """API key for the direct API channel. Only the SHA-256 hash is stored."""
    __tablename__ = "api_keys"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), default="default")
    key_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    prefix: Mapped[str] = mapped_column(String(12))  # First chars for display
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_api_keys_user_id", "user_id"),
    )
