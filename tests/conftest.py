"""Shared fixtures: a throwaway SQLite file database per test and fake collaborators."""

from typing import List, Optional, Tuple

import pytest_asyncio

from superclaw.agent.rate_limiter import RateLimiter
from superclaw.db import Agent, AgentStatus, User, create_engine_for, create_session_maker, init_db, drop_db
from superclaw.errors import CompletionError
from superclaw.services.tiers import get_tier_message_limit


class FakeCompletion:
    """Stands in for CompletionService; records every call."""

    def __init__(self, reply: str = "Sure, here you go.", error: Optional[CompletionError] = None):
        self.reply = reply
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_text: str) -> str:
        self.calls.append((system_prompt, user_text))
        if self.error:
            raise self.error
        return self.reply


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh file-backed SQLite database for each test"""
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path}/superclaw_test.db")
    await init_db(engine)
    yield engine
    await drop_db(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    return create_session_maker(engine)


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


async def make_user(
    db,
    tier: str = "FREE",
    used: int = 0,
    limit: Optional[int] = None,
    telegram_id: Optional[str] = None,
    **kwargs,
) -> User:
    user = User(
        subscription_tier=tier,
        message_limit=limit if limit is not None else get_tier_message_limit(tier),
        messages_this_month=used,
        telegram_id=telegram_id,
        **kwargs,
    )
    db.add(user)
    await db.commit()
    return user


async def make_agent(
    db,
    user: User,
    agent_type: str,
    status: str = AgentStatus.ACTIVE.value,
    position: int = 1,
    config: Optional[dict] = None,
) -> Agent:
    agent = Agent(
        user_id=user.id,
        name=f"{agent_type} Agent",
        status=status,
        skills={"type": agent_type, "config": config or {}},
        position=position,
    )
    db.add(agent)
    await db.commit()
    return agent


def make_limiter(max_requests: int = 50, clock=None) -> RateLimiter:
    return RateLimiter(max_requests=max_requests, window_seconds=60.0, clock=clock or FakeClock())
