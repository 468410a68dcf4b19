"""
Message router — gate order, usage accounting and failure mapping.
"""

import asyncio

import pytest
from sqlalchemy import select, func

from superclaw.agent.message_router import MessageRouter, RouteErrorCode, RouteResult
from superclaw.agent.prompt_builder import SYSTEM_PROMPTS
from superclaw.agent.structured_logging import user_id_var
from superclaw.db import UsageRecord, User
from superclaw.errors import CompletionError, CompletionErrorKind

from conftest import FakeCompletion, make_agent, make_limiter, make_user


def _router(session_maker, completion=None, limiter=None, enforce_free=False) -> MessageRouter:
    return MessageRouter(
        session_factory=session_maker,
        completion_service=completion or FakeCompletion(),
        rate_limiter=limiter or make_limiter(),
        enforce_free_tier_quota=enforce_free,
    )


async def _usage(session_maker, user_id):
    async with session_maker() as db:
        user = await db.get(User, user_id)
        records = (await db.execute(
            select(func.count(UsageRecord.id)).where(UsageRecord.user_id == user_id)
        )).scalar()
        return user.messages_this_month, records


class TestRouteResult:
    def test_ok_to_dict(self):
        result = RouteResult.ok("agent-1", "hi")
        assert result.to_dict() == {"success": True, "agentId": "agent-1", "response": "hi"}
        assert result.text == "hi"

    def test_fail_to_dict(self):
        result = RouteResult.fail(RouteErrorCode.QUOTA_EXCEEDED)
        assert result.to_dict() == {
            "success": False,
            "error": "Message limit reached. Upgrade your plan at /upgrade",
            "code": "quota_exceeded",
        }


@pytest.mark.asyncio
async def test_starter_end_to_end_then_quota(session_maker):
    async with session_maker() as db:
        user = await make_user(db, tier="STARTER", limit=500, used=499, telegram_id="4242")
        agent = await make_agent(db, user, "Customer Support")

    completion = FakeCompletion(reply="Happy to help with your order!")
    router = _router(session_maker, completion)

    first = await router.route("telegram", "4242", "I need help with my order")
    assert first.success is True
    assert first.agent_id == agent.id
    assert first.response == "Happy to help with your order!"
    assert completion.calls == [(SYSTEM_PROMPTS["Customer Support"], "I need help with my order")]
    assert await _usage(session_maker, user.id) == (500, 1)

    second = await router.route("telegram", "4242", "One more thing")
    assert second.success is False
    assert second.error_code == RouteErrorCode.QUOTA_EXCEEDED
    assert second.error == "Message limit reached. Upgrade your plan at /upgrade"
    assert len(completion.calls) == 1
    assert await _usage(session_maker, user.id) == (500, 1)


@pytest.mark.asyncio
async def test_pro_unlimited_round_trip(session_maker):
    async with session_maker() as db:
        user = await make_user(db, tier="PRO", used=1_000_000, telegram_id="9")
        await make_agent(db, user, "Data Analyst", config={"focusTopics": "retail"})

    completion = FakeCompletion()
    result = await _router(session_maker, completion).route("telegram", "9", "chart my sales")

    assert result.success is True
    assert completion.calls[0][0].endswith("Focus topics: retail")
    assert await _usage(session_maker, user.id) == (1_000_001, 1)


@pytest.mark.asyncio
async def test_unknown_user(session_maker):
    completion = FakeCompletion()
    result = await _router(session_maker, completion).route("telegram", "nobody", "hi")
    assert result.error_code == RouteErrorCode.USER_NOT_FOUND
    assert result.error == "User not found. Use /start to create an account."
    assert completion.calls == []


@pytest.mark.asyncio
async def test_log_context_reset_between_routes(session_maker):
    async with session_maker() as db:
        user = await make_user(db, tier="PRO", telegram_id="42")
        await make_agent(db, user, "Content Writer")

    router = _router(session_maker)
    await router.route("telegram", "42", "hello")
    assert user_id_var.get() == user.id

    await router.route("telegram", "nobody", "hello")
    assert user_id_var.get() == ""


@pytest.mark.asyncio
async def test_unsupported_channel(session_maker):
    result = await _router(session_maker).route("carrier-pigeon", "1", "hi")
    assert result.error_code == RouteErrorCode.UNSUPPORTED_CHANNEL


@pytest.mark.asyncio
async def test_no_active_agent(session_maker):
    async with session_maker() as db:
        user = await make_user(db, tier="STARTER", telegram_id="5")
        await make_agent(db, user, "Marketing", status="pending")

    result = await _router(session_maker).route("telegram", "5", "hi")
    assert result.error_code == RouteErrorCode.NO_ACTIVE_AGENT
    assert result.error == "No active agents found. Use /start to create one!"
    assert await _usage(session_maker, user.id) == (0, 0)


@pytest.mark.asyncio
async def test_free_tier_not_gated_by_default(session_maker):
    async with session_maker() as db:
        user = await make_user(db, tier="FREE", used=100, telegram_id="6")
        await make_agent(db, user, "Custom")

    result = await _router(session_maker).route("telegram", "6", "hi")
    assert result.success is True


@pytest.mark.asyncio
async def test_free_tier_gated_when_enforced(session_maker):
    async with session_maker() as db:
        user = await make_user(db, tier="FREE", used=100, telegram_id="7")
        await make_agent(db, user, "Custom")

    result = await _router(session_maker, enforce_free=True).route("telegram", "7", "hi")
    assert result.error_code == RouteErrorCode.QUOTA_EXCEEDED


@pytest.mark.asyncio
async def test_rate_limited_records_nothing(session_maker):
    async with session_maker() as db:
        user = await make_user(db, tier="PRO", telegram_id="8")
        await make_agent(db, user, "Custom")

    completion = FakeCompletion()
    router = _router(session_maker, completion, limiter=make_limiter(max_requests=2))

    assert (await router.route("telegram", "8", "a")).success
    assert (await router.route("telegram", "8", "b")).success
    third = await router.route("telegram", "8", "c")

    assert third.error_code == RouteErrorCode.RATE_LIMITED
    assert len(completion.calls) == 2
    assert await _usage(session_maker, user.id) == (2, 2)


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", list(CompletionErrorKind))
async def test_completion_failure_records_nothing(session_maker, kind):
    async with session_maker() as db:
        user = await make_user(db, tier="STARTER", telegram_id="10")
        await make_agent(db, user, "Marketing")

    completion = FakeCompletion(error=CompletionError(kind, "provider said no"))
    result = await _router(session_maker, completion).route("telegram", "10", "write ad copy")

    assert result.success is False
    assert result.error_code == RouteErrorCode.COMPLETION_FAILED
    assert result.error == CompletionError(kind).user_message
    assert "provider said no" not in result.error
    assert await _usage(session_maker, user.id) == (0, 0)


@pytest.mark.asyncio
async def test_unexpected_error_becomes_internal_error(session_maker):
    class Exploding:
        async def complete(self, system_prompt, user_text):
            raise KeyError("surprise")

    async with session_maker() as db:
        user = await make_user(db, tier="STARTER", telegram_id="11")
        await make_agent(db, user, "Marketing")

    result = await _router(session_maker, Exploding()).route("telegram", "11", "hi")
    assert result.error_code == RouteErrorCode.INTERNAL_ERROR
    assert result.error == "Failed to process message. Please try again."


@pytest.mark.asyncio
async def test_selects_agent_by_intent(session_maker):
    async with session_maker() as db:
        user = await make_user(db, tier="PRO", telegram_id="12")
        await make_agent(db, user, "Content Writer", position=1)
        seo = await make_agent(db, user, "SEO Specialist", position=2)

    result = await _router(session_maker).route("telegram", "12", "improve my google ranking")
    assert result.agent_id == seo.id


@pytest.mark.asyncio
async def test_concurrent_routes_count_every_message(session_maker):
    async with session_maker() as db:
        user = await make_user(db, tier="PRO", telegram_id="13")
        await make_agent(db, user, "Custom")

    router = _router(session_maker)
    results = await asyncio.gather(*(router.route("telegram", "13", f"msg {i}") for i in range(15)))

    assert all(r.success for r in results)
    assert await _usage(session_maker, user.id) == (15, 15)
