"""
User/agent directory and agent selection.
"""

import pytest

from superclaw.agent.intent import Intent
from superclaw.agent.selector import choose_agent, select_agent
from superclaw.db import Agent, AgentStatus, Channel
from superclaw.errors import AgentLimitExceeded, AgentNotFound
from superclaw.services.directory import (
    create_agent, create_user_with_email, find_user_by_external_id, list_active_agents,
    list_agents, parse_channel, register_user, set_agent_status,
)

from conftest import make_agent, make_user


# ============ Channels & users ============

class TestParseChannel:
    def test_known(self):
        assert parse_channel("Telegram") == Channel.TELEGRAM
        assert parse_channel(Channel.SLACK) == Channel.SLACK

    def test_unknown(self):
        with pytest.raises(ValueError):
            parse_channel("whatsapp")


@pytest.mark.asyncio
async def test_register_user_get_or_create(db_session):
    user, created = await register_user(db_session, "telegram", "12345", name="Ada")
    assert created is True
    assert user.subscription_tier == "FREE"
    assert user.message_limit == 100
    assert user.telegram_id == "12345"

    again, created = await register_user(db_session, "telegram", "12345")
    assert created is False
    assert again.id == user.id


@pytest.mark.asyncio
async def test_identities_are_per_channel(db_session):
    await register_user(db_session, "discord", "777")
    assert await find_user_by_external_id(db_session, "discord", "777") is not None
    assert await find_user_by_external_id(db_session, "slack", "777") is None


@pytest.mark.asyncio
async def test_api_channel_resolves_by_user_id(db_session):
    user = await make_user(db_session)
    found = await find_user_by_external_id(db_session, Channel.API, user.id)
    assert found.id == user.id
    with pytest.raises(ValueError):
        await register_user(db_session, "api", user.id)


@pytest.mark.asyncio
async def test_create_user_with_email_rejects_duplicates(db_session):
    await create_user_with_email(db_session, "ada@example.com")
    with pytest.raises(ValueError):
        await create_user_with_email(db_session, "ada@example.com")


# ============ Agents ============

@pytest.mark.asyncio
async def test_create_agent_is_pending_and_ordered(db_session):
    user = await make_user(db_session, tier="AGENCY")
    first = await create_agent(db_session, user, "Writer", "Content Writer", {"focusTopics": "AI"})
    second = await create_agent(db_session, user, "", "Data Analyst")

    assert first.status == AgentStatus.PENDING.value
    assert first.skills == {"type": "Content Writer", "config": {"focusTopics": "AI"}}
    assert second.name == "Data Analyst Agent"
    assert second.position > first.position
    assert [a.id for a in await list_agents(db_session, user.id)] == [first.id, second.id]


@pytest.mark.asyncio
async def test_agent_limit_enforced(db_session):
    user = await make_user(db_session, tier="STARTER")
    await create_agent(db_session, user, "One", "Marketing")
    with pytest.raises(AgentLimitExceeded):
        await create_agent(db_session, user, "Two", "Marketing")


@pytest.mark.asyncio
async def test_stopped_agents_free_a_slot(db_session):
    user = await make_user(db_session, tier="STARTER")
    first = await create_agent(db_session, user, "One", "Marketing")
    await set_agent_status(db_session, user.id, first.id, AgentStatus.STOPPED)

    second = await create_agent(db_session, user, "Two", "Custom")
    assert second.id != first.id

    # Restarting the stopped one would exceed the limit again
    with pytest.raises(AgentLimitExceeded):
        await set_agent_status(db_session, user.id, first.id, "active")


@pytest.mark.asyncio
async def test_set_agent_status_is_owner_scoped(db_session):
    owner = await make_user(db_session, tier="PRO")
    other = await make_user(db_session, tier="PRO")
    agent = await create_agent(db_session, owner, "Mine", "Custom")

    with pytest.raises(AgentNotFound):
        await set_agent_status(db_session, other.id, agent.id, "active")

    updated = await set_agent_status(db_session, owner.id, agent.id, "active")
    assert updated.status == "active"


@pytest.mark.asyncio
async def test_list_active_agents(db_session):
    user = await make_user(db_session, tier="PRO")
    await make_agent(db_session, user, "Marketing", position=2)
    await make_agent(db_session, user, "Content Writer", position=1)
    await make_agent(db_session, user, "Custom", status="stopped", position=3)

    agents = await list_active_agents(db_session, user.id)
    assert [a.skills["type"] for a in agents] == ["Content Writer", "Marketing"]


# ============ Selection ============

def _agent(agent_type: str) -> Agent:
    return Agent(name=agent_type, skills={"type": agent_type, "config": {}})


class TestChooseAgent:
    def test_no_agents(self):
        assert choose_agent([], Intent.CONTENT) is None

    def test_single_agent_wins_regardless(self):
        only = _agent("Data Analyst")
        assert choose_agent([only], Intent.SEO) is only

    def test_general_takes_first(self):
        agents = [_agent("Marketing"), _agent("Content Writer")]
        assert choose_agent(agents, Intent.GENERAL) is agents[0]

    def test_first_match_wins(self):
        agents = [_agent("Marketing"), _agent("Content Writer"), _agent("content ideas")]
        assert choose_agent(agents, Intent.CONTENT) is agents[1]

    def test_no_match_falls_back_to_first(self):
        agents = [_agent("Marketing"), _agent("Content Writer")]
        assert choose_agent(agents, Intent.SUPPORT) is agents[0]

    def test_analytics_matches_data_analyst(self):
        agents = [_agent("Marketing"), _agent("Data Analyst")]
        assert choose_agent(agents, Intent.ANALYTICS) is agents[1]

    def test_missing_skills(self):
        broken = Agent(name="broken", skills=None)
        seo = _agent("SEO Specialist")
        assert choose_agent([broken, seo], Intent.SEO) is seo


@pytest.mark.asyncio
async def test_select_agent_uses_intent(db_session):
    user = await make_user(db_session, tier="PRO")
    marketing = await make_agent(db_session, user, "Marketing", position=1)
    support = await make_agent(db_session, user, "Customer Support", position=2)

    assert (await select_agent(db_session, user.id, "I need help with my order")).id == support.id
    assert (await select_agent(db_session, user.id, "hello there")).id == marketing.id


@pytest.mark.asyncio
async def test_select_agent_none_active(db_session):
    user = await make_user(db_session, tier="PRO")
    await make_agent(db_session, user, "Marketing", status="pending")
    assert await select_agent(db_session, user.id, "hi") is None
