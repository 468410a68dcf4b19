"""
Agent Selector — pick the one active agent that should answer a message.

Policy (no scoring):
  - no active agents      → None
  - exactly one           → that agent, whatever the intent
  - several, intent general → first agent in insertion order
  - several, other intent → first agent whose persona type contains the
                             intent's keyword (case-insensitive), else the
                             first agent overall

Analytics looks for "analy" rather than the whole word "analytics", which
the earlier router matched. That router never sent analytics messages to a
"Data Analyst" agent; this one does.
"""

import logging
from typing import Dict, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from superclaw.agent.intent import Intent, classify
from superclaw.db.models import Agent
from superclaw.services.directory import list_active_agents

logger = logging.getLogger(__name__)

# Substring each intent looks for in an agent's persona type.
# "analy" covers both "Data Analyst" and "Analytics ..." type names
# (deliberately wider than a plain "analytics" match).
INTENT_TYPE_KEYWORDS: Dict[Intent, str] = {
    Intent.CONTENT: "content",
    Intent.SEO: "seo",
    Intent.MARKETING: "marketing",
    Intent.SUPPORT: "support",
    Intent.ANALYTICS: "analy",
    Intent.CUSTOM: "custom",
}


def agent_type_name(agent: Agent) -> str:
    skills = agent.skills if isinstance(agent.skills, dict) else {}
    type_name = skills.get("type")
    return type_name if isinstance(type_name, str) else ""


def choose_agent(agents: Sequence[Agent], intent: Intent) -> Optional[Agent]:
    """Apply the selection policy to agents already in insertion order."""
    if not agents:
        return None
    if len(agents) == 1 or intent == Intent.GENERAL:
        return agents[0]

    keyword = INTENT_TYPE_KEYWORDS.get(intent)
    if keyword:
        for agent in agents:
            if keyword in agent_type_name(agent).lower():
                return agent

    return agents[0]


async def select_agent(db: AsyncSession, user_id: str, text: str) -> Optional[Agent]:
    agents = await list_active_agents(db, user_id)
    if len(agents) <= 1:
        return agents[0] if agents else None

    intent = classify(text)
    agent = choose_agent(agents, intent)
    logger.debug(f"Intent '{intent.value}' → agent {agent.id} ({agent_type_name(agent)})")
    return agent
