"""
Chat Commands — /start, /agent, /status, /help
Registry-based command dispatch shared by the Telegram, Discord and Slack
webhooks. Anything that is not a command is routed to the user's agents.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from superclaw.agent.personas import PERSONA_TYPES
from superclaw.db.models import AgentStatus, UNLIMITED
from superclaw.errors import AgentLimitExceeded
from superclaw.services.directory import (
    create_agent, find_user_by_external_id, list_agents, register_user, set_agent_status,
)

logger = logging.getLogger(__name__)


@dataclass
class CommandDef:
    """Definition of a chat command."""
    name: str
    description: str
    handler: Optional[Callable] = None
    aliases: List[str] = field(default_factory=list)


@dataclass
class CommandContext:
    """Who sent the command. `db` is an open AsyncSession."""
    db: Any
    channel: str
    external_id: str
    display_name: Optional[str] = None


WELCOME_TEXT = """🎉 Welcome to SuperClaw!

Your personal AI agent, instant setup.

Choose your agent type with /agent <type>:
{types}

Example: /agent Content Writer: tech startups and AI news"""


class CommandRegistry:
    """Registry for chat commands with dispatch."""

    def __init__(self):
        self._commands: Dict[str, CommandDef] = {}
        self._aliases: Dict[str, str] = {}
        self._register_builtins()

    def _register_builtins(self):
        builtins = [
            CommandDef("start", "Create your account", handler=self._cmd_start),
            CommandDef("agent", "Add an agent: /agent <type>[: focus topics]", handler=self._cmd_agent, aliases=["new"]),
            CommandDef("status", "View your plan, usage and agents", handler=self._cmd_status),
            CommandDef("help", "Show available commands", handler=self._cmd_help, aliases=["h", "?"]),
        ]
        for cmd in builtins:
            self.register(cmd)

    def register(self, cmd: CommandDef) -> None:
        self._commands[cmd.name] = cmd
        for alias in cmd.aliases:
            self._aliases[alias] = cmd.name

    def get(self, name: str) -> Optional[CommandDef]:
        resolved = self._aliases.get(name, name)
        return self._commands.get(resolved)

    def list_commands(self) -> List[CommandDef]:
        return sorted(self._commands.values(), key=lambda c: c.name)

    def parse(self, text: str) -> Optional[tuple]:
        """Parse a command from message text. Returns (command_name, args) or None."""
        if not text or not text.startswith("/"):
            return None
        parts = text[1:].split(None, 1)
        if not parts:
            return None
        cmd_name = parts[0].lower().split("@")[0]  # Handle /cmd@botname
        args = parts[1] if len(parts) > 1 else ""
        resolved = self._aliases.get(cmd_name, cmd_name)
        if resolved in self._commands:
            return (resolved, args)
        return None

    async def execute(self, text: str, ctx: CommandContext) -> Optional[str]:
        """
        Parse and execute a command. Returns the reply text, or None when
        `text` is not a known command (the caller routes it instead).
        """
        parsed = self.parse(text)
        if not parsed:
            return None
        cmd_name, args = parsed
        cmd = self._commands[cmd_name]
        if asyncio.iscoroutinefunction(cmd.handler):
            return await cmd.handler(args, ctx)
        return cmd.handler(args, ctx)

    # ── Handlers ─────────────────────────────────────────────

    async def _cmd_start(self, args: str, ctx: CommandContext) -> str:
        user, created = await register_user(ctx.db, ctx.channel, ctx.external_id, name=ctx.display_name)
        if created:
            types = "\n".join(f"  • {name}" for name in PERSONA_TYPES)
            return WELCOME_TEXT.format(types=types)

        agents = await list_agents(ctx.db, user.id)
        count = len(agents)
        return (
            f"👋 Welcome back to SuperClaw!\n\n"
            f"You have {count} agent{'s' if count != 1 else ''} configured.\n"
            f"Add another with /agent <type>, or check /status for details."
        )

    async def _cmd_agent(self, args: str, ctx: CommandContext) -> str:
        user = await find_user_by_external_id(ctx.db, ctx.channel, ctx.external_id)
        if user is None:
            return "❌ You don't have an account yet. Use /start to create one!"

        type_part, _, focus = args.partition(":")
        agent_type = self._match_type(type_part)
        if agent_type is None:
            return "Which agent type? Choose one of: " + ", ".join(PERSONA_TYPES)

        config = {"focusTopics": focus.strip()} if focus.strip() else {}
        try:
            agent = await create_agent(ctx.db, user, f"{agent_type} Agent", agent_type, config)
        except AgentLimitExceeded as e:
            return f"❌ {e}"

        # Chat-created agents go live immediately
        await set_agent_status(ctx.db, user.id, agent.id, AgentStatus.ACTIVE)
        return f"✅ {agent.name} created and active! Send a message to get started."

    async def _cmd_status(self, args: str, ctx: CommandContext) -> str:
        user = await find_user_by_external_id(ctx.db, ctx.channel, ctx.external_id)
        if user is None:
            return "❌ You don't have an account yet. Use /start to create one!"

        agents = await list_agents(ctx.db, user.id)
        lines = []
        for i, agent in enumerate(agents, 1):
            marker = "🟢 active" if agent.status == AgentStatus.ACTIVE.value else f"⚪ {agent.status}"
            lines.append(f"{i}. {agent.name} ({agent.persona.type_name}) - {marker}")

        limit = "unlimited" if user.message_limit == UNLIMITED else str(user.message_limit)
        return (
            f"📊 Your SuperClaw Status\n\n"
            f"Plan: {user.subscription_tier}\n"
            f"Usage: {user.messages_this_month} / {limit} messages this month\n\n"
            f"Agents:\n" + ("\n".join(lines) or "No agents yet. Use /agent to create one!")
        )

    def _cmd_help(self, args: str, ctx: CommandContext) -> str:
        lines = [f"/{c.name} — {c.description}" for c in self.list_commands()]
        return "Available commands:\n" + "\n".join(lines)

    @staticmethod
    def _match_type(text: str) -> Optional[str]:
        wanted = text.strip().lower()
        if not wanted:
            return None
        for name in PERSONA_TYPES:
            if name.lower() == wanted:
                return name
        for name in PERSONA_TYPES:
            if wanted in name.lower():
                return name
        return None


# ── Singleton ────────────────────────────────────────────────
_registry: Optional[CommandRegistry] = None


def get_command_registry() -> CommandRegistry:
    global _registry
    if _registry is None:
        _registry = CommandRegistry()
    return _registry
