"""
Message Router — single entry point for every channel adapter.

    result = await get_message_router().route("telegram", "123456", "hello")

Each call is a linear chain of gates; the first failing gate ends the call
with no side effects:

  1. resolve the user from the channel identity
  2. monthly quota (pre-message counters)
  3. agent selection
  4. per-user rate limit
  5. prompt + completion
  6. usage recorded only after a successful completion

Nothing raises out of route(): every failure becomes a RouteResult with a
user-facing error string, so a webhook handler never drops a message
without feedback.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from superclaw.agent.prompt_builder import build_persona_prompt
from superclaw.agent.rate_limiter import RateLimiter, get_rate_limiter
from superclaw.agent.selector import select_agent
from superclaw.agent.structured_logging import (
    router_log, usage_log, clear_request_context, set_request_context, generate_request_id,
)
from superclaw.config import settings
from superclaw.db import async_session_maker
from superclaw.db.models import User, SubscriptionTier, UNLIMITED
from superclaw.errors import CompletionError
from superclaw.services.completion_service import CompletionService, get_completion_service
from superclaw.services.directory import find_user_by_external_id, parse_channel
from superclaw.services.usage_service import UsageService


class RouteErrorCode(str, Enum):
    USER_NOT_FOUND = "user_not_found"
    UNSUPPORTED_CHANNEL = "unsupported_channel"
    QUOTA_EXCEEDED = "quota_exceeded"
    NO_ACTIVE_AGENT = "no_active_agent"
    RATE_LIMITED = "rate_limited"
    COMPLETION_FAILED = "completion_failed"
    INTERNAL_ERROR = "internal_error"


ROUTE_ERROR_MESSAGES: Dict[RouteErrorCode, str] = {
    RouteErrorCode.USER_NOT_FOUND: "User not found. Use /start to create an account.",
    RouteErrorCode.UNSUPPORTED_CHANNEL: "This channel is not supported.",
    RouteErrorCode.QUOTA_EXCEEDED: "Message limit reached. Upgrade your plan at /upgrade",
    RouteErrorCode.NO_ACTIVE_AGENT: "No active agents found. Use /start to create one!",
    RouteErrorCode.RATE_LIMITED: "Rate limit exceeded. Please wait a moment before sending more requests.",
    RouteErrorCode.INTERNAL_ERROR: "Failed to process message. Please try again.",
}


@dataclass
class RouteResult:
    success: bool
    agent_id: Optional[str] = None
    response: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[RouteErrorCode] = None

    @classmethod
    def ok(cls, agent_id: str, response: str) -> "RouteResult":
        return cls(success=True, agent_id=agent_id, response=response)

    @classmethod
    def fail(cls, code: RouteErrorCode, message: Optional[str] = None) -> "RouteResult":
        return cls(success=False, error=message or ROUTE_ERROR_MESSAGES[code], error_code=code)

    @property
    def text(self) -> str:
        """What the channel adapter should send back to the user."""
        return self.response if self.success else (self.error or "")

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "agentId": self.agent_id, "response": self.response}
        return {
            "success": False,
            "error": self.error,
            "code": self.error_code.value if self.error_code else None,
        }


class MessageRouter:
    """
    Orchestrates user lookup → quota → agent selection → rate limit →
    completion → usage recording.

    Collaborators are injected so tests can swap the database, the
    completion provider and the limiter clock.
    """

    def __init__(
        self,
        session_factory: Optional[Callable] = None,
        completion_service: Optional[CompletionService] = None,
        rate_limiter: Optional[RateLimiter] = None,
        enforce_free_tier_quota: Optional[bool] = None,
    ):
        self._session_factory = session_factory or async_session_maker
        self._completion = completion_service or get_completion_service()
        self._rate_limiter = rate_limiter or get_rate_limiter()
        self.enforce_free_tier_quota = (
            enforce_free_tier_quota
            if enforce_free_tier_quota is not None
            else settings.enforce_free_tier_quota
        )

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def quota_exhausted(self, user: User) -> bool:
        """Pre-message quota gate. FREE users are gated only when the policy flag is on."""
        if user.message_limit == UNLIMITED:
            return False
        if user.subscription_tier == SubscriptionTier.FREE.value and not self.enforce_free_tier_quota:
            return False
        return (user.messages_this_month or 0) >= (user.message_limit or 0)

    async def route(self, channel: str, external_user_id: str, text: str) -> RouteResult:
        # Fresh log context per message
        clear_request_context()
        set_request_context(request_id=generate_request_id(), channel=str(channel))
        try:
            return await self._route(channel, external_user_id, text)
        except Exception as e:
            router_log.exception(f"Unhandled error routing message: {e}")
            return RouteResult.fail(RouteErrorCode.INTERNAL_ERROR)

    async def _route(self, channel: str, external_user_id: str, text: str) -> RouteResult:
        try:
            channel = parse_channel(channel)
        except ValueError:
            router_log.warning(f"Rejected message from unsupported channel {channel!r}")
            return RouteResult.fail(RouteErrorCode.UNSUPPORTED_CHANNEL)

        # Reads happen in a short session that is closed before the completion call
        async with self._session_factory() as db:
            user = await find_user_by_external_id(db, channel, external_user_id)
            if user is None:
                router_log.info(f"No user for {channel.value}:{external_user_id}")
                return RouteResult.fail(RouteErrorCode.USER_NOT_FOUND)

            set_request_context(user_id=user.id)

            if self.quota_exhausted(user):
                router_log.info(
                    f"Quota gate: {user.messages_this_month}/{user.message_limit} "
                    f"({user.subscription_tier})"
                )
                return RouteResult.fail(RouteErrorCode.QUOTA_EXCEEDED)

            agent = await select_agent(db, user.id, text)
            if agent is None:
                return RouteResult.fail(RouteErrorCode.NO_ACTIVE_AGENT)

            user_id, agent_id, persona = user.id, agent.id, agent.persona

        if not self._rate_limiter.allow(user_id):
            router_log.warning("Rate limit exceeded")
            return RouteResult.fail(RouteErrorCode.RATE_LIMITED)

        system_prompt = build_persona_prompt(persona)
        try:
            response = await self._completion.complete(system_prompt, text)
        except CompletionError as e:
            router_log.warning(
                f"Completion failed for agent {agent_id}",
                data={"kind": e.kind.value, "detail": e.detail},
            )
            return RouteResult.fail(RouteErrorCode.COMPLETION_FAILED, e.user_message)

        # Usage is recorded iff the response is returned
        try:
            async with self._session_factory() as db:
                usage = await UsageService(db).record_usage(user_id, agent_id, 1)
        except Exception as e:
            usage_log.exception(f"Failed to record usage, withholding response: {e}")
            return RouteResult.fail(RouteErrorCode.INTERNAL_ERROR)

        if usage.over_limit:
            usage_log.info(f"User over monthly limit ({usage.used}/{usage.limit})")

        router_log.info(f"Routed to agent {agent_id} ({persona.type_name})")
        return RouteResult.ok(agent_id, response)


# ── Singleton ────────────────────────────────────────────────
_router: Optional[MessageRouter] = None


def get_message_router() -> MessageRouter:
    global _router
    if _router is None:
        _router = MessageRouter()
    return _router


def set_message_router(router: Optional[MessageRouter]) -> None:
    """Replace the shared router (tests, alternate wiring in main.py)."""
    global _router
    _router = router
