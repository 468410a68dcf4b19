"""Typed domain exceptions.

Services raise these; the message router turns every one of them into a
`RouteResult`, and the API layer maps them to HTTP status codes:

    try:
        agent = await create_agent(db, user, "Writer", "Content Writer")
    except AgentLimitExceeded as e:
        raise HTTPException(status_code=403, detail=str(e))
"""

from enum import Enum


class SuperClawError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class UserNotFound(SuperClawError):
    """No user with the given id or external identity. Maps to HTTP 404."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"User '{identifier}' not found")
        self.identifier = identifier


class AgentNotFound(SuperClawError):
    """Agent missing or not owned by the caller. Maps to HTTP 404."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent '{agent_id}' not found")
        self.agent_id = agent_id


class AgentLimitExceeded(SuperClawError):
    """The user's tier does not allow another agent. Maps to HTTP 403."""

    def __init__(self, tier: str, limit: int) -> None:
        super().__init__(f"Agent limit reached for {tier} tier ({limit}). Upgrade your plan to add more agents.")
        self.tier = tier
        self.limit = limit


class CompletionErrorKind(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"            # Provider-side quota, not ours
    INVALID_CREDENTIALS = "invalid_credentials"
    EMPTY_RESPONSE = "empty_response"            # Includes timeouts
    PROVIDER_ERROR = "provider_error"


# Caller-facing text; provider detail never leaves the server logs.
COMPLETION_ERROR_MESSAGES = {
    CompletionErrorKind.QUOTA_EXCEEDED: "AI service temporarily unavailable. Please try again later.",
    CompletionErrorKind.INVALID_CREDENTIALS: "AI service is not configured correctly. Please contact support.",
    CompletionErrorKind.EMPTY_RESPONSE: "The agent could not produce a response. Please try again later.",
    CompletionErrorKind.PROVIDER_ERROR: "Failed to process message. Please try again later.",
}


class CompletionError(SuperClawError):
    """A completion attempt failed. `user_message` is safe to show end users."""

    def __init__(self, kind: CompletionErrorKind, detail: str = "") -> None:
        super().__init__(COMPLETION_ERROR_MESSAGES[kind])
        self.kind = kind
        self.detail = detail

    @property
    def user_message(self) -> str:
        return COMPLETION_ERROR_MESSAGES[self.kind]
