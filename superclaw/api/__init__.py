from superclaw.api.auth import router as auth_router
from superclaw.api.api_v1 import router as api_v1_router, get_api_key_user
from superclaw.api.usage import router as usage_router
from superclaw.api.agents import router as agents_router
from superclaw.api.cron import router as cron_router
from superclaw.api.webhooks import router as webhooks_router

__all__ = [
    "auth_router",
    "api_v1_router",
    "usage_router",
    "agents_router",
    "cron_router",
    "webhooks_router",
    "get_api_key_user",
]
