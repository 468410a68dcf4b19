"""
Public API v1 — the direct "api" channel plus API key management.

Endpoints:
  POST   /api/v1/route        — Route a message to the caller's agents
  POST   /api/v1/keys         — Create a new API key
  GET    /api/v1/keys         — List your API keys
  DELETE /api/v1/keys/{id}    — Revoke an API key

Authentication:
  Header: Authorization: Bearer sc_...
  API keys are prefixed with "sc_" and hashed with SHA-256 for storage.

Rate limiting happens inside the message router (per user, not per key).
"""

import hashlib
import logging
import secrets
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from superclaw.agent.message_router import get_message_router
from superclaw.db import get_db
from superclaw.db.models import ApiKey, Channel
from superclaw.schemas import ApiKeyCreate, ApiKeyCreated, ApiKeyInfo, RouteRequest, RouteResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["Public API v1"])

API_KEY_PREFIX = "sc_"


# ======================================================================
# Key helpers
# ======================================================================

def hash_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


async def issue_api_key(db: AsyncSession, user_id: str, name: str = "default") -> tuple:
    """Create and store a key for `user_id`. Returns (ApiKey, raw_key); the raw key is never stored."""
    raw_key = f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"
    api_key = ApiKey(
        user_id=user_id,
        name=name,
        key_hash=hash_key(raw_key),
        prefix=raw_key[:10],
    )
    db.add(api_key)
    await db.commit()
    await db.refresh(api_key)
    return api_key, raw_key


# ======================================================================
# Auth dependency
# ======================================================================

async def get_api_key_user(request: Request, db: AsyncSession = Depends(get_db)) -> str:
    """
    Dependency: Extract API key from Authorization header and validate it.
    Returns user_id.
    """
    auth = request.headers.get("Authorization", "")
    if not auth.startswith(f"Bearer {API_KEY_PREFIX}"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"API key required. Format: Authorization: Bearer {API_KEY_PREFIX}...",
        )

    raw_key = auth.removeprefix("Bearer ").strip()
    result = await db.execute(
        select(ApiKey).where(
            and_(
                ApiKey.key_hash == hash_key(raw_key),
                ApiKey.is_active == True,
            )
        )
    )
    api_key = result.scalar_one_or_none()
    if not api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")

    api_key.last_used_at = datetime.utcnow()
    await db.commit()

    return api_key.user_id


# ======================================================================
# Routing
# ======================================================================

@router.post("/route", response_model=RouteResponse)
async def route_message(
    req: RouteRequest,
    user_id: str = Depends(get_api_key_user),
):
    """
    Route a message as the "api" channel.

    Routing failures (quota, no agent, rate limit, provider errors) are
    returned with success=false and HTTP 200, same as the chat channels.
    """
    result = await get_message_router().route(Channel.API.value, user_id, req.message.strip())
    return RouteResponse(**result.to_dict())


# ======================================================================
# Key management
# ======================================================================

@router.post("/keys", response_model=ApiKeyCreated)
async def create_api_key(
    req: ApiKeyCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_api_key_user),
):
    """Create a new API key. The raw key is only returned once."""
    api_key, raw_key = await issue_api_key(db, user_id, req.name)
    return ApiKeyCreated(id=api_key.id, name=api_key.name, key=raw_key, prefix=api_key.prefix)


@router.get("/keys", response_model=List[ApiKeyInfo])
async def list_api_keys(
    user_id: str = Depends(get_api_key_user),
    db: AsyncSession = Depends(get_db),
):
    """List your API keys (without the actual key values)."""
    result = await db.execute(
        select(ApiKey).where(ApiKey.user_id == user_id).order_by(ApiKey.created_at.desc())
    )
    return result.scalars().all()


@router.delete("/keys/{key_id}")
async def revoke_api_key(
    key_id: str,
    user_id: str = Depends(get_api_key_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(ApiKey).where(and_(ApiKey.id == key_id, ApiKey.user_id == user_id))
    )
    api_key = result.scalar_one_or_none()
    if not api_key:
        raise HTTPException(status_code=404, detail="API key not found")

    api_key.is_active = False
    await db.commit()
    return {"status": "revoked", "id": key_id}
