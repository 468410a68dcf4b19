"""Registration for the direct API channel"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from superclaw.api.api_v1 import issue_api_key
from superclaw.db import get_db
from superclaw.schemas import RegisterRequest, RegisterResponse
from superclaw.services.directory import create_user_with_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(req: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create a FREE account and return its first API key (shown once)."""
    email = req.email.strip().lower()
    try:
        user = await create_user_with_email(db, email=email, name=req.name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    _, raw_key = await issue_api_key(db, user.id)
    logger.info(f"Registered user {user.id}")

    return RegisterResponse(
        user_id=user.id,
        api_key=raw_key,
        subscription_tier=user.subscription_tier,
        message_limit=user.message_limit,
    )
