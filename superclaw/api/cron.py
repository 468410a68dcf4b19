"""
External cron trigger for the monthly usage reset.

For deployments that run with enable_scheduler=False (multiple workers),
an external scheduler calls this once a month instead.
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from superclaw.config import settings
from superclaw.db import get_db
from superclaw.schemas import UsageResetResponse
from superclaw.services.usage_service import get_usage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Cron"])


@router.post("/usage-reset", response_model=UsageResetResponse)
async def usage_reset(
    x_cron_secret: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    if not settings.cron_secret:
        raise HTTPException(status_code=503, detail="Cron endpoint is not configured")
    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, settings.cron_secret):
        raise HTTPException(status_code=401, detail="Unauthorized")

    count = await get_usage_service(db).reset_all_non_free()
    logger.info(f"Cron usage reset: {count} users")
    return UsageResetResponse(resetCount=count)
