"""Usage endpoints: quota status, history, and manual usage recording"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from superclaw.api.api_v1 import get_api_key_user
from superclaw.db import get_db
from superclaw.errors import UserNotFound
from superclaw.schemas import QuotaResponse, UsageRecordRequest, UsageRecordResponse
from superclaw.services.usage_service import get_usage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/usage", tags=["Usage"])


@router.get("", response_model=QuotaResponse)
async def get_usage(
    history: bool = Query(False, description="Include six months of usage history"),
    user_id: str = Depends(get_api_key_user),
    db: AsyncSession = Depends(get_db),
):
    usage = get_usage_service(db)
    try:
        quota = await usage.check_quota(user_id)
    except UserNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    data = quota.to_dict()
    if history:
        data["history"] = await usage.get_usage_history(user_id)
    return QuotaResponse(**data)


@router.post("", response_model=UsageRecordResponse)
async def record_usage(
    req: UsageRecordRequest,
    user_id: str = Depends(get_api_key_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        result = await get_usage_service(db).record_usage(user_id, req.agent_id, req.count)
    except UserNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    return UsageRecordResponse(**result.to_dict())
