"""Agent management API"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from superclaw.api.api_v1 import get_api_key_user
from superclaw.db import get_db
from superclaw.db.models import User
from superclaw.errors import AgentLimitExceeded, AgentNotFound
from superclaw.schemas import AgentCreate, AgentResponse, AgentStatusUpdate
from superclaw.services.directory import create_agent, list_agents, set_agent_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agents", tags=["Agents"])


@router.get("", response_model=List[AgentResponse])
async def get_agents(
    user_id: str = Depends(get_api_key_user),
    db: AsyncSession = Depends(get_db),
):
    """All of the caller's agents, in creation order."""
    return await list_agents(db, user_id)


@router.post("", response_model=AgentResponse, status_code=201)
async def post_agent(
    req: AgentCreate,
    user_id: str = Depends(get_api_key_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create an agent. It starts as `pending`; set its status to `active`
    before it receives messages.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    try:
        return await create_agent(db, user, req.name, req.type, req.config)
    except AgentLimitExceeded as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post("/{agent_id}/status", response_model=AgentResponse)
async def update_agent_status(
    agent_id: str,
    req: AgentStatusUpdate,
    user_id: str = Depends(get_api_key_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await set_agent_status(db, user_id, agent_id, req.status)
    except AgentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AgentLimitExceeded as e:
        raise HTTPException(status_code=403, detail=str(e))
