"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field

from superclaw.db.models import AgentStatus


# ============ Auth / API keys ============

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    name: Optional[str] = Field(None, max_length=255)


class RegisterResponse(BaseModel):
    user_id: str
    api_key: str  # Shown once
    subscription_tier: str
    message_limit: int


class ApiKeyCreate(BaseModel):
    name: str = Field("default", max_length=100)


class ApiKeyCreated(BaseModel):
    id: str
    name: str
    key: str  # Shown once
    prefix: str


class ApiKeyInfo(BaseModel):
    id: str
    name: str
    prefix: str
    is_active: bool
    created_at: datetime
    last_used_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============ Routing ============

class RouteRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=32000)


class RouteResponse(BaseModel):
    success: bool
    agentId: Optional[str] = None
    response: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None


# ============ Usage ============

class UsageRecordRequest(BaseModel):
    agent_id: Optional[str] = None
    count: int = Field(1, ge=1, le=10000)


class UsageRecordResponse(BaseModel):
    success: bool = True
    used: int
    limit: int
    overLimit: bool


class UsageHistoryEntry(BaseModel):
    month: str
    count: int


class QuotaResponse(BaseModel):
    allowed: bool
    used: int
    limit: int
    remaining: Union[int, str]  # "unlimited" when limit == -1
    history: Optional[List[UsageHistoryEntry]] = None


# ============ Agents ============

class AgentCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    type: str = Field(..., min_length=1, max_length=100)
    config: Optional[Dict[str, Any]] = None


class AgentStatusUpdate(BaseModel):
    status: AgentStatus


class AgentResponse(BaseModel):
    id: str
    name: str
    status: str
    skills: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ============ Cron ============

class UsageResetResponse(BaseModel):
    success: bool = True
    resetCount: int
