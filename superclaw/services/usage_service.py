"""
Usage Ledger - monthly message metering against tier quotas

- `User.messages_this_month` is the authoritative "used so far" value
- Every recorded message also appends an immutable UsageRecord (reporting)
- Counters are incremented with a single UPDATE so concurrent messages from
  the same user never lose an increment
- Billing periods are calendar months computed from "now", not from the
  subscription anchor date
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, update, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from superclaw.config import settings
from superclaw.db.models import User, UsageRecord, SubscriptionTier, UNLIMITED
from superclaw.errors import UserNotFound
from superclaw.services.tiers import parse_tier, get_tier_message_limit

logger = logging.getLogger(__name__)

OVERAGE_CENTS_PER_MESSAGE = 10


@dataclass
class QuotaStatus:
    """Result of a quota check. `remaining` is None when the tier is unlimited."""
    allowed: bool
    used: int
    limit: int
    remaining: Optional[int]

    @property
    def unlimited(self) -> bool:
        return self.limit == UNLIMITED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "used": self.used,
            "limit": self.limit,
            "remaining": "unlimited" if self.unlimited else self.remaining,
        }


@dataclass
class UsageResult:
    """Counters after recording usage. Overage is reported, never rejected."""
    used: int
    limit: int
    over_limit: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"used": self.used, "limit": self.limit, "overLimit": self.over_limit}


def current_billing_period(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Calendar month containing `now`: first day 00:00:00 to last day 23:59:59."""
    now = now or datetime.utcnow()
    last_day = calendar.monthrange(now.year, now.month)[1]
    start = datetime(now.year, now.month, 1)
    end = datetime(now.year, now.month, last_day, 23, 59, 59)
    return start, end


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def calculate_overage_charge(additional_messages: int) -> int:
    """Overage charge in cents for messages beyond a finite limit."""
    return max(0, additional_messages) * OVERAGE_CENTS_PER_MESSAGE


class UsageService:
    """
    Usage Ledger for one database session.

    Write operations commit their own transaction; keep calls short so the
    session never holds locks across slow work (e.g. a completion call).
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_user(self, user_id: str) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFound(user_id)
        return user

    async def check_quota(self, user_id: str) -> QuotaStatus:
        user = await self._get_user(user_id)
        used = user.messages_this_month or 0

        if user.message_limit == UNLIMITED:
            return QuotaStatus(allowed=True, used=used, limit=UNLIMITED, remaining=None)

        limit = user.message_limit or 0
        remaining = max(0, limit - used)
        return QuotaStatus(allowed=remaining > 0, used=used, limit=limit, remaining=remaining)

    async def record_usage(
        self,
        user_id: str,
        agent_id: Optional[str] = None,
        count: int = 1,
        now: Optional[datetime] = None,
    ) -> UsageResult:
        """
        Increment the monthly counter and append a UsageRecord, in one transaction.

        Unlimited tiers are recorded too (analytics). Returns whether the new
        total exceeds a finite limit.
        """
        if count < 1:
            raise ValueError("count must be a positive integer")

        period_start, period_end = current_billing_period(now)

        try:
            result = await self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(messages_this_month=User.messages_this_month + count)
                .returning(User.messages_this_month, User.message_limit)
                .execution_options(synchronize_session=False)
            )
            row = result.first()
            if row is None:
                raise UserNotFound(user_id)
            used, limit = row

            self.db.add(UsageRecord(
                user_id=user_id,
                agent_id=agent_id,
                count=count,
                period_start=period_start,
                period_end=period_end,
            ))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        over_limit = limit != UNLIMITED and used > (limit or 0)
        if over_limit:
            logger.info(f"User {user_id} is over their monthly limit ({used}/{limit})")
        return UsageResult(used=used, limit=limit, over_limit=over_limit)

    async def reset_monthly(self, user_id: str) -> None:
        result = await self.db.execute(
            update(User).where(User.id == user_id).values(messages_this_month=0)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise UserNotFound(user_id)
        await self.db.commit()

    async def reset_all_non_free(self, include_free: Optional[bool] = None) -> int:
        """
        Reset every user's monthly counter except FREE tier.

        FREE users are included only when the reset_free_tier_monthly policy
        (or `include_free`) is on. Returns the number of users reset.
        """
        if include_free is None:
            include_free = settings.reset_free_tier_monthly

        stmt = update(User).values(messages_this_month=0)
        if not include_free:
            stmt = stmt.where(User.subscription_tier != SubscriptionTier.FREE.value)

        result = await self.db.execute(stmt)
        await self.db.commit()
        logger.info(f"Reset monthly usage for {result.rowcount} users")
        return result.rowcount

    async def apply_tier(self, user_id: str, tier) -> User:
        """Move a user to `tier` and set the tier's message limit."""
        tier = parse_tier(tier)
        user = await self._get_user(user_id)
        user.subscription_tier = tier.value
        user.message_limit = get_tier_message_limit(tier)
        await self.db.commit()
        return user

    async def get_usage_history(
        self,
        user_id: str,
        months: int = 6,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Per-month message totals, oldest first: [{"month": "Jan 2026", "count": 12}, ...]"""
        now = now or datetime.utcnow()
        history = []

        for i in range(months):
            year, month = _shift_month(now.year, now.month, -i)
            start, end = current_billing_period(datetime(year, month, 1))

            result = await self.db.execute(
                select(func.coalesce(func.sum(UsageRecord.count), 0)).where(
                    and_(
                        UsageRecord.user_id == user_id,
                        UsageRecord.period_start >= start,
                        UsageRecord.period_end <= end,
                    )
                )
            )
            history.append({
                "month": start.strftime("%b %Y"),
                "count": int(result.scalar() or 0),
            })

        history.reverse()
        return history


def get_usage_service(db: AsyncSession) -> UsageService:
    """Factory function for UsageService."""
    return UsageService(db)
