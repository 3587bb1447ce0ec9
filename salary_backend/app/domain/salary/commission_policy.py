"""
Commission Policy Resolver.

Responsible for the currently active default commission.
The active row is read fresh on every call so a salary write always sees
the latest committed policy (read-committed is enough here).
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from salary_backend.app.core.config import settings
from salary_backend.app.core.exceptions import ConflictError
from salary_backend.app.domain.salary.validation import validate_commission
from salary_backend.app.models.commission_policy import CommissionPolicy

logger = logging.getLogger(__name__)

DEFAULT_POLICY_DESCRIPTION = "Default commission rate"


class CommissionPolicyResolver:
    """
    Reads and versions the global commission policy.

    Never commits: the caller owns the transaction, so a policy created
    on first access is committed together with the salary write that needed it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find_active(self, for_update: bool = False) -> Optional[CommissionPolicy]:
        query = (
            select(CommissionPolicy)
            .where(CommissionPolicy.is_active == True)  # noqa: E712
            .order_by(CommissionPolicy.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_active_policy(self) -> CommissionPolicy:
        """
        Return the active policy row, creating the default one if none exists.

        Two first-time callers can both see "no active policy"; the partial
        unique index lets only one insert win and the loser re-reads it.
        """
        policy = await self._find_active()
        if policy is not None:
            return policy

        default_policy = CommissionPolicy(
            amount=settings.default_commission,
            is_active=True,
            description=DEFAULT_POLICY_DESCRIPTION,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(default_policy)
                await self.db.flush()
        except IntegrityError:
            policy = await self._find_active()
            if policy is None:
                raise ConflictError("Could not establish an active commission policy")
            return policy

        logger.info("Created default commission policy of %s", default_policy.amount)
        return default_policy

    async def get_active(self) -> Decimal:
        """Amount of the active commission policy."""
        policy = await self.get_active_policy()
        return Decimal(policy.amount)

    async def set_active(
        self,
        amount,
        actor_id: Optional[int] = None,
        description: Optional[str] = None
    ) -> CommissionPolicy:
        """
        Make `amount` the active commission.

        The current policy is deactivated (kept for history) and a new row is
        activated. Setting the amount that is already active is a no-op.

        Raises:
            ValidationError: If amount is negative or above the maximum.
            ConflictError: If another writer activated a policy concurrently.
        """
        amount = validate_commission(amount)

        current = await self._find_active(for_update=True)
        if current is not None and Decimal(current.amount) == amount:
            return current

        policy = CommissionPolicy(
            amount=amount,
            is_active=True,
            description=description or f"Commission set to {amount}",
            created_by=actor_id,
        )
        try:
            async with self.db.begin_nested():
                if current is not None:
                    current.is_active = False
                    current.deactivated_at = datetime.now(timezone.utc)
                    await self.db.flush()
                self.db.add(policy)
                await self.db.flush()
        except IntegrityError as exc:
            raise ConflictError(
                "Commission policy was changed concurrently, retry the request"
            ) from exc

        logger.info(
            "Commission policy changed from %s to %s by %s",
            current.amount if current is not None else None,
            amount,
            actor_id,
        )
        return policy

    async def list_policies(self, page: int = 1, page_size: int = 20) -> Tuple[List[CommissionPolicy], int]:
        """Every policy version, newest first, with the total count."""
        total = (await self.db.execute(select(func.count(CommissionPolicy.id)))).scalar()

        result = await self.db.execute(
            select(CommissionPolicy)
            .order_by(CommissionPolicy.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total
