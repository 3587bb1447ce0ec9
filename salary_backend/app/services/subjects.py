"""
Subject directory.

Resolves the person a salary belongs to by e-mail. Subjects are ordinary
users; one created here has no password until an admin sets one.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from salary_backend.app.core.exceptions import ConflictError
from salary_backend.app.domain.salary.validation import normalize_email, require_text
from salary_backend.app.models.enums import UserRole
from salary_backend.app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubjectRef:
    subject_id: int
    was_created: bool


class SubjectDirectory:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def get(self, subject_id: int) -> Optional[User]:
        return await self.db.get(User, subject_id)

    async def resolve_or_create_by_email(self, email: str, name: str) -> SubjectRef:
        """
        Find the subject with this e-mail (case-insensitive) or create one.

        The existing subject's name is left alone. Flushes, never commits.
        """
        email = normalize_email(email)
        name = require_text(name, "name")

        existing = await self.find_by_email(email)
        if existing is not None:
            return SubjectRef(subject_id=existing.id, was_created=False)

        subject = User(email=email, name=name, role=UserRole.EMPLOYEE, is_active=True)
        try:
            async with self.db.begin_nested():
                self.db.add(subject)
                await self.db.flush()
        except IntegrityError:
            # Another request registered the same e-mail first
            existing = await self.find_by_email(email)
            if existing is None:
                raise ConflictError(f"Could not register subject {email}")
            return SubjectRef(subject_id=existing.id, was_created=False)

        logger.info("Registered subject %s (id=%s)", email, subject.id)
        return SubjectRef(subject_id=subject.id, was_created=True)

    async def rename(self, subject_id: int, name: str) -> Optional[User]:
        """Set a subject's display name. Returns None for an unknown id. Flushes, never commits."""
        name = require_text(name, "name")
        subject = await self.get(subject_id)
        if subject is None:
            return None

        subject.name = name
        await self.db.flush()
        return subject
