"""
Salary Ledger.

Owns the lifecycle of salary entries:
- submit: first submission for a subject creates the entry, any later
  submission for the same (case-insensitive) e-mail updates it
- update: recompute derived amounts and append one history record
- bulk_update: best-effort batch, failures are collected per item
- get_history: paginated read of the append-only history

Derived values are computed here in explicit steps; nothing is left to
ORM lifecycle hooks. Each public write is one transaction: the entry
change and its history record commit together or not at all.
"""

import logging
import math
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salary_backend.app.core.config import settings
from salary_backend.app.core.exceptions import (
    AppException,
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from salary_backend.app.domain.salary.commission_policy import CommissionPolicyResolver
from salary_backend.app.domain.salary.currency import (
    displayed_total,
    is_supported,
    normalize_currency_code,
    to_reference,
)
from salary_backend.app.domain.salary.history_store import EntrySnapshot, SalaryHistoryStore
from salary_backend.app.domain.salary.validation import (
    normalize_email,
    require_text,
    validate_commission,
    validate_local_amount,
)
from salary_backend.app.models.salary_entry import SalaryEntry
from salary_backend.app.models.salary_history import SalaryHistory
from salary_backend.app.services.subjects import SubjectDirectory

logger = logging.getLogger(__name__)

RESUBMISSION_REASON = "Salary resubmitted"


class _Unset:
    def __repr__(self):
        return "UNSET"


# Commission not mentioned at all, as opposed to explicitly cleared (None)
UNSET: Any = _Unset()


@dataclass
class SalaryChanges:
    """
    Field changes for an existing entry.

    None means "keep the current value", except for commission where None
    means "reset to the active commission policy" and UNSET means "keep".
    An empty notes string clears the notes.
    """
    local_amount: Any = None
    currency_code: Optional[str] = None
    commission: Any = UNSET
    effective_date: Optional[date] = None
    notes: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SalaryChanges":
        """Build from a partial payload; only keys present are applied."""
        changes = cls(
            local_amount=data.get("local_amount"),
            currency_code=data.get("currency_code"),
            effective_date=data.get("effective_date"),
            notes=data.get("notes"),
        )
        if "commission" in data:
            changes.commission = data["commission"]
        return changes


@dataclass
class BulkItem:
    subject_id: int
    changes: SalaryChanges


@dataclass
class BulkResult:
    success_count: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return len(self.errors)


@dataclass
class HistoryPage:
    items: List[SalaryHistory]
    total: int
    page: int
    page_size: int

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))


@dataclass
class Submission:
    entry: SalaryEntry
    entry_created: bool
    subject_created: bool


class SalaryLedger:
    """
    Salary ledger bound to one database session.

    The commission policy, subject directory and history store default to
    implementations on the same session and can be swapped out in tests.
    """

    def __init__(
        self,
        db: AsyncSession,
        commission_policy: Optional[CommissionPolicyResolver] = None,
        subjects: Optional[SubjectDirectory] = None,
        history: Optional[SalaryHistoryStore] = None
    ):
        self.db = db
        self.commission_policy = commission_policy or CommissionPolicyResolver(db)
        self.subjects = subjects or SubjectDirectory(db)
        self.history = history or SalaryHistoryStore(db)

    @asynccontextmanager
    async def _unit_of_work(self, operation: str):
        """Commit on success, roll back everything on any failure."""
        try:
            yield
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("%s failed, transaction rolled back", operation)
            raise StorageError(
                f"Could not complete {operation}, please retry",
                details={"operation": operation}
            ) from exc
        except Exception:
            await self.db.rollback()
            raise

    async def _find_entry(self, subject_id: int, for_update: bool = False) -> Optional[SalaryEntry]:
        query = (
            select(SalaryEntry)
            .where(SalaryEntry.subject_id == subject_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    # ============================================================================
    # Validation
    # ============================================================================

    @staticmethod
    def _currency(code: str) -> str:
        normalized = normalize_currency_code(code)
        if settings.strict_currency_codes and not is_supported(normalized):
            raise ValidationError(f"Currency {normalized} is not supported", field="currency_code")
        return normalized

    def _validated(self, changes: SalaryChanges) -> SalaryChanges:
        commission = changes.commission
        if commission is not None and commission is not UNSET:
            commission = validate_commission(commission)

        return SalaryChanges(
            local_amount=(
                validate_local_amount(changes.local_amount)
                if changes.local_amount is not None else None
            ),
            currency_code=(
                self._currency(changes.currency_code)
                if changes.currency_code is not None else None
            ),
            commission=commission,
            effective_date=changes.effective_date,
            notes=changes.notes,
        )

    # ============================================================================
    # Write steps (no commit)
    # ============================================================================

    async def _insert_entry(
        self,
        subject_id: int,
        local_amount: Decimal,
        currency_code: str,
        commission: Optional[Decimal],
        effective_date: Optional[date],
        notes: Optional[str]
    ) -> Optional[SalaryEntry]:
        """
        Insert the first entry for a subject inside a savepoint.

        Returns None when a concurrent submission inserted it first.
        """
        if commission is None:
            commission = await self.commission_policy.get_active()

        reference_amount = to_reference(local_amount, currency_code)
        entry = SalaryEntry(
            subject_id=subject_id,
            local_amount=local_amount,
            local_currency_code=currency_code,
            reference_amount=reference_amount,
            commission=commission,
            displayed_total=displayed_total(reference_amount, commission),
            effective_date=effective_date or date.today(),
            notes=notes or None,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(entry)
                await self.db.flush()
        except IntegrityError:
            logger.info("Concurrent first submission for subject %s, applying as update", subject_id)
            return None
        return entry

    async def _apply(
        self,
        entry: SalaryEntry,
        changes: SalaryChanges,
        actor_id: Optional[int],
        reason: Optional[str]
    ) -> SalaryHistory:
        """Mutate a locked entry from validated changes and record the history row."""
        before = EntrySnapshot.of(entry)

        if changes.local_amount is not None:
            entry.local_amount = changes.local_amount
        if changes.currency_code is not None:
            entry.local_currency_code = changes.currency_code
        if changes.commission is None:
            entry.commission = await self.commission_policy.get_active()
        elif changes.commission is not UNSET:
            entry.commission = changes.commission
        if changes.effective_date is not None:
            entry.effective_date = changes.effective_date
        if changes.notes is not None:
            entry.notes = changes.notes or None

        entry.reference_amount = to_reference(entry.local_amount, entry.local_currency_code)
        entry.displayed_total = displayed_total(entry.reference_amount, entry.commission)
        await self.db.flush()

        return await self.history.append(entry, before, changed_by=actor_id, reason=reason)

    # ============================================================================
    # Public operations
    # ============================================================================

    async def record_submission(
        self,
        email: str,
        name: str,
        local_amount: Any,
        currency_code: str,
        actor_id: Optional[int] = None,
        commission: Any = None,
        effective_date: Optional[date] = None,
        notes: Optional[str] = None
    ) -> Submission:
        """
        Submit a salary and report whether the entry and subject were new.

        A submission for a subject that already has an entry replaces the
        local amount and currency, keeps the existing commission unless one
        is supplied, and writes one history record. A first submission
        writes no history.

        Raises:
            ValidationError: On blank name or e-mail, bad amount or currency
            ConflictError: If the entry vanished between insert and re-read
            StorageError: If the transaction could not be committed
        """
        email = normalize_email(email)
        name = require_text(name, "name")
        local_amount = validate_local_amount(local_amount)
        currency_code = self._currency(currency_code)
        if commission is not None:
            commission = validate_commission(commission)

        async with self._unit_of_work("salary submission"):
            subject = await self.subjects.resolve_or_create_by_email(email, name)

            entry = await self._find_entry(subject.subject_id, for_update=True)
            entry_created = False
            if entry is None:
                entry = await self._insert_entry(
                    subject.subject_id, local_amount, currency_code,
                    commission, effective_date, notes
                )
                entry_created = entry is not None

            if entry is None:
                # Lost the race on salary_entries.subject_id; the winner's row is authoritative
                entry = await self._find_entry(subject.subject_id, for_update=True)
                if entry is None:
                    raise ConflictError(
                        "Salary entry could not be created or found, retry the request",
                        details={"subject_id": subject.subject_id}
                    )

            if not entry_created:
                changes = SalaryChanges(
                    local_amount=local_amount,
                    currency_code=currency_code,
                    commission=commission if commission is not None else UNSET,
                    effective_date=effective_date,
                    notes=notes,
                )
                await self._apply(entry, changes, actor_id, RESUBMISSION_REASON)

        await self.db.refresh(entry)
        logger.info(
            "Salary %s for subject %s: %s %s -> %s EUR (total %s)",
            "created" if entry_created else "resubmitted",
            entry.subject_id,
            entry.local_amount,
            entry.local_currency_code,
            entry.reference_amount,
            entry.displayed_total,
        )
        return Submission(entry=entry, entry_created=entry_created, subject_created=subject.was_created)

    async def submit(
        self,
        email: str,
        name: str,
        local_amount: Any,
        currency_code: str,
        actor_id: Optional[int] = None,
        commission: Any = None,
        effective_date: Optional[date] = None,
        notes: Optional[str] = None
    ) -> SalaryEntry:
        """Submit a salary; see record_submission."""
        submission = await self.record_submission(
            email, name, local_amount, currency_code,
            actor_id=actor_id,
            commission=commission,
            effective_date=effective_date,
            notes=notes,
        )
        return submission.entry

    async def update(
        self,
        subject_id: int,
        changes: SalaryChanges,
        actor_id: Optional[int] = None,
        reason: Optional[str] = None
    ) -> SalaryEntry:
        """
        Apply changes to a subject's entry and append one history record.

        Always records history, even when nothing actually changed.

        Raises:
            ValidationError: On a bad amount, currency or commission
            NotFoundError: If the subject has no entry
            StorageError: If the transaction could not be committed
        """
        changes = self._validated(changes)

        async with self._unit_of_work("salary update"):
            entry = await self._find_entry(subject_id, for_update=True)
            if entry is None:
                raise NotFoundError("Salary entry for subject", subject_id)
            record = await self._apply(entry, changes, actor_id, reason)

        await self.db.refresh(entry)
        logger.info(
            "Salary updated for subject %s by %s: %s",
            subject_id,
            actor_id,
            record.change_summary,
        )
        return entry

    async def bulk_update(
        self,
        items: Iterable[BulkItem],
        actor_id: Optional[int] = None,
        reason: Optional[str] = None
    ) -> BulkResult:
        """
        Apply many updates in one transaction, each in its own savepoint.

        A failing item is rolled back to its savepoint and reported as
        "subject <id>: <message>"; the remaining items still commit.

        Raises:
            ValidationError: If the batch is empty or too large
            StorageError: If the surviving batch could not be committed
        """
        items = list(items)
        if not items:
            raise ValidationError("At least one update is required", field="updates")
        if len(items) > settings.bulk_update_max_items:
            raise ValidationError(
                f"A bulk update may contain at most {settings.bulk_update_max_items} items",
                field="updates"
            )

        result = BulkResult()
        async with self._unit_of_work("bulk salary update"):
            for item in items:
                try:
                    async with self.db.begin_nested():
                        changes = self._validated(item.changes)
                        entry = await self._find_entry(item.subject_id, for_update=True)
                        if entry is None:
                            raise NotFoundError("Salary entry for subject", item.subject_id)
                        await self._apply(entry, changes, actor_id, reason)
                except AppException as exc:
                    result.errors.append(f"subject {item.subject_id}: {exc.message}")
                except SQLAlchemyError as exc:
                    logger.error("Bulk update of subject %s failed: %s", item.subject_id, exc)
                    result.errors.append(f"subject {item.subject_id}: storage error")
                else:
                    result.success_count += 1

        if result.errors:
            logger.warning(
                "Bulk salary update by %s: %s succeeded, %s failed",
                actor_id,
                result.success_count,
                result.failure_count,
            )
        else:
            logger.info("Bulk salary update by %s: %s succeeded", actor_id, result.success_count)
        return result

    async def get_history(
        self,
        subject_id: int,
        page: int = 1,
        page_size: Optional[int] = None
    ) -> HistoryPage:
        """History for a subject, newest first. Read-only."""
        if page < 1:
            raise ValidationError("page must be 1 or greater", field="page")
        page_size = page_size or settings.history_page_size

        if await self.subjects.get(subject_id) is None:
            raise NotFoundError("Subject", subject_id)

        total = await self.history.count_for_subject(subject_id)
        records = await self.history.page_for_subject(subject_id, page=page, page_size=page_size)
        return HistoryPage(items=records, total=total, page=page, page_size=page_size)

    async def get_entry(self, subject_id: int) -> SalaryEntry:
        entry = await self._find_entry(subject_id)
        if entry is None:
            raise NotFoundError("Salary entry for subject", subject_id)
        return entry
