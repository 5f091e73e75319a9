"""Auto-posting batch history, rollback, and audit entries."""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AlreadyRolledBackError, ServiceError
from app.core.models import AuditLog, AutoPostingBatch, SupervisorPosting
from app.core.models.auto_posting_batch import BATCH_STATUS_ROLLED_BACK
from app.core.models.supervisor_posting import POSTING_STATUS_ACTIVE, POSTING_STATUS_CANCELLED

from .schemas import BatchResponse, RollbackResponse

logger = logging.getLogger(__name__)

AUDIT_ENTITY_BATCH = "auto_posting_batch"


def _to_response(batch: AutoPostingBatch) -> BatchResponse:
    return BatchResponse(
        id=batch.id,
        institution_id=batch.institution_id,
        session_id=batch.session_id,
        initiated_by=batch.initiated_by,
        criteria=batch.criteria or {},
        posting_ids=[UUID(str(p)) for p in batch.posting_ids or []],
        total_postings_created=batch.total_postings_created,
        total_supervisors_posted=batch.total_supervisors_posted,
        status=batch.status,
        created_at=batch.created_at,
        rolled_back_at=batch.rolled_back_at,
        rolled_back_by=batch.rolled_back_by,
    )


async def log_batch_audit(
    db: AsyncSession,
    institution_id: UUID,
    batch_id: UUID,
    action: str,
    from_status: Optional[str],
    to_status: Optional[str],
    performed_by: Optional[UUID],
    remarks: Optional[str] = None,
) -> None:
    """Add an audit entry to the current transaction. Caller commits."""
    db.add(
        AuditLog(
            institution_id=institution_id,
            entity_type=AUDIT_ENTITY_BATCH,
            entity_id=batch_id,
            action=action,
            from_status=from_status,
            to_status=to_status,
            performed_by=performed_by,
            remarks=remarks,
        )
    )


async def list_batches(
    db: AsyncSession,
    institution_id: UUID,
    session_id: Optional[UUID] = None,
    limit: int = 20,
    offset: int = 0,
) -> List[BatchResponse]:
    """Batches newest first. Rolled-back batches stay listed as audit records."""
    stmt = select(AutoPostingBatch).where(AutoPostingBatch.institution_id == institution_id)
    if session_id is not None:
        stmt = stmt.where(AutoPostingBatch.session_id == session_id)
    stmt = stmt.order_by(AutoPostingBatch.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return [_to_response(b) for b in result.scalars().all()]


async def get_batch(
    db: AsyncSession,
    institution_id: UUID,
    batch_id: UUID,
) -> Optional[BatchResponse]:
    result = await db.execute(
        select(AutoPostingBatch).where(
            AutoPostingBatch.id == batch_id,
            AutoPostingBatch.institution_id == institution_id,
        )
    )
    batch = result.scalar_one_or_none()
    return _to_response(batch) if batch else None


async def rollback_batch(
    db: AsyncSession,
    institution_id: UUID,
    batch_id: UUID,
    performed_by: Optional[UUID],
) -> RollbackResponse:
    """
    Cancel every posting of the batch in one transaction and stamp rolled_back_at.
    Fails with AlreadyRolledBackError if the batch was rolled back before.
    """
    result = await db.execute(
        select(AutoPostingBatch).where(
            AutoPostingBatch.id == batch_id,
            AutoPostingBatch.institution_id == institution_id,
        )
    )
    batch = result.scalar_one_or_none()
    if not batch:
        raise ServiceError("Auto-posting batch not found", status.HTTP_404_NOT_FOUND)
    if batch.rolled_back_at is not None:
        raise AlreadyRolledBackError()

    from_status = batch.status
    rolled_back_at = datetime.utcnow()
    posting_ids = [UUID(str(p)) for p in batch.posting_ids or []]
    try:
        # Conditional stamp: a concurrent rollback of the same batch matches zero rows here
        stamped = await db.execute(
            update(AutoPostingBatch)
            .where(
                AutoPostingBatch.id == batch_id,
                AutoPostingBatch.rolled_back_at.is_(None),
            )
            .values(
                rolled_back_at=rolled_back_at,
                rolled_back_by=performed_by,
                status=BATCH_STATUS_ROLLED_BACK,
            )
        )
        if stamped.rowcount != 1:
            await db.rollback()
            raise AlreadyRolledBackError()

        postings: List[SupervisorPosting] = []
        if posting_ids:
            postings_result = await db.execute(
                select(SupervisorPosting).where(
                    SupervisorPosting.id.in_(posting_ids),
                    SupervisorPosting.institution_id == institution_id,
                    SupervisorPosting.status == POSTING_STATUS_ACTIVE,
                )
            )
            postings = list(postings_result.scalars().all())
        # Dependent postings of merged groups are listed in the batch too; merges themselves are left as they are
        for posting in postings:
            posting.status = POSTING_STATUS_CANCELLED
        await db.flush()

        await log_batch_audit(
            db,
            institution_id,
            batch_id,
            "ROLLBACK",
            from_status,
            BATCH_STATUS_ROLLED_BACK,
            performed_by,
            remarks=f"Cancelled {len(postings)} postings",
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Rollback of auto-posting batch %s failed", batch_id)
        raise

    logger.info("Rolled back auto-posting batch %s: %d postings cancelled", batch_id, len(postings))
    return RollbackResponse(
        batch_id=batch_id,
        cancelled_count=len(postings),
        rolled_back_at=rolled_back_at,
    )
