"""Auto-posting preview and execute. Both run the same resolve + distribute sequence."""

import logging
from collections import defaultdict
from typing import Dict, List, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import MergedGroupStatus
from app.core.exceptions import PostingConflictError, ServiceError
from app.core.models import AcademicSession, AutoPostingBatch, InstitutionSchool, MergedGroup, SupervisorPosting
from app.core.models.auto_posting_batch import BATCH_STATUS_COMPLETED
from app.core.models.supervisor_posting import POSTING_STATUS_ACTIVE

from . import resolver, scheduler
from .batches import log_batch_audit
from .schemas import (
    AutoPostingCriteria,
    AutoPostingExecuteResult,
    AutoPostingResult,
    DistributionResult,
    ResolvedInputs,
)

logger = logging.getLogger(__name__)

POSTING_TYPE_AUTO = "auto"


async def get_session(
    db: AsyncSession,
    institution_id: UUID,
    criteria: AutoPostingCriteria,
) -> AcademicSession:
    """Load the session and check visits_included against its visit limit."""
    result = await db.execute(
        select(AcademicSession).where(
            AcademicSession.id == criteria.session_id,
            AcademicSession.institution_id == institution_id,
        )
    )
    session = result.scalar_one_or_none()
    if not session:
        raise ServiceError("Session not found", status.HTTP_404_NOT_FOUND)
    max_visits = session.max_supervision_visits or settings.default_max_supervision_visits
    if criteria.visits_included > max_visits:
        raise ServiceError(
            f"Number of postings cannot exceed session limit of {max_visits}",
            status.HTTP_400_BAD_REQUEST,
        )
    return session


async def _plan(
    db: AsyncSession,
    institution_id: UUID,
    criteria: AutoPostingCriteria,
) -> Tuple[AcademicSession, ResolvedInputs, DistributionResult]:
    session = await get_session(db, institution_id, criteria)
    inputs = await resolver.resolve_inputs(db, institution_id, session, criteria)
    result = scheduler.distribute(inputs.slots, inputs.supervisors, criteria)
    return session, inputs, result


def _build_result(
    criteria: AutoPostingCriteria,
    inputs: ResolvedInputs,
    result: DistributionResult,
) -> AutoPostingResult:
    return AutoPostingResult(
        preview=True,
        session_id=criteria.session_id,
        visits_included=criteria.visits_included,
        total_supervisors=len(inputs.supervisors),
        total_available_slots=len(inputs.slots),
        assignments=result.assignments,
        statistics=result.statistics,
        warnings=inputs.warnings + result.warnings,
    )


async def preview(
    db: AsyncSession,
    institution_id: UUID,
    criteria: AutoPostingCriteria,
) -> AutoPostingResult:
    """Dry run: the assignments execute would make right now. Writes nothing."""
    _, inputs, result = await _plan(db, institution_id, criteria)
    logger.info(
        "Auto-posting preview: session=%s visits=%d slots=%d supervisors=%d assignments=%d",
        criteria.session_id,
        criteria.visits_included,
        len(inputs.slots),
        len(inputs.supervisors),
        len(result.assignments),
    )
    return _build_result(criteria, inputs, result)


async def _load_merges_by_primary(
    db: AsyncSession,
    institution_id: UUID,
    session_id: UUID,
) -> Dict[Tuple[UUID, int], List[Tuple[MergedGroup, InstitutionSchool]]]:
    result = await db.execute(
        select(MergedGroup, InstitutionSchool)
        .join(InstitutionSchool, MergedGroup.secondary_school_id == InstitutionSchool.id)
        .where(
            MergedGroup.institution_id == institution_id,
            MergedGroup.session_id == session_id,
            MergedGroup.status == MergedGroupStatus.ACTIVE.value,
        )
        .order_by(MergedGroup.secondary_school_id, MergedGroup.secondary_group_number)
    )
    merges: Dict[Tuple[UUID, int], List[Tuple[MergedGroup, InstitutionSchool]]] = defaultdict(list)
    for merged, secondary_school in result.all():
        merges[(merged.primary_school_id, merged.primary_group_number)].append((merged, secondary_school))
    return merges


async def execute(
    db: AsyncSession,
    institution_id: UUID,
    user_id: UUID,
    criteria: AutoPostingCriteria,
) -> AutoPostingExecuteResult:
    """
    Create one posting per assignment, plus dependent postings for merged secondary groups,
    and a batch record, all in one transaction.
    """
    session, inputs, result = await _plan(db, institution_id, criteria)
    if not result.assignments:
        raise ServiceError(
            "No valid assignments could be made. Check available slots and supervisor eligibility.",
            status.HTTP_400_BAD_REQUEST,
        )

    supervisors_by_id = {s.id: s for s in inputs.supervisors}
    posting_ids: List[UUID] = []
    dependent_count = 0
    try:
        batch = AutoPostingBatch(
            institution_id=institution_id,
            session_id=session.id,
            initiated_by=user_id,
            criteria=criteria.model_dump(mode="json"),
            posting_ids=[],
            status=BATCH_STATUS_COMPLETED,
        )
        db.add(batch)
        await db.flush()
        batch_id = batch.id

        merges = await _load_merges_by_primary(db, institution_id, session.id)
        taken = await resolver.load_taken_slots(db, institution_id, session.id)

        for assignment in result.assignments:
            supervisor = supervisors_by_id[assignment.supervisor_id]
            primary = SupervisorPosting(
                institution_id=institution_id,
                session_id=session.id,
                supervisor_id=assignment.supervisor_id,
                school_id=assignment.school_id,
                route_id=assignment.route_id,
                group_number=assignment.group_number,
                visit_number=assignment.visit_number,
                distance_km=assignment.distance_km,
                rank_id=supervisor.rank_id,
                is_primary_posting=True,
                posting_type=POSTING_TYPE_AUTO,
                posted_by=user_id,
                batch_id=batch_id,
                status=POSTING_STATUS_ACTIVE,
            )
            db.add(primary)
            await db.flush()
            posting_ids.append(primary.id)
            taken.add((assignment.school_id, assignment.group_number, assignment.visit_number))

            for merged, secondary_school in merges.get((assignment.school_id, assignment.group_number), []):
                slot_key = (merged.secondary_school_id, merged.secondary_group_number, assignment.visit_number)
                if slot_key in taken:
                    continue
                dependent = SupervisorPosting(
                    institution_id=institution_id,
                    session_id=session.id,
                    supervisor_id=assignment.supervisor_id,
                    school_id=merged.secondary_school_id,
                    route_id=secondary_school.route_id,
                    group_number=merged.secondary_group_number,
                    visit_number=assignment.visit_number,
                    distance_km=float(secondary_school.distance_km or 0),
                    rank_id=supervisor.rank_id,
                    is_primary_posting=False,
                    merged_with_posting_id=primary.id,
                    posting_type=POSTING_TYPE_AUTO,
                    posted_by=user_id,
                    batch_id=batch_id,
                    status=POSTING_STATUS_ACTIVE,
                )
                db.add(dependent)
                await db.flush()
                posting_ids.append(dependent.id)
                taken.add(slot_key)
                dependent_count += 1

        supervisors_posted = len({a.supervisor_id for a in result.assignments})
        batch.posting_ids = [str(p) for p in posting_ids]
        batch.total_postings_created = len(result.assignments)
        batch.total_supervisors_posted = supervisors_posted
        await log_batch_audit(
            db,
            institution_id,
            batch_id,
            "EXECUTE",
            None,
            BATCH_STATUS_COMPLETED,
            user_id,
            remarks=f"Created {len(result.assignments)} postings for {supervisors_posted} supervisors",
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(
            "Auto-posting execute for session %s lost a slot to a concurrent request; nothing was saved",
            criteria.session_id,
        )
        raise PostingConflictError()

    logger.info(
        "Auto-posting batch %s created %d postings (%d dependent) for %d supervisors",
        batch_id,
        len(result.assignments),
        dependent_count,
        supervisors_posted,
    )
    base = _build_result(criteria, inputs, result)
    return AutoPostingExecuteResult(
        **base.model_dump(exclude={"preview"}),
        preview=False,
        batch_id=batch_id,
        total_postings_created=len(result.assignments),
        total_supervisors_posted=supervisors_posted,
        dependent_postings_created=dependent_count,
    )
