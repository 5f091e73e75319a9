"""
Resolve auto-posting inputs for a session: open slots and eligible supervisors.
Read only. Preview and execute both call resolve_inputs, so the two runs see the same inputs
unless the underlying rows change in between.
"""

from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.config import settings
from app.core.enums import MergedGroupStatus, SupervisorRole
from app.core.models import AcademicSession, InstitutionSchool, MergedGroup, Rank, Route, SchoolGroup, SupervisorPosting
from app.core.models.supervisor_posting import POSTING_STATUS_ACTIVE

from .schemas import AutoPostingCriteria, ResolvedInputs, SlotSnapshot, SupervisorSnapshot

SUPERVISOR_ROLES = [SupervisorRole.SUPERVISOR.value, SupervisorRole.FIELD_MONITOR.value]

SlotKey = Tuple[UUID, int, int]


def get_max_postings_per_supervisor(session: AcademicSession) -> int:
    """Cap on primary postings per supervisor for the session."""
    return (
        session.max_posting_per_supervisor
        or session.max_supervision_visits
        or settings.default_max_supervision_visits
    )


async def load_taken_slots(db: AsyncSession, institution_id: UUID, session_id: UUID) -> Set[SlotKey]:
    """(school_id, group_number, visit_number) of every active posting in the session."""
    result = await db.execute(
        select(
            SupervisorPosting.school_id,
            SupervisorPosting.group_number,
            SupervisorPosting.visit_number,
        ).where(
            SupervisorPosting.institution_id == institution_id,
            SupervisorPosting.session_id == session_id,
            SupervisorPosting.status == POSTING_STATUS_ACTIVE,
        )
    )
    return {(row.school_id, row.group_number, row.visit_number) for row in result.all()}


async def _load_merged_secondaries(db: AsyncSession, institution_id: UUID, session_id: UUID) -> Set[Tuple[UUID, int]]:
    result = await db.execute(
        select(MergedGroup.secondary_school_id, MergedGroup.secondary_group_number).where(
            MergedGroup.institution_id == institution_id,
            MergedGroup.session_id == session_id,
            MergedGroup.status == MergedGroupStatus.ACTIVE.value,
        )
    )
    return {(row.secondary_school_id, row.secondary_group_number) for row in result.all()}


async def resolve_slots(
    db: AsyncSession,
    institution_id: UUID,
    session_id: UUID,
    visits_included: int,
) -> Tuple[List[SlotSnapshot], List[str]]:
    """Open slots for visits 1..visits_included, ordered by visit, school insertion order, then group."""
    result = await db.execute(
        select(SchoolGroup, InstitutionSchool, Route.name.label("route_name"))
        .join(InstitutionSchool, SchoolGroup.school_id == InstitutionSchool.id)
        .outerjoin(Route, InstitutionSchool.route_id == Route.id)
        .where(
            SchoolGroup.institution_id == institution_id,
            SchoolGroup.session_id == session_id,
            SchoolGroup.student_count > 0,
            InstitutionSchool.institution_id == institution_id,
            InstitutionSchool.status == "active",
        )
        .order_by(InstitutionSchool.created_at, InstitutionSchool.id, SchoolGroup.group_number)
    )
    rows = result.all()

    merged_secondaries = await _load_merged_secondaries(db, institution_id, session_id)
    taken = await load_taken_slots(db, institution_id, session_id)

    groups = [
        (group, school, route_name)
        for group, school, route_name in rows
        if (school.id, group.group_number) not in merged_secondaries
    ]

    slots: List[SlotSnapshot] = []
    open_per_school: Dict[UUID, int] = {school.id: 0 for _, school, _ in groups}
    for visit in range(1, visits_included + 1):
        for group, school, route_name in groups:
            if (school.id, group.group_number, visit) in taken:
                continue
            open_per_school[school.id] += 1
            slots.append(
                SlotSnapshot(
                    school_id=school.id,
                    school_name=school.name,
                    group_number=group.group_number,
                    visit_number=visit,
                    route_id=school.route_id,
                    route_name=route_name,
                    lga=school.lga,
                    distance_km=float(school.distance_km or 0),
                )
            )

    school_names = {school.id: school.name for _, school, _ in groups}
    visits_label = "visit 1" if visits_included == 1 else f"visits 1-{visits_included}"
    warnings = [
        f"{school_names[school_id]}: all groups already posted for {visits_label}"
        for school_id, open_count in open_per_school.items()
        if open_count == 0
    ]
    return slots, warnings


async def resolve_supervisors(
    db: AsyncSession,
    institution_id: UUID,
    session: AcademicSession,
    faculty_id: Optional[UUID] = None,
) -> Tuple[List[SupervisorSnapshot], List[str]]:
    """Active supervisors of the institution below their posting cap, ordered by id."""
    max_postings = get_max_postings_per_supervisor(session)

    counts = (
        select(
            SupervisorPosting.supervisor_id.label("supervisor_id"),
            func.count(SupervisorPosting.id).label("posting_count"),
        )
        .where(
            SupervisorPosting.institution_id == institution_id,
            SupervisorPosting.session_id == session.id,
            SupervisorPosting.status == POSTING_STATUS_ACTIVE,
            SupervisorPosting.is_primary_posting.is_(True),
        )
        .group_by(SupervisorPosting.supervisor_id)
        .subquery()
    )

    stmt = (
        select(User, Rank, func.coalesce(counts.c.posting_count, 0).label("posting_count"))
        .outerjoin(Rank, User.rank_id == Rank.id)
        .outerjoin(counts, counts.c.supervisor_id == User.id)
        .where(
            User.institution_id == institution_id,
            User.role.in_(SUPERVISOR_ROLES),
            User.status == "active",
        )
        .order_by(User.id)
    )
    if faculty_id is not None:
        stmt = stmt.where(User.faculty_id == faculty_id)
    result = await db.execute(stmt)

    supervisors: List[SupervisorSnapshot] = []
    warnings: List[str] = []
    for user, rank, posting_count in result.all():
        if posting_count >= max_postings:
            warnings.append(f"{user.name} already has {posting_count} of {max_postings} postings and was skipped")
            continue
        supervisors.append(
            SupervisorSnapshot(
                id=user.id,
                name=user.name,
                rank_id=rank.id if rank else None,
                rank_code=rank.code if rank else None,
                priority_weight=rank.priority_weight if rank else 0,
                faculty_id=user.faculty_id,
                current_posting_count=posting_count,
                max_postings=max_postings,
            )
        )
    return supervisors, warnings


async def resolve_inputs(
    db: AsyncSession,
    institution_id: UUID,
    session: AcademicSession,
    criteria: AutoPostingCriteria,
) -> ResolvedInputs:
    slots, slot_warnings = await resolve_slots(db, institution_id, session.id, criteria.visits_included)
    supervisors, supervisor_warnings = await resolve_supervisors(
        db, institution_id, session, faculty_id=criteria.faculty_id
    )
    return ResolvedInputs(
        slots=slots,
        supervisors=supervisors,
        warnings=slot_warnings + supervisor_warnings,
    )
