"""
Auto-posting distribution: assign supervisors to open slots.

Slot order:
  1. visit_number ascending, so every visit 1 slot is offered before any visit 2 slot
  2. location key of the posting type (none for random, route for route_based, LGA for lga_based)
  3. distance_km descending, only when priority is enabled
  4. school (insertion order for random, ascending id otherwise), then group_number

Supervisor order: ascending id, or rank weight descending then id when priority is enabled.

Supervisors are served round-robin, skipping anyone at max_postings, so nobody gets a second
posting in a pass before every other eligible supervisor has had a first. Deterministic and
side-effect free; gaps are reported through statistics and warnings, never raised.
"""

import logging
from collections import Counter
from typing import Callable, Dict, List, NamedTuple, Sequence, Set, Tuple
from uuid import UUID

from app.core.enums import PostingType

from .schemas import (
    Assignment,
    AutoPostingCriteria,
    DistributionResult,
    DistributionStatistics,
    SlotSnapshot,
    SupervisorSnapshot,
)

logger = logging.getLogger(__name__)


class _Ordering(NamedTuple):
    location: Callable[[SlotSnapshot], Tuple]
    by_insertion_order: bool


def _no_location(slot: SlotSnapshot) -> Tuple:
    return ()


def _route_location(slot: SlotSnapshot) -> Tuple:
    # Unrouted schools sort first
    return ("" if slot.route_id is None else str(slot.route_id),)


def _lga_location(slot: SlotSnapshot) -> Tuple:
    return (slot.lga or "",)


ORDERINGS: Dict[PostingType, _Ordering] = {
    PostingType.RANDOM: _Ordering(_no_location, by_insertion_order=True),
    PostingType.ROUTE_BASED: _Ordering(_route_location, by_insertion_order=False),
    PostingType.LGA_BASED: _Ordering(_lga_location, by_insertion_order=False),
}


def order_slots(
    slots: Sequence[SlotSnapshot],
    posting_type: PostingType,
    priority_enabled: bool,
) -> List[SlotSnapshot]:
    """Return slots in the order they are offered to supervisors."""
    ordering = ORDERINGS[posting_type]
    insertion: Dict[UUID, int] = {}
    for slot in slots:
        insertion.setdefault(slot.school_id, len(insertion))

    def key(slot: SlotSnapshot) -> Tuple:
        distance = -slot.distance_km if priority_enabled else 0.0
        school = insertion[slot.school_id] if ordering.by_insertion_order else slot.school_id
        return (slot.visit_number, ordering.location(slot), distance, school, slot.group_number)

    return sorted(slots, key=key)


def order_supervisors(
    supervisors: Sequence[SupervisorSnapshot],
    priority_enabled: bool,
) -> List[SupervisorSnapshot]:
    if priority_enabled:
        return sorted(supervisors, key=lambda s: (-s.priority_weight, s.id))
    return sorted(supervisors, key=lambda s: s.id)


def calculate_statistics(
    assignments: Sequence[Assignment],
    supervisors: Sequence[SupervisorSnapshot],
    visits_included: int,
    filtered_slots_count: int = 0,
) -> DistributionStatistics:
    by_visit = Counter(a.visit_number for a in assignments)
    by_supervisor = Counter(a.supervisor_id for a in assignments)
    schools = {a.school_id for a in assignments}

    supervisors_full = len(by_supervisor)
    counts = list(by_supervisor.values())
    return DistributionStatistics(
        total_assignments=len(assignments),
        total_schools=len(schools),
        by_visit=dict(sorted(by_visit.items())),
        supervisors_full=supervisors_full,
        supervisors_none=max(len(supervisors) - supervisors_full, 0),
        avg_postings_per_supervisor=round(len(assignments) / supervisors_full, 2) if supervisors_full else 0.0,
        min_postings=min(counts) if counts else 0,
        max_postings=max(counts) if counts else 0,
        visits_included=visits_included,
        filtered_slots_count=filtered_slots_count,
    )


def _to_assignment(supervisor: SupervisorSnapshot, slot: SlotSnapshot) -> Assignment:
    return Assignment(
        supervisor_id=supervisor.id,
        supervisor_name=supervisor.name,
        rank_code=supervisor.rank_code,
        priority_weight=supervisor.priority_weight,
        school_id=slot.school_id,
        school_name=slot.school_name,
        group_number=slot.group_number,
        visit_number=slot.visit_number,
        distance_km=slot.distance_km,
        route_id=slot.route_id,
        route_name=slot.route_name,
        lga=slot.lga,
    )


def distribute(
    slots: Sequence[SlotSnapshot],
    supervisors: Sequence[SupervisorSnapshot],
    criteria: AutoPostingCriteria,
) -> DistributionResult:
    """Assign supervisors to slots round-robin. Never raises; an empty result is valid."""
    visits_included = criteria.visits_included
    warnings: List[str] = []

    if not supervisors:
        warnings.append("No eligible supervisors available")
        return DistributionResult(
            statistics=calculate_statistics([], supervisors, visits_included),
            warnings=warnings,
        )
    if not slots:
        warnings.append("No available slots to assign")
        return DistributionResult(
            statistics=calculate_statistics([], supervisors, visits_included),
            warnings=warnings,
        )

    filtered = [s for s in slots if 1 <= s.visit_number <= visits_included]
    if not filtered:
        through = f" through {visits_included}" if visits_included > 1 else ""
        warnings.append(f"No available slots for Visit 1{through}")
        return DistributionResult(
            statistics=calculate_statistics([], supervisors, visits_included),
            warnings=warnings,
        )

    ordered_slots = order_slots(filtered, criteria.posting_type, criteria.priority_enabled)
    ordered_supervisors = order_supervisors(supervisors, criteria.priority_enabled)

    remaining = [max(s.max_postings - s.current_posting_count, 0) for s in ordered_supervisors]
    total = len(ordered_supervisors)
    cursor = 0
    seen: Set[Tuple[UUID, int, int]] = set()
    assignments: List[Assignment] = []
    unassigned = 0

    for position, slot in enumerate(ordered_slots):
        slot_key = (slot.school_id, slot.group_number, slot.visit_number)
        if slot_key in seen:
            continue

        picked = None
        for step in range(total):
            index = (cursor + step) % total
            if remaining[index] > 0:
                picked = index
                break
        if picked is None:
            # Everyone is at capacity; no later slot can be filled either
            unassigned = len({(s.school_id, s.group_number, s.visit_number) for s in ordered_slots[position:]} - seen)
            break

        assignments.append(_to_assignment(ordered_supervisors[picked], slot))
        seen.add(slot_key)
        remaining[picked] -= 1
        cursor = (picked + 1) % total

    if unassigned:
        warnings.append(
            f"{unassigned} slots could not be assigned (all supervisors at capacity)"
        )

    statistics = calculate_statistics(assignments, supervisors, visits_included, len(ordered_slots))
    logger.debug(
        "Distributed %d of %d slots across %d supervisors (posting_type=%s, priority=%s)",
        len(assignments),
        len(ordered_slots),
        total,
        criteria.posting_type.value,
        criteria.priority_enabled,
    )
    return DistributionResult(assignments=assignments, statistics=statistics, warnings=warnings)
