from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from app.core.enums import PostingType


# ----- Criteria -----
class AutoPostingCriteria(BaseModel):
    """Criteria shared by preview and execute. Identical criteria must give identical assignments."""

    session_id: UUID
    visits_included: int = Field(
        1,
        ge=1,
        le=10,
        validation_alias=AliasChoices("visits_included", "number_of_postings"),
        description="Visits 1..N are posted; checked against the session's max_supervision_visits",
    )
    posting_type: PostingType = PostingType.RANDOM
    priority_enabled: bool = True
    faculty_id: Optional[UUID] = Field(None, description="Restrict supervisors to one dean's faculty")

    class Config:
        frozen = True


# ----- Engine snapshots -----
class SlotSnapshot(BaseModel):
    """An open (school, group, visit) opportunity."""

    school_id: UUID
    school_name: str
    group_number: int
    visit_number: int
    route_id: Optional[UUID] = None
    route_name: Optional[str] = None
    lga: Optional[str] = None
    distance_km: float = 0.0

    class Config:
        frozen = True


class SupervisorSnapshot(BaseModel):
    id: UUID
    name: str
    rank_id: Optional[UUID] = None
    rank_code: Optional[str] = None
    priority_weight: int = 0
    faculty_id: Optional[UUID] = None
    current_posting_count: int = 0
    max_postings: int

    class Config:
        frozen = True


class ResolvedInputs(BaseModel):
    slots: List[SlotSnapshot] = Field(default_factory=list)
    supervisors: List[SupervisorSnapshot] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class Assignment(BaseModel):
    supervisor_id: UUID
    supervisor_name: str
    rank_code: Optional[str] = None
    priority_weight: int = 0
    school_id: UUID
    school_name: str
    group_number: int
    visit_number: int
    distance_km: float
    route_id: Optional[UUID] = None
    route_name: Optional[str] = None
    lga: Optional[str] = None

    class Config:
        frozen = True


class DistributionStatistics(BaseModel):
    total_assignments: int = 0
    total_schools: int = 0
    by_visit: Dict[int, int] = Field(default_factory=dict)
    supervisors_full: int = 0  # received at least one posting
    supervisors_none: int = 0
    avg_postings_per_supervisor: float = 0.0
    min_postings: int = 0
    max_postings: int = 0
    visits_included: int = 1
    filtered_slots_count: int = 0


class DistributionResult(BaseModel):
    assignments: List[Assignment] = Field(default_factory=list)
    statistics: DistributionStatistics = Field(default_factory=DistributionStatistics)
    warnings: List[str] = Field(default_factory=list)


# ----- Preview / Execute -----
class AutoPostingResult(BaseModel):
    preview: bool = True
    session_id: UUID
    visits_included: int
    total_supervisors: int
    total_available_slots: int
    assignments: List[Assignment]
    statistics: DistributionStatistics
    warnings: List[str]


class AutoPostingExecuteResult(AutoPostingResult):
    preview: bool = False
    batch_id: UUID
    total_postings_created: int
    total_supervisors_posted: int
    dependent_postings_created: int = 0


# ----- Batches -----
class BatchResponse(BaseModel):
    id: UUID
    institution_id: UUID
    session_id: UUID
    initiated_by: Optional[UUID] = None
    criteria: Dict[str, Any]
    posting_ids: List[UUID]
    total_postings_created: int
    total_supervisors_posted: int
    status: str
    created_at: datetime
    rolled_back_at: Optional[datetime] = None
    rolled_back_by: Optional[UUID] = None

    class Config:
        from_attributes = True


class RollbackResponse(BaseModel):
    batch_id: UUID
    cancelled_count: int
    rolled_back_at: datetime
