from app.core.models.institution import Institution
from app.core.models.academic_session import AcademicSession
from app.core.models.rank import Rank
from app.core.models.faculty import Faculty
from app.core.models.school import InstitutionSchool, Route, SchoolGroup
from app.core.models.merged_group import MergedGroup
from app.core.models.auto_posting_batch import AutoPostingBatch
from app.core.models.supervisor_posting import SupervisorPosting
from app.core.models.audit_log import AuditLog

__all__ = [
    "Institution",
    "AcademicSession",
    "Rank",
    "Faculty",
    "InstitutionSchool",
    "Route",
    "SchoolGroup",
    "MergedGroup",
    "AutoPostingBatch",
    "SupervisorPosting",
    "AuditLog",
]
