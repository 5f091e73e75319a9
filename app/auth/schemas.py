from typing import Dict
from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated user for RBAC checks.
    institution_id scopes every auto-posting query; it is never read from global state.
    """

    id: UUID
    institution_id: UUID
    role: str
    permissions: Dict[str, Dict[str, bool]]
