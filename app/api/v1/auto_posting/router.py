from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import check_permission
from app.auth.schemas import CurrentUser
from app.core.config import settings
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    AutoPostingCriteria,
    AutoPostingExecuteResult,
    AutoPostingResult,
    BatchResponse,
    RollbackResponse,
)
from . import batches, service

router = APIRouter(prefix="/api/v1/auto-posting", tags=["auto-posting"])


@router.post(
    "/preview",
    response_model=AutoPostingResult,
    dependencies=[Depends(check_permission("posting", "read"))],
)
async def preview_auto_posting(
    payload: AutoPostingCriteria,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AutoPostingResult:
    """Projected assignments for the criteria. Nothing is saved."""
    try:
        return await service.preview(db, current_user.institution_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/execute",
    response_model=AutoPostingExecuteResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("posting", "create"))],
)
async def execute_auto_posting(
    payload: AutoPostingCriteria,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AutoPostingExecuteResult:
    """Create postings for the criteria as one batch. Same assignments as the preview for unchanged data."""
    try:
        return await service.execute(db, current_user.institution_id, current_user.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/history",
    response_model=List[BatchResponse],
    dependencies=[Depends(check_permission("posting", "read"))],
)
async def get_auto_posting_history(
    session_id: Optional[UUID] = Query(None),
    limit: int = Query(settings.history_page_limit, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[BatchResponse]:
    """Auto-posting batches, newest first."""
    return await batches.list_batches(
        db, current_user.institution_id, session_id=session_id, limit=limit, offset=offset
    )


@router.get(
    "/{batch_id}",
    response_model=BatchResponse,
    dependencies=[Depends(check_permission("posting", "read"))],
)
async def get_auto_posting_batch(
    batch_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> BatchResponse:
    obj = await batches.get_batch(db, current_user.institution_id, batch_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Auto-posting batch not found")
    return obj


@router.post(
    "/{batch_id}/rollback",
    response_model=RollbackResponse,
    dependencies=[Depends(check_permission("posting", "delete"))],
)
async def rollback_auto_posting(
    batch_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> RollbackResponse:
    """Cancel every posting created by the batch. A batch can only be rolled back once."""
    try:
        return await batches.rollback_batch(db, current_user.institution_id, batch_id, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
