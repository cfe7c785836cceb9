from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from studymate.api.deps import get_current_user, get_usage_ledger
from studymate.models.user import User
from studymate.schemas.study import PaginationInfo
from studymate.schemas.usage import (
    CreditTotalResponse,
    UsageListResponse,
    UsageRecordCreate,
    UsageRecordResponse,
    UsageStatsResponse,
)
from studymate.services.usage_ledger import UsageLedger

router = APIRouter(prefix="/usage", tags=["Usage"])


def _check_range(start: datetime | None, end: datetime | None) -> None:
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")


@router.post("", response_model=UsageRecordResponse, status_code=status.HTTP_201_CREATED)
def record_usage(
    request: UsageRecordCreate,
    current_user: User = Depends(get_current_user),
    ledger: UsageLedger = Depends(get_usage_ledger),
):
    """Spend credits on one of the current user's study materials."""
    return ledger.record_usage(current_user.id, request.material_id, request.credits_used)


@router.get("", response_model=UsageListResponse)
def list_usage(
    material_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    ledger: UsageLedger = Depends(get_usage_ledger),
):
    """Usage history of the current user, newest first."""
    _check_range(start, end)
    records, total = ledger.list_usage(current_user.id, material_id, start, end, page, limit)
    return UsageListResponse(
        data=[UsageRecordResponse.model_validate(r) for r in records],
        pagination=PaginationInfo.build(page, limit, total),
    )


@router.get("/stats", response_model=UsageStatsResponse)
def usage_stats(
    start: datetime | None = None,
    end: datetime | None = None,
    current_user: User = Depends(get_current_user),
    ledger: UsageLedger = Depends(get_usage_ledger),
):
    _check_range(start, end)
    return ledger.usage_stats(current_user.id, start, end)


@router.get("/total-credits", response_model=CreditTotalResponse)
def total_credits(
    current_user: User = Depends(get_current_user),
    ledger: UsageLedger = Depends(get_usage_ledger),
):
    """All credits the current user has spent."""
    return CreditTotalResponse(total_credits=ledger.total_credits_by_user(current_user.id))


@router.get("/materials/{material_id}/total", response_model=CreditTotalResponse)
def material_total_credits(
    material_id: int,
    current_user: User = Depends(get_current_user),
    ledger: UsageLedger = Depends(get_usage_ledger),
):
    """Credits the current user has spent on one of their materials."""
    total = ledger.total_credits_by_material(material_id, user_id=current_user.id)
    return CreditTotalResponse(total_credits=total, material_id=material_id)


# Registered last so the fixed paths above are matched first
@router.get("/{record_id}", response_model=UsageRecordResponse)
def get_usage_record(
    record_id: int,
    current_user: User = Depends(get_current_user),
    ledger: UsageLedger = Depends(get_usage_ledger),
):
    return ledger.get_usage_record(current_user.id, record_id)
