from datetime import datetime

from pydantic import BaseModel, Field

from studymate.schemas.study import PaginationInfo


class UsageRecordCreate(BaseModel):
    """Request to spend credits on a study material."""
    material_id: int
    credits_used: int = Field(gt=0)


class UsageRecordResponse(BaseModel):
    id: int
    user_id: int
    material_id: int
    credits_used: int
    created_at: datetime | None

    class Config:
        from_attributes = True


class UsageListResponse(BaseModel):
    data: list[UsageRecordResponse]
    pagination: PaginationInfo


class ModeUsage(BaseModel):
    mode: str
    count: int
    total_credits: int


class UsageStatsResponse(BaseModel):
    """Credit usage of one user over a period."""
    total_credits_used: int
    total_materials_accessed: int
    average_credits_per_material: float
    usage_by_mode: list[ModeUsage]
    remaining_credits: int


class CreditTotalResponse(BaseModel):
    total_credits: int
    material_id: int | None = None
