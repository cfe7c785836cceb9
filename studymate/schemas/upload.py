from datetime import datetime

from pydantic import BaseModel

from studymate.schemas.study import GeneratedContent, PaginationInfo, StudyMaterialResponse


class UploadResponse(BaseModel):
    """Upload metadata (content is only returned by the detail endpoint)."""
    id: int
    user_id: int
    filename: str
    source_type: str
    created_at: datetime | None

    class Config:
        from_attributes = True


class UploadDetailResponse(UploadResponse):
    content_text: str


class UploadListResponse(BaseModel):
    data: list[UploadResponse]
    pagination: PaginationInfo


class IngestionResponse(BaseModel):
    """Result of uploading a document and generating its study material."""
    upload: UploadResponse
    study_material: StudyMaterialResponse
    content: GeneratedContent
