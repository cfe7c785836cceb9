from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from studymate.api.deps import get_current_user, get_ingestion_service, get_study_material_service
from studymate.core.logging_config import get_logger
from studymate.models.study_material import StudyMode
from studymate.models.user import User
from studymate.schemas.study import GenerationParams, PaginationInfo
from studymate.schemas.upload import (
    IngestionResponse,
    UploadDetailResponse,
    UploadListResponse,
    UploadResponse,
)
from studymate.services.ai_service import DETAIL_LEVELS
from studymate.services.ingestion_service import IngestionService
from studymate.services.study_material_service import StudyMaterialService, to_response

logger = get_logger(__name__)

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post("", response_model=IngestionResponse, status_code=status.HTTP_201_CREATED)
async def upload_and_generate(
    file: UploadFile = File(...),
    language: Optional[str] = Form(None),
    mode: str = Form(StudyMode.SUMMARY.value),
    num_questions: int = Form(5, ge=1, le=20),
    num_cards: int = Form(10, ge=1, le=30),
    detail_level: str = Form("intermediate"),
    current_user: User = Depends(get_current_user),
    service: IngestionService = Depends(get_ingestion_service),
):
    """
    Upload a document and generate its summary, quiz and flashcards.

    Supports: PDF, DOCX, plain text and images (PNG, JPEG, GIF, WEBP).
    The upload is only kept when all three artifacts were generated.
    """
    if mode not in {m.value for m in StudyMode}:
        raise HTTPException(
            status_code=400,
            detail=f"mode must be one of: {', '.join(m.value for m in StudyMode)}",
        )
    if detail_level not in DETAIL_LEVELS:
        raise HTTPException(
            status_code=400,
            detail=f"detail_level must be one of: {', '.join(DETAIL_LEVELS)}",
        )

    try:
        file_content = await file.read()
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Failed to read file: {str(e)}")

    params = GenerationParams(num_questions=num_questions, num_cards=num_cards, detail_level=detail_level)
    result = await service.ingest_file(
        current_user.id,
        file.filename or "unknown",
        file_content,
        file.content_type,
        language=language,
        mode=mode,
        params=params,
    )
    return IngestionResponse(
        upload=UploadResponse.model_validate(result.upload),
        study_material=to_response(result.study_material),
        content=result.content,
    )


@router.get("", response_model=UploadListResponse)
def list_uploads(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: StudyMaterialService = Depends(get_study_material_service),
):
    """List the current user's uploads, newest first."""
    uploads, total = service.list_uploads(current_user.id, page, limit)
    return UploadListResponse(
        data=[UploadResponse.model_validate(u) for u in uploads],
        pagination=PaginationInfo.build(page, limit, total),
    )


@router.get("/{upload_id}", response_model=UploadDetailResponse)
def get_upload(
    upload_id: int,
    current_user: User = Depends(get_current_user),
    service: StudyMaterialService = Depends(get_study_material_service),
):
    return service.get_upload(current_user.id, upload_id)


@router.delete("/{upload_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_upload(
    upload_id: int,
    current_user: User = Depends(get_current_user),
    service: StudyMaterialService = Depends(get_study_material_service),
):
    """Delete an upload (owner only). Generated study materials are kept."""
    service.delete_upload(current_user.id, upload_id)
    return None
