from fastapi import APIRouter, Depends, Query, status

from studymate.api.deps import get_current_user, get_study_material_service
from studymate.models.user import User
from studymate.schemas.study import PaginationInfo, StudyMaterialListResponse, StudyMaterialResponse
from studymate.services.study_material_service import StudyMaterialService, to_response

router = APIRouter(prefix="/study-materials", tags=["Study Materials"])


@router.get("", response_model=StudyMaterialListResponse)
def list_study_materials(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: StudyMaterialService = Depends(get_study_material_service),
):
    """List the current user's study materials, newest first."""
    materials, total = service.list_materials(current_user.id, page, limit)
    return StudyMaterialListResponse(
        data=[to_response(m) for m in materials],
        pagination=PaginationInfo.build(page, limit, total),
    )


@router.get("/{material_id}", response_model=StudyMaterialResponse)
def get_study_material(
    material_id: int,
    current_user: User = Depends(get_current_user),
    service: StudyMaterialService = Depends(get_study_material_service),
):
    return to_response(service.get_material(current_user.id, material_id))


@router.delete("/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_study_material(
    material_id: int,
    current_user: User = Depends(get_current_user),
    service: StudyMaterialService = Depends(get_study_material_service),
):
    """Delete a study material (owner only) along with its usage history."""
    service.delete_material(current_user.id, material_id)
    return None
