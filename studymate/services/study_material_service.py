"""Read and delete access to a user's uploads and study materials."""

import json

from sqlalchemy.orm import Session, joinedload

from studymate.core.exceptions import ResourceNotFoundError
from studymate.core.logging_config import get_logger
from studymate.models.study_material import StudyMaterial
from studymate.models.upload import Upload
from studymate.schemas.study import StudyMaterialResponse

logger = get_logger(__name__)


def decode_summary(material: StudyMaterial) -> dict | None:
    """Decode the stored summary JSON. Malformed rows decode to None."""
    try:
        data = json.loads(material.summary)
    except (TypeError, ValueError) as e:
        logger.warning(f"Stored summary is not valid JSON | material={material.id} | error={str(e)}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Stored summary is not a JSON object | material={material.id}")
        return None
    return data


def to_response(material: StudyMaterial) -> StudyMaterialResponse:
    return StudyMaterialResponse(
        id=material.id,
        upload_id=material.upload_id,
        user_id=material.user_id,
        filename=material.filename,
        source_type=material.source_type,
        summary=decode_summary(material),
        quiz=material.quiz_json if isinstance(material.quiz_json, dict) else None,
        flashcards=material.flashcards_json if isinstance(material.flashcards_json, dict) else None,
        language=material.language,
        mode=material.mode,
        created_at=material.created_at,
    )


class StudyMaterialService:
    def __init__(self, db: Session):
        self.db = db

    # ---- study materials ----

    def list_materials(self, user_id: int, page: int = 1, limit: int = 20) -> tuple[list[StudyMaterial], int]:
        query = self.db.query(StudyMaterial).filter(StudyMaterial.user_id == user_id)
        total = query.count()
        materials = (
            query.options(joinedload(StudyMaterial.upload))
            .order_by(StudyMaterial.created_at.desc(), StudyMaterial.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return materials, total

    def get_material(self, user_id: int, material_id: int) -> StudyMaterial:
        material = self.db.query(StudyMaterial).filter(
            StudyMaterial.id == material_id,
            StudyMaterial.user_id == user_id,
        ).first()
        if not material:
            raise ResourceNotFoundError("Study material", material_id)
        return material

    def delete_material(self, user_id: int, material_id: int) -> None:
        material = self.get_material(user_id, material_id)
        self.db.delete(material)
        self.db.commit()
        logger.info(f"Study material deleted | material={material_id} | user={user_id}")

    # ---- uploads ----

    def list_uploads(self, user_id: int, page: int = 1, limit: int = 20) -> tuple[list[Upload], int]:
        query = self.db.query(Upload).filter(Upload.user_id == user_id)
        total = query.count()
        uploads = (
            query.order_by(Upload.created_at.desc(), Upload.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return uploads, total

    def get_upload(self, user_id: int, upload_id: int) -> Upload:
        upload = self.db.query(Upload).filter(
            Upload.id == upload_id,
            Upload.user_id == user_id,
        ).first()
        if not upload:
            raise ResourceNotFoundError("Upload", upload_id)
        return upload

    def delete_upload(self, user_id: int, upload_id: int) -> None:
        """Delete an upload. Its study materials stay, detached from the upload."""
        upload = self.get_upload(user_id, upload_id)
        self.db.delete(upload)
        self.db.commit()
        logger.info(f"Upload deleted | upload={upload_id} | user={user_id}")
