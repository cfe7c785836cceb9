"""
Ingestion transaction manager.

Ties an upload to its generated study material with all-or-nothing semantics:

    START -> UPLOAD_PERSISTED -> GENERATING -> MATERIAL_PERSISTED
                                     |
                                     +-> FAILED -> UPLOAD_ROLLED_BACK

The upload row is committed before generation starts so that a generation
failure has something to compensate: the upload is deleted again before the
error reaches the caller.
"""

import asyncio
import enum
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studymate.core.config import settings
from studymate.core.exceptions import (
    ConsistencyError,
    InvalidFileFormatError,
    ResourceNotFoundError,
    StudyMaterialGenerationError,
)
from studymate.core.logging_config import get_logger
from studymate.models.study_material import StudyMaterial, StudyMode
from studymate.models.upload import SourceType, Upload
from studymate.models.user import User
from studymate.schemas.study import GeneratedContent, GenerationParams
from studymate.services.ai_service import ContentPayload
from studymate.services.chunker import chunk_text
from studymate.services.generation import GenerationOrchestrator
from studymate.services.text_extractor import IMAGE_ANALYSIS_PROMPT, TextExtractor, validate_upload

logger = get_logger(__name__)

# Text handed to the generator when the document travels as chunks
DOCUMENT_PROMPT = "Build study material from the document sections below."


class IngestionState(str, enum.Enum):
    START = "start"
    UPLOAD_PERSISTED = "upload_persisted"
    GENERATING = "generating"
    MATERIAL_PERSISTED = "material_persisted"
    FAILED = "failed"
    UPLOAD_ROLLED_BACK = "upload_rolled_back"


@dataclass
class IngestionResult:
    upload: Upload
    study_material: StudyMaterial
    content: GeneratedContent


class IngestionService:
    def __init__(
        self,
        db: Session,
        orchestrator: GenerationOrchestrator,
        extractor: TextExtractor | None = None,
    ):
        self.db = db
        self.orchestrator = orchestrator
        self.extractor = extractor or TextExtractor()

    def _transition(self, state: IngestionState, upload_id: int | None, detail: str = "") -> None:
        suffix = f" | {detail}" if detail else ""
        logger.info(f"Ingestion state={state.value} | upload={upload_id}{suffix}")

    def build_payload(
        self,
        content: str,
        source_type: SourceType,
        chunks: list[str] | None = None,
        image_data_url: str | None = None,
    ) -> ContentPayload:
        """Derive the generator payload from stored upload content and an optional companion image."""
        if source_type == SourceType.IMAGE:
            return ContentPayload(text=IMAGE_ANALYSIS_PROMPT, image_data_url=content)

        if chunks is None and len(content) > self.extractor.max_chunk_size:
            chunks = chunk_text(content, self.extractor.max_chunk_size, self.extractor.max_chunks)
        if chunks:
            return ContentPayload(
                text=DOCUMENT_PROMPT,
                image_data_url=image_data_url,
                chunks=chunks,
                document_type=source_type.value,
            )
        return ContentPayload(text=content, image_data_url=image_data_url, document_type=source_type.value)

    async def ingest_file(
        self,
        user_id: int,
        filename: str,
        file_content: bytes,
        mime_hint: str | None = None,
        *,
        language: str | None = None,
        mode: StudyMode | str = StudyMode.SUMMARY,
        params: GenerationParams | None = None,
    ) -> IngestionResult:
        """Validate and extract an uploaded file, then ingest it."""
        validate_upload(file_content, filename, settings.max_upload_size_mb)
        extracted = self.extractor.extract(file_content, mime_hint, filename)
        return await self.ingest_and_generate(
            user_id,
            filename,
            extracted.content_text,
            extracted.source_type,
            language=language,
            mode=mode,
            params=params,
            chunks=extracted.chunks or None,
        )

    async def ingest_and_generate(
        self,
        user_id: int,
        filename: str,
        content: str,
        source_type: SourceType | str,
        *,
        language: str | None = None,
        mode: StudyMode | str = StudyMode.SUMMARY,
        params: GenerationParams | None = None,
        image_data_url: str | None = None,
        chunks: list[str] | None = None,
    ) -> IngestionResult:
        """
        Persist an upload, generate its study material and persist that too.

        Args:
            user_id: Owner of the upload
            filename: Original filename
            content: Extracted text, or an image data URL for image uploads
            source_type: Kind of upload (pdf, docx, txt, raw, image)
            language: Language tag stored on the material
            mode: Study mode stored on the material
            params: Artifact generation parameters
            image_data_url: Image sent along with a text upload
            chunks: Pre-computed chunks; computed here for long text when omitted

        Returns:
            IngestionResult with the upload, the study material and the generated content

        Raises:
            InvalidFileFormatError: If a required field is missing or invalid
            ResourceNotFoundError: If the user does not exist
            StudyMaterialGenerationError: If generation failed; the upload has been deleted
            ConsistencyError: If the stored material cannot be read back
        """
        self._transition(IngestionState.START, None, f"user={user_id} | file={filename}")
        if not filename or not filename.strip():
            raise InvalidFileFormatError("Filename is required")
        if not content or not content.strip():
            raise InvalidFileFormatError("Upload content is required")
        if not source_type:
            raise InvalidFileFormatError("Source type is required")
        try:
            source_type = SourceType(source_type)
        except ValueError:
            raise InvalidFileFormatError(f"Unsupported source type: {source_type}")
        try:
            mode = StudyMode(mode)
        except ValueError:
            raise InvalidFileFormatError(f"Unsupported study mode: {mode}")
        if not self.db.query(User.id).filter(User.id == user_id).first():
            raise ResourceNotFoundError("User", user_id)

        upload = Upload(
            user_id=user_id,
            filename=filename.strip(),
            content_text=content,
            source_type=source_type.value,
        )
        try:
            self.db.add(upload)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Failed to persist upload | user={user_id} | file={filename}", exc_info=True)
            raise
        self.db.refresh(upload)
        upload_id = upload.id
        self._transition(IngestionState.UPLOAD_PERSISTED, upload_id, f"source_type={source_type.value}")

        payload = self.build_payload(content, source_type, chunks, image_data_url)
        self._transition(IngestionState.GENERATING, upload_id, f"source={payload.source} | chunks={len(payload.chunks)}")
        try:
            generated = await self.orchestrator.generate_all(payload, params)
        except asyncio.CancelledError:
            self._transition(IngestionState.FAILED, upload_id, "cancelled")
            self._rollback_upload(upload_id)
            raise
        except Exception as e:
            self._transition(IngestionState.FAILED, upload_id, str(e))
            self._rollback_upload(upload_id)
            raise StudyMaterialGenerationError(str(e), upload_id=upload_id) from e

        material = StudyMaterial(
            upload_id=upload_id,
            user_id=user_id,
            summary=generated.summary.model_dump_json(),
            quiz_json=generated.quiz.model_dump(mode="json"),
            flashcards_json=generated.flashcards.model_dump(mode="json"),
            language=language or settings.default_language,
            mode=mode.value,
        )
        try:
            self.db.add(material)
            self.db.flush()
            material_id = material.id
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Failed to persist study material | upload={upload_id}", exc_info=True)
            self._rollback_upload(upload_id)
            raise

        stored = (
            self.db.query(StudyMaterial).filter(StudyMaterial.id == material_id).first()
            if material_id is not None
            else None
        )
        if stored is None:
            logger.error(f"Study material missing after commit | upload={upload_id} | material={material_id}")
            raise ConsistencyError(f"Study material for upload {upload_id} was not found after saving")

        self._transition(IngestionState.MATERIAL_PERSISTED, upload_id, f"material={stored.id}")
        return IngestionResult(upload=upload, study_material=stored, content=generated)

    def _rollback_upload(self, upload_id: int) -> None:
        """Delete the upload created for a failed request. Failures are logged, not raised."""
        try:
            self.db.query(Upload).filter(Upload.id == upload_id).delete(synchronize_session="fetch")
            self.db.commit()
            self._transition(IngestionState.UPLOAD_ROLLED_BACK, upload_id)
        except Exception:
            self.db.rollback()
            logger.error(f"Compensating delete failed for upload {upload_id}", exc_info=True)
