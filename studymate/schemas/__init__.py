from studymate.schemas.study import (
    SummaryArtifact, QuizArtifact, FlashcardSetArtifact, GeneratedContent, GenerationParams,
    StudyMaterialResponse,
)
from studymate.schemas.upload import UploadResponse, IngestionResponse
from studymate.schemas.usage import UsageRecordCreate, UsageRecordResponse

__all__ = [
    "SummaryArtifact", "QuizArtifact", "FlashcardSetArtifact", "GeneratedContent", "GenerationParams",
    "StudyMaterialResponse",
    "UploadResponse", "IngestionResponse",
    "UsageRecordCreate", "UsageRecordResponse",
]
