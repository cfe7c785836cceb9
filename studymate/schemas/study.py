from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

DetailLevel = Literal["basic", "intermediate", "detailed"]
Difficulty = Literal["easy", "medium", "hard"]


# ============================================
# Generated artifacts
# ============================================


class SummaryPoint(BaseModel):
    """A main point of a summary."""
    topic: str
    description: str


class SummaryArtifact(BaseModel):
    """Structured summary produced by the model."""
    title: str
    executive_summary: str = Field(min_length=50)
    key_topics: list[str] = Field(min_length=1, max_length=10)
    main_points: list[SummaryPoint] = Field(min_length=1, max_length=15)
    conclusion: str | None = None
    model: str
    timestamp: str
    source: str


class QuizQuestion(BaseModel):
    """A single multiple choice question."""
    question: str = Field(min_length=10)
    options: list[str] = Field(min_length=2, max_length=5)
    correct_option: int = Field(ge=0)  # zero-based index into options
    explanation: str | None = None

    @model_validator(mode="after")
    def check_correct_option(self) -> "QuizQuestion":
        if self.correct_option >= len(self.options):
            raise ValueError(
                f"correct_option {self.correct_option} is out of range for {len(self.options)} options"
            )
        return self


class QuizArtifact(BaseModel):
    """Quiz produced by the model."""
    title: str
    description: str | None = None
    questions: list[QuizQuestion] = Field(min_length=1, max_length=20)
    model: str
    timestamp: str
    source: str


class Flashcard(BaseModel):
    """A single flashcard."""
    front: str = Field(min_length=5)
    back: str = Field(min_length=5)
    category: str | None = None
    difficulty: Difficulty | None = None


class FlashcardSetArtifact(BaseModel):
    """Flashcard set produced by the model."""
    title: str
    description: str | None = None
    flashcards: list[Flashcard] = Field(min_length=1, max_length=30)
    model: str
    timestamp: str
    source: str


class GeneratedContent(BaseModel):
    """The three artifacts generated for one upload."""
    summary: SummaryArtifact
    quiz: QuizArtifact
    flashcards: FlashcardSetArtifact


class GenerationParams(BaseModel):
    """Artifact-specific generation parameters."""
    num_questions: int = Field(5, ge=1, le=20)
    num_cards: int = Field(10, ge=1, le=30)
    detail_level: DetailLevel = "intermediate"
    temperature: float = Field(0.3, ge=0, le=2)


# ============================================
# Stored materials
# ============================================


class StudyMaterialResponse(BaseModel):
    """Study material with its artifacts decoded."""
    id: int
    upload_id: int | None
    user_id: int
    filename: str | None = None  # None once the upload has been deleted
    source_type: str | None = None
    summary: dict | None
    quiz: dict | None
    flashcards: dict | None
    language: str
    mode: str
    created_at: datetime | None

    class Config:
        from_attributes = True


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationInfo":
        return cls(page=page, limit=limit, total=total, total_pages=(total + limit - 1) // limit)


class StudyMaterialListResponse(BaseModel):
    data: list[StudyMaterialResponse]
    pagination: PaginationInfo
