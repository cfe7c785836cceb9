import enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, JSON, Index
from sqlalchemy.orm import relationship, backref
from sqlalchemy.sql import func

from studymate.db.database import Base


class StudyMode(str, enum.Enum):
    SUMMARY = "summary"
    QUIZ = "quiz"
    FLASHCARD = "flashcard"
    REVIEW = "review"


class StudyMaterial(Base):
    __tablename__ = "study_materials"

    id = Column(Integer, primary_key=True, index=True)
    # Survives deletion of its upload; the filename is then reported as unavailable
    upload_id = Column(Integer, ForeignKey("uploads.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    summary = Column(Text, nullable=False)  # JSON serialized summary artifact
    quiz_json = Column(JSON, nullable=False)
    flashcards_json = Column(JSON, nullable=False)

    language = Column(String(20), nullable=False, default="en")
    mode = Column(String(20), nullable=False, default=StudyMode.SUMMARY.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    upload = relationship("Upload", backref=backref("study_materials", passive_deletes=True))
    user = relationship("User", backref=backref("study_materials", passive_deletes=True))

    @property
    def filename(self) -> str | None:
        return self.upload.filename if self.upload else None

    @property
    def source_type(self) -> str | None:
        return self.upload.source_type if self.upload else None

    __table_args__ = (
        Index("ix_study_materials_user_created", "user_id", "created_at"),
    )
