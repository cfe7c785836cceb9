import enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Index
from sqlalchemy.orm import relationship, backref
from sqlalchemy.sql import func

from studymate.db.database import Base


class SourceType(str, enum.Enum):
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"
    RAW = "raw"
    IMAGE = "image"


class Upload(Base):
    __tablename__ = "uploads"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    filename = Column(String(255), nullable=False)
    # Extracted text, or the base64 data URL for image uploads
    content_text = Column(Text, nullable=False)
    # Store as string for cross-DB compatibility (SQLite/PostgreSQL)
    source_type = Column(String(10), nullable=False, default=SourceType.RAW.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", backref=backref("uploads", passive_deletes=True))

    __table_args__ = (
        Index("ix_uploads_user_created", "user_id", "created_at"),
    )
