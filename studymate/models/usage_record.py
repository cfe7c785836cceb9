from sqlalchemy import Column, Integer, ForeignKey, DateTime, CheckConstraint, Index
from sqlalchemy.orm import relationship, backref
from sqlalchemy.sql import func

from studymate.db.database import Base


class UsageRecord(Base):
    __tablename__ = "usage_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    material_id = Column(Integer, ForeignKey("study_materials.id", ondelete="CASCADE"), nullable=False)
    credits_used = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", backref=backref("usage_records", passive_deletes=True))
    material = relationship("StudyMaterial", backref=backref("usage_records", passive_deletes=True))

    __table_args__ = (
        CheckConstraint("credits_used > 0", name="ck_usage_records_credits_positive"),
        Index("ix_usage_records_user_created", "user_id", "created_at"),
        Index("ix_usage_records_material", "material_id"),
    )
