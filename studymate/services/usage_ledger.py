"""
Usage ledger: spends a user's credits on a study material.

A usage record is only ever written in the same transaction that debits the
user's balance by the same amount. The debit is a guarded UPDATE so that a
concurrent spend can never drive the balance negative; the CHECK constraint
on ``users.credits`` backs it up at the database level.
"""

from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studymate.core.exceptions import InsufficientCreditsError, LedgerError, ResourceNotFoundError
from studymate.core.logging_config import get_logger
from studymate.models.study_material import StudyMaterial
from studymate.models.usage_record import UsageRecord
from studymate.models.user import User

logger = get_logger(__name__)


class UsageLedger:
    def __init__(self, db: Session):
        self.db = db

    def record_usage(self, user_id: int, material_id: int, credits_used: int) -> UsageRecord:
        """
        Record that a user spent credits on a study material.

        All steps commit together or not at all.

        Raises:
            ValueError: If credits_used is not a positive integer
            ResourceNotFoundError: If the user or the material does not exist
            InsufficientCreditsError: If the balance does not cover credits_used
        """
        if isinstance(credits_used, bool) or not isinstance(credits_used, int) or credits_used <= 0:
            raise ValueError("credits_used must be a positive integer")

        logger.info(f"Recording usage | user={user_id} | material={material_id} | credits={credits_used}")
        try:
            user = self.db.query(User).filter(User.id == user_id).first()
            if not user:
                raise ResourceNotFoundError("User", user_id)
            if user.credits < credits_used:
                raise InsufficientCreditsError(credits_used, user.credits)

            # Materials of other users are reported as missing
            material = self.db.query(StudyMaterial).filter(
                StudyMaterial.id == material_id,
                StudyMaterial.user_id == user_id,
            ).first()
            if not material:
                raise ResourceNotFoundError("Study material", material_id)

            record = UsageRecord(user_id=user_id, material_id=material_id, credits_used=credits_used)
            self.db.add(record)
            self.db.flush()

            result = self.db.execute(
                update(User)
                .where(User.id == user_id, User.credits >= credits_used)
                .values(credits=User.credits - credits_used)
            )
            if result.rowcount != 1:
                # Balance changed since it was read
                self.db.rollback()
                available = self.db.query(User.credits).filter(User.id == user_id).scalar() or 0
                raise InsufficientCreditsError(credits_used, available)

            self.db.commit()
        except LedgerError as e:
            self.db.rollback()
            logger.warning(f"Usage rejected | user={user_id} | material={material_id} | {e.message}")
            raise
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Usage transaction failed | user={user_id} | material={material_id}", exc_info=True)
            raise

        self.db.refresh(record)
        logger.info(f"Usage recorded | record={record.id} | user={user_id} | credits={credits_used}")
        return record

    def get_balance(self, user_id: int) -> int:
        credits = self.db.query(User.credits).filter(User.id == user_id).scalar()
        if credits is None:
            raise ResourceNotFoundError("User", user_id)
        return credits

    def _filtered(self, user_id: int, material_id: int | None, start: datetime | None, end: datetime | None):
        query = self.db.query(UsageRecord).filter(UsageRecord.user_id == user_id)
        if material_id is not None:
            query = query.filter(UsageRecord.material_id == material_id)
        if start is not None:
            query = query.filter(UsageRecord.created_at >= start)
        if end is not None:
            query = query.filter(UsageRecord.created_at <= end)
        return query

    def list_usage(
        self,
        user_id: int,
        material_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[UsageRecord], int]:
        """Return one page of a user's usage history (newest first) and the total count."""
        query = self._filtered(user_id, material_id, start, end)
        total = query.count()
        records = (
            query.order_by(UsageRecord.created_at.desc(), UsageRecord.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return records, total

    def total_credits_by_user(self, user_id: int) -> int:
        total = self.db.query(func.sum(UsageRecord.credits_used)).filter(UsageRecord.user_id == user_id).scalar()
        return total or 0

    def get_usage_record(self, user_id: int, record_id: int) -> UsageRecord:
        record = self.db.query(UsageRecord).filter(
            UsageRecord.id == record_id,
            UsageRecord.user_id == user_id,
        ).first()
        if not record:
            raise ResourceNotFoundError("Usage record", record_id)
        return record

    def total_credits_by_material(self, material_id: int, user_id: int | None = None) -> int:
        """
        Sum of credits spent on a material.

        With ``user_id`` the material must belong to that user and only their
        spending is counted; otherwise ResourceNotFoundError is raised.
        """
        query = self.db.query(func.sum(UsageRecord.credits_used)).filter(UsageRecord.material_id == material_id)
        if user_id is not None:
            owned = self.db.query(StudyMaterial.id).filter(
                StudyMaterial.id == material_id,
                StudyMaterial.user_id == user_id,
            ).first()
            if not owned:
                raise ResourceNotFoundError("Study material", material_id)
            query = query.filter(UsageRecord.user_id == user_id)
        return query.scalar() or 0

    def usage_stats(self, user_id: int, start: datetime | None = None, end: datetime | None = None) -> dict:
        """Aggregate a user's credit usage over a period, grouped by study mode."""
        query = self._filtered(user_id, None, start, end)

        total_credits = query.with_entities(func.sum(UsageRecord.credits_used)).scalar() or 0
        materials = query.with_entities(func.count(func.distinct(UsageRecord.material_id))).scalar() or 0

        by_mode = (
            query.join(StudyMaterial, StudyMaterial.id == UsageRecord.material_id)
            .with_entities(
                StudyMaterial.mode,
                func.count(UsageRecord.id),
                func.sum(UsageRecord.credits_used),
            )
            .group_by(StudyMaterial.mode)
            .order_by(StudyMaterial.mode)
            .all()
        )

        return {
            "total_credits_used": total_credits,
            "total_materials_accessed": materials,
            "average_credits_per_material": round(total_credits / materials, 2) if materials else 0.0,
            "usage_by_mode": [
                {"mode": mode, "count": count, "total_credits": credits or 0}
                for mode, count, credits in by_mode
            ],
            "remaining_credits": self.get_balance(user_id),
        }
