import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from studymate.core.exceptions import InsufficientCreditsError, ResourceNotFoundError


@pytest.fixture()
def ledger(db_session):
    from studymate.services.usage_ledger import UsageLedger
    return UsageLedger(db_session)


@pytest.fixture()
def make_material(db_session):
    """Store an upload with its study material, bypassing generation."""
    from studymate.models.study_material import StudyMaterial
    from studymate.models.upload import Upload

    def _make(user, mode="summary"):
        upload = Upload(user_id=user.id, filename="notes.txt", content_text="Some notes", source_type="txt")
        db_session.add(upload)
        db_session.flush()
        material = StudyMaterial(
            upload_id=upload.id,
            user_id=user.id,
            summary=json.dumps({"title": "Notes"}),
            quiz_json={"title": "Quiz", "questions": []},
            flashcards_json={"title": "Cards", "flashcards": []},
            language="en",
            mode=mode,
        )
        db_session.add(material)
        db_session.commit()
        db_session.refresh(material)
        return material

    return _make


def _balance(db_session, user_id):
    from studymate.models.user import User
    db_session.expire_all()
    return db_session.query(User.credits).filter(User.id == user_id).scalar()


def _record_count(db_session, user_id):
    from studymate.models.usage_record import UsageRecord
    return db_session.query(UsageRecord).filter(UsageRecord.user_id == user_id).count()


# ── record_usage ───────────────────────────────────────────────


def test_spend_then_overspend(ledger, make_user, make_material, db_session):
    user = make_user(credits=5)
    material = make_material(user)

    record = ledger.record_usage(user.id, material.id, 3)

    assert record.id is not None
    assert record.credits_used == 3
    assert record.material_id == material.id
    assert _balance(db_session, user.id) == 2

    with pytest.raises(InsufficientCreditsError) as exc_info:
        ledger.record_usage(user.id, material.id, 3)

    assert exc_info.value.required == 3
    assert exc_info.value.available == 2
    assert _balance(db_session, user.id) == 2
    assert _record_count(db_session, user.id) == 1


def test_spending_the_whole_balance(ledger, make_user, make_material, db_session):
    user = make_user(credits=4)
    material = make_material(user)

    ledger.record_usage(user.id, material.id, 4)

    assert _balance(db_session, user.id) == 0


def test_unknown_user(ledger):
    with pytest.raises(ResourceNotFoundError, match="User not found: 999999"):
        ledger.record_usage(999999, 1, 1)


def test_unknown_material_changes_nothing(ledger, make_user, db_session):
    user = make_user(credits=5)

    with pytest.raises(ResourceNotFoundError) as exc_info:
        ledger.record_usage(user.id, 999999, 1)

    assert exc_info.value.resource == "Study material"
    assert _balance(db_session, user.id) == 5
    assert _record_count(db_session, user.id) == 0


def test_other_users_material_is_not_found(ledger, make_user, make_material, db_session):
    owner = make_user(credits=5)
    spender = make_user(credits=5)
    material = make_material(owner)

    with pytest.raises(ResourceNotFoundError):
        ledger.record_usage(spender.id, material.id, 1)

    assert _balance(db_session, spender.id) == 5


@pytest.mark.parametrize("credits", [0, -1, 1.5, True, "2"])
def test_credits_must_be_a_positive_integer(ledger, credits):
    with pytest.raises(ValueError):
        ledger.record_usage(1, 1, credits)


def test_concurrent_spend_is_detected(ledger, make_user, make_material, db_session):
    """Another session spends between the balance check and the debit."""
    from studymate.db.database import SessionLocal
    from studymate.models.user import User

    user = make_user(credits=5)
    material = make_material(user)
    # This session now holds a stale balance of 5
    assert user.credits == 5

    other = SessionLocal()
    try:
        other.query(User).filter(User.id == user.id).update({User.credits: 1})
        other.commit()
    finally:
        other.close()

    with pytest.raises(InsufficientCreditsError) as exc_info:
        ledger.record_usage(user.id, material.id, 3)

    assert exc_info.value.available == 1
    assert _balance(db_session, user.id) == 1
    assert _record_count(db_session, user.id) == 0


def test_balance_cannot_go_negative_in_the_database(make_user, db_session):
    from studymate.models.user import User

    user = make_user(credits=1)
    with pytest.raises(IntegrityError):
        db_session.query(User).filter(User.id == user.id).update({User.credits: -1})
        db_session.commit()
    db_session.rollback()


def test_new_users_get_the_configured_credits(db_session):
    from studymate.core.config import settings
    from studymate.models.user import User

    user = User(email="fresh_credits@test.com", full_name="Fresh")
    db_session.add(user)
    db_session.commit()

    assert user.credits == settings.default_user_credits


# ── History and stats ──────────────────────────────────────────


def test_history_is_filtered_and_paginated(ledger, make_user, make_material):
    user = make_user(credits=20)
    first = make_material(user)
    second = make_material(user)
    for material_id, credits in [(first.id, 1), (second.id, 2), (first.id, 3)]:
        ledger.record_usage(user.id, material_id, credits)

    records, total = ledger.list_usage(user.id, page=1, limit=2)
    assert total == 3
    assert len(records) == 2
    assert records[0].credits_used == 3  # newest first

    records, total = ledger.list_usage(user.id, material_id=first.id)
    assert total == 2
    assert {r.credits_used for r in records} == {1, 3}

    future = datetime.now(timezone.utc) + timedelta(days=1)
    records, total = ledger.list_usage(user.id, start=future)
    assert total == 0


def test_totals_and_stats(ledger, make_user, make_material):
    user = make_user(credits=20)
    summary_material = make_material(user, mode="summary")
    quiz_material = make_material(user, mode="quiz")
    ledger.record_usage(user.id, summary_material.id, 2)
    ledger.record_usage(user.id, summary_material.id, 4)
    ledger.record_usage(user.id, quiz_material.id, 3)

    assert ledger.total_credits_by_user(user.id) == 9
    assert ledger.total_credits_by_material(summary_material.id) == 6
    assert ledger.total_credits_by_material(999999) == 0

    stats = ledger.usage_stats(user.id)
    assert stats["total_credits_used"] == 9
    assert stats["total_materials_accessed"] == 2
    assert stats["average_credits_per_material"] == 4.5
    assert stats["remaining_credits"] == 11
    assert stats["usage_by_mode"] == [
        {"mode": "quiz", "count": 1, "total_credits": 3},
        {"mode": "summary", "count": 2, "total_credits": 6},
    ]


def test_stats_without_usage(ledger, make_user):
    user = make_user(credits=7)

    stats = ledger.usage_stats(user.id)

    assert stats["total_credits_used"] == 0
    assert stats["average_credits_per_material"] == 0.0
    assert stats["usage_by_mode"] == []
    assert stats["remaining_credits"] == 7


def test_owner_scoped_reads(ledger, make_user, make_material):
    owner = make_user(credits=10)
    stranger = make_user(credits=10)
    material = make_material(owner)
    record = ledger.record_usage(owner.id, material.id, 4)

    assert ledger.get_usage_record(owner.id, record.id).credits_used == 4
    assert ledger.total_credits_by_material(material.id, user_id=owner.id) == 4

    with pytest.raises(ResourceNotFoundError, match="Usage record not found"):
        ledger.get_usage_record(stranger.id, record.id)
    with pytest.raises(ResourceNotFoundError) as exc_info:
        ledger.total_credits_by_material(material.id, user_id=stranger.id)
    assert exc_info.value.resource == "Study material"
