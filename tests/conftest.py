import importlib
import os
import sys
import uuid

import pytest
from fastapi.testclient import TestClient

from studymate.schemas.study import (
    Flashcard,
    FlashcardSetArtifact,
    QuizArtifact,
    QuizQuestion,
    SummaryArtifact,
    SummaryPoint,
)

FIXED_TIMESTAMP = "2026-01-01T00:00:00+00:00"


class FakeGenerator:
    """Deterministic stand-in for the Claude-backed generator.

    ``fail(kind, times)`` makes the first ``times`` calls of an artifact raise;
    ``times=None`` makes every call raise.
    """

    def __init__(self):
        self.calls = {"summary": 0, "quiz": 0, "flashcards": 0}
        self.failures: dict[str, int | None] = {}
        self.payloads = []

    def fail(self, kind: str, times: int | None = None) -> None:
        self.failures[kind] = times

    def _call(self, kind: str, payload) -> str:
        self.calls[kind] += 1
        self.payloads.append(payload)
        if kind in self.failures:
            times = self.failures[kind]
            if times is None or self.calls[kind] <= times:
                raise RuntimeError(f"{kind} backend unavailable")
        return f"{payload.text[:40]} [{len(payload.chunks)} sections]"

    async def generate_summary(self, payload, detail_level="intermediate", temperature=0.3):
        title = self._call("summary", payload)
        return SummaryArtifact(
            title=title,
            executive_summary=f"A {detail_level} overview of the uploaded material and its central ideas.",
            key_topics=["Photosynthesis", "Chlorophyll"],
            main_points=[SummaryPoint(topic="Light", description="Plants turn light into chemical energy.")],
            conclusion="Plants feed the food chain.",
            model="fake-model",
            timestamp=FIXED_TIMESTAMP,
            source=payload.source,
        )

    async def generate_quiz(self, payload, num_questions=5, temperature=0.3):
        title = self._call("quiz", payload)
        return QuizArtifact(
            title=title,
            questions=[
                QuizQuestion(
                    question=f"Question number {i + 1} about the material?",
                    options=["Option A", "Option B", "Option C", "Option D"],
                    correct_option=i % 4,
                    explanation="Stated in the text.",
                )
                for i in range(num_questions)
            ],
            model="fake-model",
            timestamp=FIXED_TIMESTAMP,
            source=payload.source,
        )

    async def generate_flashcards(self, payload, num_cards=10, temperature=0.3):
        title = self._call("flashcards", payload)
        return FlashcardSetArtifact(
            title=title,
            flashcards=[
                Flashcard(front=f"Term number {i + 1}", back=f"Definition number {i + 1}", difficulty="easy")
                for i in range(num_cards)
            ],
            model="fake-model",
            timestamp=FIXED_TIMESTAMP,
            source=payload.source,
        )


class RecordingSleep:
    """Async sleep replacement that returns immediately and remembers delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(scope="session")
def test_db_url(tmp_path_factory):
    db_path = tmp_path_factory.mktemp("db") / "test_studymate.db"
    return f"sqlite:///{db_path}"


@pytest.fixture(scope="session")
def app(test_db_url):
    os.environ["DATABASE_URL"] = test_db_url
    os.environ["LOG_TO_FILE"] = "false"

    import studymate.core.config as config
    importlib.reload(config)

    # Anything bound to the models must be re-imported against the test database
    for module_name in list(sys.modules):
        if module_name.startswith(("studymate.models", "studymate.services", "studymate.api")):
            del sys.modules[module_name]

    import studymate.db.database as database
    importlib.reload(database)

    import studymate.models
    importlib.reload(studymate.models)

    import main as main_module
    importlib.reload(main_module)

    app_instance = main_module.app
    app_instance.router.on_startup.clear()
    app_instance.router.on_shutdown.clear()

    database.init_db()
    return app_instance


@pytest.fixture()
def db_session(app):
    from studymate.db.database import SessionLocal
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def make_user(db_session):
    """Create a user with the given credit balance."""
    from studymate.models.user import User

    def _make(credits: int = 10, is_active: bool = True):
        user = User(
            email=f"user_{uuid.uuid4().hex[:12]}@test.com",
            full_name="Test User",
            credits=credits,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def auth_headers():
    from studymate.core.security import create_access_token

    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}

    return _headers


@pytest.fixture()
def fake_generator():
    return FakeGenerator()


@pytest.fixture()
def no_sleep():
    return RecordingSleep()


@pytest.fixture()
def orchestrator(fake_generator, no_sleep):
    from studymate.services.generation import GenerationOrchestrator
    from studymate.services.retry import RetryPolicy
    return GenerationOrchestrator(fake_generator, RetryPolicy(max_attempts=3, base_delay=1.0, sleep=no_sleep))


@pytest.fixture()
def override_generation(app, orchestrator):
    """Route the API's generation through the fake generator."""
    from studymate.api.deps import get_orchestrator
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield orchestrator
    app.dependency_overrides.pop(get_orchestrator, None)
