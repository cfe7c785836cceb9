"""
Generation orchestrator: produces the summary, quiz and flashcards for one
content payload.

The three artifact calls run concurrently, each wrapped in its own retry
budget. All three are awaited to completion; if any of them exhausted its
retries the whole step fails with :class:`GenerationFailedError` and no
partial result is returned.
"""

import asyncio
import time
from typing import Protocol

from studymate.core.exceptions import GenerationFailedError
from studymate.core.logging_config import get_logger
from studymate.schemas.study import (
    FlashcardSetArtifact,
    GeneratedContent,
    GenerationParams,
    QuizArtifact,
    SummaryArtifact,
)
from studymate.services.ai_service import ContentPayload
from studymate.services.retry import RetryPolicy

logger = get_logger(__name__)


class ContentGenerator(Protocol):
    async def generate_summary(self, payload: ContentPayload, detail_level: str = ..., temperature: float = ...) -> SummaryArtifact: ...

    async def generate_quiz(self, payload: ContentPayload, num_questions: int = ..., temperature: float = ...) -> QuizArtifact: ...

    async def generate_flashcards(self, payload: ContentPayload, num_cards: int = ..., temperature: float = ...) -> FlashcardSetArtifact: ...


class GenerationOrchestrator:
    def __init__(self, generator: ContentGenerator, retry_policy: RetryPolicy | None = None):
        self.generator = generator
        self.retry_policy = retry_policy or RetryPolicy()

    async def generate_all(
        self,
        payload: ContentPayload,
        params: GenerationParams | None = None,
    ) -> GeneratedContent:
        """
        Generate all three artifacts concurrently.

        Raises:
            GenerationFailedError: If any artifact failed on every attempt. The
                first failure in summary, quiz, flashcards order is chained as
                the cause.
        """
        params = params or GenerationParams()
        start_time = time.time()

        calls = {
            "summary": lambda: self.generator.generate_summary(
                payload, detail_level=params.detail_level, temperature=params.temperature
            ),
            "quiz": lambda: self.generator.generate_quiz(
                payload, num_questions=params.num_questions, temperature=params.temperature
            ),
            "flashcards": lambda: self.generator.generate_flashcards(
                payload, num_cards=params.num_cards, temperature=params.temperature
            ),
        }

        results = await asyncio.gather(
            *(self.retry_policy.run(call, label=f"{kind} generation") for kind, call in calls.items()),
            return_exceptions=True,
        )
        outcomes = dict(zip(calls, results))

        failures = {kind: result for kind, result in outcomes.items() if isinstance(result, BaseException)}
        duration_ms = (time.time() - start_time) * 1000
        if failures:
            logger.error(
                f"Study content generation failed | duration={duration_ms:.2f}ms | failed={', '.join(failures)}"
            )
            raise GenerationFailedError(failures) from next(iter(failures.values()))

        logger.info(f"Study content generated | duration={duration_ms:.2f}ms")
        return GeneratedContent(**outcomes)
