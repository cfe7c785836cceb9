"""
AI service for generating study artifacts using Anthropic Claude.
"""
import json
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

import anthropic
from pydantic import BaseModel, ValidationError

from studymate.core.config import settings
from studymate.core.exceptions import ArtifactGenerationError
from studymate.core.logging_config import get_logger
from studymate.schemas.study import (
    DetailLevel,
    FlashcardSetArtifact,
    QuizArtifact,
    SummaryArtifact,
)

logger = get_logger(__name__)

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)

DETAIL_LEVELS: dict[str, str] = {
    "basic": "a concise summary with only the main points",
    "intermediate": "a balanced summary with the important topics and some detail",
    "detailed": "a comprehensive summary with in-depth analysis and examples",
}


@dataclass
class ContentPayload:
    """Normalized content sent to the model."""
    text: str
    image_data_url: str | None = None
    chunks: list[str] = field(default_factory=list)
    document_type: str | None = None  # upload source type (pdf, docx, txt, raw)

    @property
    def source(self) -> str:
        """Label of where the content came from: Text, PDF, Image or Image + PDF."""
        has_pdf = self.document_type == "pdf"
        if self.image_data_url and has_pdf:
            return "Image + PDF"
        if self.image_data_url:
            return "Image"
        if has_pdf:
            return "PDF"
        return "Text"


def get_anthropic_client() -> anthropic.AsyncAnthropic:
    """Get configured Anthropic client."""
    if not settings.anthropic_api_key:
        logger.error("Anthropic API key not configured")
        raise ValueError("ANTHROPIC_API_KEY not configured")
    return anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)


def strip_json_fences(text: str) -> str:
    """Strip markdown code fences (```json ... ```) from AI responses."""
    stripped = re.sub(r"^```(?:json)?\s*\n?", "", text.strip())
    stripped = re.sub(r"\n?```\s*$", "", stripped)
    return stripped.strip()


def parse_json_object(text: str) -> dict:
    """Parse the JSON object in a model response, ignoring surrounding prose."""
    match = re.search(r"\{[\s\S]*\}", strip_json_fences(text))
    if not match:
        raise ValueError("No JSON object found in the response")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


def build_message_content(prompt: str, payload: ContentPayload) -> list[dict]:
    """Build a multimodal user message: optional image block, then the prompt with document sections."""
    text = prompt
    if payload.chunks:
        sections = "\n".join(
            f"\n**Section {index}:**\n{chunk}" for index, chunk in enumerate(payload.chunks, 1)
        )
        text += f"\n\n**Document content:**\n{sections}\n\n---\n"

    content: list[dict] = []
    if payload.image_data_url:
        match = _DATA_URL.match(payload.image_data_url)
        if not match:
            raise ValueError("Image must be a base64 data URL")
        content.append({
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": match.group("mime"),
                "data": match.group("data"),
            },
        })
    content.append({"type": "text", "text": text})
    return content


class StudyContentGenerator:
    """Generates summaries, quizzes and flashcards with Claude."""

    def __init__(
        self,
        client: anthropic.AsyncAnthropic | None = None,
        model: str = settings.claude_model,
        max_tokens: int = settings.generation_max_tokens,
    ):
        self._client = client
        self.model = model
        self.max_tokens = max_tokens

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = get_anthropic_client()
        return self._client

    @property
    def model_tag(self) -> str:
        return f"{self.model} (Anthropic)"

    async def generate_content(
        self,
        prompt: str,
        payload: ContentPayload,
        system_prompt: str = "You are an educational assistant helping students learn effectively.",
        temperature: float = 0.3,
    ) -> str:
        """
        Generate content using the Anthropic Claude API.

        Args:
            prompt: The instruction prompt
            payload: Text, image and document chunks to send along
            system_prompt: The system context for the AI
            temperature: Creativity level (0-1)

        Returns:
            Generated text content
        """
        start_time = time.time()
        logger.info(
            f"Starting AI content generation | model={self.model} | source={payload.source} | "
            f"chunks={len(payload.chunks)}"
        )

        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": build_message_content(prompt, payload)}],
                temperature=temperature,
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(f"AI generation failed | duration={duration_ms:.2f}ms | error={str(e)}")
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"AI generation completed | duration={duration_ms:.2f}ms | "
            f"input_tokens={message.usage.input_tokens} | output_tokens={message.usage.output_tokens}"
        )
        return "".join(block.text for block in message.content if block.type == "text")

    def _build_artifact(self, kind: str, response: str, schema: type[BaseModel], payload: ContentPayload):
        try:
            data = parse_json_object(response)
            data.update(
                model=self.model_tag,
                timestamp=datetime.now(timezone.utc).isoformat(),
                source=payload.source,
            )
            return schema.model_validate(data)
        except (ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            logger.warning(f"Unusable {kind} response | error={str(e)} | response={response[:500]}")
            raise ArtifactGenerationError(kind, str(e)) from e

    async def generate_summary(
        self,
        payload: ContentPayload,
        detail_level: DetailLevel = "intermediate",
        temperature: float = 0.3,
    ) -> SummaryArtifact:
        """Generate a structured summary of the content."""
        logger.info(f"Generating summary | detail_level={detail_level}")
        prompt = f"""Create {DETAIL_LEVELS[detail_level]} of the content below.
Identify the most relevant key topics, organize the main points logically and
end with a conclusion when appropriate.

**Request:**
{payload.text}

Respond ONLY with a JSON object of this shape:
{{
  "title": "Title based on the content",
  "executive_summary": "Overall summary in 2-3 paragraphs",
  "key_topics": ["Topic 1", "Topic 2", "Topic 3"],
  "main_points": [
    {{"topic": "Main topic", "description": "Detailed description of the point"}}
  ],
  "conclusion": "Final synthesis and key takeaways"
}}"""

        system_prompt = """You are an expert in content analysis and academic summaries.
Write clear, well-organized summaries. Always return valid JSON."""

        response = await self.generate_content(prompt, payload, system_prompt, temperature)
        return self._build_artifact("summary", response, SummaryArtifact, payload)

    async def generate_quiz(
        self,
        payload: ContentPayload,
        num_questions: int = 5,
        temperature: float = 0.3,
    ) -> QuizArtifact:
        """Generate a multiple choice quiz from the content."""
        logger.info(f"Generating quiz | num_questions={num_questions}")
        prompt = f"""Create a {num_questions}-question multiple choice quiz about the content below.
Each question must have between 2 and 5 options, a zero-based index of the
correct option and a clear explanation of the answer. Test real understanding,
not memorization.

**Request:**
{payload.text}

Respond ONLY with a JSON object of this shape:
{{
  "title": "Quiz title based on the content",
  "description": "What the quiz covers",
  "questions": [
    {{
      "question": "Clear and objective question?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correct_option": 0,
      "explanation": "Why this option is correct"
    }}
  ]
}}"""

        system_prompt = """You are an expert quiz creator. Make wrong answers plausible but clearly incorrect.
Always return valid JSON."""

        response = await self.generate_content(prompt, payload, system_prompt, temperature)
        return self._build_artifact("quiz", response, QuizArtifact, payload)

    async def generate_flashcards(
        self,
        payload: ContentPayload,
        num_cards: int = 10,
        temperature: float = 0.3,
    ) -> FlashcardSetArtifact:
        """Generate flashcards from the content."""
        logger.info(f"Generating flashcards | num_cards={num_cards}")
        prompt = f"""Create {num_cards} flashcards covering the most important concepts of the content below.
The front holds a question, term or concept and the back its answer or
definition; both must be at least 5 characters long. Group cards by category
when possible.

**Request:**
{payload.text}

Respond ONLY with a JSON object of this shape:
{{
  "title": "Flashcard set title based on the content",
  "description": "What the set covers",
  "flashcards": [
    {{
      "front": "Question or term",
      "back": "Answer or definition",
      "category": "Optional category",
      "difficulty": "easy"
    }}
  ]
}}"""

        system_prompt = """You are an expert at creating effective study flashcards.
Make cards concise but informative. Always return valid JSON."""

        response = await self.generate_content(prompt, payload, system_prompt, temperature)
        return self._build_artifact("flashcards", response, FlashcardSetArtifact, payload)
