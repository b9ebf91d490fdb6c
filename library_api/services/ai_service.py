"""Book draft generation through an OpenAI chat model."""
import json
import re
from typing import Any

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import ValidationError as PydanticValidationError

from library_api.config import settings
from library_api.core.exceptions import UpstreamError
from library_api.core.langfuse_client import observe
from library_api.core.logging import format_fields, get_logger
from library_api.models.constraints import GENRES
from library_api.schemas.ai import GeneratedBookDraft

logger = get_logger("services.ai")

SERVICE_NAME = "Book generator"

DRAFT_SYSTEM_PROMPT = f"""You are a creative librarian who invents plausible books.
Answer with a single JSON object and nothing else.
The "genre" value must be one of: {", ".join(sorted(GENRES))}."""

FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


def build_prompt(user_prompt: str) -> str:
    return f"""Based on the user's theme "{user_prompt}", generate fictional details for a new book.

Return a JSON object with these keys:
{{
    "title": "A creative title",
    "author": "A fictional author's name",
    "publicationYear": 2010,  // a realistic year between 1980 and the current year
    "genre": "A suitable genre",
    "description": "A compelling one-paragraph summary",
    "isbn": "A fictional but realistically formatted ISBN-13",
    "pages": 320,  // between 150 and 600
    "publisher": "A fictional publisher name",
    "tags": "3-4 relevant keywords, comma separated"
}}

Do not include any text, backticks or markdown before or after the JSON object."""


def parse_book_draft(content: Any) -> GeneratedBookDraft:
    """Extract and validate the JSON draft from a model reply.

    Raises:
        UpstreamError: if the reply holds no valid draft
    """
    if not isinstance(content, str):
        raise UpstreamError(SERVICE_NAME, "Model returned no text")

    text = FENCE_PATTERN.sub("", content).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Try to extract JSON from response
        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            raise UpstreamError(SERVICE_NAME, "Model reply is not JSON")
        try:
            data = json.loads(text[start:end])
        except json.JSONDecodeError as exc:
            raise UpstreamError(SERVICE_NAME, "Model reply is not JSON") from exc

    if not isinstance(data, dict):
        raise UpstreamError(SERVICE_NAME, "Model reply is not a JSON object")

    try:
        return GeneratedBookDraft.model_validate(data)
    except PydanticValidationError as exc:
        raise UpstreamError(SERVICE_NAME, "Model reply is missing book fields") from exc


class BookDraftGenerator:
    """Turns a short theme into a structured book draft."""

    def __init__(self, llm: ChatOpenAI):
        self.llm = llm

    @observe(name="generate_book_draft")
    async def generate(self, user_prompt: str) -> GeneratedBookDraft:
        try:
            response = await self.llm.ainvoke([
                SystemMessage(content=DRAFT_SYSTEM_PROMPT),
                HumanMessage(content=build_prompt(user_prompt)),
            ])
        except Exception as exc:
            logger.error(f"Generation failed: {format_fields(error=type(exc).__name__)}")
            raise UpstreamError(SERVICE_NAME, "Failed to generate book details") from exc

        draft = parse_book_draft(response.content)
        logger.info(f"Book draft generated: {format_fields(prompt=user_prompt, title=draft.title)}")
        return draft


class UnconfiguredGenerator:
    """Stand-in used when no OpenAI key is configured."""

    async def generate(self, user_prompt: str) -> GeneratedBookDraft:
        raise UpstreamError(SERVICE_NAME, "OpenAI API key is not configured")


def get_book_generator() -> BookDraftGenerator | UnconfiguredGenerator:
    """FastAPI dependency providing the draft generator."""
    if not settings.openai_api_key:
        return UnconfiguredGenerator()
    llm = ChatOpenAI(
        model=settings.openai_model,
        temperature=settings.llm_temperature,
        api_key=settings.openai_api_key,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
    )
    return BookDraftGenerator(llm)
