"""Draft parsing and generator tests."""
import pytest
from langchain_core.messages import AIMessage

from library_api.core.exceptions import UpstreamError
from library_api.services.ai_service import BookDraftGenerator, parse_book_draft


class StubLLM:
    """Returns a canned reply, or raises, like ChatOpenAI.ainvoke."""

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error

    async def ainvoke(self, messages):
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.content)


def test_parse_fenced_json():
    draft = parse_book_draft(
        '```json\n{"title": "Tide", "author": "R. Moss", "genre": "Mystery", '
        '"publicationYear": 2001, "tags": "sea, storms , ,lighthouse"}\n```'
    )
    assert draft.title == "Tide"
    assert draft.genre == "Mystery"
    assert draft.publication_year == 2001
    assert draft.tags == ["sea", "storms", "lighthouse"]


def test_parse_json_with_surrounding_text():
    draft = parse_book_draft('Here you go: {"title": "Tide", "author": "R. Moss"} Enjoy!')
    assert draft.title == "Tide"
    assert draft.genre == "Other"


def test_unknown_genre_becomes_other():
    draft = parse_book_draft('{"title": "Tide", "author": "R. Moss", "genre": "Space Opera"}')
    assert draft.genre == "Other"


@pytest.mark.parametrize(
    "content",
    [
        "no json here",
        "{not valid json}",
        '["a", "list"]',
        '{"author": "R. Moss"}',
        None,
    ],
)
def test_malformed_reply_is_upstream_error(content):
    with pytest.raises(UpstreamError):
        parse_book_draft(content)


@pytest.mark.asyncio
async def test_generator_returns_draft():
    generator = BookDraftGenerator(StubLLM(content='{"title": "Tide", "author": "R. Moss"}'))
    draft = await generator.generate("storms at sea")
    assert draft.title == "Tide"


@pytest.mark.asyncio
async def test_generator_wraps_transport_errors():
    generator = BookDraftGenerator(StubLLM(error=TimeoutError("timed out")))
    with pytest.raises(UpstreamError) as exc_info:
        await generator.generate("storms at sea")
    assert exc_info.value.status_code == 502
