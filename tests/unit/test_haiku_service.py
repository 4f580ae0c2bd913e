"""Tests for HaikuService."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError, AuthenticationError

from src.core.domain.exceptions import ValidationError
from src.core.infrastructure.cache import TTLCache
from src.modules.haiku.application.haiku_service import HaikuService, clean_haiku_text
from src.modules.haiku.domain.entities import resolve_lang
from src.modules.haiku.domain.exceptions import (
    HaikuGenerationError,
    HaikuUnavailableError,
)
from tests.conftest import FakeClock, chat_completion

pytestmark = pytest.mark.anyio

_REQUEST = httpx.Request("POST", "https://llm.test/v1/chat/completions")


def _service(client: MagicMock, clock: FakeClock | None = None) -> HaikuService:
    cache = TTLCache(1800, name="test-haiku", clock=clock) if clock else None
    return HaikuService(client, cache=cache, enabled=True)


async def test_generate_returns_three_lines(mock_openai_client: MagicMock) -> None:
    haiku = await _service(mock_openai_client).generate("Rivers rise in spring", "en")

    assert len(haiku.lines) == 3
    assert haiku.lang == "en"
    assert haiku.headline == "Rivers rise in spring"


async def test_prompt_names_target_language(mock_openai_client: MagicMock) -> None:
    await _service(mock_openai_client).generate("Sniegas Vilniuje", "lt")

    kwargs = mock_openai_client.chat.completions.create.await_args.kwargs
    prompt = kwargs["messages"][0]["content"]
    assert "Write in Lithuanian." in prompt
    assert "Headline: Sniegas Vilniuje" in prompt


async def test_result_is_cached_per_language(mock_openai_client: MagicMock) -> None:
    service = _service(mock_openai_client)

    first = await service.generate("Same headline", "en")
    second = await service.generate("Same headline", "en")
    await service.generate("Same headline", "de")

    assert first == second
    assert mock_openai_client.chat.completions.create.await_count == 2


async def test_cache_expires(mock_openai_client: MagicMock, clock: FakeClock) -> None:
    service = _service(mock_openai_client, clock)

    await service.generate("Headline", "en")
    clock.advance(1800)
    await service.generate("Headline", "en")

    assert mock_openai_client.chat.completions.create.await_count == 2


async def test_output_is_cleaned_and_truncated(mock_openai_client: MagicMock) -> None:
    mock_openai_client.chat.completions.create.return_value = chat_completion(
        "```\n  line one \n\nline two\nline three\nline four\n```"
    )

    haiku = await _service(mock_openai_client).generate("Headline", "en")

    assert haiku.text == "line one\nline two\nline three"


async def test_empty_output_is_generation_error(mock_openai_client: MagicMock) -> None:
    mock_openai_client.chat.completions.create.return_value = chat_completion("```\n```")

    with pytest.raises(HaikuGenerationError):
        await _service(mock_openai_client).generate("Headline", "en")


async def test_transient_error_is_retried(mock_openai_client: MagicMock) -> None:
    mock_openai_client.chat.completions.create.side_effect = [
        APIConnectionError(request=_REQUEST),
        chat_completion("a\nb\nc"),
    ]

    haiku = await _service(mock_openai_client).generate("Headline", "en")

    assert haiku.text == "a\nb\nc"


async def test_auth_error_is_not_retried(mock_openai_client: MagicMock) -> None:
    mock_openai_client.chat.completions.create = AsyncMock(
        side_effect=AuthenticationError(
            "bad key", response=httpx.Response(401, request=_REQUEST), body=None
        )
    )

    with pytest.raises(HaikuGenerationError):
        await _service(mock_openai_client).generate("Headline", "en")

    assert mock_openai_client.chat.completions.create.await_count == 1


async def test_disabled_service_is_unavailable(mock_openai_client: MagicMock) -> None:
    service = HaikuService(mock_openai_client, enabled=False)

    with pytest.raises(HaikuUnavailableError):
        await service.generate("Headline", "en")

    mock_openai_client.chat.completions.create.assert_not_awaited()


async def test_blank_headline_rejected(mock_openai_client: MagicMock) -> None:
    with pytest.raises(ValidationError):
        await _service(mock_openai_client).generate("   ", "en")


@pytest.mark.parametrize(
    ("lang", "expected"),
    [("auto", "en"), (None, "en"), ("xx", "en"), ("lt", "lt"), ("zh-TW", "zh-TW")],
)
def test_resolve_lang(lang: str | None, expected: str) -> None:
    assert resolve_lang(lang) == expected


def test_clean_haiku_text_keeps_short_output() -> None:
    assert clean_haiku_text("one line only") == "one line only"
