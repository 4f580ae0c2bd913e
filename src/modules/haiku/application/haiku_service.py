"""俳句生成服务。

- 调用 OpenAI 兼容的 chat completion 接口（默认指向 Gemini 的兼容端点）
- 按 (lang, headline) 缓存结果
- 输出后处理：去掉代码块标记、空行，最多保留 3 行
- 未配置 / 关闭时抛出 HaikuUnavailableError，调用失败抛出 HaikuGenerationError
"""

import asyncio
import time
from typing import Any

from loguru import logger
from openai import (
    APIConnectionError,
    APIError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)
from openai.types.chat import ChatCompletionMessageParam
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import settings
from src.core.domain.exceptions import ValidationError
from src.core.infrastructure.cache import TTLCache
from src.core.infrastructure.logging import BusinessEvents
from src.modules.haiku.domain.entities import (
    LANG_DISPLAY_NAME,
    MAX_HAIKU_LINES,
    Haiku,
    resolve_lang,
)
from src.modules.haiku.domain.exceptions import (
    HaikuGenerationError,
    HaikuUnavailableError,
)

# 只对临时性错误重试；4xx（鉴权、参数）直接失败
RETRYABLE_LLM_ERRORS = (APIConnectionError, RateLimitError, InternalServerError)


def build_prompt(headline: str, lang_name: str) -> str:
    return (
        "You are a haiku generator.\n"
        "Write exactly one haiku based on the news headline below.\n"
        "Constraints:\n"
        f"- Write in {lang_name}.\n"
        "- Exactly 3 lines (no title).\n"
        "- Aim for the 5-7-5 spirit (do not explain).\n"
        "- No extra text, no quotes, no hashtags, no code fences.\n"
        "- Calm, evocative tone.\n"
        "\n"
        f"Headline: {headline}"
    )


def clean_haiku_text(raw: str) -> str:
    """去掉代码块标记和空行，最多保留 MAX_HAIKU_LINES 行。"""
    lines = [
        line.strip()
        for line in raw.strip().splitlines()
        if not line.strip().startswith("```")
    ]
    return "\n".join([line for line in lines if line][:MAX_HAIKU_LINES])


class HaikuService:
    """Turns one headline into a haiku through an LLM."""

    def __init__(
        self,
        openai_client: AsyncOpenAI | None = None,
        *,
        cache: TTLCache[tuple[str, str], Haiku] | None = None,
        enabled: bool | None = None,
    ):
        self._client = openai_client
        self._owns_client = openai_client is None
        if cache is None:
            cache = TTLCache(settings.HAIKU_CACHE_TTL_SEC, name="haiku-cache")
        self.cache: TTLCache[tuple[str, str], Haiku] = cache
        if enabled is None:
            enabled = settings.llm_configured
        self.enabled = enabled

    @property
    def client(self) -> AsyncOpenAI:
        """获取 OpenAI 客户端（延迟初始化）。"""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.LLM_API_KEY,
                base_url=settings.LLM_API_BASE,
                timeout=settings.HAIKU_TIMEOUT_SEC,
                max_retries=0,
            )
        return self._client

    async def generate(self, headline: str, lang: str | None = None) -> Haiku:
        """Return a haiku for ``headline`` in ``lang`` (cached)."""
        headline = headline.strip()
        if not headline:
            raise ValidationError("headline is required")
        lang_code = resolve_lang(lang)

        started = time.perf_counter()
        cached = self.cache.get((lang_code, headline))
        if cached is not None:
            BusinessEvents.haiku_generated(lang=lang_code, from_cache=True, latency_ms=0)
            return cached

        if not self.enabled:
            BusinessEvents.feature_degraded(feature="haiku", reason="llm_not_configured")
            raise HaikuUnavailableError()

        messages: list[ChatCompletionMessageParam] = [
            {"role": "user", "content": build_prompt(headline, LANG_DISPLAY_NAME[lang_code])}
        ]
        try:
            async with asyncio.timeout(settings.HAIKU_TIMEOUT_SEC):
                raw = await self._call_llm(messages)
        except TimeoutError as e:
            logger.warning(f"Haiku generation timed out after {settings.HAIKU_TIMEOUT_SEC}s")
            raise HaikuGenerationError("Haiku generation timeout") from e
        except APIError as e:
            logger.warning(f"Haiku LLM call failed: {e}")
            raise HaikuGenerationError() from e

        text = clean_haiku_text(raw)
        if not text:
            logger.warning(f"LLM returned no usable haiku lines: {raw!r}")
            raise HaikuGenerationError("Invalid haiku format")

        haiku = Haiku(text=text, lang=lang_code, headline=headline)
        self.cache.set((lang_code, headline), haiku)

        latency_ms = int((time.perf_counter() - started) * 1000)
        BusinessEvents.haiku_generated(
            lang=lang_code, from_cache=False, latency_ms=latency_ms
        )
        return haiku

    @retry(
        retry=retry_if_exception_type(RETRYABLE_LLM_ERRORS),
        stop=stop_after_attempt(settings.HAIKU_MAX_RETRIES + 1),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _call_llm(self, messages: list[ChatCompletionMessageParam]) -> str:
        """调用 LLM API。"""
        response = await self.client.chat.completions.create(
            model=settings.HAIKU_MODEL,
            messages=messages,
            temperature=settings.HAIKU_TEMPERATURE,
            max_tokens=settings.HAIKU_MAX_TOKENS,
        )
        return response.choices[0].message.content or ""

    def stats(self) -> dict[str, Any]:
        return {"haiku_cache": len(self.cache), "enabled": self.enabled}

    def start(self, interval_sec: float | None = None) -> None:
        self.cache.start_sweeper(interval_sec or settings.CACHE_SWEEP_INTERVAL_SEC)

    async def stop(self) -> None:
        await self.cache.stop_sweeper()
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None
