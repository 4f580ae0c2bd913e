"""File-backed source catalog.

JSON 格式（两种之一）：

    [ {"name": "BBC", "methods": [{"url": "...", "format": "rss"}], "timeout_sec": 5} ]

    {
        "sports": [ ...sources... ],
        "*": [ ...默认 sources... ]
    }

方法 URL 中可使用 ``{country}`` / ``{lang}`` / ``{category}`` 占位符。
"""

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from src.core.config import settings
from src.modules.headlines.domain.catalog import (
    BuiltinSourceCatalog,
    SourceCatalog,
    SourceQuery,
)
from src.modules.headlines.domain.entities import Source
from src.modules.headlines.domain.exceptions import InvalidSourceCatalogError

FALLBACK_KEY = "*"


class FileSourceCatalog:
    """从 JSON 文件加载的源目录。"""

    def __init__(self, catalog: dict[str, list[dict[str, Any]]], default_timeout_sec: float):
        self._catalog = catalog
        self.default_timeout_sec = default_timeout_sec
        # 提前校验一次，配置错误在启动时暴露
        for category in catalog:
            self._build(catalog[category], SourceQuery.create(category, None))

    @classmethod
    def from_path(cls, path: Path, default_timeout_sec: float) -> "FileSourceCatalog":
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidSourceCatalogError(f"cannot read {path}: {e}") from e
        return cls(cls._parse_payload(payload), default_timeout_sec)

    @staticmethod
    def _parse_payload(payload: Any) -> dict[str, list[dict[str, Any]]]:
        if isinstance(payload, list):
            return {FALLBACK_KEY: payload}
        if isinstance(payload, dict):
            for key, value in payload.items():
                if not isinstance(value, list):
                    raise InvalidSourceCatalogError(
                        f"category '{key}' must map to a list of sources"
                    )
            return {str(k).lower() if k != FALLBACK_KEY else k: v for k, v in payload.items()}
        raise InvalidSourceCatalogError("catalog must be a JSON list or object")

    def _build(self, raw_sources: list[dict[str, Any]], query: SourceQuery) -> list[Source]:
        sources: list[Source] = []
        for raw in raw_sources:
            if not isinstance(raw, dict):
                raise InvalidSourceCatalogError("each source must be a JSON object")
            data = {"timeout_sec": self.default_timeout_sec, **raw}
            data["methods"] = [
                {**m, "url": self._expand(str(m.get("url", "")), query)}
                for m in raw.get("methods", [])
                if isinstance(m, dict)
            ]
            try:
                sources.append(Source.model_validate(data))
            except PydanticValidationError as e:
                raise InvalidSourceCatalogError(
                    f"source '{raw.get('name', '?')}': {e.errors()[0]['msg']}"
                ) from e
        return sources

    @staticmethod
    def _expand(url: str, query: SourceQuery) -> str:
        return (
            url.replace("{country}", query.country)
            .replace("{lang}", query.lang)
            .replace("{category}", query.category)
        )

    def sources_for(self, query: SourceQuery) -> list[Source]:
        raw = self._catalog.get(query.category) or self._catalog.get(FALLBACK_KEY) or []
        return self._build(raw, query)


def load_source_catalog(path: Path | None = None) -> SourceCatalog:
    """配置了 SOURCES_FILE 时使用文件目录，否则使用内置目录。"""
    path = path or settings.SOURCES_FILE
    if path is None:
        return BuiltinSourceCatalog(timeout_sec=settings.FETCH_TIMEOUT_SEC)
    logger.info(f"Loading source catalog from {path}")
    return FileSourceCatalog.from_path(path, settings.FETCH_TIMEOUT_SEC)
