"""Source catalog: which upstream sources serve a category/country."""

import re
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

from src.modules.headlines.domain.entities import FeedFormat, FetchMethod, Source

ALLOWED_CATEGORIES: frozenset[str] = frozenset(
    {
        "business",
        "entertainment",
        "general",
        "health",
        "science",
        "sports",
        "technology",
    }
)
DEFAULT_CATEGORY = "general"
DEFAULT_COUNTRY = "US"

# ISO 3166-1 alpha-2 -> 默认语言
COUNTRY_DEFAULT_LANG: dict[str, str] = {
    "US": "en", "GB": "en", "IE": "en", "CA": "en", "AU": "en", "NZ": "en",
    "LT": "lt", "LV": "lv", "EE": "et",
    "PL": "pl", "DE": "de", "FR": "fr", "ES": "es", "IT": "it", "PT": "pt", "NL": "nl",
    "NO": "no", "SE": "sv", "DK": "da", "FI": "fi",
    "CZ": "cs", "SK": "sk", "HU": "hu", "RO": "ro", "BG": "bg", "GR": "el",
    "HR": "hr", "SI": "sl", "RS": "sr",
    "UA": "uk", "TR": "tr",
    "BR": "pt", "MX": "es", "AR": "es", "CL": "es", "CO": "es", "PE": "es",
    "JP": "ja", "KR": "ko", "CN": "zh-CN", "TW": "zh-TW", "HK": "zh-HK",
    "IN": "en", "ZA": "en",
}  # fmt: skip

GOOGLE_TOPIC_BY_CATEGORY: dict[str, str | None] = {
    "business": "BUSINESS",
    "entertainment": "ENTERTAINMENT",
    "health": "HEALTH",
    "science": "SCIENCE",
    "sports": "SPORTS",
    "technology": "TECHNOLOGY",
    "general": None,
}

_COUNTRY_RE = re.compile(r"^[A-Z]{2}$")


def clean_country(code: str | None) -> str:
    value = (code or "").strip().upper()
    return value if _COUNTRY_RE.match(value) else DEFAULT_COUNTRY


def clean_category(category: str | None) -> str:
    value = (category or "").strip().lower()
    return value if value in ALLOWED_CATEGORIES else DEFAULT_CATEGORY


def default_lang_for_country(country: str) -> str:
    return COUNTRY_DEFAULT_LANG.get(country, "en")


@dataclass(frozen=True)
class SourceQuery:
    """一次标题请求对应的源查询键（已清洗）。"""

    category: str
    country: str

    @classmethod
    def create(cls, category: str | None, country: str | None) -> "SourceQuery":
        return cls(category=clean_category(category), country=clean_country(country))

    @property
    def lang(self) -> str:
        return default_lang_for_country(self.country)

    @property
    def key(self) -> str:
        return f"{self.category}:{self.country}"


class SourceCatalog(Protocol):
    """Port: resolve the ordered source list for a query."""

    def sources_for(self, query: SourceQuery) -> list[Source]: ...


def google_news_url(query: SourceQuery) -> str:
    lang = query.lang
    country = query.country
    params = (
        f"hl={quote(f'{lang}-{country}')}"
        f"&gl={quote(country)}"
        f"&ceid={quote(f'{country}:{lang}')}"
    )
    topic = GOOGLE_TOPIC_BY_CATEGORY.get(query.category)
    if topic:
        return f"https://news.google.com/rss/headlines/section/topic/{topic}?{params}"
    return f"https://news.google.com/rss?{params}"


def _rss(url: str) -> FetchMethod:
    return FetchMethod(url=url, format=FeedFormat.RSS)


# 立陶宛本地源（多种抓取方式按顺序尝试）
LITHUANIAN_SOURCES: tuple[Source, ...] = (
    Source(
        name="Delfi.lt",
        methods=(
            _rss("https://www.delfi.lt/rss/feeds/daily.xml"),
            _rss("https://www.delfi.lt/rss/feeds/lithuania.xml"),
        ),
        timeout_sec=5.0,
    ),
    Source(name="15min.lt", methods=(_rss("https://www.15min.lt/rss"),), timeout_sec=5.0),
    Source(name="LRT.lt", methods=(_rss("https://www.lrt.lt/rss/news/news"),), timeout_sec=5.0),
    Source(name="Alfa.lt", methods=(_rss("https://www.alfa.lt/feed/"),), timeout_sec=5.0),
    Source(name="Diena.lt", methods=(_rss("https://www.diena.lt/rss.xml"),), timeout_sec=5.0),
    Source(name="VZ.lt", methods=(_rss("https://www.vz.lt/rss"),), timeout_sec=5.0),
    Source(
        name="Bernardinai.lt",
        methods=(_rss("https://www.bernardinai.lt/feed/"),),
        timeout_sec=5.0,
    ),
)


class BuiltinSourceCatalog:
    """内置源目录：Google News（按国家/语言/主题）+ 全球备用源。"""

    def __init__(self, timeout_sec: float = 7.0):
        self.timeout_sec = timeout_sec

    def sources_for(self, query: SourceQuery) -> list[Source]:
        bbc_url = (
            "https://feeds.bbci.co.uk/sport/rss.xml"
            if query.category == "sports"
            else "https://feeds.bbci.co.uk/news/rss.xml"
        )
        sources = [
            Source(
                name=f"Google News {query.country}",
                methods=(FetchMethod(url=google_news_url(query), format=FeedFormat.AUTO),),
                timeout_sec=self.timeout_sec,
            ),
            Source(name="BBC", methods=(_rss(bbc_url),), timeout_sec=self.timeout_sec),
            Source(
                name="The Guardian",
                methods=(_rss("https://www.theguardian.com/world/rss"),),
                timeout_sec=self.timeout_sec,
            ),
            Source(
                name="Al Jazeera",
                methods=(_rss("https://www.aljazeera.com/xml/rss/all.xml"),),
                timeout_sec=self.timeout_sec,
            ),
        ]
        if query.country == "LT" and query.category == DEFAULT_CATEGORY:
            return [*LITHUANIAN_SOURCES, *sources]
        return sources
