"""标题归一化。

把 RSS / Atom / HTML 三种原始条目转换为统一的 Headline：
- 标题：优先纯字符串，其次嵌套文本；去 HTML、合并空白、去掉媒体前缀和已知媒体后缀
- 链接：优先单个字符串；Atom 链接数组优先 rel="alternate"；最后回退到 guid / id
- 聚合器跳转链接替换为真实目标
- 无标题条目丢弃；非绝对链接替换为占位符
- is_usable_headline: 过滤不适合作为俳句输入的标题（由引擎在归一化之后调用）

纯函数，无 I/O、无共享状态。
"""

import html
import re
from collections.abc import Iterable, Sequence
from urllib.parse import parse_qs, urljoin, urlparse

from src.modules.headlines.domain.entities import PLACEHOLDER_URL, Headline
from src.modules.headlines.domain.feeds import (
    AtomEntry,
    FeedLink,
    HtmlItem,
    RawFeedItem,
    RssItem,
    TextContent,
)

KNOWN_OUTLETS: tuple[str, ...] = (
    "BBC News",
    "BBC Sport",
    "BBC",
    "Reuters",
    "The Guardian",
    "NPR",
    "AP News",
    "AP",
    "Al Jazeera",
    "CNN",
    "The New York Times",
    "Bloomberg",
    "LRT",
    "Delfi",
    "15min",
)

# 聚合器主机 -> 携带真实目标地址的查询参数
REDIRECT_PARAMS: tuple[tuple[str, str], ...] = (
    ("news.google.", "url"),
    ("www.google.", "url"),
    ("www.google.", "q"),
)

_TAG_RE = re.compile(r"<[^>]+>")
_MEDIA_PREFIX_RE = re.compile(
    r"^(?:VIDEO|FOTO|PHOTOS?|LIVE|WATCH|TIESIOGIAI|TIESIOGINĖ TRANSLIACIJA)\s*:\s*",
    re.IGNORECASE,
)


def _outlet_suffix_re(outlets: Iterable[str]) -> re.Pattern[str]:
    """只匹配标题末尾的 " - Outlet" / " | Outlet"，分隔符两侧必须有空白。"""
    names = "|".join(
        re.escape(o) for o in sorted(set(outlets), key=len, reverse=True) if o
    )
    return re.compile(rf"\s+[-–—|]\s+(?:{names})\s*$", re.IGNORECASE)


_OUTLET_SUFFIX_RE = _outlet_suffix_re(KNOWN_OUTLETS)

# 末尾计数，如 "(12 nuotraukų)"
_COUNTER_SUFFIX_RE = re.compile(r"\s*\(\d+[^()]*\)\s*$")

# 个别源在标题前加自己的名字
SOURCE_PREFIXES: dict[str, re.Pattern[str]] = {
    "VZ.lt": re.compile(r"^VŽ:?\s+"),
    "LRT.lt": re.compile(r"^LRT:?\s+"),
    "Bernardinai.lt": re.compile(r"^Bernardinai\.lt:\s+"),
}

MIN_TITLE_LENGTH = 10
MAX_TITLE_LENGTH = 200
MIN_TITLE_WORDS = 3
_UNUSABLE_MARKERS = ("...", "…", "\"", "„")


def extract_text(value: str | TextContent | None) -> str:
    if value is None:
        return ""
    if isinstance(value, TextContent):
        return value.value or ""
    return value


def clean_title(raw: str | TextContent | None, provider_name: str | None = None) -> str:
    """清理标题文本。"""
    text = html.unescape(_TAG_RE.sub("", extract_text(raw)))
    text = " ".join(text.split())
    text = _MEDIA_PREFIX_RE.sub("", text)
    if provider_name in SOURCE_PREFIXES:
        text = SOURCE_PREFIXES[provider_name].sub("", text)
    text = _OUTLET_SUFFIX_RE.sub("", text)
    if provider_name and provider_name not in KNOWN_OUTLETS:
        text = _outlet_suffix_re([provider_name]).sub("", text)
    text = _COUNTER_SUFFIX_RE.sub("", text)
    return text.strip()


def is_usable_headline(title: str) -> bool:
    """适合转写成俳句的标题：长度适中、至少三个词、不是问句 / 感叹句、
    不以数字开头、不含省略号和引号。
    """
    return (
        MIN_TITLE_LENGTH < len(title) < MAX_TITLE_LENGTH
        and len(title.split()) >= MIN_TITLE_WORDS
        and not any(marker in title for marker in _UNUSABLE_MARKERS)
        and not title[:1].isdigit()
        and not title.endswith(("?", "!"))
    )


def _pick_atom_link(links: Sequence[FeedLink]) -> str:
    for link in links:
        rel = (link.rel or "alternate").lower()
        if rel == "alternate" and link.href:
            return link.href
    for link in links:
        if link.href:
            return link.href
    return ""


def extract_link(item: RawFeedItem) -> str:
    if isinstance(item, RssItem):
        return (item.link or "").strip() or (item.guid or "").strip()
    if isinstance(item, AtomEntry):
        return _pick_atom_link(item.links).strip() or (item.id or "").strip()
    if isinstance(item, HtmlItem):
        href = (item.href or "").strip()
        if href and item.base_url:
            return urljoin(item.base_url, href)
        return href
    raise TypeError(f"Unsupported feed item: {type(item).__name__}")


def resolve_redirect(url: str) -> str:
    """聚合器跳转链接 -> 真实目标。"""
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    host = (parsed.hostname or "").lower()
    if not host:
        return url
    query = parse_qs(parsed.query)
    for host_marker, param in REDIRECT_PARAMS:
        if host_marker in f"{host}.":
            target = (query.get(param) or [""])[0]
            if target.startswith(("http://", "https://")):
                return target
    return url


def to_absolute_url(url: str) -> str:
    if not url:
        return PLACEHOLDER_URL
    try:
        parsed = urlparse(url)
    except ValueError:
        return PLACEHOLDER_URL
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return url
    return PLACEHOLDER_URL


def normalize(
    raw_items: RawFeedItem | Sequence[RawFeedItem] | None,
    provider_name: str,
) -> list[Headline]:
    """把一个或多个原始条目转换为 Headline 列表（保持原顺序）。"""
    if raw_items is None:
        return []
    if isinstance(raw_items, RssItem | AtomEntry | HtmlItem):
        raw_items = [raw_items]

    headlines: list[Headline] = []
    for item in raw_items:
        title = clean_title(item.title, provider_name)
        if not title:
            continue
        url = to_absolute_url(resolve_redirect(extract_link(item)))
        if not url:
            continue
        headlines.append(Headline(title=title, source=provider_name, url=url))
    return headlines


def dedupe_by_title(headlines: Iterable[Headline]) -> list[Headline]:
    """按标题（不区分大小写）去重，保留首次出现。"""
    seen: set[str] = set()
    out: list[Headline] = []
    for headline in headlines:
        key = headline.title.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(headline)
    return out
