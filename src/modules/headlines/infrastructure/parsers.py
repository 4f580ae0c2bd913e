"""Feed dialect parsers.

RSS 2.0 / Atom 使用 feedparser，HTML 列表页使用 BeautifulSoup + CSS 选择器。
每种方言各有一个解析函数，输出对应的原始条目类型。
"""

import io
from typing import Any

import feedparser
from bs4 import BeautifulSoup
from loguru import logger

from src.modules.headlines.domain.entities import FeedFormat, HtmlSelectors
from src.modules.headlines.domain.exceptions import FeedParseError
from src.modules.headlines.domain.feeds import (
    AtomEntry,
    FeedLink,
    HtmlItem,
    RawFeedItem,
    RssItem,
    TextContent,
)


def _title_of(entry: Any) -> str | TextContent | None:
    detail = entry.get("title_detail")
    if detail and detail.get("type") not in (None, "text/plain"):
        return TextContent(value=detail.get("value", ""), content_type=detail["type"])
    return entry.get("title")


def _rss_item(entry: Any) -> RssItem:
    return RssItem(
        title=_title_of(entry),
        link=entry.get("link"),
        guid=entry.get("id"),
    )


def _atom_entry(entry: Any) -> AtomEntry:
    links = tuple(
        FeedLink(href=link.get("href", ""), rel=link.get("rel"), type=link.get("type"))
        for link in entry.get("links", [])
    )
    return AtomEntry(title=_title_of(entry), links=links, id=entry.get("id"))


def detect_xml_dialect(version: str) -> FeedFormat | None:
    """feedparser 的 version（rss20 / atom10 ...）-> 方言。"""
    if version.startswith("atom"):
        return FeedFormat.ATOM
    if version.startswith("rss") or version.startswith("cdf"):
        return FeedFormat.RSS
    return None


def parse_xml_feed(content: str) -> list[RawFeedItem]:
    """解析 RSS / Atom 文档。"""
    # 以流的形式传入，避免 feedparser 把 "http..." 开头的内容当作 URL 去请求
    feed = feedparser.parse(io.BytesIO(content.encode("utf-8")))
    dialect = detect_xml_dialect(feed.get("version", ""))

    if dialect is None:
        if feed.get("bozo"):
            raise FeedParseError(
                f"Malformed feed: {feed.get('bozo_exception') or 'unknown error'}"
            )
        raise FeedParseError("Document is neither RSS nor Atom")

    if feed.get("bozo"):
        logger.debug(f"Feed parsed with warnings: {feed.get('bozo_exception')}")

    convert = _atom_entry if dialect is FeedFormat.ATOM else _rss_item
    return [convert(entry) for entry in feed.entries]


def parse_html_list(
    content: str,
    base_url: str,
    selectors: HtmlSelectors | None = None,
) -> list[HtmlItem]:
    """按选择器从 HTML 列表页提取条目。"""
    selectors = selectors or HtmlSelectors()
    soup = BeautifulSoup(content, "html.parser")

    containers = soup.select(selectors.item)
    if not containers:
        raise FeedParseError(f"No elements match selector '{selectors.item}'")

    link_selector = selectors.link or selectors.title or "a"
    title_selector = selectors.title or selectors.link or "a"

    items: list[HtmlItem] = []
    for container in containers:
        link_elem = container.select_one(link_selector)
        title_elem = container.select_one(title_selector)
        href = link_elem.get("href") if link_elem is not None else None
        items.append(
            HtmlItem(
                title=title_elem.get_text(" ", strip=True) if title_elem else None,
                href=href if isinstance(href, str) else None,
                base_url=base_url,
            )
        )
    return items


def parse_feed(
    content: str,
    format: FeedFormat,
    *,
    base_url: str | None = None,
    selectors: HtmlSelectors | None = None,
) -> list[RawFeedItem]:
    """Dispatch to the parser for ``format``."""
    if not content or not content.strip():
        raise FeedParseError("Empty payload")
    if format is FeedFormat.HTML:
        return list(parse_html_list(content, base_url or "", selectors))
    return parse_xml_feed(content)
