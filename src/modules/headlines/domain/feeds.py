"""Raw feed item variants.

Each feed dialect has its own item type; the parser for the dialect is chosen up
front and the normalizer dispatches on the variant instead of sniffing shapes.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TextContent:
    """Text wrapped in a sub-structure (Atom ``type="html"`` titles, CDATA...)."""

    value: str
    content_type: str = "text/plain"


@dataclass(frozen=True)
class FeedLink:
    """Atom ``<link>`` element."""

    href: str
    rel: str | None = None
    type: str | None = None


@dataclass(frozen=True)
class RssItem:
    """RSS 2.0 ``<item>``."""

    title: str | TextContent | None = None
    link: str | None = None
    guid: str | None = None


@dataclass(frozen=True)
class AtomEntry:
    """Atom ``<entry>``."""

    title: str | TextContent | None = None
    links: tuple[FeedLink, ...] = field(default_factory=tuple)
    id: str | None = None


@dataclass(frozen=True)
class HtmlItem:
    """Headline scraped from an HTML list page."""

    title: str | None = None
    href: str | None = None
    base_url: str | None = None


RawFeedItem = RssItem | AtomEntry | HtmlItem
