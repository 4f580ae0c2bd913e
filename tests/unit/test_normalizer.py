"""Tests for headline normalization (titles, links, redirects, dedupe)."""

import pytest

from src.modules.headlines.domain.entities import PLACEHOLDER_URL, Headline
from src.modules.headlines.domain.feeds import (
    AtomEntry,
    FeedLink,
    HtmlItem,
    RssItem,
    TextContent,
)
from src.modules.headlines.domain.normalizer import (
    clean_title,
    dedupe_by_title,
    extract_link,
    is_usable_headline,
    normalize,
    resolve_redirect,
    to_absolute_url,
)


class TestCleanTitle:
    def test_strips_tags_and_collapses_whitespace(self) -> None:
        assert clean_title("  <b>Storm</b>\n  hits   coast ") == "Storm hits coast"

    def test_decodes_entities(self) -> None:
        assert clean_title("Tom &amp; Jerry&#39;s day") == "Tom & Jerry's day"

    def test_removes_media_prefix(self) -> None:
        assert clean_title("VIDEO: Bridge collapses") == "Bridge collapses"
        assert clean_title("Foto : Naujas tiltas") == "Naujas tiltas"

    def test_keeps_word_without_colon(self) -> None:
        assert clean_title("Live music returns to Vilnius") == "Live music returns to Vilnius"

    @pytest.mark.parametrize(
        "raw",
        [
            "Markets rally - BBC News",
            "Markets rally – Reuters",
            "Markets rally | The Guardian",
            "Markets rally — Al Jazeera",
        ],
    )
    def test_removes_known_outlet_suffix(self, raw: str) -> None:
        assert clean_title(raw) == "Markets rally"

    @pytest.mark.parametrize(
        "title",
        [
            "Ex-CNN anchor joins rival network",
            "Trump-BBC row deepens over edited speech",
            "Israel-Al Jazeera ban extended again",
            "Fed holds rates - AP sources say cut is coming",
            "Reuters-Ipsos poll shows tight race",
        ],
    )
    def test_outlet_names_inside_title_are_kept(self, title: str) -> None:
        assert clean_title(title) == title

    def test_removes_trailing_counter(self) -> None:
        assert clean_title("Vilniuje atidarytas naujas tiltas (12 nuotraukų)") == (
            "Vilniuje atidarytas naujas tiltas"
        )

    @pytest.mark.parametrize(
        ("raw", "provider", "expected"),
        [
            ("VŽ: Bankai skolina daugiau", "VZ.lt", "Bankai skolina daugiau"),
            ("VŽ Bankai skolina daugiau", "VZ.lt", "Bankai skolina daugiau"),
            ("LRT: Seimas priėmė biudžetą", "LRT.lt", "Seimas priėmė biudžetą"),
            ("Bernardinai.lt: Apie tylą ir laiką", "Bernardinai.lt", "Apie tylą ir laiką"),
            ("LRT: Seimas priėmė biudžetą", "Delfi.lt", "LRT: Seimas priėmė biudžetą"),
        ],
    )
    def test_removes_source_specific_prefix(self, raw: str, provider: str, expected: str) -> None:
        assert clean_title(raw, provider) == expected

    def test_removes_provider_suffix(self) -> None:
        assert clean_title("Rain again - Kauno diena", "Kauno diena") == "Rain again"

    def test_nested_text_content(self) -> None:
        title = TextContent(value="<em>Big</em> news", content_type="text/html")
        assert clean_title(title) == "Big news"

    def test_missing_title_is_empty(self) -> None:
        assert clean_title(None) == ""

    def test_idempotent(self) -> None:
        once = clean_title("LIVE: <i>Vote</i> &amp; count   - AP News")
        assert clean_title(once) == once


class TestLinks:
    def test_rss_prefers_link_then_guid(self) -> None:
        assert extract_link(RssItem(title="t", link="https://a.test/1", guid="x")) == "https://a.test/1"
        assert extract_link(RssItem(title="t", guid="https://a.test/g")) == "https://a.test/g"

    def test_atom_prefers_alternate(self) -> None:
        entry = AtomEntry(
            title="t",
            links=(
                FeedLink(href="https://a.test/self", rel="self"),
                FeedLink(href="https://a.test/alt", rel="alternate"),
            ),
        )
        assert extract_link(entry) == "https://a.test/alt"

    def test_atom_link_without_rel_counts_as_alternate(self) -> None:
        entry = AtomEntry(
            title="t",
            links=(
                FeedLink(href="https://a.test/enc", rel="enclosure"),
                FeedLink(href="https://a.test/plain"),
            ),
        )
        assert extract_link(entry) == "https://a.test/plain"

    def test_atom_falls_back_to_first_href_then_id(self) -> None:
        entry = AtomEntry(title="t", links=(FeedLink(href="https://a.test/self", rel="self"),))
        assert extract_link(entry) == "https://a.test/self"
        assert extract_link(AtomEntry(title="t", id="https://a.test/id")) == "https://a.test/id"

    def test_html_href_is_joined_with_base(self) -> None:
        item = HtmlItem(title="t", href="/news/1", base_url="https://site.test/list")
        assert extract_link(item) == "https://site.test/news/1"

    def test_google_news_redirect_is_resolved(self) -> None:
        url = "https://news.google.com/articles/abc?url=https%3A%2F%2Fexample.com%2Fstory&hl=en"
        assert resolve_redirect(url) == "https://example.com/story"

    def test_google_redirect_q_param(self) -> None:
        url = "https://www.google.com/url?q=https://example.com/x&sa=U"
        assert resolve_redirect(url) == "https://example.com/x"

    def test_non_redirect_url_unchanged(self) -> None:
        url = "https://news.google.com/rss/articles/CBMi?oc=5"
        assert resolve_redirect(url) == url

    @pytest.mark.parametrize("url", ["", "/relative", "mailto:x@y.z", "javascript:alert(1)"])
    def test_non_absolute_becomes_placeholder(self, url: str) -> None:
        assert to_absolute_url(url) == PLACEHOLDER_URL


class TestNormalize:
    def test_drops_items_without_title(self) -> None:
        items = [
            RssItem(title="  ", link="https://a.test/1"),
            RssItem(title=None, link="https://a.test/2"),
            RssItem(title="Kept", link="https://a.test/3"),
        ]
        headlines = normalize(items, "BBC")

        assert [h.title for h in headlines] == ["Kept"]
        assert headlines[0].source == "BBC"

    def test_item_without_link_gets_placeholder(self) -> None:
        [headline] = normalize(RssItem(title="No link"), "LRT.lt")
        assert headline.url == PLACEHOLDER_URL

    def test_accepts_single_item_and_none(self) -> None:
        assert len(normalize(AtomEntry(title="One"), "X")) == 1
        assert normalize(None, "X") == []

    def test_every_headline_satisfies_invariants(self) -> None:
        items = [
            RssItem(title="<p>A</p>", link="ftp://bad"),
            AtomEntry(title="B - Reuters", links=(FeedLink(href="https://ok.test/b"),)),
            HtmlItem(title="C", href="#top", base_url=None),
        ]
        for headline in normalize(items, "Mixed"):
            assert headline.title.strip()
            assert headline.url == PLACEHOLDER_URL or headline.url.startswith(("http://", "https://"))

    def test_dedupe_is_case_insensitive_and_keeps_first(self) -> None:
        headlines = [
            Headline(title="Same story", source="A"),
            Headline(title="SAME STORY", source="B"),
            Headline(title="Other", source="A"),
        ]
        deduped = dedupe_by_title(headlines)

        assert [(h.title, h.source) for h in deduped] == [("Same story", "A"), ("Other", "A")]


class TestUsableHeadline:
    def test_regular_headline_is_usable(self) -> None:
        assert is_usable_headline("Storm closes coastal roads overnight")

    @pytest.mark.parametrize(
        "title",
        [
            "Too short",
            "Two words",
            "Brexit: latest",
            "x " * 120,
            "Markets slide as investors wait...",
            "Markets slide as investors wait…",
            'Minister says "no deal" on pensions',
            "Ministras: „Sprendimas priimtas“ vakar",
            "10 things to know this week",
            "Will the bridge reopen this year?",
            "Vilnius wins the cup again!",
        ],
    )
    def test_unusable_headlines_are_rejected(self, title: str) -> None:
        assert not is_usable_headline(title)
