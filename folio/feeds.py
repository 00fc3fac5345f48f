"""Feed generation for Folio.

This module renders the RSS 2.0 feed of a blog. Following the Single
Responsibility Principle, feed generation is separate from build
orchestration.

Classes:
    FeedGenerator: Abstract base class for feed generators.
    RSSGenerator: Generates the RSS feed of the most recent articles.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from markupsafe import escape

from .utils import format_rfc1123

if TYPE_CHECKING:
    from .build import SiteContext
    from .content import Article

FEED_LIMIT = 20


def cdata(text: str) -> str:
    """Wrap text in a CDATA section.

    A literal ``]]>`` inside the text is split across two sections so it
    cannot terminate the wrapper early.

    Args:
        text: Arbitrary text, markup included.

    Returns:
        CDATA-wrapped text.
    """
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def article_url(site_url: str, slug: str) -> str:
    """Return the public URL of an article page."""
    return f"{site_url.rstrip('/')}/articles/{slug}.html"


class FeedGenerator(ABC):
    """Abstract base class for feed generators.

    Subclasses implement a specific feed format and the filename it is
    written to.
    """

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename for this feed."""
        ...

    @abstractmethod
    def generate(self, articles: Sequence[Article], site: SiteContext) -> str:
        """Generate feed content.

        Args:
            articles: Articles sorted newest first.
            site: Site configuration.

        Returns:
            Feed document as a string.
        """
        ...

    def write(
        self, output_dir: Path, articles: Sequence[Article], site: SiteContext
    ) -> Path:
        """Generate and write the feed to the output directory.

        Returns:
            Path of the written feed.
        """
        output_path = output_dir / self.filename
        output_path.write_text(self.generate(articles, site), encoding="utf-8")
        return output_path


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed for content syndication.

    Only the first ``limit`` articles are included; the caller supplies them
    already sorted newest first.

    Attributes:
        limit: Maximum number of items in the feed.
        clock: Callable returning the build timestamp.
    """

    def __init__(self, limit: int = FEED_LIMIT, clock=None):
        self.limit = limit
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def filename(self) -> str:
        """Return RSS filename."""
        return "rss.xml"

    def render_item(self, article: Article, site: SiteContext) -> str:
        """Render one ``<item>`` element."""
        link = escape(article_url(site.url, article.slug))
        lines = [
            "    <item>",
            f"      <title>{cdata(article.title)}</title>",
            f"      <description>{cdata(article.excerpt)}</description>",
            f"      <link>{link}</link>",
            f"      <guid>{link}</guid>",
        ]
        published = article.published_at
        if published is not None:
            lines.append(f"      <pubDate>{format_rfc1123(published)}</pubDate>")
        lines.append("    </item>")
        return "\n".join(lines)

    def generate(self, articles: Sequence[Article], site: SiteContext) -> str:
        """Generate RSS feed content.

        Args:
            articles: Articles sorted newest first.
            site: Site configuration for channel fields and links.

        Returns:
            RSS XML content.
        """
        items = [self.render_item(article, site) for article in articles[: self.limit]]
        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0">',
            "  <channel>",
            f"    <title>{escape(site.name)}</title>",
            f"    <description>{escape(site.description)}</description>",
            f"    <link>{escape(site.url)}</link>",
            f"    <lastBuildDate>{format_rfc1123(self.clock())}</lastBuildDate>",
            f"    <language>{escape(site.language)}</language>",
        ]
        rss.extend(items)
        rss.append("  </channel>")
        rss.append("</rss>")
        return "\n".join(rss) + "\n"
