"""Content loading for Folio.

This module reads compiled article documents and turns them into Article
objects. A compiled document looks like::

    ---
    title: Hello
    date: 2024-01-01
    ---
    <!-- CONTENT_START -->
    <p>Hi</p>

Key classes:
- Article: Dataclass for one compiled article.
- ArticleLoader: Loads every compiled article from the content directory.

Key functions:
- parse_frontmatter: Parse ``key: value`` lines into a string mapping.
- parse_compiled_article: Split a compiled document into an Article.
- serialize_compiled_article: Inverse of parse_compiled_article.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path

from .renderers import EscapingRenderer
from .utils import format_date, parse_date

logger = logging.getLogger(__name__)

FRONTMATTER_DELIMITER = "---"
CONTENT_START_MARKER = "<!-- CONTENT_START -->"
COMPILED_SUFFIX = ".html"

FIELD_RE = re.compile(r"^(\w+):\s*(.+)$")
SLUG_SUFFIX_RE = re.compile(r"\.(html|md)$")

# Articles without a usable date sort after every dated article.
OLDEST = datetime.min.replace(tzinfo=timezone.utc)

SAMPLE_FILENAME = "welcome.html"
SAMPLE_MARKDOWN = """# Welcome to Your New Blog

Congratulations! Your blog is up and running.

Articles are written in markdown, compiled into HTML documents with a small
frontmatter header, and then rendered through the templates in `templates/`.

## Next steps

- Edit `folio.yaml` to set the site name and URL
- Run `folio md` to start a new article
- Run `folio compile` and `folio build` to publish it

Happy blogging!
"""


class ArticleFormatError(ValueError):
    """Raised when a compiled document does not follow the expected layout.

    Attributes:
        filename: Name of the offending document.
    """

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Invalid compiled article format: {filename}")


@dataclass
class Article:
    """A compiled article ready for rendering.

    Attributes:
        slug: Identifier derived from the source filename.
        frontmatter: Flat string mapping from the document header.
        body: HTML fragment, embedded into pages without escaping.
        path: Source document, when loaded from disk.
    """

    slug: str
    frontmatter: dict[str, str] = field(default_factory=dict)
    body: str = ""
    path: Path | None = None

    @property
    def title(self) -> str:
        return self.frontmatter.get("title", "")

    @property
    def date(self) -> str:
        return self.frontmatter.get("date", "")

    @property
    def status(self) -> str:
        return self.frontmatter.get("status", "")

    @property
    def excerpt(self) -> str:
        return self.frontmatter.get("excerpt", "")

    @property
    def published_at(self) -> datetime | None:
        """Parsed ``date`` field, or None if it cannot be interpreted."""
        return parse_date(self.date)

    @property
    def formatted_date(self) -> str:
        return format_date(self.date)


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _is_delimiter(line: str) -> bool:
    return line.rstrip("\r") == FRONTMATTER_DELIMITER


def parse_frontmatter(text: str) -> dict[str, str]:
    """Parse a frontmatter block into a mapping.

    Lines that do not look like ``key: value`` are skipped. One layer of
    matching quotes around a value is removed; nothing else is interpreted,
    so numbers and booleans stay strings.

    Args:
        text: Frontmatter lines without the delimiters.

    Returns:
        Dictionary of frontmatter keys to string values.
    """
    frontmatter: dict[str, str] = {}
    for line in text.split("\n"):
        match = FIELD_RE.match(line.rstrip())
        if match:
            key, value = match.groups()
            frontmatter[key] = _strip_quotes(value)
    return frontmatter


def slug_from_filename(filename: str) -> str:
    return SLUG_SUFFIX_RE.sub("", filename)


def parse_compiled_article(text: str, filename: str) -> Article:
    """Split a compiled document into frontmatter and body.

    Args:
        text: Full document text.
        filename: Document name, used for the slug and error messages.

    Returns:
        Article with parsed frontmatter and the verbatim HTML body.

    Raises:
        ArticleFormatError: If the opening delimiter, the closing delimiter or
            the content marker is missing.
    """
    lines = text.split("\n")
    if not lines or not _is_delimiter(lines[0]):
        raise ArticleFormatError(filename)

    frontmatter_end = next(
        (i for i in range(1, len(lines)) if _is_delimiter(lines[i])), None
    )
    if frontmatter_end is None:
        raise ArticleFormatError(filename)

    content_start = next(
        (
            i + 1
            for i in range(frontmatter_end + 1, len(lines))
            if CONTENT_START_MARKER in lines[i]
        ),
        None,
    )
    if content_start is None:
        raise ArticleFormatError(filename)

    frontmatter = parse_frontmatter("\n".join(lines[1:frontmatter_end]))
    body = "\n".join(lines[content_start:])
    return Article(
        slug=slug_from_filename(filename),
        frontmatter=frontmatter,
        body=body,
    )


def serialize_compiled_article(frontmatter: Mapping[str, str], body: str) -> str:
    """Build a compiled document from frontmatter and an HTML body.

    Args:
        frontmatter: String mapping written as ``key: value`` lines.
        body: HTML fragment placed after the content marker.

    Returns:
        Document text accepted by parse_compiled_article.
    """
    lines = [FRONTMATTER_DELIMITER]
    lines.extend(f"{key}: {value}" for key, value in frontmatter.items())
    lines.append(FRONTMATTER_DELIMITER)
    lines.append(CONTENT_START_MARKER)
    lines.append(body)
    return "\n".join(lines)


def sort_articles(articles: Iterable[Article]) -> list[Article]:
    """Return articles newest first; undated articles go last in input order."""
    return sorted(
        articles,
        key=lambda article: article.published_at or OLDEST,
        reverse=True,
    )


class ArticleLoader:
    """Loads compiled articles from a content directory.

    Only ``*.html`` entries are read. A document that cannot be read or
    parsed is logged and skipped, so one broken file never stops a build.

    Attributes:
        content_dir: Directory holding compiled documents.
        renderer: Markdown renderer used for the seeded sample article.
    """

    def __init__(self, content_dir: Path, renderer=None):
        """Initialize the loader.

        Args:
            content_dir: Directory holding compiled documents.
            renderer: Optional markdown renderer for the seeded sample.
        """
        self.content_dir = content_dir
        self.renderer = renderer or EscapingRenderer()

    def load(self) -> list[Article]:
        """Load, parse and sort every compiled article.

        Returns:
            Articles sorted newest first. Empty when the content directory
            cannot be read.
        """
        try:
            if not self.content_dir.exists():
                logger.info(
                    "No content directory at %s; creating a sample article",
                    self.content_dir,
                )
                self.seed_sample()
            entries = sorted(self.content_dir.iterdir())
        except OSError as exc:
            logger.warning("Error loading articles from %s: %s", self.content_dir, exc)
            return []

        articles: list[Article] = []
        for path in entries:
            if not path.name.endswith(COMPILED_SUFFIX):
                continue
            try:
                articles.append(self.load_file(path))
            except (ArticleFormatError, OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed to process %s: %s", path.name, exc)
        return sort_articles(articles)

    def load_file(self, path: Path) -> Article:
        """Read and parse a single compiled document.

        Args:
            path: Path to the document.

        Returns:
            Parsed Article with ``path`` set.
        """
        text = path.read_text(encoding="utf-8")
        article = parse_compiled_article(text, path.name)
        article.path = path
        return article

    def seed_sample(self) -> Path:
        """Create the content directory with one compiled example article.

        Returns:
            Path of the sample document.
        """
        self.content_dir.mkdir(parents=True, exist_ok=True)
        target = self.content_dir / SAMPLE_FILENAME
        if not target.exists():
            frontmatter = {
                "title": "Welcome to Your New Blog",
                "date": date.today().isoformat(),
                "status": "published",
                "excerpt": "Welcome to your new blog! This is your first article.",
            }
            body = self.renderer.render(SAMPLE_MARKDOWN)
            target.write_text(
                serialize_compiled_article(frontmatter, body), encoding="utf-8"
            )
        return target
