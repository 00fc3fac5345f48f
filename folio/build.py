"""Site building functionality for Folio.

This module contains the build pipeline that turns compiled articles into a
static blog. The steps always run in the same order:

1. reset the output directory;
2. copy static assets;
3. load compiled articles (broken documents are skipped);
4. render one page per article into ``articles/<slug>.html``;
5. render ``index.html`` with the most recent articles;
6. write the RSS feed to ``rss.xml``.

Key names:
- BlogBuilder: Runs the pipeline for one project.
- build_site: Convenience wrapper building a project once.
- load_config: Loads configuration from folio.yaml.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml
from jinja2 import TemplateSyntaxError

from .assets import copy_assets
from .content import Article, ArticleLoader
from .feeds import FeedGenerator, RSSGenerator
from .renderers import default_renderer_registry
from .templates import TemplateNotFoundError, TemplateRenderer
from .utils import ensure_clean_dir

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "folio.yaml"
INDEX_LIMIT = 10
ARTICLES_DIRNAME = "articles"

DEFAULT_CONFIG = {
    "output_dir": "dist",
    "content_dir": "content",
    "templates_dir": "templates",
    "assets_dir": "assets",
    "port": 3002,
    "renderer": "escape",
    "site": {},
}


class BuildError(Exception):
    """Fatal error during site build with file context.

    Attributes:
        source_path: Path to the file or directory that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass(frozen=True)
class SiteContext:
    """Site-wide settings shared by every rendered page and the feed.

    Attributes:
        name: Site name.
        description: Short site description.
        url: Public base URL, without trailing slash.
        author: Default author name.
        language: Feed language code.
    """

    name: str = "My Blog"
    description: str = ""
    url: str = ""
    author: str = ""
    language: str = "en-US"

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> SiteContext:
        """Build a SiteContext from the ``site`` mapping of a config."""
        site = config.get("site") or {}
        if not isinstance(site, dict):
            site = {}
        known = {name for name in cls.__dataclass_fields__}
        values = {key: str(value) for key, value in site.items() if key in known}
        if "url" in values:
            values["url"] = values["url"].rstrip("/")
        return cls(**values)

    def as_context(self) -> dict[str, str]:
        return asdict(self)


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        articles: Articles that were rendered, newest first.
        output_dir: Directory where the site was built.
        written: Every page and feed file written by the build.
    """

    articles: list[Article]
    output_dir: Path
    written: list[Path] = field(default_factory=list)


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration from folio.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    config_path = project_root / CONFIG_FILENAME
    config = DEFAULT_CONFIG.copy()
    config["site"] = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if isinstance(loaded, dict):
            site = loaded.pop("site", None)
            config.update(loaded)
            if isinstance(site, dict):
                config["site"] = site
    return config


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TypeError":
        return f"Type error: {error_msg}"

    return f"{error_type}: {error_msg}"


class BlogBuilder:
    """Builds a Folio project into its output directory.

    One builder can run many builds; the dev server keeps a single instance
    alive and clears its template cache between rebuilds.

    Attributes:
        project_root: Root directory of the project.
        config: Configuration dictionary.
        site: Site settings derived from the config.
        output_dir: Directory receiving the built site.
        content_dir: Directory holding compiled articles.
        assets_dir: Directory of static assets.
        templates: Template renderer.
        feed: Feed generator.
    """

    def __init__(
        self,
        project_root: Path,
        config: dict[str, Any] | None = None,
        templates: TemplateRenderer | None = None,
        feed: FeedGenerator | None = None,
    ):
        self.project_root = project_root
        self.config = config if config is not None else load_config(project_root)
        self.site = SiteContext.from_config(self.config)
        self.output_dir = project_root / self.config.get("output_dir", "dist")
        self.content_dir = project_root / self.config.get("content_dir", "content")
        self.assets_dir = project_root / self.config.get("assets_dir", "assets")
        templates_dir = project_root / self.config.get("templates_dir", "templates")
        self.templates = templates or TemplateRenderer(templates_dir)
        self.feed = feed or RSSGenerator()
        self.markdown_renderer = default_renderer_registry.get(
            self.config.get("renderer", "escape")
        )

    def build(self) -> BuildResult:
        """Run every build step in order.

        Returns:
            BuildResult with the rendered articles and written files.

        Raises:
            BuildError: If the output cannot be written, assets cannot be
                copied or a template is missing or broken.
        """
        logger.info("Building blog...")
        self.clean_output()
        self.copy_assets()
        articles = self.load_articles()
        written = self.generate_article_pages(articles)
        written.append(self.generate_index_page(articles))
        written.append(self.generate_feed(articles))
        logger.info("Build completed: %d article(s)", len(articles))
        return BuildResult(articles=articles, output_dir=self.output_dir, written=written)

    def clean_output(self) -> None:
        try:
            ensure_clean_dir(self.output_dir)
            (self.output_dir / ARTICLES_DIRNAME).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BuildError(
                self.output_dir, f"Cannot reset output directory: {exc}", exc
            ) from exc

    def copy_assets(self) -> None:
        logger.info("Copying assets...")
        try:
            copy_assets(self.assets_dir, self.output_dir)
        except OSError as exc:
            raise BuildError(self.assets_dir, f"Cannot copy assets: {exc}", exc) from exc

    def load_articles(self) -> list[Article]:
        logger.info("Loading articles...")
        return ArticleLoader(self.content_dir, renderer=self.markdown_renderer).load()

    def article_context(self, article: Article) -> dict[str, Any]:
        """Build the render context of an article page."""
        return {
            **self.site.as_context(),
            "article": {
                **article.frontmatter,
                "slug": article.slug,
                "content": article.body,
                "formatted_date": article.formatted_date,
            },
        }

    def index_context(self, articles: Sequence[Article]) -> dict[str, Any]:
        """Build the render context of the index page."""
        recent = [
            {
                **article.frontmatter,
                "slug": article.slug,
                "url": f"{ARTICLES_DIRNAME}/{article.slug}.html",
                "formatted_date": article.formatted_date,
            }
            for article in articles[:INDEX_LIMIT]
        ]
        return {**self.site.as_context(), "articles": recent}

    def generate_article_pages(self, articles: Sequence[Article]) -> list[Path]:
        logger.info("Generating article pages...")
        written = []
        for article in articles:
            html = self._render("article", self.article_context(article))
            target = self.output_dir / ARTICLES_DIRNAME / f"{article.slug}.html"
            self._write(target, html)
            written.append(target)
        return written

    def generate_index_page(self, articles: Sequence[Article]) -> Path:
        logger.info("Generating index page...")
        target = self.output_dir / "index.html"
        self._write(target, self._render("index", self.index_context(articles)))
        return target

    def generate_feed(self, articles: Sequence[Article]) -> Path:
        logger.info("Generating RSS feed...")
        try:
            return self.feed.write(self.output_dir, articles, self.site)
        except OSError as exc:
            target = self.output_dir / self.feed.filename
            raise BuildError(target, f"Cannot write feed: {exc}", exc) from exc

    def _render(self, name: str, context: dict[str, Any]) -> str:
        """Render a template, turning every failure into a BuildError."""
        try:
            return self.templates.render(name, context)
        except TemplateNotFoundError as exc:
            raise BuildError(exc.path, str(exc), exc) from exc
        except TemplateSyntaxError as exc:
            source = self.templates.templates_dir / f"{name}.html"
            raise BuildError(
                source,
                f"Template syntax error on line {exc.lineno}: {exc.message}",
                exc,
            ) from exc
        except Exception as exc:
            source = self.templates.templates_dir / f"{name}.html"
            raise BuildError(source, _format_error_message(exc), exc) from exc

    def _write(self, target: Path, text: str) -> None:
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise BuildError(target, f"Cannot write output: {exc}", exc) from exc


def build_site(project_root: Path, config: dict[str, Any] | None = None) -> BuildResult:
    """Build the entire static site once.

    Args:
        project_root: Root directory of the project.
        config: Optional configuration overriding folio.yaml.

    Returns:
        BuildResult describing the build.
    """
    return BlogBuilder(project_root, config=config).build()
