"""Folio static blog generator.

This package builds a static blog from pre-compiled HTML articles. Each article
carries a small frontmatter block, is rendered through Jinja2 templates and
ends up as a page, an entry on the index page and an item in the RSS feed.

The main entry point is the CLI module, which provides commands for scaffolding
new projects, compiling markdown, building the site and running the
development server.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
