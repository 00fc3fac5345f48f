"""Template rendering for Folio.

This module uses Jinja2 to render the page, index and partial templates of a
Folio project. Templates are plain files in the project's ``templates``
directory; partials live in ``templates/partials`` and are included by name::

    {% include "header" %}
    <h1>{{ article.title }}</h1>
    {{ article.content|safe }}

Values are HTML-escaped unless marked ``|safe``. Anything missing from the
context renders as an empty string, and so does an include of a partial that
does not exist.

Key class:
- TemplateRenderer: Loads, caches and renders templates.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jinja2 import ChainableUndefined, Environment, FunctionLoader

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".html"
PARTIALS_DIRNAME = "partials"

__all__ = ["TemplateNotFoundError", "TemplateRenderer"]


class TemplateNotFoundError(Exception):
    """Raised when a named template file cannot be read.

    Attributes:
        name: Template name that was requested.
        path: File that was expected to hold it.
    """

    def __init__(self, name: str, path: Path):
        self.name = name
        self.path = path
        super().__init__(f"Template not found: {name}{TEMPLATE_SUFFIX}")


class TemplateRenderer:
    """Renders named templates with partials using Jinja2.

    Template and partial sources are cached by name for the lifetime of the
    instance. Call ``clear_cache`` when the files on disk may have changed.

    Attributes:
        templates_dir: Directory containing ``<name>.html`` templates.
        partials_dir: Directory containing ``<name>.html`` partials.
        templates: Cache of template name to source.
        partials: Cache of partial name to source.
        env: Jinja2 environment resolving includes against the partials.
    """

    def __init__(self, templates_dir: Path):
        """Initialize the renderer.

        Args:
            templates_dir: Directory with templates and a ``partials`` folder.
        """
        self.templates_dir = templates_dir
        self.partials_dir = templates_dir / PARTIALS_DIRNAME
        self.templates: dict[str, str] = {}
        self.partials: dict[str, str] = {}
        # Sources are cached above; Jinja compiles from them on every render.
        self.env = Environment(
            loader=FunctionLoader(self._include_source),
            autoescape=True,
            undefined=ChainableUndefined,
            keep_trailing_newline=True,
            cache_size=0,
        )

    def load_template(self, name: str) -> str:
        """Return the source of a template, reading it on first use.

        Args:
            name: Template name without extension.

        Returns:
            Template source.

        Raises:
            TemplateNotFoundError: If the template file cannot be read.
        """
        if name in self.templates:
            return self.templates[name]
        path = self.templates_dir / f"{name}{TEMPLATE_SUFFIX}"
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TemplateNotFoundError(name, path) from exc
        self.templates[name] = source
        return source

    def load_partial(self, name: str) -> str:
        """Return the source of a partial, or an empty string if it is missing.

        Args:
            name: Partial name without extension.

        Returns:
            Partial source, empty when the file does not exist.
        """
        if name in self.partials:
            return self.partials[name]
        path = self.partials_dir / f"{name}{TEMPLATE_SUFFIX}"
        try:
            source = path.read_text(encoding="utf-8")
        except OSError:
            logger.debug("Partial %s not found; rendering it empty", name)
            return ""
        self.partials[name] = source
        return source

    def partial_names(self) -> list[str]:
        """List the partials present on disk.

        A missing or unreadable partials directory has no partials.
        """
        try:
            entries = list(self.partials_dir.iterdir())
        except OSError:
            return []
        return sorted(
            path.name[: -len(TEMPLATE_SUFFIX)]
            for path in entries
            if path.name.endswith(TEMPLATE_SUFFIX)
        )

    def render(self, name: str, context: Mapping[str, Any]) -> str:
        """Render a template with every partial available for inclusion.

        Args:
            name: Template name without extension.
            context: Variables to make available in the template.

        Returns:
            Rendered string.

        Raises:
            TemplateNotFoundError: If the template does not exist.
        """
        source = self.load_template(name)
        for partial in self.partial_names():
            self.load_partial(partial)
        template = self.env.from_string(source)
        return template.render(context)

    def clear_cache(self) -> None:
        """Forget every cached template and partial."""
        self.templates.clear()
        self.partials.clear()

    def _include_source(self, name: str) -> str:
        """Resolve an ``{% include %}`` name to partial source."""
        if name.startswith(f"{PARTIALS_DIRNAME}/"):
            name = name[len(PARTIALS_DIRNAME) + 1 :]
        if name.endswith(TEMPLATE_SUFFIX):
            name = name[: -len(TEMPLATE_SUFFIX)]
        return self.load_partial(name)
