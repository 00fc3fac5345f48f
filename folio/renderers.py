"""Markdown renderers for Folio.

The build pipeline never renders markdown itself: it consumes documents that
were compiled ahead of time. The compiler picks one of the renderers in this
module to turn a markdown body into the HTML fragment stored in the compiled
document.

Key classes:
- EscapingRenderer: Default renderer; escapes the markdown and shows it verbatim.
- MarkdownRenderer: Renders Markdown to HTML with mistune.
- RendererRegistry: Looks renderers up by name.
"""

from __future__ import annotations

import mistune
from markupsafe import escape

PRE_STYLE = (
    "white-space: pre-wrap; font-family: inherit; background: #f8f9fa; "
    "padding: 1rem; border-radius: 0.5rem; border: 1px solid #e9ecef;"
)


class UnknownRendererError(KeyError):
    """Raised when a renderer name is not registered."""

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = available
        super().__init__(name)

    def __str__(self) -> str:
        choices = ", ".join(self.available)
        return f"Unknown renderer '{self.name}' (available: {choices})"


class EscapingRenderer:
    """Renders markdown as escaped, preformatted text.

    Used when no real markdown renderer is configured. All five
    HTML-special characters (``& < > " '``) are escaped, so the output can
    be embedded unescaped into a page.
    """

    name = "escape"

    def render(self, markdown: str) -> str:
        """Escape markdown and wrap it in a ``<pre>`` block.

        Args:
            markdown: Raw markdown source.

        Returns:
            Safe HTML fragment.
        """
        return f'<pre style="{PRE_STYLE}">{escape(markdown)}</pre>'


class MarkdownRenderer:
    """Renders Markdown content to HTML with mistune.

    Raw HTML in the source is escaped so compiled articles stay safe to embed.
    """

    name = "markdown"

    def __init__(self) -> None:
        self._markdown = mistune.create_markdown(
            escape=True, plugins=["strikethrough", "footnotes", "table", "url"]
        )

    def render(self, markdown: str) -> str:
        """Render Markdown content to HTML.

        Args:
            markdown: Markdown source content.

        Returns:
            Rendered HTML fragment.
        """
        return self._markdown(markdown)


class RendererRegistry:
    """Registry of markdown renderers keyed by name."""

    def __init__(self):
        """Initialize the registry with default renderers."""
        self._renderers: dict[str, object] = {}
        self.register(EscapingRenderer())
        self.register(MarkdownRenderer())

    def register(self, renderer) -> None:
        """Register a renderer under its ``name`` attribute.

        Args:
            renderer: Object with a ``name`` and a ``render(markdown)`` method.
        """
        self._renderers[renderer.name] = renderer

    def names(self) -> list[str]:
        return sorted(self._renderers)

    def get(self, name: str):
        """Return the renderer registered as ``name``.

        Raises:
            UnknownRendererError: If nothing is registered under that name.
        """
        try:
            return self._renderers[name]
        except KeyError:
            raise UnknownRendererError(name, self.names()) from None


# Default renderer registry instance
default_renderer_registry = RendererRegistry()


def render_escaped(markdown: str) -> str:
    """Render markdown with the default escaping renderer."""
    return EscapingRenderer().render(markdown)
