"""Markdown compilation for Folio.

The compiler turns markdown sources with YAML frontmatter into the compiled
document format read by the build (see ``folio.content``). It is a separate
step: ``folio build`` only ever reads compiled ``.html`` documents.

Key class:
- MarkdownCompiler: Compiles every ``*.md`` file in a directory.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from .content import serialize_compiled_article
from .renderers import EscapingRenderer
from .utils import titleize

logger = logging.getLogger(__name__)

SOURCE_FRONTMATTER_RE = re.compile(
    r"^---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|$)", re.DOTALL
)


class CompileError(Exception):
    """Error while compiling a markdown source.

    Attributes:
        source_path: Path to the markdown file.
        message: Human-readable error message.
    """

    def __init__(self, source_path: Path, message: str):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}")


def split_source(text: str) -> tuple[dict[str, Any], str]:
    """Split a markdown source into YAML frontmatter and body.

    Args:
        text: Raw markdown file content.

    Returns:
        Tuple of (frontmatter dict, markdown body). Sources without a
        frontmatter block yield an empty dict and the full text.

    Raises:
        yaml.YAMLError: If the frontmatter block is not valid YAML.
        ValueError: If the frontmatter is valid YAML but not a mapping.
    """
    match = SOURCE_FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    data = yaml.safe_load(match.group(1) or "") or {}
    if not isinstance(data, dict):
        raise ValueError("frontmatter must be a mapping")
    return data, text[match.end() :]


def serialize_value(value: Any) -> str:
    """Flatten a YAML value into a single-line frontmatter string.

    Strings are kept as written (line breaks become spaces), dates use ISO
    format and everything else is written as JSON.
    """
    if isinstance(value, str):
        return " ".join(value.splitlines()).strip()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return json.dumps(value, default=str)


class MarkdownCompiler:
    """Compiles markdown sources into compiled article documents.

    Attributes:
        input_dir: Directory scanned for ``*.md`` files.
        output_dir: Directory receiving ``<stem>.html`` documents.
        renderer: Markdown renderer with a ``render(markdown)`` method.
    """

    def __init__(self, input_dir: Path, output_dir: Path | None = None, renderer=None):
        self.input_dir = input_dir
        self.output_dir = output_dir or input_dir
        self.renderer = renderer or EscapingRenderer()

    def compile(self) -> list[Path]:
        """Compile every markdown file in the input directory.

        Returns:
            Paths of the written documents.

        Raises:
            CompileError: On the first file that cannot be compiled.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        sources = sorted(self.input_dir.glob("*.md"))
        if not sources:
            logger.info("No markdown files found in %s", self.input_dir)
            return []

        logger.info("Found %d markdown file(s)", len(sources))
        return [self.compile_file(path) for path in sources]

    def compile_file(self, path: Path) -> Path:
        """Compile a single markdown file.

        Args:
            path: Markdown source.

        Returns:
            Path of the compiled document.
        """
        try:
            text = path.read_text(encoding="utf-8")
            compiled = self.compile_text(text, default_title=titleize(path.name))
        except (OSError, UnicodeDecodeError, ValueError, yaml.YAMLError) as exc:
            raise CompileError(path, str(exc)) from exc

        target = self.output_dir / f"{path.stem}.html"
        try:
            target.write_text(compiled, encoding="utf-8")
        except OSError as exc:
            raise CompileError(path, f"cannot write {target}: {exc}") from exc
        logger.info("Compiled %s -> %s", path.name, target.name)
        return target

    def compile_text(self, text: str, default_title: str | None = None) -> str:
        """Compile markdown source text into compiled document text.

        ``default_title`` fills in ``title`` when the source omits it.
        """
        frontmatter, body = split_source(text)
        fields = {str(key): serialize_value(value) for key, value in frontmatter.items()}
        if default_title and not fields.get("title"):
            fields["title"] = default_title
        return serialize_compiled_article(fields, self.renderer.render(body))
