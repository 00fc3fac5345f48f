"""Command-line interface for Folio.

This module defines the CLI commands using Click framework.
It provides commands for creating new projects, compiling markdown, building
sites and running the development server.

Commands:
- new: Scaffold a new Folio project.
- compile: Compile markdown articles into compiled HTML documents.
- build: Build the site into the output directory.
- serve: Run development server with auto-rebuild and live reload.
- md: Create a new markdown article interactively.
"""

from __future__ import annotations

import logging
import shutil
from datetime import date
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .renderers import default_renderer_registry
from .utils import slugify

logger = logging.getLogger(__name__)

# Path to the project skeleton copied by `folio new`
_SCAFFOLD_DIR = Path(__file__).parent / "scaffold"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("folio").setLevel(logging.DEBUG if verbose else logging.INFO)


@click.group()
@click.version_option(version=__version__, prog_name="folio")
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
def cli(verbose: bool):
    """Folio static blog generator."""
    _configure_logging(verbose)


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Folio project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Folio blog created at {target}")


@cli.command()
def build():
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_site
    from .renderers import UnknownRendererError

    try:
        result = build_site(project_root)
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(
            click.style(f"  File: {_display_path(exc.source_path, project_root)}", fg="yellow"),
            err=True,
        )
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    except UnknownRendererError as exc:
        raise click.ClickException(str(exc)) from None
    except Exception:
        logger.exception("Build failed")
        raise SystemExit(1) from None
    click.echo(f"Built {len(result.articles)} articles into {result.output_dir}")


@cli.command()
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides folio.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides folio.yaml ws_port)",
)
def serve(port: int | None, ws_port: int | None):
    """Run dev server with auto-rebuild and live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    server = DevServer(project_root, http_port=port, ws_port=ws_port)
    server.start()


@cli.command(name="compile")
@click.option(
    "--input",
    "input_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory containing .md files (default: content_dir from folio.yaml)",
)
@click.option(
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for compiled .html files (default: the input directory)",
)
@click.option(
    "--renderer",
    type=click.Choice(default_renderer_registry.names()),
    help="Markdown renderer (overrides folio.yaml renderer)",
)
def compile_(input_dir: Path | None, output_dir: Path | None, renderer: str | None):
    """Compile markdown articles into compiled HTML documents."""
    project_root = Path.cwd()
    from .build import load_config
    from .compiler import CompileError, MarkdownCompiler

    config = load_config(project_root)
    source = input_dir or project_root / config.get("content_dir", "content")
    if not source.is_dir():
        raise click.ClickException(f"Input directory not found: {source}")
    renderer_name = renderer or config.get("renderer", "escape")
    try:
        markdown_renderer = default_renderer_registry.get(renderer_name)
    except KeyError as exc:
        raise click.ClickException(str(exc)) from None

    compiler = MarkdownCompiler(source, output_dir or source, renderer=markdown_renderer)
    try:
        written = compiler.compile()
    except CompileError as exc:
        click.echo(click.style("Compilation failed:", fg="red", bold=True), err=True)
        click.echo(
            click.style(f"  File: {_display_path(exc.source_path, project_root)}", fg="yellow"),
            err=True,
        )
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    click.echo(f"Compiled {len(written)} articles into {compiler.output_dir}")


@cli.command()
def md():
    """Create a new markdown article interactively."""
    project_root = Path.cwd()
    from .build import load_config

    config = load_config(project_root)
    content_dir = project_root / config.get("content_dir", "content")

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    title = title.strip()

    excerpt = questionary.text(
        "Excerpt (optional):",
        style=_questionary_style(),
    ).ask()
    if excerpt is None:
        raise click.Abort()

    status = questionary.select(
        "Status:",
        choices=["published", "draft"],
        style=_questionary_style(),
    ).ask()
    if status is None:
        raise click.Abort()

    slug = slugify(title)
    if not slug:
        raise click.ClickException(f"Cannot derive a filename from title: {title}")
    if slug in _get_existing_slugs(content_dir):
        raise click.ClickException(f"An article with slug '{slug}' already exists")

    frontmatter = {
        "title": title,
        "date": date.today().isoformat(),
        "status": status,
        "excerpt": excerpt.strip(),
    }
    content_dir.mkdir(parents=True, exist_ok=True)
    target_path = content_dir / f"{slug}.md"
    header = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
    target_path.write_text(f"---\n{header}---\n\n# {title}\n\n", encoding="utf-8")

    click.echo(f"Created {_display_path(target_path, project_root)}")


def _get_existing_slugs(folder: Path) -> set[str]:
    """Get the slugs of markdown sources and compiled documents in a folder."""
    slugs = set()
    if folder.exists():
        for f in folder.iterdir():
            if f.is_file() and f.suffix in (".md", ".html"):
                slugs.add(f.stem)
    return slugs


def _display_path(path: Path, project_root: Path) -> Path:
    try:
        return path.relative_to(project_root)
    except ValueError:
        return path


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new Folio project.

    Args:
        root: Root directory for the new project.
    """
    for src_path in _SCAFFOLD_DIR.rglob("*"):
        if src_path.is_dir():
            continue
        rel_path = src_path.relative_to(_SCAFFOLD_DIR)
        dest_path = root / rel_path
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)

    config_path = root / "folio.yaml"
    config = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    config.setdefault("site", {})["name"] = root.name
    config_path.write_text(
        yaml.safe_dump(config, sort_keys=False, allow_unicode=True), encoding="utf-8"
    )
