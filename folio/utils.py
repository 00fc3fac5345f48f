"""Utility functions for Folio.

This module contains small helpers shared by the loader, the feed generator
and the build orchestrator.

Key functions:
    parse_date: Interpret a frontmatter date string as a UTC datetime.
    format_date: Human-readable long date for templates.
    format_rfc1123: RFC 1123 date string for the RSS feed.
    ensure_clean_dir: Ensure a directory exists and is empty.
    titleize: Convert filenames to human-readable titles.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from pathlib import Path

# Month names are spelled out here so formatting and parsing never depend on
# the locale.
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

_MONTH_NUMBERS = {
    **{name.lower(): number for number, name in enumerate(MONTH_NAMES, start=1)},
    **{name[:3].lower(): number for number, name in enumerate(MONTH_NAMES, start=1)},
}

# "March 5, 2024", "Mar 5 2024" and "5 March 2024".
_MONTH_FIRST_RE = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2}),?\s+(\d{4})$")
_DAY_FIRST_RE = re.compile(r"^(\d{1,2})\s+([A-Za-z]+)\.?,?\s+(\d{4})$")


def parse_date(value: str | None) -> datetime | None:
    """Parse a frontmatter date into a timezone-aware UTC datetime.

    Accepts ISO 8601 dates and datetimes (with or without offset, ``Z``
    included), RFC 2822 dates and a few long-form spellings. Values without
    an offset are taken as UTC, so ``2024-01-01`` is midnight UTC.

    Args:
        value: Raw date string from frontmatter.

    Returns:
        Aware datetime in UTC, or None when the value is missing or unparseable.

    Examples:
        >>> parse_date("2024-01-01")
        datetime.datetime(2024, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)

        >>> parse_date("someday") is None
        True
    """
    if not value:
        return None
    text = value.strip()
    if not text:
        return None

    parsed: datetime | None = None
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        parsed = None

    if parsed is None:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            parsed = None

    if parsed is None:
        parsed = _parse_long_date(text)

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        # Offsets can push year 1 or year 9999 outside the datetime range.
        return None


def _parse_long_date(text: str) -> datetime | None:
    """Parse ``2024/03/05`` and spelled-out month forms with English names."""
    try:
        return datetime.strptime(text, "%Y/%m/%d")
    except ValueError:
        pass

    match = _MONTH_FIRST_RE.match(text)
    if match:
        month_name, day, year = match.groups()
    else:
        match = _DAY_FIRST_RE.match(text)
        if not match:
            return None
        day, month_name, year = match.groups()

    month = _MONTH_NUMBERS.get(month_name.lower())
    if month is None:
        return None
    try:
        return datetime(int(year), month, int(day))
    except ValueError:
        return None


def format_date(value: str | None) -> str:
    """Format a frontmatter date as ``January 1, 2024``.

    Unparseable values are returned unchanged so templates still show
    whatever the author wrote.

    Args:
        value: Raw date string from frontmatter.

    Returns:
        Long-form date string.
    """
    parsed = parse_date(value)
    if parsed is None:
        return value or ""
    return f"{MONTH_NAMES[parsed.month - 1]} {parsed.day}, {parsed.year}"


def format_rfc1123(moment: datetime) -> str:
    """Format a datetime the way RSS ``pubDate`` expects it.

    Args:
        moment: Datetime to format; naive values are taken as UTC.

    Returns:
        String like ``Mon, 01 Jan 2024 00:00:00 GMT``.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Replaces hyphens and underscores with spaces and capitalizes each word.

    Args:
        filename: Filename with or without extension.

    Returns:
        Human-readable title string.

    Examples:
        >>> titleize("getting-started.md")
        'Getting Started'
    """
    base = Path(filename).stem
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def slugify(name: str) -> str:
    """Convert free text into a filename-safe slug.

    Args:
        name: Text such as an article title.

    Returns:
        Lowercase slug made of letters, digits and hyphens.
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", name)
    return cleaned.strip("-").lower()


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist. Errors propagate to the caller.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)
