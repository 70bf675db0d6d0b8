"""
Slugs - Folder names to URL-safe path segments, plus natural ordering.
"""

import re
import unicodedata
from typing import Callable, Iterable, List, Optional, Set, TypeVar

T = TypeVar('T')

# "01 Events" -> ("01", "Events"); longer numbers such as years are kept
SORT_PREFIX_PATTERN = re.compile(r'^(\d{1,2})\s+(.+)$')

_WHITESPACE = re.compile(r'[\s_]+')
_INVALID_CHARS = re.compile(r'[^a-z0-9\-]')
_MULTIPLE_HYPHENS = re.compile(r'-{2,}')
_NUMBER_RUNS = re.compile(r'(\d+)')


def extract_display_name(folder_name: str) -> str:
    """Strip a leading numeric sort prefix from a folder name; blank names pass through."""
    if not folder_name or not folder_name.strip():
        return folder_name or ''
    match = SORT_PREFIX_PATTERN.match(folder_name)
    return match.group(2) if match else folder_name


def to_slug(name: str) -> str:
    """
    Convert a folder or file name into a URL-safe slug.

    Examples:
        "01 Events"        -> "events"
        "2024 Summer Trip" -> "2024-summer-trip"
        "Café Photos"      -> "cafe-photos"
    """
    display_name = extract_display_name(name)

    decomposed = unicodedata.normalize('NFD', display_name).lower()
    without_marks = ''.join(
        c for c in decomposed if unicodedata.category(c) != 'Mn'
    )
    text = unicodedata.normalize('NFC', without_marks)

    text = _WHITESPACE.sub('-', text)
    text = _INVALID_CHARS.sub('', text)
    text = _MULTIPLE_HYPHENS.sub('-', text)
    return text.strip('-')


def build_path(*segments: Optional[str]) -> str:
    """
    Join slugged segments into a relative URL path with a trailing slash.

    Blank segments, and segments that slug to nothing, are dropped. Returns
    an empty string for the root.
    """
    slugs = [to_slug(s) for s in segments if s and s.strip()]
    slugs = [s for s in slugs if s]
    if not slugs:
        return ''
    return '/'.join(slugs) + '/'


def to_title(name: str) -> str:
    """Fallback display title for a folder."""
    return extract_display_name(name)


def unique_slug(slug: str, taken: Set[str]) -> str:
    """Return slug, suffixed with -2, -3 ... if a sibling already uses it."""
    if slug not in taken:
        return slug
    counter = 2
    while f"{slug}-{counter}" in taken:
        counter += 1
    return f"{slug}-{counter}"


def natural_key(text: str) -> tuple:
    """
    Sort key comparing digit runs numerically: "2" < "10".

    Each run is tagged so numbers and text never compare against each other
    directly.
    """
    key = []
    for index, part in enumerate(_NUMBER_RUNS.split(text)):
        if index % 2:
            key.append((0, int(part), ''))
        elif part:
            key.append((1, 0, part.casefold()))
    return tuple(key)


def sort_natural(
    items: Iterable[T],
    key: Callable[[T], str] = str,
    descending: bool = False
) -> List[T]:
    """Sort items by natural order of key(item); ties broken by the raw name."""
    return sorted(
        items,
        key=lambda item: (natural_key(key(item)), key(item)),
        reverse=descending,
    )
