"""
Navigation - Site navigation derived from the manifest tree.

Entries hold no parent pointers: active flags are computed top-down in one
traversal, and breadcrumbs are computed as a path from the root on demand.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .manifest_entry import ManifestEntry


@dataclass
class NavigationItem:
    """
    One navigation link.

    Attributes:
        text: Link text
        url: Relative URL with trailing slash; None for branch entries
        active: The current page is this entry or below it
        children: Nested items
    """
    text: str
    url: Optional[str]
    active: bool = False
    children: List['NavigationItem'] = field(default_factory=list)

    @property
    def is_branch(self) -> bool:
        return self.url is None

    def to_dict(self) -> dict:
        return {
            'text': self.text,
            'url': self.url,
            'active': self.active,
            'children': [c.to_dict() for c in self.children],
        }


def normalize_url(url: Optional[str]) -> str:
    """"/events/summer" -> "events/summer/"; root is ""."""
    if not url:
        return ''
    trimmed = url.strip().strip('/')
    return f"{trimmed}/" if trimmed else ''


def build_navigation(root: ManifestEntry, current_url: Optional[str] = None) -> List[NavigationItem]:
    """
    Build the navigation tree below the root.

    Hidden entries (and everything under them) are left out.

    Args:
        root: Manifest root entry
        current_url: URL of the page being rendered

    Returns:
        Items for the root's visible children
    """
    current = normalize_url(current_url)
    return [
        _build_item(child, current)
        for child in root.children
        if not child.hidden
    ]


def _build_item(entry: ManifestEntry, current: str) -> NavigationItem:
    active = bool(entry.path) and current.startswith(entry.path)
    return NavigationItem(
        text=entry.title or entry.name,
        url=None if entry.slug is None else entry.path,
        active=active,
        children=[
            _build_item(child, current)
            for child in entry.children
            if not child.hidden
        ],
    )


def find_breadcrumbs(root: ManifestEntry, current_url: Optional[str]) -> List[ManifestEntry]:
    """
    Entries from the root down to the page at current_url.

    Returns:
        [root, ..., page], or [] if no entry has that URL
    """
    target = normalize_url(current_url)
    trail: List[ManifestEntry] = []

    def descend(entry: ManifestEntry) -> bool:
        trail.append(entry)
        if entry.path == target and entry.slug is not None:
            return True
        for child in entry.children:
            if target.startswith(child.path) and descend(child):
                return True
        trail.pop()
        return False

    return trail if descend(root) else []
