"""
ManifestEntry - One node of the site tree (a folder / page).
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .content import ContentItem, ImageContent, MarkdownContent, content_from_dict


@dataclass
class ManifestEntry:
    """
    A node in the manifest tree.

    Attributes:
        name: Folder name on disk (empty for the root)
        source_dir: Folder path relative to the source root, forward slashes
        slug: URL segment; None for branch nodes without a page of their own
        path: URL path from the root, e.g. "events/summer/" ("" for root)
        title: Display title
        description: Optional description from front matter
        template: Optional template override
        sort: Optional content sort override, "field:direction"
        hidden: Excluded from navigation
        data_sources: Named data sources, e.g. {"statistics": "$builtin"}
        children: Child entries, in display order
        content: Content items, in display order
    """
    name: str = ''
    source_dir: str = ''
    slug: Optional[str] = None
    path: str = ''
    title: str = ''
    description: Optional[str] = None
    template: Optional[str] = None
    sort: Optional[str] = None
    hidden: bool = False
    data_sources: Dict[str, str] = field(default_factory=dict)
    children: List['ManifestEntry'] = field(default_factory=list)
    content: List[ContentItem] = field(default_factory=list)

    @property
    def is_gallery(self) -> bool:
        """True if the entry holds at least one image."""
        return any(isinstance(c, ImageContent) for c in self.content)

    @property
    def is_branch(self) -> bool:
        """True for section nodes without a page (slug is None)."""
        return self.slug is None and bool(self.source_dir)

    @property
    def images(self) -> List[ImageContent]:
        return [c for c in self.content if isinstance(c, ImageContent)]

    @property
    def markdown(self) -> List[MarkdownContent]:
        return [c for c in self.content if isinstance(c, MarkdownContent)]

    def walk(self) -> Iterator['ManifestEntry']:
        """Yield this entry and every descendant, depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def find_child(self, name: str) -> Optional['ManifestEntry']:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'name': self.name,
            'sourceDir': self.source_dir,
            'slug': self.slug,
            'path': self.path,
            'title': self.title,
            'description': self.description,
            'template': self.template,
            'sort': self.sort,
            'hidden': self.hidden,
            'dataSources': dict(self.data_sources),
            'content': [c.to_dict() for c in self.content],
            'children': [c.to_dict() for c in self.children],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ManifestEntry':
        """Create from dictionary."""
        return cls(
            name=data.get('name', ''),
            source_dir=data.get('sourceDir', ''),
            slug=data.get('slug'),
            path=data.get('path', ''),
            title=data.get('title', ''),
            description=data.get('description'),
            template=data.get('template'),
            sort=data.get('sort'),
            hidden=bool(data.get('hidden', False)),
            data_sources=dict(data.get('dataSources') or {}),
            content=[content_from_dict(c) for c in data.get('content', [])],
            children=[cls.from_dict(c) for c in data.get('children', [])],
        )
