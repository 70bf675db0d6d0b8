"""
Content - Items attached to a manifest entry.

Content is a tagged union: every serialized item carries a ``type`` key
("image" or "markdown") that selects the class used to load it.
"""

import os
from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Tuple, Union

from .exif import ExifData


@dataclass
class ImageContent:
    """
    Cached metadata for one source image.

    Attributes:
        source_path: Path relative to the source root, forward slashes (key)
        width: Original width in pixels
        height: Original height in pixels
        sizes: Generated sizes, ascending
        formats: Generated formats, sorted
        hash: File fingerprint at last processing ("" = never processed)
        file_size: Source size in bytes
        date_taken: ISO timestamp (EXIF, or file mtime as fallback)
        exif: Parsed EXIF data, if any
        processed_at: ISO timestamp of last variant generation
    """
    TYPE: ClassVar[str] = 'image'

    source_path: str
    width: int = 0
    height: int = 0
    sizes: List[int] = field(default_factory=list)
    formats: List[str] = field(default_factory=list)
    hash: str = ''
    file_size: int = 0
    date_taken: Optional[str] = None
    exif: Optional[ExifData] = None
    processed_at: Optional[str] = None

    @property
    def filename(self) -> str:
        return os.path.basename(self.source_path)

    @property
    def stem(self) -> str:
        """Base name used for the variant directory."""
        return os.path.splitext(self.filename)[0]

    @property
    def variants(self) -> List[Tuple[int, str]]:
        """All recorded (size, format) pairs."""
        return [(size, fmt) for size in self.sizes for fmt in self.formats]

    @property
    def is_processed(self) -> bool:
        return bool(self.hash) and bool(self.sizes) and bool(self.formats)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'type': self.TYPE,
            'sourcePath': self.source_path,
            'filename': self.filename,
            'width': self.width,
            'height': self.height,
            'sizes': list(self.sizes),
            'formats': list(self.formats),
            'hash': self.hash,
            'fileSize': self.file_size,
            'dateTaken': self.date_taken,
            'exif': self.exif.to_dict() if self.exif else None,
            'processedAt': self.processed_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ImageContent':
        """Create from dictionary."""
        exif_data = data.get('exif')
        return cls(
            source_path=data['sourcePath'],
            width=data.get('width', 0),
            height=data.get('height', 0),
            sizes=[int(s) for s in data.get('sizes', [])],
            formats=list(data.get('formats', [])),
            hash=data.get('hash', ''),
            file_size=data.get('fileSize', 0),
            date_taken=data.get('dateTaken'),
            exif=ExifData.from_dict(exif_data) if exif_data else None,
            processed_at=data.get('processedAt'),
        )


@dataclass
class MarkdownContent:
    """
    A markdown file inside a gallery folder.

    The body is opaque here; only enough is kept to detect changes.
    """
    TYPE: ClassVar[str] = 'markdown'

    source_path: str
    file_size: int = 0
    hash: str = ''

    @property
    def filename(self) -> str:
        return os.path.basename(self.source_path)

    def to_dict(self) -> dict:
        return {
            'type': self.TYPE,
            'sourcePath': self.source_path,
            'filename': self.filename,
            'fileSize': self.file_size,
            'hash': self.hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'MarkdownContent':
        return cls(
            source_path=data['sourcePath'],
            file_size=data.get('fileSize', 0),
            hash=data.get('hash', ''),
        )


ContentItem = Union[ImageContent, MarkdownContent]

CONTENT_TYPES = {
    ImageContent.TYPE: ImageContent,
    MarkdownContent.TYPE: MarkdownContent,
}


def content_from_dict(data: dict) -> ContentItem:
    """
    Load a content item using its ``type`` tag.

    Raises:
        ValueError: If the tag is missing or unknown
    """
    content_type = data.get('type')
    content_cls = CONTENT_TYPES.get(content_type)
    if content_cls is None:
        raise ValueError(f"Unknown content type: {content_type!r}")
    return content_cls.from_dict(data)
