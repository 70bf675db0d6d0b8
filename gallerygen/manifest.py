"""
Manifest - Persistent site tree plus cached per-image metadata.

The manifest is the single record of what has already been built. It is
loaded once per run, mutated in memory by the scanner and the image
generator, and written back with save().
"""

import json
import logging
import os
import posixpath
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from .content import ImageContent
from .errors import ManifestCorrupt
from .manifest_entry import ManifestEntry
from .slugs import to_slug

MANIFEST_VERSION = 1
ROOT_TITLE = 'Home'

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Normalize a relative source path: forward slashes, no leading "./" or "/"."""
    normalized = path.replace('\\', '/')
    while normalized.startswith('./'):
        normalized = normalized[2:]
    return normalized.strip('/')


def create_root() -> ManifestEntry:
    return ManifestEntry(slug='', title=ROOT_TITLE)


@dataclass
class Manifest:
    """
    Site tree and build state.

    Attributes:
        root: Root entry of the tree
        config_hash: Fingerprint of the image settings used for the last run
        format_qualities: {format: quality} used for the last run
        resize_mode: Resize mode used for the last run
        last_scanned: ISO timestamp of the last scan
        last_images_processed: ISO timestamp of the last image run
        last_updated: ISO timestamp of the last save
        version: On-disk format version

    Images are looked up through a path index that is rebuilt whenever the
    tree is replaced or loaded, and kept current by every mutation.
    """
    root: ManifestEntry = field(default_factory=create_root)
    config_hash: Optional[str] = None
    format_qualities: Dict[str, int] = field(default_factory=dict)
    resize_mode: Optional[str] = None
    last_scanned: Optional[str] = None
    last_images_processed: Optional[str] = None
    last_updated: Optional[str] = None
    version: int = MANIFEST_VERSION
    _images: Dict[str, ImageContent] = field(default_factory=dict, init=False, repr=False)
    _entries: Dict[str, ManifestEntry] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._rebuild_index()

    def _rebuild_index(self) -> None:
        self._images = {}
        self._entries = {}
        for entry in self.root.walk():
            self._entries[entry.source_dir] = entry
            for image in entry.images:
                self._images[image.source_path] = image

    # Tree access

    def set_root(self, root: ManifestEntry) -> None:
        """Replace the whole tree and rebuild the index."""
        self.root = root
        self._rebuild_index()

    def get_entry(self, source_dir: str) -> Optional[ManifestEntry]:
        return self._entries.get(normalize_path(source_dir))

    def iter_entries(self) -> Iterator[ManifestEntry]:
        return self.root.walk()

    # Image access

    def get_image(self, source_path: str) -> Optional[ImageContent]:
        """Look up an image by its source path."""
        return self._images.get(normalize_path(source_path))

    def set_image(self, source_path: str, image: ImageContent) -> None:
        """
        Insert or replace an image in the entry owning its folder.

        Missing folder entries are created on the way down.
        """
        key = normalize_path(source_path)
        image.source_path = key
        entry = self._ensure_entry(posixpath.dirname(key))

        for index, item in enumerate(entry.content):
            if isinstance(item, ImageContent) and item.source_path == key:
                entry.content[index] = image
                break
        else:
            entry.content.append(image)

        self._images[key] = image

    def remove_image(self, source_path: str) -> bool:
        """Remove an image; returns False if it was not in the manifest."""
        key = normalize_path(source_path)
        if key not in self._images:
            return False

        entry = self._entries.get(posixpath.dirname(key))
        if entry is not None:
            entry.content = [
                c for c in entry.content
                if not (isinstance(c, ImageContent) and c.source_path == key)
            ]
        del self._images[key]
        return True

    def remove_orphans(self, existing_source_paths: Iterable[str]) -> List[str]:
        """
        Remove every image whose source path is not in existing_source_paths.

        Returns:
            Sorted list of removed source paths
        """
        existing = {normalize_path(p) for p in existing_source_paths}
        orphans = sorted(key for key in self._images if key not in existing)
        for key in orphans:
            self.remove_image(key)
        return orphans

    def iter_images(self) -> Iterator[ImageContent]:
        """Yield images in tree order."""
        for entry in self.root.walk():
            yield from entry.images

    @property
    def image_paths(self) -> List[str]:
        return list(self._images.keys())

    @property
    def total_images(self) -> int:
        return len(self._images)

    @property
    def total_galleries(self) -> int:
        return sum(1 for e in self.root.walk() if e.is_gallery)

    def _ensure_entry(self, source_dir: str) -> ManifestEntry:
        entry = self._entries.get(source_dir)
        if entry is not None:
            return entry

        parent = self._ensure_entry(posixpath.dirname(source_dir))
        name = posixpath.basename(source_dir)
        slug = to_slug(name)
        entry = ManifestEntry(
            name=name,
            source_dir=source_dir,
            slug=slug,
            path=f"{parent.path}{slug}/" if slug else parent.path,
            title=name,
        )
        parent.children.append(entry)
        self._entries[source_dir] = entry
        return entry

    # Serialization

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'version': self.version,
            'configHash': self.config_hash,
            'formatQualities': dict(self.format_qualities),
            'resizeMode': self.resize_mode,
            'lastScanned': self.last_scanned,
            'lastImagesProcessed': self.last_images_processed,
            'lastUpdated': self.last_updated,
            'root': self.root.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Manifest':
        """Create from dictionary."""
        root_data = data.get('root')
        return cls(
            root=ManifestEntry.from_dict(root_data) if root_data else create_root(),
            config_hash=data.get('configHash'),
            format_qualities={
                k: int(v) for k, v in (data.get('formatQualities') or {}).items()
            },
            resize_mode=data.get('resizeMode'),
            last_scanned=data.get('lastScanned'),
            last_images_processed=data.get('lastImagesProcessed'),
            last_updated=data.get('lastUpdated'),
            version=data.get('version', MANIFEST_VERSION),
        )

    def save(self, filepath: str) -> None:
        """
        Save manifest to a JSON file.

        Writes to a temporary file beside the target and renames it into
        place, so readers never see a partially written manifest.
        """
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)

        self.last_updated = datetime.now().isoformat(timespec='seconds')
        tmp_path = path.with_name(path.name + '.tmp')

        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)

        logger.debug(f"Manifest saved to {filepath} ({self.total_images} images)")

    @classmethod
    def load(cls, filepath: str) -> 'Manifest':
        """
        Load manifest from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist
            ManifestCorrupt: If the file cannot be parsed
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise ManifestCorrupt(str(filepath), str(e)) from e

        if not isinstance(data, dict):
            raise ManifestCorrupt(str(filepath), "top-level value is not an object")

        version = data.get('version', MANIFEST_VERSION)
        if not isinstance(version, int) or version > MANIFEST_VERSION:
            raise ManifestCorrupt(str(filepath), f"unsupported version {version!r}")

        try:
            manifest = cls.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ManifestCorrupt(str(filepath), f"invalid structure: {e}") from e

        logger.debug(f"Loaded manifest {filepath} ({manifest.total_images} images)")
        return manifest

    @classmethod
    def load_or_create(cls, filepath: str) -> 'Manifest':
        """Load the manifest, or start an empty one if none exists yet."""
        if not os.path.exists(filepath):
            logger.info(f"No manifest at {filepath}, starting fresh")
            return cls.create_new()
        return cls.load(filepath)

    @classmethod
    def create_new(cls) -> 'Manifest':
        """Create a new empty manifest."""
        return cls()
