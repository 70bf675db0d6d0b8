"""
ScanStats - Statistics and change set of a content scan.
"""

from dataclasses import dataclass, field, asdict
from typing import List


@dataclass
class ScanDelta:
    """
    What a scan changed, by source path.

    Attributes:
        new: Images not in the manifest before
        changed: Images whose fingerprint differs from the stored one
        unchanged: Images left untouched
        removed: Images removed as orphans
    """
    new: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.new or self.changed or self.removed)

    @property
    def needs_processing(self) -> List[str]:
        return self.new + self.changed


@dataclass
class ScanStats:
    """
    Counters for a content scan.

    Attributes:
        directories: Directories visited
        galleries: Entries holding at least one image
        pages: Entries with a page (galleries and text-only pages)
        branches: Section entries without a page of their own
        images: Images found
        markdown_files: Markdown content files found
        skipped_directories: Unreadable directories skipped
        front_matter_errors: Front-matter files that failed to parse
        duration_seconds: Scan time
    """
    directories: int = 0
    galleries: int = 0
    pages: int = 0
    branches: int = 0
    images: int = 0
    markdown_files: int = 0
    skipped_directories: int = 0
    front_matter_errors: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class ScanResult:
    delta: ScanDelta
    stats: ScanStats
