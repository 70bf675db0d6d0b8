"""
Scanner - Walks the source tree and reconciles it into the manifest.
"""

import logging
import os
import posixpath
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Set

from .content import ContentItem, ImageContent, MarkdownContent
from .errors import FrontMatterError
from .file_hasher import compute_hash
from .front_matter import INDEX_FILENAMES, FrontMatter, parse_front_matter_file
from .manifest import ROOT_TITLE, Manifest
from .manifest_entry import ManifestEntry
from .scan_stats import ScanDelta, ScanResult, ScanStats
from .scanner_progress import (
    ScannerProgress, STATUS_CHANGED, STATUS_NEW, STATUS_UNCHANGED,
)
from .slugs import extract_display_name, sort_natural, to_slug, unique_slug
from .sorting import DESCENDING, ImageSortSettings, sort_content

IMAGE_EXTENSIONS = frozenset({'.jpg', '.jpeg', '.png', '.webp', '.gif'})
MARKDOWN_EXTENSIONS = frozenset({'.md'})

FALLBACK_SLUG = 'untitled'
FALLBACK_TITLE = 'Untitled'


def is_image_file(filename: str) -> bool:
    return os.path.splitext(filename)[1].lower() in IMAGE_EXTENSIONS


def is_ignored_name(name: str) -> bool:
    """Names starting with "_" or "." are never published."""
    return name.startswith('_') or name.startswith('.')


@dataclass
class _ScanState:
    manifest: Manifest
    progress: Optional[ScannerProgress]
    delta: ScanDelta = field(default_factory=ScanDelta)
    stats: ScanStats = field(default_factory=ScanStats)
    existing_paths: Set[str] = field(default_factory=set)


class Scanner:
    """
    Builds the manifest tree from the source directory.

    The walk is serial and depth-first. Folders with images or an index
    file become pages; folders with only page descendants become branch
    entries (slug None); anything else is skipped. Existing image metadata
    is carried over; images whose fingerprint changed keep their old hash
    so the image step picks them up.
    """

    def __init__(
        self,
        gallery_direction: str = 'asc',
        image_sort: Optional[ImageSortSettings] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize scanner.

        Args:
            gallery_direction: Sibling folder order, asc or desc
            image_sort: Default ordering of gallery content
            logger: Optional logger instance
        """
        self.gallery_direction = gallery_direction
        self.image_sort = image_sort or ImageSortSettings()
        self.logger = logger or logging.getLogger(__name__)

    def scan(
        self,
        manifest: Manifest,
        source_root: str,
        progress: Optional[ScannerProgress] = None
    ) -> ScanResult:
        """
        Scan source_root and update manifest in place.

        Args:
            manifest: Manifest to reconcile into
            source_root: Source directory
            progress: Optional progress tracker for callbacks

        Returns:
            ScanResult with the change set and counters

        Raises:
            FileNotFoundError: If source_root does not exist
        """
        if not os.path.isdir(source_root):
            raise FileNotFoundError(f"Source directory not found: {source_root}")

        start_time = time.time()
        state = _ScanState(manifest=manifest, progress=progress)

        self.logger.info(f"Scanning {source_root}")
        root = self._scan_directory(source_root, '', state, is_root=True)
        self._assign_paths(root, '')

        state.delta.removed = manifest.remove_orphans(state.existing_paths)
        manifest.set_root(root)
        manifest.last_scanned = datetime.now().isoformat(timespec='seconds')

        state.stats.duration_seconds = time.time() - start_time
        result = ScanResult(delta=state.delta, stats=state.stats)

        self.logger.info(
            f"Scan complete: {state.stats.pages} pages, {state.stats.images} images "
            f"({len(state.delta.new)} new, {len(state.delta.changed)} changed, "
            f"{len(state.delta.removed)} removed) in {state.stats.duration_seconds:.1f}s"
        )
        if progress:
            progress.on_scan_complete(result)

        return result

    def _scan_directory(
        self,
        abs_dir: str,
        rel_dir: str,
        state: _ScanState,
        is_root: bool = False
    ) -> Optional[ManifestEntry]:
        """Scan one directory; returns None if it has nothing to publish."""
        try:
            with os.scandir(abs_dir) as it:
                dir_entries = list(it)
        except OSError as e:
            if is_root:
                raise
            self.logger.warning(f"Skipping unreadable directory {rel_dir}: {e}")
            state.stats.skipped_directories += 1
            if state.progress:
                state.progress.on_directory_skipped(rel_dir, str(e))
            return self._keep_previous(rel_dir, state)

        state.stats.directories += 1
        if state.progress:
            state.progress.on_directory_start(rel_dir)

        subdirs = []
        files = []
        for item in dir_entries:
            try:
                if item.is_dir():
                    if not is_ignored_name(item.name):
                        subdirs.append(item)
                elif item.is_file():
                    files.append(item)
            except OSError as e:
                self.logger.warning(f"Cannot stat {item.path}: {e}")

        file_names = {f.name for f in files}
        index_name = next((n for n in INDEX_FILENAMES if n in file_names), None)
        front_matter = self._read_front_matter(abs_dir, rel_dir, index_name, state)

        content: List[ContentItem] = []
        for item in sort_natural(files, key=lambda f: f.name):
            if item.name.startswith('.') or item.name in INDEX_FILENAMES:
                continue
            ext = os.path.splitext(item.name)[1].lower()
            rel_path = posixpath.join(rel_dir, item.name)
            if ext in IMAGE_EXTENSIONS:
                image = self._reconcile_image(item, rel_path, state)
                if image is not None:
                    content.append(image)
            elif ext in MARKDOWN_EXTENSIONS and not item.name.startswith('_'):
                markdown = self._read_markdown(item, rel_path)
                if markdown is not None:
                    content.append(markdown)
                    state.stats.markdown_files += 1

        children = []
        descending = self.gallery_direction == DESCENDING
        for subdir in sort_natural(subdirs, key=lambda d: d.name, descending=descending):
            child = self._scan_directory(
                subdir.path, posixpath.join(rel_dir, subdir.name), state
            )
            if child is not None:
                children.append(child)
        self._make_slugs_unique(children)

        has_images = any(isinstance(c, ImageContent) for c in content)
        is_page = is_root or has_images or index_name is not None

        if not is_page and not children:
            self.logger.debug(f"Skipping empty directory: {rel_dir}")
            return None

        name = os.path.basename(rel_dir)
        if is_root:
            slug = ''
            title = front_matter.title or ROOT_TITLE
        else:
            title = front_matter.title or extract_display_name(name).strip() or FALLBACK_TITLE
            if is_page:
                slug = to_slug(front_matter.slug or name) or FALLBACK_SLUG
            else:
                slug = None

        sort_settings = self.image_sort.with_override(front_matter.sort)
        entry = ManifestEntry(
            name=name,
            source_dir=rel_dir,
            slug=slug,
            title=title,
            description=front_matter.description,
            template=front_matter.template,
            sort=front_matter.sort,
            hidden=front_matter.hidden,
            data_sources=dict(front_matter.data_sources),
            children=children,
            content=sort_content(content, sort_settings),
        )

        if is_page:
            state.stats.pages += 1
        else:
            state.stats.branches += 1
        if has_images:
            state.stats.galleries += 1
        return entry

    def _read_front_matter(
        self,
        abs_dir: str,
        rel_dir: str,
        index_name: Optional[str],
        state: _ScanState
    ) -> FrontMatter:
        if index_name is None:
            return FrontMatter()
        index_path = os.path.join(abs_dir, index_name)
        try:
            return parse_front_matter_file(index_path)
        except (FrontMatterError, OSError, UnicodeDecodeError) as e:
            self.logger.warning(
                f"Ignoring front matter in {posixpath.join(rel_dir, index_name)}: {e}"
            )
            state.stats.front_matter_errors += 1
            return FrontMatter()

    def _keep_previous(self, rel_dir: str, state: _ScanState) -> Optional[ManifestEntry]:
        """
        Carry the previous entries of an unreadable directory over unchanged.

        Its images are still on disk as far as the scan can tell, so they
        must not be treated as orphans.
        """
        prefix = f"{rel_dir}/"
        kept = [p for p in state.manifest.image_paths if p.startswith(prefix)]
        state.existing_paths.update(kept)
        if kept:
            self.logger.info(f"Keeping {len(kept)} previously scanned images under {rel_dir}")
        return state.manifest.get_entry(rel_dir)

    def _reconcile_image(
        self,
        item: os.DirEntry,
        rel_path: str,
        state: _ScanState
    ) -> Optional[ImageContent]:
        """
        Match an image file against its manifest entry.

        New images get a stub with an empty hash. Changed images keep their
        stored hash so staleness is still visible to the image step.
        """
        try:
            file_size = item.stat().st_size
        except OSError as e:
            self.logger.warning(f"Cannot read {rel_path}: {e}")
            return None

        state.existing_paths.add(rel_path)
        state.stats.images += 1
        existing = state.manifest.get_image(rel_path)

        if existing is None or not existing.hash:
            status = STATUS_NEW
            image = existing or ImageContent(source_path=rel_path)
            image.file_size = file_size
            state.delta.new.append(rel_path)
        else:
            image = existing
            try:
                fresh_hash = compute_hash(item.path)
            except OSError as e:
                self.logger.warning(f"Cannot hash {rel_path}: {e}")
                fresh_hash = None
            if fresh_hash != existing.hash:
                status = STATUS_CHANGED
                image.file_size = file_size
                state.delta.changed.append(rel_path)
            else:
                status = STATUS_UNCHANGED
                state.delta.unchanged.append(rel_path)

        if state.progress:
            state.progress.on_file_scanned(rel_path, status)
        return image

    def _read_markdown(self, item: os.DirEntry, rel_path: str) -> Optional[MarkdownContent]:
        try:
            return MarkdownContent(
                source_path=rel_path,
                file_size=item.stat().st_size,
                hash=compute_hash(item.path),
            )
        except OSError as e:
            self.logger.warning(f"Cannot read {rel_path}: {e}")
            return None

    @staticmethod
    def _make_slugs_unique(children: List[ManifestEntry]) -> None:
        taken: Set[str] = set()
        for child in children:
            if child.slug is None:
                continue
            child.slug = unique_slug(child.slug, taken)
            taken.add(child.slug)

    def _assign_paths(self, entry: ManifestEntry, parent_path: str) -> None:
        """Compute URL paths top-down; branch entries contribute their folder slug."""
        if entry.source_dir:
            segment = entry.slug if entry.slug is not None else to_slug(entry.name)
            entry.path = f"{parent_path}{segment}/" if segment else parent_path
        else:
            entry.path = ''
        for child in entry.children:
            self._assign_paths(child, entry.path)
