"""Tests for Scanner class."""

import os
from unittest.mock import MagicMock

import pytest

from gallerygen.file_hasher import compute_hash
from gallerygen.manifest import Manifest
from gallerygen.scanner import Scanner, is_ignored_name, is_image_file
from gallerygen.scanner_progress import ScannerProgress
from gallerygen.sorting import ImageSortSettings


def _mark_processed(manifest, source_root):
    """Give every image the hash of its current file, as the image step would."""
    for image in manifest.iter_images():
        image.hash = compute_hash(os.path.join(source_root, image.source_path))


class TestHelpers:
    """Tests for file classification helpers."""

    @pytest.mark.parametrize('name,expected', [
        ('photo.jpg', True),
        ('PHOTO.JPEG', True),
        ('shot.png', True),
        ('anim.gif', True),
        ('notes.md', False),
        ('raw.cr2', False),
    ])
    def test_is_image_file(self, name, expected):
        assert is_image_file(name) is expected

    def test_is_ignored_name(self):
        assert is_ignored_name('_drafts') is True
        assert is_ignored_name('.git') is True
        assert is_ignored_name('Events') is False


class TestScanner:
    """Tests for Scanner class."""

    def test_init(self, logger):
        """Test Scanner initialization."""
        scanner = Scanner(logger=logger)

        assert scanner.gallery_direction == 'asc'
        assert scanner.image_sort == ImageSortSettings()

    def test_missing_source(self, tmp_path, logger):
        with pytest.raises(FileNotFoundError):
            Scanner(logger=logger).scan(Manifest.create_new(), str(tmp_path / 'nope'))

    def test_tree_structure(self, source_tree, logger):
        """Test folders become entries with slugs, titles and paths."""
        manifest = Manifest.create_new()

        Scanner(logger=logger).scan(manifest, str(source_tree))

        root = manifest.root
        assert root.slug == ''
        assert root.path == ''
        assert root.title == 'Home'
        assert [i.filename for i in root.images] == ['cover.jpg']
        assert [c.name for c in root.children] == ['01 Events', 'Café Photos']

        events = root.children[0]
        assert events.slug == 'events'
        assert events.title == 'All Events'
        assert events.path == 'events/'

        cafe = root.children[1]
        assert cafe.slug == 'cafe-photos'
        assert cafe.title == 'Café Photos'

    def test_natural_order_and_prefixes(self, source_tree, logger):
        """Test "2 Early" sorts before "10 Later" and prefixes leave titles and slugs."""
        manifest = Manifest.create_new()

        Scanner(logger=logger).scan(manifest, str(source_tree))

        events = manifest.get_entry('01 Events')
        assert [c.title for c in events.children] == ['Early', 'Later', '2024 Summer Trip']
        assert [c.path for c in events.children] == [
            'events/early/', 'events/later/', 'events/2024-summer-trip/',
        ]

    def test_descending_galleries(self, source_tree, logger):
        manifest = Manifest.create_new()

        Scanner(gallery_direction='desc', logger=logger).scan(manifest, str(source_tree))

        assert [c.name for c in manifest.root.children] == ['Café Photos', '01 Events']

    def test_ignored_and_empty_folders_skipped(self, source_tree, logger):
        manifest = Manifest.create_new()

        Scanner(logger=logger).scan(manifest, str(source_tree))

        assert manifest.get_entry('_drafts') is None
        assert manifest.get_entry('Empty') is None
        assert manifest.get_image('_drafts/draft.jpg') is None

    def test_markdown_content(self, source_tree, logger):
        manifest = Manifest.create_new()

        Scanner(logger=logger).scan(manifest, str(source_tree))

        summer = manifest.get_entry('01 Events/2024 Summer Trip')
        assert len(summer.content) == 2
        assert [i.filename for i in summer.images] == ['beach.jpg']
        assert summer.markdown[0].hash

    def test_stats(self, source_tree, logger):
        result = Scanner(logger=logger).scan(Manifest.create_new(), str(source_tree))

        assert result.stats.images == 5
        assert result.stats.pages == 6
        assert result.stats.galleries == 5
        assert result.stats.branches == 0
        assert result.stats.markdown_files == 1
        assert result.stats.directories == 7

    def test_first_scan_all_new(self, source_tree, logger):
        manifest = Manifest.create_new()

        result = Scanner(logger=logger).scan(manifest, str(source_tree))

        assert len(result.delta.new) == 5
        assert result.delta.changed == []
        assert result.delta.removed == []
        assert all(image.hash == '' for image in manifest.iter_images())
        assert manifest.last_scanned is not None

    def test_rescan_unchanged(self, source_tree, logger):
        """Test processed images with identical files are left untouched."""
        manifest = Manifest.create_new()
        scanner = Scanner(logger=logger)
        scanner.scan(manifest, str(source_tree))
        _mark_processed(manifest, str(source_tree))

        result = scanner.scan(manifest, str(source_tree))

        assert len(result.delta.unchanged) == 5
        assert result.delta.has_changes is False
        assert result.delta.needs_processing == []

    def test_changed_image_keeps_old_hash(self, source_tree, make_image, logger):
        """Test a modified file is reported but its stored hash is not refreshed."""
        manifest = Manifest.create_new()
        scanner = Scanner(logger=logger)
        scanner.scan(manifest, str(source_tree))
        _mark_processed(manifest, str(source_tree))
        old_hash = manifest.get_image('cover.jpg').hash

        make_image(source_tree / 'cover.jpg', size=(320, 240), color='green')
        result = scanner.scan(manifest, str(source_tree))

        assert result.delta.changed == ['cover.jpg']
        assert result.delta.needs_processing == ['cover.jpg']
        assert manifest.get_image('cover.jpg').hash == old_hash
        assert manifest.get_image('cover.jpg').file_size == os.path.getsize(source_tree / 'cover.jpg')

    def test_existing_metadata_carried_over(self, source_tree, logger):
        manifest = Manifest.create_new()
        scanner = Scanner(logger=logger)
        scanner.scan(manifest, str(source_tree))
        _mark_processed(manifest, str(source_tree))
        manifest.get_image('cover.jpg').width = 300
        manifest.get_image('cover.jpg').sizes = [64]

        scanner.scan(manifest, str(source_tree))

        cover = manifest.get_image('cover.jpg')
        assert cover.width == 300
        assert cover.sizes == [64]

    def test_removed_image_is_orphaned(self, source_tree, logger):
        manifest = Manifest.create_new()
        scanner = Scanner(logger=logger)
        scanner.scan(manifest, str(source_tree))

        os.remove(source_tree / 'Café Photos' / 'cafe.jpg')
        result = scanner.scan(manifest, str(source_tree))

        assert result.delta.removed == ['Café Photos/cafe.jpg']
        assert manifest.get_image('Café Photos/cafe.jpg') is None
        assert manifest.get_entry('Café Photos') is None
        assert manifest.total_images == 4

    def test_branch_entry(self, project_dir, make_image, logger):
        """Test a folder with only subfolders becomes a branch without a page."""
        source = project_dir / 'source'
        make_image(source / 'Archive' / '2019' / 'old.jpg')

        manifest = Manifest.create_new()
        result = Scanner(logger=logger).scan(manifest, str(source))

        archive = manifest.get_entry('Archive')
        assert archive.slug is None
        assert archive.is_branch is True
        assert archive.path == 'archive/'
        assert archive.children[0].path == 'archive/2019/'
        assert result.stats.branches == 1

    def test_index_makes_text_page(self, project_dir, logger):
        """Test a folder with an index file but no images is still a page."""
        about = project_dir / 'source' / 'About'
        about.mkdir()
        (about / '_index.md').write_text(
            '---\ntitle: About Us\nslug: about-us\nhidden: true\n---\nHello\n',
            encoding='utf-8',
        )
        manifest = Manifest.create_new()

        Scanner(logger=logger).scan(manifest, str(project_dir / 'source'))

        entry = manifest.get_entry('About')
        assert entry.slug == 'about-us'
        assert entry.title == 'About Us'
        assert entry.hidden is True
        assert entry.path == 'about-us/'
        assert entry.content == []

    def test_duplicate_slugs_made_unique(self, project_dir, make_image, logger):
        source = project_dir / 'source'
        make_image(source / '01 Trip' / 'a.jpg')
        make_image(source / 'Trip' / 'b.jpg')
        manifest = Manifest.create_new()

        Scanner(logger=logger).scan(manifest, str(source))

        assert [c.slug for c in manifest.root.children] == ['trip', 'trip-2']
        assert manifest.get_entry('Trip').path == 'trip-2/'

    def test_front_matter_error_does_not_abort(self, source_tree, logger):
        """Test a broken index file is reported and the folder still scanned."""
        (source_tree / '01 Events' / '2 Early' / '_index.md').write_text(
            '+++\ntitle = "Never closed"\n', encoding='utf-8'
        )
        manifest = Manifest.create_new()

        result = Scanner(logger=logger).scan(manifest, str(source_tree))

        early = manifest.get_entry('01 Events/2 Early')
        assert early.title == 'Early'
        assert result.stats.front_matter_errors == 1
        assert result.stats.images == 5

    def test_sort_override_from_front_matter(self, project_dir, make_image, logger):
        source = project_dir / 'source'
        for name in ('b.jpg', 'a.jpg', 'c.jpg'):
            make_image(source / 'Set' / name)
        (source / 'Set' / '_index.revela').write_text(
            '+++\nsort = "filename:desc"\n+++\n', encoding='utf-8'
        )
        manifest = Manifest.create_new()

        Scanner(logger=logger).scan(manifest, str(source))

        entry = manifest.get_entry('Set')
        assert entry.sort == 'filename:desc'
        assert [i.filename for i in entry.images] == ['c.jpg', 'b.jpg', 'a.jpg']

    def test_progress_callbacks(self, source_tree, logger):
        progress = MagicMock(spec=ScannerProgress)

        Scanner(logger=logger).scan(Manifest.create_new(), str(source_tree), progress)

        assert progress.on_file_scanned.call_count == 5
        assert progress.on_directory_start.call_count == 7
        progress.on_scan_complete.assert_called_once()


class TestScannerAwkwardFolders:
    """Tests for folders the scan must get past without stopping."""

    def test_whitespace_folder_name(self, project_dir, make_image, logger):
        """Test a folder named only by whitespace falls back to a placeholder slug."""
        source = project_dir / 'source'
        make_image(source / ' ' / 'a.jpg')
        make_image(source / 'Real' / 'b.jpg')
        manifest = Manifest.create_new()

        result = Scanner(logger=logger).scan(manifest, str(source))

        blank = manifest.get_entry(' ')
        assert blank.slug == 'untitled'
        assert blank.title == 'Untitled'
        assert blank.path == 'untitled/'
        assert manifest.get_image(' /a.jpg') is not None
        assert result.stats.images == 2

    def test_whitespace_branch_folder(self, project_dir, make_image, logger):
        """Test a blank branch name adds no path segment."""
        source = project_dir / 'source'
        make_image(source / ' ' / 'Inner' / 'a.jpg')
        manifest = Manifest.create_new()

        Scanner(logger=logger).scan(manifest, str(source))

        assert manifest.get_entry(' ').slug is None
        assert manifest.get_entry(' /Inner').path == 'inner/'

    def test_unreadable_folder_keeps_previous_entries(
        self, project_dir, make_image, monkeypatch, logger
    ):
        """Test images under an unreadable folder are not reported as removed."""
        source = project_dir / 'source'
        make_image(source / 'keep' / 'k.jpg')
        make_image(source / 'locked' / 'l.jpg')
        manifest = Manifest.create_new()
        scanner = Scanner(logger=logger)
        scanner.scan(manifest, str(source))
        _mark_processed(manifest, str(source))

        real_scandir = os.scandir
        locked = os.path.join(str(source), 'locked')

        def scandir(path='.'):
            if path == locked:
                raise PermissionError(13, 'Permission denied', locked)
            return real_scandir(path)

        monkeypatch.setattr(os, 'scandir', scandir)
        result = scanner.scan(manifest, str(source))

        assert result.delta.removed == []
        assert result.delta.unchanged == ['keep/k.jpg']
        assert result.stats.skipped_directories == 1
        kept = manifest.get_image('locked/l.jpg')
        assert kept is not None
        assert kept.hash
        assert manifest.get_entry('locked').path == 'locked/'

    def test_unreadable_new_folder_skipped(self, project_dir, make_image, monkeypatch, logger):
        """Test an unreadable folder never scanned before is simply left out."""
        source = project_dir / 'source'
        make_image(source / 'keep' / 'k.jpg')
        make_image(source / 'locked' / 'l.jpg')
        locked = os.path.join(str(source), 'locked')
        real_scandir = os.scandir

        def scandir(path='.'):
            if path == locked:
                raise PermissionError(13, 'Permission denied', locked)
            return real_scandir(path)

        monkeypatch.setattr(os, 'scandir', scandir)
        manifest = Manifest.create_new()

        result = Scanner(logger=logger).scan(manifest, str(source))

        assert manifest.get_entry('locked') is None
        assert manifest.image_paths == ['keep/k.jpg']
        assert result.stats.skipped_directories == 1
