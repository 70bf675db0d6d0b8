"""Tests for the scan and image pipeline steps."""

import os

import pytest

from gallerygen.cancellation import CancellationToken
from gallerygen.config import ProjectConfig
from gallerygen.errors import ManifestCorrupt, OperationCancelled
from gallerygen.manifest import Manifest
from gallerygen.pipeline import PipelineProgress
from gallerygen.steps import BuildContext, ImagesStep, ScanStep


@pytest.fixture
def config(project_dir):
    config = ProjectConfig(project_dir=str(project_dir))
    config.images.formats = {'jpg': 90}
    config.images.sizes = [64]
    config.images.max_workers = 2
    return config


@pytest.fixture
def photos(project_dir, make_image):
    source = project_dir / 'source'
    make_image(source / 'Trips' / 'beach.jpg', size=(200, 100))
    make_image(source / 'Trips' / 'dunes.jpg', size=(120, 90))
    return source


def _run(step, token=None):
    return step.execute(PipelineProgress(), token or CancellationToken())


class TestBuildContext:
    """Tests for BuildContext."""

    def test_manifest_created_when_missing(self, config, logger):
        context = BuildContext(config, logger=logger)

        assert context.manifest.total_images == 0
        assert context.manifest is context.manifest

    def test_corrupt_manifest_raises(self, config, logger):
        os.makedirs(os.path.dirname(config.manifest_path))
        with open(config.manifest_path, 'w') as f:
            f.write('{broken')

        context = BuildContext(config, logger=logger)

        with pytest.raises(ManifestCorrupt) as exc_info:
            context.manifest
        assert 'corrupt' in str(exc_info.value)

    def test_corrupt_manifest_reinitialized_by_policy(self, config, logger):
        os.makedirs(os.path.dirname(config.manifest_path))
        with open(config.manifest_path, 'w') as f:
            f.write('{broken')
        config.on_corrupt_manifest = 'reinitialize'

        context = BuildContext(config, logger=logger)

        assert context.reinitialize is True
        assert context.manifest.total_images == 0

    def test_image_options(self, config, logger):
        options = BuildContext(config, logger=logger).image_options

        assert options.formats == {'jpg': 90}
        assert options.sizes == [64]
        assert options.output_directory == config.images_output_path


class TestScanStep:
    """Tests for ScanStep."""

    def test_scan_saves_manifest(self, config, photos, logger):
        context = BuildContext(config, quiet=True, logger=logger)

        result = _run(ScanStep(context))

        assert result.success is True
        assert result.items_processed == 2
        assert result.message == '2 new, 0 changed, 0 removed'
        assert os.path.exists(config.manifest_path)
        assert Manifest.load(config.manifest_path).total_images == 2
        assert context.scan_result.stats.images == 2

    def test_corrupt_manifest_fails(self, config, photos, logger):
        os.makedirs(os.path.dirname(config.manifest_path))
        with open(config.manifest_path, 'w') as f:
            f.write('{broken')

        result = _run(ScanStep(BuildContext(config, quiet=True, logger=logger)))

        assert result.success is False
        assert '--reinitialize' in result.message

    def test_corrupt_manifest_reinitialize(self, config, photos, logger):
        os.makedirs(os.path.dirname(config.manifest_path))
        with open(config.manifest_path, 'w') as f:
            f.write('{broken')

        context = BuildContext(config, reinitialize=True, quiet=True, logger=logger)
        result = _run(ScanStep(context))

        assert result.success is True
        assert Manifest.load(config.manifest_path).total_images == 2

    def test_orphan_variants_deleted(self, config, photos, logger):
        """Test removing a source image removes its variant directory."""
        context = BuildContext(config, quiet=True, logger=logger)
        _run(ScanStep(context))
        _run(ImagesStep(context))
        variant_dir = os.path.join(config.images_output_path, 'dunes')
        assert os.path.isdir(variant_dir)

        os.remove(photos / 'Trips' / 'dunes.jpg')
        result = _run(ScanStep(BuildContext(config, quiet=True, logger=logger)))

        assert result.message == '0 new, 0 changed, 1 removed'
        assert not os.path.exists(variant_dir)
        assert os.path.isdir(os.path.join(config.images_output_path, 'beach'))

    def test_orphan_with_shared_stem_kept(self, config, photos, make_image, logger):
        """Test variants stay when another live image has the same stem."""
        make_image(photos / 'Other' / 'beach.jpg', size=(100, 100))
        context = BuildContext(config, quiet=True, logger=logger)
        _run(ScanStep(context))
        _run(ImagesStep(context))

        os.remove(photos / 'Trips' / 'beach.jpg')
        _run(ScanStep(BuildContext(config, quiet=True, logger=logger)))

        assert os.path.isdir(os.path.join(config.images_output_path, 'beach'))

    def test_unreadable_folder_keeps_variants(
        self, config, photos, make_image, monkeypatch, logger
    ):
        """Test an unreadable folder is not mistaken for deleted sources."""
        make_image(photos / 'Locked' / 'cliff.jpg', size=(100, 100))
        context = BuildContext(config, quiet=True, logger=logger)
        _run(ScanStep(context))
        _run(ImagesStep(context))

        real_scandir = os.scandir
        locked = str(photos / 'Locked')

        def scandir(path='.'):
            if path == locked:
                raise PermissionError(13, 'Permission denied', locked)
            return real_scandir(path)

        monkeypatch.setattr(os, 'scandir', scandir)
        result = _run(ScanStep(BuildContext(config, quiet=True, logger=logger)))

        assert result.success is True
        assert result.message == '0 new, 0 changed, 0 removed'
        assert os.path.isdir(os.path.join(config.images_output_path, 'cliff'))
        assert Manifest.load(config.manifest_path).get_image('Locked/cliff.jpg') is not None


class TestImagesStep:
    """Tests for ImagesStep."""

    def test_skip_without_images(self, config, logger):
        result = _run(ImagesStep(BuildContext(config, quiet=True, logger=logger)))

        assert result.success is True
        assert result.skipped is True

    def test_generates_and_saves(self, config, photos, logger):
        context = BuildContext(config, quiet=True, logger=logger)
        _run(ScanStep(context))

        result = _run(ImagesStep(context))

        assert result.success is True
        assert result.items_processed == 2
        assert result.message == '2 variants'
        saved = Manifest.load(config.manifest_path)
        assert saved.config_hash is not None
        assert saved.get_image('Trips/beach.jpg').sizes == [64]

    def test_second_run_skips(self, config, photos, logger):
        context = BuildContext(config, quiet=True, logger=logger)
        _run(ScanStep(context))
        _run(ImagesStep(context))

        result = _run(ImagesStep(BuildContext(config, quiet=True, logger=logger)))

        assert result.skipped is True
        assert result.message == 'All images up to date'

    def test_force(self, config, photos, logger):
        context = BuildContext(config, quiet=True, logger=logger)
        _run(ScanStep(context))
        _run(ImagesStep(context))

        result = _run(ImagesStep(BuildContext(config, force=True, quiet=True, logger=logger)))

        assert result.items_processed == 2

    def test_unsupported_format_fails(self, config, photos, logger):
        config.images.formats = {'bmp': 90}
        context = BuildContext(config, quiet=True, logger=logger)
        _run(ScanStep(context))

        result = _run(ImagesStep(context))

        assert result.success is False
        assert 'bmp' in result.message

    def test_too_many_failures(self, config, photos, logger):
        (photos / 'Trips' / 'broken.jpg').write_bytes(b'not an image')
        config.images.max_failures = 0
        context = BuildContext(config, quiet=True, logger=logger)
        _run(ScanStep(context))

        result = _run(ImagesStep(context))

        assert result.success is False
        assert '1 images failed' in result.message

    def test_cancelled(self, config, photos, logger):
        context = BuildContext(config, quiet=True, logger=logger)
        _run(ScanStep(context))
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelled):
            _run(ImagesStep(context), token)

    def test_content_sorted_after_processing(self, config, project_dir, make_image, logger):
        """Test galleries are re-sorted by date once dates are known."""
        source = project_dir / 'source'
        first = make_image(source / 'Set' / 'a.jpg')
        second = make_image(source / 'Set' / 'b.jpg')
        os.utime(first, (1000000000, 1000000000))
        os.utime(second, (1500000000, 1500000000))
        config.sorting.images.direction = 'asc'
        context = BuildContext(config, quiet=True, logger=logger)
        _run(ScanStep(context))

        _run(ImagesStep(context))

        entry = context.manifest.get_entry('Set')
        assert [i.filename for i in entry.images] == ['a.jpg', 'b.jpg']

        config.sorting.images.direction = 'desc'
        context = BuildContext(config, force=True, quiet=True, logger=logger)
        _run(ImagesStep(context))

        entry = context.manifest.get_entry('Set')
        assert [i.filename for i in entry.images] == ['b.jpg', 'a.jpg']
