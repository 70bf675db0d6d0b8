"""
Pytest fixtures for gallerygen tests.
"""

import os

import pytest


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')


@pytest.fixture
def make_image():
    """Fixture providing a function that writes a test image to disk."""
    from PIL import Image

    def _make_image(path, size=(100, 100), color='red', fmt=None, mode='RGB'):
        path = str(path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        fill = color if mode == 'RGB' else (255, 0, 0, 128)
        img = Image.new(mode, size, color=fill)
        img.save(path, format=fmt)
        return path

    return _make_image


@pytest.fixture
def sample_png_bytes():
    """Fixture providing sample PNG image bytes with transparency."""
    from PIL import Image
    import io

    img = Image.new('RGBA', (100, 100), color=(255, 0, 0, 128))
    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def project_dir(tmp_path):
    """Fixture providing an empty project with a source directory."""
    (tmp_path / 'source').mkdir()
    return tmp_path


@pytest.fixture
def source_tree(project_dir, make_image):
    """
    Fixture providing a small source tree:

        source/
            cover.jpg
            01 Events/
                _index.revela   (title = "All Events")
                2024 Summer Trip/
                    beach.jpg
                    notes.md
                10 Later/
                    late.png
                2 Early/
                    early.jpg
            Café Photos/
                cafe.jpg
            _drafts/
                draft.jpg
            Empty/
    """
    source = project_dir / 'source'
    make_image(source / 'cover.jpg', size=(300, 200))
    make_image(source / '01 Events' / '2024 Summer Trip' / 'beach.jpg', size=(400, 300))
    (source / '01 Events' / '2024 Summer Trip' / 'notes.md').write_text('# Notes\n')
    make_image(source / '01 Events' / '10 Later' / 'late.png', size=(200, 100))
    make_image(source / '01 Events' / '2 Early' / 'early.jpg', size=(200, 100))
    (source / '01 Events' / '_index.revela').write_text('+++\ntitle = "All Events"\n+++\n')
    make_image(source / 'Café Photos' / 'cafe.jpg', size=(150, 150))
    make_image(source / '_drafts' / 'draft.jpg', size=(50, 50))
    (source / 'Empty').mkdir()
    return source


@pytest.fixture
def sample_image_content():
    """Fixture providing processed image content."""
    from gallerygen.content import ImageContent
    from gallerygen.exif import ExifData

    return ImageContent(
        source_path='events/summer/beach.jpg',
        width=4000,
        height=3000,
        sizes=[640, 1280],
        formats=['jpg', 'webp'],
        hash='a1b2c3d4e5f6',
        file_size=2500000,
        date_taken='2024-07-01T12:00:00',
        exif=ExifData(make='Sony', model='α 7 IV', f_number=2.8, iso=100),
        processed_at='2024-07-02T08:00:00',
    )


@pytest.fixture
def sample_manifest(sample_image_content):
    """Fixture providing a manifest with three images in two galleries."""
    from gallerygen.content import ImageContent
    from gallerygen.manifest import Manifest

    manifest = Manifest.create_new()
    manifest.config_hash = 'cfg000000000'
    manifest.set_image(sample_image_content.source_path, sample_image_content)
    manifest.set_image(
        'events/summer/sunset.jpg',
        ImageContent(source_path='events/summer/sunset.jpg', hash='bbbbbbbbbbbb'),
    )
    manifest.set_image(
        'portraits/anna.jpg',
        ImageContent(source_path='portraits/anna.jpg', hash='cccccccccccc'),
    )
    return manifest


@pytest.fixture
def image_options(tmp_path):
    """Fixture providing small image processing options."""
    from gallerygen.image_options import ImageProcessingOptions

    return ImageProcessingOptions(
        formats={'jpg': 90, 'webp': 85},
        sizes=[64, 128],
        output_directory=str(tmp_path / 'output' / 'images'),
    )
