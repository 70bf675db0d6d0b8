"""
VariantGenerator - Produces resized, re-encoded variants of one source image.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Set, Tuple

from PIL import Image, ImageOps

from .content import ImageContent
from .errors import UnsupportedFormatError
from .exif import ExifData, ExifReader
from .file_hasher import compute_hash
from .image_options import ImageProcessingOptions, Variant

ORIENTATION_TAG = 0x0112

# EXIF orientations that swap width and height
TRANSPOSED_ORIENTATIONS = (5, 6, 7, 8)


@dataclass
class VariantResult:
    """Outcome of processing one image."""
    content: ImageContent
    variants_written: int = 0
    bytes_written: int = 0


def variant_path(output_directory: str, stem: str, size: int, fmt: str) -> str:
    """Path of one variant: <output>/<stem>/<size>.<format>."""
    return os.path.join(output_directory, stem, f"{size}.{fmt}")


def existing_variants(
    output_directory: str,
    stem: str,
    variants: List[Variant]
) -> List[Variant]:
    """Return the pairs whose variant file exists and is not empty."""
    present = []
    for size, fmt in variants:
        path = variant_path(output_directory, stem, size, fmt)
        try:
            if os.path.getsize(path) > 0:
                present.append((size, fmt))
        except OSError:
            continue
    return present


def candidate_sizes(
    width: int,
    height: int,
    sizes: List[int],
    resize_mode: str = 'longest'
) -> List[int]:
    """
    Configured sizes that need no upscaling, ascending.

    A size never exceeds the source width, nor the dimension the resize
    mode measures.
    """
    if resize_mode == 'height':
        reference = height
    elif resize_mode == 'width':
        reference = width
    else:
        reference = max(width, height)
    return sorted({s for s in sizes if s <= width and s <= reference})


class VariantGenerator:
    """
    Generates image variants using Pillow.

    Metadata is read once from the file header; every (size, format) pair
    then re-opens and decodes the source independently, so no decoded image
    is shared between pairs.
    """

    PIL_FORMATS = {
        'jpg': 'JPEG',
        'jpeg': 'JPEG',
        'webp': 'WEBP',
        'png': 'PNG',
        'avif': 'AVIF',
    }

    def __init__(
        self,
        exif_reader: Optional[ExifReader] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize variant generator.

        Args:
            exif_reader: EXIF reader (default: one with the stock camera names)
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger(__name__)
        self.exif_reader = exif_reader or ExifReader(logger=self.logger)

    def check_formats(self, formats) -> None:
        """
        Ensure every output format can be encoded.

        Raises:
            UnsupportedFormatError: For the first format that cannot
        """
        Image.init()
        for fmt in formats:
            pil_format = self.PIL_FORMATS.get(fmt.lower())
            if pil_format is None or pil_format not in Image.SAVE:
                raise UnsupportedFormatError(fmt)

    def read_metadata(self, source_file: str) -> Tuple[int, int, Optional[ExifData]]:
        """
        Read display dimensions and EXIF without decoding pixel data.

        Returns:
            (width, height, exif) with width/height after EXIF rotation
        """
        with Image.open(source_file) as img:
            width, height = img.size
            try:
                orientation = img.getexif().get(ORIENTATION_TAG)
            except Exception:
                orientation = None
            exif = self.exif_reader.read(img)

        if orientation in TRANSPOSED_ORIENTATIONS:
            width, height = height, width
        return width, height, exif

    def generate_variants(
        self,
        source_file: str,
        options: ImageProcessingOptions,
        source_path: Optional[str] = None
    ) -> ImageContent:
        """
        Generate variants for one image.

        Args:
            source_file: Path to the source image
            options: Sizes, formats, output directory and optional restriction
            source_path: Manifest key for the image (default: file name)

        Returns:
            ImageContent describing the variants now on disk

        Raises:
            FileNotFoundError: If the source file is missing
            UnsupportedFormatError: If an output format cannot be encoded
        """
        return self.process(source_file, options, source_path).content

    def process(
        self,
        source_file: str,
        options: ImageProcessingOptions,
        source_path: Optional[str] = None
    ) -> VariantResult:
        """Like generate_variants, but also reports how much was written."""
        self.check_formats(options.formats)
        if not os.path.isfile(source_file):
            raise FileNotFoundError(f"Source image not found: {source_file}")

        file_hash = compute_hash(source_file)
        width, height, exif = self.read_metadata(source_file)

        stem = os.path.splitext(os.path.basename(source_file))[0]
        formats = sorted(fmt.lower() for fmt in options.formats)
        sizes = candidate_sizes(width, height, options.sizes, options.resize_mode)
        all_pairs = [(size, fmt) for size in sizes for fmt in formats]

        if options.variants_to_generate is not None:
            wanted: Set[Variant] = {
                (int(size), fmt.lower()) for size, fmt in options.variants_to_generate
            }
            pairs = [p for p in all_pairs if p in wanted]
        else:
            pairs = all_pairs

        os.makedirs(os.path.join(options.output_directory, stem), exist_ok=True)

        bytes_written = 0
        for size, fmt in pairs:
            out_path = variant_path(options.output_directory, stem, size, fmt)
            quality = options.formats.get(fmt, options.formats.get(fmt.upper(), 85))
            bytes_written += self._write_variant(
                source_file, out_path, size, fmt, quality, options.resize_mode
            )
            self.logger.debug(f"Wrote {out_path}")

        if options.variants_to_generate is not None:
            present = existing_variants(options.output_directory, stem, all_pairs)
        else:
            present = pairs

        content = ImageContent(
            source_path=source_path or os.path.basename(source_file),
            width=width,
            height=height,
            sizes=sorted({size for size, _ in present}),
            formats=sorted({fmt for _, fmt in present}),
            hash=file_hash,
            file_size=os.path.getsize(source_file),
            date_taken=self._date_taken(source_file, exif),
            exif=exif,
            processed_at=datetime.now().isoformat(timespec='seconds'),
        )
        return VariantResult(
            content=content,
            variants_written=len(pairs),
            bytes_written=bytes_written,
        )

    def delete_variants(self, output_directory: str, stem: str) -> bool:
        """Delete the variant directory of one image; returns False if absent."""
        path = os.path.join(output_directory, stem)
        if not os.path.isdir(path):
            return False
        shutil.rmtree(path)
        self.logger.debug(f"Deleted variants: {path}")
        return True

    def _write_variant(
        self,
        source_file: str,
        out_path: str,
        size: int,
        fmt: str,
        quality: int,
        resize_mode: str
    ) -> int:
        pil_format = self.PIL_FORMATS[fmt]

        with Image.open(source_file) as source:
            img = ImageOps.exif_transpose(source)
            img = self._convert_color_mode(img, pil_format)

            if resize_mode == 'width':
                box = (size, img.height)
            elif resize_mode == 'height':
                box = (img.width, size)
            else:
                box = (size, size)
            img.thumbnail(box, Image.Resampling.LANCZOS)

            if pil_format == 'JPEG':
                img.save(out_path, format='JPEG', quality=quality, optimize=True)
            elif pil_format == 'PNG':
                img.save(out_path, format='PNG', compress_level=9)
            elif pil_format == 'WEBP':
                img.save(out_path, format='WEBP', quality=quality, method=4)
            else:
                img.save(out_path, format=pil_format, quality=quality)

        return os.path.getsize(out_path)

    def _convert_color_mode(self, img: Image.Image, pil_format: str) -> Image.Image:
        """Convert image to a color mode the output format can store."""
        if pil_format != 'JPEG':
            if img.mode in ('RGB', 'RGBA'):
                return img
            if img.mode in ('LA', 'PA') or 'transparency' in img.info:
                return img.convert('RGBA')
            return img.convert('RGB')

        if img.mode in ('RGBA', 'LA'):
            background = Image.new('RGB', img.size, (255, 255, 255))
            if img.mode == 'LA':
                img = img.convert('RGBA')
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode == 'P':
            img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode != 'RGB':
            return img.convert('RGB')
        return img

    @staticmethod
    def _date_taken(source_file: str, exif: Optional[ExifData]) -> str:
        if exif and exif.date_taken:
            return exif.date_taken
        mtime = os.path.getmtime(source_file)
        return datetime.fromtimestamp(mtime).isoformat(timespec='seconds')
