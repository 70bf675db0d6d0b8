"""
ImageProcessingOptions - Settings handed to the variant generator.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

Variant = Tuple[int, str]


@dataclass
class ImageProcessingOptions:
    """
    What to generate for each image.

    Attributes:
        formats: Output format -> quality
        sizes: Target sizes in pixels
        output_directory: Root directory for variant files
        resize_mode: longest, width or height
        variants_to_generate: Restrict work to these (size, format) pairs;
            None means every pair
    """
    formats: Dict[str, int]
    sizes: List[int]
    output_directory: str
    resize_mode: str = 'longest'
    variants_to_generate: Optional[List[Variant]] = None

    def restricted_to(self, variants: Optional[List[Variant]]) -> 'ImageProcessingOptions':
        """Copy of these options limited to the given pairs."""
        return ImageProcessingOptions(
            formats=dict(self.formats),
            sizes=list(self.sizes),
            output_directory=self.output_directory,
            resize_mode=self.resize_mode,
            variants_to_generate=list(variants) if variants is not None else None,
        )

    @classmethod
    def from_config(cls, image_config, output_directory: str) -> 'ImageProcessingOptions':
        """Build options from an ImageConfig."""
        return cls(
            formats={k.lower(): v for k, v in image_config.formats.items()},
            sizes=sorted(set(image_config.sizes)),
            output_directory=output_directory,
            resize_mode=image_config.resize_mode,
        )
