"""
Sorting - Ordering of gallery content.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .content import ContentItem, ImageContent
from .slugs import natural_key

ASCENDING = 'asc'
DESCENDING = 'desc'
DIRECTIONS = (ASCENDING, DESCENDING)

FIELD_DATE_TAKEN = 'dateTaken'
FIELD_FILENAME = 'filename'
EXIF_FIELD_PREFIX = 'exif.'


@dataclass
class ImageSortSettings:
    """
    How images inside a gallery are ordered.

    Attributes:
        field: dateTaken, filename or exif.<field> (e.g. exif.focalLength)
        direction: asc or desc
        fallback: Field used when the primary field is missing
    """
    field: str = FIELD_DATE_TAKEN
    direction: str = DESCENDING
    fallback: str = FIELD_FILENAME

    @property
    def descending(self) -> bool:
        return self.direction == DESCENDING

    def with_override(self, override: Optional[str]) -> 'ImageSortSettings':
        """
        Apply a per-gallery "field:direction" override.

        "filename" keeps the current direction; "filename:asc" sets both.
        Unknown directions are ignored.
        """
        if not override or not override.strip():
            return self
        sort_field, _, direction = override.strip().partition(':')
        direction = direction.strip().lower()
        return ImageSortSettings(
            field=sort_field.strip() or self.field,
            direction=direction if direction in DIRECTIONS else self.direction,
            fallback=self.fallback,
        )


def _field_value(item: ContentItem, field_name: str) -> Any:
    if field_name == FIELD_FILENAME:
        return item.filename
    if not isinstance(item, ImageContent):
        return None
    if field_name == FIELD_DATE_TAKEN:
        return item.date_taken
    if field_name.startswith(EXIF_FIELD_PREFIX):
        if item.exif is None:
            return None
        return item.exif.get(field_name[len(EXIF_FIELD_PREFIX):])
    return getattr(item, field_name, None)


def _comparable(value: Any) -> Tuple:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value, ())
    return (1, 0, natural_key(str(value)))


def sort_content(items: List[ContentItem], settings: ImageSortSettings) -> List[ContentItem]:
    """
    Sort gallery content.

    Items with a value for the primary field come first, ordered by that
    field; the rest are ordered by the fallback field. Filename is the
    final tie-breaker. Direction applies to both groups.
    """
    with_primary = []
    without_primary = []
    for item in items:
        if _field_value(item, settings.field) is not None:
            with_primary.append(item)
        else:
            without_primary.append(item)

    def key_for(sort_field: str):
        def key(item: ContentItem):
            value = _field_value(item, sort_field)
            return (
                _comparable(value) if value is not None else (2, 0, ()),
                natural_key(item.filename),
            )
        return key

    with_primary.sort(key=key_for(settings.field), reverse=settings.descending)
    without_primary.sort(key=key_for(settings.fallback), reverse=settings.descending)
    return with_primary + without_primary
