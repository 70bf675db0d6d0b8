"""
Exif - Camera metadata extraction from source images.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from PIL import Image
from PIL.ExifTags import GPSTAGS, TAGS

EXIF_IFD = 0x8769
GPS_IFD = 0x8825

EXIF_DATE_FORMAT = '%Y:%m:%d %H:%M:%S'

EXIF_KEY_MAP = {v: k for k, v in TAGS.items()}
GPS_KEY_MAP = {v: k for k, v in GPSTAGS.items()}

DEFAULT_MODEL_NAMES = {
    'ILCE-7M4': 'α 7 IV',
    'ILCE-7M3': 'α 7 III',
    'ILCE-7M2': 'α 7 II',
    'ILCE-7': 'α 7',
    'ILCE-7RM5': 'α 7R V',
    'ILCE-7RM4A': 'α 7R IVA',
    'ILCE-7RM4': 'α 7R IV',
    'ILCE-7RM3A': 'α 7R IIIA',
    'ILCE-7RM3': 'α 7R III',
    'ILCE-7RM2': 'α 7R II',
    'ILCE-7R': 'α 7R',
    'ILCE-7SM3': 'α 7S III',
    'ILCE-7SM2': 'α 7S II',
    'ILCE-7S': 'α 7S',
    'ILCE-7CM2': 'α 7C II',
    'ILCE-7CR': 'α 7CR',
    'ILCE-7C': 'α 7C',
    'ILCE-9M3': 'α 9 III',
    'ILCE-9M2': 'α 9 II',
    'ILCE-9': 'α 9',
    'ILCE-1': 'α 1',
    'ILCE-6700': 'α 6700',
    'ILCE-6600': 'α 6600',
    'ILCE-6500': 'α 6500',
    'ILCE-6400': 'α 6400',
    'ILCE-6300': 'α 6300',
    'ILCE-6100': 'α 6100',
    'ILCE-6000': 'α 6000',
    'ZV-E10M2': 'ZV-E10 II',
    'ZV-E10': 'ZV-E10',
    'ZV-E1': 'ZV-E1',
}

DEFAULT_MAKE_NAMES = {
    'SONY': 'Sony',
    'CANON': 'Canon',
    'NIKON CORPORATION': 'Nikon',
    'NIKON': 'Nikon',
    'FUJIFILM': 'Fujifilm',
    'OLYMPUS CORPORATION': 'Olympus',
    'OLYMPUS': 'Olympus',
    'OM DIGITAL SOLUTIONS': 'OM System',
    'PANASONIC': 'Panasonic',
    'LEICA': 'Leica',
    'RICOH IMAGING COMPANY, LTD.': 'Pentax',
    'PENTAX': 'Pentax',
    'HASSELBLAD': 'Hasselblad',
    'DJI': 'DJI',
    'APPLE': 'Apple',
    'SAMSUNG': 'Samsung',
    'GOOGLE': 'Google',
    'HUAWEI': 'Huawei',
}


@dataclass
class ExifData:
    """
    Photographer-relevant EXIF fields of one image.

    Attributes:
        make: Camera manufacturer, mapped to a friendly name
        model: Camera model, mapped to a friendly name
        lens_model: Lens name without trailing parenthesised codes
        date_taken: ISO timestamp from DateTimeOriginal
        f_number: Aperture, e.g. 2.8
        exposure_time: Exposure in seconds, e.g. 0.004
        iso: ISO speed
        focal_length: Focal length in mm
        gps_latitude: Decimal degrees, negative south
        gps_longitude: Decimal degrees, negative west
    """
    make: Optional[str] = None
    model: Optional[str] = None
    lens_model: Optional[str] = None
    date_taken: Optional[str] = None
    f_number: Optional[float] = None
    exposure_time: Optional[float] = None
    iso: Optional[int] = None
    focal_length: Optional[float] = None
    gps_latitude: Optional[float] = None
    gps_longitude: Optional[float] = None

    _KEYS = {
        'make': 'make',
        'model': 'model',
        'lens_model': 'lensModel',
        'date_taken': 'dateTaken',
        'f_number': 'fNumber',
        'exposure_time': 'exposureTime',
        'iso': 'iso',
        'focal_length': 'focalLength',
        'gps_latitude': 'gpsLatitude',
        'gps_longitude': 'gpsLongitude',
    }

    @property
    def is_empty(self) -> bool:
        return all(v is None for v in asdict(self).values())

    @property
    def exposure_display(self) -> Optional[str]:
        """Exposure as photographers write it: "1/250" or "2s"."""
        if not self.exposure_time:
            return None
        if self.exposure_time >= 1:
            return f"{self.exposure_time:g}s"
        return f"1/{round(1 / self.exposure_time)}"

    def get(self, field_name: str) -> Any:
        """Look up a field by attribute or serialized name (for sorting)."""
        for attr, key in self._KEYS.items():
            if field_name in (attr, key) or field_name.lower() == key.lower():
                return getattr(self, attr)
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization, omitting empty fields."""
        return {
            key: getattr(self, attr)
            for attr, key in self._KEYS.items()
            if getattr(self, attr) is not None
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ExifData':
        return cls(**{attr: data.get(key) for attr, key in cls._KEYS.items()})


def extract_exif_value(raw: Any) -> Optional[str]:
    """
    Reduce a raw tag value to its display text.

    Annotated strings of the form "SONY (SONY, ASCII, 5 components, 5 bytes)"
    are cut at the first " (". Bytes are decoded as UTF-8 and NUL padding is
    dropped.
    """
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode('utf-8', errors='ignore')
    text = str(raw).replace('\x00', '').strip()
    if not text:
        return None
    meta_start = text.find(' (')
    if meta_start > 0:
        text = text[:meta_start].strip()
    return text


def parse_exif_number(value: Any) -> Optional[float]:
    """
    Parse a numeric EXIF value.

    Accepts numbers, Pillow rationals, (numerator, denominator) tuples and
    text such as "28/10", "1/250 sec." or "2.8 (2.8, Rational, ...)".
    """
    if value is None:
        return None
    if isinstance(value, (tuple, list)):
        if len(value) == 1:
            return parse_exif_number(value[0])
        if len(value) == 2 and all(isinstance(v, (int, float)) for v in value):
            numerator, denominator = value
            return float(numerator) / denominator if denominator else None
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, (str, bytes)):
        # IFDRational and friends
        try:
            number = float(value)
        except (TypeError, ValueError, ZeroDivisionError):
            return None
        return None if number != number else number

    text = extract_exif_value(value)
    if not text:
        return None
    token = text.split()[0]
    if '/' in token:
        numerator, _, denominator = token.partition('/')
        try:
            denominator_value = float(denominator)
            return float(numerator) / denominator_value if denominator_value else None
        except ValueError:
            return None
    try:
        return float(token)
    except ValueError:
        return None


def parse_exif_date(value: Any) -> Optional[datetime]:
    """Parse "YYYY:MM:DD HH:MM:SS"; returns None for missing or malformed values."""
    text = extract_exif_value(value)
    if not text:
        return None
    try:
        return datetime.strptime(text[:19], EXIF_DATE_FORMAT)
    except ValueError:
        return None


def gps_to_decimal(dms: Optional[Sequence[Any]], ref: Any) -> Optional[float]:
    """Convert (degrees, minutes, seconds) plus N/S/E/W reference to decimal degrees."""
    if not dms or len(dms) != 3:
        return None
    parts = [parse_exif_number(v) for v in dms]
    if any(p is None for p in parts):
        return None
    degrees, minutes, seconds = parts
    decimal = degrees + minutes / 60 + seconds / 3600
    ref_text = (extract_exif_value(ref) or '').upper()
    if ref_text in ('S', 'W'):
        decimal = -decimal
    return round(decimal, 6)


def clean_lens_model(lens_model: Optional[str]) -> Optional[str]:
    """"Sony FE 50mm F1.8 (SEL50F18F)" -> "Sony FE 50mm F1.8"."""
    if not lens_model or not lens_model.strip():
        return lens_model
    cut = lens_model.find('(')
    if cut > 0:
        lens_model = lens_model[:cut]
    return lens_model.strip()


class CameraNameMapper:
    """
    Maps EXIF make/model codes to friendly names.

    Lookups are case-insensitive; configured names override the defaults.
    Unknown values are returned unchanged.
    """

    def __init__(
        self,
        makes: Optional[Dict[str, str]] = None,
        models: Optional[Dict[str, str]] = None
    ):
        self.make_names = {k.upper(): v for k, v in DEFAULT_MAKE_NAMES.items()}
        self.model_names = {k.upper(): v for k, v in DEFAULT_MODEL_NAMES.items()}
        for key, value in (makes or {}).items():
            self.make_names[key.upper()] = value
        for key, value in (models or {}).items():
            self.model_names[key.upper()] = value

    def map_make(self, make: Optional[str]) -> Optional[str]:
        if not make or not make.strip():
            return make
        return self.make_names.get(make.strip().upper(), make.strip())

    def map_model(self, model: Optional[str]) -> Optional[str]:
        if not model or not model.strip():
            return model
        return self.model_names.get(model.strip().upper(), model.strip())


class ExifReader:
    """
    Reads ExifData from an opened Pillow image.
    """

    def __init__(
        self,
        camera_mapper: Optional[CameraNameMapper] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.camera_mapper = camera_mapper or CameraNameMapper()
        self.logger = logger or logging.getLogger(__name__)

    def read(self, img: Image.Image) -> Optional[ExifData]:
        """
        Extract EXIF data from an image.

        Returns:
            ExifData, or None when the image has no usable EXIF or parsing fails
        """
        try:
            exif = img.getexif()
            if not exif:
                return None
            return self._parse(exif)
        except Exception as e:
            self.logger.debug(f"EXIF extraction failed: {e}")
            return None

    def _parse(self, exif: Image.Exif) -> Optional[ExifData]:
        details = exif.get_ifd(EXIF_IFD)
        gps = exif.get_ifd(GPS_IFD)

        def tag(name: str) -> Any:
            key = EXIF_KEY_MAP[name]
            value = details.get(key)
            return value if value is not None else exif.get(key)

        def gps_tag(name: str) -> Any:
            return gps.get(GPS_KEY_MAP[name])

        taken = parse_exif_date(tag('DateTimeOriginal'))
        iso = parse_exif_number(tag('ISOSpeedRatings'))
        focal_length = parse_exif_number(tag('FocalLength'))
        f_number = parse_exif_number(tag('FNumber'))

        data = ExifData(
            make=self.camera_mapper.map_make(extract_exif_value(tag('Make'))),
            model=self.camera_mapper.map_model(extract_exif_value(tag('Model'))),
            lens_model=clean_lens_model(extract_exif_value(tag('LensModel'))),
            date_taken=taken.isoformat() if taken else None,
            f_number=round(f_number, 2) if f_number is not None else None,
            exposure_time=parse_exif_number(tag('ExposureTime')),
            iso=int(iso) if iso is not None else None,
            focal_length=round(focal_length, 2) if focal_length is not None else None,
            gps_latitude=gps_to_decimal(gps_tag('GPSLatitude'), gps_tag('GPSLatitudeRef')),
            gps_longitude=gps_to_decimal(gps_tag('GPSLongitude'), gps_tag('GPSLongitudeRef')),
        )
        return None if data.is_empty else data
