"""
FileHasher - Fast change-detection fingerprints for source files.

The fingerprint is SHA256 over the file size (8-byte little-endian), the
first 64 KiB and the last 64 KiB of the file, truncated to 12 hex characters.
Files up to 128 KiB are hashed in full. An edit confined to the untouched
middle of a larger file without a size change is not detected.
"""

import hashlib
import os
import struct
from typing import Dict, Iterable, Optional

CHUNK_SIZE = 64 * 1024
HASH_LENGTH = 12


def compute_hash(path: str) -> str:
    """
    Compute the change-detection fingerprint of a file.

    Args:
        path: Path to the file

    Returns:
        12 lowercase hex characters

    Raises:
        FileNotFoundError: If the file does not exist
    """
    file_size = os.path.getsize(path)
    digest = hashlib.sha256()
    digest.update(struct.pack('<q', file_size))

    with open(path, 'rb') as f:
        if file_size <= CHUNK_SIZE * 2:
            digest.update(f.read())
        else:
            digest.update(f.read(CHUNK_SIZE))
            f.seek(-CHUNK_SIZE, os.SEEK_END)
            digest.update(f.read(CHUNK_SIZE))

    return digest.hexdigest()[:HASH_LENGTH]


def compute_config_hash(
    sizes: Iterable[int],
    formats: Dict[str, int],
    resize_mode: Optional[str] = None
) -> str:
    """
    Fingerprint the image-processing settings.

    Sizes and formats are sorted so that reordering the configuration does
    not invalidate previously generated variants.
    """
    sizes_str = ','.join(str(s) for s in sorted(set(sizes)))
    formats_str = ','.join(
        f"{name.lower()}={quality}" for name, quality in sorted(formats.items())
    )
    payload = f"sizes:{sizes_str}|formats:{formats_str}|resize:{resize_mode or ''}"
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()[:HASH_LENGTH]
