"""
marisk_site/images.py
-----------------------------------------------------------------------------
Decode ``data:`` URI images from admin uploads and write them into the static
image directory.

Only PNG and JPEG are accepted.  Filenames are built from the caller's prefix,
the current epoch milliseconds and eight random hex characters, so a write
never overwrites an existing upload.  Files are never cleaned up, including
the first image of a pair whose second image is rejected.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import secrets
import time
from pathlib import Path

logger = logging.getLogger(__name__)

_DATA_URI_PATTERN = re.compile(r"^data:image/(png|jpeg);base64,(.+)\Z")

# Path of uploaded images relative to the static root.
IMAGE_URL_PREFIX = "assets/img"


def parse_data_uri(data_uri: object) -> tuple[str, bytes] | None:
    """
    Split an image data URI into its file extension and decoded bytes.

    Returns
    -------
    (ext, payload) with ``ext`` either ``"png"`` or ``"jpg"``, or ``None``
    when the value is not a PNG/JPEG base64 data URI.
    """
    if not isinstance(data_uri, str):
        return None
    match = _DATA_URI_PATTERN.match(data_uri)
    if match is None:
        return None
    mime, encoded = match.groups()
    try:
        # Browsers and Node accept unpadded base64; restore the padding.
        padded = encoded + "=" * (-len(encoded) % 4)
        payload = base64.b64decode(padded, validate=True)
    except binascii.Error:
        return None
    ext = "jpg" if mime == "jpeg" else mime
    return ext, payload


def image_filename(prefix: str, ext: str) -> str:
    """``{prefix}-{epoch millis}-{8 hex}.{ext}``"""
    millis = int(time.time() * 1000)
    return f"{prefix}-{millis}-{secrets.token_hex(4)}.{ext}"


def decode_and_store(data_uri: object, prefix: str, image_dir: Path) -> str | None:
    """
    Decode ``data_uri`` and write it under ``image_dir``.

    Parameters
    ----------
    data_uri  : ``data:image/png;base64,...`` or ``data:image/jpeg;base64,...``.
    prefix    : Filename prefix, ``"before"`` or ``"after"``.
    image_dir : Target directory (``<static root>/assets/img``).

    Returns
    -------
    str | None : The static-root-relative path (``assets/img/<name>``), or
                 ``None`` if the data URI was rejected.

    Raises
    ------
    OSError
        If the file can't be written.
    """
    parsed = parse_data_uri(data_uri)
    if parsed is None:
        return None
    ext, payload = parsed

    filename = image_filename(prefix, ext)
    (image_dir / filename).write_bytes(payload)
    logger.info("Stored %s image %s (%d bytes)", prefix, filename, len(payload))
    return f"{IMAGE_URL_PREFIX}/{filename}"
