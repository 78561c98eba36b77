"""QR code rendering for saved records.

A record's QR code holds the compact JSON of its four fields, so scanning a
printed label gives back the whole entry without a network round-trip. Images
come out as PNG bytes or as ``data:`` URLs that templates can inline.
"""

from __future__ import annotations

import base64
from io import BytesIO

import qrcode
from PIL import Image
from qrcode.exceptions import DataOverflowError
from qrcode.image.pil import PilImage

from ..schemas.record import Record
from .errors import EncodingError

__all__ = [
    "THUMBNAIL_SIZE",
    "SUCCESS_SIZE",
    "HIRES_SIZE",
    "record_payload",
    "encode_png",
    "encode_data_url",
]

THUMBNAIL_SIZE = 128
SUCCESS_SIZE = 256
HIRES_SIZE = 1024
DEFAULT_MARGIN = 1

_ERROR_CORRECTION = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


def record_payload(record: Record) -> bytes:
    return record.payload()


def encode_png(
    payload: bytes,
    size_px: int,
    margin: int = DEFAULT_MARGIN,
    error_correction: str = "M",
) -> bytes:
    """Render ``payload`` as a ``size_px`` square PNG.

    The smallest QR version that fits is chosen; a payload too large for any
    version raises ``EncodingError`` rather than being cut short. When the
    symbol needs more than ``size_px`` modules the image comes out one pixel
    per module, so it is larger than requested but still scannable.
    """

    if size_px <= 0:
        raise ValueError("size_px must be positive")
    if margin < 0:
        raise ValueError("margin must not be negative")

    qr = qrcode.QRCode(
        version=None,
        error_correction=_ERROR_CORRECTION[error_correction],
        box_size=1,
        border=margin,
        image_factory=PilImage,
    )
    qr.add_data(payload)
    try:
        qr.make(fit=True)
    except DataOverflowError as exc:
        raise EncodingError(details={"payload_bytes": len(payload)}) from exc

    # Draw with whole-pixel modules and pad with white up to the requested width.
    # A symbol wider than size_px stays at one pixel per module: shrinking it
    # would merge modules and leave an unreadable code.
    modules = qr.modules_count + 2 * margin
    qr.box_size = max(1, size_px // modules)
    img = qr.make_image(fill_color="black", back_color="white").get_image()
    if img.size[0] < size_px:
        canvas = Image.new(img.mode, (size_px, size_px), "white")
        offset = (size_px - img.size[0]) // 2
        canvas.paste(img, (offset, offset))
        img = canvas

    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def encode_data_url(
    payload: bytes,
    size_px: int,
    margin: int = DEFAULT_MARGIN,
    error_correction: str = "M",
) -> str:
    png = encode_png(payload, size_px, margin=margin, error_correction=error_correction)
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
