from __future__ import annotations

import io
from typing import BinaryIO

import qrcode
from PIL import Image, UnidentifiedImageError
from pyzbar.pyzbar import decode as pyzbar_decode

from ..core.exceptions import ValidationError


def render_qr_png(data: str) -> bytes:
    """PNG bytes of a QR code for ``data`` (front-desk printout)."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def decode_qr_image(stream: BinaryIO) -> str:
    """Text of the first QR/barcode found in an uploaded photo."""
    try:
        img = Image.open(stream).convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError("Uploaded file is not a readable image") from exc

    decoded = pyzbar_decode(img)
    if not decoded:
        raise ValidationError("No QR code found in the image")
    return decoded[0].data.decode("utf-8").strip()
