from __future__ import annotations

import io
from typing import Optional

import qrcode


def verification_payload(certificate_number: str, verify_url: Optional[str] = None) -> str:
    """What the QR code encodes: the verify URL with the number appended, or the bare number."""
    if not verify_url:
        return certificate_number
    sep = "&" if "?" in verify_url else "?"
    return f"{verify_url}{sep}number={certificate_number}"


def certificate_qr_png(certificate_number: str, verify_url: Optional[str] = None) -> bytes:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=2,
    )
    qr.add_data(verification_payload(certificate_number, verify_url))
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
