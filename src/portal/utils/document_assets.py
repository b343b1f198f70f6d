# File location: src/portal/utils/document_assets.py
import base64
import logging
import os
from io import BytesIO
from typing import Optional

import qrcode
from num2words import num2words

logger = logging.getLogger(__name__)

ASSETS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates", "assets")


def qr_code_data_url(payload: str) -> str:
    """PNG QR code for `payload`, embedded as a data URL."""
    qr = qrcode.QRCode(box_size=6, border=1)
    qr.add_data(payload)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def asset_data_url(filename: str, assets_dir: str = ASSETS_DIR) -> Optional[str]:
    """Branding image as a data URL, or None when the file is not deployed."""
    path = os.path.join(assets_dir, filename)
    if not os.path.isfile(path):
        logger.warning(f"Document asset not found: {path}")
        return None
    ext = os.path.splitext(filename)[1].lstrip(".").lower()
    mime = "image/svg+xml" if ext == "svg" else f"image/{'jpeg' if ext == 'jpg' else ext}"
    with open(path, "rb") as f:
        return f"data:{mime};base64," + base64.b64encode(f.read()).decode("ascii")


def amount_in_words(amount: int) -> str:
    # e.g. 599 -> "Five Hundred And Ninety-Nine Rupees Only"
    words = num2words(amount, lang="en_IN")
    return f"{words.title()} Rupees Only"
