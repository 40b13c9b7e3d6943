import base64
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q

_ERROR_LEVELS = {"L": ERROR_CORRECT_L, "M": ERROR_CORRECT_M, "Q": ERROR_CORRECT_Q, "H": ERROR_CORRECT_H}


class QRRenderError(RuntimeError):
    pass


def render_png(payload: str, error_correction: str = "H", box_size: int = 10, margin: int = 2) -> bytes:
    """Render the ticket payload as PNG bytes.

    Presentation only: nothing here decides whether a ticket is genuine.
    """
    level = _ERROR_LEVELS.get(error_correction.upper())
    if level is None:
        raise QRRenderError(f"unknown error correction level {error_correction!r}")
    try:
        qr = qrcode.QRCode(error_correction=level, box_size=box_size, border=margin)
        qr.add_data(payload)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
        buf = BytesIO()
        img.save(buf, format="PNG")
    except Exception as e:
        raise QRRenderError(str(e)) from e
    return buf.getvalue()


def render_data_url(payload: str, **options) -> str:
    return "data:image/png;base64," + base64.b64encode(render_png(payload, **options)).decode("ascii")
