"""Local QR rendering of bin URLs for terminals."""

from typing import Optional, TextIO

import qrcode


def render_terminal_qr(data: str, out: Optional[TextIO] = None) -> None:
    """
    Print a compact QR code for data using half-block characters.

    Args:
        data: Text to encode, typically a bin URL
        out: Text stream to write to (stdout if None)
    """
    code = qrcode.QRCode(border=1)
    code.add_data(data)
    code.make(fit=True)
    code.print_ascii(out=out, invert=True)
