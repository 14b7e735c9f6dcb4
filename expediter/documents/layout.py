# expediter/documents/layout.py
"""Thin wrapper over a ReportLab canvas using top-down millimetre coordinates."""

from __future__ import annotations

from datetime import datetime

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

PAGE_WIDTH = A4[0] / mm      # 210
PAGE_HEIGHT = A4[1] / mm     # 297
MARGIN = 15
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
PAGE_BREAK_Y = PAGE_HEIGHT - 60
CONTINUATION_TOP = 20
FOOTER_HEIGHT = 15
LINE_HEIGHT = 5

FONT = 'Helvetica'
FONT_BOLD = 'Helvetica-Bold'

THEME = {
    'primary':    HexColor('#27AE60'),
    'secondary':  HexColor('#2ECC71'),
    'accent':     HexColor('#1ABC9C'),
    'text':       HexColor('#2C3E50'),
    'light_gray': HexColor('#ECF0F1'),
    'white':      HexColor('#FFFFFF'),
    'black':      HexColor('#000000'),
}


class PdfPage:
    """Drawing surface that tracks the cursor ``y`` from the top of the page.

    ``footer`` is called with this object before every page is emitted.
    """

    def __init__(self, buffer, title: str = '', author: str = '', footer=None,
                 generated_at: datetime | None = None, sender: dict | None = None) -> None:
        self.canvas = canvas.Canvas(buffer, pagesize=A4)
        self.canvas.setTitle(title)
        self.canvas.setAuthor(author)
        self.footer = footer
        self.sender = sender or {}
        self.generated_at = generated_at or datetime.now()
        self.page_number = 1
        self.y = 0.0

    # coordinates -------------------------------------------------------

    @staticmethod
    def _base(top: float, height: float = 0) -> float:
        return (PAGE_HEIGHT - top - height) * mm

    # state -------------------------------------------------------------

    def fill(self, color: str) -> None:
        self.canvas.setFillColor(THEME[color])

    def stroke(self, color: str, width: float = 0.5) -> None:
        self.canvas.setStrokeColor(THEME[color])
        self.canvas.setLineWidth(width)

    def font(self, size: float, bold: bool = False, color: str | None = None) -> None:
        self.canvas.setFont(FONT_BOLD if bold else FONT, size)
        if color:
            self.fill(color)

    # primitives --------------------------------------------------------

    def rect(self, x: float, top: float, width: float, height: float, color: str,
             radius: float = 0) -> None:
        self.fill(color)
        if radius:
            self.canvas.roundRect(x * mm, self._base(top, height), width * mm, height * mm,
                                  radius * mm, stroke=0, fill=1)
        else:
            self.canvas.rect(x * mm, self._base(top, height), width * mm, height * mm,
                             stroke=0, fill=1)

    def line(self, x1: float, top1: float, x2: float, top2: float) -> None:
        self.canvas.line(x1 * mm, self._base(top1), x2 * mm, self._base(top2))

    def text(self, x: float, top: float, value: str, align: str = 'left') -> None:
        value = '' if value is None else str(value)
        if align == 'right':
            self.canvas.drawRightString(x * mm, self._base(top), value)
        elif align == 'center':
            self.canvas.drawCentredString(x * mm, self._base(top), value)
        else:
            self.canvas.drawString(x * mm, self._base(top), value)

    def image(self, reader, x: float, top: float, width: float, height: float) -> None:
        self.canvas.drawImage(reader, x * mm, self._base(top, height), width * mm,
                              height * mm, preserveAspectRatio=True, mask='auto')

    def fit(self, value: str, width: float, size: float, bold: bool = False) -> str:
        """Truncate ``value`` with an ellipsis so it fits ``width`` mm."""
        value = '' if value is None else str(value)
        font = FONT_BOLD if bold else FONT
        limit = width * mm
        if stringWidth(value, font, size) <= limit:
            return value
        while value and stringWidth(value + '...', font, size) > limit:
            value = value[:-1]
        return value + '...'

    def wrap(self, value: str, width: float = CONTENT_WIDTH, size: float = 10) -> list[str]:
        lines = []
        for paragraph in (value or '').split('\n'):
            lines.extend(simpleSplit(paragraph, FONT, size, width * mm) or [''])
        return lines

    # pagination --------------------------------------------------------

    def needs_break(self, height: float = 0) -> bool:
        return self.y + height > PAGE_BREAK_Y

    def new_page(self) -> None:
        self._emit_page()
        self.page_number += 1
        self.y = CONTINUATION_TOP

    def _emit_page(self) -> None:
        if self.footer is not None:
            self.footer(self)
        self.canvas.showPage()

    def finish(self) -> None:
        self._emit_page()
        self.canvas.save()
