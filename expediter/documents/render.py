# expediter/documents/render.py
"""Draw invoice and proposal view models into PDF bytes."""

from __future__ import annotations

import base64
import logging
import os
from datetime import datetime
from io import BytesIO

from reportlab.lib.utils import ImageReader

from expediter.documents.layout import (
    CONTENT_WIDTH,
    FOOTER_HEIGHT,
    LINE_HEIGHT,
    MARGIN,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    PdfPage,
)
from expediter.errors import DocumentGenerationError

log = logging.getLogger(__name__)

HEADER_HEIGHT = 40
ROW_HEIGHT = 8
TABLE_HEADER_HEIGHT = 10
SUMMARY_WIDTH = 80
LOGO_SIZE = 30


def _draw_footer(page: PdfPage) -> None:
    sender = page.sender
    page.rect(0, PAGE_HEIGHT - FOOTER_HEIGHT, PAGE_WIDTH, FOOTER_HEIGHT, 'primary')
    page.font(9, color='white')
    page.text(PAGE_WIDTH / 2, PAGE_HEIGHT - 8,
              f"{sender.get('name', '')} | {sender.get('tagline', '')}", align='center')
    page.text(PAGE_WIDTH - MARGIN, PAGE_HEIGHT - 8,
              'Generated: ' + page.generated_at.strftime('%m/%d/%Y %H:%M'), align='right')
    page.text(MARGIN, PAGE_HEIGHT - 8, f"Page {page.page_number}")


def _draw_logo(page: PdfPage, logo_path: str | None) -> bool:
    """Draw the logo if one is configured; failures only cost the logo."""
    if not logo_path:
        return False
    try:
        if not os.path.exists(logo_path):
            raise FileNotFoundError(logo_path)
        page.image(ImageReader(logo_path), MARGIN, 5, LOGO_SIZE, LOGO_SIZE)
    except Exception:
        log.exception("Error adding logo from %s", logo_path)
        return False
    return True


def draw_header(page: PdfPage, view: dict, logo_path: str | None = None) -> None:
    sender = view['sender']
    page.rect(0, 0, PAGE_WIDTH, HEADER_HEIGHT, 'primary')
    page.rect(0, HEADER_HEIGHT, PAGE_WIDTH, 5, 'secondary')

    x = 50 if _draw_logo(page, logo_path) else MARGIN
    page.font(18, bold=True, color='white')
    page.text(x, 15, sender.get('name', ''))
    page.font(12)
    page.text(x, 22, sender.get('contact', ''))
    phones = f"Phone: {sender.get('phone', '')}"
    if sender.get('direct_phone'):
        phones += f" | Direct: {sender['direct_phone']}"
    page.text(x, 29, phones)
    page.text(x, 36, f"Email: {sender.get('email', '')}")

    page.font(24, bold=True)
    page.text(PAGE_WIDTH - MARGIN, 25, view['label'], align='right')
    page.y = 55


def draw_info_box(page: PdfPage, rows: list) -> None:
    height = 8 * len(rows) + 4
    page.rect(MARGIN, page.y, CONTENT_WIDTH, height, 'light_gray', radius=3)
    for index, (label, value) in enumerate(rows, start=1):
        top = page.y + 8 * index
        page.font(10, bold=True, color='text')
        page.text(MARGIN + 5, top, label)
        page.font(10)
        page.text(MARGIN + 40, top, value)
    page.y += height + 10


def draw_party_boxes(page: PdfPage, view: dict) -> None:
    col_width = CONTENT_WIDTH / 2
    boxes = [
        (MARGIN, view['counterparty']),
        (MARGIN + col_width + 5, view['project']),
    ]
    line_count = max(len(view['counterparty']['lines']), len(view['project']['lines']))
    height = 14 + 8 * line_count
    for x, box in boxes:
        page.rect(x, page.y, col_width - 5, height, 'light_gray', radius=3)
        page.font(12, bold=True, color='text')
        page.text(x + 5, page.y + 10, box['heading'])
        page.font(10)
        for index, line in enumerate(box['lines']):
            page.text(x + 5, page.y + 18 + 8 * index, page.fit(line, col_width - 15, 10))
    page.y += height + 10


def draw_section(page: PdfPage, title: str, body: str) -> None:
    """Colored title bar followed by word-wrapped body text."""
    if page.needs_break(TABLE_HEADER_HEIGHT + LINE_HEIGHT):
        page.new_page()
    page.rect(MARGIN, page.y, CONTENT_WIDTH, 10, 'secondary')
    page.font(12, bold=True, color='white')
    page.text(MARGIN + 5, page.y + 7, title)
    page.y += 15
    draw_paragraph(page, body)
    page.y += 5


def draw_paragraph(page: PdfPage, body: str) -> None:
    page.font(10, color='text')
    for line in page.wrap(body):
        if page.y > PAGE_HEIGHT - FOOTER_HEIGHT - 10:
            page.new_page()
            page.font(10, color='text')
        page.text(MARGIN, page.y, line)
        page.y += LINE_HEIGHT


def _column_x(column: dict) -> float:
    if column['right'] is None:
        return MARGIN + 5
    return PAGE_WIDTH - MARGIN - column['right']


def draw_table_header(page: PdfPage, columns: list) -> None:
    page.rect(MARGIN, page.y, CONTENT_WIDTH, TABLE_HEADER_HEIGHT, 'primary')
    page.font(10, bold=True, color='white')
    for column in columns:
        page.text(_column_x(column), page.y + 7, column['title'], align=column['align'])
    page.y += TABLE_HEADER_HEIGHT


def draw_table(page: PdfPage, columns: list, rows: list) -> None:
    """Item table; repeats the header row on every continuation page."""
    if page.needs_break():
        page.new_page()
    draw_table_header(page, columns)
    first_width = _column_x(columns[1]) - MARGIN - 25 if len(columns) > 1 else CONTENT_WIDTH
    for index, row in enumerate(rows):
        if page.needs_break():
            page.new_page()
            draw_table_header(page, columns)
        if index % 2 == 0:
            page.rect(MARGIN, page.y, CONTENT_WIDTH, ROW_HEIGHT, 'light_gray')
        page.font(10, color='text')
        for col_index, (column, value) in enumerate(zip(columns, row)):
            if col_index == 0:
                value = page.fit(value, first_width, 10)
            page.text(_column_x(column), page.y + 5, value, align=column['align'])
        page.y += ROW_HEIGHT
    if not rows:
        page.font(10, color='text')
        page.text(MARGIN + 5, page.y + 5, 'No items')
        page.y += ROW_HEIGHT


def draw_summary(page: PdfPage, totals: list, highlight: tuple) -> None:
    page.y += 10
    needed = 8 * len(totals) + 15
    if page.needs_break(needed):
        page.new_page()
    page.stroke('primary')
    page.line(MARGIN, page.y - 5, PAGE_WIDTH - MARGIN, page.y - 5)

    summary_x = PAGE_WIDTH - MARGIN - SUMMARY_WIDTH
    for label, value in totals:
        page.font(10, bold=True, color='text')
        page.text(summary_x, page.y + 5, label)
        page.font(10)
        page.text(PAGE_WIDTH - MARGIN - 5, page.y + 5, value, align='right')
        page.y += 8

    label, value = highlight
    page.rect(summary_x - 5, page.y, SUMMARY_WIDTH + 5, 10, 'secondary')
    page.font(12, bold=True, color='white')
    page.text(summary_x, page.y + 7, label)
    page.text(PAGE_WIDTH - MARGIN - 5, page.y + 7, value, align='right')
    page.y += 20


def draw_notes(page: PdfPage, notes: str) -> None:
    if page.needs_break(10):
        page.new_page()
    page.font(10, bold=True, color='text')
    page.text(MARGIN, page.y, 'Notes:')
    page.y += 5
    draw_paragraph(page, notes)
    page.y += 5


def draw_acceptance(page: PdfPage) -> None:
    if page.needs_break():
        page.new_page()
    top = page.y
    page.rect(MARGIN, top, CONTENT_WIDTH, 40, 'light_gray', radius=3)
    page.font(12, bold=True, color='text')
    page.text(MARGIN + 5, top + 10, 'Acceptance')
    page.font(10)
    page.text(MARGIN + 5, top + 20,
              'To accept this proposal, please sign below or respond via email confirmation.')
    page.stroke('black')
    page.line(MARGIN + 5, top + 30, MARGIN + 100, top + 30)
    page.text(MARGIN + 5, top + 38, 'Signature')
    page.line(PAGE_WIDTH - MARGIN - 100, top + 30, PAGE_WIDTH - MARGIN - 5, top + 30)
    page.text(PAGE_WIDTH - MARGIN - 30, top + 38, 'Date')
    page.y += 45


def render_document(view: dict, file_name: str | None = None, logo_path: str | None = None,
                    generated_at: datetime | None = None) -> dict:
    """Render an invoice or proposal view.

    Returns ``{"buffer": bytes, "base64": "data:application/pdf;base64,..."}``.
    """
    file_name = file_name or view['file_name']
    buffer = BytesIO()
    try:
        page = PdfPage(buffer, title=f"{view['label'].title()} {view['document_id']}",
                       author=view['sender'].get('name', ''), footer=_draw_footer,
                       generated_at=generated_at, sender=view['sender'])

        draw_header(page, view, logo_path)
        draw_info_box(page, view['meta'])
        draw_party_boxes(page, view)
        if view.get('scope'):
            draw_section(page, 'Scope of Work', view['scope'])
        draw_table(page, view['columns'], view['rows'])
        draw_summary(page, view['totals'], view['highlight'])
        if view.get('terms'):
            draw_section(page, 'Terms & Conditions', view['terms'])
        if view.get('notes'):
            draw_notes(page, view['notes'])
        if view.get('acceptance'):
            draw_acceptance(page)
        page.finish()
    except Exception as e:
        log.exception("Failed to generate %s %s (%s)", view.get('kind'),
                      view.get('document_id'), file_name)
        raise DocumentGenerationError(f"Could not generate {file_name}") from e

    pdf = buffer.getvalue()
    log.info("Generated %s (%d bytes, %d pages)", file_name, len(pdf), page.page_number)
    return {
        'buffer': pdf,
        'base64': 'data:application/pdf;base64,' + base64.b64encode(pdf).decode('ascii'),
    }


def render_invoice(view: dict, file_name: str | None = None, **kwargs) -> dict:
    if view.get('kind') != 'invoice':
        raise DocumentGenerationError("Expected an invoice view")
    return render_document(view, file_name, **kwargs)


def render_proposal(view: dict, file_name: str | None = None, **kwargs) -> dict:
    if view.get('kind') != 'proposal':
        raise DocumentGenerationError("Expected a proposal view")
    return render_document(view, file_name, **kwargs)
