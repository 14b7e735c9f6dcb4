# expediter/documents/delivery.py
"""Glue between rendering, the transient PDF cache and the mail relay."""

from __future__ import annotations

import logging

from flask import current_app, url_for

from expediter.documents.render import render_document
from expediter.mail import compose_email, current_relay
from expediter.pdf_cache import current_cache, make_entry, new_pdf_id

log = logging.getLogger(__name__)


def generate_pdf(view: dict) -> dict:
    """Render ``view``, park it in the PDF cache and describe the download."""
    rendered = render_document(view, logo_path=current_app.config.get('LOGO_PATH') or None)
    suffix = view['file_name'].rsplit('.', 1)[0].split('-', 1)[-1]
    pdf_id = new_pdf_id(suffix)
    current_cache().put(pdf_id, make_entry(view['file_name'], rendered['base64']))
    log.info("Stored %s in PDF cache as %s", view['file_name'], pdf_id)
    return {
        'pdf_id': pdf_id,
        'file_name': view['file_name'],
        'download_url': url_for('downloads.download', id=pdf_id),
        'pdf_data': rendered['base64'],
    }


def email_document(view: dict, overrides: dict | None = None, pdf_data: str | None = None) -> dict:
    """Render (unless ``pdf_data`` is given) and e-mail a document to the client."""
    overrides = overrides or {}
    if pdf_data is None:
        pdf_data = render_document(
            view, logo_path=current_app.config.get('LOGO_PATH') or None)['base64']
    message = compose_email(view, subject=overrides.get('subject'),
                            text=overrides.get('text'), html=overrides.get('html'))
    to = overrides.get('to') or view['recipient']['email']
    result = current_relay().send(
        to,
        message['subject'],
        message['text'],
        message['html'],
        {'filename': view['file_name'], 'content': pdf_data},
    )
    log.info("Sent %s %s to %s (message %s)", view['kind'], view['document_id'], to,
             result['message_id'])
    return dict(result, to=to, subject=message['subject'])
