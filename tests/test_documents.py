import base64
import os
import sys
from datetime import date

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from expediter.config import BaseConfig
from expediter.documents import render
from expediter.documents.layout import PdfPage
from expediter.documents.views import invoice_view, proposal_view, sender_identity
from expediter.errors import DocumentGenerationError

SENDER = sender_identity({
    'COMPANY_NAME': BaseConfig.COMPANY_NAME,
    'COMPANY_CONTACT': BaseConfig.COMPANY_CONTACT,
    'COMPANY_PHONE': BaseConfig.COMPANY_PHONE,
    'COMPANY_EMAIL': BaseConfig.COMPANY_EMAIL,
    'COMPANY_TAGLINE': BaseConfig.COMPANY_TAGLINE,
})

CLIENT = {
    'id': 'c1', 'name': 'Wells Fargo', 'contact_person': 'Sarah Johnson',
    'email': 'sarah.j@wellsfargo.test', 'address': '456 Oak St', 'city': 'Miami',
    'state': 'FL', 'zip_code': '33101',
}

PERMIT = {
    'id': 'a1b2c3d4e5f6', 'title': 'Drive-thru ATM', 'client_id': 'c1',
    'permit_type': 'Commercial', 'status': 'in-progress', 'location': 'Miami, FL',
    'permit_number': '24-007', 'progress': 50,
}


def checklist(count):
    return [
        {'id': str(n), 'title': f'Step {n}', 'completed': n % 2 == 0,
         'price': None if n == 1 else 100.0}
        for n in range(count)
    ]


def proposal(count=2):
    items = [{'id': str(n), 'description': f'Service {n}', 'quantity': 2,
              'unit_price': 75.0, 'total': 150.0} for n in range(count)]
    return {
        'id': 'PROP-0a1b2c', 'number': '24-003', 'title': 'ATM permits',
        'client_id': 'c1', 'permit_id': None, 'status': 'draft',
        'date': '2024-03-05', 'valid_until': '2024-04-04',
        'scope': 'Permit expediting for the ATM install.',
        'terms': 'Payment Terms: 50% deposit.\n\nBalance due on completion.',
        'items': items, 'total_amount': 150.0 * count, 'notes': 'Call before visiting.',
    }


def test_invoice_view_figures():
    view = invoice_view(PERMIT, CLIENT, checklist(4), SENDER, issued=date(2024, 3, 5))
    assert view['kind'] == 'invoice'
    assert view['document_id'] == 'INV-A1B2C3D4'
    assert view['file_name'] == 'invoice-a1b2c3d4.pdf'
    assert view['due_date'] == 'Apr 04, 2024'
    assert view['rows'][1] == ['Step 1', 'In Progress', 'TBD']
    assert view['summary']['total_cost'] == 300.0
    assert view['summary']['completed_cost'] == 200.0
    assert view['highlight'] == ('Balance Due:', '$100.00')
    assert view['recipient'] == {'name': 'Sarah Johnson', 'email': 'sarah.j@wellsfargo.test'}


def test_proposal_view_figures():
    view = proposal_view(proposal(), CLIENT, None, SENDER)
    assert view['kind'] == 'proposal'
    assert view['document_id'] == '24-003'
    assert view['file_name'] == 'proposal-0a1b2c.pdf'
    assert view['valid_until'] == 'Apr 04, 2024'
    assert view['rows'][0] == ['Service 0', '2', '$75.00', '$150.00']
    assert view['highlight'] == ('Total Amount:', '$300.00')
    assert 'Location: To be determined' in view['project']['lines']


def test_render_invoice_returns_pdf_bytes_and_data_uri():
    view = invoice_view(PERMIT, CLIENT, checklist(5), SENDER)
    result = render.render_invoice(view)
    assert result['buffer'].startswith(b'%PDF')
    prefix = 'data:application/pdf;base64,'
    assert result['base64'].startswith(prefix)
    assert base64.b64decode(result['base64'][len(prefix):]) == result['buffer']


def test_render_proposal_with_acceptance_block():
    view = proposal_view(proposal(), CLIENT, PERMIT, SENDER)
    assert view['acceptance'] is True
    result = render.render_proposal(view)
    assert result['buffer'].startswith(b'%PDF')


def test_long_tables_break_pages_and_repeat_header(monkeypatch):
    pages = []
    headers = []
    original_new_page = PdfPage.new_page
    original_header = render.draw_table_header

    def counting_new_page(self):
        pages.append(self.y)
        original_new_page(self)

    def counting_header(page, columns):
        headers.append(page.page_number)
        original_header(page, columns)

    monkeypatch.setattr(PdfPage, 'new_page', counting_new_page)
    monkeypatch.setattr(render, 'draw_table_header', counting_header)

    view = invoice_view(PERMIT, CLIENT, checklist(80), SENDER)
    result = render.render_document(view)
    assert result['buffer'].startswith(b'%PDF')
    assert len(pages) >= 2
    assert len(headers) >= 3
    assert headers[0] == 1
    assert len(set(headers)) == len(headers)


def test_missing_logo_is_not_fatal(tmp_path):
    view = invoice_view(PERMIT, CLIENT, checklist(3), SENDER)
    result = render.render_document(view, logo_path=str(tmp_path / 'missing.png'))
    assert result['buffer'].startswith(b'%PDF')


def test_wrong_kind_or_bad_view_raises():
    invoice = invoice_view(PERMIT, CLIENT, checklist(2), SENDER)
    with pytest.raises(DocumentGenerationError):
        render.render_proposal(invoice)

    broken = dict(invoice)
    del broken['rows']
    with pytest.raises(DocumentGenerationError):
        render.render_document(broken)
