# expediter/documents/views.py
"""View models for invoices and proposals.

Both builders return a dict whose ``kind`` key ("invoice" or "proposal")
tells the PDF renderer and the e-mail composer which variant they hold;
everything they need is resolved here so neither has to look at the store.
"""

from __future__ import annotations

from datetime import date, timedelta

from expediter.aggregates import (
    calculate_progress,
    format_currency,
    format_price,
    invoice_summary,
    proposal_item_total,
    proposal_total,
)

INVOICE_DUE_DAYS = 30
DATE_FORMAT = '%b %d, %Y'


def sender_identity(config) -> dict:
    return {
        'name': config.get('COMPANY_NAME', ''),
        'contact': config.get('COMPANY_CONTACT', ''),
        'phone': config.get('COMPANY_PHONE', ''),
        'direct_phone': config.get('COMPANY_DIRECT_PHONE', ''),
        'email': config.get('COMPANY_EMAIL', ''),
        'tagline': config.get('COMPANY_TAGLINE', ''),
    }


def _display_date(value) -> str:
    """``2024-03-05`` -> ``Mar 05, 2024``; unparseable strings pass through."""
    if not value:
        return ''
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    try:
        return date.fromisoformat(str(value)[:10]).strftime(DATE_FORMAT)
    except ValueError:
        return str(value)


def _address_lines(client: dict) -> list[str]:
    city_line = ''
    if client.get('city'):
        city_line = f"{client['city']}, {client.get('state', '')} {client.get('zip_code', '')}".strip()
    lines = [client.get('name', ''), client.get('address', ''), city_line, client.get('email', '')]
    return [line for line in lines if line]


def invoice_file_name(permit: dict) -> str:
    return f"invoice-{permit['id'][:8]}.pdf"


def proposal_file_name(proposal: dict) -> str:
    suffix = proposal['id'][5:] if proposal['id'].startswith('PROP-') else proposal['id']
    return f"proposal-{suffix}.pdf"


def invoice_view(permit: dict, client: dict, items: list[dict], sender: dict,
                 issued: date | None = None) -> dict:
    issued = issued or date.today()
    summary = invoice_summary(items)
    progress = calculate_progress(items)
    return {
        'kind': 'invoice',
        'label': 'INVOICE',
        'document_id': f"INV-{permit['id'][:8].upper()}",
        'file_name': invoice_file_name(permit),
        'sender': sender,
        'client': client,
        'recipient': {'name': client.get('contact_person') or client['name'],
                      'email': client.get('email', '')},
        'date': _display_date(issued),
        'due_date': _display_date(issued + timedelta(days=INVOICE_DUE_DAYS)),
        'meta': [
            ('Invoice Number:', f"INV-{permit['id'][:8].upper()}"),
            ('Date Issued:', _display_date(issued)),
            ('Due Date:', _display_date(issued + timedelta(days=INVOICE_DUE_DAYS))),
        ],
        'counterparty': {'heading': 'Bill To:', 'lines': _address_lines(client)},
        'project': {
            'heading': 'Permit Details:',
            'title': permit['title'],
            'lines': [
                f"Project: {permit['title']}",
                f"Permit Number: {permit.get('permit_number') or 'N/A'}",
                f"Location: {permit.get('location') or 'N/A'}",
                f"Progress: {progress}%",
            ],
        },
        'columns': [
            {'title': 'Item', 'right': None, 'align': 'left'},
            {'title': 'Status', 'right': 60, 'align': 'center'},
            {'title': 'Price', 'right': 5, 'align': 'right'},
        ],
        'rows': [
            [item['title'], 'Completed' if item.get('completed') else 'In Progress',
             format_price(item.get('price'))]
            for item in items
        ],
        'summary': dict(summary, progress=progress),
        'totals': [
            ('Total:', format_currency(summary['total_cost'])),
            ('Completed Work:', format_currency(summary['completed_cost'])),
        ],
        'highlight': ('Balance Due:', format_currency(summary['balance_due'])),
        'scope': '',
        'terms': 'Payment due within 30 days.',
        'notes': 'Thank you for your business!',
        'acceptance': False,
    }


def proposal_view(proposal: dict, client: dict, permit: dict | None, sender: dict) -> dict:
    if permit:
        project_lines = [f"Permit Type: {permit.get('permit_type', '')}",
                         f"Location: {permit.get('location') or 'To be determined'}"]
    else:
        project_lines = ['Location: To be determined']
    total = proposal_total(proposal['items'])
    number = proposal.get('number') or proposal['id']
    return {
        'kind': 'proposal',
        'label': 'PROPOSAL',
        'document_id': number,
        'file_name': proposal_file_name(proposal),
        'sender': sender,
        'client': client,
        'recipient': {'name': client.get('contact_person') or client['name'],
                      'email': client.get('email', '')},
        'date': _display_date(proposal.get('date')),
        'valid_until': _display_date(proposal.get('valid_until')),
        'meta': [
            ('Proposal Number:', number),
            ('Date Issued:', _display_date(proposal.get('date'))),
            ('Valid Until:', _display_date(proposal.get('valid_until'))),
        ],
        'counterparty': {'heading': 'Prepared For:', 'lines': _address_lines(client)},
        'project': {
            'heading': 'Project Details:',
            'title': proposal['title'],
            'lines': [f"Title: {proposal['title']}", *project_lines,
                      f"Status: {proposal['status']}"],
        },
        'columns': [
            {'title': 'Description', 'right': None, 'align': 'left'},
            {'title': 'Quantity', 'right': 75, 'align': 'center'},
            {'title': 'Unit Price', 'right': 45, 'align': 'center'},
            {'title': 'Total', 'right': 5, 'align': 'right'},
        ],
        'rows': [
            [item['description'], f"{item['quantity']:g}",
             format_currency(item['unit_price']),
             format_currency(proposal_item_total(item))]
            for item in proposal['items']
        ],
        'summary': {'total_amount': total},
        'totals': [],
        'highlight': ('Total Amount:', format_currency(total)),
        'scope': proposal.get('scope') or '',
        'terms': proposal.get('terms') or '',
        'notes': proposal.get('notes') or '',
        'acceptance': True,
    }
