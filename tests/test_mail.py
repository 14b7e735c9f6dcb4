import os
import smtplib
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from expediter import create_app
from expediter import mail
from expediter.documents.views import invoice_view, proposal_view, sender_identity
from expediter.errors import DeliveryError, ValidationError
from expediter.mail import MailRelay, compose_email

CLIENT = {'id': 'c1', 'name': 'First National Bank', 'contact_person': 'Michael Brown',
          'email': 'mbrown@fnb.test', 'address': '789 Pine St', 'city': 'Tampa',
          'state': 'FL', 'zip_code': '33602'}
PERMIT = {'id': 'feedbeef0001', 'title': 'Parking Lot Resurfacing', 'client_id': 'c1',
          'permit_type': 'Construction', 'location': 'Tampa, FL', 'permit_number': '24-002'}


class FakeSMTP:
    instances = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.started_tls = False
        self.logged_in = None
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, msg):
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        self.sent.append(msg)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(smtplib, 'SMTP', FakeSMTP)
    return FakeSMTP


def setup_app():
    return create_app('testing')


def test_relay_sends_multipart_with_attachment(fake_smtp):
    relay = MailRelay('smtp.example.test', 587, user='bot', password='pw',
                      sender='office@example.test', timeout=5)
    result = relay.send('client@example.test', 'Invoice INV-1', 'plain body', '<p>html</p>',
                        {'filename': 'invoice-1.pdf',
                         'content': 'data:application/pdf;base64,JVBERi0='})
    server = fake_smtp.instances[0]
    assert server.timeout == 5
    assert server.started_tls is True
    assert server.logged_in == ('bot', 'pw')
    msg = server.sent[0]
    assert result['message_id'] == msg['Message-ID']
    assert msg['To'] == 'client@example.test'
    assert msg['From'] == 'office@example.test'
    attachments = [p for p in msg.walk() if p.get_filename()]
    assert attachments[0].get_filename() == 'invoice-1.pdf'
    assert attachments[0].get_payload(decode=True) == b'%PDF-'


def test_relay_failures_become_delivery_errors(fake_smtp):
    fake_smtp.fail_with = smtplib.SMTPRecipientsRefused({'x@example.test': (550, b'no')})
    relay = MailRelay('smtp.example.test', sender='office@example.test')
    with pytest.raises(DeliveryError):
        relay.send('x@example.test', 'subject', 'text', '<p>html</p>')

    with pytest.raises(ValidationError):
        relay.send('', 'subject', 'text', '<p>html</p>')

    with pytest.raises(DeliveryError):
        MailRelay('smtp.example.test').send('x@example.test', 's', 't', 'h')


def test_relay_from_config_defaults():
    relay = MailRelay.from_config({'EMAIL_FROM': 'office@example.test'})
    assert relay.host == 'smtp.gmail.com'
    assert relay.port == 587
    assert relay.secure is False


def test_compose_invoice_email():
    app = setup_app()
    with app.app_context():
        view = invoice_view(PERMIT, CLIENT, [{'title': 'Survey', 'completed': False,
                                               'price': 120.0}],
                            sender_identity(app.config))
        message = compose_email(view)
    assert message['subject'] == 'Invoice INV-FEEDBEEF - Parking Lot Resurfacing'
    assert 'Dear Michael Brown' in message['text']
    assert '$120.00' in message['text']
    assert 'INV-FEEDBEEF' in message['html']


def test_compose_proposal_email_with_overrides():
    app = setup_app()
    proposal = {'id': 'PROP-abc', 'number': '24-004', 'title': 'ATM', 'status': 'draft',
                'date': '2024-03-05', 'valid_until': '2024-04-04', 'items': [],
                'scope': '', 'terms': '', 'notes': ''}
    with app.app_context():
        view = proposal_view(proposal, CLIENT, None, sender_identity(app.config))
        default = compose_email(view)
        custom = compose_email(view, subject='Your quote', text='See attached.')
    assert default['subject'] == 'Proposal: ATM - 24-004'
    assert 'Apr 04, 2024' in default['text']
    assert custom['subject'] == 'Your quote'
    assert custom['text'] == 'See attached.'
    assert custom['html'] == default['html']


def test_current_relay_comes_from_app():
    app = setup_app()
    with app.app_context():
        relay = mail.current_relay()
    assert relay.sender == 'office@example.com'
