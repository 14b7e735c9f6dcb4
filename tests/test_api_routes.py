import os
import smtplib
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from expediter import create_app
from expediter.pdf_cache import current_cache


def setup_app():
    os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
    return create_app('testing')


def create_client(client, **extra):
    data = {'name': 'Acme Bank', 'email': 'ops@acme.test', 'contact_person': 'Ann Lee'}
    data.update(extra)
    resp = client.post('/clients/', json=data)
    assert resp.status_code == 201
    return resp.get_json()['client']['id']


def create_permit(client, client_id):
    resp = client.post('/permits/', json={'title': 'Lobby remodel', 'client_id': client_id})
    assert resp.status_code == 201
    return resp.get_json()['permit']


class RecordingSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def send_message(self, msg):
        RecordingSMTP.sent.append(msg)


def test_index_redirects_to_dashboard():
    app = setup_app()
    client = app.test_client()
    resp = client.get('/')
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/dashboard')
    resp = client.get('/dashboard')
    assert resp.status_code == 200
    assert resp.get_json()['clients'] == 0


def test_validation_errors_are_json():
    app = setup_app()
    client = app.test_client()
    resp = client.post('/clients/', json={'name': 'No email'})
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Email is required', 'field': 'email'}

    resp = client.get('/clients/unknown')
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'Not found'


def test_client_with_permit_cannot_be_deleted():
    app = setup_app()
    client = app.test_client()
    client_id = create_client(client)
    create_permit(client, client_id)
    resp = client.delete(f'/clients/{client_id}')
    assert resp.status_code == 409
    assert 'permits' in resp.get_json()['error']

    resp = client.get(f'/clients/{client_id}/permits')
    assert len(resp.get_json()['permits']) == 1


def test_branch_routes_keep_one_main():
    app = setup_app()
    client = app.test_client()
    client_id = create_client(client)
    resp = client.post(f'/clients/{client_id}/branches', json={'name': 'HQ'})
    main_id = resp.get_json()['branch']['id']
    assert resp.get_json()['branch']['is_main_location'] is True

    resp = client.delete(f'/clients/{client_id}/branches/{main_id}')
    assert resp.status_code == 409

    resp = client.post(f'/clients/{client_id}/branches', json={'name': 'Annex'})
    annex_id = resp.get_json()['branch']['id']
    resp = client.patch(f'/clients/{client_id}/branches/{annex_id}',
                        json={'is_main_location': True})
    assert resp.get_json()['branch']['is_main_location'] is True
    branches = client.get(f'/clients/{client_id}/branches').get_json()['branches']
    assert [b['is_main_location'] for b in branches].count(True) == 1


def test_checklist_and_template_routes_update_progress():
    app = setup_app()
    client = app.test_client()
    client_id = create_client(client)
    permit = create_permit(client, client_id)
    resp = client.post('/checklists/templates', json={
        'name': 'Standard', 'items': [{'title': 'Plans', 'price': 500},
                                      {'title': 'Approval'}]})
    assert resp.status_code == 201
    template_id = resp.get_json()['template']['id']

    resp = client.post(f"/permits/{permit['id']}/apply-template/{template_id}")
    item_ids = resp.get_json()['item_ids']
    assert len(item_ids) == 2

    resp = client.patch(f"/permits/{permit['id']}/checklist/{item_ids[0]}",
                        json={'completed': True})
    assert resp.get_json()['progress'] == 50

    resp = client.get(f"/permits/{permit['id']}")
    body = resp.get_json()
    assert body['permit']['progress'] == 50
    assert body['costs']['total_cost'] == 500.0

    resp = client.post('/checklists/templates', json={'name': 'Empty', 'items': []})
    assert resp.status_code == 400


def test_invoice_generate_then_download_once():
    app = setup_app()
    client = app.test_client()
    client_id = create_client(client)
    permit = create_permit(client, client_id)
    client.post(f"/permits/{permit['id']}/checklist", json={'title': 'Plans', 'price': 250})

    resp = client.post(f"/permits/{permit['id']}/invoice")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['file_name'] == f"invoice-{permit['id'][:8]}.pdf"
    assert body['download_url'] == f"/api/download?id={body['pdf_id']}"
    assert body['summary']['balance_due'] == 250.0

    resp = client.get(body['download_url'])
    assert resp.status_code == 200
    assert resp.mimetype == 'application/pdf'
    assert resp.headers['Content-Disposition'] == f'attachment; filename="{body["file_name"]}"'
    assert resp.data.startswith(b'%PDF')

    with app.app_context():
        cache = current_cache()
        assert body['pdf_id'] in cache
        cache.clear()

    resp = client.get(body['download_url'])
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'PDF not found or expired'


def test_download_requires_id():
    app = setup_app()
    client = app.test_client()
    resp = client.get('/api/download')
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'PDF ID is required'


def test_proposal_email_marks_draft_as_sent(monkeypatch):
    RecordingSMTP.sent = []
    monkeypatch.setattr(smtplib, 'SMTP', RecordingSMTP)
    app = setup_app()
    client = app.test_client()
    client_id = create_client(client)
    resp = client.post('/proposals/', json={
        'client_id': client_id, 'title': 'ATM install',
        'items': [{'description': 'Filing', 'quantity': 2, 'unit_price': 150}]})
    proposal = resp.get_json()['proposal']
    assert proposal['total_amount'] == 300.0

    resp = client.post(f"/proposals/{proposal['id']}/email", json={'to': 'boss@acme.test'})
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'sent'
    assert resp.get_json()['to'] == 'boss@acme.test'
    msg = RecordingSMTP.sent[0]
    assert msg['Subject'] == f"Proposal: ATM install - {proposal['number']}"


def test_mail_failure_is_502(monkeypatch):
    class BrokenSMTP(RecordingSMTP):
        def send_message(self, msg):
            raise smtplib.SMTPServerDisconnected('gone')

    monkeypatch.setattr(smtplib, 'SMTP', BrokenSMTP)
    app = setup_app()
    client = app.test_client()
    client_id = create_client(client)
    permit = create_permit(client, client_id)
    resp = client.post(f"/permits/{permit['id']}/invoice/email")
    assert resp.status_code == 502
    assert resp.get_json()['error'].startswith('Failed to send e-mail')


def test_proposal_convert_route():
    app = setup_app()
    client = app.test_client()
    client_id = create_client(client)
    resp = client.post('/proposals/', json={'client_id': client_id, 'title': 'Signage'})
    proposal_id = resp.get_json()['proposal']['id']

    resp = client.post(f'/proposals/{proposal_id}/convert')
    assert resp.status_code == 409

    client.patch(f'/proposals/{proposal_id}', json={'status': 'accepted'})
    resp = client.post(f'/proposals/{proposal_id}/convert')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['proposal']['permit_id'] == body['permit']['id']
    assert body['permit']['title'] == 'Signage'

    resp = client.post(f'/proposals/{proposal_id}/pdf')
    assert resp.status_code == 200
    assert resp.get_json()['file_name'] == f"proposal-{proposal_id[5:]}.pdf"


def test_proposal_list_search_and_bad_price():
    app = setup_app()
    client = app.test_client()
    client_id = create_client(client)
    client.post('/proposals/', json={'client_id': client_id, 'title': 'Drive-thru ATM'})
    client.post('/proposals/', json={'client_id': client_id, 'title': 'Pylon Sign'})

    resp = client.get('/proposals/?q=ATM')
    titles = [p['title'] for p in resp.get_json()['proposals']]
    assert titles == ['Drive-thru ATM']

    permit = create_permit(client, client_id)
    resp = client.post(f"/permits/{permit['id']}/checklist", json={'title': 'Plans', 'price': 'nan'})
    assert resp.status_code == 400
    assert resp.get_json()['field'] == 'price'
