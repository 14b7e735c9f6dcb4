# expediter/permits/routes.py

from flask import Blueprint, current_app, request, jsonify, abort

from expediter.documents.delivery import email_document, generate_pdf
from expediter.documents.views import invoice_view, sender_identity
from expediter.store import PERMIT_STATUSES, current_store

bp = Blueprint('permits', __name__)


def _payload():
    return request.get_json(silent=True) or request.form.to_dict()


def _permit_or_404(permit_id):
    permit = current_store().get_permit(permit_id)
    if permit is None:
        abort(404)
    return permit


@bp.route('/', methods=['GET'])
def list_permits():
    status = request.args.get('status')
    if status and status not in PERMIT_STATUSES:
        return jsonify(error=f"Invalid permit status: {status}", field='status'), 400
    permits = current_store().list_permits(status=status, client_id=request.args.get('client_id'))
    return jsonify(permits=permits)


@bp.route('/', methods=['POST'])
def create_permit():
    store = current_store()
    permit_id = store.add_permit(_payload())
    return jsonify(permit=store.get_permit(permit_id)), 201


@bp.route('/<permit_id>', methods=['GET'])
def get_permit(permit_id):
    store = current_store()
    permit = _permit_or_404(permit_id)
    return jsonify(
        permit=permit,
        client=store.get_permit_client(permit_id),
        checklist=store.get_permit_checklist_items(permit_id),
        costs=store.get_permit_costs(permit_id),
    )


@bp.route('/<permit_id>', methods=['PUT', 'PATCH'])
def update_permit(permit_id):
    permit = current_store().update_permit(permit_id, _payload())
    if permit is None:
        abort(404)
    return jsonify(permit=permit)


@bp.route('/<permit_id>', methods=['DELETE'])
def delete_permit(permit_id):
    current_store().delete_permit(permit_id)
    return jsonify(success=True)


# ---------------------------------------------------------------------------
# checklist

@bp.route('/<permit_id>/checklist', methods=['GET'])
def list_checklist(permit_id):
    store = current_store()
    permit = _permit_or_404(permit_id)
    return jsonify(
        items=store.get_permit_checklist_items(permit_id),
        progress=permit['progress'],
        costs=store.get_permit_costs(permit_id),
    )


@bp.route('/<permit_id>/checklist', methods=['POST'])
def add_checklist_item(permit_id):
    store = current_store()
    item_id = store.add_checklist_item(permit_id, _payload())
    items = {i['id']: i for i in store.get_permit_checklist_items(permit_id)}
    return jsonify(item=items[item_id], progress=store.get_permit(permit_id)['progress']), 201


def _permit_item_or_404(permit_id, item_id):
    for item in current_store().get_permit_checklist_items(permit_id):
        if item['id'] == item_id:
            return item
    abort(404)


@bp.route('/<permit_id>/checklist/<item_id>', methods=['PUT', 'PATCH'])
def update_checklist_item(permit_id, item_id):
    store = current_store()
    _permit_item_or_404(permit_id, item_id)
    item = store.update_checklist_item(item_id, _payload())
    return jsonify(item=item, progress=store.get_permit(permit_id)['progress'])


@bp.route('/<permit_id>/checklist/<item_id>', methods=['DELETE'])
def delete_checklist_item(permit_id, item_id):
    store = current_store()
    _permit_item_or_404(permit_id, item_id)
    store.delete_checklist_item(item_id)
    return jsonify(success=True, progress=store.get_permit(permit_id)['progress'])


@bp.route('/<permit_id>/apply-template/<template_id>', methods=['POST'])
def apply_template(permit_id, template_id):
    store = current_store()
    item_ids = store.apply_template_to_permit(template_id, permit_id)
    return jsonify(item_ids=item_ids, progress=store.get_permit(permit_id)['progress'])


# ---------------------------------------------------------------------------
# invoice

def _invoice_view(permit_id):
    store = current_store()
    permit = _permit_or_404(permit_id)
    client = store.get_permit_client(permit_id)
    if client is None:
        abort(404)
    return invoice_view(permit, client, store.get_permit_checklist_items(permit_id),
                        sender_identity(current_app.config))


@bp.route('/<permit_id>/invoice', methods=['POST'])
def generate_invoice(permit_id):
    view = _invoice_view(permit_id)
    result = generate_pdf(view)
    return jsonify(
        pdf_id=result['pdf_id'],
        file_name=result['file_name'],
        download_url=result['download_url'],
        summary=view['summary'],
    )


@bp.route('/<permit_id>/invoice/email', methods=['POST'])
def email_invoice(permit_id):
    view = _invoice_view(permit_id)
    sent = email_document(view, _payload())
    return jsonify(success=True, **sent)
