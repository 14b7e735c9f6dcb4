# expediter/proposals/routes.py

from flask import Blueprint, current_app, request, jsonify, abort

from expediter.documents.delivery import email_document, generate_pdf
from expediter.documents.views import proposal_view, sender_identity
from expediter.store import PROPOSAL_STATUSES, current_store

bp = Blueprint('proposals', __name__)


def _payload():
    return request.get_json(silent=True) or request.form.to_dict()


def _proposal_or_404(proposal_id):
    proposal = current_store().get_proposal(proposal_id)
    if proposal is None:
        abort(404)
    return proposal


@bp.route('/', methods=['GET'])
def list_proposals():
    status = request.args.get('status')
    if status and status not in PROPOSAL_STATUSES:
        return jsonify(error=f"Invalid proposal status: {status}", field='status'), 400
    proposals = current_store().list_proposals(status=status,
                                               client_id=request.args.get('client_id'),
                                               search=request.args.get('q'))
    return jsonify(proposals=proposals)


@bp.route('/', methods=['POST'])
def create_proposal():
    store = current_store()
    proposal_id = store.add_proposal(_payload())
    return jsonify(proposal=store.get_proposal(proposal_id)), 201


@bp.route('/<proposal_id>', methods=['GET'])
def get_proposal(proposal_id):
    return jsonify(proposal=_proposal_or_404(proposal_id))


@bp.route('/<proposal_id>', methods=['PUT', 'PATCH'])
def update_proposal(proposal_id):
    proposal = current_store().update_proposal(proposal_id, _payload())
    if proposal is None:
        abort(404)
    return jsonify(proposal=proposal)


@bp.route('/<proposal_id>', methods=['DELETE'])
def delete_proposal(proposal_id):
    current_store().delete_proposal(proposal_id)
    return jsonify(success=True)


# ---------------------------------------------------------------------------
# line items

@bp.route('/<proposal_id>/items', methods=['POST'])
def add_item(proposal_id):
    store = current_store()
    item_id = store.add_proposal_item(proposal_id, _payload())
    return jsonify(item_id=item_id, proposal=store.get_proposal(proposal_id)), 201


@bp.route('/<proposal_id>/items/<item_id>', methods=['PUT', 'PATCH'])
def update_item(proposal_id, item_id):
    proposal = current_store().update_proposal_item(proposal_id, item_id, _payload())
    return jsonify(proposal=proposal)


@bp.route('/<proposal_id>/items/<item_id>', methods=['DELETE'])
def remove_item(proposal_id, item_id):
    proposal = current_store().remove_proposal_item(proposal_id, item_id)
    return jsonify(proposal=proposal)


@bp.route('/<proposal_id>/reorder', methods=['POST'])
def reorder_items(proposal_id):
    data = request.get_json(silent=True) or {}
    proposal = current_store().reorder_proposal_items(proposal_id, data.get('item_ids') or [])
    return jsonify(proposal=proposal)


@bp.route('/<proposal_id>/convert', methods=['POST'])
def convert(proposal_id):
    store = current_store()
    proposal = _proposal_or_404(proposal_id)
    if proposal['status'] != 'accepted':
        return jsonify(error="Only accepted proposals can be converted to permits"), 409
    permit_id = store.convert_proposal_to_permit(proposal_id)
    return jsonify(permit=store.get_permit(permit_id), proposal=store.get_proposal(proposal_id))


# ---------------------------------------------------------------------------
# documents

def _proposal_view(proposal_id):
    store = current_store()
    proposal = _proposal_or_404(proposal_id)
    client = store.get_client(proposal['client_id'])
    if client is None:
        abort(404)
    permit = store.get_permit(proposal['permit_id']) if proposal.get('permit_id') else None
    return proposal_view(proposal, client, permit, sender_identity(current_app.config))


@bp.route('/<proposal_id>/pdf', methods=['POST'])
def generate_proposal_pdf(proposal_id):
    view = _proposal_view(proposal_id)
    result = generate_pdf(view)
    return jsonify(
        pdf_id=result['pdf_id'],
        file_name=result['file_name'],
        download_url=result['download_url'],
        summary=view['summary'],
    )


@bp.route('/<proposal_id>/email', methods=['POST'])
def email_proposal(proposal_id):
    store = current_store()
    view = _proposal_view(proposal_id)
    sent = email_document(view, _payload())
    if store.get_proposal(proposal_id)['status'] == 'draft':
        store.update_proposal(proposal_id, {'status': 'sent'})
    return jsonify(success=True, status=store.get_proposal(proposal_id)['status'], **sent)
