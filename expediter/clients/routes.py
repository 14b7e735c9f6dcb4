# expediter/clients/routes.py

from flask import Blueprint, request, jsonify, abort

from expediter.store import current_store

bp = Blueprint('clients', __name__)


def _payload():
    return request.get_json(silent=True) or request.form.to_dict()


@bp.route('/', methods=['GET'])
def list_clients():
    return jsonify(clients=current_store().list_clients())


@bp.route('/', methods=['POST'])
def create_client():
    store = current_store()
    client_id = store.add_client(_payload())
    return jsonify(client=store.get_client(client_id)), 201


@bp.route('/<client_id>', methods=['GET'])
def get_client(client_id):
    store = current_store()
    client = store.get_client(client_id)
    if client is None:
        abort(404)
    return jsonify(
        client=client,
        branches=store.get_client_branches(client_id),
        permits=store.get_client_permits(client_id),
        proposals=store.get_client_proposals(client_id),
    )


@bp.route('/<client_id>', methods=['PUT', 'PATCH'])
def update_client(client_id):
    client = current_store().update_client(client_id, _payload())
    if client is None:
        abort(404)
    return jsonify(client=client)


@bp.route('/<client_id>', methods=['DELETE'])
def delete_client(client_id):
    current_store().delete_client(client_id)
    return jsonify(success=True)


@bp.route('/<client_id>/permits', methods=['GET'])
def client_permits(client_id):
    store = current_store()
    if store.get_client(client_id) is None:
        abort(404)
    return jsonify(permits=store.get_client_permits(client_id))


# ---------------------------------------------------------------------------
# branches

@bp.route('/<client_id>/branches', methods=['GET'])
def list_branches(client_id):
    store = current_store()
    if store.get_client(client_id) is None:
        abort(404)
    return jsonify(branches=store.get_client_branches(client_id))


@bp.route('/<client_id>/branches', methods=['POST'])
def create_branch(client_id):
    store = current_store()
    branch_id = store.add_branch(client_id, _payload())
    return jsonify(branch=store.get_branch(branch_id)), 201


def _client_branch(client_id, branch_id):
    branch = current_store().get_branch(branch_id)
    if branch is None or branch['client_id'] != client_id:
        abort(404)
    return branch


@bp.route('/<client_id>/branches/<branch_id>', methods=['PUT', 'PATCH'])
def update_branch(client_id, branch_id):
    _client_branch(client_id, branch_id)
    return jsonify(branch=current_store().update_branch(branch_id, _payload()))


@bp.route('/<client_id>/branches/<branch_id>', methods=['DELETE'])
def delete_branch(client_id, branch_id):
    _client_branch(client_id, branch_id)
    current_store().delete_branch(branch_id)
    return jsonify(success=True)
