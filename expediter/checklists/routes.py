# expediter/checklists/routes.py

from flask import Blueprint, request, jsonify, abort

from expediter.store import current_store

bp = Blueprint('checklists', __name__)


@bp.route('/templates', methods=['GET'])
def list_templates():
    permit_type = request.args.get('permit_type')
    return jsonify(templates=current_store().list_templates(permit_type))


@bp.route('/templates', methods=['POST'])
def create_template():
    store = current_store()
    template_id = store.add_template(request.get_json(silent=True) or {})
    return jsonify(template=store.get_template(template_id)), 201


@bp.route('/templates/<template_id>', methods=['GET'])
def get_template(template_id):
    template = current_store().get_template(template_id)
    if template is None:
        abort(404)
    return jsonify(template=template)


@bp.route('/templates/<template_id>', methods=['PUT', 'PATCH'])
def update_template(template_id):
    template = current_store().update_template(template_id, request.get_json(silent=True) or {})
    if template is None:
        abort(404)
    return jsonify(template=template)


@bp.route('/templates/<template_id>', methods=['DELETE'])
def delete_template(template_id):
    current_store().delete_template(template_id)
    return jsonify(success=True)
