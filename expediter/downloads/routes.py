# expediter/downloads/routes.py

import logging

from flask import Blueprint, Response, request, jsonify

from expediter.pdf_cache import current_cache, decode_payload

log = logging.getLogger(__name__)

bp = Blueprint('downloads', __name__)


@bp.route('/download', methods=['GET'])
def download():
    """Serve a cached PDF once and expire it shortly afterwards."""
    pdf_id = request.args.get('id')
    if not pdf_id:
        return jsonify(error='PDF ID is required'), 400

    cache = current_cache()
    entry = cache.require(pdf_id)
    body = decode_payload(entry['data'])

    cache.schedule_delete(pdf_id)
    log.info("Serving %s (%d bytes) for %s", entry['file_name'], len(body), pdf_id)
    return Response(
        body,
        mimetype=entry['content_type'],
        headers={
            'Content-Disposition': f'attachment; filename="{entry["file_name"]}"',
            'Content-Length': str(len(body)),
        },
    )
