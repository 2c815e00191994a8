from flask import Blueprint, jsonify, request, current_app

results = Blueprint('results', __name__)


@results.route('/<code>', methods=['GET'])
def final_results(code):
    token = request.args.get('adminToken') or request.headers.get('X-Admin-Token') or ''
    if not token:
        return jsonify({'error': 'adminToken is required'}), 401
    doc = current_app.extensions['cipherquiz'].get_results(code, token)
    if doc is None:
        current_app.logger.warning(f"[results] denied room={code.upper()}")
        return jsonify({'error': 'Room not found or token mismatch'}), 401
    return jsonify(doc)
