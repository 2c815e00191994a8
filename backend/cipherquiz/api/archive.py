from flask import Blueprint, jsonify, current_app
from flask_login import login_required
from cipherquiz.services.results import build_final_results
from cipherquiz.services.store import RoomStoreError

archive = Blueprint('archive', __name__)


def _summary(room):
    return {
        'room_code': room.code,
        'room_name': room.name,
        'state': room.state.value,
        'started_at': room.started_at.isoformat() if room.started_at else None,
        'participant_count': len(room.participants),
    }


@archive.route('', methods=['GET'])
@login_required
def list_archive():
    engine = current_app.extensions['cipherquiz']
    try:
        rooms = engine.store.list_archived()
    except RoomStoreError:
        return jsonify({'error': 'Archive unavailable'}), 503
    return jsonify([_summary(room) for room in rooms])


@archive.route('/<code>', methods=['GET'])
@login_required
def get_archived_room(code):
    engine = current_app.extensions['cipherquiz']
    try:
        room = engine.store.get_archived(code.strip().upper())
    except RoomStoreError:
        return jsonify({'error': 'Archive unavailable'}), 503
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(build_final_results(room))
