from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError
from cipherquiz.domain import CustomQuestion, Topic

custom_questions = Blueprint('custom_questions', __name__)

MODES = ('Encrypt', 'Decrypt')


def _store():
    return current_app.extensions['cipherquiz_custom_questions']


@custom_questions.route('', methods=['GET'])
@login_required
def list_custom_questions():
    return jsonify([cq.to_dict() for cq in _store().get_questions()])


@custom_questions.route('', methods=['POST'])
@login_required
def create_custom_question():
    data = request.get_json(silent=True) or {}
    topic = Topic.parse(data.get('topic'))
    if topic is None:
        return jsonify({'error': f"Unknown topic: {data.get('topic')!r}"}), 400
    mode = str(data.get('mode') or 'Encrypt').strip().capitalize()
    if mode not in MODES:
        return jsonify({'error': 'mode must be Encrypt or Decrypt'}), 400
    text = str(data.get('text') or '').strip()
    if not text:
        return jsonify({'error': 'text is required'}), 400

    cq = CustomQuestion(
        topic=topic.value,
        mode=mode,
        key=str(data.get('key') or '').strip(),
        text=text,
        is_analysis=bool(data.get('is_analysis') or data.get('isAnalysis')),
    )
    try:
        _store().add(cq)
    except SQLAlchemyError as exc:
        current_app.logger.error(f"[custom-create] failed: {exc}")
        return jsonify({'error': 'Could not save question'}), 500
    return jsonify(cq.to_dict()), 201


@custom_questions.route('/<question_id>', methods=['DELETE'])
@login_required
def delete_custom_question(question_id):
    if not _store().delete(question_id):
        return jsonify({'error': 'Question not found'}), 404
    return jsonify({'success': True})
