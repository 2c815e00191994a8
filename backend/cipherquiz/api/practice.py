from flask import Blueprint, jsonify, request, current_app
from cipherquiz.domain import QuizConfig, Topic
from cipherquiz.services.questions import QuestionGenerator

practice = Blueprint('practice', __name__)

MAX_PRACTICE_COUNT = 20


@practice.route('/practice', methods=['GET'])
def practice_questions():
    """Caesar/Vigenere warm-up set. Answers are included; the client checks them."""
    try:
        count = int(request.args.get('count', 5))
    except ValueError:
        return jsonify({'error': 'count must be an integer'}), 400
    count = max(1, min(count, MAX_PRACTICE_COUNT))
    language = request.args.get('language') or current_app.config.get('DEFAULT_LANGUAGE', 'tr')

    caesar = (count + 1) // 2
    config = QuizConfig(
        questions_per_topic={Topic.CAESAR: caesar, Topic.VIGENERE: count - caesar},
        language=language,
    )
    questions = QuestionGenerator().build(config)
    return jsonify([q.to_dict() for q in questions])
