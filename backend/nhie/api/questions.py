from flask import Blueprint, current_app, jsonify, request

from nhie.errors import ValidationError
from nhie.services import questions as question_bank

questions = Blueprint('questions', __name__)


@questions.route('', methods=['GET'])
def random_questions():
    default_count = int(current_app.config.get('DEFAULT_QUESTION_COUNT', 10))
    try:
        count = int(request.args.get('count', default_count))
    except ValueError:
        raise ValidationError('count must be an integer') from None
    if count < 1:
        raise ValidationError('count must be positive')
    category = request.args.get('category') or None
    return jsonify([q.to_dict() for q in question_bank.sample(count, category)])
