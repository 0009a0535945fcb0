from flask import Blueprint, current_app, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from nhie import db
from nhie.errors import NotFound, ValidationError
from nhie.models import User
from nhie.services import stats

main = Blueprint('main', __name__)

MAX_NAME_LENGTH = 32


def _clean_name(value):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError('Please enter a name')
    value = value.strip()
    if len(value) > MAX_NAME_LENGTH:
        raise ValidationError(f'Name must be at most {MAX_NAME_LENGTH} characters')
    return value


def _get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound('User not found')
    return user


@main.route('', methods=['POST'])
def create_user():
    data = request.get_json(silent=True) or {}
    user = User(name=_clean_name(data.get('name')), avatar=data.get('avatar') or None)
    db.session.add(user)
    db.session.commit()
    login_user(user, remember=True)
    current_app.logger.info(f"[user-create] user={user.id}")
    return jsonify(user.to_dict()), 201


@main.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify(current_user.to_dict())


@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})


@main.route('/leaderboard', methods=['GET'])
def leaderboard():
    try:
        limit = int(request.args.get('limit', current_app.config.get('LEADERBOARD_SIZE', 10)))
    except ValueError:
        raise ValidationError('limit must be an integer') from None
    return jsonify([u.to_dict() for u in stats.leaderboard(max(1, limit))])


@main.route('/<int:user_id>', methods=['GET'])
def get_user(user_id):
    return jsonify(_get_user_or_404(user_id).to_dict())


@main.route('/<int:user_id>', methods=['PUT'])
def update_user(user_id):
    user = _get_user_or_404(user_id)
    data = request.get_json(silent=True) or {}
    if 'name' in data:
        user.name = _clean_name(data.get('name'))
    if 'avatar' in data:
        user.avatar = data.get('avatar') or None
    db.session.commit()
    return jsonify(user.to_dict())
