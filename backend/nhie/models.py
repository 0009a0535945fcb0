from nhie import db, bcrypt
from flask_login import UserMixin
from datetime import datetime
import json

ROOM_STATUSES = ('waiting', 'playing', 'completed')
VISIBILITIES = ('public', 'private')


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False, index=True)
    avatar = db.Column(db.String(512), nullable=True)
    points = db.Column(db.Integer, default=0, nullable=False)
    daily_points = db.Column(db.Integer, default=0, nullable=False)
    total_points = db.Column(db.Integer, default=0, nullable=False)
    games_played = db.Column(db.Integer, default=0, nullable=False)
    games_won = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'avatar': self.avatar,
            'points': self.points or 0,
            'dailyPoints': self.daily_points or 0,
            'stats': {
                'totalPoints': self.total_points or 0,
                'gamesPlayed': self.games_played or 0,
                'gamesWon': self.games_won or 0,
            },
        }

    def to_summary(self):
        return {'id': self.id, 'name': self.name, 'avatar': self.avatar}


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    text = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(64), default='general', nullable=False, index=True)
    difficulty = db.Column(db.String(16), default='medium', nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'text': self.text,
            'category': self.category,
            'difficulty': self.difficulty,
        }


class RoomPlayer(db.Model):
    __tablename__ = 'room_player'
    __table_args__ = (db.UniqueConstraint('room_id', 'user_id', name='uq_room_player_user'),)
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    points = db.Column(db.Integer, default=0, nullable=False)
    is_ready = db.Column(db.Boolean, default=False, nullable=False)
    room = db.relationship('Room', back_populates='players')
    user = db.relationship('User')

    def to_dict(self):
        return {
            'userId': self.user_id,
            'name': self.user.name if self.user else None,
            'avatar': self.user.avatar if self.user else None,
            'points': self.points or 0,
            'isReady': bool(self.is_ready),
        }


class Answer(db.Model):
    __tablename__ = 'answer'
    # Backstop only; the ledger checks before inserting
    __table_args__ = (
        db.UniqueConstraint('room_id', 'user_id', 'question_id', 'round', name='uq_answer_once_per_round'),
    )
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=False)
    value = db.Column(db.Boolean, nullable=False)
    round = db.Column(db.Integer, nullable=False)
    room = db.relationship('Room', back_populates='answers')

    def to_dict(self):
        return {
            'userId': self.user_id,
            'questionId': self.question_id,
            'value': self.value,
            'round': self.round,
        }


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    visibility = db.Column(db.String(16), default='public', nullable=False)  # public, private
    access_code_hash = db.Column(db.String(128), nullable=True)
    host_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    max_players = db.Column(db.Integer, nullable=False)
    max_rounds = db.Column(db.Integer, nullable=False)
    current_round = db.Column(db.Integer, default=0, nullable=False)
    status = db.Column(db.String(16), default='waiting', nullable=False, index=True)  # waiting, playing, completed
    question_ids = db.Column(db.Text, nullable=True)  # JSON-encoded list of question ids, one per round
    current_question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    host = db.relationship('User', foreign_keys=[host_id])
    current_question = db.relationship('Question', foreign_keys=[current_question_id])
    players = db.relationship('RoomPlayer', back_populates='room', order_by='RoomPlayer.id',
                              cascade='all, delete-orphan')
    answers = db.relationship('Answer', back_populates='room', order_by='Answer.id',
                              cascade='all, delete-orphan')

    # Every UPDATE of a room row checks and bumps `version`
    __mapper_args__ = {'version_id_col': version}

    def set_access_code(self, code):
        self.access_code_hash = bcrypt.generate_password_hash(code).decode('utf-8') if code else None

    def check_access_code(self, code):
        if not self.access_code_hash:
            return True
        if not code:
            return False
        return bcrypt.check_password_hash(self.access_code_hash, code)

    @property
    def question_sequence(self):
        return json.loads(self.question_ids) if self.question_ids else []

    @question_sequence.setter
    def question_sequence(self, ids):
        self.question_ids = json.dumps(list(ids))

    def player_for(self, user_id):
        for player in self.players:
            if player.user_id == user_id:
                return player
        return None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'visibility': self.visibility,
            'hasAccessCode': bool(self.access_code_hash),
            'hostId': self.host_id,
            'host': self.host.to_summary() if self.host else None,
            'maxPlayers': self.max_players,
            'maxRounds': self.max_rounds,
            'currentRound': self.current_round,
            'status': self.status,
            'players': [p.to_dict() for p in self.players],
            'questionIds': self.question_sequence,
            'currentQuestionId': self.current_question_id,
            'currentQuestion': self.current_question.to_dict() if self.current_question else None,
            'answers': [a.to_dict() for a in self.answers],
        }
