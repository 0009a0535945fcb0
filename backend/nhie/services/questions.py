from typing import List, Optional

from nhie import db
from nhie.models import Question

DEFAULT_QUESTIONS = [
    ('Never have I ever stayed up all night playing a video game.', 'gaming', 'easy'),
    ('Never have I ever rage-quit a board game.', 'gaming', 'easy'),
    ('Never have I ever pretended to be sick to skip school or work.', 'general', 'easy'),
    ('Never have I ever sent a text to the wrong person.', 'general', 'easy'),
    ('Never have I ever forgotten a friend\'s birthday.', 'general', 'easy'),
    ('Never have I ever eaten food that fell on the floor.', 'food', 'easy'),
    ('Never have I ever cooked a meal that nobody could eat.', 'food', 'medium'),
    ('Never have I ever laughed so hard that I cried in public.', 'general', 'easy'),
    ('Never have I ever missed a flight.', 'travel', 'medium'),
    ('Never have I ever gotten lost in a foreign city.', 'travel', 'medium'),
    ('Never have I ever sung karaoke in front of strangers.', 'general', 'medium'),
    ('Never have I ever binge-watched an entire series in one weekend.', 'general', 'easy'),
    ('Never have I ever lied about reading a book.', 'general', 'medium'),
    ('Never have I ever broken a bone.', 'general', 'medium'),
    ('Never have I ever been on live television.', 'general', 'hard'),
    ('Never have I ever gone skydiving.', 'adventure', 'hard'),
    ('Never have I ever slept outside without a tent.', 'adventure', 'medium'),
    ('Never have I ever re-gifted a present.', 'general', 'medium'),
    ('Never have I ever walked into a glass door.', 'general', 'easy'),
    ('Never have I ever stalked an ex on social media.', 'relationships', 'hard'),
]


def sample(count: int, category: Optional[str] = None) -> List[Question]:
    """Return up to ``count`` distinct questions in random order."""
    query = Question.query
    if category:
        query = query.filter_by(category=category)
    return query.order_by(db.func.random()).limit(count).all()


def seed_questions() -> int:
    """Insert the default question bank; caller commits."""
    for text, category, difficulty in DEFAULT_QUESTIONS:
        db.session.add(Question(text=text, category=category, difficulty=difficulty))
    return len(DEFAULT_QUESTIONS)
