from flask import current_app

from nhie import db
from nhie.models import User


def increment_points(user_id: int, delta: int) -> None:
    if not delta:
        return
    User.query.filter_by(id=user_id).update({
        User.points: User.points + delta,
        User.daily_points: User.daily_points + delta,
        User.total_points: User.total_points + delta,
    }, synchronize_session=False)
    db.session.commit()


def increment_games_played(user_id: int) -> None:
    User.query.filter_by(id=user_id).update(
        {User.games_played: User.games_played + 1}, synchronize_session=False)
    db.session.commit()


def increment_games_won(user_id: int) -> None:
    User.query.filter_by(id=user_id).update(
        {User.games_won: User.games_won + 1}, synchronize_session=False)
    db.session.commit()


def apply_best_effort(update, *args) -> bool:
    """Run one stats update; failures are logged and never propagate.

    Stats are a secondary view of already committed room state, so a failed
    update must not undo the round that caused it.
    """
    try:
        update(*args)
    except Exception:
        db.session.rollback()
        current_app.logger.exception(f"[stats] {update.__name__}{args} failed")
        return False
    return True


def leaderboard(limit: int = 10):
    return (User.query
            .order_by(User.total_points.desc(), User.games_won.desc(), User.id.asc())
            .limit(limit)
            .all())


def reset_daily_points() -> int:
    count = User.query.update({User.daily_points: 0}, synchronize_session=False)
    db.session.commit()
    return count
