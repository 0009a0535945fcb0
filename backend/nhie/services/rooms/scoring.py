from typing import Dict, Iterable, List, Tuple

MINORITY_BONUS = 10


def tally(answers: Iterable) -> Tuple[int, int]:
    """Return ``(yes_count, no_count)`` for a round's answers."""
    yes = no = 0
    for a in answers:
        if a.value:
            yes += 1
        else:
            no += 1
    return yes, no


def is_minority(value: bool, yes_count: int, player_count: int) -> bool:
    # Compare 2*yes against n to keep the half-way point exact for odd n
    if value:
        return 2 * yes_count < player_count
    return 2 * yes_count > player_count


def score_round(answers: Iterable, player_count: int, bonus: int = MINORITY_BONUS) -> Dict[int, int]:
    """Compute per-player point deltas for a completed round.

    Each answer whose value is held by fewer than half of ``player_count``
    earns ``bonus``; majority answers and both sides of an exact tie earn 0.
    Every answering user appears in the result. Pure: nothing is mutated
    and answer order does not matter.
    """
    answers = list(answers)
    yes_count, _ = tally(answers)
    return {
        a.user_id: bonus if is_minority(a.value, yes_count, player_count) else 0
        for a in answers
    }


def winners(players: Iterable) -> List:
    """All players sharing the highest point total."""
    players = list(players)
    if not players:
        return []
    top = max(p.points or 0 for p in players)
    return [p for p in players if (p.points or 0) == top]
