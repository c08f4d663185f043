"""
Momentum & State Tracker: match score, side rules and momentum.
Tracks consecutive rounds and derives a momentum score from recent results.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field


@dataclass
class ScoreState:
    """Round score of a single map."""
    score_a: int = 0
    score_b: int = 0

    @property
    def rounds_played(self) -> int:
        return self.score_a + self.score_b

    def score(self) -> tuple[int, int]:
        return (self.score_a, self.score_b)

    def record_round(self, winner_is_a: bool) -> None:
        if winner_is_a:
            self.score_a += 1
        else:
            self.score_b += 1


@dataclass
class MomentumState:
    """
    Rolling window of recent round outcomes and streak info.
    momentum_score_a is a continuous value in [-1, 1].
    """
    window_size: int = 6
    # Last N round outcomes: 1 = A won, -1 = B won
    last_outcomes: deque[int] = field(default_factory=lambda: deque(maxlen=6))
    streak_a: int = 0
    streak_b: int = 0

    def record_round(self, winner_is_a: bool) -> None:
        self.last_outcomes.append(1 if winner_is_a else -1)
        if winner_is_a:
            self.streak_a += 1
            self.streak_b = 0
        else:
            self.streak_b += 1
            self.streak_a = 0

    def reset(self) -> None:
        self.last_outcomes.clear()
        self.streak_a = 0
        self.streak_b = 0

    def momentum_score_a(self, streak_boost: float = 0.1) -> float:
        """Recency-weighted sum of recent outcomes plus a streak boost."""
        if not self.last_outcomes:
            return 0.0
        n = len(self.last_outcomes)
        weights = [(i + 1) / n for i in range(n)]
        total = sum(w * o for w, o in zip(weights, self.last_outcomes)) / sum(weights)
        if self.streak_a >= 3:
            total = min(1.0, total + streak_boost * min(self.streak_a, 5))
        if self.streak_b >= 3:
            total = max(-1.0, total - streak_boost * min(self.streak_b, 5))
        return max(-1.0, min(1.0, total))

    def momentum_score_b(self, streak_boost: float = 0.1) -> float:
        return -self.momentum_score_a(streak_boost=streak_boost)


# ---------- Side and half rules ----------


def regulation_half(max_rounds: int) -> int:
    """Rounds played before the first side swap."""
    return (max_rounds + 1) // 2


def is_overtime_round(round_index: int, max_rounds: int) -> bool:
    """round_index is 0-based."""
    return round_index >= max_rounds


def is_sudden_death_round(
    round_index: int, max_rounds: int, overtime_rounds: int, max_overtime_periods: int
) -> bool:
    return round_index >= max_rounds + overtime_rounds * max_overtime_periods


def team_a_attacks(
    round_index: int,
    max_rounds: int,
    overtime_rounds: int,
    max_overtime_periods: int,
    decider_a_attacks: bool = True,
) -> bool:
    """
    Team A attacks in the first regulation half. In overtime each period
    starts on the sides regulation ended with and swaps at the period's half.
    Sides for the sudden-death decider are drawn by the caller and passed as
    decider_a_attacks.
    """
    if round_index < max_rounds:
        return round_index < regulation_half(max_rounds)
    if is_sudden_death_round(round_index, max_rounds, overtime_rounds, max_overtime_periods):
        return decider_a_attacks
    within = (round_index - max_rounds) % overtime_rounds
    return within >= overtime_rounds // 2


def is_half_start(round_index: int, max_rounds: int, overtime_rounds: int) -> bool:
    """First round of a regulation or overtime half (economy resets)."""
    if round_index == 0 or round_index == regulation_half(max_rounds):
        return True
    if round_index >= max_rounds:
        return (round_index - max_rounds) % (overtime_rounds // 2) == 0
    return False


def match_winner(
    score_a: int,
    score_b: int,
    max_rounds: int,
    overtime_rounds: int,
    max_overtime_periods: int,
) -> str | None:
    """
    Returns 'a' or 'b' once the map is decided, else None.
    Regulation: first side past max_rounds / 2. Overtime period k: first side
    past half of that period. Sudden death: whoever leads.
    """
    played = score_a + score_b
    if played <= max_rounds:
        target = max_rounds // 2 + 1
    else:
        ot_played = played - max_rounds
        if ot_played > overtime_rounds * max_overtime_periods:
            if score_a == score_b:
                return None
            return "a" if score_a > score_b else "b"
        period = (ot_played - 1) // overtime_rounds
        half = overtime_rounds // 2
        target = max_rounds // 2 + period * half + half + 1
    if score_a >= target:
        return "a"
    if score_b >= target:
        return "b"
    return None


def max_possible_rounds(max_rounds: int, overtime_rounds: int, max_overtime_periods: int) -> int:
    return max_rounds + overtime_rounds * max_overtime_periods + 1
