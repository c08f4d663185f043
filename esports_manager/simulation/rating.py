"""
Player rating and per-match aggregation.

rating = RATING_BASE + RATING_SCALE * (kills + 0.3 * assists + 0.5 * mvps) / max(1, deaths)

Always positive and finite; grows with kills, assists and MVP rounds and
shrinks with deaths. The death floor only applies inside the formula; the
displayed death count is never altered.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..config import RATING_ASSIST_WEIGHT, RATING_BASE, RATING_MVP_WEIGHT, RATING_SCALE
from .schemas import PlayerPerformance, RoundResult


def compute_rating(kills: int, deaths: int, assists: int = 0, mvps: int = 0) -> float:
    impact = kills + RATING_ASSIST_WEIGHT * assists + RATING_MVP_WEIGHT * mvps
    return RATING_BASE + RATING_SCALE * impact / max(1, deaths)


@dataclass
class _Tally:
    """Mutable accumulator for one player while aggregating rounds."""
    team_id: str
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    mvps: int = 0
    damage: int = 0
    rounds: int = 0
    plants: int = 0
    defuses: int = 0


def aggregate_performances(rounds: Iterable[RoundResult]) -> list[PlayerPerformance]:
    """
    Sum per-round stats into one PlayerPerformance per player.
    Order follows first appearance in the rounds.
    """
    tallies: dict[str, _Tally] = {}
    for r in rounds:
        for s in r.player_stats:
            t = tallies.get(s.player_id)
            if t is None:
                t = tallies[s.player_id] = _Tally(team_id=s.team_id)
            t.kills += s.kills
            t.deaths += s.deaths
            t.assists += s.assists
            t.damage += s.damage
            t.rounds += 1
            if s.mvp:
                t.mvps += 1
            if s.planted:
                t.plants += 1
            if s.defused:
                t.defuses += 1
    return [
        PlayerPerformance(
            player_id=pid,
            team_id=t.team_id,
            kills=t.kills,
            deaths=t.deaths,
            assists=t.assists,
            mvps=t.mvps,
            damage=t.damage,
            rounds_played=t.rounds,
            plants=t.plants,
            defuses=t.defuses,
            rating=compute_rating(t.kills, t.deaths, t.assists, t.mvps),
        )
        for pid, t in tallies.items()
    ]


def match_mvp(performances: Iterable[PlayerPerformance]) -> PlayerPerformance | None:
    """Highest-rated player; ties go to more kills, then player id."""
    perfs = list(performances)
    if not perfs:
        return None
    return max(perfs, key=lambda p: (p.rating, p.kills, p.player_id))
