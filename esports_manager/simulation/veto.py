"""
Map veto and best-of series.

Veto order alternates between the teams, starting with team A. Each team bans
its weakest remaining map and picks its strongest, judged by map-pool strength.
"""
from __future__ import annotations

from typing import Sequence

from ..config import DEFAULT_MAX_OVERTIME_PERIODS, DEFAULT_MAX_ROUNDS, DEFAULT_OVERTIME_ROUNDS
from ..errors import InvalidConfigError
from ..models import Coach, MapInfo, Player, Team
from .orchestrator import simulate_match
from .probability_engine import ProbabilityEngine
from .rng import SeededRNG
from .schemas import MatchFormat, MatchResult, SeriesResult, VetoAction

# "ban" / "pick" sequence per format; the last remaining map is the decider
VETO_SEQUENCES: dict[MatchFormat, tuple[str, ...]] = {
    MatchFormat.BO1: ("ban", "ban", "ban", "ban", "ban", "ban"),
    MatchFormat.BO3: ("ban", "ban", "pick", "pick", "ban", "ban"),
    MatchFormat.BO5: ("ban", "ban", "pick", "pick", "pick", "pick"),
}


def run_veto(team_a: Team, team_b: Team, map_pool: Sequence[str], match_format: MatchFormat) -> list[VetoAction]:
    """
    Returns the veto actions; picked maps plus the decider are the maps played,
    in order. Pools larger than seven maps are vetoed down the same way; smaller
    pools skip the steps that would empty them.
    """
    if len(map_pool) < match_format.maps:
        raise InvalidConfigError(f"{match_format.value} needs at least {match_format.maps} maps")
    remaining = sorted(map_pool)
    actions: list[VetoAction] = []
    picks_needed = match_format.maps - 1
    teams = (team_a, team_b)
    step = 0
    sequence = VETO_SEQUENCES[match_format]
    while len(remaining) > 1:
        action = sequence[step] if step < len(sequence) else "ban"
        picks_made = sum(1 for a in actions if a.action == "pick")
        if action == "ban" and len(remaining) - 1 < picks_needed - picks_made + 1:
            action = "pick"
        if action == "pick" and picks_made >= picks_needed:
            action = "ban"
        team = teams[step % 2]
        strength = team.map_pool_strength
        if action == "ban":
            choice = min(remaining, key=lambda m: (strength.get(m, 50), m))
        else:
            choice = max(remaining, key=lambda m: (strength.get(m, 50), m))
        remaining.remove(choice)
        actions.append(VetoAction(team_id=team.team_id, map_name=choice, action=action))
        step += 1
    actions.append(VetoAction(team_id="", map_name=remaining[0], action="decider"))
    return actions


def maps_from_veto(actions: Sequence[VetoAction]) -> list[str]:
    return [a.map_name for a in actions if a.action in ("pick", "decider")]


def simulate_series(
    series_id: str,
    team_a: Team,
    team_b: Team,
    players_a: Sequence[Player],
    players_b: Sequence[Player],
    maps: dict[str, MapInfo],
    match_format: MatchFormat,
    rng: SeededRNG,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
    coach_a: Coach | None = None,
    coach_b: Coach | None = None,
    overtime_rounds: int = DEFAULT_OVERTIME_ROUNDS,
    max_overtime_periods: int = DEFAULT_MAX_OVERTIME_PERIODS,
    prob_engine: ProbabilityEngine | None = None,
) -> SeriesResult:
    """Veto, then play maps until one team has won a majority."""
    veto = run_veto(team_a, team_b, list(maps), match_format)
    played: list[MatchResult] = []
    wins = [0, 0]
    for index, map_name in enumerate(maps_from_veto(veto)):
        if max(wins) >= match_format.maps_to_win:
            break
        result = simulate_match(
            team_a,
            team_b,
            players_a,
            players_b,
            maps[map_name],
            max_rounds,
            seed=rng.spawn_seed(),
            match_id=f"{series_id}-m{index + 1}",
            coach_a=coach_a,
            coach_b=coach_b,
            overtime_rounds=overtime_rounds,
            max_overtime_periods=max_overtime_periods,
            prob_engine=prob_engine,
        )
        played.append(result)
        wins[0 if result.winner_id == team_a.team_id else 1] += 1
    winner_id = team_a.team_id if wins[0] > wins[1] else team_b.team_id
    return SeriesResult(
        series_id=series_id,
        match_format=match_format,
        team_a_id=team_a.team_id,
        team_b_id=team_b.team_id,
        maps_won=(wins[0], wins[1]),
        winner_id=winner_id,
        matches=tuple(played),
        veto=tuple(veto),
    )
