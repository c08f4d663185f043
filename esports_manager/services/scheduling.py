"""
Deterministic round-robin scheduling onto simulated days.

Round-robin is used so every team plays every other team exactly once per
cycle; a cycle has N-1 rounds (N even) or N rounds (N odd). Each round is
played on a single day, so no team plays twice on the same day.

BYE handling: when the number of teams is odd, we add a virtual BYE. Each
round one team is paired with BYE and does not play.

Uses the circle method: fix first slot, rotate others each round. Same team
list ordering yields the same schedule.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Callable, Iterable, Sequence

from ..errors import ScheduleConflictError, ValidationError
from ..models import Fixture, TournamentStage

# Sentinel for bye when number of teams is odd
BYE = "BYE"


def round_robin_pairings(team_ids: Sequence[str]) -> list[tuple[int, str, str | None]]:
    """
    Generate round-robin pairings: (round_number, team_a_id, team_b_id).
    team_b_id is None when team_a_id has a bye (odd number of teams).
    Deterministic: same team list => same schedule.
    """
    if not team_ids:
        return []
    ids = list(team_ids)
    if len(set(ids)) != len(ids):
        raise ValidationError("Team ids must be unique")
    if len(ids) % 2 == 1:
        ids.append(BYE)
    n = len(ids)
    result: list[tuple[int, str, str | None]] = []
    # Circle method: fix slot 0, rotate 1..n-1 each round
    order = list(range(n))
    for rnd in range(n - 1):
        for i in range(n // 2):
            a_id = ids[order[i]]
            b_id = ids[order[n - 1 - i]]
            if a_id == BYE:
                a_id, b_id = b_id, BYE
            result.append((rnd + 1, a_id, None if b_id == BYE else b_id))
        order = [order[0]] + [order[n - 1]] + order[1 : n - 1]
    return result


def build_fixtures(
    team_ids: Sequence[str],
    start_day: int,
    pick_map: Callable[[str, str], str],
    id_prefix: str,
    days_between_rounds: int = 1,
    cycles: int = 1,
    tournament_id: str | None = None,
    stage: TournamentStage = TournamentStage.GROUP_STAGE,
) -> list[Fixture]:
    """
    Turn round-robin pairings into dated fixtures. Round r of cycle c is played
    on start_day + (c * rounds + r - 1) * days_between_rounds. In the second
    cycle home and away swap. Byes produce no fixture.
    """
    if days_between_rounds < 1:
        raise ValidationError("Rounds must be at least one day apart")
    pairings = round_robin_pairings(team_ids)
    rounds = max((r for r, _, _ in pairings), default=0)
    fixtures: list[Fixture] = []
    for cycle in range(cycles):
        for rnd, a_id, b_id in pairings:
            if b_id is None:
                continue
            if cycle % 2 == 1:
                a_id, b_id = b_id, a_id
            day = start_day + (cycle * rounds + rnd - 1) * days_between_rounds
            fixtures.append(
                Fixture(
                    fixture_id=f"{id_prefix}-{len(fixtures) + 1:04d}",
                    day=day,
                    team_a_id=a_id,
                    team_b_id=b_id,
                    map_name=pick_map(a_id, b_id),
                    tournament_id=tournament_id,
                    stage=stage,
                )
            )
    validate_schedule(fixtures)
    return fixtures


def validate_schedule(fixtures: Iterable[Fixture]) -> None:
    """Raise ScheduleConflictError if any team plays twice on one day."""
    seen: dict[int, set[str]] = defaultdict(set)
    for f in fixtures:
        if f.team_a_id == f.team_b_id:
            raise ScheduleConflictError(f"Fixture {f.fixture_id} pits {f.team_a_id} against itself")
        for team_id in (f.team_a_id, f.team_b_id):
            if team_id in seen[f.day]:
                raise ScheduleConflictError(f"Team {team_id} is scheduled twice on day {f.day}")
            seen[f.day].add(team_id)
