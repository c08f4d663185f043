"""
World rankings.

Teams earn dated ranking entries from match wins (worth more against
higher-ranked opponents and in higher tiers) and tournament placements.
Entries lose value linearly over RANKING_DECAY_DAYS. Rankings are recomputed
on demand, normally once a week.
"""
from __future__ import annotations

import logging

from ..models import RankedTeam, RankingEntry, TournamentTier
from ..persistence.store import EntityStore
from ..simulation.schemas import MatchResult

logger = logging.getLogger(__name__)

RANKING_DECAY_DAYS = 180
MATCH_WIN_POINTS = 10.0

TIER_WEIGHT: dict[TournamentTier, float] = {
    TournamentTier.MAJOR: 2.0,
    TournamentTier.S_TIER: 1.5,
    TournamentTier.A_TIER: 1.0,
    TournamentTier.B_TIER: 0.6,
    TournamentTier.C_TIER: 0.3,
}

# Final placement -> base points
PLACEMENT_POINTS: dict[int, float] = {1: 1000.0, 2: 600.0, 3: 350.0, 4: 350.0}
GROUP_EXIT_POINTS = 100.0


def decay_factor(entry_day: int, day: int) -> float:
    age = day - entry_day
    if age < 0:
        return 1.0
    return max(0.0, 1.0 - age / RANKING_DECAY_DAYS)


class RankingService:
    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def _add(self, team_id: str, day: int, points: float, reason: str) -> RankingEntry:
        entry = RankingEntry(team_id=team_id, day=day, points=points, reason=reason)
        self.store.ranking_entries.append(entry)
        return entry

    def opponent_factor(self, team_id: str) -> float:
        """1.0 against unranked or last-placed teams, up to 2.0 against the number one."""
        ranked = self.store.ranking_of(team_id)
        total = len(self.store.rankings)
        if ranked is None or total <= 1:
            return 1.0
        return 1.0 + (total - ranked.position) / (total - 1)

    def record_match(self, result: MatchResult, day: int, tier: TournamentTier = TournamentTier.B_TIER) -> RankingEntry:
        points = MATCH_WIN_POINTS * TIER_WEIGHT[tier] * self.opponent_factor(result.loser_id)
        return self._add(result.winner_id, day, points, f"Win vs {result.loser_id} ({result.match_id})")

    def record_placement(
        self,
        team_id: str,
        placement: int,
        tier: TournamentTier,
        day: int,
        tournament_name: str = "",
    ) -> RankingEntry:
        base = PLACEMENT_POINTS.get(placement, GROUP_EXIT_POINTS)
        return self._add(team_id, day, base * TIER_WEIGHT[tier], f"#{placement} at {tournament_name}".strip())

    def team_points(self, day: int) -> dict[str, float]:
        totals = {team_id: 0.0 for team_id in self.store.teams}
        for entry in self.store.ranking_entries:
            if entry.team_id in totals:
                totals[entry.team_id] += entry.points * decay_factor(entry.day, day)
        return totals

    def update_world_rankings(self, day: int) -> list[RankedTeam]:
        """
        Recompute positions from decayed points. Ties break on team name.
        Fully decayed entries are dropped.
        """
        self.store.ranking_entries = [e for e in self.store.ranking_entries if decay_factor(e.day, day) > 0.0]
        totals = self.team_points(day)
        previous = {r.team_id: r.position for r in self.store.rankings}
        ordered = sorted(totals.items(), key=lambda kv: (-kv[1], self.store.teams[kv[0]].name, kv[0]))
        rankings: list[RankedTeam] = []
        for position, (team_id, points) in enumerate(ordered, start=1):
            before = previous.get(team_id)
            change = before - position if before is not None else 0
            rankings.append(RankedTeam(team_id=team_id, position=position, points=round(points, 2), change_in_rank=change))
            team = self.store.teams[team_id]
            team.world_ranking = position
            team.ranking_points = round(points, 2)
        self.store.rankings = rankings
        logger.debug("World rankings updated on day %d", day)
        return rankings

    def get_world_rankings(self) -> list[RankedTeam]:
        return list(self.store.rankings)
