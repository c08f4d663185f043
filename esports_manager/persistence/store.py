"""
EntityStore: in-memory arena of every entity, keyed by id.
No business logic, only lookup, insertion and simple filtered reads.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ..errors import EntityNotFoundError
from ..models import (
    Coach,
    Contract,
    Fixture,
    MapInfo,
    Player,
    RankedTeam,
    RankingEntry,
    Season,
    Team,
    TeamBudget,
    Tournament,
    TransferListing,
)


@dataclass
class EntityStore:
    players: dict[str, Player] = field(default_factory=dict)
    teams: dict[str, Team] = field(default_factory=dict)
    coaches: dict[str, Coach] = field(default_factory=dict)
    maps: dict[str, MapInfo] = field(default_factory=dict)
    # Active contracts keyed by player id; at most one per player
    contracts: dict[str, Contract] = field(default_factory=dict)
    contract_history: list[Contract] = field(default_factory=list)
    budgets: dict[str, TeamBudget] = field(default_factory=dict)
    # Active listings keyed by player id
    listings: dict[str, TransferListing] = field(default_factory=dict)
    listing_history: list[TransferListing] = field(default_factory=list)
    tournaments: dict[str, Tournament] = field(default_factory=dict)
    fixtures: dict[str, Fixture] = field(default_factory=dict)
    rankings: list[RankedTeam] = field(default_factory=list)
    ranking_entries: list[RankingEntry] = field(default_factory=list)
    season: Season | None = None
    season_history: list[Season] = field(default_factory=list)

    # ---------- Players ----------

    def add_player(self, player: Player) -> Player:
        self.players[player.player_id] = player
        return player

    def get_player(self, player_id: str) -> Player:
        player = self.players.get(player_id)
        if player is None:
            raise EntityNotFoundError(f"Player not found: {player_id}")
        return player

    def find_player(self, player_id: str) -> Player | None:
        return self.players.get(player_id)

    def active_players(self) -> list[Player]:
        return [p for p in self.players.values() if not p.retired]

    def free_agents(self) -> list[Player]:
        return [p for p in self.players.values() if p.team_id is None and not p.retired]

    # ---------- Teams ----------

    def add_team(self, team: Team) -> Team:
        self.teams[team.team_id] = team
        return team

    def get_team(self, team_id: str) -> Team:
        team = self.teams.get(team_id)
        if team is None:
            raise EntityNotFoundError(f"Team not found: {team_id}")
        return team

    def find_team(self, team_id: str) -> Team | None:
        return self.teams.get(team_id)

    def roster_players(self, team: Team) -> list[Player]:
        """Active five, in roster order."""
        return [self.get_player(pid) for pid in team.active_roster]

    def team_players(self, team: Team) -> list[Player]:
        return [self.get_player(pid) for pid in team.all_player_ids]

    def add_coach(self, coach: Coach) -> Coach:
        self.coaches[coach.coach_id] = coach
        return coach

    def coach_of(self, team: Team) -> Coach | None:
        if team.coach_id is None:
            return None
        return self.coaches.get(team.coach_id)

    # ---------- Maps ----------

    def add_map(self, map_info: MapInfo) -> MapInfo:
        self.maps[map_info.name] = map_info
        return map_info

    def get_map(self, name: str) -> MapInfo:
        map_info = self.maps.get(name)
        if map_info is None:
            raise EntityNotFoundError(f"Map not found: {name}")
        return map_info

    # ---------- Economy ----------

    def get_budget(self, team_id: str) -> TeamBudget:
        budget = self.budgets.get(team_id)
        if budget is None:
            raise EntityNotFoundError(f"No budget for team: {team_id}")
        return budget

    def contracts_for_team(self, team_id: str) -> list[Contract]:
        return [c for c in self.contracts.values() if c.team_id == team_id]

    # ---------- Competition ----------

    def add_fixtures(self, fixtures: Iterable[Fixture]) -> None:
        for f in fixtures:
            self.fixtures[f.fixture_id] = f

    def fixtures_on_day(self, day: int) -> list[Fixture]:
        """Unplayed fixtures scheduled for day, in id order."""
        return sorted(
            (f for f in self.fixtures.values() if f.day == day and not f.played),
            key=lambda f: f.fixture_id,
        )

    def get_tournament(self, tournament_id: str) -> Tournament:
        tournament = self.tournaments.get(tournament_id)
        if tournament is None:
            raise EntityNotFoundError(f"Tournament not found: {tournament_id}")
        return tournament

    def ranking_of(self, team_id: str) -> RankedTeam | None:
        for r in self.rankings:
            if r.team_id == team_id:
                return r
        return None

    def current_day(self) -> int:
        return self.season.current_day if self.season else 0
