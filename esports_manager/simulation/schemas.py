"""
Round and match output types for the match simulation engine.
Results are frozen: once a match is finalized nothing edits it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..config import DEFAULT_MAX_OVERTIME_PERIODS, DEFAULT_MAX_ROUNDS, DEFAULT_OVERTIME_ROUNDS


class Side(str, Enum):
    """Attacking side plants the bomb; defending side protects the sites."""
    ATTACK = "attack"
    DEFENSE = "defense"

    @property
    def opposite(self) -> Side:
        return Side.DEFENSE if self is Side.ATTACK else Side.ATTACK


class RoundEndReason(str, Enum):
    ELIMINATION = "elimination"
    BOMB_DETONATED = "bomb_detonated"
    BOMB_DEFUSED = "bomb_defused"
    TIME_EXPIRED = "time_expired"


class MatchFormat(str, Enum):
    BO1 = "bo1"
    BO3 = "bo3"
    BO5 = "bo5"

    @property
    def maps(self) -> int:
        return {"bo1": 1, "bo3": 3, "bo5": 5}[self.value]

    @property
    def maps_to_win(self) -> int:
        return self.maps // 2 + 1


@dataclass(frozen=True)
class PlayerRoundStat:
    player_id: str
    team_id: str
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    damage: int = 0
    mvp: bool = False
    planted: bool = False
    defused: bool = False


@dataclass(frozen=True)
class RoundResult:
    """One simulated round; score_after is (team A, team B)."""
    round_number: int
    winner_team_id: str
    winner_side: Side
    end_reason: RoundEndReason
    score_after: tuple[int, int]
    player_stats: tuple[PlayerRoundStat, ...]
    overtime: bool = False
    p_attack_win: float = 0.5


@dataclass(frozen=True)
class PlayerPerformance:
    """Per-player match aggregate."""
    player_id: str
    team_id: str
    kills: int
    deaths: int
    assists: int
    mvps: int
    damage: int
    rounds_played: int
    plants: int
    defuses: int
    rating: float

    @property
    def adr(self) -> float:
        return self.damage / self.rounds_played if self.rounds_played else 0.0

    @property
    def kd_diff(self) -> int:
        return self.kills - self.deaths


@dataclass(frozen=True)
class MatchResult:
    match_id: str
    team_a_id: str
    team_b_id: str
    map_name: str
    score_a: int
    score_b: int
    winner_id: str
    rounds: tuple[RoundResult, ...]
    performances: tuple[PlayerPerformance, ...]
    overtime_periods: int = 0
    seed: int | None = None
    max_rounds: int = DEFAULT_MAX_ROUNDS

    @property
    def loser_id(self) -> str:
        return self.team_b_id if self.winner_id == self.team_a_id else self.team_a_id

    @property
    def total_rounds(self) -> int:
        return len(self.rounds)

    def score_for(self, team_id: str) -> int:
        return self.score_a if team_id == self.team_a_id else self.score_b

    def performance_for(self, player_id: str) -> PlayerPerformance | None:
        for perf in self.performances:
            if perf.player_id == player_id:
                return perf
        return None

    def team_performances(self, team_id: str) -> list[PlayerPerformance]:
        return [p for p in self.performances if p.team_id == team_id]


@dataclass
class MatchConfig:
    """Configuration for a single map simulation."""
    match_id: str
    team_a_id: str
    team_b_id: str
    map_name: str
    seed: int | None = None
    max_rounds: int = DEFAULT_MAX_ROUNDS
    overtime_rounds: int = DEFAULT_OVERTIME_ROUNDS
    max_overtime_periods: int = DEFAULT_MAX_OVERTIME_PERIODS


@dataclass(frozen=True)
class VetoAction:
    team_id: str
    map_name: str
    action: str  # "ban", "pick" or "decider"


@dataclass(frozen=True)
class SeriesResult:
    series_id: str
    match_format: MatchFormat
    team_a_id: str
    team_b_id: str
    maps_won: tuple[int, int]
    winner_id: str
    matches: tuple[MatchResult, ...]
    veto: tuple[VetoAction, ...] = field(default_factory=tuple)
