"""
Match Orchestrator: round progression on one map (first past half the
regulation rounds, overtime periods, sudden-death decider), side swaps and
economy resets at half starts.

The orchestrator only reads players and teams; it never mutates them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator, Sequence

from ..config import DEFAULT_MAX_OVERTIME_PERIODS, DEFAULT_OVERTIME_ROUNDS
from ..errors import InvalidConfigError, InvalidRosterError
from ..models import Coach, MapInfo, Player, Team
from .economy_model import EconomyModel, EconomyState
from .probability_engine import ProbabilityEngine, RoundContext, TeamStrength, map_advantage, team_skill_factor
from .rating import aggregate_performances
from .rng import SeededRNG
from .round_simulator import RoundSide, RoundSimulator
from .schemas import MatchConfig, MatchResult, RoundResult, Side
from .state_tracker import (
    MomentumState,
    ScoreState,
    is_half_start,
    is_overtime_round,
    is_sudden_death_round,
    match_winner,
    max_possible_rounds,
    team_a_attacks,
)

ROSTER_SIZE = 5


def validate_lineup(team: Team, players: Sequence[Player]) -> None:
    """Raise InvalidRosterError unless exactly five distinct players are supplied."""
    if len(players) != ROSTER_SIZE:
        raise InvalidRosterError(
            f"Team {team.name} must field exactly {ROSTER_SIZE} players, got {len(players)}"
        )
    if len({p.player_id for p in players}) != ROSTER_SIZE:
        raise InvalidRosterError(f"Team {team.name} lists the same player twice")


@dataclass
class OrchestratorState:
    round_index: int
    score: ScoreState
    momentum: MomentumState
    economy_a: EconomyState
    economy_b: EconomyState
    completed: bool = False
    winner_id: str | None = None
    rounds: list[RoundResult] = field(default_factory=list)
    # Coin flip for the decider's sides, drawn when it is reached
    decider_a_attacks: bool | None = None


class MatchOrchestrator:
    """
    Runs one map round-by-round. Yields RoundResults (or emits via callback);
    result() builds the immutable MatchResult once the map is decided.
    """

    def __init__(
        self,
        config: MatchConfig,
        team_a: Team,
        team_b: Team,
        players_a: Sequence[Player],
        players_b: Sequence[Player],
        map_info: MapInfo | None = None,
        coach_a: Coach | None = None,
        coach_b: Coach | None = None,
        prob_engine: ProbabilityEngine | None = None,
        economy_model: EconomyModel | None = None,
        rng: SeededRNG | None = None,
    ) -> None:
        if config.max_rounds <= 0:
            raise InvalidConfigError(f"max_rounds must be positive, got {config.max_rounds}")
        if config.overtime_rounds <= 0 or config.overtime_rounds % 2:
            raise InvalidConfigError(f"overtime_rounds must be positive and even, got {config.overtime_rounds}")
        if config.max_overtime_periods < 0:
            raise InvalidConfigError("max_overtime_periods cannot be negative")
        validate_lineup(team_a, players_a)
        validate_lineup(team_b, players_b)
        if {p.player_id for p in players_a} & {p.player_id for p in players_b}:
            raise InvalidRosterError("A player cannot play for both teams")

        self.config = config
        self.team_a = team_a
        self.team_b = team_b
        self.players_a = tuple(players_a)
        self.players_b = tuple(players_b)
        self.map_info = map_info or MapInfo(name=config.map_name)
        self.prob_engine = prob_engine or ProbabilityEngine()
        self.economy_model = economy_model or EconomyModel()
        self.rng = rng or SeededRNG(config.seed)
        self.round_sim = RoundSimulator(self.rng)
        self.strength_a = TeamStrength(
            team_id=team_a.team_id,
            skill=team_skill_factor(self.players_a, coach_a, team=team_a),
            map_factor=map_advantage(team_a, self.players_a, config.map_name),
            aggression=team_a.aggression / 100.0,
        )
        self.strength_b = TeamStrength(
            team_id=team_b.team_id,
            skill=team_skill_factor(self.players_b, coach_b, team=team_b),
            map_factor=map_advantage(team_b, self.players_b, config.map_name),
            aggression=team_b.aggression / 100.0,
        )
        self.state = OrchestratorState(
            round_index=0,
            score=ScoreState(),
            momentum=MomentumState(),
            economy_a=EconomyState(),
            economy_b=EconomyState(),
        )

    @property
    def round_limit(self) -> int:
        cfg = self.config
        return max_possible_rounds(cfg.max_rounds, cfg.overtime_rounds, cfg.max_overtime_periods)

    def _sides(self, a_attacks: bool) -> tuple[RoundSide, RoundSide]:
        side_a = RoundSide(self.team_a.team_id, Side.ATTACK if a_attacks else Side.DEFENSE, self.players_a)
        side_b = RoundSide(self.team_b.team_id, Side.DEFENSE if a_attacks else Side.ATTACK, self.players_b)
        return (side_a, side_b) if a_attacks else (side_b, side_a)

    def play_round(self) -> RoundResult:
        cfg = self.config
        state = self.state
        idx = state.round_index
        overtime = is_overtime_round(idx, cfg.max_rounds)
        pistol = is_half_start(idx, cfg.max_rounds, cfg.overtime_rounds)
        if pistol:
            self.economy_model.reset_for_half(state.economy_a, state.economy_b, overtime=overtime)
            state.momentum.reset()
        self.economy_model.buy(state.economy_a, pistol=pistol and not overtime)
        self.economy_model.buy(state.economy_b, pistol=pistol and not overtime)

        if state.decider_a_attacks is None and is_sudden_death_round(
            idx, cfg.max_rounds, cfg.overtime_rounds, cfg.max_overtime_periods
        ):
            state.decider_a_attacks = self.rng.chance(0.5)
        a_attacks = team_a_attacks(
            idx,
            cfg.max_rounds,
            cfg.overtime_rounds,
            cfg.max_overtime_periods,
            decider_a_attacks=bool(state.decider_a_attacks),
        )
        ctx = RoundContext(
            a_attacks=a_attacks,
            score_a=state.score.score_a,
            score_b=state.score.score_b,
            momentum=state.momentum,
            buy_factor_a=self.economy_model.buy_factor(state.economy_a),
            buy_factor_b=self.economy_model.buy_factor(state.economy_b),
            attacker_win_rate=self.map_info.attacker_win_rate,
        )
        probs = self.prob_engine.compute(self.strength_a, self.strength_b, ctx)
        attack, defense = self._sides(a_attacks)
        outcome = self.round_sim.simulate_round(attack, defense, probs.p_attack_wins)

        winner_is_a = outcome.winner.team_id == self.team_a.team_id
        state.score.record_round(winner_is_a)
        state.momentum.record_round(winner_is_a)
        winner_eco, loser_eco = (
            (state.economy_a, state.economy_b) if winner_is_a else (state.economy_b, state.economy_a)
        )
        loser_planted = outcome.planted and outcome.loser.side == Side.ATTACK
        self.economy_model.update_after_round(winner_eco, loser_eco, loser_planted=loser_planted)

        result = RoundResult(
            round_number=idx + 1,
            winner_team_id=outcome.winner.team_id,
            winner_side=outcome.winner.side,
            end_reason=outcome.end_reason,
            score_after=state.score.score(),
            player_stats=tuple(outcome.player_stats),
            overtime=overtime,
            p_attack_win=probs.p_attack_wins,
        )
        state.rounds.append(result)
        state.round_index += 1

        decided = match_winner(
            state.score.score_a,
            state.score.score_b,
            cfg.max_rounds,
            cfg.overtime_rounds,
            cfg.max_overtime_periods,
        )
        if decided is not None:
            state.completed = True
            state.winner_id = self.team_a.team_id if decided == "a" else self.team_b.team_id
        return result

    def run(self, on_round: Callable[[RoundResult], None] | None = None) -> Iterator[RoundResult]:
        """
        Play the map to completion. Yields a RoundResult per round.
        Optionally call on_round(result) for each round.
        """
        while not self.state.completed:
            if self.state.round_index >= self.round_limit:
                # Unreachable: the sudden-death round always produces a winner
                raise RuntimeError("Round limit reached without a winner")
            result = self.play_round()
            if on_round:
                on_round(result)
            yield result

    def result(self) -> MatchResult:
        """Immutable result of a completed map."""
        if not self.state.completed or self.state.winner_id is None:
            raise RuntimeError("Match has not finished")
        cfg = self.config
        rounds = tuple(self.state.rounds)
        overtime_rounds_played = max(0, len(rounds) - cfg.max_rounds)
        overtime_periods = -(-overtime_rounds_played // cfg.overtime_rounds) if overtime_rounds_played else 0
        return MatchResult(
            match_id=cfg.match_id,
            team_a_id=self.team_a.team_id,
            team_b_id=self.team_b.team_id,
            map_name=cfg.map_name,
            score_a=self.state.score.score_a,
            score_b=self.state.score.score_b,
            winner_id=self.state.winner_id,
            rounds=rounds,
            performances=tuple(aggregate_performances(rounds)),
            overtime_periods=overtime_periods,
            seed=cfg.seed,
            max_rounds=cfg.max_rounds,
        )

    def play(self) -> MatchResult:
        for _ in self.run():
            pass
        return self.result()


def simulate_match(
    team_a: Team,
    team_b: Team,
    players_a: Sequence[Player],
    players_b: Sequence[Player],
    map_info: MapInfo,
    max_rounds: int,
    seed: int | None = None,
    match_id: str | None = None,
    coach_a: Coach | None = None,
    coach_b: Coach | None = None,
    overtime_rounds: int = DEFAULT_OVERTIME_ROUNDS,
    max_overtime_periods: int = DEFAULT_MAX_OVERTIME_PERIODS,
    prob_engine: ProbabilityEngine | None = None,
) -> MatchResult:
    """Simulate one map and return its MatchResult. Side-effect free."""
    config = MatchConfig(
        match_id=match_id or f"{team_a.team_id}-{team_b.team_id}-{map_info.name}-{seed}",
        team_a_id=team_a.team_id,
        team_b_id=team_b.team_id,
        map_name=map_info.name,
        seed=seed,
        max_rounds=max_rounds,
        overtime_rounds=overtime_rounds,
        max_overtime_periods=max_overtime_periods,
    )
    orchestrator = MatchOrchestrator(
        config,
        team_a,
        team_b,
        players_a,
        players_b,
        map_info=map_info,
        coach_a=coach_a,
        coach_b=coach_b,
        prob_engine=prob_engine,
    )
    return orchestrator.play()
