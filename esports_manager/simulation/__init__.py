"""
Match Simulation Engine: deterministic, replayable round-by-round maps and
best-of series for tactical-shooter teams.
"""
from .schemas import (
    MatchConfig,
    MatchFormat,
    MatchResult,
    PlayerPerformance,
    PlayerRoundStat,
    RoundEndReason,
    RoundResult,
    SeriesResult,
    Side,
    VetoAction,
)
from .rng import SeededRNG
from .probability_engine import (
    ProbabilityEngine,
    RoundContext,
    RoundProbs,
    TeamStrength,
    map_advantage,
    team_skill_factor,
)
from .state_tracker import MomentumState, ScoreState, match_winner, team_a_attacks
from .economy_model import EconomyModel, EconomyState
from .round_simulator import RoundSimulator, RoundSide
from .rating import aggregate_performances, compute_rating, match_mvp
from .orchestrator import MatchOrchestrator, simulate_match, validate_lineup
from .veto import run_veto, simulate_series
from .persistence import save_replay, load_replay, replay_match, summarize_match, ReplayMetadata, MatchSummary

__all__ = [
    "MatchConfig",
    "MatchFormat",
    "MatchResult",
    "PlayerPerformance",
    "PlayerRoundStat",
    "RoundEndReason",
    "RoundResult",
    "SeriesResult",
    "Side",
    "VetoAction",
    "SeededRNG",
    "ProbabilityEngine",
    "RoundContext",
    "RoundProbs",
    "TeamStrength",
    "map_advantage",
    "team_skill_factor",
    "MomentumState",
    "ScoreState",
    "match_winner",
    "team_a_attacks",
    "EconomyModel",
    "EconomyState",
    "RoundSimulator",
    "RoundSide",
    "aggregate_performances",
    "compute_rating",
    "match_mvp",
    "MatchOrchestrator",
    "simulate_match",
    "validate_lineup",
    "run_veto",
    "simulate_series",
    "save_replay",
    "load_replay",
    "replay_match",
    "summarize_match",
    "ReplayMetadata",
    "MatchSummary",
]
