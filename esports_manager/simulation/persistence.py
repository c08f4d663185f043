"""
Persistence, Replay & Diagnostics: store a finished match's rounds, seed and
config for exact replay; build per-match summaries for analysis.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Sequence

from .orchestrator import MatchOrchestrator
from .rating import match_mvp
from .schemas import MatchConfig, MatchResult, RoundResult, Side

if TYPE_CHECKING:
    from ..models import Coach, MapInfo, Player, Team


@dataclass
class ReplayMetadata:
    """Enough to replay a match exactly."""
    match_id: str
    seed: int | None
    config: dict[str, Any]
    round_count: int
    score: tuple[int, int]
    winner_id: str


def round_to_dict(r: RoundResult) -> dict[str, Any]:
    """RoundResult to JSON-serializable dict."""
    return {
        "round_number": r.round_number,
        "winner_team_id": r.winner_team_id,
        "winner_side": r.winner_side.value,
        "end_reason": r.end_reason.value,
        "score_after": list(r.score_after),
        "overtime": r.overtime,
        "p_attack_win": round(r.p_attack_win, 4),
        "player_stats": [asdict(s) for s in r.player_stats],
    }


def save_replay(result: MatchResult, config: MatchConfig, directory: str | Path) -> Path:
    """Save round log + metadata for replay."""
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    meta = ReplayMetadata(
        match_id=result.match_id,
        seed=config.seed,
        config=asdict(config),
        round_count=result.total_rounds,
        score=(result.score_a, result.score_b),
        winner_id=result.winner_id,
    )
    meta_path = path / f"{result.match_id}_meta.json"
    rounds_path = path / f"{result.match_id}_rounds.json"
    meta_path.write_text(json.dumps(asdict(meta), indent=2))
    rounds_path.write_text(json.dumps([round_to_dict(r) for r in result.rounds], indent=2))
    return path


def load_replay(match_id: str, directory: str | Path) -> tuple[ReplayMetadata, list[dict]]:
    """Load metadata and round list (as dicts) for a match."""
    path = Path(directory)
    meta_raw = json.loads((path / f"{match_id}_meta.json").read_text())
    meta_raw["score"] = tuple(meta_raw["score"])
    meta = ReplayMetadata(**meta_raw)
    rounds = json.loads((path / f"{match_id}_rounds.json").read_text())
    return meta, rounds


def config_from_metadata(meta: ReplayMetadata) -> MatchConfig:
    return MatchConfig(**meta.config)


def replay_match(
    meta: ReplayMetadata,
    team_a: Team,
    team_b: Team,
    players_a: Sequence[Player],
    players_b: Sequence[Player],
    map_info: MapInfo,
    coach_a: Coach | None = None,
    coach_b: Coach | None = None,
) -> MatchResult:
    """
    Re-run a saved match from its stored config and seed. With the same
    teams and players as on match day the rounds come out identical.
    """
    config = config_from_metadata(meta)
    orchestrator = MatchOrchestrator(
        config, team_a, team_b, players_a, players_b, map_info=map_info, coach_a=coach_a, coach_b=coach_b
    )
    return orchestrator.play()


@dataclass
class MatchSummary:
    """Aggregated per-match summary for analysis."""
    match_id: str
    winner_id: str
    score: tuple[int, int]
    total_rounds: int
    overtime_rounds: int
    attack_round_share: float
    top_player_id: str | None


def summarize_match(result: MatchResult) -> MatchSummary:
    """Build MatchSummary from a MatchResult."""
    rounds = result.rounds
    attack_wins = sum(1 for r in rounds if r.winner_side == Side.ATTACK)
    top = match_mvp(result.performances)
    return MatchSummary(
        match_id=result.match_id,
        winner_id=result.winner_id,
        score=(result.score_a, result.score_b),
        total_rounds=len(rounds),
        overtime_rounds=sum(1 for r in rounds if r.overtime),
        attack_round_share=attack_wins / len(rounds) if rounds else 0.0,
        top_player_id=top.player_id if top else None,
    )
