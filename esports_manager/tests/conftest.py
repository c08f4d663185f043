"""
Shared builders for hand-made worlds: uniform players, two-team stores and
fully wired services.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from esports_manager.config import Settings
from esports_manager.generation import assign_roles
from esports_manager.models import MapInfo, Player, SkillSet, Team
from esports_manager.persistence.store import EntityStore
from esports_manager.session import GameSession


def make_player(player_id: str, skill: int = 10, age: int = 24, **kwargs) -> Player:
    """Player with every skill set to skill."""
    skills = SkillSet(**{name: skill for name in SkillSet.names()})
    return Player(
        player_id=player_id,
        first_name="Test",
        last_name=player_id.upper(),
        nickname=f"nick_{player_id}",
        nationality="Denmark",
        age=age,
        skills=skills,
        **kwargs,
    )


def make_team(
    store: EntityStore,
    team_id: str,
    n_active: int = 5,
    n_bench: int = 0,
    skill: int = 10,
) -> Team:
    """Add a team and its players to the store. Player ids are {team_id}-p{n}."""
    players = [make_player(f"{team_id}-p{i + 1}", skill=skill) for i in range(n_active + n_bench)]
    team = Team(team_id=team_id, name=f"Team {team_id.upper()}", tag=team_id.upper()[:4])
    for i, p in enumerate(players):
        p.team_id = team_id
        store.add_player(p)
        if i < n_active:
            team.active_roster.append(p.player_id)
        else:
            team.bench.append(p.player_id)
    team.role_assignments = assign_roles(players[:n_active])
    store.add_team(team)
    return team


@pytest.fixture
def store():
    """Two uniform teams (five active, one bench) and a neutral map."""
    s = EntityStore()
    make_team(s, "ta", n_bench=1)
    make_team(s, "tb", n_bench=1)
    s.add_map(MapInfo(name="Neutral", attacker_win_rate=0.5))
    return s


def small_settings(tmp_path: Path, **overrides) -> Settings:
    values = dict(
        seed=1234,
        season_length=60,
        num_teams=4,
        max_rounds=8,
        overtime_rounds=2,
        max_overtime_periods=2,
        daily_event_chance=0.0,
        save_path=tmp_path / "save.json",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def session(tmp_path):
    """A fresh four-team game on a sixty-day season with short matches."""
    game = GameSession(small_settings(tmp_path))
    game.new_game()
    return game
