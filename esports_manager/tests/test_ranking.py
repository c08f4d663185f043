"""
Tests for world rankings: points, decay, ordering and rank changes.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from conftest import make_team

from esports_manager.models import TournamentTier
from esports_manager.persistence.store import EntityStore
from esports_manager.services.ranking_service import (
    MATCH_WIN_POINTS,
    RANKING_DECAY_DAYS,
    RankingService,
    decay_factor,
)
from esports_manager.simulation.schemas import MatchResult


def _win(winner: str, loser: str, match_id: str = "m1") -> MatchResult:
    return MatchResult(
        match_id=match_id,
        team_a_id=winner,
        team_b_id=loser,
        map_name="Nuke",
        score_a=13,
        score_b=7,
        winner_id=winner,
        rounds=(),
        performances=(),
    )


@pytest.fixture
def rankings():
    store = EntityStore()
    for team_id in ("t1", "t2", "t3"):
        make_team(store, team_id)
    return store, RankingService(store)


def test_decay_is_linear():
    assert decay_factor(0, 0) == 1.0
    assert decay_factor(0, RANKING_DECAY_DAYS // 2) == pytest.approx(0.5)
    assert decay_factor(0, RANKING_DECAY_DAYS) == 0.0
    assert decay_factor(10, 5) == 1.0


def test_tier_weights_scale_match_points(rankings):
    _, service = rankings
    major = service.record_match(_win("t1", "t2"), day=0, tier=TournamentTier.MAJOR)
    minor = service.record_match(_win("t1", "t2"), day=0, tier=TournamentTier.C_TIER)
    assert major.points == pytest.approx(MATCH_WIN_POINTS * 2.0)
    assert minor.points == pytest.approx(MATCH_WIN_POINTS * 0.3)


def test_update_orders_by_points(rankings):
    store, service = rankings
    service.record_placement("t2", 1, TournamentTier.A_TIER, day=0, tournament_name="Cup")
    service.record_placement("t3", 2, TournamentTier.A_TIER, day=0, tournament_name="Cup")
    ranked = service.update_world_rankings(day=0)
    assert [r.team_id for r in ranked] == ["t2", "t3", "t1"]
    assert [r.position for r in ranked] == [1, 2, 3]
    assert store.get_team("t2").world_ranking == 1
    assert store.get_team("t2").ranking_points == 1000.0


def test_ties_break_on_name(rankings):
    _, service = rankings
    ranked = service.update_world_rankings(day=0)
    assert [r.team_id for r in ranked] == ["t1", "t2", "t3"]


def test_rank_change_tracked(rankings):
    _, service = rankings
    service.update_world_rankings(day=0)
    service.record_placement("t3", 1, TournamentTier.MAJOR, day=1)
    ranked = service.update_world_rankings(day=1)
    by_team = {r.team_id: r for r in ranked}
    assert by_team["t3"].position == 1
    assert by_team["t3"].change_in_rank == 2
    assert by_team["t1"].change_in_rank == -1


def test_beating_top_team_is_worth_more(rankings):
    _, service = rankings
    service.record_placement("t1", 1, TournamentTier.MAJOR, day=0)
    service.update_world_rankings(day=0)
    upset = service.record_match(_win("t3", "t1", "m2"), day=1, tier=TournamentTier.A_TIER)
    routine = service.record_match(_win("t1", "t3", "m3"), day=1, tier=TournamentTier.A_TIER)
    assert upset.points > routine.points


def test_old_entries_drop_out(rankings):
    store, service = rankings
    service.record_placement("t1", 1, TournamentTier.MAJOR, day=0)
    service.update_world_rankings(day=RANKING_DECAY_DAYS + 1)
    assert store.ranking_entries == []
    assert all(r.points == 0 for r in service.get_world_rankings())
