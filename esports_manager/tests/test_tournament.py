"""
Tests for tournaments: stage transitions, standings, knockout seeding,
forfeits, prize payouts and championship bonuses.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from conftest import make_team

from esports_manager.config import DEFAULT_MAPS
from esports_manager.errors import StateConflictError, ValidationError
from esports_manager.models import (
    CareerEventType,
    ClauseType,
    ContractClause,
    Fixture,
    MapInfo,
    TournamentStage,
    TournamentTier,
)
from esports_manager.persistence.store import EntityStore
from esports_manager.services.contract_service import ContractService
from esports_manager.services.development_service import DevelopmentService
from esports_manager.services.ranking_service import RankingService
from esports_manager.services.tournament_service import (
    TournamentService,
    TournamentTransitionError,
)
from esports_manager.simulation.rng import SeededRNG
from esports_manager.simulation.schemas import MatchResult


def _result(fixture: Fixture, winner_id: str, loser_score: int = 5) -> MatchResult:
    score_a, score_b = (13, loser_score) if winner_id == fixture.team_a_id else (loser_score, 13)
    return MatchResult(
        match_id=f"m-{fixture.fixture_id}",
        team_a_id=fixture.team_a_id,
        team_b_id=fixture.team_b_id,
        map_name=fixture.map_name,
        score_a=score_a,
        score_b=score_b,
        winner_id=winner_id,
        rounds=(),
        performances=(),
    )


def _lowest_id_wins(service: TournamentService, tournament) -> None:
    """Play every scheduled fixture; the alphabetically first team always wins."""
    while not service.is_finished(tournament):
        pending = [f for f in service.fixtures_for(tournament) if not f.played]
        assert pending, "tournament stalled"
        fixture = min(pending, key=lambda f: (f.day, f.fixture_id))
        winner = min(fixture.team_a_id, fixture.team_b_id)
        service.record_result(fixture, _result(fixture, winner), fixture.day)


def _world(n_teams: int):
    store = EntityStore()
    team_ids = [f"t{i + 1}" for i in range(n_teams)]
    for team_id in team_ids:
        make_team(store, team_id)
    for name, rate in DEFAULT_MAPS.items():
        store.add_map(MapInfo(name=name, attacker_win_rate=rate))
    contracts = ContractService(store)
    for team_id in team_ids:
        contracts.initialize_budget(team_id, 100_000)
    service = TournamentService(store, contracts, DevelopmentService(SeededRNG(5)), RankingService(store))
    return store, service, team_ids


class TestLifecycle:
    def test_create_and_start(self):
        store, service, team_ids = _world(4)
        t = service.create_tournament("Cup", TournamentTier.A_TIER, 100_000, team_ids)
        assert t.stage == TournamentStage.NOT_STARTED
        fixtures = service.start_tournament(t, start_day=10)
        assert t.stage == TournamentStage.GROUP_STAGE
        assert len(fixtures) == 6
        assert {f.day for f in fixtures} == {10, 12, 14}
        assert all(f.map_name in DEFAULT_MAPS for f in fixtures)
        assert set(t.fixture_ids) <= set(store.fixtures)

    def test_cannot_start_twice(self):
        _, service, team_ids = _world(4)
        t = service.create_tournament("Cup", TournamentTier.A_TIER, 0, team_ids)
        service.start_tournament(t, 0)
        with pytest.raises(TournamentTransitionError):
            service.start_tournament(t, 20)

    def test_invalid_transition(self):
        _, service, team_ids = _world(4)
        t = service.create_tournament("Cup", TournamentTier.A_TIER, 0, team_ids)
        with pytest.raises(TournamentTransitionError):
            service.transition_stage(t, TournamentStage.COMPLETED)

    @pytest.mark.parametrize("team_ids", [["t1"], ["t1", "t1"]])
    def test_bad_team_lists(self, team_ids):
        _, service, _ = _world(2)
        with pytest.raises(ValidationError):
            service.create_tournament("Cup", TournamentTier.A_TIER, 0, team_ids)


class TestFullTournament:
    def test_four_team_run(self):
        store, service, team_ids = _world(4)
        t = service.create_tournament("Cup", TournamentTier.MAJOR, 100_000, team_ids)
        service.start_tournament(t, start_day=0)
        _lowest_id_wins(service, t)

        standings = service.sorted_standings(t)
        assert [s.team_id for s in standings] == ["t1", "t2", "t3", "t4"]
        assert [s.points for s in standings] == [9, 6, 3, 0]
        assert standings[0].round_difference == 3 * 8

        semis = service.fixtures_for(t, TournamentStage.SEMIFINALS)
        assert {(f.team_a_id, f.team_b_id) for f in semis} == {("t1", "t4"), ("t2", "t3")}
        assert all(f.day == 6 for f in semis)
        final = service.fixtures_for(t, TournamentStage.GRAND_FINAL)
        assert len(final) == 1 and final[0].day == 8

        assert t.stage == TournamentStage.COMPLETED
        assert t.champion_id == "t1"
        assert t.runner_up_id == "t2"
        assert sorted(t.semifinalist_ids) == ["t3", "t4"]
        assert service.placements(t) == {"t1": 1, "t2": 2, "t3": 3, "t4": 3}

        assert store.get_budget("t1").prize_money == 50_000
        assert store.get_budget("t2").prize_money == 25_000
        assert store.get_budget("t3").prize_money == 12_500
        assert store.get_budget("t4").prize_money == 12_500

        for player in store.roster_players(store.get_team("t1")):
            assert player.career_events[-1].event_type == CareerEventType.CHAMPIONSHIP

        reasons = [e.reason for e in store.ranking_entries if e.team_id == "t1"]
        assert any(r.startswith("#1") for r in reasons)

    def test_champions_collect_championship_bonuses(self):
        store, service, team_ids = _world(4)
        for team_id in ("t1", "t2"):
            player_id = f"{team_id}-p1"
            service.contracts.sign_contract(player_id, team_id, 1_000, 0, 6)
            service.contracts.add_contract_clause(player_id, ContractClause(ClauseType.CHAMPIONSHIP_BONUS, 3_000))
        t = service.create_tournament("Cup", TournamentTier.MAJOR, 100_000, team_ids)
        service.start_tournament(t, start_day=0)
        _lowest_id_wins(service, t)
        assert store.contracts["t1-p1"].bonuses_paid == 3_000
        assert store.contracts["t2-p1"].bonuses_paid == 0
        assert store.get_budget("t1").spent_on_bonuses == 3_000

    def test_knockout_results_do_not_touch_standings(self):
        _, service, team_ids = _world(4)
        t = service.create_tournament("Cup", TournamentTier.A_TIER, 0, team_ids)
        service.start_tournament(t, 0)
        _lowest_id_wins(service, t)
        assert sum(s.played for s in t.standings.values()) == 12

    def test_three_teams_go_straight_to_final(self):
        _, service, team_ids = _world(3)
        t = service.create_tournament("Cup", TournamentTier.B_TIER, 30_000, team_ids)
        service.start_tournament(t, 0)
        _lowest_id_wins(service, t)
        assert service.fixtures_for(t, TournamentStage.SEMIFINALS) == []
        final = service.fixtures_for(t, TournamentStage.GRAND_FINAL)[0]
        assert {final.team_a_id, final.team_b_id} == {"t1", "t2"}
        assert t.champion_id == "t1"
        assert service.placements(t) == {"t1": 1, "t2": 2, "t3": 3}


class TestResults:
    def test_result_recorded_once(self):
        _, service, team_ids = _world(4)
        t = service.create_tournament("Cup", TournamentTier.A_TIER, 0, team_ids)
        fixture = service.start_tournament(t, 0)[0]
        service.record_result(fixture, _result(fixture, fixture.team_a_id), 0)
        assert fixture.played
        assert fixture.match_id == f"m-{fixture.fixture_id}"
        with pytest.raises(StateConflictError):
            service.record_result(fixture, _result(fixture, fixture.team_a_id), 0)

    def test_forfeit_scores_a_regulation_win(self):
        _, service, team_ids = _world(4)
        t = service.create_tournament("Cup", TournamentTier.A_TIER, 0, team_ids)
        fixture = service.start_tournament(t, 0)[0]
        service.record_forfeit(fixture, fixture.team_b_id, 0, max_rounds=24)
        assert fixture.forfeit
        assert (fixture.score_a, fixture.score_b) == (0, 13)
        assert t.standings[fixture.team_b_id].points == 3

    def test_forfeit_winner_must_be_in_fixture(self):
        _, service, team_ids = _world(4)
        t = service.create_tournament("Cup", TournamentTier.A_TIER, 0, team_ids)
        fixture = service.start_tournament(t, 0)[0]
        outsider = next(tid for tid in team_ids if tid not in (fixture.team_a_id, fixture.team_b_id))
        with pytest.raises(ValidationError):
            service.record_forfeit(fixture, outsider, 0, 24)
