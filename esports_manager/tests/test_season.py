"""
Tests for the season clock: day loop, phases, payroll, cancellation,
forfeits, determinism, season rollover, youth intake and the team upkeep
that runs each day.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from conftest import small_settings

from esports_manager.errors import SeasonCompleteError, StateConflictError
from esports_manager.config import FREE_AGENT_POOL_MIN, YOUTH_AGE_RANGE
from esports_manager.models import ClauseType, ContractClause, SeasonPhase, TournamentStage, TournamentTier
from esports_manager.services.season_service import compute_season_phase
from esports_manager.session import GameSession


def _fixture_scores(game: GameSession) -> list[tuple]:
    return sorted(
        (f.fixture_id, f.winner_id, f.score_a, f.score_b)
        for f in game.store.fixtures.values() if f.played
    )


class TestPhase:
    @pytest.mark.parametrize("days,phase", [
        (0, SeasonPhase.PRESEASON),
        (11, SeasonPhase.PRESEASON),
        (12, SeasonPhase.REGULAR_SEASON),
        (41, SeasonPhase.REGULAR_SEASON),
        (42, SeasonPhase.PLAYOFFS),
        (54, SeasonPhase.OFFSEASON),
        (60, SeasonPhase.OFFSEASON),
    ])
    def test_phase_from_progress(self, days, phase):
        assert compute_season_phase(days, 60) == phase
        assert compute_season_phase(days, 60) == compute_season_phase(days, 60)


class TestNewGame:
    def test_world_is_ready(self, session):
        store = session.store
        assert len(store.teams) == 4
        assert len(store.maps) == 7
        for team in store.teams.values():
            assert len(team.active_roster) == 5
            assert store.get_budget(team.team_id).available == pytest.approx(session.settings.starting_budget)
            assert len(store.contracts_for_team(team.team_id)) == len(team.all_player_ids)
        assert len(store.free_agents()) == 10
        season = store.season
        assert season.season_number == 1
        assert len(season.tournament_ids) == 2
        tiers = [store.get_tournament(tid).tier for tid in season.tournament_ids]
        assert tiers == [TournamentTier.A_TIER, TournamentTier.MAJOR]

    def test_new_game_needs_empty_store(self, session):
        with pytest.raises(StateConflictError):
            session.new_game()


class TestDayLoop:
    def test_one_day(self, session):
        report = session.advance_one_day()
        assert report.day == 0
        assert report.phase == SeasonPhase.PRESEASON
        assert report.match_ids == []
        assert session.store.season.days_passed == 1

    def test_week_and_month(self, session):
        assert len(session.advance_one_week()) == 7
        assert len(session.advance_one_month()) == 30
        assert session.store.season.days_passed == 37

    def test_matches_played_on_fixture_days(self, session):
        league = session.store.get_tournament(session.store.season.tournament_ids[0])
        first_day = min(session.store.fixtures[fid].day for fid in league.fixture_ids)
        reports = session.season.advance_days(first_day + 1)
        assert reports[-1].day == first_day
        assert len(reports[-1].match_ids) == 2
        played = [f for f in session.store.fixtures.values() if f.played]
        assert len(played) == 2
        for player_id in session.store.get_team(played[0].team_a_id).active_roster:
            assert session.store.get_player(player_id).matches_played == 1

    def test_payroll_runs_once_per_month(self, session):
        reports = session.season.advance_days(60)
        paid_days = [r.day for r in reports if r.payroll is not None]
        assert paid_days == [29, 59]
        for contract in session.store.contracts.values():
            if contract.start_day == 0:
                assert contract.months_paid == 2

    def test_cancel_stops_before_next_day(self, session):
        session.advance_one_day()
        session.season.request_cancel()
        assert session.season.cancel_requested
        assert session.advance_one_day() is None
        assert session.store.season.days_passed == 1
        assert not session.season.cancel_requested
        assert session.advance_one_day() is not None

    def test_cancel_cuts_a_week_short(self, session):
        session.season.request_cancel()
        assert session.advance_one_week() == []
        assert session.store.season.days_passed == 0


class TestFullSeason:
    def test_season_runs_to_completion(self, session):
        reports = session.season.advance_days(1_000)
        season = session.store.season
        assert len(reports) == 60
        assert season.completed
        assert season.phase == SeasonPhase.OFFSEASON
        for tid in season.tournament_ids:
            tournament = session.store.get_tournament(tid)
            assert tournament.stage == TournamentStage.COMPLETED
            assert tournament.champion_id in session.store.teams
        assert all(f.played for f in session.store.fixtures.values())
        assert [r.position for r in session.store.rankings] == [1, 2, 3, 4]
        with pytest.raises(SeasonCompleteError):
            session.advance_one_day()

    def test_rollover(self, session):
        session.season.advance_days(60)
        ages = {p.player_id: p.age for p in session.store.active_players()}
        season = session.season.start_next_season()
        assert season.season_number == 2
        assert season.year == 2026
        assert season.start_day == 60
        assert season.days_passed == 0
        assert len(session.store.season_history) == 1
        for pid, age in ages.items():
            assert session.store.get_player(pid).age == age + 1
        new_fixtures = [session.store.fixtures[fid] for tid in season.tournament_ids
                        for fid in session.store.get_tournament(tid).fixture_ids]
        assert new_fixtures and all(f.day >= 60 for f in new_fixtures)
        for team in session.store.teams.values():
            assert len(team.active_roster) == 5

    def test_rollover_needs_completed_season(self, session):
        with pytest.raises(StateConflictError):
            session.season.start_next_season()


class TestForfeit:
    def test_short_team_forfeits(self, session):
        store = session.store
        fixture = min(store.fixtures.values(), key=lambda f: (f.day, f.fixture_id))
        team = store.get_team(fixture.team_a_id)
        for pid in team.all_player_ids[:2]:
            store.get_player(pid).retired = True
        outcome = session.simulation.run_fixtures([fixture])[0]
        assert outcome.forfeited
        assert outcome.forfeit_winner_id == fixture.team_b_id


class TestDeterminism:
    def test_same_seed_same_season(self, tmp_path):
        one = GameSession(small_settings(tmp_path / "one"))
        two = GameSession(small_settings(tmp_path / "two"))
        one.new_game()
        two.new_game()
        one.season.advance_days(40)
        two.season.advance_days(40)
        assert _fixture_scores(one) == _fixture_scores(two)
        assert [p.to_dict() for p in one.store.players.values()] == [p.to_dict() for p in two.store.players.values()]

    def test_thread_pool_matches_serial(self, tmp_path):
        serial = GameSession(small_settings(tmp_path / "serial", match_workers=1))
        pooled = GameSession(small_settings(tmp_path / "pooled", match_workers=4))
        serial.new_game()
        pooled.new_game()
        serial.season.advance_days(40)
        pooled.season.advance_days(40)
        assert _fixture_scores(serial) == _fixture_scores(pooled)


class TestRosterUpkeep:
    def test_bench_promotion_happens_in_the_day_loop(self, session):
        store = session.store
        fixture = min(store.fixtures.values(), key=lambda f: (f.day, f.fixture_id))
        team = store.get_team(fixture.team_a_id)
        benched = team.active_roster.pop()
        team.bench.append(benched)

        outcome = session.simulation.run_fixtures([fixture])[0]
        assert outcome.forfeited
        assert len(team.active_roster) == 4

        session.advance_one_day()
        assert len(team.active_roster) == 5
        reports = session.season.advance_days(fixture.day)
        assert not [f for r in reports for f in r.forfeits]
        assert store.fixtures[fixture.fixture_id].played


class TestTeamUpkeep:
    def test_chemistry_grows_through_the_week(self, session):
        before = {tid: t.chemistry for tid, t in session.store.teams.items()}
        session.advance_one_week()
        for tid, team in session.store.teams.items():
            assert team.chemistry >= min(100.0, before[tid] + 0.7) - 1e-9
            assert team.chemistry <= 100.0

    def test_generated_teams_have_a_weekly_schedule(self, session):
        for team in session.store.teams.values():
            assert sorted(s.weekday for s in team.practice_schedule) == list(range(7))
            for s in team.practice_schedule:
                assert s.target_map is None or s.target_map in session.store.maps

    def test_maps_count_every_match(self, session):
        pools = {tid: dict(t.map_pool_strength) for tid, t in session.store.teams.items()}
        reports = session.season.advance_days(1_000)
        played = [m for r in reports for m in r.match_ids]
        assert sum(m.times_played for m in session.store.maps.values()) == len(played)
        moved = [
            (tid, name) for tid, team in session.store.teams.items()
            for name, strength in team.map_pool_strength.items() if strength != pools[tid][name]
        ]
        assert moved

    def test_unbeaten_map_gains_strength(self, session):
        pools = {tid: dict(t.map_pool_strength) for tid, t in session.store.teams.items()}
        session.season.advance_days(1_000)
        record: dict[tuple[str, str], list[bool]] = {}
        for f in session.store.fixtures.values():
            if f.played:
                for tid in (f.team_a_id, f.team_b_id):
                    record.setdefault((tid, f.map_name), []).append(tid == f.winner_id)
        checked = 0
        for (tid, name), results in record.items():
            if all(results) and pools[tid][name] < 100:
                assert session.store.get_team(tid).map_pool_strength[name] > pools[tid][name]
                checked += 1
        assert checked

    def test_performance_bonus_paid_after_matches(self, session, monkeypatch):
        monkeypatch.setattr("esports_manager.services.season_service.PERFORMANCE_BONUS_RATING", 0.0)
        store = session.store
        with_clause = sorted(store.contracts)
        for player_id in with_clause:
            session.contracts.add_contract_clause(player_id, ContractClause(ClauseType.PERFORMANCE_BONUS, 100))
        session.season.advance_days(40)
        paid = 0
        for player_id in with_clause:
            contract = store.contracts[player_id]
            assert contract.bonuses_paid == 100 * store.get_player(player_id).matches_played
            paid += contract.bonuses_paid
        assert paid > 0


class TestYouthIntake:
    def test_rollover_adds_prospects(self, session):
        store = session.store
        session.season.advance_days(60)
        veterans = sorted(store.active_players(), key=lambda p: p.player_id)[:3]
        for p in veterans:
            p.age = 40
        before = set(store.players)
        session.season.start_next_season()
        assert all(p.retired for p in veterans)
        prospects = [store.players[pid] for pid in set(store.players) - before]
        assert len(prospects) >= 3
        for p in prospects:
            assert YOUTH_AGE_RANGE[0] <= p.age <= YOUTH_AGE_RANGE[1]
            assert not p.retired
            assert p.market_value > 0
            assert p.team_id is None or p.team_id in store.teams
        assert len(store.free_agents()) >= FREE_AGENT_POOL_MIN - len(store.teams)
        assert len({p.nickname for p in store.players.values()}) == len(store.players)

    def test_world_survives_many_seasons(self, session):
        for _ in range(12):
            reports = session.season.advance_days(1_000)
            assert not [f for r in reports for f in r.forfeits]
            session.season.start_next_season()
            assert session.store.free_agents()
            for team in session.store.teams.values():
                assert len(team.active_roster) == 5
        assert session.store.season.season_number == 13
