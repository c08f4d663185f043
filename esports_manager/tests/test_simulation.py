"""
Tests for the match engine: termination, score bookkeeping, ratings,
determinism, validation and fairness between equal teams.
"""
from __future__ import annotations

import math
from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from conftest import make_player, make_team

from esports_manager.errors import InvalidConfigError, InvalidRosterError
from esports_manager.models import MapInfo, MapRecord, Role, Team
from esports_manager.persistence.store import EntityStore
from esports_manager.simulation import (
    MatchConfig,
    MatchFormat,
    MatchOrchestrator,
    MomentumState,
    ProbabilityEngine,
    RoundContext,
    SeededRNG,
    Side,
    TeamStrength,
    compute_rating,
    map_advantage,
    match_winner,
    run_veto,
    simulate_match,
    simulate_series,
    summarize_match,
    team_skill_factor,
)
from esports_manager.simulation.probability_engine import map_history
from esports_manager.simulation.state_tracker import max_possible_rounds, team_a_attacks

NEUTRAL = MapInfo(name="Neutral", attacker_win_rate=0.5)


def _teams(store: EntityStore):
    ta, tb = store.get_team("ta"), store.get_team("tb")
    return ta, tb, store.roster_players(ta), store.roster_players(tb)


def _play(store: EntityStore, max_rounds: int = 24, seed: int = 1, **kwargs):
    ta, tb, pa, pb = _teams(store)
    return simulate_match(ta, tb, pa, pb, NEUTRAL, max_rounds, seed=seed, **kwargs)


class TestTermination:
    @pytest.mark.parametrize("max_rounds", [1, 2, 5, 8, 13, 24, 30])
    def test_match_ends_with_a_winner(self, store, max_rounds):
        for seed in range(20):
            result = _play(store, max_rounds=max_rounds, seed=seed)
            assert result.winner_id in ("ta", "tb")
            assert result.score_a != result.score_b
            assert result.total_rounds <= max_possible_rounds(max_rounds, 6, 5)

    def test_score_sum_equals_rounds_played(self, store):
        for seed in range(20):
            result = _play(store, seed=seed)
            assert result.score_a + result.score_b == result.total_rounds

    def test_scores_never_decrease(self, store):
        result = _play(store, seed=3)
        previous = (0, 0)
        for r in result.rounds:
            assert r.score_after[0] >= previous[0]
            assert r.score_after[1] >= previous[1]
            assert sum(r.score_after) == sum(previous) + 1
            previous = r.score_after
        assert previous == (result.score_a, result.score_b)

    def test_regulation_winner_reaches_majority(self, store):
        for seed in range(30):
            result = _play(store, max_rounds=24, seed=seed)
            if result.overtime_periods == 0:
                assert max(result.score_a, result.score_b) == 13

    def test_no_overtime_periods_goes_to_sudden_death(self, store):
        for seed in range(30):
            result = _play(store, max_rounds=2, seed=seed, overtime_rounds=2, max_overtime_periods=0)
            assert result.total_rounds <= 3

    def test_decider_sides_are_drawn(self, store):
        """Team A defends the sudden-death round in some matches and attacks it in others."""
        a_attacked = set()
        for seed in range(200):
            result = _play(store, max_rounds=2, seed=seed, overtime_rounds=2, max_overtime_periods=0)
            if result.total_rounds == 3:
                decider = result.rounds[-1]
                a_attacked.add((decider.winner_team_id == "ta") == (decider.winner_side == Side.ATTACK))
        assert a_attacked == {True, False}


class TestRules:
    def test_match_winner_regulation(self):
        assert match_winner(13, 5, 24, 6, 5) == "a"
        assert match_winner(12, 12, 24, 6, 5) is None
        assert match_winner(3, 13, 24, 6, 5) == "b"

    def test_match_winner_overtime(self):
        assert match_winner(15, 15, 24, 6, 5) is None
        assert match_winner(16, 14, 24, 6, 5) == "a"
        assert match_winner(18, 18, 24, 6, 1) is None
        assert match_winner(19, 18, 24, 6, 1) == "a"

    def test_single_round_match(self):
        assert match_winner(1, 0, 1, 6, 5) == "a"
        assert match_winner(0, 0, 1, 6, 5) is None

    def test_sides_swap_at_half(self):
        assert team_a_attacks(0, 24, 6, 5)
        assert team_a_attacks(11, 24, 6, 5)
        assert not team_a_attacks(12, 24, 6, 5)
        assert not team_a_attacks(23, 24, 6, 5)

    def test_decider_side_comes_from_caller(self):
        assert team_a_attacks(2, 2, 2, 0, decider_a_attacks=True)
        assert not team_a_attacks(2, 2, 2, 0, decider_a_attacks=False)
        assert team_a_attacks(26, 24, 2, 1, decider_a_attacks=True)


class TestRatings:
    def test_rating_with_zero_deaths_is_finite(self):
        r = compute_rating(kills=30, deaths=0)
        assert math.isfinite(r)
        assert r == pytest.approx(0.1 + 0.75 * 30)

    def test_rating_formula(self):
        assert compute_rating(10, 10) == pytest.approx(0.85)
        assert compute_rating(10, 10, assists=10, mvps=2) == pytest.approx(0.1 + 0.75 * 14 / 10)

    def test_match_performances_are_consistent(self, store):
        result = _play(store, seed=11)
        assert len(result.performances) == 10
        total_kills = sum(p.kills for p in result.performances)
        total_deaths = sum(p.deaths for p in result.performances)
        assert total_kills == total_deaths
        for perf in result.performances:
            assert math.isfinite(perf.rating)
            assert perf.rating > 0
            assert perf.rounds_played == result.total_rounds


class TestDeterminism:
    def test_same_seed_same_result(self, store):
        first = _play(store, seed=77)
        second = _play(store, seed=77)
        assert (first.score_a, first.score_b, first.winner_id) == (second.score_a, second.score_b, second.winner_id)
        assert [r.winner_team_id for r in first.rounds] == [r.winner_team_id for r in second.rounds]
        assert first.performances == second.performances

    def test_simulation_does_not_mutate_players(self, store):
        ta, tb, pa, pb = _teams(store)
        before = [p.skills.to_dict() for p in pa + pb]
        _play(store, seed=5)
        assert [p.skills.to_dict() for p in pa + pb] == before
        assert all(p.matches_played == 0 for p in pa + pb)

    def test_series_is_deterministic(self, store):
        ta, tb, pa, pb = _teams(store)
        maps = {name: MapInfo(name=name) for name in ("Anubis", "Dust2", "Inferno", "Mirage", "Nuke")}
        one = simulate_series("s1", ta, tb, pa, pb, maps, MatchFormat.BO3, SeededRNG(9), max_rounds=8)
        two = simulate_series("s1", ta, tb, pa, pb, maps, MatchFormat.BO3, SeededRNG(9), max_rounds=8)
        assert one.maps_won == two.maps_won
        assert max(one.maps_won) == 2
        assert 2 <= len(one.matches) <= 3


class TestValidation:
    def test_short_roster_rejected(self, store):
        ta, tb, pa, pb = _teams(store)
        with pytest.raises(InvalidRosterError):
            simulate_match(ta, tb, pa[:4], pb, NEUTRAL, 24, seed=1)

    def test_duplicate_player_rejected(self, store):
        ta, tb, pa, pb = _teams(store)
        with pytest.raises(InvalidRosterError):
            simulate_match(ta, tb, pa[:4] + [pa[0]], pb, NEUTRAL, 24, seed=1)

    def test_player_on_both_sides_rejected(self, store):
        ta, tb, pa, pb = _teams(store)
        with pytest.raises(InvalidRosterError):
            simulate_match(ta, tb, pa, pb[:4] + [pa[0]], NEUTRAL, 24, seed=1)

    @pytest.mark.parametrize("kwargs", [
        {"max_rounds": 0},
        {"overtime_rounds": 3},
        {"overtime_rounds": 0},
        {"max_overtime_periods": -1},
    ])
    def test_bad_config_rejected(self, store, kwargs):
        ta, tb, pa, pb = _teams(store)
        cfg = MatchConfig(match_id="m", team_a_id="ta", team_b_id="tb", map_name="Neutral", seed=1)
        for key, value in kwargs.items():
            setattr(cfg, key, value)
        with pytest.raises(InvalidConfigError):
            MatchOrchestrator(cfg, ta, tb, pa, pb, map_info=NEUTRAL)


class TestFairness:
    def test_equal_teams_split_evenly(self):
        """Identical skill-10 rosters on a neutral map win about half the time each."""
        store = EntityStore()
        make_team(store, "ta")
        make_team(store, "tb")
        ta, tb, pa, pb = _teams(store)
        n = 10_000
        wins_a = 0
        for seed in range(n):
            result = simulate_match(ta, tb, pa, pb, NEUTRAL, 24, seed=seed)
            if result.winner_id == "ta":
                wins_a += 1
        assert abs(wins_a / n - 0.5) <= 0.03

    def test_stronger_team_wins_more(self):
        store = EntityStore()
        make_team(store, "ta", skill=16)
        make_team(store, "tb", skill=6)
        ta, tb, pa, pb = _teams(store)
        wins_a = sum(
            1 for seed in range(200)
            if simulate_match(ta, tb, pa, pb, NEUTRAL, 8, seed=seed).winner_id == "ta"
        )
        assert wins_a > 150


class TestVeto:
    def test_bo1_leaves_one_decider(self):
        a = Team(team_id="ta", name="A", tag="A", map_pool_strength={"Dust2": 90, "Nuke": 10})
        b = Team(team_id="tb", name="B", tag="B", map_pool_strength={"Mirage": 90, "Nuke": 20})
        pool = ["Anubis", "Dust2", "Inferno", "Mirage", "Nuke", "Vertigo", "Ancient"]
        actions = run_veto(a, b, pool, MatchFormat.BO1)
        deciders = [x for x in actions if x.action == "decider"]
        assert len(deciders) == 1
        assert len(actions) == len(pool)
        assert actions[0].map_name == "Nuke"
        assert len({x.map_name for x in actions}) == len(pool)

    def test_veto_needs_enough_maps(self):
        a = Team(team_id="ta", name="A", tag="A")
        b = Team(team_id="tb", name="B", tag="B")
        with pytest.raises(InvalidConfigError):
            run_veto(a, b, ["Dust2", "Nuke"], MatchFormat.BO3)


class TestSummary:
    def test_summary_matches_result(self, store):
        result = _play(store, seed=21)
        summary = summarize_match(result)
        assert summary.total_rounds == result.total_rounds
        assert summary.score == (result.score_a, result.score_b)
        assert 0.0 <= summary.attack_round_share <= 1.0
        assert summary.top_player_id in {p.player_id for p in result.performances}

    def test_attack_share_counts_attack_wins(self, store):
        result = _play(store, seed=22)
        summary = summarize_match(result)
        attack_wins = [r for r in result.rounds if r.winner_side is Side.ATTACK]
        assert 0 < len(attack_wins) < result.total_rounds
        assert summary.attack_round_share == pytest.approx(len(attack_wins) / result.total_rounds)

    def test_top_player_is_highest_rated(self, store):
        result = _play(store, seed=23)
        best = max(p.rating for p in result.performances)
        top = next(p for p in result.performances if p.player_id == summarize_match(result).top_player_id)
        assert top.rating == best


def test_make_player_has_uniform_skills():
    p = make_player("x", skill=7)
    assert set(p.skills.to_dict().values()) == {7}


class TestTeamStyle:
    def test_chemistry_lifts_strength(self, store):
        ta, _, pa, _ = _teams(store)
        ta.chemistry = 90.0
        high = team_skill_factor(pa, team=ta)
        ta.chemistry = 10.0
        low = team_skill_factor(pa, team=ta)
        assert high > low

    def test_tactical_depth_lifts_strength(self, store):
        ta, _, pa, _ = _teams(store)
        ta.tactical_depth = 80
        deep = team_skill_factor(pa, team=ta)
        ta.tactical_depth = 20
        assert deep > team_skill_factor(pa, team=ta)

    def test_awp_dependence_follows_awper_quality(self, store):
        ta, _, pa, _ = _teams(store)
        awper = pa[0]
        ta.role_assignments[Role.AWPER] = awper.player_id
        awper.skills.set("awp", 20)
        ta.awp_dependence = 100
        leaning = team_skill_factor(pa, team=ta)
        ta.awp_dependence = 0
        assert leaning > team_skill_factor(pa, team=ta)
        awper.skills.set("awp", 1)
        ta.awp_dependence = 100
        leaning = team_skill_factor(pa, team=ta)
        ta.awp_dependence = 0
        assert leaning < team_skill_factor(pa, team=ta)

    def test_without_team_style_is_neutral(self, store):
        ta, _, pa, _ = _teams(store)
        assert team_skill_factor(pa) == pytest.approx(team_skill_factor(pa, team=Team(team_id="x", name="X", tag="X")))

    def test_aggression_favours_attack(self):
        engine = ProbabilityEngine(use_economy=False)
        ctx = RoundContext(a_attacks=True, score_a=0, score_b=0, momentum=MomentumState())
        calm = engine.compute(TeamStrength("ta", 10.0, 1.0), TeamStrength("tb", 10.0, 1.0), ctx)
        assert calm.p_attack_wins == pytest.approx(0.5)
        bold = engine.compute(TeamStrength("ta", 10.0, 1.0, aggression=1.0), TeamStrength("tb", 10.0, 1.0), ctx)
        assert bold.p_attack_wins > 0.5
        ctx_def = RoundContext(a_attacks=False, score_a=0, score_b=0, momentum=MomentumState())
        bold_def = engine.compute(TeamStrength("ta", 10.0, 1.0, aggression=1.0), TeamStrength("tb", 10.0, 1.0), ctx_def)
        assert bold_def.p_a_wins < 0.5


class TestMapAdvantage:
    def test_repeated_wins_raise_advantage(self, store):
        ta, _, pa, _ = _teams(store)
        ta.map_pool_strength["Neutral"] = 50
        before = map_advantage(ta, pa, "Neutral")
        ta.map_pool_strength["Neutral"] = 70
        for p in pa:
            p.map_stats["Neutral"] = MapRecord(played=10, won=10)
        assert map_advantage(ta, pa, "Neutral") > before

    def test_history_shrinks_toward_even(self):
        p = make_player("p1")
        assert map_history([p], "Nuke") == pytest.approx(0.5)
        p.map_stats["Nuke"] = MapRecord(played=1, won=1)
        one = map_history([p], "Nuke")
        p.map_stats["Nuke"] = MapRecord(played=20, won=20)
        many = map_history([p], "Nuke")
        assert 0.5 < one < many < 1.0

    def test_neutral_team_has_no_advantage(self, store):
        ta, _, pa, _ = _teams(store)
        ta.map_pool_strength["Neutral"] = 50
        for p in pa:
            p.map_proficiency["Neutral"] = 10
        assert map_advantage(ta, pa, "Neutral") == pytest.approx(1.0, abs=0.01)

    def test_adaptable_teams_care_less_about_the_map(self, store):
        ta, _, pa, _ = _teams(store)
        ta.map_pool_strength["Neutral"] = 100
        ta.adaptability = 100
        adaptable = map_advantage(ta, pa, "Neutral")
        ta.adaptability = 0
        rigid = map_advantage(ta, pa, "Neutral")
        assert 1.0 < adaptable < rigid
