"""
Tournaments: state machine, group-stage standings and knockout playoffs.

Lifecycle: not_started → group_stage → semifinals → grand_final → completed.
With fewer than four teams the semifinals are skipped. Completing a
tournament pays out the prize pool, awards ranking points and records
championships on the winning players' careers.
"""
from __future__ import annotations

import logging

from ..errors import BudgetError, StateConflictError, ValidationError
from ..models import (
    CareerEventType,
    ClauseType,
    Fixture,
    Standing,
    Tournament,
    TournamentStage,
    TournamentTier,
)
from ..persistence.store import EntityStore
from ..simulation.schemas import MatchFormat, MatchResult
from ..simulation.veto import maps_from_veto, run_veto
from .contract_service import ContractService
from .development_service import DevelopmentService
from .ranking_service import RankingService
from .scheduling import build_fixtures, validate_schedule

logger = logging.getLogger(__name__)

WIN_POINTS = 3
PLAYOFF_TEAMS = 4

# Share of the prize pool by final placement
PRIZE_SPLIT: dict[int, float] = {1: 0.5, 2: 0.25, 3: 0.125, 4: 0.125}


class TournamentTransitionError(StateConflictError):
    """Invalid tournament stage transition."""


# ---------- Valid transitions ----------

_VALID_TRANSITIONS: dict[TournamentStage, set[TournamentStage]] = {
    TournamentStage.NOT_STARTED: {TournamentStage.GROUP_STAGE},
    TournamentStage.GROUP_STAGE: {TournamentStage.SEMIFINALS, TournamentStage.GRAND_FINAL},
    TournamentStage.SEMIFINALS: {TournamentStage.GRAND_FINAL},
    TournamentStage.GRAND_FINAL: {TournamentStage.COMPLETED},
    TournamentStage.COMPLETED: set(),
}


def standing_sort_key(s: Standing) -> tuple:
    return (-s.points, -s.round_difference, -s.rounds_for, s.team_id)


class TournamentService:
    """
    Domain logic for tournaments. Match simulation happens elsewhere; this
    service only schedules fixtures and consumes their results.
    """

    def __init__(
        self,
        store: EntityStore,
        contracts: ContractService,
        development: DevelopmentService,
        rankings: RankingService,
    ) -> None:
        self.store = store
        self.contracts = contracts
        self.development = development
        self.rankings = rankings

    # ---------- Lifecycle ----------

    def transition_stage(self, tournament: Tournament, new_stage: TournamentStage) -> None:
        allowed = _VALID_TRANSITIONS.get(tournament.stage, set())
        if new_stage not in allowed:
            raise TournamentTransitionError(
                f"Invalid transition: {tournament.stage.value} -> {new_stage.value}"
            )
        logger.info("%s: %s -> %s", tournament.name, tournament.stage.value, new_stage.value)
        tournament.stage = new_stage

    def create_tournament(
        self,
        name: str,
        tier: TournamentTier,
        prize_pool: float,
        team_ids: list[str],
        season_number: int = 1,
        round_spacing_days: int = 2,
    ) -> Tournament:
        if len(team_ids) < 2:
            raise ValidationError("A tournament needs at least two teams")
        if len(set(team_ids)) != len(team_ids):
            raise ValidationError("Duplicate team in tournament")
        if prize_pool < 0:
            raise ValidationError("Prize pool cannot be negative")
        if round_spacing_days < 1:
            raise ValidationError("Rounds must be at least one day apart")
        for team_id in team_ids:
            self.store.get_team(team_id)
        tournament_id = f"tn-s{season_number}-{len(self.store.tournaments) + 1:03d}"
        tournament = Tournament(
            tournament_id=tournament_id,
            name=name,
            tier=tier,
            prize_pool=prize_pool,
            team_ids=list(team_ids),
            season_number=season_number,
            round_spacing_days=round_spacing_days,
            standings={team_id: Standing(team_id=team_id) for team_id in team_ids},
        )
        self.store.tournaments[tournament_id] = tournament
        if self.store.season is not None and self.store.season.season_number == season_number:
            self.store.season.tournament_ids.append(tournament_id)
        return tournament

    def pick_map(self, team_a_id: str, team_b_id: str) -> str:
        """Best-of-one veto over the store's map pool."""
        team_a = self.store.get_team(team_a_id)
        team_b = self.store.get_team(team_b_id)
        return maps_from_veto(run_veto(team_a, team_b, sorted(self.store.maps), MatchFormat.BO1))[0]

    def start_tournament(self, tournament: Tournament, start_day: int, cycles: int = 1) -> list[Fixture]:
        """Schedule the group stage as a round robin starting on start_day."""
        self.transition_stage(tournament, TournamentStage.GROUP_STAGE)
        fixtures = build_fixtures(
            tournament.team_ids,
            start_day,
            self.pick_map,
            id_prefix=tournament.tournament_id,
            days_between_rounds=tournament.round_spacing_days,
            cycles=cycles,
            tournament_id=tournament.tournament_id,
        )
        self._add_fixtures(tournament, fixtures)
        return fixtures

    def _add_fixtures(self, tournament: Tournament, fixtures: list[Fixture]) -> None:
        validate_schedule(list(self.store.fixtures.values()) + fixtures)
        self.store.add_fixtures(fixtures)
        tournament.fixture_ids.extend(f.fixture_id for f in fixtures)

    def _knockout_fixture(self, tournament: Tournament, day: int, a_id: str, b_id: str, stage: TournamentStage) -> Fixture:
        return Fixture(
            fixture_id=f"{tournament.tournament_id}-{len(tournament.fixture_ids) + 1:04d}",
            day=day,
            team_a_id=a_id,
            team_b_id=b_id,
            map_name=self.pick_map(a_id, b_id),
            tournament_id=tournament.tournament_id,
            stage=stage,
        )

    # ---------- Results ----------

    def fixtures_for(self, tournament: Tournament, stage: TournamentStage | None = None) -> list[Fixture]:
        fixtures = [self.store.fixtures[fid] for fid in tournament.fixture_ids]
        if stage is not None:
            fixtures = [f for f in fixtures if f.stage == stage]
        return fixtures

    def sorted_standings(self, tournament: Tournament) -> list[Standing]:
        return sorted(tournament.standings.values(), key=standing_sort_key)

    def _apply_to_standings(self, tournament: Tournament, fixture: Fixture) -> None:
        if fixture.stage != TournamentStage.GROUP_STAGE:
            return
        for team_id, own, other in (
            (fixture.team_a_id, fixture.score_a, fixture.score_b),
            (fixture.team_b_id, fixture.score_b, fixture.score_a),
        ):
            s = tournament.standings[team_id]
            s.played += 1
            s.rounds_for += own
            s.rounds_against += other
            if team_id == fixture.winner_id:
                s.wins += 1
                s.points += WIN_POINTS
            else:
                s.losses += 1

    def record_result(self, fixture: Fixture, result: MatchResult, day: int) -> None:
        """Store a played fixture's result and advance the tournament if a stage is done."""
        if fixture.played:
            raise StateConflictError(f"Fixture {fixture.fixture_id} already has a result")
        fixture.match_id = result.match_id
        fixture.winner_id = result.winner_id
        fixture.score_a = result.score_for(fixture.team_a_id)
        fixture.score_b = result.score_for(fixture.team_b_id)
        tier = TournamentTier.B_TIER
        if fixture.tournament_id is not None:
            tournament = self.store.get_tournament(fixture.tournament_id)
            tier = tournament.tier
        self.rankings.record_match(result, day, tier)
        if fixture.tournament_id is not None:
            self._after_fixture(tournament, fixture, day)

    def record_forfeit(self, fixture: Fixture, winner_id: str, day: int, max_rounds: int) -> None:
        """A team that cannot field five players loses 0 to a regulation win."""
        if fixture.played:
            raise StateConflictError(f"Fixture {fixture.fixture_id} already has a result")
        if winner_id not in (fixture.team_a_id, fixture.team_b_id):
            raise ValidationError(f"{winner_id} is not part of fixture {fixture.fixture_id}")
        fixture.winner_id = winner_id
        fixture.forfeit = True
        win_score = max_rounds // 2 + 1
        fixture.score_a = win_score if winner_id == fixture.team_a_id else 0
        fixture.score_b = win_score if winner_id == fixture.team_b_id else 0
        logger.warning("Fixture %s forfeited; %s awarded the win", fixture.fixture_id, winner_id)
        if fixture.tournament_id is not None:
            self._after_fixture(self.store.get_tournament(fixture.tournament_id), fixture, day)

    def _after_fixture(self, tournament: Tournament, fixture: Fixture, day: int) -> None:
        self._apply_to_standings(tournament, fixture)
        stage_fixtures = self.fixtures_for(tournament, fixture.stage)
        if all(f.played for f in stage_fixtures):
            self._advance(tournament, fixture.stage, stage_fixtures, day)

    def _advance(self, tournament: Tournament, finished: TournamentStage, fixtures: list[Fixture], day: int) -> None:
        next_day = day + tournament.round_spacing_days
        if finished == TournamentStage.GROUP_STAGE:
            seeds = [s.team_id for s in self.sorted_standings(tournament)]
            if len(seeds) >= PLAYOFF_TEAMS:
                self.transition_stage(tournament, TournamentStage.SEMIFINALS)
                semis = [
                    self._knockout_fixture(tournament, next_day, seeds[0], seeds[3], TournamentStage.SEMIFINALS),
                ]
                self._add_fixtures(tournament, semis)
                second = self._knockout_fixture(tournament, next_day, seeds[1], seeds[2], TournamentStage.SEMIFINALS)
                self._add_fixtures(tournament, [second])
            else:
                self.transition_stage(tournament, TournamentStage.GRAND_FINAL)
                final = self._knockout_fixture(tournament, next_day, seeds[0], seeds[1], TournamentStage.GRAND_FINAL)
                self._add_fixtures(tournament, [final])
        elif finished == TournamentStage.SEMIFINALS:
            winners = [f.winner_id for f in fixtures]
            tournament.semifinalist_ids = [
                f.team_b_id if f.winner_id == f.team_a_id else f.team_a_id for f in fixtures
            ]
            self.transition_stage(tournament, TournamentStage.GRAND_FINAL)
            final = self._knockout_fixture(tournament, next_day, winners[0], winners[1], TournamentStage.GRAND_FINAL)
            self._add_fixtures(tournament, [final])
        elif finished == TournamentStage.GRAND_FINAL:
            final = fixtures[0]
            tournament.champion_id = final.winner_id
            tournament.runner_up_id = final.team_b_id if final.winner_id == final.team_a_id else final.team_a_id
            self.transition_stage(tournament, TournamentStage.COMPLETED)
            self._complete(tournament, day)

    # ---------- Completion ----------

    def placements(self, tournament: Tournament) -> dict[str, int]:
        """Final placement per team: 1, 2, 3 for both losing semifinalists, then group order."""
        result: dict[str, int] = {}
        if tournament.champion_id:
            result[tournament.champion_id] = 1
        if tournament.runner_up_id:
            result[tournament.runner_up_id] = 2
        for team_id in tournament.semifinalist_ids:
            result[team_id] = 3
        place = len(result) + 1
        for s in self.sorted_standings(tournament):
            if s.team_id not in result:
                result[s.team_id] = place
                place += 1
        return result

    def _complete(self, tournament: Tournament, day: int) -> None:
        placements = self.placements(tournament)
        prize_places = {team_id: p for team_id, p in placements.items() if p in PRIZE_SPLIT}
        shares = {team_id: PRIZE_SPLIT[p] for team_id, p in prize_places.items()}
        total_share = sum(shares.values())
        season_number = tournament.season_number
        for team_id, share in shares.items():
            amount = tournament.prize_pool * share / total_share if total_share else 0.0
            if amount > 0 and team_id in self.store.budgets:
                self.contracts.add_prize_money(team_id, amount, day, f"{tournament.name} #{placements[team_id]}")
        for team_id, place in placements.items():
            self.rankings.record_placement(team_id, place, tournament.tier, day, tournament.name)
        champion = self.store.get_team(tournament.champion_id)
        for player in self.store.roster_players(champion):
            self.development.award_achievement(
                player,
                f"Won {tournament.name}",
                day,
                season_number,
                event_type=CareerEventType.CHAMPIONSHIP,
            )
            try:
                self.contracts.pay_clause_bonus(
                    player.player_id, ClauseType.CHAMPIONSHIP_BONUS, day, f"Championship bonus: {tournament.name}",
                )
            except BudgetError as e:
                logger.warning("Championship bonus for %s not paid: %s", player.nickname, e)
        logger.info("%s won %s", champion.name, tournament.name)

    def is_finished(self, tournament: Tournament) -> bool:
        return tournament.stage == TournamentStage.COMPLETED
