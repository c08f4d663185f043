"""
Season clock: the day-by-day state machine that drives everything else.

One simulated day, in order:
  1. roster upkeep, so every team fields its best available five
  2. play the day's fixtures (thread pool optional, results applied in fixture order)
  3. feed results into careers, map pools, clause bonuses and standings;
     write replays when a replay directory is configured
  4. daily development for every active player, then team practice and chemistry
  5. contract and listing expirations, then roster upkeep
  6. an occasional random player event
  7. advance the clock; log phase transitions; payroll on month boundaries;
     world rankings every ranking interval

A day is atomic from the caller's point of view: a pending cancel request
stops the next day from starting, never a day in progress.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from ..config import (
    DAYS_PER_MONTH,
    DAYS_PER_WEEK,
    FREE_AGENT_CONTRACT_MONTHS,
    FREE_AGENT_MIN_SALARY,
    FREE_AGENT_POOL_MIN,
    FREE_AGENT_SALARY_SHARE,
    LEAGUE_PRIZE_POOL,
    MAJOR_PRIZE_POOL,
    PERFORMANCE_BONUS_RATING,
    PLAYOFFS_END,
    PRESEASON_END,
    REGULAR_SEASON_END,
    SPONSORSHIP_BASE,
    SPONSORSHIP_PER_REPUTATION,
    YOUTH_AGE_RANGE,
    YOUTH_QUALITY_RANGE,
    Settings,
)
from ..errors import BudgetError, SeasonCompleteError, StateConflictError
from ..generation import generate_player, next_player_id, overall
from ..models import ClauseType, FormTier, Season, SeasonPhase, Team, TournamentTier, compute_season_phase
from ..persistence.store import EntityStore
from ..simulation.persistence import save_replay
from ..simulation.rng import SeededRNG
from ..simulation.schemas import MatchResult
from . import roster
from .contract_service import ContractService
from .development_service import DevelopmentService
from .ranking_service import RankingService
from .simulation_service import FixtureOutcome, SimulationService
from .tournament_service import TournamentService
from .transfer_service import TransferService, estimate_market_value

logger = logging.getLogger(__name__)

__all__ = ["DayReport", "SeasonService", "compute_season_phase"]

RANDOM_EVENT_KINDS = ("form_swing", "minor_injury", "confidence_boost")
MINOR_INJURY_DAYS = (3, 7)
CONFIDENCE_BOOST = 10.0


class MatchArchive(Protocol):
    def save_match(self, result: MatchResult, day: int, tournament_id: str | None = None) -> None: ...


@dataclass
class DayReport:
    """What happened on one simulated day."""
    day: int
    phase: SeasonPhase
    match_ids: list[str] = field(default_factory=list)
    forfeits: list[str] = field(default_factory=list)
    payroll: float | None = None
    rankings_updated: bool = False
    events: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "day": self.day,
            "phase": self.phase.value,
            "match_ids": list(self.match_ids),
            "forfeits": list(self.forfeits),
            "payroll": self.payroll,
            "rankings_updated": self.rankings_updated,
            "events": list(self.events),
        }


def _plan_tournament(n_teams: int, window: int, max_cycles: int) -> tuple[int, int] | None:
    """(cycles, spacing) so group stage and both knockout rounds fit in window days."""
    rounds = n_teams - 1 if n_teams % 2 == 0 else n_teams
    for cycles in range(max_cycles, 0, -1):
        for spacing in (3, 2, 1):
            if (rounds * cycles + 1) * spacing + 1 <= window:
                return cycles, spacing
    return None


class SeasonService:
    def __init__(
        self,
        store: EntityStore,
        settings: Settings,
        rng: SeededRNG,
        development: DevelopmentService,
        contracts: ContractService,
        transfers: TransferService,
        tournaments: TournamentService,
        rankings: RankingService,
        simulation: SimulationService,
        archive: MatchArchive | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.rng = rng
        self.development = development
        self.contracts = contracts
        self.transfers = transfers
        self.tournaments = tournaments
        self.rankings = rankings
        self.simulation = simulation
        self.archive = archive
        self._cancel_requested = False

    # ---------- Cancellation ----------

    def request_cancel(self) -> None:
        """Stop before the next day starts. A day already running completes."""
        self._cancel_requested = True

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    # ---------- Season lifecycle ----------

    def current_season(self) -> Season:
        season = self.store.season
        if season is None:
            raise StateConflictError("No season has been started")
        return season

    def start_season(self, season_number: int = 1, year: int = 2025, start_day: int = 0) -> Season:
        if self.store.season is not None and not self.store.season.completed:
            raise StateConflictError(f"Season {self.store.season.season_number} is still in progress")
        season = Season(
            season_number=season_number,
            year=year,
            length_days=self.settings.season_length,
            start_day=start_day,
            last_payroll_month=start_day // DAYS_PER_MONTH,
        )
        self.store.season = season
        self._schedule_tournaments(season)
        if not self.store.rankings:
            self.rankings.update_world_rankings(start_day)
        logger.info("Season %d (%d) started on day %d", season_number, year, start_day)
        return season

    def _schedule_tournaments(self, season: Season) -> None:
        team_ids = sorted(self.store.teams)
        length = season.length_days
        plans = (
            (f"Season {season.season_number} League", TournamentTier.A_TIER, LEAGUE_PRIZE_POOL,
             int(length * PRESEASON_END), int(length * REGULAR_SEASON_END), 2),
            (f"Season {season.season_number} Major", TournamentTier.MAJOR, MAJOR_PRIZE_POOL,
             int(length * REGULAR_SEASON_END), int(length * PLAYOFFS_END), 1),
        )
        for name, tier, prize_pool, begin, end, max_cycles in plans:
            plan = _plan_tournament(len(team_ids), end - begin, max_cycles)
            if plan is None:
                logger.warning("%s does not fit in a %d-day season; skipped", name, length)
                continue
            cycles, spacing = plan
            tournament = self.tournaments.create_tournament(
                name, tier, prize_pool, team_ids, season.season_number, round_spacing_days=spacing,
            )
            self.tournaments.start_tournament(tournament, season.start_day + begin, cycles=cycles)

    def start_next_season(self) -> Season:
        """
        Roll over: archive the finished season, age every player, retire
        veterans, refresh market values, bring in a youth class of free
        agents and schedule the new season.
        """
        previous = self.current_season()
        if not previous.completed:
            raise StateConflictError(f"Season {previous.season_number} is still in progress")
        day = previous.current_day
        self.store.season_history.append(previous)
        retirees = 0
        for player in sorted(self.store.active_players(), key=lambda p: p.player_id):
            self.development.age_player(player)
            if self.development.should_retire(player):
                if player.team_id is not None:
                    self.transfers.release_player(player.player_id, day, waive_cost=True)
                self.development.retire_player(player, day, previous.season_number)
                retirees += 1
                continue
            contract = self.store.contracts.get(player.player_id)
            if contract is not None:
                player.contract_years_remaining = -(-contract.days_remaining(day) // (DAYS_PER_MONTH * 12))
            player.market_value = estimate_market_value(player)
        self._generate_youth_class(max(retirees, FREE_AGENT_POOL_MIN - len(self.store.free_agents())))
        self.store.season = None
        season = self.start_season(previous.season_number + 1, previous.year + 1, start_day=day)
        self._maintain_rosters(day, season.season_number)
        logger.info("Rolled over from season %d to %d", previous.season_number, season.season_number)
        return season

    def _generate_youth_class(self, count: int) -> None:
        """Unsigned prospects, aged YOUTH_AGE_RANGE, rated below the average pro."""
        taken = {p.nickname for p in self.store.players.values()}
        map_names = list(self.settings.maps)
        for _ in range(count):
            player = generate_player(
                self.rng,
                next_player_id(self.store.players),
                map_names=map_names,
                quality=self.rng.uniform(*YOUTH_QUALITY_RANGE),
                taken_nicknames=taken,
                age=self.rng.randint(*YOUTH_AGE_RANGE),
            )
            player.market_value = estimate_market_value(player)
            self.store.add_player(player)
        if count > 0:
            logger.info("Youth class of %d prospects entered free agency", count)

    # ---------- The day loop ----------

    def advance_one_day(self) -> DayReport | None:
        """
        Simulate one day. Returns None without doing anything if a cancel was
        requested (the request is consumed). Raises SeasonCompleteError once
        the season has run its full length.
        """
        if self._cancel_requested:
            self._cancel_requested = False
            logger.info("Advance cancelled before day start")
            return None
        season = self.current_season()
        if season.completed:
            raise SeasonCompleteError(f"Season {season.season_number} is complete")
        day = season.current_day
        phase_before = season.phase
        report = DayReport(day=day, phase=phase_before)

        self._maintain_rosters(day, season.season_number)
        outcomes = self.simulation.run_fixtures(self.store.fixtures_on_day(day))
        for outcome in outcomes:
            self._apply_outcome(outcome, day, season.season_number, report)

        for player in sorted(self.store.active_players(), key=lambda p: p.player_id):
            self.development.advance_one_day(player, day, season.season_number)
        for team in sorted(self.store.teams.values(), key=lambda t: t.team_id):
            self.development.run_practice(team, self.store.team_players(team), day)
            self.development.grow_chemistry(team)

        for contract in self.contracts.check_contract_expirations(day):
            self._release_expired(contract.player_id, contract.team_id)
        self.transfers.check_expired_listings(day)
        self._maintain_rosters(day, season.season_number)

        if self.rng.chance(self.settings.daily_event_chance):
            event = self._random_event(day, season.season_number)
            if event:
                report.events.append(event)

        season.days_passed += 1
        report.phase = season.phase
        if season.phase != phase_before:
            logger.info(
                "Season %d: %s -> %s on day %d",
                season.season_number, phase_before.value, season.phase.value, season.current_day,
            )

        new_day = season.current_day
        month = new_day // DAYS_PER_MONTH
        if new_day % DAYS_PER_MONTH == 0 and month > season.last_payroll_month:
            report.payroll = self._month_end(new_day)
            season.last_payroll_month = month

        if season.days_passed % self.settings.ranking_interval_days == 0:
            self.rankings.update_world_rankings(new_day)
            report.rankings_updated = True

        if season.days_passed >= season.length_days:
            season.completed = True
            self.rankings.update_world_rankings(new_day)
            report.rankings_updated = True
            logger.info("Season %d complete", season.season_number)
        logger.debug("Day %d done: %d matches", day, len(report.match_ids))
        return report

    def advance_days(self, days: int) -> list[DayReport]:
        """Advance up to days days, stopping early on cancel or season end."""
        reports: list[DayReport] = []
        for _ in range(days):
            season = self.current_season()
            if season.completed:
                break
            report = self.advance_one_day()
            if report is None:
                break
            reports.append(report)
        return reports

    def advance_one_week(self) -> list[DayReport]:
        return self.advance_days(DAYS_PER_WEEK)

    def advance_one_month(self) -> list[DayReport]:
        return self.advance_days(DAYS_PER_MONTH)

    # ---------- Day steps ----------

    def _apply_outcome(self, outcome: FixtureOutcome, day: int, season_number: int, report: DayReport) -> None:
        fixture = outcome.fixture
        if outcome.forfeited:
            self.tournaments.record_forfeit(fixture, outcome.forfeit_winner_id, day, self.settings.max_rounds)
            report.forfeits.append(fixture.fixture_id)
            return
        result = outcome.result
        for perf in result.performances:
            player = self.store.get_player(perf.player_id)
            self.development.record_match_performance(player, perf, perf.team_id == result.winner_id, result.map_name)
            player.market_value = estimate_market_value(player)
            if perf.rating >= PERFORMANCE_BONUS_RATING:
                self._pay_performance_bonus(perf.player_id, perf.rating, day)
        for team_id in (result.team_a_id, result.team_b_id):
            team = self.store.get_team(team_id)
            self.development.record_map_result(team, result.map_name, team_id == result.winner_id)
        self.store.get_map(result.map_name).times_played += 1
        try:
            self.tournaments.record_result(fixture, result, day)
        except BudgetError as e:
            logger.warning("Budget error while recording %s: %s", fixture.fixture_id, e)
        if self.archive is not None:
            self.archive.save_match(result, day, fixture.tournament_id)
        if self.settings.replay_dir is not None and outcome.config is not None:
            save_replay(result, outcome.config, self.settings.replay_dir)
        report.match_ids.append(result.match_id)

    def _pay_performance_bonus(self, player_id: str, rating: float, day: int) -> None:
        try:
            self.contracts.pay_clause_bonus(
                player_id, ClauseType.PERFORMANCE_BONUS, day, description=f"Performance bonus (rating {rating:.2f})",
            )
        except BudgetError as e:
            logger.warning("Performance bonus for %s not paid: %s", player_id, e)

    def _release_expired(self, player_id: str, team_id: str) -> None:
        player = self.store.find_player(player_id)
        team = self.store.find_team(team_id)
        if player is None or team is None or player.team_id != team_id:
            return
        if player_id in self.store.listings:
            self.transfers.remove_listing(player_id)
        roster.remove_player(team, player)
        logger.info("%s left %s as a free agent", player.nickname, team.name)

    def _maintain_rosters(self, day: int, season_number: int) -> None:
        """Drop retirees, promote from the bench, then sign free agents if still short."""
        for team in sorted(self.store.teams.values(), key=lambda t: t.team_id):
            roster.drop_retired(self.store, team)
            for pid in roster.fill_active_roster(self.store, team):
                self.development.record_roster_move(self.store.get_player(pid), True, day, season_number)
            if not roster.is_match_ready(team):
                self._sign_replacements(team, day, season_number)

    def _sign_replacements(self, team: Team, day: int, season_number: int) -> None:
        candidates = sorted(self.store.free_agents(), key=lambda p: (p.is_injured, -overall(p), p.player_id))
        for player in candidates:
            if roster.is_match_ready(team):
                return
            salary = max(FREE_AGENT_MIN_SALARY, round(player.market_value * FREE_AGENT_SALARY_SHARE, 2))
            try:
                self.transfers.sign_free_agent(
                    player.player_id, team.team_id, salary, FREE_AGENT_CONTRACT_MONTHS, day,
                    active=True, season_number=season_number,
                )
            except BudgetError as e:
                logger.warning("%s could not sign %s: %s", team.name, player.nickname, e)
                continue
        if not roster.is_match_ready(team):
            logger.warning("%s cannot field five players", team.name)

    def _random_event(self, day: int, season_number: int) -> str | None:
        candidates = sorted(
            (p for p in self.store.active_players() if p.team_id is not None and not p.is_injured),
            key=lambda p: p.player_id,
        )
        if not candidates:
            return None
        player = self.rng.choice(candidates)
        kind = self.rng.choice(RANDOM_EVENT_KINDS)
        if kind == "form_swing":
            player.form = self.rng.choice(list(FormTier))
            text = f"{player.nickname} form swung to {player.form.value}"
        elif kind == "minor_injury":
            days = self.rng.randint(*MINOR_INJURY_DAYS)
            self.development.cause_injury(player, days, day, season_number, reason="minor injury")
            text = f"{player.nickname} picked up a minor injury ({days} days)"
        else:
            self.development.boost_morale(player, CONFIDENCE_BOOST)
            text = f"{player.nickname} got a confidence boost"
        logger.info("Random event: %s", text)
        return text

    def _month_end(self, day: int) -> float:
        """Payroll and sponsorship income. Budget errors are logged, never raised."""
        paid = 0.0
        try:
            paid = self.contracts.process_monthly_salaries(day)
            for team in sorted(self.store.teams.values(), key=lambda t: t.team_id):
                if team.team_id in self.store.budgets:
                    amount = SPONSORSHIP_BASE + SPONSORSHIP_PER_REPUTATION * team.reputation
                    self.contracts.add_sponsorship_income(team.team_id, amount, day)
        except BudgetError as e:
            logger.warning("Month-end processing on day %d hit a budget error: %s", day, e)
        logger.info("Month end on day %d: payroll %s", day, f"{paid:,.0f}")
        return paid
