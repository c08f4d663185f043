"""
Runs a day's fixtures through the match engine. No writes to careers,
standings or budgets happen here; the season service applies the outcomes.

Seeds are drawn from the session RNG in fixture order before any match runs,
so the results are identical whether matches run serially or on a thread pool.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Sequence

from ..config import Settings
from ..errors import InvalidRosterError
from ..models import Coach, Fixture, MapInfo, Player, Team
from ..persistence.store import EntityStore
from ..simulation.orchestrator import MatchOrchestrator, validate_lineup
from ..simulation.probability_engine import ProbabilityEngine
from ..simulation.rng import SeededRNG
from ..simulation.schemas import MatchConfig, MatchResult

logger = logging.getLogger(__name__)


@dataclass
class MatchJob:
    """Everything one match needs; built serially, run anywhere."""
    fixture: Fixture
    team_a: Team
    team_b: Team
    players_a: list[Player]
    players_b: list[Player]
    map_info: MapInfo
    config: MatchConfig
    coach_a: Coach | None = None
    coach_b: Coach | None = None


@dataclass
class FixtureOutcome:
    """A played match, or a forfeit when a side could not field five."""
    fixture: Fixture
    result: MatchResult | None = None
    config: MatchConfig | None = None
    forfeit_winner_id: str | None = None
    reason: str = ""

    @property
    def forfeited(self) -> bool:
        return self.result is None


class SimulationService:
    def __init__(
        self,
        store: EntityStore,
        settings: Settings,
        rng: SeededRNG,
        prob_engine: ProbabilityEngine | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.rng = rng
        self.prob_engine = prob_engine or ProbabilityEngine()

    def lineup(self, team: Team) -> list[Player]:
        """
        The active five as stored. Raises InvalidRosterError if the team
        cannot field five; bench promotions happen in the season service.
        """
        players = [p for p in self.store.roster_players(team) if not p.retired]
        validate_lineup(team, players)
        return players

    def match_config(self, fixture: Fixture, seed: int) -> MatchConfig:
        return MatchConfig(
            match_id=f"m-{fixture.fixture_id}",
            team_a_id=fixture.team_a_id,
            team_b_id=fixture.team_b_id,
            map_name=fixture.map_name,
            seed=seed,
            max_rounds=self.settings.max_rounds,
            overtime_rounds=self.settings.overtime_rounds,
            max_overtime_periods=self.settings.max_overtime_periods,
        )

    def prepare(self, fixture: Fixture, seed: int) -> MatchJob:
        team_a = self.store.get_team(fixture.team_a_id)
        team_b = self.store.get_team(fixture.team_b_id)
        return MatchJob(
            fixture=fixture,
            team_a=team_a,
            team_b=team_b,
            players_a=self.lineup(team_a),
            players_b=self.lineup(team_b),
            map_info=self.store.get_map(fixture.map_name),
            config=self.match_config(fixture, seed),
            coach_a=self.store.coach_of(team_a),
            coach_b=self.store.coach_of(team_b),
        )

    def forfeit_winner(self, fixture: Fixture) -> str:
        """The side with more available players; team A on a tie."""
        counts = []
        for team_id in (fixture.team_a_id, fixture.team_b_id):
            team = self.store.get_team(team_id)
            counts.append(sum(1 for p in self.store.team_players(team) if not p.retired))
        return fixture.team_b_id if counts[1] > counts[0] else fixture.team_a_id

    def run_job(self, job: MatchJob) -> MatchResult:
        orchestrator = MatchOrchestrator(
            job.config,
            job.team_a,
            job.team_b,
            job.players_a,
            job.players_b,
            map_info=job.map_info,
            coach_a=job.coach_a,
            coach_b=job.coach_b,
            prob_engine=self.prob_engine,
        )
        return orchestrator.play()

    def run_fixtures(self, fixtures: Sequence[Fixture]) -> list[FixtureOutcome]:
        """
        Simulate fixtures and return outcomes in the order given. Lineups are
        prepared serially; matches run on up to settings.match_workers threads.
        """
        outcomes: list[FixtureOutcome] = []
        jobs: list[tuple[int, MatchJob]] = []
        for fixture in fixtures:
            seed = self.rng.spawn_seed()
            try:
                job = self.prepare(fixture, seed)
            except InvalidRosterError as e:
                winner_id = self.forfeit_winner(fixture)
                logger.warning("Fixture %s cannot be played: %s", fixture.fixture_id, e)
                outcomes.append(FixtureOutcome(fixture=fixture, forfeit_winner_id=winner_id, reason=str(e)))
                continue
            outcomes.append(FixtureOutcome(fixture=fixture, config=job.config))
            jobs.append((len(outcomes) - 1, job))

        workers = min(self.settings.match_workers, len(jobs))
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(pool.map(self.run_job, [job for _, job in jobs]))
        else:
            results = [self.run_job(job) for _, job in jobs]

        for (index, _), result in zip(jobs, results):
            outcomes[index].result = result
            logger.debug(
                "%s %d-%d %s on %s",
                result.team_a_id, result.score_a, result.score_b, result.team_b_id, result.map_name,
            )
        return outcomes
