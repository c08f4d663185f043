"""
GameSession: composition root. Builds the store, the RNG and every service,
and wires them together explicitly. One session is one game.
"""
from __future__ import annotations

import logging
from pathlib import Path

from .config import FREE_AGENT_MIN_SALARY, INITIAL_SALARY_SHARE, Settings, get_save_path
from .errors import StateConflictError
from .generation import NamePools, generate_world
from .models import MapInfo, Season
from .persistence.repositories import MatchArchive
from .persistence.save_state import load_state, save_state
from .persistence.store import EntityStore
from .services.contract_service import ContractService
from .services.development_service import DevelopmentService
from .services.query_service import QueryService
from .services.ranking_service import RankingService
from .services.season_service import DayReport, SeasonService
from .services.simulation_service import SimulationService
from .services.tournament_service import TournamentService
from .services.transfer_service import TransferService, estimate_market_value
from .simulation.rng import SeededRNG

logger = logging.getLogger(__name__)

INITIAL_CONTRACT_MONTHS = (6, 36)


class GameSession:
    def __init__(self, settings: Settings | None = None, store: EntityStore | None = None) -> None:
        self.settings = settings or Settings.from_env()
        self.rng = SeededRNG(self.settings.seed)
        self.store = store or EntityStore()
        self.archive = MatchArchive(self.settings.archive_path) if self.settings.archive_path else None
        self._wire()

    def _wire(self) -> None:
        """(Re)build services around the current store."""
        self.development = DevelopmentService(self.rng)
        self.contracts = ContractService(self.store)
        self.transfers = TransferService(self.store, self.contracts, self.development)
        self.rankings = RankingService(self.store)
        self.tournaments = TournamentService(self.store, self.contracts, self.development, self.rankings)
        self.simulation = SimulationService(self.store, self.settings, self.rng)
        self.season = SeasonService(
            self.store,
            self.settings,
            self.rng,
            self.development,
            self.contracts,
            self.transfers,
            self.tournaments,
            self.rankings,
            self.simulation,
            archive=self.archive,
        )
        self.queries = QueryService(self.store, self.tournaments)

    # ---------- New game ----------

    def new_game(self, pools: NamePools | None = None, year: int = 2025) -> Season:
        """Generate teams, players and coaches, sign opening contracts and start season one."""
        if self.store.players:
            raise StateConflictError("new_game needs an empty store")
        map_names = list(self.settings.maps)
        world = generate_world(self.rng, self.settings.num_teams, pools=pools, map_names=map_names)
        for name, attacker_rate in self.settings.maps.items():
            self.store.add_map(MapInfo(name=name, attacker_win_rate=attacker_rate))
        for coach in world.coaches:
            self.store.add_coach(coach)
        for player in world.players:
            player.market_value = estimate_market_value(player)
            self.store.add_player(player)
        for team in world.teams:
            self.store.add_team(team)
            self._open_books(team.team_id)
        season = self.season.start_season(1, year, start_day=0)
        logger.info(
            "New game: %d teams, %d players, %d free agents",
            len(self.store.teams), len(self.store.players), len(self.store.free_agents()),
        )
        return season

    def _open_books(self, team_id: str) -> None:
        """
        Budget covers every opening contract plus starting_budget of free cash,
        so each team starts with exactly starting_budget available.
        """
        team = self.store.get_team(team_id)
        terms = []
        for pid in team.all_player_ids:
            player = self.store.get_player(pid)
            salary = max(FREE_AGENT_MIN_SALARY, round(player.market_value * INITIAL_SALARY_SHARE, 2))
            terms.append((pid, salary, self.rng.randint(*INITIAL_CONTRACT_MONTHS)))
        payroll = sum(salary * months for _, salary, months in terms)
        self.contracts.initialize_budget(team_id, self.settings.starting_budget + payroll)
        for pid, salary, months in terms:
            self.contracts.sign_contract(pid, team_id, salary, 0.0, months, day=0)

    # ---------- Clock ----------

    def advance_one_day(self) -> DayReport | None:
        return self.season.advance_one_day()

    def advance_one_week(self) -> list[DayReport]:
        return self.season.advance_one_week()

    def advance_one_month(self) -> list[DayReport]:
        return self.season.advance_one_month()

    # ---------- Save / load ----------

    def _path(self, path: str | Path | None) -> Path:
        if path is not None:
            return Path(path)
        return self.settings.save_path or get_save_path()

    def save(self, path: str | Path | None = None) -> Path:
        return save_state(self.store, self._path(path), self.rng.export_state())

    def load(self, path: str | Path | None = None) -> None:
        """
        Replace the current game with a saved one. On any error the current
        game is left untouched.
        """
        loaded = load_state(self._path(path))
        self.store = loaded.store
        if loaded.rng_state is not None:
            self.rng.import_state(loaded.rng_state)
        self._wire()
