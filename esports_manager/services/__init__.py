"""
Service layer: development, economy, tournaments, rankings and the season clock.
Services mutate the EntityStore; the simulation package never does.
"""
from .development_service import DevelopmentService, compute_career_phase, form_from_rating
from .contract_service import ContractService
from .transfer_service import TransferService, estimate_market_value
from .ranking_service import RankingService
from .tournament_service import TournamentService, TournamentTransitionError
from .simulation_service import FixtureOutcome, SimulationService
from .season_service import DayReport, SeasonService, compute_season_phase
from .query_service import QueryService

__all__ = [
    "DevelopmentService",
    "compute_career_phase",
    "form_from_rating",
    "ContractService",
    "TransferService",
    "estimate_market_value",
    "RankingService",
    "TournamentService",
    "TournamentTransitionError",
    "FixtureOutcome",
    "SimulationService",
    "DayReport",
    "SeasonService",
    "compute_season_phase",
    "QueryService",
]
