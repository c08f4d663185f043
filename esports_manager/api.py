"""
REST API for the esports season simulator.
Thin wrappers around the query service and the season clock.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from .errors import (
    BudgetError,
    CorruptSaveError,
    EntityNotFoundError,
    EsportsSimError,
    SaveNotFoundError,
    StateConflictError,
    ValidationError,
)
from .services.query_service import (
    BudgetSnapshot,
    ContractSnapshot,
    ListingSnapshot,
    PlayerStats,
    RankingSnapshot,
    SeasonSnapshot,
    TournamentSnapshot,
)
from .session import GameSession

# ---------- Session ----------

_session: GameSession | None = None


def set_session(session: GameSession | None) -> None:
    """Use this session for every request. None means build a fresh game on first use."""
    global _session
    _session = session


def get_session() -> GameSession:
    global _session
    if _session is None:
        _session = GameSession()
        _session.new_game()
    return _session


def _http_error(e: EsportsSimError) -> HTTPException:
    if isinstance(e, (EntityNotFoundError, SaveNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (StateConflictError, BudgetError)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (ValidationError, CorruptSaveError)):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    get_session()
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="Esports Manager API",
    description="Read-only views of a simulated esports season, plus the season clock",
    version="0.1.0",
    lifespan=lifespan,
)


# ---------- Response models ----------


class AdvanceResponse(BaseModel):
    days_advanced: int
    season: SeasonSnapshot | None
    days: list[dict[str, Any]]


# ---------- Routes ----------


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/season", response_model=SeasonSnapshot)
def get_current_season(session: GameSession = Depends(get_session)) -> SeasonSnapshot:
    season = session.queries.get_current_season()
    if season is None:
        raise HTTPException(status_code=404, detail="No season in progress")
    return season


@app.get("/players/{player_id}", response_model=PlayerStats)
def get_player_stats(player_id: str, session: GameSession = Depends(get_session)) -> PlayerStats:
    stats = session.queries.get_player_stats(player_id)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"Player not found: {player_id}")
    return stats


@app.get("/players/{player_id}/contract", response_model=ContractSnapshot)
def get_player_contract(player_id: str, session: GameSession = Depends(get_session)) -> ContractSnapshot:
    contract = session.queries.get_player_contract(player_id)
    if contract is None:
        raise HTTPException(status_code=404, detail=f"No active contract for player {player_id}")
    return contract


@app.get("/teams")
def list_teams(session: GameSession = Depends(get_session)) -> dict[str, Any]:
    teams = sorted(session.store.teams.values(), key=lambda t: t.team_id)
    return {"teams": [t.to_dict() for t in teams]}


@app.get("/teams/{team_id}/budget", response_model=BudgetSnapshot)
def get_team_budget(team_id: str, session: GameSession = Depends(get_session)) -> BudgetSnapshot:
    budget = session.queries.get_team_budget(team_id)
    if budget is None:
        raise HTTPException(status_code=404, detail=f"No budget for team: {team_id}")
    return budget


@app.get("/teams/{team_id}/contracts", response_model=list[ContractSnapshot])
def get_team_contracts(team_id: str, session: GameSession = Depends(get_session)) -> list[ContractSnapshot]:
    contracts = session.queries.get_team_contracts(team_id)
    if contracts is None:
        raise HTTPException(status_code=404, detail=f"Team not found: {team_id}")
    return contracts


@app.get("/transfers/listings", response_model=list[ListingSnapshot])
def get_active_listings(session: GameSession = Depends(get_session)) -> list[ListingSnapshot]:
    return session.queries.get_active_listings()


@app.get("/tournaments/{tournament_id}", response_model=TournamentSnapshot)
def get_tournament(tournament_id: str, session: GameSession = Depends(get_session)) -> TournamentSnapshot:
    tournament = session.queries.get_tournament(tournament_id)
    if tournament is None:
        raise HTTPException(status_code=404, detail=f"Tournament not found: {tournament_id}")
    return tournament


@app.get("/rankings", response_model=list[RankingSnapshot])
def get_world_rankings(session: GameSession = Depends(get_session)) -> list[RankingSnapshot]:
    return session.queries.get_world_rankings()


@app.post("/advance/{period}", response_model=AdvanceResponse)
def advance(period: str, session: GameSession = Depends(get_session)) -> AdvanceResponse:
    """Advance the season clock by one day, week or month."""
    try:
        if period == "day":
            report = session.advance_one_day()
            reports = [report] if report is not None else []
        elif period == "week":
            reports = session.advance_one_week()
        elif period == "month":
            reports = session.advance_one_month()
        else:
            raise HTTPException(status_code=400, detail="period must be 'day', 'week' or 'month'")
    except EsportsSimError as e:
        raise _http_error(e) from e
    return AdvanceResponse(
        days_advanced=len(reports),
        season=session.queries.get_current_season(),
        days=[r.to_dict() for r in reports],
    )


@app.post("/season/next", response_model=SeasonSnapshot)
def start_next_season(session: GameSession = Depends(get_session)) -> SeasonSnapshot:
    try:
        session.season.start_next_season()
    except EsportsSimError as e:
        raise _http_error(e) from e
    return session.queries.get_current_season()


@app.post("/save")
def save_game(session: GameSession = Depends(get_session)) -> dict[str, str]:
    try:
        path = session.save()
    except EsportsSimError as e:
        raise _http_error(e) from e
    return {"path": str(path)}


@app.post("/load", response_model=SeasonSnapshot | None)
def load_game(session: GameSession = Depends(get_session)) -> SeasonSnapshot | None:
    try:
        session.load()
    except EsportsSimError as e:
        raise _http_error(e) from e
    return session.queries.get_current_season()


# ---------- Run with: uvicorn esports_manager.api:app --reload ----------
