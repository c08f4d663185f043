"""
Save/load of the whole game state as one JSON document.

The document is a pydantic model whose fields are the entity dataclasses, so
loading validates every nested entity and enum. A load either produces a
complete new EntityStore or raises; the caller swaps stores only on success.
"""
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from ..errors import CorruptSaveError, PersistenceError, SaveNotFoundError
from ..models import (
    Coach,
    Contract,
    Fixture,
    MapInfo,
    Player,
    RankedTeam,
    RankingEntry,
    Season,
    Team,
    TeamBudget,
    Tournament,
    TransferListing,
)
from ..simulation.rng import SeededRNG
from .store import EntityStore

logger = logging.getLogger(__name__)

SAVE_VERSION = 1


class SaveDocument(BaseModel):
    save_version: int = SAVE_VERSION
    saved_at: str = ""
    season: Season | None = None
    season_history: list[Season] = Field(default_factory=list)
    players: list[Player] = Field(default_factory=list)
    teams: list[Team] = Field(default_factory=list)
    coaches: list[Coach] = Field(default_factory=list)
    maps: list[MapInfo] = Field(default_factory=list)
    contracts: list[Contract] = Field(default_factory=list)
    contract_history: list[Contract] = Field(default_factory=list)
    budgets: list[TeamBudget] = Field(default_factory=list)
    listings: list[TransferListing] = Field(default_factory=list)
    listing_history: list[TransferListing] = Field(default_factory=list)
    tournaments: list[Tournament] = Field(default_factory=list)
    fixtures: list[Fixture] = Field(default_factory=list)
    rankings: list[RankedTeam] = Field(default_factory=list)
    ranking_entries: list[RankingEntry] = Field(default_factory=list)
    rng_state: list[Any] | None = None


@dataclass
class LoadedState:
    store: EntityStore
    rng_state: list[Any] | None
    saved_at: str


def document_from_store(store: EntityStore, rng_state: list[Any] | None = None) -> SaveDocument:
    return SaveDocument(
        saved_at=datetime.now(timezone.utc).isoformat(),
        season=store.season,
        season_history=list(store.season_history),
        players=list(store.players.values()),
        teams=list(store.teams.values()),
        coaches=list(store.coaches.values()),
        maps=list(store.maps.values()),
        contracts=list(store.contracts.values()),
        contract_history=list(store.contract_history),
        budgets=list(store.budgets.values()),
        listings=list(store.listings.values()),
        listing_history=list(store.listing_history),
        tournaments=list(store.tournaments.values()),
        fixtures=list(store.fixtures.values()),
        rankings=list(store.rankings),
        ranking_entries=list(store.ranking_entries),
        rng_state=rng_state,
    )


def store_from_document(doc: SaveDocument) -> EntityStore:
    store = EntityStore(
        players={p.player_id: p for p in doc.players},
        teams={t.team_id: t for t in doc.teams},
        coaches={c.coach_id: c for c in doc.coaches},
        maps={m.name: m for m in doc.maps},
        contracts={c.player_id: c for c in doc.contracts},
        contract_history=list(doc.contract_history),
        budgets={b.team_id: b for b in doc.budgets},
        listings={x.player_id: x for x in doc.listings},
        listing_history=list(doc.listing_history),
        tournaments={t.tournament_id: t for t in doc.tournaments},
        fixtures={f.fixture_id: f for f in doc.fixtures},
        rankings=list(doc.rankings),
        ranking_entries=list(doc.ranking_entries),
        season=doc.season,
        season_history=list(doc.season_history),
    )
    check_references(store)
    return store


def check_references(store: EntityStore) -> None:
    """Raise CorruptSaveError if any id reference points at nothing."""
    problems: list[str] = []
    for team in store.teams.values():
        for pid in team.all_player_ids:
            if pid not in store.players:
                problems.append(f"team {team.team_id} lists unknown player {pid}")
        if team.coach_id is not None and team.coach_id not in store.coaches:
            problems.append(f"team {team.team_id} has unknown coach {team.coach_id}")
        for session in team.practice_schedule:
            if session.target_map is not None and session.target_map not in store.maps:
                problems.append(f"team {team.team_id} practices unknown map {session.target_map}")
    for player in store.players.values():
        if player.team_id is not None and player.team_id not in store.teams:
            problems.append(f"player {player.player_id} belongs to unknown team {player.team_id}")
    for contract in store.contracts.values():
        if contract.player_id not in store.players or contract.team_id not in store.teams:
            problems.append(f"contract {contract.contract_id} references unknown entities")
    for listing in store.listings.values():
        if listing.player_id not in store.players or listing.selling_team_id not in store.teams:
            problems.append(f"listing for {listing.player_id} references unknown entities")
    for fixture in store.fixtures.values():
        if fixture.team_a_id not in store.teams or fixture.team_b_id not in store.teams:
            problems.append(f"fixture {fixture.fixture_id} references unknown teams")
    if problems:
        raise CorruptSaveError("; ".join(problems[:5]))


def _write_json_with_backup(path: Path, payload: str, *, with_backup: bool = True) -> None:
    if with_backup and path.exists():
        backup = path.with_suffix(path.suffix + ".bak")
        shutil.copy2(path, backup)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(payload, encoding="utf-8")
    tmp.replace(path)


def save_state(store: EntityStore, path: str | Path, rng_state: list[Any] | None = None) -> Path:
    """Write the store to path. The previous save (if any) is kept as path.bak."""
    path = Path(path)
    doc = document_from_store(store, rng_state)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        _write_json_with_backup(path, doc.model_dump_json(indent=2))
    except OSError as e:
        raise PersistenceError(f"Could not write save file {path}: {e}") from e
    logger.info("Saved game to %s", path)
    return path


def load_state(path: str | Path) -> LoadedState:
    """
    Read and validate a save. Raises SaveNotFoundError if the file is
    missing and CorruptSaveError if it is not a valid save document.
    """
    path = Path(path)
    if not path.exists():
        raise SaveNotFoundError(f"Save file not found: {path}")
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CorruptSaveError(f"Could not read save file {path}: {e}") from e
    try:
        doc = SaveDocument.model_validate_json(raw)
    except PydanticValidationError as e:
        raise CorruptSaveError(f"Save file {path} is invalid: {e.error_count()} error(s)") from e
    if doc.save_version > SAVE_VERSION:
        raise CorruptSaveError(
            f"Unsupported save version {doc.save_version}; supported up to {SAVE_VERSION}"
        )
    if doc.rng_state is not None:
        try:
            SeededRNG().import_state(doc.rng_state)
        except (TypeError, ValueError) as e:
            raise CorruptSaveError(f"Save file {path} has an invalid RNG state") from e
    store = store_from_document(doc)
    logger.info("Loaded game from %s", path)
    return LoadedState(store=store, rng_state=doc.rng_state, saved_at=doc.saved_at)
