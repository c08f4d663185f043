"""
Persistence layer: the in-memory entity store, JSON save/load and the
SQLite match archive. No business logic, no simulation.
"""
from .store import EntityStore
from .save_state import SAVE_VERSION, LoadedState, SaveDocument, load_state, save_state
from .db import get_connection, get_db_path, init_db, set_db_path
from .repositories import ArchivedMatch, ArchivedPerformance, MatchArchive, MatchArchiveRepository

__all__ = [
    "EntityStore",
    "SAVE_VERSION",
    "LoadedState",
    "SaveDocument",
    "load_state",
    "save_state",
    "get_connection",
    "get_db_path",
    "init_db",
    "set_db_path",
    "ArchivedMatch",
    "ArchivedPerformance",
    "MatchArchive",
    "MatchArchiveRepository",
]
