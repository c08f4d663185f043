"""
Repository for the match archive.
No business logic, only read/write operations.
"""
from __future__ import annotations

import sqlite3
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from ..simulation.schemas import MatchResult
from .db import get_connection, init_db


@dataclass(frozen=True)
class ArchivedMatch:
    id: str
    day: int
    tournament_id: str | None
    team_a_id: str
    team_b_id: str
    map_name: str
    winner_id: str
    score_a: int
    score_b: int
    overtime_periods: int
    seed: int | None
    created_at: datetime


@dataclass(frozen=True)
class ArchivedPerformance:
    match_id: str
    player_id: str
    team_id: str
    kills: int
    deaths: int
    assists: int
    mvps: int
    damage: int
    rounds_played: int
    rating: float


def _match_from_row(r: sqlite3.Row) -> ArchivedMatch:
    return ArchivedMatch(
        id=r["id"],
        day=r["day"],
        tournament_id=r["tournament_id"],
        team_a_id=r["team_a_id"],
        team_b_id=r["team_b_id"],
        map_name=r["map_name"],
        winner_id=r["winner_id"],
        score_a=r["score_a"],
        score_b=r["score_b"],
        overtime_periods=r["overtime_periods"],
        seed=r["seed"],
        created_at=datetime.fromisoformat(r["created_at"]),
    )


def _performance_from_row(r: sqlite3.Row) -> ArchivedPerformance:
    return ArchivedPerformance(
        match_id=r["match_id"],
        player_id=r["player_id"],
        team_id=r["team_id"],
        kills=r["kills"],
        deaths=r["deaths"],
        assists=r["assists"],
        mvps=r["mvps"],
        damage=r["damage"],
        rounds_played=r["rounds_played"],
        rating=r["rating"],
    )


# ---------- MatchArchiveRepository ----------


class MatchArchiveRepository:
    """Insert and read finalized matches and their player lines."""

    def create(
        self,
        conn: sqlite3.Connection,
        result: MatchResult,
        day: int,
        tournament_id: str | None = None,
    ) -> ArchivedMatch:
        now = datetime.now(timezone.utc).isoformat()
        conn.execute(
            """INSERT INTO matches (
                id, day, tournament_id, team_a_id, team_b_id, map_name,
                winner_id, score_a, score_b, overtime_periods, seed, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                result.match_id,
                day,
                tournament_id,
                result.team_a_id,
                result.team_b_id,
                result.map_name,
                result.winner_id,
                result.score_a,
                result.score_b,
                result.overtime_periods,
                result.seed,
                now,
            ),
        )
        conn.executemany(
            """INSERT INTO performances (
                match_id, player_id, team_id, kills, deaths, assists,
                mvps, damage, rounds_played, rating
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            [
                (
                    result.match_id,
                    p.player_id,
                    p.team_id,
                    p.kills,
                    p.deaths,
                    p.assists,
                    p.mvps,
                    p.damage,
                    p.rounds_played,
                    p.rating,
                )
                for p in result.performances
            ],
        )
        conn.commit()
        return ArchivedMatch(
            id=result.match_id,
            day=day,
            tournament_id=tournament_id,
            team_a_id=result.team_a_id,
            team_b_id=result.team_b_id,
            map_name=result.map_name,
            winner_id=result.winner_id,
            score_a=result.score_a,
            score_b=result.score_b,
            overtime_periods=result.overtime_periods,
            seed=result.seed,
            created_at=datetime.fromisoformat(now),
        )

    def get(self, conn: sqlite3.Connection, match_id: str) -> ArchivedMatch | None:
        row = conn.execute("SELECT * FROM matches WHERE id = ?", (match_id,)).fetchone()
        return _match_from_row(row) if row is not None else None

    def list_for_team(self, conn: sqlite3.Connection, team_id: str, limit: int = 50) -> list[ArchivedMatch]:
        rows = conn.execute(
            """SELECT * FROM matches WHERE team_a_id = ? OR team_b_id = ?
               ORDER BY day DESC, id DESC LIMIT ?""",
            (team_id, team_id, limit),
        ).fetchall()
        return [_match_from_row(r) for r in rows]

    def performances_for_match(self, conn: sqlite3.Connection, match_id: str) -> list[ArchivedPerformance]:
        rows = conn.execute(
            "SELECT * FROM performances WHERE match_id = ? ORDER BY team_id, player_id",
            (match_id,),
        ).fetchall()
        return [_performance_from_row(r) for r in rows]

    def performances_for_player(self, conn: sqlite3.Connection, player_id: str) -> list[ArchivedPerformance]:
        rows = conn.execute(
            """SELECT p.* FROM performances p JOIN matches m ON m.id = p.match_id
               WHERE p.player_id = ? ORDER BY m.day, p.match_id""",
            (player_id,),
        ).fetchall()
        return [_performance_from_row(r) for r in rows]

    def head_to_head(self, conn: sqlite3.Connection, team_a_id: str, team_b_id: str) -> dict[str, int]:
        """Map wins between two teams, keyed by team id."""
        rows = conn.execute(
            """SELECT winner_id, COUNT(*) AS n FROM matches
               WHERE (team_a_id = ? AND team_b_id = ?) OR (team_a_id = ? AND team_b_id = ?)
               GROUP BY winner_id""",
            (team_a_id, team_b_id, team_b_id, team_a_id),
        ).fetchall()
        wins = {team_a_id: 0, team_b_id: 0}
        for r in rows:
            wins[r["winner_id"]] = r["n"]
        return wins


# ---------- MatchArchive ----------


class MatchArchive:
    """
    File-backed archive used by the season loop. Opens a short-lived
    connection per call so it never holds the database between days.
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        self.db_path = Path(db_path) if db_path else None
        self._repo = MatchArchiveRepository()
        init_db(self.db_path)

    def save_match(self, result: MatchResult, day: int, tournament_id: str | None = None) -> ArchivedMatch:
        with closing(get_connection(self.db_path)) as conn:
            return self._repo.create(conn, result, day, tournament_id)

    def get_match(self, match_id: str) -> ArchivedMatch | None:
        with closing(get_connection(self.db_path)) as conn:
            return self._repo.get(conn, match_id)

    def team_history(self, team_id: str, limit: int = 50) -> list[ArchivedMatch]:
        with closing(get_connection(self.db_path)) as conn:
            return self._repo.list_for_team(conn, team_id, limit)

    def player_history(self, player_id: str) -> list[ArchivedPerformance]:
        with closing(get_connection(self.db_path)) as conn:
            return self._repo.performances_for_player(conn, player_id)

    def head_to_head(self, team_a_id: str, team_b_id: str) -> dict[str, int]:
        with closing(get_connection(self.db_path)) as conn:
            return self._repo.head_to_head(conn, team_a_id, team_b_id)
