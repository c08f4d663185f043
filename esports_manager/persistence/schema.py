"""
SQLite schema for the match archive.
Migration-friendly: each table created with IF NOT EXISTS.
"""
from __future__ import annotations


def matches_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS matches (
        id TEXT PRIMARY KEY,
        day INTEGER NOT NULL,
        tournament_id TEXT,
        team_a_id TEXT NOT NULL,
        team_b_id TEXT NOT NULL,
        map_name TEXT NOT NULL,
        winner_id TEXT NOT NULL,
        score_a INTEGER NOT NULL,
        score_b INTEGER NOT NULL,
        overtime_periods INTEGER NOT NULL DEFAULT 0,
        seed INTEGER,
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_matches_team_a ON matches(team_a_id);
    CREATE INDEX IF NOT EXISTS ix_matches_team_b ON matches(team_b_id);
    CREATE INDEX IF NOT EXISTS ix_matches_day ON matches(day);
    """


def performances_schema() -> str:
    """One row per player per archived match."""
    return """
    CREATE TABLE IF NOT EXISTS performances (
        match_id TEXT NOT NULL,
        player_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        kills INTEGER NOT NULL,
        deaths INTEGER NOT NULL,
        assists INTEGER NOT NULL,
        mvps INTEGER NOT NULL,
        damage INTEGER NOT NULL,
        rounds_played INTEGER NOT NULL,
        rating REAL NOT NULL,
        PRIMARY KEY (match_id, player_id),
        FOREIGN KEY (match_id) REFERENCES matches(id)
    );
    CREATE INDEX IF NOT EXISTS ix_performances_player ON performances(player_id);
    """


def all_schema_sql() -> str:
    """Combine all schema DDL for a single execution. Order: matches, performances."""
    return "\n".join([
        matches_schema(),
        performances_schema(),
    ])
