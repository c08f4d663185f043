#!/usr/bin/env python3
"""
Simulate a full season from a fresh world: generate teams, run every day,
print the tournament results and the final world rankings, and save the game.
Run from project root: python3 scripts/simulate_season.py --seed 42
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from esports_manager.config import Settings
from esports_manager.session import GameSession


def run(seed: int | None, teams: int, days: int | None, workers: int, save: Path | None, archive: Path | None) -> None:
    settings = Settings.from_env(
        seed=seed,
        num_teams=teams,
        match_workers=workers,
        save_path=save or PROJECT_ROOT / "data" / "season_demo.json",
        archive_path=archive,
    )
    game = GameSession(settings)
    game.new_game()
    print(f"New game: {len(game.store.teams)} teams, {len(game.store.players)} players (seed={seed})")

    limit = days if days is not None else settings.season_length
    reports = game.season.advance_days(limit)
    matches = sum(len(r.match_ids) for r in reports)
    forfeits = sum(len(r.forfeits) for r in reports)
    print(f"Simulated {len(reports)} days: {matches} matches, {forfeits} forfeits")

    for tid in game.store.season.tournament_ids:
        snap = game.queries.get_tournament(tid)
        champion = game.store.teams[snap.champion_id].name if snap.champion_id else "-"
        print(f"\n{snap.name} [{snap.tier}] stage={snap.stage} champion={champion}")
        for s in snap.standings:
            print(f"  {s.team_id:<6} {s.wins:>2}-{s.losses:<2} RD {s.round_difference:+4d}  {s.points:>3} pts")

    print("\nWorld rankings")
    for r in game.queries.get_world_rankings():
        print(f"  #{r.position:<2} {r.team_name:<20} {r.points:>9.1f} ({r.change_in_rank:+d})")

    top = sorted(
        (p for p in game.store.active_players() if p.matches_played),
        key=lambda p: (-p.average_rating, p.player_id),
    )[:5]
    print("\nTop rated players")
    for p in top:
        print(f"  {p.display_name:<32} rating {p.average_rating:.2f}  KDA {p.career_kda:.2f}  ({p.matches_played} maps)")

    path = game.save()
    print(f"\nSaved game to {path}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate one esports season from a fresh world.")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for reproducibility")
    parser.add_argument("--teams", type=int, default=8, help="Number of teams")
    parser.add_argument("--days", type=int, default=None, help="Stop after this many days")
    parser.add_argument("--workers", type=int, default=1, help="Threads for a day's matches")
    parser.add_argument("--save", type=Path, default=None, help="Save file path")
    parser.add_argument("--archive", type=Path, default=None, help="SQLite match archive path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every season event")
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run(args.seed, args.teams, args.days, args.workers, args.save, args.archive)


if __name__ == "__main__":
    main()
