"""
Roster management: active five, bench and unique role assignments.
Plain functions over Team and EntityStore; callers decide when to persist.
"""
from __future__ import annotations

import logging
from typing import Sequence

from ..config import CHEMISTRY_MIN, CHEMISTRY_ROSTER_CHANGE_PENALTY
from ..errors import InvalidRosterError, ValidationError
from ..generation import assign_roles, overall
from ..models import Player, Team
from ..persistence.store import EntityStore

logger = logging.getLogger(__name__)

ACTIVE_SIZE = 5


def is_match_ready(team: Team) -> bool:
    return len(team.active_roster) == ACTIVE_SIZE


def _unsettle(team: Team, newcomers: int) -> None:
    """Each newcomer to the active five costs the team some chemistry."""
    if newcomers > 0:
        team.chemistry = max(CHEMISTRY_MIN, team.chemistry - CHEMISTRY_ROSTER_CHANGE_PENALTY * newcomers)


def set_active_roster(store: EntityStore, team: Team, active_ids: Sequence[str]) -> None:
    """
    Replace the active five. Every id must already belong to the team;
    everyone else moves to the bench. Roles are reassigned.
    """
    ids = list(active_ids)
    if len(ids) != ACTIVE_SIZE or len(set(ids)) != ACTIVE_SIZE:
        raise InvalidRosterError(f"An active roster needs exactly {ACTIVE_SIZE} distinct players")
    members = set(team.all_player_ids)
    unknown = [pid for pid in ids if pid not in members]
    if unknown:
        raise InvalidRosterError(f"Players not on team {team.name}: {', '.join(unknown)}")
    retired = [pid for pid in ids if store.get_player(pid).retired]
    if retired:
        raise InvalidRosterError(f"Retired players cannot play: {', '.join(retired)}")
    newcomers = len(set(ids) - set(team.active_roster))
    team.bench = [pid for pid in team.all_player_ids if pid not in ids]
    team.active_roster = ids
    reassign_roles(store, team)
    _unsettle(team, newcomers)


def reassign_roles(store: EntityStore, team: Team) -> None:
    team.role_assignments = assign_roles(store.roster_players(team))


def add_player(team: Team, player: Player, active: bool = False) -> None:
    """Add a player to the bench, or to the active roster if there is room."""
    if player.player_id in team.all_player_ids:
        raise ValidationError(f"{player.nickname} is already on {team.name}")
    if active and len(team.active_roster) < ACTIVE_SIZE:
        team.active_roster.append(player.player_id)
        _unsettle(team, 1)
    else:
        team.bench.append(player.player_id)
    player.team_id = team.team_id


def remove_player(team: Team, player: Player) -> bool:
    """Take a player off the team. Returns True if they were in the active five."""
    was_active = player.player_id in team.active_roster
    if was_active:
        team.active_roster.remove(player.player_id)
    elif player.player_id in team.bench:
        team.bench.remove(player.player_id)
    team.role_assignments = {r: pid for r, pid in team.role_assignments.items() if pid != player.player_id}
    if player.team_id == team.team_id:
        player.team_id = None
        player.previous_team_ids.append(team.team_id)
    return was_active


def fill_active_roster(store: EntityStore, team: Team) -> list[str]:
    """
    Promote the best healthy bench players (then injured ones) until five are
    active. Returns promoted ids; the roster may still be short.
    """
    promoted: list[str] = []
    candidates = [store.get_player(pid) for pid in team.bench]
    candidates = [p for p in candidates if not p.retired]
    candidates.sort(key=lambda p: (p.is_injured, -overall(p), p.player_id))
    for p in candidates:
        if len(team.active_roster) >= ACTIVE_SIZE:
            break
        team.bench.remove(p.player_id)
        team.active_roster.append(p.player_id)
        promoted.append(p.player_id)
    if promoted:
        reassign_roles(store, team)
        _unsettle(team, len(promoted))
        logger.debug("%s promoted %s", team.name, ", ".join(promoted))
    return promoted


def drop_retired(store: EntityStore, team: Team) -> list[str]:
    """Remove retired players from the team."""
    dropped = []
    for pid in list(team.all_player_ids):
        p = store.get_player(pid)
        if p.retired:
            remove_player(team, p)
            dropped.append(pid)
    return dropped
