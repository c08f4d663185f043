"""
Randomized generation of players, coaches and teams.

Every function is pure given its RNG and data lists: the same seed and the
same lists produce the same world. Name and map lists are inputs, so the core
never loads data files itself.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .config import (
    DEFAULT_FIRST_NAMES,
    DEFAULT_LAST_NAMES,
    DEFAULT_MAPS,
    DEFAULT_NATIONALITIES,
    DEFAULT_NICKNAME_PREFIXES,
    DEFAULT_NICKNAME_SUFFIXES,
    DEFAULT_NICKNAME_WORDS,
    DEFAULT_TEAM_NAMES,
    SKILL_MAX,
    SKILL_MIN,
)
from .models import Coach, Player, PracticeFocus, PracticeSession, Role, SkillSet, Team, clamp_skill
from .simulation.rng import SeededRNG

MIN_AGE = 16
MAX_AGE = 35
ACTIVE_ROSTER_SIZE = 5

# Skills drawn with a wider spread
WIDE_SKILLS = ("awp", "leadership", "lurking")


@dataclass
class NamePools:
    """Data lists consumed by generation."""
    first_names: Sequence[str] = field(default_factory=lambda: list(DEFAULT_FIRST_NAMES))
    last_names: Sequence[str] = field(default_factory=lambda: list(DEFAULT_LAST_NAMES))
    nationalities: Sequence[str] = field(default_factory=lambda: list(DEFAULT_NATIONALITIES))
    nickname_prefixes: Sequence[str] = field(default_factory=lambda: list(DEFAULT_NICKNAME_PREFIXES))
    nickname_suffixes: Sequence[str] = field(default_factory=lambda: list(DEFAULT_NICKNAME_SUFFIXES))
    nickname_words: Sequence[str] = field(default_factory=lambda: list(DEFAULT_NICKNAME_WORDS))
    team_names: Sequence[str] = field(default_factory=lambda: list(DEFAULT_TEAM_NAMES))


# ---------- Roles ----------


def role_scores(skills: SkillSet) -> dict[Role, float]:
    """Suitability of a skill set for each role; higher is better."""
    s = skills
    return {
        Role.AWPER: 2 * s.awp + s.aim + s.reaction_time,
        Role.IGL: 2 * s.leadership + s.gamesense + s.utility_usage,
        Role.ENTRY_FRAGGER: 2 * s.entry_fragging + s.aim + s.movement,
        Role.SUPPORT: 2 * s.utility_usage + s.teamwork + s.positioning,
        Role.LURKER: 2 * s.lurking + s.gamesense + s.clutch_ability,
        Role.RIFLER: 2 * s.rifle + s.aim + s.consistency,
    }


def preferred_role(skills: SkillSet) -> Role:
    scores = role_scores(skills)
    # Enum order breaks ties
    return max(Role, key=lambda r: scores[r])


def assign_roles(players: Sequence[Player]) -> dict[Role, str]:
    """Greedy unique role assignment: best (player, role) fits first."""
    candidates: list[tuple[float, int, int, Role, str]] = []
    role_order = {r: i for i, r in enumerate(Role)}
    for idx, p in enumerate(players):
        for role, score in role_scores(p.skills).items():
            bonus = 1.0 if role == p.preferred_role else 0.0
            candidates.append((score + bonus, -role_order[role], -idx, role, p.player_id))
    candidates.sort(reverse=True)
    assigned: dict[Role, str] = {}
    taken: set[str] = set()
    for _, _, _, role, pid in candidates:
        if role in assigned or pid in taken:
            continue
        assigned[role] = pid
        taken.add(pid)
    return assigned


# ---------- Players ----------


def _normal_skill(rng: SeededRNG, mean: float, sd: float) -> int:
    return clamp_skill(rng.gauss(mean, sd))


def generate_skills(rng: SeededRNG, quality: float = 0.0) -> SkillSet:
    """Skills ~ N(10 + quality, 3); a few role skills use sd 4."""
    mean = (SKILL_MIN + SKILL_MAX) / 2 + quality
    values = {
        name: _normal_skill(rng, mean, 4.0 if name in WIDE_SKILLS else 3.0)
        for name in SkillSet.names()
    }
    return SkillSet(**values)


def generate_nickname(rng: SeededRNG, pools: NamePools, taken: set[str] | None = None) -> str:
    """Prefix + suffix half of the time, otherwise a single word; unique within taken."""
    if rng.random() < 0.5:
        base = rng.choice(pools.nickname_prefixes) + rng.choice(pools.nickname_suffixes).lower()
    else:
        base = rng.choice(pools.nickname_words)
    nickname = base
    if taken is not None:
        n = 2
        while nickname in taken:
            nickname = f"{base}{n}"
            n += 1
        taken.add(nickname)
    return nickname


def generate_player(
    rng: SeededRNG,
    player_id: str,
    pools: NamePools | None = None,
    map_names: Sequence[str] | None = None,
    quality: float = 0.0,
    taken_nicknames: set[str] | None = None,
    age: int | None = None,
) -> Player:
    """Age ~ N(22, 4) within MIN_AGE..MAX_AGE unless given."""
    pools = pools or NamePools()
    map_names = list(map_names) if map_names is not None else list(DEFAULT_MAPS)
    if age is None:
        age = max(MIN_AGE, min(MAX_AGE, int(round(rng.gauss(22, 4)))))
    skills = generate_skills(rng, quality)
    proficiency = {m: _normal_skill(rng, (SKILL_MIN + SKILL_MAX) / 2 + quality, 3.0) for m in map_names}
    experience = max(0.0, (age - MIN_AGE) * rng.uniform(40.0, 160.0))
    return Player(
        player_id=player_id,
        first_name=rng.choice(pools.first_names),
        last_name=rng.choice(pools.last_names),
        nickname=generate_nickname(rng, pools, taken_nicknames),
        nationality=rng.choice(pools.nationalities),
        age=age,
        skills=skills,
        preferred_role=preferred_role(skills),
        map_proficiency=proficiency,
        experience=experience,
    )


def next_player_id(existing_ids: Iterable[str]) -> str:
    """Next free id in the p0001 sequence."""
    numbers = [int(pid[1:]) for pid in existing_ids if pid.startswith("p") and pid[1:].isdigit()]
    return f"p{max(numbers, default=0) + 1:04d}"


# ---------- Coaches ----------


def generate_coach(rng: SeededRNG, coach_id: str, pools: NamePools | None = None) -> Coach:
    pools = pools or NamePools()
    return Coach(
        coach_id=coach_id,
        first_name=rng.choice(pools.first_names),
        last_name=rng.choice(pools.last_names),
        nickname=generate_nickname(rng, pools),
        nationality=rng.choice(pools.nationalities),
        age=max(25, min(60, int(round(rng.gauss(38, 7))))),
        tactical_knowledge=_normal_skill(rng, 11, 3),
        leadership=_normal_skill(rng, 11, 3),
        mental_coaching=_normal_skill(rng, 10, 3),
        reputation=_normal_skill(rng, 10, 4),
    )


# ---------- Teams ----------

# Weekday -> focus; map study picks one of the team's weaker maps
DEFAULT_WEEK: tuple[PracticeFocus, ...] = (
    PracticeFocus.AIM_TRAINING,
    PracticeFocus.UTILITY_LINEUPS,
    PracticeFocus.MAP_STUDY,
    PracticeFocus.VOD_REVIEW,
    PracticeFocus.STRAT_PRACTICE,
    PracticeFocus.SCRIMMAGE,
    PracticeFocus.REST,
)


def generate_practice_schedule(rng: SeededRNG, map_pool_strength: dict[str, int]) -> list[PracticeSession]:
    weakest = sorted(map_pool_strength, key=lambda m: (map_pool_strength[m], m))[:3]
    schedule = []
    for weekday, focus in enumerate(DEFAULT_WEEK):
        target = rng.choice(weakest) if focus == PracticeFocus.MAP_STUDY and weakest else None
        schedule.append(PracticeSession(weekday=weekday, focus=focus, target_map=target))
    return schedule


def team_tag(name: str) -> str:
    words = [w for w in name.split() if w]
    if len(words) == 1:
        return words[0][:4].upper()
    return "".join(w[0] for w in words)[:4].upper()


def overall(player: Player) -> float:
    """Mean of all skill attributes."""
    names = SkillSet.names()
    return sum(player.skills.get(n) for n in names) / len(names)


def build_team(
    rng: SeededRNG,
    team_id: str,
    name: str,
    players: Sequence[Player],
    map_names: Sequence[str],
    region: str = "Europe",
    coach: Coach | None = None,
) -> Team:
    """
    Best five by overall rating form the active roster, the rest sit on the
    bench. Mutates the given players' team_id.
    """
    ranked = sorted(players, key=lambda p: (-overall(p), p.player_id))
    active = ranked[:ACTIVE_ROSTER_SIZE]
    bench = ranked[ACTIVE_ROSTER_SIZE:]
    team = Team(
        team_id=team_id,
        name=name,
        tag=team_tag(name),
        region=region,
        active_roster=[p.player_id for p in active],
        bench=[p.player_id for p in bench],
        role_assignments=assign_roles(active),
        coach_id=coach.coach_id if coach else None,
        aggression=rng.randint(20, 80),
        tactical_depth=rng.randint(20, 80),
        awp_dependence=rng.randint(20, 80),
        adaptability=rng.randint(20, 80),
        chemistry=float(rng.randint(40, 70)),
        map_pool_strength={m: rng.randint(30, 90) for m in map_names},
        reputation=rng.randint(20, 80),
        fanbase=rng.randint(5_000, 500_000),
    )
    team.practice_schedule = generate_practice_schedule(rng, team.map_pool_strength)
    for p in players:
        p.team_id = team_id
    if coach is not None:
        coach.team_id = team_id
    return team


@dataclass
class GeneratedWorld:
    teams: list[Team]
    players: list[Player]
    coaches: list[Coach]


def generate_world(
    rng: SeededRNG,
    num_teams: int,
    players_per_team: int = 6,
    free_agents: int = 10,
    pools: NamePools | None = None,
    map_names: Sequence[str] | None = None,
) -> GeneratedWorld:
    """Teams with rosters and coaches, plus a pool of unsigned free agents."""
    pools = pools or NamePools()
    map_names = list(map_names) if map_names is not None else list(DEFAULT_MAPS)
    taken: set[str] = set()
    teams: list[Team] = []
    players: list[Player] = []
    coaches: list[Coach] = []
    for t in range(num_teams):
        if t < len(pools.team_names):
            name = pools.team_names[t]
        else:
            name = f"Team {t + 1}"
        quality = rng.uniform(-2.0, 2.0)
        roster = [
            generate_player(rng, f"p{len(players) + i + 1:04d}", pools, map_names, quality, taken)
            for i in range(players_per_team)
        ]
        coach = generate_coach(rng, f"c{t + 1:03d}", pools)
        teams.append(build_team(rng, f"t{t + 1:03d}", name, roster, map_names, coach=coach))
        players.extend(roster)
        coaches.append(coach)
    for _ in range(free_agents):
        players.append(
            generate_player(rng, f"p{len(players) + 1:04d}", pools, map_names, rng.uniform(-3.0, 1.0), taken)
        )
    return GeneratedWorld(teams=teams, players=players, coaches=coaches)
