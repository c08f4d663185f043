"""
Data models for the esports simulator.
Domain objects only: no simulation, persistence or API logic.

Entities reference each other by id; the EntityStore resolves ids. Skills are
integers on the SKILL_MIN..SKILL_MAX scale and every mutator clamps them.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from .config import (
    PLAYOFFS_END,
    PRESEASON_END,
    REGULAR_SEASON_END,
    SKILL_MAX,
    SKILL_MIN,
    MORALE_BASELINE,
)


def clamp_skill(value: float) -> int:
    """Round and clamp a value onto the skill scale."""
    return max(SKILL_MIN, min(SKILL_MAX, int(round(value))))


# ---------- Enums ----------


class Role(str, Enum):
    """In-game role. Each active player holds at most one, unique per team."""
    AWPER = "awper"
    IGL = "igl"
    ENTRY_FRAGGER = "entry_fragger"
    SUPPORT = "support"
    LURKER = "lurker"
    RIFLER = "rifler"


class FormTier(str, Enum):
    EXCEPTIONAL = "exceptional"
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    POOR = "poor"
    TERRIBLE = "terrible"


class CareerPhase(str, Enum):
    RISING = "rising"
    PEAK = "peak"
    DECLINING = "declining"
    VETERAN = "veteran"
    RETIRED = "retired"


class CareerEventType(str, Enum):
    INJURY = "injury"
    RECOVERY = "recovery"
    AWARD = "award"
    CHAMPIONSHIP = "championship"
    TRANSFER = "transfer"
    DEMOTION = "demotion"
    PROMOTION = "promotion"
    RETIREMENT = "retirement"


class SeasonPhase(str, Enum):
    """Season lifecycle, derived from progress: preseason → regular → playoffs → offseason."""
    PRESEASON = "preseason"
    REGULAR_SEASON = "regular_season"
    PLAYOFFS = "playoffs"
    OFFSEASON = "offseason"


class ContractStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    TERMINATED = "terminated"


class ClauseType(str, Enum):
    BUYOUT = "buyout"
    RELEASE = "release"
    CHAMPIONSHIP_BONUS = "championship_bonus"
    PERFORMANCE_BONUS = "performance_bonus"
    LOYALTY_BONUS = "loyalty_bonus"


class TransactionType(str, Enum):
    SALARY = "salary"
    BONUS = "bonus"
    INCOME = "income"
    EXPENSE = "expense"
    PRIZE_MONEY = "prize_money"
    SPONSORSHIP = "sponsorship"
    TRANSFER_FEE = "transfer_fee"


class ListingStatus(str, Enum):
    ACTIVE = "active"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    WITHDRAWN = "withdrawn"


class OfferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class PracticeFocus(str, Enum):
    AIM_TRAINING = "aim_training"
    UTILITY_LINEUPS = "utility_lineups"
    STRAT_PRACTICE = "strat_practice"
    VOD_REVIEW = "vod_review"
    MAP_STUDY = "map_study"
    SCRIMMAGE = "scrimmage"
    TEAM_BUILDING = "team_building"
    REST = "rest"


class TournamentTier(str, Enum):
    MAJOR = "major"
    S_TIER = "s_tier"
    A_TIER = "a_tier"
    B_TIER = "b_tier"
    C_TIER = "c_tier"


class TournamentStage(str, Enum):
    """Tournament lifecycle: not started → group stage → semifinals → grand final → completed."""
    NOT_STARTED = "not_started"
    GROUP_STAGE = "group_stage"
    SEMIFINALS = "semifinals"
    GRAND_FINAL = "grand_final"
    COMPLETED = "completed"


# ---------- Player ----------


@dataclass
class SkillSet:
    """Integer skill attributes on the SKILL_MIN..SKILL_MAX scale."""
    aim: int = 10
    reaction_time: int = 10
    positioning: int = 10
    utility_usage: int = 10
    clutch_ability: int = 10
    consistency: int = 10
    mental_fortitude: int = 10
    gamesense: int = 10
    movement: int = 10
    awp: int = 10
    rifle: int = 10
    pistol: int = 10
    leadership: int = 10
    site_anchor: int = 10
    entry_fragging: int = 10
    lurking: int = 10
    teamwork: int = 10
    work_ethic: int = 10
    temperament: int = 10

    def __post_init__(self) -> None:
        self.clamp()

    @classmethod
    def names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def clamp(self) -> None:
        for name in self.names():
            setattr(self, name, clamp_skill(getattr(self, name)))

    def get(self, name: str) -> int:
        return getattr(self, name)

    def set(self, name: str, value: float) -> int:
        """Set one skill, clamped. Returns the stored value."""
        stored = clamp_skill(value)
        setattr(self, name, stored)
        return stored

    def weighted_average(self, weights: dict[str, float]) -> float:
        total_w = sum(weights.values())
        if total_w <= 0:
            return 0.0
        return sum(getattr(self, k) * w for k, w in weights.items()) / total_w

    def to_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in self.names()}


@dataclass
class CareerEvent:
    """Append-only record in a player's history."""
    event_type: CareerEventType
    day: int
    description: str
    season_number: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "day": self.day,
            "description": self.description,
            "season_number": self.season_number,
        }


@dataclass
class MapRecord:
    played: int = 0
    won: int = 0
    rating_total: float = 0.0

    @property
    def average_rating(self) -> float:
        return self.rating_total / self.played if self.played else 0.0


@dataclass
class Player:
    player_id: str
    first_name: str
    last_name: str
    nickname: str
    nationality: str
    age: int
    skills: SkillSet = field(default_factory=SkillSet)
    preferred_role: Role = Role.RIFLER
    map_proficiency: dict[str, int] = field(default_factory=dict)
    team_id: str | None = None
    previous_team_ids: list[str] = field(default_factory=list)
    # Career state
    form: FormTier = FormTier.AVERAGE
    morale: float = MORALE_BASELINE
    injury_days_remaining: int = 0
    injury_penalty: dict[str, int] = field(default_factory=dict)
    career_phase: CareerPhase = CareerPhase.RISING
    experience: float = 0.0
    career_kills: int = 0
    career_deaths: int = 0
    career_assists: int = 0
    career_mvps: int = 0
    matches_played: int = 0
    matches_won: int = 0
    average_rating: float = 0.0
    map_stats: dict[str, MapRecord] = field(default_factory=dict)
    retired: bool = False
    career_events: list[CareerEvent] = field(default_factory=list)
    # Financial
    salary: float = 0.0
    contract_years_remaining: int = 0
    market_value: float = 0.0

    @property
    def display_name(self) -> str:
        return f'{self.first_name} "{self.nickname}" {self.last_name}'

    @property
    def career_kda(self) -> float:
        """Cumulative kills over cumulative deaths, deaths floored at one."""
        return self.career_kills / max(1, self.career_deaths)

    @property
    def is_injured(self) -> bool:
        return self.injury_days_remaining > 0

    def map_skill(self, map_name: str) -> int:
        return self.map_proficiency.get(map_name, SKILL_MIN + (SKILL_MAX - SKILL_MIN) // 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "name": self.display_name,
            "nickname": self.nickname,
            "nationality": self.nationality,
            "age": self.age,
            "team_id": self.team_id,
            "preferred_role": self.preferred_role.value,
            "skills": self.skills.to_dict(),
            "form": self.form.value,
            "morale": round(self.morale, 2),
            "career_phase": self.career_phase.value,
            "experience": round(self.experience, 2),
            "matches_played": self.matches_played,
            "average_rating": round(self.average_rating, 3),
            "career_kda": round(self.career_kda, 3),
            "retired": self.retired,
        }


@dataclass
class Coach:
    coach_id: str
    first_name: str
    last_name: str
    nickname: str
    nationality: str
    age: int
    tactical_knowledge: int = 10
    leadership: int = 10
    mental_coaching: int = 10
    reputation: int = 10
    team_id: str | None = None

    def __post_init__(self) -> None:
        self.tactical_knowledge = clamp_skill(self.tactical_knowledge)
        self.leadership = clamp_skill(self.leadership)
        self.mental_coaching = clamp_skill(self.mental_coaching)
        self.reputation = clamp_skill(self.reputation)


# ---------- Team ----------


@dataclass
class PracticeSession:
    """One weekly practice slot. weekday is day % 7; target_map is for map study."""
    weekday: int
    focus: PracticeFocus
    target_map: str | None = None


@dataclass
class Team:
    """
    A five-a-side organisation. active_roster must hold exactly five players
    when a match is played; bench players are reserves.
    """
    team_id: str
    name: str
    tag: str
    region: str = "Europe"
    active_roster: list[str] = field(default_factory=list)
    bench: list[str] = field(default_factory=list)
    role_assignments: dict[Role, str] = field(default_factory=dict)
    coach_id: str | None = None
    # Playing style sliders, 0-100
    aggression: int = 50
    tactical_depth: int = 50
    awp_dependence: int = 50
    adaptability: int = 50
    chemistry: float = 50.0
    map_pool_strength: dict[str, int] = field(default_factory=dict)
    reputation: int = 50
    fanbase: int = 10_000
    world_ranking: int = 0
    ranking_points: float = 0.0
    practice_schedule: list[PracticeSession] = field(default_factory=list)

    @property
    def all_player_ids(self) -> list[str]:
        return list(self.active_roster) + list(self.bench)

    def role_of(self, player_id: str) -> Role | None:
        for role, pid in self.role_assignments.items():
            if pid == player_id:
                return role
        return None

    def practice_session(self, weekday: int) -> PracticeSession | None:
        for session in self.practice_schedule:
            if session.weekday == weekday:
                return session
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "team_id": self.team_id,
            "name": self.name,
            "tag": self.tag,
            "region": self.region,
            "active_roster": list(self.active_roster),
            "bench": list(self.bench),
            "roles": {r.value: pid for r, pid in self.role_assignments.items()},
            "coach_id": self.coach_id,
            "chemistry": round(self.chemistry, 1),
            "world_ranking": self.world_ranking,
            "ranking_points": round(self.ranking_points, 2),
        }


@dataclass
class MapInfo:
    name: str
    attacker_win_rate: float = 0.5
    times_played: int = 0


# ---------- Economy ----------


@dataclass
class ContractClause:
    clause_type: ClauseType
    value: float
    description: str = ""
    active: bool = True


@dataclass
class Contract:
    contract_id: str
    player_id: str
    team_id: str
    monthly_salary: float
    signing_bonus: float
    months: int
    start_day: int
    end_day: int
    status: ContractStatus = ContractStatus.ACTIVE
    # Clause bonuses paid out so far
    bonuses_paid: float = 0.0
    months_paid: int = 0
    clauses: list[ContractClause] = field(default_factory=list)

    @property
    def total_cost(self) -> float:
        return self.monthly_salary * self.months + self.signing_bonus

    @property
    def remaining_salary(self) -> float:
        """Salary still reserved on the team's committed ledger."""
        return self.monthly_salary * max(0, self.months - self.months_paid)

    def clause(self, clause_type: ClauseType) -> ContractClause | None:
        for c in self.clauses:
            if c.clause_type == clause_type and c.active:
                return c
        return None

    def days_remaining(self, day: int) -> int:
        return self.end_day - day


@dataclass
class Transaction:
    transaction_type: TransactionType
    amount: float
    day: int
    description: str
    player_id: str | None = None


@dataclass
class TeamBudget:
    """
    Ledger of one team. Signing reserves the full salary obligation in
    committed_salaries; monthly payroll moves it from committed to spent.
    """
    team_id: str
    total_budget: float = 0.0
    committed_salaries: float = 0.0
    spent_on_salaries: float = 0.0
    spent_on_bonuses: float = 0.0
    spent_on_transfers: float = 0.0
    sponsorship_income: float = 0.0
    prize_money: float = 0.0
    transfer_income: float = 0.0
    transactions: list[Transaction] = field(default_factory=list)

    @property
    def total_income(self) -> float:
        return self.sponsorship_income + self.prize_money + self.transfer_income

    @property
    def total_spent(self) -> float:
        return self.spent_on_salaries + self.spent_on_bonuses + self.spent_on_transfers

    @property
    def available(self) -> float:
        return self.total_budget + self.total_income - self.committed_salaries - self.total_spent


@dataclass
class TransferOffer:
    offer_id: str
    player_id: str
    bidding_team_id: str
    amount: float
    monthly_salary: float
    months: int
    day: int
    signing_bonus: float = 0.0
    status: OfferStatus = OfferStatus.PENDING

    @property
    def total_commitment(self) -> float:
        return self.amount + self.signing_bonus + self.monthly_salary * self.months


@dataclass
class TransferListing:
    player_id: str
    selling_team_id: str
    asking_price: float
    listed_day: int
    deadline_day: int
    status: ListingStatus = ListingStatus.ACTIVE
    offers: list[TransferOffer] = field(default_factory=list)

    def is_active(self, day: int) -> bool:
        return self.status == ListingStatus.ACTIVE and day < self.deadline_day

    def pending_offers(self) -> list[TransferOffer]:
        return [o for o in self.offers if o.status == OfferStatus.PENDING]


# ---------- Competition ----------


@dataclass
class Standing:
    team_id: str
    played: int = 0
    wins: int = 0
    losses: int = 0
    rounds_for: int = 0
    rounds_against: int = 0
    points: int = 0

    @property
    def round_difference(self) -> int:
        return self.rounds_for - self.rounds_against


@dataclass
class Fixture:
    """A scheduled match. match_id and scores are set once it has been played."""
    fixture_id: str
    day: int
    team_a_id: str
    team_b_id: str
    map_name: str
    tournament_id: str | None = None
    stage: TournamentStage = TournamentStage.GROUP_STAGE
    match_id: str | None = None
    winner_id: str | None = None
    score_a: int = 0
    score_b: int = 0
    forfeit: bool = False

    @property
    def played(self) -> bool:
        return self.winner_id is not None


@dataclass
class Tournament:
    tournament_id: str
    name: str
    tier: TournamentTier
    prize_pool: float
    team_ids: list[str] = field(default_factory=list)
    stage: TournamentStage = TournamentStage.NOT_STARTED
    round_spacing_days: int = 2
    season_number: int = 1
    standings: dict[str, Standing] = field(default_factory=dict)
    fixture_ids: list[str] = field(default_factory=list)
    champion_id: str | None = None
    runner_up_id: str | None = None
    semifinalist_ids: list[str] = field(default_factory=list)


@dataclass
class RankedTeam:
    team_id: str
    position: int
    points: float
    change_in_rank: int = 0


@dataclass
class RankingEntry:
    """Points earned by a team on a given day; decays with age."""
    team_id: str
    day: int
    points: float
    reason: str = ""


# ---------- Season ----------


def compute_season_phase(days_passed: int, season_length: int) -> SeasonPhase:
    """Phase as a pure function of progress through the season."""
    if season_length <= 0:
        return SeasonPhase.OFFSEASON
    progress = days_passed / season_length
    if progress < PRESEASON_END:
        return SeasonPhase.PRESEASON
    if progress < REGULAR_SEASON_END:
        return SeasonPhase.REGULAR_SEASON
    if progress < PLAYOFFS_END:
        return SeasonPhase.PLAYOFFS
    return SeasonPhase.OFFSEASON


@dataclass
class Season:
    season_number: int
    year: int
    length_days: int
    days_passed: int = 0
    # Absolute calendar day the season began on; contracts and listings use absolute days
    start_day: int = 0
    tournament_ids: list[str] = field(default_factory=list)
    # Absolute month index of the last payroll run
    last_payroll_month: int = -1
    completed: bool = False

    @property
    def phase(self) -> SeasonPhase:
        return compute_season_phase(self.days_passed, self.length_days)

    @property
    def current_day(self) -> int:
        return self.start_day + self.days_passed

    @property
    def progress(self) -> float:
        return min(1.0, self.days_passed / self.length_days) if self.length_days else 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "season_number": self.season_number,
            "year": self.year,
            "length_days": self.length_days,
            "days_passed": self.days_passed,
            "phase": self.phase.value,
            "progress": round(self.progress, 4),
            "completed": self.completed,
        }
