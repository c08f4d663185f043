"""
Configuration: tuning constants, default data lists and runtime settings.

Constants are module-level so engines can import them directly; runtime
settings (paths, seed, worker count) come from Settings, which can be built
from environment variables.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import InvalidConfigError

# ---------- Skill scale ----------

SKILL_MIN = 1
SKILL_MAX = 20

# Core attributes and their weight in the team skill factor.
CORE_SKILL_WEIGHTS: dict[str, float] = {
    "aim": 1.0,
    "gamesense": 1.0,
    "consistency": 1.0,
    "reaction_time": 1.0,
    "utility_usage": 1.0,
}

# ---------- Calendar ----------

DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30
SEASON_MONTHS = 9
DEFAULT_SEASON_LENGTH = SEASON_MONTHS * DAYS_PER_MONTH

# Season phase boundaries as fractions of the season.
PRESEASON_END = 0.2
REGULAR_SEASON_END = 0.7
PLAYOFFS_END = 0.9

# ---------- Player development ----------

MORALE_MIN = 0.0
MORALE_MAX = 100.0
MORALE_BASELINE = 75.0
MORALE_DAILY_DECAY = 0.1
MORALE_RECOVERY_BOOST = 10.0
MORALE_AWARD_BOOST = 15.0

EXPERIENCE_PER_RATING = 10.0
RISING_EXPERIENCE_LIMIT = 500.0
DECLINING_AGE = 30
VETERAN_AGE = 35
RETIREMENT_AGE = 38

DECLINE_DRIFT: dict[str, float] = {
    "reaction_time": 0.995,
    "consistency": 0.99,
}
INJURY_PENALTY_FACTOR = 0.8
INJURY_PENALTY_SKILLS = ("aim", "reaction_time")
DEFAULT_INJURY_DAYS = 14

IMPROVEMENT_RATING = 1.2
# Chance of a +1 step per skill after a standout match.
IMPROVEMENT_CHANCE: dict[str, float] = {
    "aim": 0.20,
    "reaction_time": 0.15,
    "consistency": 0.10,
}

# Practice: chance of a +1 step per session, scaled by work ethic
PRACTICE_GAIN_CHANCE = 0.02
PRACTICE_CHEMISTRY_GAIN = 0.5
TEAM_BUILDING_CHEMISTRY_GAIN = 1.0
REST_MORALE_BOOST = 2.0

# ---------- Teams ----------

CHEMISTRY_MIN = 0.0
CHEMISTRY_MAX = 100.0
CHEMISTRY_DAILY_GROWTH = 0.1
# Lost per newcomer in the active five
CHEMISTRY_ROSTER_CHANGE_PENALTY = 5.0
# Map-pool strength (0-100) moves after every map played
MAP_POOL_MIN = 0
MAP_POOL_MAX = 100
MAP_POOL_DEFAULT = 50
MAP_POOL_WIN_STEP = 2
MAP_POOL_LOSS_STEP = 1

# ---------- Youth ----------

# Prospects generated at each rollover: at least the season's retirees,
# and enough to keep the free-agent pool at FREE_AGENT_POOL_MIN
FREE_AGENT_POOL_MIN = 6
YOUTH_AGE_RANGE = (16, 19)
YOUTH_QUALITY_RANGE = (-3.0, 1.0)

# ---------- Match engine ----------

DEFAULT_MAX_ROUNDS = 24
DEFAULT_OVERTIME_ROUNDS = 6
DEFAULT_MAX_OVERTIME_PERIODS = 5
ROUND_PROB_FLOOR = 0.05
ROUND_PROB_CEIL = 0.95

# Team style effects on strength, as the swing between slider 0 and 100
CHEMISTRY_SWING = 0.08
TACTICAL_DEPTH_SWING = 0.04
AWP_DEPENDENCE_SWING = 0.08
AGGRESSION_SWING = 0.06
# Player map history: pseudo-maps at a 50% win rate
MAP_HISTORY_PRIOR = 5.0

RATING_BASE = 0.1
RATING_SCALE = 0.75
RATING_ASSIST_WEIGHT = 0.3
RATING_MVP_WEIGHT = 0.5

# ---------- Economy ----------

CONTRACT_TERMINATION_SALARY_MONTHS = 3
EXPIRY_WARNING_DAYS = 30
DEFAULT_LISTING_DAYS = 30
MARKET_VALUE_PER_SKILL = 250_000
MARKET_VALUE_FLOOR = 10_000
MARKET_VALUE_PRIME_AGE = 25
MARKET_VALUE_AGE_SIGMA = 6.0
MARKET_VALUE_TEAM_PREMIUM = 1.1
# Monthly sponsorship = base + per reputation point
SPONSORSHIP_BASE = 20_000.0
SPONSORSHIP_PER_REPUTATION = 400.0
# Monthly salary as a share of market value
INITIAL_SALARY_SHARE = 0.004
# Emergency signings when a roster falls below five
FREE_AGENT_SALARY_SHARE = 0.005
FREE_AGENT_MIN_SALARY = 2_000.0
FREE_AGENT_CONTRACT_MONTHS = 12
# Clause bonuses
PERFORMANCE_BONUS_RATING = 1.5
# Season tournaments
LEAGUE_PRIZE_POOL = 500_000.0
MAJOR_PRIZE_POOL = 1_000_000.0

# ---------- Default data lists ----------

DEFAULT_FIRST_NAMES = [
    "Alex", "Ben", "Chris", "Daniel", "Erik", "Felix", "Gabriel", "Henrik",
    "Ivan", "Jonas", "Kevin", "Lukas", "Marco", "Nikola", "Oscar", "Pavel",
    "Rasmus", "Sami", "Tomas", "Viktor",
]
DEFAULT_LAST_NAMES = [
    "Andersen", "Berg", "Costa", "Dubois", "Eriksson", "Fischer", "Garcia",
    "Horvat", "Ivanov", "Jensen", "Kowalski", "Larsen", "Moreau", "Novak",
    "Olsen", "Petrov", "Rossi", "Silva", "Tanaka", "Weber",
]
DEFAULT_NATIONALITIES = [
    "Denmark", "Sweden", "France", "Brazil", "Russia", "Ukraine", "Poland",
    "Finland", "Germany", "USA", "Canada", "Australia",
]
DEFAULT_NICKNAME_PREFIXES = [
    "Dark", "Shadow", "Fire", "Ice", "Storm", "Thunder", "Swift", "Silent",
    "Ghost", "Cyber", "Neo", "Hyper",
]
DEFAULT_NICKNAME_SUFFIXES = [
    "Blade", "Shot", "Hawk", "Wolf", "Viper", "Fox", "Ace", "Sniper", "Strike",
    "Storm", "Flash",
]
DEFAULT_NICKNAME_WORDS = [
    "Zeus", "Apex", "Blaze", "Echo", "Frost", "Glitch", "Havoc", "Jinx",
    "Karma", "Nova", "Onyx", "Pulse", "Rogue", "Spark",
]
DEFAULT_TEAM_NAMES = [
    "Northern Lights", "Iron Wolves", "Crimson Tide", "Neon Dragons",
    "Silver Falcons", "Polar Bears", "Solar Flare", "Night Owls",
]

# name -> attacker-side round win rate
DEFAULT_MAPS: dict[str, float] = {
    "Mirage": 0.48,
    "Inferno": 0.47,
    "Nuke": 0.44,
    "Ancient": 0.47,
    "Anubis": 0.50,
    "Vertigo": 0.49,
    "Dust2": 0.51,
}


# ---------- Paths ----------


def _default_save_path() -> Path:
    return Path(__file__).resolve().parent.parent / "data" / "esports_sim_save.json"


def get_save_path() -> Path:
    """Save file path from ESPORTS_SAVE_PATH, else the default under data/."""
    env = os.environ.get("ESPORTS_SAVE_PATH")
    if env:
        return Path(env)
    return _default_save_path()


# ---------- Runtime settings ----------


@dataclass
class Settings:
    """Runtime knobs for a game session."""
    seed: int | None = None
    season_length: int = DEFAULT_SEASON_LENGTH
    max_rounds: int = DEFAULT_MAX_ROUNDS
    overtime_rounds: int = DEFAULT_OVERTIME_ROUNDS
    max_overtime_periods: int = DEFAULT_MAX_OVERTIME_PERIODS
    match_workers: int = 1
    daily_event_chance: float = 0.05
    ranking_interval_days: int = DAYS_PER_WEEK
    starting_budget: float = 2_000_000.0
    num_teams: int = 8
    maps: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_MAPS))
    save_path: Path | None = None
    archive_path: Path | None = None
    # Directory for per-match replay files; None disables replays
    replay_dir: Path | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if self.season_length <= 0:
            raise InvalidConfigError(f"season_length must be positive, got {self.season_length}")
        if self.max_rounds <= 0:
            raise InvalidConfigError(f"max_rounds must be positive, got {self.max_rounds}")
        if self.overtime_rounds <= 0 or self.overtime_rounds % 2:
            raise InvalidConfigError(f"overtime_rounds must be positive and even, got {self.overtime_rounds}")
        if self.max_overtime_periods < 0:
            raise InvalidConfigError("max_overtime_periods cannot be negative")
        if self.match_workers < 1:
            raise InvalidConfigError("match_workers must be at least 1")
        if not 0.0 <= self.daily_event_chance <= 1.0:
            raise InvalidConfigError("daily_event_chance must be within [0, 1]")
        if self.num_teams < 2:
            raise InvalidConfigError("at least two teams are required")
        if not self.maps:
            raise InvalidConfigError("map pool cannot be empty")

    @classmethod
    def from_env(cls, **overrides) -> Settings:
        """Build settings from ESPORTS_* environment variables, then apply overrides."""
        values: dict = {}
        if os.environ.get("ESPORTS_SEED"):
            values["seed"] = int(os.environ["ESPORTS_SEED"])
        if os.environ.get("ESPORTS_MATCH_WORKERS"):
            values["match_workers"] = int(os.environ["ESPORTS_MATCH_WORKERS"])
        if os.environ.get("ESPORTS_SAVE_PATH"):
            values["save_path"] = Path(os.environ["ESPORTS_SAVE_PATH"])
        if os.environ.get("ESPORTS_ARCHIVE_PATH"):
            values["archive_path"] = Path(os.environ["ESPORTS_ARCHIVE_PATH"])
        if os.environ.get("ESPORTS_REPLAY_DIR"):
            values["replay_dir"] = Path(os.environ["ESPORTS_REPLAY_DIR"])
        values.update(overrides)
        return cls(**values)
