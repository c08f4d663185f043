"""
Player development: match-driven progression, daily decay, injuries and
career phases.

Form and career phase are enums with explicit transition tables. Every skill
change goes through SkillSet.set, which clamps onto the skill scale.
"""
from __future__ import annotations

import logging

from ..config import (
    CHEMISTRY_DAILY_GROWTH,
    CHEMISTRY_MAX,
    CHEMISTRY_MIN,
    DAYS_PER_WEEK,
    DECLINE_DRIFT,
    DECLINING_AGE,
    DEFAULT_INJURY_DAYS,
    EXPERIENCE_PER_RATING,
    IMPROVEMENT_CHANCE,
    IMPROVEMENT_RATING,
    INJURY_PENALTY_FACTOR,
    INJURY_PENALTY_SKILLS,
    MAP_POOL_DEFAULT,
    MAP_POOL_LOSS_STEP,
    MAP_POOL_MAX,
    MAP_POOL_MIN,
    MAP_POOL_WIN_STEP,
    MORALE_AWARD_BOOST,
    MORALE_BASELINE,
    MORALE_DAILY_DECAY,
    MORALE_MAX,
    MORALE_MIN,
    MORALE_RECOVERY_BOOST,
    PRACTICE_CHEMISTRY_GAIN,
    PRACTICE_GAIN_CHANCE,
    REST_MORALE_BOOST,
    RETIREMENT_AGE,
    RISING_EXPERIENCE_LIMIT,
    SKILL_MAX,
    SKILL_MIN,
    TEAM_BUILDING_CHEMISTRY_GAIN,
    VETERAN_AGE,
)
from ..errors import ValidationError
from ..models import (
    CareerEvent,
    CareerEventType,
    CareerPhase,
    FormTier,
    MapRecord,
    Player,
    PracticeFocus,
    PracticeSession,
    Team,
    clamp_skill,
)
from ..simulation.rng import SeededRNG
from ..simulation.schemas import PlayerPerformance

logger = logging.getLogger(__name__)

# ---------- Transition tables ----------

# Checked top-down: first threshold the rating exceeds wins
FORM_THRESHOLDS: tuple[tuple[float, FormTier], ...] = (
    (1.5, FormTier.EXCEPTIONAL),
    (1.2, FormTier.EXCELLENT),
    (1.0, FormTier.GOOD),
    (0.8, FormTier.AVERAGE),
    (0.5, FormTier.POOR),
)

# Daily drift toward average: tier -> (next tier, probability)
FORM_DECAY: dict[FormTier, tuple[FormTier, float]] = {
    FormTier.EXCEPTIONAL: (FormTier.EXCELLENT, 0.10),
    FormTier.EXCELLENT: (FormTier.GOOD, 0.05),
    FormTier.GOOD: (FormTier.AVERAGE, 0.02),
    FormTier.POOR: (FormTier.AVERAGE, 0.10),
    FormTier.TERRIBLE: (FormTier.POOR, 0.10),
}

DRIFTING_PHASES = (CareerPhase.DECLINING, CareerPhase.VETERAN)

# Individual practice: focus -> trained skill
FOCUS_SKILLS: dict[PracticeFocus, str] = {
    PracticeFocus.AIM_TRAINING: "aim",
    PracticeFocus.UTILITY_LINEUPS: "utility_usage",
    PracticeFocus.VOD_REVIEW: "gamesense",
    PracticeFocus.SCRIMMAGE: "consistency",
}

# Team practice: focus -> chemistry gain
TEAM_FOCUS: dict[PracticeFocus, float] = {
    PracticeFocus.STRAT_PRACTICE: PRACTICE_CHEMISTRY_GAIN,
    PracticeFocus.TEAM_BUILDING: TEAM_BUILDING_CHEMISTRY_GAIN,
}


def form_from_rating(rating: float) -> FormTier:
    for threshold, tier in FORM_THRESHOLDS:
        if rating > threshold:
            return tier
    return FormTier.TERRIBLE


def compute_career_phase(age: int, experience: float, retired: bool = False) -> CareerPhase:
    """
    Age overrides are checked oldest first, so a 36-year-old is a veteran
    rather than declining; otherwise experience separates rising from peak.
    """
    if retired:
        return CareerPhase.RETIRED
    if age > VETERAN_AGE:
        return CareerPhase.VETERAN
    if age > DECLINING_AGE:
        return CareerPhase.DECLINING
    if experience < RISING_EXPERIENCE_LIMIT:
        return CareerPhase.RISING
    return CareerPhase.PEAK


def stochastic_round(rng: SeededRNG, value: float) -> int:
    """Round down or up with probability equal to the fractional part."""
    base = int(value)
    return base + (1 if rng.random() < value - base else 0)


def clamp_morale(value: float) -> float:
    return max(MORALE_MIN, min(MORALE_MAX, value))


def clamp_chemistry(value: float) -> float:
    return max(CHEMISTRY_MIN, min(CHEMISTRY_MAX, value))


class DevelopmentService:
    """
    Applies match results and the passage of time to players.
    The RNG is injected so the whole career path replays from a seed.
    """

    def __init__(self, rng: SeededRNG) -> None:
        self.rng = rng

    # ---------- Events ----------

    def _event(
        self,
        player: Player,
        event_type: CareerEventType,
        description: str,
        day: int,
        season_number: int,
    ) -> CareerEvent:
        event = CareerEvent(event_type=event_type, day=day, description=description, season_number=season_number)
        player.career_events.append(event)
        return event

    # ---------- Match-driven ----------

    def record_match_performance(
        self,
        player: Player,
        performance: PlayerPerformance,
        won: bool,
        map_name: str,
    ) -> None:
        """Fold one match into career stats, form, experience and skills."""
        rating = performance.rating
        player.matches_played += 1
        if won:
            player.matches_won += 1
        player.average_rating += (rating - player.average_rating) / player.matches_played
        player.career_kills += performance.kills
        player.career_deaths += performance.deaths
        player.career_assists += performance.assists
        player.career_mvps += performance.mvps

        record = player.map_stats.setdefault(map_name, MapRecord())
        record.played += 1
        record.rating_total += rating
        if won:
            record.won += 1

        player.form = form_from_rating(rating)
        player.experience += rating * EXPERIENCE_PER_RATING
        player.career_phase = compute_career_phase(player.age, player.experience, player.retired)

        if rating > IMPROVEMENT_RATING:
            for skill, chance in IMPROVEMENT_CHANCE.items():
                if self.rng.chance(chance):
                    player.skills.set(skill, player.skills.get(skill) + 1)

    # ---------- Daily ----------

    def advance_one_day(self, player: Player, day: int = 0, season_number: int = 1) -> None:
        """Injury countdown, morale and form decay, career phase and age drift."""
        if player.retired:
            return
        if player.injury_days_remaining > 0:
            player.injury_days_remaining -= 1
            if player.injury_days_remaining == 0:
                self._recover(player, day, season_number)

        if player.morale > MORALE_BASELINE:
            player.morale = max(MORALE_BASELINE, player.morale - MORALE_DAILY_DECAY)
        elif player.morale < MORALE_BASELINE:
            player.morale = min(MORALE_BASELINE, player.morale + MORALE_DAILY_DECAY)

        decay = FORM_DECAY.get(player.form)
        if decay is not None:
            next_tier, probability = decay
            if self.rng.chance(probability):
                player.form = next_tier

        player.career_phase = compute_career_phase(player.age, player.experience)
        if player.career_phase in DRIFTING_PHASES:
            for skill, factor in DECLINE_DRIFT.items():
                player.skills.set(skill, stochastic_round(self.rng, player.skills.get(skill) * factor))

    # ---------- Teams ----------

    def record_map_result(self, team: Team, map_name: str, won: bool) -> None:
        """Wins sharpen a map in the team's pool, losses wear it down."""
        current = team.map_pool_strength.get(map_name, MAP_POOL_DEFAULT)
        step = MAP_POOL_WIN_STEP if won else -MAP_POOL_LOSS_STEP
        team.map_pool_strength[map_name] = max(MAP_POOL_MIN, min(MAP_POOL_MAX, current + step))

    def grow_chemistry(self, team: Team, amount: float = CHEMISTRY_DAILY_GROWTH) -> None:
        team.chemistry = clamp_chemistry(team.chemistry + amount)

    def set_practice_schedule(self, team: Team, sessions: list[PracticeSession]) -> None:
        """Replace the weekly schedule. One session per weekday at most."""
        weekdays = [s.weekday for s in sessions]
        if any(not 0 <= d < DAYS_PER_WEEK for d in weekdays):
            raise ValidationError(f"practice weekday must be in 0..{DAYS_PER_WEEK - 1}")
        if len(set(weekdays)) != len(weekdays):
            raise ValidationError("at most one practice session per weekday")
        for session in sessions:
            if session.focus == PracticeFocus.MAP_STUDY and not session.target_map:
                raise ValidationError("map study needs a target map")
        team.practice_schedule = sorted(sessions, key=lambda s: s.weekday)
        logger.info("%s practice schedule set (%d sessions)", team.tag, len(sessions))

    def run_practice(self, team: Team, players: list[Player], day: int) -> PracticeSession | None:
        """
        Run the session scheduled for this weekday, if any. Individual gains
        are +1 with a small chance scaled by work ethic; team-wide sessions
        build chemistry; rest days lift morale.
        """
        session = team.practice_session(day % DAYS_PER_WEEK)
        if session is None:
            return None
        if session.focus in TEAM_FOCUS:
            self.grow_chemistry(team, TEAM_FOCUS[session.focus])
            return session
        fit = [p for p in players if not p.retired and p.injury_days_remaining == 0]
        for player in fit:
            if session.focus == PracticeFocus.REST:
                self.boost_morale(player, REST_MORALE_BOOST)
                continue
            chance = PRACTICE_GAIN_CHANCE * (0.5 + player.skills.get("work_ethic") / SKILL_MAX)
            if not self.rng.chance(chance):
                continue
            if session.focus == PracticeFocus.MAP_STUDY:
                current = player.map_proficiency.get(session.target_map, SKILL_MIN)
                player.map_proficiency[session.target_map] = clamp_skill(current + 1)
            else:
                skill = FOCUS_SKILLS[session.focus]
                player.skills.set(skill, player.skills.get(skill) + 1)
        return session

    # ---------- Injuries ----------

    def cause_injury(
        self,
        player: Player,
        days: int = DEFAULT_INJURY_DAYS,
        day: int = 0,
        season_number: int = 1,
        reason: str = "",
    ) -> None:
        """
        Start (or extend) an injury. The skill penalty is applied once and
        restored on recovery.
        """
        if days <= 0 or player.retired:
            return
        if player.injury_days_remaining > 0:
            player.injury_days_remaining = max(player.injury_days_remaining, days)
            return
        player.injury_days_remaining = days
        penalty: dict[str, int] = {}
        for skill in INJURY_PENALTY_SKILLS:
            before = player.skills.get(skill)
            after = player.skills.set(skill, before * INJURY_PENALTY_FACTOR)
            penalty[skill] = before - after
        player.injury_penalty = penalty
        text = f"Injured for {days} days"
        if reason:
            text += f" ({reason})"
        self._event(player, CareerEventType.INJURY, text, day, season_number)
        logger.info("%s injured for %d days", player.nickname, days)

    def _recover(self, player: Player, day: int, season_number: int) -> None:
        for skill, amount in player.injury_penalty.items():
            player.skills.set(skill, player.skills.get(skill) + amount)
        player.injury_penalty = {}
        player.morale = clamp_morale(player.morale + MORALE_RECOVERY_BOOST)
        self._event(player, CareerEventType.RECOVERY, "Recovered from injury", day, season_number)
        logger.info("%s recovered from injury", player.nickname)

    # ---------- Milestones ----------

    def award_achievement(
        self,
        player: Player,
        description: str,
        day: int = 0,
        season_number: int = 1,
        event_type: CareerEventType = CareerEventType.AWARD,
    ) -> None:
        player.morale = clamp_morale(player.morale + MORALE_AWARD_BOOST)
        self._event(player, event_type, description, day, season_number)

    def boost_morale(self, player: Player, amount: float) -> None:
        player.morale = clamp_morale(player.morale + amount)

    def record_transfer(
        self,
        player: Player,
        from_team_id: str | None,
        to_team_id: str,
        day: int = 0,
        season_number: int = 1,
    ) -> None:
        source = from_team_id or "free agency"
        self._event(player, CareerEventType.TRANSFER, f"Transferred from {source} to {to_team_id}", day, season_number)

    def record_roster_move(self, player: Player, promoted: bool, day: int = 0, season_number: int = 1) -> None:
        if promoted:
            self._event(player, CareerEventType.PROMOTION, "Promoted to the active roster", day, season_number)
        else:
            self._event(player, CareerEventType.DEMOTION, "Moved to the bench", day, season_number)

    # ---------- Aging & retirement ----------

    def age_player(self, player: Player) -> None:
        """One year older; called at season rollover."""
        if player.retired:
            return
        player.age += 1
        player.career_phase = compute_career_phase(player.age, player.experience)

    def should_retire(self, player: Player) -> bool:
        """Veterans retire with a chance that grows each year past the veteran age."""
        if player.retired or player.age <= VETERAN_AGE:
            return False
        if player.age >= RETIREMENT_AGE:
            return True
        return self.rng.chance(0.25 * (player.age - VETERAN_AGE))

    def retire_player(self, player: Player, day: int = 0, season_number: int = 1) -> None:
        if player.retired:
            return
        player.retired = True
        player.career_phase = CareerPhase.RETIRED
        self._event(player, CareerEventType.RETIREMENT, f"Retired at age {player.age}", day, season_number)
        logger.info("%s retired at age %d", player.nickname, player.age)
