"""
Probability Engine: computes the attacking side's round-win probability.
Inputs: team strengths (skill factor × map advantage), map side bias,
economy, momentum. Output: RoundProbs for sampling and diagnostics.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from ..config import (
    AGGRESSION_SWING,
    AWP_DEPENDENCE_SWING,
    CHEMISTRY_SWING,
    CORE_SKILL_WEIGHTS,
    MAP_HISTORY_PRIOR,
    ROUND_PROB_CEIL,
    ROUND_PROB_FLOOR,
    SKILL_MAX,
    SKILL_MIN,
    TACTICAL_DEPTH_SWING,
)
from ..models import FormTier, Role
from .state_tracker import MomentumState

if TYPE_CHECKING:
    from ..models import Coach, Player, Team

FORM_MULTIPLIER: dict[FormTier, float] = {
    FormTier.EXCEPTIONAL: 1.06,
    FormTier.EXCELLENT: 1.03,
    FormTier.GOOD: 1.01,
    FormTier.AVERAGE: 1.0,
    FormTier.POOR: 0.97,
    FormTier.TERRIBLE: 0.94,
}


def _normalized(value: float) -> float:
    """Skill value mapped to [0, 1]."""
    return (value - SKILL_MIN) / (SKILL_MAX - SKILL_MIN)


def team_skill_factor(
    players: Sequence[Player],
    coach: Coach | None = None,
    weights: dict[str, float] | None = None,
    team: Team | None = None,
) -> float:
    """
    Mean over the roster of a weighted combination of core attributes,
    scaled by each player's form, plus a small coaching bonus. With a team,
    its chemistry, tactical depth and reliance on its AWPer also apply.
    """
    if not players:
        return 0.0
    weights = weights or CORE_SKILL_WEIGHTS
    total = 0.0
    for p in players:
        total += p.skills.weighted_average(weights) * FORM_MULTIPLIER.get(p.form, 1.0)
    factor = total / len(players)
    if coach is not None:
        factor *= 1.0 + 0.04 * (_normalized(coach.tactical_knowledge) - 0.5)
    if team is not None:
        factor *= team_style_factor(team, players)
    return factor


def team_style_factor(team: Team, players: Sequence[Player]) -> float:
    """
    1.0 for a team at 50 chemistry and 50 tactical depth. AWP dependence
    amplifies the AWPer's own quality: a strong AWPer helps, a weak one hurts.
    """
    factor = 1.0 + CHEMISTRY_SWING * (team.chemistry / 100.0 - 0.5)
    factor *= 1.0 + TACTICAL_DEPTH_SWING * (team.tactical_depth / 100.0 - 0.5)
    awper_id = team.role_assignments.get(Role.AWPER)
    awper = next((p for p in players if p.player_id == awper_id), None)
    if awper is not None:
        factor *= 1.0 + AWP_DEPENDENCE_SWING * (team.awp_dependence / 100.0) * (_normalized(awper.skills.awp) - 0.5)
    return factor


def map_history(players: Sequence[Player], map_name: str) -> float:
    """
    Mean win rate of the players on the map, shrunk toward 0.5 by
    MAP_HISTORY_PRIOR pseudo-maps so a single result moves it little.
    """
    if not players:
        return 0.5
    total = 0.0
    for p in players:
        record = p.map_stats.get(map_name)
        played, won = (record.played, record.won) if record else (0, 0)
        total += (won + 0.5 * MAP_HISTORY_PRIOR) / (played + MAP_HISTORY_PRIOR)
    return total / len(players)


def map_advantage(team: Team, players: Sequence[Player], map_name: str) -> float:
    """
    Multiplier around 1.0 from the team's map-pool strength (0-100), the
    players' average proficiency on the map and their results there. Lies in
    [0.8, 1.2] at adaptability 50; adaptable teams are pulled toward 1.0.
    """
    pool = team.map_pool_strength.get(map_name, 50) / 100.0
    if players:
        prof = sum(_normalized(p.map_skill(map_name)) for p in players) / len(players)
    else:
        prof = 0.5
    raw = 0.8 + 0.15 * pool + 0.15 * prof + 0.1 * map_history(players, map_name)
    sensitivity = 1.5 - team.adaptability / 100.0
    return 1.0 + (raw - 1.0) * sensitivity


@dataclass
class TeamStrength:
    """Pre-computed per-map strength of one team."""
    team_id: str
    skill: float
    map_factor: float
    # Team aggression slider on 0..1; lifts attack rounds, costs defense rounds
    aggression: float = 0.5

    @property
    def value(self) -> float:
        return self.skill * self.map_factor


@dataclass
class RoundContext:
    """Current map state for probability computation."""
    a_attacks: bool
    score_a: int
    score_b: int
    momentum: MomentumState
    buy_factor_a: float = 1.0
    buy_factor_b: float = 1.0
    attacker_win_rate: float = 0.5


@dataclass
class RoundProbs:
    """Structured probabilities for diagnostics and sampling."""
    p_attack_wins: float
    p_a_wins: float
    base: float


class ProbabilityEngine:
    """
    Composables: skill ratio, aggression, side bias, economy, momentum.
    """

    def __init__(
        self,
        momentum_alpha: float = 0.04,
        side_bias_scale: float = 1.0,
        use_economy: bool = True,
    ) -> None:
        self.momentum_alpha = momentum_alpha
        self.side_bias_scale = side_bias_scale
        self.use_economy = use_economy

    @staticmethod
    def _clamp(p: float) -> float:
        return max(ROUND_PROB_FLOOR, min(ROUND_PROB_CEIL, p))

    def compute(self, strength_a: TeamStrength, strength_b: TeamStrength, ctx: RoundContext) -> RoundProbs:
        attacker, defender = (strength_a, strength_b) if ctx.a_attacks else (strength_b, strength_a)
        att_value = attacker.value
        def_value = defender.value
        att_value *= 1.0 + AGGRESSION_SWING * (attacker.aggression - 0.5)
        def_value *= 1.0 - AGGRESSION_SWING * (defender.aggression - 0.5)
        if self.use_economy:
            buy_att, buy_def = (
                (ctx.buy_factor_a, ctx.buy_factor_b) if ctx.a_attacks else (ctx.buy_factor_b, ctx.buy_factor_a)
            )
            att_value *= buy_att
            def_value *= buy_def
        if att_value + def_value <= 0:
            base = 0.5
        else:
            base = att_value / (att_value + def_value)

        # Side bias shifts the odds, so a 0.5 map leaves base untouched
        rate = min(0.95, max(0.05, ctx.attacker_win_rate))
        bias = (rate / (1.0 - rate)) ** self.side_bias_scale
        base = self._clamp(base)
        odds = base / (1.0 - base) * bias
        p_attack = odds / (1.0 + odds)

        mom_a = ctx.momentum.momentum_score_a()
        mom_attacker = mom_a if ctx.a_attacks else -mom_a
        p_attack = self._clamp(p_attack + self.momentum_alpha * mom_attacker)

        p_a = p_attack if ctx.a_attacks else 1.0 - p_attack
        return RoundProbs(p_attack_wins=p_attack, p_a_wins=p_a, base=base)
