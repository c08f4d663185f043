"""
Economy Model: per-team credits and equipment across rounds.
Winners earn a flat reward and keep most of their gear; losers earn a growing
loss bonus. Every half starts from a fixed pistol (or overtime) bankroll.
Equipment value scales round odds through buy_factor.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class EconomyState:
    """Average credits and equipment value per player."""
    credits: int = 800
    equipment: int = 0
    loss_streak: int = 0

    def clamp(self, max_credits: int) -> None:
        self.credits = max(0, min(max_credits, self.credits))


class EconomyModel:
    """
    Buys before each round, settles after it, resets at half starts.
    """

    def __init__(
        self,
        pistol_credits: int = 800,
        overtime_credits: int = 10_000,
        full_buy_cost: int = 4_700,
        win_reward: int = 3_250,
        plant_bonus: int = 300,
        loss_bonus_base: int = 1_400,
        loss_bonus_step: int = 500,
        max_loss_bonus: int = 3_400,
        max_credits: int = 16_000,
        winner_retention: float = 0.7,
        loser_retention: float = 0.2,
        min_buy_factor: float = 0.75,
    ) -> None:
        self.pistol_credits = pistol_credits
        self.overtime_credits = overtime_credits
        self.full_buy_cost = full_buy_cost
        self.win_reward = win_reward
        self.plant_bonus = plant_bonus
        self.loss_bonus_base = loss_bonus_base
        self.loss_bonus_step = loss_bonus_step
        self.max_loss_bonus = max_loss_bonus
        self.max_credits = max_credits
        self.winner_retention = winner_retention
        self.loser_retention = loser_retention
        self.min_buy_factor = min_buy_factor

    def reset_for_half(self, a: EconomyState, b: EconomyState, overtime: bool = False) -> None:
        start = self.overtime_credits if overtime else self.pistol_credits
        for state in (a, b):
            state.credits = start
            state.equipment = 0
            state.loss_streak = 0

    def buy(self, state: EconomyState, pistol: bool = False) -> int:
        """
        Spend credits before a round. Pistol rounds spend everything; otherwise
        full buy when affordable, force buy with at least half the gap, else save.
        Returns credits spent.
        """
        if pistol:
            spent = min(state.credits, self.full_buy_cost)
        else:
            need = max(0, self.full_buy_cost - state.equipment)
            if state.credits >= need:
                spent = need
            elif state.credits >= need // 2:
                spent = state.credits
            else:
                spent = 0
        state.credits -= spent
        state.equipment = min(self.full_buy_cost, state.equipment + spent)
        return spent

    def buy_factor(self, state: EconomyState) -> float:
        """Strength multiplier in [min_buy_factor, 1] from equipment value."""
        ratio = state.equipment / self.full_buy_cost
        return self.min_buy_factor + (1.0 - self.min_buy_factor) * ratio

    def loss_bonus(self, loss_streak: int) -> int:
        return min(self.max_loss_bonus, self.loss_bonus_base + self.loss_bonus_step * max(0, loss_streak - 1))

    def update_after_round(
        self,
        winner: EconomyState,
        loser: EconomyState,
        loser_planted: bool = False,
    ) -> None:
        winner.credits += self.win_reward
        winner.loss_streak = 0
        winner.equipment = int(winner.equipment * self.winner_retention)
        loser.loss_streak += 1
        loser.credits += self.loss_bonus(loser.loss_streak)
        if loser_planted:
            loser.credits += self.plant_bonus
        loser.equipment = int(loser.equipment * self.loser_retention)
        winner.clamp(self.max_credits)
        loser.clamp(self.max_credits)
