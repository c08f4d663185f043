"""
Round Simulator: uses the Probability Engine + seeded RNG to sample one round.
Decides the winner, how the round ended and per-player kills, deaths,
assists, damage, MVP and bomb plant/defuse.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..models import Player
from .rng import SeededRNG
from .schemas import PlayerRoundStat, RoundEndReason, Side

# Chance the bomb was planted, given which side won
PLANT_CHANCE_ATTACK_WIN = 0.65
PLANT_CHANCE_DEFENSE_WIN = 0.35
TIME_EXPIRED_CHANCE = 0.2
# Chance each player of the losing side dies, by end reason
LOSER_DEATH_CHANCE = {
    RoundEndReason.ELIMINATION: 1.0,
    RoundEndReason.BOMB_DETONATED: 0.6,
    RoundEndReason.BOMB_DEFUSED: 0.7,
    RoundEndReason.TIME_EXPIRED: 0.5,
}
WINNER_DEATH_CHANCE = 0.25
ASSIST_CHANCE = 0.35
KILL_DAMAGE = 100


def kill_weight(player: Player) -> float:
    """Relative chance of landing a kill: aim first, then entry and rifle skill."""
    s = player.skills
    return s.aim + 0.5 * s.entry_fragging + 0.5 * max(s.rifle, s.awp) + 0.25 * s.reaction_time


@dataclass
class RoundSide:
    """One team's players for a round."""
    team_id: str
    side: Side
    players: Sequence[Player]


@dataclass
class RoundOutcome:
    winner: RoundSide
    loser: RoundSide
    end_reason: RoundEndReason
    planted: bool
    player_stats: list[PlayerRoundStat]


def sample_end_reason(rng: SeededRNG, attack_won: bool) -> tuple[RoundEndReason, bool]:
    """Returns (end_reason, bomb_planted)."""
    if attack_won:
        planted = rng.chance(PLANT_CHANCE_ATTACK_WIN)
        return (RoundEndReason.BOMB_DETONATED if planted else RoundEndReason.ELIMINATION), planted
    planted = rng.chance(PLANT_CHANCE_DEFENSE_WIN)
    if planted:
        return RoundEndReason.BOMB_DEFUSED, True
    if rng.chance(TIME_EXPIRED_CHANCE):
        return RoundEndReason.TIME_EXPIRED, False
    return RoundEndReason.ELIMINATION, False


class RoundSimulator:
    """
    Samples one round given the attacking side's win probability.
    Caller (orchestrator) updates score, economy and momentum.
    """

    def __init__(self, rng: SeededRNG) -> None:
        self.rng = rng

    def _deaths(self, side: RoundSide, chance: float, keep_one_alive: bool) -> list[bool]:
        dead = [self.rng.chance(chance) for _ in side.players]
        if keep_one_alive and all(dead):
            dead[self.rng.randint(0, len(dead) - 1)] = False
        return dead

    def _attribute_kills(
        self,
        killers: RoundSide,
        victims_dead: list[bool],
        kills: list[int],
        assists: list[int],
        damage: list[int],
    ) -> None:
        """Credit every death on the other side to a killer, maybe with an assist."""
        weights = [kill_weight(p) for p in killers.players]
        n = len(killers.players)
        for is_dead in victims_dead:
            if not is_dead:
                continue
            killer = self.rng.choices(range(n), weights=weights, k=1)[0]
            kills[killer] += 1
            damage[killer] += KILL_DAMAGE
            if n > 1 and self.rng.chance(ASSIST_CHANCE):
                helper = self.rng.choice([i for i in range(n) if i != killer])
                assists[helper] += 1
                damage[helper] += self.rng.randint(20, 60)

    def simulate_round(self, attack: RoundSide, defense: RoundSide, p_attack_wins: float) -> RoundOutcome:
        attack_won = self.rng.random() < p_attack_wins
        winner, loser = (attack, defense) if attack_won else (defense, attack)
        end_reason, planted = sample_end_reason(self.rng, attack_won)

        loser_dead = self._deaths(loser, LOSER_DEATH_CHANCE[end_reason], keep_one_alive=False)
        winner_dead = self._deaths(winner, WINNER_DEATH_CHANCE, keep_one_alive=True)

        nw, nl = len(winner.players), len(loser.players)
        w_kills, w_assists = [0] * nw, [0] * nw
        l_kills, l_assists = [0] * nl, [0] * nl
        w_damage = [self.rng.randint(0, 30) for _ in range(nw)]
        l_damage = [self.rng.randint(0, 30) for _ in range(nl)]
        self._attribute_kills(winner, loser_dead, w_kills, w_assists, w_damage)
        self._attribute_kills(loser, winner_dead, l_kills, l_assists, l_damage)

        # Bomb: any attacker may plant; only a surviving defender can defuse
        planter_id = defuser_id = None
        if planted:
            planter_id = self.rng.choice(list(attack.players)).player_id
            if end_reason == RoundEndReason.BOMB_DEFUSED:
                alive = [p for p, d in zip(winner.players, winner_dead) if not d]
                defuser_id = self.rng.choice(alive).player_id

        # MVP: top fragger of the winning side, else the bomb hero, else anyone alive
        top = max(w_kills)
        if top > 0:
            mvp_idx = self.rng.choice([i for i, k in enumerate(w_kills) if k == top])
            mvp_id = winner.players[mvp_idx].player_id
        elif defuser_id is not None:
            mvp_id = defuser_id
        elif planter_id is not None and winner is attack:
            mvp_id = planter_id
        else:
            alive = [p for p, d in zip(winner.players, winner_dead) if not d]
            mvp_id = self.rng.choice(alive).player_id

        stats: list[PlayerRoundStat] = []
        for players, kills, assists, damage, dead, side in (
            (winner.players, w_kills, w_assists, w_damage, winner_dead, winner),
            (loser.players, l_kills, l_assists, l_damage, loser_dead, loser),
        ):
            for i, p in enumerate(players):
                stats.append(
                    PlayerRoundStat(
                        player_id=p.player_id,
                        team_id=side.team_id,
                        kills=kills[i],
                        deaths=1 if dead[i] else 0,
                        assists=assists[i],
                        damage=damage[i],
                        mvp=p.player_id == mvp_id,
                        planted=p.player_id == planter_id,
                        defused=p.player_id == defuser_id,
                    )
                )
        return RoundOutcome(
            winner=winner,
            loser=loser,
            end_reason=end_reason,
            planted=planted,
            player_stats=stats,
        )
