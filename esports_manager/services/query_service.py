"""
Read-only queries for display layers. Every method returns frozen pydantic
snapshots (or None when the entity does not exist), never store objects,
so callers cannot mutate game state through them.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..models import Contract, Player, TransferListing
from ..persistence.store import EntityStore
from .tournament_service import TournamentService


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class PlayerStats(Snapshot):
    player_id: str
    nickname: str
    display_name: str
    age: int
    nationality: str
    team_id: str | None
    preferred_role: str
    form: str
    morale: float
    career_phase: str
    injury_days_remaining: int
    experience: float
    matches_played: int
    matches_won: int
    career_kills: int
    career_deaths: int
    career_assists: int
    career_mvps: int
    career_kda: float
    average_rating: float
    market_value: float
    salary: float
    retired: bool
    skills: dict[str, int] = Field(default_factory=dict)
    map_proficiency: dict[str, int] = Field(default_factory=dict)


class TransactionSnapshot(Snapshot):
    transaction_type: str
    amount: float
    day: int
    description: str
    player_id: str | None = None


class BudgetSnapshot(Snapshot):
    team_id: str
    total_budget: float
    committed_salaries: float
    spent_on_salaries: float
    spent_on_bonuses: float
    spent_on_transfers: float
    total_income: float
    total_spent: float
    available: float
    transactions: tuple[TransactionSnapshot, ...] = ()


class OfferSnapshot(Snapshot):
    offer_id: str
    bidding_team_id: str
    amount: float
    monthly_salary: float
    months: int
    status: str


class ListingSnapshot(Snapshot):
    player_id: str
    selling_team_id: str
    asking_price: float
    listed_day: int
    deadline_day: int
    status: str
    offers: tuple[OfferSnapshot, ...] = ()


class ContractSnapshot(Snapshot):
    contract_id: str
    player_id: str
    team_id: str
    monthly_salary: float
    signing_bonus: float
    months: int
    months_paid: int
    start_day: int
    end_day: int
    status: str
    total_cost: float
    remaining_salary: float


class SeasonSnapshot(Snapshot):
    season_number: int
    year: int
    length_days: int
    days_passed: int
    current_day: int
    phase: str
    progress: float
    completed: bool
    tournament_ids: tuple[str, ...] = ()


class StandingSnapshot(Snapshot):
    team_id: str
    played: int
    wins: int
    losses: int
    rounds_for: int
    rounds_against: int
    round_difference: int
    points: int


class TournamentSnapshot(Snapshot):
    tournament_id: str
    name: str
    tier: str
    stage: str
    prize_pool: float
    champion_id: str | None
    runner_up_id: str | None
    standings: tuple[StandingSnapshot, ...] = ()


class RankingSnapshot(Snapshot):
    position: int
    team_id: str
    team_name: str
    points: float
    change_in_rank: int


# ---------- Converters ----------


def player_stats(player: Player) -> PlayerStats:
    return PlayerStats(
        player_id=player.player_id,
        nickname=player.nickname,
        display_name=player.display_name,
        age=player.age,
        nationality=player.nationality,
        team_id=player.team_id,
        preferred_role=player.preferred_role.value,
        form=player.form.value,
        morale=round(player.morale, 2),
        career_phase=player.career_phase.value,
        injury_days_remaining=player.injury_days_remaining,
        experience=round(player.experience, 2),
        matches_played=player.matches_played,
        matches_won=player.matches_won,
        career_kills=player.career_kills,
        career_deaths=player.career_deaths,
        career_assists=player.career_assists,
        career_mvps=player.career_mvps,
        career_kda=player.career_kda,
        average_rating=round(player.average_rating, 3),
        market_value=player.market_value,
        salary=player.salary,
        retired=player.retired,
        skills=player.skills.to_dict(),
        map_proficiency=dict(player.map_proficiency),
    )


def contract_snapshot(contract: Contract) -> ContractSnapshot:
    return ContractSnapshot(
        contract_id=contract.contract_id,
        player_id=contract.player_id,
        team_id=contract.team_id,
        monthly_salary=contract.monthly_salary,
        signing_bonus=contract.signing_bonus,
        months=contract.months,
        months_paid=contract.months_paid,
        start_day=contract.start_day,
        end_day=contract.end_day,
        status=contract.status.value,
        total_cost=contract.total_cost,
        remaining_salary=contract.remaining_salary,
    )


def listing_snapshot(listing: TransferListing) -> ListingSnapshot:
    return ListingSnapshot(
        player_id=listing.player_id,
        selling_team_id=listing.selling_team_id,
        asking_price=listing.asking_price,
        listed_day=listing.listed_day,
        deadline_day=listing.deadline_day,
        status=listing.status.value,
        offers=tuple(
            OfferSnapshot(
                offer_id=o.offer_id,
                bidding_team_id=o.bidding_team_id,
                amount=o.amount,
                monthly_salary=o.monthly_salary,
                months=o.months,
                status=o.status.value,
            )
            for o in listing.offers
        ),
    )


class QueryService:
    def __init__(self, store: EntityStore, tournaments: TournamentService) -> None:
        self.store = store
        self.tournaments = tournaments

    def get_player_stats(self, player_id: str) -> PlayerStats | None:
        player = self.store.find_player(player_id)
        return player_stats(player) if player is not None else None

    def get_team_budget(self, team_id: str) -> BudgetSnapshot | None:
        budget = self.store.budgets.get(team_id)
        if budget is None:
            return None
        return BudgetSnapshot(
            team_id=budget.team_id,
            total_budget=budget.total_budget,
            committed_salaries=budget.committed_salaries,
            spent_on_salaries=budget.spent_on_salaries,
            spent_on_bonuses=budget.spent_on_bonuses,
            spent_on_transfers=budget.spent_on_transfers,
            total_income=budget.total_income,
            total_spent=budget.total_spent,
            available=budget.available,
            transactions=tuple(
                TransactionSnapshot(
                    transaction_type=t.transaction_type.value,
                    amount=t.amount,
                    day=t.day,
                    description=t.description,
                    player_id=t.player_id,
                )
                for t in budget.transactions
            ),
        )

    def get_active_listings(self) -> list[ListingSnapshot]:
        day = self.store.current_day()
        listings = sorted(self.store.listings.values(), key=lambda x: (x.listed_day, x.player_id))
        return [listing_snapshot(x) for x in listings if x.is_active(day)]

    def get_player_contract(self, player_id: str) -> ContractSnapshot | None:
        contract = self.store.contracts.get(player_id)
        return contract_snapshot(contract) if contract is not None else None

    def get_team_contracts(self, team_id: str) -> list[ContractSnapshot] | None:
        if self.store.find_team(team_id) is None:
            return None
        contracts = sorted(self.store.contracts_for_team(team_id), key=lambda c: c.contract_id)
        return [contract_snapshot(c) for c in contracts]

    def get_current_season(self) -> SeasonSnapshot | None:
        season = self.store.season
        if season is None:
            return None
        return SeasonSnapshot(
            season_number=season.season_number,
            year=season.year,
            length_days=season.length_days,
            days_passed=season.days_passed,
            current_day=season.current_day,
            phase=season.phase.value,
            progress=round(season.progress, 4),
            completed=season.completed,
            tournament_ids=tuple(season.tournament_ids),
        )

    def get_tournament(self, tournament_id: str) -> TournamentSnapshot | None:
        tournament = self.store.tournaments.get(tournament_id)
        if tournament is None:
            return None
        return TournamentSnapshot(
            tournament_id=tournament.tournament_id,
            name=tournament.name,
            tier=tournament.tier.value,
            stage=tournament.stage.value,
            prize_pool=tournament.prize_pool,
            champion_id=tournament.champion_id,
            runner_up_id=tournament.runner_up_id,
            standings=tuple(
                StandingSnapshot(
                    team_id=s.team_id,
                    played=s.played,
                    wins=s.wins,
                    losses=s.losses,
                    rounds_for=s.rounds_for,
                    rounds_against=s.rounds_against,
                    round_difference=s.round_difference,
                    points=s.points,
                )
                for s in self.tournaments.sorted_standings(tournament)
            ),
        )

    def get_world_rankings(self) -> list[RankingSnapshot]:
        return [
            RankingSnapshot(
                position=r.position,
                team_id=r.team_id,
                team_name=self.store.teams[r.team_id].name if r.team_id in self.store.teams else r.team_id,
                points=r.points,
                change_in_rank=r.change_in_rank,
            )
            for r in self.store.rankings
        ]
