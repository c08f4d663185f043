"""
Transfer market: listings, offers, acceptance and market value.

Accepting an offer touches two budgets, two rosters, the player's contract
and the listing. Everything is validated first, the touched entities are
snapshotted, and any failure part-way restores the snapshot before the error
propagates.
"""
from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass

from ..config import (
    CORE_SKILL_WEIGHTS,
    DEFAULT_LISTING_DAYS,
    MARKET_VALUE_AGE_SIGMA,
    MARKET_VALUE_FLOOR,
    MARKET_VALUE_PER_SKILL,
    MARKET_VALUE_PRIME_AGE,
    MARKET_VALUE_TEAM_PREMIUM,
)
from ..errors import (
    InsufficientBudgetError,
    ListingExistsError,
    ListingNotActiveError,
    OfferNotFoundError,
    ValidationError,
)
from ..models import (
    Contract,
    ListingStatus,
    OfferStatus,
    Player,
    Team,
    TeamBudget,
    TransferListing,
    TransferOffer,
)
from ..persistence.store import EntityStore
from . import roster
from .contract_service import ContractService
from .development_service import DevelopmentService

logger = logging.getLogger(__name__)


def estimate_market_value(
    player: Player,
    prime_age: int = MARKET_VALUE_PRIME_AGE,
    on_team: bool | None = None,
) -> float:
    """
    Mean core skill × scale × a bell-shaped age factor peaking at prime_age,
    with a premium for players under contract with a team. Never below the floor.
    """
    base_skill = player.skills.weighted_average(CORE_SKILL_WEIGHTS)
    age_factor = math.exp(-((player.age - prime_age) ** 2) / (2 * MARKET_VALUE_AGE_SIGMA ** 2))
    value = base_skill * MARKET_VALUE_PER_SKILL * age_factor
    if on_team is None:
        on_team = player.team_id is not None
    if on_team:
        value *= MARKET_VALUE_TEAM_PREMIUM
    return max(float(MARKET_VALUE_FLOOR), round(value, 2))


@dataclass
class _Snapshot:
    """Deep copies of everything accept_offer may touch."""
    player: Player
    buyer: Team
    seller: Team
    buyer_budget: TeamBudget
    seller_budget: TeamBudget
    listing: TransferListing
    contract: Contract | None
    history_len: int
    listing_history_len: int


class TransferService:
    """
    Domain logic for the transfer market. Contracts and budgets are delegated
    to the ContractService.
    """

    def __init__(
        self,
        store: EntityStore,
        contracts: ContractService,
        development: DevelopmentService,
    ) -> None:
        self.store = store
        self.contracts = contracts
        self.development = development

    # ---------- Listings ----------

    def get_active_listings(self, day: int | None = None) -> list[TransferListing]:
        listings = sorted(self.store.listings.values(), key=lambda x: (x.listed_day, x.player_id))
        if day is None:
            return [x for x in listings if x.status == ListingStatus.ACTIVE]
        return [x for x in listings if x.is_active(day)]

    def list_player(
        self,
        player_id: str,
        team_id: str,
        asking_price: float,
        day: int = 0,
        listing_days: int = DEFAULT_LISTING_DAYS,
    ) -> TransferListing:
        if asking_price < 0:
            raise ValidationError("Asking price cannot be negative")
        if listing_days <= 0:
            raise ValidationError("Listing must last at least one day")
        team = self.store.get_team(team_id)
        player = self.store.get_player(player_id)
        if player_id not in team.all_player_ids:
            raise ValidationError(f"{player.nickname} does not play for {team.name}")
        if player_id in self.store.listings:
            raise ListingExistsError(f"{player.nickname} is already listed")
        listing = TransferListing(
            player_id=player_id,
            selling_team_id=team_id,
            asking_price=asking_price,
            listed_day=day,
            deadline_day=day + listing_days,
        )
        self.store.listings[player_id] = listing
        logger.info("%s listed %s for %s", team.name, player.nickname, f"{asking_price:,.0f}")
        return listing

    def _archive(self, listing: TransferListing, status: ListingStatus, offer_status: OfferStatus) -> None:
        listing.status = status
        for offer in listing.pending_offers():
            offer.status = offer_status
        self.store.listings.pop(listing.player_id, None)
        self.store.listing_history.append(listing)

    def remove_listing(self, player_id: str) -> TransferListing:
        listing = self.store.listings.get(player_id)
        if listing is None:
            raise ListingNotActiveError(f"Player {player_id} is not listed")
        self._archive(listing, ListingStatus.WITHDRAWN, OfferStatus.WITHDRAWN)
        return listing

    def check_expired_listings(self, day: int) -> list[TransferListing]:
        expired = [
            x for x in self.store.listings.values() if x.status == ListingStatus.ACTIVE and day >= x.deadline_day
        ]
        for listing in sorted(expired, key=lambda x: x.player_id):
            self._archive(listing, ListingStatus.EXPIRED, OfferStatus.REJECTED)
            logger.info("Listing for player %s expired", listing.player_id)
        return expired

    def _active_listing(self, player_id: str, day: int) -> TransferListing:
        listing = self.store.listings.get(player_id)
        if listing is None or not listing.is_active(day):
            raise ListingNotActiveError(f"No active listing for player {player_id}")
        return listing

    # ---------- Offers ----------

    def place_offer(
        self,
        player_id: str,
        bidding_team_id: str,
        amount: float,
        monthly_salary: float,
        months: int,
        day: int = 0,
        signing_bonus: float = 0.0,
    ) -> TransferOffer:
        listing = self._active_listing(player_id, day)
        if bidding_team_id == listing.selling_team_id:
            raise ValidationError("A team cannot bid for its own player")
        if amount < 0 or signing_bonus < 0:
            raise ValidationError("Offer amounts cannot be negative")
        if monthly_salary <= 0 or months <= 0:
            raise ValidationError("Offer must include a positive salary and length")
        self.store.get_team(bidding_team_id)
        budget = self.store.get_budget(bidding_team_id)
        offer = TransferOffer(
            offer_id=f"of-{player_id}-{len(listing.offers) + 1}",
            player_id=player_id,
            bidding_team_id=bidding_team_id,
            amount=amount,
            monthly_salary=monthly_salary,
            months=months,
            day=day,
            signing_bonus=signing_bonus,
        )
        if budget.available < offer.total_commitment:
            raise InsufficientBudgetError(bidding_team_id, offer.total_commitment, budget.available)
        listing.offers.append(offer)
        logger.info("Team %s offered %s for player %s", bidding_team_id, f"{amount:,.0f}", player_id)
        return offer

    def _pending_offer(self, listing: TransferListing, offer_id: str) -> TransferOffer:
        for offer in listing.offers:
            if offer.offer_id == offer_id and offer.status == OfferStatus.PENDING:
                return offer
        raise OfferNotFoundError(f"No pending offer {offer_id} for player {listing.player_id}")

    def reject_offer(self, player_id: str, offer_id: str) -> TransferOffer:
        listing = self.store.listings.get(player_id)
        if listing is None:
            raise ListingNotActiveError(f"Player {player_id} is not listed")
        offer = self._pending_offer(listing, offer_id)
        offer.status = OfferStatus.REJECTED
        return offer

    def accept_offer(self, player_id: str, offer_id: str, day: int = 0, season_number: int = 1) -> Contract:
        """
        Complete a transfer atomically: release the seller's contract, move the
        fee, sign the buyer's contract, move the player between rosters and
        close the listing. On any failure all touched state is restored.
        """
        listing = self._active_listing(player_id, day)
        offer = self._pending_offer(listing, offer_id)
        player = self.store.get_player(player_id)
        seller = self.store.get_team(listing.selling_team_id)
        buyer = self.store.get_team(offer.bidding_team_id)
        buyer_budget = self.store.get_budget(buyer.team_id)
        seller_budget = self.store.get_budget(seller.team_id)

        if buyer_budget.available < offer.total_commitment:
            raise InsufficientBudgetError(buyer.team_id, offer.total_commitment, buyer_budget.available)
        if player_id not in seller.all_player_ids:
            raise ValidationError(f"{player.nickname} no longer plays for {seller.name}")

        snapshot = _Snapshot(
            player=copy.deepcopy(player),
            buyer=copy.deepcopy(buyer),
            seller=copy.deepcopy(seller),
            buyer_budget=copy.deepcopy(buyer_budget),
            seller_budget=copy.deepcopy(seller_budget),
            listing=copy.deepcopy(listing),
            contract=copy.deepcopy(self.store.contracts.get(player_id)),
            history_len=len(self.store.contract_history),
            listing_history_len=len(self.store.listing_history),
        )
        try:
            if player_id in self.store.contracts:
                self.contracts.terminate_contract(player_id, day, waive_cost=True)
            self.contracts.record_transfer_income(seller.team_id, offer.amount, day, player_id)
            self.contracts.charge_transfer_fee(buyer.team_id, offer.amount, day, player_id)
            contract = self.contracts.sign_contract(
                player_id,
                buyer.team_id,
                offer.monthly_salary,
                offer.signing_bonus,
                offer.months,
                day,
            )
            was_active = roster.remove_player(seller, player)
            if was_active:
                roster.fill_active_roster(self.store, seller)
            roster.add_player(buyer, player, active=len(buyer.active_roster) < roster.ACTIVE_SIZE)
            if player_id in buyer.active_roster:
                roster.reassign_roles(self.store, buyer)
            offer.status = OfferStatus.ACCEPTED
            self._archive(listing, ListingStatus.ACCEPTED, OfferStatus.REJECTED)
            self.development.record_transfer(player, seller.team_id, buyer.team_id, day, season_number)
            player.market_value = estimate_market_value(player)
        except Exception:
            self._restore(snapshot)
            logger.exception("Transfer of player %s to %s rolled back", player_id, buyer.team_id)
            raise
        logger.info(
            "%s transferred from %s to %s for %s",
            player.nickname, seller.name, buyer.name, f"{offer.amount:,.0f}",
        )
        return contract

    def _restore(self, snap: _Snapshot) -> None:
        store = self.store
        pid = snap.player.player_id
        store.players[pid] = snap.player
        store.teams[snap.buyer.team_id] = snap.buyer
        store.teams[snap.seller.team_id] = snap.seller
        store.budgets[snap.buyer_budget.team_id] = snap.buyer_budget
        store.budgets[snap.seller_budget.team_id] = snap.seller_budget
        store.contracts.pop(pid, None)
        if snap.contract is not None:
            store.contracts[pid] = snap.contract
        del store.contract_history[snap.history_len:]
        del store.listing_history[snap.listing_history_len:]
        store.listings[pid] = snap.listing

    # ---------- Free agents ----------

    def sign_free_agent(
        self,
        player_id: str,
        team_id: str,
        monthly_salary: float,
        months: int,
        day: int = 0,
        signing_bonus: float = 0.0,
        active: bool = False,
        season_number: int = 1,
    ) -> Contract:
        player = self.store.get_player(player_id)
        team = self.store.get_team(team_id)
        if player.team_id is not None:
            raise ValidationError(f"{player.nickname} is not a free agent")
        contract = self.contracts.sign_contract(player_id, team_id, monthly_salary, signing_bonus, months, day)
        roster.add_player(team, player, active=active)
        if active:
            roster.reassign_roles(self.store, team)
        self.development.record_transfer(player, None, team_id, day, season_number)
        player.market_value = estimate_market_value(player)
        return contract

    def release_player(self, player_id: str, day: int = 0, waive_cost: bool = False) -> None:
        """Terminate the contract (if any) and send the player to free agency."""
        player = self.store.get_player(player_id)
        if player.team_id is None:
            raise ValidationError(f"{player.nickname} is already a free agent")
        team = self.store.get_team(player.team_id)
        if player_id in self.store.contracts:
            self.contracts.terminate_contract(player_id, day, waive_cost=waive_cost)
        if player_id in self.store.listings:
            self.remove_listing(player_id)
        was_active = roster.remove_player(team, player)
        if was_active:
            roster.fill_active_roster(self.store, team)
