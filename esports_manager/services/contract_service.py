"""
Contracts and team budgets.

Signing reserves the whole salary obligation on the team's committed ledger
and pays the signing bonus at once, so the available budget drops by the full
contract cost immediately. Monthly payroll then moves one month's salary from
committed to spent, leaving the available budget unchanged.

Every refusal is raised before any ledger or contract is touched.
"""
from __future__ import annotations

import logging
import math
from typing import Iterable

from ..config import CONTRACT_TERMINATION_SALARY_MONTHS, DAYS_PER_MONTH, EXPIRY_WARNING_DAYS
from ..errors import (
    ContractNotFoundError,
    InsufficientBudgetError,
    PlayerAlreadyContractedError,
    ValidationError,
)
from ..models import (
    ClauseType,
    Contract,
    ContractClause,
    ContractStatus,
    TeamBudget,
    Transaction,
    TransactionType,
)
from ..persistence.store import EntityStore

logger = logging.getLogger(__name__)


class ContractService:
    """
    Domain logic for contracts and budgets. State lives in the EntityStore.
    """

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    # ---------- Budgets ----------

    def initialize_budget(self, team_id: str, amount: float) -> TeamBudget:
        if amount < 0:
            raise ValidationError("Budget cannot be negative")
        self.store.get_team(team_id)
        budget = TeamBudget(team_id=team_id, total_budget=amount)
        self.store.budgets[team_id] = budget
        return budget

    def get_team_budget(self, team_id: str) -> TeamBudget | None:
        return self.store.budgets.get(team_id)

    def available_budget(self, team_id: str) -> float:
        return self.store.get_budget(team_id).available

    def _log(
        self,
        budget: TeamBudget,
        kind: TransactionType,
        amount: float,
        day: int,
        description: str,
        player_id: str | None = None,
    ) -> None:
        budget.transactions.append(
            Transaction(transaction_type=kind, amount=amount, day=day, description=description, player_id=player_id)
        )

    def add_prize_money(self, team_id: str, amount: float, day: int, description: str = "Prize money") -> None:
        if amount < 0:
            raise ValidationError("Prize money cannot be negative")
        budget = self.store.get_budget(team_id)
        budget.prize_money += amount
        self._log(budget, TransactionType.PRIZE_MONEY, amount, day, description)
        logger.info("Team %s received %s prize money", team_id, f"{amount:,.0f}")

    def add_sponsorship_income(self, team_id: str, amount: float, day: int, description: str = "Sponsorship") -> None:
        if amount < 0:
            raise ValidationError("Sponsorship income cannot be negative")
        budget = self.store.get_budget(team_id)
        budget.sponsorship_income += amount
        self._log(budget, TransactionType.SPONSORSHIP, amount, day, description)

    def record_transfer_income(self, team_id: str, amount: float, day: int, player_id: str) -> None:
        budget = self.store.get_budget(team_id)
        budget.transfer_income += amount
        self._log(budget, TransactionType.TRANSFER_FEE, amount, day, "Transfer fee received", player_id)

    def charge_transfer_fee(self, team_id: str, amount: float, day: int, player_id: str) -> None:
        budget = self.store.get_budget(team_id)
        if budget.available < amount:
            raise InsufficientBudgetError(team_id, amount, budget.available)
        budget.spent_on_transfers += amount
        self._log(budget, TransactionType.TRANSFER_FEE, -amount, day, "Transfer fee paid", player_id)

    # ---------- Contracts ----------

    def get_player_contract(self, player_id: str) -> Contract | None:
        return self.store.contracts.get(player_id)

    def get_team_contracts(self, team_id: str) -> list[Contract]:
        return self.store.contracts_for_team(team_id)

    def _next_contract_id(self, player_id: str, day: int) -> str:
        n = len(self.store.contract_history) + len(self.store.contracts) + 1
        return f"ct-{n:05d}-{player_id}-d{day}"

    def sign_contract(
        self,
        player_id: str,
        team_id: str,
        monthly_salary: float,
        signing_bonus: float,
        months: int,
        day: int = 0,
        clauses: Iterable[ContractClause] = (),
    ) -> Contract:
        """
        Sign a player. Fails with ValidationError on bad terms,
        PlayerAlreadyContractedError if the player is under contract and
        InsufficientBudgetError if the team cannot cover salary * months + bonus.
        """
        if monthly_salary <= 0:
            raise ValidationError("Monthly salary must be positive")
        if months <= 0:
            raise ValidationError("Contract length must be at least one month")
        if signing_bonus < 0:
            raise ValidationError("Signing bonus cannot be negative")
        player = self.store.get_player(player_id)
        self.store.get_team(team_id)
        if player.retired:
            raise ValidationError(f"{player.nickname} is retired")
        if player_id in self.store.contracts:
            raise PlayerAlreadyContractedError(f"{player.nickname} already has an active contract")
        budget = self.store.get_budget(team_id)
        salary_total = monthly_salary * months
        required = salary_total + signing_bonus
        if budget.available < required:
            logger.warning(
                "Team %s cannot afford %s for %s (available %s)",
                team_id, f"{required:,.0f}", player.nickname, f"{budget.available:,.0f}",
            )
            raise InsufficientBudgetError(team_id, required, budget.available)

        contract = Contract(
            contract_id=self._next_contract_id(player_id, day),
            player_id=player_id,
            team_id=team_id,
            monthly_salary=monthly_salary,
            signing_bonus=signing_bonus,
            months=months,
            start_day=day,
            end_day=day + months * DAYS_PER_MONTH,
            clauses=list(clauses),
        )
        budget.committed_salaries += salary_total
        budget.spent_on_bonuses += signing_bonus
        self._log(
            budget,
            TransactionType.BONUS,
            -signing_bonus,
            day,
            f"Signed {player.nickname}: {months} months at {monthly_salary:,.0f}/month",
            player_id,
        )
        self.store.contracts[player_id] = contract
        player.salary = monthly_salary
        player.contract_years_remaining = math.ceil(months / 12)
        logger.info(
            "Team %s signed %s for %d months at %s/month",
            team_id, player.nickname, months, f"{monthly_salary:,.0f}",
        )
        return contract

    def add_contract_clause(self, player_id: str, clause: ContractClause) -> Contract:
        contract = self.get_player_contract(player_id)
        if contract is None:
            raise ContractNotFoundError(f"No active contract for player {player_id}")
        if clause.value < 0:
            raise ValidationError("Clause value cannot be negative")
        contract.clauses.append(clause)
        return contract

    def pay_clause_bonus(self, player_id: str, clause_type: ClauseType, day: int = 0, description: str = "") -> float:
        """
        Pay the value of an active bonus clause from the player's team budget.
        Returns 0 when the player has no contract or no such clause; raises
        InsufficientBudgetError if the team cannot cover it.
        """
        contract = self.get_player_contract(player_id)
        clause = contract.clause(clause_type) if contract is not None else None
        if clause is None or clause.value <= 0:
            return 0.0
        budget = self.store.get_budget(contract.team_id)
        if budget.available < clause.value:
            raise InsufficientBudgetError(contract.team_id, clause.value, budget.available)
        budget.spent_on_bonuses += clause.value
        contract.bonuses_paid += clause.value
        self._log(budget, TransactionType.BONUS, -clause.value, day, description or clause.description, player_id)
        logger.info("Team %s paid %s %s to player %s", contract.team_id, clause_type.value, f"{clause.value:,.0f}", player_id)
        return clause.value

    def termination_cost(self, contract: Contract) -> float:
        """Buyout clause value if present, otherwise three months' salary."""
        buyout = contract.clause(ClauseType.BUYOUT)
        if buyout is not None:
            return buyout.value
        return contract.monthly_salary * CONTRACT_TERMINATION_SALARY_MONTHS

    def _close(self, contract: Contract, status: ContractStatus, day: int) -> None:
        budget = self.store.get_budget(contract.team_id)
        budget.committed_salaries = max(0.0, budget.committed_salaries - contract.remaining_salary)
        contract.status = status
        if status == ContractStatus.TERMINATED:
            contract.end_day = min(contract.end_day, day)
        del self.store.contracts[contract.player_id]
        self.store.contract_history.append(contract)
        player = self.store.find_player(contract.player_id)
        if player is not None:
            player.salary = 0.0
            player.contract_years_remaining = 0

    def terminate_contract(self, player_id: str, day: int = 0, waive_cost: bool = False) -> float:
        """
        Terminate a player's active contract and return what it cost the team.
        The outstanding salary reservation is released first, so a team can
        afford the termination cost out of that release.
        """
        contract = self.get_player_contract(player_id)
        if contract is None:
            raise ContractNotFoundError(f"No active contract for player {player_id}")
        budget = self.store.get_budget(contract.team_id)
        cost = 0.0 if waive_cost else self.termination_cost(contract)
        release = contract.remaining_salary
        if budget.available + release < cost:
            logger.warning(
                "Team %s cannot afford termination cost %s for player %s",
                contract.team_id, f"{cost:,.0f}", player_id,
            )
            raise InsufficientBudgetError(contract.team_id, cost, budget.available + release)
        self._close(contract, ContractStatus.TERMINATED, day)
        if cost:
            budget.spent_on_bonuses += cost
        self._log(budget, TransactionType.EXPENSE, -cost, day, "Contract terminated", player_id)
        logger.info("Contract of player %s with team %s terminated (cost %s)", player_id, contract.team_id, f"{cost:,.0f}")
        return cost

    # ---------- Time-driven ----------

    def process_monthly_salaries(self, day: int = 0) -> float:
        """
        Pay one month's salary on every active contract that still has unpaid
        months. One SALARY transaction per player. Returns the total paid.
        """
        total = 0.0
        for contract in sorted(self.store.contracts.values(), key=lambda c: c.contract_id):
            if contract.months_paid >= contract.months:
                continue
            budget = self.store.get_budget(contract.team_id)
            amount = contract.monthly_salary
            budget.committed_salaries = max(0.0, budget.committed_salaries - amount)
            budget.spent_on_salaries += amount
            contract.months_paid += 1
            self._log(budget, TransactionType.SALARY, -amount, day, "Monthly salary", contract.player_id)
            total += amount
        logger.debug("Payroll on day %d: %s across %d contracts", day, f"{total:,.0f}", len(self.store.contracts))
        return total

    def check_contract_expirations(self, day: int) -> list[Contract]:
        """
        Expire contracts whose end day has been reached, paying any loyalty
        bonus first. Contracts entering the warning window are logged once.
        Returns the expired contracts.
        """
        expired: list[Contract] = []
        for contract in sorted(self.store.contracts.values(), key=lambda c: c.contract_id):
            remaining = contract.days_remaining(day)
            if remaining <= 0:
                expired.append(contract)
            elif remaining == EXPIRY_WARNING_DAYS:
                logger.warning(
                    "Contract %s of player %s expires in %d days",
                    contract.contract_id, contract.player_id, remaining,
                )
        for contract in expired:
            try:
                self.pay_clause_bonus(contract.player_id, ClauseType.LOYALTY_BONUS, day, "Loyalty bonus")
            except InsufficientBudgetError as e:
                logger.warning("Loyalty bonus for player %s not paid: %s", contract.player_id, e)
            self._close(contract, ContractStatus.EXPIRED, day)
            logger.info("Contract %s of player %s expired", contract.contract_id, contract.player_id)
        return expired

    def expiring_soon(self, day: int, within_days: int = EXPIRY_WARNING_DAYS) -> list[Contract]:
        return [c for c in self.store.contracts.values() if 0 < c.days_remaining(day) <= within_days]
