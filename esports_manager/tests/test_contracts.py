"""
Tests for contracts and budgets: signing, refusals, payroll, termination
expiry and clause bonuses.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from conftest import make_player

from esports_manager.errors import (
    ContractNotFoundError,
    InsufficientBudgetError,
    PlayerAlreadyContractedError,
    ValidationError,
)
from esports_manager.models import ClauseType, ContractClause, ContractStatus, TransactionType
from esports_manager.services.contract_service import ContractService


@pytest.fixture
def contracts(store):
    service = ContractService(store)
    service.initialize_budget("ta", 400_000)
    service.initialize_budget("tb", 1_000_000)
    store.add_player(make_player("fa1"))
    return service


class TestSigning:
    def test_refused_when_over_budget(self, store, contracts):
        """A 500k contract against 400k available is refused and changes nothing."""
        budget = store.get_budget("ta")
        with pytest.raises(InsufficientBudgetError):
            contracts.sign_contract("fa1", "ta", monthly_salary=50_000, signing_bonus=0, months=10)
        assert budget.available == 400_000
        assert contracts.get_player_contract("fa1") is None
        assert budget.transactions == []
        assert store.get_player("fa1").salary == 0.0

    def test_sign_reserves_full_cost(self, store, contracts):
        contract = contracts.sign_contract("fa1", "ta", monthly_salary=10_000, signing_bonus=5_000, months=12, day=3)
        budget = store.get_budget("ta")
        assert contract.status == ContractStatus.ACTIVE
        assert contract.end_day == 3 + 12 * 30
        assert budget.committed_salaries == 120_000
        assert budget.spent_on_bonuses == 5_000
        assert budget.available == 400_000 - 125_000
        assert store.get_player("fa1").salary == 10_000
        assert store.get_player("fa1").contract_years_remaining == 1

    def test_exact_budget_is_enough(self, store, contracts):
        contracts.sign_contract("fa1", "ta", monthly_salary=40_000, signing_bonus=0, months=10)
        assert store.get_budget("ta").available == 0

    def test_one_active_contract_per_player(self, contracts):
        contracts.sign_contract("fa1", "ta", 1_000, 0, 6)
        with pytest.raises(PlayerAlreadyContractedError):
            contracts.sign_contract("fa1", "tb", 1_000, 0, 6)

    @pytest.mark.parametrize("salary,bonus,months", [(0, 0, 6), (1_000, -1, 6), (1_000, 0, 0)])
    def test_bad_terms_rejected(self, contracts, salary, bonus, months):
        with pytest.raises(ValidationError):
            contracts.sign_contract("fa1", "ta", salary, bonus, months)

    def test_retired_player_cannot_sign(self, store, contracts):
        store.get_player("fa1").retired = True
        with pytest.raises(ValidationError):
            contracts.sign_contract("fa1", "ta", 1_000, 0, 6)


class TestPayroll:
    def test_monthly_payroll_keeps_available_constant(self, store, contracts):
        contracts.sign_contract("fa1", "ta", 10_000, 0, 3)
        budget = store.get_budget("ta")
        available = budget.available
        paid = contracts.process_monthly_salaries(day=30)
        assert paid == 10_000
        assert budget.spent_on_salaries == 10_000
        assert budget.committed_salaries == 20_000
        assert budget.available == available
        salary_lines = [t for t in budget.transactions if t.transaction_type == TransactionType.SALARY]
        assert len(salary_lines) == 1
        assert salary_lines[0].amount == -10_000

    def test_payroll_stops_after_last_month(self, store, contracts):
        contracts.sign_contract("fa1", "ta", 10_000, 0, 2)
        totals = [contracts.process_monthly_salaries(day=30 * i) for i in range(1, 5)]
        assert totals == [10_000, 10_000, 0, 0]
        assert store.get_budget("ta").committed_salaries == 0


class TestTermination:
    def test_default_cost_is_three_months(self, store, contracts):
        contracts.sign_contract("fa1", "ta", 10_000, 0, 12)
        cost = contracts.terminate_contract("fa1", day=10)
        budget = store.get_budget("ta")
        assert cost == 30_000
        assert budget.committed_salaries == 0
        assert budget.available == 400_000 - 30_000
        assert contracts.get_player_contract("fa1") is None
        assert store.contract_history[-1].status == ContractStatus.TERMINATED
        assert store.contract_history[-1].end_day == 10

    def test_buyout_clause_sets_cost(self, contracts):
        contracts.sign_contract(
            "fa1", "ta", 10_000, 0, 12,
            clauses=[ContractClause(clause_type=ClauseType.BUYOUT, value=55_000)],
        )
        assert contracts.terminate_contract("fa1") == 55_000

    def test_waived_termination_is_free(self, contracts):
        contracts.sign_contract("fa1", "ta", 10_000, 0, 12)
        assert contracts.terminate_contract("fa1", waive_cost=True) == 0.0

    def test_terminate_without_contract(self, contracts):
        with pytest.raises(ContractNotFoundError):
            contracts.terminate_contract("fa1")


class TestExpiry:
    def test_contract_expires_on_end_day(self, store, contracts):
        contracts.sign_contract("fa1", "ta", 1_000, 0, 1, day=0)
        assert contracts.check_contract_expirations(29) == []
        expired = contracts.check_contract_expirations(30)
        assert [c.player_id for c in expired] == ["fa1"]
        assert contracts.get_player_contract("fa1") is None
        assert store.contract_history[-1].status == ContractStatus.EXPIRED
        assert store.get_player("fa1").salary == 0.0

    def test_expiring_soon(self, contracts):
        contracts.sign_contract("fa1", "ta", 1_000, 0, 2, day=0)
        assert [c.player_id for c in contracts.expiring_soon(day=40)] == ["fa1"]
        assert contracts.expiring_soon(day=0) == []

    def test_loyalty_bonus_paid_when_contract_runs_out(self, store, contracts):
        contracts.sign_contract("fa1", "ta", 1_000, 0, 1, day=0)
        contracts.add_contract_clause("fa1", ContractClause(ClauseType.LOYALTY_BONUS, 2_500))
        contracts.check_contract_expirations(30)
        assert store.contract_history[-1].bonuses_paid == 2_500
        assert store.get_budget("ta").spent_on_bonuses == 2_500

    def test_loyalty_bonus_not_paid_on_termination(self, store, contracts):
        contracts.sign_contract("fa1", "ta", 1_000, 0, 6, day=0)
        contracts.add_contract_clause("fa1", ContractClause(ClauseType.LOYALTY_BONUS, 2_500))
        contracts.terminate_contract("fa1", day=10, waive_cost=True)
        assert store.contract_history[-1].bonuses_paid == 0


class TestClauseBonuses:
    def test_bonus_clause_paid_from_budget(self, store, contracts):
        contract = contracts.sign_contract("fa1", "ta", 1_000, 0, 6)
        contracts.add_contract_clause("fa1", ContractClause(ClauseType.PERFORMANCE_BONUS, 5_000))
        before = store.get_budget("ta").available
        paid = contracts.pay_clause_bonus("fa1", ClauseType.PERFORMANCE_BONUS, day=4, description="Big game")
        budget = store.get_budget("ta")
        assert paid == 5_000
        assert contract.bonuses_paid == 5_000
        assert budget.available == before - 5_000
        last = budget.transactions[-1]
        assert last.transaction_type == TransactionType.BONUS
        assert last.amount == -5_000
        assert last.player_id == "fa1"

    def test_missing_clause_pays_nothing(self, store, contracts):
        contracts.sign_contract("fa1", "ta", 1_000, 0, 6)
        count = len(store.get_budget("ta").transactions)
        assert contracts.pay_clause_bonus("fa1", ClauseType.CHAMPIONSHIP_BONUS) == 0.0
        assert contracts.pay_clause_bonus("ta-p1", ClauseType.CHAMPIONSHIP_BONUS) == 0.0
        assert len(store.get_budget("ta").transactions) == count

    def test_unaffordable_bonus_refused(self, store, contracts):
        contract = contracts.sign_contract("fa1", "ta", 40_000, 0, 10)
        contracts.add_contract_clause("fa1", ContractClause(ClauseType.PERFORMANCE_BONUS, 1_000))
        with pytest.raises(InsufficientBudgetError):
            contracts.pay_clause_bonus("fa1", ClauseType.PERFORMANCE_BONUS)
        assert contract.bonuses_paid == 0
        assert store.get_budget("ta").spent_on_bonuses == 0


class TestIncome:
    def test_prize_and_sponsorship_raise_available(self, store, contracts):
        contracts.add_prize_money("ta", 50_000, day=1)
        contracts.add_sponsorship_income("ta", 20_000, day=1)
        budget = store.get_budget("ta")
        assert budget.total_income == 70_000
        assert budget.available == 470_000

    def test_negative_income_rejected(self, contracts):
        with pytest.raises(ValidationError):
            contracts.add_prize_money("ta", -1, day=0)
