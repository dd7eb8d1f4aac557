"""
Test suite for the scheduled deduction sweep

Validates cadence eligibility, wallet coverage checks, and that each vault's
wallet debit, vault credit and marker update commit together or not at all.
"""

import pytest
import math
from decimal import Decimal
from datetime import date, timedelta

from vault_ledger.deductions import (
    DeductionResult, DeductionScheduler, SweepResult, days_since, is_due
)
from vault_ledger.errors import StoreError
from vault_ledger.storage import InMemoryStorage
from vault_ledger.vaults import VaultManager
from vault_ledger.wallets import WalletEngine


TODAY = date(2026, 10, 17)


class FlakyStorage(InMemoryStorage):
    """Fails vault updates and wallet reads for the listed ids"""

    def __init__(self):
        super().__init__()
        self.failing_vaults = set()
        self.failing_wallet_owners = set()

    def find(self, table, filters):
        if table == "wallets" and filters.get("user_id") in self.failing_wallet_owners:
            raise StoreError("wallet read failed")
        return super().find(table, filters)

    def update_where(self, table, filters, updates):
        if table == "vaults" and filters.get("id") in self.failing_vaults:
            raise StoreError("disk on fire")
        return super().update_where(table, filters, updates)


class TestDeductionSweep:
    """Test the deduction sweep"""

    def setup_method(self):
        """Set up test fixtures"""
        self.storage = FlakyStorage()
        self.wallet_engine = WalletEngine(self.storage)
        self.vault_manager = VaultManager(self.storage)
        self.scheduler = DeductionScheduler(self.storage, self.wallet_engine, self.vault_manager)

        self.wallet_engine.create_wallet("user_1")
        self.wallet_engine.fund("user_1", 1000)

    def _vault(self, amount="50", frequency="daily", user_id="user_1", last_deducted=None):
        vault = self.vault_manager.create_vault(
            user_id, "Savings", 10000, "2027-12-31",
            deduction_amount=amount, deduction_frequency=frequency
        )
        if last_deducted:
            self.storage.update_where(
                "vaults", {"id": vault.id}, {"last_deducted_date": last_deducted}
            )
        return vault

    def _balance(self, user_id="user_1"):
        return self.wallet_engine.get_wallet(user_id).balance

    def _vault_state(self, vault_id):
        return self.vault_manager.load_vault(vault_id)

    def test_first_daily_deduction(self):
        vault = self._vault()
        sweep = self.scheduler.run_sweep(today=TODAY)

        assert sweep.to_dict() == {
            "message": "Deductions simulated",
            "results": [{"user_id": "user_1", "vault_id": vault.id, "deducted": 50.0}],
        }
        assert self._balance() == Decimal('950.00')
        stored = self._vault_state(vault.id)
        assert stored.balance == Decimal('50.00')
        assert stored.last_deducted_date == TODAY

    def test_second_sweep_same_day_is_empty(self):
        self._vault()
        self.scheduler.run_sweep(today=TODAY)
        sweep = self.scheduler.run_sweep(today=TODAY)

        assert sweep.results == []
        assert self._balance() == Decimal('950.00')

    def test_next_day_deducts_again(self):
        vault = self._vault()
        self.scheduler.run_sweep(today=TODAY)
        self.scheduler.run_sweep(today=TODAY + timedelta(days=1))

        assert self._balance() == Decimal('900.00')
        assert self._vault_state(vault.id).balance == Decimal('100.00')

    @pytest.mark.parametrize("frequency,days_ago,expected", [
        ("daily", 0, False),
        ("daily", 1, True),
        ("weekly", 6, False),
        ("weekly", 7, True),
        ("monthly", 29, False),
        ("monthly", 30, True),
    ])
    def test_cadence_thresholds(self, frequency, days_ago, expected):
        vault = self._vault(frequency=frequency, last_deducted=TODAY - timedelta(days=days_ago))
        sweep = self.scheduler.run_sweep(today=TODAY)

        assert (len(sweep.results) == 1) is expected
        expected_marker = TODAY if expected else TODAY - timedelta(days=days_ago)
        assert self._vault_state(vault.id).last_deducted_date == expected_marker

    def test_insufficient_wallet_balance_skips_vault(self):
        self.wallet_engine.create_wallet("user_2")
        self.wallet_engine.fund("user_2", 30)
        vault = self._vault(user_id="user_2")

        sweep = self.scheduler.run_sweep(today=TODAY)

        assert sweep.results == []
        assert self._balance("user_2") == Decimal('30.00')
        stored = self._vault_state(vault.id)
        assert stored.balance == Decimal('0.00')
        assert stored.last_deducted_date is None

    def test_exact_wallet_balance_is_enough(self):
        self.wallet_engine.create_wallet("user_2")
        self.wallet_engine.fund("user_2", 50)
        self._vault(user_id="user_2")

        sweep = self.scheduler.run_sweep(today=TODAY)
        assert len(sweep.results) == 1
        assert self._balance("user_2") == Decimal('0.00')

    def test_unknown_frequency_never_deducted(self):
        vault = self._vault()
        self.storage.update_where("vaults", {"id": vault.id}, {"deduction_frequency": "yearly"})

        sweep = self.scheduler.run_sweep(today=TODAY)
        assert sweep.results == []
        assert self._balance() == Decimal('1000.00')

    def test_vault_without_schedule_ignored(self):
        self.vault_manager.create_vault("user_1", "Plain", 100, "2027-01-01")
        sweep = self.scheduler.run_sweep(today=TODAY)
        assert sweep.results == []
        assert sweep.vaults_checked == 0

    def test_missing_wallet_skipped(self):
        orphan = self._vault(user_id="ghost")
        vault = self._vault()

        sweep = self.scheduler.run_sweep(today=TODAY)
        assert [r.vault_id for r in sweep.results] == [vault.id]
        assert self._vault_state(orphan.id).balance == Decimal('0.00')

    def test_failed_vault_rolls_back_wallet_debit(self):
        broken = self._vault(amount="100")
        healthy = self._vault(amount="40")
        self.storage.failing_vaults.add(broken.id)

        sweep = self.scheduler.run_sweep(today=TODAY)

        assert [r.vault_id for r in sweep.results] == [healthy.id]
        assert sweep.vaults_failed == 1
        assert sweep.vaults_checked == 2
        # Only the healthy vault's deduction left the wallet
        assert self._balance() == Decimal('960.00')
        assert self._vault_state(broken.id).balance == Decimal('0.00')
        assert self._vault_state(broken.id).last_deducted_date is None
        assert self._vault_state(healthy.id).balance == Decimal('40.00')

    def test_failed_wallet_read_does_not_abort_sweep(self):
        self.wallet_engine.create_wallet("user_2")
        self.wallet_engine.fund("user_2", 500)
        unreadable = self._vault(user_id="user_2")
        healthy = self._vault(amount="40")
        self.storage.failing_wallet_owners.add("user_2")

        sweep = self.scheduler.run_sweep(today=TODAY)

        assert [r.vault_id for r in sweep.results] == [healthy.id]
        assert sweep.vaults_failed == 1
        assert self._balance() == Decimal('960.00')
        assert self._vault_state(unreadable.id).last_deducted_date is None

        self.storage.failing_wallet_owners.clear()
        assert self._balance("user_2") == Decimal('500.00')

    def test_wallet_cannot_cover_every_vault(self):
        self.wallet_engine.create_wallet("user_2")
        self.wallet_engine.fund("user_2", 100)
        first = self._vault(amount="60", user_id="user_2")
        second = self._vault(amount="60", user_id="user_2")

        sweep = self.scheduler.run_sweep(today=TODAY)

        assert len(sweep.results) == 1
        assert self._balance("user_2") == Decimal('40.00')
        balances = sorted(self._vault_state(v.id).balance for v in (first, second))
        assert balances == [Decimal('0.00'), Decimal('60.00')]

    def test_deductions_not_in_wallet_history(self):
        self._vault()
        self.scheduler.run_sweep(today=TODAY)
        history = self.wallet_engine.list_transactions("user_1")
        assert [entry["type"] for entry in history["transactions"]] == ["fund"]

    def test_sweep_defaults_to_today(self):
        self._vault()
        sweep = self.scheduler.run_sweep()
        assert len(sweep.results) == 1


class TestEligibilityHelpers:
    """Test cadence helpers"""

    def test_days_since(self):
        assert days_since(None, TODAY) == math.inf
        assert days_since(TODAY - timedelta(days=3), TODAY) == 3

    def test_is_due_for_unscheduled_frequency(self):
        storage = InMemoryStorage()
        vault = VaultManager(storage).create_vault("user_1", "Plain", 100, "2027-01-01")
        assert not is_due(vault, TODAY)

    def test_result_serialization(self):
        result = DeductionResult(user_id="u", vault_id="v", deducted_amount=Decimal('12.50'))
        assert SweepResult(results=[result]).to_dict() == {
            "message": "Deductions simulated",
            "results": [{"user_id": "u", "vault_id": "v", "deducted": 12.5}],
        }
