"""
Deduction Scheduler Module

Sweeps every vault with a deduction schedule and, when the cadence is due and
the owner's wallet can cover it, moves the deduction amount from the wallet
into the vault. Each vault is handled in its own store transaction: the wallet
debit, the vault credit and the cadence marker update commit together or not
at all. A failing vault is logged and skipped; the sweep carries on.
"""

import math
from decimal import Decimal
from datetime import date, datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ConcurrentUpdateError, LedgerError, WalletNotFound
from .logging_config import get_logger, log_action
from .money import round_money, to_json_number
from .storage import StorageInterface
from .vaults import Vault, VaultManager
from .wallets import Wallet, WalletEngine


# Minimum whole days between deductions for each cadence
FREQUENCY_INTERVAL_DAYS = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
}


@dataclass
class DeductionResult:
    """One vault that was actually deducted"""
    user_id: str
    vault_id: str
    deducted_amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "vault_id": self.vault_id,
            "deducted": to_json_number(self.deducted_amount),
        }


@dataclass
class SweepResult:
    """Outcome of a full deduction sweep"""
    results: List[DeductionResult] = field(default_factory=list)
    message: str = "Deductions simulated"
    vaults_checked: int = 0
    vaults_failed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "results": [result.to_dict() for result in self.results],
        }


def days_since(last_deducted_date: Optional[date], today: date) -> float:
    """Whole days since the last deduction; infinite if never deducted"""
    if last_deducted_date is None:
        return math.inf
    return (today - last_deducted_date).days


def is_due(vault: Vault, today: date) -> bool:
    """Cadence check. Unknown frequencies are never due."""
    interval = FREQUENCY_INTERVAL_DAYS.get(vault.deduction_frequency or "")
    if interval is None:
        return False
    return days_since(vault.last_deducted_date, today) >= interval


class DeductionScheduler:
    """
    Runs the scheduled wallet-to-vault deduction sweep
    """

    def __init__(
        self,
        storage: StorageInterface,
        wallet_engine: WalletEngine,
        vault_manager: VaultManager
    ):
        self.storage = storage
        self.wallet_engine = wallet_engine
        self.vault_manager = vault_manager
        self.logger = get_logger("vault_ledger.deductions")

    def run_sweep(self, today: Optional[date] = None) -> SweepResult:
        """
        Evaluate every vault and apply the deductions that are due

        Args:
            today: Date the sweep runs for (defaults to the current UTC date)

        Returns:
            SweepResult listing every vault that was deducted
        """
        today = today or datetime.now(timezone.utc).date()
        sweep = SweepResult()

        for vault in self.vault_manager.list_all_vaults():
            if not vault.has_schedule:
                continue
            sweep.vaults_checked += 1

            try:
                wallet = self.wallet_engine.get_wallet(vault.user_id)
                if not self._should_deduct(vault, wallet, today):
                    continue
                result = self._deduct(vault.id, today)
            except WalletNotFound:
                self.logger.debug("Skipping vault %s: owner has no wallet", vault.id)
                continue
            except LedgerError as e:
                sweep.vaults_failed += 1
                log_action(
                    self.logger, "error", f"Deduction failed: {e}",
                    user_id=vault.user_id, action="deduction_failed",
                    resource=f"vault:{vault.id}"
                )
                continue

            if result:
                sweep.results.append(result)

        log_action(
            self.logger, "info", "Deduction sweep completed",
            action="deduction_sweep", resource="vaults",
            extra={
                "date": today.isoformat(),
                "vaults_checked": sweep.vaults_checked,
                "vaults_deducted": len(sweep.results),
                "vaults_failed": sweep.vaults_failed,
            }
        )
        return sweep

    def _should_deduct(self, vault: Vault, wallet: Wallet, today: date) -> bool:
        return is_due(vault, today) and wallet.balance >= vault.deduction_amount

    def _deduct(self, vault_id: str, today: date) -> Optional[DeductionResult]:
        """Debit wallet, credit vault and advance the cadence marker as one unit"""
        with self.storage.atomic():
            # Re-read inside the transaction; the decision must hold for what gets written
            vault = self.vault_manager.load_vault(vault_id)
            if not vault or not vault.has_schedule:
                return None
            wallet = self.wallet_engine.get_wallet(vault.user_id)
            if not self._should_deduct(vault, wallet, today):
                return None

            amount = vault.deduction_amount
            now = datetime.now(timezone.utc)

            debited = self.storage.update_where(
                self.wallet_engine.wallets_table,
                {"id": wallet.id, "balance": wallet.balance},
                {"balance": round_money(wallet.balance - amount), "updated_at": now}
            )
            if debited != 1:
                raise ConcurrentUpdateError(f"Wallet {wallet.id} changed during deduction")

            credited = self.storage.update_where(
                self.vault_manager.vaults_table,
                {
                    "id": vault.id,
                    "balance": vault.balance,
                    "last_deducted_date": vault.last_deducted_date,
                },
                {
                    "balance": round_money(vault.balance + amount),
                    "last_deducted_date": today,
                    "updated_at": now,
                }
            )
            if credited != 1:
                raise ConcurrentUpdateError(f"Vault {vault.id} changed during deduction")

        log_action(
            self.logger, "info", "Scheduled deduction applied",
            user_id=vault.user_id, action="deduct", resource=f"vault:{vault.id}",
            extra={"amount": str(amount), "frequency": vault.deduction_frequency}
        )
        return DeductionResult(user_id=vault.user_id, vault_id=vault.id, deducted_amount=amount)
