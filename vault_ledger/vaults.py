"""
Vault Management Module

Vaults are locked, goal-oriented sub-balances owned by a user. They are funded
by manual deposits or by the scheduled deduction sweep. Ownership is enforced
by looking vaults up by id and owner together.
"""

from decimal import Decimal
from datetime import date, datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from enum import Enum
import uuid

from .errors import InvalidInput, StoreError, VaultNotFound
from .logging_config import get_logger, log_action
from .money import ZERO, normalize, round_money, to_json_number
from .storage import StorageInterface, StorageRecord


class DeductionFrequency(Enum):
    """Cadence of scheduled vault funding"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class FundingMethod(Enum):
    """Source of scheduled funding"""
    WALLET = "wallet"
    CARD = "card"  # Reserved, not processed by the sweep differently


@dataclass
class Vault(StorageRecord):
    """
    Savings vault. ``deduction_amount`` and ``deduction_frequency`` are set
    together or not at all; ``deduction_frequency`` is kept as the raw stored
    string so unknown cadences survive a round trip and are simply never eligible.
    """
    user_id: str
    title: str
    target_amount: Decimal
    lock_date: date
    balance: Decimal = ZERO
    funding_method: str = FundingMethod.WALLET.value
    deduction_amount: Optional[Decimal] = None
    deduction_frequency: Optional[str] = None
    last_deducted_date: Optional[date] = None

    @property
    def has_schedule(self) -> bool:
        return bool(self.deduction_amount) and bool(self.deduction_frequency)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Vault':
        data = dict(data)
        data['target_amount'] = round_money(data['target_amount'])
        data['balance'] = round_money(data.get('balance', '0'))
        data['lock_date'] = date.fromisoformat(data['lock_date'])
        if data.get('deduction_amount') is not None:
            data['deduction_amount'] = round_money(data['deduction_amount'])
        if data.get('last_deducted_date'):
            data['last_deducted_date'] = date.fromisoformat(data['last_deducted_date'])
        return super().from_dict(data)

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "target_amount": to_json_number(self.target_amount),
            "balance": to_json_number(self.balance),
            "lock_date": self.lock_date.isoformat(),
            "funding_method": self.funding_method,
            "deduction_amount": (
                to_json_number(self.deduction_amount)
                if self.deduction_amount is not None else None
            ),
            "deduction_frequency": self.deduction_frequency,
            "last_deducted_date": (
                self.last_deducted_date.isoformat() if self.last_deducted_date else None
            ),
            "created_at": self.created_at.isoformat(),
        }


class VaultManager:
    """
    Creates vaults and accepts manual deposits into them
    """

    def __init__(self, storage: StorageInterface, balance_update_retries: int = 3):
        self.storage = storage
        self.balance_update_retries = balance_update_retries
        self.vaults_table = "vaults"
        self.logger = get_logger("vault_ledger.vaults")

    def create_vault(
        self,
        user_id: str,
        title: Optional[str],
        target_amount: Any,
        lock_date: Any,
        funding_method: Optional[str] = None,
        deduction_amount: Any = None,
        deduction_frequency: Optional[str] = None
    ) -> Vault:
        """
        Create a new vault with a zero balance

        Args:
            user_id: Owner, taken from the verified session
            title: Vault name
            target_amount: Savings goal
            lock_date: Date until which the vault is locked (date or ISO string)
            funding_method: "wallet" (default) or "card"
            deduction_amount: Amount moved per scheduled deduction
            deduction_frequency: "daily", "weekly" or "monthly"

        Raises:
            InvalidInput: Missing fields or an inconsistent deduction schedule
            InvalidAmount: Target or deduction amount fails validation
        """
        if not title or target_amount in (None, "") or not lock_date:
            raise InvalidInput("All fields are required")

        target = normalize(target_amount)
        lock = self._parse_date(lock_date)

        method = funding_method or FundingMethod.WALLET.value
        try:
            FundingMethod(method)
        except ValueError:
            raise InvalidInput(f"Unsupported funding method: {method}")

        has_amount = deduction_amount not in (None, "")
        has_frequency = bool(deduction_frequency)
        if has_amount != has_frequency:
            raise InvalidInput("Deduction amount and frequency must be provided together")

        amount = None
        frequency = None
        if has_amount:
            amount = normalize(deduction_amount)
            try:
                frequency = DeductionFrequency(deduction_frequency).value
            except ValueError:
                raise InvalidInput("Deduction frequency must be daily, weekly or monthly")

        now = datetime.now(timezone.utc)
        vault = Vault(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            user_id=user_id,
            title=title.strip(),
            target_amount=target,
            lock_date=lock,
            funding_method=method,
            deduction_amount=amount,
            deduction_frequency=frequency,
        )
        self.storage.insert(self.vaults_table, vault.id, vault.to_dict())

        log_action(
            self.logger, "info", "Vault created",
            user_id=user_id, action="create_vault", resource=f"vault:{vault.id}",
            extra={"target_amount": str(target), "deduction_frequency": frequency}
        )
        return vault

    def deposit(self, vault_id: str, user_id: str, amount: Any) -> Decimal:
        """
        Add money to a vault owned by the caller

        The wallet is not touched and no wallet transaction is recorded.
        The balance may grow past the target amount.

        Returns:
            New vault balance

        Raises:
            InvalidAmount: If the amount is not a positive number
            VaultNotFound: If no vault with this id belongs to the caller
        """
        deposit_amount = normalize(amount)

        for attempt in range(1, self.balance_update_retries + 1):
            vault = self.get_vault(vault_id, user_id)
            new_balance = round_money(vault.balance + deposit_amount)
            updated = self.storage.update_where(
                self.vaults_table,
                {"id": vault.id, "user_id": user_id, "balance": vault.balance},
                {"balance": new_balance, "updated_at": datetime.now(timezone.utc)}
            )
            if updated == 1:
                log_action(
                    self.logger, "info", "Vault deposit",
                    user_id=user_id, action="vault_deposit", resource=f"vault:{vault.id}",
                    extra={"amount": str(deposit_amount), "new_balance": str(new_balance)}
                )
                return new_balance
            self.logger.warning("Concurrent vault update for %s, attempt %d", vault_id, attempt)

        raise StoreError("Could not update vault balance")

    def get_vault(self, vault_id: str, user_id: str) -> Vault:
        """
        Load a vault by id and owner

        Raises:
            VaultNotFound: If it does not exist or belongs to someone else
        """
        data = self.storage.find_one(self.vaults_table, {"id": vault_id, "user_id": user_id})
        if not data:
            raise VaultNotFound()
        return Vault.from_dict(data)

    def load_vault(self, vault_id: str) -> Optional[Vault]:
        """Load a vault by id regardless of owner"""
        data = self.storage.load(self.vaults_table, vault_id)
        return Vault.from_dict(data) if data else None

    def list_vaults(self, user_id: str) -> List[Vault]:
        """All vaults owned by a user, oldest first"""
        vaults = [Vault.from_dict(data) for data in self.storage.find(self.vaults_table, {"user_id": user_id})]
        vaults.sort(key=lambda vault: vault.created_at)
        return vaults

    def list_all_vaults(self) -> List[Vault]:
        """Every vault in the store"""
        return [Vault.from_dict(data) for data in self.storage.load_all(self.vaults_table)]

    @staticmethod
    def _parse_date(value: Any) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value))
        except ValueError:
            raise InvalidInput("lock_date must be an ISO date (YYYY-MM-DD)")
