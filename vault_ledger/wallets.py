"""
Wallet Balance Engine Module

Funding, withdrawal, balance and history for each user's wallet. Every balance
change is a conditional update on the expected prior balance plus an appended
transaction record, applied in one store transaction. A lost race rolls the
unit back and the change is retried against the fresh balance.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum
import random
import re
import uuid

from .config import WalletSettings
from .errors import (
    ConcurrentUpdateError, InsufficientBalance, InvalidInput,
    InvalidPagination, StoreError, WalletNotFound
)
from .logging_config import get_logger, log_action
from .money import ZERO, format_money, normalize, round_money, to_json_number
from .storage import StorageInterface, StorageRecord


MAX_PAGE_SIZE = 100


class TransactionType(Enum):
    """Wallet ledger entry types"""
    FUND = "fund"
    WITHDRAWAL = "withdrawal"


@dataclass
class Wallet(StorageRecord):
    """A user's spendable balance"""
    user_id: str
    balance: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Wallet':
        data = dict(data)
        data['balance'] = round_money(data.get('balance', '0'))
        return super().from_dict(data)


@dataclass
class WalletTransaction(StorageRecord):
    """Immutable wallet ledger entry"""
    user_id: str
    type: TransactionType
    amount: Decimal
    balance_after: Decimal
    description: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WalletTransaction':
        data = dict(data)
        data['type'] = TransactionType(data['type'])
        data['amount'] = Decimal(data['amount'])
        data['balance_after'] = Decimal(data['balance_after'])
        return super().from_dict(data)

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type.value,
            "amount": to_json_number(self.amount),
            "balance_after": to_json_number(self.balance_after),
            "description": self.description,
            "created_at": self.created_at.isoformat(),
        }


class AccountHolderNameProvider(ABC):
    """Resolves the display name of the external account a withdrawal goes to"""

    @abstractmethod
    def lookup(self, account_number: str, bank_name: str) -> str:
        pass


class MockAccountHolderNameProvider(AccountHolderNameProvider):
    """Random first + last name pair. Display only, not an identity claim."""

    def __init__(self, first_names, last_names, rng: Optional[random.Random] = None):
        self.first_names = list(first_names)
        self.last_names = list(last_names)
        self._rng = rng or random.Random()

    def lookup(self, account_number: str, bank_name: str) -> str:
        return f"{self._rng.choice(self.first_names)} {self._rng.choice(self.last_names)}"


class WalletEngine:
    """
    Applies fund and withdrawal operations to wallets
    """

    def __init__(
        self,
        storage: StorageInterface,
        settings: Optional[WalletSettings] = None,
        holder_name_provider: Optional[AccountHolderNameProvider] = None
    ):
        self.storage = storage
        self.settings = settings or WalletSettings()
        self.holder_name_provider = holder_name_provider or MockAccountHolderNameProvider(
            self.settings.first_names, self.settings.last_names
        )
        self.wallets_table = "wallets"
        self.transactions_table = "transactions"
        self.logger = get_logger("vault_ledger.wallets")

    def create_wallet(self, user_id: str) -> Wallet:
        """Create an empty wallet for a new user"""
        now = datetime.now(timezone.utc)
        wallet = Wallet(id=str(uuid.uuid4()), created_at=now, updated_at=now, user_id=user_id)
        self.storage.insert(self.wallets_table, wallet.id, wallet.to_dict())
        return wallet

    def get_wallet(self, user_id: str) -> Wallet:
        """
        Load the wallet owned by a user

        Raises:
            WalletNotFound: If the user has no wallet
        """
        data = self.storage.find_one(self.wallets_table, {"user_id": user_id})
        if not data:
            raise WalletNotFound()
        return Wallet.from_dict(data)

    def get_balance(self, user_id: str) -> Dict[str, str]:
        """Formatted balance and wallet creation time"""
        wallet = self.get_wallet(user_id)
        return {
            "balance": format_money(wallet.balance),
            "created_at": wallet.created_at.isoformat(),
        }

    def fund(self, user_id: str, amount: Any) -> Dict[str, Decimal]:
        """
        Credit a wallet from an external (simulated) source

        Args:
            user_id: Wallet owner
            amount: Amount to add

        Returns:
            previous_balance, amount_funded and new_balance

        Raises:
            InvalidAmount: If the amount fails validation
            WalletNotFound: If the user has no wallet
        """
        funding_amount = self._normalize(amount)
        previous, new = self._apply(
            user_id, funding_amount, TransactionType.FUND,
            "Wallet funding from external source"
        )

        log_action(
            self.logger, "info", "Wallet funded",
            user_id=user_id, action="fund", resource="wallet",
            extra={"amount": str(funding_amount), "new_balance": str(new)}
        )
        return {
            "previous_balance": previous,
            "amount_funded": funding_amount,
            "new_balance": new,
        }

    def withdraw(self, user_id: str, amount: Any, account_number: Optional[str],
                 bank_name: Optional[str]) -> Dict[str, Any]:
        """
        Debit a wallet to an external (simulated) bank account

        All inputs are validated before the balance is read.

        Raises:
            InvalidAmount: If the amount fails validation
            InvalidInput: Bad account number or unsupported bank
            WalletNotFound: If the user has no wallet
            InsufficientBalance: If the balance is below the amount
        """
        withdrawal_amount = self._normalize(amount)
        self._validate_account_number(account_number)
        self._validate_bank_name(bank_name)

        holder_name = self.holder_name_provider.lookup(account_number, bank_name)
        previous, new = self._apply(
            user_id, -withdrawal_amount, TransactionType.WITHDRAWAL,
            f"Withdrawal to {bank_name} - {holder_name}"
        )

        log_action(
            self.logger, "info", "Wallet withdrawal",
            user_id=user_id, action="withdraw", resource="wallet",
            extra={"amount": str(withdrawal_amount), "bank_name": bank_name,
                   "new_balance": str(new)}
        )
        return {
            "previous_balance": previous,
            "amount_withdrawn": withdrawal_amount,
            "new_balance": new,
            "account_number": account_number,
            "bank_name": bank_name,
            "account_holder_name": holder_name,
        }

    def list_transactions(self, user_id: str, limit: Any = 50,
                          offset: Any = 0) -> Dict[str, Any]:
        """
        Newest-first page of a user's wallet transactions

        ``has_more`` is true when the page came back full; no total count is taken.

        Raises:
            InvalidPagination: If limit is outside [1, 100] or offset is negative
        """
        limit = self._parse_int(limit, "Limit must be between 1 and 100")
        offset = self._parse_int(offset, "Offset must be a non-negative number")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise InvalidPagination("Limit must be between 1 and 100")
        if offset < 0:
            raise InvalidPagination("Offset must be a non-negative number")

        records = [
            WalletTransaction.from_dict(data)
            for data in reversed(self.storage.find(self.transactions_table, {"user_id": user_id}))
        ]
        records.sort(key=lambda txn: txn.created_at, reverse=True)
        page = records[offset:offset + limit]

        return {
            "transactions": [txn.to_public_dict() for txn in page],
            "total_transactions": len(page),
            "pagination": {
                "limit": limit,
                "offset": offset,
                "has_more": len(page) == limit,
            },
        }

    def list_banks(self) -> List[Dict[str, str]]:
        """Banks accepted as withdrawal destinations"""
        return [
            {"name": bank, "id": re.sub(r"\s+", "_", bank.lower())}
            for bank in self.settings.supported_banks
        ]

    def _apply(self, user_id: str, delta: Decimal, transaction_type: TransactionType,
               description: str) -> Tuple[Decimal, Decimal]:
        """Apply a signed delta to the wallet balance and append a ledger entry"""
        for attempt in range(1, self.settings.balance_update_retries + 1):
            try:
                with self.storage.atomic():
                    wallet = self.get_wallet(user_id)
                    previous = wallet.balance
                    if delta < 0 and previous < -delta:
                        raise InsufficientBalance()

                    new_balance = round_money(previous + delta)
                    now = datetime.now(timezone.utc)
                    updated = self.storage.update_where(
                        self.wallets_table,
                        {"id": wallet.id, "balance": previous},
                        {"balance": new_balance, "updated_at": now}
                    )
                    if updated != 1:
                        raise ConcurrentUpdateError(f"Wallet {wallet.id} changed during update")

                    entry = WalletTransaction(
                        id=str(uuid.uuid4()),
                        created_at=now,
                        updated_at=now,
                        user_id=user_id,
                        type=transaction_type,
                        amount=abs(delta),
                        balance_after=new_balance,
                        description=description,
                    )
                    self.storage.insert(self.transactions_table, entry.id, entry.to_dict())
                return previous, new_balance
            except ConcurrentUpdateError:
                self.logger.warning(
                    "Concurrent wallet update for user %s, attempt %d", user_id, attempt
                )

        raise StoreError("Could not update wallet balance")

    def _normalize(self, amount: Any) -> Decimal:
        return normalize(amount, self.settings.min_amount, self.settings.max_amount)

    def _validate_account_number(self, account_number: Any) -> None:
        if not account_number or not isinstance(account_number, str):
            raise InvalidInput("Account number is required")
        min_length = self.settings.account_number_min_length
        max_length = self.settings.account_number_max_length
        if len(account_number) < min_length or len(account_number) > max_length:
            raise InvalidInput(
                f"Account number must be between {min_length} and {max_length} characters"
            )
        if not re.fullmatch(r"[0-9]+", account_number):
            raise InvalidInput("Account number must contain only digits")

    def _validate_bank_name(self, bank_name: Any) -> None:
        if not bank_name or not isinstance(bank_name, str):
            raise InvalidInput("Bank name is required")
        if bank_name not in self.settings.supported_banks:
            raise InvalidInput("Invalid bank name")

    @staticmethod
    def _parse_int(value: Any, message: str) -> int:
        if isinstance(value, bool):
            raise InvalidPagination(message)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise InvalidPagination(message)
