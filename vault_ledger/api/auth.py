"""
Authentication and service wiring dependencies
"""

from typing import Optional
import threading

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..auth import PasswordPolicy, TokenIdentity, TokenIssuer
from ..config import LedgerConfig, get_config
from ..deductions import DeductionScheduler
from ..storage import StorageInterface, create_storage
from ..users import UserManager
from ..vaults import VaultManager
from ..wallets import AccountHolderNameProvider, WalletEngine


class LedgerSystem:
    """Vault ledger with all components initialized"""

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        storage: Optional[StorageInterface] = None,
        holder_name_provider: Optional[AccountHolderNameProvider] = None
    ):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.database_url)

        settings = self.config.wallet_settings()
        self.wallet_engine = WalletEngine(self.storage, settings, holder_name_provider)
        self.vault_manager = VaultManager(self.storage, settings.balance_update_retries)
        self.deduction_scheduler = DeductionScheduler(
            self.storage, self.wallet_engine, self.vault_manager
        )
        self.token_issuer = TokenIssuer(
            secret=self.config.jwt_secret,
            expiry_hours=self.config.jwt_expiry_hours,
            algorithm=self.config.jwt_algorithm
        )
        self.user_manager = UserManager(
            self.storage, self.wallet_engine, self.token_issuer,
            PasswordPolicy(min_length=self.config.password_min_length)
        )

    def close(self) -> None:
        self.storage.close()


# Created on first use so importing the API does not open a database
_ledger_system: Optional[LedgerSystem] = None
_ledger_system_lock = threading.Lock()


def get_ledger_system() -> LedgerSystem:
    global _ledger_system
    if _ledger_system is None:
        with _ledger_system_lock:
            if _ledger_system is None:
                _ledger_system = LedgerSystem()
    return _ledger_system


security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    system: LedgerSystem = Depends(get_ledger_system)
) -> TokenIdentity:
    """Dependency that validates the bearer token and returns the caller identity"""
    token = credentials.credentials if credentials else None
    return system.user_manager.authenticate(token)
