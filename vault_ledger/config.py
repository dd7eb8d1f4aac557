"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic_settings import BaseSettings


DEFAULT_BANKS = [
    "First National Bank",
    "City Trust Bank",
    "Metropolitan Savings",
    "Union Credit Bank",
    "Heritage Financial",
    "Central Trust Co",
    "Premier Banking",
    "Community Bank",
]

DEFAULT_FIRST_NAMES = [
    "John", "Sarah", "Michael", "Emma", "David",
    "Lisa", "Robert", "Anna", "James", "Maria",
]

DEFAULT_LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones",
    "Garcia", "Miller", "Davis", "Wilson", "Taylor",
]


@dataclass(frozen=True)
class WalletSettings:
    """
    Immutable wallet rules, built once at startup and handed to the wallet engine.
    """
    supported_banks: Tuple[str, ...] = tuple(DEFAULT_BANKS)
    first_names: Tuple[str, ...] = tuple(DEFAULT_FIRST_NAMES)
    last_names: Tuple[str, ...] = tuple(DEFAULT_LAST_NAMES)
    min_amount: Decimal = Decimal("0.01")
    max_amount: Decimal = Decimal("1000000.00")
    account_number_min_length: int = 8
    account_number_max_length: int = 20
    balance_update_retries: int = 3


class LedgerConfig(BaseSettings):
    """Vault ledger service configuration"""

    # Database configuration
    database_url: str = "sqlite:///vault_ledger.db"  # memory://, sqlite:///path or postgresql://...

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    api_prefix: str = "/api"

    # Security configuration
    jwt_secret: str = "change-me-in-production"
    jwt_expiry_hours: int = 24
    jwt_algorithm: str = "HS256"
    password_min_length: int = 6

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Business rules configuration
    min_transaction_amount: str = "0.01"
    max_transaction_amount: str = "1000000.00"
    balance_update_retries: int = 3
    supported_banks: List[str] = list(DEFAULT_BANKS)
    holder_first_names: List[str] = list(DEFAULT_FIRST_NAMES)
    holder_last_names: List[str] = list(DEFAULT_LAST_NAMES)

    class Config:
        env_prefix = "VAULT_LEDGER_"
        env_file = ".env"
        case_sensitive = False

    def wallet_settings(self) -> WalletSettings:
        """Freeze the wallet-related settings"""
        return WalletSettings(
            supported_banks=tuple(self.supported_banks),
            first_names=tuple(self.holder_first_names),
            last_names=tuple(self.holder_last_names),
            min_amount=Decimal(self.min_transaction_amount),
            max_amount=Decimal(self.max_transaction_amount),
            balance_update_retries=self.balance_update_retries,
        )


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config(overrides: Optional[dict] = None) -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig(**(overrides or {}))
    return config
