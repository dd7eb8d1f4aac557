"""
Error Taxonomy Module

Domain exceptions raised by the engines. Each carries the HTTP status and
machine-readable error code the API layer reports to callers.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for all vault ledger errors"""

    status_code = 500
    error_code = "INTERNAL_ERROR"
    default_message = "Something went wrong. Please try again later."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# 400
class InvalidInput(LedgerError):
    status_code = 400
    error_code = "INVALID_INPUT"
    default_message = "Invalid input"


class InvalidAmount(InvalidInput):
    error_code = "VALIDATION_ERROR"
    default_message = "Amount must be a valid number"


class InvalidPagination(InvalidInput):
    error_code = "VALIDATION_ERROR"
    default_message = "Invalid pagination parameters"


class InsufficientBalance(LedgerError):
    status_code = 400
    error_code = "INSUFFICIENT_BALANCE"
    default_message = "Insufficient balance"


# 401
class Unauthorized(LedgerError):
    status_code = 401
    error_code = "UNAUTHORIZED"
    default_message = "Not authenticated"


class WrongPassword(Unauthorized):
    error_code = "WRONG_PASSWORD"
    default_message = "Invalid password"


# 404
class NotFound(LedgerError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class UserNotFound(NotFound):
    error_code = "USER_NOT_FOUND"
    default_message = "User not found"


class WalletNotFound(NotFound):
    error_code = "WALLET_NOT_FOUND"
    default_message = "Wallet not found"


class VaultNotFound(NotFound):
    error_code = "VAULT_NOT_FOUND"
    default_message = "Vault not found"


# 409
class Conflict(LedgerError):
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Resource already exists"


class UserExists(Conflict):
    error_code = "USER_EXISTS"
    default_message = "User already exists"


# 500
class StoreError(LedgerError):
    """Underlying record store failure. Detail is logged, never returned."""
    error_code = "DB_ERROR"


class DuplicateRecordError(StoreError):
    """Insert collided with an existing record id"""
    error_code = "DUPLICATE_RECORD"


class ConcurrentUpdateError(StoreError):
    """Conditional update matched no row because the row changed underneath"""
    error_code = "CONCURRENT_UPDATE"
