"""
Pydantic schemas for API requests
"""

from decimal import Decimal
from datetime import date
from typing import Optional
from pydantic import BaseModel, Field


# User schemas
class RegisterRequest(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    phone: Optional[str] = None
    password: Optional[str] = None


# Vault schemas
class CreateVaultRequest(BaseModel):
    title: Optional[str] = None
    amount: Optional[Decimal] = Field(None, description="Target amount")
    lock_date: Optional[date] = None
    funding_method: Optional[str] = Field(None, description="wallet or card")
    deduction_amt: Optional[Decimal] = Field(None, description="Amount per scheduled deduction")
    deduction_freq: Optional[str] = Field(None, description="daily, weekly or monthly")


class VaultDepositRequest(BaseModel):
    amount: Optional[Decimal] = None


# Wallet schemas
class FundWalletRequest(BaseModel):
    amount: Optional[Decimal] = None


class WithdrawRequest(BaseModel):
    amount: Optional[Decimal] = None
    account_number: Optional[str] = None
    bank_name: Optional[str] = None
