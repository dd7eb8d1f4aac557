"""
Vault Ledger

A wallet and savings-vault backend with Decimal money handling,
atomic balance updates and a scheduled vault deduction sweep.
"""

__version__ = "1.0.0"
