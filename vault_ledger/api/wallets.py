"""
Wallet endpoints
"""

from fastapi import APIRouter, Depends

from .auth import LedgerSystem, get_current_user, get_ledger_system
from .schemas import FundWalletRequest, WithdrawRequest
from ..auth import TokenIdentity
from ..money import to_json_number


router = APIRouter()


@router.get("/balance")
async def get_balance(
    identity: TokenIdentity = Depends(get_current_user),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get the caller's wallet balance"""
    return system.wallet_engine.get_balance(identity.user_id)


@router.get("/banks")
async def get_banks(
    identity: TokenIdentity = Depends(get_current_user),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Banks available for withdrawal"""
    return {"banks": system.wallet_engine.list_banks()}


@router.post("/fund")
async def fund_wallet(
    request: FundWalletRequest,
    identity: TokenIdentity = Depends(get_current_user),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Fund the caller's wallet from a simulated external source"""
    result = system.wallet_engine.fund(identity.user_id, request.amount)
    return {
        "message": "Wallet funded successfully",
        "previous_balance": to_json_number(result["previous_balance"]),
        "amount_funded": to_json_number(result["amount_funded"]),
        "new_balance": to_json_number(result["new_balance"]),
    }


@router.post("/withdraw")
async def withdraw(
    request: WithdrawRequest,
    identity: TokenIdentity = Depends(get_current_user),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Withdraw to a simulated bank account"""
    result = system.wallet_engine.withdraw(
        identity.user_id, request.amount, request.account_number, request.bank_name
    )
    return {
        "message": "Withdrawal successful",
        "previous_balance": to_json_number(result["previous_balance"]),
        "amount_withdrawn": to_json_number(result["amount_withdrawn"]),
        "new_balance": to_json_number(result["new_balance"]),
        "account_number": result["account_number"],
        "bank_name": result["bank_name"],
        "account_holder_name": result["account_holder_name"],
        "transaction_type": "withdrawal",
    }


@router.get("/transactions")
async def get_transactions(
    limit: str = "50",
    offset: str = "0",
    identity: TokenIdentity = Depends(get_current_user),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Newest-first transaction history"""
    return system.wallet_engine.list_transactions(identity.user_id, limit=limit, offset=offset)
