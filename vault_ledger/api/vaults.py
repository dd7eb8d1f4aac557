"""
Vault endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import LedgerSystem, get_current_user, get_ledger_system
from .schemas import CreateVaultRequest, VaultDepositRequest
from ..auth import TokenIdentity
from ..money import to_json_number


router = APIRouter()


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_vault(
    request: CreateVaultRequest,
    identity: TokenIdentity = Depends(get_current_user),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create a vault owned by the caller"""
    vault = system.vault_manager.create_vault(
        user_id=identity.user_id,
        title=request.title,
        target_amount=request.amount,
        lock_date=request.lock_date,
        funding_method=request.funding_method,
        deduction_amount=request.deduction_amt,
        deduction_frequency=request.deduction_freq
    )
    return {"vault": vault.to_public_dict()}


@router.get("")
async def list_vaults(
    identity: TokenIdentity = Depends(get_current_user),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """List the caller's vaults"""
    vaults = system.vault_manager.list_vaults(identity.user_id)
    return {"vaults": [vault.to_public_dict() for vault in vaults]}


@router.get("/{vault_id}")
async def get_vault(
    vault_id: str,
    identity: TokenIdentity = Depends(get_current_user),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get one of the caller's vaults"""
    vault = system.vault_manager.get_vault(vault_id, identity.user_id)
    return {"vault": vault.to_public_dict()}


@router.patch("/{vault_id}/deposit")
async def deposit_to_vault(
    vault_id: str,
    request: VaultDepositRequest,
    identity: TokenIdentity = Depends(get_current_user),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Deposit into one of the caller's vaults"""
    new_balance = system.vault_manager.deposit(vault_id, identity.user_id, request.amount)
    return {"message": "Deposit successful", "newBalance": to_json_number(new_balance)}
