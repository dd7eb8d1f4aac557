"""
Deduction sweep endpoint, intended for an external scheduler (cron)
"""

from fastapi import APIRouter, Depends

from .auth import LedgerSystem, get_ledger_system


router = APIRouter()


@router.post("/simulate")
async def simulate_deductions(system: LedgerSystem = Depends(get_ledger_system)):
    """Run one deduction sweep over all vaults"""
    sweep = system.deduction_scheduler.run_sweep()
    return sweep.to_dict()
