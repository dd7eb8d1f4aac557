"""
User registration, login and profile endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import LedgerSystem, get_current_user, get_ledger_system
from .schemas import LoginRequest, RegisterRequest
from ..auth import TokenIdentity


router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Register a user and open an empty wallet"""
    user = system.user_manager.register(
        name=request.name,
        phone=request.phone,
        password=request.password
    )
    return {"user": user.to_public_dict()}


@router.post("/login")
async def login(
    request: LoginRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Authenticate and return a bearer token"""
    session = system.user_manager.login(phone=request.phone, password=request.password)
    return {"user": session["user"].to_public_dict(), "token": session["token"]}


# Must be declared before /{user_id}
@router.get("/profile")
async def get_profile(
    identity: TokenIdentity = Depends(get_current_user),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get the caller's own profile"""
    user = system.user_manager.get_user(identity.user_id)
    return {"user": user.to_public_dict()}


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    identity: TokenIdentity = Depends(get_current_user),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get a user by id"""
    user = system.user_manager.get_user(user_id)
    return {"user": user.to_public_dict()}
