"""
Users Router

Account registration, profile, impact statistics and traveller
verification requests.
"""

from fastapi import APIRouter, Depends, status

from ecoride.dependencies import get_current_user, get_user_service
from ecoride.models.user import ImpactStats, User, UserCreate, VerificationDetails
from ecoride.services.user_service import UserService


router = APIRouter()


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    users: UserService = Depends(get_user_service),
):
    """Register the account record for an identity the gateway authenticated."""
    return await users.create_user(data)


@router.get("/me", response_model=User)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/me/impact", response_model=ImpactStats)
async def get_impact(
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Carbon saved, points, credits, level and completed ride count."""
    return await users.get_impact_stats(current_user)


@router.post("/me/verification", response_model=User)
async def submit_verification(
    details: VerificationDetails,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Submit licence and vehicle details. Travellers only."""
    return await users.submit_verification(current_user, details)
