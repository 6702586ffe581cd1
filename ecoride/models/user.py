"""User Model - Defines the user schema for MongoDB persistence."""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, EmailStr, Field, field_serializer

from ecoride.utils.timezone_utils import utc_now


class UserRole(str, Enum):
    """Capabilities an account can hold. Non-exclusive."""
    TRAVELLER = "TRAVELLER"
    PASSENGER = "PASSENGER"
    ADMIN = "ADMIN"


class VerificationStatus(str, Enum):
    UNVERIFIED = "UNVERIFIED"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


DEFAULT_LEVEL = "Green Newbie"
MAX_TRUST_SCORE = 100

# Highest threshold wins; points must be strictly greater
LEVEL_THRESHOLDS = (
    (5000, "Eco-Warrior"),
    (2000, "Green Commuter"),
    (500, "Rookie Saver"),
)


def level_for_points(loyalty_points: int, current_level: str = DEFAULT_LEVEL) -> str:
    """Derive the loyalty tier; below every threshold the current level is kept."""
    for threshold, level in LEVEL_THRESHOLDS:
        if loyalty_points > threshold:
            return level
    return current_level


class VerificationDetails(BaseModel):
    """Licence and vehicle information submitted by a traveller."""
    license_number: str = Field(..., min_length=1)
    vehicle_plate: str = Field(..., min_length=1)
    vehicle_model: Optional[str] = None
    document_url: Optional[str] = None


class User(BaseModel):
    """
    User model for MongoDB.

    Fields:
    - user_id: Internal immutable UUID
    - roles: Capability set (TRAVELLER / PASSENGER / ADMIN)
    - carbon_saved: Grams of CO2, never decreases
    - ride_credits / loyalty_points: Reward balances
    - level: Tier derived from loyalty_points
    - trust_score: 0-100, adjusted by verification events
    - verification_status / is_verified / verification_details: Traveller vetting
    """
    user_id: str = Field(..., description="Internal UUID")
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    roles: set[UserRole] = Field(default_factory=lambda: {UserRole.PASSENGER})

    rating_avg: float = Field(default=5.0, ge=0, le=5)
    trust_score: float = Field(default=100, ge=0, le=100)

    carbon_saved: float = Field(default=0, ge=0, description="grams")
    ride_credits: int = Field(default=0, ge=0)
    loyalty_points: int = Field(default=0, ge=0)
    level: str = Field(default=DEFAULT_LEVEL)

    is_verified: bool = False
    verification_status: VerificationStatus = Field(default=VerificationStatus.UNVERIFIED)
    verification_details: Optional[VerificationDetails] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True

    @field_serializer("roles")
    def serialize_roles(self, roles: set) -> list[str]:
        return sorted(getattr(r, "value", r) for r in roles)

    def has_role(self, role: Union[UserRole, str]) -> bool:
        """Capability membership test."""
        wanted = getattr(role, "value", role)
        return wanted in {getattr(r, "value", r) for r in self.roles}


class UserCreate(BaseModel):
    """Data required to create an account."""
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    roles: set[UserRole] = Field(default_factory=lambda: {UserRole.PASSENGER})


class ImpactStats(BaseModel):
    """Reward summary shown on the profile page."""
    carbon_saved: float
    loyalty_points: int
    ride_credits: int
    ride_count: int
    level: str
