"""
User Service

Account lookup, traveller verification and impact statistics.
"""

import logging
import uuid
from typing import List, Optional

from ecoride.models.user import (
    DEFAULT_LEVEL,
    ImpactStats,
    User,
    UserCreate,
    UserRole,
    VerificationDetails,
    VerificationStatus,
)
from ecoride.repositories.base import BookingRepository, TripRepository, UserRepository
from ecoride.services.exceptions import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)


VERIFICATION_TRUST_BOOST = 20

SUBMITTABLE_STATUSES = (
    VerificationStatus.UNVERIFIED,
    VerificationStatus.PENDING,
    VerificationStatus.REJECTED,
)


class UserService:
    """User management service."""

    def __init__(
        self,
        users: Optional[UserRepository] = None,
        trips: Optional[TripRepository] = None,
        bookings: Optional[BookingRepository] = None,
    ):
        if users is None or trips is None or bookings is None:
            from ecoride.repositories import mongo
            users = users or mongo.MongoUserRepository()
            trips = trips or mongo.MongoTripRepository()
            bookings = bookings or mongo.MongoBookingRepository()
        self.users = users
        self.trips = trips
        self.bookings = bookings

    async def create_user(self, data: UserCreate) -> User:
        user = User(
            user_id=str(uuid.uuid4()),
            name=data.name,
            email=data.email,
            phone=data.phone,
            roles=set(data.roles),
        )
        await self.users.insert(user)
        logger.info(f"User {user.user_id} created with roles {sorted(r.value for r in data.roles)}")
        return user

    async def get_user(self, user_id: str) -> User:
        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    # =========================================================================
    # Verification
    # =========================================================================

    async def submit_verification(self, user: User, details: VerificationDetails) -> User:
        """
        Traveller submits licence and vehicle details for review.

        Allowed from UNVERIFIED, PENDING (resubmission) and REJECTED; a
        verified traveller cannot reopen review.
        """
        if not user.has_role(UserRole.TRAVELLER):
            raise AuthorizationError("Only Travellers need vehicle verification")

        updated = await self.users.update_verification(
            user.user_id, SUBMITTABLE_STATUSES, VerificationStatus.PENDING, details=details
        )
        if updated is None:
            await self._raise_verification_conflict(user.user_id, "submit")
        logger.info(f"User {user.user_id} submitted verification details")
        return updated

    async def approve_verification(self, admin: User, user_id: str) -> User:
        """Admin approval of a PENDING request: verified, trust +20 capped at 100."""
        if not admin.has_role(UserRole.ADMIN):
            raise AuthorizationError("Admin access required")

        updated = await self.users.update_verification(
            user_id,
            (VerificationStatus.PENDING,),
            VerificationStatus.VERIFIED,
            is_verified=True,
            trust_delta=VERIFICATION_TRUST_BOOST,
        )
        if updated is None:
            await self._raise_verification_conflict(user_id, "approve")

        logger.info(f"User {user_id} verified by admin {admin.user_id}")
        return updated

    async def reject_verification(self, admin: User, user_id: str) -> User:
        if not admin.has_role(UserRole.ADMIN):
            raise AuthorizationError("Admin access required")

        updated = await self.users.update_verification(
            user_id,
            (VerificationStatus.PENDING,),
            VerificationStatus.REJECTED,
            is_verified=False,
        )
        if updated is None:
            await self._raise_verification_conflict(user_id, "reject")

        logger.info(f"Verification of {user_id} rejected by admin {admin.user_id}")
        return updated

    async def _raise_verification_conflict(self, user_id: str, action: str):
        user = await self.get_user(user_id)
        raise InvalidTransitionError(
            f"Cannot {action} verification while status is {user.verification_status}"
        )

    # =========================================================================
    # Administration
    # =========================================================================

    async def list_users(self, admin: User, limit: int = 50) -> List[User]:
        """Newest accounts first."""
        if not admin.has_role(UserRole.ADMIN):
            raise AuthorizationError("Admin access required")
        return await self.users.find_recent(limit)

    async def delete_user(self, admin: User, user_id: str) -> None:
        if not admin.has_role(UserRole.ADMIN):
            raise AuthorizationError("Admin access required")
        if user_id == admin.user_id:
            raise ValidationFailedError("Admins cannot delete their own account")

        if not await self.users.delete(user_id):
            raise NotFoundError("User not found")
        logger.info(f"User {user_id} deleted by admin {admin.user_id}")

    # =========================================================================
    # Impact
    # =========================================================================

    async def get_impact_stats(self, user: User) -> ImpactStats:
        """
        Reward summary. Ride count is completed trips driven for travellers,
        completed bookings otherwise.
        """
        if user.has_role(UserRole.TRAVELLER):
            ride_count = await self.trips.count_completed_by_driver(user.user_id)
        else:
            ride_count = await self.bookings.count_completed_by_passenger(user.user_id)

        return ImpactStats(
            carbon_saved=user.carbon_saved or 0,
            loyalty_points=user.loyalty_points or 0,
            ride_credits=user.ride_credits or 0,
            ride_count=ride_count,
            level=user.level or DEFAULT_LEVEL,
        )
