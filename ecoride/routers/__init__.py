"""EcoRide Routers Package"""

from ecoride.routers import (
    admin,
    bookings,
    notifications,
    reports,
    trips,
    users,
    websocket,
)

__all__ = [
    "admin",
    "bookings",
    "notifications",
    "reports",
    "trips",
    "users",
    "websocket",
]
