"""
EcoRide Database Module

MongoDB and Redis connection management.
"""

from typing import Optional

import redis.asyncio as redis
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from ecoride.config import settings


# =============================================================================
# MongoDB Connection
# =============================================================================

class MongoDB:
    """MongoDB connection manager."""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None


mongo = MongoDB()


async def init_mongodb():
    """Initialize MongoDB connection and create indexes."""
    mongo.client = AsyncIOMotorClient(settings.mongodb_uri, tz_aware=True)
    mongo.db = mongo.client[settings.mongodb_database]

    await mongo.db.users.create_index("user_id", unique=True)
    await mongo.db.users.create_index("email", unique=True)

    await mongo.db.trips.create_index("trip_id", unique=True)
    await mongo.db.trips.create_index("driver_id")

    # Search query: status + seats + departure range
    await mongo.db.trips.create_index([
        ("status", 1),
        ("departure_time", 1)
    ])

    await mongo.db.bookings.create_index("booking_id", unique=True)
    await mongo.db.bookings.create_index("passenger_id")
    await mongo.db.bookings.create_index([
        ("trip_id", 1),
        ("status", 1)
    ])

    await mongo.db.notifications.create_index("notification_id", unique=True)
    await mongo.db.notifications.create_index([("user_id", 1), ("read", 1)])
    await mongo.db.notifications.create_index([("user_id", 1), ("created_at", -1)])

    await mongo.db.chat_messages.create_index("message_id", unique=True)
    await mongo.db.chat_messages.create_index([("trip_id", 1), ("created_at", 1)])

    await mongo.db.task_failures.create_index("failure_id", unique=True)
    await mongo.db.task_failures.create_index("created_at")

    await mongo.db.reports.create_index("report_id", unique=True)
    await mongo.db.reports.create_index([("status", 1), ("created_at", -1)])


async def close_mongodb():
    """Close MongoDB connection."""
    if mongo.client:
        mongo.client.close()


def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    if mongo.db is None:
        raise RuntimeError("Database not initialized")
    return mongo.db


# =============================================================================
# Redis Connection
# =============================================================================

class RedisClient:
    """Redis connection manager."""

    client: Optional[redis.Redis] = None


redis_client = RedisClient()


async def init_redis():
    """Initialize Redis connection."""
    redis_client.client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        health_check_interval=30,
        socket_connect_timeout=5,
        retry_on_timeout=True,
        socket_keepalive=True
    )


async def close_redis():
    """Close Redis connection."""
    if redis_client.client:
        await redis_client.client.aclose()


def get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if redis_client.client is None:
        raise RuntimeError("Redis not initialized")
    return redis_client.client


# =============================================================================
# Combined Initialization
# =============================================================================

async def init_db():
    """Initialize all database connections."""
    await init_mongodb()
    await init_redis()


async def close_db():
    """Close all database connections."""
    await close_mongodb()
    await close_redis()
