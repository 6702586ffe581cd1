from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==========================================================================
    # MongoDB Configuration
    # ==========================================================================
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "ecoride"

    # ==========================================================================
    # Redis Configuration
    # ==========================================================================
    redis_url: str = "redis://localhost:6379/0"

    # ==========================================================================
    # Routing Providers
    # ==========================================================================
    google_maps_api_key: Optional[str] = None
    osrm_servers: str = (
        "https://router.project-osrm.org,"
        "https://routing.openstreetmap.de/routed-car"
    )
    routing_timeout_seconds: float = 8.0  # Per strategy, not per chain
    road_distance_factor: float = 1.35  # Straight line -> road distance
    fallback_speed_kmh: float = 40.0

    @property
    def osrm_servers_list(self) -> List[str]:
        """Parse comma-separated OSRM base URLs into list."""
        return [
            s.strip().rstrip("/")
            for s in self.osrm_servers.split(",")
            if s.strip()
        ]

    # ==========================================================================
    # Matching Configuration
    # ==========================================================================
    default_max_distance_km: float = 25.0
    corridor_multiplier: float = 2.0  # Corridor budget = radius * multiplier
    direction_tolerance_km: float = 5.0
    max_backtrack_km: Optional[float] = 2.0  # None disables the backtrack check

    # ==========================================================================
    # Trip Completion
    # ==========================================================================
    default_driver_distance_meters: int = 5000
    default_passenger_distance_meters: int = 0

    # ==========================================================================
    # Rate Limiting
    # ==========================================================================
    rate_limit_per_minute: int = 60
    rate_limit_auth_per_minute: int = 300

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    api_v1_str: str = "/api/v1"
    debug: bool = True
    cors_origins: str = "*"
    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins into list."""
        if self.cors_origins == "*":
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-reading env vars on every request.
    """
    return Settings()


# Convenience export
settings = get_settings()
