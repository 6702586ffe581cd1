"""Location Model - Address label plus a GeoJSON-ordered coordinate pair."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Location(BaseModel):
    """Geographic point with an optional human-readable address."""

    address: Optional[str] = Field(None, description="Human-readable address")
    coordinates: list[float] = Field(..., description="[longitude, latitude]")

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, value: list[float]) -> list[float]:
        if len(value) != 2:
            raise ValueError("coordinates must be [longitude, latitude]")
        lng, lat = value
        if not -180 <= lng <= 180:
            raise ValueError("longitude must be between -180 and 180")
        if not -90 <= lat <= 90:
            raise ValueError("latitude must be between -90 and 90")
        return value

    @classmethod
    def from_lat_lng(cls, lat: float, lng: float, address: Optional[str] = None) -> "Location":
        """Create Location from latitude and longitude."""
        return cls(address=address, coordinates=[lng, lat])

    @property
    def latitude(self) -> float:
        return self.coordinates[1]

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def lat_lng(self) -> tuple[float, float]:
        return (self.coordinates[1], self.coordinates[0])
