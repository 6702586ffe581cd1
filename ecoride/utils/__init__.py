"""EcoRide utility helpers."""
