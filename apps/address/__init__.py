"""Geocoding and postal code lookup proxies."""
