"""
Address lookup through Nominatim (OpenStreetMap) and Geonames.
All calls use a fixed timeout; any upstream failure raises
AddressLookupError.
"""
import logging
from typing import Any, Dict, List

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

USER_AGENT = 'storefront-backend (geocoding)'
DEFAULT_COUNTRY_CODE = 'bd'
DEFAULT_LIMIT = 5


class AddressLookupError(Exception):
    """Raised when an upstream geocoding service fails."""


def _get(url: str, params: Dict[str, Any]) -> Any:
    try:
        response = requests.get(
            url,
            params=params,
            headers={'User-Agent': USER_AGENT, 'Accept': 'application/json'},
            timeout=settings.ADDRESS_LOOKUP_TIMEOUT,
        )
        response.raise_for_status()
        return response.json()
    except requests.Timeout as e:
        logger.warning(f"Address lookup timed out: {url}")
        raise AddressLookupError("Address service timed out") from e
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Address lookup failed for {url}: {e}")
        raise AddressLookupError("Address service unavailable") from e


def search(q: str, limit: int = DEFAULT_LIMIT, country_codes: str = DEFAULT_COUNTRY_CODE) -> List[Dict[str, Any]]:
    """Forward geocode free text."""
    return _get(f"{settings.NOMINATIM_URL}/search", {
        'q': q,
        'format': 'json',
        'addressdetails': 1,
        'limit': limit,
        'countrycodes': country_codes,
    })


def reverse(lat: float, lon: float) -> Dict[str, Any]:
    """Reverse geocode a coordinate."""
    return _get(f"{settings.NOMINATIM_URL}/reverse", {
        'lat': lat,
        'lon': lon,
        'format': 'json',
        'addressdetails': 1,
    })


def postal_lookup(code: str, country: str = DEFAULT_COUNTRY_CODE.upper()) -> List[Dict[str, Any]]:
    """Places matching a postal code."""
    if not settings.GEONAMES_USERNAME:
        raise AddressLookupError("Geonames username is not configured")

    data = _get(f"{settings.GEONAMES_URL}/postalCodeSearchJSON", {
        'postalcode': code,
        'country': country,
        'username': settings.GEONAMES_USERNAME,
    })
    if isinstance(data, dict) and 'status' in data:
        # Geonames reports errors in a 200 body
        logger.warning(f"Geonames error for {code}: {data['status']}")
        raise AddressLookupError(data['status'].get('message', 'Geonames error'))
    return data.get('postalCodes', [])
