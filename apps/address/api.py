from typing import Any, Dict, List
from django.http import HttpRequest, HttpResponse
from ninja import Router
from ninja.errors import HttpError

from . import services
from .services import AddressLookupError

router = Router(tags=["Address"])

CACHE_CONTROL = 'public, max-age=3600'


@router.get("/search", response=List[Dict[str, Any]], auth=None)
def search(request: HttpRequest, response: HttpResponse, q: str, limit: int = services.DEFAULT_LIMIT):
    if len(q.strip()) < 2:
        raise HttpError(400, "Query must be at least 2 characters")
    try:
        results = services.search(q.strip(), limit=max(1, min(limit, 20)))
    except AddressLookupError as e:
        raise HttpError(502, str(e))
    response['Cache-Control'] = CACHE_CONTROL
    return results


@router.get("/reverse", response=Dict[str, Any], auth=None)
def reverse(request: HttpRequest, response: HttpResponse, lat: float, lon: float):
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise HttpError(400, "Invalid coordinates")
    try:
        result = services.reverse(lat, lon)
    except AddressLookupError as e:
        raise HttpError(502, str(e))
    response['Cache-Control'] = CACHE_CONTROL
    return result


@router.get("/postal-code/{code}", response=List[Dict[str, Any]], auth=None)
def postal_lookup(request: HttpRequest, response: HttpResponse, code: str):
    try:
        results = services.postal_lookup(code)
    except AddressLookupError as e:
        raise HttpError(502, str(e))
    response['Cache-Control'] = CACHE_CONTROL
    return results
