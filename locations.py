"""Location capture for the wizard.

The browser asks the platform geolocation API for the user's position and
posts the raw latitude/longitude back to the server; ``parse_coordinates``
turns those form values into a validated ``Location``.  When geolocation is
denied or unsupported, the user can type a US zip code instead, which is
resolved through the free zippopotam.us API (no key required).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from config import settings
from models import Location


logger = logging.getLogger(__name__)

ZIP_LOOKUP_URL = "https://api.zippopotam.us/us/{zipcode}"

GEOLOCATION_DENIED_MESSAGE = "Unable to retrieve your location. Please check permissions."
GEOLOCATION_UNSUPPORTED_MESSAGE = "Geolocation is not supported by your browser."


class LocationError(ValueError):
    """Raised when a submitted location cannot be used."""


def _to_float(value: Any, name: str) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise LocationError(f"Missing {name}.")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise LocationError(f"Invalid {name}: {value!r}") from None


def parse_coordinates(
    latitude: Any,
    longitude: Any,
    label: Any = None,
) -> Location:
    """Validate raw geolocation values and build a ``Location``.

    Raises ``LocationError`` if either value is missing, not numeric or
    outside the valid range, or if the label is not a string.
    """
    lat = _to_float(latitude, "latitude")
    lng = _to_float(longitude, "longitude")
    if not -90.0 <= lat <= 90.0:
        raise LocationError(f"Latitude out of range: {lat}")
    if not -180.0 <= lng <= 180.0:
        raise LocationError(f"Longitude out of range: {lng}")
    if label is not None and not isinstance(label, str):
        raise LocationError(f"Invalid label: {label!r}")
    label = label.strip() if label else None
    return Location(latitude=lat, longitude=lng, label=label or None)


def geocode_zip(zipcode: str) -> Optional[Location]:
    """Convert a US zip code to a labelled ``Location``.

    Returns None if the zip code is invalid or the service is down.
    """
    zipcode = (zipcode or "").strip()
    if not zipcode.isdigit() or len(zipcode) != 5:
        return None
    try:
        resp = requests.get(
            ZIP_LOOKUP_URL.format(zipcode=zipcode),
            timeout=settings.GEOCODE_TIMEOUT,
        )
        if resp.status_code != 200:
            return None
        places = resp.json().get("places", [])
        if not places:
            return None
        place = places[0]
        label = ", ".join(
            part for part in (place.get("place name"), place.get("state abbreviation")) if part
        )
        return parse_coordinates(place["latitude"], place["longitude"], label or zipcode)
    except (requests.RequestException, ValueError, KeyError) as exc:
        logger.warning("Zip code lookup failed for %s: %s", zipcode, exc)
        return None
