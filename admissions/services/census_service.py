"""Admissions Analytics — Census Lookup Service.

Address → coordinates (``google-maps`` edge function) → ACS figures for the
surrounding tracts (``census-data`` edge function). Both hops are cached
for the life of the service's LookupCache.
"""

from pydantic import ValidationError

from admissions.connectors.edge_functions import EdgeFunctionClient
from admissions.core.logging import get_logger
from admissions.core.lookup_cache import LookupCache, make_key
from admissions.models.census_models import CensusLookup, GeocodeResult

logger = get_logger("services.census")

GEOCODE_FUNCTION = "google-maps"
CENSUS_FUNCTION = "census-data"


class InvalidAddressError(ValueError):
    """Raised when the address is blank."""


class GeocodingError(Exception):
    """Raised when an address cannot be resolved to coordinates."""


class CensusUnavailableError(Exception):
    """Raised when no census data comes back for a location."""


class CensusService:
    """Cached geocoding and census lookups."""

    def __init__(self, client: EdgeFunctionClient, cache: LookupCache):
        self.client = client
        self.cache = cache

    async def geocode(self, address: str) -> GeocodeResult:
        address = (address or "").strip()
        if not address:
            raise InvalidAddressError("Please provide a valid address to search.")

        key = make_key("geocode", address)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        rows = await self.client.invoke_rows(
            GEOCODE_FUNCTION, {"operation": "geocode", "address": address}
        )
        if not rows or not rows[0].get("coordinates"):
            raise GeocodingError(f"Could not find coordinates for address: {address}")
        try:
            result = GeocodeResult.model_validate(
                {"formattedAddress": address, **rows[0]}
            )
        except ValidationError as e:
            raise GeocodingError(f"Invalid geocoding result for address: {address}") from e

        self.cache.set(key, result)
        logger.info(
            f"Geocoded '{address}' to ({result.coordinates.lat}, {result.coordinates.lng})"
        )
        return result

    async def lookup(self, address: str) -> CensusLookup:
        """Census figures around an address."""
        location = await self.geocode(address)
        lat, lng = location.coordinates.lat, location.coordinates.lng

        key = make_key("census", lat, lng)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        payload = await self.client.invoke(
            CENSUS_FUNCTION,
            {"lat": lat, "lng": lng, "address": location.formatted_address},
        )
        if not isinstance(payload, dict) or not payload.get("data"):
            raise CensusUnavailableError(
                f"No census data returned for coordinates ({lat}, {lng})"
            )
        try:
            census = CensusLookup.model_validate(
                {
                    "searchedAddress": location.formatted_address,
                    **payload,
                    "coordinates": {"lat": lat, "lng": lng},
                }
            )
        except ValidationError as e:
            raise CensusUnavailableError(
                f"Malformed census data for coordinates ({lat}, {lng})"
            ) from e

        self.cache.set(key, census)
        logger.info(
            f"Census data for '{location.formatted_address}': "
            f"{census.tracts_included} tracts within {census.radius_miles} miles"
        )
        return census
