"""Nominatim (OpenStreetMap) geocoding client: forward, reverse, autocomplete."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from cotravel.errors import NotFoundError, ProviderError, ValidationError
from cotravel.services.geo import LatLng

logger = logging.getLogger(__name__)

DEFAULT_NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org"
ADDRESS_PLACEHOLDER = "Address not available"


class NominatimGeocodingProvider:
    name = "nominatim"

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = DEFAULT_NOMINATIM_BASE_URL,
        user_agent: str = "cotravel/0.1",
        min_autocomplete_chars: int = 3,
        autocomplete_limit: int = 5,
        country_codes: str = "",
        viewbox: str = "",
    ) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.min_autocomplete_chars = min_autocomplete_chars
        self.autocomplete_limit = autocomplete_limit
        self.country_codes = country_codes
        self.viewbox = viewbox

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        try:
            r = await self.client.get(
                f"{self.base_url}/{path}", params=params, headers={"User-Agent": self.user_agent}
            )
            r.raise_for_status()
            return r.json()
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(self.name, "malformed JSON") from e

    async def forward(self, address: str) -> LatLng:
        if not address or not address.strip():
            raise ValidationError("Address is required", fields=["address"])
        data = await self._get("search", {"format": "json", "q": address.strip(), "limit": 1})
        if not isinstance(data, list) or not data:
            raise NotFoundError("Coordinates not found")
        try:
            return LatLng(lat=float(data[0]["lat"]), lng=float(data[0]["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(self.name, f"malformed search result: {e}") from e

    async def reverse(self, point: LatLng) -> str:
        params = {
            "lat": point.lat,
            "lon": point.lng,
            "format": "json",
            "addressdetails": 1,
            "zoom": 18,
        }
        try:
            data = await self._get("reverse", params)
        except ProviderError as e:
            logger.warning("reverse geocoding failed for %s,%s: %s", point.lat, point.lng, e)
            return ADDRESS_PLACEHOLDER
        if isinstance(data, dict) and data.get("display_name"):
            return str(data["display_name"])
        return ADDRESS_PLACEHOLDER

    async def autocomplete(self, prefix: str) -> list[str]:
        if not prefix or len(prefix.strip()) < self.min_autocomplete_chars:
            raise ValidationError(
                f"Input must be at least {self.min_autocomplete_chars} characters", fields=["input"]
            )
        params: dict[str, Any] = {
            "format": "json",
            "q": prefix.strip(),
            "addressdetails": 1,
            "limit": self.autocomplete_limit,
        }
        if self.country_codes:
            params["countrycodes"] = self.country_codes
        if self.viewbox:
            params["viewbox"] = self.viewbox
            params["bounded"] = 1
        data = await self._get("search", params)
        if not isinstance(data, list):
            raise ProviderError(self.name, "unexpected payload")
        return [str(place["display_name"]) for place in data if isinstance(place, dict) and place.get("display_name")]
