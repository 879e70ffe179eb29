"""Cached forward geocoding and autocomplete for the pass-through map endpoints."""
from cotravel.config import Settings
from cotravel.services.geo import LatLng
from cotravel.services.geo_cache import GeoCache, as_str_list, decode_hit, make_cache_key
from cotravel.services.outcome import bounded
from cotravel.services.providers import GeocodingProvider


def _decode_point(value) -> LatLng:
    return LatLng(lat=float(value["lat"]), lng=float(value["lng"]))


class GeocodingService:
    def __init__(self, geocoder: GeocodingProvider, cache: GeoCache, settings: Settings) -> None:
        self.geocoder = geocoder
        self.cache = cache
        self.settings = settings

    async def coordinates(self, address: str) -> LatLng:
        """Raises ValidationError / NotFoundError / ProviderError; nothing to fall back to here."""
        key = make_cache_key("forward", address=" ".join((address or "").lower().split()))
        cached = decode_hit(key, await self.cache.get(key), _decode_point)
        if cached is not None:
            return cached
        point = await bounded(
            self.geocoder.forward(address), timeout=self.settings.PROVIDER_TIMEOUT_SECONDS, label="geocoding"
        )
        await self.cache.set(key, {"lat": point.lat, "lng": point.lng})
        return point

    async def suggestions(self, prefix: str) -> list[str]:
        key = make_cache_key("autocomplete", prefix=" ".join((prefix or "").lower().split()))
        cached = decode_hit(key, await self.cache.get(key), as_str_list)
        if cached is not None:
            return cached
        found = await bounded(
            self.geocoder.autocomplete(prefix), timeout=self.settings.PROVIDER_TIMEOUT_SECONDS, label="autocomplete"
        )
        await self.cache.set(key, found)
        return found
