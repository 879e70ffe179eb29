"""Overpass API (OpenStreetMap) client: public places near a point and safety feature counts."""
from __future__ import annotations

from typing import Any

import httpx

from cotravel.errors import ProviderError
from cotravel.services.geo import LatLng, PointOfInterest, SafetyFeatures

DEFAULT_OVERPASS_URL = "https://overpass-api.de/api/interpreter"

# Radii (m) used when counting safety features around a meeting point
POLICE_RADIUS_M = 500
HOSPITAL_RADIUS_M = 500
STREET_LAMP_RADIUS_M = 200
SHOP_RADIUS_M = 300
COMMERCIAL_RADIUS_M = 500


def categorize(tags: dict[str, str]) -> str:
    amenity = tags.get("amenity")
    if amenity in ("cafe", "restaurant", "fast_food"):
        return "food"
    if amenity in ("bank", "post_office"):
        return "service"
    if amenity == "library":
        return "education"
    if amenity == "community_centre":
        return "community"
    if tags.get("shop") in ("mall", "department_store", "supermarket"):
        return "shopping"
    if tags.get("public_transport"):
        return "transport"
    if tags.get("tourism"):
        return "tourism"
    return "unknown"


def build_address(tags: dict[str, str]) -> str:
    street = " ".join(tags[k] for k in ("addr:housenumber", "addr:street") if tags.get(k))
    locality = ", ".join(tags[k] for k in ("addr:suburb", "addr:city") if tags.get(k))
    return ", ".join(p for p in (street, locality) if p)


def extract_amenities(tags: dict[str, str]) -> list[str]:
    amenities = []
    if "24/7" in (tags.get("opening_hours") or ""):
        amenities.append("24/7")
    if tags.get("wheelchair") == "yes":
        amenities.append("wheelchair_accessible")
    if tags.get("internet_access") and tags.get("internet_access") != "no":
        amenities.append("wifi")
    return amenities


def estimate_importance(tags: dict[str, str]) -> float:
    """OSM has no popularity signal; a wiki link marks well-known places."""
    if tags.get("wikidata") or tags.get("wikipedia"):
        return 0.8
    if tags.get("name"):
        return 0.3
    return 0.0


def build_nearby_query(center: LatLng, radius_m: int, categories: dict[str, list[str]]) -> str:
    around = f"(around:{int(radius_m)},{center.lat},{center.lng})"
    lines = [f'  node["{key}"~"{"|".join(values)}"]{around};' for key, values in categories.items() if values]
    return "[out:json][timeout:25];\n(\n" + "\n".join(lines) + "\n);\nout body;"


def build_safety_query(center: LatLng) -> str:
    at = f"{center.lat},{center.lng}"
    return (
        "[out:json][timeout:25];\n(\n"
        f'  node["amenity"="police"](around:{POLICE_RADIUS_M},{at});\n'
        f'  node["amenity"="hospital"](around:{HOSPITAL_RADIUS_M},{at});\n'
        f'  node["highway"="street_lamp"](around:{STREET_LAMP_RADIUS_M},{at});\n'
        f'  node["shop"](around:{SHOP_RADIUS_M},{at});\n'
        f'  way["landuse"="commercial"](around:{COMMERCIAL_RADIUS_M},{at});\n'
        ");\nout tags;"
    )


def _tags(el: dict[str, Any]) -> dict[str, Any]:
    tags = el.get("tags")
    return tags if isinstance(tags, dict) else {}


def _position(el: dict[str, Any]) -> tuple[float, float] | None:
    try:
        return float(el["lat"]), float(el["lon"])
    except (KeyError, TypeError, ValueError):
        return None


class OverpassPoiProvider:
    name = "overpass"

    def __init__(self, client: httpx.AsyncClient, url: str = DEFAULT_OVERPASS_URL) -> None:
        self.client = client
        self.url = url

    async def _query(self, query: str) -> list[dict[str, Any]]:
        try:
            r = await self.client.post(self.url, content=query, headers={"Content-Type": "text/plain"})
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(self.name, "malformed JSON") from e
        elements = data.get("elements") if isinstance(data, dict) else None
        if not isinstance(elements, list):
            raise ProviderError(self.name, "unexpected payload")
        return [e for e in elements if isinstance(e, dict)]

    async def nearby(
        self,
        center: LatLng,
        radius_m: int,
        categories: dict[str, list[str]],
    ) -> list[PointOfInterest]:
        elements = await self._query(build_nearby_query(center, radius_m, categories))
        places = []
        for el in elements:
            tags = _tags(el)
            position = _position(el)
            if position is None:
                continue
            category = categorize(tags)
            if category == "unknown":
                continue
            places.append(
                PointOfInterest(
                    lat=position[0],
                    lng=position[1],
                    name=tags.get("name") or "Unnamed Location",
                    category=category,
                    address=build_address(tags),
                    importance=estimate_importance(tags),
                    amenities=extract_amenities(tags),
                    kinds=[k for k in categories if k in tags],
                )
            )
        return places

    async def safety_features(self, center: LatLng) -> SafetyFeatures:
        features = SafetyFeatures()
        for el in await self._query(build_safety_query(center)):
            tags = _tags(el)
            if tags.get("amenity") == "police":
                features.police += 1
            elif tags.get("amenity") == "hospital":
                features.hospital += 1
            elif tags.get("highway") == "street_lamp":
                features.street_lamps += 1
            elif tags.get("landuse") == "commercial":
                features.commercial += 1
            elif tags.get("shop"):
                features.shops += 1
        return features
