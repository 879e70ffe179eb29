"""OSRM client: route geometry/distance and step-by-step directions.

Uses the public OSRM demo server by default (fine for demos; not for production SLA).
"""

from __future__ import annotations

from typing import Any

import httpx

from cotravel.errors import ProviderError
from cotravel.services.geo import LatLng, Route


DEFAULT_OSRM_BASE_URL = "https://router.project-osrm.org"


def _format_instruction(maneuver: dict[str, Any], name: str | None) -> str:
    mtype = maneuver.get("type") or "continue"
    modifier = maneuver.get("modifier")
    road = (name or "").strip()
    if mtype == "depart":
        return f"Depart onto {road}" if road else "Depart"
    if mtype == "arrive":
        return "Arrive at destination"
    if mtype == "roundabout":
        return f"Enter roundabout and take exit onto {road}" if road else "Enter roundabout"
    if mtype in ("turn", "new name", "continue", "merge", "on ramp", "off ramp", "fork", "end of road"):
        if modifier and road:
            return f"{mtype.title()} {modifier} onto {road}"
        if modifier:
            return f"{mtype.title()} {modifier}"
        return f"{mtype.title()} onto {road}" if road else mtype.title()
    if road:
        return f"{mtype.title()} onto {road}"
    return str(mtype).title()


class OsrmRoutingProvider:
    """RoutingProvider backed by an OSRM HTTP server."""

    name = "osrm"

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_OSRM_BASE_URL) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def _get_routes(
        self, origin: LatLng, destination: LatLng, profile: str, params: dict[str, str]
    ) -> list[dict[str, Any]]:
        # OSRM expects lon,lat order
        coords = f"{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        url = f"{self.base_url}/route/v1/{profile}/{coords}"
        try:
            r = await self.client.get(url, params=params, headers={"Accept": "application/json"})
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(self.name, "malformed JSON") from e
        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected payload")
        routes = data.get("routes") or []
        if not isinstance(routes, list):
            raise ProviderError(self.name, "unexpected payload")
        return routes

    async def route(self, origin: LatLng, destination: LatLng, profile: str = "driving") -> Route | None:
        """Return distance, duration and GeoJSON geometry of the first route, or None if there is none."""
        routes = await self._get_routes(
            origin, destination, profile, {"overview": "full", "geometries": "geojson"}
        )
        if not routes:
            return None
        route0 = routes[0]
        try:
            geometry = (route0.get("geometry") or {}).get("coordinates") or []
            return Route(
                distance_m=float(route0.get("distance") or 0.0),
                duration_s=float(route0.get("duration") or 0.0),
                geometry=[[float(p[0]), float(p[1])] for p in geometry],
            )
        except (AttributeError, TypeError, ValueError, IndexError) as e:
            raise ProviderError(self.name, f"malformed route: {e}") from e

    async def directions(
        self, origin: LatLng, destination: LatLng, profile: str = "driving"
    ) -> dict[str, Any] | None:
        """Return {distance_m, duration_s, steps} with human-readable step instructions."""
        routes = await self._get_routes(origin, destination, profile, {"overview": "false", "steps": "true"})
        if not routes:
            return None
        route0 = routes[0]
        distance_m = float(route0.get("distance") or 0.0)
        duration_s = float(route0.get("duration") or 0.0)
        legs = route0.get("legs") or []
        if not legs:
            return {"distance_m": distance_m, "duration_s": duration_s, "steps": []}
        steps = legs[0].get("steps") or []
        normalized = []
        for s in steps:
            maneuver = s.get("maneuver") or {}
            normalized.append(
                {
                    "instruction": _format_instruction(maneuver, s.get("name")),
                    "distance_m": float(s.get("distance") or 0.0),
                    "duration_s": float(s.get("duration") or 0.0),
                }
            )
        return {"distance_m": distance_m, "duration_s": duration_s, "steps": normalized}
