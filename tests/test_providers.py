"""
HTTP provider tests (OSRM, Nominatim, Overpass) against canned responses.

Validates:
  - request shape: lon,lat order for OSRM, Nominatim query params, Overpass QL body
  - response parsing into LatLng / Route / PointOfInterest / SafetyFeatures
  - transport and payload failures surface as ProviderError
"""

import httpx
import pytest

from cotravel.errors import NotFoundError, ProviderError, ValidationError
from cotravel.services.geo import LatLng
from cotravel.services.nominatim import ADDRESS_PLACEHOLDER, NominatimGeocodingProvider
from cotravel.services.osrm import OsrmRoutingProvider, _format_instruction
from cotravel.services.overpass import (
    OverpassPoiProvider,
    build_address,
    build_nearby_query,
    categorize,
    estimate_importance,
    extract_amenities,
)
from cotravel.services.providers import MEETING_POINT_CATEGORIES

ORIGIN = LatLng(28.6139, 77.2090)
DEST = LatLng(28.6129, 77.2295)


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def fails(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


# ---------------------------------------------------------------------------
# OSRM
# ---------------------------------------------------------------------------

OSRM_ROUTE = {
    "code": "Ok",
    "routes": [
        {
            "distance": 2870.4,
            "duration": 412.9,
            "geometry": {"type": "LineString", "coordinates": [[77.209, 28.6139], [77.22, 28.613], [77.2295, 28.6129]]},
            "legs": [
                {
                    "steps": [
                        {"name": "Janpath", "distance": 1500.0, "duration": 200.0, "maneuver": {"type": "depart"}},
                        {"name": "Rajpath", "distance": 1370.4, "duration": 212.9,
                         "maneuver": {"type": "turn", "modifier": "left"}},
                        {"name": "", "distance": 0.0, "duration": 0.0, "maneuver": {"type": "arrive"}},
                    ]
                }
            ],
        }
    ],
}


class TestOsrm:

    async def test_route(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, json=OSRM_ROUTE)

        async with client_for(handler) as client:
            route = await OsrmRoutingProvider(client, "http://osrm.test").route(ORIGIN, DEST)
        assert route.distance_m == 2870.4
        assert route.duration_s == 412.9
        assert route.geometry[0] == [77.209, 28.6139]
        assert seen["url"].path == "/route/v1/driving/77.209,28.6139;77.2295,28.6129"
        assert seen["url"].params["geometries"] == "geojson"

    async def test_no_route(self):
        async with client_for(lambda r: httpx.Response(200, json={"code": "NoRoute", "routes": []})) as client:
            assert await OsrmRoutingProvider(client).route(ORIGIN, DEST) is None

    async def test_http_error(self):
        async with client_for(lambda r: httpx.Response(502)) as client:
            with pytest.raises(ProviderError) as exc:
                await OsrmRoutingProvider(client).route(ORIGIN, DEST)
        assert exc.value.provider == "osrm"

    async def test_connection_error(self):
        async with client_for(fails) as client:
            with pytest.raises(ProviderError):
                await OsrmRoutingProvider(client).route(ORIGIN, DEST)

    async def test_malformed_json(self):
        async with client_for(lambda r: httpx.Response(200, content=b"<html>")) as client:
            with pytest.raises(ProviderError):
                await OsrmRoutingProvider(client).route(ORIGIN, DEST)

    async def test_directions(self):
        async with client_for(lambda r: httpx.Response(200, json=OSRM_ROUTE)) as client:
            result = await OsrmRoutingProvider(client).directions(ORIGIN, DEST, "walking")
        assert [s["instruction"] for s in result["steps"]] == [
            "Depart onto Janpath",
            "Turn left onto Rajpath",
            "Arrive at destination",
        ]
        assert result["distance_m"] == 2870.4

    @pytest.mark.parametrize(
        "maneuver,name,expected",
        [
            ({"type": "roundabout"}, "Ring Road", "Enter roundabout and take exit onto Ring Road"),
            ({"type": "continue"}, "", "Continue"),
            ({"type": "fork", "modifier": "right"}, None, "Fork right"),
            ({}, "Mall Road", "Continue onto Mall Road"),
        ],
    )
    def test_format_instruction(self, maneuver, name, expected):
        assert _format_instruction(maneuver, name) == expected


# ---------------------------------------------------------------------------
# Nominatim
# ---------------------------------------------------------------------------

class TestNominatim:

    def provider(self, client, **kwargs) -> NominatimGeocodingProvider:
        return NominatimGeocodingProvider(client, "http://nominatim.test", user_agent="cotravel-test", **kwargs)

    async def test_forward(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json=[{"lat": "28.6315", "lon": "77.2167", "display_name": "Connaught Place"}])

        async with client_for(handler) as client:
            point = await self.provider(client).forward("  Connaught Place ")
        assert point == LatLng(28.6315, 77.2167)
        assert seen["request"].url.params["q"] == "Connaught Place"
        assert seen["request"].headers["User-Agent"] == "cotravel-test"

    async def test_forward_not_found(self):
        async with client_for(lambda r: httpx.Response(200, json=[])) as client:
            with pytest.raises(NotFoundError):
                await self.provider(client).forward("nowhere at all")

    async def test_forward_empty_address(self):
        async with client_for(lambda r: httpx.Response(200, json=[])) as client:
            with pytest.raises(ValidationError):
                await self.provider(client).forward("   ")

    async def test_forward_provider_down(self):
        async with client_for(fails) as client:
            with pytest.raises(ProviderError):
                await self.provider(client).forward("Connaught Place")

    async def test_reverse(self):
        body = {"display_name": "Janpath, Connaught Place, New Delhi"}
        async with client_for(lambda r: httpx.Response(200, json=body)) as client:
            assert await self.provider(client).reverse(ORIGIN) == body["display_name"]

    async def test_reverse_failure_gives_placeholder(self):
        async with client_for(fails) as client:
            assert await self.provider(client).reverse(ORIGIN) == ADDRESS_PLACEHOLDER

    async def test_reverse_without_name_gives_placeholder(self):
        async with client_for(lambda r: httpx.Response(200, json={"error": "Unable to geocode"})) as client:
            assert await self.provider(client).reverse(ORIGIN) == ADDRESS_PLACEHOLDER

    async def test_autocomplete_biased_to_region(self):
        seen = {}

        def handler(request):
            seen["params"] = request.url.params
            return httpx.Response(200, json=[{"display_name": "Connaught Place"}, {"display_name": "Connaught Circus"}])

        async with client_for(handler) as client:
            provider = self.provider(client, country_codes="in", viewbox="76.8,28.9,77.4,28.4")
            found = await provider.autocomplete("Conn")
        assert found == ["Connaught Place", "Connaught Circus"]
        assert seen["params"]["countrycodes"] == "in"
        assert seen["params"]["bounded"] == "1"
        assert seen["params"]["limit"] == "5"

    async def test_autocomplete_too_short(self):
        async with client_for(lambda r: httpx.Response(200, json=[])) as client:
            with pytest.raises(ValidationError) as exc:
                await self.provider(client).autocomplete("Co")
        assert exc.value.fields == ["input"]


# ---------------------------------------------------------------------------
# Overpass
# ---------------------------------------------------------------------------

class TestOverpassHelpers:

    @pytest.mark.parametrize(
        "tags,category",
        [
            ({"amenity": "cafe"}, "food"),
            ({"amenity": "bank"}, "service"),
            ({"amenity": "library"}, "education"),
            ({"amenity": "community_centre"}, "community"),
            ({"shop": "mall"}, "shopping"),
            ({"public_transport": "station"}, "transport"),
            ({"tourism": "museum"}, "tourism"),
            ({"amenity": "bench"}, "unknown"),
        ],
    )
    def test_categorize(self, tags, category):
        assert categorize(tags) == category

    def test_build_address(self):
        tags = {"addr:housenumber": "12", "addr:street": "Janpath", "addr:city": "New Delhi"}
        assert build_address(tags) == "12 Janpath, New Delhi"
        assert build_address({}) == ""

    def test_extract_amenities(self):
        tags = {"opening_hours": "24/7", "wheelchair": "yes", "internet_access": "wlan"}
        assert extract_amenities(tags) == ["24/7", "wheelchair_accessible", "wifi"]
        assert extract_amenities({"internet_access": "no"}) == []

    def test_importance(self):
        assert estimate_importance({"name": "X", "wikidata": "Q1"}) == 0.8
        assert estimate_importance({"name": "X"}) == 0.3
        assert estimate_importance({}) == 0.0

    def test_nearby_query(self):
        q = build_nearby_query(ORIGIN, 1000, {"amenity": ["cafe", "library"]})
        assert 'node["amenity"~"cafe|library"](around:1000,28.6139,77.209);' in q
        assert q.startswith("[out:json]")


class TestOverpass:

    async def test_nearby(self):
        seen = {}
        body = {
            "elements": [
                {"type": "node", "lat": 28.6328, "lon": 77.2197,
                 "tags": {"name": "Rajiv Chowk", "public_transport": "station", "wikidata": "Q1"}},
                {"type": "node", "lat": 28.63, "lon": 77.22, "tags": {"amenity": "bench"}},
                {"type": "node", "lat": 28.631, "lon": 77.218, "tags": {"amenity": "cafe"}},
                {"type": "way", "tags": {"amenity": "cafe", "name": "No coordinates"}},
            ]
        }

        def handler(request):
            seen["body"] = request.content.decode()
            return httpx.Response(200, json=body)

        async with client_for(handler) as client:
            places = await OverpassPoiProvider(client, "http://overpass.test/api").nearby(
                ORIGIN, 1000, MEETING_POINT_CATEGORIES
            )
        assert [p.name for p in places] == ["Rajiv Chowk", "Unnamed Location"]
        assert places[0].category == "transport"
        assert places[0].importance == 0.8
        assert places[0].kinds == ["public_transport"]
        assert places[1].kinds == ["amenity"]
        assert "around:1000" in seen["body"]

    async def test_safety_features(self):
        body = {
            "elements": [
                {"tags": {"amenity": "police"}},
                {"tags": {"amenity": "hospital"}},
                {"tags": {"highway": "street_lamp"}},
                {"tags": {"highway": "street_lamp"}},
                {"tags": {"shop": "bakery"}},
                {"tags": {"landuse": "commercial"}},
            ]
        }
        async with client_for(lambda r: httpx.Response(200, json=body)) as client:
            features = await OverpassPoiProvider(client).safety_features(ORIGIN)
        assert features.to_dict() == {"police": 1, "hospital": 1, "street_lamps": 2, "shops": 1, "commercial": 1}

    async def test_malformed_elements_are_skipped(self):
        body = {
            "elements": [
                {"type": "node", "lat": None, "lon": 77.2, "tags": {"amenity": "cafe", "name": "Null lat"}},
                {"type": "node", "lat": 28.63, "lon": "east", "tags": {"amenity": "cafe", "name": "Bad lon"}},
                {"type": "node", "lat": 28.63, "lon": 77.22, "tags": ["amenity", "cafe"]},
                {"type": "node", "lat": "28.631", "lon": 77.218, "tags": {"amenity": "cafe", "name": "Kept"}},
            ]
        }
        async with client_for(lambda r: httpx.Response(200, json=body)) as client:
            places = await OverpassPoiProvider(client).nearby(ORIGIN, 1000, MEETING_POINT_CATEGORIES)
        assert [p.name for p in places] == ["Kept"]
        assert places[0].lat == 28.631

    async def test_safety_features_ignore_non_dict_tags(self):
        body = {"elements": [{"tags": "police"}, {"tags": None}, {"tags": {"amenity": "police"}}]}
        async with client_for(lambda r: httpx.Response(200, json=body)) as client:
            features = await OverpassPoiProvider(client).safety_features(ORIGIN)
        assert features.police == 1

    async def test_unexpected_payload(self):
        async with client_for(lambda r: httpx.Response(200, json={"remark": "runtime error"})) as client:
            with pytest.raises(ProviderError):
                await OverpassPoiProvider(client).nearby(ORIGIN, 1000, MEETING_POINT_CATEGORIES)

    async def test_rate_limited(self):
        async with client_for(lambda r: httpx.Response(429)) as client:
            with pytest.raises(ProviderError) as exc:
                await OverpassPoiProvider(client).safety_features(ORIGIN)
        assert exc.value.provider == "overpass"
