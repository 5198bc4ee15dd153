import asyncio
import os
import sys

import httpx
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.services.geocoder import GeocodingError, GeocodingNotConfiguredError, MapboxGeocoder


def _geocoder(handler, token="pk.test"):
    http = httpx.AsyncClient(base_url="https://api.mapbox.test", transport=httpx.MockTransport(handler))
    return MapboxGeocoder(token=token, http=http)


def test_forward_parses_features_in_order():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "features": [
                    {"place_name": "Austin, Texas, United States", "center": [-97.7431, 30.2672]},
                    {"place_name": "broken"},
                    {"place_name": "Austin, Minnesota", "center": [-92.97, 43.67]},
                ]
            },
        )

    candidates = asyncio.run(_geocoder(handler).forward("Austin TX"))
    assert [c.label for c in candidates] == ["Austin, Texas, United States", "Austin, Minnesota"]
    assert (candidates[0].lat, candidates[0].lng) == (30.2672, -97.7431)
    assert seen["path"].startswith("/geocoding/v5/mapbox.places/Austin")
    assert seen["path"].endswith(".json")
    assert seen["params"]["access_token"] == "pk.test"
    assert seen["params"]["country"] == "US"


def test_reverse_returns_first_feature():
    def handler(request):
        assert request.url.path.endswith("/-97.77,30.26.json")
        return httpx.Response(200, json={"features": [{"place_name": "Zilker, Austin", "center": [-97.77, 30.26]}]})

    match = asyncio.run(_geocoder(handler).reverse(30.26, -97.77))
    assert match.label == "Zilker, Austin"


def test_http_errors_become_geocoding_errors():
    def handler(request):
        return httpx.Response(401, json={"message": "Not Authorized"})

    with pytest.raises(GeocodingError):
        asyncio.run(_geocoder(handler).forward("Austin"))


def test_missing_token_is_reported_before_any_request():
    def handler(request):
        raise AssertionError("no request expected")

    geocoder = _geocoder(handler, token="")
    assert not geocoder.configured
    with pytest.raises(GeocodingNotConfiguredError):
        asyncio.run(geocoder.forward("Austin"))


def test_blank_query_short_circuits():
    def handler(request):
        raise AssertionError("no request expected")

    assert asyncio.run(_geocoder(handler).forward("   ")) == []
