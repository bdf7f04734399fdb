import asyncio
import math

import httpx

from geowhisper.config.settings import get_settings
from geowhisper.core.geo import Location
from geowhisper.core.store import MemoryStore
from geowhisper.domain.models import Zone
from geowhisper.ingestion.geocoding_client import MapboxGeocoder
from geowhisper.zones.labels import ZoneLabelResolver, label_cache_key

BANGALORE = Location(latitude=12.9716, longitude=77.5946)


def _settings_with_token(token="test-token"):
    settings = get_settings()
    geocoding = settings.geocoding.model_copy(update={"access_token": token})
    return settings.model_copy(update={"geocoding": geocoding})


class BrokenStore:
    def get(self, key):
        raise OSError("storage disabled")

    def set(self, key, value):
        raise OSError("storage disabled")


class StubGeocoder:
    def __init__(self, payload=None, exc=None, has_token=True):
        self.payload = payload
        self.exc = exc
        self.has_token = has_token
        self.calls = 0

    async def reverse(self, location):
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return self.payload


def test_fallback_uses_short_id_without_location():
    resolver = ZoneLabelResolver(MemoryStore())
    assert resolver.resolve_fallback_label(Zone(id="abcdef1234567890")) == "Zone abcdef12"
    assert resolver.resolve_fallback_label(Zone(id="")) == "Zone unknown"


def test_fallback_uses_coordinates_without_user_location():
    resolver = ZoneLabelResolver(MemoryStore())
    zone = Zone(id="z1", location=BANGALORE)
    assert resolver.resolve_fallback_label(zone) == "12.972, 77.595"


def test_fallback_prefers_distance_from_user():
    resolver = ZoneLabelResolver(MemoryStore())
    # 300m due north along the meridian.
    north = 300 / (6_371_000 * math.pi / 180)
    zone = Zone(id="z1", location=Location(BANGALORE.latitude + north, BANGALORE.longitude))
    assert resolver.resolve_fallback_label(zone, BANGALORE) == "300m away"

    far = Zone(id="z2", location=Location(BANGALORE.latitude + 12 * north, BANGALORE.longitude))
    assert resolver.resolve_fallback_label(far, BANGALORE) == "3.6km away"


def test_get_cached_label_miss_and_storage_failure():
    assert ZoneLabelResolver(MemoryStore()).get_cached_label("z1") is None
    assert ZoneLabelResolver(BrokenStore()).get_cached_label("z1") is None


def test_resolve_and_cache_label_prefers_text_and_overwrites_cache():
    store = MemoryStore({label_cache_key("z1"): "Old name"})
    geocoder = StubGeocoder({"features": [{"text": "Indiranagar", "place_name": "Indiranagar, Bengaluru, India"}]})
    resolver = ZoneLabelResolver(store, geocoder)
    zone = Zone(id="z1", location=BANGALORE)

    label = asyncio.run(resolver.resolve_and_cache_label(zone))

    assert label == "Indiranagar"
    assert resolver.get_cached_label("z1") == "Indiranagar"
    assert resolver.label_for(zone, BANGALORE) == "Indiranagar"


def test_resolve_falls_back_to_place_name_then_coordinates():
    zone = Zone(id="z1", location=BANGALORE)

    only_full = StubGeocoder({"features": [{"place_name": "Bengaluru, Karnataka, India"}]})
    assert asyncio.run(ZoneLabelResolver(MemoryStore(), only_full).resolve_and_cache_label(zone)) == (
        "Bengaluru, Karnataka, India"
    )

    nameless = StubGeocoder({"features": [{"id": "place.1"}]})
    assert asyncio.run(ZoneLabelResolver(MemoryStore(), nameless).resolve_and_cache_label(zone)) == "12.972,77.595"


def test_resolve_returns_none_without_token_or_location():
    geocoder = StubGeocoder({"features": [{"text": "x"}]}, has_token=False)
    resolver = ZoneLabelResolver(MemoryStore(), geocoder)
    assert asyncio.run(resolver.resolve_and_cache_label(Zone(id="z1", location=BANGALORE))) is None
    assert geocoder.calls == 0

    geocoder = StubGeocoder({"features": [{"text": "x"}]})
    resolver = ZoneLabelResolver(MemoryStore(), geocoder)
    assert asyncio.run(resolver.resolve_and_cache_label(Zone(id="z1"))) is None
    assert geocoder.calls == 0

    assert asyncio.run(ZoneLabelResolver(MemoryStore()).resolve_and_cache_label(Zone(id="z1", location=BANGALORE))) is None


def test_empty_or_malformed_payload_writes_nothing():
    store = MemoryStore()
    zone = Zone(id="z1", location=BANGALORE)

    for payload in [{"features": []}, {"type": "FeatureCollection"}, {"features": ["oops"]}]:
        resolver = ZoneLabelResolver(store, StubGeocoder(payload))
        assert asyncio.run(resolver.resolve_and_cache_label(zone)) is None

    assert store.keys() == []


def test_store_write_failure_still_returns_label():
    resolver = ZoneLabelResolver(BrokenStore(), StubGeocoder({"features": [{"text": "MG Road"}]}))
    assert asyncio.run(resolver.resolve_and_cache_label(Zone(id="z1", location=BANGALORE))) == "MG Road"


def test_http_error_status_leaves_cache_empty(monkeypatch):
    seen = {}

    async def fake_get_json_async(url, *, params=None, headers=None, timeout_seconds=10):  # noqa: ARG001
        seen["url"] = url
        seen["params"] = params
        request = httpx.Request("GET", url)
        response = httpx.Response(503, request=request)
        raise httpx.HTTPStatusError("503", request=request, response=response)

    monkeypatch.setattr("geowhisper.ingestion.geocoding_client.get_json_async", fake_get_json_async)

    resolver = ZoneLabelResolver(MemoryStore(), MapboxGeocoder(_settings_with_token()))
    zone = Zone(id="z1", location=BANGALORE)

    assert asyncio.run(resolver.resolve_and_cache_label(zone)) is None
    assert resolver.get_cached_label("z1") is None
    assert seen["url"].endswith("/77.5946,12.9716.json")
    assert seen["params"]["types"] == "place,locality,neighborhood,address"
    assert seen["params"]["access_token"] == "test-token"


def test_timeout_is_treated_like_any_network_failure(monkeypatch):
    async def fake_get_json_async(url, **_kwargs):
        raise httpx.ReadTimeout("timed out", request=httpx.Request("GET", url))

    monkeypatch.setattr("geowhisper.ingestion.geocoding_client.get_json_async", fake_get_json_async)

    resolver = ZoneLabelResolver(MemoryStore(), MapboxGeocoder(_settings_with_token()))
    assert asyncio.run(resolver.resolve_and_cache_label(Zone(id="z1", location=BANGALORE))) is None


def test_geocoder_without_token_never_calls_network(monkeypatch):
    async def fail(*_args, **_kwargs):
        raise AssertionError("network must not be touched")

    monkeypatch.setattr("geowhisper.ingestion.geocoding_client.get_json_async", fail)

    geocoder = MapboxGeocoder(_settings_with_token(None))
    assert geocoder.has_token is False
    resolver = ZoneLabelResolver(MemoryStore(), geocoder)
    assert asyncio.run(resolver.resolve_and_cache_label(Zone(id="z1", location=BANGALORE))) is None


def test_malformed_geocoder_url_is_treated_like_a_network_failure(monkeypatch):
    async def fake_get_json_async(url, **_kwargs):
        raise httpx.InvalidURL("bad url")

    monkeypatch.setattr("geowhisper.ingestion.geocoding_client.get_json_async", fake_get_json_async)

    store = MemoryStore()
    resolver = ZoneLabelResolver(store, MapboxGeocoder(_settings_with_token()))
    assert asyncio.run(resolver.resolve_and_cache_label(Zone(id="z1", location=BANGALORE))) is None
    assert store.keys() == []
