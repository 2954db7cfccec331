import pytest

import upstream_api as ua
from errors import UpstreamFetchError


def test_geocode_passes_address_and_key(upstream, geocode_body):
    upstream.payloads["maps.googleapis.com"] = geocode_body
    results = ua.geocode("98105", "geo-key", timeout=5)
    assert results[0]["formatted_address"] == "Seattle, WA"
    assert upstream.calls[0]["params"] == {"address": "98105", "key": "geo-key"}
    assert upstream.calls[0]["timeout"] == 5


def test_geocode_empty_results(upstream):
    upstream.payloads["maps.googleapis.com"] = {"results": [], "status": "ZERO_RESULTS"}
    assert ua.geocode("zzzzz", "geo-key") == []


def test_fetch_weather_puts_key_and_coordinates_in_path(upstream, weather_body):
    upstream.payloads["darksky"] = weather_body
    days = ua.fetch_weather(47.66, -122.3, "wx-key")
    assert len(days) == 2
    assert upstream.calls[0]["url"].endswith("/wx-key/47.66,-122.3")


def test_fetch_meetups_requests_first_page(upstream, meetups_body):
    upstream.payloads["api.meetup.com"] = meetups_body
    events = ua.fetch_meetups(47.66, -122.3, "meetup-key")
    assert events[0]["group"]["name"] == "Seattle Python"
    params = upstream.calls[0]["params"]
    assert params["page"] == 20
    assert params["lat"] == 47.66 and params["lon"] == -122.3


def test_fetch_movies_searches_by_query(upstream, movies_body):
    upstream.payloads["themoviedb"] = movies_body
    movies = ua.fetch_movies("seattle", "tmdb-key")
    assert len(movies) == 2
    assert upstream.calls[0]["params"]["query"] == "seattle"
    assert upstream.calls[0]["params"]["api_key"] == "tmdb-key"


def test_fetch_businesses_uses_bearer_auth(upstream, yelp_body):
    upstream.payloads["api.yelp.com"] = yelp_body
    businesses = ua.fetch_businesses(47.66, -122.3, "yelp-key")
    assert businesses[0]["name"] == "Pike Place Chowder"
    assert upstream.calls[0]["headers"] == {"Authorization": "Bearer yelp-key"}


def test_fetch_trails_limits_distance(upstream, trails_body):
    upstream.payloads["hikingproject"] = trails_body
    trails = ua.fetch_trails(47.66, -122.3, "trail-key")
    assert trails[0]["name"] == "Rattlesnake Ledge"
    assert upstream.calls[0]["params"]["maxDistance"] == 10


def test_http_error_becomes_upstream_fetch_error(upstream):
    upstream.payloads["darksky"] = 401
    with pytest.raises(UpstreamFetchError) as excinfo:
        ua.fetch_weather(1.0, 2.0, "bad-key")
    assert excinfo.value.source == "weather"


def test_unexpected_body_shape_is_upstream_fetch_error(upstream):
    upstream.payloads["hikingproject"] = {"success": 0, "message": "Invalid key"}
    with pytest.raises(UpstreamFetchError) as excinfo:
        ua.fetch_trails(1.0, 2.0, "bad-key")
    assert "trails" in str(excinfo.value)
