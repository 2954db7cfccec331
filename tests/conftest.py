import types

import pytest

import upstream_api
from app import create_app
from models import db

# Epoch for Wed Oct 24 2018 00:00 UTC.
OCT_24_2018 = 1540339200


class FakeResponse:
    def __init__(self, json_data, status_code=200):
        self._json = json_data
        self.status_code = status_code

    def json(self):
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise Exception(f"HTTP {self.status_code}")


# Creates a Flask app with a temporary SQLite database and synchronous cache writes.
@pytest.fixture()
def app(tmp_path, monkeypatch):
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("GEOCODE_API_KEY", "geo-key")
    monkeypatch.setenv("YELP_API_KEY", "yelp-key")
    app = create_app({"TESTING": True, "CACHE_WRITES_INLINE": True})
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def upstream(monkeypatch):
    """
    Replaces `requests` inside upstream_api. Register a body (or an HTTP status
    code) under a URL fragment in `payloads`; every call is recorded in `calls`.
    """
    calls = []
    payloads = {}

    def _get(url, params=None, headers=None, timeout=None, **kwargs):
        calls.append({"url": url, "params": dict(params or {}), "headers": dict(headers or {}), "timeout": timeout})
        for fragment, body in payloads.items():
            if fragment in url:
                if isinstance(body, int):
                    return FakeResponse({}, status_code=body)
                return FakeResponse(body)
        return FakeResponse({}, status_code=404)

    monkeypatch.setattr(upstream_api, "requests", types.SimpleNamespace(get=_get))
    return types.SimpleNamespace(calls=calls, payloads=payloads)


@pytest.fixture()
def geocode_body():
    return {
        "results": [
            {"formatted_address": "Seattle, WA", "geometry": {"location": {"lat": 47.66, "lng": -122.3}}},
            {"formatted_address": "Elsewhere", "geometry": {"location": {"lat": 1.0, "lng": 2.0}}},
        ]
    }


@pytest.fixture()
def weather_body():
    return {
        "daily": {
            "data": [
                {"time": OCT_24_2018, "summary": "Light rain in the morning."},
                {"time": OCT_24_2018 + 86400, "summary": "Partly cloudy."},
            ]
        }
    }


@pytest.fixture()
def meetups_body():
    return {
        "events": [
            {
                "link": "https://www.meetup.com/seattle-python/events/1/",
                "group": {"name": "Seattle Python", "created": OCT_24_2018 * 1000, "who": "Pythonistas"},
            }
        ]
    }


@pytest.fixture()
def movies_body():
    return {
        "results": [
            {
                "title": "Sleepless in Seattle",
                "release_date": "1993-06-24",
                "vote_count": 1800,
                "vote_average": 6.7,
                "popularity": 12.5,
                "backdrop_path": "/sleepless.jpg",
            },
            {"title": "Untitled Seattle Project", "vote_count": 0, "vote_average": 0, "popularity": 0.6, "backdrop_path": None},
        ]
    }


@pytest.fixture()
def yelp_body():
    return {
        "businesses": [
            {
                "url": "https://www.yelp.com/biz/pike-place-chowder",
                "name": "Pike Place Chowder",
                "rating": 4.5,
                "price": "$$",
                "image_url": "https://s3-media.fl.yelpcdn.com/chowder.jpg",
            },
            {"url": "https://www.yelp.com/biz/food-truck", "name": "Food Truck", "rating": 4.0, "image_url": ""},
        ]
    }


@pytest.fixture()
def trails_body():
    return {
        "trails": [
            {
                "url": "https://www.hikingproject.com/trail/7000130/rattlesnake-ledge",
                "name": "Rattlesnake Ledge",
                "location": "North Bend, Washington",
                "length": 4.3,
                "conditionDate": "2018-10-20 11:21:26",
                "conditionDetails": "Dry",
                "stars": 4.4,
                "starVotes": 81,
                "summary": "A popular hike up to a rocky viewpoint.",
            }
        ]
    }
