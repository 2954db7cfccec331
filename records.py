"""
Decoders that turn one upstream item into the record shape stored and served
for its resource. Required fields raise MalformedUpstreamPayload when absent;
optional ones come back as None.
"""

from datetime import datetime, timezone

from errors import MalformedUpstreamPayload

TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p/original"

_MISSING = object()


# Walks item["a"]["b"]... and fails loudly on the first missing key.
def _require(resource: str, item, *path: str):
    value = item
    for key in path:
        value = value.get(key, _MISSING) if isinstance(value, dict) else _MISSING
        if value is _MISSING or value is None:
            raise MalformedUpstreamPayload(resource, ".".join(path))
    return value


def _optional(item, key: str):
    return item.get(key) if isinstance(item, dict) else None


# "Mon Jan 01 2024", rendered in UTC.
def _day_label(seconds: float) -> str:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%a %b %d %Y")


def normalize_location(query: str, result: dict) -> dict:
    return {
        "search_query": query,
        "formatted_query": _require("location", result, "formatted_address"),
        "latitude": _require("location", result, "geometry", "location", "lat"),
        "longitude": _require("location", result, "geometry", "location", "lng"),
    }


def normalize_weather(day: dict) -> dict:
    return {
        "forecast": _require("weather", day, "summary"),
        "time": _day_label(_require("weather", day, "time")),
    }


def normalize_meetup(event: dict) -> dict:
    # group.created is epoch milliseconds
    created = _require("meetups", event, "group", "created")
    return {
        "link": _require("meetups", event, "link"),
        "name": _require("meetups", event, "group", "name"),
        "creation_date": _day_label(created / 1000),
        "host": _optional(event.get("group"), "who"),
    }


def normalize_movie(movie: dict) -> dict:
    backdrop = _optional(movie, "backdrop_path")
    return {
        "title": _require("movies", movie, "title"),
        "released_on": _optional(movie, "release_date"),
        "total_votes": _optional(movie, "vote_count"),
        "average_votes": _optional(movie, "vote_average"),
        "popularity": _optional(movie, "popularity"),
        "image_url": f"{TMDB_IMAGE_BASE}{backdrop}" if backdrop else None,
    }


def normalize_business(place: dict) -> dict:
    return {
        "url": _require("yelp", place, "url"),
        "name": _require("yelp", place, "name"),
        "rating": _optional(place, "rating"),
        # Yelp omits price for businesses without a tier.
        "price": _optional(place, "price"),
        "image_url": _optional(place, "image_url"),
    }


def normalize_trail(hike: dict) -> dict:
    condition = _require("trails", hike, "conditionDate")
    if not isinstance(condition, str):
        raise MalformedUpstreamPayload("trails", "conditionDate")
    condition_date, _, condition_time = condition.partition(" ")
    return {
        "trail_url": _require("trails", hike, "url"),
        "name": _require("trails", hike, "name"),
        "location": _optional(hike, "location"),
        "length": _optional(hike, "length"),
        "condition_date": condition_date,
        "condition_time": condition_time or None,
        "conditions": _optional(hike, "conditionDetails"),
        "stars": _optional(hike, "stars"),
        "star_votes": _optional(hike, "starVotes"),
        "summary": _optional(hike, "summary"),
    }
