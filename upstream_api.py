import requests

from errors import UpstreamFetchError

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
WEATHER_URL = "https://api.darksky.net/forecast"
MEETUP_URL = "https://api.meetup.com/find/upcoming_events"
MOVIE_URL = "https://api.themoviedb.org/3/search/movie"
YELP_URL = "https://api.yelp.com/v3/businesses/search"
TRAILS_URL = "https://www.hikingproject.com/data/get-trails"

DEFAULT_TIMEOUT = 20


# Issues a GET and returns the decoded JSON body, wrapping every failure as an UpstreamFetchError.
def _get_json(source: str, url: str, params: dict | None = None, headers: dict | None = None, timeout: float = DEFAULT_TIMEOUT):
    try:
        response = requests.get(url, params=params, headers=headers, timeout=timeout)
        response.raise_for_status()
        return response.json()
    except Exception as e:
        raise UpstreamFetchError(source, e) from e


# Pulls a list out of a decoded body, e.g. body["daily"]["data"].
def _extract_list(source: str, body, *path: str) -> list:
    value = body
    for key in path:
        if not isinstance(value, dict) or key not in value:
            raise UpstreamFetchError(source, f"response has no '{'.'.join(path)}'")
        value = value[key]
    if not isinstance(value, list):
        raise UpstreamFetchError(source, f"'{'.'.join(path)}' is not a list")
    return value


def geocode(query: str, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> list:
    """
    Return the raw geocoding results for a free-text address.
    An empty list means the address could not be resolved.
    """
    body = _get_json("geocode", GEOCODE_URL, params={"address": query, "key": api_key}, timeout=timeout)
    return _extract_list("geocode", body, "results")


# Daily forecast entries for the coordinates.
def fetch_weather(latitude: float, longitude: float, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> list:
    url = f"{WEATHER_URL}/{api_key}/{latitude},{longitude}"
    body = _get_json("weather", url, timeout=timeout)
    return _extract_list("weather", body, "daily", "data")


# Upcoming events near the coordinates, first page of 20.
def fetch_meetups(latitude: float, longitude: float, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> list:
    params = {
        "sign": "true",
        "photo-host": "public",
        "lat": latitude,
        "lon": longitude,
        "page": 20,
        "key": api_key,
    }
    body = _get_json("meetups", MEETUP_URL, params=params, timeout=timeout)
    return _extract_list("meetups", body, "events")


# Movies whose title matches the location's search string.
def fetch_movies(search_query: str, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> list:
    params = {
        "query": search_query,
        "page": 1,
        "include_adult": "false",
        "language": "en-US",
        "api_key": api_key,
    }
    body = _get_json("movies", MOVIE_URL, params=params, timeout=timeout)
    return _extract_list("movies", body, "results")


def fetch_businesses(latitude: float, longitude: float, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> list:
    headers = {"Authorization": f"Bearer {api_key}"}
    params = {"latitude": latitude, "longitude": longitude}
    body = _get_json("yelp", YELP_URL, params=params, headers=headers, timeout=timeout)
    return _extract_list("yelp", body, "businesses")


# Trails within 10 miles of the coordinates.
def fetch_trails(latitude: float, longitude: float, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> list:
    params = {"lat": latitude, "lon": longitude, "maxDistance": 10, "key": api_key}
    body = _get_json("trails", TRAILS_URL, params=params, timeout=timeout)
    return _extract_list("trails", body, "trails")
