import atexit
import json
import os

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from cache import BackgroundWriter, CacheAside, CacheStore
from errors import CityExplorerError, InvalidRequest, StoreConnectionError
from log_config import setup_logging
from models import db

ERROR_MESSAGE = "Sorry, something went wrong"

API_KEY_SETTINGS = (
    "GEOCODE_API_KEY",
    "WEATHER_API_KEY",
    "MEETUP_API_KEY",
    "MOVIEDB_API_KEY",
    "YELP_API_KEY",
    "TRAILS_API_KEY",
)


# SQLAlchemy only understands the postgresql:// scheme; hosted Postgres often hands out postgres://.
def _database_uri():
    url = os.environ.get("DATABASE_URL", "").strip() or "sqlite:///city_explorer.db"
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


# Reads the object-valued `data` parameter, sent either as data[key]=value pairs or as a JSON string.
def _data_object():
    raw = request.args.get("data")
    if raw is not None:
        try:
            data = json.loads(raw)
        except ValueError:
            raise InvalidRequest("'data' must be a JSON object.")
        if not isinstance(data, dict):
            raise InvalidRequest("'data' must be a JSON object.")
        return data

    return {
        key[len("data["):-1]: value
        for key, value in request.args.items()
        if key.startswith("data[") and key.endswith("]")
    }


def _location_params(require_search_query=False):
    data = _data_object()
    try:
        params = {
            "id": int(data["id"]),
            "latitude": float(data["latitude"]),
            "longitude": float(data["longitude"]),
        }
    except KeyError as e:
        raise InvalidRequest(f"'data' is missing {e.args[0]!r}.")
    except (TypeError, ValueError):
        raise InvalidRequest("'data' id/latitude/longitude must be numeric.")

    search_query = str(data.get("search_query") or "").strip()
    if require_search_query and not search_query:
        raise InvalidRequest("'data' is missing 'search_query'.")
    params["search_query"] = search_query
    return params


# App factory: reads configuration, creates the tables, wires the cache-aside services and registers routes.
def create_app(overrides=None):
    load_dotenv()

    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = _database_uri()
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    for setting in API_KEY_SETTINGS:
        app.config[setting] = os.environ.get(setting, "")
    app.config["UPSTREAM_TIMEOUT"] = float(os.environ.get("UPSTREAM_TIMEOUT", "20"))
    app.config["CACHE_WRITE_WORKERS"] = int(os.environ.get("CACHE_WRITE_WORKERS", "4"))
    app.config["CACHE_WRITES_INLINE"] = False
    app.config["CORS_ORIGINS"] = os.environ.get("CORS_ORIGINS", "*")
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO")
    app.config["LOG_FORMAT"] = os.environ.get("LOG_FORMAT", "console")
    app.config.update(overrides or {})

    logger = setup_logging(app.config["LOG_LEVEL"], app.config["LOG_FORMAT"])

    db.init_app(app)

    with app.app_context():
        try:
            db.create_all()
        except SQLAlchemyError as e:
            logger.error("Store unavailable", error_kind=StoreConnectionError.kind, error=str(e))
            raise StoreConnectionError(str(e)) from e

    store = CacheStore(db)
    writer = BackgroundWriter(
        app,
        store,
        max_workers=app.config["CACHE_WRITE_WORKERS"],
        inline=app.config["CACHE_WRITES_INLINE"],
    )
    if not writer.inline:
        atexit.register(writer.shutdown)
    explorer = CacheAside(store, writer, app.config)
    app.extensions["city_explorer"] = explorer

    @app.after_request
    def allow_cross_origin(response):
        response.headers.setdefault("Access-Control-Allow-Origin", app.config["CORS_ORIGINS"])
        return response

    # Every failure collapses to the same plain-text 500; the kind only goes to the logs.
    @app.errorhandler(CityExplorerError)
    def handle_city_explorer_error(error):
        logger.error("Request failed", path=request.path, error_kind=error.kind, error=str(error), **error.context)
        return ERROR_MESSAGE, 500, {"Content-Type": "text/plain; charset=utf-8"}

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unhandled error", path=request.path, error_kind=type(error).__name__)
        return ERROR_MESSAGE, 500, {"Content-Type": "text/plain; charset=utf-8"}

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "healthy"})

    @app.route("/location", methods=["GET"])
    def location():
        search_query = (request.args.get("data") or "").strip()
        if not search_query:
            raise InvalidRequest("Missing 'data' query parameter.")
        return jsonify(explorer.resolve_location(search_query))

    @app.route("/weather", methods=["GET"])
    def weather():
        return jsonify(explorer.fetch("weather", _location_params()))

    @app.route("/meetups", methods=["GET"])
    def meetups():
        return jsonify(explorer.fetch("meetups", _location_params()))

    @app.route("/movies", methods=["GET"])
    def movies():
        return jsonify(explorer.fetch("movies", _location_params(require_search_query=True)))

    @app.route("/yelp", methods=["GET"])
    def yelp():
        return jsonify(explorer.fetch("yelp", _location_params()))

    @app.route("/trails", methods=["GET"])
    def trails():
        return jsonify(explorer.fetch("trails", _location_params()))

    @app.cli.command("init-db")
    def init_db():
        """Create the locations table and the five resource tables."""
        db.create_all()
        print("Tables created.")

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(port=int(os.environ.get("PORT", "3000")), debug=True)
