"""
Cache-aside lookups backed by the relational store.

Every read checks the store first and only calls the upstream API on a miss.
Fresh records are written back through the BackgroundWriter, which never
holds up the response; a failed write is logged and the record is simply not
cached.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

import records
import upstream_api
from errors import NoGeocodeResult, PersistenceError
from models import Business, Location, Meetup, Movie, Trail, Weather

logger = structlog.get_logger(__name__)


class CacheStore:
    """Query/insert operations the cache-aside flow needs from the database."""

    def __init__(self, database):
        self.db = database

    def find_location(self, search_query: str) -> Location | None:
        return self.db.session.execute(
            self.db.select(Location).filter_by(search_query=search_query).order_by(Location.id).limit(1)
        ).scalar_one_or_none()

    def insert_location(self, fields: dict) -> Location:
        location = Location(**fields)
        session = self.db.session
        try:
            session.add(location)
            session.commit()
            return location
        except IntegrityError as e:
            session.rollback()
            # Another request stored the same search_query first.
            existing = self.find_location(fields["search_query"])
            if existing is not None:
                return existing
            raise PersistenceError(str(e), table=Location.__tablename__) from e
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(str(e), table=Location.__tablename__) from e

    def rows_for(self, model, location_id: int) -> list:
        return self.db.session.execute(
            self.db.select(model).filter_by(location_id=location_id).order_by(model.id)
        ).scalars().all()

    def insert_record(self, model, fields: dict, location_id: int):
        row = model(location_id=location_id, **fields)
        session = self.db.session
        try:
            session.add(row)
            session.commit()
            return row
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(str(e), table=model.__tablename__, location_id=location_id) from e


class BackgroundWriter:
    """
    Best-effort, fire-and-forget persistence of freshly fetched records.

    Each record is inserted on its own, in its own app context and session,
    so one failure never affects its siblings. With inline=True the inserts
    run synchronously in the caller's context instead.
    """

    def __init__(self, app, store: CacheStore, max_workers: int = 4, inline: bool = False):
        self.app = app
        self.store = store
        self.inline = inline
        self._executor = None if inline else ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="cache-write"
        )
        self._pending = set()
        self._lock = threading.Lock()

    def submit(self, model, rows: list[dict], location_id: int) -> None:
        for fields in rows:
            if self._executor is None:
                self._write(model, fields, location_id)
                continue
            future = self._executor.submit(self._write_in_context, model, fields, location_id)
            with self._lock:
                self._pending.add(future)
            future.add_done_callback(self._forget)

    def flush(self, timeout: float | None = None) -> None:
        """Block until every write submitted so far has settled."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    def _forget(self, future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _write_in_context(self, model, fields: dict, location_id: int) -> None:
        with self.app.app_context():
            self._write(model, fields, location_id)

    def _write(self, model, fields: dict, location_id: int) -> None:
        try:
            self.store.insert_record(model, fields, location_id)
        except PersistenceError as e:
            logger.warning(
                "Background write failed",
                error_kind=e.kind,
                table=model.__tablename__,
                location_id=location_id,
                error=str(e),
            )


@dataclass(frozen=True)
class Resource:
    name: str
    model: type
    api_key_setting: str
    fetch: Callable[[dict, str, float], list]
    normalize: Callable[[dict], dict]


RESOURCES = {
    "weather": Resource(
        "weather", Weather, "WEATHER_API_KEY",
        lambda params, key, timeout: upstream_api.fetch_weather(params["latitude"], params["longitude"], key, timeout=timeout),
        records.normalize_weather,
    ),
    "meetups": Resource(
        "meetups", Meetup, "MEETUP_API_KEY",
        lambda params, key, timeout: upstream_api.fetch_meetups(params["latitude"], params["longitude"], key, timeout=timeout),
        records.normalize_meetup,
    ),
    "movies": Resource(
        "movies", Movie, "MOVIEDB_API_KEY",
        lambda params, key, timeout: upstream_api.fetch_movies(params["search_query"], key, timeout=timeout),
        records.normalize_movie,
    ),
    "yelp": Resource(
        "yelp", Business, "YELP_API_KEY",
        lambda params, key, timeout: upstream_api.fetch_businesses(params["latitude"], params["longitude"], key, timeout=timeout),
        records.normalize_business,
    ),
    "trails": Resource(
        "trails", Trail, "TRAILS_API_KEY",
        lambda params, key, timeout: upstream_api.fetch_trails(params["latitude"], params["longitude"], key, timeout=timeout),
        records.normalize_trail,
    ),
}


class CacheAside:
    """Resolves locations and per-location resources, store first, upstream on a miss."""

    def __init__(self, store: CacheStore, writer: BackgroundWriter, config):
        self.store = store
        self.writer = writer
        self.config = config

    @property
    def timeout(self) -> float:
        return self.config.get("UPSTREAM_TIMEOUT", upstream_api.DEFAULT_TIMEOUT)

    def resolve_location(self, search_query: str) -> dict:
        location = self.store.find_location(search_query)
        if location is not None:
            logger.info("Location cache hit", search_query=search_query, location_id=location.id)
            return location.to_dict()

        logger.info("Location cache miss", search_query=search_query)
        results = upstream_api.geocode(search_query, self.config.get("GEOCODE_API_KEY", ""), timeout=self.timeout)
        if not results:
            raise NoGeocodeResult(search_query)

        fields = records.normalize_location(search_query, results[0])
        location = self.store.insert_location(fields)
        return location.to_dict()

    def fetch(self, kind: str, params: dict) -> list[dict]:
        resource = RESOURCES[kind]
        location_id = params["id"]

        rows = self.store.rows_for(resource.model, location_id)
        if rows:
            logger.info("Cache hit", resource=kind, location_id=location_id, rows=len(rows))
            return [row.to_dict() for row in rows]

        logger.info("Cache miss", resource=kind, location_id=location_id)
        items = resource.fetch(params, self.config.get(resource.api_key_setting, ""), self.timeout)
        fresh = [resource.normalize(item) for item in items]
        self.writer.submit(resource.model, fresh, location_id)
        return fresh
