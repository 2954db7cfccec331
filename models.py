from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import declared_attr

db = SQLAlchemy()


class SerializableMixin:
    def to_dict(self):
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}


class Location(SerializableMixin, db.Model):
    __tablename__ = "locations"

    id = db.Column(db.Integer, primary_key=True)
    # Cache key for /location lookups.
    search_query = db.Column(db.String(255), nullable=False, unique=True, index=True)
    formatted_query = db.Column(db.String(255))
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)

    def __repr__(self):
        return f"<Location {self.id} {self.search_query!r}>"


class LocationResource(SerializableMixin):
    """Columns shared by every per-location resource table."""

    id = db.Column(db.Integer, primary_key=True)

    @declared_attr
    def location_id(cls):
        return db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

    def __repr__(self):
        return f"<{type(self).__name__} {self.id} location={self.location_id}>"


class Weather(LocationResource, db.Model):
    __tablename__ = "weathers"

    forecast = db.Column(db.Text)
    time = db.Column(db.String(32))


class Meetup(LocationResource, db.Model):
    __tablename__ = "meetups"

    link = db.Column(db.String(512))
    name = db.Column(db.String(255))
    creation_date = db.Column(db.String(32))
    host = db.Column(db.String(255))


class Movie(LocationResource, db.Model):
    __tablename__ = "movies"

    title = db.Column(db.String(255))
    released_on = db.Column(db.String(32))
    total_votes = db.Column(db.Integer)
    average_votes = db.Column(db.Float)
    popularity = db.Column(db.Float)
    image_url = db.Column(db.String(512))


class Business(LocationResource, db.Model):
    __tablename__ = "yelp"

    url = db.Column(db.String(1024))
    name = db.Column(db.String(255))
    rating = db.Column(db.Float)
    price = db.Column(db.String(8))
    image_url = db.Column(db.String(1024))


class Trail(LocationResource, db.Model):
    __tablename__ = "hikes"

    trail_url = db.Column(db.String(512))
    name = db.Column(db.String(255))
    location = db.Column(db.String(255))
    length = db.Column(db.Float)
    condition_date = db.Column(db.String(16))
    condition_time = db.Column(db.String(16))
    conditions = db.Column(db.Text)
    stars = db.Column(db.Float)
    star_votes = db.Column(db.Integer)
    summary = db.Column(db.Text)
