from datetime import datetime, timedelta

import fakeredis
import mongomock
import pytest

from api_moviemaster import create_app
from api_moviemaster.cache_functions import ResponseCache
from api_moviemaster.storage import MovieStorage

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


class CollectionProxy:
    """Wraps a collection and replaces some of its methods."""

    def __init__(self, collection, **overrides):
        self._collection = collection
        self._overrides = overrides

    def __getattr__(self, name):
        if name in self._overrides:
            return self._overrides[name]
        return getattr(self._collection, name)


@pytest.fixture
def storage():
    storage = MovieStorage(db_name="moviemaster_test", client=mongomock.MongoClient())
    storage.open()
    yield storage
    storage.client.drop_database(storage.db_name)
    storage.close()


@pytest.fixture
def cache():
    return ResponseCache(fakeredis.FakeRedis(server=fakeredis.FakeServer()), ttl_seconds=60)


@pytest.fixture
def app(storage, cache):
    return create_app({"TESTING": True, "LOG_LEVEL": "WARNING"}, storage=storage, cache=cache)


@pytest.fixture
def client(app):
    return app.test_client()


def auth(email: str):
    return {"x-user-email": email}


def make_movie(movie_id, title, minutes=0, **fields):
    """Build a stored movie document created ``minutes`` after a fixed base time."""
    document = {
        "_id": movie_id,
        "title": title,
        "genre": "Drama",
        "releaseYear": 2000,
        "director": "Someone",
        "cast": "Nobody",
        "rating": 3.0,
        "addedBy": "owner@x.com",
        "createdAt": BASE_TIME + timedelta(minutes=minutes),
        "updatedAt": BASE_TIME + timedelta(minutes=minutes),
    }
    if isinstance(movie_id, int):
        document["id"] = movie_id
    document.update(fields)
    return document
