import logging

from flask import current_app
from pymongo import ASCENDING, DESCENDING, MongoClient

logger = logging.getLogger(__name__)

MOVIES_COLLECTION = "movies"
USERS_COLLECTION = "users"
WATCHLIST_COLLECTION = "watchlist"
COUNTERS_COLLECTION = "counters"


class MovieStorage:
    """Access point for the MongoDB collections used by the API."""

    def __init__(self, uri: str = "mongodb://localhost:27017", db_name: str = "moviemaster", client: MongoClient | None = None):
        self.uri = uri
        self.db_name = db_name
        self.client = client
        self.db = None

    def open(self):
        """
        Connect to MongoDB and make sure the indexes exist.

        Returns:
            MovieStorage: The opened storage, for chaining.
        """
        if self.client is None:
            logger.info("Connecting to MongoDB database %s", self.db_name)
            self.client = MongoClient(self.uri)
        self.db = self.client[self.db_name]
        self.ensure_indexes()
        return self

    def close(self):
        """Release the underlying client."""
        if self.client is not None:
            self.client.close()
            logger.info("MongoDB connection closed")
        self.client = None
        self.db = None

    def ensure_indexes(self):
        """
        Create the indexes the API relies on.

        The unique watchlist index backs the idempotent add when two requests
        race each other.
        """
        self.watchlist.create_index([("userEmail", ASCENDING), ("movieKey", ASCENDING)], unique=True, name="user_movie_unique")
        self.users.create_index([("email", ASCENDING)], unique=True, name="email_unique")
        self.movies.create_index([("id", ASCENDING)], name="movie_id")
        self.movies.create_index([("addedBy", ASCENDING)], name="added_by")
        self.movies.create_index([("createdAt", DESCENDING)], name="created_at")

    def _collection(self, name: str):
        if self.db is None:
            raise RuntimeError("Storage is not open")
        return self.db[name]

    @property
    def movies(self):
        return self._collection(MOVIES_COLLECTION)

    @property
    def users(self):
        return self._collection(USERS_COLLECTION)

    @property
    def watchlist(self):
        return self._collection(WATCHLIST_COLLECTION)

    @property
    def counters(self):
        return self._collection(COUNTERS_COLLECTION)


def get_storage():
    """Storage bound to the running application."""
    return current_app.extensions["moviemaster"]["storage"]
