from flask import Blueprint, jsonify

from .cache_functions import HOME_CACHE_PREFIX, build_cache_key, get_cache
from .movies_functions import serialize_movie
from .storage import get_storage

home_bp = Blueprint("home", __name__, url_prefix="/home")

TOP_RATED_LIMIT = 5
RECENT_LIMIT = 6
FEATURED_LIMIT = 5

RECENT_SORT = [("createdAt", -1), ("updatedAt", -1), ("_id", -1)]


def load_movies(sort: list[tuple[str, int]], limit: int):
    cursor = get_storage().movies.find({}).sort(sort).limit(limit)
    return [serialize_movie(movie) for movie in cursor]


def load_stats():
    storage = get_storage()
    return {
        "totalMovies": storage.movies.estimated_document_count(),
        "totalUsers": storage.users.estimated_document_count(),
    }


@home_bp.route("/stats", methods=["GET"])
def get_stats():
    """
    Handle GET requests for the catalog and user counts.

    Counts are estimates taken from collection metadata.

    Returns:
        Response: Flask response with the counts.
    """
    return jsonify(get_cache().remember(build_cache_key(HOME_CACHE_PREFIX, "stats"), load_stats))


@home_bp.route("/top-rated", methods=["GET"])
def get_top_rated():
    """Handle GET requests for the best rated movies."""
    payload = get_cache().remember(
        build_cache_key(HOME_CACHE_PREFIX, "top-rated"),
        lambda: load_movies([("rating", -1)], TOP_RATED_LIMIT),
    )
    return jsonify(payload)


@home_bp.route("/recent", methods=["GET"])
def get_recent():
    """
    Handle GET requests for the latest additions.

    Ties on ``createdAt`` are broken by ``updatedAt`` and then by key.

    Returns:
        Response: Flask response with the recent movies.
    """
    payload = get_cache().remember(
        build_cache_key(HOME_CACHE_PREFIX, "recent"),
        lambda: load_movies(RECENT_SORT, RECENT_LIMIT),
    )
    return jsonify(payload)


@home_bp.route("/featured", methods=["GET"])
def get_featured():
    """Handle GET requests for the newest movies shown on the home banner."""
    payload = get_cache().remember(
        build_cache_key(HOME_CACHE_PREFIX, "featured"),
        lambda: load_movies([("createdAt", -1)], FEATURED_LIMIT),
    )
    return jsonify(payload)
