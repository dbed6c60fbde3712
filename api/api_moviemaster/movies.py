import logging

from flask import Blueprint, g, jsonify, request

from .auth import require_user_email
from .cache_functions import MOVIE_DETAIL_CACHE_PREFIX, build_cache_key, get_cache
from .errors import NotFound, NotOwner
from .identifiers import find_movie, identity_filter
from .movies_functions import (
    build_movie_document,
    build_movie_query,
    build_movie_update,
    is_owner,
    owner_emails,
    resolve_sort,
    serialize_movie,
    utc_now,
)
from .sequence import get_next_sequence
from .storage import get_storage

logger = logging.getLogger(__name__)

movies_bp = Blueprint("movies", __name__, url_prefix="/movies")


def load_owned_movie(movie_id: str, user_email: str):
    """
    Resolve a movie and make sure the caller owns it.

    Args:
        movie_id (str): Identifier from the path segment.
        user_email (str): Email of the caller.

    Returns:
        dict: Stored movie document.

    Raises:
        NotFound: When no movie matches.
        NotOwner: When the caller is not the owner.
    """
    movie = find_movie(get_storage().movies, movie_id)
    if not movie:
        raise NotFound("Movie not found")
    if not is_owner(movie, user_email):
        raise NotOwner()
    return movie


@movies_bp.route("", methods=["GET"])
def list_movies():
    """
    Handle GET requests for the catalog with optional filters.

    Returns:
        Response: Flask response with the matching movies.
    """
    query = build_movie_query(request.args.get("genre"), request.args.get("search"))
    cursor = get_storage().movies.find(query)

    sort = resolve_sort(request.args.get("sortBy"))
    if sort:
        cursor = cursor.sort(sort)

    return jsonify([serialize_movie(movie) for movie in cursor])


@movies_bp.route("/my-collection", methods=["GET"])
@require_user_email
def my_collection():
    """
    Handle GET requests for the movies added by the caller, newest first.

    Returns:
        Response: Flask response with the caller's movies.
    """
    cursor = get_storage().movies.find({"addedBy": {"$in": owner_emails(g.user_email)}}).sort("createdAt", -1)
    return jsonify([serialize_movie(movie) for movie in cursor])


@movies_bp.route("/add", methods=["POST"])
@require_user_email
def add_movie():
    """
    Handle POST requests that add a movie owned by the caller.

    Returns:
        Response: Flask response with the stored movie and status code.
    """
    storage = get_storage()
    payload = request.get_json(silent=True) or {}

    movie_id = get_next_sequence(storage)
    document = build_movie_document(payload, g.user_email, movie_id, utc_now())
    storage.movies.insert_one(document)
    get_cache().invalidate_catalog()
    logger.info("Movie %s added by %s", movie_id, document["addedBy"])

    body = serialize_movie(document)
    body["insertedId"] = movie_id
    return jsonify(body), 201


@movies_bp.route("/update/<movie_id>", methods=["PUT"])
@require_user_email
def update_movie(movie_id: str):
    """
    Handle PUT requests that modify a movie owned by the caller.

    Args:
        movie_id (str): Identifier from the path segment.

    Returns:
        Response: Flask response with the update result.
    """
    storage = get_storage()
    existing = load_owned_movie(movie_id, g.user_email)

    selector = identity_filter(existing)
    updates = build_movie_update(request.get_json(silent=True), utc_now())
    result = storage.movies.update_one(selector, {"$set": updates})
    get_cache().invalidate_catalog()

    updated = storage.movies.find_one(selector) or {**existing, **updates}
    return jsonify({
        "matchedCount": result.matched_count,
        "modifiedCount": result.modified_count,
        "movie": serialize_movie(updated),
    })


@movies_bp.route("/<movie_id>", methods=["GET"])
def get_movie(movie_id: str):
    """
    Handle GET requests for a single movie.

    Args:
        movie_id (str): Identifier from the path segment.

    Returns:
        Response: Flask response with the movie or an error payload.
    """
    cache = get_cache()
    cache_key = build_cache_key(MOVIE_DETAIL_CACHE_PREFIX, movie_id.strip())
    cached = cache.get(cache_key)
    if cached is not None:
        return jsonify(cached)

    movie = find_movie(get_storage().movies, movie_id)
    if not movie:
        raise NotFound("Movie not found")

    serialized = serialize_movie(movie)
    cache.set(cache_key, serialized)
    return jsonify(serialized)


@movies_bp.route("/<movie_id>", methods=["DELETE"])
@require_user_email
def delete_movie(movie_id: str):
    """
    Handle DELETE requests for a movie owned by the caller.

    Watchlist entries pointing at the movie are kept; they fall back to
    their stored snapshot.

    Args:
        movie_id (str): Identifier from the path segment.

    Returns:
        Response: Flask response with the delete result.
    """
    existing = load_owned_movie(movie_id, g.user_email)

    result = get_storage().movies.delete_one(identity_filter(existing))
    get_cache().invalidate_catalog()
    logger.info("Movie %s deleted by %s", existing.get("id", existing.get("_id")), g.user_email)
    return jsonify({"deletedCount": result.deleted_count})
