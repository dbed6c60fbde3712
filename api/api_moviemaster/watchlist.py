import logging

from flask import Blueprint, g, jsonify
from pymongo.errors import DuplicateKeyError

from .auth import require_user_email
from .errors import NotFound
from .identifiers import build_identifier_candidates, find_movie, movie_key
from .movies_functions import serialize_document, utc_now
from .storage import get_storage
from .watchlist_functions import (
    build_candidate_filter,
    build_movie_lookup,
    build_watchlist_entry,
    build_watchlist_item,
    collect_entry_candidates,
)

logger = logging.getLogger(__name__)

watchlist_bp = Blueprint("watchlist", __name__, url_prefix="/watchlist")


def already_exists_response():
    return jsonify({"message": "Movie already in watchlist", "alreadyExists": True})


def resolve_candidates(movie_id: str):
    """
    Build the identity candidates for a watchlist path parameter.

    Args:
        movie_id (str): Identifier from the path segment.

    Returns:
        tuple[list[int], list[str]]: Numeric and string candidates.
    """
    movie = find_movie(get_storage().movies, movie_id)
    return build_identifier_candidates(movie_id, movie)


@watchlist_bp.route("", methods=["GET"])
@require_user_email
def list_watchlist():
    """
    Handle GET requests for the caller's watchlist, newest first.

    Returns:
        Response: Flask response with the watchlist items.
    """
    storage = get_storage()
    entries = list(storage.watchlist.find({"userEmail": g.user_email.lower()}).sort("createdAt", -1))

    numeric, strings, refs = collect_entry_candidates(entries)
    lookup = build_movie_lookup(storage.movies, numeric, strings, refs)
    return jsonify([build_watchlist_item(entry, lookup) for entry in entries])


@watchlist_bp.route("/<movie_id>", methods=["POST"])
@require_user_email
def add_to_watchlist(movie_id: str):
    """
    Handle POST requests that add a movie to the caller's watchlist.

    Adding a movie twice is not an error: the second call answers with
    ``alreadyExists`` set.

    Args:
        movie_id (str): Identifier from the path segment.

    Returns:
        Response: Flask response with the entry and status code.
    """
    storage = get_storage()
    movie = find_movie(storage.movies, movie_id)
    if not movie:
        raise NotFound("Movie not found")

    user_email = g.user_email.lower()
    key = movie_key(movie)
    if storage.watchlist.find_one({"userEmail": user_email, "movieKey": key}):
        return already_exists_response()

    entry = build_watchlist_entry(user_email, movie, utc_now())
    try:
        storage.watchlist.insert_one(entry)
    except DuplicateKeyError:
        logger.info("Watchlist entry %s for %s inserted concurrently", key, user_email)
        return already_exists_response()

    return jsonify({
        "message": "Added to watchlist",
        "alreadyExists": False,
        "entry": serialize_document(entry),
    }), 201


@watchlist_bp.route("/<movie_id>", methods=["DELETE"])
@require_user_email
def remove_from_watchlist(movie_id: str):
    """
    Handle DELETE requests that remove a movie from the caller's watchlist.

    Args:
        movie_id (str): Identifier from the path segment.

    Returns:
        Response: Flask response with the delete result.
    """
    numeric, strings = resolve_candidates(movie_id)
    result = get_storage().watchlist.delete_many(build_candidate_filter(g.user_email, numeric, strings))
    if not result.deleted_count:
        raise NotFound("Watchlist entry not found")
    return jsonify({"message": "Removed from watchlist", "deletedCount": result.deleted_count})


@watchlist_bp.route("/status/<movie_id>", methods=["GET"])
@require_user_email
def watchlist_status(movie_id: str):
    """
    Handle GET requests checking whether a movie is on the caller's watchlist.

    Args:
        movie_id (str): Identifier from the path segment.

    Returns:
        Response: Flask response with the presence flag.
    """
    numeric, strings = resolve_candidates(movie_id)
    entry = get_storage().watchlist.find_one(build_candidate_filter(g.user_email, numeric, strings))
    return jsonify({"inWatchlist": entry is not None})
