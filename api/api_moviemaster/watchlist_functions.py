from datetime import datetime

from bson import ObjectId

from .identifiers import convert_movie_to_integer_id, is_number
from .movies_functions import serialize_document, serialize_movie, to_json_value

SNAPSHOT_FIELDS = ("title", "genre", "releaseYear", "rating", "posterUrl", "director", "duration")


def build_watchlist_entry(user_email: str, movie: dict, now: datetime):
    """
    Build a watchlist document with a copy of the movie's summary fields.

    The snapshot lets the entry still render after the movie is deleted.
    Movies still stored under an ObjectId keep it in ``movieRef`` so the
    listing can load them again.

    Args:
        user_email (str): Email of the caller.
        movie (dict): Stored movie document.
        now (datetime): Creation time.

    Returns:
        dict: Document ready for insertion.
    """
    normalized = convert_movie_to_integer_id(movie)
    entry = {
        "userEmail": user_email.lower(),
        "movieKey": str(normalized["id"]),
        "movieId": normalized["id"],
        "movie": {field: movie.get(field) for field in SNAPSHOT_FIELDS},
        "createdAt": now,
    }
    if isinstance(movie.get("_id"), ObjectId):
        entry["movieRef"] = movie["_id"]
    return entry


def build_candidate_filter(user_email: str, numeric: list[int], strings: list[str]):
    """
    Build the filter matching a caller's entries under any candidate identity.

    Args:
        user_email (str): Email of the caller.
        numeric (list[int]): Candidates compared with ``movieId``.
        strings (list[str]): Candidates compared with ``movieKey``.

    Returns:
        dict: MongoDB filter.
    """
    alternatives = [{"movieKey": {"$in": strings}}]
    if numeric:
        alternatives.append({"movieId": {"$in": numeric}})
    return {"userEmail": user_email.lower(), "$or": alternatives}


def collect_entry_candidates(entries: list[dict]):
    """
    Gather the identities needed to load the movies behind watchlist entries.

    Args:
        entries (list[dict]): Watchlist documents.

    Returns:
        tuple[list[int], list[str], list[ObjectId]]: Numeric ids and string keys,
        followed by the ObjectId keys of legacy movies.
    """
    numeric = []
    strings = []
    refs = []
    for entry in entries:
        ref = entry.get("movieRef")
        if isinstance(ref, ObjectId) and ref not in refs:
            refs.append(ref)
        movie_id = entry.get("movieId")
        if is_number(movie_id) and int(movie_id) not in numeric:
            numeric.append(int(movie_id))
        key = entry.get("movieKey")
        if key is None:
            continue
        key = str(key)
        if key not in strings:
            strings.append(key)
        if key.isdigit() and int(key) not in numeric:
            numeric.append(int(key))
    return numeric, strings, refs


def build_movie_lookup(movies_collection, numeric: list[int], strings: list[str], refs: list[ObjectId] = ()):
    """
    Load the movies referenced by a set of watchlist entries in one query.

    Args:
        movies_collection (Collection): MongoDB movies collection.
        numeric (list[int]): Numeric candidates.
        strings (list[str]): String candidates.
        refs (list[ObjectId]): ObjectId keys of legacy movies.

    Returns:
        dict: Normalized movies keyed by their watchlist key.
    """
    if not numeric and not strings and not refs:
        return {}

    query = {"$or": [
        {"id": {"$in": numeric}},
        {"_id": {"$in": [*numeric, *strings, *refs]}},
    ]}
    lookup = {}
    for movie in movies_collection.find(query):
        normalized = convert_movie_to_integer_id(movie)
        lookup.setdefault(str(normalized["id"]), movie)
    return lookup


def build_watchlist_item(entry: dict, lookup: dict):
    """
    Render a watchlist entry with live movie data, or its snapshot when the movie is gone.

    Args:
        entry (dict): Watchlist document.
        lookup (dict): Movies keyed by watchlist key.

    Returns:
        dict: JSON-ready item.
    """
    movie = lookup.get(str(entry.get("movieKey"))) or lookup.get(str(entry.get("movieId")))
    watchlisted_at = to_json_value(entry.get("createdAt"))

    if movie is not None:
        item = serialize_movie(movie)
        item["watchlistedAt"] = watchlisted_at
        item["isMissing"] = False
        return item

    item = serialize_document(entry.get("movie") or {})
    fallback_id = entry.get("movieId")
    if fallback_id is None:
        fallback_id = entry.get("movieKey")
    item["_id"] = fallback_id
    item["id"] = fallback_id
    item["watchlistedAt"] = watchlisted_at
    item["isMissing"] = True
    return item
