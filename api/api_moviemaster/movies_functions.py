import math
import re
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId

from .identifiers import convert_movie_to_integer_id

MOVIE_FIELDS = (
    "title",
    "genre",
    "releaseYear",
    "director",
    "cast",
    "rating",
    "duration",
    "plotSummary",
    "posterUrl",
    "language",
    "country",
)
NUMERIC_MOVIE_FIELDS = ("releaseYear", "rating", "duration")
PROTECTED_MOVIE_FIELDS = ("addedBy", "_id", "id", "createdAt")
SEARCH_FIELDS = ("title", "director", "cast")

SORT_OPTIONS = {
    "rating": [("rating", -1)],
    "year": [("releaseYear", -1)],
    "title": [("title", 1)],
}


def utc_now():
    """Current UTC time truncated to milliseconds, the precision MongoDB keeps."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def format_datetime(value: datetime):
    """
    Format a datetime as an ISO 8601 UTC string.

    Args:
        value (datetime): Naive values are treated as UTC, like MongoDB returns them.

    Returns:
        str: Timestamp suffixed with ``Z``.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


def to_json_value(value: Any):
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, dict):
        return {key: to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    return value


def serialize_document(document: dict | None):
    """
    Serialize a MongoDB document to a JSON-friendly dictionary.

    Args:
        document (dict | None): MongoDB document.

    Returns:
        dict: JSON-safe copy in which non-finite numbers become null.
    """
    if not document:
        return {}
    return to_json_value(dict(document))


def serialize_movie(movie: dict | None):
    """Normalize a movie's identity and serialize it for a response."""
    return serialize_document(convert_movie_to_integer_id(movie))


def coerce_number(value: Any):
    """
    Convert a body value to a number the way JavaScript's ``Number`` does.

    No range checks happen here. Values that do not parse become ``NaN``,
    missing values included; blank strings become ``0``.

    Args:
        value (Any): Raw value from the request body.

    Returns:
        int | float: Parsed number.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if value is None or isinstance(value, (list, dict)):
        return math.nan

    text = str(value).strip()
    if not text:
        return 0
    if "_" in text:
        return math.nan
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return math.nan


def build_movie_document(payload: dict | None, owner_email: str, movie_id: int, now: datetime):
    """
    Build the stored document for a new movie.

    Args:
        payload (dict | None): Request body.
        owner_email (str): Email of the caller.
        movie_id (int): Integer identity issued by the counter.
        now (datetime): Creation time.

    Returns:
        dict: Document with ``_id`` mirroring ``id``.
    """
    if not isinstance(payload, dict):
        payload = {}
    document = {"_id": movie_id, "id": movie_id}
    for field in MOVIE_FIELDS:
        value = payload.get(field)
        if field in NUMERIC_MOVIE_FIELDS:
            value = coerce_number(value)
        document[field] = value

    document["addedBy"] = owner_email.lower()
    document["createdAt"] = now
    document["updatedAt"] = now
    return document


def build_movie_update(payload: dict | None, now: datetime):
    """
    Build the ``$set`` body of an update, leaving ownership and identity alone.

    Args:
        payload (dict | None): Request body.
        now (datetime): Update time.

    Returns:
        dict: Fields to set.
    """
    updates = {}
    if not isinstance(payload, dict):
        payload = {}
    for field, value in payload.items():
        if field in PROTECTED_MOVIE_FIELDS or field.startswith("$"):
            continue
        if field in NUMERIC_MOVIE_FIELDS:
            value = coerce_number(value)
        updates[field] = value
    updates["updatedAt"] = now
    return updates


def is_owner(movie: dict, user_email: str):
    """
    Check whether the caller owns a movie.

    Args:
        movie (dict): Stored movie document.
        user_email (str): Email of the caller.

    Returns:
        bool: True when the emails match ignoring case.
    """
    owner = str(movie.get("addedBy") or "").lower()
    return bool(owner) and owner == user_email.lower()


def build_movie_query(genre: str | None, search: str | None):
    """
    Build the filter for the movie listing.

    Args:
        genre (str | None): Exact genre, ignored when empty or ``All``.
        search (str | None): Case-insensitive substring over title, director and cast.

    Returns:
        dict: MongoDB filter.
    """
    query = {}
    if genre and genre != "All":
        query["genre"] = genre

    if search:
        regex = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{field: regex} for field in SEARCH_FIELDS]

    return query


def resolve_sort(sort_by: str | None):
    """Sort specification for ``sortBy``; None keeps insertion order."""
    return SORT_OPTIONS.get((sort_by or "").strip().lower())


def owner_emails(user_email: str):
    """Both spellings under which a caller's movies may be stored."""
    emails = [user_email]
    if user_email.lower() != user_email:
        emails.append(user_email.lower())
    return emails
