import logging
import math
import re
from typing import Any, NamedTuple

from bson import ObjectId
from pymongo.collection import Collection

from .errors import BadInput

logger = logging.getLogger(__name__)

INTEGER_ID = "integer"
OBJECT_ID = "object_id"
LITERAL_ID = "literal"

FALLBACK_MOVIE_ID = 1
MAX_STORED_INT = 2 ** 63 - 1

POSITIVE_INTEGER_PATTERN = re.compile(r"^[0-9]+$")
OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def is_storable_id(text: str):
    """True for positive integers that fit the 64-bit ints MongoDB stores."""
    return bool(POSITIVE_INTEGER_PATTERN.match(text)) and 0 < int(text) <= MAX_STORED_INT


class MovieIdentifier(NamedTuple):
    """Caller supplied movie identifier tagged with its shape."""

    kind: str
    value: Any
    raw: str


def parse_identifier(raw: Any):
    """
    Classify a caller supplied identifier.

    Args:
        raw (Any): Identifier taken from the path or the body.

    Returns:
        MovieIdentifier: Tagged identifier.

    Raises:
        BadInput: When the identifier is blank.
    """
    text = str(raw if raw is not None else "").strip()
    if not text:
        raise BadInput("Movie id is required")

    if is_storable_id(text):
        return MovieIdentifier(INTEGER_ID, int(text), text)
    if OBJECT_ID_PATTERN.match(text):
        return MovieIdentifier(OBJECT_ID, ObjectId(text), text)
    return MovieIdentifier(LITERAL_ID, text, text)


def find_movie(movies_collection: Collection, raw: Any):
    """
    Resolve an identifier to a stored movie.

    Integer identifiers are matched against ``id`` and then ``_id``; object
    references against ``_id``; anything left over is compared literally with
    ``_id`` and ``id``. The literal comparison is also the last resort for
    the other shapes, which covers records keyed by numeric strings.

    Args:
        movies_collection (Collection): MongoDB movies collection.
        raw (Any): Identifier supplied by the client.

    Returns:
        dict | None: The first matching document.
    """
    identifier = parse_identifier(raw)

    if identifier.kind == INTEGER_ID:
        for field in ("id", "_id"):
            document = movies_collection.find_one({field: identifier.value})
            if document:
                return document

    if identifier.kind == OBJECT_ID:
        document = movies_collection.find_one({"_id": identifier.value})
        if document:
            return document

    return movies_collection.find_one({"$or": [{"_id": identifier.raw}, {"id": identifier.raw}]})


def hex_suffix_to_int(value: str):
    """
    Derive an integer from the last 8 hex characters of an identifier.

    Unrelated identifiers can share a suffix, so results may collide.

    Args:
        value (str): Hex string, usually an ObjectId.

    Returns:
        int: Parsed integer.
    """
    return int(str(value)[-8:], 16)


def is_number(value: Any):
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def resolve_integer_id(movie: dict):
    """
    Compute the positive integer identity of a stored movie.

    Args:
        movie (dict): Stored movie document.

    Returns:
        int: Identity, never below 1.
    """
    numeric_id = movie.get("id")
    canonical = movie.get("_id")

    if is_number(numeric_id):
        resolved = int(numeric_id)
    elif isinstance(canonical, ObjectId):
        resolved = hex_suffix_to_int(str(canonical))
    elif is_number(canonical):
        resolved = int(canonical)
    elif isinstance(canonical, str) and POSITIVE_INTEGER_PATTERN.match(canonical.strip()):
        resolved = int(canonical.strip())
    elif isinstance(canonical, str) and OBJECT_ID_PATTERN.match(canonical.strip()):
        resolved = hex_suffix_to_int(canonical.strip())
    else:
        resolved = FALLBACK_MOVIE_ID

    if resolved > MAX_STORED_INT:
        raise OverflowError(f"{resolved} does not fit a stored integer")
    return max(resolved, 1)


def convert_movie_to_integer_id(movie: dict | None):
    """
    Return a copy of a movie whose ``_id`` and ``id`` hold the same integer.

    Conversion never raises: on failure a warning is logged and the movie is
    given the fallback id ``1``, which several legacy records may share.

    Args:
        movie (dict | None): Stored movie document.

    Returns:
        dict | None: Normalized copy, or None when no movie was given.
    """
    if movie is None:
        return None

    try:
        integer_id = resolve_integer_id(movie)
    except (TypeError, ValueError, OverflowError) as exc:
        logger.warning("Could not convert movie id %r to an integer: %s", movie.get("_id"), exc)
        integer_id = FALLBACK_MOVIE_ID

    normalized = dict(movie)
    normalized["_id"] = integer_id
    normalized["id"] = integer_id
    return normalized


def movie_key(movie: dict):
    """Watchlist key of a movie: its normalized id as a string."""
    return str(convert_movie_to_integer_id(movie)["id"])


def identity_filter(movie: dict):
    """
    Build the filter that addresses a stored movie by the identity it uses.

    Args:
        movie (dict): Stored movie document.

    Returns:
        dict: ``{"id": ...}`` when the record carries one, else ``{"_id": ...}``.
    """
    if movie.get("id") is not None:
        return {"id": movie["id"]}
    return {"_id": movie["_id"]}


def build_identifier_candidates(raw: Any, movie: dict | None = None):
    """
    Collect the numeric and string forms under which a movie may be stored.

    Args:
        raw (Any): Identifier from the path segment.
        movie (dict | None): Resolved movie, when one was found.

    Returns:
        tuple[list[int], list[str]]: Numeric candidates and string candidates.
    """
    numeric = []
    strings = []

    def add_numeric(value: int):
        if value not in numeric:
            numeric.append(value)
        if str(value) not in strings:
            strings.append(str(value))

    text = str(raw if raw is not None else "").strip()
    if text:
        strings.append(text)
        if is_storable_id(text):
            add_numeric(int(text))
        elif OBJECT_ID_PATTERN.match(text):
            add_numeric(max(hex_suffix_to_int(text), 1))

    if movie is not None:
        add_numeric(convert_movie_to_integer_id(movie)["id"])

    return numeric, strings
