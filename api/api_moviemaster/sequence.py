import logging

from pymongo import ReturnDocument

from .identifiers import is_number
from .storage import MovieStorage

logger = logging.getLogger(__name__)

MOVIE_ID_SEQUENCE = "movieId"


def find_max_movie_id(storage: MovieStorage):
    """
    Scan the movies collection for the highest numeric ``id`` or ``_id``.

    Legacy records keyed by an integer ``_id`` without an ``id`` field count
    as well, since new movies store the issued value as their ``_id`` too.

    Args:
        storage (MovieStorage): Opened storage.

    Returns:
        int: Highest id, 0 when no movie carries one.
    """
    highest = 0
    for document in storage.movies.find({}, projection={"id": 1}):
        for value in (document.get("id"), document.get("_id")):
            if is_number(value) and value > highest:
                highest = int(value)
    return highest


def resync_sequence(storage: MovieStorage, name: str = MOVIE_ID_SEQUENCE):
    """
    Reset a counter to one past the highest stored movie id.

    Not safe when several callers recover at the same time.

    Args:
        storage (MovieStorage): Opened storage.
        name (str): Counter name.

    Returns:
        int: The value issued by the recovery.
    """
    next_value = find_max_movie_id(storage) + 1
    storage.counters.update_one({"_id": name}, {"$set": {"seq": next_value}}, upsert=True)
    logger.warning("Counter %s recovered from the movies collection at %s", name, next_value)
    return next_value


def get_next_sequence(storage: MovieStorage, name: str = MOVIE_ID_SEQUENCE):
    """
    Issue the next integer of a named sequence.

    The counter is incremented atomically and created when absent. When the
    store does not hand back the counter, or hands back a value some movie
    already holds, the counter is rebuilt from the movies collection.

    Args:
        storage (MovieStorage): Opened storage.
        name (str): Counter name.

    Returns:
        int: Newly issued value.
    """
    counter = storage.counters.find_one_and_update(
        {"_id": name},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    if counter is None:
        counter = storage.counters.find_one({"_id": name})

    issued = counter.get("seq") if counter else None
    if not is_number(issued):
        logger.warning("Counter %s missing after increment", name)
        return resync_sequence(storage, name)

    issued = int(issued)
    if storage.movies.find_one({"$or": [{"id": issued}, {"_id": issued}]}, projection={"_id": 1}):
        logger.warning("Counter %s is stale at %s", name, issued)
        return resync_sequence(storage, name)

    return issued
