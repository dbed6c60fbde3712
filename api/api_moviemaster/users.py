import logging

from flask import Blueprint, jsonify, request
from pymongo.errors import DuplicateKeyError

from .cache_functions import HOME_CACHE_PREFIX, get_cache
from .errors import BadInput
from .movies_functions import owner_emails, serialize_document, utc_now
from .storage import get_storage

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/users")

USER_PROFILE_FIELDS = ("displayName", "photoURL", "uid")


@users_bp.route("/create-or-update", methods=["POST"])
def create_or_update_user():
    """
    Handle POST requests that record a login.

    The profile is created on first login and refreshed afterwards.

    Returns:
        Response: Flask response with the stored user and status code.
    """
    payload = request.get_json(silent=True) or {}
    email = str(payload.get("email") or "").strip().lower()
    if not email:
        raise BadInput("email is required")

    now = utc_now()
    updates = {field: payload[field] for field in USER_PROFILE_FIELDS if field in payload}
    updates["lastLoginAt"] = now

    users_collection = get_storage().users
    selector = {"email": email}
    changes = {"$set": updates, "$setOnInsert": {"createdAt": now}}
    try:
        result = users_collection.update_one(selector, changes, upsert=True)
    except DuplicateKeyError:
        # A concurrent first login inserted the profile; this call refreshes it.
        logger.info("User %s created concurrently", email)
        result = users_collection.update_one(selector, changes, upsert=True)
    created = result.upserted_id is not None
    if created:
        get_cache().invalidate_prefix(HOME_CACHE_PREFIX)
        logger.info("User %s created", email)

    user = users_collection.find_one({"email": email})
    return jsonify({
        "message": "User created" if created else "User updated",
        "created": created,
        "user": serialize_document(user),
    }), 201 if created else 200


@users_bp.route("/check/<email>", methods=["GET"])
def check_user(email: str):
    """
    Handle GET requests checking whether a user exists.

    Args:
        email (str): Email from the path segment.

    Returns:
        Response: Flask response with the existence flag.
    """
    email = email.strip()
    exists = bool(email) and get_storage().users.find_one({"email": {"$in": owner_emails(email)}}, projection={"_id": 1}) is not None
    return jsonify({"exists": exists})
