import os

from dotenv import load_dotenv


def parse_flag(value, default: bool = False):
    """
    Parse an environment flag into a boolean.

    Args:
        value (Any): Raw value read from the environment.
        default (bool): Fallback when the value is empty.

    Returns:
        bool: Parsed flag.
    """
    if value is None:
        return default
    normalized = str(value).strip().lower()
    if not normalized:
        return default
    return normalized in {"1", "true", "yes", "on"}


def load_config(dotenv_path: str | None = None):
    """
    Read service settings from the environment.

    A ``.env`` file is loaded first when present; variables already set in the
    process environment take precedence over it.

    Args:
        dotenv_path (str | None): Optional explicit path to a ``.env`` file.

    Returns:
        dict: Settings keyed by their Flask config names.
    """
    load_dotenv(dotenv_path=dotenv_path)

    return {
        "MONGO_URI": os.getenv("MONGO_URI", os.getenv("MONGODB_URI", "mongodb://localhost:27017")),
        "MONGO_DB_NAME": os.getenv("MONGO_DB_NAME", "moviemaster"),
        "REDIS_HOST": os.environ.get("REDIS_HOST", "localhost"),
        "REDIS_PORT": int(os.environ.get("REDIS_PORT", 6379)),
        "REDIS_DB": int(os.environ.get("REDIS_DB", 0)),
        "CACHE_TTL_SECONDS": int(os.environ.get("CACHE_TTL_SECONDS", 600)),
        "CACHE_ENABLED": parse_flag(os.environ.get("CACHE_ENABLED"), default=True),
        "LOG_LEVEL": os.environ.get("LOG_LEVEL", "INFO").upper(),
        "PORT": int(os.getenv("PORT", 5000)),
    }
