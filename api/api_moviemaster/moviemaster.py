import logging

from flask import Flask
from flask_cors import CORS

from .cache_functions import ResponseCache, build_redis_client
from .config import load_config
from .errors import register_error_handlers
from .home import home_bp
from .movies import movies_bp
from .storage import MovieStorage
from .users import users_bp
from .watchlist import watchlist_bp

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(config: dict | None = None, storage: MovieStorage | None = None, cache: ResponseCache | None = None):
    """
    Build the Flask application.

    Args:
        config (dict | None): Settings overriding the environment.
        storage (MovieStorage | None): Storage to use; built from the config when omitted.
        cache (ResponseCache | None): Response cache; built from the config when omitted.

    Returns:
        Flask: Configured application with an opened storage.
    """
    app = Flask(__name__)
    app.config.update(load_config())
    if config:
        app.config.update(config)
    app.json.sort_keys = False
    CORS(app)

    configure_logging(app.config["LOG_LEVEL"])

    if storage is None:
        storage = MovieStorage(app.config["MONGO_URI"], app.config["MONGO_DB_NAME"])
    storage.open()

    if cache is None:
        cache = ResponseCache(build_redis_client(app.config), app.config["CACHE_TTL_SECONDS"])

    app.extensions["moviemaster"] = {"storage": storage, "cache": cache}

    register_error_handlers(app)

    @app.route("/", methods=["GET"])
    def read_root():
        return "MovieMaster Pro Server is running"

    app.register_blueprint(users_bp)
    app.register_blueprint(movies_bp)
    app.register_blueprint(watchlist_bp)
    app.register_blueprint(home_bp)
    return app


def main():
    app = create_app()
    storage = app.extensions["moviemaster"]["storage"]
    try:
        logger.info("Server is running on port %s", app.config["PORT"])
        app.run(host="0.0.0.0", port=app.config["PORT"])
    finally:
        storage.close()


if __name__ == "__main__":
    main()
