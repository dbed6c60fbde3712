import redis

from api_moviemaster.cache_functions import ResponseCache, build_cache_key, build_redis_client
from api_moviemaster.config import load_config, parse_flag


class BrokenRedis:
    def get(self, key):
        raise redis.ConnectionError("redis is down")

    def setex(self, key, ttl, value):
        raise redis.ConnectionError("redis is down")

    def scan_iter(self, pattern):
        raise redis.ConnectionError("redis is down")


def test_build_cache_key():
    assert build_cache_key("movie_detail", 12) == "movie_detail:12"
    assert build_cache_key("home", None, "x") == "home::x"


def test_remember_loads_once(cache):
    calls = []

    def loader():
        calls.append(1)
        return {"value": len(calls)}

    assert cache.remember("home:test", loader) == {"value": 1}
    assert cache.remember("home:test", loader) == {"value": 1}
    assert len(calls) == 1

    cache.invalidate_prefix("home")
    assert cache.remember("home:test", loader) == {"value": 2}


def test_cached_payload_stores_null_for_nan(cache):
    cache.set("home:odd", [{"rating": float("nan"), "title": "Odd"}])
    assert cache.redis_client.get("home:odd") == b'[{"rating": null, "title": "Odd"}]'
    assert cache.get("home:odd") == [{"rating": None, "title": "Odd"}]


def test_disabled_cache_always_loads():
    cache = ResponseCache(None)
    assert cache.remember("k", lambda: [1]) == [1]
    assert cache.get("k") is None
    cache.invalidate_catalog()


def test_cache_failures_fall_back_to_storage(storage, caplog):
    from api_moviemaster import create_app
    from conftest import make_movie

    storage.movies.insert_one(make_movie(1, "Dune"))
    app = create_app({"TESTING": True, "LOG_LEVEL": "WARNING"}, storage=storage, cache=ResponseCache(BrokenRedis()))
    client = app.test_client()

    assert client.get("/movies/1").get_json()["title"] == "Dune"
    assert client.get("/home/stats").get_json()["totalMovies"] == 1
    assert "Cache read failed" in caplog.text


def test_parse_flag():
    assert parse_flag("true") is True
    assert parse_flag("0") is False
    assert parse_flag("", default=True) is True
    assert parse_flag(None) is False


def test_load_config_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
    monkeypatch.setenv("MONGO_DB_NAME", "catalog")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "30")
    monkeypatch.setenv("CACHE_ENABLED", "no")
    config = load_config(dotenv_path=str(tmp_path / "missing.env"))

    assert config["MONGO_URI"] == "mongodb://db:27017"
    assert config["MONGO_DB_NAME"] == "catalog"
    assert config["CACHE_TTL_SECONDS"] == 30
    assert config["CACHE_ENABLED"] is False
    assert build_redis_client(config) is None
