import logging

import pytest
from bson import ObjectId

from api_moviemaster.errors import BadInput
from api_moviemaster.identifiers import (
    INTEGER_ID,
    LITERAL_ID,
    OBJECT_ID,
    build_identifier_candidates,
    convert_movie_to_integer_id,
    find_movie,
    identity_filter,
    parse_identifier,
)


@pytest.mark.parametrize("movie_id", [1, 7, 42, 123456])
def test_integer_id_is_kept(movie_id):
    normalized = convert_movie_to_integer_id({"_id": ObjectId(), "id": movie_id, "title": "x"})
    assert normalized["_id"] == movie_id
    assert normalized["id"] == movie_id
    assert normalized["title"] == "x"


def test_object_id_uses_hex_suffix():
    oid = ObjectId("507f1f77bcf86cd799439011")
    normalized = convert_movie_to_integer_id({"_id": oid})
    assert normalized["id"] == int("99439011", 16)
    assert normalized["_id"] == normalized["id"]


def test_numeric_string_key():
    assert convert_movie_to_integer_id({"_id": "15"})["id"] == 15


def test_hex_string_key():
    normalized = convert_movie_to_integer_id({"_id": "507f1f77bcf86cd799439011"})
    assert normalized["id"] == int("99439011", 16)


def test_float_id_is_truncated():
    assert convert_movie_to_integer_id({"_id": "a", "id": 3.0})["id"] == 3


@pytest.mark.parametrize("movie", [
    {"_id": "legacy-abc"},
    {"_id": {"nested": True}},
    {"_id": None},
    {},
    {"_id": "0"},
    {"_id": ObjectId("000000000000000000000000")},
    {"_id": "x", "id": 0},
    {"_id": "x", "id": -4},
    {"_id": "x", "id": float("nan")},
    {"_id": "x", "id": True},
    {"_id": "9" * 30},
])
def test_malformed_identity_falls_back_to_one(movie):
    normalized = convert_movie_to_integer_id(movie)
    assert normalized["id"] == 1
    assert normalized["_id"] == 1


def test_conversion_failure_logs_warning(monkeypatch, caplog):
    def explode(movie):
        raise ValueError("boom")

    monkeypatch.setattr("api_moviemaster.identifiers.resolve_integer_id", explode)
    with caplog.at_level(logging.WARNING, logger="api_moviemaster.identifiers"):
        normalized = convert_movie_to_integer_id({"_id": "whatever"})

    assert normalized["id"] == 1
    assert "Could not convert movie id" in caplog.text


def test_convert_does_not_mutate_input():
    movie = {"_id": "12"}
    convert_movie_to_integer_id(movie)
    assert movie == {"_id": "12"}


def test_parse_identifier_shapes():
    assert parse_identifier(" 12 ").kind == INTEGER_ID
    assert parse_identifier("507f1f77bcf86cd799439011").kind == OBJECT_ID
    assert parse_identifier("0").kind == LITERAL_ID
    assert parse_identifier("dune").kind == LITERAL_ID
    with pytest.raises(BadInput):
        parse_identifier("   ")


def test_find_movie_by_integer_id(storage):
    storage.movies.insert_one({"_id": ObjectId(), "id": 5, "title": "Five"})
    assert find_movie(storage.movies, "5")["title"] == "Five"


def test_find_movie_by_integer_key(storage):
    storage.movies.insert_one({"_id": 9, "title": "Nine"})
    assert find_movie(storage.movies, "9")["title"] == "Nine"


def test_find_movie_prefers_id_field(storage):
    storage.movies.insert_one({"_id": 3, "title": "Keyed"})
    storage.movies.insert_one({"_id": ObjectId(), "id": 3, "title": "Numbered"})
    assert find_movie(storage.movies, "3")["title"] == "Numbered"


def test_find_movie_by_object_id(storage):
    oid = ObjectId()
    storage.movies.insert_one({"_id": oid, "title": "Legacy"})
    assert find_movie(storage.movies, str(oid))["title"] == "Legacy"


def test_find_movie_by_literal(storage):
    storage.movies.insert_one({"_id": "legacy-abc", "title": "Literal"})
    storage.movies.insert_one({"_id": ObjectId(), "id": "old-7", "title": "Literal id"})
    assert find_movie(storage.movies, "legacy-abc")["title"] == "Literal"
    assert find_movie(storage.movies, "old-7")["title"] == "Literal id"


def test_find_movie_numeric_string_key(storage):
    storage.movies.insert_one({"_id": "21", "title": "String key"})
    assert find_movie(storage.movies, "21")["title"] == "String key"


def test_find_movie_missing(storage):
    assert find_movie(storage.movies, "404") is None


def test_identity_filter():
    oid = ObjectId()
    assert identity_filter({"_id": 4, "id": 4}) == {"id": 4}
    assert identity_filter({"_id": oid}) == {"_id": oid}


def test_identifier_candidates():
    numeric, strings = build_identifier_candidates("7")
    assert numeric == [7]
    assert strings == ["7"]

    numeric, strings = build_identifier_candidates("legacy", {"_id": "legacy", "id": 12})
    assert numeric == [12]
    assert strings == ["legacy", "12"]

    numeric, strings = build_identifier_candidates("507f1f77bcf86cd799439011")
    assert numeric == [int("99439011", 16)]
    assert "507f1f77bcf86cd799439011" in strings
