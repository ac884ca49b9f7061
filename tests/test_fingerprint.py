"""
Tests for request fingerprinting.
"""

import pytest

from request_cache.dto import ApiRequest
from request_cache.errors import SerializationError
from request_cache.fingerprint import canonical_payload, request_fingerprint

MEDIA_QUERY = "query ($search: String, $count: Int) { Page(perPage: $count) { media(search: $search) { id } } }"


def test_variable_order_does_not_matter():
    """Same variables built in a different order share a fingerprint."""
    a = ApiRequest(operation=MEDIA_QUERY, variables={"search": "Frieren", "count": 5})
    b = ApiRequest(operation=MEDIA_QUERY, variables={"count": 5, "search": "Frieren"})
    assert request_fingerprint(a) == request_fingerprint(b)
    assert request_fingerprint(a, hashed=True) == request_fingerprint(b, hashed=True)


def test_nested_mapping_order_does_not_matter():
    """Key order inside nested mappings is normalized too."""
    a = ApiRequest(operation="/vn", variables={"filters": ["id", "=", "v17"], "opts": {"a": 1, "b": 2}})
    b = ApiRequest(operation="/vn", variables={"opts": {"b": 2, "a": 1}, "filters": ["id", "=", "v17"]})
    assert request_fingerprint(a) == request_fingerprint(b)


def test_mapping_and_model_agree():
    """A plain mapping fingerprints the same as the equivalent ApiRequest."""
    request = ApiRequest(operation="AnimeStat", variables={"page": 5})
    mapping = {"variables": {"page": 5}, "operation": "AnimeStat"}
    assert request_fingerprint(request) == request_fingerprint(mapping)


def test_canonical_text_is_compact_and_sorted():
    """The unhashed fingerprint is the canonical JSON text itself."""
    request = ApiRequest(operation="AnimeStat", variables={"perPage": 10, "page": 5})
    assert canonical_payload(request) == '{"operation":"AnimeStat","variables":{"page":5,"perPage":10}}'
    assert request_fingerprint(request) == canonical_payload(request)


def test_non_ascii_kept_verbatim():
    """Non-ASCII search terms are not escaped."""
    request = ApiRequest(operation="search", variables={"search": "葬送のフリーレン"})
    assert "葬送のフリーレン" in request_fingerprint(request)


@pytest.mark.parametrize(
    "other",
    [
        ApiRequest(operation="MangaStat", variables={"page": 5}),
        ApiRequest(operation="AnimeStat", variables={"page": 6}),
        ApiRequest(operation="AnimeStat", variables={"page": "5"}),
        ApiRequest(operation="AnimeStat", variables={"page": 5, "perPage": 10}),
        ApiRequest(operation="AnimeStat", variables={}),
    ],
)
def test_any_difference_changes_fingerprint(other):
    """Different operation or variable values never collide."""
    base = ApiRequest(operation="AnimeStat", variables={"page": 5})
    assert request_fingerprint(base) != request_fingerprint(other)
    assert request_fingerprint(base, hashed=True) != request_fingerprint(other, hashed=True)


def test_list_order_is_significant():
    """Lists are values, so their order is part of the identity."""
    a = ApiRequest(operation="/vn", variables={"filters": ["id", "=", "v17"]})
    b = ApiRequest(operation="/vn", variables={"filters": ["=", "id", "v17"]})
    assert request_fingerprint(a) != request_fingerprint(b)


def test_hashed_fingerprint_is_fixed_width_hex():
    """The hashed form is a 64-character SHA-256 digest."""
    digest = request_fingerprint(ApiRequest(operation=MEDIA_QUERY, variables={"search": "x" * 1000}), hashed=True)
    assert len(digest) == 64
    int(digest, 16)


def test_hashed_fingerprint_is_stable():
    """Equal payloads give the same digest on every call."""
    request = ApiRequest(operation="AnimeStat", variables={"page": 5})
    assert request_fingerprint(request, hashed=True) == request_fingerprint(
        ApiRequest(operation="AnimeStat", variables={"page": 5}), hashed=True
    )


@pytest.mark.parametrize(
    "variables",
    [
        {"ids": {1, 2, 3}},
        {"when": object()},
        {"score": float("nan")},
        {"score": float("inf")},
        {"nested": {1: "one"}},
        {"q": "\ud800"},
    ],
)
def test_unserializable_payload_raises(variables):
    """Values with no exact JSON form raise SerializationError."""
    request = ApiRequest(operation="AnimeStat", variables=variables)
    with pytest.raises(SerializationError):
        request_fingerprint(request)


def test_unpaired_surrogate_raises_when_hashed():
    """A string that cannot be UTF-8 encoded fails before hashing."""
    request = ApiRequest(operation="AnimeStat", variables={"q": "\ud800"})
    with pytest.raises(SerializationError):
        request_fingerprint(request, hashed=True)


def test_mapping_without_operation_raises():
    """A mapping must carry an operation."""
    with pytest.raises(SerializationError):
        request_fingerprint({"variables": {"page": 5}})


def test_unsupported_type_raises():
    """Only ApiRequest and mappings can be fingerprinted."""
    with pytest.raises(SerializationError):
        request_fingerprint(["AnimeStat", {"page": 5}])  # type: ignore[arg-type]
