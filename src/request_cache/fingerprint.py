"""Request fingerprinting.

A fingerprint is the canonical JSON text of ``{"operation", "variables"}``:
keys sorted at every depth, no insignificant whitespace, no NaN. Two
requests built with their variables in a different order produce the
same text, and since the text carries the whole request, distinct
requests can never collide. The hashed form trades the readable key for
a fixed 64-character SHA-256 digest of the same text.
"""

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from request_cache.dto import ApiRequest
from request_cache.errors import SerializationError


def _payload_of(request: ApiRequest | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(request, ApiRequest):
        return request.to_payload()
    if isinstance(request, Mapping):
        try:
            return {"operation": request["operation"], "variables": request.get("variables") or {}}
        except KeyError as e:
            raise SerializationError("Request payload has no 'operation'") from e
    raise SerializationError(f"Cannot fingerprint object of type {type(request).__name__}")


def _check_keys(value: Any, path: str = "variables") -> None:
    # json.dumps silently turns int/float/bool/None keys into strings,
    # which would make {1: x} and {"1": x} share a key.
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                raise SerializationError(f"Non-string key {key!r} at {path}")
            _check_keys(item, f"{path}.{key}")
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _check_keys(item, f"{path}[{index}]")


def canonical_payload(request: ApiRequest | Mapping[str, Any]) -> str:
    """Serialize a request to its canonical JSON text.

    Args:
        request: An ApiRequest or a mapping with ``operation`` and ``variables``

    Returns:
        Sorted-key, compact JSON text

    Raises:
        SerializationError: If the payload holds values JSON cannot
            represent exactly (sets, arbitrary objects, NaN, non-string
            keys, unpaired surrogates)
    """
    payload = _payload_of(request)
    if not isinstance(payload["operation"], str):
        raise SerializationError("Request 'operation' must be a string")
    _check_keys(payload["variables"])

    try:
        text = json.dumps(
            payload,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
        # Lone surrogates survive dumps but cannot be hashed or stored.
        text.encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Request payload is not serializable: {e}") from e
    return text


def request_fingerprint(request: ApiRequest | Mapping[str, Any], hashed: bool = False) -> str:
    """Derive the cache key for a request.

    Args:
        request: The request to fingerprint
        hashed: Return the SHA-256 hex digest instead of the canonical text

    Returns:
        The fingerprint string

    Example:
        ```python
        a = ApiRequest(operation="AnimeStat", variables={"page": 5, "perPage": 10})
        b = ApiRequest(operation="AnimeStat", variables={"perPage": 10, "page": 5})
        assert request_fingerprint(a) == request_fingerprint(b)
        ```
    """
    text = canonical_payload(request)
    if hashed:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()
    return text
