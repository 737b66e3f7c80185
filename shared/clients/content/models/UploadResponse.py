"""Decoder for the media identifier in an upload response.

The content server answers uploads with several shapes depending on the
endpoint version and the number of inputs:

    {"id": 7}                      direct identifier (media_id, id, pk or uuid)
    {"media": {...}}               nested media record
    {"result": {...}}              nested result envelope
    {"results": [{...}, ...]}      batch result, first item wins

Each shape is a small decoder class. The first shape that matches a payload
decides the outcome; nested payloads are decoded recursively with a visited
set keyed by object identity so self-referential payloads terminate.
"""

from abc import ABC, abstractmethod
from typing import Any

DIRECT_ID_KEYS = ("media_id", "id", "pk", "uuid")


class ResponseShape(ABC):
    """One known upload response shape."""

    name: str = ""

    @abstractmethod
    def matches(self, payload: dict) -> bool:
        pass

    @abstractmethod
    def decode(self, payload: dict, visited: set[int]) -> str | None:
        pass


class DirectIdShape(ResponseShape):
    name = "direct"

    def matches(self, payload: dict) -> bool:
        return any(payload.get(key) is not None for key in DIRECT_ID_KEYS)

    def decode(self, payload: dict, visited: set[int]) -> str | None:
        for key in DIRECT_ID_KEYS:
            value = payload.get(key)
            if value is not None:
                return str(value)
        return None


class NestedMediaShape(ResponseShape):
    name = "media"

    def matches(self, payload: dict) -> bool:
        return isinstance(payload.get("media"), dict)

    def decode(self, payload: dict, visited: set[int]) -> str | None:
        return _decode(payload["media"], visited)


class NestedResultShape(ResponseShape):
    name = "result"

    def matches(self, payload: dict) -> bool:
        return bool(payload.get("result"))

    def decode(self, payload: dict, visited: set[int]) -> str | None:
        return _decode(payload["result"], visited)


class ResultsListShape(ResponseShape):
    name = "results"

    def matches(self, payload: dict) -> bool:
        results = payload.get("results")
        return isinstance(results, list) and len(results) > 0

    def decode(self, payload: dict, visited: set[int]) -> str | None:
        return _decode(payload["results"][0], visited)


# precedence order
RESPONSE_SHAPES: list[ResponseShape] = [
    DirectIdShape(),
    NestedMediaShape(),
    NestedResultShape(),
    ResultsListShape(),
]


def classify_response(payload: Any) -> ResponseShape | None:
    """Return the first shape matching the payload, or None if it is unresolved."""
    if not isinstance(payload, dict):
        return None
    for shape in RESPONSE_SHAPES:
        if shape.matches(payload):
            return shape
    return None


def _decode(payload: Any, visited: set[int]) -> str | None:
    if not isinstance(payload, dict):
        return None
    if id(payload) in visited:
        return None
    visited.add(id(payload))
    shape = classify_response(payload)
    if shape is None:
        return None
    return shape.decode(payload, visited)


def resolve_media_id(payload: Any) -> str | None:
    """Resolve the created media identifier from an upload response.

    Args:
        payload (Any): The parsed JSON response body.

    Returns:
        str | None: The identifier as a string, or None if no known shape yields one.
    """
    return _decode(payload, set())
