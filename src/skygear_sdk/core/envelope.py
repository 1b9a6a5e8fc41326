"""Response envelope decoding.

Every endpoint answers with ``{"result": ...}`` or ``{"error": {...}}``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..types import ResultMapper, T
from .errors import ErrorFactory


def _present(value: Any) -> bool:
    # Empty objects and arrays still count as a usable member
    if isinstance(value, (dict, list)):
        return True
    return bool(value)


def decode_envelope(body: Any, *, status_code: int | None = None) -> Any:
    """Return the ``result`` of an envelope or raise its decoded error.

    Args:
        body: Parsed JSON body.
        status_code: HTTP status, attached to raised errors only.

    Returns:
        The truthy ``result`` value.

    Raises:
        SkygearError: Decoded from ``error``, or a generic error when the
            envelope carries neither member.
    """
    if not isinstance(body, dict):
        raise ErrorFactory.malformed_envelope(status_code=status_code)

    result = body.get("result")
    if _present(result):
        return result

    error = body.get("error")
    if _present(error):
        raise ErrorFactory.from_error_payload(error, status_code=status_code)

    raise ErrorFactory.malformed_envelope(status_code=status_code)


def decode_result(
    body: Any,
    mapper: ResultMapper[T] | None = None,
    *,
    status_code: int | None = None,
) -> T | Any:
    """Decode an envelope and map its result to a domain type."""
    result = decode_envelope(body, status_code=status_code)
    if mapper is None:
        return result
    return mapper(result)


def result_mapper(fn: Callable[[Any], T]) -> ResultMapper[T]:
    """Wrap a mapping function so shape mismatches become SDK errors."""

    def mapper(result: Any) -> T:
        try:
            return fn(result)
        except (PydanticValidationError, AttributeError, KeyError, TypeError) as e:
            raise ErrorFactory.malformed_envelope() from e

    return mapper
