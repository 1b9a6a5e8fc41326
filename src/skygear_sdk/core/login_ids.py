"""Login identifier helpers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..models import LoginID


def _login_id(key: Any, value: Any) -> LoginID:
    try:
        return LoginID(key=key, value=value)
    except PydanticValidationError as e:
        raise ValidationError(
            "invalid login ID",
            info={"key": str(key), "errors": e.errors(include_url=False, include_input=False)},
        ) from e


def extract_single_key_value(
    login_id: Mapping[str, str],
    error_message: str,
) -> LoginID:
    """Convert a one-entry mapping such as ``{"email": "a@b.com"}``.

    Raises:
        ValidationError: If the mapping does not have exactly one key, or
            the key is empty or the value is not a string.
    """
    if len(login_id) != 1:
        raise ValidationError(error_message, info={"key_count": len(login_id)})
    ((key, value),) = login_id.items()
    return _login_id(key, value)


def flatten_login_ids(
    login_ids: Mapping[str, str] | Sequence[Mapping[str, str]],
) -> list[LoginID]:
    """Flatten one or many mappings into key/value pairs, keeping order.

    Raises:
        ValidationError: If a key is empty or a value is not a string.
    """
    if isinstance(login_ids, Mapping):
        login_ids = [login_ids]
    return [
        _login_id(key, value)
        for obj in login_ids
        for key, value in obj.items()
    ]
