"""
Job argument and schedule encoding.

Arguments are stored as a JSON array. On the way back out, nested objects
become ``JobArgs`` so job bodies can read keys however their callers wrote
them. Scheduling times are always stored timezone-aware.
"""

import json
from collections.abc import Sequence
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pgque.core.exceptions import EnqueueError


class JobArgs(dict):
    """
    A dict with relaxed key lookup.

    ``args["user_id"]``, ``args.user_id`` and ``args[Field.USER_ID]`` (an Enum
    member whose value is ``"user_id"``) all resolve to the same entry.
    """

    def __missing__(self, key: Any) -> Any:
        if isinstance(key, Enum) and key.value in self:
            return self[key.value]
        raise KeyError(key)

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None

    def get(self, key: Any, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def __contains__(self, key: object) -> bool:
        if isinstance(key, Enum):
            key = key.value
        return super().__contains__(key)


def dump_args(args: Sequence[Any]) -> str:
    try:
        return json.dumps(list(args))
    except (TypeError, ValueError) as e:
        raise EnqueueError(
            f"Job arguments are not JSON serializable: {e}",
            details={"error": str(e)},
        ) from e


def load_args(raw: str | bytes | list[Any] | None) -> list[Any]:
    """Decode stored arguments; drivers hand back either JSON text or decoded lists."""
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    return [normalize(value) for value in raw]


def normalize(value: Any) -> Any:
    if isinstance(value, dict):
        return JobArgs((str(k), normalize(v)) for k, v in value.items())
    if isinstance(value, list):
        return [normalize(v) for v in value]
    return value


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def coerce_run_at(value: Any) -> datetime | None:
    """
    Turn a run_at option into an aware datetime.

    Accepts a datetime or an ISO 8601 string, which is the form a run_at
    takes when a trailing options dict arrived as JSON.

    Raises:
        EnqueueError: the value is neither, or the string does not parse.
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise EnqueueError(
                f"Invalid run_at: {value!r}", details={"run_at": value}
            ) from e
    if not isinstance(value, datetime):
        raise EnqueueError(
            f"run_at must be a datetime or ISO 8601 string, not {type(value).__name__}",
            details={"run_at": repr(value)},
        )
    return as_utc(value)
