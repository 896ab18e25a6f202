import functools
import re
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, aclosing
from datetime import UTC, datetime
from typing import Any, TypeVar

import iso8601


T_co = TypeVar("T_co", covariant=True)

RFC3339_RE = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})"
)


def asyncgeneratorcontextmanager(
    func: Callable[..., AsyncGenerator[T_co, Any]],
) -> Callable[..., AbstractAsyncContextManager[AsyncGenerator[T_co, Any]]]:
    @functools.wraps(func)
    def wrapper(
        *args: Any, **kwargs: Any
    ) -> AbstractAsyncContextManager[AsyncGenerator[T_co, Any]]:
        return aclosing(func(*args, **kwargs))

    return wrapper


def parse_date(s: str) -> datetime:
    return iso8601.parse_date(s)


def parse_rfc3339(s: str) -> datetime:
    """Parse an RFC 3339 timestamp with optional fractional seconds.

    Unlike parse_date, the date and time parts and the zone designator are
    mandatory. Fractional seconds may have any number of digits and are
    truncated to microseconds. Raise ValueError for anything else.
    """
    if not RFC3339_RE.fullmatch(s):
        msg = f"Invalid RFC 3339 timestamp: {s!r}"
        raise ValueError(msg)
    return parse_date(s)


def format_date(dt: datetime) -> str:
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
