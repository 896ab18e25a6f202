import base64
import logging
from collections.abc import Iterable, Mapping

import orjson

from .base import LogEntry


logger = logging.getLogger(__name__)

# values older tokens used to mark a pod without a cursor
_NO_CURSOR_VALUES = frozenset(("", "null", "empty"))


def decode_token(token: str) -> dict[str, str]:
    """Decode a next page token into a mapping of pod id to last timestamp.

    A malformed or foreign token is not an error: it decodes to an empty
    mapping, so the request starts over.
    """
    if not token:
        return {}
    try:
        data = orjson.loads(base64.b64decode(token, validate=True))
    except ValueError:
        logger.info("Ignoring undecodable page token: %r", token)
        return {}
    if not isinstance(data, dict):
        logger.info("Ignoring page token of unexpected shape: %r", token)
        return {}
    cursors = {}
    for key, value in data.items():
        if value is None:
            continue
        if not isinstance(value, str):
            logger.info("Ignoring page token of unexpected shape: %r", token)
            return {}
        cursors[key] = value
    return cursors


def encode_token(cursors: Mapping[str, str]) -> str:
    if not cursors:
        return ""
    data = orjson.dumps(dict(cursors), option=orjson.OPT_SORT_KEYS)
    return base64.b64encode(data).decode("ascii")


def get_cursor(cursors: Mapping[str, str], source_id: str) -> str | None:
    value = cursors.get(source_id)
    if value is None or value in _NO_CURSOR_VALUES:
        return None
    return value


def generate_token(entries: Iterable[LogEntry]) -> str:
    """Build the next page token from the entries of the page.

    Entries come sorted by timestamp, so every pod ends up with the
    timestamp of its latest delivered entry.
    """
    cursors: dict[str, str] = {}
    for entry in entries:
        cursors[entry.source.id] = entry.timestamp
    return encode_token(cursors)
