from typing import Any

import trafaret as t

from .base import DEFAULT_LIMIT, FetchRequest, SourceSelector
from .utils import parse_rfc3339


def _blank_to_none(value: str) -> str | None:
    return value or None


def _validate_timestamp(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        parse_rfc3339(value)
    except ValueError:
        return t.DataError("Invalid RFC 3339 timestamp", value=value)
    return value


OptionalString = t.Null | (t.String(allow_blank=True) >> t.Call(_blank_to_none))


def create_logs_request_validator(default_limit: int = DEFAULT_LIMIT) -> t.Trafaret:
    return t.Dict(
        {
            t.Key("namespace"): t.String,
            t.Key("application_id", optional=True, default=None): OptionalString,
            t.Key("scope_id", optional=True, default=None): OptionalString,
            t.Key("deployment_id", optional=True, default=None): OptionalString,
            t.Key("instance_id", optional=True, default=None): OptionalString,
            t.Key("limit", optional=True, default=default_limit): t.ToInt(gte=1),
            t.Key("next_page_token", optional=True, default=""): t.String(
                allow_blank=True
            ),
            t.Key(
                "filter", optional=True, default="", to_name="filter_pattern"
            ): t.String(allow_blank=True),
            t.Key("start_time", optional=True, default=None): OptionalString
            >> t.Call(_validate_timestamp),
        }
    ).ignore_extra("*")


def create_fetch_request(payload: dict[str, Any]) -> FetchRequest:
    return FetchRequest(
        namespace=payload["namespace"],
        selector=SourceSelector(
            application_id=payload["application_id"],
            scope_id=payload["scope_id"],
            deployment_id=payload["deployment_id"],
        ),
        limit=payload["limit"],
        next_page_token=payload["next_page_token"],
        filter_pattern=payload["filter_pattern"],
        start_time=payload["start_time"],
        instance_id=payload["instance_id"],
    )
