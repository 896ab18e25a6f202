from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from contextlib import AbstractAsyncContextManager, nullcontext
from datetime import datetime
from operator import attrgetter

from neuro_logging import trace

from .base import (
    FetchRequest,
    LogEntry,
    LogsPage,
    LogStreamer,
    LogStreamError,
    Source,
    SourceDiscovery,
)
from .config import LogsConfig
from .pagination import decode_token, generate_token, get_cursor
from .utils import parse_rfc3339


logger = logging.getLogger(__name__)


def is_valid_timestamp(value: str) -> bool:
    try:
        parse_rfc3339(value)
    except ValueError:
        return False
    return True


def parse_log_line(line: str) -> tuple[str, str] | None:
    """Split a "<timestamp> <message>" line.

    Return None for lines without a message part or with a timestamp that
    is not RFC 3339. The timestamp is returned exactly as received.
    """
    timestamp, sep, message = line.partition(" ")
    if not sep:
        return None
    if not is_valid_timestamp(timestamp):
        return None
    return timestamp, message


class LogFilter:
    def __init__(self, pattern: str = "") -> None:
        self._terms = pattern.split()

    def matches(self, line: str) -> bool:
        return all(term in line for term in self._terms)


def _parse_start_time(start_time: str | None) -> datetime | None:
    if not start_time:
        return None
    try:
        return parse_rfc3339(start_time)
    except ValueError:
        return None


class SourceLogsFetcher:
    def __init__(
        self,
        streamer: LogStreamer,
        *,
        namespace: str,
        container_name: str,
        cursors: Mapping[str, str],
        limit_bytes: int,
        log_filter: LogFilter | None = None,
        start_time: str | None = None,
    ) -> None:
        self._streamer = streamer
        self._namespace = namespace
        self._container_name = container_name
        self._cursors = cursors
        self._limit_bytes = limit_bytes
        self._filter = log_filter or LogFilter()
        self._start_time = start_time
        self._start = _parse_start_time(start_time)

    def get_since(self, source: Source) -> str | None:
        return get_cursor(self._cursors, source.id) or self._start_time

    async def fetch(self, source: Source) -> list[LogEntry]:
        cursor = get_cursor(self._cursors, source.id)
        entries: list[LogEntry] = []
        try:
            async with self._streamer.stream_lines(
                source,
                namespace=self._namespace,
                container=self._container_name,
                since=self.get_since(source),
                limit_bytes=self._limit_bytes,
            ) as lines:
                async for line in lines:
                    entry = self._process_line(line, source, cursor)
                    if entry is not None:
                        entries.append(entry)
        except LogStreamError as exc:
            logger.warning("Skipping logs of pod %s: %s", source.name, exc)
            return []
        return entries

    def _process_line(
        self, line: str, source: Source, cursor: str | None
    ) -> LogEntry | None:
        if not line:
            return None
        parsed = parse_log_line(line)
        if parsed is None:
            return None
        timestamp, message = parsed
        if cursor is not None:
            if timestamp <= cursor:
                return None
        elif self._start is not None and parse_rfc3339(timestamp) < self._start:
            # sinceTime has second precision
            return None
        if not self._filter.matches(line):
            return None
        return LogEntry(message=message, timestamp=timestamp, source=source)


class LogsAggregator:
    def __init__(
        self, streamer: LogStreamer, config: LogsConfig = LogsConfig()
    ) -> None:
        self._streamer = streamer
        self._config = config

    def get_limit_bytes(self, limit: int, sources_count: int) -> int:
        logs_per_source = max(
            limit // max(sources_count, 1), self._config.min_logs_per_source
        )
        return logs_per_source * self._config.bytes_per_log_line

    def _create_semaphore(self) -> AbstractAsyncContextManager[object]:
        if self._config.max_concurrent_fetches > 0:
            return asyncio.Semaphore(self._config.max_concurrent_fetches)
        return nullcontext()

    async def aggregate(
        self, sources: Sequence[Source], request: FetchRequest
    ) -> LogsPage:
        if not sources:
            return LogsPage()

        fetcher = SourceLogsFetcher(
            self._streamer,
            namespace=request.namespace,
            container_name=self._config.container_name,
            cursors=decode_token(request.next_page_token),
            limit_bytes=self.get_limit_bytes(request.limit, len(sources)),
            log_filter=LogFilter(request.filter_pattern),
            start_time=request.start_time,
        )
        entries: list[LogEntry] = []
        lock = asyncio.Lock()
        semaphore = self._create_semaphore()

        async def _collect(source: Source) -> None:
            async with semaphore:
                source_entries = await fetcher.fetch(source)
            if source_entries:
                async with lock:
                    entries.extend(source_entries)

        async with asyncio.TaskGroup() as tg:
            for source in sources:
                tg.create_task(_collect(source))

        entries.sort(key=attrgetter("timestamp"))
        logger.debug(
            "Collected %d log entries from %d pods", len(entries), len(sources)
        )
        del entries[request.limit :]
        return LogsPage(entries=entries, next_page_token=generate_token(entries))


class LogsService:
    def __init__(
        self,
        discovery: SourceDiscovery,
        streamer: LogStreamer,
        config: LogsConfig = LogsConfig(),
    ) -> None:
        self._discovery = discovery
        self._aggregator = LogsAggregator(streamer, config)

    @trace
    async def get_sources(self, request: FetchRequest) -> list[Source]:
        if request.instance_id:
            source = await self._discovery.get_source(
                request.namespace, request.instance_id
            )
            return [source] if source else []
        return await self._discovery.list_sources(request.namespace, request.selector)

    @trace
    async def get_logs_page(self, request: FetchRequest) -> LogsPage:
        sources = await self.get_sources(request)
        return await self._aggregator.aggregate(sources, request)
