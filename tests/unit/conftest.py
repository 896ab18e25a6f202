import asyncio
from collections.abc import AsyncIterator, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import pytest

from platform_pod_logs.base import (
    LogStreamer,
    LogStreamError,
    Source,
    SourceDiscovery,
    SourceSelector,
)
from platform_pod_logs.utils import asyncgeneratorcontextmanager


@dataclass(frozen=True)
class StreamCall:
    source: Source
    namespace: str
    container: str
    since: str | None
    limit_bytes: int


class FakeLogStreamer(LogStreamer):
    def __init__(
        self,
        logs: Mapping[str, Iterable[str]] | None = None,
        *,
        failing: Iterable[str] = (),
        broken: Iterable[str] = (),
    ) -> None:
        self.logs = dict(logs or {})
        self.failing = set(failing)
        self.broken = set(broken)
        self.calls: list[StreamCall] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @asyncgeneratorcontextmanager
    async def stream_lines(
        self,
        source: Source,
        *,
        namespace: str,
        container: str,
        since: str | None,
        limit_bytes: int,
    ) -> AsyncIterator[str]:
        self.calls.append(
            StreamCall(
                source=source,
                namespace=namespace,
                container=container,
                since=since,
                limit_bytes=limit_bytes,
            )
        )
        if source.id in self.failing:
            raise LogStreamError("pod not found")
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            for line in self.logs.get(source.id, ()):
                await asyncio.sleep(0)
                yield line
            if source.id in self.broken:
                raise LogStreamError("connection reset")
        finally:
            self.in_flight -= 1


class FakeSourceDiscovery(SourceDiscovery):
    def __init__(self, sources: Iterable[Source] = ()) -> None:
        self.sources = list(sources)
        self.list_calls: list[tuple[str, SourceSelector]] = []

    async def list_sources(
        self, namespace: str, selector: SourceSelector
    ) -> list[Source]:
        self.list_calls.append((namespace, selector))
        return list(self.sources)

    async def get_source(self, namespace: str, source_id: str) -> Source | None:
        for source in self.sources:
            if source.name == source_id:
                return source
        return None


@pytest.fixture
def pod1() -> Source:
    return Source(name="app-7d9f-abcde", id="9d2f6a3e-0000-0000-0000-000000000001")


@pytest.fixture
def pod2() -> Source:
    return Source(name="app-7d9f-fghij", id="9d2f6a3e-0000-0000-0000-000000000002")


def ts(second: int, fraction: str = "000000000") -> str:
    return f"2025-09-04T15:24:{second:02d}.{fraction}Z"


def lines(*items: Any) -> list[str]:
    return [f"{timestamp} {message}" for timestamp, message in items]
