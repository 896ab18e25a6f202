from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Any


DEFAULT_LIMIT = 100


class LogsException(Exception):
    pass


class LogStreamError(LogsException):
    pass


class SourceDiscoveryError(LogsException):
    pass


@dataclass(frozen=True)
class Source:
    name: str
    id: str

    def to_primitive(self) -> dict[str, str]:
        return {"name": self.name, "id": self.id}


@dataclass(frozen=True)
class LogEntry:
    message: str
    timestamp: str
    source: Source

    def to_primitive(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "datetime": self.timestamp,
            "pod": self.source.to_primitive(),
        }


@dataclass(frozen=True)
class LogsPage:
    entries: Sequence[LogEntry] = field(default_factory=list)
    next_page_token: str = ""

    def to_primitive(self) -> dict[str, Any]:
        return {
            "results": [e.to_primitive() for e in self.entries],
            "next_page_token": self.next_page_token,
        }


@dataclass(frozen=True)
class SourceSelector:
    application_id: str | None = None
    scope_id: str | None = None
    deployment_id: str | None = None


@dataclass(frozen=True)
class FetchRequest:
    namespace: str
    selector: SourceSelector = SourceSelector()
    limit: int = DEFAULT_LIMIT
    next_page_token: str = ""
    filter_pattern: str = ""
    start_time: str | None = None
    instance_id: str | None = None


class SourceDiscovery(ABC):
    @abstractmethod
    async def list_sources(
        self, namespace: str, selector: SourceSelector
    ) -> list[Source]:
        pass

    @abstractmethod
    async def get_source(self, namespace: str, source_id: str) -> Source | None:
        pass


class LogStreamer(ABC):
    @abstractmethod
    def stream_lines(
        self,
        source: Source,
        *,
        namespace: str,
        container: str,
        since: str | None,
        limit_bytes: int,
    ) -> AbstractAsyncContextManager[AsyncIterator[str]]:
        """Open a timestamped log stream of a single source.

        The returned iterator yields one line at a time with the trailing
        line break removed. Raise LogStreamError if the stream cannot be
        opened or breaks while being read.
        """
