from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Self

import aiohttp
from apolo_kube_client import (
    KubeClient,
    KubeClientException,
    ResourceNotFound,
    V1ObjectMeta,
    V1Pod,
)
from yarl import URL

from .base import (
    LogStreamer,
    LogStreamError,
    Source,
    SourceDiscovery,
    SourceDiscoveryError,
    SourceSelector,
)
from .utils import asyncgeneratorcontextmanager, format_date, parse_rfc3339


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metadata:
    name: str
    uid: str = ""

    @classmethod
    def from_model(cls, model: V1ObjectMeta) -> Self:
        assert model.name, "pod name is required"
        return cls(name=model.name, uid=model.uid or "")


@dataclass(frozen=True)
class Pod:
    metadata: Metadata

    @classmethod
    def from_model(cls, model: V1Pod) -> Self:
        assert model.metadata, "pod must have a metadata"
        return cls(metadata=Metadata.from_model(model.metadata))

    def to_source(self) -> Source:
        return Source(name=self.metadata.name, id=self.metadata.uid)


def build_label_selector(
    selector: SourceSelector, base_label_selector: str = "nullplatform=true"
) -> str:
    labels = [base_label_selector] if base_label_selector else []
    for key, value in (
        ("application_id", selector.application_id),
        ("scope_id", selector.scope_id),
        ("deployment_id", selector.deployment_id),
    ):
        if value:
            labels.append(f"{key}={value}")
    return ",".join(labels)


def build_pod_log_url(
    base_url: str | URL,
    namespace: str,
    pod_name: str,
    container_name: str,
    *,
    since: str | None = None,
    limit_bytes: int | None = None,
) -> URL:
    params = {"container": container_name, "timestamps": "true"}
    if since:
        params["sinceTime"] = since
    if limit_bytes:
        params["limitBytes"] = str(limit_bytes)
    url = URL(base_url) / "api/v1/namespaces" / namespace / "pods" / pod_name / "log"
    return url.with_query(params)


class KubeSourceDiscovery(SourceDiscovery):
    def __init__(
        self, kube_client: KubeClient, base_label_selector: str = "nullplatform=true"
    ) -> None:
        self._kube_client = kube_client
        self._base_label_selector = base_label_selector

    async def list_sources(
        self, namespace: str, selector: SourceSelector
    ) -> list[Source]:
        label_selector = build_label_selector(selector, self._base_label_selector)
        try:
            pod_list = await self._kube_client.core_v1.pod.get_list(
                label_selector=label_selector, namespace=namespace
            )
        except (KubeClientException, aiohttp.ClientError) as exc:
            msg = f"Failed to list pods: {exc}"
            raise SourceDiscoveryError(msg) from exc
        logger.debug("Found %d pods matching %r", len(pod_list.items), label_selector)
        return [Pod.from_model(pod).to_source() for pod in pod_list.items]

    async def get_source(self, namespace: str, source_id: str) -> Source | None:
        try:
            pod = await self._kube_client.core_v1.pod.get(
                name=source_id, namespace=namespace
            )
        except ResourceNotFound:
            return None
        except (KubeClientException, aiohttp.ClientError) as exc:
            msg = f"Failed to get pod: {exc}"
            raise SourceDiscoveryError(msg) from exc
        return Pod.from_model(pod).to_source()


def _decode_line(line: bytes) -> str:
    if line.endswith(b"\n"):
        line = line[:-1]
    if line.endswith(b"\r"):
        line = line[:-1]
    return line.decode(errors="replace")


def _format_since(since: str | None) -> str | None:
    if not since:
        return None
    try:
        return format_date(parse_rfc3339(since))
    except ValueError:
        logger.info("Ignoring invalid since time: %r", since)
        return None


class KubeLogStreamer(LogStreamer):
    def __init__(self, kube_client: KubeClient) -> None:
        self._kube_client = kube_client

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
        kube_core = self._kube_client.core
        url = build_pod_log_url(
            kube_core.base_url,
            namespace,
            source.name,
            container,
            since=_format_since(since),
            limit_bytes=limit_bytes,
        )
        try:
            async with kube_core.request(method="GET", url=url) as response:
                response.raise_for_status()
                async for line in response.content:
                    yield _decode_line(line)
        except (
            KubeClientException,
            aiohttp.ClientError,
            TimeoutError,
            # raised by the stream reader for too long lines
            ValueError,
        ) as exc:
            raise LogStreamError(str(exc) or type(exc).__name__) from exc
