import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AsyncExitStack
from importlib.metadata import version

import aiohttp
import aiohttp.web
import trafaret as t
from aiohttp.web import (
    HTTPBadGateway,
    HTTPBadRequest,
    HTTPInternalServerError,
    Request,
    Response,
    StreamResponse,
    json_response,
    middleware,
)
from aiohttp.web_urldispatcher import AbstractRoute
from apolo_kube_client import (
    KubeClient,
    KubeClientAuthType as ApoloKubeClientAuthType,
    KubeConfig as ApoloKubeConfig,
)
from neuro_logging import init_logging, setup_sentry

from .base import SourceDiscoveryError
from .config import Config, KubeConfig
from .config_factory import EnvironConfigFactory
from .kube_client import KubeLogStreamer, KubeSourceDiscovery
from .logs import LogsService
from .validators import create_fetch_request, create_logs_request_validator


CONFIG_KEY = aiohttp.web.AppKey("config", Config)
LOGS_SERVICE_KEY = aiohttp.web.AppKey("logs_service", LogsService)
API_V1_APP_KEY = aiohttp.web.AppKey("api_v1_app", aiohttp.web.Application)

logger = logging.getLogger(__name__)


class ApiHandler:
    def register(self, app: aiohttp.web.Application) -> list[AbstractRoute]:
        return app.add_routes(
            [
                aiohttp.web.get("/ping", self.handle_ping),
            ]
        )

    async def handle_ping(self, request: Request) -> Response:
        return Response(text="Pong")


class LogsApiHandler:
    def __init__(self, app: aiohttp.web.Application, config: Config) -> None:
        self._app = app
        self._request_validator = create_logs_request_validator(
            config.logs.default_limit
        )

    def register(self, app: aiohttp.web.Application) -> None:
        app.add_routes(
            [
                aiohttp.web.get("/logs", self.get_logs),
            ]
        )

    @property
    def _logs_service(self) -> LogsService:
        return self._app[LOGS_SERVICE_KEY]

    async def get_logs(self, request: Request) -> Response:
        payload = self._request_validator.check(dict(request.query))
        fetch_request = create_fetch_request(payload)
        page = await self._logs_service.get_logs_page(fetch_request)
        return json_response(page.to_primitive())


@middleware
async def handle_exceptions(
    request: Request, handler: Callable[[Request], Awaitable[StreamResponse]]
) -> StreamResponse:
    try:
        return await handler(request)
    except t.DataError as e:
        payload = {"error": e.as_dict()}
        return json_response(payload, status=HTTPBadRequest.status_code)
    except ValueError as e:
        payload = {"error": str(e)}
        return json_response(payload, status=HTTPBadRequest.status_code)
    except SourceDiscoveryError as e:
        payload = {"error": str(e)}
        return json_response(payload, status=HTTPBadGateway.status_code)
    except aiohttp.web.HTTPException:
        raise
    except Exception as e:
        msg_str = f"Unexpected exception: {str(e)}. Path with query: {request.path_qs}."
        logger.exception(msg_str)
        payload = {"error": msg_str}
        return json_response(payload, status=HTTPInternalServerError.status_code)


async def create_api_v1_app(config: Config) -> aiohttp.web.Application:
    api_v1_app = aiohttp.web.Application()
    api_v1_handler = ApiHandler()
    api_v1_handler.register(api_v1_app)
    logs_handler = LogsApiHandler(api_v1_app, config)
    logs_handler.register(api_v1_app)
    return api_v1_app


def create_kube_client(config: KubeConfig) -> KubeClient:
    return KubeClient(
        config=ApoloKubeConfig(
            endpoint_url=config.endpoint_url,
            cert_authority_data_pem=config.cert_authority_data_pem,
            cert_authority_path=config.cert_authority_path,
            auth_type=ApoloKubeClientAuthType(config.auth_type),
            auth_cert_path=config.auth_cert_path,
            auth_cert_key_path=config.auth_cert_key_path,
            token=config.token,
            token_path=config.token_path,
            client_conn_timeout_s=config.client_conn_timeout_s,
            client_read_timeout_s=config.client_read_timeout_s,
            client_conn_pool_size=config.client_conn_pool_size,
        )
    )


def create_logs_service(config: Config, kube_client: KubeClient) -> LogsService:
    return LogsService(
        discovery=KubeSourceDiscovery(
            kube_client, base_label_selector=config.logs.base_label_selector
        ),
        streamer=KubeLogStreamer(kube_client),
        config=config.logs,
    )


package_version = version(__package__)


async def add_version_to_header(request: Request, response: StreamResponse) -> None:
    response.headers["X-Service-Version"] = f"platform-pod-logs/{package_version}"


async def create_app(config: Config) -> aiohttp.web.Application:
    app = aiohttp.web.Application(middlewares=[handle_exceptions])
    app[CONFIG_KEY] = config

    async def _init_app(app: aiohttp.web.Application) -> AsyncIterator[None]:
        async with AsyncExitStack() as exit_stack:
            logger.info("Initializing Kubernetes client")
            kube_client = await exit_stack.enter_async_context(
                create_kube_client(config.kube)
            )

            app[API_V1_APP_KEY][LOGS_SERVICE_KEY] = create_logs_service(
                config, kube_client
            )

            yield

    app.cleanup_ctx.append(_init_app)

    api_v1_app = await create_api_v1_app(config)
    app[API_V1_APP_KEY] = api_v1_app

    app.add_subapp("/api/v1", api_v1_app)

    app.on_response_prepare.append(add_version_to_header)

    return app


def main() -> None:  # pragma: no coverage
    init_logging(health_check_url_path="/api/v1/ping")
    config = EnvironConfigFactory().create()
    logging.info("Loaded config: %r", config)
    setup_sentry(health_check_url_path="/api/v1/ping")
    aiohttp.web.run_app(
        create_app(config), host=config.server.host, port=config.server.port
    )
