import logging
import os
from pathlib import Path

from .config import (
    Config,
    KubeClientAuthType,
    KubeConfig,
    LogsConfig,
    ServerConfig,
)


logger = logging.getLogger(__name__)


class EnvironConfigFactory:
    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self._environ = environ or os.environ

    def create(self) -> Config:
        return Config(
            server=self._create_server(),
            kube=self._create_kube(),
            logs=self._create_logs(),
        )

    def _create_server(self) -> ServerConfig:
        host = self._environ.get("NP_POD_LOGS_API_HOST", ServerConfig.host)
        port = int(self._environ.get("NP_POD_LOGS_API_PORT", ServerConfig.port))
        return ServerConfig(host=host, port=port)

    def _create_kube(self) -> KubeConfig:
        endpoint_url = self._environ["NP_POD_LOGS_K8S_API_URL"]
        auth_type = KubeClientAuthType(
            self._environ.get("NP_POD_LOGS_K8S_AUTH_TYPE", KubeConfig.auth_type.value)
        )
        ca_path = self._environ.get("NP_POD_LOGS_K8S_CA_PATH")
        ca_data = Path(ca_path).read_text() if ca_path else None

        token_path = self._environ.get("NP_POD_LOGS_K8S_TOKEN_PATH")
        token = Path(token_path).read_text() if token_path else None

        return KubeConfig(
            endpoint_url=endpoint_url,
            cert_authority_data_pem=ca_data,
            auth_type=auth_type,
            auth_cert_path=self._environ.get("NP_POD_LOGS_K8S_AUTH_CERT_PATH"),
            auth_cert_key_path=self._environ.get(
                "NP_POD_LOGS_K8S_AUTH_CERT_KEY_PATH"
            ),
            token=token,
            token_path=token_path,
            client_conn_timeout_s=int(
                self._environ.get("NP_POD_LOGS_K8S_CLIENT_CONN_TIMEOUT")
                or KubeConfig.client_conn_timeout_s
            ),
            client_read_timeout_s=int(
                self._environ.get("NP_POD_LOGS_K8S_CLIENT_READ_TIMEOUT")
                or KubeConfig.client_read_timeout_s
            ),
            client_conn_pool_size=int(
                self._environ.get("NP_POD_LOGS_K8S_CLIENT_CONN_POOL_SIZE")
                or KubeConfig.client_conn_pool_size
            ),
        )

    def _create_logs(self) -> LogsConfig:
        return LogsConfig(
            container_name=self._environ.get(
                "NP_POD_LOGS_CONTAINER_NAME", LogsConfig.container_name
            ),
            default_limit=int(
                self._environ.get(
                    "NP_POD_LOGS_DEFAULT_LIMIT", LogsConfig.default_limit
                )
            ),
            min_logs_per_source=int(
                self._environ.get(
                    "NP_POD_LOGS_MIN_LOGS_PER_POD", LogsConfig.min_logs_per_source
                )
            ),
            bytes_per_log_line=int(
                self._environ.get(
                    "NP_POD_LOGS_BYTES_PER_LOG_LINE", LogsConfig.bytes_per_log_line
                )
            ),
            max_concurrent_fetches=int(
                self._environ.get(
                    "NP_POD_LOGS_MAX_CONCURRENT_FETCHES",
                    LogsConfig.max_concurrent_fetches,
                )
            ),
            base_label_selector=self._environ.get(
                "NP_POD_LOGS_BASE_LABEL_SELECTOR", LogsConfig.base_label_selector
            ),
        )
