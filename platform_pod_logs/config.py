import enum
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080


class KubeClientAuthType(str, enum.Enum):
    NONE = "none"
    TOKEN = "token"
    CERTIFICATE = "certificate"


@dataclass(frozen=True)
class KubeConfig:
    endpoint_url: str
    cert_authority_data_pem: str | None = field(default=None, repr=False)
    cert_authority_path: str | None = None
    auth_type: KubeClientAuthType = KubeClientAuthType.CERTIFICATE
    auth_cert_path: str | None = field(default=None, repr=False)
    auth_cert_key_path: str | None = None
    token_path: str | None = None
    token: str | None = field(default=None, repr=False)
    client_conn_timeout_s: int = 300
    client_read_timeout_s: int = 300
    client_conn_pool_size: int = 100


@dataclass(frozen=True)
class LogsConfig:
    container_name: str = "application"
    default_limit: int = 100
    min_logs_per_source: int = 10
    # roughly one long log line
    bytes_per_log_line: int = 3072
    # 0 means one concurrent fetch per pod
    max_concurrent_fetches: int = 0
    base_label_selector: str = "nullplatform=true"


@dataclass(frozen=True)
class Config:
    server: ServerConfig
    kube: KubeConfig
    logs: LogsConfig = LogsConfig()
