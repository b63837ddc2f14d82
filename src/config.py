"""Configuration module — frozen dataclasses loaded from environment variables."""

import os
from dataclasses import dataclass
from typing import Optional, Union

from src.severity import Severity
from src.stacktrace import DEFAULT_PROJECT_ROOT


@dataclass(frozen=True)
class LogOptions:
    """Per-call options bundle handed to the record builder."""

    log_server_host: str
    log_server_port: Union[int, str]
    log_environment: str
    received_time: object = None

    @property
    def port(self) -> int:
        return int(self.log_server_port)


@dataclass(frozen=True)
class Config:
    log_server_host: str = "localhost"
    log_server_port: int = 5514
    log_environment: str = "development"
    sink_level: str = "INFO"
    project_root: str = DEFAULT_PROJECT_ROOT
    app_host: str = "0.0.0.0"
    app_port: int = 8080

    @property
    def sink_severity(self) -> Severity:
        return Severity.parse(self.sink_level)

    def options(self, received_time=None) -> LogOptions:
        return LogOptions(
            log_server_host=self.log_server_host,
            log_server_port=self.log_server_port,
            log_environment=self.log_environment,
            received_time=received_time,
        )


def load_config(environ: Optional[dict] = None) -> Config:
    """Build Config from environment variables with sensible defaults."""
    env = os.environ if environ is None else environ
    return Config(
        log_server_host=env.get("LOG_SERVER_HOST", Config.log_server_host),
        log_server_port=int(env.get("LOG_SERVER_PORT", Config.log_server_port)),
        log_environment=env.get("LOG_ENVIRONMENT", Config.log_environment),
        sink_level=env.get("LOG_SINK_LEVEL", Config.sink_level).upper(),
        project_root=env.get("PROJECT_ROOT", Config.project_root),
        app_host=env.get("APP_HOST", Config.app_host),
        app_port=int(env.get("APP_PORT", Config.app_port)),
    )
