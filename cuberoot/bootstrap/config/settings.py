from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from cuberoot.core.models.config import ServerConfig


class ServerSettings(BaseModel):
    host: Annotated[
        str,
        Field(
            description="Bind address of the server.",
            default="127.0.0.1"
        )
    ]

    port: Annotated[
        int,
        Field(
            description="TCP port of the server. 0 lets the OS pick one.",
            default=8085,
            ge=0,
            le=65535
        )
    ]

    backlog: Annotated[
        int,
        Field(
            description="Maximum number of pending TCP connections.",
            default=128,
            gt=0
        )
    ]

    delimiter: Annotated[
        str,
        Field(
            description=(
                "Single-byte character terminating every message.\n"
                "It is never escaped: payloads must not contain it."
            ),
            default="\t"
        )
    ]

    idle_timeout: Annotated[
        float,
        Field(
            description=(
                "Seconds a client may take to deliver its next message.\n"
                "Connections idle for longer are closed without a response."
            ),
            default=10.0,
            gt=0
        )
    ]

    max_message_size: Annotated[
        int | None,
        Field(
            description="Maximum size of a single request payload, in bytes.",
            default=64 * 1024,
            gt=0
        )
    ]

    limit_concurrency: Annotated[
        int | None,
        Field(
            description=(
                "Maximum number of connections served at once.\n"
                "Unset means no limit."
            ),
            default=None,
            gt=0
        )
    ]

    timeout_graceful_shutdown: Annotated[
        float,
        Field(
            description="Maximum time allowed for graceful shutdown.",
            default=5.0,
            ge=0
        )
    ]

    @field_validator("delimiter")
    @classmethod
    def validate_delimiter(cls, v: str) -> str:
        if len(v.encode("utf-8")) != 1:
            raise ValueError("delimiter must encode to exactly one byte")
        return v

    def to_server_config(self) -> ServerConfig:
        return ServerConfig(
            host=self.host,
            port=self.port,
            backlog=self.backlog,
            delimiter=self.delimiter.encode("utf-8"),
            idle_timeout=self.idle_timeout,
            max_message_size=self.max_message_size,
            limit_concurrency=self.limit_concurrency,
            timeout_graceful_shutdown=self.timeout_graceful_shutdown,
        )


class LoadGenSettings(BaseModel):
    clients: Annotated[
        int,
        Field(description="Number of concurrent client sessions.", default=1, gt=0)
    ]

    requests: Annotated[
        int,
        Field(description="Requests sent by each session.", default=5, ge=0)
    ]

    timeout: Annotated[
        float,
        Field(
            description="Seconds allowed for a whole session, writes and reads included.",
            default=5.0,
            gt=0
        )
    ]

    connect_timeout: Annotated[
        float,
        Field(description="Seconds allowed to establish a connection.", default=2.0, gt=0)
    ]


class CubeRootConfig(BaseSettings):
    """
    Configuration of a cuberoot deployment.

    Values come from, in decreasing priority: environment variables
    (CUBEROOT_SERVER__PORT=9000), the YAML configuration file, defaults.
    """
    model_config = SettingsConfigDict(
        env_prefix="CUBEROOT_",
        env_nested_delimiter="__",
        extra="ignore"
    )

    server: Annotated[
        ServerSettings,
        Field(
            description=(
                "Server configuration.\n"
                "Controls where the server listens, how messages are framed,\n"
                "when idle connections are dropped, and how shutdown proceeds."
            ),
            default_factory=ServerSettings
        )
    ]

    loadgen: Annotated[
        LoadGenSettings,
        Field(
            description="Traffic generator configuration.",
            default_factory=LoadGenSettings
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # File values are given as init arguments, environment wins over them.
        return env_settings, init_settings

    @classmethod
    def from_file(cls, file: Path | None) -> "CubeRootConfig":
        data: dict[str, Any] = {}
        if file is not None:
            data = yaml.safe_load(file.read_text(encoding="utf-8")) or {}
            if not isinstance(data, dict):
                raise ValueError(f"{file}: top-level YAML value must be a mapping")
        return cls(**data)
