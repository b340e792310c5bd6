from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, YamlConfigSettingsSource

from messenger.bootstrap.config.loader import get_configfile


class PeerSettings(BaseModel):
    host: Annotated[
        str,
        Field(
            description="Host name or IP address of the peer to connect to.",
            default="127.0.0.1"
        )
    ]

    port: Annotated[
        int,
        Field(
            description="TCP port of the peer.",
            default=2000,
            ge=1,
            le=65535
        )
    ]

    address_description: Annotated[
        str | None,
        Field(
            description=(
                "Label reported by the endpoint while connected and used as\n"
                "context in its log messages. Defaults to 'host:port'."
            ),
            default=None
        )
    ]


class ReconnectSettings(BaseModel):
    initial: Annotated[
        float,
        Field(description="Delay (in seconds) before the first reconnect attempt.", default=0.5, gt=0)
    ]

    maximum: Annotated[
        float,
        Field(description="Upper bound (in seconds) of the reconnect delay.", default=30.0, gt=0)
    ]

    factor: Annotated[
        float,
        Field(description="Growth factor of the delay after each failed attempt.", default=2.0, ge=1)
    ]

    jitter: Annotated[
        float,
        Field(description="Maximum random jitter (in seconds) added to each delay.", default=1.2, ge=0)
    ]

    max_retries: Annotated[
        int,
        Field(
            description=(
                "Number of consecutive failed attempts before giving up.\n"
                "0 retries forever."
            ),
            default=0,
            ge=0
        )
    ]


class MessengerConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MESSENGER_",
        env_nested_delimiter="__",
        extra="ignore"
    )

    peer: Annotated[
        PeerSettings,
        Field(
            description="Remote peer the endpoint is connected to.",
            default_factory=PeerSettings
        )
    ]

    codec: Annotated[
        Literal["msgpack", "json"],
        Field(
            description=(
                "Wire format of the events.\n"
                "Both sides of a connection must use the same codec."
            ),
            default="msgpack"
        )
    ]

    reconnect: Annotated[
        ReconnectSettings,
        Field(
            description="Backoff policy applied when the peer cannot be reached.",
            default_factory=ReconnectSettings
        )
    ]

    heartbeat_interval: Annotated[
        float,
        Field(
            description=(
                "Seconds between two best-effort 'ping' events.\n"
                "Pings produced while disconnected are dropped, never queued.\n"
                "0 disables the heartbeat."
            ),
            default=5.0,
            ge=0
        )
    ]

    max_message_size: Annotated[
        int,
        Field(
            description="Maximum size (in bytes) of a single inbound frame.",
            default=1 * 1024 * 1024,
            gt=0
        )
    ]

    timeout_graceful_shutdown: Annotated[
        float,
        Field(
            description="Maximum time allowed for background tasks to stop.",
            default=5.0,
            ge=0
        )
    ]

    @field_validator("codec", mode="before")
    @classmethod
    def normalize_codec(cls, v: str) -> str:
        return v.lower() if isinstance(v, str) else v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=get_configfile()),
        )

    @property
    def address_description(self) -> str:
        return self.peer.address_description or f"{self.peer.host}:{self.peer.port}"
