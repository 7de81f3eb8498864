# sosmeet/config.py
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sosmeet.persistence.validation import AlarmFieldPolicy


class Settings(BaseSettings):
    # Network
    host: str = "0.0.0.0"
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("PORT", "SOSMEET_PORT"),
    )

    log_level: str = "INFO"

    # WebSocket
    ping_interval: int = 20   # seconds
    ping_timeout: int = 20    # seconds
    max_message_size: int = 2**20

    # Per-connection outbox; a full queue drops instead of blocking the loop
    outbound_queue_size: int = 256

    # Protocol policy
    alarm_field_policy: AlarmFieldPolicy = AlarmFieldPolicy.ACCEPT
    reply_on_unauthorized: bool = False
    reject_unknown_commands: bool = True

    model_config = SettingsConfigDict(
        env_prefix="SOSMEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()
