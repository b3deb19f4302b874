import logging
import os
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class GatewaySettings(BaseModel):
    """
    GatewaySettings holds the tunables shared by every recognizer.

    Each provider may override any of these per instance, so the values here
    are defaults rather than global constants.
    """
    timeout: float = Field(
        default=30.0,
        description="Timeout for a single HTTP request in seconds."
    )
    max_connections: int = Field(
        default=100,
        description="Maximum number of connections held by the HTTP client."
    )
    max_keepalive_connections: int = Field(
        default=20,
        description="Maximum number of keep-alive connections held by the HTTP client."
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Maximum number of attempts for network-class failures."
    )
    retry_base_delay: float = Field(
        default=1.0,
        ge=0,
        description="Base delay in seconds. The n-th retry waits n times this value."
    )
    min_audio_bytes: int = Field(
        default=1000,
        ge=0,
        description="Audio shorter than this (in bytes of PCM16 mono) is rejected without a network call."
    )
    poll_interval: float = Field(
        default=1.0,
        ge=0,
        description="Interval in seconds between status polls for upload-and-poll providers."
    )
    max_poll_attempts: int = Field(
        default=60,
        ge=1,
        description="Maximum number of status polls before giving up."
    )
    stream_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Upper bound in seconds for a streaming recognition call."
    )
    token_refresh_margin: float = Field(
        default=300.0,
        ge=0,
        description="Cached tokens are refreshed when less than this many seconds of validity remain."
    )
    realtime_pacing: bool = Field(
        default=False,
        description="Pace streamed audio chunks to real time for providers that expect it."
    )
    debug: bool = Field(
        default=False,
        description="Flag indicating whether to enable debug mode. If True, detailed logs are output."
    )

    @classmethod
    def from_env(cls, prefix: str = "STT_GATEWAY_") -> "GatewaySettings":
        values = {}
        for name in cls.model_fields:
            env_value = os.getenv(f"{prefix}{name.upper()}")
            if env_value is None:
                continue
            if cls.model_fields[name].annotation is bool:
                values[name] = env_value.strip().lower() in ("1", "true", "yes", "on")
            else:
                values[name] = env_value

        if values:
            logger.info(f"Gateway settings overridden from environment: {', '.join(sorted(values))}")

        return cls.model_validate(values)
