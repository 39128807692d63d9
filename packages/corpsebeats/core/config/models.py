"""Configuration models for Corpse Beats."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class ExecutionMode(str, Enum):
    """How samples within a round are scheduled."""

    PARALLEL = "parallel"
    PACED_SEQUENTIAL = "paced_sequential"


class ProviderConfig(BaseModel):
    """Inference provider connection settings."""

    api_token: SecretStr | None = Field(
        default=None, description="Provider API token (falls back to REPLICATE_API_TOKEN)"
    )
    base_url: str = Field(default="https://api.replicate.com/v1", description="Provider API root")
    timeout_s: float = Field(default=60.0, gt=0, description="Per-request HTTP timeout")
    wait_s: int = Field(
        default=60, ge=1, le=60, description="Seconds the provider may block on create"
    )
    poll_interval_s: float = Field(default=1.0, ge=0.0, description="Prediction poll interval")
    prediction_timeout_s: float = Field(
        default=300.0, gt=0, description="Give up on a prediction after this long"
    )

    @property
    def has_token(self) -> bool:
        return self.api_token is not None and bool(self.api_token.get_secret_value().strip())


class AudioModelConfig(BaseModel):
    """Music synthesis model and its fixed inputs."""

    ref: str = "meta/musicgen:b05b1dff1d8c6dc63d14b0cdb42135378dcb87f6373b0d3d341ede46e59e2b38"
    duration_s: int = Field(default=8, gt=0)
    model_version: str = "stereo-melody-large"
    output_format: str = Field(default="mp3", pattern="^(mp3|wav)$")


class ImageModelConfig(BaseModel):
    """Image synthesis model; step count scales with corruption intensity."""

    ref: str = (
        "black-forest-labs/flux-schnell:"
        "c846a69991daf4c0e5d016514849d14ee5b2e6846ce6b9d6f21369e564cfe51e"
    )
    aspect_ratio: str = "1:1"
    fast_steps: int = Field(default=1, ge=1, le=4)
    full_steps: int = Field(default=4, ge=1, le=4)
    fast_steps_below_intensity: float = Field(default=0.5, ge=0.0, le=1.0)


class CaptionModelConfig(BaseModel):
    """Image captioning model."""

    ref: str = "salesforce/blip:2e1dddc8621f72155f24cf2e0adbde548458d3cab9f00c0139eea840d0ac4746"
    task: str = "image_captioning"


class VideoModelConfig(BaseModel):
    """Image-to-video model."""

    ref: str = "kwaivgi/kling-v2.1:8f1d07f812d87339d7866c94ba2149e8ee456472e5c5ec04ac22795e21b55c68"
    mode: str = Field(default="standard", pattern="^(standard|pro)$")
    duration_s: int = Field(default=5, gt=0)


class ModelsConfig(BaseModel):
    """Model references for each modality."""

    audio: AudioModelConfig = AudioModelConfig()
    image: ImageModelConfig = ImageModelConfig()
    caption: CaptionModelConfig = CaptionModelConfig()
    video: VideoModelConfig = VideoModelConfig()


class GatewayRetryConfig(BaseModel):
    """Retry policy applied to every gateway operation.

    Each attempt may be a billable provider call, so attempts are capped.
    """

    max_attempts: int = Field(default=3, ge=1, description="Total attempts including the first")
    initial_delay_ms: int = Field(default=1000, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    max_delay_ms: int = Field(default=10000, ge=0)
    max_jitter_ms: int = Field(default=1000, ge=0)


class ChainConfig(BaseModel):
    """Generation chain settings."""

    samples_per_round: int = Field(default=4, ge=1, le=16)
    execution_mode: ExecutionMode = ExecutionMode.PARALLEL
    pacing_delay_s: float = Field(
        default=15.0, ge=0.0, description="Delay between sample starts in paced mode"
    )


class ClientConfig(BaseModel):
    """Settings for driving a chain through a remote backend."""

    backend_url: str = Field(default="http://127.0.0.1:8000")
    requests_per_minute: float = Field(default=6.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    base_delay_s: float = Field(default=1.0, ge=0.0)
    max_delay_s: float = Field(default=10.0, ge=0.0)
    timeout_s: float = Field(default=180.0, gt=0)

    @field_validator("backend_url")
    @classmethod
    def validate_backend_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("backend_url must start with http:// or https://")
        return v.rstrip("/")


class ServerConfig(BaseModel):
    """HTTP server bind settings."""

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = Field(default=False, description="Emit one JSON object per line")


class AppConfig(BaseModel):
    """Application-level configuration."""

    model_config = ConfigDict(extra="ignore")

    provider: ProviderConfig = ProviderConfig()
    models: ModelsConfig = ModelsConfig()
    retry: GatewayRetryConfig = GatewayRetryConfig()
    chain: ChainConfig = ChainConfig()
    client: ClientConfig = ClientConfig()
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()

    @classmethod
    def default_path(cls) -> Path:
        """Default path for application config."""
        return Path("corpsebeats.yaml")
