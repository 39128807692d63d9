"""Wire models for the Replicate predictions API."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PredictionStatus(str, Enum):
    """Lifecycle states reported by the provider."""

    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            PredictionStatus.SUCCEEDED,
            PredictionStatus.FAILED,
            PredictionStatus.CANCELED,
        )


class Prediction(BaseModel):
    """A single prediction as returned by create/get."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: PredictionStatus
    output: Any = None
    error: str | None = None
    logs: str | None = Field(default=None, repr=False)
    urls: dict[str, str] = Field(default_factory=dict)
