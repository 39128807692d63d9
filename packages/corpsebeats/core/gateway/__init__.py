"""Inference gateway: provider calls with bounded retry and error classification."""

from corpsebeats.core.gateway.base import (
    AudioOutput,
    CaptionOutput,
    Gateway,
    ImageOutput,
    InferenceBackend,
    VideoOutput,
)
from corpsebeats.core.gateway.gateway import InferenceGateway, create_gateway, normalize_caption
from corpsebeats.core.gateway.retry import BackoffPolicy, with_retry

__all__ = [
    "Gateway",
    "InferenceBackend",
    "InferenceGateway",
    "create_gateway",
    "normalize_caption",
    "BackoffPolicy",
    "with_retry",
    "AudioOutput",
    "ImageOutput",
    "CaptionOutput",
    "VideoOutput",
]
