"""Replicate predictions API client."""

from corpsebeats.core.api.replicate.client import ReplicateClient, prediction_path
from corpsebeats.core.api.replicate.errors import PredictionFailedError, PredictionTimeoutError
from corpsebeats.core.api.replicate.models import Prediction, PredictionStatus

__all__ = [
    "ReplicateClient",
    "prediction_path",
    "Prediction",
    "PredictionStatus",
    "PredictionFailedError",
    "PredictionTimeoutError",
]
