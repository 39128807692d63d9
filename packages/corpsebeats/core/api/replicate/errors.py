from __future__ import annotations

from corpsebeats.core.errors import TransientProviderError


class PredictionFailedError(TransientProviderError):
    """The provider finished a prediction with status failed or canceled."""

    def __init__(self, prediction_id: str, status: str, detail: str | None = None) -> None:
        self.prediction_id = prediction_id
        self.status = status
        message = f"Prediction {prediction_id} {status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class PredictionTimeoutError(TransientProviderError):
    """A prediction did not reach a terminal state in time."""

    def __init__(self, prediction_id: str, timeout_s: float) -> None:
        self.prediction_id = prediction_id
        self.timeout_s = timeout_s
        super().__init__(f"Prediction {prediction_id} did not finish within {timeout_s:g}s")
