"""NDJSON progress events for streamed chain runs."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from corpsebeats.core.chain import CorpseChain, GenerationSample, NullChainObserver, RoundResult
from corpsebeats.core.errors import classify_error

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def encode_event(event: dict[str, Any]) -> str:
    """One JSON object per line."""
    return json.dumps(event, separators=(",", ":")) + "\n"


class QueueChainObserver(NullChainObserver):
    """Turns orchestrator notifications into events on an asyncio queue.

    `None` is never enqueued here; the producer task adds it once the run ends.
    """

    def __init__(self, queue: asyncio.Queue[dict[str, Any] | None]) -> None:
        self._queue = queue

    def on_sample_complete(self, sample: GenerationSample) -> None:
        self._queue.put_nowait(
            {
                "event": "sample",
                "round": sample.round,
                "index": sample.index,
                "sample": sample.model_dump(mode="json"),
            }
        )

    def on_sample_failed(self, round_index: int, index: int, error: BaseException) -> None:
        self._queue.put_nowait(
            {
                "event": "sample_failed",
                "round": round_index,
                "index": index,
                "error": classify_error(error).user_message,
            }
        )

    def on_round_complete(self, chain: CorpseChain, result: RoundResult) -> None:
        self._queue.put_nowait(
            {
                "event": "round",
                "round": result.round,
                "result": result.model_dump(mode="json"),
            }
        )

    def on_chain_complete(self, chain: CorpseChain) -> None:
        self._queue.put_nowait({"event": "complete", "chain": chain.model_dump(mode="json")})

    def on_chain_failed(self, chain: CorpseChain, error: BaseException) -> None:
        self._queue.put_nowait(
            {
                "event": "failed",
                "error": classify_error(error).to_dict(),
                "chain": chain.model_dump(mode="json"),
            }
        )
