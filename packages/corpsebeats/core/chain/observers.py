"""Progress observers for chain runs.

The orchestrator pushes every state change to an observer right after it
happens, so callers can render a chain progressively without polling.
"""

from __future__ import annotations

from typing import Protocol

from corpsebeats.core.chain.models import CorpseChain, GenerationSample, RoundResult


class ChainObserver(Protocol):
    """Receives progress notifications from a chain run."""

    def on_sample_complete(self, sample: GenerationSample) -> None: ...

    def on_sample_failed(self, round_index: int, index: int, error: BaseException) -> None: ...

    def on_round_complete(self, chain: CorpseChain, result: RoundResult) -> None: ...

    def on_chain_complete(self, chain: CorpseChain) -> None: ...

    def on_chain_failed(self, chain: CorpseChain, error: BaseException) -> None: ...


class NullChainObserver:
    """Observer that ignores every notification. Subclass and override what you need."""

    def on_sample_complete(self, sample: GenerationSample) -> None:
        pass

    def on_sample_failed(self, round_index: int, index: int, error: BaseException) -> None:
        pass

    def on_round_complete(self, chain: CorpseChain, result: RoundResult) -> None:
        pass

    def on_chain_complete(self, chain: CorpseChain) -> None:
        pass

    def on_chain_failed(self, chain: CorpseChain, error: BaseException) -> None:
        pass

