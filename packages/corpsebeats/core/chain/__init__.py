"""Generation-chain orchestration: rounds of samples linked by captions."""

from corpsebeats.core.chain.models import (
    ChainStatus,
    CorpseChain,
    GenerationSample,
    RoundResult,
    SampleFailure,
)
from corpsebeats.core.chain.observers import ChainObserver, NullChainObserver
from corpsebeats.core.chain.orchestrator import GenerationChainOrchestrator
from corpsebeats.core.config.models import ExecutionMode

__all__ = [
    "GenerationChainOrchestrator",
    "ExecutionMode",
    "ChainObserver",
    "NullChainObserver",
    "ChainStatus",
    "CorpseChain",
    "GenerationSample",
    "RoundResult",
    "SampleFailure",
]
