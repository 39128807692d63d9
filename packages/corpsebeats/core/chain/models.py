"""Chain data model: samples, rounds, and the growing corpse chain."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from corpsebeats.core.corruption import MAX_ROUND, MIN_ROUND, CorruptionProfile, profile_for


class GenerationSample(BaseModel):
    """One audio + image + caption triple for a (prompt, round) pair."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    round: int = Field(ge=MIN_ROUND, le=MAX_ROUND)
    index: int = Field(default=0, ge=0, description="Requested slot within the round")
    audio_ref: str
    image_ref: str
    caption: str
    resolved_prompt: str = Field(description="Enhanced prompt sent to audio synthesis")
    image_prompt: str = Field(description="Enhanced prompt sent to image synthesis")


class SampleFailure(BaseModel):
    """A sample slot that failed in an otherwise successful round."""

    model_config = ConfigDict(frozen=True)

    index: int
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, index: int, exc: BaseException) -> SampleFailure:
        return cls(index=index, error_type=type(exc).__name__, message=str(exc))


class RoundResult(BaseModel):
    """Successful samples of one round, in request order.

    A round with zero successful samples never becomes a RoundResult.
    """

    model_config = ConfigDict(frozen=True)

    round: int = Field(ge=MIN_ROUND, le=MAX_ROUND)
    prompt: str = Field(description="Base prompt every sample in the round was built from")
    samples: tuple[GenerationSample, ...] = Field(min_length=1)
    failures: tuple[SampleFailure, ...] = ()

    @property
    def representative(self) -> GenerationSample:
        """The lineage-carrying sample (first successful one)."""
        return self.samples[0]

    @property
    def profile(self) -> CorruptionProfile:
        return profile_for(self.round)


class ChainStatus(str, Enum):
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CorpseChain(BaseModel):
    """Ordered round results for one run.

    Append-only while running; a new run builds a new chain.
    """

    initial_prompt: str
    rounds: list[RoundResult] = Field(default_factory=list)
    status: ChainStatus = ChainStatus.RUNNING
    error: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.status is ChainStatus.COMPLETE

    @property
    def has_failed(self) -> bool:
        return self.status is ChainStatus.FAILED

    @property
    def final_round(self) -> RoundResult | None:
        return self.rounds[-1] if self.rounds else None

    @property
    def latest_caption(self) -> str | None:
        final = self.final_round
        return final.representative.caption if final else None

    def append_round(self, result: RoundResult) -> None:
        """Append the next round's result.

        Raises:
            RuntimeError: Chain is no longer running
            ValueError: Result is not the next round in sequence
        """
        if self.status is not ChainStatus.RUNNING:
            raise RuntimeError(f"Cannot append to a {self.status.value} chain")
        if result.round != len(self.rounds):
            raise ValueError(f"Expected round {len(self.rounds)}, got round {result.round}")
        self.rounds.append(result)

    def representative_pairs(self) -> tuple[list[str], list[str]]:
        """Image refs and captions of each round's representative sample."""
        image_refs = [r.representative.image_ref for r in self.rounds]
        captions = [r.representative.caption for r in self.rounds]
        return image_refs, captions

    def mark_complete(self) -> None:
        self.status = ChainStatus.COMPLETE

    def mark_failed(self, error: BaseException) -> None:
        self.status = ChainStatus.FAILED
        self.error = str(error)

    def mark_cancelled(self) -> None:
        self.status = ChainStatus.CANCELLED
        self.error = "Generation cancelled"
