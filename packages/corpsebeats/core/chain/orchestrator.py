"""Generation-chain orchestrator.

Drives rounds 0-3 through a gateway. Each round generates several samples
from the same prompt; the first successful sample's caption becomes the next
round's prompt (single lineage, never a merge of all captions). A round fails
only when none of its samples succeed, and a failed round ends the chain.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
from typing import Any, TypeVar
import uuid

from corpsebeats.core.chain.models import (
    CorpseChain,
    GenerationSample,
    RoundResult,
    SampleFailure,
)
from corpsebeats.core.chain.observers import ChainObserver, NullChainObserver
from corpsebeats.core.config.models import ChainConfig, ExecutionMode
from corpsebeats.core.corruption import MAX_ROUND, ROUND_COUNT, clamp_round, corruption_level
from corpsebeats.core.errors import (
    ChainCancelledError,
    RoundFailedError,
    ValidationError,
)
from corpsebeats.core.gateway.base import Gateway
from corpsebeats.core.prompts import enhance_audio_prompt, enhance_image_prompt, validate_prompt
from corpsebeats.core.utils.logging import get_logger

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GenerationChainOrchestrator:
    """Runs exquisite-corpse chains against a gateway.

    One orchestrator runs one chain at a time; `current_chain` is replaced
    wholesale at the start of each run and is safe to read between awaits.

    Args:
        gateway: InferenceGateway or RemoteGateway
        config: Samples per round, execution mode, and pacing delay
        observer: Receives progress notifications (defaults to a no-op)
        sleep: Awaitable sleep used for pacing (injectable for tests)

    Example:
        >>> orchestrator = GenerationChainOrchestrator(gateway, config=ChainConfig())
        >>> chain = await orchestrator.generate_full_corpse("lo-fi study beats")
        >>> [r.representative.caption for r in chain.rounds]
    """

    def __init__(
        self,
        gateway: Gateway,
        *,
        config: ChainConfig | None = None,
        observer: ChainObserver | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self._config = config or ChainConfig()
        self._observer: ChainObserver = observer or NullChainObserver()
        self._sleep = sleep
        self._log: logging.Logger | logging.LoggerAdapter = logger
        self.current_chain: CorpseChain | None = None

    @property
    def config(self) -> ChainConfig:
        return self._config

    @property
    def is_complete(self) -> bool:
        return self.current_chain is not None and self.current_chain.is_complete

    @property
    def has_failed(self) -> bool:
        return self.current_chain is not None and self.current_chain.has_failed

    async def generate_sample(
        self, prompt: str, round_index: int, index: int = 0
    ) -> GenerationSample:
        """Run audio, image, and caption generation for one sample.

        Audio and image prompts are enhanced independently with their own
        modifiers. Gateway failures propagate unchanged.
        """
        round_index = clamp_round(round_index)
        intensity = corruption_level(round_index)

        audio_prompt = enhance_audio_prompt(prompt, round_index)
        audio = await self._gateway.synthesize_audio(audio_prompt, intensity)

        image_prompt = enhance_image_prompt(prompt, round_index)
        image = await self._gateway.synthesize_image(image_prompt, intensity)

        caption = await self._gateway.caption_image(image.image_ref)

        return GenerationSample(
            round=round_index,
            index=index,
            audio_ref=audio.audio_ref,
            image_ref=image.image_ref,
            caption=caption.caption,
            resolved_prompt=audio_prompt,
            image_prompt=image_prompt,
        )

    async def generate_round(
        self,
        prompt: str,
        round_index: int,
        count: int | None = None,
        *,
        cancel_token: asyncio.Event | None = None,
    ) -> RoundResult:
        """Generate `count` samples for one round.

        Samples come back in request order regardless of completion order.
        Failed samples are logged and recorded; the round fails only when
        every sample fails.

        Raises:
            RoundFailedError: Zero samples succeeded
            ChainCancelledError: cancel_token was set during the round
        """
        round_index = clamp_round(round_index)
        count = self._config.samples_per_round if count is None else count
        if count < 1:
            raise ValidationError(f"Sample count must be at least 1, got {count}")
        self._check_cancelled(cancel_token)

        self._log.info(
            "Round %d: generating %d sample(s) (%s) from %r",
            round_index,
            count,
            self._config.execution_mode.value,
            prompt,
        )

        if self._config.execution_mode is ExecutionMode.PACED_SEQUENTIAL:
            outcomes = await self._run_paced(prompt, round_index, count, cancel_token)
        else:
            outcomes = await self._until_cancelled(
                asyncio.gather(
                    *(
                        self._sample_slot(prompt, round_index, i, cancel_token)
                        for i in range(count)
                    ),
                    return_exceptions=True,
                ),
                cancel_token,
            )

        samples: list[GenerationSample] = []
        errors: list[BaseException] = []
        failures: list[SampleFailure] = []
        for i, outcome in enumerate(outcomes):
            if isinstance(outcome, GenerationSample):
                samples.append(outcome)
            elif isinstance(outcome, ChainCancelledError):
                raise outcome
            else:
                errors.append(outcome)
                failures.append(SampleFailure.from_exception(i, outcome))
                self._log.warning(
                    "Round %d: sample %d/%d failed: %s", round_index, i + 1, count, outcome
                )

        if not samples:
            self._log.error("Round %d: all %d samples failed", round_index, count)
            raise RoundFailedError(round_index, errors)

        if failures:
            self._log.warning(
                "Round %d: %d/%d samples succeeded", round_index, len(samples), count
            )

        return RoundResult(
            round=round_index,
            prompt=prompt,
            samples=tuple(samples),
            failures=tuple(failures),
        )

    async def _sample_slot(
        self,
        prompt: str,
        round_index: int,
        index: int,
        cancel_token: asyncio.Event | None,
    ) -> GenerationSample:
        self._check_cancelled(cancel_token)
        try:
            sample = await self.generate_sample(prompt, round_index, index)
        except Exception as exc:
            self._observer.on_sample_failed(round_index, index, exc)
            raise
        self._observer.on_sample_complete(sample)
        return sample

    async def _run_paced(
        self,
        prompt: str,
        round_index: int,
        count: int,
        cancel_token: asyncio.Event | None,
    ) -> list[Any]:
        outcomes: list[Any] = []
        for i in range(count):
            if i > 0 and self._config.pacing_delay_s > 0:
                self._log.debug(
                    "Round %d: waiting %.1fs before sample %d",
                    round_index,
                    self._config.pacing_delay_s,
                    i + 1,
                )
                await self._until_cancelled(self._sleep(self._config.pacing_delay_s), cancel_token)
            try:
                outcomes.append(
                    await self._until_cancelled(
                        self._sample_slot(prompt, round_index, i, cancel_token), cancel_token
                    )
                )
            except ChainCancelledError:
                raise
            except Exception as exc:
                outcomes.append(exc)
        return outcomes

    async def generate_full_corpse(
        self,
        initial_prompt: str,
        *,
        samples_per_round: int | None = None,
        cancel_token: asyncio.Event | None = None,
    ) -> CorpseChain:
        """Run rounds 0-3, threading each round's first caption into the next.

        Returns:
            The completed chain (also available as `current_chain`)

        Raises:
            ValidationError: initial_prompt is not a valid prompt
            RoundFailedError: A round produced no samples; later rounds never start
            ChainCancelledError: cancel_token was set; no further calls are issued
        """
        if not validate_prompt(initial_prompt):
            raise ValidationError(
                "Prompt must be 3-500 characters and contain at least one letter"
            )

        run_id = uuid.uuid4().hex[:8]
        self._log = get_logger(__name__, run_id=run_id)

        chain = CorpseChain(initial_prompt=initial_prompt.strip())
        self.current_chain = chain
        prompt = chain.initial_prompt

        self._log.info("Starting chain %s from %r", run_id, prompt)
        try:
            for round_index in range(ROUND_COUNT):
                self._check_cancelled(cancel_token)
                result = await self.generate_round(
                    prompt, round_index, samples_per_round, cancel_token=cancel_token
                )
                chain.append_round(result)
                self._observer.on_round_complete(chain, result)

                if round_index < MAX_ROUND:
                    prompt = result.representative.caption
                    self._log.info("Round %d seeds next round with %r", round_index, prompt)
        except ChainCancelledError as exc:
            self._log.warning("Chain %s cancelled after %d round(s)", run_id, len(chain.rounds))
            chain.mark_cancelled()
            self._observer.on_chain_failed(chain, exc)
            raise
        except asyncio.CancelledError:
            self._log.warning("Chain %s task cancelled", run_id)
            chain.mark_cancelled()
            raise
        except Exception as exc:
            self._log.error("Chain %s failed: %s", run_id, exc)
            chain.mark_failed(exc)
            self._observer.on_chain_failed(chain, exc)
            raise

        chain.mark_complete()
        self._log.info("Chain %s complete (%d rounds)", run_id, len(chain.rounds))
        self._observer.on_chain_complete(chain)
        return chain

    @staticmethod
    def _check_cancelled(cancel_token: asyncio.Event | None) -> None:
        if cancel_token is not None and cancel_token.is_set():
            raise ChainCancelledError("Generation cancelled")

    async def _until_cancelled(
        self, awaitable: Awaitable[T], cancel_token: asyncio.Event | None
    ) -> T:
        """Await `awaitable`, abandoning it as soon as cancel_token is set.

        The abandoned work is cancelled locally; provider-side predictions
        may still run to completion.
        """
        if cancel_token is None:
            return await awaitable

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(cancel_token.wait())
        abandoned = False
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not work.done():
                abandoned = True
                work.cancel()
                await asyncio.gather(work, return_exceptions=True)

        # A cancelled gather() can finish holding CancelledError instead of
        # reporting cancelled(), so the abandon flag decides.
        if abandoned or work.cancelled():
            raise ChainCancelledError("Generation cancelled")
        return work.result()
