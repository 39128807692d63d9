"""HTTP routes.

Every handler validates its body first (pydantic, 400 on failure), then
resolves the gateway (500 when no credential is configured), then makes the
provider call. Taxonomy errors are rendered by the app's exception handlers.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from corpsebeats.core.chain import GenerationChainOrchestrator
from corpsebeats.core.errors import RateLimitError, classify_error
from corpsebeats.core.server.deps import get_config, get_gateway
from corpsebeats.core.server.schemas import (
    CaptionImageRequest,
    GenerateAudioRequest,
    GenerateCorpseRequest,
    GenerateImageRequest,
    GenerateVideoRequest,
)
from corpsebeats.core.server.streaming import (
    NDJSON_MEDIA_TYPE,
    QueueChainObserver,
    encode_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/caption-image")
async def caption_image(body: CaptionImageRequest, request: Request) -> dict[str, str]:
    gateway = get_gateway(request)
    result = await gateway.caption_image(body.image_url)
    return {"caption": result.caption}


@router.post("/generate-audio")
async def generate_audio(body: GenerateAudioRequest, request: Request) -> dict[str, str]:
    gateway = get_gateway(request)
    result = await gateway.synthesize_audio(body.prompt, body.intensity)
    return {"audio_url": result.audio_ref}


@router.post("/generate-image")
async def generate_image(body: GenerateImageRequest, request: Request) -> dict[str, str]:
    gateway = get_gateway(request)
    result = await gateway.synthesize_image(body.prompt, body.intensity)
    return {"image_url": result.image_ref}


@router.post("/generate-video")
async def generate_video(body: GenerateVideoRequest, request: Request) -> dict[str, Any]:
    """Animate the last (most corrupted) image of the sequence."""
    gateway = get_gateway(request)
    result = await gateway.synthesize_video(body.image_urls, body.captions)
    return {"videoUrls": [result.video_ref], "count": 1}


@router.get("/check-rate-limits")
async def check_rate_limits(request: Request) -> Any:
    """Make one lightweight provider call to verify the credential and quota."""
    gateway = get_gateway(request)
    try:
        return await gateway.health_check()
    except Exception as exc:
        error = classify_error(exc)
        logger.error("Rate limit check failed: %s", error.message)
        if isinstance(error, RateLimitError):
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "rateLimitStatus": "THROTTLED",
                    "message": error.message,
                    "recommendation": "Use paced_sequential execution or wait before retrying.",
                },
            )
        return JSONResponse(status_code=500, content={"success": False, "error": error.message})


@router.post("/generate-corpse")
async def generate_corpse(body: GenerateCorpseRequest, request: Request) -> StreamingResponse:
    """Run a full chain, streaming progress as newline-delimited JSON.

    Events: sample, sample_failed, round, then exactly one of complete or
    failed. Closing the connection cancels the run.
    """
    gateway = get_gateway(request)
    config = get_config(request)

    queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
    cancel_token = asyncio.Event()
    orchestrator = GenerationChainOrchestrator(
        gateway, config=config.chain, observer=QueueChainObserver(queue)
    )

    async def run_chain() -> None:
        try:
            await orchestrator.generate_full_corpse(
                body.prompt,
                samples_per_round=body.samples_per_round,
                cancel_token=cancel_token,
            )
        except Exception as exc:
            # Already reported to the stream through on_chain_failed.
            logger.info("Streamed chain ended with %s", type(exc).__name__)
        finally:
            queue.put_nowait(None)

    async def events() -> AsyncIterator[str]:
        task = asyncio.create_task(run_chain())
        try:
            while (event := await queue.get()) is not None:
                yield encode_event(event)
        finally:
            cancel_token.set()
            if not task.done():
                task.cancel()

    return StreamingResponse(
        events(),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
