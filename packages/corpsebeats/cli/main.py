"""Command-line interface for Corpse Beats."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys
from typing import Any

from rich.console import Console
from rich.table import Table
import uvicorn

from corpsebeats.core.chain import (
    CorpseChain,
    ExecutionMode,
    GenerationChainOrchestrator,
    GenerationSample,
    NullChainObserver,
    RoundResult,
)
from corpsebeats.core.client import RemoteGateway
from corpsebeats.core.config import AppConfig, configure_logging, load_app_config
from corpsebeats.core.corruption import MAX_ROUND, ROUND_COUNT, profile_for
from corpsebeats.core.errors import CorpseBeatsError, classify_error
from corpsebeats.core.gateway import create_gateway
from corpsebeats.core.server import create_app

console = Console()
logger = logging.getLogger(__name__)


class ConsoleChainObserver(NullChainObserver):
    """Prints chain progress as it happens."""

    def __init__(self, out: Console) -> None:
        self._out = out

    def on_sample_complete(self, sample: GenerationSample) -> None:
        self._out.print(
            f"   [green]✔[/green] round {sample.round} sample {sample.index + 1}: "
            f"[italic]{sample.caption}[/italic]"
        )

    def on_sample_failed(self, round_index: int, index: int, error: BaseException) -> None:
        self._out.print(
            f"   [yellow]✘ round {round_index} sample {index + 1} failed: "
            f"{classify_error(error).user_message}[/yellow]"
        )

    def on_round_complete(self, chain: CorpseChain, result: RoundResult) -> None:
        profile = result.profile
        self._out.print(
            f"[bold]Round {result.round} ({profile.name})[/bold] complete: "
            f"{len(result.samples)} sample(s), next prompt: "
            f"[italic]{result.representative.caption}[/italic]"
        )


def _load_config(path: str | None) -> AppConfig:
    config = load_app_config(Path(path) if path else None)
    configure_logging(config)
    return config


def _print_chain(chain: CorpseChain) -> None:
    table = Table(title=f"Corpse chain: {chain.initial_prompt}")
    table.add_column("Round")
    table.add_column("Stage")
    table.add_column("Samples", justify="right")
    table.add_column("Caption")
    table.add_column("Audio")
    for result in chain.rounds:
        rep = result.representative
        table.add_row(
            str(result.round),
            result.profile.name,
            f"{len(result.samples)}/{len(result.samples) + len(result.failures)}",
            rep.caption,
            rep.audio_ref,
        )
    console.print(table)


async def generate_async(args: argparse.Namespace) -> int:
    """Run a full chain and report it.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    try:
        config = _load_config(args.config)
    except Exception as e:
        console.print(f"[red]ERROR: Could not load config: {e}[/red]")
        return 1

    chain_updates: dict[str, Any] = {}
    if args.samples is not None:
        chain_updates["samples_per_round"] = args.samples
    if args.mode is not None:
        chain_updates["execution_mode"] = ExecutionMode(args.mode)
    elif args.remote:
        chain_updates["execution_mode"] = ExecutionMode.PACED_SEQUENTIAL
    chain_config = config.chain.model_copy(update=chain_updates)

    try:
        if args.remote:
            client_config = config.client.model_validate(
                {**config.client.model_dump(), "backend_url": args.remote}
            )
            gateway: Any = RemoteGateway(client_config)
            console.print(f"[green]Using backend[/green] {client_config.backend_url}")
        else:
            gateway = create_gateway(config)
    except CorpseBeatsError as e:
        console.print(f"[red]ERROR: {e.message}[/red]")
        console.print("\nSet your provider token first:")
        console.print("  export REPLICATE_API_TOKEN='r8_...'")
        return 1

    console.print(
        f"[bold]Generating {ROUND_COUNT} rounds x {chain_config.samples_per_round} samples "
        f"({chain_config.execution_mode.value})[/bold]"
    )
    orchestrator = GenerationChainOrchestrator(
        gateway, config=chain_config, observer=ConsoleChainObserver(console)
    )

    video_ref: str | None = None
    try:
        chain = await orchestrator.generate_full_corpse(args.prompt)
        _print_chain(chain)

        if args.video:
            stage = profile_for(MAX_ROUND).name
            console.print(f"[bold]Animating final image ({stage})...[/bold]")
            image_refs, captions = chain.representative_pairs()
            video = await gateway.synthesize_video(image_refs, captions)
            video_ref = video.video_ref
            console.print(f"[green]🎬 Video:[/green] {video_ref}")
    except CorpseBeatsError as e:
        console.print(f"\n[red]❌ Generation failed: {e.user_message}[/red]")
        if e.user_message != e.message:
            console.print(f"   {e.message}")
        return 1
    finally:
        await gateway.aclose()
        if args.out and orchestrator.current_chain is not None:
            _write_chain(Path(args.out), orchestrator.current_chain, video_ref)

    console.print("\n[bold green]✅ Corpse complete![/bold green]")
    return 0


def _write_chain(path: Path, chain: CorpseChain, video_ref: str | None) -> None:
    payload = chain.model_dump(mode="json")
    if video_ref is not None:
        payload["video_ref"] = video_ref
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    console.print(f"[green]📁 Chain saved to:[/green] {path}")


async def check_async(args: argparse.Namespace) -> int:
    """Verify the provider credential with one lightweight call."""
    try:
        config = _load_config(args.config)
        gateway = create_gateway(config)
    except CorpseBeatsError as e:
        console.print(f"[red]ERROR: {e.message}[/red]")
        return 1

    try:
        result = await gateway.health_check()
    except Exception as e:
        error = classify_error(e)
        console.print(f"[red]❌ {error.user_message}[/red]")
        return 1
    finally:
        await gateway.aclose()

    console.print(f"[green]✅ {result['message']}[/green] (e.g. {result['modelExample']})")
    return 0


def serve(args: argparse.Namespace) -> int:
    """Run the HTTP server."""
    try:
        config = _load_config(args.config)
    except Exception as e:
        console.print(f"[red]ERROR: Could not load config: {e}[/red]")
        return 1

    host = args.host or config.server.host
    port = args.port or config.server.port
    if not config.provider.has_token:
        console.print(
            "[yellow]⚠ REPLICATE_API_TOKEN is not set; generation routes will fail[/yellow]"
        )

    uvicorn.run(create_app(config), host=host, port=port, log_config=None)
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="corpsebeats",
        description="Corpse Beats - exquisite-corpse audio/image generation chains",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    gen = sub.add_parser("generate", help="Run a full four-round chain")
    gen.add_argument("prompt", help="Initial prompt (3-500 characters)")
    gen.add_argument("--samples", type=int, default=None, help="Samples per round")
    gen.add_argument(
        "--mode",
        choices=[m.value for m in ExecutionMode],
        default=None,
        help="Sample scheduling (default: config; paced_sequential with --remote)",
    )
    gen.add_argument("--remote", default=None, help="Backend URL to generate through")
    gen.add_argument("--config", default=None, help="Path to app config (.yaml/.json)")
    gen.add_argument("--out", default=None, help="Write the chain as JSON to this path")
    gen.add_argument("--video", action="store_true", help="Animate the final horror image")

    srv = sub.add_parser("serve", help="Run the HTTP backend")
    srv.add_argument("--host", default=None)
    srv.add_argument("--port", type=int, default=None)
    srv.add_argument("--config", default=None, help="Path to app config (.yaml/.json)")

    chk = sub.add_parser("check", help="Verify the provider credential")
    chk.add_argument("--config", default=None, help="Path to app config (.yaml/.json)")

    return p


def main(argv: list[str] | None = None) -> None:
    """Main entry point for CLI."""
    args = build_arg_parser().parse_args(argv)

    if args.cmd == "generate":
        sys.exit(asyncio.run(generate_async(args)))
    elif args.cmd == "check":
        sys.exit(asyncio.run(check_async(args)))
    elif args.cmd == "serve":
        sys.exit(serve(args))


if __name__ == "__main__":
    main()
