"""CLI entry point for ralph."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass

import typer

from ralph.config import RalphConfig
from ralph.engine.events import EventType, SessionEvent
from ralph.errors import BridgeError, ConfigError, LoopFatalError
from ralph.loop.orchestrator import RunResult, SessionOrchestrator
from ralph.loop.processor import TurnEventProcessor
from ralph.loop.prompt import GOAL_PLACEHOLDER, SKILLS_PLACEHOLDER, TextDocument
from ralph.state import StateStore
from ralph.tool.registry import ToolRegistry

app = typer.Typer(
    name="ralph",
    help="Drive a reasoning engine in fresh, bounded turns until the goal is met.",
    no_args_is_help=True,
)

EXIT_SUCCEEDED = 0
EXIT_EXHAUSTED = 1
EXIT_FATAL = 2

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_config(
    config_file: str | None,
    model: str | None = None,
    max_iterations: int | None = None,
    root: str | None = None,
) -> RalphConfig:
    try:
        config = RalphConfig.load(config_file)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_FATAL)

    if model:
        config.llm.model = model
    if max_iterations:
        config.loop.max_iterations = max_iterations
    if root:
        config.paths.root = root
    return config


@dataclass
class ToolSetup:
    registry: ToolRegistry
    remote_tools: list[str]


async def build_tools(
    config: RalphConfig, state: StateStore, stack: AsyncExitStack
) -> ToolSetup:
    """Static tools first, then whatever the tool-provider servers advertise.

    The API client and every server session are entered on ``stack`` and
    live until it closes.
    """
    from ralph.api import ApiClient
    from ralph.bridge import connect_servers
    from ralph.tool.base import ToolContext
    from ralph.tool.builtin import build_static_tools

    api = None
    if "api" in config.toolsets:
        api = await stack.enter_async_context(
            ApiClient(config.api.base_url, state, timeout=config.api.timeout)
        )

    ctx = ToolContext(
        state=state,
        api=api,
        workspace=str(config.paths.resolve("workspace")),
        verification=config.verification,
    )
    registry = ToolRegistry()
    registry.register_many(build_static_tools(ctx, config.toolsets))

    remote = await connect_servers(config.mcp_servers, registry, stack)
    return ToolSetup(registry=registry, remote_tools=remote)


def _echo_event(event: SessionEvent) -> None:
    d = event.data
    if event.type is EventType.ASSISTANT_MESSAGE:
        typer.echo(f"[AI]: {d.get('content', '')}")
    elif event.type is EventType.TOOL_EXECUTION_START:
        typer.echo(f"[Tool]: Executing {d.get('tool_name', '?')}...")
        if d.get("arguments"):
            typer.echo(f"[Tool Args]: {d['arguments']}")
    elif event.type is EventType.TOOL_EXECUTION_COMPLETE:
        content = d.get("result", "")
        first_line = content.split("\n")[0][:200] if content else ""
        status = "ERROR" if d.get("is_error") else "OK"
        typer.echo(f"[Tool Result]: {status} {first_line}")
    elif event.type is EventType.SESSION_ERROR:
        typer.echo(f"[Error]: {d.get('message', '')}", err=True)


def _echo_iteration(iteration: int, max_iterations: int) -> None:
    typer.echo(f"\n--- [Ralph] Iteration {iteration}/{max_iterations} ---")


async def _run_loop(config: RalphConfig) -> RunResult:
    from ralph.engine import EngineClient, create_provider

    state = StateStore.load(config.paths.resolve("memory"))

    async with AsyncExitStack() as stack:
        setup = await build_tools(config, state, stack)
        if setup.remote_tools:
            typer.echo(f"[Ralph] Remote tools: {', '.join(setup.remote_tools)}")
        typer.echo(f"[Ralph] Tools: {', '.join(setup.registry.names())}")

        provider = create_provider(
            model=config.llm.model,
            temperature=config.llm.temperature,
            max_tokens=config.llm.max_tokens,
            reasoning_effort=config.llm.reasoning_effort,
        )
        orchestrator = SessionOrchestrator(
            EngineClient(provider),
            TurnEventProcessor(config.loop.sentinel, observer=_echo_event),
            max_steps_per_turn=config.loop.max_steps_per_turn,
            max_consecutive_failures=config.loop.max_consecutive_failures,
            on_iteration=_echo_iteration,
        )
        return await orchestrator.run(
            goal=TextDocument(config.paths.resolve("goal"), GOAL_PLACEHOLDER),
            skills=TextDocument(config.paths.resolve("skills"), SKILLS_PLACEHOLDER),
            state=state,
            tools=setup.registry,
            max_iterations=config.loop.max_iterations,
        )


@app.command()
def run(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path (JSON or YAML)."
    ),
    model: str | None = typer.Option(
        None, "--model", "-m", help="Engine model to use (default: from env/config)."
    ),
    max_iterations: int | None = typer.Option(
        None, "--max-iterations", "-n", min=1, help="Iteration budget."
    ),
    root: str | None = typer.Option(
        None, "--root", "-r", help="Project root holding memory.json, goal.md, skills.md."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
) -> None:
    """Run the loop until the goal is met or the budget is spent."""
    setup_logging(verbose)
    config = _load_config(config_file, model, max_iterations, root)

    typer.echo(f"[Ralph] Starting... Root: {config.paths.resolve('root')}")
    typer.echo(f"[Ralph] Model: {config.llm.model}")
    typer.echo(f"[Ralph] Max iterations: {config.loop.max_iterations}")

    try:
        result = asyncio.run(_run_loop(config))
    except (BridgeError, LoopFatalError) as e:
        logger.error("Run failed: %s", e, exc_info=verbose)
        typer.echo(f"[Ralph] Fatal: {e}", err=True)
        raise typer.Exit(EXIT_FATAL)

    if result.succeeded:
        typer.echo(f"[Ralph] Mission Accomplished after {result.iterations} iteration(s).")
        raise typer.Exit(EXIT_SUCCEEDED)
    typer.echo("[Ralph] Max iterations reached.")
    raise typer.Exit(EXIT_EXHAUSTED)


@app.command()
def tools(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path (JSON or YAML)."
    ),
    root: str | None = typer.Option(None, "--root", "-r", help="Project root."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """List every tool the engine would see, including remote ones."""
    setup_logging(verbose)
    config = _load_config(config_file, root=root)

    async def _list() -> list[tuple[str, str]]:
        state = StateStore.load(config.paths.resolve("memory"))
        async with AsyncExitStack() as stack:
            setup = await build_tools(config, state, stack)
            return [(t.name, t.description) for t in setup.registry]

    try:
        listing = asyncio.run(_list())
    except BridgeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_FATAL)

    for name, description in listing:
        typer.echo(f"{name}: {description}")


@app.command("state")
def show_state(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path (JSON or YAML)."
    ),
    root: str | None = typer.Option(None, "--root", "-r", help="Project root."),
) -> None:
    """Print the durable state record."""
    config = _load_config(config_file, root=root)
    typer.echo(StateStore.load(config.paths.resolve("memory")).snapshot())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
