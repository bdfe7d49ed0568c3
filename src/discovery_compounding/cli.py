"""Command-line interface for the discovery compounding orchestrator.

Provides subcommands for running research cycles and querying package
information.  Each subcommand imports its dependencies lazily so that
``discovery-compounding info`` works even when a provider package is
missing.

Entry point
-----------
The ``main()`` function is registered as a console script in
``pyproject.toml``::

    [project.scripts]
    discovery-compounding = "discovery_compounding.cli:main"

Usage examples::

    discovery-compounding run --provider mock --cycles 3
    discovery-compounding run --topic "quantum sensing in medicine" --cycles 1
    discovery-compounding run --provider openai --model gpt-4o --cycles 0 --interval 60
    discovery-compounding info
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="discovery-compounding",
        description=(
            "Discovery Compounding Orchestrator -- run research cycles that "
            "turn topics into validated, connected discoveries."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        default=False,
        help="Show package version and exit.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. (default: WARNING)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Shortcut for --log-level INFO.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # -- run ---------------------------------------------------------------
    run_parser = subparsers.add_parser(
        "run",
        help="Run research cycles.",
        description="Run the orchestrator for a number of cycles or until interrupted.",
    )
    run_parser.add_argument(
        "--cycles",
        type=int,
        default=1,
        help="Number of cycles to run.  0 runs periodically until interrupted. (default: 1)",
    )
    run_parser.add_argument(
        "--topic",
        type=str,
        action="append",
        default=None,
        help="Directed topic to research first.  May be given more than once.",
    )
    run_parser.add_argument(
        "--provider",
        type=str,
        default=None,
        choices=["anthropic", "openai", "mock"],
        help="Reasoning provider.  'mock' runs fully offline. (default: from config)",
    )
    run_parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Provider model name. (default: from config)",
    )
    run_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between periodic cycles when --cycles is 0.",
    )
    run_parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file with orchestrator/validation/connections/reasoning sections.",
    )
    run_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write a JSON snapshot of the final state to this path.",
    )
    run_parser.add_argument(
        "--no-plan",
        action="store_true",
        default=False,
        help="Do not ask for seed or follow-up topics; only research directed topics.",
    )

    # -- info --------------------------------------------------------------
    subparsers.add_parser(
        "info",
        help="Show package information.",
        description="Show version, dependencies and the default specialist roster.",
    )

    return parser


# =========================================================================
# Subcommand handlers
# =========================================================================


def _load_sections(path: str | None) -> dict[str, Any]:
    if path is None:
        return {}
    from discovery_compounding.infrastructure.config import load_config_from_json

    return load_config_from_json(Path(path).read_text(encoding="utf-8"))


def _build_reasoner(reasoning_config: Any) -> Any:
    from discovery_compounding.infrastructure.reasoning import (
        ChatModelReasoner,
        create_chat_model,
    )
    from discovery_compounding.testing.mock_llm import demo_reasoner

    if reasoning_config.provider == "mock":
        return demo_reasoner()
    model = create_chat_model(reasoning_config)
    return ChatModelReasoner(model, timeout=reasoning_config.timeout)


async def _run_async(args: argparse.Namespace) -> int:
    from dataclasses import replace

    from discovery_compounding.infrastructure.config import (
        OrchestratorConfig,
        ReasoningConfig,
    )
    from discovery_compounding.presentation.console import ConsoleDashboard
    from discovery_compounding.services.orchestrator import DiscoveryOrchestrator

    sections = _load_sections(args.config)
    reasoning_config: ReasoningConfig = sections.get("reasoning") or ReasoningConfig()
    if args.provider is not None:
        reasoning_config = replace(reasoning_config, provider=args.provider)
    if args.model is not None:
        reasoning_config = replace(reasoning_config, model=args.model)

    orchestrator_config: OrchestratorConfig = sections.get("orchestrator") or OrchestratorConfig()
    if args.interval is not None:
        orchestrator_config = replace(orchestrator_config, cycle_interval=args.interval)

    orchestrator = DiscoveryOrchestrator(
        _build_reasoner(reasoning_config),
        config=orchestrator_config,
        validation_config=sections.get("validation"),
        connection_config=sections.get("connections"),
        auto_plan=not args.no_plan,
    )
    dashboard = ConsoleDashboard()

    for text in args.topic or []:
        result = orchestrator.submit_directed_topic(text)
        if not result.accepted:
            print(f"Error: {result.message}", file=sys.stderr)
            return 1

    print(f"Provider: {reasoning_config.provider} ({reasoning_config.model})")
    if args.cycles > 0:
        if not args.no_plan and not args.topic:
            await orchestrator.seed_topics()
        for _ in range(args.cycles):
            summary = await orchestrator.run_cycle()
            dashboard.print_cycle_summary(summary)
    else:
        await orchestrator.start()
        print(f"Running every {orchestrator_config.cycle_interval:.0f}s; Ctrl-C to stop.")
        try:
            while orchestrator.running:
                await asyncio.sleep(1.0)
        finally:
            await orchestrator.stop()

    print()
    dashboard.print_status(orchestrator.get_status())
    dashboard.print_discoveries(orchestrator.get_recent_discoveries())
    dashboard.print_threads(orchestrator.get_threads())

    if args.output is not None:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(orchestrator.snapshot(), indent=2, default=str), encoding="utf-8")
        print(f"\nSnapshot written to {out}")

    return 0


def _cmd_run(args: argparse.Namespace) -> int:
    """Handle the ``run`` subcommand."""
    return asyncio.run(_run_async(args))


def _cmd_info(args: argparse.Namespace) -> int:
    """Handle the ``info`` subcommand."""
    from discovery_compounding import __version__
    from discovery_compounding.services.specialists import DEFAULT_ROSTER

    print(f"Discovery Compounding Orchestrator v{__version__}")
    print()

    deps = {
        "langchain_core": "Prompt templates and chat model interface (required)",
        "langgraph": "Cycle graph (required)",
        "pydantic": "Structured response schemas (required)",
        "numpy": "Derived metrics (required)",
        "rich": "Console dashboard (required)",
        "langchain_anthropic": "Anthropic provider (optional)",
        "langchain_openai": "OpenAI provider (optional)",
    }

    print("Dependencies:")
    for pkg, desc in deps.items():
        try:
            mod = __import__(pkg)
        except ImportError:
            print(f"  [missing]   {pkg} -- {desc}")
            continue
        version = getattr(mod, "__version__", "unknown")
        print(f"  [installed] {pkg} {version} -- {desc}")

    print()
    print("Default Specialists:")
    for profile in DEFAULT_ROSTER:
        print(f"  {profile.specialist_id} -- {profile.name}: {profile.focus}")

    return 0


# =========================================================================
# Main entry point
# =========================================================================


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from discovery_compounding import __version__
        print(f"discovery-compounding {__version__}")
        sys.exit(0)

    logging.basicConfig(
        level="INFO" if args.verbose else args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    handlers: dict[str, Any] = {
        "run": _cmd_run,
        "info": _cmd_info,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        exit_code = handler(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 130
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)
