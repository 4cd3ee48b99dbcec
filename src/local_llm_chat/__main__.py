"""CLI entrypoint for Local LLM Chat."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from importlib import metadata
from pathlib import Path

from .commands import CommandDispatcher
from .config import SettingsProvider, ensure_config_dir, load_config
from .controller import ConversationController
from .logging_utils import configure_logging
from .repl import ReplHost


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="local-llm-chat",
        description="Local LLM Chat - talk to Ollama or OpenAI-compatible models",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a config.toml file",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Working directory for /read, /list and /search",
    )
    return parser


def build_controller(
    config_path: Path | None = None, root: Path | None = None
) -> ConversationController:
    """Load configuration and wire the engine components together."""
    config = load_config(config_path)
    configure_logging(config.logging.model_dump())
    settings = SettingsProvider(config.llm)
    dispatcher = CommandDispatcher(root or config.workspace.root_path, settings)
    return ConversationController(settings, dispatcher)


def main(argv: Sequence[str] | None = None) -> None:
    """Handle CLI flags and run the interactive chat loop."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("local-llm-chat")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"local-llm-chat {version}")
        return

    if args.config is None:
        ensure_config_dir()
    controller = build_controller(args.config, args.root)
    try:
        asyncio.run(ReplHost(controller).run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
