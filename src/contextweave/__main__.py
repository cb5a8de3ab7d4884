"""Command-line entry point for contextweave."""

import argparse
import asyncio
import logging
import sys
from typing import Optional

import yaml

from .config import Config
from .context import ContextError, ContextManager
from .logging import setup_logging

logger = logging.getLogger(__name__)

TIER_GETTERS = {
    "global": ContextManager.get_global_memory,
    "extension": ContextManager.get_extension_memory,
    "project": ContextManager.get_environment_memory,
    "all": ContextManager.get_memory,
}


async def run(config: Config, args: argparse.Namespace) -> str:
    """Build memory for the configured workspace and render the requested view.

    Returns:
        Text to print on stdout.
    """
    mcp_manager = None
    if config.mcp.servers:
        from .tools.mcp_manager import MCPManager
        mcp_manager = MCPManager()
        await mcp_manager.start(config.mcp.servers)
        config.set_mcp_client_manager(mcp_manager)

    try:
        manager = ContextManager(config)
        await manager.refresh()

        if args.command == "show":
            return TIER_GETTERS[args.tier](manager)
        if args.command == "paths":
            return "\n".join(sorted(manager.get_loaded_paths()))
        if args.command == "discover":
            roots = args.root or config.get_workspace_directories()
            return await manager.discover_context(args.path, roots)

        status = manager.get_status()
        return "\n".join(f"{key + ':':<17}{value}" for key, value in status.items())
    finally:
        if mcp_manager is not None:
            await mcp_manager.shutdown()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contextweave",
        description="Compose hierarchical instruction memory for a coding agent",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    show_parser = subparsers.add_parser("show", help="Print the composed memory")
    show_parser.add_argument(
        "--tier",
        choices=sorted(TIER_GETTERS),
        default="all",
        help="Print a single tier instead of the full payload",
    )
    subparsers.add_parser("paths", help="List every memory file loaded")
    subparsers.add_parser("status", help="Show tier sizes and file count")
    discover_parser = subparsers.add_parser(
        "discover", help="Print just-in-time context for a path"
    )
    discover_parser.add_argument("path", help="File or directory the agent accessed")
    discover_parser.add_argument(
        "--root",
        action="append",
        help="Trusted root bounding the upward search (repeatable, "
        "defaults to the workspace directories)",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = Config.load(args.config)
    except (OSError, yaml.YAMLError, TypeError) as e:
        print(f"Error: could not load config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.debug:
        config.debug = True
        config.logging.level = "DEBUG"

    setup_logging(
        config,
        console_level=config.logging.level,
        debug_to_file=config.logging.debug_to_file,
        use_colors=config.logging.use_colors,
    )

    try:
        output = asyncio.run(run(config, args))
    except (ContextError, OSError) as e:
        logger.debug("Memory loading failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)

    if output:
        print(output)


if __name__ == "__main__":
    main()
