# src/tiercache/cli.py
"""
Command-line maintenance for tiercache disk folders.

Commands operate on the disk tier of one cache folder; the memory tier only
exists inside a running process.

- ``info``: show the resolved policy and folder
- ``list``: list cached keys, oldest file first
- ``trim``: apply the folder's count limit (keeps the oldest files)
- ``clear``: delete every file in the folder

Usage::

    tiercache --folder tiercache_image info
    tiercache --config app.toml --json list
    tiercache --folder thumbs --limit 50 trim
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, List, Optional

from .config import CachePolicy, load_cache_config
from .exceptions import ConfigError, DiskCacheError
from .logging_config import configure_logging
from .tiers.disk import SerializedDiskStore

logger = logging.getLogger(__name__)


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

class OutputFormatter:
    """Formats CLI output as colored text or JSON."""

    def __init__(self, use_color: bool = True, json_output: bool = False):
        self.use_color = use_color and sys.stdout.isatty()
        self.json_output = json_output

    def _color(self, text: str, color: str) -> str:
        if not self.use_color:
            return text
        colors = {
            'green': '\033[92m',
            'red': '\033[91m',
            'yellow': '\033[93m',
            'bold': '\033[1m',
            'reset': '\033[0m'
        }
        return f"{colors.get(color, '')}{text}{colors['reset']}"

    def success(self, text: str) -> str:
        return self._color(f"✓ {text}", 'green')

    def error(self, text: str) -> str:
        return self._color(f"✗ {text}", 'red')

    def warning(self, text: str) -> str:
        return self._color(f"⚠ {text}", 'yellow')

    def header(self, text: str) -> str:
        return self._color(text, 'bold')

    def emit(self, payload: Any, text: str) -> None:
        """Print ``payload`` as JSON in JSON mode, else ``text``."""
        if self.json_output:
            print(json.dumps(payload, indent=2, default=str))
        else:
            print(text)


# =============================================================================
# CLI COMMANDS
# =============================================================================

def cmd_info(store: SerializedDiskStore, formatter: OutputFormatter) -> int:
    """Show the disk policy and resolved folder."""
    policy = store.policy
    payload = {**policy.model_dump(), "directory": str(store.directory)}
    lines = [formatter.header("Disk Cache"), "=" * 45]
    lines += [f"  {key}: {value}" for key, value in payload.items()]
    formatter.emit(payload, "\n".join(lines))
    return 0


def cmd_list(store: SerializedDiskStore, formatter: OutputFormatter) -> int:
    """List keys on disk, oldest first."""
    keys = asyncio.run(store.keys())
    if formatter.json_output:
        formatter.emit(keys, "")
    elif not keys:
        print(formatter.warning(f"No entries in {store.directory}"))
    else:
        print("\n".join(keys))
    return 0


def cmd_trim(store: SerializedDiskStore, formatter: OutputFormatter) -> int:
    """Apply the count limit; a limit of 0 leaves the folder untouched."""
    if store.count_limit <= 0:
        formatter.emit({"removed": 0}, formatter.warning("Count limit is 0 (unlimited); nothing to trim"))
        return 0

    async def _trim() -> int:
        return await store.enforce_count_limit(store.count_limit)

    try:
        removed = asyncio.run(_trim())
    except (DiskCacheError, ConfigError) as e:
        print(formatter.error(f"Trim failed: {e}"))
        return 1
    formatter.emit({"removed": removed}, formatter.success(f"Removed {removed} files"))
    return 0


def cmd_clear(store: SerializedDiskStore, formatter: OutputFormatter) -> int:
    """Delete every file in the folder."""
    ok = asyncio.run(store.delete_all())
    if not ok:
        print(formatter.error(f"Could not clear {store.directory}"))
        return 1
    formatter.emit({"cleared": True}, formatter.success(f"Cleared {store.directory}"))
    return 0


COMMANDS = {
    "info": cmd_info,
    "list": cmd_list,
    "trim": cmd_trim,
    "clear": cmd_clear,
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _build_policy(parsed: argparse.Namespace) -> CachePolicy:
    """Combine the config file with command-line overrides."""
    policy = load_cache_config(config_path=parsed.config) if parsed.config else CachePolicy()
    disk = policy.disk.model_dump()
    if parsed.folder:
        disk["cache_folder_name"] = parsed.folder
    if parsed.root:
        disk["cache_root"] = parsed.root
    if parsed.limit is not None:
        disk["count_limit"] = parsed.limit
    return load_cache_config(config_dict={**policy.model_dump(), "disk": disk})


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the tiercache CLI."""
    parser = argparse.ArgumentParser(
        prog="tiercache",
        description="tiercache disk folder maintenance"
    )
    parser.add_argument("--config", "-c", help="TOML file with a [tiercache] section", default=None)
    parser.add_argument("--folder", "-f", help="Cache folder name", default=None)
    parser.add_argument("--root", help="Cache root directory", default=None)
    parser.add_argument("--limit", type=int, help="Override the disk count limit", default=None)
    parser.add_argument("--json", help="Output in JSON format", action="store_true")
    parser.add_argument("--no-color", help="Disable colored output", action="store_true")
    parser.add_argument("--verbose", "-v", help="Log to the console", action="store_true")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser("info", help="Show the resolved disk policy")
    subparsers.add_parser("list", help="List cached keys, oldest first")
    subparsers.add_parser("trim", help="Apply the disk count limit")
    subparsers.add_parser("clear", help="Delete every cached file")
    return parser


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the tiercache CLI.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.verbose:
        configure_logging(
            app_name="tiercache",
            config={"console_enabled": True, "console_level": "DEBUG",
                    "components": {"tiercache": "DEBUG"}},
            force_reconfigure=True,
        )

    formatter = OutputFormatter(use_color=not parsed.no_color, json_output=parsed.json)

    command = COMMANDS.get(parsed.command)
    if command is None:
        parser.print_help()
        return 0

    try:
        policy = _build_policy(parsed)
    except (ConfigError, FileNotFoundError) as e:
        print(formatter.error(str(e)))
        return 1

    logger.debug("Running '%s' on folder %s", parsed.command, policy.disk.cache_folder_name)
    return command(SerializedDiskStore(policy.disk), formatter)


if __name__ == "__main__":
    sys.exit(main())
