"""
CLI entry point.

Commands:
- init: Create the data directory and database schema
- health: Check the embedding provider
- tools: List available operations
- call <tool> '<json args>': Run one operation, print the JSON result
- cleanup <days> [project_id]: Delete memories older than <days>

Flags:
- --debug: Enable debug logging to file
"""

import asyncio
import json
import logging
import sys

from memoria.core.config import Settings, get_settings
from memoria.core.logging import get_logger, setup_logging
from memoria.memory.engine import MemoryEngine
from memoria.tools.base import ToolCall
from memoria.tools.builtin import register_all_builtin_tools, set_memory_engine
from memoria.tools.executor import ToolExecutor
from memoria.tools.registry import get_global_registry

USAGE = """Usage: memoria [--debug] <command>
Commands:
  init                          Create data directory and database
  health                        Check embedding provider
  tools                         List available operations
  call <tool> '<json args>'     Run one operation
  cleanup <days> [project_id]   Delete memories older than <days>
Flags: --debug (enable debug logging to data/memoria.log)"""


def main() -> int:
    """Main entry point."""
    settings = get_settings()

    # Parse --debug flag (enables verbose DEBUG traces)
    debug_mode = "--debug" in sys.argv
    if debug_mode:
        sys.argv.remove("--debug")

    log_level = logging.DEBUG if debug_mode else logging.INFO
    log_file = settings.data_dir / "memoria.log"
    setup_logging(level=log_level, log_file=log_file)
    logger = get_logger("cli")
    logger.debug(f"Logging to {log_file}" + (" (debug mode)" if debug_mode else ""))

    if len(sys.argv) < 2:
        print(USAGE)
        return 1

    command, args = sys.argv[1], sys.argv[2:]

    if command == "init":
        return asyncio.run(_init(settings))

    if command == "health":
        return asyncio.run(_health_check(settings))

    if command == "tools":
        register_all_builtin_tools()
        print(get_global_registry().get_context_string())
        return 0

    if command == "call":
        if not args:
            print("Usage: memoria call <tool> '<json args>'")
            return 1
        try:
            arguments = json.loads(args[1]) if len(args) > 1 else {}
        except json.JSONDecodeError as e:
            print(f"Invalid JSON arguments: {e}")
            return 1
        return asyncio.run(_call(settings, args[0], arguments))

    if command == "cleanup":
        if not args:
            print("Usage: memoria cleanup <days> [project_id]")
            return 1
        try:
            days = int(args[0])
        except ValueError:
            print(f"Days must be an integer, got: {args[0]}")
            return 1
        arguments = {"older_than_days": days}
        if len(args) > 1:
            arguments["project_id"] = args[1]
        return asyncio.run(_call(settings, "cleanup_old_memories", arguments))

    print(f"Unknown command: {command}")
    return 1


async def _init(settings: Settings) -> int:
    """Create the data directory and schema."""
    engine = MemoryEngine.create(settings)
    await engine.connect()
    await engine.close()
    print(f"Initialized: {settings.db_path}")
    return 0


async def _health_check(settings: Settings) -> int:
    """Check embedding provider health."""
    engine = MemoryEngine.create(settings)
    provider = engine.embedder
    print(f"Checking embedding provider {provider.provider_name}...")
    try:
        healthy = await provider.health_check()
    finally:
        await engine.close()
    if not healthy:
        print("  unavailable")
        return 1
    print(f"  OK ({provider.dimensions} dimensions)")
    return 0


async def _call(settings: Settings, tool_name: str, arguments: dict) -> int:
    """Run one tool against a connected engine and print its result."""
    engine = MemoryEngine.create(settings)
    await engine.connect()
    register_all_builtin_tools()
    set_memory_engine(engine)
    executor = ToolExecutor(get_global_registry())
    try:
        result = await executor.execute(ToolCall(tool_name=tool_name, arguments=arguments))
    finally:
        set_memory_engine(None)
        await engine.close()
    print(executor.format_result(result))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
