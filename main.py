"""
ghqueue - run GitHub API operations through rate-limit-aware request queues.

Usage:
    python main.py -c config.toml repos.get '{"owner": "python", "repo": "cpython"}' users.getAuthenticated
    python main.py -c config.toml --rate-limits
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

from ghqueue import GithubToolkit
from ghqueue.config import ConfigManager
from ghqueue.logging_utils import initLogging
from ghqueue.utils import jsonDumps

# Configure basic logging first
logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=logging.INFO)
# set higher logging level for httpx to avoid all GET and POST requests being logged
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

Operation = Tuple[str, Optional[Dict[str, Any]]]


def parseArguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Run GitHub API operations through rate-limit-aware queues, dood!"
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.toml",
        help="Path to configuration file (default: config.toml)",
    )
    parser.add_argument(
        "--config-dir",
        action="append",
        help="Directory to search for .toml config files recursively (can be specified multiple times), dood!",
    )
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Pretty-print loaded configuration and exit, dood!",
    )
    parser.add_argument(
        "--rate-limits",
        action="store_true",
        help="Print exhausted quotas (operation -> reset time)",
    )
    parser.add_argument(
        "operations",
        nargs="*",
        metavar="OPERATION [PARAMS_JSON]",
        help="Operation id (e.g. repos.get), optionally followed by JSON object with its params",
    )
    args = parser.parse_args(argv)
    args.config = os.path.abspath(args.config)
    if args.config_dir:
        args.config_dir = [os.path.abspath(dirPath) for dirPath in args.config_dir]

    try:
        args.operations = parseOperations(args.operations)
    except ValueError as e:
        parser.error(str(e))

    return args


def parseOperations(items: List[str]) -> List[Operation]:
    """
    Split positional arguments into (operationId, params) pairs.

    Argument starting with "{" is params of the preceding operation.

    Example:
        >>> parseOperations(["repos.get", '{"owner": "o", "repo": "r"}', "meta.get"])
        [('repos.get', {'owner': 'o', 'repo': 'r'}), ('meta.get', None)]
    """
    operations: List[Operation] = []
    for item in items:
        if not item.lstrip().startswith("{"):
            operations.append((item, None))
            continue

        if not operations or operations[-1][1] is not None:
            raise ValueError(f"Params {item} are not preceded by an operation id")
        try:
            params = json.loads(item)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid params JSON {item}: {e}") from e
        if not isinstance(params, dict):
            raise ValueError(f"Params must be a JSON object, got {item}")
        operations[-1] = (operations[-1][0], params)

    return operations


def prettyPrintConfig(configManager: ConfigManager) -> None:
    """Pretty-print the loaded configuration with the token masked, dood!"""
    config = dict(configManager.config)
    if "token" in config.get("github", {}):
        config["github"] = {**config["github"], "token": "***"}

    print("=== ghqueue Configuration ===")
    print()
    print(jsonDumps(config, indent=2))
    print()
    print("=== Configuration loaded successfully, dood! ===")


async def runOperations(toolkit: GithubToolkit, operations: List[Operation]) -> bool:
    """
    Run all operations concurrently and print one JSON line per result.

    Returns:
        True if every operation succeeded
    """
    results = await asyncio.gather(
        *[toolkit.request(operationId, params) for operationId, params in operations],
        return_exceptions=True,
    )

    success = True
    for (operationId, params), result in zip(operations, results):
        output: Dict[str, Any] = {"operation": operationId, "params": params}
        if isinstance(result, BaseException):
            success = False
            output["error"] = f"{type(result).__name__}: {result}"
        else:
            output["result"] = result
        print(jsonDumps(output))

    return success


async def run(configManager: ConfigManager, args: argparse.Namespace) -> bool:
    async with GithubToolkit.fromConfig(configManager) as toolkit:
        success = await runOperations(toolkit, args.operations)

        if args.rate_limits:
            await toolkit.ready.wait()
            print(jsonDumps({"rateLimits": toolkit.rateLimits}))

    return success


def main():
    """Main entry point."""
    args = parseArguments()

    try:
        configManager = ConfigManager(configPath=args.config, configDirs=args.config_dir)
        if args.print_config:
            prettyPrintConfig(configManager)
            sys.exit(0)

        if not args.operations and not args.rate_limits:
            logger.error("Nothing to do: pass operations or --rate-limits")
            sys.exit(2)

        initLogging(configManager.getLoggingConfig())
        if not asyncio.run(run(configManager, args)):
            sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except Exception as e:
        logger.error(f"ghqueue crashed: {e}")
        logger.exception(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
