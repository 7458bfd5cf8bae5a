"""
Common utilities for ghqueue.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def jsonDumps(data: Any, compact: Optional[bool] = None, **kwargs) -> str:
    """
    Dump data to JSON string with stable key order.

    Compact separators are used unless `indent` is passed. Values which
    aren't JSON-serializable are dumped as str().
    """
    dumpKwargs = {
        "ensure_ascii": False,
        "default": str,
        "sort_keys": True,
    }

    if compact is None:
        # If indent is passed, then user want pretty-printed JSON,
        #  no need to use compact separators
        compact = "indent" not in kwargs

    if compact:
        dumpKwargs["separators"] = (",", ":")
    dumpKwargs.update(kwargs)
    return json.dumps(data, **dumpKwargs)


def describeOperation(operationId: str, params: Optional[Dict[str, Any]] = None) -> str:
    """
    Build display name for a queued operation.

    Example:
        >>> describeOperation("repos.get", {"owner": "python", "repo": "cpython"})
        'repos.get {"owner":"python","repo":"cpython"}'
    """
    if not params:
        return operationId
    return f"{operationId} {jsonDumps(params)}"


def loadDotEnv(path: str = ".env", populateEnv: bool = True) -> Dict[str, str]:
    """
    Simple dotenv file loader.
    Just read file line by line and put key-value pairs into dictionary.
    Empty lines and comments are skipped, missing file gives empty dict.

    Args:
        path: Path to .env file (default ".env")
        populateEnv: Whether to populate environment variables (default True)

    Returns:
        Dictionary of key-value pairs from .env file
    """
    ret: Dict[str, str] = {}
    if not os.path.isfile(path):
        logger.debug(f"No dotenv file at {path}")
        return ret

    with open(path, "rt", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            splittedLine = line.split("=", 1)
            if len(splittedLine) == 2:
                key, value = splittedLine
                ret[key.strip()] = value.strip().strip('"')

    if populateEnv:
        for k, v in ret.items():
            os.environ.setdefault(k, v)
    logger.debug(f"Loaded {len(ret)} variables from {path}")
    return ret
