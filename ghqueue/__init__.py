"""
ghqueue: rate-limit-aware request queueing for the GitHub API.

Example:
    >>> from ghqueue import GithubToolkit
    >>>
    >>> async with GithubToolkit(auth={"token": "ghp_..."}, showProgressBar=False) as toolkit:
    ...     repo = await toolkit.request("repos.get", {"owner": "python", "repo": "cpython"})
"""

from .github.constants import VERSION as __version__
from .toolkit import GithubToolkit, resolveOperation

__all__ = [
    "GithubToolkit",
    "resolveOperation",
    "__version__",
]
