"""
GitHub API Constants

This module contains constants and the operation table for the GitHub REST API client.
"""

from typing import Dict, Final, Tuple

VERSION: Final[str] = "0.1.0"

# API Configuration
API_BASE_URL: Final[str] = "https://api.github.com"
API_VERSION: Final[str] = "2022-11-28"
DEFAULT_TIMEOUT: Final[int] = 30

# HTTP Methods
HTTP_GET: Final[str] = "GET"
HTTP_POST: Final[str] = "POST"
HTTP_PUT: Final[str] = "PUT"
HTTP_DELETE: Final[str] = "DELETE"
HTTP_PATCH: Final[str] = "PATCH"

# Content Types
CONTENT_TYPE_JSON: Final[str] = "application/vnd.github+json"

# Authentication
AUTH_HEADER: Final[str] = "Authorization"
AUTH_TYPE_TOKEN: Final[str] = "token"

# Rate limit headers
HEADER_RATELIMIT_REMAINING: Final[str] = "x-ratelimit-remaining"
HEADER_RATELIMIT_RESET: Final[str] = "x-ratelimit-reset"
HEADER_RETRY_AFTER: Final[str] = "retry-after"

# Error codes, exposed as `GithubError.code`
ERROR_CODE_INVALID_REQUEST: Final[int] = 400
ERROR_CODE_INVALID_TOKEN: Final[int] = 401
ERROR_CODE_FORBIDDEN: Final[int] = 403
ERROR_CODE_RESOURCE_NOT_FOUND: Final[int] = 404
ERROR_CODE_RATE_LIMIT_EXCEEDED: Final[int] = 429
ERROR_CODE_SERVICE_UNAVAILABLE: Final[int] = 503

# Operation id of quota status call
OPERATION_GET_RATE_LIMIT: Final[str] = "misc.getRateLimit"

ENDPOINTS: Final[Dict[str, Tuple[str, str]]] = {
    OPERATION_GET_RATE_LIMIT: (HTTP_GET, "/rate_limit"),
    "meta.get": (HTTP_GET, "/meta"),
    # Users
    "users.getAuthenticated": (HTTP_GET, "/user"),
    "users.getByUsername": (HTTP_GET, "/users/{username}"),
    "users.listFollowersForUser": (HTTP_GET, "/users/{username}/followers"),
    # Orgs
    "orgs.get": (HTTP_GET, "/orgs/{org}"),
    "orgs.listMembers": (HTTP_GET, "/orgs/{org}/members"),
    # Repos
    "repos.get": (HTTP_GET, "/repos/{owner}/{repo}"),
    "repos.listForOrg": (HTTP_GET, "/orgs/{org}/repos"),
    "repos.listForUser": (HTTP_GET, "/users/{username}/repos"),
    "repos.listContributors": (HTTP_GET, "/repos/{owner}/{repo}/contributors"),
    "repos.listCommits": (HTTP_GET, "/repos/{owner}/{repo}/commits"),
    "repos.getCommit": (HTTP_GET, "/repos/{owner}/{repo}/commits/{ref}"),
    "repos.getContent": (HTTP_GET, "/repos/{owner}/{repo}/contents/{path}"),
    "repos.listTags": (HTTP_GET, "/repos/{owner}/{repo}/tags"),
    "repos.listReleases": (HTTP_GET, "/repos/{owner}/{repo}/releases"),
    # Issues & pulls
    "issues.listForRepo": (HTTP_GET, "/repos/{owner}/{repo}/issues"),
    "issues.get": (HTTP_GET, "/repos/{owner}/{repo}/issues/{issue_number}"),
    "issues.create": (HTTP_POST, "/repos/{owner}/{repo}/issues"),
    "issues.update": (HTTP_PATCH, "/repos/{owner}/{repo}/issues/{issue_number}"),
    "issues.createComment": (HTTP_POST, "/repos/{owner}/{repo}/issues/{issue_number}/comments"),
    "pulls.list": (HTTP_GET, "/repos/{owner}/{repo}/pulls"),
    "pulls.get": (HTTP_GET, "/repos/{owner}/{repo}/pulls/{pull_number}"),
    # Search
    "search.repos": (HTTP_GET, "/search/repositories"),
    "search.users": (HTTP_GET, "/search/users"),
    "search.code": (HTTP_GET, "/search/code"),
    "search.issuesAndPullRequests": (HTTP_GET, "/search/issues"),
    # Activity
    "activity.listStargazersForRepo": (HTTP_GET, "/repos/{owner}/{repo}/stargazers"),
    "activity.starRepoForAuthenticatedUser": (HTTP_PUT, "/user/starred/{owner}/{repo}"),
    "activity.unstarRepoForAuthenticatedUser": (HTTP_DELETE, "/user/starred/{owner}/{repo}"),
}
"""Operation id -> (HTTP method, path template)"""
