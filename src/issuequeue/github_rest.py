from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import requests

from . import __version__
from .retry import RetryConfig, is_transient, run_with_retries

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = f"issuequeue/{__version__}"
HTTP_ERROR_STATUS = 400
# The search API never returns more than 1000 results per query
SEARCH_RESULT_CEILING = 1000
# Larger per_page values are silently truncated to this by the API
MAX_PER_PAGE = 100
_TRANSIENT_STATUSES = {429, 502, 503, 504}


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub REST API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
        retry_after: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text
        self.retry_after = retry_after

    @property
    def transient(self) -> bool:
        if self.status in _TRANSIENT_STATUSES:
            return True
        return self.status == 403 and is_transient(self.response_text or "")


@dataclass
class GitHubRestClient:
    """Lightweight REST client for the GitHub search and issues endpoints."""

    token: str | None = None
    base_url: str = DEFAULT_API_URL
    per_page: int = 100
    session: requests.Session | None = None
    retry: RetryConfig | None = None
    timeout: float = 30
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not 1 <= self.per_page <= MAX_PER_PAGE:
            raise ValueError(f"per_page must be between 1 and {MAX_PER_PAGE}, got {self.per_page}")
        self._session = self.session or requests.Session()
        if self.token:
            self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("X-GitHub-Api-Version", "2022-11-28")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- REST helpers -------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> Any:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )

        def _run() -> Any:
            response = self._session.request(
                method,
                url,
                params=params,
                headers=self._session.headers,
                timeout=self.timeout,
            )
            if response.status_code >= HTTP_ERROR_STATUS:
                headers = getattr(response, "headers", None) or {}
                raise GitHubAPIError(
                    f"GitHub API {method} {url} failed with {response.status_code}",
                    status=response.status_code,
                    response_text=response.text,
                    retry_after=headers.get("Retry-After"),
                )
            return response.json() if response.text else None

        return run_with_retries(_run, cfg=self.retry)

    def _paginate_search(
        self, path: str, *, params: dict[str, Any], max_items: int | None = None
    ) -> list[dict[str, Any]]:
        params = dict(params)
        per_page = min(int(params.get("per_page", self.per_page)), MAX_PER_PAGE)
        params["per_page"] = per_page
        params.setdefault("page", 1)
        limit = min(max_items, SEARCH_RESULT_CEILING) if max_items else SEARCH_RESULT_CEILING
        results: list[dict[str, Any]] = []
        while len(results) < limit:
            data = self._request("GET", path, params=params)
            if not isinstance(data, dict):
                break
            items = data.get("items")
            if not isinstance(items, list):
                break
            results.extend(item for item in items if isinstance(item, dict))
            total = data.get("total_count")
            if len(items) < per_page or (isinstance(total, int) and len(results) >= total):
                break
            params["page"] = int(params["page"]) + 1
        return results[:limit]

    # ---- Issue operations --------------------------------------------
    def search_issues(
        self,
        query: str,
        *,
        sort: str = "updated",
        order: str = "desc",
        max_items: int | None = None,
    ) -> list[dict[str, Any]]:
        params = {"q": query, "sort": sort, "order": order}
        return self._paginate_search("/search/issues", params=params, max_items=max_items)

    def get_issue(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        data = self._request("GET", f"/repos/{owner}/{repo}/issues/{number}")
        if not isinstance(data, dict):
            raise GitHubAPIError(f"Unexpected payload for {owner}/{repo}#{number}")
        return data


__all__ = [
    "DEFAULT_API_URL",
    "MAX_PER_PAGE",
    "GitHubAPIError",
    "GitHubRestClient",
]
