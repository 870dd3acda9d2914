"""GitHub REST API client used by the repository collector."""

from __future__ import annotations

import dataclasses
import os
import typing as typ

import httpx

from gitwhat import get_version
from gitwhat.logging import get_logger, log_debug

from .errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
    SafetyLimitExceededError,
)

logger = get_logger(__name__)

PAGE_SIZE = 100

_HTTP_ERROR_STATUS_THRESHOLD = 400
# Statistics endpoints answer 202 while GitHub computes the data.
_PENDING_STATUSES = frozenset({202, 204})


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubClientConfig:
    """Configuration for the GitHub REST API client."""

    token: str
    base_url: str = "https://api.github.com"
    timeout_s: float = 20.0
    user_agent: str = dataclasses.field(
        default_factory=lambda: f"git-what/{get_version()}"
    )

    @classmethod
    def from_env(cls, *, base_url: str | None = None) -> GitHubClientConfig:
        """Build configuration using the ``GITHUB_AUTH_TOKEN`` env var.

        ``GITWHAT_GITHUB_BASE_URL`` overrides the API root for GitHub
        Enterprise installations unless ``base_url`` is passed explicitly.
        """
        token = os.environ.get("GITHUB_AUTH_TOKEN", "").strip()
        if not token:
            raise GitHubConfigError.missing_token()
        resolved = (
            base_url
            or os.environ.get("GITWHAT_GITHUB_BASE_URL", "").strip()
            or "https://api.github.com"
        )
        return cls(token=token, base_url=resolved)


class GitHubRestClient:
    """Authenticated JSON access to the GitHub REST API.

    The client owns a single :class:`httpx.AsyncClient` for its lifetime
    unless one is injected, in which case closing it is the caller's job.
    Authentication headers and redirect following are applied per request,
    so injected clients behave like owned ones.
    """

    def __init__(
        self,
        config: GitHubClientConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        if not config.token.strip():
            raise GitHubConfigError.empty_token()

        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._owns_client = http_client is None
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "User-Agent": config.user_agent,
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> GitHubRestClient:
        """Return the client for use in ``async with`` blocks."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close owned HTTP resources on exit."""
        await self.aclose()

    async def get_json(
        self, path: str, params: dict[str, typ.Any] | None = None
    ) -> object | None:
        """Return the decoded JSON body for ``path``.

        Returns ``None`` when GitHub answers with a pending status (``202``
        or ``204``).
        """
        response = await self._get(path, params)
        if response.status_code in _PENDING_STATUSES:
            return None
        return _decode(response, path)

    async def iter_pages(
        self,
        path: str,
        *,
        max_pages: int,
        params: dict[str, typ.Any] | None = None,
    ) -> typ.AsyncGenerator[list[dict[str, typ.Any]], None]:
        """Yield each page of a list endpoint in order.

        Pages are requested with ``per_page=100`` until the response carries
        no ``next`` link or an empty page is returned. Requesting more than
        ``max_pages`` pages raises :class:`SafetyLimitExceededError`.
        Consumers may stop iterating early.
        """
        page = 1
        while True:
            if page > max_pages:
                raise SafetyLimitExceededError(path, max_pages)
            query = {**(params or {}), "per_page": PAGE_SIZE, "page": page}
            log_debug(
                logger,
                "Fetching %s, count per page = %d, page number = %d",
                path,
                PAGE_SIZE,
                page,
            )
            response = await self._get(path, query)
            items = _list_items(_decode(response, path), path)
            yield items
            if not items or "next" not in response.links:
                return
            page += 1

    async def _get(
        self, path: str, params: dict[str, typ.Any] | None
    ) -> httpx.Response:
        try:
            response = await self._client.get(
                f"{self._base_url}{path}",
                params=params,
                headers=self._headers,
                follow_redirects=True,
            )
        except httpx.HTTPError as exc:
            raise GitHubAPIError.transport_error(path, exc) from exc
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GitHubAPIError.http_error(response.status_code, path)
        return response


def _decode(response: httpx.Response, path: str) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise GitHubResponseShapeError.missing(f"{path} JSON body") from exc


def _list_items(payload: object, path: str) -> list[dict[str, typ.Any]]:
    if not isinstance(payload, list):
        raise GitHubResponseShapeError.missing(f"{path} list")
    return [item for item in payload if isinstance(item, dict)]
