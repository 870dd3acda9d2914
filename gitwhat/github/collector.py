"""Repository collection on top of the GitHub REST API.

The organisation listing endpoint can sort by ``created``, ``updated`` or
``pushed`` but not by the latest of the three. "Changed since" listings are
therefore built from three descending listings, one per sort key, each cut
off at the watermark, then merged by repository id.
"""

from __future__ import annotations

import asyncio
import typing as typ

from gitwhat.common.time import latest, parse_github_datetime
from gitwhat.logging import get_logger, log_debug, log_info

from .errors import GitHubResponseShapeError
from .models import (
    Branch,
    ContributorStats,
    PullRequest,
    Release,
    RepositoryDetail,
    RepositoryIdentity,
    RepositorySummary,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from .client import GitHubRestClient

logger = get_logger(__name__)

MAX_REPOSITORY_PAGES = 1000
MAX_DETAIL_PAGES = 10

SortKey: typ.TypeAlias = typ.Literal["updated", "pushed", "created"]

# Merge precedence for watermark listings.
_CHANGED_SORT_ORDER: tuple[SortKey, ...] = ("updated", "pushed", "created")

_SORT_TIMESTAMP_FIELD: dict[SortKey, str] = {
    "updated": "updated_at",
    "pushed": "pushed_at",
    "created": "created_at",
}


class RepositoryCollector(typ.Protocol):
    """Interface the sync manager uses to reach the hosting API."""

    async def list_repositories(
        self, org: str, changed_after: dt.datetime | None = None
    ) -> list[RepositoryIdentity]:
        """Return the repositories of ``org``, optionally changed since a time."""
        ...

    async def get_repository_detail(self, org: str, name: str) -> RepositoryDetail:
        """Return the full detail bundle for one repository."""
        ...


def merge_repositories(
    *listings: cabc.Iterable[RepositoryIdentity],
) -> list[RepositoryIdentity]:
    """Merge listings by repository id, keeping the first occurrence.

    Examples
    --------
    >>> a = RepositoryIdentity(id=1, org="acme", name="one")
    >>> b = RepositoryIdentity(id=1, org="acme", name="renamed")
    >>> [repo.name for repo in merge_repositories([a], [b])]
    ['one']

    """
    merged: dict[int, RepositoryIdentity] = {}
    for listing in listings:
        for repo in listing:
            merged.setdefault(repo.id, repo)
    return list(merged.values())


def _timestamp(payload: dict[str, typ.Any], field: str) -> dt.datetime | None:
    try:
        return parse_github_datetime(payload.get(field))
    except (TypeError, ValueError) as exc:
        raise GitHubResponseShapeError.missing(field) from exc


def last_changed(payload: dict[str, typ.Any]) -> dt.datetime | None:
    """Return the latest of the created, pushed and updated timestamps."""
    return latest(
        _timestamp(payload, "created_at"),
        _timestamp(payload, "pushed_at"),
        _timestamp(payload, "updated_at"),
    )


def _require_int(payload: dict[str, typ.Any], field: str, *, context: str) -> int:
    value = payload.get(field)
    if not isinstance(value, int) or isinstance(value, bool):
        raise GitHubResponseShapeError.missing(f"{context}.{field}")
    return value


def _require_str(payload: dict[str, typ.Any], field: str, *, context: str) -> str:
    value = payload.get(field)
    if not isinstance(value, str):
        raise GitHubResponseShapeError.missing(f"{context}.{field}")
    return value


def _optional_str(payload: dict[str, typ.Any], field: str) -> str:
    value = payload.get(field)
    return value if isinstance(value, str) else ""


def _identity_from_payload(org: str, payload: dict[str, typ.Any]) -> RepositoryIdentity:
    return RepositoryIdentity(
        id=_require_int(payload, "id", context="repository"),
        org=org,
        name=_require_str(payload, "name", context="repository"),
        last_changed=last_changed(payload),
    )


def _summary_from_payload(payload: dict[str, typ.Any]) -> RepositorySummary:
    return RepositorySummary(
        id=_require_int(payload, "id", context="repository"),
        name=_require_str(payload, "name", context="repository"),
        created_at=_timestamp(payload, "created_at"),
        updated_at=_timestamp(payload, "updated_at"),
        pushed_at=_timestamp(payload, "pushed_at"),
        default_branch=_optional_str(payload, "default_branch"),
        allow_squash_merge=payload.get("allow_squash_merge") is True,
        allow_rebase_merge=payload.get("allow_rebase_merge") is True,
    )


def _branch_from_payload(payload: dict[str, typ.Any]) -> Branch:
    return Branch(
        name=_require_str(payload, "name", context="branch"),
        protected=payload.get("protected") is True,
    )


def _release_from_payload(payload: dict[str, typ.Any]) -> Release:
    return Release(
        id=_require_int(payload, "id", context="release"),
        name=_optional_str(payload, "name"),
        tag_name=_optional_str(payload, "tag_name"),
    )


def _pull_request_from_payload(payload: dict[str, typ.Any]) -> PullRequest:
    return PullRequest(
        id=_require_int(payload, "id", context="pull request"),
        number=_require_int(payload, "number", context="pull request"),
        state=_optional_str(payload, "state"),
        created_at=_timestamp(payload, "created_at"),
        closed_at=_timestamp(payload, "closed_at"),
        merged_at=_timestamp(payload, "merged_at"),
    )


def _contributor_from_payload(payload: dict[str, typ.Any]) -> ContributorStats:
    author = payload.get("author")
    login = author.get("login") if isinstance(author, dict) else None
    total = payload.get("total")
    return ContributorStats(
        login=login if isinstance(login, str) else "",
        total=total if isinstance(total, int) else 0,
    )


class RepositoryDataCollector:
    """GitHub REST implementation of :class:`RepositoryCollector`."""

    def __init__(
        self,
        client: GitHubRestClient,
        *,
        collect_contributors: bool = False,
    ) -> None:
        """Bind the collector to a REST client.

        ``collect_contributors`` adds a contributor statistics read to each
        detail fetch so commit totals can be derived.
        """
        self._client = client
        self._collect_contributors = collect_contributors

    async def list_repositories(
        self, org: str, changed_after: dt.datetime | None = None
    ) -> list[RepositoryIdentity]:
        """Return the repositories of ``org``.

        Without ``changed_after`` every repository is returned in creation
        order. With it, only repositories whose created, pushed or updated
        timestamp is not before ``changed_after`` are returned, in
        updated, pushed, created precedence.
        """
        if changed_after is None:
            log_info(logger, "Collecting all repositories for org %s", org)
            return await self._list_by_sort(org, "created", None)

        listings: list[list[RepositoryIdentity]] = []
        for sort in _CHANGED_SORT_ORDER:
            log_info(
                logger,
                "Collecting repositories for org %s %s after %s",
                org,
                sort.upper(),
                changed_after.isoformat(),
            )
            listings.append(await self._list_by_sort(org, sort, changed_after))
        return merge_repositories(*listings)

    async def get_repository_detail(self, org: str, name: str) -> RepositoryDetail:
        """Fetch base facets and every sub-resource of a repository concurrently.

        The fetch fails as a whole with the first sub-fetch error; partial
        results are discarded.
        """
        log_info(logger, "Collecting repository detail for %s/%s", org, name)
        try:
            async with asyncio.TaskGroup() as group:
                summary_task = group.create_task(self.get_repository(org, name))
                branches_task = group.create_task(self.get_branches(org, name))
                releases_task = group.create_task(self.get_releases(org, name))
                pulls_task = group.create_task(self.get_pull_requests(org, name))
                languages_task = group.create_task(self.get_languages(org, name))
                topics_task = group.create_task(self.get_topics(org, name))
                contributors_task = (
                    group.create_task(self.get_contributors(org, name))
                    if self._collect_contributors
                    else None
                )
        except ExceptionGroup as group_error:
            raise group_error.exceptions[0] from None

        summary = summary_task.result()
        return RepositoryDetail(
            identity=RepositoryIdentity(
                id=summary.id,
                org=org,
                name=name,
                last_changed=latest(
                    summary.created_at, summary.pushed_at, summary.updated_at
                ),
            ),
            repository=summary,
            topics=topics_task.result(),
            branches=branches_task.result(),
            releases=releases_task.result(),
            pull_requests=pulls_task.result(),
            languages=languages_task.result(),
            contributors=(
                contributors_task.result() if contributors_task is not None else ()
            ),
        )

    async def get_repository(self, org: str, name: str) -> RepositorySummary:
        """Read the base repository facets."""
        payload = await self._client.get_json(f"/repos/{org}/{name}")
        if not isinstance(payload, dict):
            raise GitHubResponseShapeError.missing("repository")
        return _summary_from_payload(payload)

    async def get_branches(self, org: str, name: str) -> tuple[Branch, ...]:
        """List every branch of the repository."""
        items = await self._collect(f"/repos/{org}/{name}/branches")
        return tuple(_branch_from_payload(item) for item in items)

    async def get_releases(self, org: str, name: str) -> tuple[Release, ...]:
        """List every release of the repository."""
        items = await self._collect(f"/repos/{org}/{name}/releases")
        return tuple(_release_from_payload(item) for item in items)

    async def get_pull_requests(self, org: str, name: str) -> tuple[PullRequest, ...]:
        """List open and closed pull requests of the repository."""
        items = await self._collect(
            f"/repos/{org}/{name}/pulls", params={"state": "all"}
        )
        return tuple(_pull_request_from_payload(item) for item in items)

    async def get_languages(self, org: str, name: str) -> dict[str, int]:
        """Return language byte counts for the repository."""
        payload = await self._client.get_json(f"/repos/{org}/{name}/languages")
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise GitHubResponseShapeError.missing("languages")
        return {
            language: count
            for language, count in payload.items()
            if isinstance(language, str) and isinstance(count, int)
        }

    async def get_topics(self, org: str, name: str) -> tuple[str, ...]:
        """Return the repository topics."""
        payload = await self._client.get_json(f"/repos/{org}/{name}/topics")
        if payload is None:
            return ()
        if not isinstance(payload, dict) or not isinstance(payload.get("names"), list):
            raise GitHubResponseShapeError.missing("topics.names")
        return tuple(topic for topic in payload["names"] if isinstance(topic, str))

    async def get_contributors(
        self, org: str, name: str
    ) -> tuple[ContributorStats, ...]:
        """Return per-contributor commit totals.

        GitHub answers ``202`` while statistics are being computed; that is
        reported as no contributors.
        """
        payload = await self._client.get_json(
            f"/repos/{org}/{name}/stats/contributors"
        )
        if payload is None:
            return ()
        if not isinstance(payload, list):
            raise GitHubResponseShapeError.missing("contributors")
        return tuple(
            _contributor_from_payload(item)
            for item in payload
            if isinstance(item, dict)
        )

    async def _collect(
        self, path: str, *, params: dict[str, typ.Any] | None = None
    ) -> list[dict[str, typ.Any]]:
        items: list[dict[str, typ.Any]] = []
        async for page in self._client.iter_pages(
            path, max_pages=MAX_DETAIL_PAGES, params=params
        ):
            items.extend(page)
        log_debug(logger, "Collected %d items from %s", len(items), path)
        return items

    async def _list_by_sort(
        self, org: str, sort: SortKey, changed_after: dt.datetime | None
    ) -> list[RepositoryIdentity]:
        """List organisation repositories by one sort key, newest first.

        With ``changed_after`` the listing stops at the first repository
        whose ``sort`` timestamp precedes it; everything after is older.
        """
        timestamp_field = _SORT_TIMESTAMP_FIELD[sort]
        repos: list[RepositoryIdentity] = []
        pages = self._client.iter_pages(
            f"/orgs/{org}/repos",
            max_pages=MAX_REPOSITORY_PAGES,
            params={"sort": sort, "direction": "desc", "type": "all"},
        )
        async for page in pages:
            for payload in page:
                if changed_after is not None:
                    sort_ts = _timestamp(payload, timestamp_field)
                    if sort_ts is not None and sort_ts < changed_after:
                        await pages.aclose()
                        return repos
                repos.append(_identity_from_payload(org, payload))
        return repos
