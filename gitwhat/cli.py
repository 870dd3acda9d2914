"""Command-line entry point for harvesting repository metrics."""

from __future__ import annotations

import argparse
import asyncio
import typing as typ
from pathlib import Path

from gitwhat import get_version
from gitwhat.config import AppConfig, ConfigError, open_metric_store
from gitwhat.github.client import GitHubClientConfig, GitHubRestClient
from gitwhat.github.collector import RepositoryDataCollector
from gitwhat.github.errors import GitHubAPIError, GitHubConfigError
from gitwhat.logging import configure_logging, get_logger, log_error, log_warning
from gitwhat.metrics.errors import StorageError
from gitwhat.metrics.manager import SyncManager
from gitwhat.metrics.models import RunOptions

if typ.TYPE_CHECKING:
    import httpx

    from gitwhat.metrics.models import MetricRecord, SyncResult

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-what", description="Harvest GitHub repository metrics."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    update = commands.add_parser(
        "update-metrics", help="Refresh stored metrics for an organisation"
    )
    update.add_argument("--org", default=None, help="GitHub organisation to harvest")
    update.add_argument(
        "--repo", default=None, help="Refresh a single repository of the organisation"
    )
    update.add_argument(
        "--base-url", default=None, help="GitHub REST API root (for GitHub Enterprise)"
    )
    update.add_argument(
        "--data-dir", type=Path, default=None, help="Directory used by the file store"
    )
    update.add_argument(
        "--store", choices=("file", "sql"), default=None, help="Storage backend"
    )
    update.add_argument(
        "--force-update",
        action="store_true",
        help="Refresh every repository, ignoring stored records and the watermark",
    )
    update.add_argument(
        "--force-eval-all",
        action="store_true",
        help="Ignore the watermark and delete records of vanished repositories",
    )
    update.add_argument(
        "--collect-contributors",
        action="store_true",
        help="Read contributor statistics to derive commit counts",
    )
    update.add_argument("--log-level", default=None, help="Log level name")

    commands.add_parser("version", help="Print the installed version")
    return parser


async def run_update(
    config: AppConfig,
    github_config: GitHubClientConfig,
    options: RunOptions,
    *,
    repo: str | None = None,
    collect_contributors: bool = False,
    http_client: httpx.AsyncClient | None = None,
) -> SyncResult | MetricRecord:
    """Run one organisation or single-repository sync.

    Parameters
    ----------
    config : AppConfig
        Organisation and storage settings.
    github_config : GitHubClientConfig
        GitHub credentials and API root.
    options : RunOptions
        Flags for organisation runs; ignored when ``repo`` is given.
    repo : str | None, optional
        Repository to refresh on its own.
    collect_contributors : bool, optional
        Read contributor statistics for commit counts.
    http_client : httpx.AsyncClient | None, optional
        Pre-configured HTTP client, mainly for tests.

    Returns
    -------
    SyncResult | MetricRecord
        Run summary, or the stored record for a single-repository run.

    """
    async with (
        GitHubRestClient(github_config, http_client=http_client) as client,
        open_metric_store(config) as store,
    ):
        collector = RepositoryDataCollector(
            client, collect_contributors=collect_contributors
        )
        manager = SyncManager(collector, store)
        if repo:
            return await manager.sync_repository(config.org, repo)
        return await manager.sync_organization(config.org, options)


def _update_metrics(args: argparse.Namespace) -> int:
    try:
        config = AppConfig.from_env().with_overrides(
            org=args.org,
            data_dir=args.data_dir,
            store=args.store,
            log_level=args.log_level,
        )
        config.validate()
    except ConfigError as exc:
        print(f"Invalid configuration: {exc}")
        return 1

    normalized_level, invalid_level = configure_logging(config.log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid log level %r, falling back to %s",
            config.log_level,
            normalized_level,
        )

    try:
        github_config = GitHubClientConfig.from_env(base_url=args.base_url)
    except GitHubConfigError as exc:
        log_error(logger, "Unable to configure GitHub client: %s", exc)
        print(f"Invalid configuration: {exc}")
        return 1

    options = RunOptions(
        force_metric_update=args.force_update,
        force_all_repo_eval=args.force_eval_all or args.force_update,
    )
    try:
        result = asyncio.run(
            run_update(
                config,
                github_config,
                options,
                repo=args.repo,
                collect_contributors=args.collect_contributors,
            )
        )
    except (GitHubAPIError, StorageError) as exc:
        print(f"Metric update failed: {exc}")
        return 1

    if args.repo:
        print(f"updated metrics for {config.org}/{args.repo}")
    else:
        summary = typ.cast("SyncResult", result)
        print(
            f"org {config.org}: {summary.repositories_listed} listed / "
            f"{summary.repositories_updated} updated / "
            f"{summary.repositories_skipped} skipped / "
            f"{summary.repositories_deleted} deleted"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the ``git-what`` command line.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 when configuration or the run fails.

    """
    args = _build_parser().parse_args(argv)
    if args.command == "version":
        print(f"git-what {get_version()}")
        return 0
    return _update_metrics(args)


if __name__ == "__main__":
    raise SystemExit(main())
