import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp
import cachetools
from gidgethub import aiohttp as gh_aiohttp
from gidgethub.apps import get_installation_access_token
import typer

from stalebot import config as app_config
from stalebot.finder import find_stale_prs, process_pull_request
from stalebot.github.api import API
from stalebot.logger import get_log_handlers
from stalebot.metric import RunMetrics, push_run_metrics
from stalebot.model import Config, ConfigError, load_config


logging.basicConfig(
    format="%(asctime)s %(name)s %(levelname)s - %(message)s", level=logging.INFO
)
logger = logging.getLogger("stalebot")

app = typer.Typer(help="Warn about and close stale pull requests.")
httpcache = cachetools.LRUCache(maxsize=500)


@app.callback()
def init():
    logging.getLogger().setLevel(app_config.OVERRIDE_LOGGING)
    logger.setLevel(app_config.OVERRIDE_LOGGING)


async def get_token(gh: gh_aiohttp.GitHubAPI, installation: Optional[int]) -> str:
    if installation is None:
        if app_config.GITHUB_TOKEN is None:
            raise ConfigError("Set GITHUB_TOKEN or pass --installation")
        return app_config.GITHUB_TOKEN

    if app_config.GITHUB_APP_ID is None or app_config.GITHUB_PRIVATE_KEY is None:
        raise ConfigError(
            "GITHUB_APP_ID and GITHUB_PRIVATE_KEY are required with --installation"
        )
    logger.debug("Getting installation access token for %d", installation)
    response = await get_installation_access_token(
        gh,
        installation_id=installation,
        app_id=app_config.GITHUB_APP_ID,
        private_key=app_config.GITHUB_PRIVATE_KEY,
    )
    return response["token"]


@asynccontextmanager
async def repo_client(repo: str, installation: Optional[int], dry_run: bool):
    async with aiohttp.ClientSession() as session:
        gh = gh_aiohttp.GitHubAPI(session, "stalebot")
        token = await get_token(gh, installation)
        gh = gh_aiohttp.GitHubAPI(
            session,
            "stalebot",
            oauth_token=token,
            cache=httpcache,
        )
        yield API(gh, repo, dry_run=dry_run)


def build_config(config_file: Optional[Path], overrides: Dict[str, Any]) -> Config:
    if overrides.get("dry-run") is None and app_config.DRY_RUN:
        overrides["dry-run"] = True
    return load_config(config_file, overrides)


def execute(
    repo: str,
    installation: Optional[int],
    config_file: Optional[Path],
    overrides: Dict[str, Any],
    handler: Callable[[API, Config], Awaitable[None]],
) -> None:
    get_log_handlers(logger, repo=repo)
    try:
        if repo.count("/") != 1 or not all(repo.split("/")):
            raise ConfigError(f"Repository must be given as owner/name, got {repo!r}")
        cfg = build_config(config_file, overrides)

        async def handle():
            async with repo_client(repo, installation, cfg.dry_run) as api:
                await handler(api, cfg)

        asyncio.run(handle())
    except ConfigError as e:
        if e.source is not None:
            logger.error("Invalid configuration in %s: %s", e.source, e)
        else:
            logger.error("Invalid configuration: %s", e)
        raise typer.Exit(code=1)
    except Exception as e:
        logger.error("Run failed: %s", e, exc_info=True)
        raise typer.Exit(code=1)


ConfigOption = typer.Option(None, "--config", "-c", help="YAML file with options")
StaleDaysOption = typer.Option(None, "--stale-days")
ResponseDaysOption = typer.Option(None, "--response-days")
MergeConflictWarningDaysOption = typer.Option(None, "--merge-conflict-warning-days")
ImportantChecksOption = typer.Option(None, "--important-checks-regex")
SkipLabelsOption = typer.Option(None, "--skip-labels", help="Comma separated")
WarnMessageOption = typer.Option(None, "--warn-message")
CloseMessageOption = typer.Option(None, "--close-message")
MergeConflictWarningOption = typer.Option(None, "--merge-conflict-warning")
CloseLabelOption = typer.Option(None, "--close-label")
DryRunOption = typer.Option(None, "--dry-run/--no-dry-run")
MemberAssociationsOption = typer.Option(
    None, "--member-associations", help="Comma separated"
)
NoCommitsSinceReviewOption = typer.Option(
    None, "--require-no-commits-since-review/--ignore-commits-since-review"
)
InstallationOption = typer.Option(
    None, "--installation", help="GitHub App installation id"
)


def collect_overrides(**kwargs) -> Dict[str, Any]:
    return {key.replace("_", "-"): value for key, value in kwargs.items()}


@app.command()
def run(
    repo: str,
    config_file: Optional[Path] = ConfigOption,
    stale_days: Optional[int] = StaleDaysOption,
    response_days: Optional[int] = ResponseDaysOption,
    merge_conflict_warning_days: Optional[int] = MergeConflictWarningDaysOption,
    important_checks_regex: Optional[str] = ImportantChecksOption,
    skip_labels: Optional[str] = SkipLabelsOption,
    warn_message: Optional[str] = WarnMessageOption,
    close_message: Optional[str] = CloseMessageOption,
    merge_conflict_warning: Optional[str] = MergeConflictWarningOption,
    close_label: Optional[str] = CloseLabelOption,
    dry_run: Optional[bool] = DryRunOption,
    member_associations: Optional[str] = MemberAssociationsOption,
    require_no_commits_since_review: Optional[bool] = NoCommitsSinceReviewOption,
    installation: Optional[int] = InstallationOption,
):
    """Process all open pull requests of REPO (owner/name)."""
    overrides = collect_overrides(
        stale_days=stale_days,
        response_days=response_days,
        merge_conflict_warning_days=merge_conflict_warning_days,
        important_checks_regex=important_checks_regex,
        skip_labels=skip_labels,
        warn_message=warn_message,
        close_message=close_message,
        merge_conflict_warning=merge_conflict_warning,
        close_label=close_label,
        dry_run=dry_run,
        member_associations=member_associations,
        require_no_commits_since_review=require_no_commits_since_review,
    )

    async def handler(api: API, cfg: Config):
        metrics = await find_stale_prs(api, cfg)
        report(metrics)

    execute(repo, installation, config_file, overrides, handler)


@app.command()
def pr(
    repo: str,
    number: int,
    config_file: Optional[Path] = ConfigOption,
    stale_days: Optional[int] = StaleDaysOption,
    response_days: Optional[int] = ResponseDaysOption,
    merge_conflict_warning_days: Optional[int] = MergeConflictWarningDaysOption,
    important_checks_regex: Optional[str] = ImportantChecksOption,
    skip_labels: Optional[str] = SkipLabelsOption,
    warn_message: Optional[str] = WarnMessageOption,
    close_message: Optional[str] = CloseMessageOption,
    merge_conflict_warning: Optional[str] = MergeConflictWarningOption,
    close_label: Optional[str] = CloseLabelOption,
    dry_run: Optional[bool] = DryRunOption,
    member_associations: Optional[str] = MemberAssociationsOption,
    require_no_commits_since_review: Optional[bool] = NoCommitsSinceReviewOption,
    installation: Optional[int] = InstallationOption,
):
    """Process a single pull request NUMBER of REPO (owner/name)."""
    overrides = collect_overrides(
        stale_days=stale_days,
        response_days=response_days,
        merge_conflict_warning_days=merge_conflict_warning_days,
        important_checks_regex=important_checks_regex,
        skip_labels=skip_labels,
        warn_message=warn_message,
        close_message=close_message,
        merge_conflict_warning=merge_conflict_warning,
        close_label=close_label,
        dry_run=dry_run,
        member_associations=member_associations,
        require_no_commits_since_review=require_no_commits_since_review,
    )

    async def handler(api: API, cfg: Config):
        pull = await api.get_pull(number)
        outcome = await process_pull_request(
            pull, api, cfg, datetime.now(timezone.utc), refresh=False
        )
        report(RunMetrics.from_outcomes([outcome], api_calls=api.call_count))

    execute(repo, installation, config_file, overrides, handler)


def report(metrics: RunMetrics) -> None:
    logger.info("Metrics\n%s", metrics.table())
    if app_config.PUSH_GATEWAY is not None:
        logger.debug("Pushing metrics to %s", app_config.PUSH_GATEWAY)
        push_run_metrics(metrics, app_config.PUSH_GATEWAY, app_config.PUSH_JOB_NAME)
