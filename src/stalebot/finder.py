from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
from typing import AsyncIterator, List, Optional, TypeVar

import humanize

from stalebot.github.api import API
from stalebot.github.model import PullRequest
from stalebot.metric import RunMetrics
from stalebot.model import Config
from stalebot.staleness import (
    Action,
    Marker,
    PrOutcome,
    PullRequestFacts,
    StaleVerdict,
    classify,
    resolve_action,
)
from stalebot.staleness import facts as extract

logger = logging.getLogger("stalebot")

T = TypeVar("T")


async def collect(items: AsyncIterator[T]) -> List[T]:
    return [item async for item in items]


async def perform_action(
    api: API,
    config: Config,
    number: int,
    action: Action,
    verdict: Optional[StaleVerdict],
) -> None:
    if action == Action.nothing:
        return

    if action == Action.warn:
        if verdict is None:
            raise ValueError(f"Cannot warn on #{number} without a stale verdict")
        message = config.render_warn_message(verdict.reason.value)
        await api.add_comment(number, f"{Marker.stale_pr.encode()}\n{message}")
        return

    if action == Action.close:
        await api.add_comment(number, config.close_message)
        if config.close_label is not None:
            await api.add_labels(number, [config.close_label])
        await api.close_pull(number)
        return

    raise ValueError(f"Unknown action {action}")


async def add_merge_conflict_warning(api: API, config: Config, number: int) -> None:
    await api.add_comment(number, config.merge_conflict_warning)


async def process_pull_request(
    pr: PullRequest, api: API, config: Config, now: datetime, refresh: bool = True
) -> PrOutcome:
    """Evaluate one PR and act on it.

    ``refresh`` re-fetches the PR from the single pull request endpoint,
    which is the only one reporting mergeability. Callers that already did
    that pass ``refresh=False``.
    """
    logger.info("")
    logger.info("------> PR#%d", pr.number)

    if extract.has_skip_label(pr.labels, config.skip_labels):
        logger.info("        Skipped due to label.")
        return PrOutcome(number=pr.number, skipped=True)

    reads = [
        collect(api.get_check_runs_for_ref(pr.head.sha)),
        collect(api.get_statuses_for_ref(pr.head.sha)),
        collect(api.get_reviews(pr.number)),
        collect(api.get_commits(pr.number)),
        collect(api.get_comments(pr.number)),
    ]
    if refresh:
        reads.append(api.get_pull(pr.number))
    check_runs, statuses, reviews, commits, comments, *details = await asyncio.gather(
        *reads
    )
    pull = details[0] if details else pr

    failing = extract.failing_checks(check_runs, statuses)
    logger.info("        Build failures:      %s", extract.summarize_checks(failing))
    if config.important_checks_regex is not None:
        failing = extract.filter_checks(failing, config.important_checks_regex)
        logger.info(
            "        Filtered by regex:   %s <-- using this",
            extract.summarize_checks(failing),
        )

    facts = PullRequestFacts(
        review_state=extract.review_state(reviews, config.member_associations),
        last_commit=extract.last_commit_time(commits),
        build_failure=extract.max_time(failing),
        has_merge_conflicts=pull.has_merge_conflicts,
    )

    logger.info(
        "        Review state:        %s",
        f"{facts.review_state.kind.value} ({facts.review_state.when.isoformat()})"
        if facts.review_state is not None
        else "(none)",
    )
    logger.info(
        "        Last commit:         %s",
        facts.last_commit.isoformat() if facts.last_commit is not None else "(none)",
    )
    logger.info("        Merge conflicts:     %s", facts.has_merge_conflicts)

    classification = classify(facts, config, now)
    verdict = classification.verdict

    if classification.merge_conflict_warning:
        logger.info("        Merge conflicts need attention, posting heads-up")
        await add_merge_conflict_warning(api, config, pr.number)

    logger.info(
        "        Stale:               %s",
        f"yes ({verdict.reason.value})" if verdict is not None else "no",
    )

    action = Action.nothing
    if verdict is not None:
        warnings = extract.most_recent_warnings(comments)
        engagement = extract.latest_member_engagement(
            comments,
            reviews,
            config.member_associations,
            own_messages={
                config.close_message.strip(),
                config.merge_conflict_warning.strip(),
            },
        )
        logger.info(
            "        Stale since:         %s (%s)",
            verdict.since.isoformat(),
            humanize.naturaltime(now - verdict.since),
        )
        logger.info("        Warnings:            %s", warnings)
        logger.info(
            "        Member engagement:   %s",
            engagement.isoformat() if engagement is not None else "(none)",
        )
        action = resolve_action(
            verdict, warnings, engagement, config.response_days, now
        )

    logger.info("        Action:              %s", action.value)
    await perform_action(api, config, pr.number, action, verdict)

    return PrOutcome(
        number=pr.number,
        verdict=verdict,
        action=action,
        merge_conflict_warned=classification.merge_conflict_warning,
    )


async def find_stale_prs(
    api: API, config: Config, now: Optional[datetime] = None
) -> RunMetrics:
    """Evaluate every open PR of the repository, oldest first.

    Oldest first, so that an interrupted run (e.g. out of API credits) has
    made progress on the longest-lived PRs. Any error aborts the run; the
    next scheduled run picks up from the comment trail.
    """
    now = now or datetime.now(timezone.utc)
    if config.dry_run:
        logger.info("Dry run ON")

    pulls = await collect(api.get_pulls())
    pulls.sort(key=lambda pr: pr.created_at)
    logger.info("Found %d open pull requests in %s", len(pulls), api.repo)

    outcomes: List[PrOutcome] = []
    for pr in pulls:
        try:
            outcomes.append(await process_pull_request(pr, api, config, now))
        except Exception:
            logger.error(
                "Processing %s failed, aborting run after %d pull requests",
                pr,
                len(outcomes),
            )
            logger.info(
                "Metrics so far:\n%s",
                RunMetrics.from_outcomes(outcomes, api_calls=api.call_count).table(),
            )
            raise

    return RunMetrics.from_outcomes(outcomes, api_calls=api.call_count)
