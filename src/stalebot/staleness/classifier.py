from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from stalebot.model import Config
from stalebot.staleness.types import (
    Classification,
    PullRequestFacts,
    ReviewKind,
    StaleReason,
    StaleVerdict,
)


def older_than_days(t: datetime, days: int, now: datetime) -> bool:
    return t + timedelta(days=days) < now


def _changes_requested_since(
    facts: PullRequestFacts, config: Config, now: datetime
) -> Optional[datetime]:
    review = facts.review_state
    if review is None or review.kind != ReviewKind.changes_requested:
        return None
    if facts.last_commit is None:
        return None
    if config.require_no_commits_since_review and facts.last_commit >= review.when:
        return None
    if not older_than_days(review.when, config.stale_days, now):
        return None
    return review.when


def classify(facts: PullRequestFacts, config: Config, now: datetime) -> Classification:
    """Decide whether a PR is stale, and why.

    Reasons are checked in priority order: an unaddressed change request,
    then a failing build, then merge conflicts. Merge conflicts younger than
    ``stale_days`` but older than ``merge_conflict_warning_days`` produce no
    verdict, only a request for an early heads-up comment.
    """
    if (since := _changes_requested_since(facts, config, now)) is not None:
        return Classification(
            verdict=StaleVerdict(reason=StaleReason.changes_requested, since=since)
        )

    if facts.build_failure is not None and older_than_days(
        facts.build_failure, config.stale_days, now
    ):
        return Classification(
            verdict=StaleVerdict(
                reason=StaleReason.build_failing, since=facts.build_failure
            )
        )

    if facts.has_merge_conflicts and facts.last_commit is not None:
        if older_than_days(facts.last_commit, config.stale_days, now):
            return Classification(
                verdict=StaleVerdict(
                    reason=StaleReason.merge_conflicts, since=facts.last_commit
                )
            )
        if config.merge_conflict_warning_days > 0 and older_than_days(
            facts.last_commit, config.merge_conflict_warning_days, now
        ):
            return Classification(merge_conflict_warning=True)

    return Classification()
