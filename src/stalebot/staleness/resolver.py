from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from stalebot.staleness.types import Action, Marker, StaleVerdict, WarningRecord


def out_of_grace_period(warning: datetime, response_days: int, now: datetime) -> bool:
    return now >= warning + timedelta(days=response_days)


def resolve_action(
    verdict: Optional[StaleVerdict],
    warnings: WarningRecord,
    member_engagement: Optional[datetime],
    response_days: int,
    now: datetime,
) -> Action:
    """Turn a staleness verdict and the comment trail into the next step.

    A warning that predates the current staleness episode does not count.
    Neither does one a member has answered since: the PR gets a fresh
    warning and a fresh grace period instead of being closed.
    """
    if verdict is None:
        return Action.nothing

    warning = warnings.get(Marker.stale_pr)
    if warning is None or warning < verdict.since:
        return Action.warn

    if member_engagement is not None and member_engagement > warning:
        return Action.warn

    if out_of_grace_period(warning, response_days, now):
        return Action.close

    return Action.nothing
