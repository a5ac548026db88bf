from stalebot.staleness.classifier import classify, older_than_days
from stalebot.staleness.resolver import out_of_grace_period, resolve_action
from stalebot.staleness.types import (
    Action,
    Classification,
    FailedCheck,
    Marker,
    PrOutcome,
    PullRequestFacts,
    ReviewKind,
    ReviewState,
    StaleReason,
    StaleVerdict,
    WarningRecord,
)

__all__ = [
    "Action",
    "Classification",
    "FailedCheck",
    "Marker",
    "PrOutcome",
    "PullRequestFacts",
    "ReviewKind",
    "ReviewState",
    "StaleReason",
    "StaleVerdict",
    "WarningRecord",
    "classify",
    "older_than_days",
    "out_of_grace_period",
    "resolve_action",
]
