from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict


class StaleReason(Enum):
    changes_requested = "CHANGES REQUESTED"
    build_failing = "BUILD FAILING"
    merge_conflicts = "MERGE CONFLICTS"


class ReviewKind(Enum):
    approved = "APPROVED"
    changes_requested = "CHANGES_REQUESTED"


class Action(Enum):
    nothing = "nothing"
    warn = "warn"
    close = "close"


class Marker(Enum):
    stale_pr = "STALE PR"
    merge_conflicts = "MERGE CONFLICTS"

    def encode(self) -> str:
        return f"<!--{self.value}-->"

    @classmethod
    def decode(cls, body: str | None) -> frozenset[Marker]:
        if not body:
            return frozenset()
        return frozenset(m for m in cls if m.encode() in body)


@dataclass(frozen=True)
class FailedCheck:
    name: str
    when: datetime


@dataclass(frozen=True)
class ReviewState:
    kind: ReviewKind
    when: datetime


@dataclass(frozen=True)
class StaleVerdict:
    reason: StaleReason
    since: datetime


@dataclass(frozen=True)
class WarningRecord:
    warnings: Dict[Marker, datetime] = field(default_factory=dict)

    def get(self, marker: Marker) -> datetime | None:
        return self.warnings.get(marker)

    def __str__(self) -> str:
        if not self.warnings:
            return "(none)"
        return ", ".join(
            f"{m.value}: {when.isoformat()}" for m, when in self.warnings.items()
        )


@dataclass(frozen=True)
class PullRequestFacts:
    review_state: ReviewState | None = None
    last_commit: datetime | None = None
    build_failure: datetime | None = None
    has_merge_conflicts: bool = False


@dataclass(frozen=True)
class Classification:
    verdict: StaleVerdict | None = None
    merge_conflict_warning: bool = False


@dataclass(frozen=True)
class PrOutcome:
    number: int
    skipped: bool = False
    verdict: StaleVerdict | None = None
    action: Action = Action.nothing
    merge_conflict_warned: bool = False
