from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Collection, Dict, Iterable, List, Optional, Pattern, Sequence

from stalebot.github.model import (
    CheckRun,
    Commit,
    CommitStatus,
    IssueComment,
    Label,
    Review,
)
from stalebot.staleness.types import (
    FailedCheck,
    Marker,
    ReviewKind,
    ReviewState,
    WarningRecord,
)


@dataclass(frozen=True)
class _Result:
    name: str
    failed: bool
    # None while the check is still running
    when: Optional[datetime]


def _newer(candidate: _Result, existing: _Result) -> bool:
    if existing.when is None:
        return False
    if candidate.when is None:
        return True
    return candidate.when > existing.when


def has_skip_label(labels: Iterable[Label], skip_labels: Collection[str]) -> bool:
    if not skip_labels:
        return False
    return any(label.name in skip_labels for label in labels)


def failing_checks(
    check_runs: Iterable[CheckRun], statuses: Iterable[CommitStatus]
) -> Dict[str, FailedCheck]:
    """Reduce check runs and commit statuses to the names whose latest result failed.

    Both sources share one namespace: a check run and a commit status with
    the same name are treated as runs of the same check.
    """
    results: List[_Result] = [
        _Result(name=cr.name, failed=cr.is_failure, when=cr.completed_at)
        for cr in check_runs
    ]
    results += [
        _Result(name=s.context, failed=s.is_failure, when=s.updated_at)
        for s in statuses
    ]

    latest: Dict[str, _Result] = {}
    for result in results:
        if ex := latest.get(result.name):
            if _newer(result, ex):
                latest[result.name] = result
        else:
            latest[result.name] = result

    return {
        name: FailedCheck(name=name, when=result.when)
        for name, result in latest.items()
        if result.failed and result.when is not None
    }


def filter_checks(
    checks: Dict[str, FailedCheck], regex: Pattern[str]
) -> Dict[str, FailedCheck]:
    return {name: fc for name, fc in checks.items() if regex.search(name)}


def max_time(checks: Dict[str, FailedCheck]) -> Optional[datetime]:
    if len(checks) == 0:
        return None
    return max(fc.when for fc in checks.values())


def summarize_checks(checks: Dict[str, FailedCheck]) -> str:
    if len(checks) == 0:
        return "(none)"
    return f"{', '.join(checks)} (last: {max_time(checks).isoformat()})"


def is_member(author_association: str, member_associations: Collection[str]) -> bool:
    return author_association.upper() in member_associations


def review_state(
    reviews: Iterable[Review], member_associations: Collection[str]
) -> Optional[ReviewState]:
    """Authoritative review state from member reviews.

    Any change request wins over approvals. The oldest change request is
    used so that a reviewer repeating the request does not restart the
    staleness clock. For approvals the newest one is reported.
    """
    changes_requested: List[datetime] = []
    approved: List[datetime] = []
    for review in reviews:
        if review.submitted_at is None:
            continue
        if not is_member(review.author_association, member_associations):
            continue
        if review.state == ReviewKind.changes_requested.value:
            changes_requested.append(review.submitted_at)
        elif review.state == ReviewKind.approved.value:
            approved.append(review.submitted_at)

    if changes_requested:
        return ReviewState(kind=ReviewKind.changes_requested, when=min(changes_requested))
    if approved:
        return ReviewState(kind=ReviewKind.approved, when=max(approved))
    return None


def last_commit_time(commits: Sequence[Commit]) -> Optional[datetime]:
    # Commits are listed in chronological order
    times = [c.committed_at for c in commits if c.committed_at is not None]
    if not times:
        return None
    return times[-1]


def most_recent_warnings(comments: Sequence[IssueComment]) -> WarningRecord:
    """Find, per marker, the creation time of the newest comment carrying it."""
    found: Dict[Marker, datetime] = {}
    for comment in reversed(comments):
        for marker in Marker.decode(comment.body):
            if marker not in found:
                found[marker] = comment.created_at
        if len(found) == len(Marker):
            break
    return WarningRecord(found)


def latest_member_engagement(
    comments: Iterable[IssueComment],
    reviews: Iterable[Review],
    member_associations: Collection[str],
    own_messages: Collection[str] = (),
) -> Optional[datetime]:
    """Newest comment or review by a member.

    Comments written by stalebot itself never count: bot accounts, comments
    carrying a marker and comments whose body is one of ``own_messages``
    (the unmarked close message and merge conflict heads-up, which a
    personal token posts as a regular member).
    """
    times: List[datetime] = []
    for comment in comments:
        if comment.user is not None and comment.user.is_bot:
            continue
        if Marker.decode(comment.body):
            continue
        if comment.body is not None and comment.body.strip() in own_messages:
            continue
        if is_member(comment.author_association, member_associations):
            times.append(comment.created_at)

    for review in reviews:
        if review.submitted_at is None:
            continue
        if review.user is not None and review.user.is_bot:
            continue
        if is_member(review.author_association, member_associations):
            times.append(review.submitted_at)

    return max(times) if times else None
