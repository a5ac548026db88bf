from datetime import datetime, timedelta, timezone
import re

from stalebot.github.model import (
    CheckRun,
    Commit,
    CommitStatus,
    IssueComment,
    Label,
    Review,
)
from stalebot.model import DEFAULT_MEMBER_ASSOCIATIONS
from stalebot.staleness import Marker, ReviewKind
from stalebot.staleness.facts import (
    failing_checks,
    filter_checks,
    has_skip_label,
    last_commit_time,
    latest_member_engagement,
    max_time,
    most_recent_warnings,
    review_state,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


def _check_run(name, conclusion="failure", completed_at=None, status="completed"):
    return CheckRun(
        name=name,
        status=status,
        conclusion=conclusion,
        completed_at=completed_at,
    )


def _status(context, state="failure", updated_at=None, id=1):
    updated_at = updated_at or days_ago(1)
    return CommitStatus(
        id=id,
        context=context,
        state=state,
        created_at=updated_at,
        updated_at=updated_at,
    )


def _review(state, when, association="MEMBER", id=1, user_type="User"):
    return Review.model_validate(
        {
            "id": id,
            "state": state,
            "submitted_at": when,
            "author_association": association,
            "user": {"login": "someone", "type": user_type},
        }
    )


def _comment(body, when, association="NONE", user_type="User", id=1):
    return IssueComment.model_validate(
        {
            "id": id,
            "body": body,
            "created_at": when,
            "author_association": association,
            "user": {"login": "someone", "type": user_type},
        }
    )


def _commit(when, sha="a" * 40):
    return Commit.model_validate(
        {"sha": sha, "commit": {"message": "wip", "committer": {"date": when}}}
    )


def test_skip_label():
    labels = [Label(name="bug"), Label(name="keep-open")]
    assert has_skip_label(labels, ["keep-open"])
    assert not has_skip_label(labels, ["do-not-close"])
    assert not has_skip_label(labels, [])
    assert not has_skip_label([], ["keep-open"])


def test_failing_checks_keeps_latest_result_per_name():
    check_runs = [
        _check_run("build", "failure", days_ago(5)),
        _check_run("build", "success", days_ago(2)),
        _check_run("test", "success", days_ago(6)),
        _check_run("test", "failure", days_ago(3)),
    ]
    failing = failing_checks(check_runs, [])
    assert set(failing) == {"test"}
    assert failing["test"].when == days_ago(3)


def test_failing_checks_running_rerun_supersedes_failure():
    check_runs = [
        _check_run("build", "failure", days_ago(5)),
        _check_run("build", None, None, status="in_progress"),
    ]
    assert failing_checks(check_runs, []) == {}


def test_failing_checks_merges_statuses():
    check_runs = [_check_run("build", "failure", days_ago(5))]
    statuses = [
        _status("ci/codebuild", "failure", days_ago(4), id=1),
        _status("ci/codebuild", "pending", days_ago(8), id=2),
        _status("gitpod", "success", days_ago(1), id=3),
        _status("build", "success", days_ago(1), id=4),
    ]
    failing = failing_checks(check_runs, statuses)
    assert set(failing) == {"ci/codebuild"}
    assert max_time(failing) == days_ago(4)


def test_failing_checks_ignores_cancelled_and_errors():
    check_runs = [_check_run("build", "cancelled", days_ago(5))]
    statuses = [_status("ext", "error", days_ago(5))]
    assert failing_checks(check_runs, statuses) == {}


def test_filter_checks_recomputes_time_over_subset():
    failing = failing_checks(
        [
            _check_run("build", "failure", days_ago(25)),
            _check_run("lint", "failure", days_ago(1)),
        ],
        [],
    )
    assert max_time(failing) == days_ago(1)

    important = filter_checks(failing, re.compile(r"^build$"))
    assert set(important) == {"build"}
    assert max_time(important) == days_ago(25)



def test_regex_without_matches_means_no_build_failure():
    failing = failing_checks([_check_run("lint", "failure", days_ago(30))], [])
    assert max_time(failing) == days_ago(30)
    assert max_time(filter_checks(failing, re.compile("^build"))) is None


def test_review_state_oldest_change_request_wins():
    reviews = [
        _review("APPROVED", days_ago(40), id=1),
        _review("CHANGES_REQUESTED", days_ago(30), id=2),
        _review("CHANGES_REQUESTED", days_ago(10), id=3),
        _review("APPROVED", days_ago(5), id=4),
    ]
    state = review_state(reviews, DEFAULT_MEMBER_ASSOCIATIONS)
    assert state.kind == ReviewKind.changes_requested
    assert state.when == days_ago(30)


def test_review_state_newest_approval():
    reviews = [
        _review("APPROVED", days_ago(9), id=1),
        _review("COMMENTED", days_ago(2), id=2),
        _review("APPROVED", days_ago(3), id=3),
    ]
    state = review_state(reviews, DEFAULT_MEMBER_ASSOCIATIONS)
    assert state.kind == ReviewKind.approved
    assert state.when == days_ago(3)


def test_review_state_ignores_non_members_and_pending():
    reviews = [
        _review("CHANGES_REQUESTED", days_ago(30), association="CONTRIBUTOR", id=1),
        _review("CHANGES_REQUESTED", None, id=2),
    ]
    assert review_state(reviews, DEFAULT_MEMBER_ASSOCIATIONS) is None
    assert review_state([], DEFAULT_MEMBER_ASSOCIATIONS) is None


def test_last_commit_time_takes_final_commit():
    commits = [_commit(days_ago(10)), _commit(days_ago(4)), _commit(days_ago(7))]
    assert last_commit_time(commits) == days_ago(7)
    assert last_commit_time([]) is None


def test_most_recent_warnings_newest_first_per_marker():
    comments = [
        _comment(f"{Marker.stale_pr.encode()}\nold warning", days_ago(20), id=1),
        _comment("just chatting", days_ago(15), id=2),
        _comment(f"{Marker.merge_conflicts.encode()}\nconflicts", days_ago(12), id=3),
        _comment(f"{Marker.stale_pr.encode()}\nnew warning", days_ago(5), id=4),
        _comment("mentions STALE PR without marker", days_ago(1), id=5),
    ]
    record = most_recent_warnings(comments)
    assert record.get(Marker.stale_pr) == days_ago(5)
    assert record.get(Marker.merge_conflicts) == days_ago(12)

    # Scanning the same log again gives the same record
    assert most_recent_warnings(comments) == record


def test_most_recent_warnings_empty():
    record = most_recent_warnings([_comment(None, days_ago(1))])
    assert record.get(Marker.stale_pr) is None
    assert str(record) == "(none)"


def test_latest_member_engagement():
    comments = [
        _comment("please rebase", days_ago(8), association="OWNER", id=1),
        _comment("drive-by", days_ago(1), association="NONE", id=2),
        _comment("bot says hi", days_ago(1), association="MEMBER", user_type="Bot", id=3),
        _comment(
            f"{Marker.stale_pr.encode()}\nwarning", days_ago(2), association="MEMBER", id=4
        ),
    ]
    reviews = [_review("COMMENTED", days_ago(6), association="COLLABORATOR")]

    assert (
        latest_member_engagement(comments, reviews, DEFAULT_MEMBER_ASSOCIATIONS)
        == days_ago(6)
    )
    assert (
        latest_member_engagement(comments, [], DEFAULT_MEMBER_ASSOCIATIONS)
        == days_ago(8)
    )
    assert latest_member_engagement([], [], DEFAULT_MEMBER_ASSOCIATIONS) is None


def test_own_unmarked_comments_are_not_engagement():
    close_message = "No more work is being done on this PR. It will now be closed."
    comments = [
        _comment("please rebase", days_ago(8), association="MEMBER", id=1),
        _comment(f"{close_message}\n", days_ago(1), association="MEMBER", id=2),
    ]

    assert latest_member_engagement(
        comments, [], DEFAULT_MEMBER_ASSOCIATIONS
    ) == days_ago(1)
    assert latest_member_engagement(
        comments, [], DEFAULT_MEMBER_ASSOCIATIONS, own_messages={close_message}
    ) == days_ago(8)
