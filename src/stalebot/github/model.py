from datetime import datetime
from typing import List, Literal, Optional

import pydantic


class Model(pydantic.BaseModel):
    pass


class User(Model):
    login: str
    type: Optional[str] = None

    @property
    def is_bot(self) -> bool:
        return self.type == "Bot"


class Label(Model):
    name: str


class PrConnection(Model):
    ref: str
    sha: str


class PullRequest(Model):
    number: int
    state: Literal["open", "closed"] = "open"
    created_at: datetime
    labels: List[Label] = pydantic.Field(default_factory=list)
    head: PrConnection
    # Only populated by the single pull request endpoint
    mergeable_state: Optional[str] = None

    @property
    def has_merge_conflicts(self) -> bool:
        return self.mergeable_state == "dirty"

    def __str__(self) -> str:
        return f"PR(#{self.number})"


class CheckRun(Model):
    name: str
    status: Literal["completed", "queued", "in_progress", "waiting", "pending", "requested"] = "queued"
    conclusion: Optional[
        Literal[
            "action_required",
            "cancelled",
            "failure",
            "neutral",
            "success",
            "skipped",
            "stale",
            "timed_out",
        ]
    ] = None
    completed_at: Optional[datetime] = None

    @property
    def is_failure(self) -> bool:
        return self.status == "completed" and self.conclusion == "failure"


class CommitStatus(Model):
    id: int
    state: Literal["failure", "pending", "success", "error"]
    context: str
    created_at: datetime
    updated_at: datetime

    @property
    def is_failure(self) -> bool:
        return self.state == "failure"


class Review(Model):
    id: int
    user: Optional[User] = None
    state: str
    author_association: str = "NONE"
    submitted_at: Optional[datetime] = None


class CommitAuthor(Model):
    name: Optional[str] = None
    date: Optional[datetime] = None


class CommitDetails(Model):
    message: str = ""
    committer: Optional[CommitAuthor] = None


class Commit(Model):
    sha: str
    commit: CommitDetails

    @property
    def committed_at(self) -> Optional[datetime]:
        if self.commit.committer is None:
            return None
        return self.commit.committer.date


class IssueComment(Model):
    id: int
    body: Optional[str] = None
    user: Optional[User] = None
    author_association: str = "NONE"
    created_at: datetime
