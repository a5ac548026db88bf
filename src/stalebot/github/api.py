from typing import AsyncIterator, List, Tuple
import logging

from gidgethub.abc import GitHubAPI

from stalebot.github.model import (
    CheckRun,
    Commit,
    CommitStatus,
    IssueComment,
    PullRequest,
    Review,
)
from stalebot.metric import record_api_call

logger = logging.getLogger("stalebot")


class API:
    gh: GitHubAPI
    repo: str
    dry_run: bool

    call_count: int
    # (method, url, payload) of every write skipped because of dry run
    suppressed: List[Tuple[str, str, dict]]

    def __init__(self, gh: GitHubAPI, repo: str, dry_run: bool = False):
        self.gh = gh
        self.repo = repo
        self.dry_run = dry_run
        self.call_count = 0
        self.suppressed = []

    @property
    def repo_url(self) -> str:
        return f"/repos/{self.repo}"

    def _count(self, endpoint: str) -> None:
        self.call_count += 1
        record_api_call(endpoint)

    async def get_pulls(self) -> AsyncIterator[PullRequest]:
        self._count("pulls")
        url = f"{self.repo_url}/pulls?state=open&sort=created&direction=asc"
        logger.debug("Get open pulls %s", url)
        async for item in self.gh.getiter(url):
            yield PullRequest.model_validate(item)

    async def get_pull(self, number: int) -> PullRequest:
        self._count("pulls")
        url = f"{self.repo_url}/pulls/{number}"
        logger.debug("Get pull %s", url)
        return PullRequest.model_validate(await self.gh.getitem(url))

    async def get_check_runs_for_ref(self, ref: str) -> AsyncIterator[CheckRun]:
        self._count("check-runs")
        url = f"{self.repo_url}/commits/{ref}/check-runs"
        logger.debug("Get check runs for ref %s", url)
        async for item in self.gh.getiter(url, iterable_key="check_runs"):
            yield CheckRun.model_validate(item)

    async def get_statuses_for_ref(self, ref: str) -> AsyncIterator[CommitStatus]:
        self._count("statuses")
        url = f"{self.repo_url}/commits/{ref}/statuses"
        logger.debug("Get commit statuses for ref %s", url)
        async for item in self.gh.getiter(url):
            yield CommitStatus.model_validate(item)

    async def get_reviews(self, number: int) -> AsyncIterator[Review]:
        self._count("reviews")
        url = f"{self.repo_url}/pulls/{number}/reviews"
        logger.debug("Get reviews %s", url)
        async for item in self.gh.getiter(url):
            yield Review.model_validate(item)

    async def get_commits(self, number: int) -> AsyncIterator[Commit]:
        self._count("commits")
        url = f"{self.repo_url}/pulls/{number}/commits"
        logger.debug("Get commits %s", url)
        async for item in self.gh.getiter(url):
            yield Commit.model_validate(item)

    async def get_comments(self, number: int) -> AsyncIterator[IssueComment]:
        self._count("comments")
        url = f"{self.repo_url}/issues/{number}/comments"
        logger.debug("Get comments %s", url)
        async for item in self.gh.getiter(url):
            yield IssueComment.model_validate(item)

    def _suppress(self, method: str, url: str, data: dict) -> bool:
        if not self.dry_run:
            return False
        logger.info("DRY RUN: %s %s %s", method, url, data)
        self.suppressed.append((method, url, data))
        return True

    async def add_comment(self, number: int, body: str) -> None:
        url = f"{self.repo_url}/issues/{number}/comments"
        data = {"body": body}
        if self._suppress("POST", url, data):
            return
        self._count("comments")
        logger.debug("Commenting on #%d", number)
        await self.gh.post(url, data=data)

    async def add_labels(self, number: int, labels: List[str]) -> None:
        url = f"{self.repo_url}/issues/{number}/labels"
        data = {"labels": labels}
        if self._suppress("POST", url, data):
            return
        self._count("labels")
        logger.debug("Adding labels %s to #%d", labels, number)
        await self.gh.post(url, data=data)

    async def close_pull(self, number: int) -> None:
        url = f"{self.repo_url}/issues/{number}"
        data = {"state": "closed"}
        if self._suppress("PATCH", url, data):
            return
        self._count("issues")
        logger.debug("Closing #%d", number)
        await self.gh.patch(url, data=data)
