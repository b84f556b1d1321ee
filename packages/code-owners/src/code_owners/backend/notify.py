from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import Executor, Future
from typing import Protocol

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from ..accounts import AccountDirectory
from ..config import ProjectConfigStore
from ..errors import CodeOwnersError, TreeReadError
from ..logging import get_logger
from ..paths import tree_path
from .approval import ApprovalEngine
from .changes import Change

logger = get_logger(__name__)

MESSAGE_TAG = "autogenerated:code-owners:addReviewer"


class MessagePoster(Protocol):
    def post(self, change: Change, message: str, *, tag: str) -> None: ...


class RetryableMessageError(RuntimeError):
    pass


class ReviewerAddedNotifier:
    """Posts a change message listing the touched files each added reviewer owns."""

    def __init__(
        self,
        *,
        engine: ApprovalEngine,
        accounts: AccountDirectory,
        poster: MessagePoster,
        project_configs: ProjectConfigStore | None = None,
        executor: Executor | None = None,
        max_attempts: int = 3,
        wait: wait_base | None = None,
    ) -> None:
        self.engine = engine
        self.accounts = accounts
        self.poster = poster
        self.project_configs = project_configs or engine.project_configs
        self.executor = executor
        self.max_attempts = max_attempts
        self.wait = wait or wait_exponential(multiplier=0.5, min=0.5, max=8)

    def on_reviewers_added(self, change: Change, reviewer_ids: Iterable[int]) -> Future[None] | None:
        """Returns the scheduled task when posting asynchronously."""
        config = self.project_configs.get(change.project)
        limit = config.max_paths_in_change_messages
        if config.is_disabled(change.branch) or limit <= 0:
            return None

        reviewers = list(reviewer_ids)
        if config.enable_async_message_on_add_reviewer and self.executor is not None:
            logger.debug("schedule asynchronous posting of the change message")
            return self.executor.submit(self._post, change, reviewers, limit)
        logger.debug("post change message synchronously")
        self._post(change, reviewers, limit)
        return None

    def build_message(self, change: Change, reviewer_ids: Iterable[int], limit: int) -> str:
        parts = [self._message_for_reviewer(change, r, limit) for r in reviewer_ids]
        return "\n".join(p for p in parts if p)

    def _message_for_reviewer(self, change: Change, reviewer_id: int, limit: int) -> str | None:
        try:
            # One extra path tells whether the list was cut.
            owned = self.engine.owned_paths(change, reviewer_id, start=0, limit=limit + 1)
        except CodeOwnersError as exc:
            logger.debug(
                "couldn't compute owned paths of change %d for account %d: %s", change.number, reviewer_id, exc
            )
            return None
        if not owned:
            return None

        account = self.accounts.get(reviewer_id)
        name = account.label() if account else f"account {reviewer_id}"
        lines = [f"{name}, who was added as reviewer owns the following files:\n"]
        lines.extend(f"* {tree_path(p)}\n" for p in owned[:limit])
        if len(owned) > limit:
            lines.append("(more files)\n")
        return "".join(lines)

    def _post(self, change: Change, reviewer_ids: list[int], limit: int) -> None:
        try:
            message = self.build_message(change, reviewer_ids, limit)
            if not message:
                return
            for attempt in Retrying(
                retry=retry_if_exception_type((RetryableMessageError, TreeReadError)),
                wait=self.wait,
                stop=stop_after_attempt(self.max_attempts),
                reraise=True,
            ):
                with attempt:
                    self.poster.post(change, message, tag=MESSAGE_TAG)
        except Exception:
            logger.exception(
                "failed to post code-owners change message for reviewer on change %d in project %s",
                change.number,
                change.project,
            )
