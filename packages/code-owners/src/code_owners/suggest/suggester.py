from __future__ import annotations

import random
import re
from collections.abc import Iterable

from pydantic import BaseModel, Field

from ..accounts import AccountDirectory, VisibilityChecker
from ..config import ProjectConfigStore
from ..errors import InvalidRevisionError, TreeReadError
from ..logging import get_logger
from ..paths import ancestor_folders, normalize_absolute_path
from ..backend.changes import Change
from ..backend.hierarchy import OwnerConfigHierarchy
from ..backend.models import NEVER_SUGGEST, OwnerReference
from ..backend.resolver import OwnerResolver, PathOwners
from ..backend.tree import TreeReader
from .scores import (
    IS_REVIEWER_VALUE,
    NO_REVIEWER_VALUE,
    SCORE_WEIGHTS,
    OwnerScore,
    distance_score,
    linear_score,
)

logger = get_logger(__name__)

DEFAULT_LIMIT = 10

_REVISION_RE = re.compile(r"^[0-9a-f]{40}$")


class SuggestedOwner(BaseModel):
    account_id: int
    email: str | None = None
    display_name: str | None = None
    score: float
    scores: dict[str, float] = Field(default_factory=dict)


class SuggestionResult(BaseModel):
    path: str
    owners: list[SuggestedOwner] = Field(default_factory=list)
    owned_by_all_users: bool = False
    debug_logs: list[str] = Field(default_factory=list)


class OwnerSuggester:
    """Ranks the code owners of a path for display as reviewer suggestions."""

    def __init__(
        self,
        *,
        tree: TreeReader,
        accounts: AccountDirectory,
        visibility: VisibilityChecker | None = None,
        viewer: int | None = None,
        project_configs: ProjectConfigStore | None = None,
        hierarchy: OwnerConfigHierarchy | None = None,
    ) -> None:
        self.tree = tree
        self.accounts = accounts
        self.project_configs = project_configs or ProjectConfigStore()
        self.hierarchy = hierarchy or OwnerConfigHierarchy(tree=tree, project_configs=self.project_configs)
        self.resolver = OwnerResolver(accounts=accounts, visibility=visibility, viewer=viewer)

    def suggest_for_change(
        self,
        change: Change,
        path: str,
        *,
        limit: int = DEFAULT_LIMIT,
    ) -> SuggestionResult:
        revision = self.tree.branch_head(change.project, change.branch)
        if revision is None:
            raise TreeReadError(f"branch {change.branch} not found in project {change.project}")
        reviewers = frozenset(change.reviewers)
        return self._suggest(
            project=change.project,
            branch=change.branch,
            revision=revision,
            path=path,
            seed=change.number,
            limit=limit,
            reviewers=reviewers,
            change_owner=change.owner,
        )

    def suggest_for_branch(
        self,
        project: str,
        branch: str,
        path: str,
        *,
        revision: str | None = None,
        seed: int | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> SuggestionResult:
        if revision is not None:
            self._validate_revision(project, branch, revision)
        else:
            revision = self.tree.branch_head(project, branch)
            if revision is None:
                raise InvalidRevisionError(f"unknown branch {branch}")
        return self._suggest(
            project=project,
            branch=branch,
            revision=revision,
            path=path,
            seed=seed,
            limit=limit,
        )

    def _validate_revision(self, project: str, branch: str, revision: str) -> None:
        if not _REVISION_RE.match(revision):
            raise InvalidRevisionError("invalid revision")
        if not self.tree.contains_revision(project, branch, revision):
            raise InvalidRevisionError("unknown revision")

    def _suggest(
        self,
        *,
        project: str,
        branch: str,
        revision: str,
        path: str,
        seed: int | None,
        limit: int,
        reviewers: frozenset[int] | None = None,
        change_owner: int | None = None,
    ) -> SuggestionResult:
        absolute_path = normalize_absolute_path(path)
        result = SuggestionResult(path=absolute_path)
        config = self.project_configs.get(project)
        if config.is_disabled(branch):
            result.debug_logs.append(f"code owners functionality is disabled for branch {branch}")
            return result

        max_distance = len(ancestor_folders(absolute_path))
        distances: dict[int, int] = {}
        never_suggest: set[int] = set()
        ignores_global = False

        for level in self.hierarchy.iter_levels(
            project=project, branch=branch, revision=revision, path=absolute_path
        ):
            owners = self.resolver.resolve_path_owners(level.config, absolute_path)
            self._collect(owners, level.distance, distances, never_suggest, result)
            ignores_global = ignores_global or level.ignores_global_owners(absolute_path)

        if not ignores_global and config.global_owners:
            refs = [OwnerReference(email=e) for e in config.global_owners]
            self._collect(self.resolver.resolve_references(refs), max_distance, distances, never_suggest, result)

        candidates = self._filter(
            list(distances), change_owner=change_owner, never_suggest=never_suggest, debug_logs=result.debug_logs
        )

        scored: list[SuggestedOwner] = []
        for account_id in candidates:
            features = {OwnerScore.DISTANCE.value: distance_score(distances[account_id], max_distance)}
            weights = {OwnerScore.DISTANCE.value: SCORE_WEIGHTS[OwnerScore.DISTANCE]}
            if reviewers is not None:
                features[OwnerScore.IS_REVIEWER.value] = (
                    IS_REVIEWER_VALUE if account_id in reviewers else NO_REVIEWER_VALUE
                )
                weights[OwnerScore.IS_REVIEWER.value] = SCORE_WEIGHTS[OwnerScore.IS_REVIEWER]
            account = self.accounts.get(account_id)
            scored.append(
                SuggestedOwner(
                    account_id=account_id,
                    email=account.emails[0] if account and account.emails else None,
                    display_name=account.display_name if account else None,
                    score=linear_score(features, weights),
                    scores=features,
                )
            )

        result.owners = _rank(scored, seed=seed)[: max(limit, 0)]
        logger.debug(
            "suggested %d code owners for %s in %s:%s", len(result.owners), absolute_path, project, branch
        )
        return result

    def _collect(
        self,
        owners: PathOwners,
        distance: int,
        distances: dict[int, int],
        never_suggest: set[int],
        result: SuggestionResult,
    ) -> None:
        if owners.owned_by_all_users:
            result.owned_by_all_users = True
        for email in owners.unresolved:
            result.debug_logs.append(f"cannot resolve code owner email {email}")
        for account_id in owners.accounts:
            if account_id not in distances or distance < distances[account_id]:
                distances[account_id] = distance
            if owners.has_annotation(account_id, NEVER_SUGGEST):
                never_suggest.add(account_id)

    def _filter(
        self,
        account_ids: Iterable[int],
        *,
        change_owner: int | None,
        never_suggest: set[int],
        debug_logs: list[str],
    ) -> list[int]:
        kept: list[int] = []
        for account_id in sorted(account_ids):
            if change_owner is not None and account_id == change_owner:
                debug_logs.append(f"filtering out account {account_id} because this code owner is the change owner")
                continue
            if self.accounts.is_service_user(account_id):
                debug_logs.append(f"filtering out account {account_id} because this code owner is a service user")
                continue
            kept.append(account_id)

        # NEVER_SUGGEST owners are still returned when nobody else is left.
        suggestable = [a for a in kept if a not in never_suggest]
        if not suggestable:
            return kept
        for account_id in kept:
            if account_id in never_suggest:
                debug_logs.append(
                    f"filtering out account {account_id} because this code owner is annotated with "
                    f"{NEVER_SUGGEST.key}"
                )
        return suggestable


def _rank(owners: list[SuggestedOwner], *, seed: int | None) -> list[SuggestedOwner]:
    """Highest score first; equal scores in a seeded random order."""
    shuffled = sorted(owners, key=lambda o: o.account_id)
    random.Random(seed).shuffle(shuffled)
    return sorted(shuffled, key=lambda o: o.score, reverse=True)
