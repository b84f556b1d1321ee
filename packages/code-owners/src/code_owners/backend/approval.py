from __future__ import annotations

from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from ..accounts import AccountDirectory, PermissionChecker
from ..config import ProjectConfigStore, RequiredApproval
from ..errors import TreeReadError, UnsupportedRevisionError
from ..logging import get_logger
from .changes import Change, ChangedFile, ChangedFilesProvider
from .hierarchy import OwnerConfigHierarchy, OwnerConfigScanner
from .loader import OwnerConfigCache
from .models import OwnerReference
from .resolver import OwnerResolver, PathOwners
from .status import FileStatus, OwnerStatus, PathStatus
from .tree import TreeReader

logger = get_logger(__name__)


@dataclass(frozen=True)
class StatusContext:
    """Everything about a change that is fixed while its files are evaluated."""

    project: str
    branch: str
    revision: str | None
    uploader: int
    reviewers: frozenset[int]
    approvers: frozenset[int]
    has_override: bool
    bootstrapping: bool
    global_owners: tuple[OwnerReference, ...] = ()


@dataclass(frozen=True)
class FoldStep:
    status: OwnerStatus
    keep_walking: bool
    reason: str | None = None


def fold_level(status: OwnerStatus, owners: PathOwners, ctx: StatusContext) -> FoldStep:
    """Fold one level's owners into the status accumulated so far."""
    if owners.contains(ctx.uploader):
        return FoldStep(OwnerStatus.APPROVED, False, "the patch set uploader is a code owner")
    if not owners.intersects(ctx.reviewers):
        return FoldStep(status, True)
    if owners.intersects(ctx.approvers):
        return FoldStep(OwnerStatus.APPROVED, False, "a code owner approved the change")
    return FoldStep(max(status, OwnerStatus.PENDING), True, "a code owner is a reviewer")


class ApprovalEngine:
    """Computes per-file code owner statuses for the current revision of a change."""

    def __init__(
        self,
        *,
        tree: TreeReader,
        accounts: AccountDirectory,
        permissions: PermissionChecker,
        changed_files: ChangedFilesProvider,
        project_configs: ProjectConfigStore | None = None,
        cache: OwnerConfigCache | None = None,
        hierarchy: OwnerConfigHierarchy | None = None,
    ) -> None:
        self.tree = tree
        self.permissions = permissions
        self.changed_files = changed_files
        self.project_configs = project_configs or ProjectConfigStore()
        self.hierarchy = hierarchy or OwnerConfigHierarchy(
            tree=tree, project_configs=self.project_configs, cache=cache
        )
        self.scanner = OwnerConfigScanner(tree=tree, hierarchy=self.hierarchy)
        self.resolver = OwnerResolver(accounts=accounts, enforce_visibility=False)

    def is_submittable(self, change: Change) -> bool:
        logger.debug("checking if change %d in project %s is submittable", change.number, change.project)
        submittable = all(fs.is_approved for fs in self.file_statuses(change))
        logger.debug(
            "change %d in project %s %s submittable",
            change.number,
            change.project,
            "is" if submittable else "is not",
        )
        return submittable

    def file_statuses(
        self,
        change: Change,
        *,
        revision: str | None = None,
        max_workers: int = 1,
    ) -> Iterator[FileStatus]:
        if revision is not None and revision != change.current_revision:
            raise UnsupportedRevisionError(
                f"code owner statuses are only available for the current revision "
                f"{change.current_revision} of change {change.number}"
            )

        config = self.project_configs.get(change.project)
        if config.is_disabled(change.branch):
            logger.debug("code owners disabled for %s:%s", change.project, change.branch)
            return iter(())

        ctx = self._context(change)
        files = self.changed_files.changed_files(
            change.project, change.current_revision, change.base_revision
        )
        if max_workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                return iter(list(pool.map(lambda f: self._file_status(ctx, f), files)))
        return (self._file_status(ctx, f) for f in files)

    def owned_paths(
        self,
        change: Change,
        account_id: int,
        *,
        start: int = 0,
        limit: int | None = None,
    ) -> list[str]:
        """Touched paths of the change that `account_id` owns, sorted."""
        config = self.project_configs.get(change.project)
        if config.is_disabled(change.branch):
            return []
        ctx = self._context(change)
        files = self.changed_files.changed_files(
            change.project, change.current_revision, change.base_revision
        )
        paths = sorted({p for f in files for p in f.paths_requiring_approval()})
        owned = [p for p in paths if self._is_owner(ctx, p, account_id)]
        end = None if limit is None else start + limit
        return owned[start:end]

    def _context(self, change: Change) -> StatusContext:
        config = self.project_configs.get(change.project)
        required = config.required(change.project)
        override = config.override(change.project)
        logger.debug("required approval = %s, override approval = %s", required, override)

        has_override = override is not None and self._has_approval(change, override)
        logger.debug("has override = %s", has_override)

        revision: str | None = None
        bootstrapping = False
        if not has_override:
            revision = self.tree.branch_head(change.project, change.branch)
            if revision is None:
                raise TreeReadError(f"branch {change.branch} not found in project {change.project}")
            bootstrapping = not self.scanner.contains_any_config(change.project, change.branch)
            logger.debug("dest branch %s is at %s, bootstrapping = %s", change.branch, revision, bootstrapping)

        approvers = frozenset(a.account_id for a in change.approvals if required.is_approved_by(a))
        # Voting on a change makes the voter a reviewer.
        reviewers = frozenset(change.reviewers) | approvers
        logger.debug("reviewers = %s, approvers = %s", sorted(reviewers), sorted(approvers))

        return StatusContext(
            project=change.project,
            branch=change.branch,
            revision=revision,
            uploader=change.uploader,
            reviewers=reviewers,
            approvers=approvers,
            has_override=has_override,
            bootstrapping=bootstrapping,
            global_owners=tuple(OwnerReference(email=e) for e in config.global_owners),
        )

    @staticmethod
    def _has_approval(change: Change, approval: RequiredApproval) -> bool:
        return any(approval.is_approved_by(a) for a in change.approvals)

    def _file_status(self, ctx: StatusContext, changed_file: ChangedFile) -> FileStatus:
        logger.debug("computing file status for %s", changed_file)
        new_status = None
        if changed_file.new_path is not None:
            new_status = self._path_status(ctx, changed_file.new_path)
        old_status = None
        if changed_file.requires_old_path_approval and changed_file.old_path is not None:
            old_status = self._path_status(ctx, changed_file.old_path)
        return FileStatus(changed_file=changed_file, new_path_status=new_status, old_path_status=old_status)

    def _path_status(self, ctx: StatusContext, path: str) -> PathStatus:
        if ctx.has_override:
            logger.debug("%s is approved since an override is present", path)
            return PathStatus(path=path, status=OwnerStatus.APPROVED, reason="override approval is present")
        if ctx.bootstrapping:
            return self._bootstrap_status(ctx, path)
        return self._regular_status(ctx, path)

    def _is_project_owner(self, ctx: StatusContext, account_id: int) -> bool:
        return self.permissions.is_project_owner(account_id, ctx.project)

    def _bootstrap_status(self, ctx: StatusContext, path: str) -> PathStatus:
        # No config anywhere in the branch yet: project owners act as code owners.
        if self._is_project_owner(ctx, ctx.uploader):
            status, reason = OwnerStatus.APPROVED, "the patch set uploader is a project owner"
        elif any(self._is_project_owner(ctx, a) for a in sorted(ctx.approvers)):
            status, reason = OwnerStatus.APPROVED, "a project owner approved the change"
        elif any(self._is_project_owner(ctx, r) for r in sorted(ctx.reviewers)):
            status, reason = OwnerStatus.PENDING, "a project owner is a reviewer"
        else:
            status, reason = OwnerStatus.INSUFFICIENT_REVIEWERS, "no project owner is a reviewer"
        logger.debug("status for %s is %s (bootstrapping): %s", path, status.name, reason)
        return PathStatus(path=path, status=status, reason=reason)

    def _regular_status(self, ctx: StatusContext, path: str) -> PathStatus:
        if ctx.revision is None:
            raise TreeReadError(
                f"no revision of branch {ctx.branch} in project {ctx.project} to read configs from"
            )
        status = OwnerStatus.INSUFFICIENT_REVIEWERS
        reason = "no code owner is a reviewer"
        ignores_global = False
        decided = False

        for level in self.hierarchy.iter_levels(
            project=ctx.project, branch=ctx.branch, revision=ctx.revision, path=path
        ):
            owners = self.resolver.resolve_path_owners(level.config, path)
            logger.debug(
                "code owners of %s in %s = %s", path, level.config.key.folder_path, sorted(owners.accounts)
            )
            ignores_global = ignores_global or level.ignores_global_owners(path)
            step = fold_level(status, owners, ctx)
            status = step.status
            if step.reason is not None:
                reason = f"{step.reason} ({level.config.key.folder_path})"
            if not step.keep_walking:
                decided = True
                break

        if not decided and not ignores_global and ctx.global_owners:
            step = fold_level(status, self.resolver.resolve_references(ctx.global_owners), ctx)
            status = step.status
            if step.reason is not None:
                reason = f"{step.reason} (global code owners)"

        logger.debug("status for %s is %s: %s", path, status.name, reason)
        return PathStatus(path=path, status=status, reason=reason)

    def _is_owner(self, ctx: StatusContext, path: str, account_id: int) -> bool:
        if ctx.bootstrapping:
            return self._is_project_owner(ctx, account_id)
        if ctx.revision is None:
            revision = self.tree.branch_head(ctx.project, ctx.branch)
            if revision is None:
                raise TreeReadError(f"branch {ctx.branch} not found in project {ctx.project}")
        else:
            revision = ctx.revision
        ignores_global = False
        for level in self.hierarchy.iter_levels(
            project=ctx.project, branch=ctx.branch, revision=revision, path=path
        ):
            if self.resolver.resolve_path_owners(level.config, path).contains(account_id):
                return True
            ignores_global = ignores_global or level.ignores_global_owners(path)
        if ignores_global or not ctx.global_owners:
            return False
        return self.resolver.resolve_references(ctx.global_owners).contains(account_id)
