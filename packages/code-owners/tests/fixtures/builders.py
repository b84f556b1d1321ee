from __future__ import annotations

from collections.abc import Iterable, Mapping

from code_owners.accounts import Account, InMemoryAccountDirectory, StaticPermissions
from code_owners.backend.approval import ApprovalEngine
from code_owners.backend.changes import Approval, Change, ChangedFile, ChangeKind, StaticChangedFiles
from code_owners.backend.tree import InMemoryTree
from code_owners.config import ProjectConfig, ProjectConfigStore

PROJECT = "platform/app"
BRANCH = "main"

ADMIN = 1
ALICE = 2
BOB = 3
CAROL = 4
BOT = 5


def build_directory() -> InMemoryAccountDirectory:
    return InMemoryAccountDirectory(
        [
            Account(account_id=ADMIN, emails=("admin@example.com",), display_name="Admin"),
            Account(account_id=ALICE, emails=("alice@example.com",), display_name="Alice"),
            Account(account_id=BOB, emails=("bob@example.com",), display_name="Bob"),
            Account(account_id=CAROL, emails=("carol@example.com",), display_name="Carol"),
            Account(account_id=BOT, emails=("bot@example.com",), display_name="CI Bot", service_user=True),
        ]
    )


def build_tree(files: Mapping[str, str], *, project: str = PROJECT, branch: str = BRANCH) -> tuple[InMemoryTree, str]:
    tree = InMemoryTree()
    revision = tree.commit(project, branch, files)
    return tree, revision


def modified(*paths: str) -> list[ChangedFile]:
    return [ChangedFile(old_path=p, new_path=p, kind=ChangeKind.MODIFIED) for p in paths]


def build_change(
    *,
    revision: str = "c" * 40,
    owner: int = ALICE,
    uploader: int | None = None,
    reviewers: Iterable[int] = (),
    approvals: Iterable[tuple[int, str, int]] = (),
    number: int = 1001,
) -> Change:
    return Change(
        project=PROJECT,
        branch=BRANCH,
        number=number,
        owner=owner,
        uploader=owner if uploader is None else uploader,
        current_revision=revision,
        reviewers=frozenset(reviewers),
        approvals=tuple(Approval(account_id=a, label=label, value=v) for a, label, v in approvals),
    )


def build_engine(
    tree: InMemoryTree,
    change: Change,
    files: list[ChangedFile],
    *,
    config: ProjectConfig | None = None,
    project_owners: Iterable[int] = (ADMIN,),
) -> ApprovalEngine:
    return ApprovalEngine(
        tree=tree,
        accounts=build_directory(),
        permissions=StaticPermissions({PROJECT: list(project_owners)}),
        changed_files=StaticChangedFiles({change.current_revision: files}),
        project_configs=ProjectConfigStore({PROJECT: config or ProjectConfig()}),
    )
