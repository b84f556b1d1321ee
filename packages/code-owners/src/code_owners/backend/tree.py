from __future__ import annotations

import hashlib
import subprocess
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Protocol

from ..errors import TreeReadError
from ..logging import get_logger
from ..paths import normalize_absolute_path, tree_path
from .changes import ChangedFile, ChangeKind

logger = get_logger(__name__)

WORKTREE_REVISION = "0" * 40


class TreeReader(Protocol):
    def branch_head(self, project: str, branch: str) -> str | None: ...

    def contains_revision(self, project: str, branch: str, revision: str) -> bool: ...

    def read_file(self, project: str, revision: str, path: str) -> bytes | None: ...

    def list_files(self, project: str, revision: str) -> Iterator[str]: ...


class InMemoryTree:
    """Versioned tree held in memory; every commit yields a new revision."""

    def __init__(self) -> None:
        self._snapshots: dict[tuple[str, str], dict[str, bytes]] = {}
        self._history: dict[tuple[str, str], list[str]] = {}
        self._counter = 0

    def commit(
        self,
        project: str,
        branch: str,
        files: Mapping[str, str | bytes | None],
    ) -> str:
        """Apply `files` on top of the branch head (None deletes a path)."""
        history = self._history.setdefault((project, branch), [])
        snapshot = dict(self._snapshots[(project, history[-1])]) if history else {}
        for path, content in files.items():
            key = normalize_absolute_path(path)
            if content is None:
                snapshot.pop(key, None)
            else:
                snapshot[key] = content.encode("utf-8") if isinstance(content, str) else content
        self._counter += 1
        digest = hashlib.sha1(f"{project}|{branch}|{self._counter}".encode("utf-8")).hexdigest()
        self._snapshots[(project, digest)] = snapshot
        history.append(digest)
        return digest

    def branch_head(self, project: str, branch: str) -> str | None:
        history = self._history.get((project, branch))
        return history[-1] if history else None

    def contains_revision(self, project: str, branch: str, revision: str) -> bool:
        return revision in self._history.get((project, branch), [])

    def read_file(self, project: str, revision: str, path: str) -> bytes | None:
        snapshot = self._snapshots.get((project, revision))
        if snapshot is None:
            raise TreeReadError(f"unknown revision {revision} in project {project}")
        return snapshot.get(normalize_absolute_path(path))

    def list_files(self, project: str, revision: str) -> Iterator[str]:
        snapshot = self._snapshots.get((project, revision))
        if snapshot is None:
            raise TreeReadError(f"unknown revision {revision} in project {project}")
        yield from sorted(snapshot)


class CheckoutTree:
    """Working tree of a checkout; it has exactly one revision."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def branch_head(self, project: str, branch: str) -> str | None:
        return WORKTREE_REVISION

    def contains_revision(self, project: str, branch: str, revision: str) -> bool:
        return revision == WORKTREE_REVISION

    def read_file(self, project: str, revision: str, path: str) -> bytes | None:
        p = self.root / tree_path(path)
        try:
            if not p.is_file():
                return None
            return p.read_bytes()
        except OSError as exc:
            raise TreeReadError(f"failed to read {p}: {exc}") from exc

    def list_files(self, project: str, revision: str) -> Iterator[str]:
        if not self.root.is_dir():
            raise TreeReadError(f"checkout not found: {self.root}")
        for p in sorted(self.root.rglob("*")):
            rel = p.relative_to(self.root)
            if rel.parts and rel.parts[0] == ".git":
                continue
            if p.is_file():
                yield "/" + rel.as_posix()


_GIT_KINDS = {
    "A": ChangeKind.ADDED,
    "M": ChangeKind.MODIFIED,
    "T": ChangeKind.MODIFIED,
    "D": ChangeKind.DELETED,
    "R": ChangeKind.RENAMED,
    "C": ChangeKind.COPIED,
}


class GitTree:
    """Reads local git repositories through the `git` executable."""

    def __init__(self, repos: Mapping[str, str | Path]) -> None:
        self.repos = {project: Path(path) for project, path in repos.items()}

    def _repo(self, project: str) -> Path:
        repo = self.repos.get(project)
        if repo is None:
            raise TreeReadError(f"no repository configured for project {project}")
        return repo

    def _git(self, project: str, *args: str, check: bool = True) -> subprocess.CompletedProcess[bytes]:
        cmd = ["git", "-C", str(self._repo(project)), *args]
        try:
            result = subprocess.run(cmd, check=False, capture_output=True)
        except OSError as exc:
            raise TreeReadError(f"failed to run git: {exc}") from exc
        if check and result.returncode != 0:
            err = result.stderr.decode("utf-8", errors="replace").strip()
            raise TreeReadError(f"git {' '.join(args)} failed: {err}")
        return result

    def branch_head(self, project: str, branch: str) -> str | None:
        ref = branch if branch.startswith("refs/") else f"refs/heads/{branch}"
        result = self._git(project, "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.decode("ascii").strip()

    def contains_revision(self, project: str, branch: str, revision: str) -> bool:
        head = self.branch_head(project, branch)
        if head is None:
            return False
        result = self._git(project, "merge-base", "--is-ancestor", revision, head, check=False)
        return result.returncode == 0

    def read_file(self, project: str, revision: str, path: str) -> bytes | None:
        rel = tree_path(path)
        listing = self._git(project, "ls-tree", revision, "--", rel)
        if not listing.stdout.strip():
            return None
        mode = listing.stdout.split(b" ", 1)[0]
        if mode == b"040000":
            return None
        return self._git(project, "cat-file", "blob", f"{revision}:{rel}").stdout

    def list_files(self, project: str, revision: str) -> Iterator[str]:
        out = self._git(project, "ls-tree", "-r", "--name-only", "-z", revision).stdout
        for raw in out.split(b"\0"):
            if raw:
                yield "/" + raw.decode("utf-8")

    def changed_files(
        self, project: str, revision: str, base_revision: str | None = None
    ) -> list[ChangedFile]:
        args = ["diff-tree", "--no-commit-id", "-r", "-M", "-C", "--name-status", "-z"]
        args += [base_revision, revision] if base_revision else ["--root", revision]
        fields = [f.decode("utf-8") for f in self._git(project, *args).stdout.split(b"\0") if f]
        out: list[ChangedFile] = []
        i = 0
        while i < len(fields):
            letter = fields[i][:1]
            kind = _GIT_KINDS.get(letter)
            if kind is None:
                logger.debug("ignoring git status %s", fields[i])
                i += 2
                continue
            if kind in (ChangeKind.RENAMED, ChangeKind.COPIED):
                old, new = fields[i + 1], fields[i + 2]
                out.append(ChangedFile(old_path="/" + old, new_path="/" + new, kind=kind))
                i += 3
            elif kind == ChangeKind.DELETED:
                out.append(ChangedFile(old_path="/" + fields[i + 1], kind=kind))
                i += 2
            else:
                path = "/" + fields[i + 1]
                old_path = path if kind == ChangeKind.MODIFIED else None
                out.append(ChangedFile(old_path=old_path, new_path=path, kind=kind))
                i += 2
        return out
