from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass

from ..config import ProjectConfigStore
from ..errors import ConfigParseError
from ..logging import get_logger
from ..paths import ancestor_folders, normalize_absolute_path, parent_folder
from ..parsers.registry import ConfigBackend, get_config_backend
from .loader import OwnerConfigCache, OwnerConfigLoader
from .models import ImportMode, OwnerConfig, OwnerConfigImport, OwnerConfigKey
from .tree import TreeReader

logger = get_logger(__name__)

ConfigVisitor = Callable[[OwnerConfig], bool]


@dataclass(frozen=True)
class OwnerConfigLevel:
    """One config on the way up; `distance` counts folders from the file's folder."""

    config: OwnerConfig
    distance: int

    def ignores_global_owners(self, path: str) -> bool:
        return self.config.has_matching_override(path)


class OwnerConfigHierarchy:
    """Walks code owner configs from a file's folder up to the root folder."""

    def __init__(
        self,
        *,
        tree: TreeReader,
        project_configs: ProjectConfigStore | None = None,
        cache: OwnerConfigCache | None = None,
    ) -> None:
        self.tree = tree
        self.project_configs = project_configs or ProjectConfigStore()
        self.loader = OwnerConfigLoader(tree=tree, cache=cache)
        self._diagnostics: dict[str, str] = {}

    @property
    def diagnostics(self) -> list[str]:
        """One message per broken config file seen by any walk so far."""
        return list(self._diagnostics.values())

    def backend_for(self, project: str, branch: str) -> ConfigBackend:
        return get_config_backend(self.project_configs.get(project).backend_for(branch))

    def config_file_name(self, project: str, branch: str) -> str:
        backend = self.backend_for(project, branch)
        return backend.file_name_for(self.project_configs.get(project).file_extension)

    def iter_levels(
        self,
        *,
        project: str,
        branch: str,
        revision: str,
        path: str,
    ) -> Iterator[OwnerConfigLevel]:
        absolute_path = normalize_absolute_path(path)
        backend = self.backend_for(project, branch)
        file_name = self.config_file_name(project, branch)
        max_depth = self.project_configs.get(project).max_import_depth

        for distance, folder in enumerate(ancestor_folders(absolute_path)):
            key = OwnerConfigKey(project=project, branch=branch, folder_path=folder, file_name=file_name)
            config = self._load_or_skip(key, revision=revision, backend=backend)
            if config is None:
                continue

            resolved = self._expand_imports(config, revision=revision, max_depth=max_depth)
            level = OwnerConfigLevel(config=resolved, distance=distance)
            yield level

            if resolved.ignore_parent_owners:
                logger.debug("%s ignores parent owners, stopping walk for %s", folder, absolute_path)
                return
            if resolved.has_matching_override(absolute_path):
                logger.debug(
                    "%s has a matching set that ignores global and parent owners for %s",
                    folder,
                    absolute_path,
                )
                return

    def visit(
        self,
        *,
        project: str,
        branch: str,
        revision: str,
        path: str,
        visitor: ConfigVisitor,
    ) -> None:
        for level in self.iter_levels(project=project, branch=branch, revision=revision, path=path):
            if not visitor(level.config):
                return

    def _load_or_skip(
        self,
        key: OwnerConfigKey,
        *,
        revision: str,
        backend: ConfigBackend,
    ) -> OwnerConfig | None:
        try:
            return self.loader.load(key, revision=revision, backend=backend)
        except ConfigParseError as exc:
            # A broken file contributes no owners; the walk carries on upward.
            message = exc.describe()
            where = f"{key.project}:{key.branch}:{exc.file_path}"
            if where in self._diagnostics:
                logger.debug("%s", message)
            else:
                logger.warning("%s", message)
            self._diagnostics[where] = message
            return None

    def _expand_imports(
        self,
        config: OwnerConfig,
        *,
        revision: str,
        max_depth: int,
    ) -> OwnerConfig:
        if not config.imports:
            return config

        owner_sets = list(config.owner_sets)
        ignore_parent = config.ignore_parent_owners
        pending: list[tuple[OwnerConfigImport, OwnerConfigKey, str, int]] = [
            (imp, config.key, revision, 1) for imp in config.imports
        ]
        while pending:
            imp, importing_key, importing_revision, depth = pending.pop(0)
            if depth > max_depth:
                logger.debug(
                    "import depth %d exceeds %d, not importing %s", depth, max_depth, imp.file_path
                )
                continue

            imported = self._load_import(imp, importing_key, importing_revision)
            if imported is None:
                continue
            imported_config, imported_revision = imported

            if imp.mode == ImportMode.ALL:
                ignore_parent = ignore_parent or imported_config.ignore_parent_owners
                owner_sets.extend(imported_config.owner_sets)
            else:
                owner_sets.extend(s for s in imported_config.owner_sets if s.is_global)

            for nested in imported_config.imports:
                mode = ImportMode.GLOBAL_ONLY if imp.mode == ImportMode.GLOBAL_ONLY else nested.mode
                pending.append(
                    (
                        nested.model_copy(update={"mode": mode}),
                        imported_config.key,
                        imported_revision,
                        depth + 1,
                    )
                )

        return config.model_copy(
            update={
                "owner_sets": tuple(owner_sets),
                "ignore_parent_owners": ignore_parent,
                "imports": (),
            }
        )

    def _load_import(
        self,
        imp: OwnerConfigImport,
        importing_key: OwnerConfigKey,
        importing_revision: str,
    ) -> tuple[OwnerConfig, str] | None:
        project = imp.project or importing_key.project
        branch = imp.branch or importing_key.branch
        if project == importing_key.project and branch == importing_key.branch:
            revision: str | None = importing_revision
        else:
            revision = self.tree.branch_head(project, branch)
        if revision is None:
            logger.debug("imported branch %s:%s does not exist", project, branch)
            return None

        folder = parent_folder(imp.file_path)
        file_name = imp.file_path.rsplit("/", 1)[-1]
        key = OwnerConfigKey(project=project, branch=branch, folder_path=folder, file_name=file_name)
        config = self._load_or_skip(key, revision=revision, backend=self.backend_for(project, branch))
        if config is None:
            logger.debug("imported config %s:%s%s not found", project, branch, imp.file_path)
            return None
        return config, revision


class OwnerConfigScanner:
    """Answers whether a branch contains any code owner config file at all."""

    def __init__(self, *, tree: TreeReader, hierarchy: OwnerConfigHierarchy) -> None:
        self.tree = tree
        self.hierarchy = hierarchy

    def contains_any_config(self, project: str, branch: str) -> bool:
        revision = self.tree.branch_head(project, branch)
        if revision is None:
            return False
        file_name = self.hierarchy.config_file_name(project, branch)
        return any(p.rsplit("/", 1)[-1] == file_name for p in self.tree.list_files(project, revision))
