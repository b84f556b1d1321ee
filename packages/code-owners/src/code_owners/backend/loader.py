from __future__ import annotations

import threading
from dataclasses import dataclass

from ..errors import ConfigParseError
from ..logging import get_logger
from ..parsers.registry import ConfigBackend
from .models import OwnerConfig, OwnerConfigKey
from .tree import TreeReader

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheKey:
    project: str
    branch: str
    revision: str
    file_path: str
    backend_id: str


_MISSING = object()


class OwnerConfigCache:
    """Read-through cache of parsed configs.

    Entries are keyed by revision, so they never go stale; `invalidate` only
    exists to bound memory when a project's branches move. Parse failures are
    cached too and raised again on every hit.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, OwnerConfig | ConfigParseError | None] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> object:
        with self._lock:
            return self._entries.get(key, _MISSING)

    def put(self, key: CacheKey, config: OwnerConfig | ConfigParseError | None) -> None:
        with self._lock:
            self._entries[key] = config

    def invalidate(self, project: str | None = None) -> int:
        with self._lock:
            if project is None:
                dropped = len(self._entries)
                self._entries.clear()
                return dropped
            stale = [k for k in self._entries if k.project == project]
            for k in stale:
                del self._entries[k]
            return len(stale)

    def __len__(self) -> int:
        return len(self._entries)


class OwnerConfigLoader:
    def __init__(self, *, tree: TreeReader, cache: OwnerConfigCache | None = None) -> None:
        self.tree = tree
        self.cache = cache if cache is not None else OwnerConfigCache()

    def load(
        self,
        key: OwnerConfigKey,
        *,
        revision: str,
        backend: ConfigBackend,
    ) -> OwnerConfig | None:
        """Parsed config at `key`, or None if the folder has no config file.

        Raises ConfigParseError for a broken file and TreeReadError when the
        tree cannot be read.
        """
        file_path = key.file_path(backend.file_name)
        cache_key = CacheKey(
            project=key.project,
            branch=key.branch,
            revision=revision,
            file_path=file_path,
            backend_id=backend.backend_id,
        )
        cached = self.cache.get(cache_key)
        if isinstance(cached, ConfigParseError):
            raise cached.with_traceback(None)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]

        raw = self.tree.read_file(key.project, revision, file_path)
        if raw is None:
            self.cache.put(cache_key, None)
            return None

        try:
            config = backend.parser.parse(key, raw.decode("utf-8"))
        except (UnicodeDecodeError, ConfigParseError) as exc:
            message = f"not valid UTF-8 ({exc.reason})" if isinstance(exc, UnicodeDecodeError) else str(exc)
            error = ConfigParseError(message, project=key.project, branch=key.branch, file_path=file_path)
            self.cache.put(cache_key, error)
            raise error from exc

        for diag in backend.parser.diagnostics:
            logger.debug("%s:%s%s %s", key.project, key.branch, file_path, diag)
        self.cache.put(cache_key, config)
        return config
