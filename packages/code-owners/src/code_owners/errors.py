from __future__ import annotations


class CodeOwnersError(Exception):
    """Base class for all code owner failures."""


class ConfigParseError(CodeOwnersError):
    """A code owner config is structurally broken and cannot be parsed."""

    def __init__(
        self,
        message: str,
        *,
        project: str | None = None,
        branch: str | None = None,
        file_path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.project = project
        self.branch = branch
        self.file_path = file_path

    def describe(self) -> str:
        where = ":".join(p for p in (self.project, self.branch, self.file_path) if p)
        return f"invalid code owner config file {where}: {self}" if where else str(self)


class ConfigFormatError(CodeOwnersError, ValueError):
    """The target format cannot express the given config."""


class InvalidProjectConfigError(CodeOwnersError):
    def __init__(self, project: str, message: str) -> None:
        super().__init__(f"invalid code-owners configuration for project {project}: {message}")
        self.project = project


class InvalidPathError(CodeOwnersError, ValueError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"invalid path {path!r}: {reason}")
        self.path = path
        self.reason = reason


class InvalidRevisionError(CodeOwnersError, ValueError):
    """Caller supplied a revision that is malformed or not part of the branch."""


class UnsupportedRevisionError(CodeOwnersError):
    """Statuses are only computed for the current revision of a change."""


class TreeReadError(CodeOwnersError):
    """Reading the versioned tree failed; callers may retry."""


_CONFLICT_ERRORS = (ConfigParseError, InvalidProjectConfigError, InvalidPathError)
_BAD_REQUEST_ERRORS = (InvalidRevisionError, UnsupportedRevisionError)


def _cause_chain(exc: BaseException):  # type: ignore[no-untyped-def]
    seen: set[int] = set()
    cur: BaseException | None = exc
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        yield cur
        cur = cur.__cause__ or cur.__context__


def find_cause(exc: BaseException, kinds: tuple[type[BaseException], ...]) -> BaseException | None:
    for item in _cause_chain(exc):
        if isinstance(item, kinds):
            return item
    return None


def is_caller_error(exc: BaseException) -> bool:
    """Whether retrying with tracing would not help (the input is wrong)."""
    return find_cause(exc, _CONFLICT_ERRORS + _BAD_REQUEST_ERRORS) is not None


def http_status(exc: BaseException) -> int | None:
    if find_cause(exc, _CONFLICT_ERRORS) is not None:
        return 409
    if find_cause(exc, _BAD_REQUEST_ERRORS) is not None:
        return 400
    return None


def user_messages(exc: BaseException, *, invalid_config_info_url: str | None = None) -> list[str]:
    cause = find_cause(exc, _CONFLICT_ERRORS + _BAD_REQUEST_ERRORS)
    if cause is None:
        return []
    messages = [str(cause)]
    if isinstance(cause, ConfigParseError) and invalid_config_info_url:
        messages.append(f"For help check {invalid_config_info_url}")
    return messages
