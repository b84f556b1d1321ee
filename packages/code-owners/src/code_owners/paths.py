from __future__ import annotations

import re
from functools import lru_cache

from .errors import InvalidPathError
from .logging import get_logger

logger = get_logger(__name__)


def normalize_absolute_path(path: str) -> str:
    """Normalize `path` to the `/a/b/c` form used for all tree paths."""
    raw = path.replace("\\", "/").strip()
    if not raw.startswith("/"):
        raise InvalidPathError(path, "path must be absolute")
    parts = [p for p in raw.split("/") if p not in {"", "."}]
    if any(p == ".." for p in parts):
        raise InvalidPathError(path, "path must not contain '..'")
    return "/" + "/".join(parts)


def normalize_folder_path(path: str) -> str:
    folder = normalize_absolute_path(path if path.startswith("/") else "/" + path)
    return folder


def parent_folder(path: str) -> str:
    p = normalize_absolute_path(path)
    head, _, _ = p.rpartition("/")
    return head or "/"


def ancestor_folders(path: str) -> list[str]:
    """Folders from the one containing `path` up to and including `/`."""
    folder = parent_folder(path)
    out = [folder]
    while folder != "/":
        folder = parent_folder(folder)
        out.append(folder)
    return out


def join_path(folder: str, name: str) -> str:
    base = normalize_folder_path(folder)
    if base == "/":
        return normalize_absolute_path("/" + name)
    return normalize_absolute_path(f"{base}/{name}")


def relative_path(path: str, folder: str) -> str:
    p = normalize_absolute_path(path)
    base = normalize_folder_path(folder)
    if base == "/":
        return p[1:]
    prefix = base + "/"
    if not p.startswith(prefix):
        raise InvalidPathError(path, f"not located under {base}")
    return p[len(prefix):]


def tree_path(path: str) -> str:
    """Absolute path as stored in the tree (no leading slash)."""
    return normalize_absolute_path(path)[1:]


@lru_cache(maxsize=1024)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    # `**` crosses folders, `*` and `?` stay within one path segment,
    # `{a,b}` alternates, `[...]` is a character class.
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    i += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = pattern.find("]", i + 1)
            body = pattern[i + 1 : end] if end != -1 else ""
            negate = body.startswith("!")
            if negate:
                body = body[1:]
            if not body:
                out.append(re.escape(c))
            else:
                out.append(("[^" if negate else "[") + _class_body(body) + "]")
                i = end
        elif c == "{":
            end = pattern.find("}", i + 1)
            if end == -1:
                out.append(re.escape(c))
            else:
                choices = pattern[i + 1 : end].split(",")
                out.append("(?:" + "|".join(re.escape(x) for x in choices) + ")")
                i = end
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile("".join(out) + r"\Z")


def glob_matches(pattern: str, relative: str) -> bool:
    try:
        compiled = _compile_glob(pattern.lstrip("/"))
    except re.error as exc:
        logger.debug("ignoring invalid path expression %r: %s", pattern, exc)
        return False
    return compiled.match(relative) is not None


def _class_body(body: str) -> str:
    # Ranges keep their `-`; everything else is literal inside the class.
    return "".join(c if c == "-" else re.escape(c) for c in body)


def is_valid_glob(pattern: str) -> bool:
    try:
        _compile_glob(pattern.lstrip("/"))
    except re.error:
        return False
    return True
