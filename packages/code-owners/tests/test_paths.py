from __future__ import annotations

import pytest

from code_owners.errors import InvalidPathError
from code_owners.paths import (
    ancestor_folders,
    glob_matches,
    is_valid_glob,
    join_path,
    normalize_absolute_path,
    parent_folder,
    relative_path,
)


def test_normalize_absolute_path_collapses_separators() -> None:
    assert normalize_absolute_path("/foo//bar/./baz.md") == "/foo/bar/baz.md"
    assert normalize_absolute_path("/") == "/"


@pytest.mark.parametrize("path", ["foo/bar.md", "", "/foo/../bar.md"])
def test_normalize_absolute_path_rejects_bad_paths(path: str) -> None:
    with pytest.raises(InvalidPathError):
        normalize_absolute_path(path)


def test_folders() -> None:
    assert parent_folder("/foo/bar/baz.md") == "/foo/bar"
    assert parent_folder("/baz.md") == "/"
    assert ancestor_folders("/foo/bar/baz.md") == ["/foo/bar", "/foo", "/"]
    assert ancestor_folders("/baz.md") == ["/"]
    assert join_path("/", "OWNERS") == "/OWNERS"
    assert join_path("/foo", "sub/OWNERS") == "/foo/sub/OWNERS"


def test_relative_path() -> None:
    assert relative_path("/foo/bar/baz.md", "/foo") == "bar/baz.md"
    assert relative_path("/foo/bar/baz.md", "/") == "foo/bar/baz.md"
    with pytest.raises(InvalidPathError):
        relative_path("/other/baz.md", "/foo")


def test_glob_star_stays_in_one_folder() -> None:
    assert glob_matches("*.md", "readme.md")
    assert not glob_matches("*.md", "docs/readme.md")
    assert glob_matches("?.md", "a.md")
    assert not glob_matches("?.md", "ab.md")


def test_glob_double_star_crosses_folders() -> None:
    assert glob_matches("**.md", "docs/api/readme.md")
    assert glob_matches("**/*.md", "readme.md")
    assert glob_matches("**/*.md", "docs/api/readme.md")
    assert not glob_matches("**/*.md", "docs/api/readme.txt")


def test_glob_alternatives_and_classes() -> None:
    assert glob_matches("{a,b}.txt", "a.txt")
    assert glob_matches("{a,b}.txt", "b.txt")
    assert not glob_matches("{a,b}.txt", "c.txt")
    assert glob_matches("[!a]*.py", "b.py")
    assert not glob_matches("[!a]*.py", "a.py")
    assert glob_matches("/docs/*.md", "docs/x.md")


def test_malformed_class_matches_nothing() -> None:
    assert not is_valid_glob("[z-a].md")
    assert not glob_matches("[z-a].md", "z.md")
    assert not glob_matches("[z-a].md", "x.py")


def test_class_body_is_literal() -> None:
    assert is_valid_glob("[[]x")
    assert glob_matches("[[]x", "[x")
    assert glob_matches("[]", "[]")
    assert glob_matches("[!]", "[!]")
    assert glob_matches("[a-c]", "b")
