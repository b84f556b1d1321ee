from __future__ import annotations

from code_owners.accounts import Account, StaticVisibility
from code_owners.backend.models import NEVER_SUGGEST, OwnerConfig, OwnerConfigKey, OwnerReference
from code_owners.backend.resolver import OwnerResolver
from code_owners.parsers import FindOwnersParser

from .fixtures.builders import ALICE, BOB, CAROL, build_directory


def _config(text: str, folder: str = "/") -> OwnerConfig:
    return FindOwnersParser().parse(OwnerConfigKey(project="p", branch="main", folder_path=folder), text)


def test_resolves_emails_to_accounts() -> None:
    resolver = OwnerResolver(accounts=build_directory())
    owners = resolver.resolve_path_owners(
        _config("alice@example.com\nper-file *.md=bob@example.com\nghost@example.com\n"), "/docs.md"
    )
    assert owners.accounts == frozenset({ALICE, BOB})
    assert owners.unresolved == ("ghost@example.com",)
    assert owners.contains(ALICE)
    assert not owners.contains(CAROL)
    assert owners.intersects([CAROL, BOB])


def test_per_file_owners_only_for_matching_paths() -> None:
    resolver = OwnerResolver(accounts=build_directory())
    config = _config("per-file *.md=bob@example.com\n", folder="/docs")
    assert resolver.resolve_path_owners(config, "/docs/a.md").accounts == frozenset({BOB})
    assert resolver.resolve_path_owners(config, "/docs/a.py").is_empty


def test_inactive_accounts_are_never_owners() -> None:
    directory = build_directory()
    directory.add(Account(account_id=42, emails=("gone@example.com",), active=False))
    owners = OwnerResolver(accounts=directory).resolve_path_owners(_config("gone@example.com\n"), "/a.py")
    assert owners.is_empty
    assert owners.unresolved == ("gone@example.com",)


def test_wildcard_stands_for_all_users() -> None:
    owners = OwnerResolver(accounts=build_directory()).resolve_path_owners(_config("*\n"), "/a.py")
    assert owners.owned_by_all_users
    assert owners.accounts == frozenset()
    assert owners.contains(12345)
    assert owners.intersects([CAROL])
    assert not owners.intersects([])
    assert not owners.is_empty


def test_visibility_filters_unless_disabled() -> None:
    resolver = OwnerResolver(
        accounts=build_directory(),
        visibility=StaticVisibility({CAROL: [BOB]}),
        viewer=CAROL,
    )
    config = _config("alice@example.com\nbob@example.com\n")
    assert resolver.resolve_path_owners(config, "/a.py").accounts == frozenset({ALICE})
    assert resolver.with_visibility(False).resolve_path_owners(config, "/a.py").accounts == frozenset(
        {ALICE, BOB}
    )


def test_annotations_are_kept_per_account() -> None:
    owners = OwnerResolver(accounts=build_directory()).resolve_path_owners(
        _config("alice@example.com #{NEVER_SUGGEST}\nbob@example.com\n"), "/a.py"
    )
    assert owners.has_annotation(ALICE, NEVER_SUGGEST)
    assert not owners.has_annotation(BOB, NEVER_SUGGEST)


def test_resolve_references() -> None:
    owners = OwnerResolver(accounts=build_directory()).resolve_references(
        [OwnerReference(email="carol@example.com"), OwnerReference(email="carol@example.com")]
    )
    assert owners.accounts == frozenset({CAROL})
