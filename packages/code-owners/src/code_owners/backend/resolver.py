from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..accounts import AccountDirectory, AllVisible, VisibilityChecker
from ..logging import get_logger
from ..paths import normalize_absolute_path
from .models import OwnerAnnotation, OwnerConfig, OwnerReference

logger = get_logger(__name__)


@dataclass(frozen=True)
class PathOwners:
    """Concrete owners of one path at one config level.

    `owned_by_all_users` stands for the open set of every registered account;
    it is never materialized.
    """

    accounts: frozenset[int] = frozenset()
    owned_by_all_users: bool = False
    annotations: dict[int, frozenset[OwnerAnnotation]] = field(default_factory=dict)
    unresolved: tuple[str, ...] = ()

    def contains(self, account_id: int) -> bool:
        return self.owned_by_all_users or account_id in self.accounts

    def intersects(self, account_ids: Iterable[int]) -> bool:
        ids = set(account_ids)
        if self.owned_by_all_users:
            return bool(ids)
        return not self.accounts.isdisjoint(ids)

    def has_annotation(self, account_id: int, annotation: OwnerAnnotation) -> bool:
        return annotation in self.annotations.get(account_id, frozenset())

    @property
    def is_empty(self) -> bool:
        return not self.accounts and not self.owned_by_all_users


class OwnerResolver:
    def __init__(
        self,
        *,
        accounts: AccountDirectory,
        visibility: VisibilityChecker | None = None,
        viewer: int | None = None,
        enforce_visibility: bool = True,
    ) -> None:
        self.accounts = accounts
        self.visibility = visibility or AllVisible()
        self.viewer = viewer
        self.enforce_visibility = enforce_visibility

    def with_visibility(self, enabled: bool) -> "OwnerResolver":
        return OwnerResolver(
            accounts=self.accounts,
            visibility=self.visibility,
            viewer=self.viewer,
            enforce_visibility=enabled,
        )

    def resolve_path_owners(self, config: OwnerConfig, path: str) -> PathOwners:
        absolute_path = normalize_absolute_path(path)
        refs: list[OwnerReference] = []
        for owner_set in config.owner_sets_for_path(absolute_path):
            refs.extend(owner_set.owners)
        return self.resolve_references(refs)

    def resolve_references(self, refs: Iterable[OwnerReference]) -> PathOwners:
        accounts: set[int] = set()
        annotations: dict[int, set[OwnerAnnotation]] = {}
        unresolved: list[str] = []
        all_users = False

        for ref in refs:
            if ref.is_wildcard:
                all_users = True
                continue
            ids = self.accounts.by_email(ref.email)
            if not ids:
                if ref.email not in unresolved:
                    unresolved.append(ref.email)
                logger.debug("cannot resolve code owner email %s", ref.email)
                continue
            for account_id in ids:
                if self.enforce_visibility and not self.visibility.can_see(self.viewer, account_id):
                    logger.debug("account %d is not visible to %s", account_id, self.viewer)
                    continue
                accounts.add(account_id)
                if ref.annotations:
                    annotations.setdefault(account_id, set()).update(ref.annotations)

        return PathOwners(
            accounts=frozenset(accounts),
            owned_by_all_users=all_users,
            annotations={k: frozenset(v) for k, v in annotations.items()},
            unresolved=tuple(unresolved),
        )
