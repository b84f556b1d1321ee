from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


class Account(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: int
    emails: tuple[str, ...] = ()
    display_name: str | None = None
    active: bool = True
    service_user: bool = False

    def label(self) -> str:
        if self.display_name:
            return self.display_name
        if self.emails:
            return self.emails[0]
        return f"account {self.account_id}"


class AccountDirectory(Protocol):
    def by_email(self, email: str) -> list[int]: ...

    def get(self, account_id: int) -> Account | None: ...

    def is_service_user(self, account_id: int) -> bool: ...

    def all_accounts(self) -> list[Account]: ...


class VisibilityChecker(Protocol):
    def can_see(self, viewer: int | None, account_id: int) -> bool: ...


class PermissionChecker(Protocol):
    def is_project_owner(self, account_id: int, project: str) -> bool: ...


class InMemoryAccountDirectory:
    def __init__(self, accounts: Iterable[Account] = ()) -> None:
        self._accounts: dict[int, Account] = {}
        self._by_email: dict[str, list[int]] = {}
        for account in accounts:
            self.add(account)

    def add(self, account: Account) -> None:
        self._accounts[account.account_id] = account
        for email in account.emails:
            ids = self._by_email.setdefault(email, [])
            if account.account_id not in ids:
                ids.append(account.account_id)

    def by_email(self, email: str) -> list[int]:
        return [
            account_id
            for account_id in self._by_email.get(email, [])
            if self._accounts[account_id].active
        ]

    def get(self, account_id: int) -> Account | None:
        return self._accounts.get(account_id)

    def is_service_user(self, account_id: int) -> bool:
        account = self._accounts.get(account_id)
        return account is not None and account.service_user

    def all_accounts(self) -> list[Account]:
        return [self._accounts[k] for k in sorted(self._accounts)]


class AllVisible:
    def can_see(self, viewer: int | None, account_id: int) -> bool:
        return True


class StaticVisibility:
    """Visibility from an explicit `viewer -> hidden accounts` table."""

    def __init__(self, hidden: Mapping[int | None, Iterable[int]]) -> None:
        self._hidden = {viewer: frozenset(ids) for viewer, ids in hidden.items()}

    def can_see(self, viewer: int | None, account_id: int) -> bool:
        return account_id not in self._hidden.get(viewer, frozenset())


class StaticPermissions:
    def __init__(self, project_owners: Mapping[str, Iterable[int]] | None = None) -> None:
        self._owners = {p: frozenset(ids) for p, ids in (project_owners or {}).items()}

    def is_project_owner(self, account_id: int, project: str) -> bool:
        return account_id in self._owners.get(project, frozenset())


class AccountsDocument(BaseModel):
    """On-disk accounts fixture consumed by the CLI."""

    accounts: list[Account] = Field(default_factory=list)
    project_owners: dict[str, list[int]] = Field(default_factory=dict)

    def directory(self) -> InMemoryAccountDirectory:
        return InMemoryAccountDirectory(self.accounts)

    def permissions(self) -> StaticPermissions:
        return StaticPermissions(self.project_owners)
