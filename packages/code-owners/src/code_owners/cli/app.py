from __future__ import annotations

import json
from pathlib import Path

import typer
from rich import print
from rich.markup import escape

from ..accounts import Account, AccountsDocument
from ..backend.approval import ApprovalEngine
from ..backend.changes import ChangeDocument
from ..backend.hierarchy import OwnerConfigHierarchy
from ..backend.models import OwnerConfigKey
from ..backend.resolver import OwnerResolver
from ..backend.status import OwnerStatus
from ..backend.tree import WORKTREE_REVISION, CheckoutTree
from ..config import ProjectConfig, ProjectConfigStore, load_project_config
from ..errors import (
    CodeOwnersError,
    ConfigFormatError,
    ConfigParseError,
    InvalidProjectConfigError,
    user_messages,
)
from ..logging import setup_logging
from ..parsers.registry import available_config_backends, canonical_backend_id, get_config_backend
from ..suggest import OwnerSuggester

app = typer.Typer(add_completion=False, pretty_exceptions_show_locals=False)

_LOCAL_BRANCH = "master"


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", help="Log level: DEBUG | INFO | WARNING | ERROR"),
):
    """Inspect code owner configs and compute approval statuses."""
    setup_logging(log_level)


def _backend_id(value: str) -> str:
    try:
        return canonical_backend_id(value)
    except KeyError as exc:
        valid = ", ".join(available_config_backends())
        raise typer.BadParameter(f"unknown format: {value}. valid: {valid}") from exc


def _read_text(path: Path) -> str:
    if not path.is_file():
        raise typer.BadParameter(f"file does not exist: {path}")
    return path.read_text(encoding="utf-8")


def _project_config(path: Path | None) -> ProjectConfig:
    return load_project_config(path) if path is not None else ProjectConfig()


def _accounts(path: Path) -> AccountsDocument:
    return AccountsDocument.model_validate(json.loads(_read_text(path)))


def _change(path: Path) -> ChangeDocument:
    return ChangeDocument.model_validate(json.loads(_read_text(path)))


def _label(account: Account | None, account_id: int) -> str:
    return account.label() if account is not None else f"account {account_id}"


def _fail(exc: CodeOwnersError, *, info_url: str | None = None) -> typer.Exit:
    messages = user_messages(exc, invalid_config_info_url=info_url) or [str(exc)]
    for message in messages:
        print(f"[red]error[/red] {escape(message)}")
    return typer.Exit(code=1)


@app.command()
def validate(
    file: Path = typer.Argument(..., help="Code owner config file"),
    format: str = typer.Option("find-owners", "--format", help="Config format id"),
):
    """Parse a config file and report skipped lines."""
    parser = get_config_backend(_backend_id(format)).parser
    key = OwnerConfigKey(project="local", branch=_LOCAL_BRANCH, folder_path="/", file_name=file.name)
    try:
        config = parser.parse(key, _read_text(file))
    except ConfigParseError as exc:
        raise _fail(exc)

    for diag in parser.diagnostics:
        print(f"[yellow]skipped[/yellow] {escape(diag)}")
    print(
        f"[bold]ok[/bold] {len(config.owner_sets)} owner set(s), {len(config.imports)} import(s), "
        f"{len(parser.diagnostics)} skipped line(s)"
    )


@app.command("format")
def format_config(
    file: Path = typer.Argument(..., help="Code owner config file"),
    format: str = typer.Option("find-owners", "--format", help="Format of the input file"),
    to: str | None = typer.Option(None, "--to", help="Output format (defaults to the input format)"),
):
    """Print the canonical form of a config, optionally converting it."""
    source = get_config_backend(_backend_id(format)).parser
    target = get_config_backend(_backend_id(to or format)).parser
    key = OwnerConfigKey(project="local", branch=_LOCAL_BRANCH, folder_path="/", file_name=file.name)
    try:
        text = target.format(source.parse(key, _read_text(file)))
    except (ConfigParseError, ConfigFormatError) as exc:
        raise _fail(exc)
    typer.echo(text, nl=False)


@app.command()
def owners(
    checkout: Path = typer.Option(..., help="Working tree checkout"),
    path: str = typer.Option(..., help="Absolute path inside the checkout"),
    accounts: Path = typer.Option(..., help="Accounts JSON file"),
    project_config: Path | None = typer.Option(None, help="Project config JSON file"),
    project: str = typer.Option("local", help="Project name"),
):
    """Show the code owners of a path, level by level."""
    cfg = _project_config(project_config)
    store = ProjectConfigStore({project: cfg})
    directory = _accounts(accounts).directory()
    hierarchy = OwnerConfigHierarchy(tree=CheckoutTree(checkout), project_configs=store)
    resolver = OwnerResolver(accounts=directory, enforce_visibility=False)

    try:
        for level in hierarchy.iter_levels(
            project=project, branch=_LOCAL_BRANCH, revision=WORKTREE_REVISION, path=path
        ):
            resolved = resolver.resolve_path_owners(level.config, path)
            names = [_label(directory.get(a), a) for a in sorted(resolved.accounts)]
            if resolved.owned_by_all_users:
                names.append("*")
            print(f"[bold]{escape(level.config.key.folder_path)}[/bold] {escape(', '.join(names) or '-')}")
            for email in resolved.unresolved:
                print(f"  [yellow]unresolved[/yellow] {escape(email)}")
    except CodeOwnersError as exc:
        raise _fail(exc, info_url=cfg.invalid_config_info_url)

    for diag in hierarchy.diagnostics:
        print(f"[yellow]warning[/yellow] {escape(diag)}")


@app.command()
def status(
    checkout: Path = typer.Option(..., help="Working tree checkout"),
    change: Path = typer.Option(..., help="Change JSON file"),
    accounts: Path = typer.Option(..., help="Accounts JSON file"),
    project_config: Path | None = typer.Option(None, help="Project config JSON file"),
    workers: int = typer.Option(1, help="Parallel workers for per-file evaluation"),
):
    """Compute per-file code owner statuses of a change."""
    cfg = _project_config(project_config)
    doc = _change(change)
    accounts_doc = _accounts(accounts)
    engine = ApprovalEngine(
        tree=CheckoutTree(checkout),
        accounts=accounts_doc.directory(),
        permissions=accounts_doc.permissions(),
        changed_files=doc.provider(),
        project_configs=ProjectConfigStore({doc.change.project: cfg}),
    )

    try:
        statuses = list(engine.file_statuses(doc.change, max_workers=workers))
    except InvalidProjectConfigError as exc:
        print("[red]code owners disabled: invalid project configuration[/red]")
        raise _fail(exc)
    except CodeOwnersError as exc:
        raise _fail(exc, info_url=cfg.invalid_config_info_url)

    for fs in statuses:
        for ps in fs.path_statuses():
            colour = "green" if ps.status == OwnerStatus.APPROVED else "yellow"
            print(
                f"[{colour}]{ps.status.name}[/{colour}] {escape(ps.path)}"
                + (f" ({escape(ps.reason)})" if ps.reason else "")
            )
    submittable = all(fs.is_approved for fs in statuses)
    print(f"[bold]submittable[/bold] {'yes' if submittable else 'no'}")


@app.command()
def suggest(
    checkout: Path = typer.Option(..., help="Working tree checkout"),
    change: Path = typer.Option(..., help="Change JSON file"),
    path: str = typer.Option(..., help="Absolute path to suggest owners for"),
    accounts: Path = typer.Option(..., help="Accounts JSON file"),
    project_config: Path | None = typer.Option(None, help="Project config JSON file"),
    limit: int = typer.Option(10, help="Maximum number of suggestions"),
    debug: bool = typer.Option(False, "--debug", help="Print why owners were filtered"),
):
    """Suggest code owners of a path as reviewers for a change."""
    cfg = _project_config(project_config)
    doc = _change(change)
    accounts_doc = _accounts(accounts)
    suggester = OwnerSuggester(
        tree=CheckoutTree(checkout),
        accounts=accounts_doc.directory(),
        project_configs=ProjectConfigStore({doc.change.project: cfg}),
    )

    try:
        result = suggester.suggest_for_change(doc.change, path, limit=limit)
    except CodeOwnersError as exc:
        raise _fail(exc, info_url=cfg.invalid_config_info_url)

    for owner in result.owners:
        label = owner.display_name or owner.email or f"account {owner.account_id}"
        print(f"{owner.score:.3f} {escape(label)}")
    if result.owned_by_all_users:
        print("[bold]owned by all users[/bold]")
    if debug:
        for line in result.debug_logs:
            print(f"[dim]{escape(line)}[/dim]")
