from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..backend.models import (
    ALL_USERS_WILDCARD,
    ImportMode,
    OwnerAnnotation,
    OwnerConfig,
    OwnerConfigImport,
    OwnerConfigKey,
    OwnerReference,
    OwnerSet,
)
from ..errors import ConfigFormatError
from ..paths import is_valid_glob, join_path
from .base import DiagnosticsMixin, is_valid_email

SET_NOPARENT = "set noparent"

_ANNOTATION_RE = re.compile(r"#\{(?P<key>[A-Za-z_][A-Za-z0-9_-]*)(?::(?P<value>[^}]*))?\}")
_PER_FILE_RE = re.compile(r"^per-file\s+(?P<globs>[^=]+?)\s*=\s*(?P<rhs>.*)$")
_IMPORT_RE = re.compile(r"^(?:(?P<include>include)\s+|(?P<file>file:)\s*)(?P<target>\S+)$")


@dataclass
class _PerFileBlock:
    owners: dict[str, OwnerReference] = field(default_factory=dict)
    override: bool = False


def _split_annotations(line: str) -> tuple[str, tuple[OwnerAnnotation, ...]]:
    annotations = tuple(
        OwnerAnnotation(key=m.group("key"), value=m.group("value"))
        for m in _ANNOTATION_RE.finditer(line)
    )
    stripped = _ANNOTATION_RE.sub(" ", line)
    stripped = stripped.split("#", 1)[0]
    return stripped.strip(), annotations


def _add_owner(
    owners: dict[str, OwnerReference],
    email: str,
    annotations: tuple[OwnerAnnotation, ...],
) -> None:
    existing = owners.get(email)
    merged = existing.annotations if existing is not None else ()
    for a in annotations:
        if a not in merged:
            merged = merged + (a,)
    owners[email] = OwnerReference(email=email, annotations=merged)


def _sorted_owners(owners: dict[str, OwnerReference]) -> tuple[OwnerReference, ...]:
    return tuple(owners[email] for email in sorted(owners))


def _parse_import(key: OwnerConfigKey, target: str, mode: ImportMode) -> OwnerConfigImport:
    # [PROJECT[:BRANCH]:]PATH, PATH relative to the importing folder unless absolute
    parts = target.split(":")
    if len(parts) > 3:
        raise ValueError(f"too many ':' separators in {target!r}")
    path = parts[-1]
    project = parts[0] if len(parts) >= 2 else None
    branch = parts[1] if len(parts) == 3 else None
    if not path.startswith("/"):
        path = join_path(key.folder_path, path)
    return OwnerConfigImport(project=project or None, branch=branch or None, file_path=path, mode=mode)


def _render_import(imp: OwnerConfigImport) -> str:
    keyword = "include " if imp.mode == ImportMode.ALL else "file: "
    prefix = ""
    if imp.project:
        prefix = f"{imp.project}:"
        if imp.branch:
            prefix += f"{imp.branch}:"
    return f"{keyword}{prefix}{imp.file_path}"


def _render_owner(ref: OwnerReference) -> str:
    if not ref.annotations:
        return ref.email
    rendered = " ".join(f"#{{{a.render()}}}" for a in ref.annotations)
    return f"{ref.email} {rendered}"


class FindOwnersParser(DiagnosticsMixin):
    """Line oriented OWNERS files.

    Lenient: bad emails and unknown lines are skipped. The formatted output is
    canonical (sorted, de-duplicated), so formatting is idempotent.
    """

    format_id = "find-owners"

    def parse(self, key: OwnerConfigKey, text: str) -> OwnerConfig:
        self.diagnostics = []
        ignore_parent = False
        global_owners: dict[str, OwnerReference] = {}
        per_file: dict[tuple[str, ...], _PerFileBlock] = {}
        imports: list[OwnerConfigImport] = []

        for line_no, raw in enumerate(text.splitlines(), start=1):
            line, annotations = _split_annotations(raw)
            if not line:
                continue

            if line == SET_NOPARENT:
                ignore_parent = True
                continue

            m = _IMPORT_RE.match(line)
            if m is not None:
                mode = ImportMode.ALL if m.group("include") else ImportMode.GLOBAL_ONLY
                try:
                    imp = _parse_import(key, m.group("target"), mode)
                except ValueError as exc:
                    self._skip(key, line_no, raw, f"invalid import ({exc})")
                    continue
                if imp not in imports:
                    imports.append(imp)
                continue

            m = _PER_FILE_RE.match(line)
            if m is not None:
                globs = tuple(sorted({g.strip() for g in m.group("globs").split(",") if g.strip()}))
                if not globs:
                    self._skip(key, line_no, raw, "per-file without path expressions")
                    continue
                invalid = [g for g in globs if not is_valid_glob(g)]
                if invalid:
                    self._skip(key, line_no, raw, f"invalid path expression {invalid[0]!r}")
                    continue
                block = per_file.setdefault(globs, _PerFileBlock())
                rhs = m.group("rhs").strip()
                if rhs == SET_NOPARENT:
                    block.override = True
                    continue
                for email in (e.strip() for e in rhs.split(",")):
                    if email != ALL_USERS_WILDCARD and not is_valid_email(email):
                        self._skip(key, line_no, raw, f"invalid email {email!r}")
                        continue
                    _add_owner(block.owners, email, annotations)
                continue

            if line == ALL_USERS_WILDCARD or is_valid_email(line):
                _add_owner(global_owners, line, annotations)
                continue

            self._skip(key, line_no, raw, "unrecognized line")

        owner_sets: list[OwnerSet] = []
        if global_owners:
            owner_sets.append(OwnerSet(owners=_sorted_owners(global_owners)))
        for globs in sorted(per_file):
            block = per_file[globs]
            if not block.owners and not block.override:
                continue
            owner_sets.append(
                OwnerSet(
                    path_expressions=globs,
                    owners=_sorted_owners(block.owners),
                    ignore_global_and_parent_owners=block.override,
                )
            )

        return OwnerConfig(
            key=key,
            ignore_parent_owners=ignore_parent,
            owner_sets=tuple(owner_sets),
            imports=tuple(sorted(imports, key=_render_import)),
        )

    def format(self, config: OwnerConfig) -> str:
        lines: list[str] = []
        if config.ignore_parent_owners:
            lines.append(SET_NOPARENT)

        for imp in sorted(config.imports, key=_render_import):
            lines.append(_render_import(imp))

        global_owners: dict[str, OwnerReference] = {}
        per_file: dict[tuple[str, ...], _PerFileBlock] = {}
        for owner_set in config.owner_sets:
            if owner_set.is_global:
                if owner_set.ignore_global_and_parent_owners:
                    raise ConfigFormatError(
                        "find-owners cannot express ignoring global and parent owners "
                        "for a set without path expressions"
                    )
                for ref in owner_set.owners:
                    _add_owner(global_owners, ref.email, ref.annotations)
                continue
            block = per_file.setdefault(tuple(sorted(set(owner_set.path_expressions))), _PerFileBlock())
            block.override = block.override or owner_set.ignore_global_and_parent_owners
            for ref in owner_set.owners:
                _add_owner(block.owners, ref.email, ref.annotations)

        for email in sorted(global_owners):
            lines.append(_render_owner(global_owners[email]))

        for globs in sorted(per_file):
            block = per_file[globs]
            glob_text = ",".join(globs)
            if block.override:
                lines.append(f"per-file {glob_text}={SET_NOPARENT}")
            plain = sorted(e for e, ref in block.owners.items() if not ref.annotations)
            if plain:
                lines.append(f"per-file {glob_text}={','.join(plain)}")
            for email in sorted(e for e, ref in block.owners.items() if ref.annotations):
                lines.append(f"per-file {glob_text}={_render_owner(block.owners[email])}")

        return "".join(f"{line}\n" for line in lines)
