from __future__ import annotations

from dataclasses import dataclass

from ..backend.models import OwnerConfig, OwnerConfigKey, OwnerReference, OwnerSet
from ..errors import ConfigFormatError, ConfigParseError
from .base import DiagnosticsMixin


@dataclass(frozen=True)
class _Token:
    kind: str  # ident | string | punct
    value: str
    line: int


_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t", "\r": "\\r"}
_UNESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    i = 0
    line = 1
    n = len(text)
    while i < n:
        c = text[i]
        if c == "\n":
            line += 1
            i += 1
        elif c.isspace():
            i += 1
        elif c == "#":
            while i < n and text[i] != "\n":
                i += 1
        elif c in "{}:":
            tokens.append(_Token("punct", c, line))
            i += 1
        elif c == '"':
            i += 1
            buf: list[str] = []
            while True:
                if i >= n or text[i] == "\n":
                    raise ConfigParseError(f"line {line}: unterminated string")
                ch = text[i]
                if ch == "\\" and i + 1 < n:
                    buf.append(_UNESCAPES.get(text[i + 1], text[i + 1]))
                    i += 2
                    continue
                if ch == '"':
                    i += 1
                    break
                buf.append(ch)
                i += 1
            tokens.append(_Token("string", "".join(buf), line))
        elif c.isalnum() or c == "_":
            start = i
            while i < n and (text[i].isalnum() or text[i] == "_"):
                i += 1
            tokens.append(_Token("ident", text[start:i], line))
        else:
            raise ConfigParseError(f"line {line}: unexpected character {c!r}")
    return tokens


class _Reader:
    def __init__(self, tokens: list[_Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def peek(self) -> _Token | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def next(self, what: str) -> _Token:
        tok = self.peek()
        if tok is None:
            raise ConfigParseError(f"unexpected end of input, expected {what}")
        self._pos += 1
        return tok

    def expect(self, kind: str, value: str | None = None) -> _Token:
        tok = self.next(value or kind)
        if tok.kind != kind or (value is not None and tok.value != value):
            raise ConfigParseError(f"line {tok.line}: expected {value or kind}, got {tok.value!r}")
        return tok

    def open_block(self) -> None:
        tok = self.peek()
        if tok is not None and tok.kind == "punct" and tok.value == ":":
            self._pos += 1
        self.expect("punct", "{")

    def at_block_end(self) -> bool:
        tok = self.peek()
        if tok is None:
            raise ConfigParseError("unterminated block, expected '}'")
        if tok.kind == "punct" and tok.value == "}":
            self._pos += 1
            return True
        return False

    def scalar(self, kind: str) -> str:
        self.expect("punct", ":")
        return self.expect(kind).value


class ProtoTextParser(DiagnosticsMixin):
    """Structured owners_config files.

    Strict: any structural defect fails the whole parse. Emails are kept as
    written, in declaration order and including duplicates.
    """

    format_id = "proto"

    def parse(self, key: OwnerConfigKey, text: str) -> OwnerConfig:
        self.diagnostics = []
        return self._parse(key, text)

    def _parse(self, key: OwnerConfigKey, text: str) -> OwnerConfig:
        reader = _Reader(_tokenize(text))
        if reader.peek() is None:
            return OwnerConfig(key=key)
        reader.expect("ident", "owners_config")
        reader.open_block()

        ignore_parent = False
        owner_sets: list[OwnerSet] = []
        while not reader.at_block_end():
            field = reader.expect("ident")
            if field.value == "ignore_parent_owners":
                ignore_parent = self._bool(reader.scalar("ident"), field.line)
            elif field.value == "owner_sets":
                owner_set = self._owner_set(reader)
                if owner_set.owners:
                    owner_sets.append(owner_set)
            else:
                raise ConfigParseError(f"line {field.line}: unknown field {field.value!r}")

        trailing = reader.peek()
        if trailing is not None:
            raise ConfigParseError(f"line {trailing.line}: unexpected {trailing.value!r} after owners_config")
        return OwnerConfig(key=key, ignore_parent_owners=ignore_parent, owner_sets=tuple(owner_sets))

    def _owner_set(self, reader: _Reader) -> OwnerSet:
        reader.open_block()
        paths: list[str] = []
        owners: list[OwnerReference] = []
        while not reader.at_block_end():
            field = reader.expect("ident")
            if field.value == "path_expressions":
                paths.append(reader.scalar("string"))
            elif field.value == "owners":
                owners.append(self._owner(reader, field.line))
            else:
                raise ConfigParseError(f"line {field.line}: unknown field {field.value!r}")
        return OwnerSet(path_expressions=tuple(paths), owners=tuple(owners))

    def _owner(self, reader: _Reader, line: int) -> OwnerReference:
        reader.open_block()
        email: str | None = None
        while not reader.at_block_end():
            field = reader.expect("ident")
            if field.value != "email":
                raise ConfigParseError(f"line {field.line}: unknown field {field.value!r}")
            email = reader.scalar("string")
        if email is None:
            raise ConfigParseError(f"line {line}: owners block without email")
        return OwnerReference(email=email)

    @staticmethod
    def _bool(value: str, line: int) -> bool:
        if value == "true":
            return True
        if value == "false":
            return False
        raise ConfigParseError(f"line {line}: expected true or false, got {value!r}")

    def format(self, config: OwnerConfig) -> str:
        if config.imports:
            raise ConfigFormatError("imports are not supported by the proto format")
        out = ["owners_config {\n"]
        if config.ignore_parent_owners:
            out.append("  ignore_parent_owners: true\n")
        for owner_set in config.owner_sets:
            if owner_set.ignore_global_and_parent_owners:
                raise ConfigFormatError("ignoreGlobalAndParentOwners is not supported")
            if not owner_set.owners:
                continue
            out.append("  owner_sets {\n")
            for expr in owner_set.path_expressions:
                out.append(f"    path_expressions: {_quote(expr)}\n")
            for ref in owner_set.owners:
                if ref.annotations:
                    raise ConfigFormatError("owner annotations are not supported by the proto format")
                out.append(f"    owners {{\n      email: {_quote(ref.email)}\n    }}\n")
            out.append("  }\n")
        out.append("}\n")
        return "".join(out)


def _quote(value: str) -> str:
    escaped = "".join(_ESCAPES.get(c, c) for c in value)
    return f'"{escaped}"'
