from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .base import OwnerConfigParser
from .find_owners import FindOwnersParser
from .proto_text import ProtoTextParser

ParserFactory = Callable[[], OwnerConfigParser]


@dataclass(frozen=True)
class ConfigBackend:
    backend_id: str
    parser: OwnerConfigParser
    file_name: str

    def file_name_for(self, file_extension: str | None) -> str:
        if file_extension:
            return f"{self.file_name}.{file_extension}"
        return self.file_name


@dataclass(frozen=True)
class _Registration:
    factory: ParserFactory
    file_name: str


_CONFIG_BACKENDS: dict[str, _Registration] = {}
_CONFIG_BACKEND_ALIASES: dict[str, str] = {}


def register_config_backend(
    *,
    backend_id: str,
    factory: ParserFactory,
    file_name: str,
    aliases: tuple[str, ...] = (),
) -> None:
    key = backend_id.strip().lower()
    if not key:
        raise ValueError("backend_id cannot be empty")
    _CONFIG_BACKENDS[key] = _Registration(factory=factory, file_name=file_name)
    for alias in aliases:
        alias_key = alias.strip().lower()
        if alias_key:
            _CONFIG_BACKEND_ALIASES[alias_key] = key


def available_config_backends() -> tuple[str, ...]:
    return tuple(sorted(_CONFIG_BACKENDS))


def canonical_backend_id(backend_id: str) -> str:
    bid = backend_id.strip().lower()
    key = _CONFIG_BACKEND_ALIASES.get(bid, bid)
    if key not in _CONFIG_BACKENDS:
        raise KeyError(f"unknown code owner backend: {backend_id}")
    return key


def get_config_backend(backend_id: str) -> ConfigBackend:
    key = canonical_backend_id(backend_id)
    reg = _CONFIG_BACKENDS[key]
    return ConfigBackend(backend_id=key, parser=reg.factory(), file_name=reg.file_name)


def get_config_parser(backend_id: str) -> OwnerConfigParser:
    return get_config_backend(backend_id).parser


register_config_backend(
    backend_id="find-owners",
    factory=FindOwnersParser,
    file_name="OWNERS",
    aliases=("find_owners", "owners", "line"),
)
register_config_backend(
    backend_id="proto",
    factory=ProtoTextParser,
    file_name="OWNERS_METADATA",
    aliases=("textproto", "structured"),
)
