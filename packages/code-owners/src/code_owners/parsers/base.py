from __future__ import annotations

from typing import Protocol

from ..backend.models import OwnerConfig, OwnerConfigKey
from ..logging import get_logger

logger = get_logger(__name__)


class OwnerConfigParser(Protocol):
    format_id: str
    diagnostics: list[str]

    def parse(self, key: OwnerConfigKey, text: str) -> OwnerConfig: ...

    def format(self, config: OwnerConfig) -> str: ...


def is_valid_email(value: str) -> bool:
    if not value or any(ch.isspace() for ch in value):
        return False
    if value.count("@") != 1:
        return False
    local, _, domain = value.partition("@")
    return bool(local) and bool(domain)


class DiagnosticsMixin:
    """Collects recoverable defects seen by the most recent parse."""

    format_id: str = ""

    def __init__(self) -> None:
        self.diagnostics: list[str] = []

    def _skip(self, key: OwnerConfigKey, line_no: int, line: str, reason: str) -> None:
        msg = f"line {line_no}: {reason}: {line!r}"
        self.diagnostics.append(msg)
        logger.debug(
            "skipping %s in %s:%s%s (%s)",
            msg,
            key.project,
            key.branch,
            key.folder_path,
            self.format_id,
        )
