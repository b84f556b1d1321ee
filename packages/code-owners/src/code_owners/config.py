from __future__ import annotations

import json
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .backend.changes import Approval
from .errors import InvalidProjectConfigError

DEFAULT_REQUIRED_APPROVAL = "Code-Review+1"
DEFAULT_MAX_IMPORT_DEPTH = 5

_APPROVAL_RE = re.compile(r"^(?P<label>[A-Za-z0-9][A-Za-z0-9_-]*)\+(?P<value>\d+)$")


class RequiredApproval(BaseModel):
    """A `(label, minimum value)` pair, written as `Label+Value`."""

    model_config = ConfigDict(frozen=True)

    label: str
    value: int

    @classmethod
    def parse(cls, text: str, *, project: str = "") -> "RequiredApproval":
        m = _APPROVAL_RE.match(text.strip())
        if m is None:
            raise InvalidProjectConfigError(
                project, f"approval {text!r} must have the format '<label>+<value>'"
            )
        value = int(m.group("value"))
        if value <= 0:
            raise InvalidProjectConfigError(project, f"approval {text!r} must have a positive value")
        return cls(label=m.group("label"), value=value)

    def is_approved_by(self, approval: Approval) -> bool:
        return approval.label == self.label and approval.value >= self.value

    def __str__(self) -> str:
        return f"{self.label}+{self.value}"


class ProjectConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    required_approval: str = DEFAULT_REQUIRED_APPROVAL
    override_approval: str | None = None
    disabled: bool = False
    disabled_branches: list[str] = Field(default_factory=list)
    backend: str = "find-owners"
    backend_by_branch: dict[str, str] = Field(default_factory=dict)
    file_extension: str | None = None
    global_owners: list[str] = Field(default_factory=list)
    max_paths_in_change_messages: int = 100
    enable_async_message_on_add_reviewer: bool = True
    max_import_depth: int = DEFAULT_MAX_IMPORT_DEPTH
    invalid_config_info_url: str | None = None

    @field_validator("max_import_depth")
    @classmethod
    def _non_negative_depth(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_import_depth must be >= 0")
        return value

    def is_disabled(self, branch: str) -> bool:
        return self.disabled or _short_branch(branch) in {_short_branch(b) for b in self.disabled_branches}

    def backend_for(self, branch: str) -> str:
        short = _short_branch(branch)
        for name, backend_id in self.backend_by_branch.items():
            if _short_branch(name) == short:
                return backend_id
        return self.backend

    def required(self, project: str) -> RequiredApproval:
        return RequiredApproval.parse(self.required_approval, project=project)

    def override(self, project: str) -> RequiredApproval | None:
        if self.override_approval is None:
            return None
        return RequiredApproval.parse(self.override_approval, project=project)


def _short_branch(branch: str) -> str:
    return branch[len("refs/heads/"):] if branch.startswith("refs/heads/") else branch


class ProjectConfigStore:
    """Project name -> config; unknown projects use the defaults."""

    def __init__(self, configs: dict[str, ProjectConfig] | None = None) -> None:
        self._configs = dict(configs or {})

    def get(self, project: str) -> ProjectConfig:
        return self._configs.get(project) or ProjectConfig()

    def put(self, project: str, config: ProjectConfig) -> None:
        self._configs[project] = config


def load_project_config(path: str | Path) -> ProjectConfig:
    p = Path(path)
    data = json.loads(p.read_text(encoding="utf-8"))
    return ProjectConfig.model_validate(data)
