"""code_owners: per-folder code owner configs, approval checks and suggestions."""

from .backend.approval import ApprovalEngine
from .backend.hierarchy import OwnerConfigHierarchy
from .backend.resolver import OwnerResolver
from .backend.status import OwnerStatus
from .config import ProjectConfig
from .errors import CodeOwnersError
from .suggest import OwnerSuggester

__all__ = [
    "ApprovalEngine",
    "CodeOwnersError",
    "OwnerConfigHierarchy",
    "OwnerResolver",
    "OwnerStatus",
    "OwnerSuggester",
    "ProjectConfig",
]
