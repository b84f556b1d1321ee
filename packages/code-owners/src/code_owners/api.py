"""Stable external API for code_owners.

External callers should prefer importing from this module instead of deep
package internals.
"""

from __future__ import annotations

from .accounts import (
    Account,
    AccountsDocument,
    AllVisible,
    InMemoryAccountDirectory,
    StaticPermissions,
    StaticVisibility,
)
from .backend.approval import ApprovalEngine
from .backend.changes import Approval, Change, ChangedFile, ChangeDocument, ChangeKind, StaticChangedFiles
from .backend.hierarchy import OwnerConfigHierarchy, OwnerConfigLevel, OwnerConfigScanner
from .backend.loader import OwnerConfigCache, OwnerConfigLoader
from .backend.models import (
    NEVER_SUGGEST,
    ImportMode,
    OwnerAnnotation,
    OwnerConfig,
    OwnerConfigImport,
    OwnerConfigKey,
    OwnerReference,
    OwnerSet,
)
from .backend.notify import MessagePoster, ReviewerAddedNotifier
from .backend.resolver import OwnerResolver, PathOwners
from .backend.status import FileStatus, OwnerStatus, PathStatus
from .backend.tree import CheckoutTree, GitTree, InMemoryTree
from .config import ProjectConfig, ProjectConfigStore, RequiredApproval, load_project_config
from .errors import (
    CodeOwnersError,
    ConfigFormatError,
    ConfigParseError,
    InvalidPathError,
    InvalidProjectConfigError,
    InvalidRevisionError,
    TreeReadError,
    UnsupportedRevisionError,
    http_status,
    is_caller_error,
    user_messages,
)
from .parsers.registry import available_config_backends, get_config_backend, register_config_backend
from .suggest import OwnerSuggester, SuggestionResult

__all__ = [
    "NEVER_SUGGEST",
    "Account",
    "AccountsDocument",
    "AllVisible",
    "Approval",
    "ApprovalEngine",
    "Change",
    "ChangeDocument",
    "ChangeKind",
    "ChangedFile",
    "CheckoutTree",
    "CodeOwnersError",
    "ConfigFormatError",
    "ConfigParseError",
    "FileStatus",
    "GitTree",
    "ImportMode",
    "InMemoryAccountDirectory",
    "InMemoryTree",
    "InvalidPathError",
    "InvalidProjectConfigError",
    "InvalidRevisionError",
    "MessagePoster",
    "OwnerAnnotation",
    "OwnerConfig",
    "OwnerConfigCache",
    "OwnerConfigHierarchy",
    "OwnerConfigImport",
    "OwnerConfigKey",
    "OwnerConfigLevel",
    "OwnerConfigLoader",
    "OwnerConfigScanner",
    "OwnerReference",
    "OwnerResolver",
    "OwnerSet",
    "OwnerStatus",
    "OwnerSuggester",
    "PathOwners",
    "PathStatus",
    "ProjectConfig",
    "ProjectConfigStore",
    "RequiredApproval",
    "ReviewerAddedNotifier",
    "StaticChangedFiles",
    "StaticPermissions",
    "StaticVisibility",
    "SuggestionResult",
    "TreeReadError",
    "UnsupportedRevisionError",
    "available_config_backends",
    "get_config_backend",
    "http_status",
    "is_caller_error",
    "load_project_config",
    "register_config_backend",
    "user_messages",
]
