from .base import OwnerConfigParser, is_valid_email
from .find_owners import FindOwnersParser
from .proto_text import ProtoTextParser
from .registry import (
    ConfigBackend,
    available_config_backends,
    get_config_backend,
    get_config_parser,
    register_config_backend,
)

__all__ = [
    "ConfigBackend",
    "FindOwnersParser",
    "OwnerConfigParser",
    "ProtoTextParser",
    "available_config_backends",
    "get_config_backend",
    "get_config_parser",
    "is_valid_email",
    "register_config_backend",
]
