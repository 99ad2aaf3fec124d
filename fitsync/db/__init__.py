from .helpers import validate_identifier
from .schema import create_schema
from .session import DbSession

__all__ = [
    "DbSession",
    "create_schema",
    "validate_identifier",
]
