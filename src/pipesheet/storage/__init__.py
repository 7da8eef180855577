"""Key-value persistence for preferences and sheet state."""

from .properties import (
    DOCUMENT_SCOPE,
    SCRIPT_SCOPE,
    USER_SCOPE,
    MemoryPropertyStore,
    PropertyStore,
    SQLPropertyStore,
)

__all__ = [
    "DOCUMENT_SCOPE",
    "SCRIPT_SCOPE",
    "USER_SCOPE",
    "MemoryPropertyStore",
    "PropertyStore",
    "SQLPropertyStore",
]
