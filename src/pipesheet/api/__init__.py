"""Pipedrive API access."""

from .client import (
    PipedriveAuthError,
    PipedriveClient,
    PipedriveError,
    PipedriveRateLimitError,
)
from .fields import FieldDefinitionCache, FieldKind, FieldRegistry

__all__ = [
    "FieldDefinitionCache",
    "FieldKind",
    "FieldRegistry",
    "PipedriveAuthError",
    "PipedriveClient",
    "PipedriveError",
    "PipedriveRateLimitError",
]
