"""Core data models, configuration, errors and collaborator protocols.

This package provides:
- Data models (RawLog, Meta, Window, Checkpoint, FlushResult)
- Configuration classes (SyncConfig, BufferConfig, RunnerConfig)
- Error taxonomy (retryable transport errors, decode and persistence errors)
"""

from adrind.core.config import BufferConfig, FailurePolicy, RunnerConfig, SyncConfig
from adrind.core.errors import (
    AdrindError,
    DecodeError,
    InvalidRange,
    MalformedLog,
    PersistenceError,
    RateLimited,
    RetryableError,
    TransportError,
)
from adrind.core.models import Checkpoint, FlushResult, Meta, RawLog, Window

__all__ = [
    "BufferConfig",
    "FailurePolicy",
    "RunnerConfig",
    "SyncConfig",
    "AdrindError",
    "DecodeError",
    "InvalidRange",
    "MalformedLog",
    "PersistenceError",
    "RateLimited",
    "RetryableError",
    "TransportError",
    "Checkpoint",
    "FlushResult",
    "Meta",
    "RawLog",
    "Window",
]
