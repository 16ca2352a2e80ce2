"""Interfaces consumed by the rest of an application."""

from evalbridge.interfaces.storage import (
    DetectedType,
    EntryKind,
    FileEntry,
    FileReadResult,
    StorageBackend,
    StorageEstimate,
)

__all__ = [
    "DetectedType",
    "EntryKind",
    "FileEntry",
    "FileReadResult",
    "StorageBackend",
    "StorageEstimate",
]
