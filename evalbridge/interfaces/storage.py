"""Storage backend abstraction.

Separates the operations the rest of an application consumes from the
mechanism that carries them into the target context.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Literal

EntryKind = Literal["file", "directory"]
DetectedType = Literal["text", "binary", "image", "unknown"]


@dataclass(frozen=True)
class FileEntry:
    """Single directory entry."""

    name: str
    kind: EntryKind
    path: str
    size: int | None = None
    last_modified: int | None = None  # epoch milliseconds, files only

    @property
    def is_dir(self) -> bool:
        return self.kind == "directory"

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> FileEntry:
        return cls(
            name=record["name"],
            kind=record["kind"],
            path=record["path"],
            size=record.get("size"),
            last_modified=record.get("lastModified"),
        )


@dataclass(frozen=True)
class FileReadResult:
    """File content plus what the target learned about it."""

    content: str
    mime_type: str
    size: int
    is_base64: bool
    detected_type: DetectedType
    is_large_text: bool

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> FileReadResult:
        return cls(
            content=record["content"],
            mime_type=record["mimeType"],
            size=record["size"],
            is_base64=record["isBase64"],
            detected_type=record.get("detectedType", "unknown"),
            is_large_text=record.get("isLargeText", False),
        )


@dataclass(frozen=True)
class StorageEstimate:
    usage: int
    quota: int


class StorageBackend(ABC):
    """Abstract backend for storage living in a target context.

    Implementations:
    - StorageClient: generated code dispatched through an EvalAdapter

    All methods raise ``evalbridge.errors.BridgeError`` subclasses on failure.
    """

    @abstractmethod
    async def list(self, path: str = "") -> list[FileEntry]:
        """List a directory, directories first, then by name."""
        ...

    @abstractmethod
    async def read(self, path: str) -> str:
        """Read a file as text.

        Returns:
            The text, or a ``[BINARY_OR_LARGE] ...`` sentinel for content
            that should not be shown as text
        """
        ...

    @abstractmethod
    async def read_with_meta(self, path: str, *, force_text: bool = False) -> FileReadResult:
        """Read a file with MIME type, size and detected content type."""
        ...

    @abstractmethod
    async def write(self, path: str, content: str, is_binary: bool = False) -> None:
        """Write a file; ``content`` is base64 when ``is_binary``."""
        ...

    @abstractmethod
    async def rename(self, path: str, new_name: str) -> None:
        ...

    @abstractmethod
    async def move(self, old_path: str, new_path: str) -> None:
        ...

    @abstractmethod
    async def create(self, path: str, kind: EntryKind) -> None:
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete a file or a directory with everything in it."""
        ...

    @abstractmethod
    async def download(self, path: str) -> None:
        """Save a copy of the file into the target's download directory."""
        ...

    @abstractmethod
    async def get_storage_estimate(self) -> StorageEstimate:
        ...

    @abstractmethod
    async def exists(self, path: str) -> bool:
        ...
